"""Command line entry point: run a flow once and print its JSON output, or
serve the HTTP API.

Examples:
    practice-flows flows
    practice-flows serve --port 8080
    practice-flows run process_email '{"from": "a@b.com", "subject": "Hi", "body": "..."}'
    practice-flows run handle_leave_request @request.json --seed fixtures.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from practice_flows.api import app
from practice_flows.config import configure_logging, get_settings
from practice_flows.errors import FlowError, InputValidationError, StoreError
from practice_flows.flows import FLOWS
from practice_flows.inference import InferenceAdapter
from practice_flows.store import DocumentStore, InMemoryStore, create_store

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_INPUT = 2


def read_json_argument(value: str) -> Any:
    """Parse inline JSON, or the contents of a file when prefixed with ``@``."""
    text = Path(value[1:]).read_text(encoding="utf-8") if value.startswith("@") else value
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise InputValidationError(f"Payload is not valid JSON: {e}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="practice-flows",
        description="Run practice workflow automations from the command line",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override LOG_LEVEL",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("flows", help="List available flows")

    serve = subcommands.add_parser("serve", help="Serve the HTTP API")
    serve.add_argument("--host", help="Bind address (default API_HOST)")
    serve.add_argument("--port", type=int, help="Port (default PORT)")

    run = subcommands.add_parser("run", help="Run one flow and print its output")
    run.add_argument("flow", choices=sorted(FLOWS), help="Flow name")
    run.add_argument("payload", help="JSON input, or @path/to/input.json")
    run.add_argument(
        "--seed",
        type=Path,
        help="Run against an in-memory store seeded from this JSON file "
        "({collection: [documents]}) instead of STORE_BACKEND",
    )
    return parser


async def run_flow(flow_name: str, payload: Any, store: DocumentStore) -> dict[str, Any]:
    flow_class = FLOWS[flow_name]
    # Only flows with instructions talk to the model.
    inference = InferenceAdapter(store) if flow_class.instructions else None
    try:
        return await flow_class(store, inference)(payload)
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    if args.command == "flows":
        for name, flow_class in sorted(FLOWS.items()):
            print(f"{name:28} {flow_class.description}")
        return EXIT_OK

    if args.command == "serve":
        settings = get_settings()
        host = args.host or settings.api_host
        port = args.port or settings.api_port
        logger.info("api_serving", host=host, port=port)
        uvicorn.run(app, host=host, port=port, log_config=None)
        return EXIT_OK

    try:
        payload = read_json_argument(args.payload)
        if args.seed:
            store: DocumentStore = InMemoryStore(read_json_argument(f"@{args.seed}"))
        else:
            store = create_store()
        result = asyncio.run(run_flow(args.flow, payload, store))
    except InputValidationError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        for field in e.fields:
            print(f"  - {field}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except (FlowError, StoreError) as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return EXIT_FAILED

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
