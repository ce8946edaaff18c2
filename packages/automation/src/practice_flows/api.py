"""HTTP surface: inbound e-mail webhook and flow endpoints."""

import json
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import structlog
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from practice_flows.applier import (
    apply_reallocation_plan,
    create_engagements_from_plan,
    revise_recurring_fee,
)
from practice_flows.config import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_settings,
)
from practice_flows.errors import (
    FlowError,
    InferenceTimeoutError,
    InputValidationError,
    MissingReferenceError,
    ModelOutputError,
    StoreError,
    ToolExecutionError,
    ToolTimeoutError,
)
from practice_flows.flows import Flow, build_flows
from practice_flows.inference import InferenceAdapter
from practice_flows.schemas import (
    ApplyReallocationInput,
    ApplyReallocationOutput,
    CreateEngagementsInput,
    CreateEngagementsOutput,
    ProcessEmailInput,
    ReviseFeeInput,
    ReviseFeeOutput,
    decode,
)
from practice_flows.store import DocumentStore, create_store, new_id
from practice_flows.tools.data_access import utc_now

logger = structlog.get_logger(__name__)

# Most specific first: ToolTimeoutError is also a ToolExecutionError.
_STATUS_CODES: list[tuple[type[Exception], int]] = [
    (InputValidationError, 422),
    (MissingReferenceError, 404),
    (ToolTimeoutError, 504),
    (InferenceTimeoutError, 504),
    (ToolExecutionError, 502),
    (ModelOutputError, 502),
    (FlowError, 500),
]


def status_code_for(error: Exception) -> int:
    for error_type, status in _STATUS_CODES:
        if isinstance(error, error_type):
            return status
    return 500


def extract_inbound_email(data: Any) -> dict[str, str]:
    """Pull sender, subject and body out of a mail provider webhook payload.

    Providers post either a list of entries or a single entry; only the first
    entry is used.
    """
    entry = data[0] if isinstance(data, list) and data else data
    if not isinstance(entry, dict):
        raise HTTPException(status_code=400, detail="Expected a JSON object or array of objects")

    sender = entry.get("from") or entry.get("From")
    subject = entry.get("subject") or entry.get("Subject")
    body = entry.get("body") or entry.get("TextBody") or entry.get("text")
    missing = [
        name
        for name, value in (("from", sender), ("subject", subject), ("body", body))
        if not value
    ]
    if missing:
        raise HTTPException(
            status_code=400, detail=f"Missing required fields: {', '.join(missing)}"
        )
    return {"from": sender, "subject": subject, "body": body}


async def run_in_background(flow: Flow, payload: dict[str, Any]) -> None:
    """Run a flow after the response has been sent; failures are only logged."""
    try:
        result = await flow(payload)
    except FlowError as e:
        logger.warning(
            "background_flow_failed", flow=flow.name, error_type=type(e).__name__, error=str(e)
        )
        return
    except Exception:
        logger.exception("background_flow_crashed", flow=flow.name)
        return
    logger.info("background_flow_completed", flow=flow.name, result=result)


def create_app(
    flows: dict[str, Flow] | None = None,
    store: DocumentStore | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Build the application.

    ``store`` and ``flows`` are normally left out and built at startup from
    settings (store backend and LLM provider); tests pass their own.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_store = None
        if app.state.store is None:
            configure_logging()
            owned_store = app.state.store = create_store()
        if not app.state.flows:
            app.state.flows = build_flows(
                app.state.store, InferenceAdapter(app.state.store, clock=clock), clock=clock
            )
        yield
        if owned_store is not None:
            await owned_store.close()

    app = FastAPI(title="Practice Flows", version="0.1.0", lifespan=lifespan)
    app.state.flows = flows or {}
    app.state.store = store

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request with a request id bound to its log lines."""
        bind_request_context(request_id=new_id())
        start = time.monotonic()
        try:
            response = await call_next(request)
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.info(
                "request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round(elapsed_ms, 2),
            )
            return response
        finally:
            clear_request_context()

    @app.exception_handler(FlowError)
    async def flow_error_handler(request: Request, exc: FlowError) -> JSONResponse:
        content: dict[str, Any] = {"error": type(exc).__name__, "message": str(exc)}
        if isinstance(exc, InputValidationError):
            content["fields"] = exc.fields
        return JSONResponse(status_code=status_code_for(exc), content=content)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.warning("store_error", status=exc.status_code, error=str(exc))
        return JSONResponse(
            status_code=503, content={"error": "StoreError", "message": str(exc)}
        )

    def get_flow(name: str) -> Flow:
        flow = app.state.flows.get(name)
        if flow is None:
            raise HTTPException(status_code=404, detail=f"Unknown flow: {name}")
        return flow

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "storeBackend": get_settings().store_backend,
            "flows": sorted(app.state.flows),
        }

    @app.get("/api/flows")
    async def list_flows() -> list[dict[str, str]]:
        return [
            {"name": name, "description": flow.description}
            for name, flow in sorted(app.state.flows.items())
        ]

    async def read_payload(request: Request) -> Any:
        try:
            return await request.json()
        except json.JSONDecodeError as e:
            raise InputValidationError(f"Request body is not valid JSON: {e}") from e

    @app.post("/api/flows/{name}")
    async def run_flow(name: str, request: Request) -> dict[str, Any]:
        flow = get_flow(name)
        return await flow(await read_payload(request))

    @app.post("/api/engagements")
    async def create_engagements(request: Request) -> dict[str, Any]:
        """Commit an approved schedule_engagements plan."""
        body = decode(CreateEngagementsInput, await read_payload(request))
        engagements = await create_engagements_from_plan(
            app.state.store,
            body.plan,
            body.engagement_type_id,
            body.due_date,
            fees=body.fees,
        )
        return CreateEngagementsOutput(engagement_ids=[e.id for e in engagements]).to_payload()

    @app.post("/api/reallocations")
    async def apply_reallocation(request: Request) -> dict[str, Any]:
        """Commit an approved reallocate_engagements plan."""
        body = decode(ApplyReallocationInput, await read_payload(request))
        updated = await apply_reallocation_plan(
            app.state.store, body.inactive_employee_id, body.plan
        )
        return ApplyReallocationOutput(updated_count=updated).to_payload()

    @app.post("/api/recurring-engagements/{recurring_id}/fee")
    async def revise_fee(recurring_id: str, request: Request) -> dict[str, Any]:
        body = decode(ReviseFeeInput, await read_payload(request))
        todo = await revise_recurring_fee(
            app.state.store, recurring_id, body.new_fee, body.actor_id, clock=clock
        )
        return ReviseFeeOutput(approval_todo_id=todo.id if todo else None).to_payload()

    @app.post("/api/inbound-email")
    async def inbound_email(request: Request, background_tasks: BackgroundTasks) -> dict[str, str]:
        """Acknowledge a provider webhook at once and process the mail afterwards."""
        try:
            data = await request.json()
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=400, detail="Invalid JSON body") from e

        payload = extract_inbound_email(data)
        try:
            decode(ProcessEmailInput, payload)
        except InputValidationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        flow = get_flow("process_email")
        background_tasks.add_task(run_in_background, flow, payload)
        logger.info("inbound_email_accepted", sender=payload["from"])
        return {"message": "Email received and is being processed."}

    return app


app = create_app()
