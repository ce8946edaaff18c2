"""Tests for the command line entry point."""

import json
from unittest.mock import patch

from practice_flows.api import app
from practice_flows.cli import EXIT_FAILED, EXIT_INVALID_INPUT, EXIT_OK, main


class TestCli:
    """Tests for practice-flows."""

    def test_lists_flows(self, capsys):
        assert main(["flows"]) == EXIT_OK

        out = capsys.readouterr().out
        assert "process_email" in out
        assert "send_bulk_email" in out

    def test_runs_a_flow(self, capsys):
        payload = {"recipientEmails": ["accounts@acme.in"], "subject": "Hi", "body": "Hello"}

        assert main(["run", "send_email", json.dumps(payload)]) == EXIT_OK

        assert json.loads(capsys.readouterr().out) == {"success": True}

    def test_reads_payload_from_file(self, tmp_path, capsys):
        path = tmp_path / "mail.json"
        path.write_text(json.dumps({"recipientEmails": ["a@acme.in"], "subject": "s", "body": "b"}))

        assert main(["run", "send_email", f"@{path}"]) == EXIT_OK

    def test_invalid_json(self, capsys):
        assert main(["run", "send_email", "{oops"]) == EXIT_INVALID_INPUT

        assert "not valid JSON" in capsys.readouterr().err

    def test_invalid_input_lists_fields(self, capsys):
        assert main(["run", "send_email", '{"subject": "s"}']) == EXIT_INVALID_INPUT

        err = capsys.readouterr().err
        assert "recipientEmails" in err

    def test_flow_error_against_seeded_store(self, tmp_path, capsys):
        seed = tmp_path / "seed.json"
        seed.write_text(json.dumps({"engagements": []}))

        code = main(
            ["run", "generate_invoice", '{"engagementId": "missing"}', "--seed", str(seed)]
        )

        assert code == EXIT_FAILED
        assert "MissingReferenceError" in capsys.readouterr().err

    def test_serve_runs_the_app_under_uvicorn(self, monkeypatch):
        monkeypatch.delenv("API_HOST", raising=False)

        with patch("practice_flows.cli.uvicorn.run") as run:
            assert main(["serve", "--port", "9000"]) == EXIT_OK

        run.assert_called_once_with(app, host="0.0.0.0", port=9000, log_config=None)

    def test_serve_defaults_come_from_settings(self, monkeypatch):
        monkeypatch.setenv("API_HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "8123")

        with patch("practice_flows.cli.uvicorn.run") as run:
            main(["serve"])

        assert run.call_args.kwargs["host"] == "127.0.0.1"
        assert run.call_args.kwargs["port"] == 8123
