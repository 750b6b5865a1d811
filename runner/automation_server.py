from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Optional

import httpx
from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from automation.dsl import ManifestError, parse_manifest, registry

from .api_proxy import ApiRequest, ApiRequestError, send_api_request
from .config import RunnerConfig, as_bool, load_config
from .history import EXECUTIONS, DataStoreClient, JsonFileStore, record_run
from .session import SessionLaunchError, execute_manifest

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("auto")


def _correlation_id() -> str:
    return str(uuid.uuid4())[:8]


def create_app(config: Optional[RunnerConfig] = None, *, store: Optional[DataStoreClient] = None) -> Flask:
    """Build the automation server around an explicitly supplied configuration."""

    config = config or load_config()
    if store is None and config.store_path is not None:
        store = JsonFileStore(config.store_path)
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))

    app = Flask(__name__)
    app.config["RUNNER_CONFIG"] = config
    app.extensions["runner_store"] = store

    @app.after_request
    def _add_cors_headers(response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = config.cors_origins
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        return response

    @app.errorhandler(Exception)
    def handle_exception(error):
        if isinstance(error, HTTPException):
            return error
        correlation_id = _correlation_id()
        log.exception("[%s] Uncaught exception: %s", correlation_id, error)
        return jsonify(
            {
                "status": "error",
                "message": str(error) or "Internal server error",
                "correlation_id": correlation_id,
            }
        ), 500

    @app.post("/run")
    def run_steps():
        correlation_id = _correlation_id()
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        steps = data.get("steps")
        count = len(steps) if isinstance(steps, list) else 0
        log.info("[%s] >>> New request: %d steps", correlation_id, count)

        if not isinstance(steps, list):
            return jsonify({"error": "Invalid steps format"}), 400
        if not steps:
            return jsonify({"error": "No automation steps provided"}), 400
        try:
            manifest = parse_manifest(steps)
        except ManifestError as exc:
            log.info("[%s] Rejected manifest: %s", correlation_id, exc)
            return jsonify({"error": "Invalid steps format", "message": str(exc), "details": exc.details}), 400

        headless_value = data.get("headless")
        headless = config.headless if headless_value is None else as_bool(headless_value)

        started = time.perf_counter()
        try:
            result = asyncio.run(
                execute_manifest(manifest, headless=headless, config=config, run_id=correlation_id)
            )
        except SessionLaunchError as exc:
            log.error("[%s] %s", correlation_id, exc)
            return jsonify({"status": "error", "message": str(exc), "logs": []}), 500
        duration = time.perf_counter() - started
        log.info("[%s] Run finished with status %s in %.2fs", correlation_id, result.status, duration)

        test_case_id = data.get("testCaseId")
        if store is not None and isinstance(test_case_id, str) and test_case_id.strip():
            try:
                record_run(
                    store,
                    test_case_id=test_case_id.strip(),
                    result=result,
                    duration=duration,
                    executed_by=data.get("executedBy"),
                )
            except Exception:
                log.exception("[%s] Failed to persist run for %s", correlation_id, test_case_id)

        return jsonify(result.as_dict())

    @app.post("/run-api")
    def run_api():
        correlation_id = _correlation_id()
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "request body must be a JSON object"}), 400
        try:
            api_request = ApiRequest.from_payload(data)
        except ApiRequestError as exc:
            return jsonify({"error": str(exc)}), 400
        try:
            payload = asyncio.run(send_api_request(api_request, timeout=config.api_timeout_s))
        except httpx.HTTPError as exc:
            log.warning("[%s] Upstream request failed: %s", correlation_id, exc)
            return jsonify({"error": f"Upstream request failed: {exc}"}), 502
        return jsonify(payload)

    @app.get("/executions")
    def list_executions():
        if store is None:
            return jsonify({"error": "execution history is not configured"}), 503
        test_case_id = request.args.get("testCaseId")
        records = store.list_documents(EXECUTIONS)
        if test_case_id:
            records = [rec for rec in records if rec.get("testCaseId") == test_case_id]
        records.sort(key=lambda rec: rec.get("timestamp", 0), reverse=True)
        return jsonify({"executions": records})

    @app.get("/steps")
    def step_types():
        return jsonify(registry.schema())

    @app.get("/healthz")
    def health():  # pragma: no cover - trivial endpoint
        return "ok", 200

    return app


def main() -> None:  # pragma: no cover - manual run helper
    config = load_config()
    server = create_app(config)
    log.info("Automation server running on http://%s:%d", config.host, config.port)
    server.run(config.host, config.port, threaded=True)


if __name__ == "__main__":  # pragma: no cover - manual run helper
    main()
