"""FastAPI wrapper exposing the stringify message protocol."""

from __future__ import annotations

import importlib.metadata
import json
import logging
import os
import threading
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from apps.cli.io import write_document_atomic
from core.config.loader import load_config
from core.document.loader import load_document
from core.document.memory import InMemoryDocument
from core.naming.composer import list_naming_modes
from core.orchestrator.engine import StringifyEngine
from core.preferences.store import MemoryNamingModeStore, NamingModeStore
from core.protocol.messages import RESPONSE_ADAPTER, parse_request, request_types
from core.utils.errors import (
    COLLECTION_ID_REQUIRED,
    COLLECTION_NOT_FOUND,
    INTERNAL_ERROR,
    INVALID_TEXT,
    NO_VALID_LAYERS,
    PROCESSING_IN_PROGRESS,
    StringifyError,
)

app = FastAPI(title="stringify API", version="0.1.0")
logger = logging.getLogger("stringify.api")

REQUEST_ID_HEADER = "X-Stringify-Request-Id"

_STATUS_BY_ERROR_CODE: dict[str, int] = {
    INVALID_TEXT: 400,
    COLLECTION_ID_REQUIRED: 400,
    NO_VALID_LAYERS: 400,
    COLLECTION_NOT_FOUND: 404,
    PROCESSING_IN_PROGRESS: 409,
}

_MUTATING_REQUESTS = frozenset(
    {
        "create-default-collection",
        "create-variables",
        "clear-ghost-variables",
        "select-ghost-layer",
    }
)


@dataclass
class _ApiState:
    engine: StringifyEngine
    document: InMemoryDocument
    document_path: Path | None


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


_state_lock = threading.Lock()
_state_cache: _ApiState | None = None


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code=INTERNAL_ERROR,
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code=INTERNAL_ERROR,
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint for protocol clients."""

    request_id = _request_id_from_request(request)
    payload = {
        "request_types": request_types(),
        "naming_modes": list_naming_modes(),
        "version": app.version,
        "package_version": _package_version(),
    }
    return JSONResponse(status_code=200, headers={REQUEST_ID_HEADER: request_id}, content=payload)


@app.get("/v1/document")
async def document_v1(request: Request) -> JSONResponse:
    """Current document snapshot held by the service."""

    request_id = _request_id_from_request(request)
    try:
        state = _get_state()
    except ApiRequestError as exc:
        return _api_error_response(exc, request_id)
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content=state.document.to_snapshot().model_dump(mode="json"),
    )


@app.post("/v1/messages")
async def messages_v1(request: Request) -> JSONResponse:
    """Handle one protocol request; progress updates are returned as ``events``."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "init"
    message_type: str | None = None

    try:
        failure_stage = "parse_request"
        try:
            raw = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_JSON",
                message="request body must be a JSON object",
            ) from exc
        try:
            message = parse_request(raw)
        except ValidationError as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_REQUEST",
                message="unsupported or malformed message",
                detail={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc
        message_type = message.type

        failure_stage = "load_state"
        state = _get_state()

        _log_event(logging.INFO, "start", request_id, message_type=message_type)
        events: list[dict[str, Any]] = []

        failure_stage = "dispatch"
        try:
            response = await state.engine.dispatch(
                message, lambda event: events.append(event.model_dump(mode="json"))
            )
        except StringifyError as exc:
            raise ApiRequestError(
                status_code=_STATUS_BY_ERROR_CODE.get(exc.code, 500),
                error_code=exc.code,
                message=exc.message,
                detail=dict(exc.context),
            ) from exc

        if message_type in _MUTATING_REQUESTS and state.document_path is not None:
            failure_stage = "persist_document"
            write_document_atomic(state.document_path, state.document.to_snapshot())
    except ApiRequestError as exc:
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code=exc.error_code,
            status_code=exc.status_code,
            failure_stage=failure_stage,
            message_type=message_type,
            total_ms=_elapsed_ms(request_started),
        )
        return _api_error_response(exc, request_id)

    payload = RESPONSE_ADAPTER.dump_python(response, mode="json")
    _log_event(
        logging.INFO,
        "done",
        request_id,
        message_type=message_type,
        response_type=payload["type"],
        event_count=len(events),
        total_ms=_elapsed_ms(request_started),
    )
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={"response": payload, "events": events},
    )


def _get_state() -> _ApiState:
    global _state_cache

    with _state_lock:
        if _state_cache is None:
            _state_cache = _build_state()
        return _state_cache


def _build_state() -> _ApiState:
    document_path = _env_path("STRINGIFY_DOCUMENT")
    config_path = _env_path("STRINGIFY_CONFIG")
    prefs_path = _env_path("STRINGIFY_PREFERENCES")

    try:
        config = load_config(config_path)
        document = load_document(document_path) if document_path else InMemoryDocument()
    except ValueError as exc:
        raise ApiRequestError(
            status_code=500,
            error_code="INVALID_SERVER_CONFIG",
            message=str(exc),
        ) from exc

    preferences = NamingModeStore(prefs_path) if prefs_path else MemoryNamingModeStore()
    engine = StringifyEngine(document, document, preferences=preferences, config=config)
    return _ApiState(engine=engine, document=document, document_path=document_path)


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else None


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _package_version() -> str:
    try:
        return importlib.metadata.version("stringify")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _api_error_response(exc: ApiRequestError, request_id: str) -> JSONResponse:
    return _error_response(
        status_code=exc.status_code,
        error_code=exc.error_code,
        message=exc.message,
        request_id=request_id,
        detail=exc.detail,
    )


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
