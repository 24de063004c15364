from __future__ import annotations

import logging
import sys
from typing import Any

from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .engine import FlowEngine, build_engine
from .payment import validate
from .protocol import AdvanceRequest, AdvanceResponse, ValidationOut, ValueWindowOut, parse_payment


logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="[%(asctime)s] %(levelname)s %(message)s")

app = FastAPI()

# Graph is validated here; a broken authored graph stops the process at import.
ENGINE: FlowEngine = build_engine()


def _bad_request(error: str, *, status_code: int = 422) -> JSONResponse:
    return JSONResponse({"ok": False, "error": error}, status_code=status_code)


@app.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


@app.get("/metrics")
def metrics() -> JSONResponse:
    return JSONResponse(ENGINE.metrics.snapshot())


@app.post("/advance")
def advance(body: dict[str, Any] = Body(...)) -> JSONResponse:
    try:
        req = AdvanceRequest.model_validate(body)
    except ValidationError:
        return _bad_request("sessionId is required")
    result = ENGINE.advance(req.session_id, req.utterance)
    out = AdvanceResponse(
        markup_text=result.markup_text,
        tone=result.tone,
        pause_ms=result.pause_ms,
        terminal=result.terminal,
        node_id=result.node_id,
        intent=result.intent,
    )
    return JSONResponse(out.model_dump(by_alias=True))


@app.post("/sessions/{session_id}/reset")
def reset_session(session_id: str) -> dict[str, bool]:
    ENGINE.reset_session(session_id)
    return {"ok": True}


@app.post("/sessions/{session_id}/payment")
def submit_payment(session_id: str, body: dict[str, Any] = Body(...)) -> JSONResponse:
    try:
        envelope = parse_payment(body)
    except ValidationError:
        return _bad_request("mode must be card or bank")
    result = ENGINE.submit_payment(session_id, envelope)
    return JSONResponse(ValidationOut(ok=result.ok, reason=result.reason, brand=result.brand).model_dump(by_alias=True))


@app.post("/payments/validate")
def validate_payment(body: dict[str, Any] = Body(...)) -> JSONResponse:
    try:
        envelope = parse_payment(body)
    except ValidationError:
        return _bad_request("mode must be card or bank")
    result = validate(envelope)
    return JSONResponse(ValidationOut(ok=result.ok, reason=result.reason, brand=result.brand).model_dump(by_alias=True))


@app.post("/sessions/{session_id}/value-window/complete")
def complete_value_window(session_id: str) -> JSONResponse:
    if not ENGINE.complete_value_window(session_id):
        return _bad_request("unknown session", status_code=404)
    return JSONResponse({"ok": True})


@app.get("/sessions/{session_id}/value-window")
def value_window_status(session_id: str) -> JSONResponse:
    status = ENGINE.value_window_status(session_id)
    if status is None:
        return _bad_request("unknown session", status_code=404)
    return JSONResponse(ValueWindowOut(**status).model_dump(by_alias=True))
