from __future__ import annotations

from fastapi.testclient import TestClient

from callflow.server import app


client = TestClient(app)


def test_healthz() -> None:
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_advance_round_trip_uses_camel_case() -> None:
    resp = client.post("/advance", json={"sessionId": "srv-1", "utterance": "Hello?"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["nodeId"] == "start"
    assert body["terminal"] is False
    assert body["pauseMs"] == 800
    assert body["tone"] == "enthusiastic"
    assert body["markupText"].startswith("<speak>")

    resp = client.post("/advance", json={"sessionId": "srv-1", "utterance": "put me through to a supervisor"})
    assert resp.json()["nodeId"] == "hotline_offer"
    assert resp.json()["intent"] == "service-intent"


def test_advance_requires_session_id() -> None:
    resp = client.post("/advance", json={"utterance": "hi"})
    assert resp.status_code == 422
    assert resp.json()["ok"] is False


def test_reset_starts_over() -> None:
    client.post("/advance", json={"sessionId": "srv-2", "utterance": "hi"})
    assert client.post("/advance", json={"sessionId": "srv-2", "utterance": "no"}).json()["terminal"] is True
    assert client.post("/sessions/srv-2/reset").json() == {"ok": True}
    assert client.post("/advance", json={"sessionId": "srv-2", "utterance": "hi"}).json()["nodeId"] == "start"


def test_payment_validation_endpoint() -> None:
    ok = client.post(
        "/payments/validate",
        json={"mode": "card", "number": "4111 1111 1111 1111", "cvv": "123", "expiryMonth": 12, "expiryYear": "99"},
    )
    assert ok.status_code == 200
    assert ok.json() == {"ok": True, "reason": None, "brand": "visa"}

    bad = client.post("/payments/validate", json={"mode": "bank", "routing": "021000021", "account": "123"})
    assert bad.json()["reason"] == "account_invalid"

    missing = client.post("/payments/validate", json={"mode": "card"})
    assert missing.json()["reason"] == "missing_fields"

    unknown = client.post("/payments/validate", json={"mode": "crypto"})
    assert unknown.status_code == 422


def test_session_payment_and_value_window_endpoints() -> None:
    assert client.get("/sessions/srv-3/value-window").status_code == 404
    assert client.post("/sessions/srv-3/value-window/complete").status_code == 404

    client.post("/advance", json={"sessionId": "srv-3", "utterance": "hi"})
    status = client.get("/sessions/srv-3/value-window").json()
    assert status["ok"] is False
    assert status["completedAtMs"] is None
    assert client.post("/sessions/srv-3/value-window/complete").json() == {"ok": True}
    assert client.get("/sessions/srv-3/value-window").json()["completedAtMs"] is not None

    paid = client.post(
        "/sessions/srv-3/payment",
        json={"mode": "bank", "routing": "021000021", "account": "12345678", "checkNumber": "1001"},
    )
    assert paid.json()["ok"] is True
