import re

import pytest

from app.api.routes import visitor as visitor_routes
from app.services import visitor_service

DISPLAY_TIME = re.compile(r"^\d{1,2}:\d{2} (AM|PM)$")


def _submit(client, payload):
    response = client.post("/api/visitor-request", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def _wrong_code(code: str) -> str:
    return "1000" if code != "1000" else "1001"


class TestVisitorRequest:
    def test_creates_pending_request(self, client, visitor_payload):
        body = _submit(client, {**visitor_payload, "carNumber": "KA-01"})

        assert body["status"] == "pending"
        assert re.fullmatch(r"\d{4}", body["verificationCode"])
        assert body["visitorName"] == "Alice"
        assert body["residentEmail"] == "b@x.com"
        assert body["carNumber"] == "KA-01"
        assert body["inTime"] is None and body["outTime"] is None

    def test_emails_resident_in_background(self, client, visitor_payload, mailer):
        body = _submit(client, visitor_payload)

        assert len(mailer.sent) == 1
        assert mailer.sent[0]["to"] == "b@x.com"
        assert f"http://frontend.test/approve/{body['id']}" in mailer.sent[0]["html"]
        assert f"http://frontend.test/reject/{body['id']}" in mailer.sent[0]["html"]

    def test_delivery_failure_still_returns_record(self, client, visitor_payload, mailer):
        mailer.fail = True

        body = _submit(client, visitor_payload)

        assert body["status"] == "pending"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"visitorName": "   "},
            {"visitorEmail": "not-an-email"},
            {"residentEmail": ""},
            {"visitReason": ""},
            {"residentName": None},
        ],
    )
    def test_invalid_fields_are_rejected_before_persistence(self, client, visitor_payload, overrides):
        response = client.post("/api/visitor-request", json={**visitor_payload, **overrides})

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"
        assert response.json()["errors"]
        assert client.get("/api/visitors").json() == []

    def test_missing_field(self, client, visitor_payload):
        payload = dict(visitor_payload)
        payload.pop("visitReason")

        response = client.post("/api/visitor-request", json=payload)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "visitReason"

    def test_code_can_be_withheld(self, client, visitor_payload, monkeypatch):
        monkeypatch.setattr(visitor_service.settings, "EXPOSE_VERIFICATION_CODE", False)

        body = _submit(client, visitor_payload)

        assert "verificationCode" not in body
        assert "verificationCode" not in client.get("/api/visitors").json()[0]


class TestVisitorStatus:
    def test_approve_emails_visitor(self, client, visitor_payload, mailer):
        created = _submit(client, visitor_payload)

        response = client.put(f"/api/visitor-status/{created['id']}", json={"status": "approved"})

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert mailer.sent[-1]["to"] == "a@x.com"
        assert created["verificationCode"] in mailer.sent[-1]["html"]

    def test_reject(self, client, visitor_payload, mailer):
        created = _submit(client, visitor_payload)

        response = client.put(f"/api/visitor-status/{created['id']}", json={"status": "rejected"})

        assert response.json()["status"] == "rejected"
        assert len(mailer.sent) == 1

    def test_repeated_clicks_overwrite(self, client, visitor_payload):
        created = _submit(client, visitor_payload)
        url = f"/api/visitor-status/{created['id']}"

        for _ in range(3):
            assert client.put(url, json={"status": "approved"}).status_code == 200
        assert client.put(url, json={"status": "rejected"}).json()["status"] == "rejected"

    def test_strict_mode_makes_decisions_terminal(self, client, visitor_payload, monkeypatch):
        monkeypatch.setattr(visitor_service.settings, "STRICT_LIFECYCLE", True)
        created = _submit(client, visitor_payload)
        url = f"/api/visitor-status/{created['id']}"

        assert client.put(url, json={"status": "approved"}).status_code == 200
        response = client.put(url, json={"status": "approved"})

        assert response.status_code == 409
        assert response.json()["message"] == "Visitor request already approved"

    def test_unknown_id(self, client):
        response = client.put("/api/visitor-status/999", json={"status": "approved"})

        assert response.status_code == 404
        assert response.json() == {"message": "Visitor request not found"}

    def test_bad_status(self, client, visitor_payload):
        created = _submit(client, visitor_payload)

        response = client.put(f"/api/visitor-status/{created['id']}", json={"status": "maybe"})

        assert response.status_code == 400

    def test_non_numeric_id(self, client):
        response = client.put("/api/visitor-status/abc", json={"status": "approved"})

        assert response.status_code == 400

    def test_id_beyond_integer_range(self, client):
        response = client.put("/api/visitor-status/99999999999999999999", json={"status": "approved"})

        assert response.status_code == 404
        assert response.json() == {"message": "Visitor request not found"}


class TestGuardVerify:
    def test_valid_code(self, client, visitor_payload):
        created = _submit(client, visitor_payload)

        response = client.post(
            "/api/guard-verify",
            json={"visitorId": created["id"], "code": created["verificationCode"]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["inDate"] is not None and body["inTime"] is not None
        assert DISPLAY_TIME.match(body["formattedTime"])

    def test_id_as_string(self, client, visitor_payload):
        created = _submit(client, visitor_payload)

        response = client.post(
            "/api/guard-verify",
            json={"visitorId": str(created["id"]), "code": created["verificationCode"]},
        )

        assert response.status_code == 200

    @pytest.mark.parametrize("mismatch", ["code", "id"])
    def test_mismatch_is_generic(self, client, visitor_payload, mismatch):
        created = _submit(client, visitor_payload)
        body = {"visitorId": created["id"], "code": created["verificationCode"]}
        if mismatch == "code":
            body["code"] = _wrong_code(created["verificationCode"])
        else:
            body["visitorId"] = created["id"] + 100

        response = client.post("/api/guard-verify", json=body)

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid verification code"}

    def test_id_beyond_integer_range(self, client, visitor_payload):
        created = _submit(client, visitor_payload)

        response = client.post(
            "/api/guard-verify",
            json={"visitorId": 99999999999999999999, "code": created["verificationCode"]},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid verification code"}

    def test_boolean_id_is_rejected(self, client, visitor_payload):
        created = _submit(client, visitor_payload)

        response = client.post(
            "/api/guard-verify",
            json={"visitorId": True, "code": created["verificationCode"]},
        )

        assert response.status_code == 400
        assert client.get(f"/api/visitors/{created['id']}").json()["inTime"] is None


class TestVisitorExit:
    def test_marks_exit(self, client, visitor_payload):
        created = _submit(client, visitor_payload)
        client.post("/api/guard-verify", json={"visitorId": created["id"], "code": created["verificationCode"]})

        response = client.put(f"/api/visitor-exit/{created['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["outDate"] is not None and body["outTime"] is not None
        assert DISPLAY_TIME.match(body["formattedOutTime"])

    def test_unknown_id(self, client):
        assert client.put("/api/visitor-exit/999").status_code == 404

    def test_id_beyond_integer_range(self, client):
        response = client.put("/api/visitor-exit/99999999999999999999")

        assert response.status_code == 404

    def test_strict_mode_requires_check_in(self, client, visitor_payload, monkeypatch):
        monkeypatch.setattr(visitor_service.settings, "STRICT_LIFECYCLE", True)
        created = _submit(client, visitor_payload)

        response = client.put(f"/api/visitor-exit/{created['id']}")

        assert response.status_code == 409
        assert response.json()["message"] == "Visitor has not checked in"


class TestVisitorsListing:
    def test_lists_newest_first_with_resident(self, client, visitor_payload):
        first = _submit(client, visitor_payload)
        second = _submit(client, {**visitor_payload, "visitorName": "Carol"})

        rows = client.get("/api/visitors").json()

        assert {row["id"] for row in rows} == {first["id"], second["id"]}
        created = [row["createdAt"] for row in rows]
        assert created == sorted(created, reverse=True)
        assert all(row["resident"]["email"] == "b@x.com" for row in rows)

    def test_detail(self, client, visitor_payload):
        created = _submit(client, visitor_payload)

        response = client.get(f"/api/visitors/{created['id']}")

        assert response.status_code == 200
        assert response.json()["visitorName"] == "Alice"
        assert "verificationCode" not in response.json()
        assert client.get("/api/visitors/999").status_code == 404


def test_internal_errors_are_opaque(lenient_client, monkeypatch):
    def explode(db):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(visitor_routes, "list_visitors", explode)

    response = lenient_client.get("/api/visitors")

    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}


def test_request_id_header(client):
    response = client.get("/api/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/api/health").headers["X-Request-ID"]


def test_health(client):
    body = client.get("/api/health").json()

    assert body["status"] == "ok"
    assert body["environment"] == "testing"
    assert body["emailConfigured"] is False


def test_end_to_end_scenario(client, visitor_payload, mailer):
    created = _submit(client, visitor_payload)
    assert created["status"] == "pending"

    approved = client.put(f"/api/visitor-status/{created['id']}", json={"status": "approved"}).json()
    assert approved["status"] == "approved"

    wrong = client.post(
        "/api/guard-verify",
        json={"visitorId": created["id"], "code": _wrong_code(created["verificationCode"])},
    )
    assert wrong.status_code == 400

    checked_in = client.post(
        "/api/guard-verify",
        json={"visitorId": created["id"], "code": created["verificationCode"]},
    ).json()
    assert checked_in["inTime"] is not None

    exited = client.put(f"/api/visitor-exit/{created['id']}").json()
    assert exited["outTime"] is not None

    row = client.get("/api/visitors").json()[0]
    assert row["status"] == "approved"
    assert DISPLAY_TIME.match(row["formattedTime"])
    assert DISPLAY_TIME.match(row["formattedOutTime"])
    assert [mail["subject"] for mail in mailer.sent] == [
        "New Visitor Request",
        "Visit Approved - Verification Code",
    ]
