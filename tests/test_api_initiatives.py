"""
PilotGB Control Tower
Tests — Initiative API.

Covers:
    - Initiative create / list / get / update
    - Input validation (400)
    - Transition endpoint: success + every structured error payload
    - Transition readiness endpoint
    - 404 handling
"""

import pytest

from app.utils.errors import E


def _create(client, **kw):
    payload = {
        "name": "Supply Chain Forecast",
        "description": "Forecast demand across regional warehouses.",
    }
    payload.update(kw)
    res = client.post("/api/v1/initiatives", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["initiative"]


def _approve_stage(client, initiative, stage):
    for a in initiative["approvals"]:
        if a["stage"] == stage:
            res = client.patch(
                f"/api/v1/initiatives/{initiative['id']}/approvals/{a['id']}",
                json={"approved": True, "approved_by": "Morgan Lee"},
            )
            assert res.status_code == 200


def _complete_stage(client, initiative, stage):
    for c in initiative["checklist_items"]:
        if c["stage"] == stage:
            res = client.patch(
                f"/api/v1/initiatives/{initiative['id']}/checklists/{c['id']}",
                json={"completed": True},
            )
            assert res.status_code == 200


def _approve_scope(client, initiative):
    res = client.patch(
        f"/api/v1/initiatives/{initiative['id']}/sow",
        json={"pm_approved": True, "architect_approved": True},
    )
    assert res.status_code == 200


def _transition(client, iid, target, **kw):
    return client.post(
        f"/api/v1/initiatives/{iid}/transition", json={"target_stage": target, **kw},
    )


# ═════════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════════

class TestInitiativeCRUD:
    def test_create(self, client):
        data = _create(client, project_manager="Morgan Lee", risk_level="HIGH",
                       start_date="2025-01-15", project_type="AI")
        assert data["stage"] == "INGESTION"
        assert data["status"] == "ON_TRACK"
        assert data["risk_level"] == "HIGH"
        assert data["start_date"] == "2025-01-15"
        assert len(data["checklist_items"]) == 6
        assert len(data["approvals"]) == 12
        assert len(data["stage_history"]) == 1
        assert data["scope_of_work"]["status"] == "DRAFT"
        assert data["scope_of_work"]["project_type"] == "AI"
        assert data["scope_of_work"]["pm_owner"] == "Morgan Lee"
        assert data["scope_of_work"]["architect_owner"] == "TBD Data Architect"

    @pytest.mark.parametrize("payload,code", [
        ({}, E.VALIDATION_REQUIRED),
        ({"name": "ab", "description": "Long enough description"}, E.VALIDATION_INVALID),
        ({"name": "Valid name", "description": "short"}, E.VALIDATION_INVALID),
        ({"name": "Valid name", "description": "Long enough description",
          "risk_level": "EXTREME"}, E.VALIDATION_INVALID),
        ({"name": "Valid name", "description": "Long enough description",
          "target_date": "not-a-date"}, E.VALIDATION_INVALID),
    ])
    def test_create_validation(self, client, payload, code):
        res = client.post("/api/v1/initiatives", json=payload)
        assert res.status_code == 400
        assert res.get_json()["code"] == code

    def test_get(self, client, initiative):
        res = client.get(f"/api/v1/initiatives/{initiative['id']}")
        assert res.status_code == 200
        assert res.get_json()["initiative"]["name"] == "Churn Model Pilot"

    def test_get_not_found(self, client):
        res = client.get("/api/v1/initiatives/9999")
        assert res.status_code == 404
        body = res.get_json()
        assert body["code"] == E.NOT_FOUND
        assert body["error"] == "Initiative not found"

    def test_list_orders_by_status_then_risk(self, client):
        low = _create(client, name="Low risk one", risk_level="LOW")
        high = _create(client, name="High risk one", risk_level="CRITICAL")
        res = client.get("/api/v1/initiatives")
        ids = [i["id"] for i in res.get_json()["initiatives"]]
        assert ids == [high["id"], low["id"]]

    def test_list_filter(self, client, initiative):
        res = client.get("/api/v1/initiatives?stage=INGESTION")
        assert len(res.get_json()["initiatives"]) == 1
        res = client.get("/api/v1/initiatives?stage=DEPLOYMENT")
        assert res.get_json()["initiatives"] == []

    def test_list_filter_invalid(self, client):
        res = client.get("/api/v1/initiatives?status=LOST")
        assert res.status_code == 400

    def test_update(self, client, initiative):
        res = client.patch(
            f"/api/v1/initiatives/{initiative['id']}",
            json={"health_status": "WATCH", "data_architect": "Ravi Shah"},
        )
        assert res.status_code == 200
        data = res.get_json()["initiative"]
        assert data["health_status"] == "WATCH"
        assert data["scope_of_work"]["architect_owner"] == "Ravi Shah"

    def test_update_cannot_touch_stage(self, client, initiative):
        res = client.patch(
            f"/api/v1/initiatives/{initiative['id']}", json={"stage": "DEPLOYMENT"},
        )
        assert res.status_code == 400
        res = client.get(f"/api/v1/initiatives/{initiative['id']}")
        assert res.get_json()["initiative"]["stage"] == "INGESTION"

    def test_update_status(self, client, initiative):
        res = client.patch(
            f"/api/v1/initiatives/{initiative['id']}", json={"status": "AT_RISK"},
        )
        assert res.status_code == 200
        assert res.get_json()["initiative"]["status"] == "AT_RISK"

    def test_update_status_invalid(self, client, initiative):
        res = client.patch(
            f"/api/v1/initiatives/{initiative['id']}", json={"status": "LOST"},
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == E.VALIDATION_INVALID

    @pytest.mark.parametrize("body", [["Supply Chain Forecast"], "name", 42])
    def test_create_non_object_body(self, client, body):
        res = client.post("/api/v1/initiatives", json=body)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Request body must be a JSON object"


# ═════════════════════════════════════════════════════════════════════════════
# TRANSITION ENDPOINT
# ═════════════════════════════════════════════════════════════════════════════

class TestTransitionEndpoint:
    def test_missing_target(self, client, initiative):
        res = client.post(f"/api/v1/initiatives/{initiative['id']}/transition", json={})
        assert res.status_code == 400
        assert res.get_json()["code"] == E.VALIDATION_REQUIRED

    def test_reason_too_long(self, client, initiative):
        res = _transition(client, initiative["id"], "TRANSFORMATION", reason="x" * 501)
        assert res.status_code == 400

    def test_allow_regression_must_be_bool(self, client, initiative):
        res = _transition(client, initiative["id"], "TRANSFORMATION", allow_regression="yes")
        assert res.status_code == 400

    def test_unknown_stage(self, client, initiative):
        res = _transition(client, initiative["id"], "ARCHIVE")
        assert res.status_code == 400
        assert res.get_json()["code"] == E.STAGE_UNKNOWN
        assert res.get_json()["error"] == "Unknown stage transition"

    def test_noop(self, client, initiative):
        res = _transition(client, initiative["id"], "INGESTION")
        assert res.status_code == 400
        assert res.get_json()["code"] == E.STAGE_NOOP

    def test_skip(self, client, initiative):
        res = _transition(client, initiative["id"], "ENRICHMENT")
        assert res.status_code == 400
        assert res.get_json()["error"] == "Cannot skip stages in lifecycle progression"

    def test_scope_not_approved(self, client, initiative):
        res = _transition(client, initiative["id"], "TRANSFORMATION")
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == E.SCOPE_NOT_APPROVED
        assert body["details"]["scope_status"] == "DRAFT"

    def test_missing_approvals_payload(self, client, initiative):
        _approve_scope(client, initiative)
        res = _transition(client, initiative["id"], "TRANSFORMATION")
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == E.MISSING_APPROVALS
        assert body["details"]["missing_approvals"] == ["PROJECT_MANAGER", "DATA_ARCHITECT"]

    def test_incomplete_checklist_payload(self, client, initiative):
        _approve_scope(client, initiative)
        _approve_stage(client, initiative, "INGESTION")
        res = _transition(client, initiative["id"], "TRANSFORMATION")
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == E.INCOMPLETE_CHECKLIST
        item = next(c for c in initiative["checklist_items"] if c["stage"] == "INGESTION")
        assert body["details"]["incomplete_checklist_items"] == [
            {"id": item["id"], "title": item["title"]},
        ]

    def test_success(self, client, initiative):
        _approve_scope(client, initiative)
        _approve_stage(client, initiative, "INGESTION")
        _complete_stage(client, initiative, "INGESTION")

        res = _transition(client, initiative["id"], "TRANSFORMATION",
                          reason="Sources landed", actor="Morgan Lee")
        assert res.status_code == 200
        data = res.get_json()["initiative"]
        assert data["stage"] == "TRANSFORMATION"
        last = data["stage_history"][-1]
        assert last["from_stage"] == "INGESTION"
        assert last["to_stage"] == "TRANSFORMATION"
        assert last["actor"] == "Morgan Lee"
        assert last["reason"] == "Sources landed"
        target = [a for a in data["approvals"] if a["stage"] == "TRANSFORMATION"]
        assert all(not a["approved"] for a in target)

    def test_body_must_be_object(self, client, initiative):
        res = client.post(
            f"/api/v1/initiatives/{initiative['id']}/transition", json=["TRANSFORMATION"],
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == E.VALIDATION_INVALID

    def test_success_keeps_manual_status(self, client, initiative):
        client.patch(f"/api/v1/initiatives/{initiative['id']}", json={"status": "AT_RISK"})
        _approve_scope(client, initiative)
        _approve_stage(client, initiative, "INGESTION")
        _complete_stage(client, initiative, "INGESTION")

        res = _transition(client, initiative["id"], "TRANSFORMATION")
        assert res.status_code == 200
        data = res.get_json()["initiative"]
        assert data["stage"] == "TRANSFORMATION"
        assert data["status"] == "AT_RISK"

    def test_failure_leaves_state(self, client, initiative):
        _approve_scope(client, initiative)
        for _ in range(2):
            res = _transition(client, initiative["id"], "TRANSFORMATION")
            assert res.get_json()["code"] == E.MISSING_APPROVALS
        data = client.get(f"/api/v1/initiatives/{initiative['id']}").get_json()["initiative"]
        assert data["stage"] == "INGESTION"
        assert len(data["stage_history"]) == 1

    def test_not_found(self, client):
        res = _transition(client, 9999, "TRANSFORMATION")
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# READINESS ENDPOINT
# ═════════════════════════════════════════════════════════════════════════════

class TestReadinessEndpoint:
    def test_blockers(self, client, initiative):
        res = client.get(f"/api/v1/initiatives/{initiative['id']}/transition-readiness")
        assert res.status_code == 200
        body = res.get_json()
        assert body["ready"] is False
        assert body["target_stage"] == "TRANSFORMATION"
        assert len(body["blockers"]) == 3

    def test_ready_after_gates(self, client, initiative):
        _approve_scope(client, initiative)
        _approve_stage(client, initiative, "INGESTION")
        _complete_stage(client, initiative, "INGESTION")
        res = client.get(
            f"/api/v1/initiatives/{initiative['id']}/transition-readiness"
            "?target_stage=TRANSFORMATION"
        )
        assert res.get_json()["ready"] is True

    def test_not_found(self, client):
        res = client.get("/api/v1/initiatives/9999/transition-readiness")
        assert res.status_code == 404
