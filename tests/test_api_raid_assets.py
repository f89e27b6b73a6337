"""
PilotGB Control Tower
Tests — RAID (risks + dependencies) and data asset registry API.
"""

import pytest


def _risk(client, iid, **kw):
    payload = {"title": "Vendor feed delay", "description": "Upstream feed may slip a sprint."}
    payload.update(kw)
    return client.post(f"/api/v1/initiatives/{iid}/risks", json=payload)


def _asset(client, iid, **kw):
    payload = {"name": "Churn scores", "type": "DATASET", "owner_team": "Data Platform"}
    payload.update(kw)
    return client.post(f"/api/v1/initiatives/{iid}/assets", json=payload)


# ═════════════════════════════════════════════════════════════════════════════
# RISKS
# ═════════════════════════════════════════════════════════════════════════════

class TestRisks:
    def test_create_defaults(self, client, initiative):
        res = _risk(client, initiative["id"])
        assert res.status_code == 201
        risk = res.get_json()["risk"]
        assert risk["severity"] == "MEDIUM"
        assert risk["status"] == "OPEN"
        assert risk["resolved_at"] is None
        assert risk["identified_at"] is not None

    def test_create_closed_stamps_resolved(self, client, initiative):
        risk = _risk(client, initiative["id"], status="CLOSED").get_json()["risk"]
        assert risk["resolved_at"] is not None

    @pytest.mark.parametrize("payload", [
        {"title": "ab", "description": "Long enough"},
        {"title": "Valid title", "description": "abc"},
        {"title": "Valid title", "description": "Long enough", "severity": "SEVERE"},
        {"title": "Valid title", "description": "Long enough", "status": "DONE"},
    ])
    def test_create_validation(self, client, initiative, payload):
        res = client.post(f"/api/v1/initiatives/{initiative['id']}/risks", json=payload)
        assert res.status_code == 400

    def test_create_unknown_initiative(self, client):
        assert _risk(client, 9999).status_code == 404

    def test_list_newest_first(self, client, initiative):
        first = _risk(client, initiative["id"], title="First risk").get_json()["risk"]
        second = _risk(client, initiative["id"], title="Second risk").get_json()["risk"]
        res = client.get(f"/api/v1/initiatives/{initiative['id']}/risks")
        assert [r["id"] for r in res.get_json()["risks"]] == [second["id"], first["id"]]

    def test_close_stamps_resolved(self, client, initiative):
        risk = _risk(client, initiative["id"]).get_json()["risk"]
        res = client.patch(
            f"/api/v1/initiatives/{initiative['id']}/risks/{risk['id']}",
            json={"status": "CLOSED", "mitigation_plan": "Switched to batch export"},
        )
        assert res.status_code == 200
        data = res.get_json()["risk"]
        assert data["status"] == "CLOSED"
        assert data["resolved_at"] is not None
        assert data["mitigation_plan"] == "Switched to batch export"

    def test_explicit_resolved_at(self, client, initiative):
        risk = _risk(client, initiative["id"]).get_json()["risk"]
        res = client.patch(
            f"/api/v1/initiatives/{initiative['id']}/risks/{risk['id']}",
            json={"resolved_at": "2025-03-01T10:00:00Z"},
        )
        assert res.get_json()["risk"]["resolved_at"].startswith("2025-03-01T10:00:00")

    def test_invalid_resolved_at(self, client, initiative):
        risk = _risk(client, initiative["id"]).get_json()["risk"]
        res = client.patch(
            f"/api/v1/initiatives/{initiative['id']}/risks/{risk['id']}",
            json={"resolved_at": "yesterday"},
        )
        assert res.status_code == 400

    def test_update_other_initiative_risk(self, client, initiative):
        other = client.post("/api/v1/initiatives", json={
            "name": "Other initiative", "description": "Belongs somewhere else.",
        }).get_json()["initiative"]
        risk = _risk(client, other["id"]).get_json()["risk"]
        res = client.patch(
            f"/api/v1/initiatives/{initiative['id']}/risks/{risk['id']}",
            json={"status": "MITIGATED"},
        )
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# DEPENDENCIES
# ═════════════════════════════════════════════════════════════════════════════

class TestDependencies:
    def test_create_and_list(self, client, initiative):
        res = client.post(
            f"/api/v1/initiatives/{initiative['id']}/dependencies",
            json={"name": "CRM export", "type": "Platform",
                  "external_system": "Salesforce", "due_date": "2025-04-30"},
        )
        assert res.status_code == 201
        dep = res.get_json()["dependency"]
        assert dep["type"] == "Platform"
        assert dep["status"] == "OPEN"
        assert dep["due_date"] == "2025-04-30"

        res = client.get(f"/api/v1/initiatives/{initiative['id']}/dependencies")
        assert [d["id"] for d in res.get_json()["dependencies"]] == [dep["id"]]

    def test_type_required(self, client, initiative):
        res = client.post(
            f"/api/v1/initiatives/{initiative['id']}/dependencies", json={"name": "CRM export"},
        )
        assert res.status_code == 400

    def test_invalid_status(self, client, initiative):
        res = client.post(
            f"/api/v1/initiatives/{initiative['id']}/dependencies",
            json={"name": "CRM export", "type": "Platform", "status": "WAITING"},
        )
        assert res.status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# ASSETS
# ═════════════════════════════════════════════════════════════════════════════

class TestAssets:
    def test_create(self, client, initiative):
        res = _asset(client, initiative["id"], steward="Elena Park")
        assert res.status_code == 201
        asset = res.get_json()["asset"]
        assert asset["type"] == "DATASET"
        assert asset["steward"] == "Elena Park"

    def test_type_required(self, client, initiative):
        res = client.post(
            f"/api/v1/initiatives/{initiative['id']}/assets",
            json={"name": "Churn scores", "owner_team": "Data Platform"},
        )
        assert res.status_code == 400

    def test_invalid_type(self, client, initiative):
        assert _asset(client, initiative["id"], type="SPREADSHEET").status_code == 400

    def test_list_for_initiative(self, client, initiative):
        _asset(client, initiative["id"])
        res = client.get(f"/api/v1/initiatives/{initiative['id']}/assets")
        assert len(res.get_json()["assets"]) == 1

    def test_registry_includes_initiative_summary(self, client, initiative):
        _asset(client, initiative["id"])
        _asset(client, initiative["id"], name="Churn model", type="MODEL")
        res = client.get("/api/v1/assets")
        assert res.status_code == 200
        body = res.get_json()
        assert body["total"] == 2
        newest = body["assets"][0]
        assert newest["name"] == "Churn model"
        assert newest["initiative"]["id"] == initiative["id"]
        assert newest["initiative"]["name"] == "Churn Model Pilot"

    def test_registry_type_filter(self, client, initiative):
        _asset(client, initiative["id"])
        _asset(client, initiative["id"], name="Churn model", type="MODEL")
        body = client.get("/api/v1/assets?type=MODEL").get_json()
        assert body["total"] == 1
        assert body["assets"][0]["type"] == "MODEL"

    def test_registry_invalid_type(self, client):
        assert client.get("/api/v1/assets?type=SPREADSHEET").status_code == 400

    def test_registry_pagination(self, client, initiative):
        for i in range(3):
            _asset(client, initiative["id"], name=f"Asset {i}")
        body = client.get("/api/v1/assets?limit=2").get_json()
        assert body["total"] == 3
        assert len(body["assets"]) == 2
