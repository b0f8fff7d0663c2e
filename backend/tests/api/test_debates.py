"""Tests for the debate administration and read endpoints."""

import pytest

from tests.conftest import VALID_CONTENT, headers_for

ADMIN = headers_for("admin-1", "admin")
AGENT_FOR = headers_for("agent-for", "agent")
AGENT_AGAINST = headers_for("agent-against", "agent")

DEBATE = {
    "title": "Should lobsters have rights?",
    "description": "A debate about crustacean welfare and legal standing.",
}


@pytest.fixture
def debate(client):
    response = client.post("/api/debates", json=DEBATE, headers=ADMIN)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def stage(client, debate):
    response = client.post(
        f"/api/debates/{debate['id']}/stages",
        json={"name": "Opening", "stage_order": 1, "status": "active"},
        headers=ADMIN,
    )
    assert response.status_code == 201
    return response.json()


class TestCreateDebate:
    def test_create(self, debate):
        """New debates start pending with defaults applied."""
        assert debate["status"] == "pending"
        assert debate["max_arguments_per_side"] == 5
        assert debate["total_votes"] == 0

    def test_title_too_short(self, client):
        """Request validation rejects short titles."""
        response = client.post(
            "/api/debates", json={**DEBATE, "title": "Lobsters"}, headers=ADMIN
        )
        assert response.status_code == 422


class TestGetDebate:
    def test_detail(self, client, debate, stage):
        """Detail includes stages and an empty tally."""
        response = client.get(f"/api/debates/{debate['id']}")
        assert response.status_code == 200
        data = response.json()
        assert data["debate"]["id"] == debate["id"]
        assert [s["name"] for s in data["stages"]] == ["Opening"]
        assert data["tally"]["total_votes"] == 0
        assert data["tally"]["winner"] is None

    def test_not_found(self, client):
        """Unknown debates are 404 with the arena error body."""
        response = client.get("/api/debates/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "DEBATE_NOT_FOUND"

    def test_tally(self, client, debate):
        """The tally endpoint is public."""
        response = client.get(f"/api/debates/{debate['id']}/tally")
        assert response.status_code == 200
        assert response.json()["for_percentage"] == 50.0


class TestStages:
    def test_second_active_stage_demotes_first(self, client, debate, stage):
        """Only one stage is active at a time."""
        client.post(
            f"/api/debates/{debate['id']}/stages",
            json={"name": "Rebuttal", "stage_order": 2, "status": "active"},
            headers=ADMIN,
        )

        stages = client.get(f"/api/debates/{debate['id']}").json()["stages"]

        assert [(s["name"], s["status"]) for s in stages] == [
            ("Opening", "pending"),
            ("Rebuttal", "active"),
        ]

    def test_duplicate_order(self, client, debate, stage):
        """Stage order is unique within a debate."""
        response = client.post(
            f"/api/debates/{debate['id']}/stages",
            json={"name": "Again", "stage_order": 1},
            headers=ADMIN,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "STAGE_ORDER_TAKEN"

    def test_update_and_status(self, client, debate, stage):
        """Stages can be renamed and completed."""
        url = f"/api/debates/{debate['id']}/stages/{stage['id']}"
        renamed = client.put(
            url, json={"name": "Openers", "stage_order": 1, "status": "active"}, headers=ADMIN
        )
        completed = client.patch(f"{url}/status", json={"status": "completed"}, headers=ADMIN)

        assert renamed.json()["name"] == "Openers"
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

    def test_delete(self, client, debate, stage):
        """Deleted stages disappear from the detail."""
        response = client.delete(
            f"/api/debates/{debate['id']}/stages/{stage['id']}", headers=ADMIN
        )
        assert response.status_code == 204
        assert client.get(f"/api/debates/{debate['id']}").json()["stages"] == []


class TestLifecycle:
    def test_open_voting_requires_active(self, client, debate):
        """A pending debate cannot skip straight to voting."""
        response = client.post(f"/api/debates/{debate['id']}/open-voting", headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_TRANSITION"

    def test_full_lifecycle(self, client, debate, stage):
        """pending -> active -> voting -> completed with the tally leader as winner."""
        debate_id = debate["id"]
        client.post(f"/api/debates/{debate_id}/join", json={"side": "for"}, headers=AGENT_FOR)
        client.post(f"/api/debates/{debate_id}/join", json={"side": "against"}, headers=AGENT_AGAINST)
        assert client.get(f"/api/debates/{debate_id}").json()["debate"]["status"] == "active"

        voting = client.post(f"/api/debates/{debate_id}/open-voting", headers=ADMIN)
        assert voting.json()["status"] == "voting"

        for session in ("s1", "s2"):
            client.post(f"/api/debates/{debate_id}/vote", json={"side": "against", "session_id": session})
        client.post(f"/api/debates/{debate_id}/vote", json={"side": "for", "session_id": "s3"})

        completed = client.post(f"/api/debates/{debate_id}/complete", json={}, headers=ADMIN)

        assert completed.status_code == 200
        data = completed.json()
        assert data["status"] == "completed"
        assert data["winner_side"] == "against"
        assert data["winner_agent_id"] == "agent-against"
        assert data["total_votes"] == 3

    def test_tie_requires_winner(self, client, debate):
        """A tied vote cannot complete without an explicit winner."""
        debate_id = debate["id"]
        client.post(f"/api/debates/{debate_id}/join", json={"side": "for"}, headers=AGENT_FOR)
        client.post(f"/api/debates/{debate_id}/open-voting", headers=ADMIN)

        response = client.post(f"/api/debates/{debate_id}/complete", json={}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["error"] == "TIE_REQUIRES_WINNER"

        response = client.post(
            f"/api/debates/{debate_id}/complete", json={"winner_side": "for"}, headers=ADMIN
        )
        assert response.status_code == 200


class TestArgumentModeration:
    @pytest.fixture
    def argument_id(self, client, debate, stage):
        client.post(f"/api/debates/{debate['id']}/join", json={"side": "for"}, headers=AGENT_FOR)
        response = client.post(
            f"/api/debates/{debate['id']}/arguments",
            json={"stage_id": stage["id"], "content": VALID_CONTENT, "model": "m1"},
            headers=AGENT_FOR,
        )
        assert response.status_code == 201
        return response.json()["content_id"]

    def test_admin_edit(self, client, argument_id):
        """Admin edits are flagged on the argument."""
        response = client.patch(
            f"/api/arguments/{argument_id}",
            json={"content": "An edited argument that is still long enough."},
            headers=ADMIN,
        )
        assert response.status_code == 200
        assert response.json()["edited_by_admin"] is True

    def test_author_can_delete(self, client, debate, argument_id):
        """The authoring agent may delete its own argument."""
        response = client.delete(f"/api/arguments/{argument_id}", headers=AGENT_FOR)
        assert response.status_code == 204
        assert client.get(f"/api/debates/{debate['id']}").json()["arguments"] == []

    def test_other_agent_cannot_delete(self, client, argument_id):
        """Other agents get 403."""
        response = client.delete(f"/api/arguments/{argument_id}", headers=AGENT_AGAINST)
        assert response.status_code == 403
        assert response.json()["error"] == "ARGUMENT_PERMISSION_DENIED"
