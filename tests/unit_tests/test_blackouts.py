"""Tests for the court blackout endpoints and their effect on evaluations."""

from tests.mocks.models import FACILITY_ID, TOMORROW

BASE = f"/api/facilities/{FACILITY_ID}"


def _blackout(**overrides) -> dict:
    return {
        "court_id": "court-1",
        "blackout_type": "tournament",
        "title": "Spring open",
        "starts_at": f"{TOMORROW.isoformat()}T09:00:00",
        "ends_at": f"{TOMORROW.isoformat()}T12:00:00",
        **overrides,
    }


def _evaluate(client, **overrides) -> dict:
    body = {
        "user_id": "alice",
        "court_id": "court-1",
        "booking_date": TOMORROW.isoformat(),
        "start_time": "10:00",
        "duration_minutes": 60,
        **overrides,
    }
    resp = client.post(f"{BASE}/evaluations", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestBlackoutEndpoints:
    def test_create_and_list(self, seeded_client):
        resp = seeded_client.post(f"{BASE}/blackouts", json=_blackout(id="ignored"))
        assert resp.status_code == 201
        created = resp.json()
        assert created["id"] and created["id"] != "ignored"
        assert created["facility_id"] == FACILITY_ID

        listed = seeded_client.get(f"{BASE}/blackouts").json()
        assert [b["id"] for b in listed] == [created["id"]]

    def test_list_filters_by_date(self, seeded_client):
        seeded_client.post(f"{BASE}/blackouts", json=_blackout())
        weekly = seeded_client.post(
            f"{BASE}/blackouts",
            json=_blackout(court_id=None, recurrence="weekly", starts_at="2026-03-02T06:00:00",
                           ends_at="2026-03-02T07:00:00"),
        ).json()
        today = seeded_client.get(f"{BASE}/blackouts", params={"booking_date": "2026-03-11"}).json()
        assert [b["id"] for b in today] == [weekly["id"]]
        assert len(seeded_client.get(f"{BASE}/blackouts", params={"booking_date": TOMORROW.isoformat()}).json()) == 2

    def test_unknown_court(self, seeded_client):
        resp = seeded_client.post(f"{BASE}/blackouts", json=_blackout(court_id="court-77"))
        assert resp.status_code == 404
        assert seeded_client.get(f"{BASE}/blackouts").json() == []

    def test_invalid_range(self, seeded_client):
        backwards = _blackout(starts_at=f"{TOMORROW.isoformat()}T12:00:00", ends_at=f"{TOMORROW.isoformat()}T09:00:00")
        with_offset = _blackout(starts_at=f"{TOMORROW.isoformat()}T09:00:00-04:00")
        assert seeded_client.post(f"{BASE}/blackouts", json=backwards).status_code == 422
        assert seeded_client.post(f"{BASE}/blackouts", json=with_offset).status_code == 422

    def test_delete(self, seeded_client):
        created = seeded_client.post(f"{BASE}/blackouts", json=_blackout()).json()
        assert seeded_client.delete(f"{BASE}/blackouts/{created['id']}").status_code == 204
        assert seeded_client.get(f"{BASE}/blackouts").json() == []
        assert seeded_client.delete(f"{BASE}/blackouts/{created['id']}").status_code == 404

    def test_delete_scoped_to_facility(self, seeded_client):
        created = seeded_client.post(f"{BASE}/blackouts", json=_blackout()).json()
        resp = seeded_client.delete(f"/api/facilities/club-2/blackouts/{created['id']}")
        assert resp.status_code == 404
        assert len(seeded_client.get(f"{BASE}/blackouts").json()) == 1


class TestBlackoutEvaluation:
    def test_blackout_denies_when_rule_enabled(self, seeded_client):
        seeded_client.post(f"{BASE}/blackouts", json=_blackout())
        assert _evaluate(seeded_client)["allowed"] is True

        seeded_client.put(f"{BASE}/rules/CRT-006", json={"config": {}})
        result = _evaluate(seeded_client)
        assert result["allowed"] is False
        violation = result["violations"][0]
        assert violation["rule_code"] == "CRT-006"
        assert "Spring open" in violation["message"]

    def test_blackout_blocks_split_halves(self, seeded_client):
        seeded_client.put(f"{BASE}/rules/CRT-006", json={"config": {}})
        seeded_client.post(f"{BASE}/blackouts", json=_blackout(court_id="court-3"))
        assert _evaluate(seeded_client, court_id="court-3a")["allowed"] is False
        assert _evaluate(seeded_client, court_id="court-2")["allowed"] is True

    def test_blackout_removal_applies_immediately(self, seeded_client):
        seeded_client.put(f"{BASE}/rules/CRT-006", json={"config": {}})
        created = seeded_client.post(f"{BASE}/blackouts", json=_blackout()).json()
        assert _evaluate(seeded_client)["allowed"] is False
        seeded_client.delete(f"{BASE}/blackouts/{created['id']}")
        assert _evaluate(seeded_client)["allowed"] is True
