"""
Timeline API Tests
==================

CRUD for timelines, events and highlights, ownership scoping, partial
updates and date validation.
"""

import time

from chronoline.models import DEFAULT_HIGHLIGHT_COLOR


def _event(client, headers, timeline_id, **payload):
    body = {"title": "Departure", "startDate": "2024-01-01", **payload}
    return client.post(f"/api/timelines/{timeline_id}/events", json=body, headers=headers)


class TestTimelineCrud:
    def test_create_and_list(self, client, alice, timeline):
        assert timeline["name"] == "Trip"
        assert timeline["settings"] == {"pixelsPerDay": 50, "theme": "dark"}
        assert "userId" not in timeline

        listed = client.get("/api/timelines", headers=alice).json()
        assert [t["id"] for t in listed] == [timeline["id"]]
        assert set(listed[0]) == {"id", "name", "settings", "createdAt", "updatedAt"}

    def test_name_is_required(self, client, alice):
        response = client.post("/api/timelines", json={"settings": {}}, headers=alice)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_list_is_ordered_by_most_recent_update(self, client, alice, timeline):
        second = client.post("/api/timelines", json={"name": "Second"}, headers=alice).json()
        time.sleep(0.01)
        client.put(f"/api/timelines/{timeline['id']}", json={"name": "Trip 2"}, headers=alice)

        listed = client.get("/api/timelines", headers=alice).json()
        assert [t["id"] for t in listed] == [timeline["id"], second["id"]]

    def test_get_full_timeline(self, client, alice, timeline):
        _event(client, alice, timeline["id"], title="Later", startDate="2024-03-01")
        _event(client, alice, timeline["id"], title="Earlier", startDate="2024-01-01")
        client.post(
            f"/api/timelines/{timeline['id']}/highlights",
            json={"startDate": "2024-01-01", "endDate": "2024-01-10"},
            headers=alice,
        )

        body = client.get(f"/api/timelines/{timeline['id']}", headers=alice).json()
        assert [e["title"] for e in body["events"]] == ["Earlier", "Later"]
        assert len(body["highlights"]) == 1
        assert body["highlights"][0]["color"] == DEFAULT_HIGHLIGHT_COLOR
        assert "timelineId" not in body["events"][0]

    def test_partial_update_keeps_other_fields(self, client, alice, timeline):
        response = client.put(
            f"/api/timelines/{timeline['id']}", json={"name": "Renamed"}, headers=alice
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["settings"] == timeline["settings"]

    def test_empty_update_is_a_noop(self, client, alice, timeline):
        time.sleep(0.01)
        response = client.put(f"/api/timelines/{timeline['id']}", json={}, headers=alice)

        assert response.status_code == 200
        assert response.json()["updatedAt"] == timeline["updatedAt"]

    def test_delete(self, client, alice, timeline):
        response = client.delete(f"/api/timelines/{timeline['id']}", headers=alice)
        assert response.status_code == 200
        assert "message" in response.json()

        assert client.get(f"/api/timelines/{timeline['id']}", headers=alice).status_code == 404
        assert client.delete(f"/api/timelines/{timeline['id']}", headers=alice).status_code == 404


class TestOwnership:
    def test_other_users_timeline_looks_missing(self, client, alice, bob, timeline):
        path = f"/api/timelines/{timeline['id']}"

        for response in (
            client.get(path, headers=bob),
            client.put(path, json={"name": "Stolen"}, headers=bob),
            client.delete(path, headers=bob),
            client.get(f"{path}/export", headers=bob),
            _event(client, bob, timeline["id"]),
        ):
            assert response.status_code == 404
            assert response.json() == {"error": "Timeline not found"}

        assert client.get("/api/timelines", headers=bob).json() == []
        assert client.get(path, headers=alice).json()["name"] == "Trip"

    def test_children_of_foreign_timeline_are_untouchable(self, client, alice, bob, timeline):
        event = _event(client, alice, timeline["id"]).json()
        path = f"/api/timelines/{timeline['id']}/events/{event['id']}"

        assert client.put(path, json={"title": "x"}, headers=bob).status_code == 404
        assert client.delete(path, headers=bob).status_code == 404
        assert client.get(f"/api/timelines/{timeline['id']}", headers=alice).json()["events"][0]["title"] == "Departure"


class TestEvents:
    def test_create_event_with_date_only_input(self, client, alice, timeline):
        response = _event(client, alice, timeline["id"], track=2, link="https://example.com")

        assert response.status_code == 201
        event = response.json()
        assert event["title"] == "Departure"
        assert event["startDate"].startswith("2024-01-01T00:00:00")
        assert event["endDate"] is None
        assert event["track"] == 2

    def test_title_and_start_date_required(self, client, alice, timeline):
        no_title = client.post(
            f"/api/timelines/{timeline['id']}/events", json={"startDate": "2024-01-01"}, headers=alice
        )
        no_start = client.post(
            f"/api/timelines/{timeline['id']}/events", json={"title": "x"}, headers=alice
        )
        assert no_title.status_code == 400
        assert no_start.status_code == 400
        assert no_start.json() == {"error": "Title and start date are required"}

    def test_end_before_start_is_rejected(self, client, alice, timeline):
        response = _event(client, alice, timeline["id"], startDate="2024-02-01", endDate="2024-01-01")
        assert response.status_code == 400

        event = _event(client, alice, timeline["id"], endDate="2024-01-05").json()
        update = client.put(
            f"/api/timelines/{timeline['id']}/events/{event['id']}",
            json={"startDate": "2024-01-10"},
            headers=alice,
        )
        assert update.status_code == 400

    def test_partial_update(self, client, alice, timeline):
        event = _event(client, alice, timeline["id"], description="first", color="#fff").json()
        response = client.put(
            f"/api/timelines/{timeline['id']}/events/{event['id']}",
            json={"description": "second"},
            headers=alice,
        )

        assert response.status_code == 200
        updated = response.json()
        assert updated["description"] == "second"
        assert updated["color"] == "#fff"
        assert updated["title"] == "Departure"

    def test_empty_event_update_keeps_timestamp(self, client, alice, timeline):
        event = _event(client, alice, timeline["id"]).json()
        time.sleep(0.01)
        response = client.put(
            f"/api/timelines/{timeline['id']}/events/{event['id']}", json={}, headers=alice
        )
        assert response.json()["updatedAt"] == event["updatedAt"]

    def test_null_clears_optional_field(self, client, alice, timeline):
        event = _event(client, alice, timeline["id"], endDate="2024-01-03").json()
        response = client.put(
            f"/api/timelines/{timeline['id']}/events/{event['id']}",
            json={"endDate": None},
            headers=alice,
        )
        assert response.json()["endDate"] is None

    def test_missing_event(self, client, alice, timeline):
        path = f"/api/timelines/{timeline['id']}/events/nope"
        assert client.put(path, json={"title": "x"}, headers=alice).json() == {"error": "Event not found"}
        assert client.delete(path, headers=alice).status_code == 404

    def test_delete_event(self, client, alice, timeline):
        event = _event(client, alice, timeline["id"]).json()
        response = client.delete(f"/api/timelines/{timeline['id']}/events/{event['id']}", headers=alice)

        assert response.status_code == 200
        assert client.get(f"/api/timelines/{timeline['id']}", headers=alice).json()["events"] == []


class TestHighlights:
    def test_create_update_delete(self, client, alice, timeline):
        base = f"/api/timelines/{timeline['id']}/highlights"
        created = client.post(
            base,
            json={"startDate": "2024-01-01", "endDate": "2024-01-07", "startLabel": "Start"},
            headers=alice,
        )
        assert created.status_code == 201
        highlight = created.json()
        assert highlight["startLabel"] == "Start"

        updated = client.put(f"{base}/{highlight['id']}", json={"endLabel": "End"}, headers=alice).json()
        assert updated["endLabel"] == "End"
        assert updated["startLabel"] == "Start"

        assert client.delete(f"{base}/{highlight['id']}", headers=alice).status_code == 200
        assert client.delete(f"{base}/{highlight['id']}", headers=alice).json() == {"error": "Highlight not found"}

    def test_both_dates_required(self, client, alice, timeline):
        response = client.post(
            f"/api/timelines/{timeline['id']}/highlights",
            json={"startDate": "2024-01-01"},
            headers=alice,
        )
        assert response.status_code == 400

    def test_end_before_start_is_rejected(self, client, alice, timeline):
        response = client.post(
            f"/api/timelines/{timeline['id']}/highlights",
            json={"startDate": "2024-01-10", "endDate": "2024-01-01"},
            headers=alice,
        )
        assert response.status_code == 400


class TestHealth:
    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["timestamp"]
