from app.modules.sync.board_state import BoardViewState
from tests.fakes import seed_workshop, seed_participant, seed_note, participant_headers

API = "/api/v1"


def test_participant_follows_facilitator_to_next_board(client, fake_db, facilitator):
    seeded = seed_workshop(fake_db, facilitator.id, [("B1", ["Q1"]), ("B2", ["Q2"])])
    workshop_id = seeded["workshop"]["id"]
    b1, b2 = (b["id"] for b in seeded["boards"])
    participant = seed_participant(fake_db, workshop_id)
    headers = participant_headers(participant)
    status_url = f"{API}/participant/workshops/{workshop_id}/status"

    view = BoardViewState(b1)
    assert view.apply_status(client.get(status_url, headers=headers).json()) is False

    client.post(f"{API}/workshops/{workshop_id}/advance", headers=facilitator.headers, json={"board_id": b2})
    q2 = seeded["questions"][b2][0]
    seed_note(fake_db, q2["id"], participant, content="on the new board")

    status = client.get(status_url, headers=headers).json()
    assert view.apply_status(status) is True
    assert view.board_id == b2
    assert view.apply_status(status) is False

    snapshot = client.get(f"{API}/participant/workshops/{workshop_id}/boards/{b2}", headers=headers)
    assert snapshot.status_code == 200
    data = snapshot.json()
    assert data["board"]["id"] == b2
    assert [q["id"] for q in data["questions"]] == [q2["id"]]
    assert [n["content"] for n in data["notes"]] == ["on the new board"]
    assert data["participant_count"] == 1
    assert data["workshop"]["active_board_id"] == b2


def test_board_view_keeps_notes_on_unchanged_status():
    view = BoardViewState("board-1")
    view.notes = ["draft"]
    status = {"active_board_id": "board-1", "timer_running": True, "timer_started_at": "2026-01-01T00:00:00+00:00"}

    assert view.apply_status(status) is False
    assert view.apply_status(status) is False
    assert view.notes == ["draft"]
    assert view.timer_running is True


def test_board_view_ignores_missing_active_board():
    view = BoardViewState("board-1")
    assert view.apply_status({"active_board_id": None}) is False
    assert view.board_id == "board-1"


def test_status_of_another_workshop_is_denied(client, fake_db, facilitator):
    mine = seed_workshop(fake_db, facilitator.id, [("B1", ["Q1"])])
    other = seed_workshop(fake_db, facilitator.id, [("X", ["Y"])])
    participant = seed_participant(fake_db, mine["workshop"]["id"])

    r = client.get(f"{API}/participant/workshops/{other['workshop']['id']}/status", headers=participant_headers(participant))
    assert r.status_code == 403


def test_initial_data_rejects_board_of_another_workshop(client, fake_db, facilitator):
    mine = seed_workshop(fake_db, facilitator.id, [("B1", ["Q1"])])
    other = seed_workshop(fake_db, facilitator.id, [("X", ["Y"])])
    participant = seed_participant(fake_db, mine["workshop"]["id"])
    headers = participant_headers(participant)

    r = client.get(f"{API}/participant/workshops/{mine['workshop']['id']}/boards/{other['boards'][0]['id']}", headers=headers)
    assert r.status_code == 404
    r = client.get(f"{API}/participant/workshops/{other['workshop']['id']}/boards/{other['boards'][0]['id']}", headers=headers)
    assert r.status_code == 403


def test_note_query_is_filtered_to_own_workshop(client, fake_db, facilitator):
    mine = seed_workshop(fake_db, facilitator.id, [("B1", ["Q1"])])
    other = seed_workshop(fake_db, facilitator.id, [("X", ["Y"])])
    me = seed_participant(fake_db, mine["workshop"]["id"])
    stranger = seed_participant(fake_db, other["workshop"]["id"])
    my_question = mine["questions"][mine["boards"][0]["id"]][0]
    their_question = other["questions"][other["boards"][0]["id"]][0]
    seed_note(fake_db, my_question["id"], me, content="visible")
    seed_note(fake_db, their_question["id"], stranger, content="hidden")

    r = client.get(f"{API}/participant/notes", headers=participant_headers(me),
                   params={"question_ids": [my_question["id"], their_question["id"], "junk"]})
    assert r.status_code == 200
    assert [n["content"] for n in r.json()] == ["visible"]


def test_participant_count(client, fake_db, facilitator):
    seeded = seed_workshop(fake_db, facilitator.id, [("B1", ["Q1"])])
    workshop_id = seeded["workshop"]["id"]
    me = seed_participant(fake_db, workshop_id)
    seed_participant(fake_db, workshop_id, name="Another")

    r = client.get(f"{API}/participant/workshops/{workshop_id}/participant-count", headers=participant_headers(me))
    assert r.json() == {"workshop_id": workshop_id, "participant_count": 2}


def test_event_stream_requires_ownership(client, fake_db, facilitator, other_facilitator):
    seeded = seed_workshop(fake_db, facilitator.id, [("B1", ["Q1"])])
    workshop_id = seeded["workshop"]["id"]

    r = client.get(f"{API}/facilitator/workshops/{workshop_id}/events", headers=other_facilitator.headers)
    assert r.status_code == 403
    r = client.get(f"{API}/facilitator/workshops/00000000-0000-4000-8000-000000000000/events", headers=facilitator.headers)
    assert r.status_code == 404
