import json

import pytest
from starlette.testclient import WebSocketDenialResponse

from roomrelay.core import state


def create_room(client, password="s3cret"):
    return client.post("/rooms", json={"password": password}).json()["room_id"]


def join_path(room_id, password="s3cret", user_id=None):
    path = f"/rooms/{room_id}/join?password={password}"
    if user_id is not None:
        path += f"&user_id={user_id}"
    return path


def members(client, room_id):
    room = client.portal.call(state.room_registry.get_room, room_id)
    return sorted(client.portal.call(room.snapshot))


def test_join_is_acknowledged_and_registers_member(client):
    room_id = create_room(client)

    with client.websocket_connect(join_path(room_id, user_id="alice")) as alice:
        assert alice.receive_json() == {"type": "joined", "room_id": room_id, "user_id": "alice"}
        assert members(client, room_id) == ["alice"]

    assert members(client, room_id) == []


def test_join_without_user_id_is_rejected_before_upgrade(client):
    room_id = create_room(client)

    with pytest.raises(WebSocketDenialResponse) as exc_info:
        with client.websocket_connect(join_path(room_id)):
            pass

    assert exc_info.value.status_code == 400
    assert members(client, room_id) == []


def test_join_unknown_room_is_404(client):
    with pytest.raises(WebSocketDenialResponse) as exc_info:
        with client.websocket_connect(join_path("twl-server-00000000", user_id="alice")):
            pass

    assert exc_info.value.status_code == 404


def test_join_with_wrong_password_is_403_and_room_unchanged(client):
    room_id = create_room(client)

    with client.websocket_connect(join_path(room_id, user_id="alice")) as alice:
        alice.receive_json()

        with pytest.raises(WebSocketDenialResponse) as exc_info:
            with client.websocket_connect(join_path(room_id, password="wrong", user_id="mallory")):
                pass

        assert exc_info.value.status_code == 403
        assert exc_info.value.json() == {"detail": "Invalid password"}
        assert members(client, room_id) == ["alice"]


def test_alert_reaches_members_and_disconnect_removes_recipient(client):
    room_id = create_room(client)

    with client.websocket_connect(join_path(room_id, user_id="alice")) as alice:
        alice.receive_json()

        with client.websocket_connect(join_path(room_id, user_id="bob")) as bob:
            bob.receive_json()
            assert members(client, room_id) == ["alice", "bob"]

            alice.send_json({"type": "alert", "content": "hi"})

            assert "hi" in bob.receive_text()
            assert "hi" in alice.receive_text()

        assert members(client, room_id) == ["alice"]

        alice.send_json({"type": "alert", "content": "again"})
        assert json.loads(alice.receive_text())["content"] == "again"

    metrics = client.get("/metrics").json()
    assert metrics["broadcasts"] == 2
    assert metrics["deliveries"] == 3
    assert metrics["evictions"] == 0


def test_binary_alert_is_forwarded_as_binary(client):
    room_id = create_room(client)

    with client.websocket_connect(join_path(room_id, user_id="alice")) as alice:
        alice.receive_json()
        with client.websocket_connect(join_path(room_id, user_id="bob")) as bob:
            bob.receive_json()

            frame = b'{"type":"alert","content":"binary"}'
            alice.send_bytes(frame)

            assert bob.receive_bytes() == frame


def test_location_unknown_and_malformed_frames_are_only_counted(client):
    room_id = create_room(client)

    with client.websocket_connect(join_path(room_id, user_id="alice")) as alice:
        alice.receive_json()
        with client.websocket_connect(join_path(room_id, user_id="bob")) as bob:
            bob.receive_json()

            alice.send_json({"type": "location", "content": "51.5,-0.1"})
            alice.send_json({"type": "chat", "content": "hello"})
            alice.send_text("{broken")
            alice.send_json({"type": "alert", "content": "marker"})

            # the first frame bob sees is the alert sent after the others
            assert json.loads(bob.receive_text())["content"] == "marker"
            alice.receive_text()

    metrics = client.get("/metrics").json()
    assert metrics["frames_received"] == 4
    assert metrics["location_updates"] == 1
    assert metrics["unknown_messages"] == 1
    assert metrics["invalid_frames"] == 1
    assert metrics["alerts"] == 1


def test_producer_notification_reaches_every_member(client):
    room_id = create_room(client)

    with client.websocket_connect(join_path(room_id, user_id="alice")) as alice:
        alice.receive_json()
        with client.websocket_connect(join_path(room_id, user_id="bob")) as bob:
            bob.receive_json()

            resp = client.post(
                "/produce-notif",
                json={"room_id": room_id, "user_id": "ops", "type": "alert", "content": "fire drill"},
            )
            assert resp.status_code == 200

            expected = {"room_id": room_id, "user_id": "ops", "type": "alert", "content": "fire drill"}
            assert alice.receive_json() == expected
            assert bob.receive_json() == expected


def test_rejoin_with_same_user_id_supersedes_previous_connection(client):
    room_id = create_room(client)

    with client.websocket_connect(join_path(room_id, user_id="alice")) as first:
        first.receive_json()

        with client.websocket_connect(join_path(room_id, user_id="alice")) as second:
            second.receive_json()
            assert members(client, room_id) == ["alice"]

            client.post("/produce-notif", json={"room_id": room_id, "type": "alert", "content": "to new"})
            assert second.receive_json()["content"] == "to new"

        assert members(client, room_id) == []

    assert client.get("/health").json()["connections"] == 0
