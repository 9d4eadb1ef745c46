import asyncio

import pytest
from sqlalchemy.orm import Session
from starlette.websockets import WebSocketDisconnect

from conftest import FakeWebSocket, auth_headers, event_payload, sync_engine
from hangoutz.core.security import create_access_token
from hangoutz.core.websocket.websocket_manager import manager
from hangoutz.models import User
from hangoutz.routers.websocket.endpoints import websocket_endpoint


def ws_url(user):
    return f"/ws?token={create_access_token(user.id)}"


def test_connection_without_token_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws"):
            pass

    assert exc_info.value.code == 1008


def test_connection_with_invalid_token_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws?token=garbage"):
            pass

    assert exc_info.value.code == 1008


def test_token_for_unknown_user_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws?token={create_access_token('ghost')}"):
            pass

    assert exc_info.value.code == 1008


def test_authorization_header_is_accepted(client, make_user):
    user = make_user()

    with client.websocket_connect("/ws", headers=auth_headers(user)) as websocket:
        assert websocket.receive_json()["type"] == "connected"


def test_new_message_is_delivered_to_personal_room(client, make_user, headers):
    alice, bob = make_user(), make_user(name="Bob")
    conversation_id = client.post(
        "/conversations", json={"other_user_id": bob.id}, headers=headers(alice)
    ).json()["conversation"]["id"]

    with client.websocket_connect(ws_url(bob)) as websocket:
        websocket.receive_json()  # connected

        client.post("/messages", json={"conversation_id": conversation_id, "body": "on my way"}, headers=headers(alice))

        frame = websocket.receive_json()
        assert frame["type"] == "message:new"
        assert frame["conversationId"] == conversation_id
        assert frame["message"]["body"] == "on my way"


def test_join_notifies_host(client, make_user, headers):
    host, guest = make_user(), make_user(name="Guest")
    event_id = client.post("/events", json=event_payload(), headers=headers(host)).json()["event"]["id"]

    with client.websocket_connect(ws_url(host)) as websocket:
        websocket.receive_json()  # connected
        client.post(f"/events/{event_id}/join", headers=headers(guest))

        frame = websocket.receive_json()

    assert frame == {
        "type": "event:newParticipant",
        "eventId": event_id,
        "participant": {"_id": guest.id, "name": "Guest", "photoURL": guest.photo_url},
    }


def test_typing_relay_between_sockets(client, make_user):
    alice, bob = make_user(name="Alice"), make_user()

    with client.websocket_connect(ws_url(alice)) as alice_ws, client.websocket_connect(ws_url(bob)) as bob_ws:
        alice_ws.receive_json()
        bob_ws.receive_json()

        bob_ws.send_json({"type": "conversation:join", "conversationId": "c1"})
        bob_ws.send_json({"type": "user:online"})
        # Bob's frames are handled in order, so his status arriving means the join is done
        assert alice_ws.receive_json() == {"type": "user:status", "userId": bob.id, "online": True}

        alice_ws.send_text("not json")
        alice_ws.send_json({"type": "typing:start", "conversationId": "c1"})

        assert bob_ws.receive_json() == {
            "type": "user:typing", "userId": alice.id, "userName": "Alice", "conversationId": "c1",
        }




def last_active_of(user):
    with Session(sync_engine) as session:
        return session.get(User, user.id).last_active


def test_connected_frame_and_last_active(make_user):
    user = make_user()
    websocket = FakeWebSocket(token=create_access_token(user.id))

    asyncio.run(websocket_endpoint(websocket))

    frame = websocket.sent[0]
    assert frame["type"] == "connected"
    assert frame["userId"] == user.id
    assert last_active_of(user) is not None


def test_disconnect_broadcasts_offline_status(make_user, connect_socket):
    alice, bob = make_user(), make_user()
    bob_socket, _ = connect_socket(bob.id)
    alice_socket = FakeWebSocket(token=create_access_token(alice.id), frames=['{"type": "user:online"}'])

    asyncio.run(websocket_endpoint(alice_socket))

    assert bob_socket.of_type("user:status") == [
        {"type": "user:status", "userId": alice.id, "online": True},
        {"type": "user:status", "userId": alice.id, "online": False},
    ]
    assert alice_socket.closed
    assert not manager.is_user_online(alice.id)


def test_failed_connected_frame_still_cleans_up(make_user, connect_socket):
    alice, bob = make_user(), make_user()
    bob_socket, _ = connect_socket(bob.id)
    alice_socket = FakeWebSocket(token=create_access_token(alice.id), fail_on_send=True)

    asyncio.run(websocket_endpoint(alice_socket))

    assert not manager.is_user_online(alice.id)
    assert all(c.user_id != alice.id for c in manager.connections.values())
    assert f"user:{alice.id}" not in manager.rooms
    assert bob_socket.of_type("user:status") == [{"type": "user:status", "userId": alice.id, "online": False}]
    assert last_active_of(alice) is not None


def test_cancelled_connection_is_cleaned_up(make_user, connect_socket):
    alice, bob = make_user(), make_user()
    bob_socket, _ = connect_socket(bob.id)
    alice_socket = FakeWebSocket(token=create_access_token(alice.id), block=True)

    async def run_and_cancel():
        task = asyncio.create_task(websocket_endpoint(alice_socket))
        while not alice_socket.waiting:
            await asyncio.sleep(0.01)
        assert manager.is_user_online(alice.id)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run_and_cancel())

    assert not manager.is_user_online(alice.id)
    assert bob_socket.of_type("user:status") == [{"type": "user:status", "userId": alice.id, "online": False}]


def test_second_connection_keeps_user_online(make_user, connect_socket):
    alice, bob = make_user(), make_user()
    bob_socket, _ = connect_socket(bob.id)
    connect_socket(alice.id)

    asyncio.run(websocket_endpoint(FakeWebSocket(token=create_access_token(alice.id))))

    assert manager.is_user_online(alice.id)
    assert bob_socket.of_type("user:status") == [{"type": "user:status", "userId": alice.id, "online": True}]
