import asyncio

from sqlalchemy import func, select

from hangoutz.database import AsyncSessionLocal
from hangoutz.models import Conversation
from hangoutz.services import conversation_service


def open_direct(client, headers, user, other):
    return client.post("/conversations", json={"other_user_id": other.id}, headers=headers(user))


def test_direct_conversation_is_unique_per_pair(client, make_user, headers):
    alice, bob = make_user(name="Alice"), make_user(name="Bob")

    created = open_direct(client, headers, alice, bob)
    again = open_direct(client, headers, alice, bob)
    reversed_pair = open_direct(client, headers, bob, alice)

    assert created.status_code == 201
    assert created.json()["is_new"] is True
    assert again.status_code == 200
    assert again.json()["is_new"] is False
    conversation_id = created.json()["conversation"]["id"]
    assert again.json()["conversation"]["id"] == conversation_id
    assert reversed_pair.json()["conversation"]["id"] == conversation_id

    participants = created.json()["conversation"]["participants"]
    assert {p["name"] for p in participants} == {"Alice", "Bob"}
    assert created.json()["conversation"]["unread_count"] == {alice.id: 0, bob.id: 0}


def test_direct_conversation_with_unknown_user_is_404(client, make_user, headers):
    alice = make_user()

    response = client.post("/conversations", json={"other_user_id": "ghost"}, headers=headers(alice))

    assert response.status_code == 404


def test_cannot_open_conversation_with_yourself(client, make_user, headers):
    alice = make_user()

    response = open_direct(client, headers, alice, alice)

    assert response.status_code == 400


def test_non_participant_cannot_read_conversation(client, make_user, headers):
    alice, bob, eve = make_user(), make_user(), make_user()
    conversation_id = open_direct(client, headers, alice, bob).json()["conversation"]["id"]

    assert client.get(f"/conversations/{conversation_id}", headers=headers(eve)).status_code == 403
    assert client.get(f"/messages/{conversation_id}", headers=headers(eve)).status_code == 403
    assert client.get("/conversations/missing", headers=headers(eve)).status_code == 404


def test_sending_bumps_unread_for_other_participant_only(client, make_user, headers):
    alice, bob = make_user(), make_user()
    conversation_id = open_direct(client, headers, alice, bob).json()["conversation"]["id"]

    for body in ("hey", "are you coming tonight?"):
        response = client.post(
            "/messages", json={"conversation_id": conversation_id, "body": body}, headers=headers(alice)
        )
        assert response.status_code == 201

    conversation = client.get(f"/conversations/{conversation_id}", headers=headers(bob)).json()["conversation"]
    assert conversation["unread_count"] == {alice.id: 0, bob.id: 2}
    assert conversation["last_message"] == "are you coming tonight?"


def test_group_send_bumps_every_other_participant(client, make_user, headers):
    alice, bob, carol, dan = make_user(), make_user(), make_user(), make_user()
    created = client.post(
        "/conversations/group",
        json={"participant_ids": [bob.id, carol.id, dan.id, bob.id], "group_name": "Weekend hikers"},
        headers=headers(alice),
    )
    assert created.status_code == 201
    conversation_id = created.json()["conversation"]["id"]
    assert len(created.json()["conversation"]["participants"]) == 4

    client.post("/messages", json={"conversation_id": conversation_id, "body": "trail at 6?"}, headers=headers(carol))

    counts = client.get(f"/conversations/{conversation_id}", headers=headers(alice)).json()["conversation"]["unread_count"]
    assert counts == {alice.id: 1, bob.id: 1, carol.id: 0, dan.id: 1}


def test_mark_read_resets_only_requester(client, make_user, headers):
    alice, bob, carol = make_user(), make_user(), make_user()
    conversation_id = client.post(
        "/conversations/group", json={"participant_ids": [bob.id, carol.id]}, headers=headers(alice)
    ).json()["conversation"]["id"]
    client.post("/messages", json={"conversation_id": conversation_id, "body": "hello all"}, headers=headers(alice))

    response = client.put(f"/conversations/{conversation_id}/read", headers=headers(bob))

    assert response.status_code == 200
    assert response.json()["conversation"]["unread_count"] == {alice.id: 0, bob.id: 0, carol.id: 1}


def test_list_conversations_most_recent_first(client, make_user, headers):
    alice, bob, carol = make_user(), make_user(), make_user()
    with_bob = open_direct(client, headers, alice, bob).json()["conversation"]["id"]
    with_carol = open_direct(client, headers, alice, carol).json()["conversation"]["id"]

    client.post("/messages", json={"conversation_id": with_bob, "body": "newest"}, headers=headers(alice))

    conversations = client.get("/conversations", headers=headers(alice)).json()["conversations"]
    assert [c["id"] for c in conversations] == [with_bob, with_carol]

    assert [c["id"] for c in client.get("/conversations", headers=headers(carol)).json()["conversations"]] == [with_carol]


def test_delete_conversation_removes_messages(client, make_user, headers):
    alice, bob = make_user(), make_user()
    conversation_id = open_direct(client, headers, alice, bob).json()["conversation"]["id"]
    client.post("/messages", json={"conversation_id": conversation_id, "body": "bye"}, headers=headers(alice))

    assert client.delete(f"/conversations/{conversation_id}", headers=headers(bob)).status_code == 200
    assert client.get(f"/conversations/{conversation_id}", headers=headers(alice)).status_code == 404
    assert client.get(f"/messages/{conversation_id}", headers=headers(alice)).status_code == 404


async def open_direct_in_own_session(user, other):
    async with AsyncSessionLocal() as db:
        conversation, created = await conversation_service.create_or_get_direct_conversation(db, user, other.id)
        return conversation.id, created


async def count_conversations():
    async with AsyncSessionLocal() as db:
        return await db.scalar(select(func.count()).select_from(Conversation))


async def test_concurrent_opens_create_a_single_conversation(make_user):
    alice, bob = make_user(), make_user()

    results = await asyncio.gather(
        open_direct_in_own_session(alice, bob),
        open_direct_in_own_session(bob, alice),
        open_direct_in_own_session(alice, bob),
        open_direct_in_own_session(bob, alice),
    )

    assert len({conversation_id for conversation_id, _ in results}) == 1
    assert [created for _, created in results].count(True) == 1
    assert await count_conversations() == 1


async def test_losing_the_create_race_returns_the_existing_conversation(make_user, monkeypatch):
    alice, bob = make_user(), make_user()
    existing_id, _ = await open_direct_in_own_session(alice, bob)

    real_lookup = conversation_service.get_direct_conversation
    lookups = []

    async def lookup_missing_first_time(db, user_a, user_b):
        lookups.append((user_a, user_b))
        if len(lookups) == 1:
            # Row committed by the other request is not seen before the insert
            return None
        return await real_lookup(db, user_a, user_b)

    monkeypatch.setattr(conversation_service, "get_direct_conversation", lookup_missing_first_time)

    conversation_id, created = await open_direct_in_own_session(bob, alice)

    assert conversation_id == existing_id
    assert created is False
    assert len(lookups) == 2
    assert await count_conversations() == 1
