from types import SimpleNamespace

import pytest
from openai import OpenAIError

from hangoutz.config import settings
from hangoutz.services import ai_service


@pytest.fixture(autouse=True)
def no_provider_keys(monkeypatch):
    monkeypatch.setattr(settings, "groq_api_key", None)
    monkeypatch.setattr(settings, "openai_api_key", None)


def test_moderate_endpoint(client, make_user, headers):
    response = client.post("/ai/moderate", json={"text": "this is a scam"}, headers=headers(make_user()))

    assert response.status_code == 200
    assert response.json()["moderation"] == {
        "flagged": True,
        "reason": 'Content contains restricted term: "scam"',
        "severity": "high",
    }


def test_chat_uses_canned_replies_without_a_provider(client, make_user, headers):
    response = client.post("/ai/chat", json={"message": "where should I eat tonight?"}, headers=headers(make_user()))

    assert response.status_code == 200
    assert response.json()["response"] == ai_service.RESPONSES["food"]
    assert response.json()["moderation"]["flagged"] is False


def test_chat_rejects_blocked_content(client, make_user, headers):
    response = client.post("/ai/chat", json={"message": "where can I buy drugs"}, headers=headers(make_user()))

    assert response.status_code == 400
    assert response.json()["message"] == "Message contains inappropriate content"


@pytest.mark.parametrize("message, intent", [
    ("hello!", "greeting"),
    ("what's on this weekend", "events"),
    ("any tourist spots?", "places"),
    ("what can you do", "help"),
    ("tell me a joke", "default"),
])
def test_rule_based_intents(message, intent):
    assert ai_service.get_rule_based_response(message) == ai_service.RESPONSES[intent]


class FailingCompletions:
    async def create(self, **kwargs):
        raise OpenAIError("provider down")


class EchoCompletions:
    def __init__(self):
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = SimpleNamespace(message=SimpleNamespace(content="Try the lake at sunset."))
        return SimpleNamespace(choices=[reply])


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


async def test_provider_reply_is_used(monkeypatch):
    completions = EchoCompletions()
    monkeypatch.setattr(ai_service, "_get_client", lambda: (fake_client(completions), "test-model"))

    history = [ai_service.ChatTurn(role="user", content="hi"), ai_service.ChatTurn(role="system", content="ignored")]
    reply = await ai_service.get_chat_response("any plans for tonight?", history)

    assert reply == "Try the lake at sunset."
    sent = completions.calls[0]["messages"]
    assert sent[0]["role"] == "system"
    assert [m["role"] for m in sent[1:]] == ["user", "user"]


async def test_provider_failure_falls_back(monkeypatch):
    monkeypatch.setattr(ai_service, "_get_client", lambda: (fake_client(FailingCompletions()), "test-model"))

    reply = await ai_service.get_chat_response("hello")

    assert reply == ai_service.RESPONSES["greeting"]
