import logging
import re
from typing import List, Optional

from openai import AsyncOpenAI, OpenAIError

from hangoutz.config import settings
from hangoutz.schemas.ai import ChatTurn

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GROQ_MODEL = "llama-3.1-8b-instant"
OPENAI_MODEL = "gpt-4o-mini"

SYSTEM_PROMPT = (
    "You are the Hangoutz city guide for Raipur. Help users find events, food, "
    "places to visit and local tips. Keep answers short and friendly."
)

RESPONSES = {
    "greeting": "Hey there! 👋 Welcome to Hangoutz! I'm your AI guide for all things Raipur. Ask me about events, food, places to visit, or anything else about the city!",
    "events": "There are several exciting events coming up in Raipur! 🎉 Check out the home screen to see all current events and join the ones that interest you!",
    "food": "Raipur has amazing food! 🍔 Try the street food in Purani Basti, fine dining at Magneto Mall, or check out food-themed events!",
    "places": (
        "Must-visit places in Raipur! 📍\n\n"
        "1. Marine Drive at Telibandha Lake\n"
        "2. Nandan Van Zoo & Safari\n"
        "3. Purkhauti Muktangan\n"
        "4. Mahant Ghasidas Museum\n\n"
        "Some might have events happening too!"
    ),
    "help": (
        "I can help you with:\n\n"
        "🎉 Finding events\n"
        "🍔 Food recommendations\n"
        "📍 Places to visit\n"
        "🌤️ Weather info\n"
        "💡 City tips\n\n"
        "What would you like to know?"
    ),
    "default": "That's interesting! 🏙️ I'm here to help you discover Raipur. Try asking about events, food, places to visit, or local tips!",
}

INTENT_PATTERNS = [
    ("greeting", re.compile(r"\b(hi|hello|hey|namaste)\b", re.IGNORECASE)),
    ("events", re.compile(r"\b(event|happening|what'?s on)\b", re.IGNORECASE)),
    ("food", re.compile(r"\b(food|eat|restaurant|khana)\b", re.IGNORECASE)),
    ("places", re.compile(r"\b(place|visit|tourist|see)\b", re.IGNORECASE)),
    ("help", re.compile(r"\b(help|what can you)\b", re.IGNORECASE)),
]


def get_rule_based_response(message: str) -> str:
    for intent, pattern in INTENT_PATTERNS:
        if pattern.search(message):
            return RESPONSES[intent]
    return RESPONSES["default"]


def _get_client() -> Optional[tuple]:
    """Return (client, model) for the configured provider, or None when no key is set."""
    if settings.ai_provider == "groq" and settings.groq_api_key:
        client = AsyncOpenAI(base_url=GROQ_BASE_URL, api_key=settings.groq_api_key.get_secret_value())
        return client, GROQ_MODEL
    if settings.ai_provider == "openai" and settings.openai_api_key:
        client = AsyncOpenAI(api_key=settings.openai_api_key.get_secret_value())
        return client, OPENAI_MODEL
    return None


async def get_chat_response(message: str, history: Optional[List[ChatTurn]] = None) -> str:
    """
    Answer a user's question about the city.

    Uses the configured LLM provider when an API key is available and falls
    back to keyword matched canned replies otherwise or when the provider fails.
    """
    provider = _get_client()
    if provider is None:
        return get_rule_based_response(message)

    client, model = provider
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for turn in history or []:
        if turn.role in ("user", "assistant"):
            messages.append({"role": turn.role, "content": turn.content})
    messages.append({"role": "user", "content": message})

    try:
        response = await client.chat.completions.create(model=model, messages=messages)
        content = response.choices[0].message.content
        return content or get_rule_based_response(message)
    except OpenAIError as e:
        logger.warning(f"LLM provider {settings.ai_provider} failed, using canned reply: {e}")
        return get_rule_based_response(message)
