import logging
from fastapi import APIRouter, Depends

from hangoutz.common import get_current_user
from hangoutz.core.exceptions import ValidationError
from hangoutz.models import User
from hangoutz.schemas.ai import AIChatRequest, AIChatResponse, ModerateRequest, ModerateResponse
from hangoutz.services.ai_service import get_chat_response
from hangoutz.services.moderation_service import classify

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/moderate", response_model=ModerateResponse)
async def moderate_text(request: ModerateRequest, current_user: User = Depends(get_current_user)):
    return ModerateResponse(moderation=classify(request.text))


@router.post("/chat", response_model=AIChatResponse)
async def chat(request: AIChatRequest, current_user: User = Depends(get_current_user)):
    """
    Ask the city guide assistant a question.

    Raises:
        ValidationError: If the question fails moderation
    """
    moderation = classify(request.message)
    if moderation.blocked:
        raise ValidationError("Message contains inappropriate content")

    response = await get_chat_response(request.message, request.history)
    return AIChatResponse(response=response, moderation=moderation)
