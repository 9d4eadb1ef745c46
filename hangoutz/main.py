import logging

from fastapi import Depends

from .common import app, get_current_user
from .config import settings
from .models import User
from .routers.ai.endpoints import router as AIEndpoints
from .routers.auth.endpoints import router as AuthEndpoints
from .routers.conversations.endpoints import router as ConversationEndpoints
from .routers.events.endpoints import router as EventEndpoints
from .routers.messages.endpoints import router as MessageEndpoints
from .routers.users.endpoints import router as UserEndpoints
from .routers.websocket.endpoints import router as WebSocketEndpoints
from .schemas.users import MeUserOut, MeUserResponse

logger = logging.getLogger(__name__)

# Include routers
app.include_router(AuthEndpoints)
app.include_router(UserEndpoints)
app.include_router(EventEndpoints)
app.include_router(ConversationEndpoints)
app.include_router(MessageEndpoints)
app.include_router(AIEndpoints)
app.include_router(WebSocketEndpoints)


@app.get("/")
async def health():
    return {"success": True, "message": "Hangoutz API is running", "environment": settings.environment}


@app.get("/me", response_model=MeUserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return MeUserResponse(user=MeUserOut.model_validate(current_user))
