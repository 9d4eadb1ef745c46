import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hangoutz.config import settings
from hangoutz.core.exceptions import register_exception_handlers
from hangoutz.core.logging_config import setup_logging
from hangoutz.core.middleware import logging_middleware
from hangoutz.core.security import authenticate
from .init_db import get_db
from .models.user import User

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger.info(f"Starting Hangoutz API ({settings.environment})")

    yield

    # Shutdown
    logger.info("Hangoutz API shutting down")


app = FastAPI(title="Hangoutz API", lifespan=lifespan)
security = HTTPBearer(auto_error=False)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(logging_middleware)

register_exception_handlers(app)


# Dependency to get current user from token
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = credentials.credentials if credentials else None
    return await authenticate(db, token)
