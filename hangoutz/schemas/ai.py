from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """
    Attributes:
        HIGH: Content is blocked
        MEDIUM: Content is stored and annotated
        LOW: Content is stored and annotated
    """
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ModerationResult(BaseModel):
    flagged: bool
    reason: Optional[str] = None
    severity: Optional[Severity] = None

    @property
    def blocked(self) -> bool:
        return self.flagged and self.severity == Severity.HIGH


class ImageModerationResult(BaseModel):
    flagged: bool = False
    reason: Optional[str] = None
    labels: List[str] = []


class ModerateRequest(BaseModel):
    text: str = Field(..., min_length=1)


class ModerateResponse(BaseModel):
    success: bool = True
    moderation: ModerationResult


class ChatTurn(BaseModel):
    role: str = "user"
    content: str


class AIChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    history: List[ChatTurn] = []


class AIChatResponse(BaseModel):
    success: bool = True
    response: str
    moderation: ModerationResult
