"""
Keyword and pattern based content moderation.

The classifier is deterministic and does no I/O. Checks run from most to
least severe and the first match wins:

- a banned keyword blocks the content (high)
- spam/phishing patterns annotate it (medium)
- shouting or long runs of one character annotate it (low)
"""
import logging
import re

from hangoutz.schemas.ai import ImageModerationResult, ModerationResult, Severity

logger = logging.getLogger(__name__)

BANNED_KEYWORDS = [
    "spam", "scam", "fraud", "hate", "violence", "abuse",
    "harassment", "explicit", "nsfw", "drugs", "illegal",
]

SUSPICIOUS_PATTERNS = [
    re.compile(r"\b(?:https?://)?(?:bit\.ly|tinyurl|goo\.gl)/\w+", re.IGNORECASE),  # Shortened URLs
    re.compile(r"\b\d{16}\b"),  # Credit card numbers
    re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"),  # Phone numbers (US format)
    re.compile(r"(buy|click|download|install|register)\s+(now|here|today)", re.IGNORECASE),  # Spam phrases
]

REPEATED_CHARACTERS = re.compile(r"(.)\1{5,}")
UPPERCASE = re.compile(r"[A-Z]")

CAPS_RATIO_THRESHOLD = 0.7
CAPS_MIN_LENGTH = 20


def classify(text: str) -> ModerationResult:
    """
    Classify a piece of user text.

    Args:
        text: The text to check

    Returns:
        ModerationResult: flagged/reason/severity verdict
    """
    text = text or ""
    lower_text = text.lower()

    for keyword in BANNED_KEYWORDS:
        if keyword in lower_text:
            return ModerationResult(
                flagged=True,
                reason=f'Content contains restricted term: "{keyword}"',
                severity=Severity.HIGH,
            )

    for pattern in SUSPICIOUS_PATTERNS:
        if pattern.search(text):
            return ModerationResult(
                flagged=True,
                reason="Content contains suspicious pattern (spam/phishing)",
                severity=Severity.MEDIUM,
            )

    if text:
        caps_ratio = len(UPPERCASE.findall(text)) / len(text)
        if caps_ratio > CAPS_RATIO_THRESHOLD and len(text) > CAPS_MIN_LENGTH:
            return ModerationResult(
                flagged=True,
                reason="Excessive use of capital letters",
                severity=Severity.LOW,
            )

    if REPEATED_CHARACTERS.search(text):
        return ModerationResult(
            flagged=True,
            reason="Suspicious repeated characters",
            severity=Severity.LOW,
        )

    return ModerationResult(flagged=False, reason=None, severity=None)


def moderate_image(image_url: str) -> ImageModerationResult:
    # TODO: call an image moderation provider once one is chosen; every image passes for now
    logger.debug(f"Image moderation skipped for {image_url}")
    return ImageModerationResult(flagged=False, reason=None, labels=[])
