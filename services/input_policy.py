"""Validation and truncation of candidate input."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from config.settings import settings
from services.errors import ValidationError

logger = logging.getLogger(__name__)

ELLIPSIS = "..."


def apply_input_policy(text: Optional[str], max_length: Optional[int] = None) -> Tuple[str, Optional[str]]:
    """Return ``(accepted_text, warning)``; empty or whitespace input is rejected."""

    cap = max_length if max_length is not None else settings.MAX_USER_INPUT_LENGTH
    if text is None or not text.strip():
        raise ValidationError("Message content is required")
    if len(text) <= cap:
        return text, None
    logger.info("Truncating user input from %d to %d characters", len(text), cap)
    truncated = text[: cap - len(ELLIPSIS)] + ELLIPSIS
    warning = f"Your message was truncated to {cap} characters"
    return truncated, warning


__all__ = ["apply_input_policy"]
