"""Token estimation and transcript trimming for model context windows."""
from __future__ import annotations

import math
from typing import Any, List, Mapping, Sequence, TypeVar

M = TypeVar("M")


def estimate_tokens(text: str) -> int:
    """Approximate token count as one token per four characters, rounded up."""

    if not text:
        return 0
    return math.ceil(len(text) / 4)


def _content(message: Any) -> str:
    if isinstance(message, Mapping):
        return str(message.get("content") or "")
    return str(getattr(message, "content", "") or "")


def optimize_history(messages: Sequence[M], max_tokens: int, max_pairs: int) -> List[M]:
    """Return the longest recent suffix within the token and pair budgets.

    Walks newest to oldest and stops before the first message that would
    overflow ``max_tokens`` or once ``2 * max_pairs`` messages are kept. The
    newest message is always kept, even when it alone exceeds the budget.
    """

    if not messages:
        return []
    limit = max(1, 2 * max_pairs)
    kept: List[M] = []
    total = 0
    for message in reversed(messages):
        cost = estimate_tokens(_content(message))
        if kept and (total + cost > max_tokens or len(kept) >= limit):
            break
        kept.append(message)
        total += cost
    kept.reverse()
    return kept


__all__ = ["estimate_tokens", "optimize_history"]
