"""End-of-session feedback: prompt the model, then normalize whatever comes back."""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from agents.types import CRITERIA, ConversationMessage, FeedbackRecord
from llm_gateway import ModelProvider, ProviderError
from services.scoring import normalize_feedback

logger = logging.getLogger(__name__)

FEEDBACK_OPTIONS = {"temperature": 0.3, "response_format": "json_object"}

_RUBRIC = """NEW 7-CRITERIA ASSESSMENT SYSTEM:

1. RELEVANCE (1-5): How well did answers directly address the questions asked?
2. STRUCTURED (STAR) (1-5): How well did the candidate use the STAR methodology?
3. SPECIFIC (1-5): Level of detail and specificity in examples and explanations
4. HONEST (1-5): Authenticity and genuineness of responses
5. CONFIDENT (but not arrogant) (1-5): Appropriate level of self-assurance
6. ALIGNED WITH THE ROLE (1-5): How well responses demonstrated fit for the position
7. OUTCOME ORIENTED (1-5): Focus on results, achievements, and measurable impact

Scores: 5 excellent, 4 good, 3 moderate, 2 weak, 1 poor.

STAR Framework Analysis:
- Situation: Did the candidate provide clear context and background?
- Task: Was the specific role/objective clearly articulated?
- Action: Were the steps taken described in detail?
- Result: Were outcomes and learnings shared effectively?"""


def _criterion_schema(name: str) -> str:
    return (
        f'    "{name}": {{"score": <number 1-5>, "feedback": "<detailed feedback>", '
        '"suggestions": ["<suggestion 1>", "<suggestion 2>"]}'
    )


def build_feedback_prompt(messages: Sequence[ConversationMessage]) -> str:
    conversation = "\n".join(f"{m.role}: {m.content}" for m in messages)
    scores = ",\n".join(f'    "{name}": <number 1-5>' for name in CRITERIA)
    details = ",\n".join(_criterion_schema(name) for name in CRITERIA)
    star = ",\n".join(
        f'    "{part}": {{"present": <boolean>, "score": <number 1-5>, "feedback": "<feedback>"}}'
        for part in ("situation", "task", "action", "result")
    )
    return (
        "Analyze this interview conversation using the 7-criteria assessment system "
        "(each out of 5, total 35 max):\n\n"
        f"{conversation}\n\n"
        "Provide feedback in the following JSON format:\n"
        "{\n"
        '  "overallScore": <number 7-35 (sum of 7 criteria)>,\n'
        f'  "criteriaScores": {{\n{scores}\n  }},\n'
        f'  "criteriaFeedback": {{\n{details}\n  }},\n'
        f'  "starAnalysis": {{\n{star},\n    "overallStarScore": <number 1-5>\n  }},\n'
        '  "feedback": "<comprehensive feedback paragraph covering all 7 criteria>",\n'
        '  "improvements": ["<improvement 1>", "<improvement 2>", "<improvement 3>"]\n'
        "}\n\n"
        f"{_RUBRIC}\n\n"
        "Provide comprehensive, constructive feedback focusing on these 7 criteria with specific, "
        "actionable suggestions for improvement."
    )


def generate_feedback(
    provider: ModelProvider,
    messages: Sequence[ConversationMessage],
    role_terms: Iterable[str] = (),
    session_id: Optional[str] = None,
) -> FeedbackRecord:
    """Ask the model for feedback; provider failures fall through to synthesis."""

    candidate_text = "\n".join(m.content for m in messages if m.role == "user")
    raw_text = ""
    if messages:
        prompt = build_feedback_prompt(messages)
        try:
            raw_text = provider.generate([{"role": "user", "content": prompt}], dict(FEEDBACK_OPTIONS)).text
        except ProviderError as exc:
            logger.warning("Feedback generation failed for session %s, synthesizing: %s", session_id, exc)
    return normalize_feedback(None, raw_text=raw_text, response_text=candidate_text, role_terms=role_terms)
