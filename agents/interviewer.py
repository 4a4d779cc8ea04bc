"""Interviewer conversation: persona system prompt plus a rolling message list."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel

from agents.types import Persona
from llm_gateway import ModelProvider, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_INDUSTRY = "Technology"
REPLY_OPTIONS: Dict[str, Any] = {"max_tokens": 300, "temperature": 0.7}


class InterviewContext(BaseModel):
    position: str
    company: str
    interview_stage: str
    persona: Persona
    industry: Optional[str] = None
    job_description: Optional[str] = None


def build_system_prompt(context: InterviewContext) -> str:
    persona = context.persona
    industry = context.industry or DEFAULT_INDUSTRY
    lines = [
        f"You are {persona.name}, a {persona.role} conducting a {context.interview_stage} interview "
        f"for the {context.position} position at {context.company}.",
        "",
        "PERSONALITY & STYLE:",
        f"- {persona.personality}",
        f"- Communication style: {persona.communication_style}",
        f"- Background: {persona.background}",
        "",
        "IMPORTANT CONVERSATION RULES:",
        "- Do NOT introduce yourself again if you have already done so in the conversation",
        "- Build upon the conversation naturally without repeating previous information",
        "- If the candidate responds to your introduction, acknowledge it and continue with the interview",
        "- Stay in character throughout the entire conversation",
        "",
        "INTERVIEW CONTEXT:",
        f"- Position: {context.position}",
        f"- Company: {context.company}",
        f"- Industry: {industry}",
        f"- Interview Stage: {context.interview_stage}",
    ]
    if context.job_description:
        lines.append(f"- Job Description: {context.job_description}")
    lines.extend(["", "OBJECTIVES FOR THIS SESSION:"])
    lines.extend(f"- {objective}" for objective in persona.objectives)
    lines.extend(
        [
            "",
            "INTERVIEW GUIDELINES:",
            f"1. Stay in character as {persona.name} throughout the conversation",
            f"2. Ask relevant, realistic interview questions appropriate for the {context.interview_stage} stage",
            f"3. For industry specialist interviews, focus on {industry.lower()}-specific knowledge, regulations "
            "and best practices",
            "4. Respond naturally to the candidate's answers with follow-up questions",
            "5. Keep responses conversational and authentic (2-3 sentences typically)",
            "6. Gradually increase difficulty based on the candidate's responses",
            "7. For behavioral questions, gently guide candidates toward the STAR method (Situation, Task, "
            'Action, Result) with follow-ups like "What was the outcome of that approach?"',
            "8. End the interview naturally after covering key areas",
            "",
            "Begin the interview with a warm greeting and brief introduction, then proceed with interview "
            "questions appropriate for this stage.",
        ]
    )
    return "\n".join(lines)


def greeting_prompt(context: InterviewContext) -> str:
    persona = context.persona
    return "\n".join(
        [
            f"You are {persona.name}, {persona.role} at {context.company}.",
            f"This is the start of a {context.interview_stage} interview for the {context.position} position.",
            "",
            "Generate a warm, professional opening greeting that:",
            "1. Introduces yourself briefly",
            "2. Acknowledges the candidate's interest in the position",
            "3. Sets a positive, encouraging tone",
            "4. Transitions smoothly into the first interview question",
            "",
            f"Keep it conversational and authentic to your personality: {persona.personality}",
            f"Communication style: {persona.communication_style}",
            "",
            "This should be 2-3 sentences maximum.",
        ]
    )


class InterviewConversation:
    """In-memory interviewer session; persistence belongs to the caller."""

    def __init__(self, system_prompt: str, provider: ModelProvider, options: Optional[Dict[str, Any]] = None) -> None:
        self._provider = provider
        self._options = dict(REPLY_OPTIONS if options is None else options)
        self._messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]

    @classmethod
    def from_transcript(
        cls,
        system_prompt: str,
        provider: ModelProvider,
        messages: Iterable[Any],
        options: Optional[Dict[str, Any]] = None,
    ) -> "InterviewConversation":
        """Seed the history from an already-trimmed transcript in one step."""

        conversation = cls(system_prompt, provider, options)
        for message in messages:
            role, content = _role_content(message)
            conversation._messages.append({"role": role, "content": content})
        return conversation

    def respond(self, user_text: str) -> str:
        self._messages.append({"role": "user", "content": user_text})
        try:
            generation = self._provider.generate(list(self._messages), dict(self._options))
            reply = generation.text.strip()
            if not reply:
                raise ProviderError("Model returned an empty reply")
        except Exception:
            self._messages.pop()
            raise
        self._messages.append({"role": "assistant", "content": reply})
        return reply

    def history(self) -> List[Dict[str, str]]:
        return [dict(message) for message in self._messages if message["role"] != "system"]


def _role_content(message: Any) -> Tuple[str, str]:
    if isinstance(message, Mapping):
        return str(message["role"]), str(message["content"])
    return str(message.role), str(message.content)
