"""Pydantic schemas for the practice session API."""
from __future__ import annotations

from typing import List, Optional

from agents.types import CamelModel, ConversationMessage, FeedbackRecord, PracticeSession


class CreateSessionReq(CamelModel):
    user_id: str
    position: str
    company: str
    interview_stage: str
    industry: Optional[str] = None
    job_description_id: Optional[str] = None
    language: str = "English"
    voice: Optional[str] = None


class SendMessageReq(CamelModel):
    message: Optional[str] = None


class TextToSpeechReq(CamelModel):
    text: str
    voice: Optional[str] = None


class JobDescriptionReq(CamelModel):
    user_id: str
    file_name: str
    extracted_text: str
    mime_type: str = "text/plain"


class SessionView(PracticeSession):
    has_greeting: Optional[bool] = None
    messages: Optional[List[ConversationMessage]] = None


class StartResp(CamelModel):
    session: PracticeSession
    greeting: Optional[ConversationMessage] = None


class MessageResp(CamelModel):
    user_message: ConversationMessage
    ai_response: ConversationMessage
    warning: Optional[str] = None


class EndResp(CamelModel):
    session: PracticeSession
    feedback: FeedbackRecord


class TranscriptResp(CamelModel):
    transcript: str
    filename: str
    session: PracticeSession


class SpeechToTextResp(CamelModel):
    text: str
    session_id: str


class VoiceMessageResp(MessageResp):
    audio_buffer: Optional[str] = None
    voice: str


class HealthResp(CamelModel):
    status: str = "ok"
