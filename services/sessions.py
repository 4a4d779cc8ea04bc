"""Practice session operations composing personas, conversation, feedback and the store."""
from __future__ import annotations

import logging
import threading
import weakref
from typing import Any, Dict, List, Optional, Tuple

from agents.feedback import generate_feedback
from agents.interviewer import InterviewContext, InterviewConversation, build_system_prompt, greeting_prompt
from agents.persona_manager import generate_persona
from agents.types import INTERVIEW_STAGES, ConversationMessage, FeedbackRecord, JobDescription, PracticeSession
from config.settings import settings
from llm_gateway import ModelProvider, ProviderError
from observability import log_event
from services import stages
from services.errors import NotFoundError, ValidationError
from services.history import optimize_history
from services.input_policy import apply_input_policy
from services.scoring import role_terms_from
from services.transcript import render_transcript, transcript_filename
from speech import SpeechProvider, voice_for
from storage import job_descriptions as jd_store
from storage import messages as message_store
from storage import sessions as session_store
from storage.sqlite import get_conn

logger = logging.getLogger(__name__)

# Entries disappear once no request holds the lock
_SESSION_LOCKS: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_SESSION_LOCKS_GUARD = threading.Lock()

AUDIO_UNAVAILABLE_WARNING = "Audio reply unavailable; showing the text response only"


def _lock_for(session_id: str) -> threading.Lock:
    with _SESSION_LOCKS_GUARD:
        lock = _SESSION_LOCKS.get(session_id)
        if lock is None:
            lock = threading.Lock()
            _SESSION_LOCKS[session_id] = lock
    return lock


class PracticeService:
    """Session lifecycle over injected model and speech providers."""

    def __init__(
        self,
        interviewer: ModelProvider,
        persona: Optional[ModelProvider] = None,
        feedback: Optional[ModelProvider] = None,
        speech: Optional[SpeechProvider] = None,
    ) -> None:
        self.interviewer = interviewer
        self.persona = persona or interviewer
        self.feedback = feedback or interviewer
        self.speech = speech

    # -- sessions -----------------------------------------------------------

    def create_session(
        self,
        *,
        user_id: str,
        position: str,
        company: str,
        interview_stage: str,
        industry: Optional[str] = None,
        job_description_id: Optional[str] = None,
        language: str = "English",
        voice: Optional[str] = None,
    ) -> Tuple[PracticeSession, Optional[ConversationMessage]]:
        """Create a session and try to open it with a greeting.

        When the greeting call fails the session stays in ``setup``; the
        client can retry with ``start_session`` or simply send a message.
        """

        for label, value in (("userId", user_id), ("position", position), ("company", company)):
            if not value or not value.strip():
                raise ValidationError(f"{label} is required")
        if interview_stage not in INTERVIEW_STAGES:
            raise ValidationError(f"Unknown interview stage '{interview_stage}'")
        job_description = self._job_description(job_description_id)

        persona, used_fallback = generate_persona(
            self.persona,
            position=position,
            company=company,
            interview_stage=interview_stage,
            industry=industry,
            job_description=job_description.extracted_text if job_description else None,
            user_id=user_id,
        )
        session = session_store.insert_session(
            user_id=user_id,
            position=position.strip(),
            company=company.strip(),
            industry=industry,
            interview_stage=interview_stage,
            job_description_id=job_description_id,
            language=language,
            persona=persona,
            voice=voice_for(interview_stage, voice),
        )
        log_event(
            "session_created",
            session.id,
            user_id=user_id,
            interview_stage=interview_stage,
            persona_fallback=used_fallback,
        )
        try:
            with _lock_for(session.id):
                greeting = self._open(session, job_description)
        except ProviderError as exc:
            logger.warning("Greeting generation failed for session %s; leaving it in setup: %s", session.id, exc)
            return session, None
        return self._require_session(session.id), greeting

    def start_session(self, session_id: str) -> Tuple[PracticeSession, Optional[ConversationMessage]]:
        """setup -> active, generating the greeting when the transcript is empty."""

        with _lock_for(session_id):
            session = self._require_session(session_id)
            stages.require_stage(session, "setup")
            greeting = self._open(session, self._job_description(session.job_description_id))
            return self._require_session(session_id), greeting

    def send_message(self, session_id: str, text: Optional[str]) -> Dict[str, Any]:
        accepted, warning = apply_input_policy(text)
        with _lock_for(session_id):
            session = self._require_session(session_id)
            stages.require_stage(session, *stages.SEND_STAGES)
            history = message_store.list_messages(session_id)
            trimmed = optimize_history(history, settings.MAX_TOTAL_TOKENS, settings.MAX_CONVERSATION_HISTORY)
            context = self._context(session, self._job_description(session.job_description_id))
            conversation = InterviewConversation.from_transcript(build_system_prompt(context), self.interviewer, trimmed)
            reply = conversation.respond(accepted)

            with get_conn(immediate=True) as conn:
                current = session_store.get_session(session_id, conn=conn)
                if current is None:
                    raise NotFoundError(f"Session {session_id} not found")
                stages.require_stage(current, *stages.SEND_STAGES)
                if current.stage == "setup":
                    stages.activate(session_id, conn=conn)
                user_message, ai_message = message_store.append_messages(
                    session_id, [("user", accepted), ("assistant", reply)], conn=conn
                )
        log_event("messages_appended", session_id, count=2, last_order=ai_message.message_order)
        return {"user_message": user_message, "ai_response": ai_message, "warning": warning}

    def end_session(self, session_id: str) -> Tuple[PracticeSession, FeedbackRecord]:
        """active -> completed with normalized feedback over the trimmed transcript."""

        with _lock_for(session_id):
            session = self._require_session(session_id)
            stages.require_stage(session, "active")
            history = message_store.list_messages(session_id)
            trimmed = optimize_history(history, settings.MAX_TOTAL_TOKENS, settings.MAX_CONVERSATION_HISTORY)
            job_description = self._job_description(session.job_description_id)
            terms = role_terms_from(session.position, job_description.extracted_text if job_description else None)
            record = generate_feedback(self.feedback, trimmed, role_terms=terms, session_id=session_id)
            stages.complete(session_id, session.started_at, record)
        log_event(
            "feedback_generated",
            session_id,
            source=record.source,
            overall_score=record.overall_score,
        )
        return self._require_session(session_id), record

    def get_session(self, session_id: str) -> Tuple[PracticeSession, List[ConversationMessage]]:
        session = self._require_session(session_id)
        return session, message_store.list_messages(session_id)

    def list_user_sessions(self, user_id: str) -> List[PracticeSession]:
        return session_store.list_user_sessions(user_id)

    def list_messages(self, session_id: str) -> List[ConversationMessage]:
        self._require_session(session_id)
        return message_store.list_messages(session_id)

    def transcript(self, session_id: str) -> Tuple[str, str, PracticeSession]:
        session = self._require_session(session_id)
        text = render_transcript(session, message_store.list_messages(session_id))
        return text, transcript_filename(session), session

    # -- speech -------------------------------------------------------------

    def speech_to_text(self, session_id: str, audio: bytes, filename: str) -> str:
        session = self._require_session(session_id)
        stages.require_stage(session, *stages.SEND_STAGES)
        return self._speech().speech_to_text(audio, filename)

    def text_to_speech(self, session_id: str, text: str, voice: Optional[str] = None) -> Tuple[bytes, str]:
        session = self._require_session(session_id)
        if not text or not text.strip():
            raise ValidationError("Text is required")
        chosen = voice_for(session.interview_stage, voice or session.voice)
        return self._speech().text_to_speech(text, chosen), chosen

    def voice_message(self, session_id: str, audio: bytes, filename: str) -> Dict[str, Any]:
        """Transcribe, run the normal message path, then synthesize the reply.

        The turn is already stored when synthesis runs, so a synthesis failure
        returns the text reply without audio and a warning instead of an error.
        """

        text = self.speech_to_text(session_id, audio, filename)
        result = self.send_message(session_id, text)
        try:
            audio_out, voice = self.text_to_speech(session_id, result["ai_response"].content)
        except ProviderError as exc:
            logger.warning("Speech synthesis failed for session %s; returning text only: %s", session_id, exc)
            session = self._require_session(session_id)
            audio_out, voice = None, voice_for(session.interview_stage, session.voice)
            result["warning"] = "; ".join(filter(None, [result["warning"], AUDIO_UNAVAILABLE_WARNING]))
        result.update({"audio": audio_out, "voice": voice})
        return result

    # -- job descriptions ---------------------------------------------------

    def register_job_description(
        self,
        *,
        user_id: str,
        file_name: str,
        extracted_text: str,
        mime_type: str = "text/plain",
    ) -> JobDescription:
        if not extracted_text or not extracted_text.strip():
            raise ValidationError("extractedText is required")
        if not file_name or not file_name.strip():
            raise ValidationError("fileName is required")
        return jd_store.insert_job_description(
            user_id=user_id,
            file_name=file_name,
            extracted_text=extracted_text,
            mime_type=mime_type,
        )

    def get_job_description(self, job_description_id: str) -> JobDescription:
        record = jd_store.get_job_description(job_description_id)
        if record is None:
            raise NotFoundError(f"Job description {job_description_id} not found")
        return record

    def list_job_descriptions(self, user_id: str) -> List[JobDescription]:
        return jd_store.list_user_job_descriptions(user_id)

    # -- helpers ------------------------------------------------------------

    def _open(self, session: PracticeSession, job_description: Optional[JobDescription]) -> Optional[ConversationMessage]:
        context = self._context(session, job_description)
        greeting: Optional[ConversationMessage] = None
        if message_store.count_messages(session.id) == 0:
            conversation = InterviewConversation(build_system_prompt(context), self.interviewer)
            text = conversation.respond(greeting_prompt(context))
            with get_conn(immediate=True) as conn:
                if message_store.count_messages(session.id, conn=conn) == 0:
                    (greeting,) = message_store.append_messages(session.id, [("assistant", text)], conn=conn)
                stages.activate(session.id, conn=conn)
        else:
            stages.activate(session.id)
        return greeting

    def _context(self, session: PracticeSession, job_description: Optional[JobDescription]) -> InterviewContext:
        persona = session.persona
        if persona is None:
            raise ValidationError(f"Session {session.id} has no interviewer persona")
        return InterviewContext(
            position=session.position,
            company=session.company,
            interview_stage=session.interview_stage,
            persona=persona,
            industry=session.industry,
            job_description=job_description.extracted_text if job_description else None,
        )

    def _job_description(self, job_description_id: Optional[str]) -> Optional[JobDescription]:
        if not job_description_id:
            return None
        return self.get_job_description(job_description_id)

    def _require_session(self, session_id: str) -> PracticeSession:
        session = session_store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    def _speech(self) -> SpeechProvider:
        if self.speech is None:
            raise ProviderError("Speech provider is not configured")
        return self.speech
