"""FastAPI routes for practice session control."""
from __future__ import annotations

import base64
import logging
from contextlib import contextmanager
from typing import Iterator, List

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile

from agents.types import ConversationMessage, JobDescription, PracticeSession
from api.schemas import (
    CreateSessionReq,
    EndResp,
    HealthResp,
    JobDescriptionReq,
    MessageResp,
    SendMessageReq,
    SessionView,
    SpeechToTextResp,
    StartResp,
    TextToSpeechReq,
    TranscriptResp,
    VoiceMessageResp,
)
from llm_gateway import ProviderError
from services.errors import NotFoundError, PracticeError
from services.sessions import PracticeService
from speech import TranscriptionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/practice")


def get_service(request: Request) -> PracticeService:
    return request.app.state.practice_service


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:  # Map domain errors onto HTTP status codes
    try:
        yield
    except HTTPException:
        raise
    except TranscriptionError as exc:
        logger.warning("Audio rejected during %s: %s", action, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProviderError as exc:
        logger.exception("Provider request failed during %s", action)
        raise HTTPException(status_code=502, detail=f"Provider request failed: {exc}") from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except PracticeError as exc:
        logger.warning("Rejected %s: %s", action, exc)
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error during %s", action)
        raise HTTPException(status_code=500, detail=f"Unable to {action}") from exc


@router.get("/health", response_model=HealthResp)
def health() -> HealthResp:
    return HealthResp()


@router.post("/sessions", response_model=SessionView, status_code=201)
def create_session(req: CreateSessionReq, service: PracticeService = Depends(get_service)) -> SessionView:
    with _translate_errors("create session"):
        session, greeting = service.create_session(
            user_id=req.user_id,
            position=req.position,
            company=req.company,
            interview_stage=req.interview_stage,
            industry=req.industry,
            job_description_id=req.job_description_id,
            language=req.language,
            voice=req.voice,
        )
    return SessionView(**session.model_dump(), has_greeting=greeting is not None)


@router.get("/sessions/user/{user_id}", response_model=List[PracticeSession])
def list_user_sessions(user_id: str, service: PracticeService = Depends(get_service)) -> List[PracticeSession]:
    with _translate_errors("list sessions"):
        return service.list_user_sessions(user_id)


@router.get("/sessions/{session_id}", response_model=SessionView)
def get_session(session_id: str, service: PracticeService = Depends(get_service)) -> SessionView:
    with _translate_errors("load session"):
        session, messages = service.get_session(session_id)
    return SessionView(**session.model_dump(), messages=messages)


@router.post("/sessions/{session_id}/start", response_model=StartResp)
def start_session(session_id: str, service: PracticeService = Depends(get_service)) -> StartResp:
    with _translate_errors("start session"):
        session, greeting = service.start_session(session_id)
    return StartResp(session=session, greeting=greeting)


@router.post("/sessions/{session_id}/message", response_model=MessageResp)
def send_message(
    session_id: str,
    req: SendMessageReq,
    service: PracticeService = Depends(get_service),
) -> MessageResp:
    with _translate_errors("send message"):
        result = service.send_message(session_id, req.message)
    return MessageResp(**result)


@router.post("/sessions/{session_id}/end", response_model=EndResp)
def end_session(session_id: str, service: PracticeService = Depends(get_service)) -> EndResp:
    with _translate_errors("end session"):
        session, feedback = service.end_session(session_id)
    return EndResp(session=session, feedback=feedback)


@router.get("/sessions/{session_id}/messages", response_model=List[ConversationMessage])
def list_messages(session_id: str, service: PracticeService = Depends(get_service)) -> List[ConversationMessage]:
    with _translate_errors("list messages"):
        return service.list_messages(session_id)


@router.get("/sessions/{session_id}/transcript/download")
def download_transcript(session_id: str, service: PracticeService = Depends(get_service)) -> Response:
    with _translate_errors("generate transcript"):
        text, filename, _ = service.transcript(session_id)
    return Response(
        content=text,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/sessions/{session_id}/transcript", response_model=TranscriptResp)
def transcript(session_id: str, service: PracticeService = Depends(get_service)) -> TranscriptResp:
    with _translate_errors("generate transcript"):
        text, filename, session = service.transcript(session_id)
    return TranscriptResp(transcript=text, filename=filename, session=session)


@router.post("/sessions/{session_id}/speech-to-text", response_model=SpeechToTextResp)
def speech_to_text(
    session_id: str,
    audio: UploadFile = File(...),
    service: PracticeService = Depends(get_service),
) -> SpeechToTextResp:
    data = audio.file.read()
    with _translate_errors("transcribe audio"):
        text = service.speech_to_text(session_id, data, audio.filename or "")
    return SpeechToTextResp(text=text, session_id=session_id)


@router.post("/sessions/{session_id}/text-to-speech")
def text_to_speech(
    session_id: str,
    req: TextToSpeechReq,
    service: PracticeService = Depends(get_service),
) -> Response:
    with _translate_errors("synthesize speech"):
        audio, voice = service.text_to_speech(session_id, req.text, req.voice)
    return Response(content=audio, media_type="audio/mpeg", headers={"X-Voice": voice})


@router.post("/sessions/{session_id}/voice-message", response_model=VoiceMessageResp)
def voice_message(
    session_id: str,
    audio: UploadFile = File(...),
    service: PracticeService = Depends(get_service),
) -> VoiceMessageResp:
    data = audio.file.read()
    with _translate_errors("process voice message"):
        result = service.voice_message(session_id, data, audio.filename or "")
    return VoiceMessageResp(
        user_message=result["user_message"],
        ai_response=result["ai_response"],
        warning=result["warning"],
        audio_buffer=base64.b64encode(result["audio"]).decode("ascii") if result["audio"] else None,
        voice=result["voice"],
    )


@router.post("/job-descriptions", response_model=JobDescription, status_code=201)
def register_job_description(req: JobDescriptionReq, service: PracticeService = Depends(get_service)) -> JobDescription:
    with _translate_errors("register job description"):
        return service.register_job_description(
            user_id=req.user_id,
            file_name=req.file_name,
            extracted_text=req.extracted_text,
            mime_type=req.mime_type,
        )


@router.get("/job-descriptions/user/{user_id}", response_model=List[JobDescription])
def list_job_descriptions(user_id: str, service: PracticeService = Depends(get_service)) -> List[JobDescription]:
    with _translate_errors("list job descriptions"):
        return service.list_job_descriptions(user_id)


@router.get("/job-descriptions/{job_description_id}", response_model=JobDescription)
def get_job_description(job_description_id: str, service: PracticeService = Depends(get_service)) -> JobDescription:
    with _translate_errors("load job description"):
        return service.get_job_description(job_description_id)
