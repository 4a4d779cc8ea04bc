import json
import os
import sys
import tempfile
from pathlib import Path

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fastapi.testclient import TestClient

from api_server import create_app
from config.settings import settings
from llm_gateway import Generation, ProviderError
from services.sessions import PracticeService
from speech import validate_audio
from storage.migrate import migrate

PERSONA_JSON = json.dumps(
    {
        "name": "Mei Ling Ong",
        "role": "Engineering Manager",
        "personality": "Calm and curious",
        "communicationStyle": "Direct but warm",
        "background": "Engineering Manager at Acme with 12 years in payments",
        "objectives": ["Assess ownership", "Probe system design", "Check collaboration", "Gauge impact"],
    }
)

FEEDBACK_JSON = json.dumps(
    {
        "overallScore": 99,
        "criteriaScores": {
            "relevance": 4,
            "structured": 3,
            "specific": 4,
            "honest": 5,
            "confident": 4,
            "aligned": 3,
            "outcomeOriented": 4,
        },
        "criteriaFeedback": {
            name: {"score": 3, "feedback": f"{name} looked fine", "suggestions": [f"Improve {name}"]}
            for name in ("relevance", "structured", "specific", "honest", "confident", "aligned", "outcomeOriented")
        },
        "starAnalysis": {
            "situation": {"present": True, "score": 4, "feedback": "Clear context"},
            "task": {"present": True, "score": 3, "feedback": "Task stated"},
            "action": {"present": True, "score": 4, "feedback": "Actions detailed"},
            "result": {"present": False, "score": 2, "feedback": "Results missing"},
            "overallStarScore": 3,
        },
        "feedback": "Solid interview overall.",
        "improvements": ["Quantify results", "Tighten answers"],
    }
)


class ScriptedProvider:
    """Model provider returning queued replies, then a default; exceptions in the queue are raised."""

    name = "scripted"

    def __init__(self, *replies, default="Could you tell me more about that?"):
        self.replies = list(replies)
        self.default = default
        self.calls = []

    def generate(self, history, options=None):
        self.calls.append({"history": [dict(m) for m in history], "options": dict(options or {})})
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return Generation(text=reply)


class FakeSpeech:
    def __init__(self, transcript="I led the migration and we cut latency by 40%.", audio=b"ID3fake-mp3"):
        self.transcript = transcript
        self.audio = audio
        self.synthesized = []

    def speech_to_text(self, audio, filename):
        validate_audio(audio, filename)
        return self.transcript

    def text_to_speech(self, text, voice="nova"):
        self.synthesized.append((text, voice))
        return self.audio


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture
def providers():
    return {
        "interviewer": ScriptedProvider("Hello, I'm Mei Ling. Tell me about yourself."),
        "persona": ScriptedProvider(default=PERSONA_JSON),
        "feedback": ScriptedProvider(default=FEEDBACK_JSON),
        "speech": FakeSpeech(),
    }


@pytest.fixture
def service(providers):
    return PracticeService(**providers)


@pytest.fixture
def client(service):
    return TestClient(create_app(service=service))


@pytest.fixture
def failing():
    return ProviderError("upstream timed out")


@pytest.fixture
def scripted():
    return ScriptedProvider
