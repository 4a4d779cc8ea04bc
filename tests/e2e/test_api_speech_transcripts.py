import base64

BASE = "/api/practice"
CREATE = {
    "userId": "u1",
    "position": "Product Manager",
    "company": "Acme Corp",
    "interviewStage": "executive-final",
}


def _session_id(client):
    return client.post(f"{BASE}/sessions", json=CREATE).json()["id"]


def test_transcript_download_headers(client):
    session_id = _session_id(client)
    resp = client.get(f"{BASE}/sessions/{session_id}/transcript/download")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    disposition = resp.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="interview-transcript-Product-Manager-Acme-Corp-')
    assert "Mei Ling Ong: Hello, I'm Mei Ling." in resp.text


def test_transcript_json_after_completion(client):
    session_id = _session_id(client)
    client.post(f"{BASE}/sessions/{session_id}/end")
    body = client.post(f"{BASE}/sessions/{session_id}/transcript").json()
    assert body["filename"].endswith(".txt")
    assert "Overall Score: 27/35" in body["transcript"]
    assert body["session"]["stage"] == "completed"


def test_speech_to_text(client):
    session_id = _session_id(client)
    resp = client.post(
        f"{BASE}/sessions/{session_id}/speech-to-text",
        files={"audio": ("answer.webm", b"webm-bytes", "audio/webm")},
    )
    assert resp.status_code == 200
    assert resp.json() == {"text": "I led the migration and we cut latency by 40%.", "sessionId": session_id}


def test_speech_to_text_rejects_bad_upload(client):
    session_id = _session_id(client)
    resp = client.post(
        f"{BASE}/sessions/{session_id}/speech-to-text",
        files={"audio": ("answer.txt", b"text", "text/plain")},
    )
    assert resp.status_code == 400
    assert "Unsupported audio format" in resp.json()["detail"]


def test_text_to_speech_uses_session_voice(client, providers):
    session_id = _session_id(client)
    resp = client.post(f"{BASE}/sessions/{session_id}/text-to-speech", json={"text": "Welcome"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.headers["x-voice"] == "fable"
    assert resp.content == b"ID3fake-mp3"
    assert providers["speech"].synthesized == [("Welcome", "fable")]

    override = client.post(f"{BASE}/sessions/{session_id}/text-to-speech", json={"text": "Hi", "voice": "alloy"})
    assert override.headers["x-voice"] == "alloy"


def test_voice_message_round_trip(client):
    session_id = _session_id(client)
    resp = client.post(
        f"{BASE}/sessions/{session_id}/voice-message",
        files={"audio": ("answer.mp3", b"mp3-bytes", "audio/mpeg")},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["userMessage"]["content"] == "I led the migration and we cut latency by 40%."
    assert body["aiResponse"]["messageOrder"] == 3
    assert base64.b64decode(body["audioBuffer"]) == b"ID3fake-mp3"
    assert body["voice"] == "fable"


def test_speech_rejected_after_completion(client):
    session_id = _session_id(client)
    client.post(f"{BASE}/sessions/{session_id}/end")
    resp = client.post(
        f"{BASE}/sessions/{session_id}/speech-to-text",
        files={"audio": ("answer.mp3", b"mp3-bytes", "audio/mpeg")},
    )
    assert resp.status_code == 400


def test_voice_message_keeps_text_reply_when_synthesis_fails(client, providers, failing):
    session_id = _session_id(client)

    def broken_tts(text, voice="nova"):
        raise failing

    providers["speech"].text_to_speech = broken_tts
    resp = client.post(
        f"{BASE}/sessions/{session_id}/voice-message",
        files={"audio": ("answer.mp3", b"mp3-bytes", "audio/mpeg")},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["audioBuffer"] is None
    assert body["voice"] == "fable"
    assert "Audio reply unavailable" in body["warning"]
    assert body["aiResponse"]["messageOrder"] == 3
    orders = [m["messageOrder"] for m in client.get(f"{BASE}/sessions/{session_id}/messages").json()]
    assert orders == [1, 2, 3]
