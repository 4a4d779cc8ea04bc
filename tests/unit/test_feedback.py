from __future__ import annotations

import json

from agents.feedback import FEEDBACK_OPTIONS, build_feedback_prompt, generate_feedback
from agents.types import CRITERIA, ConversationMessage
from llm_gateway import ProviderError
from conftest import FEEDBACK_JSON


def _messages():
    turns = [
        ("assistant", "Tell me about a project you led."),
        ("user", "I led the billing migration at Acme and we cut failed payments by 30%."),
        ("assistant", "What was hardest?"),
        ("user", "Honestly, aligning three teams. I learned to write shorter design docs."),
    ]
    return [
        ConversationMessage(
            id=f"m{index}",
            session_id="s1",
            role=role,
            content=content,
            message_order=index,
            timestamp="2026-01-01T10:00:00+00:00",
        )
        for index, (role, content) in enumerate(turns, start=1)
    ]


def test_prompt_lists_every_criterion_and_the_conversation():
    prompt = build_feedback_prompt(_messages())
    for name in CRITERIA:
        assert f'"{name}"' in prompt
    assert "user: Honestly, aligning three teams." in prompt
    assert "total 35 max" in prompt


def test_model_feedback_is_normalized(scripted):
    provider = scripted(FEEDBACK_JSON)
    record = generate_feedback(provider, _messages())
    assert record.source == "model"
    assert record.criteria_scores == {
        "relevance": 4,
        "structured": 3,
        "specific": 4,
        "honest": 5,
        "confident": 4,
        "aligned": 3,
        "outcomeOriented": 4,
    }
    # Declared overallScore is ignored in favour of the criteria sum.
    assert record.overall_score == 27
    assert record.criteria_feedback["honest"].score == 5
    assert provider.calls[0]["options"] == FEEDBACK_OPTIONS


def test_provider_error_synthesizes_record(scripted):
    record = generate_feedback(scripted(ProviderError("timeout")), _messages(), role_terms=["billing"])
    assert record.source == "synthesized"
    assert record.overall_score == sum(record.criteria_scores.values())
    assert 7 <= record.overall_score <= 35
    assert record.feedback.startswith(f"Overall score {record.overall_score}/35")


def test_partial_model_output_is_marked_partial(scripted):
    raw = json.loads(FEEDBACK_JSON)
    del raw["improvements"]
    raw["criteriaScores"]["aligned"] = 9
    record = generate_feedback(scripted(json.dumps(raw)), _messages())
    assert record.source == "partial"
    assert record.provenance["criteria.aligned.score"] == "synthesized"
    assert record.provenance["improvements"] == "synthesized"
    assert 1 <= record.criteria_scores["aligned"] <= 5


def test_empty_transcript_skips_provider(scripted):
    provider = scripted(FEEDBACK_JSON)
    record = generate_feedback(provider, [])
    assert provider.calls == []
    assert record.source == "synthesized"
    assert record.overall_score == 7
