"""Feedback normalization onto the fixed 7-criterion scale.

``normalize_feedback`` is total: whatever the feedback model returned (a
mapping, a JSON-ish string, ``None`` or garbage) it produces a
``FeedbackRecord`` whose scores are integers in [1, 5], whose overall score
is exactly their sum and whose text fields are never empty. Every field
records whether it came from the model or was synthesized from heuristics
over the candidate's own words.
"""
from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from agents.types import (
    CRITERIA,
    STAR_COMPONENTS,
    CriterionFeedback,
    FeedbackRecord,
    StarAnalysis,
    StarComponent,
)
from llm_gateway import parse_json_object

FALLBACK_FEEDBACK: Dict[str, str] = {
    "relevance": "Answer relevance needs improvement",
    "structured": "STAR structure could be better organized",
    "specific": "Responses need more specific details",
    "honest": "Authenticity comes through well",
    "confident": "Confidence level is appropriate",
    "aligned": "Role alignment could be stronger",
    "outcomeOriented": "Focus more on results and outcomes",
}

FALLBACK_SUGGESTIONS: Dict[str, List[str]] = {
    "relevance": ["Be more specific in addressing the question", "Stay focused on what was asked"],
    "structured": ["Use clear STAR methodology", "Organize responses with Situation, Task, Action, Result"],
    "specific": ["Include specific examples and numbers", "Provide concrete details and outcomes"],
    "honest": ["Continue being genuine", "Share both successes and challenges"],
    "confident": ["Speak with more conviction", "Balance confidence with humility"],
    "aligned": ["Connect experiences to role requirements", "Demonstrate relevant skills more clearly"],
    "outcomeOriented": ["Emphasize measurable results", "Share specific achievements and impact"],
}

STAR_MISSING_FEEDBACK: Dict[str, str] = {
    "situation": "No situation context provided",
    "task": "Task/objective not clearly defined",
    "action": "Specific actions not detailed",
    "result": "Results/outcomes not shared",
}

STAR_PRESENT_FEEDBACK: Dict[str, str] = {
    "situation": "Situation context was described",
    "task": "Task or objective was identified",
    "action": "Actions taken were described",
    "result": "Results or outcomes were mentioned",
}

STAR_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "situation": ("situation", "context", "background", "challenge"),
    "task": ("task", "objective", "goal", "responsible"),
    "action": ("action", "did", "implemented", "decided", "built", "led"),
    "result": ("result", "outcome", "impact", "achieved"),
}

SPECIFICITY_WORDS = (
    "specific",
    "example",
    "instance",
    "experience",
    "project",
    "company",
    "team",
    "achieved",
    "implemented",
    "developed",
)
OUTCOME_WORDS = (
    "result",
    "outcome",
    "impact",
    "achieved",
    "improved",
    "increased",
    "reduced",
    "delivered",
    "saved",
    "grew",
)
HEDGE_PHRASES = ("maybe", "perhaps", "i think", "i guess", "not sure", "kind of", "sort of", "probably")
CANDOUR_WORDS = ("honestly", "mistake", "learned", "failed", "difficult", "struggled", "admit")
STOPWORDS = {"that", "this", "with", "have", "will", "been", "from", "they", "were", "said", "their", "about", "which"}

_WORD = re.compile(r"[A-Za-z0-9']+")
_DIGIT = re.compile(r"\d")
_PROPER_NOUN = re.compile(r"(?<=[a-z,] )[A-Z][a-z]{2,}")


def normalize_feedback(
    raw: Any,
    raw_text: str = "",
    response_text: str = "",
    role_terms: Iterable[str] = (),
) -> FeedbackRecord:
    """Coerce raw model feedback into a bounded record. Never raises."""

    data = _resolve_raw(raw, raw_text)
    signals = _Signals(response_text or "", role_terms)
    provenance: Dict[str, str] = {}

    raw_scores = _mapping(data.get("criteriaScores"))
    raw_feedback = _mapping(data.get("criteriaFeedback"))
    scores: Dict[str, int] = {}
    criteria_feedback: Dict[str, CriterionFeedback] = {}
    for criterion in CRITERIA:
        entry = raw_feedback.get(criterion)
        entry_map = _mapping(entry)
        score = coerce_score(raw_scores.get(criterion))
        if score is None:
            score = coerce_score(entry_map.get("score"))
        if score is None:
            score = signals.score(criterion)
            provenance[f"criteria.{criterion}.score"] = "synthesized"
        else:
            provenance[f"criteria.{criterion}.score"] = "model"

        text = _text(entry_map.get("feedback")) or (_text(entry) if isinstance(entry, str) else None)
        provenance[f"criteria.{criterion}.feedback"] = "model" if text else "synthesized"
        suggestions = _string_list(entry_map.get("suggestions"))
        provenance[f"criteria.{criterion}.suggestions"] = "model" if suggestions else "synthesized"

        scores[criterion] = score
        criteria_feedback[criterion] = CriterionFeedback(
            score=score,
            feedback=text or FALLBACK_FEEDBACK[criterion],
            suggestions=suggestions or list(FALLBACK_SUGGESTIONS[criterion]),
        )

    overall = sum(scores.values())

    summary = _text(data.get("feedback"))
    provenance["feedback"] = "model" if summary else "synthesized"
    if not summary:
        summary = _synthesize_summary(scores, overall)

    improvements = _string_list(data.get("improvements"))
    provenance["improvements"] = "model" if improvements else "synthesized"
    if not improvements:
        improvements = _synthesize_improvements(scores)

    star, star_from_model = _normalize_star(_mapping(data.get("starAnalysis")), signals)
    provenance["starAnalysis"] = "model" if star_from_model else "synthesized"

    return FeedbackRecord(
        overall_score=overall,
        criteria_scores=scores,
        criteria_feedback=criteria_feedback,
        star_analysis=star,
        feedback=summary,
        improvements=improvements,
        provenance=provenance,
        source=_aggregate(provenance.values()),
    )


def coerce_score(value: Any) -> Optional[int]:
    """Accept a 1..5 number or numeric string, rounded half-up; otherwise None."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    elif isinstance(value, int):
        if value < 1 or value > 5:
            return None
        number = float(value)
    elif isinstance(value, float):
        number = value
    else:
        return None
    if not math.isfinite(number) or number < 1 or number > 5:
        return None
    return int(math.floor(number + 0.5))


def role_terms_from(*texts: Optional[str], limit: int = 100) -> List[str]:
    """Distinctive words from the position title and job description."""

    terms: List[str] = []
    seen = set()
    for text in texts:
        if not text:
            continue
        for word in _WORD.findall(text.lower())[:limit]:
            if len(word) > 4 and word not in STOPWORDS and word not in seen:
                seen.add(word)
                terms.append(word)
    return terms


def _clamp(value: float) -> int:
    return max(1, min(5, int(math.floor(value + 0.5))))


class _Signals:  # Heuristic features of the candidate's answers
    def __init__(self, text: str, role_terms: Iterable[str]) -> None:
        self.lower = text.lower()
        self.words = _WORD.findall(self.lower)
        self.word_set = set(self.words)
        self.word_count = len(self.words)
        self.has_digits = bool(_DIGIT.search(text))
        self.proper_nouns = len(_PROPER_NOUN.findall(text))
        terms = [t.lower() for t in role_terms if t]
        self.role_terms = terms
        self.role_overlap = sum(1 for term in terms if term in self.word_set)
        self.star_present = {
            component: any(word in self.lower for word in keywords)
            for component, keywords in STAR_KEYWORDS.items()
        }
        self.specificity_hits = sum(1 for word in SPECIFICITY_WORDS if word in self.lower)
        self.outcome_hits = sum(1 for word in OUTCOME_WORDS if word in self.lower)
        self.hedges = sum(self.lower.count(phrase) for phrase in HEDGE_PHRASES)
        self.candour_hits = sum(1 for word in CANDOUR_WORDS if word in self.lower)

    def score(self, criterion: str) -> int:
        if self.word_count == 0:
            return 1
        if criterion == "relevance":
            value = 3.0
            if self.word_count < 50:
                value -= 1
            if self.role_terms:
                value += 1 if self.role_overlap >= 2 else (0 if self.role_overlap else -1)
            return _clamp(value)
        if criterion == "structured":
            return _clamp(1 + sum(self.star_present.values()))
        if criterion == "specific":
            value = 2 + min(self.specificity_hits // 2, 2) + (1 if self.has_digits or self.proper_nouns >= 2 else 0)
            return _clamp(value)
        if criterion == "honest":
            return _clamp(3 + (1 if self.candour_hits else 0))
        if criterion == "confident":
            value = 3.0 - self.hedges // 2
            if self.word_count >= 50 and not self.hedges:
                value += 1
            return _clamp(value)
        if criterion == "aligned":
            if not self.role_terms:
                return 3
            if self.role_overlap == 0:
                return 2
            return _clamp(3 + (2 if self.role_overlap >= 6 else 1 if self.role_overlap >= 3 else 0))
        if criterion == "outcomeOriented":
            return _clamp(2 + min(self.outcome_hits, 2) + (1 if self.has_digits else 0))
        return 3


def _resolve_raw(raw: Any, raw_text: str) -> Dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str):
        return parse_json_object(raw) or {}
    if raw is None and raw_text:
        return parse_json_object(raw_text) or {}
    return {}


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _normalize_star(raw: Mapping[str, Any], signals: _Signals) -> Tuple[StarAnalysis, bool]:
    components: Dict[str, StarComponent] = {}
    from_model = bool(raw)
    for name in STAR_COMPONENTS:
        entry = _mapping(raw.get(name))
        present = entry.get("present")
        if not isinstance(present, bool):
            present = signals.star_present[name]
            from_model = False
        score = coerce_score(entry.get("score"))
        if score is None:
            score = 3 if present else 1
            from_model = False
        text = _text(entry.get("feedback"))
        if text is None:
            text = STAR_PRESENT_FEEDBACK[name] if present else STAR_MISSING_FEEDBACK[name]
            from_model = False
        components[name] = StarComponent(present=present, score=score, feedback=text)
    overall = coerce_score(raw.get("overallStarScore"))
    if overall is None:
        overall = _clamp(sum(c.score for c in components.values()) / len(components))
        from_model = False
    return StarAnalysis(overall_star_score=overall, **components), from_model


def _ranked(scores: Mapping[str, int]) -> List[str]:
    return sorted(CRITERIA, key=lambda name: (scores[name], CRITERIA.index(name)))


def _synthesize_summary(scores: Mapping[str, int], overall: int) -> str:
    ranked = _ranked(scores)
    weakest, strongest = ranked[0], ranked[-1]
    return (
        f"Overall score {overall}/35. Your strongest area was {_label(strongest)} "
        f"and the biggest opportunity is {_label(weakest)}."
    )


def _synthesize_improvements(scores: Mapping[str, int]) -> List[str]:
    return [FALLBACK_SUGGESTIONS[name][0] for name in _ranked(scores)[:3]]


def _label(criterion: str) -> str:
    return "outcome orientation" if criterion == "outcomeOriented" else criterion


def _aggregate(sources: Iterable[str]) -> str:
    values = set(sources)
    if values == {"model"}:
        return "model"
    if values == {"synthesized"} or not values:
        return "synthesized"
    return "partial"


__all__ = [
    "FALLBACK_FEEDBACK",
    "FALLBACK_SUGGESTIONS",
    "coerce_score",
    "normalize_feedback",
    "role_terms_from",
]
