"""Interviewer persona generation with deterministic per-stage fallbacks."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from agents.types import Persona
from llm_gateway import ModelProvider, ProviderError, generate_model
from observability import log_event

logger = logging.getLogger(__name__)

DEFAULT_STAGE = "hiring-manager"
DEFAULT_INDUSTRY = "Technology"
JD_PROMPT_CHARS = 500
PERSONA_SYSTEM = "You are an expert at creating realistic interviewer personas. Always respond with valid JSON only."


class StageConfig(BaseModel):
    interviewer_type: str
    focus: str
    role_prefix: str
    requirements: str


STAGE_CONFIGS: Dict[str, StageConfig] = {
    "phone-screening": StageConfig(
        interviewer_type="HR Recruiter or Talent Acquisition Specialist",
        focus="Basic qualifications, culture fit, salary expectations",
        role_prefix="HR Recruiter, Talent Acquisition Specialist, or People Operations",
        requirements=(
            "Must be from HR/People Operations team. Focus on initial screening, background verification, "
            "cultural fit assessment, and basic qualifications. Should be friendly, efficient, and process-oriented."
        ),
    ),
    "functional-team": StageConfig(
        interviewer_type="Team Member or Peer",
        focus="Team dynamics, collaboration, role-specific skills",
        role_prefix="Team Member, Senior Team Member, or Team Lead",
        requirements=(
            "Must be a current team member or peer who would work directly with the candidate. Focus on "
            "collaboration skills, team dynamics, technical skills relevant to daily work, and cultural fit within the team."
        ),
    ),
    "hiring-manager": StageConfig(
        interviewer_type="Direct Manager or Department Head",
        focus="Leadership assessment, strategic thinking, team fit",
        role_prefix="Manager, Director, or Department Head",
        requirements=(
            "Must be the direct manager or someone in management hierarchy. Focus on leadership potential, "
            "strategic thinking, decision-making abilities, and how the candidate would contribute to team goals "
            "and company growth."
        ),
    ),
    "technical-specialist": StageConfig(
        interviewer_type="Industry Specialist or Subject Matter Expert",
        focus="Industry-specific expertise, domain knowledge, specialized skills",
        role_prefix="Senior Specialist, Subject Matter Expert, Principal Consultant, or Industry Expert",
        requirements=(
            "Must be a senior specialist with deep industry expertise. Focus on industry-specific knowledge, "
            "domain expertise, specialized methodologies, regulatory understanding, and industry best practices."
        ),
    ),
    "executive-final": StageConfig(
        interviewer_type="Senior Executive or C-Level",
        focus="Vision alignment, cultural impact, final decision",
        role_prefix="VP, SVP, Chief Officer, or Senior Executive",
        requirements=(
            "Must be a senior executive (VP level or above). Focus on strategic vision alignment, cultural impact, "
            "long-term thinking, executive presence, and final hiring decision."
        ),
    ),
}

# name, role, personality, communication style, background template, objectives
_FALLBACKS: Dict[str, Tuple[str, str, str, str, str, List[str]]] = {
    "phone-screening": (
        "Priya Lim",
        "Senior HR Recruiter",
        "Warm and efficient, focused on cultural harmony and professional qualifications.",
        "Professional but approachable, uses a respectful questioning style. Values relationship-building.",
        "Senior HR Recruiter at {company} with 6+ years in multicultural talent acquisition across Southeast Asia. "
        "Specializes in screening candidates for {position} roles.",
        [
            "Verify qualifications and cultural adaptability",
            "Assess communication skills in diverse workplace",
            "Understand motivation and respect for organizational hierarchy",
            "Screen for regional business culture alignment",
        ],
    ),
    "functional-team": (
        "Wei Ming Tan",
        "Senior Team Member",
        "Collaborative and harmony-focused, values team consensus and respectful problem-solving.",
        "Respectful and inclusive, emphasizes team dynamics and collaborative work style.",
        "Senior team member at {company} with 7+ years experience in diverse Southeast Asian teams. "
        "Would work directly with the new {position}.",
        [
            "Evaluate collaboration in multicultural teams",
            "Assess respect for hierarchy and team harmony",
            "Test problem-solving with cultural awareness",
            "Understand adaptation to regional work styles",
        ],
    ),
    "hiring-manager": (
        "Ahmad Rizal",
        "Department Manager",
        "Strategic and balanced, focused on leadership that respects cultural diversity while driving results.",
        "Thoughtful and respectful, probes for examples while maintaining professional courtesy.",
        "Department Manager at {company} with 10+ years experience leading diverse teams across Southeast Asia. "
        "Expert in regional hiring for {position} roles.",
        [
            "Evaluate culturally-aware leadership potential",
            "Assess strategic thinking for regional markets",
            "Understand team building in diverse environments",
            "Test adaptability to Southeast Asian business practices",
        ],
    ),
    "technical-specialist": (
        "Dr. Siti Rahman",
        "Principal Industry Specialist",
        "Highly knowledgeable and intellectually curious, enjoys deep industry discussions.",
        "Professional and thorough, asks detailed questions about industry expertise with regional context awareness.",
        "Principal Industry Specialist at {company} with PhD and 15+ years experience in Southeast Asian markets. "
        "Expert in evaluating industry depth for {position} roles.",
        [
            "Evaluate deep industry expertise and regional knowledge",
            "Test understanding of Southeast Asian market dynamics",
            "Assess problem-solving with cultural and regulatory awareness",
            "Understand leadership potential in diverse professional environments",
        ],
    ),
    "executive-final": (
        "Catherine Wijaya",
        "Vice President",
        "Strategic visionary who balances global business goals with regional cultural sensitivity.",
        "High-level and diplomatic, interested in vision alignment, cultural impact, and sustainable growth.",
        "Vice President at {company} with extensive leadership experience across Southeast Asian markets. "
        "Makes final hiring decisions for senior {position} roles.",
        [
            "Assess strategic vision for regional expansion",
            "Evaluate cultural leadership and market sensitivity",
            "Test ability to drive innovation with cultural awareness",
            "Understand potential for sustainable organizational impact",
        ],
    ),
}


def stage_configuration(interview_stage: str) -> StageConfig:
    return STAGE_CONFIGS.get(interview_stage, STAGE_CONFIGS[DEFAULT_STAGE])


def fallback_persona(interview_stage: str, company: str, position: str) -> Persona:
    """Deterministic persona for a stage; unknown stages use the hiring manager."""

    name, role, personality, style, background, objectives = _FALLBACKS.get(
        interview_stage, _FALLBACKS[DEFAULT_STAGE]
    )
    return Persona(
        name=name,
        role=role,
        personality=personality,
        communication_style=style,
        background=background.format(company=company, position=position),
        objectives=list(objectives),
    )


def build_persona_prompt(
    position: str,
    company: str,
    interview_stage: str,
    industry: Optional[str] = None,
    job_description: Optional[str] = None,
) -> str:
    config = stage_configuration(interview_stage)
    lines = [
        "Generate a realistic interviewer persona for this interview scenario:",
        "",
        f"Position: {position}",
        f"Company: {company}",
        f"Industry: {industry or DEFAULT_INDUSTRY}",
        f"Interview Stage: {interview_stage}",
        f"Stage Focus: {config.focus}",
        f"Interviewer Type: {config.interviewer_type}",
    ]
    if job_description:
        lines.append(f"Job Description: {job_description[:JD_PROMPT_CHARS]}...")
    lines.extend(["", f"CRITICAL REQUIREMENTS for {interview_stage} stage:", config.requirements])
    if industry:
        lines.extend(
            [
                "",
                f"INDUSTRY-SPECIFIC CONTEXT for {industry}:",
                f"This interviewer must have deep expertise in {industry} and should ask questions relevant to "
                "this industry's standards, regulations, challenges, and best practices.",
            ]
        )
    lines.extend(
        [
            "",
            "CULTURAL LOCALIZATION REQUIREMENTS:",
            "- Use Southeast Asian names (e.g., Wei Lin, Priya Sharma, Ahmad Rahman, Maria Santos, Siti Nurhaliza)",
            "- Incorporate Southeast Asian business culture and professional context",
            "- Consider multicultural dynamics common in Southeast Asian workplaces",
            "- Use professional communication styles typical in Singapore, Malaysia, Thailand, Philippines, "
            "Indonesia, Vietnam",
            "",
            f"The interviewer MUST be a {config.interviewer_type}.",
            "",
            "Create a professional interviewer with these exact fields (respond in valid JSON format):",
            "{",
            '  "name": "First Last",',
            f'  "role": "One of: {config.role_prefix}",',
            f'  "personality": "Brief personality description fitting {config.interviewer_type}",',
            f'  "communicationStyle": "How they communicate in interviews for {interview_stage}",',
            f'  "background": "Professional background as {config.interviewer_type} at {company}",',
            '  "objectives": ["objective1", "objective2", "objective3", "objective4"]',
            "}",
            "",
            f"Ensure the persona matches the seniority and responsibilities expected for {interview_stage} at {company}.",
        ]
    )
    return "\n".join(lines)


def is_complete(persona: Persona) -> bool:
    text_fields = (persona.name, persona.role, persona.personality, persona.communication_style, persona.background)
    return all(value.strip() for value in text_fields) and any(item.strip() for item in persona.objectives)


def generate_persona(
    provider: ModelProvider,
    *,
    position: str,
    company: str,
    interview_stage: str,
    industry: Optional[str] = None,
    job_description: Optional[str] = None,
    user_id: str = "-",
) -> Tuple[Persona, bool]:
    """Return ``(persona, used_fallback)``; provider or validation failures fall back."""

    messages = [
        {"role": "system", "content": PERSONA_SYSTEM},
        {
            "role": "user",
            "content": build_persona_prompt(position, company, interview_stage, industry, job_description),
        },
    ]
    try:
        persona = generate_model(provider, messages, Persona, options={"temperature": 0.7})
    except ProviderError as exc:
        logger.warning("Persona generation failed, using stage fallback: %s", exc)
        log_event("persona_fallback", user_id, outcome="provider_error", interview_stage=interview_stage)
        return fallback_persona(interview_stage, company, position), True
    if not is_complete(persona):
        logger.warning("Persona generation returned incomplete fields, using stage fallback")
        log_event("persona_fallback", user_id, outcome="incomplete", interview_stage=interview_stage)
        return fallback_persona(interview_stage, company, position), True
    persona.objectives = [item.strip() for item in persona.objectives if item.strip()]
    return persona, False
