from __future__ import annotations

from typing import Any, Dict

from libs.core.models import ReviewResult, ReviewSection

# Returned when no API key is configured.
NO_CREDENTIAL_RESULT = ReviewResult(
    overall_score=7.4,
    sections=[
        ReviewSection(key="summary", score=7, feedback="Good summary; add measurable outcomes."),
        ReviewSection(key="experience", score=8, feedback="Clear results; standardize action verbs."),
        ReviewSection(key="skills", score=6, feedback="Highlight skills relevant to the target role."),
        ReviewSection(key="education", score=8, feedback="Looks good."),
    ],
    bullets_rewrite=[
        "Led a project that reduced setup time by 35%…",
        "Implemented CI that lowered deployment failures by 22%…",
    ],
    checklist=[
        "Add metrics to each bullet.",
        "Reduce verb repetition.",
        "Order skills by job relevance.",
    ],
)

# Returned when the provider cannot be reached or times out.
UNAVAILABLE_RESULT = ReviewResult(
    overall_score=7.0,
    sections=[
        ReviewSection(key="summary", score=7, feedback="Keep it concise; add measurable outcomes."),
        ReviewSection(key="experience", score=7, feedback="Quantify impact (%, $, time saved)."),
        ReviewSection(key="skills", score=6, feedback="Prioritize role-relevant tools."),
        ReviewSection(key="education", score=8, feedback="Looks consistent."),
    ],
    bullets_rewrite=[
        "Optimized pipeline reducing build time by 28%…",
        "Automated QA checks cutting regressions by 18%…",
    ],
    checklist=[
        "Add at least one metric per bullet.",
        "Standardize verb tense.",
        "Group skills by category and relevance.",
    ],
)


def no_credential_result() -> Dict[str, Any]:
    return NO_CREDENTIAL_RESULT.to_payload()


def unavailable_result() -> Dict[str, Any]:
    return UNAVAILABLE_RESULT.to_payload()
