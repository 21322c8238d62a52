"""Prompt text for the strategic insight generator."""

from __future__ import annotations

from typing import Final

INSIGHT_KEYS: Final[tuple[str, ...]] = (
    "summary",
    "pitchAngle",
    "subjectLine",
    "whatNotToPitch",
    "signalTag",
)

SYSTEM_PROMPT: Final[str] = (
    "You are a world-class B2B strategist and market intelligence analyst. You create "
    "sophisticated, data-driven outreach strategies that demonstrate deep industry knowledge. "
    "Always reference specific signals and avoid generic business language. Return only valid "
    "JSON with the exact keys requested."
)

ANALYSIS_REQUIREMENTS: Final[str] = """\
=== STRATEGIC ANALYSIS REQUIREMENTS ===

Generate a strategic brief grounded in the intelligence data above. Every claim must
trace back to a news item, job posting, technology or trend listed in the dossier.
Do not invent facts and do not fall back on generic business advice.

CRITICAL REQUIREMENTS:
- Reference specific, recent company activities from the intelligence data
- Use concrete timing signals and recent developments
- Each section should be substantial (multiple sentences, not bullet points)

Generate the following sections:

1. summary (3-4 sentences): the most compelling "why now" opportunity based on actual
   signals from news, hiring and technology adoption.

2. pitchAngle (2-3 paragraphs): a pitch strategy that references recent company
   activity, connects the user's offering to detected needs and growth patterns, and
   uses timing-based urgency from the data.

3. subjectLine: a personalized email subject line referencing a recent development.

4. whatNotToPitch (1-2 paragraphs): approaches to avoid given company stage, recent
   developments, competitive positioning and timing.

5. signalTag: a short tag for the company's current state, e.g. "Scaling AI Team
   Post-Series B" or "Hiring DevOps for Cloud Migration".

Return ONLY a JSON object with exactly these keys: {keys}
"""


def render_user_prompt(dossier: str) -> str:
    """Compose the user message from the dossier and the output contract."""
    requirements = ANALYSIS_REQUIREMENTS.format(keys=", ".join(INSIGHT_KEYS))
    return f"STRATEGIC INTELLIGENCE BRIEF REQUEST\n\n{dossier}\n\n{requirements}"
