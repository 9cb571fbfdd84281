"""
Insight Generator
Builds the lead analysis prompt and parses the model's JSON answer
"""
import json
import logging
from typing import Any, Dict, List

from leadsync.domain.models.lead import AIInsights, Lead
from leadsync.infrastructure.llm.base import LLMProvider

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a sales assistant that qualifies inbound leads. "
    "Answer with a single JSON object and nothing else."
)

RESPONSE_SHAPE = (
    'Respond as JSON: {"qualificationScore": <1-100>, "justification": "<text>", '
    '"keyPainPoints": ["<text>", ...], "suggestedNextSteps": ["<text>", ...]}'
)


def fallback_insights() -> AIInsights:
    """Deterministic result used when the model answer cannot be parsed."""
    return AIInsights(
        qualification_score=50,
        justification="Analysis generated successfully",
        key_pain_points=["Further analysis needed"],
        suggested_next_steps=["Follow up with lead"],
    )


def build_lead_prompt(lead: Lead) -> str:
    lines = [
        "Analyze the following sales lead and provide insights.",
        "",
        "Lead Details:",
        f"- Name: {lead.full_name}",
        f"- Company: {lead.company or 'Not provided'}",
        f"- Email: {lead.display_email}",
        f"- Phone: {lead.display_phone}",
        f"- Source: {lead.source.value}",
    ]
    if lead.issue_description:
        lines.append(f"- Issue Description: {lead.issue_description}")
    if lead.call_details and lead.call_details.transcript_summary:
        lines.append(f"- Call Summary: {lead.call_details.transcript_summary}")
    if lead.notes:
        lines += ["", "Notes:"] + [f"- {note.text}" for note in lead.notes]

    lines += [
        "",
        "Based on all the information, provide a qualification score from 1 to 100, "
        "a brief justification for the score, a list of key pain points, and a list "
        "of suggested next steps for the sales agent to take. A higher score means "
        "a more qualified lead who is more likely to convert to a sale.",
        RESPONSE_SHAPE,
    ]
    return "\n".join(lines)


def _string_list(value: Any, default: List[str]) -> List[str]:
    if isinstance(value, list):
        items = [str(item) for item in value if item]
        return items or default
    return default


def parse_insights(text: str) -> AIInsights:
    """Parse a JSON answer; anything unparseable yields the fallback."""
    try:
        parsed: Dict[str, Any] = json.loads(text)
    except (TypeError, ValueError):
        logger.warning("Insight response was not valid JSON, using fallback")
        return fallback_insights()

    if not isinstance(parsed, dict):
        return fallback_insights()

    score = parsed.get("qualificationScore")
    try:
        score = max(1, min(100, int(score)))
    except (TypeError, ValueError):
        score = 50

    return AIInsights(
        qualification_score=score,
        justification=parsed.get("justification") or "Analysis generated",
        key_pain_points=_string_list(parsed.get("keyPainPoints"), ["Analysis needed"]),
        suggested_next_steps=_string_list(parsed.get("suggestedNextSteps"), ["Follow up required"]),
    )


class InsightGenerator:
    """Produces AIInsights for a lead through any LLMProvider"""

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    async def generate(self, lead: Lead) -> AIInsights:
        """
        Analyze one lead.

        Provider failures propagate; only the parsing step falls back.
        """
        response = await self.provider.complete(
            build_lead_prompt(lead),
            system_prompt=SYSTEM_PROMPT,
            json_mode=True,
        )
        return parse_insights(response)
