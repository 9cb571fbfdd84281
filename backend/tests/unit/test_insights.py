"""
Unit Tests for Insight Generator
Prompt building, JSON parsing and the fallback result.
"""
import json
from unittest.mock import AsyncMock

import pytest

from leadsync.domain.models import Note
from leadsync.infrastructure.llm.insights import (
    InsightGenerator,
    build_lead_prompt,
    fallback_insights,
    parse_insights,
)


class TestParseInsights:
    """Tests for parse_insights."""

    def test_valid_json(self):
        text = json.dumps({
            "qualificationScore": 82,
            "justification": "Budget confirmed",
            "keyPainPoints": ["Slow onboarding"],
            "suggestedNextSteps": ["Book a demo"],
        })

        insights = parse_insights(text)

        assert insights.qualification_score == 82
        assert insights.justification == "Budget confirmed"
        assert insights.key_pain_points == ["Slow onboarding"]
        assert insights.suggested_next_steps == ["Book a demo"]

    def test_invalid_json_uses_fallback(self):
        """Test that free text yields the deterministic fallback."""
        insights = parse_insights("This lead looks promising!")

        assert insights == fallback_insights()
        assert insights.qualification_score == 50
        assert insights.key_pain_points == ["Further analysis needed"]
        assert insights.suggested_next_steps == ["Follow up with lead"]

    def test_partial_json_fills_defaults(self):
        insights = parse_insights('{"qualificationScore": "not a number"}')

        assert insights.qualification_score == 50
        assert insights.justification == "Analysis generated"
        assert insights.key_pain_points == ["Analysis needed"]

    def test_score_is_clamped(self):
        assert parse_insights('{"qualificationScore": 250}').qualification_score == 100

    def test_non_object_json_uses_fallback(self):
        assert parse_insights("[1, 2, 3]") == fallback_insights()


class TestBuildLeadPrompt:
    def test_includes_context(self, make_lead):
        lead = make_lead(
            issue_description="Roof leak",
            notes=[Note(text="Prefers mornings")],
        )

        prompt = build_lead_prompt(lead)

        assert "Name: Jane Doe" in prompt
        assert "Issue Description: Roof leak" in prompt
        assert "- Prefers mornings" in prompt


class TestInsightGenerator:
    @pytest.mark.asyncio
    async def test_generate_uses_provider(self, make_lead):
        provider = AsyncMock()
        provider.complete.return_value = '{"qualificationScore": 70, "justification": "ok"}'

        insights = await InsightGenerator(provider).generate(make_lead())

        assert insights.qualification_score == 70
        assert provider.complete.await_args.kwargs["json_mode"] is True

    @pytest.mark.asyncio
    async def test_provider_errors_propagate(self, make_lead):
        provider = AsyncMock()
        provider.complete.side_effect = RuntimeError("Groq completion failed: 401")

        with pytest.raises(RuntimeError):
            await InsightGenerator(provider).generate(make_lead())
