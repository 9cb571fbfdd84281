"""LLM providers and the lead insight generator"""
from .base import LLMProvider
from .groq import GroqLLMProvider
from .insights import InsightGenerator, build_lead_prompt, fallback_insights, parse_insights

__all__ = [
    "LLMProvider",
    "GroqLLMProvider",
    "InsightGenerator",
    "build_lead_prompt",
    "fallback_insights",
    "parse_insights",
]
