from __future__ import annotations

from prpilot_core.providers.openai import OpenAIReviewer


class GroqReviewer(OpenAIReviewer):
    """Groq serves an OpenAI-compatible chat API, so only the endpoint and model differ."""

    MODEL = "llama-3.3-70b-versatile"
    BASE_URL = "https://api.groq.com/openai/v1"
