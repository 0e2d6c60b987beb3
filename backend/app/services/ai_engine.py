"""
AI Engine Service - Claude-powered JSON generation.

Shared by the color resolver, template selector and content generator.
Model output is untrusted: fences are stripped before parsing and callers
validate the parsed shape.
"""

import json
from typing import Any, Optional

import structlog
from anthropic import AsyncAnthropic

from app.config import settings

logger = structlog.get_logger()


def parse_json_response(content: str) -> Any:
    """
    Parse JSON from a model response.

    Strips markdown code fences and retries once up to the last closing
    brace. Raises ValueError if nothing parses.
    """
    if "```json" in content:
        start = content.find("```json") + 7
        end = content.find("```", start)
        content = content[start:end if end != -1 else None]
    elif "```" in content:
        start = content.find("```") + 3
        end = content.find("```", start)
        content = content[start:end if end != -1 else None]

    content = content.strip()

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning("JSON parse error", error=str(e), content=content[:500])
        last_brace = content.rfind("}")
        if last_brace > 0:
            try:
                return json.loads(content[:last_brace + 1])
            except json.JSONDecodeError:
                pass
        raise ValueError(f"Model returned invalid JSON: {e}") from e


class AIEngineService:
    """Thin wrapper over the Anthropic Messages API."""

    def __init__(self, client: Optional[AsyncAnthropic] = None, model: Optional[str] = None):
        self.client = client or AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = model or settings.ai_model

    async def complete(self, prompt: str, system: str, max_tokens: int = 1024) -> str:
        """Send a single-turn prompt and return the text reply."""
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[
                {"role": "user", "content": prompt}
            ],
            system=system,
        )
        return response.content[0].text

    async def complete_json(self, prompt: str, system: str, max_tokens: int = 1024) -> Any:
        """Send a prompt that must be answered with JSON and parse the reply."""
        text = await self.complete(prompt, system, max_tokens=max_tokens)
        return parse_json_response(text)
