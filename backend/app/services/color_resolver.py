"""
Color Resolver - turns a free-text color description into a brand palette.
"""

import structlog

from app.models import ColorPalette
from app.services.ai_engine import AIEngineService

logger = structlog.get_logger()


FALLBACK_PALETTE = ColorPalette(primary="#D32F2F", secondary="#FFC107", accent="#263238")

SYSTEM_PROMPT = "You are a color expert. Always return valid JSON with hex color codes."


class ColorResolverService:
    """Resolves colors with the AI model, never failing."""

    def __init__(self, ai_engine: AIEngineService):
        self.ai_engine = ai_engine

    async def resolve(self, description: str) -> ColorPalette:
        """Return a validated palette, or the fallback palette on any failure."""
        try:
            data = await self.ai_engine.complete_json(
                self._build_prompt(description),
                system=SYSTEM_PROMPT,
                max_tokens=256,
            )
            if not isinstance(data, dict):
                raise ValueError("Color response is not an object")
            return ColorPalette(
                primary=data.get("primary"),
                secondary=data.get("secondary"),
                accent=data.get("accent"),
            )
        except ValueError as e:
            logger.warning("Color parsing failed, using fallback palette", error=str(e))
        except Exception as e:
            logger.warning("Color model call failed, using fallback palette", error=str(e))
        return FALLBACK_PALETTE.model_copy()

    def _build_prompt(self, description: str) -> str:
        return f"""Convert this color description to valid CSS hex color codes.

Input: "{description}"

Rules:
- Extract or infer 3 colors: primary, secondary, accent
- Primary should be the main brand color
- Secondary should complement the primary
- Accent should be a highlight color
- All colors must be valid 6-digit hex codes (e.g., #FF5733)
- If the input contains hex codes, use them
- If the input is descriptive (e.g., "vibrant red"), convert to appropriate hex
- Ensure colors work well together

Return ONLY valid JSON in this exact format:
{{
  "primary": "#hexcode",
  "secondary": "#hexcode",
  "accent": "#hexcode"
}}

Do not include any explanations, markdown, or other text. Only the JSON object."""
