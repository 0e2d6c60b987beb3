"""
Template Selector - picks a site template from the fixed catalog.

The model's answer is only trusted if it names a catalog template;
otherwise the industry/company-type keywords decide.
"""

import structlog

from app.models import ColorPalette, WebsiteRequest
from app.services.ai_engine import AIEngineService

logger = structlog.get_logger()


AVAILABLE_TEMPLATES = (
    "service-business",       # General service businesses
    "ecommerce",              # Online stores
    "restaurant",             # Food service
    "healthcare",             # Medical/health
    "real-estate",            # Property/real estate
    "professional-services",  # Law, consulting, etc.
    "fitness",                # Gym/fitness
    "beauty-salon",           # Beauty/spa
    "education",              # Schools/training
    "non-profit",             # Charities/NGOs
    "modern-minimal",         # Clean, minimal design
    "bold-vibrant",           # Bold, colorful
    "elegant-luxury",         # Sophisticated, premium
)

DEFAULT_TEMPLATE = "service-business"

# Checked in order; first match wins.
INDUSTRY_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("restaurant", "food"), "restaurant"),
    (("health", "medical"), "healthcare"),
    (("real estate", "property"), "real-estate"),
    (("fitness", "gym"), "fitness"),
    (("beauty", "salon"), "beauty-salon"),
    (("education", "school"), "education"),
    (("non-profit", "charity"), "non-profit"),
]

SYSTEM_PROMPT = "You are a web design expert. Select the best template for each business. Always return valid JSON."


def fallback_template(industry: str, company_type: str = "") -> str:
    """Pick a template from industry and company-type keywords."""
    industry_lower = industry.lower()
    type_lower = company_type.lower()

    if "ecommerce" in type_lower or "online store" in type_lower:
        return "ecommerce"

    for keywords, template in INDUSTRY_KEYWORDS:
        if any(keyword in industry_lower for keyword in keywords):
            return template

    return DEFAULT_TEMPLATE


class TemplateSelectorService:
    """Selects a template with the AI model, never failing."""

    def __init__(self, ai_engine: AIEngineService):
        self.ai_engine = ai_engine

    async def select(self, request: WebsiteRequest, colors: ColorPalette) -> str:
        try:
            data = await self.ai_engine.complete_json(
                self._build_prompt(request, colors),
                system=SYSTEM_PROMPT,
                max_tokens=256,
            )
            template = data.get("template") if isinstance(data, dict) else None
            if template in AVAILABLE_TEMPLATES:
                logger.info("Template selected", template=template, reason=data.get("reason"))
                return template
            logger.warning("Model chose unknown template", template=template)
        except Exception as e:
            logger.warning("Template selection failed", error=str(e))

        return fallback_template(request.industry, request.company_type)

    def _build_prompt(self, request: WebsiteRequest, colors: ColorPalette) -> str:
        catalog = "\n".join(f"{i}. {t}" for i, t in enumerate(AVAILABLE_TEMPLATES, start=1))
        return f"""Select the best website template for this business.

Company: {request.company_name}
Industry: {request.industry}
Business Type: {request.company_type}
Brand Themes: {request.brand_themes}
Colors: Primary {colors.primary}, Secondary {colors.secondary}

Available Templates:
{catalog}

Consider:
- Industry match (restaurant -> restaurant template)
- Business type (e-commerce -> ecommerce template)
- Brand themes (modern -> modern-minimal, bold -> bold-vibrant)
- Overall fit for the business

Return ONLY valid JSON:
{{
  "template": "template-name",
  "reason": "brief explanation"
}}"""
