"""
Content Generator - Claude-written page copy for the generated site.

Unlike colors and template selection this step has no fallback: a reply
that does not match the SiteContent shape fails the job.
"""

import re

import structlog
from pydantic import ValidationError

from app.exceptions import ContentGenerationError
from app.models import (
    ColorPalette,
    NavLink,
    PageSection,
    SiteContent,
    SitePage,
    WebsiteRequest,
)
from app.services.ai_engine import AIEngineService

logger = structlog.get_logger()


SYSTEM_PROMPT = (
    "You are an expert copywriter and web content strategist. Generate compelling, "
    "business-specific website content. Always return valid JSON."
)


def normalize_route(route: str) -> str:
    """``"About Us/"`` -> ``"/about-us"``; blank is the home page."""
    path = re.sub(r"\s+", "-", route.strip().lower()).strip("/")
    return f"/{path}" if path else "/"


def page_route(index: int, title: str) -> str:
    """The first page is the home page; the rest live under their slugged title."""
    if index == 0:
        return "/"
    return normalize_route(title)


def nav_label(route: str, title: str) -> str:
    return "Home" if route == "/" or title == "Home" else title


class ContentGeneratorService:
    """Generates SiteContent for a request."""

    def __init__(self, ai_engine: AIEngineService):
        self.ai_engine = ai_engine

    async def generate(
        self,
        request: WebsiteRequest,
        colors: ColorPalette,
        template_id: str,
    ) -> SiteContent:
        """
        Generate content for every requested page.

        Pages the model skipped get a basic hero/about page; navbar and
        footer links always mirror the requested pages.
        """
        planned = [
            (page_route(i, p.title), p.title, p.information)
            for i, p in enumerate(request.pages)
        ]

        try:
            data = await self.ai_engine.complete_json(
                self._build_prompt(request, colors, template_id, planned),
                system=SYSTEM_PROMPT,
                max_tokens=8192,
            )
            content = SiteContent.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise ContentGenerationError(f"Failed to generate content: {e}") from e

        # Model routes are free text; two pages must never map to the same file
        pages = []
        generated_routes = set()
        for page in content.pages:
            page.route = normalize_route(page.route)
            if page.route in generated_routes:
                logger.warning("Dropping duplicate page from model output", route=page.route)
                continue
            generated_routes.add(page.route)
            pages.append(page)
        content.pages = pages

        for route, title, information in planned:
            if route in generated_routes:
                continue
            logger.info("Adding page missing from model output", route=route)
            content.pages.append(SitePage(
                route=route,
                title=title,
                sections=[
                    PageSection(type="hero", content={"title": title, "subtitle": f"Welcome to {title}"}),
                    PageSection(type="about", content={"title": title, "description": information}),
                ],
            ))

        links = [NavLink(label=nav_label(route, title), route=route) for route, title, _ in planned]
        content.navbar.links = links
        content.footer.links = list(links)

        return content

    def _build_prompt(
        self,
        request: WebsiteRequest,
        colors: ColorPalette,
        template_id: str,
        planned: list[tuple[str, str, str]],
    ) -> str:
        pages_info = "\n".join(f"- {title} ({route}): {info}" for route, title, info in planned)
        address = f"{request.address}, {request.city}"

        return f"""Generate complete website content as JSON for a professional business website.

Company Information:
- Name: {request.company_name}
- Industry: {request.industry}
- Type: {request.company_type}
- Address: {address}
- Phone: {request.phone_number}
- Email: {request.email}
- Brand Themes: {request.brand_themes}
- Additional Info: {request.extra_detailed_info or 'None'}

Pages to Create (MUST create one page per entry below):
{pages_info}

You MUST create exactly {len(planned)} pages, one for each page listed above, using the
route shown in parentheses. Each page has a title and sections relevant to its information.

Color Scheme:
- Primary: {colors.primary}
- Secondary: {colors.secondary}
- Accent: {colors.accent}

Template: {template_id}

Requirements:
1. Compelling, business-specific content (NO generic placeholder text)
2. All content must be specific to {request.company_name}
3. Engaging hero section with a clear call-to-action
4. Section types to use: hero, features, services, testimonials, about, contact
5. SEO-optimized meta tags
6. Footer with contact information

Return ONLY valid JSON in this exact structure:
{{
  "meta": {{"title": "Page Title - Company Name", "description": "150-160 chars", "keywords": "comma, separated"}},
  "navbar": {{"logoText": "{request.company_name}", "links": [{{"label": "Home", "route": "/"}}]}},
  "hero": {{"title": "Headline", "subtitle": "Supporting text", "ctaText": "Call to Action", "ctaLink": "/contact"}},
  "pages": [
    {{
      "route": "/",
      "title": "Home",
      "sections": [
        {{"type": "features", "content": {{"title": "Why Choose Us", "items": [{{"title": "...", "description": "..."}}]}}}},
        {{"type": "services", "content": {{"title": "Our Services", "items": [{{"title": "...", "description": "..."}}]}}}},
        {{"type": "about", "content": {{"title": "About Us", "description": "..."}}}}
      ]
    }}
  ],
  "footer": {{
    "companyName": "{request.company_name}",
    "description": "Brief company description",
    "contact": {{"phone": "{request.phone_number}", "email": "{request.email}", "address": "{address}"}},
    "links": [{{"label": "Home", "route": "/"}}]
  }}
}}

Return ONLY the JSON object. No markdown, no explanations."""
