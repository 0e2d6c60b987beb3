"""
Site File Builder - renders generated content into static files.

Output per site:
- index.html for every page (``/services`` -> ``services/index.html``)
- styles.css with the palette and template theme applied
- script.js, vercel.json and metadata.json
- attributions.html when stock photos are used
"""

import json
import re
from datetime import datetime, timezone
from html import escape
from typing import Any

import structlog

from app.exceptions import SiteBuildError
from app.models import (
    ColorPalette,
    GeneratedFile,
    ImageData,
    NavLink,
    PageSection,
    SiteContent,
    SitePage,
    WebsiteRequest,
)
from app.services.image_fetcher import image_attribution_html
from app.services.site_templates import (
    ABOUT_SECTION_HTML,
    ATTRIBUTIONS_HTML,
    CARD_SECTION_HTML,
    CONTACT_FORM_HTML,
    PAGE_HTML,
    SCRIPT_JS,
    STYLES_CSS,
    TEMPLATE_THEMES,
)

logger = structlog.get_logger()


VERCEL_CONFIG = {
    "cleanUrls": True,
    "headers": [
        {
            "source": "/(.*)",
            "headers": [
                {"key": "X-Content-Type-Options", "value": "nosniff"},
                {"key": "X-Frame-Options", "value": "DENY"},
                {"key": "X-XSS-Protection", "value": "1; mode=block"},
            ],
        }
    ],
}

CARD_CLASSES = {
    "features": "feature-card",
    "services": "service-card",
    "testimonials": "feature-card",
}
DEFAULT_SECTION_TITLES = {
    "features": "Why Choose Us",
    "services": "Our Services",
    "testimonials": "What Our Clients Say",
    "about": "About Us",
}


PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def fill(template: str, values: dict[str, str]) -> str:
    """
    Replace ``{{KEY}}`` placeholders in one pass.

    Inserted values are never scanned again, so generated text that happens
    to contain ``{{EMAIL}}`` stays literal. Unknown keys are left as-is.
    """
    return PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def page_file_name(route: str) -> str:
    path = route.strip("/")
    return f"{path}/index.html" if path else "index.html"


class SiteFileBuilder:
    """Builds the static file set for a generated site."""

    def build(
        self,
        template_id: str,
        content: SiteContent,
        colors: ColorPalette,
        request: WebsiteRequest,
        images: list[ImageData],
    ) -> list[GeneratedFile]:
        try:
            files = self._build(template_id, content, colors, request, images)
        except Exception as e:
            raise SiteBuildError(f"Failed to generate static site: {e}") from e

        logger.info("Site files built", template=template_id, files=len(files))
        return files

    def _build(
        self,
        template_id: str,
        content: SiteContent,
        colors: ColorPalette,
        request: WebsiteRequest,
        images: list[ImageData],
    ) -> list[GeneratedFile]:
        theme = TEMPLATE_THEMES.get(template_id, TEMPLATE_THEMES["service-business"])
        css = fill(STYLES_CSS, {
            "PRIMARY_COLOR": colors.primary,
            "SECONDARY_COLOR": colors.secondary,
            "ACCENT_COLOR": colors.accent,
            "FONT_FAMILY": theme["font"],
            "RADIUS": theme["radius"],
        })

        files = [
            GeneratedFile(name="styles.css", content=css),
            GeneratedFile(name="script.js", content=SCRIPT_JS),
        ]

        page_files = set()
        for page in content.pages:
            name = page_file_name(page.route)
            if name in page_files:
                logger.warning("Skipping page with duplicate route", route=page.route)
                continue
            page_files.add(name)
            files.append(GeneratedFile(
                name=name,
                content=self._render_page(template_id, page, content, request, images),
            ))

        files.append(GeneratedFile(name="vercel.json", content=json.dumps(VERCEL_CONFIG, indent=2)))

        metadata = {
            "companyName": request.company_name,
            "industry": request.industry,
            "colors": colors.model_dump(),
            "templateId": template_id,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "formData": request.model_dump(mode="json", by_alias=True),
            "images": [
                image.model_dump(mode="json", by_alias=True, include={"url", "alt", "photographer", "source"})
                for image in images
            ],
        }
        files.append(GeneratedFile(name="metadata.json", content=json.dumps(metadata, indent=2)))

        if images:
            files.append(GeneratedFile(
                name="attributions.html",
                content=fill(ATTRIBUTIONS_HTML, {
                    "COMPANY_NAME": escape(request.company_name),
                    "ATTRIBUTIONS": image_attribution_html(images),
                }),
            ))

        return files

    def _render_page(
        self,
        template_id: str,
        page: SitePage,
        content: SiteContent,
        request: WebsiteRequest,
        images: list[ImageData],
    ) -> str:
        is_home = page.route == "/"

        if is_home:
            title = content.meta.title
            hero = content.hero
            hero_values = {
                "HERO_TITLE": escape(hero.title),
                "HERO_SUBTITLE": escape(hero.subtitle),
                "HERO_CTA_TEXT": escape(hero.cta_text),
                "HERO_CTA_LINK": escape(hero.cta_link),
            }
        else:
            title = f"{page.title} - {content.meta.title}"
            hero_values = {
                "HERO_TITLE": escape(page.title),
                "HERO_SUBTITLE": escape(f"Welcome to {page.title}"),
                "HERO_CTA_TEXT": "Get Started",
                "HERO_CTA_LINK": "#contact",
            }

        hero_style = hero_overlay = ""
        if is_home and images:
            hero_style = (
                f" style=\"background-image: url('{escape(images[0].url)}'); "
                "background-size: cover; background-position: center; position: relative;\""
            )
            hero_overlay = (
                '<div style="background: rgba(0,0,0,0.4); position: absolute; inset: 0; z-index: 1;"></div>'
            )

        footer_links = self._render_links(content.footer.links)
        if images:
            footer_links += '\n                        <li><a href="/attributions.html">Image Attributions</a></li>'

        footer = content.footer
        address = f"{request.address}, {request.city}"

        return fill(PAGE_HTML, {
            "META_TITLE": escape(title),
            "META_DESCRIPTION": escape(content.meta.description),
            "META_KEYWORDS": escape(content.meta.keywords),
            "TEMPLATE_ID": escape(template_id),
            "NAVBAR_LOGO": escape(content.navbar.logo_text),
            "NAVBAR_LINKS": self._render_links(content.navbar.links),
            "HERO_STYLE": hero_style,
            "HERO_OVERLAY": hero_overlay,
            **hero_values,
            "SECTIONS": "".join(self._render_section(s) for s in page.sections),
            "PHONE": escape(request.phone_number),
            "EMAIL": escape(request.email),
            "ADDRESS": escape(address),
            "CONTACT_FORM": CONTACT_FORM_HTML if request.contact_form else "",
            "FOOTER_COMPANY_NAME": escape(footer.company_name),
            "FOOTER_DESCRIPTION": escape(footer.description),
            "FOOTER_PHONE": escape(footer.contact.phone or request.phone_number),
            "FOOTER_EMAIL": escape(footer.contact.email or request.email),
            "FOOTER_ADDRESS": escape(footer.contact.address or address),
            "FOOTER_LINKS": footer_links,
            "YEAR": str(datetime.now(timezone.utc).year),
        })

    def _render_links(self, links: list[NavLink]) -> str:
        return "\n                ".join(
            f'<li><a href="{escape(link.route)}">{escape(link.label)}</a></li>' for link in links
        )

    def _render_section(self, section: PageSection) -> str:
        kind = section.type
        data = section.content or {}
        title = escape(str(data.get("title") or DEFAULT_SECTION_TITLES.get(kind, "")))

        if kind == "about":
            return fill(ABOUT_SECTION_HTML, {
                "TITLE": title,
                "DESCRIPTION": escape(str(data.get("description") or data.get("text") or "")),
            })

        if kind in CARD_CLASSES:
            items = data.get("items")
            if not isinstance(items, list) or not items:
                return ""
            cards = "".join(self._render_card(CARD_CLASSES[kind], item) for item in items)
            return fill(CARD_SECTION_HTML, {
                "KIND": "services" if kind == "services" else "features",
                "TITLE": title,
                "ITEMS": cards,
            })

        # hero and contact are part of the page layout; anything else is unknown
        return ""

    def _render_card(self, css_class: str, item: Any) -> str:
        if isinstance(item, str):
            heading, body = item, ""
        elif isinstance(item, dict):
            heading = item.get("title") or item.get("name") or item.get("author") or ""
            body = item.get("description") or item.get("quote") or item.get("text") or ""
        else:
            return ""
        return (
            f'                <div class="{css_class}">\n'
            f"                    <h3>{escape(str(heading))}</h3>\n"
            f"                    <p>{escape(str(body))}</p>\n"
            f"                </div>\n"
        )
