import re


def slugify(name: str, max_length: int = 50) -> str:
    """Lowercase, dash-separated slug usable as a repo or project name."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = re.sub(r"^-+|-+$", "", slug)
    return slug[:max_length].rstrip("-")
