"""Per-page SEO metadata: defaults, cached lookup, metadata building and validation."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any
from xml.sax.saxutils import escape as xml_escape

from verlux.config import get_settings
from verlux.errors import NotFound, VerluxError
from verlux.schemas.seo import SEOPageData, SEOValidation
from verlux.services.timestamps import now_ms
from verlux.services.tree_store import TreeStore, join_path

logger = logging.getLogger(__name__)

SEO_ROOT = "seo_pages"

DEFAULT_TITLE = "Verlux Stands | Premium Exhibition Stand Design & Build Company"
DEFAULT_DESCRIPTION = (
    "Award-winning exhibition stand design and build company. Custom trade show booths, "
    "modular displays & bespoke exhibition solutions worldwide."
)
DEFAULT_OG_IMAGE = "/images/hero-stand.jpg"

# slug, title, description, keywords, og title, schema type
_DEFAULT_PAGE_ROWS: list[tuple[str, str, str, list[str], str, str]] = [
    (
        "home",
        DEFAULT_TITLE,
        DEFAULT_DESCRIPTION,
        ["exhibition stands", "trade show booths", "exhibition design", "custom stands"],
        DEFAULT_TITLE,
        "Organization",
    ),
    (
        "about",
        "About Verlux Stands | 15+ Years of Exhibition Excellence",
        "Verlux Stands has been crafting exhibition excellence since 2009. 500+ projects, "
        "30+ countries, 98% client satisfaction.",
        ["about Verlux Stands", "exhibition stand company", "trade show booth builder"],
        "About Verlux Stands | 15+ Years of Exhibition Excellence",
        "Organization",
    ),
    (
        "services",
        "Exhibition Stand Services | Design, Build & Installation",
        "Complete exhibition stand services: concept development, 3D design, custom "
        "fabrication, logistics & installation.",
        ["exhibition stand services", "trade show booth design", "stand fabrication"],
        "Exhibition Stand Services | Verlux Stands",
        "Service",
    ),
    (
        "portfolio",
        "Exhibition Stand Portfolio | Award-Winning Projects",
        "Browse our portfolio of 500+ exhibition stands across technology, automotive, "
        "healthcare, fashion & more.",
        ["exhibition stand portfolio", "trade show booth examples", "exhibition design case studies"],
        "Exhibition Stand Portfolio | Verlux Stands",
        "Organization",
    ),
    (
        "contact",
        "Contact Us | Get a Free Exhibition Stand Quote",
        "Contact Verlux Stands for a free consultation and quote. Response within 24 hours.",
        ["contact Verlux Stands", "exhibition stand quote", "trade show booth enquiry"],
        "Contact Us | Verlux Stands",
        "LocalBusiness",
    ),
    (
        "testimonials",
        "Client Testimonials & Reviews | Exhibition Stand Success Stories",
        "Read verified reviews from Fortune 500 companies and innovative startups. "
        "98% client satisfaction rate.",
        ["exhibition stand reviews", "trade show booth testimonials", "Verlux Stands reviews"],
        "Client Testimonials | Verlux Stands",
        "Organization",
    ),
    (
        "trade-show-calendar",
        "Trade Show Calendar 2026 | Major Exhibitions & Events Worldwide",
        "Plan your exhibition presence with our 2026 trade show calendar. CES, Mobile World "
        "Congress, Hannover Messe & more.",
        ["trade show calendar 2026", "exhibition calendar", "upcoming trade shows"],
        "Trade Show Calendar 2026 | Verlux Stands",
        "Organization",
    ),
    (
        "rental-vs-buying",
        "Exhibition Stand Rental vs Buying | Complete Comparison Guide",
        "Should you rent or buy an exhibition stand? Compare costs, benefits & ROI.",
        ["exhibition stand rental", "buy vs rent trade show booth", "exhibition stand hire"],
        "Exhibition Stand Rental vs Buying | Verlux Stands",
        "FAQPage",
    ),
    (
        "major-cities",
        "Exhibition Stand Services by Location | London, Frankfurt, Las Vegas & More",
        "Verlux Stands delivers exhibition solutions in 30+ countries. Local expertise, "
        "global standards.",
        ["exhibition stands London", "trade show booths Frankfurt", "exhibition builders Las Vegas"],
        "Exhibition Stand Services Worldwide | Verlux Stands",
        "Organization",
    ),
]

SITEMAP_PRIORITIES = {
    "home": 1.0,
    "services": 0.9,
    "portfolio": 0.9,
    "contact": 0.9,
    "about": 0.8,
    "testimonials": 0.8,
}


def page_url(slug: str, base_url: str | None = None) -> str:
    base = (base_url or get_settings().site_url).rstrip("/")
    return base if slug == "home" else f"{base}/{slug}"


def default_seo(slug: str) -> SEOPageData:
    return SEOPageData(
        slug=slug,
        title=DEFAULT_TITLE,
        description=DEFAULT_DESCRIPTION,
        keywords=["exhibition stands", "trade show booths", "exhibition stand design"],
        canonical=page_url(slug),
        og_title=DEFAULT_TITLE,
        og_description="Award-winning exhibition stand design and build company.",
        og_image=DEFAULT_OG_IMAGE,
        twitter_title="Verlux Stands | Premium Exhibition Stand Design & Build",
        twitter_description="Award-winning exhibition stand design and build company.",
    )


def default_pages() -> list[SEOPageData]:
    pages = []
    for slug, title, description, keywords, og_title, schema_type in _DEFAULT_PAGE_ROWS:
        pages.append(
            SEOPageData(
                slug=slug,
                title=title,
                description=description,
                keywords=keywords,
                canonical=page_url(slug),
                og_title=og_title,
                og_description=description,
                og_image=DEFAULT_OG_IMAGE,
                twitter_title=og_title,
                twitter_description=description,
                schema_type=schema_type,
            )
        )
    return pages


def default_page(slug: str) -> SEOPageData | None:
    for page in default_pages():
        if page.slug == slug:
            return page
    return None


def normalize_seo_slug(slug: str) -> str:
    cleaned = str(slug or "").strip()
    if cleaned == "/":
        return "home"
    return cleaned.lstrip("/") or "home"


def is_valid_seo_slug(slug: str) -> bool:
    return bool(slug) and not slug.startswith(".well-known") and "." not in slug


class SEOCache:
    """In-process TTL cache of store hits, keyed by normalized slug."""

    def __init__(self, ttl_seconds: float | None = None):
        self._ttl = ttl_seconds
        self._entries: dict[str, tuple[float, SEOPageData]] = {}

    @property
    def ttl(self) -> float:
        if self._ttl is not None:
            return self._ttl
        return float(get_settings().seo_cache_ttl_seconds)

    def get(self, slug: str) -> SEOPageData | None:
        entry = self._entries.get(slug)
        if entry is None:
            return None
        stored_at, data = entry
        if time.monotonic() - stored_at >= self.ttl:
            self._entries.pop(slug, None)
            return None
        return data

    def put(self, slug: str, data: SEOPageData) -> None:
        self._entries[slug] = (time.monotonic(), data)

    def invalidate(self, slug: str | None = None) -> None:
        if slug is None:
            self._entries.clear()
        else:
            self._entries.pop(slug, None)


def _from_store(slug: str, raw: Any) -> SEOPageData | None:
    if not isinstance(raw, dict):
        return None
    payload = dict(raw)
    payload["slug"] = slug
    return SEOPageData.model_validate(payload)


async def get_seo(store: TreeStore, slug: str, *, cache: SEOCache | None = None) -> SEOPageData:
    """Stored SEO for ``slug``, falling back to the built-in page and then generic defaults."""
    raw_slug = str(slug or "").strip()
    if not is_valid_seo_slug(raw_slug.lstrip("/")) and raw_slug != "/":
        logger.debug("SEO requested for invalid slug %r", raw_slug)
        return default_seo(raw_slug)

    normalized = normalize_seo_slug(raw_slug)
    cached = cache.get(normalized) if cache is not None else None
    if cached is not None:
        return cached

    try:
        data = _from_store(normalized, await store.get(join_path(SEO_ROOT, normalized)))
    except (VerluxError, ValueError):
        logger.warning("SEO lookup failed for %s; using defaults", normalized, exc_info=True)
        data = None
    if data is not None:
        if cache is not None:
            cache.put(normalized, data)
        return data

    return default_page(normalized) or default_seo(normalized)


async def list_seo_pages(store: TreeStore) -> list[SEOPageData]:
    raw = await store.get(SEO_ROOT)
    if not isinstance(raw, dict):
        return []
    pages = []
    for slug, value in raw.items():
        page = _from_store(slug, value)
        if page is not None:
            pages.append(page)
    return sorted(pages, key=lambda page: page.slug)


async def get_seo_page(store: TreeStore, slug: str) -> SEOPageData:
    normalized = normalize_seo_slug(slug)
    page = _from_store(normalized, await store.get(join_path(SEO_ROOT, normalized)))
    if page is None:
        raise NotFound("SEO page", normalized)
    return page


async def create_seo_page(
    store: TreeStore, data: SEOPageData, *, cache: SEOCache | None = None
) -> SEOPageData:
    slug = normalize_seo_slug(data.slug)
    stamp = now_ms()
    page = data.model_copy(update={"slug": slug, "created_at": stamp, "last_updated": stamp})
    await store.set(join_path(SEO_ROOT, slug), page.to_store())
    if cache is not None:
        cache.invalidate(slug)
    logger.info("SEO page created: %s", slug)
    return page


async def update_seo_page(
    store: TreeStore, slug: str, fields: dict[str, Any], *, cache: SEOCache | None = None
) -> dict[str, Any]:
    normalized = normalize_seo_slug(slug)
    changes = {key: value for key, value in fields.items() if key != "slug"}
    changes["lastUpdated"] = now_ms()
    await store.update(join_path(SEO_ROOT, normalized), changes)
    if cache is not None:
        cache.invalidate(normalized)
    return changes


async def delete_seo_page(store: TreeStore, slug: str, *, cache: SEOCache | None = None) -> None:
    normalized = normalize_seo_slug(slug)
    await store.delete(join_path(SEO_ROOT, normalized))
    if cache is not None:
        cache.invalidate(normalized)


async def seed_seo_pages(store: TreeStore, *, cache: SEOCache | None = None) -> list[str]:
    slugs = []
    for page in default_pages():
        await create_seo_page(store, page, cache=cache)
        slugs.append(page.slug)
    return slugs


def _absolute_image(url: str, base: str) -> str:
    return url if url.startswith("http") else f"{base}{url}"


def build_metadata(seo: SEOPageData) -> dict[str, Any]:
    settings = get_settings()
    base = settings.site_url.rstrip("/")
    canonical = seo.canonical or page_url(seo.slug, base)
    title = seo.title
    images = []
    if seo.og_image:
        images.append(
            {
                "url": _absolute_image(seo.og_image, base),
                "width": 1200,
                "height": 630,
                "alt": seo.og_title or title,
            }
        )
    return {
        "title": title,
        "description": seo.description,
        "keywords": seo.keywords,
        "alternates": {"canonical": canonical},
        "robots": {
            "index": seo.index,
            "follow": seo.follow,
            "googleBot": {
                "index": seo.index,
                "follow": seo.follow,
                "max-video-preview": -1,
                "max-image-preview": "large",
                "max-snippet": -1,
            },
        },
        "openGraph": {
            "title": seo.og_title or title,
            "description": seo.og_description or seo.description,
            "url": canonical,
            "siteName": settings.site_name,
            "images": images,
            "type": "website",
            "locale": "en_GB",
        },
        "twitter": {
            "card": "summary_large_image",
            "title": seo.twitter_title or title,
            "description": seo.twitter_description or seo.description,
            "images": [image["url"] for image in images],
        },
    }


def validate_seo(seo: SEOPageData) -> SEOValidation:
    errors: list[str] = []
    warnings: list[str] = []
    score = 100

    if not seo.title:
        errors.append("Title is required")
        score -= 20
    elif len(seo.title) < 30:
        warnings.append("Title is too short (recommended: 50-60 characters)")
        score -= 5
    elif len(seo.title) > 60:
        warnings.append("Title is too long (recommended: 50-60 characters)")
        score -= 5

    if not seo.description:
        errors.append("Description is required")
        score -= 20
    elif len(seo.description) < 120:
        warnings.append("Description is too short (recommended: 150-160 characters)")
        score -= 5
    elif len(seo.description) > 160:
        warnings.append("Description is too long (recommended: 150-160 characters)")
        score -= 5

    if not seo.keywords:
        warnings.append("No keywords defined")
        score -= 5
    elif len(seo.keywords) < 3:
        warnings.append("Consider adding more keywords (recommended: 5-10)")
        score -= 2

    if not seo.canonical:
        warnings.append("No canonical URL defined")
        score -= 5

    if not seo.og_title:
        warnings.append("OpenGraph title is missing")
        score -= 3
    if not seo.og_description:
        warnings.append("OpenGraph description is missing")
        score -= 3
    if not seo.og_image:
        warnings.append("OpenGraph image is missing")
        score -= 5

    if not seo.schema_type:
        warnings.append("Schema type is not defined")
        score -= 5

    return SEOValidation(errors=errors, warnings=warnings, score=max(0, score))


async def indexable_pages(store: TreeStore) -> list[SEOPageData]:
    try:
        pages = await list_seo_pages(store)
    except VerluxError:
        logger.warning("Falling back to default pages for sitemap", exc_info=True)
        pages = []
    if not pages:
        pages = default_pages()
    return [page for page in pages if page.index]


def render_sitemap(pages: list[SEOPageData]) -> str:
    base = get_settings().site_url.rstrip("/")
    entries = []
    for page in pages:
        if page.last_updated:
            modified = datetime.fromtimestamp(page.last_updated / 1000, tz=UTC)
        else:
            modified = datetime.now(UTC)
        priority = SITEMAP_PRIORITIES.get(page.slug, 0.7)
        frequency = "weekly" if page.slug == "home" else "monthly"
        entries.append(
            "<url>"
            f"<loc>{xml_escape(page_url(page.slug, base))}</loc>"
            f"<lastmod>{modified.date().isoformat()}</lastmod>"
            f"<changefreq>{frequency}</changefreq>"
            f"<priority>{priority:.1f}</priority>"
            "</url>"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        + "".join(entries)
        + "</urlset>\n"
    )
