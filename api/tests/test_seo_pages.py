"""Tests for SEO lookup, caching, metadata and validation."""

import pytest
from api.services.seo_pages import (
    DEFAULT_TITLE,
    SEOCache,
    build_metadata,
    create_seo_page,
    default_pages,
    delete_seo_page,
    get_seo,
    get_seo_page,
    indexable_pages,
    list_seo_pages,
    normalize_seo_slug,
    render_sitemap,
    seed_seo_pages,
    update_seo_page,
    validate_seo,
)
from verlux.errors import NotFound
from verlux.schemas.seo import SEOPageData


def _good_page(**overrides) -> SEOPageData:
    data = {
        "slug": "services",
        "title": "Exhibition Stand Services | Design, Build and Installation",
        "description": (
            "Complete exhibition stand services from concept development and 3D design to "
            "custom fabrication, logistics and on-site installation across thirty countries."
        ),
        "keywords": ["exhibition", "stands", "design", "build", "install"],
        "canonical": "https://verluxstands.com/services",
        "ogTitle": "Exhibition Stand Services",
        "ogDescription": "Design, build and installation.",
        "ogImage": "/images/services.jpg",
    }
    data.update(overrides)
    return SEOPageData.model_validate(data)


class TestValidateSeo:
    def test_complete_page_scores_full(self):
        result = validate_seo(_good_page())
        assert result.errors == []
        assert result.warnings == []
        assert result.score == 100

    def test_empty_page(self):
        result = validate_seo(SEOPageData(slug="x"))
        assert result.errors == ["Title is required", "Description is required"]
        assert "No keywords defined" in result.warnings
        assert "OpenGraph image is missing" in result.warnings
        assert result.score == 39

    def test_length_warnings(self):
        result = validate_seo(_good_page(title="Short", description="Also short"))
        assert "Title is too short (recommended: 50-60 characters)" in result.warnings
        assert "Description is too short (recommended: 150-160 characters)" in result.warnings
        assert result.score == 90

    def test_few_keywords(self):
        result = validate_seo(_good_page(keywords=["one"]))
        assert result.warnings == ["Consider adding more keywords (recommended: 5-10)"]
        assert result.score == 98


def test_normalize_seo_slug():
    assert normalize_seo_slug("/") == "home"
    assert normalize_seo_slug("") == "home"
    assert normalize_seo_slug("/about") == "about"


class TestGetSeo:
    async def test_stored_page_wins(self, store):
        await create_seo_page(store, _good_page())
        seo = await get_seo(store, "/services", cache=SEOCache(60))
        assert seo.title.startswith("Exhibition Stand Services | Design")

    async def test_builtin_page_fallback(self, store):
        seo = await get_seo(store, "about", cache=SEOCache(60))
        assert seo.title == "About Verlux Stands | 15+ Years of Exhibition Excellence"

    async def test_generic_default_for_unknown_slug(self, store):
        seo = await get_seo(store, "somewhere-new", cache=SEOCache(60))
        assert seo.title == DEFAULT_TITLE
        assert seo.canonical == "https://verluxstands.com/somewhere-new"

    async def test_root_is_home(self, store):
        seo = await get_seo(store, "/", cache=SEOCache(60))
        assert seo.slug == "home"
        assert seo.canonical == "https://verluxstands.com"

    @pytest.mark.parametrize("slug", ["favicon.ico", ".well-known/security.txt"])
    async def test_file_like_slugs_get_defaults_without_lookup(self, store, slug):
        store.unavailable = True
        seo = await get_seo(store, slug, cache=SEOCache(60))
        assert seo.title == DEFAULT_TITLE

    async def test_store_failure_falls_back(self, store):
        store.unavailable = True
        seo = await get_seo(store, "contact", cache=SEOCache(60))
        assert seo.title == "Contact Us | Get a Free Exhibition Stand Quote"

    async def test_hits_are_cached(self, store):
        cache = SEOCache(60)
        await create_seo_page(store, _good_page())
        await get_seo(store, "services", cache=cache)
        store.unavailable = True
        seo = await get_seo(store, "services", cache=cache)
        assert seo.title.startswith("Exhibition Stand Services | Design")

    async def test_expired_entries_are_refetched(self, store):
        cache = SEOCache(0)
        await create_seo_page(store, _good_page())
        await get_seo(store, "services", cache=cache)
        await store.update("seo_pages/services", {"title": "Changed"})
        seo = await get_seo(store, "services", cache=cache)
        assert seo.title == "Changed"


class TestSeoCrud:
    async def test_create_stamps_times(self, store):
        page = await create_seo_page(store, _good_page(slug="/services"))
        assert page.slug == "services"
        assert page.created_at == page.last_updated
        stored = store.rows["seo_pages/services"]
        assert stored["ogTitle"] == "Exhibition Stand Services"

    async def test_update_invalidates_cache(self, store):
        cache = SEOCache(60)
        await create_seo_page(store, _good_page(), cache=cache)
        await get_seo(store, "services", cache=cache)
        changes = await update_seo_page(
            store, "services", {"title": "New title", "slug": "moved"}, cache=cache
        )
        assert "slug" not in changes
        assert changes["lastUpdated"]
        seo = await get_seo(store, "services", cache=cache)
        assert seo.title == "New title"

    async def test_get_missing(self, store):
        with pytest.raises(NotFound):
            await get_seo_page(store, "nothing")

    async def test_delete(self, store):
        await create_seo_page(store, _good_page())
        await delete_seo_page(store, "services")
        assert await list_seo_pages(store) == []

    async def test_seed(self, store):
        slugs = await seed_seo_pages(store)
        assert slugs[0] == "home"
        assert len(slugs) == len(default_pages())
        assert [page.slug for page in await list_seo_pages(store)] == sorted(slugs)


def test_build_metadata():
    metadata = build_metadata(_good_page(index=False))
    assert metadata["alternates"]["canonical"] == "https://verluxstands.com/services"
    assert metadata["robots"]["index"] is False
    assert metadata["openGraph"]["images"][0]["url"] == "https://verluxstands.com/images/services.jpg"
    assert metadata["openGraph"]["siteName"] == "Verlux Stands"
    assert metadata["twitter"]["title"] == metadata["title"]
    assert metadata["twitter"]["card"] == "summary_large_image"


def test_build_metadata_without_image():
    metadata = build_metadata(SEOPageData(slug="about", title="About"))
    assert metadata["openGraph"]["images"] == []
    assert metadata["alternates"]["canonical"] == "https://verluxstands.com/about"


class TestSitemap:
    async def test_defaults_when_store_empty(self, store):
        pages = await indexable_pages(store)
        assert {page.slug for page in pages} == {page.slug for page in default_pages()}

    async def test_noindex_pages_are_left_out(self, store):
        await create_seo_page(store, _good_page())
        await create_seo_page(store, _good_page(slug="private", index=False))
        assert [page.slug for page in await indexable_pages(store)] == ["services"]

    def test_render(self):
        xml = render_sitemap(default_pages())
        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert (
            "<loc>https://verluxstands.com</loc><lastmod>"
        ) in xml
        assert "<changefreq>weekly</changefreq><priority>1.0</priority>" in xml
        assert "<loc>https://verluxstands.com/major-cities</loc>" in xml
        assert "<priority>0.7</priority>" in xml
