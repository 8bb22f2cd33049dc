"""Resolve published page-builder configs and render their sections to HTML."""

from __future__ import annotations

import logging
from collections.abc import Callable
from html import escape
from typing import Any

from verlux.errors import NotFound
from verlux.schemas.pages import PageComponent, PageConfig, SectionKind
from verlux.services.tree_store import TreeStore

from api.services.page_builder import load_page_config, normalize_slug, sort_by_order

logger = logging.getLogger(__name__)

RESERVED_PREFIXES = ("admin", "api", "_next")

SERVICES = [
    (
        "Concept Development",
        "We transform your vision into innovative stand concepts that align perfectly "
        "with your brand identity and marketing goals.",
    ),
    (
        "3D Design & Visualization",
        "Experience your stand before it's built with photorealistic 3D renders and "
        "immersive virtual walkthroughs.",
    ),
    (
        "Custom Fabrication",
        "Our skilled craftsmen bring designs to life using premium materials and "
        "cutting-edge manufacturing techniques.",
    ),
    (
        "Logistics & Installation",
        "Seamless delivery and professional on-site installation, ensuring your stand "
        "is ready to impress.",
    ),
    (
        "Project Management",
        "Dedicated project managers coordinate every detail, keeping you informed and "
        "stress-free throughout.",
    ),
    (
        "Post-Event Support",
        "From dismantling to storage solutions, we handle everything after the show ends.",
    ),
]

PROCESS_STEPS = [
    (
        "Discovery",
        "We begin with an in-depth consultation to understand your brand, objectives, "
        "and vision for the exhibition.",
    ),
    (
        "Concept & Design",
        "Our creative team develops innovative concepts, presented through detailed 3D "
        "visualizations and mood boards.",
    ),
    (
        "Fabrication",
        "Expert craftsmen bring the design to life using premium materials and "
        "state-of-the-art manufacturing.",
    ),
    (
        "Delivery & Install",
        "Seamless logistics and professional on-site installation ensure your stand is "
        "show-ready, stress-free.",
    ),
]

TESTIMONIALS = [
    (
        "Verlux exceeded all our expectations. The stand they created for CES was "
        "absolutely stunning and generated incredible buzz.",
        "Sarah Mitchell",
        "Marketing Director, TechVision Inc.",
    ),
    (
        "Professional, creative, and incredibly responsive. They managed every detail "
        "flawlessly and delivered on time.",
        "James Rodriguez",
        "Brand Manager, Luxe Automotive",
    ),
    (
        "The ROI from our Verlux stand was phenomenal. We generated 3x more leads than "
        "our previous exhibitions.",
        "Emma Chen",
        "CEO, Innovate Labs",
    ),
]

PORTFOLIO_PROJECTS = [
    ("Tech Summit 2024", "Technology", "/images/stand-1.jpg"),
    ("Luxe Automotive", "Automotive", "/images/stand-2.jpg"),
    ("Fashion Forward", "Fashion & Beauty", "/images/stand-3.jpg"),
]

GALLERY_IMAGES = [
    ("/images/stand-1.jpg", "Exhibition Stand 1"),
    ("/images/stand-2.jpg", "Exhibition Stand 2"),
    ("/images/stand-3.jpg", "Exhibition Stand 3"),
    ("/images/hero-stand.jpg", "Featured Stand"),
]

ABOUT_FEATURES = [
    "Award-winning design team",
    "In-house manufacturing facility",
    "Global logistics network",
    "Sustainable materials & practices",
]


def _prop(component: PageComponent, key: str, default: str) -> str:
    value = (component.props or {}).get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _section(component: PageComponent, body: str) -> str:
    return (
        f'<section id="{escape(component.id)}" data-section="{escape(component.type)}">'
        f"{body}</section>"
    )


def _heading(eyebrow: str, title: str) -> str:
    return f'<p class="eyebrow">{escape(eyebrow)}</p><h2>{escape(title)}</h2>'


def render_hero(component: PageComponent) -> str:
    title = _prop(component, "title", "Create Unforgettable Brand Experiences")
    subtitle = _prop(
        component,
        "subtitle",
        "We design and build bespoke exhibition stands that captivate audiences "
        "and elevate your brand presence at every event.",
    )
    stats = "".join(
        f"<li><strong>{value}</strong> {escape(label)}</li>"
        for value, label in (
            ("500+", "Projects Delivered"),
            ("15+", "Years Experience"),
            ("40+", "Countries Served"),
        )
    )
    return _section(
        component,
        '<p class="badge">Premium Exhibition Design</p>'
        f"<h1>{escape(title)}</h1><p>{escape(subtitle)}</p>"
        '<a href="/contact">Start Your Project</a> <a href="/portfolio">View Our Work</a>'
        f'<ul class="stats">{stats}</ul>',
    )


def render_cta(component: PageComponent) -> str:
    title = _prop(component, "title", "Ready to Transform Your Exhibition Presence?")
    brands = "".join(f"<span>{name}</span>" for name in ("MICROSOFT", "SAMSUNG", "BMW", "NIKE"))
    return _section(
        component,
        "<p class=\"badge\">Let's Create Something Amazing</p>"
        f"<h2>{escape(title)}</h2>"
        "<p>Get in touch with our team to discuss your next project. "
        "We'd love to bring your vision to life.</p>"
        '<a href="/contact">Start Your Project</a>'
        f'<p>Trusted by leading brands:</p><div class="brands">{brands}</div>',
    )


def render_testimonials(component: PageComponent) -> str:
    quotes = "".join(
        f"<blockquote><p>&ldquo;{escape(quote)}&rdquo;</p>"
        f"<footer>{escape(author)}, <cite>{escape(role)}</cite></footer></blockquote>"
        for quote, author, role in TESTIMONIALS
    )
    return _section(
        component,
        _heading("Client Stories", _prop(component, "title", "What Our Clients Say")) + quotes,
    )


def render_services(component: PageComponent) -> str:
    items = "".join(
        f"<li><h3>{escape(title)}</h3><p>{escape(description)}</p></li>"
        for title, description in SERVICES
    )
    return _section(
        component,
        _heading("Our Services", _prop(component, "title", "End-to-End Exhibition Solutions"))
        + "<p>From initial concept to final installation, we provide comprehensive services "
        "to ensure your exhibition presence exceeds expectations.</p>"
        f'<ul class="services">{items}</ul>',
    )


def render_gallery(component: PageComponent) -> str:
    images = "".join(
        f'<img src="{escape(src)}" alt="{escape(alt)}" loading="lazy">' for src, alt in GALLERY_IMAGES
    )
    return _section(
        component,
        _heading("Our Work", _prop(component, "title", "Featured Projects Gallery"))
        + f'<div class="gallery">{images}</div>',
    )


def render_about(component: PageComponent) -> str:
    features = "".join(f"<li>{escape(feature)}</li>" for feature in ABOUT_FEATURES)
    return _section(
        component,
        _heading("About Verlux", _prop(component, "title", "Crafting Exhibition Excellence Since 2009"))
        + "<p>For over 15 years, Verlux Stands has been at the forefront of exhibition design "
        "and fabrication. We combine artistic vision with engineering precision to create "
        "stands that don't just display, they inspire.</p>"
        '<p class="stat"><strong>98%</strong> Client Satisfaction Rate</p>'
        f"<ul>{features}</ul>",
    )


def render_process(component: PageComponent) -> str:
    steps = "".join(
        f"<li><span>{index:02d}</span><h3>{escape(title)}</h3><p>{escape(description)}</p></li>"
        for index, (title, description) in enumerate(PROCESS_STEPS, start=1)
    )
    return _section(
        component,
        _heading("Our Process", _prop(component, "title", "From Vision to Reality"))
        + "<p>A streamlined four-step process that ensures exceptional results "
        "and a stress-free experience for every client.</p>"
        f'<ol class="process">{steps}</ol>',
    )


def render_portfolio(component: PageComponent) -> str:
    projects = "".join(
        f'<article><img src="{escape(image)}" alt="{escape(title)}" loading="lazy">'
        f"<span>{escape(category)}</span><h3>{escape(title)}</h3></article>"
        for title, category, image in PORTFOLIO_PROJECTS
    )
    return _section(
        component,
        _heading("Portfolio", _prop(component, "title", "Featured Projects")) + projects,
    )


def render_contact_form(component: PageComponent) -> str:
    return _section(
        component,
        f"<h2>{escape(_prop(component, 'title', 'Get in Touch'))}</h2>"
        "<p>Contact form - Visit our contact page for full form</p>"
        '<a href="/contact">Contact Us</a>',
    )


def render_faq(component: PageComponent) -> str:
    items = (component.props or {}).get("items")
    if isinstance(items, list) and items:
        body = "".join(
            f"<details><summary>{escape(str(item.get('question', '')))}</summary>"
            f"<p>{escape(str(item.get('answer', '')))}</p></details>"
            for item in items
            if isinstance(item, dict)
        )
    else:
        body = "<p>FAQ section - customize in Page Builder</p>"
    return _section(
        component,
        f"<h2>{escape(_prop(component, 'title', 'Frequently Asked Questions'))}</h2>{body}",
    )


def render_custom(component: PageComponent) -> str:
    html = (component.props or {}).get("html")
    if isinstance(html, str) and html.strip():
        # Trusted admin-authored markup.
        return _section(component, html)
    return _section(component, "<p>Custom component placeholder</p>")


SECTION_RENDERERS: dict[SectionKind, Callable[[PageComponent], str]] = {
    SectionKind.HERO: render_hero,
    SectionKind.CTA: render_cta,
    SectionKind.TESTIMONIALS: render_testimonials,
    SectionKind.SERVICES: render_services,
    SectionKind.GALLERY: render_gallery,
    SectionKind.ABOUT: render_about,
    SectionKind.PROCESS: render_process,
    SectionKind.PORTFOLIO: render_portfolio,
    SectionKind.CONTACT_FORM: render_contact_form,
    SectionKind.FAQ: render_faq,
    SectionKind.CUSTOM: render_custom,
}

_unregistered = set(SectionKind) - set(SECTION_RENDERERS)
if _unregistered:
    raise RuntimeError(
        "Section kinds without a renderer: " + ", ".join(sorted(kind.value for kind in _unregistered))
    )


def is_reserved_slug(slug: str) -> bool:
    first = normalize_slug(slug).split("/", 1)[0].lower()
    return first in RESERVED_PREFIXES


async def resolve_page(store: TreeStore, slug: str) -> PageConfig:
    """Return the published config for ``slug``.

    Missing, unpublished and reserved slugs all raise the same NotFound.
    """
    normalized = normalize_slug(slug)
    if is_reserved_slug(normalized):
        raise NotFound("Page", normalized)
    try:
        config = await load_page_config(store, normalized)
    except ValueError as exc:
        raise NotFound("Page", normalized) from exc
    if config is None or not config.is_published:
        raise NotFound("Page", normalized)
    return config


def render_component(component: PageComponent) -> str | None:
    kind = SectionKind.parse(component.type)
    if kind is None:
        logger.debug("Skipping unknown section type %r", component.type)
        return None
    return SECTION_RENDERERS[kind](component)


def render_page(config: PageConfig) -> list[dict[str, Any]]:
    sections = []
    for component in sort_by_order(config.components):
        html = render_component(component)
        if html is None:
            continue
        sections.append({"id": component.id, "type": component.type, "html": html})
    return sections
