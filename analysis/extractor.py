"""
Article HTML extraction: plain text, heading structure, link counts and
Yoast SEO fields from a WordPress post.
"""

import logging
import re
from typing import Iterable
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from models import public_url

logger = logging.getLogger(__name__)

# Tags whose entire subtree is dropped before reading body text
_STRIP_TAGS = ("script", "style", "noscript")


def html_to_text(html: str) -> str:
    """Strip tags, decode entities, collapse whitespace."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag_name in _STRIP_TAGS:
        for tag in soup.find_all(tag_name):
            tag.decompose()
    text = soup.get_text(separator=" ")
    return re.sub(r"\s+", " ", text.replace("\xa0", " ")).strip()


def _is_internal(href: str, internal_hosts: Iterable[str]) -> bool:
    host = urlparse(href).netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    return host in internal_hosts


def analyse_structure(html: str, internal_hosts: Iterable[str]) -> dict:
    """Headings (H2, then H3), media flags and absolute link counts."""
    soup = BeautifulSoup(html or "", "lxml")
    hosts = {h.lower() for h in internal_hosts}

    headings = []
    for level in ("h2", "h3"):
        for tag in soup.find_all(level):
            headings.append({"level": level.upper(), "text": tag.get_text(" ", strip=True)})

    internal = external = 0
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href.startswith(("http://", "https://")):
            continue
        if _is_internal(href, hosts):
            internal += 1
        else:
            external += 1

    return {
        "headings": headings,
        "structure": {
            "h2Count":       sum(1 for h in headings if h["level"] == "H2"),
            "h3Count":       sum(1 for h in headings if h["level"] == "H3"),
            "hasImages":     soup.find("img") is not None,
            "hasTables":     soup.find("table") is not None,
            "hasLists":      soup.find(["ul", "ol"]) is not None,
            "internalLinks": internal,
            "externalLinks": external,
        },
    }


def seo_fields(post: dict) -> dict:
    """Yoast data comes either via yoast_head_json or registered meta fields."""
    yoast = post.get("yoast_head_json") or {}
    meta = post.get("meta") or {}
    if not isinstance(meta, dict):
        meta = {}
    return {
        "focusKeyword":   meta.get("_yoast_wpseo_focuskw") or meta.get("yoast_wpseo_focuskw")
                          or yoast.get("focuskw") or "",
        "seoTitle":       yoast.get("title") or meta.get("_yoast_wpseo_title") or "",
        "seoDescription": yoast.get("og_description") or yoast.get("description")
                          or meta.get("_yoast_wpseo_metadesc") or "",
    }


def _rendered(field) -> str:
    if isinstance(field, dict):
        return field.get("rendered", "") or ""
    return field or ""


def extract_article(post: dict, site: dict) -> dict:
    """Full article view used by the content review pipeline."""
    raw_html = _rendered(post.get("content"))
    text = html_to_text(raw_html)
    analysed = analyse_structure(raw_html, site.get("internal_hosts", ()))
    word_count = len(text.split())

    logger.debug("Extracted post %s — %d words, %d headings",
                 post.get("id"), word_count, len(analysed["headings"]))

    return {
        "id":          post.get("id"),
        "title":       _rendered(post.get("title")),
        "url":         public_url(post.get("link") or "", site.get("cms_host", ""), site.get("public_host", "")),
        "slug":        post.get("slug", ""),
        "date":        post.get("date", ""),
        "content":     text,
        "contentHtml": raw_html,
        "wordCount":   word_count,
        "headings":    analysed["headings"],
        "structure":   analysed["structure"],
        "seo":         seo_fields(post),
    }


def review_listing(post: dict, status: str, site: dict) -> dict:
    """Compact post entry for the review candidate list."""
    seo = seo_fields(post)
    yoast = post.get("yoast_head_json") or {}
    schema = yoast.get("schema")
    main_entity = schema.get("mainEntityOfPage") if isinstance(schema, dict) else None
    return {
        "id":             post.get("id"),
        "title":          _rendered(post.get("title")),
        "url":            public_url(post.get("link") or "", site.get("cms_host", ""), site.get("public_host", "")),
        "date":           post.get("date", ""),
        "slug":           post.get("slug", ""),
        "excerpt":        html_to_text(_rendered(post.get("excerpt")))[:200],
        "wpStatus":       status,
        "categories":     post.get("categories") or [],
        "focusKeyword":   seo["focusKeyword"],
        "seoTitle":       seo["seoTitle"],
        "seoDescription": seo["seoDescription"],
        "seoScore":       main_entity.get("@type", "") if isinstance(main_entity, dict) else "",
    }
