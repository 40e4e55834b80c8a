"""
Article reconciliation: join CMS posts to analytics page paths.

CMS slugs and tracked URL paths have drifted across site redesigns
(/artikel/<slug>/ vs /news/<slug>/), so each slug is tested against an ordered
list of candidate paths and the first one present in the analytics index wins.
A path shared by two posts (slug collision) counts toward both.
"""

import logging
from typing import Callable, Iterable, Sequence

from models import ContentItem, MetricsRow, PathEntry, ReconciledArticle

logger = logging.getLogger(__name__)

PathTemplate = Callable[[str], str]

DEFAULT_PREFIXES = ("/news/", "/artikel/", "/")


# ── Candidate paths ───────────────────────────────────────────────────────────

def _template(prefix: str, trailing_slash: bool) -> PathTemplate:
    def render(slug: str) -> str:
        return f"{prefix}{slug}/" if trailing_slash else f"{prefix}{slug}"
    render.__name__ = f"path{prefix.replace('/', '_')}{'slash' if trailing_slash else 'bare'}"
    return render


def build_path_templates(prefixes: Iterable[str] = DEFAULT_PREFIXES) -> tuple[PathTemplate, ...]:
    """
    One template per prefix, with and without trailing slash, in priority order.
    The first prefix is the primary site convention.
    """
    templates = []
    for prefix in prefixes:
        if not prefix.startswith("/"):
            prefix = "/" + prefix
        if not prefix.endswith("/"):
            prefix += "/"
        templates.append(_template(prefix, True))
        templates.append(_template(prefix, False))
    return tuple(templates)


DEFAULT_TEMPLATES = build_path_templates()


def candidate_paths(slug: str, templates: Sequence[PathTemplate] = DEFAULT_TEMPLATES) -> list[str]:
    return [t(slug) for t in templates]


# ── Path index ────────────────────────────────────────────────────────────────

def build_path_index(rows: Iterable[MetricsRow]) -> dict[str, PathEntry]:
    index: dict[str, PathEntry] = {}
    for row in rows:
        index.setdefault(row.path, PathEntry()).add(row.channel, row.pageviews)
    return index


def match_entry(slug: str, index: dict[str, PathEntry],
                templates: Sequence[PathTemplate] = DEFAULT_TEMPLATES) -> tuple[str, PathEntry]:
    """First candidate path with a non-empty index entry, else ("", zero entry)."""
    for path in candidate_paths(slug, templates):
        entry = index.get(path)
        if entry:
            return path, entry
    return "", PathEntry()


# ── Reconciliation ────────────────────────────────────────────────────────────

def reconcile(items: Sequence[ContentItem], index: dict[str, PathEntry],
              templates: Sequence[PathTemplate] = DEFAULT_TEMPLATES) -> list[ReconciledArticle]:
    """
    Exactly one ReconciledArticle per item, in input order. Unmatched items
    get zero pageviews and an empty channel breakdown.
    """
    primary = templates[0] if templates else _template("/", True)
    articles = []
    unmatched = 0
    for item in items:
        matched_path, entry = match_entry(item.slug, index, templates)
        if not matched_path:
            unmatched += 1
        articles.append(ReconciledArticle(
            title=item.title,
            path=primary(item.slug),
            url=item.url,
            slug=item.slug,
            published_at=item.published_at,
            pageviews=entry.total_views,
            channel_breakdown=dict(entry.channel_breakdown),
            categories=item.category_ids,
        ))
    if unmatched:
        logger.info("Reconciled %d articles, %d without an analytics path match",
                    len(articles), unmatched)
    return articles
