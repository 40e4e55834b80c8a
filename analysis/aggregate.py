"""
Rankings, rollups and period deltas over reconciled articles.
All functions are pure; inputs arrive sorted newest-first.
"""

import math
from typing import Iterable, Optional, Sequence

from models import ReconciledArticle

NO_CHANNEL = "—"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def delta_pct(current: float, previous: float) -> Optional[int]:
    """Percent change vs the previous period; None when previous is 0."""
    if not previous:
        return None
    return round_half_up((current - previous) / previous * 100)


def average(total: float, count: int) -> int:
    return round_half_up(total / count) if count else 0


# ── Rankings ──────────────────────────────────────────────────────────────────

def top_n(articles: Sequence[ReconciledArticle], n: int = 5) -> list[ReconciledArticle]:
    return sorted(articles, key=lambda a: a.pageviews, reverse=True)[:n]


def bottom_n(articles: Sequence[ReconciledArticle], n: int = 5,
             min_views: int = 0, exclude_zero: bool = False) -> list[ReconciledArticle]:
    """
    Least-viewed articles. Zero-view articles are kept by default: they are
    either genuine flops or path-match misses, and both are worth surfacing.
    """
    pool = [
        a for a in articles
        if a.pageviews >= min_views and not (exclude_zero and a.pageviews == 0)
    ]
    return sorted(pool, key=lambda a: a.pageviews)[:n]


# ── Rollups ───────────────────────────────────────────────────────────────────

def channel_totals(articles: Iterable[ReconciledArticle]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for a in articles:
        for channel, views in a.channel_breakdown.items():
            totals[channel] = totals.get(channel, 0) + views
    return totals


def top_channel(channels: dict[str, int]) -> str:
    if not channels:
        return NO_CHANNEL
    return max(channels.items(), key=lambda kv: kv[1])[0]


def category_rollup(articles: Iterable[ReconciledArticle], categories: Iterable[dict],
                    top_articles: int = 3) -> list[dict]:
    """
    Group by every category an article carries (multi-category articles count
    in each group). Unknown category ids are skipped.
    """
    by_id = {c["id"]: c for c in categories}
    groups: dict[str, dict] = {}

    for a in articles:
        for cat_id in a.categories:
            cat = by_id.get(cat_id)
            if not cat:
                continue
            g = groups.setdefault(cat["name"], {
                "name":           cat["name"],
                "slug":           cat.get("slug", ""),
                "count":          0,
                "totalPageviews": 0,
                "articles":       [],
                "channels":       {},
            })
            g["count"] += 1
            g["totalPageviews"] += a.pageviews
            g["articles"].append({"title": a.title, "pageviews": a.pageviews, "path": a.path})
            for channel, views in a.channel_breakdown.items():
                g["channels"][channel] = g["channels"].get(channel, 0) + views

    rollup = []
    for g in groups.values():
        rollup.append({
            **g,
            "avgPageviews": average(g["totalPageviews"], g["count"]),
            "topChannel":   top_channel(g["channels"]),
            "articles":     sorted(g["articles"], key=lambda x: x["pageviews"], reverse=True)[:top_articles],
        })
    return sorted(rollup, key=lambda g: g["totalPageviews"], reverse=True)


def new_content_summary(articles: Sequence[ReconciledArticle]) -> dict:
    total = sum(a.pageviews for a in articles)
    return {
        "count":        len(articles),
        "pageviews":    total,
        "avgPageviews": average(total, len(articles)),
        "articles": [
            {"title": a.title, "url": a.url, "date": a.published_at, "pageviews": a.pageviews}
            for a in articles
        ],
    }


def topstory_summary(articles: Sequence[ReconciledArticle]) -> dict:
    ranked = top_n(articles, len(articles))
    total = sum(a.pageviews for a in ranked)
    return {
        "count":          len(ranked),
        "totalPageviews": total,
        "avgPageviews":   average(total, len(ranked)),
        "channelTotals":  channel_totals(ranked),
        "articles":       [a.to_dict() for a in ranked],
    }


def period_delta(current: dict[str, float], previous: dict[str, float],
                 keys: Iterable[str]) -> dict[str, Optional[int]]:
    return {k: delta_pct(current.get(k, 0), previous.get(k, 0)) for k in keys}
