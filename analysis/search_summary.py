"""
Search Console section summaries: this month vs last month, plus top keywords
and top pages. The four sub-queries run concurrently and each one is isolated,
so a failing filter degrades the card instead of failing it.
"""

import asyncio
import logging
from datetime import date
from typing import Optional, Sequence

from analysis.aggregate import delta_pct, round_half_up
from analysis.dates import DateRange, month_boundaries
from fetchers.result import Result
from fetchers.search_console import PageFilter, SearchConsoleClient, section_filters

logger = logging.getLogger(__name__)

_EMPTY = {"clicks": 0, "impressions": 0, "ctr": 0, "position": 0}


def _pct1(ctr: float) -> float:
    """CTR fraction → percent with one decimal."""
    return round_half_up(ctr * 1000) / 10


def _one_decimal(value: float) -> float:
    return round_half_up(value * 10) / 10


def format_row(row: dict, key_name: Optional[str] = None) -> dict:
    out = {}
    if key_name:
        out[key_name] = (row.get("keys") or [""])[0]
    out.update({
        "clicks":      round_half_up(row.get("clicks", 0)),
        "impressions": round_half_up(row.get("impressions", 0)),
        "ctr":         _pct1(row.get("ctr", 0)),
        "position":    _one_decimal(row.get("position", 0)),
    })
    return out


def summarise(summary: Result, previous: Result, keywords: Result, pages: Result) -> dict:
    s = (summary.unwrap_or([]) or [_EMPTY])[0]
    p = (previous.unwrap_or([]) or [_EMPTY])[0]
    failures = [
        name for name, r in
        (("summary", summary), ("previous", previous), ("keywords", keywords), ("pages", pages))
        if not r.ok
    ]
    return {
        "summary": format_row(s),
        "delta": {
            "clicks":      delta_pct(s.get("clicks", 0), p.get("clicks", 0)),
            "impressions": delta_pct(s.get("impressions", 0), p.get("impressions", 0)),
            "ctr":         _pct1(s.get("ctr", 0) - p.get("ctr", 0)),
            # Lower is better for position, so positive means improved.
            "position":    _one_decimal(p.get("position", 0) - s.get("position", 0)),
        },
        "keywords": [format_row(r, "keyword") for r in keywords.unwrap_or([])],
        "pages":    [format_row(r, "page") for r in pages.unwrap_or([])],
        "failures": failures,
    }


async def section_summary(client: SearchConsoleClient, filters: Sequence[PageFilter],
                          today: Optional[date] = None, top: int = 10) -> dict:
    months = month_boundaries(today)
    current, prev = months.this_month, months.last_month

    summary, previous, keywords, pages = await asyncio.gather(
        asyncio.to_thread(client.safe_query, current, (), filters),
        asyncio.to_thread(client.safe_query, prev, (), filters),
        asyncio.to_thread(client.safe_query, current, ("query",), filters, "clicks", top),
        asyncio.to_thread(client.safe_query, current, ("page",), filters, "clicks", top),
    )
    result = summarise(summary, previous, keywords, pages)
    if result["failures"]:
        logger.warning("GSC section summary degraded: %s failed", ", ".join(result["failures"]))
    return result


async def section_summary_from_config(client: SearchConsoleClient, section: dict,
                                      today: Optional[date] = None) -> dict:
    filters = section_filters(
        include=section.get("include"),
        exclude=section.get("exclude"),
        exclude_regex=section.get("exclude_regex"),
    )
    return await section_summary(client, filters, today)


async def debug_pages(client: SearchConsoleClient, sections: dict,
                      today: Optional[date] = None, top: int = 10) -> dict:
    """
    Top pages unfiltered and per configured section, for checking filters.
    Each section is reported under its `debug_key` (default "<name>Pages").
    """
    current: DateRange = month_boundaries(today).this_month

    async def top_pages(filters):
        result = await asyncio.to_thread(client.safe_query, current, ("page",), filters, "clicks", top)
        if not result.ok:
            return [{"error": result.reason}]
        return [
            {"page": r["keys"][0], "clicks": round_half_up(r.get("clicks", 0)),
             "impressions": round_half_up(r.get("impressions", 0))}
            for r in result.data
        ]

    names = list(sections)
    keys = [sections[n].get("debug_key") or f"{n}Pages" for n in names]
    filter_sets = [
        section_filters(sections[n].get("include"), sections[n].get("exclude"),
                        sections[n].get("exclude_regex"))
        for n in names
    ]
    all_pages, *per_section = await asyncio.gather(
        top_pages(()), *(top_pages(f) for f in filter_sets)
    )
    date_query = current.as_query()
    return {
        "info":      "Debug: top pages unfiltered and filtered per section (" + ", ".join(names) + ")",
        "gscSite":   client.site_url,
        "dateRange": {"startDate": date_query["startDate"], "endDate": date_query["endDate"]},
        "allPages":  all_pages,
        **dict(zip(keys, per_section)),
    }
