"""
Analytics-backed dashboard actions: rankings, KPIs, channel and category views.
"""

import asyncio
import logging
from typing import Optional

from actions.context import ActionContext
from analysis import aggregate
from analysis.dates import DateRange, month_boundaries, resolve_range
from analysis.reconcile import build_path_index, reconcile
from fetchers.analytics import OrderBy, rows_to_metrics
from models import ContentItem, ReconciledArticle

logger = logging.getLogger(__name__)

KPI_METRICS = ("screenPageViews", "sessions", "newUsers", "totalUsers")
KPI_KEYS = ("pageviews", "sessions", "newUsers", "totalUsers")


# ── Shared pipeline ───────────────────────────────────────────────────────────

def requested_range(ctx: ActionContext, default_start: Optional[str] = None) -> DateRange:
    start = ctx.param("range", default_start or ctx.settings["default_range"])
    end = ctx.param("date", "today")
    return resolve_range(start, end, today=ctx.today)


def this_month(ctx: ActionContext) -> DateRange:
    return month_boundaries(ctx.today).this_month


async def articles_with_channels(ctx: ActionContext, date_range: DateRange,
                                 category: Optional[int] = None,
                                 limit: Optional[int] = None) -> list[ReconciledArticle]:
    """
    Posts published since the range start, each joined to its pageviews and
    channel split for the same range. Both fetches run concurrently.
    """
    clients = ctx.clients
    limit = limit or ctx.config["content"]["max_posts"]
    after = f"{date_range.start.isoformat()}T00:00:00"

    posts, report = await asyncio.gather(
        asyncio.to_thread(clients.content.list_posts, per_page=limit, after=after, categories=category),
        asyncio.to_thread(
            clients.analytics.run_report,
            [date_range],
            dimensions=("pagePath", "sessionDefaultChannelGroup"),
            metrics=("screenPageViews",),
            limit=ctx.config["analytics"]["report_limit"],
        ),
    )
    site = ctx.site
    items = [ContentItem.from_post(p, site["cms_host"], site["public_host"]) for p in posts]
    index = build_path_index(rows_to_metrics(report.rows))
    logger.info("Reconciling %d posts against %d analytics paths (%s → %s)",
                len(items), len(index), date_range.start, date_range.end)
    return reconcile(items, index, ctx.path_templates)


def _kpis_from_row(row) -> dict:
    if row is None:
        return {k: 0 for k in KPI_KEYS}
    return {k: row.metric_int(i) for i, k in enumerate(KPI_KEYS)}


# ── Rankings ──────────────────────────────────────────────────────────────────

async def top5(ctx: ActionContext) -> list:
    articles = await articles_with_channels(ctx, requested_range(ctx))
    return [a.to_dict() for a in aggregate.top_n(articles, ctx.settings["top_n"])]


async def flop5(ctx: ActionContext) -> list:
    articles = await articles_with_channels(ctx, requested_range(ctx))
    return [a.to_dict() for a in aggregate.bottom_n(
        articles, ctx.settings["top_n"], min_views=ctx.settings["flop_min_views"])]


async def top5_new(ctx: ActionContext) -> list:
    articles = await articles_with_channels(ctx, this_month(ctx))
    return [a.to_dict() for a in aggregate.top_n(articles, ctx.settings["top_n"])]


async def flop5_new(ctx: ActionContext) -> list:
    articles = await articles_with_channels(ctx, this_month(ctx))
    return [a.to_dict() for a in aggregate.bottom_n(
        articles, ctx.settings["top_n"], min_views=ctx.settings["flop_min_views"])]


async def topstories(ctx: ActionContext) -> dict:
    content_cfg = ctx.config["content"]
    articles = await articles_with_channels(
        ctx, this_month(ctx),
        category=content_cfg["topstory_category_id"],
        limit=content_cfg["topstory_max_posts"],
    )
    return aggregate.topstory_summary(articles)


async def new_articles(ctx: ActionContext) -> dict:
    articles = await articles_with_channels(ctx, this_month(ctx))
    return aggregate.new_content_summary(articles)


async def content_analysis(ctx: ActionContext) -> dict:
    date_range = requested_range(ctx, ctx.settings["analysis_range"])
    articles, categories = await asyncio.gather(
        articles_with_channels(ctx, date_range, limit=ctx.config["content"]["analysis_max_posts"]),
        asyncio.to_thread(ctx.clients.content.list_categories),
    )
    return {
        "categories":     aggregate.category_rollup(articles, categories),
        "totalArticles":  len(articles),
        "totalPageviews": sum(a.pageviews for a in articles),
        "period":         f"{(date_range.end - date_range.start).days} days",
    }


# ── Site-wide analytics ───────────────────────────────────────────────────────

async def kpis(ctx: ActionContext) -> dict:
    report = await asyncio.to_thread(
        ctx.clients.analytics.run_report, [requested_range(ctx)], metrics=KPI_METRICS,
    )
    return _kpis_from_row(report.first_row())


async def sources(ctx: ActionContext) -> list:
    report = await asyncio.to_thread(
        ctx.clients.analytics.run_report,
        [requested_range(ctx)],
        dimensions=("sessionDefaultChannelGroup",),
        metrics=("sessions",),
        order_by=[OrderBy("sessions")],
    )
    return [{"channel": r.dimensions[0], "sessions": r.metric_int(0)} for r in report.rows]


async def monthly_stats(ctx: ActionContext) -> dict:
    months = month_boundaries(ctx.today)
    report = await asyncio.to_thread(
        ctx.clients.analytics.run_report,
        [months.this_month, months.last_month],
        metrics=KPI_METRICS,
    )
    current = _kpis_from_row(report.first_row("thisMonth"))
    previous = _kpis_from_row(report.first_row("lastMonth"))
    return {
        "thisMonth": current,
        "lastMonth": previous,
        "delta":     aggregate.period_delta(current, previous, ("pageviews", "sessions", "newUsers")),
    }


async def daily_pageviews(ctx: ActionContext) -> list:
    report = await asyncio.to_thread(
        ctx.clients.analytics.run_report,
        [requested_range(ctx)],
        dimensions=("date",),
        metrics=("screenPageViews", "sessions", "newUsers"),
        order_by=[OrderBy("date", desc=False, dimension=True)],
    )
    return [
        {
            "date":      r.dimensions[0],   # YYYYMMDD
            "pageviews": r.metric_int(0),
            "sessions":  r.metric_int(1),
            "newUsers":  r.metric_int(2),
        }
        for r in report.rows
    ]


async def top_pages_by_channel(ctx: ActionContext) -> list:
    report = await asyncio.to_thread(
        ctx.clients.analytics.run_report,
        [requested_range(ctx)],
        dimensions=("sessionDefaultChannelGroup", "pagePath", "pageTitle"),
        metrics=("screenPageViews",),
        order_by=[OrderBy("screenPageViews")],
        limit=50,
    )
    return [
        {"channel": r.dimensions[0], "path": r.dimensions[1],
         "title": r.dimensions[2], "pageviews": r.metric_int(0)}
        for r in report.rows
    ]
