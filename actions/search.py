"""
Search Console dashboard actions, one per configured site section.
"""

from actions.context import ActionContext
from analysis.search_summary import debug_pages, section_summary_from_config


def _section(ctx: ActionContext, name: str) -> dict:
    return ctx.config["search_console"]["sections"][name]


async def news(ctx: ActionContext) -> dict:
    """Editorial articles under /news/, excluding the stock-news feed."""
    return await section_summary_from_config(ctx.clients.search, _section(ctx, "news"), ctx.today)


async def aktien_news(ctx: ActionContext) -> dict:
    return await section_summary_from_config(ctx.clients.search, _section(ctx, "aktien_news"), ctx.today)


async def debug(ctx: ActionContext) -> dict:
    return await debug_pages(ctx.clients.search, ctx.config["search_console"]["sections"], ctx.today)
