"""
Content-management actions: listings for review, full-text extraction,
publishing and post creation, plus the AI review/assist/image pipelines.
"""

import asyncio
import base64
import logging

from actions.context import ActionContext
from analysis.extractor import extract_article, review_listing
from analysis.images import image_filename
from errors import InvalidParameterError
from fetchers.content import POST_LIST_FIELDS, REVIEW_FIELDS
from fetchers.result import Result
from models import ContentItem, public_url

logger = logging.getLogger(__name__)

CREATE_FIELDS = ("title", "content", "status", "categories", "tags", "excerpt", "slug", "featured_media")


async def articles(ctx: ActionContext) -> list:
    posts = await asyncio.to_thread(ctx.clients.content.list_posts, per_page=10, orderby=None, order=None,
                                    fields=POST_LIST_FIELDS)
    site = ctx.site
    return [
        {"id": item.id, "title": item.title, "url": item.url, "date": item.published_at, "slug": item.slug}
        for item in (ContentItem.from_post(p, site["cms_host"], site["public_host"]) for p in posts)
    ]


async def _optional_listing(ctx: ActionContext, status: str, per_page: int) -> Result:
    """Draft/pending listings may be forbidden for the API user; failures are isolated."""
    try:
        posts = await asyncio.to_thread(
            ctx.clients.content.list_posts, per_page=per_page, status=status, fields=REVIEW_FIELDS,
        )
        return Result.success(posts)
    except Exception as exc:
        logger.warning("WP %s listing unavailable: %s", status, exc)
        return Result.failure(str(exc), default=[])


async def review_candidates(ctx: ActionContext) -> list:
    """Pending first, then drafts, then the 15 newest published posts."""
    published, drafts, pending = await asyncio.gather(
        asyncio.to_thread(ctx.clients.content.list_posts, per_page=15, status="publish", fields=REVIEW_FIELDS),
        _optional_listing(ctx, "draft", 10),
        _optional_listing(ctx, "pending", 10),
    )
    site = ctx.site
    return (
        [review_listing(p, "pending", site) for p in pending.unwrap_or([])]
        + [review_listing(p, "draft", site) for p in drafts.unwrap_or([])]
        + [review_listing(p, "publish", site) for p in published]
    )


async def fetch_article(ctx: ActionContext) -> dict:
    post_id = ctx.require_post_id()
    post = await asyncio.to_thread(ctx.clients.content.get_post, post_id)
    return extract_article(post, ctx.site)


async def article_content(ctx: ActionContext) -> dict:
    return await fetch_article(ctx)


async def publish_post(ctx: ActionContext) -> dict:
    post_id = ctx.require_post_id()
    post = await asyncio.to_thread(ctx.clients.content.update_post, post_id, {"status": "publish"})
    title = post.get("title") or {}
    return {
        "id":     post.get("id"),
        "title":  title.get("rendered", "") if isinstance(title, dict) else title,
        "status": post.get("status"),
        "url":    public_url(post.get("link") or "", ctx.site["cms_host"], ctx.site["public_host"]),
    }


async def create_post(ctx: ActionContext) -> dict:
    body = ctx.body
    if not body.get("title"):
        raise InvalidParameterError("title is required")
    payload = {k: body[k] for k in CREATE_FIELDS if body.get(k) not in (None, "", [])}
    payload.setdefault("status", "draft")
    post = await asyncio.to_thread(ctx.clients.content.create_post, payload)
    return {"id": post.get("id"), "link": post.get("link"), "status": post.get("status")}


async def ai_review(ctx: ActionContext) -> dict:
    article = await fetch_article(ctx)
    review = await asyncio.to_thread(ctx.clients.ai.review, article)
    return {"article": article, "review": review}


async def ai_assist(ctx: ActionContext) -> dict:
    prompt = ctx.body.get("prompt")
    if not prompt:
        raise InvalidParameterError("prompt is required")
    return await asyncio.to_thread(ctx.clients.ai.assist, prompt, ctx.body.get("mode"))


async def generate_image(ctx: ActionContext) -> dict:
    body = ctx.body
    prompt = body.get("prompt")
    if not prompt:
        raise InvalidParameterError("prompt is required")
    size = body.get("size") or ctx.config["images"].get("size")
    image = await asyncio.to_thread(ctx.clients.images.generate, prompt, size)

    result = {
        "prompt":   prompt,
        "size":     size,
        "mimeType": "image/png",
        "image":    base64.b64encode(image).decode(),
    }
    if body.get("upload"):
        media = await asyncio.to_thread(
            ctx.clients.content.upload_media, image, image_filename(prompt), "image/png", body.get("title"),
        )
        result["media"] = {"id": media.get("id"), "url": media.get("source_url")}
    return result
