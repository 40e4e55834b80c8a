"""
Action dispatcher: maps an action name to its pipeline and runs it under the
request time ceiling. Batch mode runs several read-only actions concurrently
and records per-action failures instead of failing the whole batch.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, Iterable, Optional

from actions import editorial, reports, search
from actions.context import ActionContext, Clients
from errors import ActionTimeoutError, InvalidParameterError, UnknownActionError
from fetchers.result import Result

logger = logging.getLogger(__name__)

Handler = Callable[[ActionContext], Awaitable]

GET, POST = "GET", "POST"


@dataclass(frozen=True)
class ActionSpec:
    name: str
    handler: Handler
    methods: tuple = (GET,)
    batchable: bool = True


ACTIONS: dict[str, ActionSpec] = {spec.name: spec for spec in (
    ActionSpec("top5",                    reports.top5),
    ActionSpec("flop5",                   reports.flop5),
    ActionSpec("top5New",                 reports.top5_new),
    ActionSpec("flop5New",                reports.flop5_new),
    ActionSpec("topstories",              reports.topstories),
    ActionSpec("kpis",                    reports.kpis),
    ActionSpec("sources",                 reports.sources),
    ActionSpec("articles",                editorial.articles),
    ActionSpec("monthlyStats",            reports.monthly_stats),
    ActionSpec("newArticles",             reports.new_articles),
    ActionSpec("dailyPageviews",          reports.daily_pageviews),
    ActionSpec("topPagesByChannel",       reports.top_pages_by_channel),
    ActionSpec("contentAnalysis",         reports.content_analysis),
    ActionSpec("searchconsole",           search.news),
    ActionSpec("searchconsoleNews",       search.news),
    ActionSpec("searchconsoleAktienNews", search.aktien_news),
    ActionSpec("searchconsoleDebug",      search.debug),
    ActionSpec("reviewCandidates",        editorial.review_candidates),
    ActionSpec("articleContent",          editorial.article_content, batchable=False),
    ActionSpec("publishPost",             editorial.publish_post, (GET, POST), batchable=False),
    ActionSpec("aiReview",                editorial.ai_review, batchable=False),
    ActionSpec("aiAssist",                editorial.ai_assist, (POST,), batchable=False),
    ActionSpec("createPost",              editorial.create_post, (POST,), batchable=False),
    ActionSpec("generateImage",           editorial.generate_image, (POST,), batchable=False),
)}

BATCH_ACTION = "batch"


def available_actions() -> list:
    names = []
    for spec in ACTIONS.values():
        names.append(spec.name if spec.methods != (POST,) else f"{spec.name} (POST)")
    names.append(BATCH_ACTION)
    return names


def parse_action_list(raw: Optional[str]) -> list:
    return [a.strip() for a in (raw or "").split(",") if a.strip()]


class Dispatcher:
    def __init__(self, config: dict, clients: Clients, today: Optional[date] = None):
        self.config = config
        self.clients = clients
        self.today = today
        self.timeout = config["settings"].get("request_timeout_seconds", 60)

    def _context(self, params: dict, body: Optional[dict] = None) -> ActionContext:
        return ActionContext(self.config, self.clients, params=dict(params or {}),
                             body=body or {}, today=self.today)

    async def run(self, action: Optional[str], params: Optional[dict] = None,
                  body: Optional[dict] = None, method: str = GET):
        if action == BATCH_ACTION:
            params = params or {}
            return await self._with_timeout(action, self.run_batch(parse_action_list(params.get("actions")), params))

        spec = ACTIONS.get(action)
        if spec is None:
            raise UnknownActionError(action, available_actions())
        if method not in spec.methods:
            raise InvalidParameterError(f'Action "{action}" requires {" or ".join(spec.methods)}')

        logger.info("Running action %s %s", action, {k: v for k, v in (params or {}).items() if k != "action"})
        return await self._with_timeout(action, spec.handler(self._context(params, body)))

    async def _with_timeout(self, action: str, coro: Awaitable):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ActionTimeoutError(action, self.timeout) from exc

    async def _isolated(self, name: str, params: dict) -> Result:
        spec = ACTIONS.get(name)
        if spec is None:
            return Result.failure(str(UnknownActionError(name, available_actions())))
        if not spec.batchable:
            return Result.failure(f'Action "{name}" cannot run in a batch')
        try:
            return Result.success(await spec.handler(self._context(params)))
        except Exception as exc:
            logger.error("Batch action %s failed: %s", name, exc)
            return Result.failure(str(exc))

    async def run_batch(self, names: Iterable[str], params: Optional[dict] = None) -> dict:
        """{action: data} for successes, {action: {"error": reason}} for failures."""
        names = list(dict.fromkeys(names))
        if not names:
            raise InvalidParameterError("actions parameter required (comma-separated action names)")
        shared = {k: v for k, v in (params or {}).items() if k in ("range", "date")}
        results = await asyncio.gather(*(self._isolated(n, shared) for n in names))
        return {
            name: (r.data if r.ok else {"error": r.reason})
            for name, r in zip(names, results)
        }
