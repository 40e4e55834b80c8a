"""
Client container and per-request context handed to every action pipeline.

Clients are constructed once per process (see server.create_app) and injected;
tests pass fakes with the same methods.
"""

import os
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from analysis.ai_review import AIClient
from analysis.images import ImageClient
from analysis.reconcile import build_path_templates
from errors import InvalidParameterError
from fetchers.analytics import AnalyticsClient
from fetchers.content import ContentClient
from fetchers.search_console import SearchConsoleClient


@dataclass
class Clients:
    analytics: Any
    content: Any
    search: Any
    ai: Any
    images: Any


def build_clients(config: dict) -> Clients:
    """Real clients from config + environment. No network I/O happens here."""
    timeout = config["settings"].get("http_timeout_seconds", 30)
    return Clients(
        analytics=AnalyticsClient(os.getenv("GA4_PROPERTY_ID")),
        content=ContentClient(
            os.getenv("WP_URL"), os.getenv("WP_USER"), os.getenv("WP_APP_PASS"), timeout=timeout,
        ),
        search=SearchConsoleClient(config["search_console"]["site_url"]),
        ai=AIClient(config["ai"]),
        images=ImageClient(config["images"]),
    )


@dataclass
class ActionContext:
    config: dict
    clients: Clients
    params: dict = field(default_factory=dict)
    body: dict = field(default_factory=dict)
    today: Optional[date] = None

    @property
    def settings(self) -> dict:
        return self.config["settings"]

    @property
    def site(self) -> dict:
        return self.config["site"]

    @property
    def path_templates(self):
        return build_path_templates(self.config["content"]["path_prefixes"])

    def param(self, name: str, default: Any = None) -> Any:
        value = self.params.get(name)
        return default if value in (None, "") else value

    def require_post_id(self) -> str:
        post_id = self.param("postId") or self.body.get("postId")
        if not post_id:
            raise InvalidParameterError("postId parameter required")
        post_id = str(post_id)
        if not post_id.isdigit():
            raise InvalidParameterError(f'Invalid postId: "{post_id}"')
        return post_id
