"""
WordPress REST API client (wp-json/wp/v2) with application-password basic auth.
"""

import base64
import logging
from typing import Iterable, Optional

import requests

from errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

POST_LIST_FIELDS = ("id", "title", "link", "date", "slug", "categories")
REVIEW_FIELDS = (
    "id", "title", "link", "date", "slug", "categories",
    "author", "excerpt", "yoast_head_json", "meta",
)
CONTENT_FIELDS = (
    "id", "title", "content", "excerpt", "slug", "link", "date",
    "categories", "author", "yoast_head_json", "meta",
)


class ContentClient:
    def __init__(self, base_url: Optional[str], user: Optional[str],
                 app_password: Optional[str], timeout: float = 30):
        self._base_url = (base_url or "").rstrip("/")
        self._user = user
        self._app_password = app_password
        self._timeout = timeout

    # ── Plumbing ──────────────────────────────────────────────────────────────

    def _auth_header(self) -> str:
        if not self._base_url:
            raise ConfigurationError("WP_URL not set")
        if not self._user or not self._app_password:
            raise ConfigurationError("WP_USER / WP_APP_PASS not set")
        token = base64.b64encode(f"{self._user}:{self._app_password}".encode()).decode()
        return f"Basic {token}"

    def _url(self, path: str) -> str:
        return f"{self._base_url}/wp-json/wp/v2/{path.lstrip('/')}"

    def request(self, method: str, path: str, params: Optional[dict] = None,
                json_body: Optional[dict] = None, data: Optional[bytes] = None,
                headers: Optional[dict] = None):
        all_headers = {"Authorization": self._auth_header()}
        all_headers.update(headers or {})
        url = self._url(path)
        logger.debug("WP %s %s %s", method, url, params or "")
        try:
            resp = requests.request(
                method, url,
                params=params, json=json_body, data=data,
                headers=all_headers, timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError("WordPress", None, str(exc)) from exc
        if not resp.ok:
            raise UpstreamError("WordPress", resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError("WordPress", resp.status_code, "invalid JSON: " + resp.text) from exc

    def get(self, path: str, **params):
        return self.request("GET", path, params={k: v for k, v in params.items() if v is not None})

    # ── Reads ─────────────────────────────────────────────────────────────────

    def list_posts(
        self,
        per_page: int = 10,
        status: str = "publish",
        after: Optional[str] = None,
        categories: Optional[int] = None,
        fields: Iterable[str] = POST_LIST_FIELDS,
        orderby: Optional[str] = "date",
        order: Optional[str] = "desc",
    ) -> list:
        posts = self.get(
            "posts",
            per_page=per_page,
            status=status,
            after=after,
            categories=categories,
            orderby=orderby,
            order=order,
            _fields=",".join(fields),
        )
        logger.info("WP posts (status=%s, after=%s) → %d", status, after, len(posts))
        return posts

    def get_post(self, post_id, fields: Iterable[str] = CONTENT_FIELDS) -> dict:
        return self.get(f"posts/{post_id}", _fields=",".join(fields))

    def list_categories(self, per_page: int = 50,
                        fields: Iterable[str] = ("id", "name", "count", "slug")) -> list:
        return self.get("categories", per_page=per_page, _fields=",".join(fields))

    # ── Writes ────────────────────────────────────────────────────────────────

    def update_post(self, post_id, payload: dict) -> dict:
        logger.info("WP update post %s: %s", post_id, sorted(payload))
        return self.request("POST", f"posts/{post_id}", json_body=payload)

    def create_post(self, payload: dict) -> dict:
        logger.info("WP create post %r (status=%s)", payload.get("title"), payload.get("status"))
        return self.request("POST", "posts", json_body=payload)

    def upload_media(self, content: bytes, filename: str, mime_type: str = "image/png",
                     title: Optional[str] = None) -> dict:
        media = self.request(
            "POST", "media",
            data=content,
            headers={
                "Content-Type": mime_type,
                "Content-Disposition": f'attachment; filename="{filename}"',
            },
        )
        if title:
            media = self.request("POST", f"media/{media['id']}", json_body={"title": title})
        logger.info("WP media uploaded: id=%s (%d bytes)", media.get("id"), len(content))
        return media
