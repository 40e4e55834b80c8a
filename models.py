"""
Per-request data model. Nothing here outlives a single request.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ContentItem:
    id: int
    title: str
    slug: str
    url: str
    published_at: str
    category_ids: tuple = ()

    @classmethod
    def from_post(cls, post: dict, cms_host: str = "", public_host: str = "") -> "ContentItem":
        """Build from a WordPress REST post dict."""
        title = post.get("title") or {}
        if isinstance(title, dict):
            title = title.get("rendered", "")
        return cls(
            id=post.get("id"),
            title=title or "",
            slug=post.get("slug", ""),
            url=public_url(post.get("link") or "", cms_host, public_host),
            published_at=post.get("date", ""),
            category_ids=tuple(post.get("categories") or ()),
        )


@dataclass(frozen=True)
class MetricsRow:
    path: str
    channel: str
    pageviews: int


@dataclass
class PathEntry:
    total_views: int = 0
    channel_breakdown: dict[str, int] = field(default_factory=dict)

    def add(self, channel: str, views: int) -> None:
        self.total_views += views
        self.channel_breakdown[channel] = self.channel_breakdown.get(channel, 0) + views

    def __bool__(self) -> bool:
        return bool(self.total_views or self.channel_breakdown)


@dataclass
class ReconciledArticle:
    title: str
    path: str
    url: str
    slug: str
    published_at: str
    pageviews: int = 0
    channel_breakdown: dict[str, int] = field(default_factory=dict)
    categories: tuple = ()

    def to_dict(self) -> dict:
        return {
            "title":      self.title,
            "path":       self.path,
            "url":        self.url,
            "slug":       self.slug,
            "date":       self.published_at,
            "pageviews":  self.pageviews,
            "channels":   dict(self.channel_breakdown),
            "categories": list(self.categories),
        }


@dataclass(frozen=True)
class ReportRow:
    """One analytics row: dimension and metric values as parallel arrays."""
    dimensions: list[str]
    metrics: list[str]

    def metric_int(self, index: int) -> int:
        return int(float(self.metrics[index] or 0))


@dataclass
class Report:
    dimension_headers: list[str]
    metric_headers: list[str]
    rows: list[ReportRow]

    def rows_for_range(self, name: str) -> list[ReportRow]:
        """Rows belonging to one named date range of a multi-range report."""
        if "dateRange" not in self.dimension_headers:
            return list(self.rows)
        idx = self.dimension_headers.index("dateRange")
        return [r for r in self.rows if r.dimensions[idx] == name]

    def first_row(self, range_name: Optional[str] = None) -> Optional[ReportRow]:
        rows = self.rows_for_range(range_name) if range_name else self.rows
        return rows[0] if rows else None


def public_url(link: str, cms_host: str, public_host: str) -> str:
    """Rewrite a CMS-host link to the public site host."""
    if cms_host and public_host:
        return link.replace(cms_host, public_host)
    return link
