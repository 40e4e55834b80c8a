"""
Google Search Console search-analytics fetcher.

`query` raises on failure; `safe_query` isolates a single call so sibling
queries issued for the same dashboard card still complete.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from googleapiclient.errors import HttpError

from analysis.dates import DateRange
from errors import UpstreamError
from fetchers.google_auth import SEARCH_CONSOLE_SCOPES, TRANSPORT_ERRORS, build_service
from fetchers.result import Result

logger = logging.getLogger(__name__)

_OPERATORS = {"contains", "notContains", "equals", "notEquals", "includingRegex", "excludingRegex"}


@dataclass(frozen=True)
class PageFilter:
    operator: str
    expression: str
    dimension: str = "page"

    def to_query(self) -> dict:
        if self.operator not in _OPERATORS:
            raise ValueError(f"Unsupported Search Console operator: {self.operator}")
        return {"dimension": self.dimension, "operator": self.operator, "expression": self.expression}


def section_filters(include: Optional[str] = None, exclude: Optional[str] = None,
                    exclude_regex: Optional[str] = None) -> list:
    """Filters for one site section; all filters in the group are AND'd."""
    filters = []
    if include:
        filters.append(PageFilter("contains", include))
    if exclude:
        filters.append(PageFilter("notContains", exclude))
    if exclude_regex:
        filters.append(PageFilter("excludingRegex", exclude_regex))
    return filters


def build_query(
    date_range: DateRange,
    dimensions: Sequence[str] = (),
    filters: Sequence[PageFilter] = (),
    order_by: Optional[str] = None,
    row_limit: Optional[int] = None,
) -> dict:
    body: dict = {
        "startDate": date_range.as_query()["startDate"],
        "endDate":   date_range.as_query()["endDate"],
    }
    if dimensions:
        body["dimensions"] = list(dimensions)
    if filters:
        body["dimensionFilterGroups"] = [{"filters": [f.to_query() for f in filters]}]
    if row_limit:
        body["rowLimit"] = row_limit
    if order_by:
        body["orderBy"] = [{"fieldName": order_by, "sortOrder": "DESCENDING"}]
    return body


class SearchConsoleClient:
    def __init__(self, site_url: str, service_factory: Optional[Callable] = None):
        self.site_url = site_url
        self._service_factory = service_factory or (
            lambda: build_service("searchconsole", "v1", SEARCH_CONSOLE_SCOPES)
        )
        self._local = threading.local()

    def _get_service(self):
        service = getattr(self._local, "service", None)
        if service is None:
            service = self._local.service = self._service_factory()
        return service

    def query(self, date_range: DateRange, dimensions: Sequence[str] = (),
              filters: Sequence[PageFilter] = (), order_by: Optional[str] = None,
              row_limit: Optional[int] = None) -> list:
        """Return raw rows: {keys, clicks, impressions, ctr, position}."""
        body = build_query(date_range, dimensions, filters, order_by, row_limit)
        try:
            resp = self._get_service().searchanalytics().query(
                siteUrl=self.site_url, body=body,
            ).execute()
        except HttpError as exc:
            raise UpstreamError("Search Console", exc.resp.status, str(exc)) from exc
        except TRANSPORT_ERRORS as exc:
            raise UpstreamError("Search Console", None, str(exc)) from exc
        return resp.get("rows", [])

    def safe_query(self, date_range: DateRange, dimensions: Sequence[str] = (),
                   filters: Sequence[PageFilter] = (), order_by: Optional[str] = None,
                   row_limit: Optional[int] = None) -> Result:
        try:
            return Result.success(self.query(date_range, dimensions, filters, order_by, row_limit))
        except Exception as exc:
            described = " & ".join(f"{f.operator}={f.expression}" for f in filters) or "unfiltered"
            logger.error("GSC query failed for %s (%s): %s", described, ",".join(dimensions) or "totals", exc)
            return Result.failure(str(exc), default=[])
