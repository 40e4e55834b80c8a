"""
GA4 Data API (v1beta) report fetcher.

Issues runReport calls through google-api-python-client and returns rows as
parallel arrays of dimension and metric values; callers decode positionally.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from googleapiclient.errors import HttpError

from analysis.dates import DateRange
from errors import ConfigurationError, UpstreamError
from fetchers.google_auth import ANALYTICS_SCOPES, TRANSPORT_ERRORS, build_service
from models import MetricsRow, Report, ReportRow

logger = logging.getLogger(__name__)

_MATCH_TYPES = {
    "contains": "CONTAINS",
    "excludes": "CONTAINS",
    "equals":   "EXACT",
    "regex":    "FULL_REGEX",
}


@dataclass(frozen=True)
class DimensionFilter:
    field: str
    operator: str   # contains | excludes | equals | regex
    value: str

    def to_expression(self) -> dict:
        if self.operator not in _MATCH_TYPES:
            raise ValueError(f"Unsupported filter operator: {self.operator}")
        expr = {"filter": {
            "fieldName": self.field,
            "stringFilter": {"matchType": _MATCH_TYPES[self.operator], "value": self.value},
        }}
        if self.operator == "excludes":
            return {"notExpression": expr}
        return expr


@dataclass(frozen=True)
class OrderBy:
    field: str
    desc: bool = True
    dimension: bool = False

    def to_query(self) -> dict:
        if self.dimension:
            return {"dimension": {"dimensionName": self.field}, "desc": self.desc}
        return {"metric": {"metricName": self.field}, "desc": self.desc}


def build_report_request(
    date_ranges: Sequence[DateRange],
    dimensions: Iterable[str] = (),
    metrics: Iterable[str] = (),
    order_by: Optional[Sequence[OrderBy]] = None,
    limit: Optional[int] = None,
    filters: Optional[Sequence[DimensionFilter]] = None,
) -> dict:
    body: dict = {
        "dateRanges": [r.as_query() for r in date_ranges],
        "metrics":    [{"name": m} for m in metrics],
    }
    dims = list(dimensions)
    if dims:
        body["dimensions"] = [{"name": d} for d in dims]
    if order_by:
        body["orderBys"] = [o.to_query() for o in order_by]
    if limit:
        body["limit"] = limit
    if filters:
        expressions = [f.to_expression() for f in filters]
        body["dimensionFilter"] = (
            expressions[0] if len(expressions) == 1
            else {"andGroup": {"expressions": expressions}}
        )
    return body


def parse_report(response: dict) -> Report:
    return Report(
        dimension_headers=[h["name"] for h in response.get("dimensionHeaders", [])],
        metric_headers=[h["name"] for h in response.get("metricHeaders", [])],
        rows=[
            ReportRow(
                dimensions=[v.get("value", "") for v in row.get("dimensionValues", [])],
                metrics=[v.get("value", "0") for v in row.get("metricValues", [])],
            )
            for row in response.get("rows", []) or []
        ],
    )


class AnalyticsClient:
    """
    Thin wrapper around the GA4 runReport endpoint. The discovery service is
    built on first use and cached per worker thread (httplib2 is not
    thread-safe) for the life of this instance.
    """

    def __init__(self, property_id: Optional[str], service_factory: Optional[Callable] = None):
        self._property_id = property_id
        self._service_factory = service_factory or (
            lambda: build_service("analyticsdata", "v1beta", ANALYTICS_SCOPES)
        )
        self._local = threading.local()

    @property
    def property_name(self) -> str:
        if not self._property_id:
            raise ConfigurationError("GA4_PROPERTY_ID not set")
        pid = str(self._property_id)
        return pid if pid.startswith("properties/") else f"properties/{pid}"

    def _get_service(self):
        service = getattr(self._local, "service", None)
        if service is None:
            service = self._local.service = self._service_factory()
        return service

    def run_report(
        self,
        date_ranges: Sequence[DateRange],
        dimensions: Iterable[str] = (),
        metrics: Iterable[str] = (),
        order_by: Optional[Sequence[OrderBy]] = None,
        limit: Optional[int] = None,
        filters: Optional[Sequence[DimensionFilter]] = None,
    ) -> Report:
        body = build_report_request(date_ranges, dimensions, metrics, order_by, limit, filters)
        prop = self.property_name
        logger.debug("GA4 runReport %s %s", prop, body)
        try:
            response = self._get_service().properties().runReport(
                property=prop, body=body,
            ).execute()
        except HttpError as exc:
            raise UpstreamError("GA4", exc.resp.status, str(exc)) from exc
        except TRANSPORT_ERRORS as exc:
            raise UpstreamError("GA4", None, str(exc)) from exc
        report = parse_report(response)
        logger.info(
            "GA4 report (%s) → %d rows",
            ", ".join(h for h in report.dimension_headers) or "totals",
            len(report.rows),
        )
        return report


def rows_to_metrics(rows: list[ReportRow]) -> list[MetricsRow]:
    """Decode pagePath × channel × pageviews rows into MetricsRow values."""
    return [
        MetricsRow(path=r.dimensions[0], channel=r.dimensions[1], pageviews=r.metric_int(0))
        for r in rows
    ]
