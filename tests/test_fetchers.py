import base64
from datetime import date
from types import SimpleNamespace

import httplib2
import pytest
import requests
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from analysis.dates import DateRange
from analysis.images import ImageClient, image_filename
from errors import ConfigurationError, UpstreamError
from fakes import FakeGA4Service, FakeGSCService, ga4_response
from fetchers.analytics import AnalyticsClient, DimensionFilter, OrderBy, build_report_request, rows_to_metrics
from fetchers.content import ContentClient
from fetchers.search_console import SearchConsoleClient, build_query, section_filters

MARCH = DateRange(date(2026, 3, 1), date(2026, 3, 15))


def _http_error(status):
    return HttpError(httplib2.Response({"status": status, "reason": "Forbidden"}),
                     b'{"error": {"message": "User does not have sufficient permissions"}}')


# ── GA4 ───────────────────────────────────────────────────────────────────────

def test_report_request_body():
    body = build_report_request(
        [MARCH], dimensions=("pagePath",), metrics=("screenPageViews",),
        order_by=[OrderBy("screenPageViews")], limit=25,
        filters=[DimensionFilter("pagePath", "contains", "/news/"),
                 DimensionFilter("pagePath", "excludes", "/aktien/")],
    )
    assert body["dateRanges"] == [{"startDate": "2026-03-01", "endDate": "2026-03-15"}]
    assert body["dimensions"] == [{"name": "pagePath"}]
    assert body["limit"] == 25
    first, second = body["dimensionFilter"]["andGroup"]["expressions"]
    assert first["filter"]["stringFilter"] == {"matchType": "CONTAINS", "value": "/news/"}
    assert second["notExpression"]["filter"]["fieldName"] == "pagePath"


def test_single_filter_is_not_grouped():
    body = build_report_request([MARCH], metrics=("sessions",),
                                filters=[DimensionFilter("pagePath", "regex", "^/news/")])
    assert body["dimensionFilter"]["filter"]["stringFilter"]["matchType"] == "FULL_REGEX"
    assert "dimensions" not in body


def test_unknown_filter_operator():
    with pytest.raises(ValueError):
        DimensionFilter("pagePath", "startsWith", "/").to_expression()


def test_run_report_decodes_rows():
    service = FakeGA4Service(lambda body: ga4_response(
        ("pagePath", "sessionDefaultChannelGroup"), ("screenPageViews",),
        [(["/news/a/", "Direct"], ["12"])],
    ))
    client = AnalyticsClient("properties/99", service_factory=lambda: service)
    report = client.run_report([MARCH], ("pagePath", "sessionDefaultChannelGroup"), ("screenPageViews",))

    assert service.properties_used == ["properties/99"]
    assert report.dimension_headers == ["pagePath", "sessionDefaultChannelGroup"]
    [row] = rows_to_metrics(report.rows)
    assert (row.path, row.channel, row.pageviews) == ("/news/a/", "Direct", 12)


def test_run_report_wraps_http_errors():
    def fail(body):
        raise _http_error(403)

    client = AnalyticsClient("1", service_factory=lambda: FakeGA4Service(fail))
    with pytest.raises(UpstreamError) as info:
        client.run_report([MARCH], metrics=("sessions",))
    assert info.value.service == "GA4"
    assert info.value.status == 403
    assert str(info.value).startswith("GA4 error (403): ")


@pytest.mark.parametrize("error", [
    TimeoutError("timed out"),
    httplib2.ServerNotFoundError("Unable to find the server at analyticsdata.googleapis.com"),
    RefreshError("invalid_grant: account not found"),
])
def test_run_report_wraps_transport_errors(error):
    def fail(body):
        raise error

    client = AnalyticsClient("1", service_factory=lambda: FakeGA4Service(fail))
    with pytest.raises(UpstreamError) as info:
        client.run_report([MARCH], metrics=("sessions",))
    assert info.value.service == "GA4"
    assert info.value.status is None
    assert str(info.value) == f"GA4 error: {error}"


def test_missing_property_id():
    client = AnalyticsClient(None, service_factory=lambda: FakeGA4Service(lambda body: {}))
    with pytest.raises(ConfigurationError, match="GA4_PROPERTY_ID not set"):
        client.run_report([MARCH], metrics=("sessions",))


# ── Search Console ────────────────────────────────────────────────────────────

def test_search_console_query_body():
    body = build_query(MARCH, ("query",), section_filters("/news/", exclude="/aktien/"), "clicks", 10)
    assert body == {
        "startDate": "2026-03-01",
        "endDate": "2026-03-15",
        "dimensions": ["query"],
        "dimensionFilterGroups": [{"filters": [
            {"dimension": "page", "operator": "contains", "expression": "/news/"},
            {"dimension": "page", "operator": "notContains", "expression": "/aktien/"},
        ]}],
        "rowLimit": 10,
        "orderBy": [{"fieldName": "clicks", "sortOrder": "DESCENDING"}],
    }


def test_safe_query_isolates_http_errors():
    def fail(body):
        raise _http_error(400)

    client = SearchConsoleClient("https://goldesel.de/", service_factory=lambda: FakeGSCService(fail))
    result = client.safe_query(MARCH, ("page",), section_filters("/news/"))
    assert not result.ok
    assert result.data == []
    assert result.reason.startswith("Search Console error (400)")

    with pytest.raises(UpstreamError):
        client.query(MARCH)


def test_search_console_query_wraps_transport_errors():
    def fail(body):
        raise ConnectionResetError("connection reset by peer")

    client = SearchConsoleClient("https://goldesel.de/", service_factory=lambda: FakeGSCService(fail))
    with pytest.raises(UpstreamError) as info:
        client.query(MARCH)
    assert str(info.value) == "Search Console error: connection reset by peer"
    assert not client.safe_query(MARCH).ok


# ── WordPress ─────────────────────────────────────────────────────────────────

class _Response:
    def __init__(self, status=200, payload=None, text=""):
        self.status_code = status
        self.ok = status < 400
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload


@pytest.fixture
def wp_requests(monkeypatch):
    sent = []
    replies = []

    def fake_request(method, url, **kwargs):
        sent.append({"method": method, "url": url, **kwargs})
        return replies.pop(0) if replies else _Response(payload=[])

    monkeypatch.setattr(requests, "request", fake_request)
    return sent, replies


def test_list_posts_request(wp_requests):
    sent, replies = wp_requests
    replies.append(_Response(payload=[{"id": 1}]))
    client = ContentClient("https://goldeselblog.de/", "editor", "abcd efgh")

    assert client.list_posts(per_page=20, after="2026-03-01T00:00:00") == [{"id": 1}]
    [req] = sent
    assert req["method"] == "GET"
    assert req["url"] == "https://goldeselblog.de/wp-json/wp/v2/posts"
    assert req["params"] == {
        "per_page": 20, "status": "publish", "after": "2026-03-01T00:00:00",
        "orderby": "date", "order": "desc", "_fields": "id,title,link,date,slug,categories",
    }
    expected = base64.b64encode(b"editor:abcd efgh").decode()
    assert req["headers"]["Authorization"] == f"Basic {expected}"
    assert req["timeout"] == 30


def test_non_ok_response_raises_upstream_error(wp_requests):
    _, replies = wp_requests
    replies.append(_Response(status=401, text='{"code":"rest_not_logged_in"}'))
    client = ContentClient("https://goldeselblog.de", "editor", "pw")
    with pytest.raises(UpstreamError) as info:
        client.get_post(5)
    assert str(info.value) == 'WordPress error (401): {"code":"rest_not_logged_in"}'


def test_network_failure_raises_upstream_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "request", boom)
    client = ContentClient("https://goldeselblog.de", "editor", "pw")
    with pytest.raises(UpstreamError) as info:
        client.list_categories()
    assert info.value.status is None


def test_non_json_success_body_raises_upstream_error(monkeypatch):
    class _HtmlResponse(_Response):
        def json(self):
            raise requests.JSONDecodeError("Expecting value", "<html>", 0)

    monkeypatch.setattr(requests, "request",
                        lambda *a, **kw: _HtmlResponse(text="<html>Wartungsmodus</html>"))
    client = ContentClient("https://goldeselblog.de", "editor", "pw")
    with pytest.raises(UpstreamError) as info:
        client.list_posts()
    assert info.value.status == 200
    assert str(info.value) == "WordPress error (200): invalid JSON: <html>Wartungsmodus</html>"


def test_missing_credentials(wp_requests):
    sent, _ = wp_requests
    with pytest.raises(ConfigurationError):
        ContentClient(None, "editor", "pw").list_posts()
    with pytest.raises(ConfigurationError):
        ContentClient("https://goldeselblog.de", "", "").list_posts()
    assert sent == []


def test_upload_media_then_set_title(wp_requests):
    sent, replies = wp_requests
    replies.extend([_Response(payload={"id": 77}), _Response(payload={"id": 77, "source_url": "u"})])
    client = ContentClient("https://goldeselblog.de", "editor", "pw")

    media = client.upload_media(b"bytes", "gold.png", title="Gold")
    assert media == {"id": 77, "source_url": "u"}
    upload, rename = sent
    assert upload["data"] == b"bytes"
    assert upload["headers"]["Content-Disposition"] == 'attachment; filename="gold.png"'
    assert rename["url"].endswith("/media/77")
    assert rename["json"] == {"title": "Gold"}


# ── Images ────────────────────────────────────────────────────────────────────

def test_image_filename():
    assert image_filename("Goldbarren im Tresor!") == "goldbarren-im-tresor.png"
    assert image_filename("") == "image.png"


def test_image_client_decodes_base64():
    calls = []

    def generate(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(data=[SimpleNamespace(b64_json=base64.b64encode(b"png").decode())])

    fake = SimpleNamespace(images=SimpleNamespace(generate=generate))
    client = ImageClient({"model": "gpt-image-1", "size": "1536x1024"}, client_factory=lambda: fake)

    assert client.generate("Gold") == b"png"
    assert calls == [{"model": "gpt-image-1", "prompt": "Gold", "size": "1536x1024", "n": 1}]


def test_image_client_rejects_empty_response():
    fake = SimpleNamespace(images=SimpleNamespace(generate=lambda **kw: SimpleNamespace(data=[])))
    client = ImageClient({}, client_factory=lambda: fake)
    with pytest.raises(UpstreamError):
        client.generate("Gold")
