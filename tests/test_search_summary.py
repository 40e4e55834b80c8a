import asyncio

from analysis.search_summary import format_row, summarise
from errors import UpstreamError
from fetchers.result import Result


def _gsc_responder(fail_dimension=None):
    def respond(body):
        dims = tuple(body.get("dimensions", ()))
        if dims and dims[0] == fail_dimension:
            raise UpstreamError("Search Console", 400, "invalid filter")
        if dims == ("query",):
            return {"rows": [{"keys": ["goldpreis"], "clicks": 40, "impressions": 900, "ctr": 0.05, "position": 2.0}]}
        if dims == ("page",):
            return {"rows": [{"keys": ["https://goldesel.de/news/x/"], "clicks": 12,
                              "impressions": 300, "ctr": 0.04, "position": 3.14}]}
        if body["startDate"] == "2026-03-01":
            return {"rows": [{"clicks": 150, "impressions": 2000, "ctr": 0.05, "position": 8.0}]}
        return {"rows": [{"clicks": 100, "impressions": 2500, "ctr": 0.02, "position": 9.5}]}
    return respond


def test_format_row():
    row = {"keys": ["https://goldesel.de/news/x/"], "clicks": 12, "impressions": 300, "ctr": 0.04, "position": 3.14}
    assert format_row(row, "page") == {
        "page": "https://goldesel.de/news/x/", "clicks": 12, "impressions": 300, "ctr": 4.0, "position": 3.1,
    }


def test_news_section_summary(make_dispatcher):
    dispatcher, clients = make_dispatcher(gsc_responder=_gsc_responder())
    data = asyncio.run(dispatcher.run("searchconsoleNews"))

    assert data["summary"] == {"clicks": 150, "impressions": 2000, "ctr": 5.0, "position": 8.0}
    assert data["delta"] == {"clicks": 50, "impressions": -20, "ctr": 3.0, "position": 1.5}
    assert data["keywords"][0]["keyword"] == "goldpreis"
    assert data["pages"][0]["page"] == "https://goldesel.de/news/x/"
    assert data["failures"] == []

    groups = [b["dimensionFilterGroups"][0]["filters"] for b in clients.gsc_service.bodies]
    assert len(groups) == 4
    for filters in groups:
        assert {"dimension": "page", "operator": "contains", "expression": "/news/"} in filters
        assert filters[1]["operator"] == "excludingRegex"


def test_legacy_alias_matches_news_section(make_dispatcher):
    dispatcher, _ = make_dispatcher(gsc_responder=_gsc_responder())
    assert asyncio.run(dispatcher.run("searchconsole")) == asyncio.run(dispatcher.run("searchconsoleNews"))


def test_failing_subquery_is_isolated(make_dispatcher):
    dispatcher, _ = make_dispatcher(gsc_responder=_gsc_responder(fail_dimension="query"))
    data = asyncio.run(dispatcher.run("searchconsoleAktienNews"))

    assert data["keywords"] == []
    assert data["failures"] == ["keywords"]
    assert data["summary"]["clicks"] == 150
    assert len(data["pages"]) == 1


def test_all_subqueries_failing_yields_zero_summary():
    failed = Result.failure("boom", default=[])
    data = summarise(failed, failed, failed, failed)
    assert data["summary"] == {"clicks": 0, "impressions": 0, "ctr": 0.0, "position": 0.0}
    assert data["delta"]["clicks"] is None
    assert data["delta"]["impressions"] is None
    assert data["failures"] == ["summary", "previous", "keywords", "pages"]


def test_empty_previous_month_has_no_percentage_delta():
    current = Result.success([{"clicks": 10, "impressions": 100, "ctr": 0.1, "position": 4.0}])
    data = summarise(current, Result.success([]), Result.success([]), Result.success([]))
    assert data["delta"]["clicks"] is None
    assert data["failures"] == []


def test_debug_lists_pages_per_section(make_dispatcher):
    dispatcher, _ = make_dispatcher(gsc_responder=_gsc_responder())
    data = asyncio.run(dispatcher.run("searchconsoleDebug"))

    assert data["gscSite"] == "https://goldesel.de/"
    assert data["info"].startswith("Debug:")
    assert data["dateRange"] == {"startDate": "2026-03-01", "endDate": "2026-03-15"}
    assert data["allPages"] == [{"page": "https://goldesel.de/news/x/", "clicks": 12, "impressions": 300}]
    assert data["newsPages_excludingAktien"] == data["allPages"]
    assert data["aktienNewsPages"] == data["allPages"]
    assert "sections" not in data


def test_debug_reports_section_errors_inline(make_dispatcher):
    dispatcher, _ = make_dispatcher(gsc_responder=_gsc_responder(fail_dimension="page"))
    data = asyncio.run(dispatcher.run("searchconsoleDebug"))
    assert "error" in data["allPages"][0]


def test_debug_section_key_defaults_to_name(make_dispatcher, config):
    config["search_console"]["sections"] = {"ratgeber": {"include": "/ratgeber/"}}
    dispatcher, _ = make_dispatcher(gsc_responder=_gsc_responder())
    data = asyncio.run(dispatcher.run("searchconsoleDebug"))
    assert data["ratgeberPages"][0]["clicks"] == 12


def test_counts_round_half_up():
    row = {"clicks": 2.5, "impressions": 10.5, "ctr": 0, "position": 0}
    assert format_row(row) == {"clicks": 3, "impressions": 11, "ctr": 0.0, "position": 0.0}
