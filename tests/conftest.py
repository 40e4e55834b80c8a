import copy

import pytest

from actions.context import Clients
from actions.dispatcher import Dispatcher
from config import DEFAULTS
from fakes import TODAY, FakeAI, FakeContent, FakeGA4Service, FakeGSCService, FakeImages, ga4_router
from fetchers.analytics import AnalyticsClient
from fetchers.search_console import SearchConsoleClient


@pytest.fixture
def config():
    return copy.deepcopy(DEFAULTS)


@pytest.fixture
def make_clients():
    def _make(content=None, ga4_table=None, ga4_responder=None, gsc_responder=None, ai=None, images=None):
        ga4 = FakeGA4Service(ga4_responder or ga4_router(ga4_table or {}))
        gsc = FakeGSCService(gsc_responder or (lambda body: {"rows": []}))
        clients = Clients(
            analytics=AnalyticsClient("123456", service_factory=lambda: ga4),
            content=content or FakeContent(),
            search=SearchConsoleClient("https://goldesel.de/", service_factory=lambda: gsc),
            ai=ai or FakeAI(),
            images=images or FakeImages(),
        )
        clients.ga4_service = ga4
        clients.gsc_service = gsc
        return clients
    return _make


@pytest.fixture
def make_dispatcher(config, make_clients):
    def _make(**kwargs):
        clients = make_clients(**kwargs)
        return Dispatcher(config, clients, today=TODAY), clients
    return _make
