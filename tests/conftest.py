"""Pytest configuration and fixtures."""

import pytest

from chiara.app.app_models import PodioApp
from chiara.app.structure import ApplicationStructure
from chiara.remote.transport import set_remote


class FakeRemote:
    """Serves filter responses from an in-memory result set of ``total`` items.

    Records every call as (path, body, app_id). Exceptions queued in
    ``failures`` are raised by the next calls instead of answering.
    """

    def __init__(self, total=0, server_default_limit=20, filtered=None):
        self.total = total
        self.server_default_limit = server_default_limit
        self.filtered = filtered
        self.calls = []
        self.failures = []

    def post(self, path, body=None, *, app_id=None):
        body = dict(body or {})
        self.calls.append((path, body, app_id))
        if self.failures:
            raise self.failures.pop(0)
        limit = body.get("limit", self.server_default_limit)
        offset = body.get("offset", 0)
        ids = range(offset, min(offset + limit, self.total))
        return {
            "filtered": self.total if self.filtered is None else self.filtered,
            "items": [{"item_id": i + 1, "app_item_id": i + 1, "title": f"Item {i}"} for i in ids],
        }

    @property
    def offsets(self):
        return [body.get("offset", 0) for _path, body, _app_id in self.calls]


@pytest.fixture
def app():
    return PodioApp(app_id=100, space_id=7, name="Leads")


@pytest.fixture
def make_remote():
    def _make(total=0, **kwargs):
        return FakeRemote(total, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def reset_globals():
    """Keep the process-wide remote and structure registry test-local."""
    set_remote(None)
    ApplicationStructure.clear_registry()
    yield
    set_remote(None)
    ApplicationStructure.clear_registry()
