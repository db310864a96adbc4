"""Tests for the lazily paginated item filter iterator."""

import math

import pytest
import requests

from chiara.app.app_models import PodioView
from chiara.errors import RemoteCallError, UnsupportedOperation, ViewResolutionError
from chiara.items.item_models import PodioItem
from chiara.iterators.item_filter import ItemFilterIterator


def _walk(items):
    """Consume a pass with the explicit protocol, returning positions seen."""
    seen = []
    items.rewind()
    while items.valid():
        current = items.current()
        if current is None:
            break
        seen.append((items.key(), current.item_id))
        items.advance()
    return seen


def test_construction_performs_no_remote_calls(app, make_remote):
    remote = make_remote(total=10)
    items = ItemFilterIterator(app, remote=remote)

    assert remote.calls == []
    assert items.loaded is False
    assert items.total_count is None


def test_first_current_fetches_once(app, make_remote):
    remote = make_remote(total=10)
    items = ItemFilterIterator(app, remote=remote)

    item = items.current()
    items.current()

    assert isinstance(item, PodioItem)
    assert item.item_id == 1
    assert len(remote.calls) == 1
    assert remote.calls[0] == ("/item/app/100/filter", {"limit": 30}, 100)


def test_count_fetches_once_and_reports_total(app, make_remote):
    remote = make_remote(total=75)
    items = ItemFilterIterator(app, remote=remote)

    assert items.count() == 75
    assert len(items) == 75
    assert len(remote.calls) == 1


def test_full_pass_75_items_with_limit_30(app, make_remote):
    remote = make_remote(total=75)
    items = ItemFilterIterator(app, remote=remote, limit=30)

    result = [item.item_id for item in items]

    assert result == list(range(1, 76))
    assert remote.offsets == [0, 30, 60]
    assert [body for _path, body, _app in remote.calls] == [
        {"limit": 30},
        {"limit": 30, "offset": 30},
        {"limit": 30, "offset": 60},
    ]
    assert items.key() == 75
    assert items.valid() is False


def test_window_refetch_happens_only_when_crossing_boundary(app, make_remote):
    remote = make_remote(total=75)
    items = ItemFilterIterator(app, remote=remote, limit=30)

    items.rewind()
    for _ in range(29):
        items.advance()
    assert items.key() == 29
    assert len(remote.calls) == 1

    items.advance()
    assert items.key() == 30
    assert items.offset == 30
    assert items.current().item_id == 31
    assert len(remote.calls) == 2


@pytest.mark.parametrize(
    "total,limit",
    [(0, 30), (1, 30), (30, 30), (31, 30), (60, 30), (75, 30), (10, 3), (7, 1)],
)
def test_fetch_count_for_full_pass(app, make_remote, total, limit):
    remote = make_remote(total=total)
    items = ItemFilterIterator(app, remote=remote, limit=limit)

    seen = _walk(items)

    assert len(seen) == total
    assert len(remote.calls) == max(1, math.ceil(total / limit))


def test_explicit_protocol_keys_are_monotonic_and_bounded(app, make_remote):
    remote = make_remote(total=7)
    items = ItemFilterIterator(app, remote=remote, limit=3)

    seen = _walk(items)
    keys = [key for key, _item_id in seen]

    assert keys == list(range(7))
    assert all(a <= b for a, b in zip(keys, keys[1:]))
    assert items.key() == 7


def test_exhausted_advance_is_noop_without_fetch(app, make_remote):
    remote = make_remote(total=5)
    items = ItemFilterIterator(app, remote=remote, limit=5)
    list(items)
    calls = len(remote.calls)

    items.advance()
    items.advance()

    assert items.key() == 5
    assert items.valid() is False
    assert items.current() is None
    assert len(remote.calls) == calls


def test_empty_result(app, make_remote):
    remote = make_remote(total=0)
    items = ItemFilterIterator(app, remote=remote)

    assert items.valid() is True
    assert items.current() is None
    assert items.count() == 0
    assert len(remote.calls) == 1

    items.advance()
    assert items.key() == 0
    assert items.valid() is False
    assert list(items) == []


def test_empty_result_single_fetch_when_iterating(app, make_remote):
    remote = make_remote(total=0)
    items = ItemFilterIterator(app, remote=remote)

    for _item in items:
        pytest.fail("empty result set yielded an item")

    assert len(remote.calls) == 1


def test_rewind_resets_and_fetches_from_start(app, make_remote):
    remote = make_remote(total=75)
    items = ItemFilterIterator(app, remote=remote, limit=30)
    items.rewind()
    for _ in range(45):
        items.advance()
    items.current()
    assert items.offset == 30
    calls = len(remote.calls)

    items.rewind()

    assert items.key() == 0
    assert items.offset == 0
    assert items.loaded is True
    assert len(remote.calls) == calls + 1
    assert remote.calls[-1][1] == {"limit": 30}


def test_rewind_fetches_even_when_already_loaded(app, make_remote):
    remote = make_remote(total=3)
    items = ItemFilterIterator(app, remote=remote)
    items.count()

    items.rewind()

    assert len(remote.calls) == 2


def test_iteration_reuses_unconsumed_first_window(app, make_remote):
    remote = make_remote(total=10)
    items = ItemFilterIterator(app, remote=remote)

    assert len(items) == 10
    assert len(list(items)) == 10
    assert len(remote.calls) == 1


def test_second_loop_starts_a_new_pass(app, make_remote):
    remote = make_remote(total=4)
    items = ItemFilterIterator(app, remote=remote, limit=2)

    first = [item.item_id for item in items]
    second = [item.item_id for item in items]

    assert first == second == [1, 2, 3, 4]
    assert remote.offsets == [0, 2, 0, 2]


def test_zero_limit_is_omitted_and_server_page_size_is_followed(app, make_remote):
    remote = make_remote(total=45, server_default_limit=20)
    items = ItemFilterIterator(app, remote=remote).set_limit(0)

    result = [item.item_id for item in items]

    assert result == list(range(1, 46))
    assert [body for _path, body, _app in remote.calls] == [{}, {"offset": 20}, {"offset": 40}]


def test_set_limit_is_fluent_and_validated(app, make_remote):
    items = ItemFilterIterator(app, remote=make_remote(total=1))

    assert items.set_limit("15") is items
    assert items.limit == 15
    with pytest.raises(ValueError):
        items.set_limit(-1)
    with pytest.raises(ValueError):
        items.set_limit("many")
    with pytest.raises(ValueError):
        items.set_limit(2.7)
    with pytest.raises(ValueError):
        items.set_limit(True)
    assert items.limit == 15
    assert items.set_limit(20.0).limit == 20


def test_set_limit_after_load_applies_to_next_fetch_only(app, make_remote):
    remote = make_remote(total=50)
    items = ItemFilterIterator(app, remote=remote, limit=10)
    items.rewind()

    items.set_limit(25)
    assert items.loaded is True
    assert items.current().item_id == 1
    assert len(remote.calls) == 1

    for _ in range(10):
        items.advance()
    assert items.current().item_id == 11
    assert remote.calls[-1][1] == {"limit": 25, "offset": 10}


def test_view_scoped_path(app, make_remote):
    remote = make_remote(total=2)
    items = ItemFilterIterator(app, PodioView(view_id=42, app_id=100), remote=remote)

    items.count()

    assert remote.calls[0][0] == "/item/app/100/filter/42"


def test_index_lookup_returns_new_view_iterator(app, make_remote):
    remote = make_remote(total=5)
    items = ItemFilterIterator(app, remote=remote, limit=2)

    view_items = items[42]

    assert isinstance(view_items, ItemFilterIterator)
    assert view_items is not items
    assert view_items.app == app
    assert view_items.view == PodioView(view_id=42, app_id=100)
    assert view_items.limit == 2
    assert remote.calls == []
    assert items["43"].view.view_id == 43


def test_view_iterator_does_not_touch_origin_state(app, make_remote):
    remote = make_remote(total=9)
    items = ItemFilterIterator(app, remote=remote, limit=4)
    items.rewind()
    items.advance()

    view_items = items[42]
    list(view_items)

    assert items.key() == 1
    assert items.offset == 0
    assert items.current().item_id == 2
    assert view_items.key() == 9
    assert all(path == "/item/app/100/filter/42" for path, _b, _a in remote.calls[1:])


def test_index_lookup_with_bad_key_raises(app, make_remote):
    items = ItemFilterIterator(app, remote=make_remote())

    with pytest.raises(ViewResolutionError):
        items["not-a-view"]
    with pytest.raises(ViewResolutionError):
        items[0]
    with pytest.raises(ViewResolutionError):
        items["²"]
    with pytest.raises(ViewResolutionError):
        items["٣"]


def test_index_exists_never_raises(app, make_remote):
    items = ItemFilterIterator(app, remote=make_remote())

    assert 42 in items
    assert "42" in items
    assert "abc" not in items
    assert None not in items
    assert -3 not in items
    assert "²" not in items
    assert "٣" not in items
    assert items.has_view(7) is True


@pytest.mark.parametrize("preload", [False, True])
def test_index_assign_and_remove_are_unsupported(app, make_remote, preload):
    items = ItemFilterIterator(app, remote=make_remote(total=3))
    if preload:
        list(items)

    with pytest.raises(UnsupportedOperation):
        items["x"] = "anything"
    with pytest.raises(UnsupportedOperation):
        del items["x"]


def test_failed_fetch_propagates_and_can_be_retried(app, make_remote):
    remote = make_remote(total=5)
    remote.failures.append(RemoteCallError("boom", path="/item/app/100/filter"))
    items = ItemFilterIterator(app, remote=remote)

    with pytest.raises(RemoteCallError):
        items.current()
    assert items.loaded is False

    assert items.current().item_id == 1
    assert len(remote.calls) == 2


def test_failed_boundary_fetch_retries_same_offset(app, make_remote):
    remote = make_remote(total=6)
    items = ItemFilterIterator(app, remote=remote, limit=3)
    items.rewind()
    for _ in range(3):
        items.advance()
    remote.failures.append(requests.ConnectionError("down"))

    with pytest.raises(requests.ConnectionError):
        items.current()

    assert items.key() == 3
    assert items.current().item_id == 4
    assert remote.offsets == [0, 3, 3]


def test_malformed_response_raises_remote_call_error(app):
    class BadRemote:
        def post(self, path, body=None, *, app_id=None):
            return {"items": []}

    items = ItemFilterIterator(app, remote=BadRemote())

    with pytest.raises(RemoteCallError):
        items.count()
    assert items.loaded is False


def test_latest_total_count_wins(app, make_remote):
    remote = make_remote(total=6)
    items = ItemFilterIterator(app, remote=remote, limit=3)
    items.rewind()
    assert items.total_count == 6

    remote.filtered = 4
    for _ in range(3):
        items.advance()
    items.current()

    assert items.total_count == 4
    items.advance()
    assert items.valid() is False


def test_empty_page_before_reported_total_ends_the_pass(app, make_remote):
    remote = make_remote(total=3, filtered=10)
    items = ItemFilterIterator(app, remote=remote, limit=3)

    result = [item.item_id for item in items]

    assert result == [1, 2, 3]
    assert items.total_count == 10
    assert items.valid() is False
    assert remote.offsets == [0, 3]


def test_empty_first_page_keeps_reported_total(app, make_remote):
    remote = make_remote(total=0, filtered=5)
    items = ItemFilterIterator(app, remote=remote)

    assert len(items) == 5
    assert items.current() is None
    items.advance()

    assert items.key() == 0
    assert items.valid() is False
    assert len(remote.calls) == 1


def test_custom_factory_is_used(app, make_remote):
    remote = make_remote(total=2)
    items = ItemFilterIterator(app, remote=remote, factory=lambda raw: raw["title"])

    assert list(items) == ["Item 0", "Item 1"]


def test_default_remote_is_resolved_lazily(app, make_remote, monkeypatch):
    import chiara.iterators.item_filter as item_filter_mod

    remote = make_remote(total=1)
    lookups = []

    def fake_get_remote():
        lookups.append(True)
        return remote

    monkeypatch.setattr(item_filter_mod, "get_remote", fake_get_remote)
    items = ItemFilterIterator(app)
    assert lookups == []

    items.count()
    items.rewind()

    assert lookups == [True]
    assert len(remote.calls) == 2


def test_app_items_helper(app, make_remote):
    remote = make_remote(total=3)

    items = app.items(limit=2, remote=remote)

    assert isinstance(items, ItemFilterIterator)
    assert [item.title for item in items[5]] == ["Item 0", "Item 1", "Item 2"]
    assert remote.calls[0] == ("/item/app/100/filter/5", {"limit": 2}, 100)
