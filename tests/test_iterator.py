"""Tests for manifestapi.iterator.ResourceIterator."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from manifestapi.exceptions import InvalidUsageError, ServerError, TransportError
from manifestapi.facade import ManifestClient
from manifestapi.iterator import ResourceIterator
from manifestapi.manifests import DictManifestSource
from manifestapi.models import IterationOptions

VERSION = "2014-07-26"


def _page(ids: list[str], has_more: bool) -> dict[str, Any]:
    return {"object": "list", "data": [{"id": i} for i in ids], "has_more": has_more}


def _cursor_pages(pages: dict[Any, tuple[int, Any]]) -> Callable[[httpx.Request], httpx.Response]:
    """Serve ``(status, body)`` per ``starting_after`` value (``None`` for the first page)."""

    def _handler(request: httpx.Request) -> httpx.Response:
        status, body = pages[request.url.params.get("starting_after")]
        return httpx.Response(status, json=body)

    return _handler


FIVE_CHARGES = {
    None: (200, _page(["ch_1", "ch_2"], True)),
    "ch_2": (200, _page(["ch_3", "ch_4"], True)),
    "ch_4": (200, _page(["ch_5"], False)),
}


@pytest.fixture
def client_for(dict_source, recording_transport):
    """Build a client whose transport serves *handler*; returns (client, transport)."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]):
        transport = recording_transport(handler)
        client = ManifestClient("sk_test_123", VERSION, source=dict_source, transport=transport)
        return client, transport

    return _make


class TestTraversal:
    def test_yields_every_item_across_pages(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        iterator = client.call("chargesIterator")

        assert isinstance(iterator, ResourceIterator)
        assert [item["id"] for item in iterator] == ["ch_1", "ch_2", "ch_3", "ch_4", "ch_5"]
        assert len(transport.requests) == 3
        assert iterator.pages_fetched == 3
        assert iterator.done

    def test_exhausted_iterator_never_refetches(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        iterator = client.call("chargesIterator")
        iterator.to_list()

        for _ in range(3):
            with pytest.raises(StopIteration):
                next(iterator)
        assert len(transport.requests) == 3

    def test_nothing_fetched_before_first_advance(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        iterator = client.call("chargesIterator")
        assert transport.requests == []
        assert iterator.state.pages_fetched == 0
        next(iterator)
        assert len(transport.requests) == 1

    def test_pages_fetched_lazily(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        iterator = client.call("chargesIterator")
        next(iterator)
        next(iterator)
        assert len(transport.requests) == 1
        next(iterator)
        assert len(transport.requests) == 2

    def test_arguments_kept_and_cursor_overwritten(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        client.call("chargesIterator", {"customer": "cus_1"}).to_list()

        params = [request.url.params for request in transport.requests]
        assert [p.get("customer") for p in params] == ["cus_1", "cus_1", "cus_1"]
        assert [p.get("starting_after") for p in params] == [None, "ch_2", "ch_4"]

    def test_starting_after_option_seeds_cursor(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        items = client.call("chargesIterator", {}, {"starting_after": "ch_2"}).to_list()
        assert [item["id"] for item in items] == ["ch_3", "ch_4", "ch_5"]
        assert transport.requests[0].url.params["starting_after"] == "ch_2"

    def test_empty_first_page(self, client_for) -> None:
        client, transport = client_for(lambda request: httpx.Response(200, json=_page([], True)))
        assert client.call("chargesIterator").to_list() == []
        assert len(transport.requests) == 1

    def test_cursor_that_does_not_move_stops(self, client_for) -> None:
        client, transport = client_for(
            lambda request: httpx.Response(200, json=_page(["ch_1", "ch_2"], True))
        )
        items = client.call("chargesIterator").to_list()
        assert len(items) == 4
        assert len(transport.requests) == 2

    def test_bare_list_response_is_single_page(self, client_for) -> None:
        client, transport = client_for(
            lambda request: httpx.Response(200, json=[{"id": "ch_1"}, {"id": "ch_2"}])
        )
        assert len(client.call("chargesIterator").to_list()) == 2
        assert len(transport.requests) == 1

    def test_custom_cursor_callable(self, client_for) -> None:
        pages = {
            None: (200, {"data": [{"id": "a", "created": 10}], "has_more": True}),
            "10": (200, {"data": [{"id": "b", "created": 5}], "has_more": False}),
        }
        client, transport = client_for(_cursor_pages(pages))
        iterator = client.call(
            "chargesIterator", {}, {"cursor": lambda item: str(item["created"])}
        )
        assert [item["id"] for item in iterator] == ["a", "b"]
        assert transport.requests[1].url.params["starting_after"] == "10"


class TestLimit:
    def test_limit_caps_items(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        items = client.call("chargesIterator", {}, {"limit": 3}).to_list()
        assert [item["id"] for item in items] == ["ch_1", "ch_2", "ch_3"]
        assert len(transport.requests) == 2

    def test_page_size_shrinks_to_remaining(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        client.call("chargesIterator", {}, {"limit": 3, "page_size": 2}).to_list()
        assert [r.url.params["limit"] for r in transport.requests] == ["2", "1"]

    def test_page_size_from_list_arguments(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        client.call("chargesIterator", {"limit": 2}, {"limit": 3}).to_list()
        assert [r.url.params["limit"] for r in transport.requests] == ["2", "1"]

    def test_page_size_without_limit(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        client.call("chargesIterator", {}, {"page_size": 2}).to_list()
        assert all(r.url.params["limit"] == "2" for r in transport.requests)

    def test_limit_zero_fetches_nothing(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        assert client.call("chargesIterator", {}, {"limit": 0}).to_list() == []
        assert transport.requests == []

    def test_limit_marks_done(self, client_for) -> None:
        client, _ = client_for(_cursor_pages(FIVE_CHARGES))
        iterator = client.call("chargesIterator", {}, {"limit": 1})
        iterator.to_list()
        assert iterator.done
        assert iterator.state.items_yielded == 1


class TestFailures:
    def test_fetch_failure_propagates_after_earlier_items(self, client_for) -> None:
        pages = {
            None: (200, _page(["ch_1", "ch_2"], True)),
            "ch_2": (500, {"error": {"message": "down"}}),
        }
        client, _ = client_for(_cursor_pages(pages))
        iterator = client.call("chargesIterator")

        seen = [next(iterator)["id"], next(iterator)["id"]]
        with pytest.raises(ServerError):
            next(iterator)
        assert seen == ["ch_1", "ch_2"]
        assert not iterator.done
        assert iterator.state.items_yielded == 2

    def test_unexpected_page_shape(self, client_for) -> None:
        client, _ = client_for(lambda request: httpx.Response(200, text="not a page"))
        with pytest.raises(TransportError, match="Unexpected list response"):
            next(client.call("chargesIterator"))

    def test_items_field_not_a_list(self, client_for) -> None:
        client, _ = client_for(lambda request: httpx.Response(200, json={"data": {"id": "x"}}))
        with pytest.raises(TransportError, match="not an array"):
            next(client.call("chargesIterator"))


class TestConstruction:
    def test_mapping_options_validated(self, client_for) -> None:
        client, _ = client_for(_cursor_pages(FIVE_CHARGES))
        command = client.call("charges").get_command("all")
        iterator = ResourceIterator(command, {"limit": 2})
        assert iterator.options == IterationOptions(limit=2)
        assert iterator.command is command

    def test_state_is_a_snapshot(self, client_for) -> None:
        client, _ = client_for(_cursor_pages(FIVE_CHARGES))
        iterator = client.call("chargesIterator")
        iterator.state.done = True
        assert not iterator.done

    def test_repr(self, client_for) -> None:
        client, _ = client_for(_cursor_pages(FIVE_CHARGES))
        assert "Charges.all" in repr(client.call("chargesIterator"))

    def test_invalid_mapping_options_are_usage_errors(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        command = client.call("charges").get_command("all")
        with pytest.raises(InvalidUsageError, match="Invalid iterator options"):
            ResourceIterator(command, {"limit": -1})
        assert transport.requests == []


class TestItemsKey:
    def test_response_items_key_used_without_pagination_block(self, recording_transport) -> None:
        documents = {
            VERSION: {
                "Manifest": {},
                "Items": {
                    "operations": {
                        "all": {
                            "http_method": "GET",
                            "uri": "/v1/items",
                            "response": {"type": "list", "items_key": "results"},
                        }
                    }
                },
            }
        }
        transport = recording_transport(
            lambda request: httpx.Response(
                200, json={"results": [{"id": "a"}], "data": [{"id": "x"}], "has_more": False}
            )
        )
        client = ManifestClient(
            "sk_test_123", VERSION, source=DictManifestSource(documents), transport=transport
        )
        assert client.call("itemsIterator").to_list() == [{"id": "a"}]

    def test_pagination_block_wins_over_response_items_key(self, recording_transport) -> None:
        documents = {
            VERSION: {
                "Manifest": {},
                "Items": {
                    "operations": {
                        "all": {
                            "http_method": "GET",
                            "uri": "/v1/items",
                            "response": {"type": "list", "items_key": "results"},
                            "pagination": {"items_key": "entries"},
                        }
                    }
                },
            }
        }
        transport = recording_transport(
            lambda request: httpx.Response(
                200, json={"entries": [{"id": "e"}], "results": [{"id": "r"}]}
            )
        )
        client = ManifestClient(
            "sk_test_123", VERSION, source=DictManifestSource(documents), transport=transport
        )
        assert client.call("itemsIterator").to_list() == [{"id": "e"}]


class TestClose:
    def test_with_block_releases_http_client(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        with client.call("chargesIterator") as iterator:
            assert next(iterator)["id"] == "ch_1"
            executor = iterator.command.executor
            assert executor._client is not None

        assert executor._client is None
        assert iterator.done
        with pytest.raises(StopIteration):
            next(iterator)
        assert len(transport.requests) == 1

    def test_close_is_idempotent(self, client_for) -> None:
        client, transport = client_for(_cursor_pages(FIVE_CHARGES))
        iterator = client.call("chargesIterator")
        iterator.close()
        iterator.close()
        assert iterator.to_list() == []
        assert transport.requests == []
