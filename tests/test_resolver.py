"""Tests for manifestapi.resolver."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from manifestapi.exceptions import InvalidUsageError, UndefinedOperationError
from manifestapi.manifests import DictManifestSource, ManifestStore
from manifestapi.models import (
    DirectOperation,
    IterationOptions,
    IteratorOperation,
    ResolvedOperation,
)
from manifestapi.resolver import ITERATOR_SUFFIX, OperationResolver

VERSION = "2014-07-26"


@pytest.fixture
def resolver(dict_source: DictManifestSource) -> OperationResolver:
    return OperationResolver(ManifestStore(dict_source, VERSION))


class TestDirect:
    def test_plain_name(self, resolver: OperationResolver) -> None:
        resolved = resolver.resolve("charges")
        assert isinstance(resolved, DirectOperation)
        assert resolved.kind == "direct"
        assert resolved.operation_name == "charges"
        assert resolved.requested_name == "charges"

    def test_canonical_name_accepted(self, resolver: OperationResolver) -> None:
        assert isinstance(resolver.resolve("Customers"), DirectOperation)

    def test_unknown_name(self, resolver: OperationResolver) -> None:
        with pytest.raises(UndefinedOperationError) as exc_info:
            resolver.resolve("coupons")
        assert exc_info.value.name == "coupons"
        assert str(exc_info.value) == "Undefined method [coupons] called."

    def test_base_document_is_not_callable(self, resolver: OperationResolver) -> None:
        with pytest.raises(UndefinedOperationError):
            resolver.resolve("manifest")

    def test_version_override(self, resolver: OperationResolver) -> None:
        with pytest.raises(UndefinedOperationError):
            resolver.resolve("charges", version="2099-01-01")


class TestIterator:
    def test_suffix_is_stripped(self, resolver: OperationResolver) -> None:
        resolved = resolver.resolve("chargesIterator")
        assert isinstance(resolved, IteratorOperation)
        assert resolved.kind == "iterator"
        assert resolved.list_operation_name == "charges"
        assert resolved.list_command == "all"
        assert resolved.requested_name == "chargesIterator"
        assert resolved.parameters == {}
        assert resolved.iterator_options == IterationOptions()

    def test_arguments_are_carried(self, resolver: OperationResolver) -> None:
        resolved = resolver.resolve(
            "chargesIterator", ({"customer": "cus_1"}, {"limit": 3, "page_size": 2})
        )
        assert resolved.parameters == {"customer": "cus_1"}
        assert resolved.iterator_options.limit == 3
        assert resolved.iterator_options.page_size == 2

    def test_options_model_accepted(self, resolver: OperationResolver) -> None:
        options = IterationOptions(limit=1)
        resolved = resolver.resolve("chargesIterator", ({}, options))
        assert resolved.iterator_options is options

    def test_unknown_target_keeps_requested_name(self, resolver: OperationResolver) -> None:
        with pytest.raises(UndefinedOperationError) as exc_info:
            resolver.resolve("couponsIterator")
        assert exc_info.value.name == "couponsIterator"

    def test_bare_suffix_is_undefined(self, resolver: OperationResolver) -> None:
        with pytest.raises(UndefinedOperationError) as exc_info:
            resolver.resolve(ITERATOR_SUFFIX)
        assert exc_info.value.name == "Iterator"

    def test_suffix_checked_on_stripped_name(self) -> None:
        # A document literally named "ChargesIterator" must not satisfy the lookup.
        source = DictManifestSource(
            {VERSION: {"Manifest": {}, "ChargesIterator": {"operations": {}}}}
        )
        resolver = OperationResolver(ManifestStore(source, VERSION))
        with pytest.raises(UndefinedOperationError):
            resolver.resolve("chargesIterator")

    def test_parameters_must_be_mapping(self, resolver: OperationResolver) -> None:
        with pytest.raises(InvalidUsageError, match="list parameters must be a mapping"):
            resolver.resolve("chargesIterator", (["customer"],))

    def test_options_must_be_mapping(self, resolver: OperationResolver) -> None:
        with pytest.raises(InvalidUsageError, match="iterator options must be a mapping"):
            resolver.resolve("chargesIterator", ({}, 5))

    @pytest.mark.parametrize("options", [{"limit": -1}, {"page_size": 0}, {"unknown": 1}])
    def test_invalid_options(self, resolver: OperationResolver, options: dict) -> None:
        with pytest.raises(InvalidUsageError, match="invalid iterator options"):
            resolver.resolve("chargesIterator", ({}, options))

    def test_undefined_raised_before_argument_checks(self, resolver: OperationResolver) -> None:
        with pytest.raises(UndefinedOperationError):
            resolver.resolve("couponsIterator", ("not a mapping",))


class TestResolvedOperation:
    def test_kind_selects_the_model(self) -> None:
        adapter = TypeAdapter(ResolvedOperation)
        resolved = adapter.validate_python(
            {
                "kind": "iterator",
                "requested_name": "chargesIterator",
                "list_operation_name": "charges",
                "iterator_options": {"limit": 3},
            }
        )
        assert isinstance(resolved, IteratorOperation)
        assert resolved.iterator_options.limit == 3
        direct = adapter.validate_python(
            {"kind": "direct", "requested_name": "charges", "operation_name": "charges"}
        )
        assert isinstance(direct, DirectOperation)

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TypeAdapter(ResolvedOperation).validate_python(
                {"kind": "batch", "requested_name": "charges"}
            )

    def test_resolver_output_round_trips(self, resolver: OperationResolver) -> None:
        resolved = resolver.resolve("chargesIterator", {"customer": "cus_1"})
        adapter = TypeAdapter(ResolvedOperation)
        assert adapter.validate_python(resolved.model_dump()) == resolved
