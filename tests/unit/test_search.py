"""
Tests for the search predicate.
"""

import pytest

from inventory.models import Item
from inventory.search import filter_items, item_matches, normalize_query


pytestmark = pytest.mark.unit


def _ids(items):
    return [item.id for item in items]


class TestNormalizeQuery:

    def test_strips_and_casefolds(self):
        assert normalize_query("  CaShEw ") == "cashew"

    def test_none_is_blank(self):
        assert normalize_query(None) == ""


class TestFilterItems:
    """Tests for filter_items."""

    def test_blank_query_returns_everything(self, sample_items):
        assert list(filter_items(sample_items, "")) == sample_items
        assert list(filter_items(sample_items, "   ")) == sample_items

    def test_does_not_mutate_source(self, sample_items):
        before = list(sample_items)

        filter_items(sample_items, "cashew")

        assert sample_items == before

    def test_preserves_input_order(self, sample_items):
        result = filter_items(sample_items, "dry fruits")

        assert _ids(result) == ["item-cashews", "item-almonds"]

    def test_variant_value_matches_item(self, sample_items):
        # neither name nor category contains "250"
        assert _ids(filter_items(sample_items, "250")) == ["item-almonds"]

    def test_case_insensitive_name(self, sample_items):
        assert _ids(filter_items(sample_items, "KHAKHRA")) == ["item-khakhra"]

    def test_description_match(self, sample_items):
        assert _ids(filter_items(sample_items, "wheat")) == ["item-khakhra"]

    def test_variant_sku_match(self, sample_items):
        assert _ids(filter_items(sample_items, "csh-1kg")) == ["item-cashews"]

    def test_variant_type_match(self, sample_items):
        assert _ids(filter_items(sample_items, "size")) == ["item-cashews"]

    def test_variant_price_match(self, sample_items):
        assert _ids(filter_items(sample_items, "1600")) == ["item-cashews"]

    def test_prices_match_as_substrings(self, sample_items):
        # Khakhra costs 60; a Cashews variant costs 1600
        assert _ids(filter_items(sample_items, "60")) == ["item-cashews", "item-khakhra"]

    def test_single_item_sku(self, sample_items):
        assert _ids(filter_items(sample_items, "khk-")) == ["item-khakhra"]

    def test_no_match(self, sample_items):
        assert filter_items(sample_items, "saffron") == ()


class TestItemMatches:
    """Edge cases for item_matches."""

    def test_null_fields_do_not_match(self):
        item = Item.model_validate({
            "id": "x",
            "name": "Plain",
            "description": None,
            "category": None,
            "has_variants": False,
            "price": None,
            "quantity": None,
            "sku": None,
        })

        assert not item_matches(item, "none")
        assert not item_matches(item, "0")

    def test_own_fields_ignored_for_variant_items(self):
        item = Item.model_validate({
            "id": "x",
            "name": "Cardamom",
            "has_variants": True,
            "price": 777,
            "sku": "CARD-OWN",
            "item_variants": [],
        })

        assert not item_matches(item, "777")
        assert not item_matches(item, "card-own")

    def test_whole_number_prices_have_no_decimal_suffix(self):
        item = Item.model_validate({"id": "x", "name": "Tea", "price": 250.0, "quantity": 3})

        assert item_matches(item, "250")
        assert not item_matches(item, "250.0")

    def test_fractional_price(self):
        item = Item.model_validate({"id": "x", "name": "Tea", "price": 12.5})

        assert item_matches(item, "12.5")
