"""Tests for grouping inventory rows into product listings."""

import pytest

from refurb_catalog.services.aggregator import (
    ProductAggregator,
    ProductAttributes,
    compute_group_key,
    create_seo_title,
    determine_collections,
    parse_stock,
    process_rows,
)

MACBOOK_ROW = {
    "Brand": "Apple",
    "Model": "MacBook Pro 14-inch 2023",
    "Processor": "Apple M3 Pro",
    "Storage": "512GB",
    "Memory": "16GB",
    "Color": "Space Gray",
    "Condition": "Excellent",
    "Stock": "3",
}


@pytest.fixture
def aggregator() -> ProductAggregator:
    return ProductAggregator()


class TestEndToEnd:
    def test_single_macbook_row(self):
        result = process_rows([MACBOOK_ROW])

        assert result.total_items == 1
        assert result.categories == {"MacBook Pro": 1}
        assert len(result.groups) == 1

        key, group = next(iter(result.groups.items()))
        assert "MacBookPro_M3Pro_512GB_16GB" in key
        assert key == "MacBookPro_M3Pro_512GB_16GB_14inch"
        assert group.product_type == "MacBook Pro"
        assert group.year == "2023"
        assert group.seo_title == (
            "MacBook Pro 14-inch (2023) - M3 Pro, 512GB, 16GB | Certified Refurbished"
        )
        assert group.base_price == 2759

        assert len(group.variants) == 1
        variant = next(iter(group.variants.values()))
        assert (variant.color, variant.condition, variant.quantity) == ("Space Gray", "A", 3)

    def test_empty_input(self):
        result = process_rows([])
        assert result.total_items == 0
        assert result.groups == {}
        assert result.categories == {}

    def test_no_qualifying_rows(self):
        result = process_rows([{"Brand": "Dell", "Model": "Latitude", "Category": "Notebook"}])
        assert result.total_rows == 1
        assert result.matched_rows == 0
        assert result.total_items == 0
        assert result.groups == {}

    def test_counts_rows_through_pipeline(self):
        rows = [
            MACBOOK_ROW,
            {"Brand": "Apple", "Model": "iPhone 13", "Storage": "128GB", "Stock": "0"},
            {"Brand": "Apple", "Model": "iPad Air", "Storage": "64GB"},
        ]
        result = process_rows(rows)
        assert result.total_rows == 3
        assert result.matched_rows == 2
        assert result.total_items == 2
        assert result.categories == {"MacBook Pro": 1, "iPad Air": 1}

    def test_none_input_is_contract_violation(self):
        with pytest.raises(TypeError):
            process_rows(None)


class TestGrouping:
    def test_same_row_twice_doubles_quantities(self, aggregator):
        once = aggregator.aggregate([MACBOOK_ROW])
        twice = aggregator.aggregate([MACBOOK_ROW, MACBOOK_ROW])

        assert len(twice.groups) == len(once.groups) == 1
        g1 = next(iter(once.groups.values()))
        g2 = next(iter(twice.groups.values()))
        assert len(g2.items) == 2 * len(g1.items)
        v1 = next(iter(g1.variants.values()))
        v2 = next(iter(g2.variants.values()))
        assert v2.quantity == 2 * v1.quantity
        assert twice.categories == {"MacBook Pro": 2}

    def test_color_and_condition_split_variants_not_groups(self, aggregator):
        other = {**MACBOOK_ROW, "Color": "Silver", "Condition": "Good", "Stock": ""}
        result = aggregator.aggregate([MACBOOK_ROW, other])

        assert len(result.groups) == 1
        group = next(iter(result.groups.values()))
        assert set(group.variants) == {"Space Gray_A", "Silver_C"}
        assert group.variants["Silver_C"].quantity == 1

    def test_different_specs_make_different_groups(self, aggregator):
        bigger = {**MACBOOK_ROW, "Storage": "1TB"}
        result = aggregator.aggregate([MACBOOK_ROW, bigger])
        assert len(result.groups) == 2

    def test_serial_numbers_collected(self, aggregator):
        rows = [
            {**MACBOOK_ROW, "Serial Number": "C02XK1", "Stock": ""},
            {**MACBOOK_ROW, "Serial Number": "C02XK2", "Stock": ""},
            {**MACBOOK_ROW, "Serial Number": "", "Stock": ""},
        ]
        result = aggregator.aggregate(rows)
        variant = next(iter(next(iter(result.groups.values())).variants.values()))
        assert variant.serial_numbers == ["C02XK1", "C02XK2"]
        assert variant.quantity == 3

    def test_items_keep_original_row(self, aggregator):
        result = aggregator.aggregate([MACBOOK_ROW])
        item = next(iter(result.groups.values())).items[0]
        assert item.original_row == MACBOOK_ROW
        assert item.stock == 3
        assert item.condition == "A"

    def test_first_row_sets_group_metadata(self, aggregator):
        first = {**MACBOOK_ROW, "Model": "MacBook Pro 14-inch 2023"}
        second = {**MACBOOK_ROW, "Model": "MacBook Pro 14-inch 2024"}
        result = aggregator.aggregate([first, second])
        assert len(result.groups) == 1
        assert next(iter(result.groups.values())).year == "2023"


class TestSkipping:
    def test_row_without_model_and_category_is_skipped(self, aggregator):
        result = aggregator.aggregate([{"Brand": "Apple", "Color": "Silver"}])
        assert result.skipped_rows == 1
        assert result.total_items == 0
        assert result.groups == {}

    def test_failing_row_does_not_abort(self, aggregator):
        class BrokenRow(dict):
            def get(self, key, default=None):
                raise RuntimeError("corrupt cell")

        result = aggregator.aggregate([BrokenRow(Model="iPad"), MACBOOK_ROW])
        assert result.skipped_rows == 1
        assert result.total_items == 1

    def test_failing_cell_leaves_no_empty_group(self, aggregator):
        class UnreadableCell:
            def __str__(self):
                raise ValueError("unreadable serial")

        result = aggregator.aggregate([{"Model": "MacBook Air 13-inch", "Serial Number": UnreadableCell()}])
        assert result.skipped_rows == 1
        assert result.groups == {}
        assert result.categories == {}
        assert result.total_items == 0

    def test_failing_cell_does_not_touch_existing_group(self, aggregator):
        class UnreadableCell:
            def __str__(self):
                raise ValueError("unreadable stock")

        result = aggregator.aggregate([MACBOOK_ROW, {**MACBOOK_ROW, "Stock": UnreadableCell()}])
        group = next(iter(result.groups.values()))
        assert result.skipped_rows == 1
        assert len(group.items) == 1
        assert group.variants["Space Gray_A"].quantity == 3


class TestProductType:
    def test_category_fallbacks(self, aggregator):
        assert aggregator.resolve_product_type("ThinkPad X1", "Laptop") == "MacBook"
        assert aggregator.resolve_product_type("Unknown", "Tablets") == "iPad"
        assert aggregator.resolve_product_type("Galaxy S21", "Phone") == "iPhone"
        assert aggregator.resolve_product_type("Unknown", "Desktop") == "iMac"

    def test_raw_category_then_literal(self, aggregator):
        assert aggregator.resolve_product_type("Widget", "Gadgets") == "Gadgets"
        assert aggregator.resolve_product_type("Widget", "") == "Apple Product"

    def test_model_rule_beats_category(self, aggregator):
        assert aggregator.resolve_product_type("iPad Pro", "Laptop") == "iPad Pro"

    def test_category_only_row(self, aggregator):
        result = aggregator.aggregate([{"Category": "Laptop", "Processor": "Intel Core i5"}])
        group = next(iter(result.groups.values()))
        assert group.product_type == "MacBook"
        assert group.model == "MacBook"


class TestDerivedFields:
    def test_seo_title_skips_unknown_specs(self):
        attrs = ProductAttributes(
            product_type="AirPods",
            model="AirPods Pro",
            processor="Unknown",
            storage="Unknown",
            memory="Unknown",
            color="White",
            condition="B",
        )
        assert create_seo_title(attrs) == "AirPods | Certified Refurbished"
        assert compute_group_key(attrs) == "AirPods_Unknown_Unknown_Unknown"

    def test_collections_for_intel_imac(self):
        attrs = ProductAttributes(
            product_type="iMac",
            model="iMac 27-inch 2019",
            processor="Intel i5",
            storage="1TB",
            memory="8GB",
            color="Silver",
            condition="A",
            display_size="27-inch",
            year="2019",
        )
        assert determine_collections(attrs) == [
            "iMac",
            "Intel",
            "2019 Models",
            "Desktops",
            "Refurbished",
            "Apple",
        ]

    def test_unrecognized_chip_gets_no_architecture_tag(self):
        attrs = ProductAttributes(
            product_type="MacBook Pro",
            model="MacBook Pro 14-inch 2024",
            processor="M4 Pro",
            storage="512GB",
            memory="24GB",
            color="Space Black",
            condition="A",
            display_size="14-inch",
            year="2024",
        )
        collections = determine_collections(attrs)
        assert "Apple Silicon" not in collections
        assert "Intel" not in collections
        assert collections == ["MacBook Pro", "2024 Models", "Laptops", "Refurbished", "Apple"]

    def test_collections_deduplicated(self):
        attrs = ProductAttributes(
            product_type="Apple",
            model="",
            processor="Unknown",
            storage="Unknown",
            memory="Unknown",
            color="Default",
            condition="A",
        )
        assert determine_collections(attrs) == ["Apple", "Refurbished"]

    def test_parse_stock(self):
        assert parse_stock("") == 1
        assert parse_stock("5") == 5
        assert parse_stock("2.0") == 2
        assert parse_stock("lots") == 1
        assert parse_stock("-3") == 0
