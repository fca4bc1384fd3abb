"""Unit tests verifying the business logic layer with a mocked data access layer."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from unittest.mock import Mock

import pytest

from catalog_erp import constants, core_logic, data_manager, gs1

from conftest import FakeAllocator, make_variant


SIZES = [
    data_manager.SizeRow("S", "Small", "Clothing"),
    data_manager.SizeRow("M", "Medium", "Clothing"),
    data_manager.SizeRow("L", "Large", "Clothing"),
    data_manager.SizeRow("XL", "Extra Large", "Clothing"),
    data_manager.SizeRow("42", "EU 42", "Shoes"),
]
COLORS = [
    data_manager.ColorRow("BLK", "Black", "#000000"),
    data_manager.ColorRow("WHT", "White", "#FFFFFF"),
]


@pytest.fixture
def stored_settings(monkeypatch, gs1_config):
    """Patch the DAL settings readers and writers with an in-memory store."""

    store = {
        "gs1": gs1_config,
        "sku": data_manager.SkuConfiguration(prefix="SHIRT", enable_auto_generation=True),
    }
    monkeypatch.setattr(data_manager, "read_gs1_config", lambda _: store["gs1"])
    monkeypatch.setattr(data_manager, "write_gs1_config", lambda _, config: store.__setitem__("gs1", config))
    monkeypatch.setattr(data_manager, "read_sku_config", lambda _: store["sku"])
    monkeypatch.setattr(data_manager, "write_sku_config", lambda _, config: store.__setitem__("sku", config))
    return store


@pytest.fixture
def master_data(monkeypatch):
    """Serve the sample sizes and colors from mocked sheet iterators."""

    iter_sizes = Mock(side_effect=lambda _: iter(SIZES))
    iter_colors = Mock(side_effect=lambda _: iter(COLORS))
    monkeypatch.setattr(data_manager, "iter_sizes", iter_sizes)
    monkeypatch.setattr(data_manager, "iter_colors", iter_colors)
    return iter_sizes, iter_colors


@pytest.fixture
def draft(context, product):
    return core_logic.ProductDraft(product=product)


# ---------------------------------------------------------------------------
# Runtime/context management
# ---------------------------------------------------------------------------


def test_load_runtime_context_defaults_to_workbook_allocator(monkeypatch, tmp_path, settings):
    """load_runtime_context should assemble settings, workbook, and allocator."""

    config_path = tmp_path / "config.ini"
    workbook = Mock(name="workbook")
    monkeypatch.setattr(data_manager, "find_config_file", lambda path: path)
    monkeypatch.setattr(data_manager, "read_config", lambda path: Mock(name="parser"))
    monkeypatch.setattr(data_manager, "parse_settings", lambda parser, base_path: settings)
    monkeypatch.setattr(data_manager, "open_workbook", lambda path: workbook)

    context = core_logic.load_runtime_context(config_path)

    assert context.settings is settings
    assert context.workbook is workbook
    assert isinstance(context.allocator, data_manager.WorkbookSequenceAllocator)
    assert context.allocator.workbook is workbook


def test_load_runtime_context_keeps_injected_allocator(monkeypatch, tmp_path, settings):
    allocator = FakeAllocator()
    monkeypatch.setattr(data_manager, "find_config_file", lambda path: path)
    monkeypatch.setattr(data_manager, "read_config", lambda path: Mock(name="parser"))
    monkeypatch.setattr(data_manager, "parse_settings", lambda parser, base_path: settings)
    monkeypatch.setattr(data_manager, "open_workbook", lambda path: Mock(name="workbook"))

    context = core_logic.load_runtime_context(tmp_path / "config.ini", allocator=allocator)
    assert context.allocator is allocator


def test_ensure_schema_version_rejects_mismatch(context):
    """ensure_schema_version should refuse workbooks from another schema."""

    stale = replace(context, settings=replace(context.settings, schema_version="1.0.0"))
    with pytest.raises(RuntimeError, match="schema mismatch"):
        core_logic.ensure_schema_version(stale)
    core_logic.ensure_schema_version(context)


def test_persist_context_saves_to_configured_path(context, monkeypatch):
    called = {}
    monkeypatch.setattr(
        data_manager,
        "save_workbook",
        lambda workbook, destination: called.update(workbook=workbook, destination=destination),
    )
    core_logic.persist_context(context)
    assert called == {"workbook": context.workbook, "destination": context.settings.data_file}


def test_refresh_context_rebuilds_workbook_allocator(context, monkeypatch):
    """A workbook-backed allocator must follow the reloaded workbook."""

    fresh = Mock(name="fresh-workbook")
    monkeypatch.setattr(data_manager, "refresh_workbook", lambda path: fresh)
    workbook_context = replace(context, allocator=data_manager.WorkbookSequenceAllocator(context.workbook))

    refreshed = core_logic.refresh_context(workbook_context)

    assert refreshed.workbook is fresh
    assert refreshed.allocator.workbook is fresh
    assert refreshed._cache == {}


def test_refresh_context_keeps_injected_allocator(context, monkeypatch):
    monkeypatch.setattr(data_manager, "refresh_workbook", lambda path: Mock(name="fresh-workbook"))
    assert core_logic.refresh_context(context).allocator is context.allocator


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def test_update_gs1_config_preserves_sequence_counter(context, stored_settings):
    """Editing GS1 settings must never rewind or skip the stored counter."""

    stored_settings["gs1"] = replace(stored_settings["gs1"], sequence_counter=41)

    updated = core_logic.update_gs1_config(
        context,
        company_prefix=" 7654321 ",
        barcode_format="GTIN-14",
        enable_auto_generation=False,
    )

    assert updated.sequence_counter == 41
    assert updated.company_prefix == "7654321"
    assert updated.barcode_format == "GTIN-14"
    assert updated.enable_auto_generation is False
    assert updated.location_reference == "01"
    assert stored_settings["gs1"] == updated


def test_update_gs1_config_rejects_unknown_format(context, stored_settings):
    before = stored_settings["gs1"]
    with pytest.raises(gs1.UnsupportedFormatError):
        core_logic.update_gs1_config(context, barcode_format="EAN-8")
    assert stored_settings["gs1"] is before


@pytest.mark.parametrize(
    "changes",
    [
        {"company_prefix": "12-34"},
        {"company_prefix": "123456A"},
        {"location_reference": "A1"},
        {"company_prefix": "\u0661\u0662\u0663"},
    ],
)
def test_update_gs1_config_rejects_non_numeric_fields(context, stored_settings, changes):
    """Letters in the prefix or location are refused before anything is stored."""

    before = stored_settings["gs1"]
    with pytest.raises(gs1.InvalidInputError, match="digits only"):
        core_logic.update_gs1_config(context, **changes)
    assert stored_settings["gs1"] is before


def test_update_gs1_config_accepts_blank_prefix(context, stored_settings):
    assert core_logic.update_gs1_config(context, company_prefix="  ").company_prefix == ""


def test_update_sku_config_changes_only_supplied_fields(context, stored_settings):
    updated = core_logic.update_sku_config(context, enable_auto_generation=False)
    assert updated == data_manager.SkuConfiguration(prefix="SHIRT", enable_auto_generation=False)
    assert core_logic.get_sku_config(context) == updated


# ---------------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------------


def test_list_sizes_filters_by_category(context, master_data):
    assert [size.size_code for size in core_logic.list_sizes(context, "Clothing")] == ["S", "M", "L", "XL"]
    assert [size.size_code for size in core_logic.list_sizes(context, "Shoes")] == ["42"]
    assert core_logic.list_sizes(context, "Hats") == []
    assert len(core_logic.list_sizes(context)) == len(SIZES)


def test_master_data_is_cached_between_calls(context, master_data):
    iter_sizes, iter_colors = master_data
    core_logic.list_sizes(context, "Clothing")
    core_logic.list_colors(context)
    core_logic.list_sizes(context, "Shoes")
    assert iter_sizes.call_count == 1
    assert iter_colors.call_count == 1


def test_add_size_rejects_duplicate_code_in_category(context, master_data, monkeypatch):
    monkeypatch.setattr(data_manager, "add_size", Mock(side_effect=AssertionError("should not write")))
    with pytest.raises(core_logic.BusinessRuleViolation):
        core_logic.add_size(context, size_code="M", size_name="Medium", category="Clothing")


def test_add_size_writes_and_invalidates_cache(context, master_data, monkeypatch):
    iter_sizes, _ = master_data
    writer = Mock()
    monkeypatch.setattr(data_manager, "add_size", writer)

    core_logic.list_sizes(context)
    record = core_logic.add_size(context, size_code="M", size_name="Medium", category="Shoes")
    core_logic.list_sizes(context)

    writer.assert_called_once_with(context.workbook, record)
    assert iter_sizes.call_count == 2


def test_add_color_rejects_duplicate_code(context, master_data):
    with pytest.raises(core_logic.BusinessRuleViolation):
        core_logic.add_color(context, color_code="BLK", color_name="Black")


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def test_get_product_uses_cache(context, product, monkeypatch):
    iter_products = Mock(side_effect=lambda _: iter([product]))
    monkeypatch.setattr(data_manager, "iter_products", iter_products)

    assert core_logic.get_product(context, "P1") is product
    assert core_logic.list_products(context) == [product]
    assert iter_products.call_count == 1


def test_get_product_unknown_id(context, monkeypatch):
    monkeypatch.setattr(data_manager, "iter_products", lambda _: iter([]))
    with pytest.raises(core_logic.MissingReferenceError):
        core_logic.get_product(context, "missing")


def test_new_product_draft_defaults_size_category(context):
    draft = core_logic.new_product_draft(context, product_name="Linen Shirt", sales_price=Decimal("25.00"))
    assert draft.product.size_category == context.settings.default_size_category
    assert draft.product.product_id
    assert draft.variants == []
    assert draft.barcode_errors == {}


def test_new_product_draft_falls_back_when_config_category_blank(context):
    blank = replace(context, settings=replace(context.settings, default_size_category=""))
    draft = core_logic.new_product_draft(blank, product_name="Linen Shirt")
    assert draft.product.size_category == constants.DEFAULT_SIZE_CATEGORY


def test_load_product_draft_reads_variants_in_order(context, product, monkeypatch):
    variants = [make_variant("a", "1"), make_variant("b", "2")]
    monkeypatch.setattr(data_manager, "iter_products", lambda _: iter([product]))
    monkeypatch.setattr(data_manager, "iter_variants", lambda _, product_id: iter(variants))

    draft = core_logic.load_product_draft(context, "P1")
    assert draft.product is product
    assert [variant.variant_id for variant in draft.variants] == ["a", "b"]


def test_delete_product_invalidates_cache(context, product, monkeypatch):
    monkeypatch.setattr(data_manager, "iter_products", lambda _: iter([product]))
    remover = Mock()
    monkeypatch.setattr(data_manager, "delete_product", remover)

    core_logic.delete_product(context, "P1")

    remover.assert_called_once_with(context.workbook, "P1")
    assert "products" not in context._cache


# ---------------------------------------------------------------------------
# Identifier allocation
# ---------------------------------------------------------------------------


def test_request_sku_disabled_returns_blank(context, allocator):
    result = core_logic.request_sku(context, data_manager.SkuConfiguration(prefix="SHIRT"))
    assert result == core_logic.Allocation()
    assert result.ok
    assert allocator.sku_calls == 0


def test_request_sku_returns_allocated_value(context):
    config = data_manager.SkuConfiguration(prefix="shirt", enable_auto_generation=True)
    assert core_logic.request_sku(context, config).value == "SHIRT00001"
    assert core_logic.request_sku(context, config).value == "SHIRT00002"


def test_request_sku_soft_fails_on_allocator_error(context, allocator):
    allocator.fail_sku_calls.add(1)
    result = core_logic.request_sku(context, data_manager.SkuConfiguration("SHIRT", True))
    assert not result.ok
    assert result.value == ""
    assert "unavailable" in result.error


def test_request_barcode_disabled_consumes_nothing(context, allocator, gs1_config):
    result = core_logic.request_barcode(context, replace(gs1_config, enable_auto_generation=False))
    assert result == core_logic.Allocation()
    assert allocator.barcode_calls == 0


def test_request_barcode_formats_allocated_sequence(context, gs1_config):
    result = core_logic.request_barcode(context, gs1_config)
    assert result.ok
    assert result.value == "1234567000019"
    assert gs1.validate_barcode(result.value)


def test_request_barcode_checks_configuration_before_allocating(context, allocator, gs1_config):
    """A missing prefix should raise without consuming a sequence number."""

    with pytest.raises(gs1.MissingConfigurationError):
        core_logic.request_barcode(context, replace(gs1_config, company_prefix=""))
    assert allocator.barcode_calls == 0


def test_request_barcode_rejects_non_numeric_prefix_before_allocating(context, allocator, gs1_config):
    with pytest.raises(gs1.InvalidInputError):
        core_logic.request_barcode(context, replace(gs1_config, company_prefix="12A4567"))
    assert allocator.barcode_calls == 0
    assert allocator.counter == 0


def test_request_barcode_soft_fails_on_allocator_error(context, allocator, gs1_config, caplog):
    caplog.set_level("WARNING")
    allocator.fail_barcode_calls.add(1)
    result = core_logic.request_barcode(context, gs1_config)
    assert result.value == ""
    assert not result.ok
    assert any("leaving barcode blank" in record.getMessage() for record in caplog.records)


# ---------------------------------------------------------------------------
# Variant workflows
# ---------------------------------------------------------------------------


def test_add_variant_uses_first_size_color_and_product_prices(context, draft, stored_settings, master_data):
    variant = core_logic.add_variant(context, draft)

    assert draft.variants == [variant]
    assert variant.product_id == "P1"
    assert variant.size == "S"
    assert variant.color == "BLK"
    assert variant.purchase_price == Decimal("10.00")
    assert variant.sales_price == Decimal("25.00")
    assert variant.stock == 0
    assert variant.sku == "SHIRT00001"
    assert variant.barcode == "1234567000019"


def test_add_variant_without_master_data_leaves_fields_blank(context, draft, stored_settings, monkeypatch):
    monkeypatch.setattr(data_manager, "iter_sizes", lambda _: iter([]))
    monkeypatch.setattr(data_manager, "iter_colors", lambda _: iter([]))
    variant = core_logic.add_variant(context, draft)
    assert variant.size == ""
    assert variant.color == ""


def test_add_all_size_variants_creates_one_per_size(context, draft, stored_settings, master_data):
    variants = core_logic.add_all_size_variants(context, draft)

    assert [variant.size for variant in variants] == ["S", "M", "L", "XL"]
    assert draft.variants == variants
    assert {variant.color for variant in variants} == {"BLK"}
    assert [variant.sku for variant in variants] == [f"SHIRT0000{i}" for i in range(1, 5)]
    assert len({variant.barcode for variant in variants}) == 4
    assert all(gs1.validate_barcode(variant.barcode) for variant in variants)
    assert core_logic.find_duplicates(variants) == {}


def test_add_all_size_variants_blanks_only_the_failed_barcode(
    context, draft, allocator, stored_settings, master_data
):
    """One allocator failure out of N leaves N variants with one blank barcode."""

    allocator.fail_barcode_calls.add(3)

    variants = core_logic.add_all_size_variants(context, draft)

    assert len(variants) == 4
    blanks = [variant for variant in variants if variant.barcode == ""]
    assert [variant.size for variant in blanks] == ["L"]
    assert all(variant.sku for variant in variants)
    assert all(gs1.validate_barcode(variant.barcode) for variant in variants if variant.barcode)


def test_add_all_size_variants_aborts_on_missing_configuration(context, draft, allocator, stored_settings, master_data):
    """A configuration error aborts the batch and leaves the draft untouched."""

    existing = make_variant("existing", "999")
    draft.variants.append(existing)
    stored_settings["gs1"] = replace(stored_settings["gs1"], company_prefix="")

    with pytest.raises(gs1.MissingConfigurationError):
        core_logic.add_all_size_variants(context, draft)

    assert draft.variants == [existing]
    assert allocator.barcode_calls == 0


def test_add_all_size_variants_with_unknown_category(context, stored_settings, master_data, product):
    draft = core_logic.ProductDraft(product=replace(product, size_category="Hats"))
    assert core_logic.add_all_size_variants(context, draft) == []
    assert draft.variants == []


def test_add_all_size_variants_with_generation_disabled(context, draft, allocator, stored_settings, master_data):
    stored_settings["gs1"] = replace(stored_settings["gs1"], enable_auto_generation=False)
    stored_settings["sku"] = data_manager.SkuConfiguration()

    variants = core_logic.add_all_size_variants(context, draft)

    assert len(variants) == 4
    assert all(variant.barcode == "" and variant.sku == "" for variant in variants)
    assert allocator.barcode_calls == 0
    assert allocator.sku_calls == 0


# ---------------------------------------------------------------------------
# Uniqueness guard
# ---------------------------------------------------------------------------


def test_find_duplicates_reports_every_holder_and_ignores_blanks():
    variants = [
        make_variant("a", "123"),
        make_variant("b", "123"),
        make_variant("c", ""),
        make_variant("d", "456"),
        make_variant("e", ""),
    ]
    assert core_logic.find_duplicates(variants) == {"a": "123", "b": "123"}


def test_find_duplicates_empty_and_unique_sets():
    assert core_logic.find_duplicates([]) == {}
    assert core_logic.find_duplicates([make_variant("a", "1"), make_variant("b", "2")]) == {}


def test_find_duplicates_trims_whitespace():
    variants = [make_variant("a", "123"), make_variant("b", " 123 "), make_variant("c", "   ")]
    assert core_logic.find_duplicates(variants) == {"a": "123", "b": "123"}


def test_check_barcode_edit_ignores_own_and_blank_values():
    variants = [make_variant("a", "123"), make_variant("b", "456")]
    assert core_logic.check_barcode_edit(variants, "a", "123") is None
    assert core_logic.check_barcode_edit(variants, "b", "  ") is None
    assert core_logic.check_barcode_edit(variants, "b", " 123") == 'Barcode "123" is already used by another variant'


# ---------------------------------------------------------------------------
# Draft edits
# ---------------------------------------------------------------------------


def test_update_variant_rejects_duplicate_barcode(product):
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a", "123"), make_variant("b", "456")])

    applied = core_logic.update_variant(draft, "b", "barcode", "123")

    assert applied is False
    assert draft.variants[1].barcode == "456"
    assert draft.barcode_errors == {"b": 'Barcode "123" is already used by another variant'}


def test_update_variant_clears_previous_barcode_error(product):
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a", "123"), make_variant("b", "456")])
    core_logic.update_variant(draft, "b", "barcode", "123")

    assert core_logic.update_variant(draft, "b", "barcode", "789") is True
    assert draft.variants[1].barcode == "789"
    assert draft.barcode_errors == {}


def test_update_variant_stores_trimmed_barcode(product):
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a", "123"), make_variant("b")])

    assert core_logic.update_variant(draft, "b", "barcode", " 789 ") is True
    assert draft.variants[1].barcode == "789"

    assert core_logic.update_variant(draft, "b", "barcode", "   ") is True
    assert draft.variants[1].barcode == ""


def test_update_variant_trims_before_duplicate_check(product):
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a", "123"), make_variant("b", "456")])

    assert core_logic.update_variant(draft, "b", "barcode", " 123 ") is False
    assert draft.barcode_errors == {"b": 'Barcode "123" is already used by another variant'}


def test_serialize_variant_trims_barcode():
    assert data_manager.serialize_variant(make_variant("a", " 789 "))[3] == "789"
    assert data_manager.serialize_variant(make_variant("a", "   "))[3] is None


def test_update_variant_applies_other_fields(product):
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a")])
    assert core_logic.update_variant(draft, "a", "stock", 5) is True
    assert core_logic.update_variant(draft, "a", "size", "L") is True
    assert draft.variants[0].stock == 5
    assert draft.variants[0].size == "L"


def test_update_variant_rejects_unknown_field_and_variant(product):
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a")])
    with pytest.raises(KeyError):
        core_logic.update_variant(draft, "a", "variant_id", "b")
    with pytest.raises(core_logic.MissingReferenceError):
        core_logic.update_variant(draft, "missing", "stock", 1)


def test_remove_variant_drops_its_error(product):
    draft = core_logic.ProductDraft(
        product=product,
        variants=[make_variant("a", "123"), make_variant("b", "456")],
        barcode_errors={"b": "Duplicate barcode: 123"},
    )
    core_logic.remove_variant(draft, "b")
    assert [variant.variant_id for variant in draft.variants] == ["a"]
    assert draft.barcode_errors == {}


def test_change_price_propagates_to_every_variant(product):
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a"), make_variant("b")])

    core_logic.change_price(draft, "sales_price", Decimal("30.00"))

    assert draft.product.sales_price == Decimal("30.00")
    assert [variant.sales_price for variant in draft.variants] == [Decimal("30.00")] * 2
    assert [variant.purchase_price for variant in draft.variants] == [Decimal("10.00")] * 2


def test_change_price_validation(product):
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a")])
    with pytest.raises(ValueError):
        core_logic.change_price(draft, "sales_price", Decimal("-1"))
    with pytest.raises(KeyError):
        core_logic.change_price(draft, "stock", Decimal("1"))
    assert draft.variants[0].sales_price == Decimal("25.00")


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------


def test_save_product_blocks_duplicates_and_reports_all(context, product, monkeypatch):
    """Every variant sharing a barcode is reported at once and nothing is written."""

    monkeypatch.setattr(data_manager, "upsert_product", Mock(side_effect=AssertionError("should not write")))
    draft = core_logic.ProductDraft(
        product=product,
        variants=[
            make_variant("a", "123"),
            make_variant("b", "123"),
            make_variant("c", "456"),
            make_variant("d", "456"),
            make_variant("e", ""),
        ],
    )

    outcome = core_logic.save_product(context, draft)

    assert outcome.saved is False
    assert outcome.message == "Please fix duplicate barcodes before saving"
    assert outcome.barcode_errors == {
        "a": "Duplicate barcode: 123",
        "b": "Duplicate barcode: 123",
        "c": "Duplicate barcode: 456",
        "d": "Duplicate barcode: 456",
    }
    assert draft.barcode_errors == outcome.barcode_errors


def test_save_product_writes_and_invalidates_cache(context, product, monkeypatch):
    upsert = Mock()
    monkeypatch.setattr(data_manager, "upsert_product", upsert)
    context._cache["products"] = {"all": []}
    draft = core_logic.ProductDraft(
        product=product,
        variants=[make_variant("a", "123"), make_variant("b", ""), make_variant("c", "")],
        barcode_errors={"b": "stale"},
    )

    outcome = core_logic.save_product(context, draft)

    assert outcome == core_logic.SaveOutcome(saved=True)
    upsert.assert_called_once_with(context.workbook, product, draft.variants)
    assert "products" not in context._cache
    assert draft.barcode_errors == {}


def test_save_product_propagates_storage_conflicts(context, product, monkeypatch):
    error = data_manager.BarcodeConflictError({"a": "123"})
    monkeypatch.setattr(data_manager, "upsert_product", Mock(side_effect=error))
    draft = core_logic.ProductDraft(product=product, variants=[make_variant("a", "123")])

    with pytest.raises(data_manager.BarcodeConflictError) as excinfo:
        core_logic.save_product(context, draft)
    assert excinfo.value.conflicts == {"a": "123"}


def test_variant_field_sets_are_consistent():
    assert core_logic.PRICE_FIELDS <= core_logic.VARIANT_FIELDS
    assert "variant_id" not in core_logic.VARIANT_FIELDS
    assert constants.BarcodeFormat("GTIN-13") is constants.BarcodeFormat.GTIN_13
