"""Business logic layer for the product catalog.

This module owns the identifier workflows around product variants: asking the
sequence allocator for fresh SKUs and barcode sequences, turning those into
GS1 barcodes, and keeping a product's variant set free of duplicate barcodes
before it reaches the Data Access Layer (DAL). It also manages the reference
lists products point at, suppliers, and purchase orders for variant SKUs.
All workbook I/O goes through :mod:`catalog_erp.data_manager`.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import date
from dataclasses import dataclass, field, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from openpyxl.workbook import Workbook

from . import configure_logging, data_manager, gs1, log
from .constants import (
    DEFAULT_SIZE_CATEGORY,
    EXPECTED_SCHEMA_VERSION,
    ORDER_NUMBER_PREFIX,
    SUPPLIER_NUMBER_PREFIX,
    BarcodeFormat,
    PurchaseOrderStatus,
    ReferenceKind,
)


class BusinessRuleViolation(Exception):
    """Raised when a requested operation violates a domain constraint."""


class MissingReferenceError(BusinessRuleViolation):
    """Raised when a referenced record (product, variant, supplier, ...) is unknown."""


class SequenceAllocator(Protocol):
    """Source of fresh sequence numbers, owned outside the business layer.

    Implementations perform the increment atomically on their side and raise
    :class:`~catalog_erp.data_manager.AllocatorFailure` when they cannot.
    """

    def next_barcode_sequence(self) -> int:
        ...

    def next_sku(self, prefix: str) -> str:
        ...


@dataclass(frozen=True)
class RuntimeContext:
    """Container for configuration, workbook, and allocator used by the BLL."""

    settings: data_manager.ConfigSettings
    workbook: Workbook
    allocator: SequenceAllocator
    _cache: Dict[str, Dict[str, Any]] = field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True)
class Allocation:
    """Outcome of one best-effort identifier request.

    A failed request carries the reason in ``error`` and an empty ``value``,
    which is exactly what the variant field should hold afterwards.
    """

    value: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ProductDraft:
    """A product being edited together with its ordered variants.

    ``barcode_errors`` maps variant ids to the field-level message shown next
    to the offending barcode.
    """

    product: data_manager.ProductRow
    variants: List[data_manager.VariantRow] = field(default_factory=list)
    barcode_errors: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SaveOutcome:
    """Result of :func:`save_product`."""

    saved: bool
    barcode_errors: Dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None


VARIANT_FIELDS = frozenset(
    {"sku", "barcode", "size", "color", "purchase_price", "sales_price", "stock"}
)
PRICE_FIELDS = frozenset({"purchase_price", "sales_price"})


def _get_cache_bucket(context: RuntimeContext, name: str) -> Dict[str, Any]:
    bucket = context._cache.get(name)
    if bucket is None:
        log.debug("Initializing cache bucket '%s'", name)
        bucket = {}
        context._cache[name] = bucket
    return bucket


def _invalidate_cache(context: RuntimeContext, *names: str) -> None:
    if not names:
        return

    log.debug("Invalidating cache buckets: %s", ", ".join(names))

    for name in names:
        context._cache.pop(name, None)


def _ensure_products_cache(context: RuntimeContext) -> Dict[str, Any]:
    """Populate the product cache bucket on demand.

    Returns:
        dict[str, Any]: Bucket containing ``all`` products and a ``by_id``
            lookup dictionary.
    """

    bucket = _get_cache_bucket(context, "products")
    if "all" not in bucket:
        all_products = list(data_manager.iter_products(context.workbook))
        bucket["all"] = all_products
        bucket["by_id"] = {product.product_id: product for product in all_products}
        log.debug("Populated products cache with %d entries", len(all_products))
    return bucket


def _ensure_master_data_cache(context: RuntimeContext) -> Dict[str, Any]:
    """Populate the sizes and colors bucket on demand.

    Sizes are also indexed by category because every variant workflow filters
    them by the product's size category.
    """

    bucket = _get_cache_bucket(context, "master_data")
    if "sizes" not in bucket:
        sizes = list(data_manager.iter_sizes(context.workbook))
        by_category: Dict[str, List[data_manager.SizeRow]] = defaultdict(list)
        for size in sizes:
            by_category[size.category].append(size)
        bucket["sizes"] = sizes
        bucket["sizes_by_category"] = dict(by_category)
        bucket["colors"] = list(data_manager.iter_colors(context.workbook))
        log.debug(
            "Populated master data cache with %d sizes and %d colors",
            len(sizes),
            len(bucket["colors"]),
        )
    return bucket


def load_runtime_context(
    config_path: Optional[Path] = None,
    *,
    allocator: Optional[SequenceAllocator] = None,
) -> RuntimeContext:
    """Load configuration settings and a live workbook for the BLL.

    Args:
        config_path (Path | None): Optional override path for the configuration
            file. When omitted the data layer searches upward from the current
            working directory.
        allocator (SequenceAllocator | None): Sequence source to inject. Defaults
            to a :class:`~catalog_erp.data_manager.WorkbookSequenceAllocator`
            over the loaded workbook.

    Returns:
        RuntimeContext: Fully populated context ready for orchestration
            functions.

    Raises:
        FileNotFoundError: If the configuration file or workbook cannot be
            located.
        KeyError: When mandatory configuration options are missing.
        ValueError: If ``[Logging] Level`` is not a known level name.
    """
    located_config = data_manager.find_config_file(config_path)
    resolved_config = Path(located_config).expanduser().resolve()
    parser = data_manager.read_config(resolved_config)
    settings = data_manager.parse_settings(parser, base_path=resolved_config.parent)
    configure_logging(settings.log_level, settings.log_dir)
    workbook = data_manager.open_workbook(settings.data_file)
    if allocator is None:
        allocator = data_manager.WorkbookSequenceAllocator(workbook)
    log.info("Loaded runtime context for workbook '%s'", settings.data_file)
    return RuntimeContext(settings=settings, workbook=workbook, allocator=allocator)


def ensure_schema_version(context: RuntimeContext) -> None:
    """Validate workbook compatibility before mutating state.

    Raises:
        RuntimeError: If the schema version declared in the configuration does
            not match ``EXPECTED_SCHEMA_VERSION``.
    """
    if context.settings.schema_version != EXPECTED_SCHEMA_VERSION:
        log.error(
            "Workbook schema mismatch: expected %s, found %s",
            EXPECTED_SCHEMA_VERSION,
            context.settings.schema_version,
        )
        raise RuntimeError(
            "Workbook schema mismatch: expected %s, found %s"
            % (EXPECTED_SCHEMA_VERSION, context.settings.schema_version)
        )

    log.debug("Schema version '%s' validated", context.settings.schema_version)


def persist_context(context: RuntimeContext) -> None:
    """Persist any in-memory workbook changes to the configured data file."""
    data_manager.save_workbook(
        context.workbook,
        destination=context.settings.data_file,
    )
    log.info("Persisted workbook '%s'", context.settings.data_file)


def refresh_context(context: RuntimeContext) -> RuntimeContext:
    """Reload the workbook to discard unsaved modifications.

    The returned context gets a fresh cache. A workbook-backed allocator is
    rebuilt over the new workbook; any other injected allocator is kept.

    Raises:
        FileNotFoundError: If the backing workbook cannot be reloaded.
    """
    workbook = data_manager.refresh_workbook(context.settings.data_file)
    allocator = context.allocator
    if isinstance(allocator, data_manager.WorkbookSequenceAllocator):
        allocator = data_manager.WorkbookSequenceAllocator(workbook)
    log.info("Reloaded workbook '%s'", context.settings.data_file)
    return RuntimeContext(settings=context.settings, workbook=workbook, allocator=allocator)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def get_gs1_config(context: RuntimeContext) -> gs1.GS1Configuration:
    """Read the current GS1 settings from storage.

    Never cached: the allocator advances the stored counter between calls.
    """
    return data_manager.read_gs1_config(context.workbook)


def update_gs1_config(
    context: RuntimeContext,
    *,
    company_prefix: Optional[str] = None,
    location_reference: Optional[str] = None,
    barcode_format: Optional[str] = None,
    enable_auto_generation: Optional[bool] = None,
) -> gs1.GS1Configuration:
    """Apply user edits to the GS1 settings and store them.

    Only the supplied fields change. The sequence counter is re-read from
    storage and written back untouched, so edits never rewind or skip
    allocated sequence numbers.

    Raises:
        UnsupportedFormatError: If ``barcode_format`` is not a known format.
        InvalidInputError: If the company prefix or location reference holds
            anything but digits.
    """
    current = data_manager.read_gs1_config(context.workbook)
    changes: Dict[str, Any] = {}
    for name, raw in (("company_prefix", company_prefix), ("location_reference", location_reference)):
        if raw is None:
            continue
        value = raw.strip()
        if value and not (value.isascii() and value.isdigit()):
            log.error("Rejected GS1 settings update with non-numeric %s '%s'", name, value)
            raise gs1.InvalidInputError(f"{name.replace('_', ' ').capitalize()} must contain digits only: {value}")
        changes[name] = value
    if barcode_format is not None:
        try:
            changes["barcode_format"] = BarcodeFormat(barcode_format).value
        except ValueError as exc:
            log.error("Rejected GS1 settings update with format '%s'", barcode_format)
            raise gs1.UnsupportedFormatError(f"Unsupported barcode format: {barcode_format}") from exc
    if enable_auto_generation is not None:
        changes["enable_auto_generation"] = enable_auto_generation

    updated = replace(current, **changes)
    data_manager.write_gs1_config(context.workbook, updated)
    log.info("Updated GS1 settings: %s", ", ".join(sorted(changes)) or "no changes")
    return updated


def get_sku_config(context: RuntimeContext) -> data_manager.SkuConfiguration:
    """Read the current SKU settings from storage."""
    return data_manager.read_sku_config(context.workbook)


def update_sku_config(
    context: RuntimeContext,
    *,
    prefix: Optional[str] = None,
    enable_auto_generation: Optional[bool] = None,
) -> data_manager.SkuConfiguration:
    """Apply user edits to the SKU settings and store them."""
    current = data_manager.read_sku_config(context.workbook)
    changes: Dict[str, Any] = {}
    if prefix is not None:
        changes["prefix"] = prefix.strip()
    if enable_auto_generation is not None:
        changes["enable_auto_generation"] = enable_auto_generation
    updated = replace(current, **changes)
    data_manager.write_sku_config(context.workbook, updated)
    log.info("Updated SKU settings: %s", ", ".join(sorted(changes)) or "no changes")
    return updated


# ---------------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------------


def list_sizes(context: RuntimeContext, category: Optional[str] = None) -> List[data_manager.SizeRow]:
    """Return sizes in sheet order, optionally restricted to one category."""
    cache = _ensure_master_data_cache(context)
    if category is None:
        return list(cache["sizes"])
    return list(cache["sizes_by_category"].get(category, []))


def list_colors(context: RuntimeContext) -> List[data_manager.ColorRow]:
    """Return colors in sheet order; the first one is the default color."""
    return list(_ensure_master_data_cache(context)["colors"])


def add_size(context: RuntimeContext, *, size_code: str, size_name: str, category: str) -> data_manager.SizeRow:
    """Register a size under ``category``.

    Raises:
        BusinessRuleViolation: If the code already exists in that category.
    """
    if any(size.size_code == size_code for size in list_sizes(context, category)):
        log.warning("Size '%s' already exists in category '%s'", size_code, category)
        raise BusinessRuleViolation(f"Size '{size_code}' already exists in category '{category}'")
    record = data_manager.SizeRow(size_code=size_code, size_name=size_name, category=category)
    data_manager.add_size(context.workbook, record)
    _invalidate_cache(context, "master_data")
    log.info("Added size '%s' to category '%s'", size_code, category)
    return record


def add_color(context: RuntimeContext, *, color_code: str, color_name: str, hex_value: str = "") -> data_manager.ColorRow:
    """Register a color.

    Raises:
        BusinessRuleViolation: If the color code already exists.
    """
    if any(color.color_code == color_code for color in list_colors(context)):
        log.warning("Color '%s' already exists", color_code)
        raise BusinessRuleViolation(f"Color '{color_code}' already exists")
    record = data_manager.ColorRow(color_code=color_code, color_name=color_name, hex=hex_value)
    data_manager.add_color(context.workbook, record)
    _invalidate_cache(context, "master_data")
    log.info("Added color '%s'", color_code)
    return record


def list_references(context: RuntimeContext, kind: ReferenceKind | str) -> List[data_manager.ReferenceRow]:
    """Return one reference list (brands, collections, ...) in sheet order."""
    kind = ReferenceKind(kind)
    bucket = _get_cache_bucket(context, "references")
    if kind not in bucket:
        bucket[kind] = list(data_manager.iter_references(context.workbook, kind))
        log.debug("Populated %s references with %d entries", kind.value, len(bucket[kind]))
    return list(bucket[kind])


def add_reference(
    context: RuntimeContext, kind: ReferenceKind | str, *, code: str, name: str
) -> data_manager.ReferenceRow:
    """Register a brand, collection, category, or product type.

    Raises:
        BusinessRuleViolation: If the code is blank or already registered.
    """
    kind = ReferenceKind(kind)
    code = code.strip()
    if not code:
        log.error("Rejected %s without a code", kind.value)
        raise BusinessRuleViolation(f"A {kind.value.replace('_', ' ')} code is required")
    if any(entry.code == code for entry in list_references(context, kind)):
        log.warning("%s '%s' already exists", kind.value, code)
        raise BusinessRuleViolation(f"{kind.value.replace('_', ' ').capitalize()} '{code}' already exists")
    record = data_manager.ReferenceRow(code=code, name=name.strip())
    data_manager.add_reference(context.workbook, kind, record)
    _invalidate_cache(context, "references")
    log.info("Added %s '%s'", kind.value, code)
    return record


def _check_product_references(context: RuntimeContext, product: data_manager.ProductRow) -> None:
    """Ensure every non-blank code on ``product`` points at a stored entry.

    Raises:
        MissingReferenceError: Naming the first unknown code.
    """
    for kind, code in (
        (ReferenceKind.BRAND, product.brand),
        (ReferenceKind.COLLECTION, product.collection),
        (ReferenceKind.CATEGORY, product.category),
        (ReferenceKind.PRODUCT_TYPE, product.product_type),
    ):
        if code and all(entry.code != code for entry in list_references(context, kind)):
            log.warning("Product '%s' refers to unknown %s '%s'", product.product_id, kind.value, code)
            raise MissingReferenceError(f"Unknown {kind.value.replace('_', ' ')}: {code}")
    if product.supplier_id:
        get_supplier(context, product.supplier_id)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def list_products(context: RuntimeContext) -> List[data_manager.ProductRow]:
    """Return a copy of the cached product rows in sheet order."""
    return list(_ensure_products_cache(context)["all"])


def get_product(context: RuntimeContext, product_id: str) -> data_manager.ProductRow:
    """Resolve a product record by its identifier.

    Raises:
        MissingReferenceError: If ``product_id`` is absent from the workbook.
    """
    cache = _ensure_products_cache(context)
    try:
        return cache["by_id"][product_id]
    except KeyError as exc:
        log.warning("Product lookup failed for id '%s'", product_id)
        raise MissingReferenceError(f"Unknown product id: {product_id}") from exc


def new_product_draft(
    context: RuntimeContext,
    *,
    product_name: str,
    brand: str = "",
    size_category: Optional[str] = None,
    purchase_price: Decimal = Decimal("0.00"),
    sales_price: Decimal = Decimal("0.00"),
    product_id: Optional[str] = None,
    collection: str = "",
    category: str = "",
    product_type: str = "",
    supplier_id: str = "",
) -> ProductDraft:
    """Start a draft for a product that has not been saved yet.

    Raises:
        MissingReferenceError: If a brand, collection, category, product type,
            or supplier is given but not registered.
    """
    product = data_manager.ProductRow(
        product_id=product_id or str(uuid.uuid4()),
        product_name=product_name,
        brand=brand,
        size_category=size_category or context.settings.default_size_category or DEFAULT_SIZE_CATEGORY,
        purchase_price=purchase_price,
        sales_price=sales_price,
        collection=collection,
        category=category,
        product_type=product_type,
        supplier_id=supplier_id,
    )
    _check_product_references(context, product)
    return ProductDraft(product=product)


PRODUCT_DETAIL_FIELDS = frozenset(
    {"product_name", "brand", "collection", "category", "product_type", "supplier_id"}
)


def update_product_details(context: RuntimeContext, draft: ProductDraft, **changes: str) -> data_manager.ProductRow:
    """Change descriptive fields of the draft's product.

    Prices go through :func:`change_price`, which also updates the variants.

    Raises:
        KeyError: If a field is not one of ``PRODUCT_DETAIL_FIELDS``.
        MissingReferenceError: If a new code is not registered.
    """
    unknown = set(changes) - PRODUCT_DETAIL_FIELDS
    if unknown:
        raise KeyError(f"Unknown product field(s): {', '.join(sorted(unknown))}")
    updated = replace(draft.product, **changes)
    _check_product_references(context, updated)
    draft.product = updated
    return updated


def load_product_draft(context: RuntimeContext, product_id: str) -> ProductDraft:
    """Open a stored product and its variants for editing.

    Raises:
        MissingReferenceError: If ``product_id`` is unknown.
    """
    product = get_product(context, product_id)
    variants = list(data_manager.iter_variants(context.workbook, product_id))
    return ProductDraft(product=product, variants=variants)


def delete_product(context: RuntimeContext, product_id: str) -> None:
    """Delete a product and every variant it owns.

    Raises:
        MissingReferenceError: If ``product_id`` is unknown.
    """
    get_product(context, product_id)
    data_manager.delete_product(context.workbook, product_id)
    _invalidate_cache(context, "products")
    log.info("Deleted product '%s' and its variants", product_id)


# ---------------------------------------------------------------------------
# Identifier allocation
# ---------------------------------------------------------------------------


def request_sku(context: RuntimeContext, sku_config: data_manager.SkuConfiguration) -> Allocation:
    """Ask the allocator for the next SKU under the configured prefix.

    Returns an empty, successful allocation when SKU auto-generation is off.
    An allocator failure becomes a failed :class:`Allocation`; the variant
    keeps a blank SKU for manual entry.
    """
    if not sku_config.enable_auto_generation:
        return Allocation()
    try:
        return Allocation(value=context.allocator.next_sku(sku_config.prefix))
    except data_manager.AllocatorFailure as exc:
        log.warning("SKU allocation failed, leaving SKU blank: %s", exc)
        return Allocation(error=str(exc))


def request_barcode(context: RuntimeContext, gs1_config: gs1.GS1Configuration) -> Allocation:
    """Allocate a sequence number and format it as a barcode.

    Returns an empty, successful allocation when GS1 auto-generation is off.
    The configuration is checked before a sequence number is requested so a
    misconfigured format never consumes one.

    Raises:
        MissingConfigurationError: If a field required by the format is empty.
        UnsupportedFormatError: If the configured format is unknown.
        InvalidInputError: If the prefix or location reference is not numeric.
    """
    if not gs1_config.enable_auto_generation:
        return Allocation()
    gs1.build_payload(gs1_config)
    try:
        sequence = context.allocator.next_barcode_sequence()
    except data_manager.AllocatorFailure as exc:
        log.warning("Barcode sequence allocation failed, leaving barcode blank: %s", exc)
        return Allocation(error=str(exc))
    return Allocation(value=gs1.generate_barcode(replace(gs1_config, sequence_counter=sequence)))


def _build_variant(
    context: RuntimeContext,
    draft: ProductDraft,
    *,
    size: str,
    color: str,
    sku_config: data_manager.SkuConfiguration,
    gs1_config: gs1.GS1Configuration,
) -> data_manager.VariantRow:
    sku = request_sku(context, sku_config)
    barcode = request_barcode(context, gs1_config)
    return data_manager.VariantRow(
        variant_id=str(uuid.uuid4()),
        product_id=draft.product.product_id,
        sku=sku.value,
        barcode=barcode.value,
        size=size,
        color=color,
        purchase_price=draft.product.purchase_price,
        sales_price=draft.product.sales_price,
        stock=0,
    )


def add_variant(context: RuntimeContext, draft: ProductDraft) -> data_manager.VariantRow:
    """Append one variant with freshly allocated identifiers.

    The variant takes the first size of the product's size category, the first
    color, and the product's prices. A failed SKU or barcode request leaves
    that field blank instead of aborting.

    Raises:
        MissingConfigurationError: If barcode generation is enabled but the
            GS1 settings are incomplete.
        UnsupportedFormatError: If the configured format is unknown.
    """
    sizes = list_sizes(context, draft.product.size_category)
    colors = list_colors(context)
    variant = _build_variant(
        context,
        draft,
        size=sizes[0].size_code if sizes else "",
        color=colors[0].color_code if colors else "",
        sku_config=get_sku_config(context),
        gs1_config=get_gs1_config(context),
    )
    draft.variants.append(variant)
    log.info("Added variant '%s' to product '%s'", variant.variant_id, draft.product.product_id)
    return variant


def add_all_size_variants(context: RuntimeContext, draft: ProductDraft) -> List[data_manager.VariantRow]:
    """Append one variant per size of the product's size category.

    Each variant's identifiers are requested independently; an individual
    allocation failure only blanks that field on that variant. Any other error
    aborts the whole batch and the draft is left without new variants.

    Returns:
        list[data_manager.VariantRow]: The variants added, in size order.

    Raises:
        MissingConfigurationError: If barcode generation is enabled but the
            GS1 settings are incomplete.
        UnsupportedFormatError: If the configured format is unknown.
    """
    sizes = list_sizes(context, draft.product.size_category)
    colors = list_colors(context)
    default_color = colors[0].color_code if colors else ""
    sku_config = get_sku_config(context)
    gs1_config = get_gs1_config(context)

    try:
        new_variants = [
            _build_variant(
                context,
                draft,
                size=size.size_code,
                color=default_color,
                sku_config=sku_config,
                gs1_config=gs1_config,
            )
            for size in sizes
        ]
    except gs1.IdentifierError:
        log.error("Variant generation for product '%s' aborted", draft.product.product_id)
        raise

    draft.variants.extend(new_variants)
    log.info(
        "Added %d size variants to product '%s' (category '%s')",
        len(new_variants),
        draft.product.product_id,
        draft.product.size_category,
    )
    return new_variants


# ---------------------------------------------------------------------------
# Uniqueness guard and draft edits
# ---------------------------------------------------------------------------


def find_duplicates(variants: Sequence[data_manager.VariantRow]) -> Dict[str, str]:
    """Map every variant sharing a barcode with another variant to that barcode.

    Barcodes are compared after trimming; blank barcodes are never duplicates.
    All holders of a repeated barcode are reported, not just the later ones.
    """
    holders: Dict[str, List[str]] = defaultdict(list)
    for variant in variants:
        barcode = variant.barcode.strip()
        if barcode:
            holders[barcode].append(variant.variant_id)

    duplicates: Dict[str, str] = {}
    for barcode, variant_ids in holders.items():
        if len(variant_ids) > 1:
            for variant_id in variant_ids:
                duplicates[variant_id] = barcode
    return duplicates


def check_barcode_edit(
    variants: Sequence[data_manager.VariantRow], variant_id: str, barcode: str
) -> Optional[str]:
    """Return an error message if ``barcode`` is held by another variant."""
    candidate = barcode.strip()
    if not candidate:
        return None
    for variant in variants:
        if variant.variant_id != variant_id and variant.barcode.strip() == candidate:
            return f'Barcode "{candidate}" is already used by another variant'
    return None


def _variant_index(draft: ProductDraft, variant_id: str) -> int:
    for index, variant in enumerate(draft.variants):
        if variant.variant_id == variant_id:
            return index
    log.warning("Variant lookup failed for id '%s'", variant_id)
    raise MissingReferenceError(f"Unknown variant id: {variant_id}")


def update_variant(draft: ProductDraft, variant_id: str, field_name: str, value: Any) -> bool:
    """Edit one field of a draft variant.

    Barcodes are trimmed before they are checked or stored. Barcode edits
    first drop the variant's previous barcode error, then check the new
    value against the other variants. A duplicate is recorded in
    ``draft.barcode_errors`` and the variant keeps its old barcode.

    Returns:
        bool: ``True`` when the edit was applied.

    Raises:
        KeyError: If ``field_name`` is not an editable variant field.
        MissingReferenceError: If ``variant_id`` is not in the draft.
    """
    if field_name not in VARIANT_FIELDS:
        raise KeyError(f"Unknown variant field: {field_name}")
    index = _variant_index(draft, variant_id)

    if field_name == "barcode":
        value = str(value).strip()
        draft.barcode_errors.pop(variant_id, None)
        message = check_barcode_edit(draft.variants, variant_id, value)
        if message is not None:
            draft.barcode_errors[variant_id] = message
            log.warning("Rejected barcode edit on variant '%s': %s", variant_id, message)
            return False

    draft.variants[index] = replace(draft.variants[index], **{field_name: value})
    return True


def remove_variant(draft: ProductDraft, variant_id: str) -> None:
    """Drop a variant from the draft along with any error it carried."""
    index = _variant_index(draft, variant_id)
    del draft.variants[index]
    draft.barcode_errors.pop(variant_id, None)


def change_price(draft: ProductDraft, field_name: str, value: Decimal) -> None:
    """Set a product price and copy it onto every variant.

    Raises:
        KeyError: If ``field_name`` is not a price field.
        ValueError: If ``value`` is negative.
    """
    if field_name not in PRICE_FIELDS:
        raise KeyError(f"Unknown price field: {field_name}")
    if value < Decimal("0"):
        log.error("Price validation failed: %s", value)
        raise ValueError("Price must be zero or positive")
    draft.product = replace(draft.product, **{field_name: value})
    draft.variants = [replace(variant, **{field_name: value}) for variant in draft.variants]


def save_product(context: RuntimeContext, draft: ProductDraft) -> SaveOutcome:
    """Check the whole variant set for duplicate barcodes, then store it.

    Duplicates block the save and every offending variant is reported at once
    in both the outcome and ``draft.barcode_errors``. Otherwise the product and
    its variants are handed to the DAL as one upsert.

    Raises:
        BarcodeConflictError: If the storage layer finds a barcode already
            owned by another product.
    """
    draft.barcode_errors.clear()
    duplicates = find_duplicates(draft.variants)
    if duplicates:
        errors = {variant_id: f"Duplicate barcode: {barcode}" for variant_id, barcode in duplicates.items()}
        draft.barcode_errors.update(errors)
        log.warning(
            "Save of product '%s' blocked by %d duplicate barcode(s)",
            draft.product.product_id,
            len(errors),
        )
        return SaveOutcome(
            saved=False,
            barcode_errors=errors,
            message="Please fix duplicate barcodes before saving",
        )

    data_manager.upsert_product(context.workbook, draft.product, draft.variants)
    _invalidate_cache(context, "products")
    log.info(
        "Saved product '%s' with %d variant(s)",
        draft.product.product_id,
        len(draft.variants),
    )
    return SaveOutcome(saved=True)


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------


SUPPLIER_FIELDS = frozenset({"name", "email", "phone", "website", "notes"})


def _ensure_suppliers_cache(context: RuntimeContext) -> Dict[str, Any]:
    bucket = _get_cache_bucket(context, "suppliers")
    if "all" not in bucket:
        suppliers = list(data_manager.iter_suppliers(context.workbook))
        bucket["all"] = sorted(suppliers, key=lambda supplier: supplier.name.casefold())
        bucket["by_id"] = {supplier.supplier_id: supplier for supplier in suppliers}
        log.debug("Populated suppliers cache with %d entries", len(suppliers))
    return bucket


def list_suppliers(context: RuntimeContext) -> List[data_manager.SupplierRow]:
    """Return suppliers ordered by name."""
    return list(_ensure_suppliers_cache(context)["all"])


def get_supplier(context: RuntimeContext, supplier_id: str) -> data_manager.SupplierRow:
    """Resolve a supplier by id.

    Raises:
        MissingReferenceError: If ``supplier_id`` is unknown.
    """
    try:
        return _ensure_suppliers_cache(context)["by_id"][supplier_id]
    except KeyError as exc:
        log.warning("Supplier lookup failed for id '%s'", supplier_id)
        raise MissingReferenceError(f"Unknown supplier id: {supplier_id}") from exc


def add_supplier(
    context: RuntimeContext,
    *,
    name: str,
    email: str = "",
    phone: str = "",
    website: str = "",
    notes: str = "",
    supplier_id: Optional[str] = None,
) -> data_manager.SupplierRow:
    """Register a supplier and give it the next ``SUP-NNNNN`` number.

    Raises:
        BusinessRuleViolation: If ``name`` is blank.
    """
    if not name.strip():
        log.error("Rejected supplier without a name")
        raise BusinessRuleViolation("Supplier name is required")
    record = data_manager.SupplierRow(
        supplier_id=supplier_id or str(uuid.uuid4()),
        supplier_number=data_manager.next_document_number(
            context.workbook, data_manager.SUPPLIERS_SHEET, 2, SUPPLIER_NUMBER_PREFIX
        ),
        name=name.strip(),
        email=email.strip(),
        phone=phone.strip(),
        website=website.strip(),
        notes=notes,
    )
    data_manager.upsert_supplier(context.workbook, record)
    _invalidate_cache(context, "suppliers")
    log.info("Added supplier '%s' (%s)", record.name, record.supplier_number)
    return record


def update_supplier(context: RuntimeContext, supplier_id: str, **changes: str) -> data_manager.SupplierRow:
    """Change contact details of a stored supplier; its number never changes.

    Raises:
        KeyError: If a field is not one of ``SUPPLIER_FIELDS``.
        MissingReferenceError: If ``supplier_id`` is unknown.
        BusinessRuleViolation: If the name would become blank.
    """
    unknown = set(changes) - SUPPLIER_FIELDS
    if unknown:
        raise KeyError(f"Unknown supplier field(s): {', '.join(sorted(unknown))}")
    updated = replace(get_supplier(context, supplier_id), **changes)
    if not updated.name.strip():
        log.error("Rejected supplier update that blanks the name of '%s'", supplier_id)
        raise BusinessRuleViolation("Supplier name is required")
    data_manager.upsert_supplier(context.workbook, updated)
    _invalidate_cache(context, "suppliers")
    log.info("Updated supplier '%s': %s", supplier_id, ", ".join(sorted(changes)) or "no changes")
    return updated


def delete_supplier(context: RuntimeContext, supplier_id: str) -> None:
    """Delete a supplier that no product or purchase order refers to.

    Raises:
        MissingReferenceError: If ``supplier_id`` is unknown.
        BusinessRuleViolation: If the supplier is still referenced.
    """
    supplier = get_supplier(context, supplier_id)
    in_use = any(product.supplier_id == supplier_id for product in list_products(context)) or any(
        order.supplier_id == supplier_id for order in data_manager.iter_purchase_orders(context.workbook)
    )
    if in_use:
        log.warning("Refused to delete supplier '%s' while it is referenced", supplier_id)
        raise BusinessRuleViolation(f"Supplier {supplier.supplier_number} is still used by products or purchase orders")
    data_manager.delete_supplier(context.workbook, supplier_id)
    _invalidate_cache(context, "suppliers")
    log.info("Deleted supplier '%s'", supplier_id)


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------


ORDER_STATUS_TRANSITIONS: Dict[PurchaseOrderStatus, frozenset] = {
    PurchaseOrderStatus.DRAFT: frozenset({PurchaseOrderStatus.SUBMITTED, PurchaseOrderStatus.CANCELLED}),
    PurchaseOrderStatus.SUBMITTED: frozenset({PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED}),
    PurchaseOrderStatus.RECEIVED: frozenset(),
    PurchaseOrderStatus.CANCELLED: frozenset(),
}
DELETABLE_ORDER_STATUSES = frozenset({PurchaseOrderStatus.DRAFT, PurchaseOrderStatus.CANCELLED})


@dataclass
class PurchaseOrderDraft:
    """A purchase order header with its ordered lines, one per SKU."""

    order: data_manager.PurchaseOrderRow
    lines: List[data_manager.PurchaseOrderLine] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((line.unit_price * line.quantity for line in self.lines), Decimal("0.00"))


def _order_label(order: data_manager.PurchaseOrderRow) -> str:
    return order.order_number or order.order_id


def _require_editable(order: data_manager.PurchaseOrderRow) -> None:
    if order.status != PurchaseOrderStatus.DRAFT.value:
        log.warning("Refused to edit purchase order '%s' in status '%s'", _order_label(order), order.status)
        raise BusinessRuleViolation(
            f"Purchase order {_order_label(order)} is {order.status} and can no longer be edited"
        )


def new_purchase_order(
    context: RuntimeContext,
    *,
    supplier_id: str,
    order_date: Optional[date] = None,
    expected_delivery: Optional[date] = None,
    notes: str = "",
    order_id: Optional[str] = None,
) -> PurchaseOrderDraft:
    """Start a draft order for ``supplier_id``, dated today unless told otherwise.

    The order number is assigned on the first save.

    Raises:
        MissingReferenceError: If the supplier is unknown.
    """
    get_supplier(context, supplier_id)
    order = data_manager.PurchaseOrderRow(
        order_id=order_id or str(uuid.uuid4()),
        order_number="",
        supplier_id=supplier_id,
        status=PurchaseOrderStatus.DRAFT.value,
        order_date=(order_date or date.today()).isoformat(),
        expected_delivery=expected_delivery.isoformat() if expected_delivery else "",
        notes=notes,
    )
    return PurchaseOrderDraft(order=order)


def list_purchase_orders(
    context: RuntimeContext, status: Optional[PurchaseOrderStatus | str] = None
) -> List[data_manager.PurchaseOrderRow]:
    """Return order headers, newest order date first, optionally by status."""
    orders = list(data_manager.iter_purchase_orders(context.workbook))
    if status is not None:
        wanted = PurchaseOrderStatus(status).value
        orders = [order for order in orders if order.status == wanted]
    return sorted(orders, key=lambda order: order.order_date, reverse=True)


def load_purchase_order(context: RuntimeContext, order_id: str) -> PurchaseOrderDraft:
    """Open a stored order with its lines.

    Raises:
        MissingReferenceError: If ``order_id`` is unknown.
    """
    for order in data_manager.iter_purchase_orders(context.workbook):
        if order.order_id == order_id:
            lines = list(data_manager.iter_order_lines(context.workbook, order_id))
            return PurchaseOrderDraft(order=order, lines=lines)
    log.warning("Purchase order lookup failed for id '%s'", order_id)
    raise MissingReferenceError(f"Unknown purchase order id: {order_id}")


def _find_variant_by_sku(context: RuntimeContext, sku: str) -> data_manager.VariantRow:
    for variant in data_manager.iter_variants(context.workbook):
        if variant.sku and variant.sku == sku:
            return variant
    log.warning("Variant lookup failed for SKU '%s'", sku)
    raise MissingReferenceError(f"Unknown SKU: {sku}")


def add_order_line(
    context: RuntimeContext,
    draft: PurchaseOrderDraft,
    sku: str,
    quantity: int = 1,
    unit_price: Optional[Decimal] = None,
) -> data_manager.PurchaseOrderLine:
    """Order ``quantity`` units of the variant with ``sku``.

    The unit price defaults to the variant's purchase price. Ordering a SKU
    already on the order adds to its quantity; a supplied price replaces the
    line's price. A variant whose product names a different supplier cannot
    be ordered.

    Raises:
        BusinessRuleViolation: If the order is not a draft or the product
            belongs to another supplier.
        MissingReferenceError: If no variant carries ``sku``.
        ValueError: If ``quantity`` is below one or ``unit_price`` is negative.
    """
    _require_editable(draft.order)
    if quantity < 1:
        log.error("Order line quantity validation failed: %s", quantity)
        raise ValueError("Quantity must be at least 1")
    if unit_price is not None and unit_price < Decimal("0"):
        log.error("Order line price validation failed: %s", unit_price)
        raise ValueError("Price must be zero or positive")

    sku = sku.strip()
    variant = _find_variant_by_sku(context, sku)
    product = get_product(context, variant.product_id)
    if product.supplier_id and product.supplier_id != draft.order.supplier_id:
        log.warning("SKU '%s' belongs to supplier '%s', not to the order's", sku, product.supplier_id)
        raise BusinessRuleViolation(f"SKU {sku} is not supplied by the order's supplier")

    for index, line in enumerate(draft.lines):
        if line.sku == sku:
            merged = replace(
                line,
                quantity=line.quantity + quantity,
                unit_price=unit_price if unit_price is not None else line.unit_price,
            )
            draft.lines[index] = merged
            return merged

    line = data_manager.PurchaseOrderLine(
        order_id=draft.order.order_id,
        sku=sku,
        quantity=quantity,
        unit_price=unit_price if unit_price is not None else variant.purchase_price,
    )
    draft.lines.append(line)
    return line


def remove_order_line(draft: PurchaseOrderDraft, sku: str) -> None:
    """Drop the line for ``sku`` from a draft order.

    Raises:
        BusinessRuleViolation: If the order is not a draft.
        MissingReferenceError: If the order has no line for ``sku``.
    """
    _require_editable(draft.order)
    remaining = [line for line in draft.lines if line.sku != sku]
    if len(remaining) == len(draft.lines):
        raise MissingReferenceError(f"SKU {sku} is not on the order")
    draft.lines = remaining


def save_purchase_order(context: RuntimeContext, draft: PurchaseOrderDraft) -> data_manager.PurchaseOrderRow:
    """Store a draft order and its lines, numbering it on first save.

    Raises:
        BusinessRuleViolation: If the order is not a draft or has no lines.
        MissingReferenceError: If the supplier no longer exists.
    """
    _require_editable(draft.order)
    get_supplier(context, draft.order.supplier_id)
    if not draft.lines:
        log.warning("Save of purchase order '%s' blocked: no lines", draft.order.order_id)
        raise BusinessRuleViolation("Please add at least one item to the order")

    if not draft.order.order_number:
        number = data_manager.next_document_number(
            context.workbook, data_manager.PURCHASE_ORDERS_SHEET, 2, ORDER_NUMBER_PREFIX
        )
        draft.order = replace(draft.order, order_number=number)
    data_manager.upsert_purchase_order(context.workbook, draft.order, draft.lines)
    log.info(
        "Saved purchase order %s with %d line(s), total %s",
        draft.order.order_number,
        len(draft.lines),
        draft.total,
    )
    return draft.order


def change_order_status(
    context: RuntimeContext, order_id: str, status: PurchaseOrderStatus | str
) -> data_manager.PurchaseOrderRow:
    """Move a stored order along its lifecycle.

    Drafts can be submitted or cancelled, submitted orders received or
    cancelled; received and cancelled orders are final.

    Raises:
        MissingReferenceError: If ``order_id`` is unknown.
        BusinessRuleViolation: If the status is unknown or the move is not
            allowed from the current status.
    """
    draft = load_purchase_order(context, order_id)
    try:
        target = PurchaseOrderStatus(status)
    except ValueError as exc:
        log.error("Rejected unknown purchase order status '%s'", status)
        raise BusinessRuleViolation(f"Unknown purchase order status: {status}") from exc
    current = PurchaseOrderStatus(draft.order.status)
    if target not in ORDER_STATUS_TRANSITIONS[current]:
        log.warning(
            "Refused purchase order %s move from %s to %s", _order_label(draft.order), current.value, target.value
        )
        raise BusinessRuleViolation(
            f"Purchase order {_order_label(draft.order)} cannot go from {current.value} to {target.value}"
        )
    if target is PurchaseOrderStatus.SUBMITTED and not draft.lines:
        raise BusinessRuleViolation("Please add at least one item to the order")

    updated = replace(draft.order, status=target.value)
    data_manager.upsert_purchase_order(context.workbook, updated, draft.lines)
    log.info("Purchase order %s is now %s", _order_label(updated), target.value)
    return updated


def submit_purchase_order(context: RuntimeContext, order_id: str) -> data_manager.PurchaseOrderRow:
    """Mark a draft order as submitted; it can no longer be edited."""
    return change_order_status(context, order_id, PurchaseOrderStatus.SUBMITTED)


def delete_purchase_order(context: RuntimeContext, order_id: str) -> None:
    """Delete a draft or cancelled order with its lines.

    Raises:
        MissingReferenceError: If ``order_id`` is unknown.
        BusinessRuleViolation: If the order was submitted or received.
    """
    order = load_purchase_order(context, order_id).order
    if PurchaseOrderStatus(order.status) not in DELETABLE_ORDER_STATUSES:
        log.warning("Refused to delete purchase order %s in status %s", _order_label(order), order.status)
        raise BusinessRuleViolation(f"Purchase order {_order_label(order)} is {order.status} and cannot be deleted")
    data_manager.delete_purchase_order(context.workbook, order_id)
    log.info("Deleted purchase order %s", _order_label(order))
