"""Data access layer for the catalog workbook.

This module provides low-level helpers that read from and write to the
master workbook. Business logic belongs elsewhere.

The public API is designed around four responsibilities:

1. Configuration handling: finding and parsing ``config.ini``.
2. Workbook lifecycle: opening, validating, and persisting the Excel file.
3. Sheet operations: loading structured records and appending, upserting, or
   deleting rows for products, variants, master data, suppliers, and purchase
   orders.
4. Identifier state: the GS1 and SKU settings rows and the sequence counters
   handed out by :class:`WorkbookSequenceAllocator`.
"""


from __future__ import annotations

import configparser
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence

from openpyxl.workbook import Workbook
import openpyxl

from . import log
from .constants import (
    DOCUMENT_NUMBER_WIDTH,
    REFERENCE_SHEETS,
    SKU_SEQUENCE_WIDTH,
    ReferenceKind,
    SheetName,
)
from .gs1 import GS1Configuration


CONFIG_FILE_NAME = "config.ini"
PRODUCTS_SHEET = SheetName.PRODUCTS.value
VARIANTS_SHEET = SheetName.VARIANTS.value
SIZES_SHEET = SheetName.SIZES.value
COLORS_SHEET = SheetName.COLORS.value
GS1_CONFIG_SHEET = SheetName.GS1_CONFIG.value
SKU_CONFIG_SHEET = SheetName.SKU_CONFIG.value
SKU_SEQUENCES_SHEET = SheetName.SKU_SEQUENCES.value
SUPPLIERS_SHEET = SheetName.SUPPLIERS.value
PURCHASE_ORDERS_SHEET = SheetName.PURCHASE_ORDERS.value
PURCHASE_ORDER_LINES_SHEET = SheetName.PURCHASE_ORDER_LINES.value


class AllocatorFailure(Exception):
    """Raised when a sequence number or SKU could not be handed out."""


class BarcodeConflictError(ValueError):
    """Raised when a save would reuse a barcode owned by another product.

    ``conflicts`` maps each offending variant id to the barcode it carries.
    """

    def __init__(self, conflicts: Dict[str, str]) -> None:
        self.conflicts = dict(conflicts)
        listed = ", ".join(f"{variant_id}={barcode}" for variant_id, barcode in self.conflicts.items())
        super().__init__(f"Barcodes already used by other products: {listed}")


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    data_file: Path
    store_name: str
    schema_version: str
    default_size_category: str
    log_level: str = "INFO"
    log_dir: Optional[Path] = None


@dataclass(frozen=True)
class ProductRow:
    """In-memory view of a row from the ``Products`` sheet.

    ``brand``, ``collection``, ``category`` and ``product_type`` hold codes
    from the matching reference sheets; ``supplier_id`` points at the
    ``Suppliers`` sheet. Any of them may be blank.
    """

    product_id: str
    product_name: str
    brand: str
    size_category: str
    purchase_price: Decimal
    sales_price: Decimal
    collection: str = ""
    category: str = ""
    product_type: str = ""
    supplier_id: str = ""


@dataclass(frozen=True)
class VariantRow:
    """In-memory view of a row from the ``Variants`` sheet."""

    variant_id: str
    product_id: str
    sku: str
    barcode: str
    size: str
    color: str
    purchase_price: Decimal
    sales_price: Decimal
    stock: int


@dataclass(frozen=True)
class SizeRow:
    """In-memory view of a row from the ``Sizes`` sheet."""

    size_code: str
    size_name: str
    category: str


@dataclass(frozen=True)
class ColorRow:
    """In-memory view of a row from the ``Colors`` sheet."""

    color_code: str
    color_name: str
    hex: str


@dataclass(frozen=True)
class SkuConfiguration:
    """SKU settings stored on the ``SkuConfig`` sheet."""

    prefix: str = ""
    enable_auto_generation: bool = False


@dataclass(frozen=True)
class ReferenceRow:
    """One entry of a brand, collection, category, or product type list."""

    code: str
    name: str


@dataclass(frozen=True)
class SupplierRow:
    """In-memory view of a row from the ``Suppliers`` sheet."""

    supplier_id: str
    supplier_number: str
    name: str
    email: str = ""
    phone: str = ""
    website: str = ""
    notes: str = ""


@dataclass(frozen=True)
class PurchaseOrderRow:
    """Header row of a purchase order; dates are ISO ``YYYY-MM-DD`` strings."""

    order_id: str
    order_number: str
    supplier_id: str
    status: str
    order_date: str
    expected_delivery: str = ""
    notes: str = ""


@dataclass(frozen=True)
class PurchaseOrderLine:
    """One ordered variant, identified by its SKU."""

    order_id: str
    sku: str
    quantity: int
    unit_price: Decimal


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file that controls how the data layer behaves.

    If the caller provides ``explicit_path`` the value is returned immediately
    without any verification. Otherwise the function walks up from the current
    working directory toward the filesystem root looking for a file named
    ``CONFIG_FILE_NAME``; the first match is authoritative.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search.

    Returns:
        Path: The path provided by the caller or the discovered configuration
            file.

    Raises:
        FileNotFoundError: If no parent directory holds ``CONFIG_FILE_NAME``.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for p in (current, *current.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    raise FileNotFoundError(
        f"Configuration file not found: {CONFIG_FILE_NAME}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load ``config.ini`` and return a populated ``ConfigParser`` instance.

    Validation of required entries happens in :func:`parse_settings`.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist after expansion and
            resolution.
    """

    config_path = config_path.expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path)
    return parser


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into strongly typed :class:`ConfigSettings`.

    Relative ``DataFile`` entries are expanded against ``base_path`` when
    provided, or against the current working directory as a fallback.

    Args:
        parser (configparser.ConfigParser): Parsed configuration data.
        base_path (Path | None): Directory used as the anchor for relative
            ``DataFile`` entries.

    Returns:
        ConfigSettings: Immutable settings container with resolved data file
            path, store metadata, schema version, default size category, and
            the optional ``[Logging]`` level and directory.

    Raises:
        KeyError: If one of the required sections or options is missing.
    """

    try:
        data_file_raw = parser.get("System", "DataFile")
        store_name = parser.get("System", "StoreName")
        schema_version = parser.get("System", "SchemaVersion")
        default_size_category = parser.get("Defaults", "SizeCategory")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    if base_path is None:
        base_path = Path.cwd()

    data_file_path = Path(data_file_raw)
    if not data_file_path.is_absolute():
        data_file_path = (base_path / data_file_path).resolve()

    # [Logging] is optional; absent entries keep the package defaults.
    log_level = parser.get("Logging", "Level", fallback="INFO").strip().upper()
    log_dir_raw = parser.get("Logging", "Directory", fallback="").strip()
    log_dir: Optional[Path] = None
    if log_dir_raw:
        log_dir = Path(log_dir_raw).expanduser()
        if not log_dir.is_absolute():
            log_dir = (base_path / log_dir).resolve()

    return ConfigSettings(
        data_file=data_file_path,
        store_name=store_name,
        schema_version=schema_version,
        default_size_category=default_size_category,
        log_level=log_level,
        log_dir=log_dir,
    )


def open_workbook(data_file: Path) -> Workbook:
    """Open the master workbook and return a live ``openpyxl`` workbook.

    Raises:
        FileNotFoundError: If ``data_file`` does not exist after expansion and
            resolution.
    """

    data_file = Path(data_file).expanduser().resolve()
    if not data_file.exists():
        raise FileNotFoundError(f"Workbook not found: {data_file}")

    wb = openpyxl.load_workbook(data_file)
    return wb


def save_workbook(workbook: Workbook, destination: Path) -> None:
    """Persist the workbook to ``destination``, creating parent folders."""

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)


def refresh_workbook(data_file: Path) -> Workbook:
    """Reload the workbook from disk, discarding any unsaved in-memory changes."""

    return open_workbook(data_file)


def _iter_rows(workbook: Workbook, sheet_name: str) -> Iterable[Sequence[object]]:
    sheet = workbook[sheet_name]
    for raw in sheet.iter_rows(min_row=2, values_only=True):
        # skip fully empty rows
        if any(cell is not None for cell in raw):
            yield raw


def iter_products(workbook: Workbook) -> Iterable[ProductRow]:
    """Iterate over product records stored on the ``Products`` worksheet."""

    for raw in _iter_rows(workbook, PRODUCTS_SHEET):
        yield deserialize_product(raw)


def iter_variants(workbook: Workbook, product_id: Optional[str] = None) -> Iterable[VariantRow]:
    """Iterate over variant records, optionally restricted to one product.

    Rows come back in sheet order, which is the display order of a product's
    variants.
    """

    for raw in _iter_rows(workbook, VARIANTS_SHEET):
        variant = deserialize_variant(raw)
        if product_id is None or variant.product_id == product_id:
            yield variant


def iter_sizes(workbook: Workbook) -> Iterable[SizeRow]:
    """Iterate over the ``Sizes`` worksheet and yield typed records."""

    for raw in _iter_rows(workbook, SIZES_SHEET):
        yield SizeRow(size_code=_text(raw[0]), size_name=_text(raw[1]), category=_text(raw[2]))


def iter_colors(workbook: Workbook) -> Iterable[ColorRow]:
    """Iterate over the ``Colors`` worksheet and yield typed records."""

    for raw in _iter_rows(workbook, COLORS_SHEET):
        yield ColorRow(color_code=_text(raw[0]), color_name=_text(raw[1]), hex=_text(raw[2]))


def add_size(workbook: Workbook, record: SizeRow) -> None:
    """Append a size to the ``Sizes`` worksheet."""

    workbook[SIZES_SHEET].append([record.size_code, record.size_name, record.category])


def add_color(workbook: Workbook, record: ColorRow) -> None:
    """Append a color to the ``Colors`` worksheet."""

    workbook[COLORS_SHEET].append([record.color_code, record.color_name, record.hex])


def upsert_product(workbook: Workbook, product: ProductRow, variants: Sequence[VariantRow]) -> None:
    """Write a product and replace its full variant set.

    Every non-empty barcode is first checked against the variants of other
    products; a single conflict rejects the whole save before any cell is
    written. The product row is updated in place when it already exists and
    appended otherwise. The product's previous variant rows are removed and
    ``variants`` appended in the given order.

    Args:
        workbook (Workbook): Workbook holding the products and variants sheets.
        product (ProductRow): Product header to store.
        variants (Sequence[VariantRow]): Complete, ordered variant set.

    Raises:
        BarcodeConflictError: If any barcode already belongs to a variant of a
            different product.
    """

    foreign_barcodes = {
        variant.barcode.strip(): variant.product_id
        for variant in iter_variants(workbook)
        if variant.product_id != product.product_id and variant.barcode.strip()
    }
    conflicts = {
        variant.variant_id: variant.barcode
        for variant in variants
        if variant.barcode.strip() and variant.barcode.strip() in foreign_barcodes
    }
    if conflicts:
        log.error("Rejected save of product '%s': %d barcode conflict(s)", product.product_id, len(conflicts))
        raise BarcodeConflictError(conflicts)

    _write_row(workbook, PRODUCTS_SHEET, "ProductID", product.product_id, serialize_product(product))

    _delete_owned_rows(workbook, VARIANTS_SHEET, 2, product.product_id)
    variant_sheet = workbook[VARIANTS_SHEET]
    for variant in variants:
        variant_sheet.append(serialize_variant(replace(variant, product_id=product.product_id)))


def delete_product(workbook: Workbook, product_id: str) -> None:
    """Remove a product row together with every variant it owns.

    Raises:
        KeyError: If the product cannot be found.
    """

    _delete_keyed_row(workbook, PRODUCTS_SHEET, "ProductID", product_id, "Product")
    _delete_owned_rows(workbook, VARIANTS_SHEET, 2, product_id)


def _write_row(workbook: Workbook, sheet_name: str, key_column: str, key_value: str, values: Sequence[object]) -> None:
    """Overwrite the row keyed by ``key_value`` in place, or append it."""

    row_index = locate_row(workbook, sheet_name, key_column, key_value)
    sheet = workbook[sheet_name]
    if row_index is None:
        sheet.append(list(values))
        return
    for column, value in enumerate(values, start=1):
        sheet.cell(row=row_index, column=column, value=value)


def _delete_keyed_row(workbook: Workbook, sheet_name: str, key_column: str, key_value: str, label: str) -> None:
    row_index = locate_row(workbook, sheet_name, key_column, key_value)
    if row_index is None:
        raise KeyError(f"{label} not found: {key_value}")
    workbook[sheet_name].delete_rows(row_index, 1)


def _delete_owned_rows(workbook: Workbook, sheet_name: str, owner_column: int, owner_id: str) -> None:
    """Delete every row whose ``owner_column`` (1-based) equals ``owner_id``."""

    sheet = workbook[sheet_name]
    owned = [
        row_idx
        for row_idx, row in enumerate(sheet.iter_rows(min_row=2, values_only=True), start=2)
        if row[owner_column - 1] is not None and str(row[owner_column - 1]) == owner_id
    ]
    # bottom-up so earlier indices stay valid
    for row_idx in reversed(owned):
        sheet.delete_rows(row_idx, 1)


# ---------------------------------------------------------------------------
# Reference lists, suppliers, and purchase orders
# ---------------------------------------------------------------------------


def _reference_sheet(kind: ReferenceKind | str) -> str:
    return REFERENCE_SHEETS[ReferenceKind(kind)].value


def iter_references(workbook: Workbook, kind: ReferenceKind | str) -> Iterable[ReferenceRow]:
    """Iterate over one reference list (brands, collections, ...) in sheet order.

    Raises:
        ValueError: If ``kind`` is not a known reference list.
    """

    for raw in _iter_rows(workbook, _reference_sheet(kind)):
        yield ReferenceRow(code=_text(raw[0]), name=_text(raw[1]))


def add_reference(workbook: Workbook, kind: ReferenceKind | str, record: ReferenceRow) -> None:
    """Append an entry to the reference list named by ``kind``."""

    workbook[_reference_sheet(kind)].append([record.code, record.name])


def iter_suppliers(workbook: Workbook) -> Iterable[SupplierRow]:
    """Iterate over the ``Suppliers`` worksheet and yield typed records."""

    for raw in _iter_rows(workbook, SUPPLIERS_SHEET):
        yield SupplierRow(*(_text(value) for value in _pad(raw, 7)))


def upsert_supplier(workbook: Workbook, record: SupplierRow) -> None:
    """Replace the supplier row with the same id, or append a new one."""

    _write_row(
        workbook,
        SUPPLIERS_SHEET,
        "SupplierID",
        record.supplier_id,
        [
            record.supplier_id,
            record.supplier_number,
            record.name,
            record.email,
            record.phone,
            record.website,
            record.notes,
        ],
    )


def delete_supplier(workbook: Workbook, supplier_id: str) -> None:
    """Remove a supplier row.

    Raises:
        KeyError: If the supplier cannot be found.
    """

    _delete_keyed_row(workbook, SUPPLIERS_SHEET, "SupplierID", supplier_id, "Supplier")


def iter_purchase_orders(workbook: Workbook) -> Iterable[PurchaseOrderRow]:
    """Iterate over purchase order headers in sheet order."""

    for raw in _iter_rows(workbook, PURCHASE_ORDERS_SHEET):
        yield PurchaseOrderRow(*(_text(value) for value in _pad(raw, 7)))


def iter_order_lines(workbook: Workbook, order_id: Optional[str] = None) -> Iterable[PurchaseOrderLine]:
    """Iterate over order lines, optionally restricted to one order."""

    for raw in _iter_rows(workbook, PURCHASE_ORDER_LINES_SHEET):
        line_order_id, sku, quantity_raw, price_raw = _pad(raw, 4)
        if order_id is not None and _text(line_order_id) != order_id:
            continue
        yield PurchaseOrderLine(
            order_id=_text(line_order_id),
            sku=_text(sku),
            quantity=int(quantity_raw) if quantity_raw is not None else 0,
            unit_price=_money(price_raw),
        )


def upsert_purchase_order(
    workbook: Workbook, order: PurchaseOrderRow, lines: Sequence[PurchaseOrderLine]
) -> None:
    """Write an order header and replace its full line set, in order."""

    _write_row(
        workbook,
        PURCHASE_ORDERS_SHEET,
        "OrderID",
        order.order_id,
        [
            order.order_id,
            order.order_number,
            order.supplier_id,
            order.status,
            order.order_date,
            order.expected_delivery,
            order.notes,
        ],
    )
    _delete_owned_rows(workbook, PURCHASE_ORDER_LINES_SHEET, 1, order.order_id)
    sheet = workbook[PURCHASE_ORDER_LINES_SHEET]
    for line in lines:
        sheet.append([order.order_id, line.sku, line.quantity, line.unit_price])


def delete_purchase_order(workbook: Workbook, order_id: str) -> None:
    """Remove an order header together with its lines.

    Raises:
        KeyError: If the order cannot be found.
    """

    _delete_keyed_row(workbook, PURCHASE_ORDERS_SHEET, "OrderID", order_id, "Purchase order")
    _delete_owned_rows(workbook, PURCHASE_ORDER_LINES_SHEET, 1, order_id)


def next_document_number(workbook: Workbook, sheet_name: str, column: int, prefix: str) -> str:
    """Return ``PREFIX-NNNNN`` one above the highest number stored in ``column``.

    Values in the column that do not follow the pattern are ignored.
    """

    marker = f"{prefix}-"
    highest = 0
    for raw in _iter_rows(workbook, sheet_name):
        value = _text(raw[column - 1])
        suffix = value[len(marker):]
        if value.startswith(marker) and suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{marker}{str(highest + 1).zfill(DOCUMENT_NUMBER_WIDTH)}"


def locate_row(workbook: Workbook, sheet_name: str, key_column: str, key_value: str) -> Optional[int]:
    """Find a row by matching a key value within the specified worksheet.

    Args:
        workbook (Workbook): Workbook providing access to ``sheet_name``.
        sheet_name (str): Name of the worksheet to search.
        key_column (str): Header title identifying the lookup column.
        key_value (str): Value to match within the key column.

    Returns:
        int | None: 1-based Excel row index when a match is found, otherwise
            ``None``.

    Raises:
        KeyError: If ``key_column`` is not present in the worksheet header.
    """

    sheet = workbook[sheet_name]
    header_map = _header_map(sheet)
    if key_column not in header_map:
        raise KeyError(f"Unknown column: {key_column}")

    key_col_index = header_map[key_column]

    for row_idx, row in enumerate(sheet.iter_rows(min_row=2, values_only=True), start=2):
        cell_value = row[key_col_index - 1]
        if cell_value is not None and str(cell_value) == key_value:
            return row_idx

    return None


def _header_map(sheet: Any) -> Dict[Any, int]:
    return {cell.value: idx + 1 for idx, cell in enumerate(sheet[1])}


def read_gs1_config(workbook: Workbook) -> GS1Configuration:
    """Return the stored GS1 settings, falling back to defaults when blank.

    The single settings row sits directly under the header of the
    ``GS1Config`` sheet.
    """

    sheet = workbook[GS1_CONFIG_SHEET]
    header_map = _header_map(sheet)

    def value(column: str) -> Any:
        return sheet.cell(row=2, column=header_map[column]).value

    defaults = GS1Configuration()
    counter_raw = value("SequenceCounter")
    format_raw = value("BarcodeFormat")
    return GS1Configuration(
        company_prefix=_text(value("CompanyPrefix")),
        location_reference=_text(value("LocationReference")),
        sequence_counter=int(counter_raw) if counter_raw is not None else defaults.sequence_counter,
        enable_auto_generation=bool(value("EnableAutoGeneration")),
        barcode_format=str(format_raw) if format_raw else defaults.barcode_format,
    )


def write_gs1_config(workbook: Workbook, config: GS1Configuration) -> None:
    """Overwrite the GS1 settings row with ``config``."""

    sheet = workbook[GS1_CONFIG_SHEET]
    header_map = _header_map(sheet)
    field_values = {
        "CompanyPrefix": config.company_prefix,
        "LocationReference": config.location_reference,
        "SequenceCounter": config.sequence_counter,
        "EnableAutoGeneration": config.enable_auto_generation,
        "BarcodeFormat": str(config.barcode_format),
    }
    for column, cell_value in field_values.items():
        sheet.cell(row=2, column=header_map[column], value=cell_value)


def read_sku_config(workbook: Workbook) -> SkuConfiguration:
    """Return the stored SKU settings, falling back to defaults when blank."""

    sheet = workbook[SKU_CONFIG_SHEET]
    header_map = _header_map(sheet)
    return SkuConfiguration(
        prefix=_text(sheet.cell(row=2, column=header_map["Prefix"]).value),
        enable_auto_generation=bool(sheet.cell(row=2, column=header_map["EnableAutoGeneration"]).value),
    )


def write_sku_config(workbook: Workbook, config: SkuConfiguration) -> None:
    """Overwrite the SKU settings row with ``config``."""

    sheet = workbook[SKU_CONFIG_SHEET]
    header_map = _header_map(sheet)
    sheet.cell(row=2, column=header_map["Prefix"], value=config.prefix)
    sheet.cell(row=2, column=header_map["EnableAutoGeneration"], value=config.enable_auto_generation)


class WorkbookSequenceAllocator:
    """Hand out barcode sequence numbers and SKUs from workbook counters.

    Each call performs its own read-modify-write and never caches a value, so
    two consecutive calls always observe distinct counters. Storage problems
    surface as :class:`AllocatorFailure`.
    """

    def __init__(self, workbook: Workbook) -> None:
        self.workbook = workbook

    def next_barcode_sequence(self) -> int:
        try:
            config = read_gs1_config(self.workbook)
            next_value = config.sequence_counter + 1
            write_gs1_config(self.workbook, replace(config, sequence_counter=next_value))
        except (KeyError, ValueError, TypeError) as exc:
            raise AllocatorFailure(f"Could not allocate barcode sequence: {exc}") from exc
        log.debug("Allocated barcode sequence %d", next_value)
        return next_value

    def next_sku(self, prefix: str) -> str:
        normalized = prefix.upper()
        try:
            sheet = self.workbook[SKU_SEQUENCES_SHEET]
            row_index = self._sequence_row(sheet, normalized)
            if row_index is None:
                sheet.append([normalized, 0])
                row_index = sheet.max_row
            counter_cell = sheet.cell(row=row_index, column=2)
            next_value = int(counter_cell.value or 0) + 1
            counter_cell.value = next_value
        except (KeyError, ValueError, TypeError) as exc:
            raise AllocatorFailure(f"Could not allocate SKU for prefix '{normalized}': {exc}") from exc
        sku = f"{normalized}{str(next_value).zfill(SKU_SEQUENCE_WIDTH)}"
        log.debug("Allocated SKU %s", sku)
        return sku

    @staticmethod
    def _sequence_row(sheet: Any, prefix: str) -> Optional[int]:
        # The empty prefix is saved as a blank cell and reads back as None.
        for row_idx, (cell_prefix, counter) in enumerate(
            sheet.iter_rows(min_row=2, max_col=2, values_only=True), start=2
        ):
            if cell_prefix is None and counter is None:
                continue
            if _text(cell_prefix) == prefix:
                return row_idx
        return None


def serialize_product(record: ProductRow) -> list[object]:
    """Convert a product dataclass into the worksheet column ordering."""

    return [
        record.product_id,
        record.product_name,
        record.brand,
        record.size_category,
        record.purchase_price,
        record.sales_price,
        record.collection,
        record.category,
        record.product_type,
        record.supplier_id,
    ]


def serialize_variant(record: VariantRow) -> list[object]:
    """Convert a variant dataclass into the worksheet column ordering.

    Empty barcodes are stored as blank cells so they never collide with one
    another at the storage layer.
    """

    return [
        record.variant_id,
        record.product_id,
        record.sku,
        record.barcode.strip() or None,
        record.size,
        record.color,
        record.purchase_price,
        record.sales_price,
        record.stock,
    ]


def deserialize_product(raw_row: Sequence[object]) -> ProductRow:
    """Convert a raw worksheet row into a strongly typed product record."""

    (
        product_id,
        product_name,
        brand,
        size_category,
        purchase_raw,
        sales_raw,
        collection,
        category,
        product_type,
        supplier_id,
    ) = _pad(raw_row, 10)
    return ProductRow(
        product_id=_text(product_id),
        product_name=_text(product_name),
        brand=_text(brand),
        size_category=_text(size_category),
        purchase_price=_money(purchase_raw),
        sales_price=_money(sales_raw),
        collection=_text(collection),
        category=_text(category),
        product_type=_text(product_type),
        supplier_id=_text(supplier_id),
    )


def deserialize_variant(raw_row: Sequence[object]) -> VariantRow:
    """Convert a raw worksheet row into a strongly typed variant record.

    Numeric columns become :class:`~decimal.Decimal` and ``int``; text columns
    default to empty strings so callers never see ``None`` for SKU or barcode.
    """

    (
        variant_id,
        product_id,
        sku,
        barcode,
        size,
        color,
        purchase_raw,
        sales_raw,
        stock_raw,
    ) = raw_row[:9]

    return VariantRow(
        variant_id=_text(variant_id),
        product_id=_text(product_id),
        sku=_text(sku),
        barcode=_text(barcode),
        size=_text(size),
        color=_text(color),
        purchase_price=_money(purchase_raw),
        sales_price=_money(sales_raw),
        stock=int(stock_raw) if stock_raw is not None else 0,
    )


def _text(raw: object) -> str:
    return str(raw) if raw is not None else ""


def _money(raw: object) -> Decimal:
    return Decimal(str(raw)) if raw is not None else Decimal("0.00")


def _pad(raw_row: Sequence[object], width: int) -> list[object]:
    values = list(raw_row[:width])
    return values + [None] * (width - len(values))
