"""Enumerations and fixed widths shared across the catalog modules.

The identifier engine, the workbook data layer, and the CLI all read from
this module so that barcode formats and sheet names have a single source of
truth.
"""

from __future__ import annotations

from enum import Enum


# Central schema version expected by all layers when validating workbooks.
EXPECTED_SCHEMA_VERSION = "2.1.0"


class BarcodeFormat(str, Enum):
    """Enumerate the GS1 identifier layouts the generator can produce."""

    GTIN_13 = "GTIN-13"
    GTIN_14 = "GTIN-14"
    SSCC = "SSCC"


class SheetName(str, Enum):
    """Enumerate the workbook sheet names managed by the DAL."""

    PRODUCTS = "Products"
    VARIANTS = "Variants"
    SIZES = "Sizes"
    COLORS = "Colors"
    GS1_CONFIG = "GS1Config"
    SKU_CONFIG = "SkuConfig"
    SKU_SEQUENCES = "SkuSequences"
    BRANDS = "Brands"
    COLLECTIONS = "Collections"
    CATEGORIES = "Categories"
    PRODUCT_TYPES = "ProductTypes"
    SUPPLIERS = "Suppliers"
    PURCHASE_ORDERS = "PurchaseOrders"
    PURCHASE_ORDER_LINES = "PurchaseOrderLines"


class ReferenceKind(str, Enum):
    """Enumerate the code lists a product can point at."""

    BRAND = "brand"
    COLLECTION = "collection"
    CATEGORY = "category"
    PRODUCT_TYPE = "product_type"


class PurchaseOrderStatus(str, Enum):
    """Lifecycle states of a purchase order."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    RECEIVED = "received"
    CANCELLED = "cancelled"


REFERENCE_SHEETS = {
    ReferenceKind.BRAND: SheetName.BRANDS,
    ReferenceKind.COLLECTION: SheetName.COLLECTIONS,
    ReferenceKind.CATEGORY: SheetName.CATEGORIES,
    ReferenceKind.PRODUCT_TYPE: SheetName.PRODUCT_TYPES,
}


# Zero-padded field widths used when laying out GS1 payloads.
COMPANY_PREFIX_WIDTH = 7
LOCATION_REFERENCE_WIDTH = 2
SEQUENCE_WIDTH = 5

# Fixed leading digits for the formats that carry one.
GTIN_14_INDICATOR = "1"
SSCC_EXTENSION = "0"

# Total digits (check digit included) produced for each format.
BARCODE_LENGTHS = {
    BarcodeFormat.GTIN_13: 13,
    BarcodeFormat.GTIN_14: 14,
    BarcodeFormat.SSCC: 16,
}

SKU_SEQUENCE_WIDTH = 5
DEFAULT_SIZE_CATEGORY = "Clothing"

# Human-facing document numbers, e.g. SUP-00001 and PO-00001.
SUPPLIER_NUMBER_PREFIX = "SUP"
ORDER_NUMBER_PREFIX = "PO"
DOCUMENT_NUMBER_WIDTH = 5


__all__ = [
    "EXPECTED_SCHEMA_VERSION",
    "BarcodeFormat",
    "SheetName",
    "COMPANY_PREFIX_WIDTH",
    "LOCATION_REFERENCE_WIDTH",
    "SEQUENCE_WIDTH",
    "GTIN_14_INDICATOR",
    "SSCC_EXTENSION",
    "BARCODE_LENGTHS",
    "SKU_SEQUENCE_WIDTH",
    "DEFAULT_SIZE_CATEGORY",
    "ReferenceKind",
    "PurchaseOrderStatus",
    "REFERENCE_SHEETS",
    "SUPPLIER_NUMBER_PREFIX",
    "ORDER_NUMBER_PREFIX",
    "DOCUMENT_NUMBER_WIDTH",
]
