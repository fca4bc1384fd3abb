"""Utility for initializing the catalog master workbook.

Run it as a script (``python setup_excel.py --config config.ini``) to create
the workbook named by ``[System] DataFile``, or import
:func:`create_master_workbook` to build one directly, as the test fixtures do.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Mapping, Sequence
import sys

import openpyxl
from openpyxl.styles import Font

from catalog_erp import data_manager
from catalog_erp.constants import BarcodeFormat, SheetName

SHEET_COLUMNS: Mapping[SheetName, Sequence[str]] = {
    SheetName.PRODUCTS: (
        "ProductID",
        "ProductName",
        "Brand",
        "SizeCategory",
        "PurchasePrice",
        "SalesPrice",
        "Collection",
        "Category",
        "ProductType",
        "SupplierID",
    ),
    SheetName.VARIANTS: (
        "VariantID",
        "ProductID",
        "SKU",
        "Barcode",
        "Size",
        "Color",
        "PurchasePrice",
        "SalesPrice",
        "Stock",
    ),
    SheetName.SIZES: ("SizeCode", "SizeName", "Category"),
    SheetName.COLORS: ("ColorCode", "ColorName", "Hex"),
    SheetName.GS1_CONFIG: (
        "CompanyPrefix",
        "LocationReference",
        "SequenceCounter",
        "EnableAutoGeneration",
        "BarcodeFormat",
    ),
    SheetName.SKU_CONFIG: ("Prefix", "EnableAutoGeneration"),
    SheetName.SKU_SEQUENCES: ("Prefix", "Counter"),
    SheetName.BRANDS: ("Code", "Name"),
    SheetName.COLLECTIONS: ("Code", "Name"),
    SheetName.CATEGORIES: ("Code", "Name"),
    SheetName.PRODUCT_TYPES: ("Code", "Name"),
    SheetName.SUPPLIERS: ("SupplierID", "SupplierNumber", "Name", "Email", "Phone", "Website", "Notes"),
    SheetName.PURCHASE_ORDERS: (
        "OrderID",
        "OrderNumber",
        "SupplierID",
        "Status",
        "OrderDate",
        "ExpectedDelivery",
        "Notes",
    ),
    SheetName.PURCHASE_ORDER_LINES: ("OrderID", "SKU", "Quantity", "UnitPrice"),
}

# Single settings row stored under the header of each config sheet.
DEFAULT_SETTINGS_ROWS: Mapping[SheetName, Sequence[object]] = {
    SheetName.GS1_CONFIG: ("", "", 0, False, BarcodeFormat.GTIN_13.value),
    SheetName.SKU_CONFIG: ("", False),
}


def create_master_workbook(
    destination: Path,
    *,
    sheet_columns: Mapping[SheetName, Sequence[str]] = SHEET_COLUMNS,
    settings_rows: Mapping[SheetName, Sequence[object]] = DEFAULT_SETTINGS_ROWS,
    overwrite: bool = False,
) -> Path:
    """Create the catalog master workbook at ``destination``.

    Every sheet gets a bold, frozen header row. Config sheets also receive
    their default settings row so the data layer can read them immediately.

    Raises:
        FileExistsError: If ``destination`` exists and ``overwrite`` is false.
    """

    destination = destination.expanduser().resolve()
    if destination.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite existing master workbook: {destination}")

    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)

    header_font = Font(bold=True)
    for sheet_name, columns in sheet_columns.items():
        worksheet = workbook.create_sheet(title=SheetName(sheet_name).value)
        worksheet.append(list(columns))
        for cell in worksheet[1]:
            cell.font = header_font
        worksheet.freeze_panes = "A2"

    for sheet_name, row in settings_rows.items():
        workbook[SheetName(sheet_name).value].append(list(row))

    data_manager.save_workbook(workbook, destination)
    return destination


def workbook_path_from_config(config_path: Path) -> Path:
    """Resolve ``[System] DataFile`` from ``config_path``.

    Raises:
        FileNotFoundError: If the config file is missing.
        KeyError: If a required config entry is missing.
    """

    parser = data_manager.read_config(config_path)
    settings = data_manager.parse_settings(parser, base_path=config_path.expanduser().resolve().parent)
    return settings.data_file


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize the catalog master workbook")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(data_manager.CONFIG_FILE_NAME),
        help="Path to configuration file (default: config.ini)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the target workbook if it already exists.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the setup script; returns a process exit code."""

    args = parse_args(argv)
    print(f"Using configuration: {args.config}")

    try:
        target = workbook_path_from_config(args.config)
        output_path = create_master_workbook(target, overwrite=args.force)
    except FileExistsError as exc:
        print(f"[ERROR] {exc}\nRun with --force to overwrite the existing file if appropriate.")
        return 1
    except (FileNotFoundError, KeyError, OSError) as exc:
        print(f"[ERROR] {exc}")
        return 1

    print(f"[SUCCESS] Created master workbook at '{output_path}'.")
    return 0


if __name__ == "__main__":  # pragma: no cover - exercised via manual runs
    sys.exit(main())
