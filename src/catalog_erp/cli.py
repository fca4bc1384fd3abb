"""Command-line entry points for the catalog toolkit.

All orchestration in this module is limited to argparse wiring and translating
command-line arguments into business layer calls. Keeping the CLI thin ensures
the same parser configuration can be reused by tests or scripts.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, MutableMapping, Optional, Sequence

from . import core_logic, data_manager, gs1, log
from .constants import BarcodeFormat, PurchaseOrderStatus, ReferenceKind


@dataclass(frozen=True)
class CommandSpec:
    """Describe how a CLI sub-command is configured and executed."""

    name: str
    help_text: str
    register: Callable[[argparse._SubParsersAction[argparse.ArgumentParser]], argparse.ArgumentParser]
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int]
    persists: bool = True


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="catalog-cli",
        description="Command-line tools for the product catalog workbook.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to config.ini (defaults to ./config.ini).",
    )
    return parser


def configure_subcommands(
    parser: argparse.ArgumentParser,
) -> Mapping[str, CommandSpec]:
    """Wire all CLI sub-commands onto the supplied parser."""
    subparsers = parser.add_subparsers(dest="command", required=True, title="commands")
    write_specs = register_write_commands(subparsers)
    read_specs = register_read_commands(subparsers)
    return build_command_table([*write_specs.values(), *read_specs.values()])


def register_write_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare mutating CLI commands: products, variants, settings, suppliers, orders."""
    specs = {
        "add-product": register_add_product_command(subparsers),
        "delete-product": register_delete_product_command(subparsers),
        "add-size": register_add_size_command(subparsers),
        "add-color": register_add_color_command(subparsers),
        "add-variant": register_add_variant_command(subparsers),
        "add-size-variants": register_add_size_variants_command(subparsers),
        "set-barcode": register_set_barcode_command(subparsers),
        "remove-variant": register_remove_variant_command(subparsers),
        "set-price": register_set_price_command(subparsers),
        "set-gs1": register_set_gs1_command(subparsers),
        "set-sku": register_set_sku_command(subparsers),
        "set-product": register_set_product_command(subparsers),
        "add-reference": register_add_reference_command(subparsers),
        "add-supplier": register_add_supplier_command(subparsers),
        "update-supplier": register_update_supplier_command(subparsers),
        "delete-supplier": register_delete_supplier_command(subparsers),
        "create-order": register_create_order_command(subparsers),
        "add-order-line": register_add_order_line_command(subparsers),
        "remove-order-line": register_remove_order_line_command(subparsers),
        "set-order-status": register_set_order_status_command(subparsers),
        "delete-order": register_delete_order_command(subparsers),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_read_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare read-only CLI commands such as barcode checks and listings."""
    specs = {
        "check-digit": register_check_digit_command(subparsers),
        "validate-barcode": register_validate_barcode_command(subparsers),
        "generate-barcode": register_generate_barcode_command(subparsers),
        "check-duplicates": register_check_duplicates_command(subparsers),
        "list-variants": register_list_variants_command(subparsers),
        "list-references": register_list_references_command(subparsers),
        "list-suppliers": register_list_suppliers_command(subparsers),
        "list-orders": register_list_orders_command(subparsers),
        "show-order": register_show_order_command(subparsers),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def _add_toggle(parser: argparse.ArgumentParser, what: str) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--enable", dest="enable_auto_generation", action="store_const", const=True,
                       help=f"Turn on automatic {what} generation.")
    group.add_argument("--disable", dest="enable_auto_generation", action="store_const", const=False,
                       help=f"Turn off automatic {what} generation.")
    parser.set_defaults(enable_auto_generation=None)


def _add_product_reference_arguments(parser: argparse.ArgumentParser, *, default: Optional[str]) -> None:
    parser.add_argument("--collection", default=default)
    parser.add_argument("--category", default=default)
    parser.add_argument("--product-type", default=default)
    parser.add_argument("--supplier-id", default=default)


def decimal_argument(raw: str) -> Decimal:
    """argparse type for money values."""
    try:
        return Decimal(raw)
    except ArithmeticError as exc:
        raise argparse.ArgumentTypeError(f"Expected a decimal number, got {raw!r}") from exc


def parse_order_line(raw: str) -> tuple[str, int, Optional[Decimal]]:
    """Parse ``SKU=QTY`` or ``SKU=QTY@PRICE`` into its parts."""
    sku, separator, rest = raw.partition("=")
    quantity_raw, _, price_raw = rest.partition("@")
    try:
        if not separator or not sku.strip():
            raise ValueError(raw)
        quantity = int(quantity_raw)
        price = Decimal(price_raw) if price_raw else None
    except (ValueError, ArithmeticError) as exc:
        raise argparse.ArgumentTypeError(f"Expected SKU=QTY or SKU=QTY@PRICE, got {raw!r}") from exc
    return sku.strip(), quantity, price


def register_add_product_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-product``."""
    name = "add-product"
    help_text = "Create a product without variants."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", default=None)
        parser.add_argument("--product-name", required=True)
        parser.add_argument("--brand", default="")
        parser.add_argument("--size-category", default=None)
        parser.add_argument("--purchase-price", default="0.00")
        parser.add_argument("--sales-price", default="0.00")
        _add_product_reference_arguments(parser, default="")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_product)


def register_delete_product_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``delete-product``."""
    name = "delete-product"
    help_text = "Delete a product and all of its variants."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_delete_product)


def register_add_size_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-size``."""
    name = "add-size"
    help_text = "Register a size within a size category."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--size-code", required=True)
        parser.add_argument("--size-name", required=True)
        parser.add_argument("--category", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_size)


def register_add_color_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-color``."""
    name = "add-color"
    help_text = "Register a color."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--color-code", required=True)
        parser.add_argument("--color-name", required=True)
        parser.add_argument("--hex", default="")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_color)


def register_add_variant_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-variant``."""
    name = "add-variant"
    help_text = "Add one variant with generated SKU and barcode."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_variant)


def register_add_size_variants_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-size-variants``."""
    name = "add-size-variants"
    help_text = "Add one variant per size of the product's size category."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_size_variants)


def register_set_barcode_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``set-barcode``."""
    name = "set-barcode"
    help_text = "Set the barcode of a variant by hand."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.add_argument("--variant-id", required=True)
        parser.add_argument("--barcode", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_set_barcode)


def register_remove_variant_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``remove-variant``."""
    name = "remove-variant"
    help_text = "Remove a variant from a product."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.add_argument("--variant-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_remove_variant)


def register_set_price_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``set-price``."""
    name = "set-price"
    help_text = "Set a product price and apply it to every variant."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.add_argument("--field", choices=["purchase", "sales"], required=True)
        parser.add_argument("--value", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_set_price)


def register_set_gs1_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``set-gs1``."""
    name = "set-gs1"
    help_text = "Update GS1 barcode settings (the sequence counter is preserved)."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--company-prefix", default=None)
        parser.add_argument("--location-reference", default=None)
        parser.add_argument(
            "--format",
            dest="barcode_format",
            choices=[member.value for member in BarcodeFormat],
            default=None,
        )
        _add_toggle(parser, "barcode")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_set_gs1)


def register_set_sku_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``set-sku``."""
    name = "set-sku"
    help_text = "Update SKU generation settings."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--prefix", default=None)
        _add_toggle(parser, "SKU")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_set_sku)


def register_check_digit_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``check-digit``."""
    name = "check-digit"
    help_text = "Print the check digit for a numeric payload."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--digits", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_check_digit, persists=False)


def register_validate_barcode_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``validate-barcode``."""
    name = "validate-barcode"
    help_text = "Check a barcode's trailing check digit."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--barcode", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name, help_text=help_text, register=registrar, execute=run_validate_barcode, persists=False
    )


def register_generate_barcode_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``generate-barcode``."""
    name = "generate-barcode"
    help_text = "Preview the barcode the current GS1 settings give for a sequence number."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--sequence", type=int, default=None,
                            help="Sequence number to format (defaults to the stored counter).")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name, help_text=help_text, register=registrar, execute=run_generate_barcode, persists=False
    )


def register_check_duplicates_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``check-duplicates``."""
    name = "check-duplicates"
    help_text = "List variants of a product that share a barcode."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name, help_text=help_text, register=registrar, execute=run_check_duplicates, persists=False
    )


def register_list_variants_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``list-variants``."""
    name = "list-variants"
    help_text = "List a product's variants."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name, help_text=help_text, register=registrar, execute=run_list_variants, persists=False
    )


def register_set_product_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``set-product``."""
    name = "set-product"
    help_text = "Change a product's name, brand, collection, category, type, or supplier."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--product-id", required=True)
        parser.add_argument("--product-name", default=None)
        parser.add_argument("--brand", default=None)
        _add_product_reference_arguments(parser, default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_set_product)


def register_add_reference_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-reference``."""
    name = "add-reference"
    help_text = "Register a brand, collection, category, or product type."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--kind", choices=[member.value for member in ReferenceKind], required=True)
        parser.add_argument("--code", required=True)
        parser.add_argument("--name", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_reference)


def _add_supplier_contact_arguments(parser: argparse.ArgumentParser, *, default: Optional[str]) -> None:
    parser.add_argument("--email", default=default)
    parser.add_argument("--phone", default=default)
    parser.add_argument("--website", default=default)
    parser.add_argument("--notes", default=default)


def register_add_supplier_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-supplier``."""
    name = "add-supplier"
    help_text = "Register a supplier."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--supplier-id", default=None)
        parser.add_argument("--name", required=True)
        _add_supplier_contact_arguments(parser, default="")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_supplier)


def register_update_supplier_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``update-supplier``."""
    name = "update-supplier"
    help_text = "Change a supplier's name or contact details."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--supplier-id", required=True)
        parser.add_argument("--name", default=None)
        _add_supplier_contact_arguments(parser, default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_update_supplier)


def register_delete_supplier_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``delete-supplier``."""
    name = "delete-supplier"
    help_text = "Delete a supplier that nothing refers to."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--supplier-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_delete_supplier)


def register_create_order_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``create-order``."""
    name = "create-order"
    help_text = "Create a draft purchase order for variant SKUs."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--order-id", default=None)
        parser.add_argument("--supplier-id", required=True)
        parser.add_argument("--order-date", type=date.fromisoformat, default=None, help="YYYY-MM-DD (default: today)")
        parser.add_argument("--expected-delivery", type=date.fromisoformat, default=None)
        parser.add_argument("--notes", default="")
        parser.add_argument(
            "--line",
            dest="lines",
            action="append",
            type=parse_order_line,
            default=[],
            metavar="SKU=QTY[@PRICE]",
            help="Order line; repeat for more SKUs.",
        )
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_create_order)


def register_add_order_line_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-order-line``."""
    name = "add-order-line"
    help_text = "Add a SKU to a draft purchase order."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--order-id", required=True)
        parser.add_argument("--sku", required=True)
        parser.add_argument("--quantity", type=int, default=1)
        parser.add_argument("--unit-price", type=decimal_argument, default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_order_line)


def register_remove_order_line_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``remove-order-line``."""
    name = "remove-order-line"
    help_text = "Remove a SKU from a draft purchase order."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--order-id", required=True)
        parser.add_argument("--sku", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_remove_order_line)


def register_set_order_status_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``set-order-status``."""
    name = "set-order-status"
    help_text = "Submit, receive, or cancel a purchase order."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--order-id", required=True)
        parser.add_argument("--status", choices=[member.value for member in PurchaseOrderStatus], required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_set_order_status)


def register_delete_order_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``delete-order``."""
    name = "delete-order"
    help_text = "Delete a draft or cancelled purchase order."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--order-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_delete_order)


def register_list_references_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``list-references``."""
    name = "list-references"
    help_text = "List brands, collections, categories, or product types."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--kind", choices=[member.value for member in ReferenceKind], required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name, help_text=help_text, register=registrar, execute=run_list_references, persists=False
    )


def register_list_suppliers_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``list-suppliers``."""
    name = "list-suppliers"
    help_text = "List suppliers by name."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name, help_text=help_text, register=registrar, execute=run_list_suppliers, persists=False
    )


def register_list_orders_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``list-orders``."""
    name = "list-orders"
    help_text = "List purchase orders, newest first."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--status", choices=[member.value for member in PurchaseOrderStatus], default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name, help_text=help_text, register=registrar, execute=run_list_orders, persists=False
    )


def register_show_order_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``show-order``."""
    name = "show-order"
    help_text = "Print a purchase order's lines and total."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--order-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name, help_text=help_text, register=registrar, execute=run_show_order, persists=False
    )


def load_runtime_context(config_path: Optional[Path] = None) -> core_logic.RuntimeContext:
    """Resolve the runtime context for CLI operations."""
    target = Path(config_path) if config_path is not None else Path.cwd() / "config.ini"
    return core_logic.load_runtime_context(target)


def dispatch_command(
    context: core_logic.RuntimeContext,
    args: argparse.Namespace,
    command_table: Mapping[str, CommandSpec],
) -> int:
    """Dispatch the parsed arguments to the configured executor."""
    if not hasattr(args, "command") or args.command is None:
        raise KeyError("No command specified")
    spec = command_table.get(args.command)
    if spec is None:
        raise KeyError(f"Unknown command: {args.command}")
    return spec.execute(context, args)


def build_command_table(
    specs: Iterable[CommandSpec],
) -> MutableMapping[str, CommandSpec]:
    """Build an index of command specifications keyed by command name."""
    table: Dict[str, CommandSpec] = {}
    for spec in specs:
        if spec.name in table:
            raise ValueError(f"Duplicate command name: {spec.name}")
        table[spec.name] = spec
    return table


def translate_add_product(args: argparse.Namespace) -> Mapping[str, Any]:
    """Translate CLI args into a new-product request."""
    return {
        "product_id": args.product_id,
        "product_name": args.product_name,
        "brand": args.brand,
        "size_category": args.size_category,
        "purchase_price": Decimal(args.purchase_price),
        "sales_price": Decimal(args.sales_price),
        "collection": args.collection,
        "category": args.category,
        "product_type": args.product_type,
        "supplier_id": args.supplier_id,
    }


def translate_set_price(args: argparse.Namespace) -> tuple[str, Decimal]:
    """Translate CLI args into a ``(field, value)`` price change."""
    return f"{args.field}_price", Decimal(args.value)


def translate_set_gs1(args: argparse.Namespace) -> Mapping[str, Any]:
    """Translate CLI args into GS1 settings changes."""
    return {
        "company_prefix": args.company_prefix,
        "location_reference": args.location_reference,
        "barcode_format": args.barcode_format,
        "enable_auto_generation": args.enable_auto_generation,
    }


def translate_set_sku(args: argparse.Namespace) -> Mapping[str, Any]:
    """Translate CLI args into SKU settings changes."""
    return {
        "prefix": args.prefix,
        "enable_auto_generation": args.enable_auto_generation,
    }


def _supplied(args: argparse.Namespace, fields: Iterable[str]) -> Dict[str, Any]:
    values = {name: getattr(args, name) for name in fields}
    return {name: value for name, value in values.items() if value is not None}


def translate_set_product(args: argparse.Namespace) -> Mapping[str, Any]:
    """Translate CLI args into product detail changes, skipping unset options."""
    return _supplied(args, sorted(core_logic.PRODUCT_DETAIL_FIELDS))


def translate_supplier_changes(args: argparse.Namespace) -> Mapping[str, Any]:
    """Translate CLI args into supplier field changes, skipping unset options."""
    return _supplied(args, sorted(core_logic.SUPPLIER_FIELDS))


def _report_save(outcome: core_logic.SaveOutcome) -> int:
    if outcome.saved:
        return 0
    print(outcome.message)
    for variant_id, message in outcome.barcode_errors.items():
        print(f"  {variant_id}: {message}")
    return 2


def _print_variants(variants: Iterable[data_manager.VariantRow]) -> None:
    for variant in variants:
        print(
            "\t".join(
                [
                    variant.variant_id,
                    variant.sku,
                    variant.barcode,
                    variant.size,
                    variant.color,
                    str(variant.purchase_price),
                    str(variant.sales_price),
                    str(variant.stock),
                ]
            )
        )


def run_add_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Create and save an empty product."""
    draft = core_logic.new_product_draft(context, **translate_add_product(args))
    outcome = core_logic.save_product(context, draft)
    if outcome.saved:
        print(draft.product.product_id)
    return _report_save(outcome)


def run_delete_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Delete a product via the BLL."""
    core_logic.delete_product(context, args.product_id)
    return 0


def run_add_size(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Register a size via the BLL."""
    core_logic.add_size(context, size_code=args.size_code, size_name=args.size_name, category=args.category)
    return 0


def run_add_color(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Register a color via the BLL."""
    core_logic.add_color(context, color_code=args.color_code, color_name=args.color_name, hex_value=args.hex)
    return 0


def run_add_variant(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Add a single generated variant and save the product."""
    draft = core_logic.load_product_draft(context, args.product_id)
    variant = core_logic.add_variant(context, draft)
    _print_variants([variant])
    return _report_save(core_logic.save_product(context, draft))


def run_add_size_variants(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Add one generated variant per size and save the product."""
    draft = core_logic.load_product_draft(context, args.product_id)
    variants = core_logic.add_all_size_variants(context, draft)
    _print_variants(variants)
    return _report_save(core_logic.save_product(context, draft))


def run_set_barcode(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Edit a variant barcode, refusing values held by sibling variants."""
    draft = core_logic.load_product_draft(context, args.product_id)
    if not core_logic.update_variant(draft, args.variant_id, "barcode", args.barcode):
        print(draft.barcode_errors[args.variant_id])
        return 2
    return _report_save(core_logic.save_product(context, draft))


def run_remove_variant(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Remove a variant and save the product."""
    draft = core_logic.load_product_draft(context, args.product_id)
    core_logic.remove_variant(draft, args.variant_id)
    return _report_save(core_logic.save_product(context, draft))


def run_set_price(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Change a product price and save the product."""
    draft = core_logic.load_product_draft(context, args.product_id)
    field_name, value = translate_set_price(args)
    core_logic.change_price(draft, field_name, value)
    return _report_save(core_logic.save_product(context, draft))


def run_set_gs1(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Store GS1 settings changes via the BLL."""
    core_logic.update_gs1_config(context, **translate_set_gs1(args))
    return 0


def run_set_sku(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Store SKU settings changes via the BLL."""
    core_logic.update_sku_config(context, **translate_set_sku(args))
    return 0


def run_check_digit(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print the check digit of the supplied payload."""
    print(gs1.compute_check_digit(args.digits))
    return 0


def run_validate_barcode(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Report whether the barcode's check digit is correct."""
    valid = gs1.validate_barcode(args.barcode)
    print("valid" if valid else "invalid")
    return 0 if valid else 1


def run_generate_barcode(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print a barcode for the current settings without allocating a sequence."""
    config = core_logic.get_gs1_config(context)
    if args.sequence is not None:
        config = replace(config, sequence_counter=args.sequence)
    print(gs1.generate_barcode(config))
    return 0


def run_check_duplicates(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print every variant of the product that shares a barcode."""
    draft = core_logic.load_product_draft(context, args.product_id)
    duplicates = core_logic.find_duplicates(draft.variants)
    for variant_id, barcode in duplicates.items():
        print(f"{variant_id}\t{barcode}")
    return 2 if duplicates else 0


def run_list_variants(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print the product's variants in stored order."""
    draft = core_logic.load_product_draft(context, args.product_id)
    _print_variants(draft.variants)
    return 0


def run_set_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Change product details and save the product."""
    draft = core_logic.load_product_draft(context, args.product_id)
    core_logic.update_product_details(context, draft, **translate_set_product(args))
    return _report_save(core_logic.save_product(context, draft))


def run_add_reference(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Register a reference list entry via the BLL."""
    core_logic.add_reference(context, args.kind, code=args.code, name=args.name)
    return 0


def run_add_supplier(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Register a supplier and print its id and number."""
    supplier = core_logic.add_supplier(
        context,
        supplier_id=args.supplier_id,
        name=args.name,
        email=args.email,
        phone=args.phone,
        website=args.website,
        notes=args.notes,
    )
    print(f"{supplier.supplier_id}\t{supplier.supplier_number}")
    return 0


def run_update_supplier(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Store supplier changes via the BLL."""
    core_logic.update_supplier(context, args.supplier_id, **translate_supplier_changes(args))
    return 0


def run_delete_supplier(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Delete a supplier via the BLL."""
    core_logic.delete_supplier(context, args.supplier_id)
    return 0


def run_create_order(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Create a draft order with its lines and print its id and number."""
    draft = core_logic.new_purchase_order(
        context,
        order_id=args.order_id,
        supplier_id=args.supplier_id,
        order_date=args.order_date,
        expected_delivery=args.expected_delivery,
        notes=args.notes,
    )
    for sku, quantity, unit_price in args.lines:
        core_logic.add_order_line(context, draft, sku, quantity, unit_price)
    order = core_logic.save_purchase_order(context, draft)
    print(f"{order.order_id}\t{order.order_number}")
    return 0


def run_add_order_line(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Add a line to a stored draft order."""
    draft = core_logic.load_purchase_order(context, args.order_id)
    core_logic.add_order_line(context, draft, args.sku, args.quantity, args.unit_price)
    core_logic.save_purchase_order(context, draft)
    return 0


def run_remove_order_line(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Remove a line from a stored draft order."""
    draft = core_logic.load_purchase_order(context, args.order_id)
    core_logic.remove_order_line(draft, args.sku)
    core_logic.save_purchase_order(context, draft)
    return 0


def run_set_order_status(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Move an order to a new status via the BLL."""
    core_logic.change_order_status(context, args.order_id, args.status)
    return 0


def run_delete_order(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Delete a purchase order via the BLL."""
    core_logic.delete_purchase_order(context, args.order_id)
    return 0


def run_list_references(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print one reference list as ``code<TAB>name`` lines."""
    for entry in core_logic.list_references(context, args.kind):
        print(f"{entry.code}\t{entry.name}")
    return 0


def run_list_suppliers(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print suppliers ordered by name."""
    for supplier in core_logic.list_suppliers(context):
        print("\t".join([supplier.supplier_id, supplier.supplier_number, supplier.name, supplier.email]))
    return 0


def run_list_orders(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print order headers, newest first."""
    for order in core_logic.list_purchase_orders(context, args.status):
        print("\t".join([order.order_id, order.order_number, order.supplier_id, order.status, order.order_date]))
    return 0


def run_show_order(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print an order's header, its lines, and the total."""
    draft = core_logic.load_purchase_order(context, args.order_id)
    order = draft.order
    print(f"{order.order_number}\t{order.status}\t{order.order_date}")
    for line in draft.lines:
        print(f"{line.sku}\t{line.quantity}\t{line.unit_price}")
    print(f"Total\t{draft.total}")
    return 0


def handle_cli_error(error: Exception) -> int:
    """Convert raised exceptions into user-friendly exit codes."""
    if isinstance(
        error,
        (core_logic.BusinessRuleViolation, gs1.IdentifierError, data_manager.BarcodeConflictError),
    ):
        log.error("%s", error)
        return 2
    if isinstance(error, FileNotFoundError):
        log.error("%s", error)
        return 3
    log.error("%s", error)
    return 1


def persist_workbook(context: core_logic.RuntimeContext) -> None:
    """Persist workbook changes after successful execution."""
    try:
        core_logic.persist_context(context)
    except PermissionError as error:
        raise RuntimeError(str(error)) from error


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point that orchestrates parsing and execution."""
    parser = build_parser()
    command_table = configure_subcommands(parser)
    args = parser.parse_args(argv)
    try:
        context = load_runtime_context(getattr(args, "config", None))
        core_logic.ensure_schema_version(context)
        exit_code = dispatch_command(context, args, command_table)
        if exit_code == 0 and command_table[args.command].persists:
            persist_workbook(context)
        return exit_code
    except Exception as error:  # pragma: no cover - centralised error handler tested separately
        return handle_cli_error(error)
