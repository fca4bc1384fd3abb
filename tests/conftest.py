"""Shared pytest fixtures and utilities for catalog tests."""

from __future__ import annotations

import argparse
import sys
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, Iterator, Set
from unittest.mock import Mock

import pytest

# Ensure source packages are importable without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

for candidate in (SRC_DIR, PROJECT_ROOT):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from catalog_erp import cli, constants, core_logic, data_manager, gs1  # noqa: E402
from setup_excel import create_master_workbook  # noqa: E402

DEFAULT_SCHEMA_VERSION = constants.EXPECTED_SCHEMA_VERSION
DEFAULT_SIZE_CATEGORY = constants.DEFAULT_SIZE_CATEGORY
_CONFIG_TEMPLATE = (
    "[System]\n"
    "DataFile = {data_file}\n"
    "StoreName = {store_name}\n"
    "SchemaVersion = {schema_version}\n\n"
    "[Defaults]\n"
    "SizeCategory = {size_category}\n"
)


@dataclass(frozen=True)
class ConfigBundle:
    """Container bundling together config metadata for tests."""

    directory: Path
    config_path: Path
    workbook_path: Path
    schema_version: str
    store_name: str


@dataclass
class FakeAllocator:
    """Deterministic allocator whose n-th calls can be told to fail."""

    counter: int = 0
    fail_barcode_calls: Set[int] = field(default_factory=set)
    fail_sku_calls: Set[int] = field(default_factory=set)
    barcode_calls: int = 0
    sku_calls: int = 0
    sku_counters: Dict[str, int] = field(default_factory=dict)

    def next_barcode_sequence(self) -> int:
        self.barcode_calls += 1
        if self.barcode_calls in self.fail_barcode_calls:
            raise data_manager.AllocatorFailure("sequence backend unavailable")
        self.counter += 1
        return self.counter

    def next_sku(self, prefix: str) -> str:
        self.sku_calls += 1
        if self.sku_calls in self.fail_sku_calls:
            raise data_manager.AllocatorFailure("sku backend unavailable")
        key = prefix.upper()
        self.sku_counters[key] = self.sku_counters.get(key, 0) + 1
        return f"{key}{self.sku_counters[key]:05d}"


@pytest.fixture(scope="session", autouse=True)
def _restore_sys_path() -> Iterator[None]:
    """Ensure sys.path modifications are undone after the test session."""

    original = sys.path.copy()
    try:
        yield
    finally:
        sys.path[:] = original


@pytest.fixture
def workbook_factory(tmp_path: Path) -> Callable[..., Path]:
    """Factory that creates an initialized master workbook in a temp folder."""

    def _create_workbook(
        *,
        subdir: str | None = None,
        filename: str = "master_workbook.xlsx",
    ) -> Path:
        base_dir = tmp_path if subdir is None else tmp_path / subdir
        base_dir.mkdir(parents=True, exist_ok=True)
        workbook_path = base_dir / filename
        create_master_workbook(workbook_path, overwrite=True)
        return workbook_path

    return _create_workbook


@pytest.fixture
def master_workbook_path(workbook_factory: Callable[..., Path]) -> Path:
    """Return a fresh master workbook ready for use in a test."""

    return workbook_factory(subdir=f"workbook_{uuid.uuid4().hex}")


@pytest.fixture
def config_factory(tmp_path: Path, workbook_factory: Callable[..., Path]) -> Callable[..., ConfigBundle]:
    """Provide a callable that creates config/workbook bundles on demand."""

    def _create_config(
        *,
        make_relative: bool = False,
        store_name: str = "Test Store",
        schema_version: str = DEFAULT_SCHEMA_VERSION,
        size_category: str = DEFAULT_SIZE_CATEGORY,
    ) -> ConfigBundle:
        bundle_id = uuid.uuid4().hex
        bundle_dir = tmp_path / f"bundle_{bundle_id}"
        bundle_dir.mkdir(parents=True, exist_ok=True)
        workbook_path = workbook_factory(subdir=f"bundle_{bundle_id}")
        data_file_entry = workbook_path.name if make_relative else str(workbook_path)
        config_path = bundle_dir / "config.ini"
        config_path.write_text(
            _CONFIG_TEMPLATE.format(
                data_file=data_file_entry,
                store_name=store_name,
                schema_version=schema_version,
                size_category=size_category,
            )
        )
        return ConfigBundle(
            directory=bundle_dir,
            config_path=config_path,
            workbook_path=workbook_path,
            schema_version=schema_version,
            store_name=store_name,
        )

    return _create_config


@pytest.fixture
def config_file(config_factory: Callable[..., ConfigBundle]) -> Path:
    """Convenience fixture returning only the config path."""

    return config_factory().config_path


@pytest.fixture
def runtime_context(config_file: Path) -> core_logic.RuntimeContext:
    """Load a workbook-backed runtime context through the public API."""

    context = core_logic.load_runtime_context(config_file)
    core_logic.ensure_schema_version(context)
    return context


# ---------------------------------------------------------------------------
# CLI layer fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_parser() -> argparse.ArgumentParser:
    """Return a fresh CLI parser instance for tests."""

    return argparse.ArgumentParser(prog="catalog-cli", description="Catalog CLI")


@pytest.fixture
def subparsers_action(
    cli_parser: argparse.ArgumentParser,
) -> argparse._SubParsersAction[argparse.ArgumentParser]:
    """Return the subparser action used to register commands."""

    return cli_parser.add_subparsers(dest="command")


@pytest.fixture
def command_spec_iterable() -> list[cli.CommandSpec]:
    """Provide a list of command specs for indexing tests."""

    def _make_spec(name: str) -> cli.CommandSpec:
        return cli.CommandSpec(
            name,
            f"{name} help",
            lambda subparsers: subparsers.add_parser(name),
            lambda *_: 0,
        )

    return [_make_spec("alpha"), _make_spec("beta"), _make_spec("gamma")]


# ---------------------------------------------------------------------------
# Core logic fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> data_manager.ConfigSettings:
    """Provide default configuration settings for runtime context tests."""

    return data_manager.ConfigSettings(
        data_file=tmp_path / "master_workbook.xlsx",
        store_name="Test Store",
        schema_version=constants.EXPECTED_SCHEMA_VERSION,
        default_size_category=DEFAULT_SIZE_CATEGORY,
    )


@pytest.fixture
def workbook() -> Mock:
    """Return a mock workbook object for business logic tests."""

    return Mock(name="workbook")


@pytest.fixture
def allocator() -> FakeAllocator:
    """Return a fresh deterministic allocator."""

    return FakeAllocator()


@pytest.fixture
def context(
    settings: data_manager.ConfigSettings, workbook: Mock, allocator: FakeAllocator
) -> core_logic.RuntimeContext:
    """Assemble a runtime context from injected settings, workbook, and allocator."""

    return core_logic.RuntimeContext(settings=settings, workbook=workbook, allocator=allocator)


@pytest.fixture
def gs1_config() -> gs1.GS1Configuration:
    """GS1 settings with auto-generation on and a seven digit prefix."""

    return gs1.GS1Configuration(
        company_prefix="1234567",
        location_reference="01",
        sequence_counter=0,
        enable_auto_generation=True,
        barcode_format=constants.BarcodeFormat.GTIN_13.value,
    )


@pytest.fixture
def product() -> data_manager.ProductRow:
    """A stored-looking product header."""

    return data_manager.ProductRow(
        product_id="P1",
        product_name="Linen Shirt",
        brand="ACME",
        size_category=DEFAULT_SIZE_CATEGORY,
        purchase_price=Decimal("10.00"),
        sales_price=Decimal("25.00"),
    )


def make_variant(variant_id: str, barcode: str = "", **overrides) -> data_manager.VariantRow:
    """Build a variant row with sensible defaults for the fields under test."""

    values = {
        "variant_id": variant_id,
        "product_id": "P1",
        "sku": "",
        "barcode": barcode,
        "size": "M",
        "color": "BLK",
        "purchase_price": Decimal("10.00"),
        "sales_price": Decimal("25.00"),
        "stock": 0,
    }
    values.update(overrides)
    return data_manager.VariantRow(**values)
