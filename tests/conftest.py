"""Shared pytest fixtures and utilities for SmartShelfX tests."""

from __future__ import annotations

import argparse
import sys
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator

import pytest

# Ensure source packages are importable without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from smartshelfx import cli, core_logic  # noqa: E402
from smartshelfx.constants import UserRole  # noqa: E402
from smartshelfx.setup_store import create_seeded_store  # noqa: E402

_CONFIG_TEMPLATE = (
    "[System]\n"
    "DataFile = {data_file}\n"
    "StoreName = {store_name}\n\n"
    "[Forecast]\n"
    "Model = test-model\n"
    "Endpoint = https://model.example.test/v1beta\n"
    "ApiKeyEnv = {api_key_env}\n"
)

TEST_API_KEY_ENV = "SMARTSHELFX_TEST_API_KEY"
FIXED_MOMENT = datetime(2024, 3, 15, 9, 30)


@dataclass(frozen=True)
class ConfigBundle:
    """Container bundling together config metadata for tests."""

    directory: Path
    config_path: Path
    store_path: Path
    store_name: str


@pytest.fixture(scope="session", autouse=True)
def _restore_sys_path() -> Iterator[None]:
    """Ensure sys.path modifications are undone after the test session."""

    original = sys.path.copy()
    try:
        yield
    finally:
        sys.path[:] = original


@pytest.fixture(autouse=True)
def _no_api_key(monkeypatch):
    """Tests never reach the hosted model unless they opt in explicitly."""

    monkeypatch.delenv(TEST_API_KEY_ENV, raising=False)


@pytest.fixture
def store_factory(tmp_path: Path) -> Callable[..., Path]:
    """Factory that creates a seeded store file in a temp folder."""

    def _create_store(*, subdir: str | None = None, filename: str = "store.json") -> Path:
        base_dir = tmp_path if subdir is None else tmp_path / subdir
        base_dir.mkdir(parents=True, exist_ok=True)
        return create_seeded_store(base_dir / filename, overwrite=True)

    return _create_store


@pytest.fixture
def config_factory(tmp_path: Path, store_factory: Callable[..., Path]) -> Callable[..., ConfigBundle]:
    """Provide a callable that creates config/store bundles on demand."""

    def _create_config(
        *,
        make_relative: bool = False,
        seeded: bool = True,
        store_name: str = "Test Warehouse",
    ) -> ConfigBundle:
        bundle_dir = tmp_path / f"bundle_{uuid.uuid4().hex}"
        bundle_dir.mkdir(parents=True, exist_ok=True)
        if seeded:
            store_path = store_factory(subdir=bundle_dir.name)
        else:
            store_path = bundle_dir / "store.json"
        data_file_entry = store_path.name if make_relative else str(store_path)
        config_path = bundle_dir / "config.ini"
        config_path.write_text(
            _CONFIG_TEMPLATE.format(
                data_file=data_file_entry,
                store_name=store_name,
                api_key_env=TEST_API_KEY_ENV,
            )
        )
        return ConfigBundle(
            directory=bundle_dir,
            config_path=config_path,
            store_path=store_path,
            store_name=store_name,
        )

    return _create_config


@pytest.fixture
def config_file(config_factory: Callable[..., ConfigBundle]) -> Path:
    """Convenience fixture returning only the config path."""

    return config_factory().config_path


@pytest.fixture
def runtime_context(config_file: Path) -> core_logic.RuntimeContext:
    """Load the runtime context for tests through the public API."""

    return core_logic.load_runtime_context(config_file)


@pytest.fixture
def fixed_now(monkeypatch) -> Callable[[datetime], datetime]:
    """Patch the clock used for ids and display timestamps."""

    def _apply(moment: datetime = FIXED_MOMENT) -> datetime:
        monkeypatch.setattr(core_logic, "_now", lambda: moment)
        return moment

    return _apply


@pytest.fixture
def signed_in(runtime_context: core_logic.RuntimeContext) -> Callable[..., core_logic.RuntimeContext]:
    """Sign a seeded roster user in and return the context."""

    emails = {
        UserRole.ADMIN: "admin@smartshelfx.com",
        UserRole.MANAGER: "manager@smartshelfx.com",
        UserRole.VENDOR: "sales@techsolutions.com",
    }

    def _apply(role: UserRole = UserRole.ADMIN) -> core_logic.RuntimeContext:
        core_logic.login(runtime_context, emails[role], role)
        return runtime_context

    return _apply


# ---------------------------------------------------------------------------
# CLI layer fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_parser() -> argparse.ArgumentParser:
    """Return a fresh top-level parser."""

    return cli.build_parser()


@pytest.fixture
def subparsers_action() -> argparse._SubParsersAction:
    """Return a subparsers action attached to a throwaway parser."""

    parser = argparse.ArgumentParser(prog="cli")
    return parser.add_subparsers(dest="command")


@pytest.fixture
def run_cli(config_file: Path, capsys) -> Callable[..., tuple[int, str]]:
    """Invoke ``cli.main`` against the test config and capture stdout."""

    def _invoke(*argv: str) -> tuple[int, str]:
        exit_code = cli.main(["--config", str(config_file), *argv])
        return exit_code, capsys.readouterr().out

    return _invoke

