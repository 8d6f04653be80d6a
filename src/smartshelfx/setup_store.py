"""Built-in seed data and bootstrap utility for the SmartShelfX store.

The module doubles as a script (``smartshelfx-setup``) and as a library used
by the state container and tests. The ``DEFAULT_*`` collections are what a
fresh store starts from whenever a snapshot is missing or unreadable.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence, Tuple

from . import data_manager
from .constants import OrderStatus, StoreKey, TransactionType, UserRole
from .data_manager import (
    ProductRecord,
    PurchaseOrderRecord,
    TransactionRecord,
    UserRecord,
)


DEFAULT_PRODUCTS: Tuple[ProductRecord, ...] = (
    ProductRecord(1, "TECH-001", "Wireless Mouse", "Electronics", "TechSolutions Inc", 120, 50, 25),
    ProductRecord(2, "TECH-002", "Mechanical Keyboard", "Electronics", "TechSolutions Inc", 15, 20, 85),
    ProductRecord(3, "OFF-101", "Office Chair", "Furniture", "ComfortSeating", 8, 10, 150),
    ProductRecord(4, "OFF-102", "Standing Desk", "Furniture", "ComfortSeating", 45, 15, 300),
    ProductRecord(5, "ACC-500", "USB-C Hub", "Accessories", "GadgetWorld", 200, 30, 40),
)

DEFAULT_TRANSACTIONS: Tuple[TransactionRecord, ...] = (
    TransactionRecord(1, 1, "Wireless Mouse", TransactionType.IN, 50, "2023-10-25 10:00", "Manager"),
    TransactionRecord(2, 2, "Mechanical Keyboard", TransactionType.OUT, 5, "2023-10-26 14:30", "Admin"),
)

DEFAULT_USERS: Tuple[UserRecord, ...] = (
    UserRecord(
        1, "System Admin", "admin@smartshelfx.com", UserRole.ADMIN,
        phone="+1 (555) 010-9999",
        bio="Responsible for overall system maintenance and user access control.",
    ),
    UserRecord(
        2, "John Manager", "manager@smartshelfx.com", UserRole.MANAGER,
        phone="+1 (555) 012-3456",
        bio="Warehouse operations lead. Contact for stock discrepancies.",
    ),
    UserRecord(
        3, "TechSolutions Rep", "sales@techsolutions.com", UserRole.VENDOR,
        phone="+1 (555) 987-6543",
        bio="Official supplier account for TechSolutions Inc.",
    ),
    UserRecord(4, "Comfort Seating", "orders@comfort.com", UserRole.VENDOR, phone="+1 (555) 111-2222"),
)

DEFAULT_ORDERS: Tuple[PurchaseOrderRecord, ...] = (
    PurchaseOrderRecord(
        "PO-1001", "TECH-002", "Mechanical Keyboard", 20, "TechSolutions Inc",
        OrderStatus.PENDING, "2023-10-27 09:00", 1700,
    ),
)

CONFIG_FILE = "config.ini"
DEFAULT_DATA_FILE = "smartshelfx_store.json"

_CONFIG_TEMPLATE = (
    "[System]\n"
    "DataFile = {data_file}\n"
    "StoreName = {store_name}\n\n"
    "[Forecast]\n"
    "Model = {model}\n"
    "Endpoint = {endpoint}\n"
    "ApiKeyEnv = {api_key_env}\n"
    "Timeout =\n"
)


def write_config(
    destination: Path,
    *,
    data_file: str = DEFAULT_DATA_FILE,
    store_name: str = "SmartShelfX",
    overwrite: bool = False,
) -> Path:
    """Write a starter ``config.ini`` to ``destination``.

    Raises:
        FileExistsError: If the file exists and ``overwrite`` is ``False``.
    """

    destination = destination.expanduser().resolve()
    if destination.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite existing config: {destination}")
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(
        _CONFIG_TEMPLATE.format(
            data_file=data_file,
            store_name=store_name,
            model=data_manager.DEFAULT_MODEL,
            endpoint=data_manager.DEFAULT_ENDPOINT,
            api_key_env=data_manager.DEFAULT_API_KEY_ENV,
        ),
        encoding="utf-8",
    )
    return destination


def create_seeded_store(destination: Path, *, overwrite: bool = False) -> Path:
    """Create a store file at ``destination`` holding the default collections.

    Parameters are overridable to facilitate testing. When ``overwrite`` is
    ``False`` (the default) this function raises ``FileExistsError`` if the
    target already exists. No current-user entry is written.
    """

    destination = destination.expanduser().resolve()
    if destination.exists() and not overwrite:
        raise FileExistsError(
            f"Refusing to overwrite existing store: {destination}"
        )

    store = data_manager.KeyValueStore(path=destination)
    snapshots = {
        StoreKey.USERS: [data_manager.serialize_user(u) for u in DEFAULT_USERS],
        StoreKey.PRODUCTS: [data_manager.serialize_product(p) for p in DEFAULT_PRODUCTS],
        StoreKey.TRANSACTIONS: [data_manager.serialize_transaction(t) for t in DEFAULT_TRANSACTIONS],
        StoreKey.ORDERS: [data_manager.serialize_order(o) for o in DEFAULT_ORDERS],
    }
    for key, payload in snapshots.items():
        store.entries[key.value] = json.dumps(payload)
    data_manager.save_store(store)
    return destination


def run_from_config(config_path: Path, *, overwrite: bool = False) -> Path:
    """Seed the store named by an existing ``config.ini``."""

    parser = data_manager.read_config(config_path)
    settings = data_manager.parse_settings(parser, base_path=config_path.expanduser().resolve().parent)
    return create_seeded_store(settings.data_file, overwrite=overwrite)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the setup script."""

    parser = argparse.ArgumentParser(description="Initialize the SmartShelfX store")
    parser.add_argument(
        "--config",
        default=CONFIG_FILE,
        help="Path to configuration file (default: config.ini). Created when missing.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the target store if it already exists.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the setup script."""

    args = parse_args(argv)
    config_path = Path(args.config).expanduser().resolve()

    print("--- SmartShelfX Setup ---")
    try:
        if not config_path.exists():
            write_config(config_path)
            print(f"Wrote starter configuration: {config_path}")
        else:
            print(f"Using configuration: {config_path}")
        output_path = run_from_config(config_path, overwrite=args.force)
    except (FileNotFoundError, KeyError) as exc:
        print(f"\n[ERROR] {exc}")
        return 1
    except FileExistsError as exc:
        print(f"\n[ERROR] {exc}")
        print("Run with --force to overwrite the existing file if appropriate.")
        return 1
    except (PermissionError, OSError) as exc:
        print(f"\n[ERROR] Unable to write store: {exc}")
        return 1

    print(f"\n[SUCCESS] Created seeded store at '{output_path}'.")
    return 0


if __name__ == "__main__":  # pragma: no cover - exercised via manual runs
    sys.exit(main())
