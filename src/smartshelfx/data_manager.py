"""Data access layer for SmartShelfX.

This module provides low-level helpers that read from and write to the local
key/value store file. Business logic belongs elsewhere.

The public API is designed around three responsibilities:

1. Configuration handling: finding and parsing ``config.ini``.
2. Store lifecycle: opening, reading, writing and flushing the JSON document
   that holds one encoded snapshot per key.
3. Record conversion: turning entity dataclasses into the camelCase JSON
   dictionaries persisted in each snapshot and back again.
"""


from __future__ import annotations

import configparser
import json
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from . import log
from .constants import OrderStatus, TransactionType, UserRole


CONFIG_FILE_NAME = "config.ini"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_API_KEY_ENV = "API_KEY"

_EnumT = TypeVar("_EnumT", bound=Enum)


@dataclass(frozen=True)
class ForecastSettings:
    """Connection details for the hosted generative model."""

    api_key: str = ""
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT
    timeout: Optional[float] = None

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    data_file: Path
    store_name: str
    forecast: ForecastSettings = field(default_factory=ForecastSettings)


@dataclass
class KeyValueStore:
    """In-memory mirror of the store file: key -> JSON-encoded snapshot."""

    path: Path
    entries: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UserRecord:
    """A member of the user roster."""

    id: int
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    bio: Optional[str] = None


@dataclass(frozen=True)
class ProductRecord:
    """A stocked product. ``current_stock`` may go negative."""

    id: int
    sku: str
    name: str
    category: str
    vendor: str
    current_stock: int
    reorder_level: int
    unit_price: float
    last_restocked: Optional[str] = None


@dataclass(frozen=True)
class TransactionRecord:
    """A single stock movement. Never mutated once recorded."""

    id: int
    product_id: int
    product_name: str
    type: TransactionType
    quantity: int
    timestamp: str
    handled_by: str


@dataclass(frozen=True)
class PurchaseOrderRecord:
    """A restock request sent to a vendor."""

    id: str
    sku: str
    product_name: str
    quantity: int
    vendor: str
    status: OrderStatus
    created_at: str
    total_cost: float


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file that controls how the data layer behaves.

    If the caller provides ``explicit_path`` the value is returned immediately
    without any verification. When no explicit path is given the function walks
    up from the current working directory toward the filesystem root looking
    for a file named ``CONFIG_FILE_NAME``. The first match that exists on disk
    is considered authoritative.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search.

    Returns:
        Path: The path provided by the caller or the discovered configuration
            file.

    Raises:
        FileNotFoundError: If the search exhausts all parent directories without
            finding ``CONFIG_FILE_NAME``.
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

    Args:
        config_path (Path): Path to the configuration file, relative or
            absolute.

    Returns:
        configparser.ConfigParser: Initialized parser containing the raw
            configuration data.

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


def parse_settings(
    parser: configparser.ConfigParser,
    *,
    base_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ConfigSettings:
    """Convert a ``ConfigParser`` into strongly typed :class:`ConfigSettings`.

    ``[System]`` entries are mandatory. The ``[Forecast]`` section is optional;
    omitted options fall back to the module defaults. The API key itself never
    lives in the file: ``ApiKeyEnv`` names the environment variable to read it
    from, and an unset variable means no credential is configured.

    Args:
        parser (configparser.ConfigParser): Parsed configuration data.
        base_path (Path | None): Directory used to anchor a relative
            ``DataFile``. Defaults to :func:`Path.cwd`.
        environ (Mapping[str, str] | None): Environment to read the API key
            from. Defaults to :data:`os.environ`.

    Returns:
        ConfigSettings: Immutable settings container.

    Raises:
        KeyError: If a required ``[System]`` entry is missing.
        ValueError: If ``Timeout`` is not a number.
    """

    try:
        data_file_raw = parser.get("System", "DataFile")
        store_name = parser.get("System", "StoreName")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    data_file_path = Path(data_file_raw)
    if not data_file_path.is_absolute():
        if base_path is None:
            base_path = Path.cwd()
        data_file_path = (base_path / data_file_path).resolve()

    env = os.environ if environ is None else environ
    api_key_env = parser.get("Forecast", "ApiKeyEnv", fallback=DEFAULT_API_KEY_ENV)
    timeout_raw = parser.get("Forecast", "Timeout", fallback="").strip()
    forecast = ForecastSettings(
        api_key=env.get(api_key_env, ""),
        model=parser.get("Forecast", "Model", fallback=DEFAULT_MODEL),
        endpoint=parser.get("Forecast", "Endpoint", fallback=DEFAULT_ENDPOINT).rstrip("/"),
        timeout=float(timeout_raw) if timeout_raw else None,
    )

    return ConfigSettings(
        data_file=data_file_path,
        store_name=store_name,
        forecast=forecast,
    )


def open_store(data_file: Path) -> KeyValueStore:
    """Open the store file and return its entries.

    A missing file yields an empty store so a fresh install starts from the
    built-in defaults. A file whose top level is not a JSON object is logged
    and treated as empty; individual snapshots are not inspected here.

    Args:
        data_file (Path): Filesystem path of the store document.

    Returns:
        KeyValueStore: Store bound to the resolved path.
    """

    path = Path(data_file).expanduser().resolve()
    if not path.exists():
        log.info("Store file '%s' does not exist yet; starting empty", path)
        return KeyValueStore(path=path)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        log.warning("Store file '%s' is not valid JSON (%s); starting empty", path, exc)
        return KeyValueStore(path=path)

    if not isinstance(raw, dict):
        log.warning("Store file '%s' does not hold a JSON object; starting empty", path)
        return KeyValueStore(path=path)

    entries = {str(key): value for key, value in raw.items() if isinstance(value, str)}
    return KeyValueStore(path=path, entries=entries)


def save_store(store: KeyValueStore) -> None:
    """Write every entry of ``store`` to disk, replacing the previous file.

    The document is written to a temporary sibling and moved into place so a
    crash mid-write never leaves a truncated store behind. Parent directories
    are created on demand.

    Args:
        store (KeyValueStore): Store to persist.
    """

    store.path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=store.path.parent, prefix=store.path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(store.entries, handle, indent=2, sort_keys=True)
        os.replace(tmp_name, store.path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def refresh_store(store: KeyValueStore) -> KeyValueStore:
    """Reload the store from disk, discarding any unsaved in-memory changes."""

    return open_store(store.path)


def get_item(store: KeyValueStore, key: str) -> Optional[str]:
    """Return the encoded snapshot stored under ``key`` or ``None``."""

    return store.entries.get(key)


def set_item(store: KeyValueStore, key: str, value: str) -> None:
    """Store ``value`` under ``key`` and flush the whole document to disk."""

    store.entries[key] = value
    save_store(store)


def remove_item(store: KeyValueStore, key: str) -> None:
    """Drop ``key`` from the store and flush. Absent keys are ignored."""

    if store.entries.pop(key, None) is not None:
        save_store(store)


def _coerce_enum(enum_type: Type[_EnumT], value: Any) -> Any:
    """Return the enum member for ``value`` or ``value`` itself when unknown."""

    try:
        return enum_type(value)
    except ValueError:
        return value


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def serialize_user(record: UserRecord) -> Dict[str, Any]:
    """Convert a user record into its persisted dictionary.

    Optional fields are omitted when unset, matching the stored layout.
    """

    data: Dict[str, Any] = {
        "id": record.id,
        "name": record.name,
        "email": record.email,
        "role": _enum_value(record.role),
    }
    if record.phone is not None:
        data["phone"] = record.phone
    if record.bio is not None:
        data["bio"] = record.bio
    return data


def serialize_product(record: ProductRecord) -> Dict[str, Any]:
    """Convert a product record into its persisted dictionary."""

    data: Dict[str, Any] = {
        "id": record.id,
        "sku": record.sku,
        "name": record.name,
        "category": record.category,
        "vendor": record.vendor,
        "currentStock": record.current_stock,
        "reorderLevel": record.reorder_level,
        "unitPrice": record.unit_price,
    }
    if record.last_restocked is not None:
        data["lastRestocked"] = record.last_restocked
    return data


def serialize_transaction(record: TransactionRecord) -> Dict[str, Any]:
    """Convert a transaction record into its persisted dictionary."""

    return {
        "id": record.id,
        "productId": record.product_id,
        "productName": record.product_name,
        "type": _enum_value(record.type),
        "quantity": record.quantity,
        "timestamp": record.timestamp,
        "handledBy": record.handled_by,
    }


def serialize_order(record: PurchaseOrderRecord) -> Dict[str, Any]:
    """Convert a purchase order record into its persisted dictionary."""

    return {
        "id": record.id,
        "sku": record.sku,
        "productName": record.product_name,
        "quantity": record.quantity,
        "vendor": record.vendor,
        "status": _enum_value(record.status),
        "createdAt": record.created_at,
        "totalCost": record.total_cost,
    }


def deserialize_user(raw: Mapping[str, Any]) -> UserRecord:
    """Build a :class:`UserRecord` from a persisted dictionary.

    No shape validation is performed: absent keys become ``None`` and an
    unknown role string is kept verbatim.
    """

    return UserRecord(
        id=raw.get("id"),
        name=raw.get("name"),
        email=raw.get("email"),
        role=_coerce_enum(UserRole, raw.get("role")),
        phone=raw.get("phone"),
        bio=raw.get("bio"),
    )


def deserialize_product(raw: Mapping[str, Any]) -> ProductRecord:
    """Build a :class:`ProductRecord` from a persisted dictionary."""

    return ProductRecord(
        id=raw.get("id"),
        sku=raw.get("sku"),
        name=raw.get("name"),
        category=raw.get("category"),
        vendor=raw.get("vendor"),
        current_stock=raw.get("currentStock"),
        reorder_level=raw.get("reorderLevel"),
        unit_price=raw.get("unitPrice"),
        last_restocked=raw.get("lastRestocked"),
    )


def deserialize_transaction(raw: Mapping[str, Any]) -> TransactionRecord:
    """Build a :class:`TransactionRecord` from a persisted dictionary."""

    return TransactionRecord(
        id=raw.get("id"),
        product_id=raw.get("productId"),
        product_name=raw.get("productName"),
        type=_coerce_enum(TransactionType, raw.get("type")),
        quantity=raw.get("quantity"),
        timestamp=raw.get("timestamp"),
        handled_by=raw.get("handledBy"),
    )


def deserialize_order(raw: Mapping[str, Any]) -> PurchaseOrderRecord:
    """Build a :class:`PurchaseOrderRecord` from a persisted dictionary."""

    return PurchaseOrderRecord(
        id=raw.get("id"),
        sku=raw.get("sku"),
        product_name=raw.get("productName"),
        quantity=raw.get("quantity"),
        vendor=raw.get("vendor"),
        status=_coerce_enum(OrderStatus, raw.get("status")),
        created_at=raw.get("createdAt"),
        total_cost=raw.get("totalCost"),
    )
