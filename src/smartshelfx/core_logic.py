"""Business logic layer for SmartShelfX.

This module is the state container: it owns the users, products,
transactions and purchase orders collections plus the signed-in user slot,
exposes every mutation as a plain function taking an explicit
:class:`RuntimeContext`, and writes each touched collection back to the
key/value store before returning.

Lookups that miss (unknown ids or SKUs) are silent no-ops. The validation
helpers near the bottom are for front ends to call before a mutation; the
mutations themselves never refuse input.
"""

from __future__ import annotations

import json
import math
import random
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from . import data_manager, log, setup_store
from .constants import (
    AUTO_RESTOCK_HANDLER,
    DEMO_USER_NAME,
    ORDER_ACTIONS,
    ORDER_ID_PREFIX,
    ORDER_ID_RANGE,
    ROLE_CAPABILITIES,
    SCREEN_ROLES,
    STAFF_ROLES,
    TIMESTAMP_FORMAT,
    OrderStatus,
    Screen,
    StoreKey,
    TransactionType,
    UserRole,
)
from .data_manager import (
    ProductRecord,
    PurchaseOrderRecord,
    TransactionRecord,
    UserRecord,
)


_RecordT = TypeVar("_RecordT")


class BusinessRuleViolation(Exception):
    """Raised by front-end checks when a requested action must not proceed."""


class AccessDenied(BusinessRuleViolation):
    """Raised when the signed-in role may not use a screen or action."""


class ValidationError(BusinessRuleViolation):
    """Raised when user input fails a presentation-layer check."""


@dataclass
class InventoryState:
    """Every in-memory collection owned by the container."""

    current_user: Optional[UserRecord]
    users: List[UserRecord]
    products: List[ProductRecord]
    transactions: List[TransactionRecord]
    orders: List[PurchaseOrderRecord]
    current_path: str = "/"


@dataclass(frozen=True)
class RuntimeContext:
    """Configuration, store handle and live state for one session."""

    settings: data_manager.ConfigSettings
    store: data_manager.KeyValueStore
    state: InventoryState


@dataclass(frozen=True)
class ProductDraft:
    """User intent for creating a product; the id is assigned on insert."""

    sku: str
    name: str
    category: str
    vendor: str
    current_stock: int
    reorder_level: int
    unit_price: float
    last_restocked: Optional[str] = None


@dataclass(frozen=True)
class StockMovementCommand:
    """User intent for moving stock in or out of a product."""

    product_id: int
    product_name: str
    type: TransactionType
    quantity: int
    handled_by: str


@dataclass(frozen=True)
class UserDraft:
    """User intent for adding someone to the roster."""

    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    bio: Optional[str] = None


@dataclass(frozen=True)
class OrderDraft:
    """User intent for raising a purchase order."""

    sku: str
    product_name: str
    quantity: int
    vendor: str
    total_cost: float


@dataclass(frozen=True)
class ImportResult:
    """Outcome of a bulk product import."""

    imported: int
    failed: int


@dataclass(frozen=True)
class DashboardSummary:
    """Headline numbers shown on the dashboard."""

    total_products: int
    low_stock_count: int
    total_stock_value: float
    category_stock: Dict[str, int] = field(default_factory=dict)
    recent_transactions: List[TransactionRecord] = field(default_factory=list)
    transactions_today: int = 0


_SERIALIZERS: Dict[StoreKey, Tuple[str, Callable[[Any], Dict[str, Any]]]] = {
    StoreKey.USERS: ("users", data_manager.serialize_user),
    StoreKey.PRODUCTS: ("products", data_manager.serialize_product),
    StoreKey.TRANSACTIONS: ("transactions", data_manager.serialize_transaction),
    StoreKey.ORDERS: ("orders", data_manager.serialize_order),
}


def _now() -> datetime:
    """Return the local wall-clock time used for ids and display stamps."""

    return datetime.now()


def _format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def _current_millis() -> int:
    return int(_now().timestamp() * 1000)


def _next_id(existing: Iterable[Any]) -> int:
    """Return a time-derived id that is larger than every id in ``existing``.

    Two inserts inside the same millisecond would otherwise share an id, so the
    clock value is bumped past the current maximum when needed.
    """

    candidate = _current_millis()
    numeric = [value for value in existing if isinstance(value, int)]
    if numeric and candidate <= max(numeric):
        candidate = max(numeric) + 1
    return candidate


def _load_collection(
    store: data_manager.KeyValueStore,
    key: StoreKey,
    deserialize: Callable[[Any], _RecordT],
    defaults: Sequence[_RecordT],
) -> List[_RecordT]:
    """Decode one collection snapshot or fall back to ``defaults``.

    Only a missing key, undecodable JSON or a snapshot that is not a list of
    objects counts as unparsable. The records themselves are not validated.
    """

    raw = data_manager.get_item(store, key.value)
    if raw is None:
        log.debug("No snapshot for '%s'; seeding defaults", key.value)
        return list(defaults)
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        log.warning("Snapshot for '%s' is not valid JSON (%s); seeding defaults", key.value, exc)
        return list(defaults)
    if not isinstance(decoded, list) or not all(isinstance(item, dict) for item in decoded):
        log.warning("Snapshot for '%s' is not a list of records; seeding defaults", key.value)
        return list(defaults)
    return [deserialize(item) for item in decoded]


def _load_current_user(store: data_manager.KeyValueStore) -> Optional[UserRecord]:
    raw = data_manager.get_item(store, StoreKey.CURRENT_USER.value)
    if raw is None:
        return None
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        log.warning("Stored session user is not valid JSON; starting signed out")
        return None
    if not isinstance(decoded, dict):
        return None
    return data_manager.deserialize_user(decoded)


def load_state(store: data_manager.KeyValueStore) -> InventoryState:
    """Build the in-memory state from ``store``, seeding whatever is missing."""

    return InventoryState(
        current_user=_load_current_user(store),
        users=_load_collection(store, StoreKey.USERS, data_manager.deserialize_user, setup_store.DEFAULT_USERS),
        products=_load_collection(
            store, StoreKey.PRODUCTS, data_manager.deserialize_product, setup_store.DEFAULT_PRODUCTS),
        transactions=_load_collection(
            store, StoreKey.TRANSACTIONS, data_manager.deserialize_transaction, setup_store.DEFAULT_TRANSACTIONS),
        orders=_load_collection(store, StoreKey.ORDERS, data_manager.deserialize_order, setup_store.DEFAULT_ORDERS),
    )


def build_context(settings: data_manager.ConfigSettings, store: data_manager.KeyValueStore) -> RuntimeContext:
    """Assemble a context around an already opened store."""

    return RuntimeContext(settings=settings, store=store, state=load_state(store))


def load_runtime_context(config_path: Optional[Path] = None) -> RuntimeContext:
    """Load configuration settings and the persisted state.

    Resolves ``config.ini``, parses settings, opens the store file and decodes
    each collection. The resulting :class:`RuntimeContext` is the single owner
    of session state and is handed explicitly to every operation.

    Args:
        config_path (Path | None): Optional override path for the configuration
            file. When omitted the data layer performs its upward search from
            the current working directory.

    Returns:
        RuntimeContext: Fully populated context.

    Raises:
        FileNotFoundError: If the configuration file cannot be located.
        KeyError: When mandatory configuration options are missing.
    """
    located_config = data_manager.find_config_file(config_path)
    resolved_config = Path(located_config).expanduser().resolve()
    parser = data_manager.read_config(resolved_config)
    settings = data_manager.parse_settings(parser, base_path=resolved_config.parent)
    store = data_manager.open_store(settings.data_file)
    log.info("Loaded runtime context for store '%s'", settings.data_file)
    return build_context(settings, store)


def _persist(context: RuntimeContext, *keys: StoreKey) -> None:
    """Overwrite the snapshots for ``keys`` with the current collections."""

    for key in keys:
        if key is StoreKey.CURRENT_USER:
            user = context.state.current_user
            if user is None:
                data_manager.remove_item(context.store, key.value)
            else:
                data_manager.set_item(context.store, key.value, json.dumps(data_manager.serialize_user(user)))
            continue
        attribute, serialize = _SERIALIZERS[key]
        payload = [serialize(record) for record in getattr(context.state, attribute)]
        data_manager.set_item(context.store, key.value, json.dumps(payload))


def persist_context(context: RuntimeContext) -> None:
    """Write every collection and the session slot to disk."""

    _persist(context, *StoreKey)
    log.info("Persisted store '%s'", context.store.path)


def refresh_context(context: RuntimeContext) -> RuntimeContext:
    """Reload state from disk, discarding anything not yet persisted.

    Navigation state is not persisted and therefore resets.
    """

    store = data_manager.refresh_store(context.store)
    log.info("Reloaded store '%s'", store.path)
    return build_context(context.settings, store)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def login(context: RuntimeContext, email: str, role: Union[UserRole, str]) -> UserRecord:
    """Sign in as the roster user matching ``email`` and ``role``.

    There is no credential check: the role is whatever the caller asserts.
    When nobody matches, an ephemeral user is synthesized with a time-derived
    id; it occupies the session slot but is not added to the roster.
    """
    role = UserRole(role)
    user = next(
        (candidate for candidate in context.state.users
         if candidate.email == email and candidate.role == role),
        None,
    )
    if user is None:
        user = UserRecord(id=_current_millis(), name=DEMO_USER_NAME, email=email, role=role)
        log.info("No roster match for '%s' as %s; using ephemeral user %s", email, role.value, user.id)
    else:
        log.info("Signed in roster user %s (%s)", user.id, role.value)
    context.state.current_user = user
    _persist(context, StoreKey.CURRENT_USER)
    return user


def logout(context: RuntimeContext) -> None:
    """Clear the session slot."""

    context.state.current_user = None
    _persist(context, StoreKey.CURRENT_USER)
    log.info("Signed out")


def navigate(context: RuntimeContext, path: str) -> Screen:
    """Set the current path and return the screen it resolves to."""

    context.state.current_path = path
    return resolve_screen(context)


def resolve_screen(context: RuntimeContext) -> Screen:
    """Map the current path onto a screen.

    ``/`` and ``/login`` always show the login screen, as does any path while
    signed out. Unknown protected paths fall back to the dashboard. A leading
    slash is optional.
    """
    path = context.state.current_path or "/"
    if not path.startswith("/"):
        path = "/" + path
    if path in ("/", Screen.LOGIN.value) or context.state.current_user is None:
        return Screen.LOGIN
    try:
        screen = Screen(path)
    except ValueError:
        return Screen.DASHBOARD
    return screen if screen in SCREEN_ROLES else Screen.DASHBOARD


# ---------------------------------------------------------------------------
# Products and stock
# ---------------------------------------------------------------------------


def find_product(context: RuntimeContext, product_id: int) -> Optional[ProductRecord]:
    return next((p for p in context.state.products if p.id == product_id), None)


def find_product_by_sku(context: RuntimeContext, sku: str) -> Optional[ProductRecord]:
    return next((p for p in context.state.products if p.sku == sku), None)


def add_product(context: RuntimeContext, draft: ProductDraft) -> ProductRecord:
    """Append a new product with a fresh time-derived id."""

    product = ProductRecord(
        id=_next_id(p.id for p in context.state.products),
        sku=draft.sku,
        name=draft.name,
        category=draft.category,
        vendor=draft.vendor,
        current_stock=draft.current_stock,
        reorder_level=draft.reorder_level,
        unit_price=draft.unit_price,
        last_restocked=draft.last_restocked,
    )
    context.state.products = [*context.state.products, product]
    _persist(context, StoreKey.PRODUCTS)
    log.info("Added product %s (%s)", product.id, product.sku)
    return product


def update_product(context: RuntimeContext, product: ProductRecord) -> None:
    """Replace the product sharing ``product.id``. Unknown ids are ignored.

    Editing ``current_stock`` here bypasses the transaction history.
    """
    if find_product(context, product.id) is None:
        log.warning("Product update skipped: unknown id %s", product.id)
        return
    context.state.products = [product if p.id == product.id else p for p in context.state.products]
    _persist(context, StoreKey.PRODUCTS)
    log.info("Updated product %s", product.id)


def delete_product(context: RuntimeContext, product_id: int) -> None:
    """Remove a product. Transactions and orders referencing it are kept."""

    remaining = [p for p in context.state.products if p.id != product_id]
    if len(remaining) == len(context.state.products):
        log.warning("Product delete skipped: unknown id %s", product_id)
        return
    context.state.products = remaining
    _persist(context, StoreKey.PRODUCTS)
    log.info("Deleted product %s", product_id)


def record_transaction(context: RuntimeContext, command: StockMovementCommand) -> TransactionRecord:
    """Move stock and prepend the matching transaction.

    ``IN`` adds ``quantity`` to the product's stock and ``OUT`` subtracts it,
    even when the result is negative. This is the only path that keeps stock
    and history in step. The transaction is recorded even when no product
    carries ``command.product_id``.
    """
    direction = TransactionType(command.type)
    delta = command.quantity if direction is TransactionType.IN else -command.quantity
    adjusted = False
    products: List[ProductRecord] = []
    for product in context.state.products:
        if product.id == command.product_id:
            product = replace(product, current_stock=product.current_stock + delta)
            adjusted = True
        products.append(product)
    if not adjusted:
        log.warning("Stock movement for unknown product %s; stock left unchanged", command.product_id)
    context.state.products = products

    transaction = TransactionRecord(
        id=_next_id(t.id for t in context.state.transactions),
        product_id=command.product_id,
        product_name=command.product_name,
        type=direction,
        quantity=command.quantity,
        timestamp=_format_timestamp(_now()),
        handled_by=command.handled_by,
    )
    context.state.transactions = [transaction, *context.state.transactions]
    _persist(context, StoreKey.PRODUCTS, StoreKey.TRANSACTIONS)
    log.info(
        "Recorded %s transaction %s for product %s (quantity=%s)",
        direction.value,
        transaction.id,
        command.product_id,
        command.quantity,
    )
    return transaction


def _parse_float(value: Any) -> float:
    number = float(str(value).strip())
    if not math.isfinite(number):
        raise ValueError(f"non-finite number: {value!r}")
    return number


def _parse_int(value: Any) -> int:
    return int(_parse_float(value))


def _is_header_row(row: Sequence[Any]) -> bool:
    return "sku" in ",".join("" if cell is None else str(cell) for cell in row).lower()


def import_products(context: RuntimeContext, rows: Iterable[Sequence[Any]]) -> ImportResult:
    """Bulk-add products from ``(SKU, Name, Category, Vendor, Price, Stock, ReorderLevel)`` rows.

    A first row mentioning ``sku`` is treated as a header. Fully empty rows
    are skipped. Rows that are too short, lack a SKU or name, or carry
    unparsable numbers are counted as failures and skipped.
    """
    imported = 0
    failed = 0
    for index, row in enumerate(rows):
        if index == 0 and _is_header_row(row):
            continue
        if not any(cell is not None and str(cell).strip() for cell in row):
            continue
        if len(row) < 7:
            failed += 1
            continue
        text = ["" if cell is None else str(cell).strip() for cell in row[:4]]
        sku, name, category, vendor = text
        if not sku or not name:
            failed += 1
            continue
        try:
            draft = ProductDraft(
                sku=sku,
                name=name,
                category=category,
                vendor=vendor,
                unit_price=_parse_float(row[4]),
                current_stock=_parse_int(row[5]),
                reorder_level=_parse_int(row[6]),
            )
        except ValueError:
            log.warning("Import row %d has unparsable numbers: %r", index + 1, row)
            failed += 1
            continue
        add_product(context, draft)
        imported += 1
    log.info("Product import finished: %d imported, %d failed", imported, failed)
    return ImportResult(imported=imported, failed=failed)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def add_user(context: RuntimeContext, draft: UserDraft) -> UserRecord:
    """Append a roster user with a fresh time-derived id."""

    user = UserRecord(
        id=_next_id(u.id for u in context.state.users),
        name=draft.name,
        email=draft.email,
        role=UserRole(draft.role),
        phone=draft.phone,
        bio=draft.bio,
    )
    context.state.users = [*context.state.users, user]
    _persist(context, StoreKey.USERS)
    log.info("Added user %s (%s)", user.id, user.role.value)
    return user


def update_user(context: RuntimeContext, user: UserRecord) -> None:
    """Replace the roster user sharing ``user.id``.

    When that user is the one signed in, the session slot is refreshed too.
    Unknown ids leave the roster untouched.
    """
    if any(u.id == user.id for u in context.state.users):
        context.state.users = [user if u.id == user.id else u for u in context.state.users]
        _persist(context, StoreKey.USERS)
        log.info("Updated user %s", user.id)
    else:
        log.warning("User update skipped: unknown id %s", user.id)

    current = context.state.current_user
    if current is not None and current.id == user.id:
        context.state.current_user = user
        _persist(context, StoreKey.CURRENT_USER)


def delete_user(context: RuntimeContext, user_id: int) -> None:
    remaining = [u for u in context.state.users if u.id != user_id]
    if len(remaining) == len(context.state.users):
        log.warning("User delete skipped: unknown id %s", user_id)
        return
    context.state.users = remaining
    _persist(context, StoreKey.USERS)
    log.info("Deleted user %s", user_id)


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------


def generate_order_id(rng: Optional[random.Random] = None) -> str:
    """Return ``PO-<n>`` with ``n`` drawn from ``[0, ORDER_ID_RANGE)``.

    Uniqueness is not guaranteed.
    """
    draw = (rng or random).randrange(ORDER_ID_RANGE)
    return f"{ORDER_ID_PREFIX}{draw}"


def add_order(
    context: RuntimeContext,
    draft: OrderDraft,
    *,
    rng: Optional[random.Random] = None,
) -> PurchaseOrderRecord:
    """Prepend a new purchase order in ``PENDING`` state."""

    order = PurchaseOrderRecord(
        id=generate_order_id(rng),
        sku=draft.sku,
        product_name=draft.product_name,
        quantity=draft.quantity,
        vendor=draft.vendor,
        status=OrderStatus.PENDING,
        created_at=_format_timestamp(_now()),
        total_cost=draft.total_cost,
    )
    context.state.orders = [order, *context.state.orders]
    _persist(context, StoreKey.ORDERS)
    log.info("Raised purchase order %s for %s x%s", order.id, order.sku, order.quantity)
    return order


def update_order_status(
    context: RuntimeContext,
    order_id: str,
    status: Union[OrderStatus, str],
) -> Optional[PurchaseOrderRecord]:
    """Set the status of ``order_id``.

    Moving an order into ``DELIVERED`` from any other status books the
    ordered quantity in against the product whose SKU matches, once. A
    missing product is ignored. Transitions are not otherwise restricted.

    Returns:
        PurchaseOrderRecord | None: The updated order, or ``None`` when no
            order carries ``order_id``.
    """
    status = OrderStatus(status)
    order = next((o for o in context.state.orders if o.id == order_id), None)
    if order is None:
        log.warning("Order status update skipped: unknown order %s", order_id)
        return None

    if status is OrderStatus.DELIVERED and order.status != OrderStatus.DELIVERED:
        product = find_product_by_sku(context, order.sku)
        if product is not None:
            record_transaction(
                context,
                StockMovementCommand(
                    product_id=product.id,
                    product_name=product.name,
                    type=TransactionType.IN,
                    quantity=order.quantity,
                    handled_by=AUTO_RESTOCK_HANDLER,
                ),
            )
        else:
            log.warning("Delivered order %s has no product with SKU '%s'", order_id, order.sku)

    updated = replace(order, status=status)
    context.state.orders = [updated if o.id == order_id else o for o in context.state.orders]
    _persist(context, StoreKey.ORDERS)
    log.info("Order %s moved from %s to %s", order_id, getattr(order.status, "value", order.status), status.value)
    return updated


# ---------------------------------------------------------------------------
# Read-side queries
# ---------------------------------------------------------------------------


def is_low_stock(product: ProductRecord) -> bool:
    return product.current_stock <= product.reorder_level


def list_low_stock(products: Iterable[ProductRecord]) -> List[ProductRecord]:
    return [p for p in products if is_low_stock(p)]


def search_products(
    products: Iterable[ProductRecord],
    term: str = "",
    *,
    low_only: bool = False,
) -> List[ProductRecord]:
    """Filter products by a case-insensitive name/SKU match."""

    needle = term.lower()
    return [
        p for p in products
        if (needle in p.name.lower() or needle in p.sku.lower())
        and (not low_only or is_low_stock(p))
    ]


def product_history(context: RuntimeContext, product_id: int) -> List[TransactionRecord]:
    """Transactions recorded against one product, newest first."""

    return [t for t in context.state.transactions if t.product_id == product_id]


def calculate_dashboard_summary(context: RuntimeContext, *, recent: int = 5) -> DashboardSummary:
    """Aggregate the dashboard headline figures."""

    products = context.state.products
    category_stock: Dict[str, int] = {}
    for product in products:
        category_stock[product.category] = category_stock.get(product.category, 0) + product.current_stock
    today = _now().strftime(TIMESTAMP_FORMAT.split(" ")[0])
    return DashboardSummary(
        total_products=len(products),
        low_stock_count=len(list_low_stock(products)),
        total_stock_value=sum(p.current_stock * p.unit_price for p in products),
        category_stock=category_stock,
        recent_transactions=list(context.state.transactions[:recent]),
        transactions_today=sum(1 for t in context.state.transactions if str(t.timestamp).startswith(today)),
    )


def vendor_matches_order(vendor_user: UserRecord, order: PurchaseOrderRecord) -> bool:
    """Approximate which orders belong to a vendor account.

    The first word of the vendor user's name is matched case-insensitively
    against the order's vendor field. There is no real vendor identity mapping.
    """
    tokens = (vendor_user.name or "").split(" ")
    return tokens[0].lower() in (order.vendor or "").lower()


def filter_orders(
    context: RuntimeContext,
    viewer: Optional[UserRecord] = None,
    *,
    term: str = "",
    status: Optional[Union[OrderStatus, str]] = None,
) -> List[PurchaseOrderRecord]:
    """Orders visible to ``viewer`` matching a search term and status."""

    needle = term.lower()
    wanted = OrderStatus(status) if status is not None else None
    results = []
    for order in context.state.orders:
        if needle and needle not in order.product_name.lower() and needle not in order.id.lower():
            continue
        if wanted is not None and order.status != wanted:
            continue
        if viewer is not None and viewer.role == UserRole.VENDOR and not vendor_matches_order(viewer, order):
            continue
        results.append(order)
    return results


def visible_users(
    users: Iterable[UserRecord],
    viewer: Optional[UserRecord],
    *,
    term: str = "",
) -> List[UserRecord]:
    """Admins see everyone, managers see vendors, vendors see nobody."""

    if viewer is None:
        return []
    needle = term.lower()
    results = []
    for user in users:
        if needle and needle not in user.name.lower() and needle not in user.email.lower():
            continue
        if viewer.role == UserRole.ADMIN or (viewer.role == UserRole.MANAGER and user.role == UserRole.VENDOR):
            results.append(user)
    return results


def allowed_order_actions(role: UserRole, status: OrderStatus) -> Tuple[OrderStatus, ...]:
    return ORDER_ACTIONS.get((UserRole(role), OrderStatus(status)), ())


def allowed_screens(role: UserRole) -> List[Screen]:
    return [screen for screen, roles in SCREEN_ROLES.items() if UserRole(role) in roles]


def can_access(role: UserRole, screen: Screen) -> bool:
    return UserRole(role) in SCREEN_ROLES.get(screen, frozenset())


def can_edit_inventory(role: UserRole) -> bool:
    return UserRole(role) in STAFF_ROLES


def can_manage_users(role: UserRole) -> bool:
    return UserRole(role) is UserRole.ADMIN


def role_capabilities(role: UserRole) -> Tuple[str, ...]:
    return ROLE_CAPABILITIES.get(UserRole(role), ())


# ---------------------------------------------------------------------------
# Front-end checks
# ---------------------------------------------------------------------------


def require_login(context: RuntimeContext) -> UserRecord:
    """Return the signed-in user or raise :class:`AccessDenied`."""

    user = context.state.current_user
    if user is None:
        log.warning("Action attempted while signed out")
        raise AccessDenied("Please sign in first.")
    return user


def require_screen(context: RuntimeContext, screen: Screen) -> UserRecord:
    """Ensure the signed-in role may open ``screen``."""

    user = require_login(context)
    if not can_access(user.role, screen):
        log.warning("Role %s denied access to %s", user.role, screen.value)
        raise AccessDenied(f"Role {getattr(user.role, 'value', user.role)} cannot access {screen.value}.")
    return user


def require_positive_quantity(quantity: int) -> None:
    """Validate that a quantity is strictly positive."""

    if quantity <= 0:
        log.error("Quantity validation failed: %s", quantity)
        raise ValidationError("Quantity must be greater than zero.")


def require_product_fields(draft: Union[ProductDraft, ProductRecord]) -> None:
    """A product needs at least a name and a SKU."""

    if not (draft.name or "").strip() or not (draft.sku or "").strip():
        raise ValidationError("Please fill in required fields.")


def require_user_fields(draft: Union[UserDraft, UserRecord]) -> None:
    if not (draft.name or "").strip() or not (draft.email or "").strip():
        raise ValidationError("Name and Email are required.")


def require_dispatch_available(product: ProductRecord, quantity: int) -> None:
    """Refuse an ``OUT`` movement larger than the stock on hand."""

    if product.current_stock < quantity:
        raise ValidationError(
            f"Insufficient stock! Only {product.current_stock} units available.")
