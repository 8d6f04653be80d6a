"""Unit tests for the state container and its front-end checks."""

from __future__ import annotations

import json
from dataclasses import replace
from unittest.mock import Mock

import pytest

from smartshelfx import core_logic, data_manager, setup_store
from smartshelfx.constants import (
    AUTO_RESTOCK_HANDLER,
    DEMO_USER_NAME,
    OrderStatus,
    Screen,
    StoreKey,
    TransactionType,
    UserRole,
)


def _stored(context: core_logic.RuntimeContext, key: StoreKey):
    """Decode what is currently on disk for ``key``."""

    raw = json.loads(context.store.path.read_text())
    return json.loads(raw[key.value]) if key.value in raw else None


def _movement(product_id: int, direction: TransactionType, quantity: int, name: str = "Item"):
    return core_logic.StockMovementCommand(
        product_id=product_id,
        product_name=name,
        type=direction,
        quantity=quantity,
        handled_by="Tester",
    )


def _order_draft(sku: str = "TECH-001", quantity: int = 10):
    return core_logic.OrderDraft(
        sku=sku, product_name="Wireless Mouse", quantity=quantity, vendor="TechSolutions Inc", total_cost=250)


# ---------------------------------------------------------------------------
# Runtime/context management
# ---------------------------------------------------------------------------


def test_load_runtime_context_returns_context(monkeypatch, tmp_path):
    """load_runtime_context should assemble settings, store and state into a context."""

    config_path = tmp_path / "config.ini"
    parser = Mock(name="parser")
    parsed_settings = data_manager.ConfigSettings(data_file=tmp_path / "store.json", store_name="Main")
    store = data_manager.KeyValueStore(path=tmp_path / "store.json")

    find_config_file = Mock(return_value=config_path)
    read_config = Mock(return_value=parser)
    parse_settings = Mock(return_value=parsed_settings)
    open_store = Mock(return_value=store)

    monkeypatch.setattr(data_manager, "find_config_file", find_config_file)
    monkeypatch.setattr(data_manager, "read_config", read_config)
    monkeypatch.setattr(data_manager, "parse_settings", parse_settings)
    monkeypatch.setattr(data_manager, "open_store", open_store)

    context = core_logic.load_runtime_context(config_path)

    assert context.settings is parsed_settings
    assert context.store is store
    find_config_file.assert_called_once_with(config_path)
    read_config.assert_called_once_with(config_path.resolve())
    parse_settings.assert_called_once_with(parser, base_path=config_path.resolve().parent)
    open_store.assert_called_once_with(parsed_settings.data_file)


def test_empty_store_seeds_defaults_without_writing(config_factory):
    bundle = config_factory(seeded=False)

    context = core_logic.load_runtime_context(bundle.config_path)

    assert context.state.products == list(setup_store.DEFAULT_PRODUCTS)
    assert context.state.users == list(setup_store.DEFAULT_USERS)
    assert context.state.transactions == list(setup_store.DEFAULT_TRANSACTIONS)
    assert context.state.orders == list(setup_store.DEFAULT_ORDERS)
    assert context.state.current_user is None
    assert not bundle.store_path.exists()


def test_unparsable_collection_falls_back_to_defaults(tmp_path):
    store = data_manager.KeyValueStore(
        path=tmp_path / "store.json",
        entries={
            StoreKey.PRODUCTS.value: "{broken",
            StoreKey.ORDERS.value: json.dumps({"not": "a list"}),
            StoreKey.USERS.value: json.dumps([]),
        },
    )

    state = core_logic.load_state(store)

    assert state.products == list(setup_store.DEFAULT_PRODUCTS)
    assert state.orders == list(setup_store.DEFAULT_ORDERS)
    assert state.users == []


def test_persisted_state_round_trips(runtime_context, config_file, fixed_now):
    """Any sequence of mutations reloads into identical collections."""

    fixed_now()
    context = runtime_context
    core_logic.login(context, "manager@smartshelfx.com", UserRole.MANAGER)
    product = core_logic.add_product(
        context,
        core_logic.ProductDraft("NEW-1", "Lamp", "Lighting", "Bright Co", 3, 5, 19.99),
    )
    core_logic.record_transaction(context, _movement(product.id, TransactionType.OUT, 7, "Lamp"))
    core_logic.add_user(context, core_logic.UserDraft("Vera", "vera@bright.co", UserRole.VENDOR, phone="123"))
    order = core_logic.add_order(context, _order_draft("NEW-1", 4))
    core_logic.update_order_status(context, order.id, OrderStatus.APPROVED)
    core_logic.delete_product(context, 3)

    reloaded = core_logic.load_runtime_context(config_file)

    assert reloaded.state.products == context.state.products
    assert reloaded.state.transactions == context.state.transactions
    assert reloaded.state.users == context.state.users
    assert reloaded.state.orders == context.state.orders
    assert reloaded.state.current_user == context.state.current_user


def test_refresh_context_discards_unsaved_changes(runtime_context):
    runtime_context.state.products = []

    refreshed = core_logic.refresh_context(runtime_context)

    assert len(refreshed.state.products) == len(setup_store.DEFAULT_PRODUCTS)


def test_persist_context_writes_every_collection(config_factory):
    bundle = config_factory(seeded=False)
    context = core_logic.load_runtime_context(bundle.config_path)

    core_logic.persist_context(context)

    raw = json.loads(bundle.store_path.read_text())
    assert set(raw) == {StoreKey.USERS.value, StoreKey.PRODUCTS.value, StoreKey.TRANSACTIONS.value,
                        StoreKey.ORDERS.value}


# ---------------------------------------------------------------------------
# Session and navigation
# ---------------------------------------------------------------------------


def test_login_matches_roster_user(runtime_context):
    user = core_logic.login(runtime_context, "admin@smartshelfx.com", UserRole.ADMIN)

    assert user.id == 1
    assert runtime_context.state.current_user == user
    assert _stored(runtime_context, StoreKey.CURRENT_USER)["email"] == "admin@smartshelfx.com"


def test_login_requires_matching_role(runtime_context, fixed_now):
    """An email on the roster with a different role still yields an ephemeral user."""

    fixed_now()
    user = core_logic.login(runtime_context, "admin@smartshelfx.com", UserRole.VENDOR)

    assert user.name == DEMO_USER_NAME
    assert user.role is UserRole.VENDOR


def test_login_synthesizes_then_reuses_roster_user(runtime_context, fixed_now):
    fixed_now()
    ephemeral = core_logic.login(runtime_context, "x@y.com", UserRole.MANAGER)

    assert ephemeral.role is UserRole.MANAGER
    assert ephemeral.email == "x@y.com"
    assert ephemeral not in runtime_context.state.users

    added = core_logic.add_user(runtime_context, core_logic.UserDraft("X", "x@y.com", UserRole.MANAGER))
    again = core_logic.login(runtime_context, "x@y.com", UserRole.MANAGER)

    assert again.id == added.id


def test_logout_clears_stored_session(signed_in):
    context = signed_in(UserRole.ADMIN)

    core_logic.logout(context)

    assert context.state.current_user is None
    assert _stored(context, StoreKey.CURRENT_USER) is None


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/", Screen.LOGIN),
        ("/login", Screen.LOGIN),
        ("/inventory", Screen.INVENTORY),
        ("orders", Screen.ORDERS),
        ("/nowhere", Screen.DASHBOARD),
    ],
)
def test_navigate_resolves_screens_when_signed_in(signed_in, path, expected):
    context = signed_in(UserRole.ADMIN)

    assert core_logic.navigate(context, path) is expected


def test_navigate_while_signed_out_shows_login(runtime_context):
    assert core_logic.navigate(runtime_context, "/inventory") is Screen.LOGIN


# ---------------------------------------------------------------------------
# Products and stock movements
# ---------------------------------------------------------------------------


def test_add_product_assigns_unique_time_derived_ids(runtime_context, fixed_now):
    moment = fixed_now()
    draft = core_logic.ProductDraft("A-1", "Alpha", "Misc", "Acme", 1, 1, 1.0)

    first = core_logic.add_product(runtime_context, draft)
    second = core_logic.add_product(runtime_context, draft)

    assert first.id == int(moment.timestamp() * 1000)
    assert second.id == first.id + 1
    assert [p["sku"] for p in _stored(runtime_context, StoreKey.PRODUCTS)][-2:] == ["A-1", "A-1"]


def test_update_product_replaces_matching_record(runtime_context):
    current = core_logic.find_product(runtime_context, 1)

    core_logic.update_product(runtime_context, replace(current, unit_price=30))

    assert core_logic.find_product(runtime_context, 1).unit_price == 30
    assert _stored(runtime_context, StoreKey.PRODUCTS)[0]["unitPrice"] == 30


def test_update_product_unknown_id_is_noop(runtime_context):
    before = list(runtime_context.state.products)
    ghost = replace(before[0], id=999)

    core_logic.update_product(runtime_context, ghost)

    assert runtime_context.state.products == before


def test_delete_product_keeps_history_and_orders(runtime_context):
    """Removing a product leaves transactions and orders that reference it."""

    transactions = list(runtime_context.state.transactions)
    orders = list(runtime_context.state.orders)

    core_logic.delete_product(runtime_context, 2)

    assert [p.id for p in runtime_context.state.products] == [1, 3, 4, 5]
    assert runtime_context.state.transactions == transactions
    assert runtime_context.state.orders == orders


@pytest.mark.parametrize(
    "direction, quantity, expected",
    [
        (TransactionType.IN, 5, 125),
        (TransactionType.OUT, 20, 100),
        (TransactionType.OUT, 500, -380),
    ],
)
def test_record_transaction_adjusts_stock_exactly(runtime_context, direction, quantity, expected):
    core_logic.record_transaction(runtime_context, _movement(1, direction, quantity))

    assert core_logic.find_product(runtime_context, 1).current_stock == expected


def test_record_transaction_prepends_with_timestamp(runtime_context, fixed_now):
    fixed_now()

    transaction = core_logic.record_transaction(runtime_context, _movement(1, TransactionType.IN, 2))

    assert runtime_context.state.transactions[0] == transaction
    assert transaction.timestamp == "2024-03-15 09:30"
    assert _stored(runtime_context, StoreKey.TRANSACTIONS)[0]["id"] == transaction.id


def test_record_transaction_for_unknown_product_still_logs(runtime_context):
    before = list(runtime_context.state.products)

    core_logic.record_transaction(runtime_context, _movement(404, TransactionType.IN, 2, "Ghost"))

    assert runtime_context.state.products == before
    assert runtime_context.state.transactions[0].product_id == 404


def test_import_products_counts_imported_and_failed(runtime_context):
    rows = [
        ("SKU", "Name", "Category", "Vendor", "Price", "Stock", "ReorderLevel"),
        ("IMP-1", "Cable", "Accessories", "GadgetWorld", "4.50", "30", "10"),
        (None, None, None, None, None, None, None),
        ("IMP-2", "Short row"),
        ("", "No SKU", "Misc", "Acme", 1, 1, 1),
        ("IMP-3", "Bad price", "Misc", "Acme", "cheap", 1, 1),
        ("IMP-5", "Infinite stock", "Misc", "Acme", "2.5", "inf", "3"),
        ("IMP-6", "Overflowing level", "Misc", "Acme", "2.5", "4", "1e400"),
        ("IMP-7", "NaN price", "Misc", "Acme", "nan", "4", "3"),
        ("IMP-4", "Numeric cells", "Misc", "Acme", 2, 8.0, 3),
    ]

    result = core_logic.import_products(runtime_context, rows)

    assert result == core_logic.ImportResult(imported=2, failed=6)
    assert core_logic.find_product_by_sku(runtime_context, "IMP-5") is None
    imported = {p.sku: p for p in runtime_context.state.products if p.sku.startswith("IMP-")}
    assert imported["IMP-1"].unit_price == 4.5
    assert imported["IMP-1"].current_stock == 30
    assert imported["IMP-4"].current_stock == 8


def test_import_products_without_header(runtime_context):
    result = core_logic.import_products(runtime_context, [("H-1", "Hat", "Apparel", "Acme", 5, 5, 2)])

    assert result.imported == 1
    assert core_logic.find_product_by_sku(runtime_context, "H-1") is not None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def test_update_user_refreshes_signed_in_slot(signed_in):
    context = signed_in(UserRole.MANAGER)
    me = context.state.current_user

    core_logic.update_user(context, replace(me, name="John Lead"))

    assert context.state.current_user.name == "John Lead"
    assert _stored(context, StoreKey.CURRENT_USER)["name"] == "John Lead"
    assert any(u.name == "John Lead" for u in context.state.users)


def test_update_user_other_record_leaves_session(signed_in):
    context = signed_in(UserRole.ADMIN)
    vendor = next(u for u in context.state.users if u.id == 3)

    core_logic.update_user(context, replace(vendor, phone="555"))

    assert context.state.current_user.id == 1
    assert next(u for u in context.state.users if u.id == 3).phone == "555"


def test_delete_user_removes_record(runtime_context):
    core_logic.delete_user(runtime_context, 4)

    assert [u.id for u in runtime_context.state.users] == [1, 2, 3]
    assert [u["id"] for u in _stored(runtime_context, StoreKey.USERS)] == [1, 2, 3]


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------


def test_generate_order_id_uses_prefix_and_range():
    rng = Mock()
    rng.randrange.return_value = 42

    assert core_logic.generate_order_id(rng) == "PO-42"
    rng.randrange.assert_called_once_with(10000)


def test_add_order_forces_pending_and_prepends(runtime_context, fixed_now):
    fixed_now()
    rng = Mock()
    rng.randrange.return_value = 7

    order = core_logic.add_order(runtime_context, _order_draft(), rng=rng)

    assert order.id == "PO-7"
    assert order.status is OrderStatus.PENDING
    assert order.created_at == "2024-03-15 09:30"
    assert runtime_context.state.orders[0] == order


def test_delivering_order_books_stock_in_once(runtime_context):
    """Entering DELIVERED records one IN movement; repeating it records none."""

    count = len(runtime_context.state.transactions)

    updated = core_logic.update_order_status(runtime_context, "PO-1001", OrderStatus.DELIVERED)

    assert updated.status is OrderStatus.DELIVERED
    assert core_logic.find_product(runtime_context, 2).current_stock == 35
    assert len(runtime_context.state.transactions) == count + 1
    auto = runtime_context.state.transactions[0]
    assert auto.type is TransactionType.IN
    assert auto.quantity == 20
    assert auto.handled_by == AUTO_RESTOCK_HANDLER

    core_logic.update_order_status(runtime_context, "PO-1001", OrderStatus.DELIVERED)

    assert len(runtime_context.state.transactions) == count + 1
    assert core_logic.find_product(runtime_context, 2).current_stock == 35


def test_delivering_order_without_product_records_nothing(runtime_context):
    order = core_logic.add_order(runtime_context, _order_draft(sku="MISSING"))
    count = len(runtime_context.state.transactions)

    core_logic.update_order_status(runtime_context, order.id, OrderStatus.DELIVERED)

    assert len(runtime_context.state.transactions) == count
    assert runtime_context.state.orders[0].status is OrderStatus.DELIVERED


def test_non_delivery_status_change_moves_no_stock(runtime_context):
    count = len(runtime_context.state.transactions)

    core_logic.update_order_status(runtime_context, "PO-1001", OrderStatus.SHIPPED)

    assert len(runtime_context.state.transactions) == count
    assert _stored(runtime_context, StoreKey.ORDERS)[0]["status"] == "SHIPPED"


def test_update_order_status_unknown_order_returns_none(runtime_context):
    assert core_logic.update_order_status(runtime_context, "PO-0", OrderStatus.APPROVED) is None


# ---------------------------------------------------------------------------
# Read-side queries
# ---------------------------------------------------------------------------


def test_search_products_matches_name_or_sku(runtime_context):
    products = runtime_context.state.products

    assert [p.sku for p in core_logic.search_products(products, "off-")] == ["OFF-101", "OFF-102"]
    assert [p.sku for p in core_logic.search_products(products, "mouse")] == ["TECH-001"]


def test_search_products_low_only(runtime_context):
    low = core_logic.search_products(runtime_context.state.products, low_only=True)

    assert [p.sku for p in low] == ["TECH-002", "OFF-101"]


def test_product_history_filters_by_product(runtime_context):
    core_logic.record_transaction(runtime_context, _movement(1, TransactionType.OUT, 1))

    history = core_logic.product_history(runtime_context, 1)

    assert [t.product_id for t in history] == [1, 1]
    assert history[0].type is TransactionType.OUT


def test_dashboard_summary(runtime_context, fixed_now):
    fixed_now()
    core_logic.record_transaction(runtime_context, _movement(5, TransactionType.OUT, 10))

    summary = core_logic.calculate_dashboard_summary(runtime_context, recent=2)

    assert summary.total_products == 5
    assert summary.low_stock_count == 2
    assert summary.total_stock_value == 120 * 25 + 15 * 85 + 8 * 150 + 45 * 300 + 190 * 40
    assert summary.category_stock == {"Electronics": 135, "Furniture": 53, "Accessories": 190}
    assert len(summary.recent_transactions) == 2
    assert summary.transactions_today == 1


def test_vendor_sees_orders_by_first_name_token(signed_in):
    context = signed_in(UserRole.VENDOR)

    visible = core_logic.filter_orders(context, context.state.current_user)

    assert [o.id for o in visible] == ["PO-1001"]


def test_unrelated_vendor_sees_no_orders(runtime_context):
    comfort = next(u for u in runtime_context.state.users if u.id == 4)

    assert core_logic.filter_orders(runtime_context, comfort) == []


def test_filter_orders_by_term_and_status(runtime_context):
    assert core_logic.filter_orders(runtime_context, term="keyboard", status=OrderStatus.PENDING)
    assert core_logic.filter_orders(runtime_context, status="APPROVED") == []
    assert core_logic.filter_orders(runtime_context, term="po-10")


@pytest.mark.parametrize(
    "role, expected_ids",
    [
        (UserRole.ADMIN, [1, 2, 3, 4]),
        (UserRole.MANAGER, [3, 4]),
        (UserRole.VENDOR, []),
    ],
)
def test_visible_users_by_role(runtime_context, role, expected_ids):
    viewer = data_manager.UserRecord(99, "Viewer", "v@example.com", role)

    assert [u.id for u in core_logic.visible_users(runtime_context.state.users, viewer)] == expected_ids


def test_allowed_order_actions_table():
    assert core_logic.allowed_order_actions(UserRole.VENDOR, OrderStatus.PENDING) == (
        OrderStatus.APPROVED, OrderStatus.CANCELLED)
    assert core_logic.allowed_order_actions(UserRole.MANAGER, OrderStatus.SHIPPED) == (OrderStatus.DELIVERED,)
    assert core_logic.allowed_order_actions(UserRole.VENDOR, OrderStatus.SHIPPED) == ()


def test_role_permissions():
    assert core_logic.can_access(UserRole.VENDOR, Screen.ORDERS)
    assert not core_logic.can_access(UserRole.VENDOR, Screen.FORECAST)
    assert Screen.USERS in core_logic.allowed_screens(UserRole.MANAGER)
    assert core_logic.can_edit_inventory(UserRole.MANAGER)
    assert not core_logic.can_edit_inventory(UserRole.VENDOR)
    assert core_logic.can_manage_users(UserRole.ADMIN)
    assert not core_logic.can_manage_users(UserRole.MANAGER)
    assert "User Management" in core_logic.role_capabilities(UserRole.ADMIN)


# ---------------------------------------------------------------------------
# Front-end checks
# ---------------------------------------------------------------------------


def test_require_login_signed_out(runtime_context):
    with pytest.raises(core_logic.AccessDenied):
        core_logic.require_login(runtime_context)


def test_require_screen_denies_vendor_transactions(signed_in):
    context = signed_in(UserRole.VENDOR)

    with pytest.raises(core_logic.AccessDenied):
        core_logic.require_screen(context, Screen.TRANSACTIONS)


@pytest.mark.parametrize("quantity", [0, -3])
def test_require_positive_quantity_rejects(quantity):
    with pytest.raises(core_logic.ValidationError):
        core_logic.require_positive_quantity(quantity)


def test_require_dispatch_available_message(runtime_context):
    product = core_logic.find_product(runtime_context, 3)

    with pytest.raises(core_logic.ValidationError, match="Only 8 units available"):
        core_logic.require_dispatch_available(product, 9)
    core_logic.require_dispatch_available(product, 8)


def test_required_field_checks():
    with pytest.raises(core_logic.ValidationError):
        core_logic.require_product_fields(core_logic.ProductDraft(" ", "Name", "C", "V", 0, 0, 0))
    with pytest.raises(core_logic.ValidationError):
        core_logic.require_user_fields(core_logic.UserDraft("Name", "", UserRole.VENDOR))


def test_business_rule_hierarchy():
    assert issubclass(core_logic.AccessDenied, core_logic.BusinessRuleViolation)
    assert issubclass(core_logic.ValidationError, core_logic.BusinessRuleViolation)
