"""Command-line entry points for the SmartShelfX toolkit.

All orchestration in this module is limited to argparse wiring, the
presentation-layer checks (sign-in, role gating, required fields, dispatch
quantity) and translating arguments into calls on the state container or the
forecast gateway. Every mutation persists itself, so there is no explicit
save step here.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, MutableMapping, Optional, Sequence

from . import core_logic, forecast_gateway, log, reports
from .constants import OrderStatus, Screen, TransactionType, UserRole
from .data_manager import ProductRecord, UserRecord


@dataclass(frozen=True)
class CommandSpec:
    """Describe how a CLI sub-command is configured and executed."""

    name: str
    help_text: str
    register: Callable[[argparse._SubParsersAction[argparse.ArgumentParser]], argparse.ArgumentParser]
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int]


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="smartshelfx-cli",
        description="Command-line tools for the SmartShelfX inventory store.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to config.ini (defaults to an upward search from the working directory).",
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


def _register_all(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    factories: Mapping[str, Callable[[argparse._SubParsersAction[argparse.ArgumentParser]], CommandSpec]],
) -> Dict[str, CommandSpec]:
    specs = {name: factory(subparsers) for name, factory in factories.items()}
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_write_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare commands that change stored state."""
    return _register_all(subparsers, {
        "login": register_login_command,
        "logout": register_logout_command,
        "add-product": register_add_product_command,
        "update-product": register_update_product_command,
        "delete-product": register_delete_product_command,
        "import-products": register_import_products_command,
        "stock-in": register_stock_in_command,
        "stock-out": register_stock_out_command,
        "add-user": register_add_user_command,
        "update-user": register_update_user_command,
        "delete-user": register_delete_user_command,
        "update-profile": register_update_profile_command,
        "create-order": register_create_order_command,
        "set-order-status": register_set_order_status_command,
    })


def register_read_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare read-only commands and the model-backed screens."""
    return _register_all(subparsers, {
        "whoami": register_whoami_command,
        "open": register_open_command,
        "products": register_products_command,
        "history": register_history_command,
        "transactions": register_transactions_command,
        "orders": register_orders_command,
        "users": register_users_command,
        "dashboard": register_dashboard_command,
        "forecast": register_forecast_command,
        "restock": register_restock_command,
        "ask": register_ask_command,
        "export": register_export_command,
        "profile": register_profile_command,
    })


def _simple_spec(
    name: str,
    help_text: str,
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int],
    configure: Optional[Callable[[argparse.ArgumentParser], None]] = None,
) -> CommandSpec:
    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        if configure is not None:
            configure(parser)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=execute)


def _add_product_fields(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument("--sku", required=required)
    parser.add_argument("--name", required=required)
    parser.add_argument("--category", default="Electronics" if required else None)
    parser.add_argument("--vendor", required=required)
    parser.add_argument("--stock", type=int, default=0 if required else None)
    parser.add_argument("--reorder-level", type=int, default=10 if required else None)
    parser.add_argument("--unit-price", type=float, default=0.0 if required else None)


def _add_user_fields(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument("--name", required=required)
    parser.add_argument("--email", required=required)
    parser.add_argument("--phone", default=None)
    parser.add_argument("--bio", default=None)


def register_login_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``login``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--email", required=True)
        parser.add_argument("--role", choices=[role.value for role in UserRole], default=UserRole.ADMIN.value)

    return _simple_spec("login", "Sign in with an email and a role.", run_login, configure)


def register_logout_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``logout``."""
    return _simple_spec("logout", "Sign out.", run_logout)


def register_add_product_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``add-product``."""
    return _simple_spec(
        "add-product", "Add a product to the inventory.", run_add_product,
        lambda parser: _add_product_fields(parser, required=True),
    )


def register_update_product_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``update-product``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--product-id", type=int, required=True)
        _add_product_fields(parser, required=False)

    return _simple_spec("update-product", "Edit an existing product.", run_update_product, configure)


def register_delete_product_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``delete-product``."""
    return _simple_spec(
        "delete-product", "Delete a product (history is kept).", run_delete_product,
        lambda parser: parser.add_argument("--product-id", type=int, required=True),
    )


def register_import_products_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``import-products``."""
    return _simple_spec(
        "import-products",
        "Import products from an .xlsx sheet (SKU, Name, Category, Vendor, Price, Stock, ReorderLevel).",
        run_import_products,
        lambda parser: parser.add_argument("--workbook", type=Path, required=True),
    )


def _configure_movement(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--product-id", type=int, required=True)
    parser.add_argument("--quantity", type=int, default=1)


def register_stock_in_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``stock-in``."""
    return _simple_spec("stock-in", "Receive stock for a product.", run_stock_in, _configure_movement)


def register_stock_out_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``stock-out``."""
    return _simple_spec("stock-out", "Dispatch stock of a product.", run_stock_out, _configure_movement)


def register_add_user_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``add-user``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        _add_user_fields(parser, required=True)
        parser.add_argument("--role", choices=[role.value for role in UserRole], default=UserRole.MANAGER.value)

    return _simple_spec("add-user", "Add a user to the roster.", run_add_user, configure)


def register_update_user_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``update-user``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--user-id", type=int, required=True)
        _add_user_fields(parser, required=False)
        parser.add_argument("--role", choices=[role.value for role in UserRole], default=None)

    return _simple_spec("update-user", "Edit a roster user.", run_update_user, configure)


def register_delete_user_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``delete-user``."""
    return _simple_spec(
        "delete-user", "Remove a user from the roster.", run_delete_user,
        lambda parser: parser.add_argument("--user-id", type=int, required=True),
    )


def register_update_profile_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``update-profile``."""
    return _simple_spec(
        "update-profile", "Edit your own profile.", run_update_profile,
        lambda parser: _add_user_fields(parser, required=False),
    )


def register_create_order_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``create-order``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--sku", required=True)
        parser.add_argument("--quantity", type=int, required=True)
        parser.add_argument("--vendor", default=None, help="Defaults to the product's vendor.")

    return _simple_spec("create-order", "Raise a purchase order for a SKU.", run_create_order, configure)


def register_set_order_status_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``set-order-status``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--order-id", required=True)
        parser.add_argument("--status", choices=[status.value for status in OrderStatus], required=True)

    return _simple_spec("set-order-status", "Move a purchase order to a new status.", run_set_order_status, configure)


def register_whoami_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``whoami``."""
    return _simple_spec("whoami", "Show the signed-in user.", run_whoami)


def register_open_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``open``."""
    return _simple_spec(
        "open", "Resolve a navigation path to the screen it shows.", run_open,
        lambda parser: parser.add_argument("path"),
    )


def register_products_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``products``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--search", default="")
        parser.add_argument("--low", action="store_true", help="Only products at or below their reorder level.")

    return _simple_spec("products", "List products.", run_products, configure)


def register_history_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``history``."""
    return _simple_spec(
        "history", "Show the stock movements of one product.", run_history,
        lambda parser: parser.add_argument("--product-id", type=int, required=True),
    )


def register_transactions_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``transactions``."""
    return _simple_spec(
        "transactions", "List stock movements, newest first.", run_transactions,
        lambda parser: parser.add_argument("--limit", type=int, default=None),
    )


def register_orders_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``orders``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--search", default="")
        parser.add_argument("--status", choices=[status.value for status in OrderStatus], default=None)

    return _simple_spec("orders", "List purchase orders visible to you.", run_orders, configure)


def register_users_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``users``."""
    return _simple_spec(
        "users", "List the users visible to you.", run_users,
        lambda parser: parser.add_argument("--search", default=""),
    )


def register_dashboard_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``dashboard``."""
    return _simple_spec("dashboard", "Show headline inventory figures.", run_dashboard)


def register_forecast_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``forecast``."""
    return _simple_spec("forecast", "Generate a 7-day demand forecast.", run_forecast)


def register_restock_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``restock``."""
    return _simple_spec(
        "restock", "Show restock recommendations.", run_restock,
        lambda parser: parser.add_argument(
            "--create-orders", action="store_true", help="Raise a purchase order for every suggestion."),
    )


def register_ask_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``ask``."""
    return _simple_spec(
        "ask", "Ask the inventory assistant a question.", run_ask,
        lambda parser: parser.add_argument("question", nargs="+"),
    )


def register_export_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``export``."""

    def configure(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--report", choices=sorted(reports.REPORT_LAYOUTS), required=True)
        parser.add_argument("--output", type=Path, required=True)
        parser.add_argument("--status", choices=[status.value for status in OrderStatus], default=None)

    return _simple_spec("export", "Export a report as an .xlsx workbook.", run_export, configure)


def register_profile_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> CommandSpec:
    """Register the parser and executor for ``profile``."""
    return _simple_spec("profile", "Show your profile and role capabilities.", run_profile)


def load_runtime_context(config_path: Optional[Path] = None) -> core_logic.RuntimeContext:
    """Resolve the runtime context for CLI operations."""
    return core_logic.load_runtime_context(config_path)


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


def _print_table(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    text_rows = [["" if cell is None else str(getattr(cell, "value", cell)) for cell in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in text_rows:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row)]
    print("  ".join(h.ljust(w) for h, w in zip(headers, widths)))
    for row in text_rows:
        print("  ".join(cell.ljust(w) for cell, w in zip(row, widths)))
    if not text_rows:
        print("(no results)")


def _require_inventory_editor(context: core_logic.RuntimeContext) -> None:
    user = core_logic.require_screen(context, Screen.INVENTORY)
    if not core_logic.can_edit_inventory(user.role):
        raise core_logic.AccessDenied("Inventory is read-only for your role.")


def _require_user_manager(context: core_logic.RuntimeContext) -> None:
    user = core_logic.require_screen(context, Screen.USERS)
    if not core_logic.can_manage_users(user.role):
        raise core_logic.AccessDenied("Only administrators can manage users.")


def translate_product_draft(args: argparse.Namespace) -> core_logic.ProductDraft:
    """Translate CLI args into a product draft."""
    return core_logic.ProductDraft(
        sku=args.sku.strip(),
        name=args.name.strip(),
        category=args.category,
        vendor=args.vendor,
        current_stock=args.stock,
        reorder_level=args.reorder_level,
        unit_price=args.unit_price,
    )


def translate_product_update(args: argparse.Namespace, current: ProductRecord) -> ProductRecord:
    """Overlay the supplied CLI args on an existing product."""
    changes = {
        "sku": args.sku,
        "name": args.name,
        "category": args.category,
        "vendor": args.vendor,
        "current_stock": args.stock,
        "reorder_level": args.reorder_level,
        "unit_price": args.unit_price,
    }
    return replace(current, **{key: value for key, value in changes.items() if value is not None})


def translate_user_draft(args: argparse.Namespace) -> core_logic.UserDraft:
    """Translate CLI args into a user draft."""
    return core_logic.UserDraft(
        name=args.name.strip(),
        email=args.email.strip(),
        role=UserRole(args.role),
        phone=args.phone,
        bio=args.bio,
    )


def translate_user_update(
    args: argparse.Namespace,
    current: UserRecord,
    *,
    allow_role_change: bool = True,
) -> UserRecord:
    """Overlay the supplied CLI args on an existing user record.

    With ``allow_role_change`` off, any ``role`` on ``args`` is ignored.
    """
    role = getattr(args, "role", None) if allow_role_change else None
    changes = {
        "name": args.name,
        "email": args.email,
        "phone": args.phone,
        "bio": args.bio,
        "role": UserRole(role) if role else None,
    }
    return replace(current, **{key: value for key, value in changes.items() if value is not None})


def run_login(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Sign in; a blank email is refused."""
    email = args.email.strip()
    if not email:
        raise core_logic.ValidationError("Please enter a valid email address.")
    user = core_logic.login(context, email, UserRole(args.role))
    core_logic.navigate(context, Screen.DASHBOARD.value)
    print(f"Welcome back, {user.role.value.lower()}! Signed in as {user.name} <{user.email}> (id {user.id}).")
    return 0


def run_logout(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.logout(context)
    print("Signed out.")
    return 0


def run_add_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the add-product workflow."""
    _require_inventory_editor(context)
    draft = translate_product_draft(args)
    core_logic.require_product_fields(draft)
    product = core_logic.add_product(context, draft)
    print(f"Product added successfully (id {product.id}).")
    return 0


def run_update_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the update-product workflow."""
    _require_inventory_editor(context)
    current = core_logic.find_product(context, args.product_id)
    if current is None:
        raise core_logic.ValidationError("Product not found.")
    updated = translate_product_update(args, current)
    core_logic.require_product_fields(updated)
    core_logic.update_product(context, updated)
    print("Product updated successfully.")
    return 0


def run_delete_product(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _require_inventory_editor(context)
    core_logic.delete_product(context, args.product_id)
    print("Product deleted successfully.")
    return 0


def run_import_products(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Import product rows from a workbook."""
    _require_inventory_editor(context)
    rows = reports.read_product_rows(args.workbook)
    result = core_logic.import_products(context, rows)
    if result.imported:
        print(f"Successfully imported {result.imported} products.")
    if result.failed:
        print(f"Failed to import {result.failed} rows. Check format.")
    return 0 if result.imported or not result.failed else 2


def _run_movement(context: core_logic.RuntimeContext, args: argparse.Namespace, direction: TransactionType) -> int:
    user = core_logic.require_screen(context, Screen.TRANSACTIONS)
    core_logic.require_positive_quantity(args.quantity)
    product = core_logic.find_product(context, args.product_id)
    if product is None:
        raise core_logic.ValidationError("Product not found.")
    if direction is TransactionType.OUT:
        core_logic.require_dispatch_available(product, args.quantity)
    core_logic.record_transaction(
        context,
        core_logic.StockMovementCommand(
            product_id=product.id,
            product_name=product.name,
            type=direction,
            quantity=args.quantity,
            handled_by=user.name or "Unknown",
        ),
    )
    verb = "received" if direction is TransactionType.IN else "dispatched"
    print(f"Successfully {verb} {args.quantity} units of {product.name}.")
    return 0


def run_stock_in(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    return _run_movement(context, args, TransactionType.IN)


def run_stock_out(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    return _run_movement(context, args, TransactionType.OUT)


def run_add_user(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _require_user_manager(context)
    draft = translate_user_draft(args)
    core_logic.require_user_fields(draft)
    user = core_logic.add_user(context, draft)
    print(f"{user.role.value} added successfully (id {user.id}).")
    return 0


def run_update_user(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _require_user_manager(context)
    current = next((u for u in context.state.users if u.id == args.user_id), None)
    if current is None:
        raise core_logic.ValidationError("User not found.")
    updated = translate_user_update(args, current)
    core_logic.require_user_fields(updated)
    core_logic.update_user(context, updated)
    print("User updated successfully.")
    return 0


def run_delete_user(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    _require_user_manager(context)
    if args.user_id == context.state.current_user.id:
        raise core_logic.ValidationError("You cannot delete yourself.")
    core_logic.delete_user(context, args.user_id)
    print("User removed successfully.")
    return 0


def run_update_profile(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Save edits to the signed-in user's own profile."""
    user = core_logic.require_screen(context, Screen.PROFILE)
    updated = translate_user_update(args, user, allow_role_change=False)
    core_logic.require_user_fields(updated)
    core_logic.update_user(context, updated)
    print("Profile updated successfully.")
    return 0


def run_create_order(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Raise a purchase order costed at the product's current unit price."""
    core_logic.require_screen(context, Screen.RESTOCK)
    core_logic.require_positive_quantity(args.quantity)
    product = core_logic.find_product_by_sku(context, args.sku)
    if product is None:
        raise core_logic.ValidationError(f"No product with SKU '{args.sku}'.")
    order = _raise_order(context, product, args.quantity, args.vendor or product.vendor)
    print(f"Purchase Order {order.id} generated for {product.name}.")
    return 0


def _raise_order(context: core_logic.RuntimeContext, product: ProductRecord, quantity: Any, vendor: str) -> Any:
    return core_logic.add_order(
        context,
        core_logic.OrderDraft(
            sku=product.sku,
            product_name=product.name,
            quantity=quantity,
            vendor=vendor,
            total_cost=quantity * product.unit_price,
        ),
    )


def run_set_order_status(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Apply a status change the signed-in role is offered for that order."""
    user = core_logic.require_screen(context, Screen.ORDERS)
    order = next((o for o in core_logic.filter_orders(context, user) if o.id == args.order_id), None)
    if order is None:
        raise core_logic.ValidationError("Order not found.")
    target = OrderStatus(args.status)
    if target not in core_logic.allowed_order_actions(user.role, order.status):
        raise core_logic.AccessDenied(
            f"Role {user.role.value} cannot move an order from {order.status.value} to {target.value}.")
    core_logic.update_order_status(context, order.id, target)
    if target is OrderStatus.DELIVERED:
        print("Order delivered! Stock updated automatically.")
    else:
        print(f"Order status updated to {target.value}.")
    return 0


def run_whoami(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    user = context.state.current_user
    if user is None:
        print("Not signed in.")
    else:
        print(f"{user.name} <{user.email}> ({getattr(user.role, 'value', user.role)}, id {user.id})")
    return 0


def run_open(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    screen = core_logic.navigate(context, args.path)
    user = context.state.current_user
    print(screen.name.lower())
    if user is not None and screen is not Screen.LOGIN and not core_logic.can_access(user.role, screen):
        print(f"(not available to role {user.role.value})")
    return 0


def run_products(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.require_screen(context, Screen.INVENTORY)
    products = core_logic.search_products(context.state.products, args.search, low_only=args.low)
    _print_table(
        ["ID", "SKU", "Name", "Category", "Vendor", "Stock", "Reorder", "Price", "Status"],
        [
            [p.id, p.sku, p.name, p.category, p.vendor, p.current_stock, p.reorder_level, p.unit_price,
             "LOW" if core_logic.is_low_stock(p) else "OK"]
            for p in products
        ],
    )
    return 0


def _print_transactions(transactions: Iterable[Any]) -> None:
    _print_table(
        ["ID", "Timestamp", "Type", "Product", "Quantity", "HandledBy"],
        [[t.id, t.timestamp, t.type, t.product_name, t.quantity, t.handled_by] for t in transactions],
    )


def run_history(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.require_screen(context, Screen.INVENTORY)
    _print_transactions(core_logic.product_history(context, args.product_id))
    return 0


def run_transactions(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.require_screen(context, Screen.TRANSACTIONS)
    transactions = context.state.transactions
    if args.limit is not None:
        transactions = transactions[: args.limit]
    _print_transactions(transactions)
    return 0


def run_orders(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    user = core_logic.require_screen(context, Screen.ORDERS)
    orders = core_logic.filter_orders(context, user, term=args.search, status=args.status)
    _print_table(
        ["ID", "Created", "SKU", "Product", "Qty", "Vendor", "Status", "Total", "Actions"],
        [
            [o.id, o.created_at, o.sku, o.product_name, o.quantity, o.vendor, o.status, o.total_cost,
             ",".join(s.value for s in core_logic.allowed_order_actions(user.role, o.status))]
            for o in orders
        ],
    )
    return 0


def run_users(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    user = core_logic.require_screen(context, Screen.USERS)
    _print_table(
        ["ID", "Name", "Email", "Role", "Phone"],
        [[u.id, u.name, u.email, u.role, u.phone] for u in core_logic.visible_users(
            context.state.users, user, term=args.search)],
    )
    return 0


def run_dashboard(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.require_screen(context, Screen.DASHBOARD)
    summary = core_logic.calculate_dashboard_summary(context)
    print(f"Total products:       {summary.total_products}")
    print(f"Low stock items:      {summary.low_stock_count}")
    print(f"Total stock value:    ${summary.total_stock_value:,.2f}")
    print(f"Transactions today:   {summary.transactions_today}")
    print("\nStock by category:")
    for category, stock in summary.category_stock.items():
        print(f"  {category}: {stock}")
    print("\nRecent activity:")
    _print_transactions(summary.recent_transactions)
    return 0


def run_forecast(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.require_screen(context, Screen.FORECAST)
    forecasts = forecast_gateway.generate_sales_forecast(context.state.products, context.settings.forecast)
    _print_table(
        ["SKU", "Product", "Stock", "Predicted", "Confidence", "Risk"],
        [[f.sku, f.product_name, f.current_stock, f.predicted_demand, f.confidence, f.risk_level]
         for f in forecasts],
    )
    return 0


def run_restock(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Show suggestions and optionally raise a purchase order for each."""
    core_logic.require_screen(context, Screen.RESTOCK)
    suggestions = forecast_gateway.analyze_restock_needs(context.state.products, context.settings.forecast)
    _print_table(
        ["SKU", "Product", "Stock", "Suggested", "Vendor", "Reason"],
        [[s.sku, s.product_name, s.current_stock, s.suggested_quantity, s.vendor, s.reason] for s in suggestions],
    )
    if args.create_orders:
        for suggestion in suggestions:
            product = core_logic.find_product_by_sku(context, suggestion.sku)
            if product is None:
                log.warning("Skipping suggestion for unknown SKU '%s'", suggestion.sku)
                continue
            order = _raise_order(context, product, suggestion.suggested_quantity, suggestion.vendor)
            print(f"Purchase Order {order.id} generated for {suggestion.product_name}.")
    return 0


def run_ask(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.require_login(context)
    answer = forecast_gateway.ask_inventory_assistant(
        " ".join(args.question),
        context.state.products,
        context.state.orders,
        context.settings.forecast,
    )
    print(answer)
    return 0


def run_export(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    core_logic.require_screen(context, Screen.REPORTS)
    path = reports.export_report(context, args.output, args.report, status=args.status)
    print(f"Report written to {path}")
    return 0


def run_profile(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    user = core_logic.require_screen(context, Screen.PROFILE)
    print(f"Name:  {user.name}")
    print(f"Email: {user.email}")
    print(f"Role:  {user.role.value}")
    if user.phone:
        print(f"Phone: {user.phone}")
    if user.bio:
        print(f"Bio:   {user.bio}")
    print("\nCapabilities:")
    for capability in core_logic.role_capabilities(user.role):
        print(f"  - {capability}")
    return 0


def handle_cli_error(error: Exception) -> int:
    """Convert raised exceptions into user-friendly exit codes."""
    if isinstance(error, core_logic.BusinessRuleViolation):
        log.error("%s", error)
        return 2
    if isinstance(error, FileNotFoundError):
        log.error("%s", error)
        return 3
    log.error("%s", error)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point that orchestrates parsing and execution."""
    parser = build_parser()
    command_table = configure_subcommands(parser)
    args = parser.parse_args(argv)
    try:
        context = load_runtime_context(getattr(args, "config", None))
        return dispatch_command(context, args, command_table)
    except Exception as error:  # pragma: no cover - centralised error handler tested separately
        return handle_cli_error(error)
