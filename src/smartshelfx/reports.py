"""Spreadsheet export of inventory reports and product import from workbooks.

Reports are written with ``openpyxl`` as one worksheet with a bold header row
followed by one row per record.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import openpyxl
from openpyxl.styles import Font

from . import core_logic, log
from .constants import OrderStatus
from .data_manager import ProductRecord, PurchaseOrderRecord, TransactionRecord


def _enum_text(value: Any) -> Any:
    return getattr(value, "value", value)


def _product_row(p: ProductRecord) -> List[Any]:
    return [
        p.sku, p.name, p.category, p.vendor, p.unit_price, p.current_stock, p.reorder_level,
        p.current_stock * p.unit_price, "LOW" if core_logic.is_low_stock(p) else "OK",
    ]


def _transaction_row(t: TransactionRecord) -> List[Any]:
    return [t.id, t.timestamp, _enum_text(t.type), t.product_id, t.product_name, t.quantity, t.handled_by]


def _order_row(o: PurchaseOrderRecord) -> List[Any]:
    return [o.id, o.created_at, o.sku, o.product_name, o.quantity, o.vendor, _enum_text(o.status), o.total_cost]


# report name -> (sheet title, header, row builder)
REPORT_LAYOUTS: Mapping[str, Tuple[str, Sequence[str], Callable[[Any], List[Any]]]] = {
    "inventory": (
        "Inventory",
        ["SKU", "Name", "Category", "Vendor", "UnitPrice", "CurrentStock", "ReorderLevel", "StockValue", "Status"],
        _product_row,
    ),
    "transactions": (
        "Transactions",
        ["TransactionID", "Timestamp", "Type", "ProductID", "ProductName", "Quantity", "HandledBy"],
        _transaction_row,
    ),
    "purchase-orders": (
        "PurchaseOrders",
        ["OrderID", "CreatedAt", "SKU", "ProductName", "Quantity", "Vendor", "Status", "TotalCost"],
        _order_row,
    ),
}


def _report_records(
    context: core_logic.RuntimeContext,
    report: str,
    status: Optional[Union[OrderStatus, str]],
) -> Iterable[Any]:
    if report == "inventory":
        return context.state.products
    if report == "transactions":
        return context.state.transactions
    return core_logic.filter_orders(context, status=status)


def export_report(
    context: core_logic.RuntimeContext,
    destination: Path,
    report: str,
    *,
    status: Optional[Union[OrderStatus, str]] = None,
) -> Path:
    """Write ``report`` as an ``.xlsx`` workbook at ``destination``.

    Args:
        context (RuntimeContext): State to report on.
        destination (Path): Target workbook path. Parent folders are created.
        report (str): One of the keys of :data:`REPORT_LAYOUTS`.
        status (OrderStatus | str | None): Status filter, only meaningful for
            ``purchase-orders``.

    Returns:
        Path: Resolved path of the written workbook.

    Raises:
        KeyError: If ``report`` is not a known report name.
    """
    if report not in REPORT_LAYOUTS:
        raise KeyError(f"Unknown report: {report}")
    title, header, build_row = REPORT_LAYOUTS[report]

    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = title

    bold_font = Font(bold=True)
    for column_index, column_name in enumerate(header, start=1):
        cell = worksheet.cell(row=1, column=column_index)
        cell.value = column_name
        cell.font = bold_font

    count = 0
    for record in _report_records(context, report, status):
        worksheet.append(build_row(record))
        count += 1

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)
    log.info("Exported %s report with %d rows to '%s'", report, count, dest)
    return dest


def read_product_rows(workbook_path: Path) -> List[Tuple[Any, ...]]:
    """Return every row of the first worksheet of ``workbook_path``.

    The header row, if any, is kept; :func:`core_logic.import_products`
    recognises and skips it.

    Raises:
        FileNotFoundError: If the workbook does not exist.
    """
    path = Path(workbook_path).expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")
    workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        return [tuple(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

