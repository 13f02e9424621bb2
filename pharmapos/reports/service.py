"""
Dashboard aggregations over plain product and sale rows.

Every function takes the same dicts the API returns (``ProductOut`` /
``SaleOut`` dumps), so the POS client can run them on data it already
fetched and the ``/api/reports`` routes can run them on fresh rows.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from pharmapos.stock.products.schemas import UNCATEGORIZED


Row = Dict[str, Any]


def _as_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.to_datetime(value).date()


def _sales_frame(sales: List[Row]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            {"id": s["id"], "total": float(s.get("total") or 0), "date": s["date"]}
            for s in sales
        ],
        columns=["id", "total", "date"],
    )
    frame["date"] = pd.to_datetime(frame["date"])
    return frame


def _items_frame(sales: List[Row]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "product_id": item.get("product_id"),
                "name": item.get("name"),
                "quantity": int(item.get("quantity") or 0),
                "revenue": int(item.get("quantity") or 0) * float(item.get("price") or 0),
            }
            for sale in sales
            for item in sale.get("items", [])
        ],
        columns=["product_id", "name", "quantity", "revenue"],
    )


# --------------------------------------------------
# Headline numbers
# --------------------------------------------------
def sales_summary(
    sales: List[Row],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Totals for the selected date range, plus today's order count and the
    change between the last 7 days and the 7 days before that.
    """
    now = now or datetime.now()
    frame = _sales_frame(sales)
    day = frame["date"].dt.date

    in_range = pd.Series(True, index=frame.index)
    if start_date is not None:
        in_range &= day >= start_date
    if end_date is not None:
        in_range &= day <= end_date
    selected = frame[in_range]

    total_sales = int(len(selected))
    total_revenue = round(float(selected["total"].sum()), 2)
    average_order_value = round(total_revenue / total_sales, 2) if total_sales else 0.0

    last_week_start = pd.Timestamp(now - timedelta(days=14))
    last_week_end = pd.Timestamp(now - timedelta(days=7))
    last_week = int(((frame["date"] >= last_week_start) & (frame["date"] <= last_week_end)).sum())
    this_week = int((frame["date"] > last_week_end).sum())

    weekly_change = round((this_week - last_week) / last_week * 100, 2) if last_week else 0.0

    return {
        "total_sales": total_sales,
        "total_revenue": total_revenue,
        "average_order_value": average_order_value,
        "todays_sales": int((day == now.date()).sum()),
        "weekly_change": weekly_change,
    }


def sales_by_date(sales: List[Row]) -> List[Row]:
    frame = _sales_frame(sales)
    if frame.empty:
        return []

    frame["day"] = frame["date"].dt.date
    grouped = (
        frame.groupby("day")
        .agg(orders=("id", "count"), revenue=("total", "sum"))
        .reset_index()
        .sort_values("day")
    )

    return [
        {"date": row.day, "orders": int(row.orders), "revenue": round(float(row.revenue), 2)}
        for row in grouped.itertuples(index=False)
    ]


# --------------------------------------------------
# Inventory views
# --------------------------------------------------
def inventory_by_category(products: List[Row]) -> List[Row]:
    if not products:
        return []

    frame = pd.DataFrame(
        [
            {
                "category": p.get("category") or UNCATEGORIZED,
                "id": p["id"],
                "value": float(p.get("price") or 0) * int(p.get("stock") or 0),
            }
            for p in products
        ]
    )
    grouped = (
        frame.groupby("category")
        .agg(products=("id", "count"), stock_value=("value", "sum"))
        .reset_index()
        .sort_values("category")
    )

    return [
        {
            "category": row.category,
            "products": int(row.products),
            "stock_value": round(float(row.stock_value), 2),
        }
        for row in grouped.itertuples(index=False)
    ]


def top_selling_products(
    sales: List[Row],
    products: List[Row],
    limit: int = 5,
) -> List[Row]:
    items = _items_frame(sales)
    if items.empty:
        return []

    # deleted products have no id left, so their lines are told apart by snapshot name
    has_id = items["product_id"].notna()
    items["product_id"] = items["product_id"].fillna(-1).astype(int)
    items["name"] = items["name"].fillna("")
    items["key"] = items["product_id"].astype(str).where(has_id, "name:" + items["name"])
    grouped = (
        items.groupby("key")
        .agg(
            product_id=("product_id", "first"),
            quantity=("quantity", "sum"),
            revenue=("revenue", "sum"),
            name=("name", "first"),
        )
        .reset_index()
        .sort_values(["quantity", "revenue"], ascending=[False, False])
        .head(limit)
    )

    names = {p["id"]: p["name"] for p in products}
    result = []
    for row in grouped.itertuples(index=False):
        product_id = int(row.product_id)
        live_name = names.get(product_id)
        result.append({
            "id": product_id if product_id >= 0 else None,
            "name": live_name or row.name or "Unknown Product",
            "quantity": int(row.quantity),
            "revenue": round(float(row.revenue), 2),
        })
    return result


def low_stock_products(products: List[Row], threshold: int = 5, limit: int = 5) -> List[Row]:
    low = [p for p in products if int(p.get("stock") or 0) <= threshold]
    return sorted(low, key=lambda p: int(p.get("stock") or 0))[:limit]


def _matches(product: Row, search: Optional[str]) -> bool:
    if not search:
        return True
    term = search.lower()
    return (
        term in (product.get("name") or "").lower()
        or term in (product.get("category") or "").lower()
        or term in str(product.get("id"))
    )


def inventory_alerts(
    products: List[Row],
    today: Optional[date] = None,
    window_days: int = 30,
    search: Optional[str] = None,
) -> Dict[str, List[Row]]:
    """Out of stock, already expired, and expiring within ``window_days``."""
    today = today or date.today()
    horizon = today + timedelta(days=window_days)

    out_of_stock, expired, expiring_soon = [], [], []
    for product in products:
        if not _matches(product, search):
            continue

        if int(product.get("stock") or 0) <= 0:
            out_of_stock.append(product)

        expiry = _as_date(product.get("expiry_date"))
        if expiry is None:
            continue
        if expiry <= today:
            expired.append(product)
        elif expiry <= horizon:
            expiring_soon.append({**product, "days_until_expiry": (expiry - today).days})

    return {
        "out_of_stock": out_of_stock,
        "expired": expired,
        "expiring_soon": expiring_soon,
    }
