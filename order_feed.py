# ================================
# order_feed.py - Completed orders: query, normalize, hold
# ================================
import copy
import json
import logging
import re
import threading
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from db_utils import connect as db_connect
from supabase_utils import classify_error, mentions_column

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER = "Unknown Customer"
UNKNOWN_PRODUCT = "Unknown Product"
PLACEHOLDER_IMAGE = "https://via.placeholder.com/400"

COMPLETED_STATUS = "completed"
PRIMARY_ORDER_COLUMN = "completed_at"
FALLBACK_ORDER_COLUMN = "created_at"

ORDERS_SELECT = """
    *,
    customer_id,
    items,
    comments,
    customers (
        id,
        name,
        phone
    ),
    products (
        name,
        image_url
    )
"""

_IN_HOUSE_MEASUREMENTS = re.compile(
    r"Measurements:\s*Height=([^,\n\r]+?),\s*Bust=([^,\n\r]+?),\s*High\s+Waist=([^,\n\r]+?),\s*Hips=([^\n\r]+?)(?:\n|$)",
    re.IGNORECASE,
)
_STANDARD_MEASUREMENTS = re.compile(
    r"Measurements:\s*Size=([^,\n\r]+?),\s*Bust=([^,\n\r]+?),\s*Waist=([^,\n\r]+?),\s*Hips=([^\n\r]+?)(?:\n|$)",
    re.IGNORECASE,
)
_LOOSE_MEASUREMENTS = re.compile(
    r"Size=([^,\n\r]+?)[,\s]+Bust=([^,\n\r]+?)[,\s]+Waist=([^,\n\r]+?)[,\s]+Hips=([^\n\r]+?)(?:\n|$)",
    re.IGNORECASE,
)


@dataclass
class OrderItem:
    product_name: str = UNKNOWN_PRODUCT
    product_image: str = PLACEHOLDER_IMAGE
    color: str = ""
    price: float = 0
    measurements: Dict[str, str] = field(default_factory=dict)


@dataclass
class OrderRecord:
    id: Any = ""
    customer_name: str = UNKNOWN_CUSTOMER
    phone: str = ""
    item_name: str = UNKNOWN_PRODUCT
    color: str = ""
    price: float = 0
    date: str = ""
    items: List[OrderItem] = field(default_factory=list)
    measurements: Dict[str, str] = field(default_factory=dict)
    comments: str = ""

    def item_names(self) -> List[str]:
        if self.items:
            return [i.product_name for i in self.items if i.product_name]
        return [self.item_name] if self.item_name else []

    def colors(self) -> List[str]:
        if self.items:
            return [i.color for i in self.items if i.color]
        return [self.color] if self.color else []

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LoadResult:
    """Outcome of one load: the UI decides whether to show a degraded state."""

    ok: bool
    orders: List[OrderRecord] = field(default_factory=list)
    reason: Optional[str] = None
    used_fallback: bool = False


# ---------------- Normalization ----------------
def _to_iso_date(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value.isoformat()
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            # Fractional seconds of odd width are rejected on older interpreters; the date part is enough.
            try:
                return date.fromisoformat(raw[:10]).isoformat()
            except ValueError:
                return ""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date().isoformat()


def _to_price(value: Any) -> float:
    if value is None or value == "":
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number or number < 0:
        return 0
    return int(number) if number.is_integer() else number


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _relation(value: Any) -> Optional[Mapping]:
    """Embedded relations arrive as an object, a list, or not at all."""
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], Mapping):
        return value[0]
    return None


def parse_measurements(comments: str) -> Dict[str, str]:
    if not comments or "Measurements:" not in comments:
        return {}

    m = _IN_HOUSE_MEASUREMENTS.search(comments)
    if m:
        return {
            "height": m.group(1).strip(),
            "bust": m.group(2).strip(),
            "high_waist": m.group(3).strip(),
            "hips": m.group(4).strip(),
        }

    m = _STANDARD_MEASUREMENTS.search(comments) or _LOOSE_MEASUREMENTS.search(comments)
    if m:
        return {
            "size": m.group(1).strip(),
            "bust": m.group(2).strip(),
            "waist": m.group(3).strip(),
            "hips": m.group(4).strip(),
        }
    return {}


def _raw_items(order: Mapping) -> List[Mapping]:
    items = order.get("items")
    if isinstance(items, str):
        try:
            items = json.loads(items) if items.strip() else []
        except ValueError:
            logger.warning("Order %s has an unreadable items payload; using single item fallback", order.get("id"))
            items = []
    if not isinstance(items, (list, tuple)):
        return []
    return [i for i in items if isinstance(i, Mapping)]


def _customer(order: Mapping):
    customer_name = UNKNOWN_CUSTOMER
    customer_phone = ""
    customer_id = order.get("customer_id")

    relation = _relation(order.get("customers"))
    if relation is not None:
        customer_name = _text(relation.get("name")) or UNKNOWN_CUSTOMER
        customer_phone = _text(relation.get("phone"))

    if customer_name == UNKNOWN_CUSTOMER and customer_id:
        logger.warning("Order %s has customer_id %s but customer data not loaded", order.get("id"), customer_id)

    if customer_name == UNKNOWN_CUSTOMER and not customer_id and _text(order.get("customer_name")):
        customer_name = _text(order.get("customer_name"))

    if not customer_phone and not customer_id:
        customer_phone = _text(order.get("customer_phone")) or _text(order.get("phone"))
    elif not customer_phone and _text(order.get("customer_phone")):
        customer_phone = _text(order.get("customer_phone"))

    return customer_name, customer_phone


def transform_order(order: Mapping) -> OrderRecord:
    """Turn one joined order row into a fully populated display record."""
    date_str = _to_iso_date(order.get("completed_at") or order.get("created_at"))
    customer_name, customer_phone = _customer(order)

    comments = _text(order.get("comments")) or _text(order.get("notes"))
    measurements = parse_measurements(comments)

    product = _relation(order.get("products")) or {}
    product_name = _text(product.get("name")) or _text(order.get("product_name"))

    raw_items = _raw_items(order)
    if raw_items:
        items = [
            OrderItem(
                product_name=_text(i.get("product_name")) or UNKNOWN_PRODUCT,
                product_image=_text(i.get("product_image")) or PLACEHOLDER_IMAGE,
                color=_text(i.get("color")),
                price=_to_price(i.get("price")),
                measurements=dict(i.get("measurements") or {}) if isinstance(i.get("measurements"), Mapping) else {},
            )
            for i in raw_items
        ]
        total = sum(i.price for i in items)
        total_price = int(total) if float(total).is_integer() else total
    else:
        items = [
            OrderItem(
                product_name=product_name or UNKNOWN_PRODUCT,
                product_image=(
                    _text(product.get("image_url"))
                    or _text(order.get("product_image"))
                    or _text(order.get("image_url"))
                    or PLACEHOLDER_IMAGE
                ),
                color=_text(order.get("color")),
                price=_to_price(order.get("price")),
                measurements=measurements,
            )
        ]
        total_price = _to_price(order.get("price"))

    first = items[0]
    return OrderRecord(
        id=order.get("id") if order.get("id") is not None else "",
        customer_name=customer_name,
        phone=customer_phone,
        item_name=first.product_name or product_name or UNKNOWN_PRODUCT,
        color=first.color or _text(order.get("color")),
        price=total_price,
        date=date_str,
        items=items,
        measurements=measurements,
        comments=comments,
    )


# ---------------- Sources ----------------
class SupabaseOrderSource:
    """Completed orders through the PostgREST API of a Supabase project."""

    def __init__(self, client, table: str = "orders"):
        self._client = client
        self._table = table

    def fetch_completed(self, order_by: str) -> List[Mapping]:
        query = self._client.table(self._table).select(ORDERS_SELECT).eq("status", COMPLETED_STATUS)
        if order_by == PRIMARY_ORDER_COLUMN:
            query = query.order(order_by, desc=True, nullsfirst=False)
        else:
            query = query.order(order_by, desc=True)
        response = query.execute()
        return list(response.data or [])


class SqlOrderSource:
    """Completed orders from a plain SQL database (local SQLite or Postgres).

    Rows are reshaped into the nested shape PostgREST returns so both sources
    share one normalization path.
    """

    def __init__(self, *, default_sqlite_db_file: str, database_url: Optional[str] = None):
        self._db_file = default_sqlite_db_file
        self._database_url = database_url

    def fetch_completed(self, order_by: str) -> List[Mapping]:
        nulls = " NULLS LAST" if order_by == PRIMARY_ORDER_COLUMN else ""
        # order_by is one of two module constants, never user input.
        sql = f"""
            SELECT o.*,
                   c.id AS c_id, c.name AS c_name, c.phone AS c_phone,
                   p.name AS p_name, p.image_url AS p_image_url
            FROM orders o
            LEFT JOIN customers c ON c.id = o.customer_id
            LEFT JOIN products p ON p.id = o.product_id
            WHERE o.status = ?
            ORDER BY o.{order_by} DESC{nulls}
        """
        conn = db_connect(default_sqlite_db_file=self._db_file, database_url=self._database_url)
        try:
            rows = conn.execute(sql, (COMPLETED_STATUS,)).fetchall()
        finally:
            conn.close()
        return [self._reshape(dict(r)) for r in rows]

    @staticmethod
    def _reshape(row: Dict[str, Any]) -> Dict[str, Any]:
        c_id = row.pop("c_id", None)
        c_name = row.pop("c_name", None)
        c_phone = row.pop("c_phone", None)
        p_name = row.pop("p_name", None)
        p_image_url = row.pop("p_image_url", None)
        row["customers"] = {"id": c_id, "name": c_name, "phone": c_phone} if c_id is not None else None
        row["products"] = {"name": p_name, "image_url": p_image_url} if p_name is not None else None
        return row


# ---------------- Feed ----------------
class OrderFeed:
    """Single writer of the completed-orders list."""

    def __init__(self, source):
        self._source = source
        self._orders: List[OrderRecord] = []
        self._lock = threading.Lock()
        self._listeners: List[Callable[[List[OrderRecord]], None]] = []
        self.last_result: Optional[LoadResult] = None

    @property
    def orders(self) -> List[OrderRecord]:
        with self._lock:
            return copy.deepcopy(self._orders)

    @property
    def item_options(self) -> List[str]:
        return sorted({name for o in self.orders for name in o.item_names()})

    @property
    def color_options(self) -> List[str]:
        return sorted({color for o in self.orders for color in o.colors()})

    def add_listener(self, callback: Callable[[List[OrderRecord]], None]) -> None:
        self._listeners.append(callback)

    def _notify(self, orders: List[OrderRecord]) -> None:
        for callback in list(self._listeners):
            try:
                callback(copy.deepcopy(orders))
            except Exception:
                logger.exception("Order feed listener %r failed", callback)

    def _replace(self, orders: List[OrderRecord]) -> None:
        with self._lock:
            self._orders = list(orders)
        self._notify(orders)

    def load(self) -> LoadResult:
        used_fallback = False
        try:
            try:
                rows = self._source.fetch_completed(order_by=PRIMARY_ORDER_COLUMN)
            except Exception as e:
                if not mentions_column(e, PRIMARY_ORDER_COLUMN):
                    raise
                logger.warning(
                    "%s column not available, using %s for ordering", PRIMARY_ORDER_COLUMN, FALLBACK_ORDER_COLUMN
                )
                used_fallback = True
                rows = self._source.fetch_completed(order_by=FALLBACK_ORDER_COLUMN)
            orders = [transform_order(row) for row in rows]
        except Exception as e:
            category = classify_error(e)
            logger.error("Error loading completed orders (%s): %s", category, e)
            self.last_result = LoadResult(ok=False, orders=[], reason=f"{category}: {e}", used_fallback=used_fallback)
            self._replace([])
            return self.last_result

        logger.info("Loaded %s completed orders%s", len(orders), " (created_at ordering)" if used_fallback else "")
        self.last_result = LoadResult(ok=True, orders=copy.deepcopy(orders), used_fallback=used_fallback)
        self._replace(orders)
        return self.last_result

    def prepend(self, record: OrderRecord) -> None:
        """Optimistically show a locally completed order before the next reload."""
        with self._lock:
            self._orders.insert(0, record)
            snapshot = list(self._orders)
        self._notify(snapshot)

    def add_raw(self, row: Mapping) -> OrderRecord:
        record = transform_order(row)
        self.prepend(record)
        return record
