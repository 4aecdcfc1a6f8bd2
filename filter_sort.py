# ================================
# filter_sort.py - Filtered / sorted view over the completed orders
# ================================
import copy
from collections import Counter
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from order_feed import OrderRecord


class SortMode(str, Enum):
    NEWEST = "date"
    OLDEST = "date-oldest"
    ITEM_POPULAR = "item-popular"
    COLOR_POPULAR = "color-popular"
    PRICE_HIGH = "price-high"
    PRICE_LOW = "price-low"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortMode":
        raw = (value or "").strip()
        if not raw:
            return cls.NEWEST
        try:
            return cls(raw)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown sort mode '{raw}' (expected one of: {allowed})") from None


FILTER_FIELDS = ("date", "item", "color", "sort", "search")


def default_filters() -> Dict[str, str]:
    return {"date": "", "item": "", "color": "", "sort": SortMode.NEWEST.value, "search": ""}


def normalize_filters(values: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Fill gaps and validate; raises ValueError on an unknown sort mode."""
    filters = default_filters()
    for key in FILTER_FIELDS:
        value = (values or {}).get(key)
        if value is not None:
            filters[key] = str(value).strip()
    filters["sort"] = SortMode.parse(filters["sort"]).value
    filters["search"] = filters["search"].lower()
    return filters


def _matches_search(order: OrderRecord, term: str) -> bool:
    if term in order.customer_name.lower() or term in order.phone.lower():
        return True
    if any(term in name.lower() for name in order.item_names()):
        return True
    if any(term in color.lower() for color in order.colors()):
        return True
    if order.id not in (None, "") and term in str(order.id).lower():
        return True
    if order.price and term in str(order.price):
        return True
    return bool(order.date) and term in order.date.lower()


def _item_popularity(orders: List[OrderRecord]) -> List[OrderRecord]:
    counts = Counter(name for o in orders for name in o.item_names())
    return sorted(orders, key=lambda o: max((counts[n] for n in o.item_names()), default=0), reverse=True)


def _color_popularity(orders: List[OrderRecord]) -> List[OrderRecord]:
    # Items without a color count under the order's color.
    counts = Counter(
        color
        for o in orders
        for color in ([i.color or o.color for i in o.items] if o.items else [o.color])
        if color
    )

    def first_color(o: OrderRecord) -> str:
        return o.items[0].color if o.items else o.color

    return sorted(orders, key=lambda o: counts.get(first_color(o), 0), reverse=True)


def apply_filters(orders: Iterable[OrderRecord], filters: Mapping[str, str]) -> List[OrderRecord]:
    filtered = list(orders)

    search = filters.get("search") or ""
    if search:
        filtered = [o for o in filtered if _matches_search(o, search)]

    if filters.get("date"):
        filtered = [o for o in filtered if o.date == filters["date"]]

    if filters.get("item"):
        filtered = [o for o in filtered if filters["item"] in o.item_names()]

    if filters.get("color"):
        filtered = [o for o in filtered if filters["color"] in o.colors()]

    # sorted() is stable: ties keep their filtered order.
    mode = SortMode.parse(filters.get("sort"))
    if mode is SortMode.NEWEST:
        return sorted(filtered, key=lambda o: o.date, reverse=True)
    if mode is SortMode.OLDEST:
        return sorted(filtered, key=lambda o: o.date)
    if mode is SortMode.ITEM_POPULAR:
        return _item_popularity(filtered)
    if mode is SortMode.COLOR_POPULAR:
        return _color_popularity(filtered)
    if mode is SortMode.PRICE_HIGH:
        return sorted(filtered, key=lambda o: o.price, reverse=True)
    return sorted(filtered, key=lambda o: o.price)


class FilterSort:
    """Holds one filter selection and the view derived from it."""

    def __init__(self, orders: Optional[Iterable[OrderRecord]] = None, filters: Optional[Mapping[str, str]] = None):
        self._orders: List[OrderRecord] = list(orders or [])
        self._filters = normalize_filters(filters)
        self._view: List[OrderRecord] = []
        self._recompute()

    def _recompute(self) -> None:
        self._view = apply_filters(self._orders, self._filters)

    def set_orders(self, orders: Iterable[OrderRecord]) -> None:
        self._orders = list(orders)
        self._recompute()

    def set_filter(self, field: str, value: Any) -> None:
        if field not in FILTER_FIELDS:
            raise ValueError(f"Unknown filter field '{field}' (expected one of: {', '.join(FILTER_FIELDS)})")
        value = "" if value is None else str(value).strip()
        if field == "sort":
            value = SortMode.parse(value).value
        elif field == "search":
            value = value.lower()
        self._filters[field] = value
        self._recompute()

    def reset(self) -> None:
        self._filters = default_filters()
        self._recompute()

    def get_view(self) -> List[OrderRecord]:
        return copy.deepcopy(self._view)

    def get_filters(self) -> Dict[str, str]:
        return dict(self._filters)

    @property
    def has_active_filters(self) -> bool:
        return any(self._filters[k] for k in ("date", "item", "color", "search"))
