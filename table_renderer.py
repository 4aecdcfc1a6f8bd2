# ================================
# table_renderer.py - Completed orders -> table body markup
# ================================
from typing import Iterable, Mapping

from markupsafe import escape

from order_feed import OrderItem, OrderRecord

DEFAULT_CURRENCY = "KES"


def format_price(value, currency: str = DEFAULT_CURRENCY) -> str:
    number = float(value or 0)
    if number.is_integer():
        return f"{currency} {int(number):,}"
    return f"{currency} {number:,.2f}"


def _label(key: str) -> str:
    return key.replace("_", " ").title()


def _measurements_html(measurements: Mapping[str, str]) -> str:
    entries = [
        f'<div class="measurement-item"><span class="measurement-label">{escape(_label(k))}:</span> '
        f'<span class="measurement-value">{escape(v)}</span></div>'
        for k, v in (measurements or {}).items()
        if v and v != "N/A"
    ]
    if not entries:
        return ""
    return '<div class="item-measurements"><div class="measurements-title">Measurements:</div>' + "".join(entries) + "</div>"


class TableRenderer:
    """Pure projection of a list of orders into <tr> rows; holds no state besides formatting options."""

    def __init__(self, currency: str = DEFAULT_CURRENCY, columns: int = 6):
        self.currency = currency
        self.columns = columns

    def _item_html(self, index: int, item: OrderItem) -> str:
        color = f"({escape(item.color)})" if item.color else ""
        return f"""
            <div class="order-item-detail">
                <div class="item-header">
                    <span class="item-number">{index}.</span>
                    <span class="item-name">{escape(item.product_name)}</span>
                    <span class="item-color">{color}</span>
                    <span class="item-price">{escape(format_price(item.price, self.currency))}</span>
                </div>
                {_measurements_html(item.measurements)}
            </div>"""

    def _empty_html(self, has_active_filters: bool) -> str:
        if has_active_filters:
            message = "No orders found matching your search/filters"
            hint = '<div class="empty-hint">Try adjusting your search or filters</div>'
        else:
            message = "No completed orders found"
            hint = ""
        return (
            f'<tr class="empty-row"><td colspan="{self.columns}" style="text-align: center; padding: 40px 20px;">'
            f'<div class="empty-message">{message}</div>{hint}</td></tr>'
        )

    def render_order(self, order: OrderRecord) -> str:
        row_id = f"order-{escape(order.id)}"
        item_count = len(order.items) if order.items else 1
        display_name = order.item_name
        if len(order.items) > 1:
            display_name = f"{order.item_name} ({len(order.items)} items)"

        items_html = "".join(self._item_html(i, item) for i, item in enumerate(order.items, start=1))
        return f"""
        <tr class="order-row" data-order-id="{escape(order.id)}" style="cursor: pointer;">
            <td>{escape(order.customer_name)}</td>
            <td>{escape(order.phone or "N/A")}</td>
            <td>{escape(display_name)}</td>
            <td>{escape(order.color)}</td>
            <td class="price-cell">{escape(format_price(order.price, self.currency))}</td>
            <td>{escape(order.date)}</td>
        </tr>
        <tr class="order-details-row" id="{row_id}-details" style="display: none;">
            <td colspan="{self.columns}" class="order-details-cell">
                <div class="order-details-content">
                    <div class="order-details-header">
                        <h4>Order Details</h4>
                        <span class="items-count">{item_count} {"Item" if item_count == 1 else "Items"}</span>
                    </div>
                    <div class="order-items-list">
                        {items_html or '<div class="no-items">No items found</div>'}
                    </div>
                </div>
            </td>
        </tr>"""

    def render(self, orders: Iterable[OrderRecord], has_active_filters: bool = False) -> str:
        orders = list(orders)
        if not orders:
            return self._empty_html(has_active_filters)
        return "".join(self.render_order(o) for o in orders)
