from order_feed import OrderItem, OrderRecord
from table_renderer import TableRenderer, format_price


def test_format_price():
    assert format_price(1200) == "KES 1,200"
    assert format_price(0) == "KES 0"
    assert format_price(None) == "KES 0"
    assert format_price(99.5, "USD") == "USD 99.50"


def test_render_single_item_row():
    order = OrderRecord(
        id=12,
        customer_name="Amina",
        phone="",
        item_name="Linen Shirt",
        color="Navy",
        price=2500,
        date="2024-01-05",
        items=[OrderItem(product_name="Linen Shirt", color="Navy", price=2500, measurements={"size": "M"})],
    )

    html = TableRenderer().render([order])

    assert 'data-order-id="12"' in html
    assert 'id="order-12-details"' in html
    assert "<td>N/A</td>" in html
    assert "KES 2,500" in html
    assert "1 Item<" in html
    assert "Size:" in html
    assert "items)" not in html


def test_render_multi_item_suffix():
    order = OrderRecord(
        id=3,
        item_name="Linen Shirt",
        items=[OrderItem(product_name="Linen Shirt"), OrderItem(product_name="Maxi Skirt")],
    )

    html = TableRenderer().render_order(order)

    assert "Linen Shirt (2 items)" in html
    assert "2 Items" in html


def test_render_escapes_user_text():
    order = OrderRecord(id=1, customer_name="<script>alert(1)</script>", items=[OrderItem()])

    html = TableRenderer().render([order])

    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_render_empty_states():
    renderer = TableRenderer()

    assert "No completed orders found" in renderer.render([])
    filtered = renderer.render([], has_active_filters=True)
    assert "No orders found matching your search/filters" in filtered
    assert "Try adjusting your search or filters" in filtered
