# ================================
# after_sales.py - Completed orders screen (service + pages)
# ================================
import logging
import threading
from typing import Any, Dict, Mapping, Optional

from flask import Blueprint, current_app, jsonify, request, session
from markupsafe import escape

from auth import login_required
from db_utils import get_database_url, init_schema
from filter_sort import FilterSort, SortMode, normalize_filters
from order_feed import LoadResult, OrderFeed, OrderRecord, SqlOrderSource, SupabaseOrderSource
from realtime_bridge import RealtimeBridge
from supabase_utils import (
    create_async_supabase_client,
    get_supabase_client,
    is_configured,
    log_data_source_startup,
)
from table_renderer import TableRenderer
from ui import create_page_template

logger = logging.getLogger(__name__)

after_sales_bp = Blueprint('after_sales', __name__, url_prefix='/after-sales')

SESSION_FILTERS_KEY = "after_sales_filters"

SORT_LABELS = {
    SortMode.NEWEST: "Newest First",
    SortMode.OLDEST: "Oldest First",
    SortMode.ITEM_POPULAR: "Most Popular Items",
    SortMode.COLOR_POPULAR: "Most Popular Colors",
    SortMode.PRICE_HIGH: "Price: High to Low",
    SortMode.PRICE_LOW: "Price: Low to High",
}


class AfterSalesService:
    """Wires feed -> filter/sort -> renderer, plus the optional realtime bridge.

    Built once per application and kept in ``app.extensions``.
    """

    def __init__(self, feed: OrderFeed, renderer: TableRenderer, bridge: Optional[RealtimeBridge] = None):
        self.feed = feed
        self.renderer = renderer
        self.bridge = bridge
        self._version = 0
        self._version_lock = threading.Lock()
        feed.add_listener(self._on_orders_replaced)

    def _on_orders_replaced(self, orders) -> None:
        with self._version_lock:
            self._version += 1

    @property
    def version(self) -> int:
        return self._version

    @property
    def last_result(self) -> Optional[LoadResult]:
        return self.feed.last_result

    def start(self) -> LoadResult:
        result = self.feed.load()
        if self.bridge is not None:
            self.bridge.start()
        return result

    def stop(self) -> None:
        if self.bridge is not None:
            self.bridge.stop()

    def reload(self) -> LoadResult:
        return self.feed.load()

    def view(self, filters: Optional[Mapping[str, str]] = None) -> FilterSort:
        return FilterSort(self.feed.orders, filters)

    def render(self, filter_sort: FilterSort) -> str:
        return self.renderer.render(filter_sort.get_view(), filter_sort.has_active_filters)

    def add_order(self, row: Mapping[str, Any]) -> OrderRecord:
        return self.feed.add_raw(row)

    def status(self) -> Dict[str, Any]:
        result = self.last_result
        return {
            "version": self.version,
            "loaded": result is not None,
            "ok": result.ok if result is not None else None,
            "reason": result.reason if result is not None else None,
            "used_fallback": result.used_fallback if result is not None else False,
            "realtime": bool(self.bridge and self.bridge.is_subscribed),
        }


def build_service(config: Mapping[str, Any]) -> AfterSalesService:
    url = config.get("SUPABASE_URL")
    key = config.get("SUPABASE_KEY")
    database_url = get_database_url(default_sqlite_db_file=config["DATABASE_FILE"])
    log_data_source_startup(url, key, database_url)

    bridge = None
    if is_configured(url, key):
        source = SupabaseOrderSource(get_supabase_client(url, key))
    else:
        try:
            init_schema(default_sqlite_db_file=config["DATABASE_FILE"], database_url=database_url)
        except Exception as e:
            logger.error(f"DB init error: {e}")
        source = SqlOrderSource(default_sqlite_db_file=config["DATABASE_FILE"], database_url=database_url)

    feed = OrderFeed(source)
    if is_configured(url, key) and config.get("REALTIME_ENABLED"):
        bridge = RealtimeBridge(
            lambda: create_async_supabase_client(url, key),
            feed.load,
            channel_name=config.get("REALTIME_CHANNEL") or "orders-completed-changes",
            timeout=config.get("REALTIME_SUBSCRIBE_TIMEOUT") or 15,
        )
    elif config.get("REALTIME_ENABLED"):
        logger.info("Realtime: disabled (Supabase not configured); use manual reload or restart to refresh.")

    return AfterSalesService(feed, TableRenderer(currency=config.get("CURRENCY_CODE") or "KES"), bridge)


def get_service() -> AfterSalesService:
    return current_app.extensions["after_sales"]


# ---------------- Session-scoped filter state ----------------
def _session_filters() -> Dict[str, str]:
    try:
        return normalize_filters(session.get(SESSION_FILTERS_KEY))
    except ValueError:
        logger.warning("Discarding invalid after-sales filters stored in session")
        return normalize_filters(None)


def _rows_payload(service: AfterSalesService, filter_sort: FilterSort) -> Dict[str, Any]:
    view = filter_sort.get_view()
    return {
        "html": service.renderer.render(view, filter_sort.has_active_filters),
        "count": len(view),
        "version": service.version,
        "filters": filter_sort.get_filters(),
        "item_options": service.feed.item_options,
        "color_options": service.feed.color_options,
        "status": service.status(),
    }


def _options_html(options, selected: str, all_label: str) -> str:
    html = f'<option value="">{all_label}</option>'
    for value in options:
        mark = " selected" if value == selected else ""
        html += f'<option value="{escape(value)}"{mark}>{escape(value)}</option>'
    return html


AFTER_SALES_JS = """
<script>
(function () {
    var root = document.getElementById('afterSalesRoot');
    var tableBody = document.getElementById('afterSalesTableBody');
    var version = parseInt(root.getAttribute('data-version'), 10) || 0;
    var pollSeconds = parseInt(root.getAttribute('data-poll-seconds'), 10) || 5;

    function fillOptions(select, options, allLabel) {
        if (!select) return;
        var current = select.value;
        select.innerHTML = '';
        var all = document.createElement('option');
        all.value = ''; all.textContent = allLabel;
        select.appendChild(all);
        options.forEach(function (value) {
            var opt = document.createElement('option');
            opt.value = value; opt.textContent = value;
            if (value === current) opt.selected = true;
            select.appendChild(opt);
        });
    }

    function apply(payload) {
        tableBody.innerHTML = payload.html;
        version = payload.version;
        document.getElementById('afterSalesCount').textContent = payload.count;
        fillOptions(document.getElementById('itemFilter'), payload.item_options, 'All Items');
        fillOptions(document.getElementById('colorFilter'), payload.color_options, 'All Colors');
        var banner = document.getElementById('loadBanner');
        if (banner) banner.style.display = (payload.status && payload.status.ok === false) ? 'block' : 'none';
    }

    function setFilter(field, value) {
        var body = new URLSearchParams();
        body.append('field', field);
        body.append('value', value);
        fetch('/after-sales/filters', { method: 'POST', body: body, credentials: 'same-origin' })
            .then(function (r) { return r.json(); })
            .then(function (res) { if (res.success) apply(res.data); });
    }

    [['dateFilter', 'date'], ['itemFilter', 'item'], ['colorFilter', 'color'], ['sortFilter', 'sort']].forEach(function (pair) {
        var el = document.getElementById(pair[0]);
        if (el) el.addEventListener('change', function (e) { setFilter(pair[1], e.target.value); });
    });

    var searchInput = document.getElementById('afterSalesSearchInput');
    var clearSearchBtn = document.getElementById('clearSearchBtn');
    var searchTimeout;
    if (searchInput) {
        searchInput.addEventListener('input', function (e) {
            clearTimeout(searchTimeout);
            var term = e.target.value.trim();
            if (clearSearchBtn) clearSearchBtn.style.display = term ? 'inline-block' : 'none';
            searchTimeout = setTimeout(function () { setFilter('search', term); }, 300);
        });
    }
    if (clearSearchBtn) {
        clearSearchBtn.addEventListener('click', function () {
            searchInput.value = '';
            clearSearchBtn.style.display = 'none';
            setFilter('search', '');
            searchInput.focus();
        });
    }

    tableBody.addEventListener('click', function (e) {
        var row = e.target.closest('.order-row');
        if (!row) return;
        var details = document.getElementById('order-' + row.getAttribute('data-order-id') + '-details');
        if (!details) return;
        var expanded = details.style.display !== 'none';
        tableBody.querySelectorAll('.order-details-row').forEach(function (d) { d.style.display = 'none'; });
        tableBody.querySelectorAll('.order-row').forEach(function (r) { r.classList.remove('expanded'); });
        if (!expanded) { details.style.display = 'table-row'; row.classList.add('expanded'); }
    });

    setInterval(function () {
        fetch('/after-sales/rows?since=' + version, { credentials: 'same-origin' })
            .then(function (r) { return r.status === 200 ? r.json() : null; })
            .then(function (res) { if (res && res.success) apply(res.data); });
    }, pollSeconds * 1000);
})();
</script>
"""


# ---------------- Pages ----------------
@after_sales_bp.route('', methods=['GET'])
@login_required
def after_sales_page():
    service = get_service()
    filter_sort = service.view(_session_filters())
    filters = filter_sort.get_filters()
    view = filter_sort.get_view()
    status = service.status()

    sort_options = "".join(
        f'<option value="{mode.value}"{" selected" if filters["sort"] == mode.value else ""}>{label}</option>'
        for mode, label in SORT_LABELS.items()
    )
    banner_style = "block" if status["ok"] is False else "none"
    search_value = escape(filters["search"])

    body = f"""
    <div class="header">
        <h1>🧾 After Sales</h1>
        <p>Completed orders, refreshed automatically when orders change</p>
        <div class="nav-links">
            <a href="/after-sales" class="btn btn-secondary">🔄 Refresh</a>
            <a href="/logout" class="btn btn-secondary">🚪 Logout</a>
        </div>
    </div>
    <div class="main" id="afterSalesRoot" data-version="{service.version}"
         data-poll-seconds="{current_app.config.get('POLL_INTERVAL_SECONDS', 5)}">
        <div id="loadBanner" class="alert alert-warning" style="display: {banner_style};">
            ⚠️ Completed orders could not be loaded. The list below may be empty or out of date.
        </div>
        <div class="search-row">
            <input type="text" id="afterSalesSearchInput" placeholder="Search customer, phone, item, color, date..."
                   value="{search_value}">
            <button type="button" id="clearSearchBtn" class="btn btn-primary"
                    style="display: {"inline-block" if filters["search"] else "none"};">✖ Clear</button>
        </div>
        <div class="filters">
            <input type="date" id="dateFilter" value="{escape(filters["date"])}">
            <select id="itemFilter">{_options_html(service.feed.item_options, filters["item"], "All Items")}</select>
            <select id="colorFilter">{_options_html(service.feed.color_options, filters["color"], "All Colors")}</select>
            <select id="sortFilter">{sort_options}</select>
        </div>
        <table>
            <thead><tr><th>Customer</th><th>Phone</th><th>Item</th><th>Color</th><th>Price</th><th>Date</th></tr></thead>
            <tbody id="afterSalesTableBody">{service.renderer.render(view, filter_sort.has_active_filters)}</tbody>
        </table>
        <p class="meta"><span id="afterSalesCount">{len(view)}</span> orders shown</p>
    </div>
    {AFTER_SALES_JS}
    """
    return create_page_template("After Sales", body, is_container=True)


@after_sales_bp.route('/filters', methods=['POST'])
@login_required
def update_filter():
    payload = request.get_json(silent=True) or request.form
    if not isinstance(payload, Mapping):
        return jsonify({"success": False, "error": "Expected an object with 'field' and 'value'"}), 400
    field = str(payload.get("field") or "").strip()
    value = payload.get("value")

    service = get_service()
    filter_sort = service.view(_session_filters())
    try:
        filter_sort.set_filter(field, value)
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    session[SESSION_FILTERS_KEY] = filter_sort.get_filters()
    return jsonify({"success": True, "data": _rows_payload(service, filter_sort)})


@after_sales_bp.route('/rows', methods=['GET'])
@login_required
def rows():
    service = get_service()
    since = request.args.get("since", type=int)
    if since is not None and since == service.version:
        return ("", 204)

    filter_sort = service.view(_session_filters())
    return jsonify({"success": True, "data": _rows_payload(service, filter_sort)})


@after_sales_bp.route('/reload', methods=['POST'])
@login_required
def reload_orders():
    service = get_service()
    result = service.reload()
    filter_sort = service.view(_session_filters())
    body = {"success": result.ok, "data": _rows_payload(service, filter_sort)}
    if not result.ok:
        body["error"] = "Completed orders could not be loaded"
    return jsonify(body)
