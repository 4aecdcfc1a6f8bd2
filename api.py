# ================================
# api.py - REST API Endpoints
# ================================
from typing import List

from flask import Blueprint, current_app, jsonify, request

from after_sales import get_service
from auth import issue_token, token_required, verify_credentials
from filter_sort import SortMode

api_bp = Blueprint('api', __name__, url_prefix='/api/v1')


def _cors_allowed_origins() -> List[str]:
    raw = (current_app.config.get("CORS_ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return ["*"]
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    return parts or ["*"]


@api_bp.before_request
def _cors_preflight():
    # Handle browser preflight requests.
    if request.method == "OPTIONS":
        return ("", 204)


@api_bp.after_request
def _cors_after(resp):
    origin = request.headers.get("Origin")
    if not origin:
        return resp

    allowed = _cors_allowed_origins()
    if "*" in allowed:
        resp.headers["Access-Control-Allow-Origin"] = "*"
    elif origin in allowed:
        resp.headers["Access-Control-Allow-Origin"] = origin
        resp.headers["Vary"] = "Origin"
    else:
        return resp

    resp.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
    resp.headers["Access-Control-Allow-Headers"] = "Authorization,Content-Type"
    resp.headers["Access-Control-Max-Age"] = "86400"
    return resp


# ==================== Auth ====================
@api_bp.route("/auth/login", methods=["POST"])
def auth_login():
    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""

    if not username or not password:
        return jsonify({"success": False, "error": "Username and password required"}), 400

    if not verify_credentials(username, password):
        current_app.logger.info(f"API login rejected for user {username}")
        return jsonify({"success": False, "error": "Invalid credentials"}), 401

    token, exp = issue_token(
        username,
        current_app.config["JWT_SECRET"],
        current_app.config.get("JWT_EXPIRES_SECONDS", 8 * 60 * 60),
    )
    return jsonify(
        {
            "success": True,
            "data": {
                "token": token,
                "token_type": "Bearer",
                "expires_at": exp.isoformat(),
                "username": username,
            },
        }
    )


@api_bp.route("/auth/me", methods=["GET"])
@token_required
def auth_me(current_user):
    return jsonify({"success": True, "data": {"username": current_user}})


# ==================== After Sales ====================
@api_bp.route("/after-sales/orders", methods=["GET"])
@token_required
def after_sales_orders(current_user):
    service = get_service()
    filters = {key: request.args.get(key, "") for key in ("date", "item", "color", "sort", "search")}
    try:
        filter_sort = service.view(filters)
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    view = filter_sort.get_view()
    return jsonify(
        {
            "success": True,
            "data": {
                "orders": [o.to_dict() for o in view],
                "count": len(view),
                "filters": filter_sort.get_filters(),
                "status": service.status(),
            },
        }
    )


@api_bp.route("/after-sales/options", methods=["GET"])
@token_required
def after_sales_options(current_user):
    service = get_service()
    return jsonify(
        {
            "success": True,
            "data": {
                "items": service.feed.item_options,
                "colors": service.feed.color_options,
                "sort_modes": [m.value for m in SortMode],
            },
        }
    )


@api_bp.route("/after-sales/orders", methods=["POST"])
@token_required
def after_sales_add_order(current_user):
    """Show a just-completed order immediately; the next reload replaces it with server state."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not payload:
        return jsonify({"success": False, "error": "Order payload must be a JSON object"}), 400

    record = get_service().add_order(payload)
    current_app.logger.info(f"User {current_user} added completed order {record.id} to after sales")
    return jsonify({"success": True, "data": record.to_dict()}), 201


@api_bp.route("/after-sales/reload", methods=["POST"])
@token_required
def after_sales_reload(current_user):
    service = get_service()
    result = service.reload()
    if not result.ok:
        return jsonify({"success": False, "error": result.reason, "data": service.status()}), 503
    return jsonify({"success": True, "data": service.status()})
