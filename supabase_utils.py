"""
Supabase Utility Module

Creates Supabase clients (sync for PostgREST queries, async for Realtime),
reports the configured key role at start-up and classifies errors raised by
the client so callers can decide between a fallback query and giving up.
"""
import base64
import json
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)


def is_configured(url: Optional[str], key: Optional[str]) -> bool:
    """Check if a Supabase project is configured."""
    return bool((url or "").strip() and (key or "").strip())


def get_supabase_client(url: str, key: str):
    """Get a sync Supabase client instance."""
    from supabase import create_client

    if not is_configured(url, key):
        raise ValueError("SUPABASE_URL and SUPABASE_KEY (or SUPABASE_SERVICE_ROLE_KEY) must be set")
    return create_client(url, key)


async def create_async_supabase_client(url: str, key: str):
    """Get an async Supabase client instance (Realtime needs the async client)."""
    from supabase import acreate_client

    if not is_configured(url, key):
        raise ValueError("SUPABASE_URL and SUPABASE_KEY (or SUPABASE_SERVICE_ROLE_KEY) must be set")
    return await acreate_client(url, key)


def _decode_jwt_payload(token: str) -> Optional[dict]:
    if not token or token.count(".") != 2:
        return None

    payload_b64 = token.split(".")[1]
    # Base64url without padding -> add padding back.
    payload_b64 += "=" * ((4 - (len(payload_b64) % 4)) % 4)
    try:
        raw = base64.urlsafe_b64decode(payload_b64.encode("utf-8"))
        return json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None


def supabase_key_role(key: Optional[str]) -> str:
    payload = _decode_jwt_payload(key or "")
    role = (payload or {}).get("role")
    if isinstance(role, str) and role.strip():
        return role.strip()
    return "unknown"


def log_data_source_startup(url: Optional[str], key: Optional[str], database_url: str) -> None:
    """
    Emit a safe start-up log for the orders data source.

    Never logs secrets; only whether they are set and which role the key carries.
    """
    if not is_configured(url, key):
        logger.info("Orders: local SQL mode (Supabase not fully configured).")
        logger.info(
            "Orders: SUPABASE_URL set=%s, SUPABASE_KEY set=%s, database=%s",
            bool((url or "").strip()),
            bool((key or "").strip()),
            database_url.split("@")[-1],
        )
        return

    role = supabase_key_role(key)
    logger.info("Orders: Supabase mode enabled (key_role='%s').", role)
    if role not in ("service_role", "unknown"):
        logger.warning(
            "Orders: SUPABASE_KEY is not a service_role key (detected key_role='%s'). "
            "Row level security may hide completed orders from this service.",
            role,
        )


def _extract_status_code(exc: Exception) -> Optional[int]:
    for attr in ("status_code", "status", "statusCode"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())

    response = getattr(exc, "response", None)
    if response is not None:
        for attr in ("status_code", "status"):
            value = getattr(response, attr, None)
            if isinstance(value, int):
                return value
            if isinstance(value, str) and value.strip().isdigit():
                return int(value.strip())

    # Sometimes the error payload is stored in args as a dict.
    for arg in getattr(exc, "args", []):
        if isinstance(arg, dict):
            for key in ("status_code", "status", "statusCode"):
                value = arg.get(key)
                if isinstance(value, int):
                    return value
                if isinstance(value, str) and value.strip().isdigit():
                    return int(value.strip())

    msg = str(exc) or ""
    m = re.search(r"\b(401|403|404)\b", msg)
    if m:
        return int(m.group(1))

    return None


def error_text(exc: Exception) -> str:
    """Flatten message, hint and details of a PostgREST / DB error into one string."""
    parts = [str(exc) or ""]
    for attr in ("message", "hint", "details"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value:
            parts.append(value)
    for arg in getattr(exc, "args", []):
        if isinstance(arg, dict):
            parts.extend(str(arg.get(k)) for k in ("message", "hint", "details") if arg.get(k))
    return " ".join(parts)


def mentions_column(exc: Exception, column: str) -> bool:
    return column.lower() in error_text(exc).lower()


def classify_error(exc: Exception) -> str:
    status = _extract_status_code(exc)
    msg = error_text(exc).lower()

    permission_markers = (
        "unauthorized",
        "forbidden",
        "not authorized",
        "permission denied",
        "insufficient permissions",
        "rls",
        "jwt",
        "invalid api key",
    )
    not_found_markers = (
        "not found",
        "no such table",
        "does not exist",
    )

    if status in (401, 403) or any(m in msg for m in permission_markers):
        return "permission"
    if "column" in msg:
        return "missing_column"
    if status == 404 or any(m in msg for m in not_found_markers):
        return "not_found"

    return "unknown"
