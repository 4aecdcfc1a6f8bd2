# ================================
# auth.py - Staff credentials, session guard and signed API tokens
# ================================
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional, Tuple

import bcrypt
import jwt
from flask import current_app, flash, jsonify, redirect, request, session, url_for

JWT_ALGORITHM = "HS256"


def _truncate_bcrypt_password(password: str) -> bytes:
    # bcrypt uses only first 72 bytes.
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_truncate_bcrypt_password(password), bcrypt.gensalt()).decode("utf-8")


def check_password(hashed: str, password: str) -> bool:
    try:
        return bcrypt.checkpw(_truncate_bcrypt_password(password), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the environment.
        return False


def verify_credentials(username: str, password: str) -> bool:
    users = current_app.config.get("USERS_DICT") or {}
    hashed = users.get(username)
    return bool(hashed) and check_password(hashed, password)


def issue_token(username: str, secret: str, expires_seconds: int) -> Tuple[str, datetime]:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(seconds=expires_seconds)
    token = jwt.encode(
        {
            "username": username,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        },
        secret,
        algorithm=JWT_ALGORITHM,
    )
    return token, exp


def decode_token(token: str, secret: str) -> dict:
    """Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError."""
    return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])


def _bearer_token() -> Optional[str]:
    auth_header = request.headers.get("Authorization") or ""
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return None


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()

        if not token:
            return jsonify({'success': False, 'error': 'Token is missing', 'code': 'AUTH_REQUIRED'}), 401

        try:
            data = decode_token(token, current_app.config["JWT_SECRET"])
        except jwt.ExpiredSignatureError:
            return jsonify({'success': False, 'error': 'Token expired', 'code': 'TOKEN_EXPIRED'}), 401
        except jwt.InvalidTokenError:
            return jsonify({'success': False, 'error': 'Invalid token', 'code': 'INVALID_TOKEN'}), 401

        current_user = data.get('username')
        if not current_user or current_user not in (current_app.config.get("USERS_DICT") or {}):
            return jsonify({'success': False, 'error': 'Invalid token', 'code': 'INVALID_TOKEN'}), 401

        return f(current_user, *args, **kwargs)
    return decorated


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if "user" not in session:
            flash("Please login to access this page.", "error")
            return redirect(url_for("login"))
        if session["user"] not in (current_app.config.get("USERS_DICT") or {}):
            session.clear()
            flash("User account not found. Please contact administrator.", "error")
            return redirect(url_for("login"))
        return f(*args, **kwargs)
    return decorated_function
