import atexit
import logging

from flask import Flask, flash, get_flashed_messages, redirect, request, session, url_for
from werkzeug.middleware.proxy_fix import ProxyFix

from after_sales import after_sales_bp, build_service
from api import api_bp
from auth import verify_credentials
from config import Config, configure_logging, load_users
from ui import create_page_template, flash_html

logger = logging.getLogger(__name__)


def create_app(config_object=None, service=None) -> Flask:
    """Build the Flask app and its after-sales service (constructed once, held in app.extensions)."""
    config_object = config_object or Config
    if not getattr(config_object, "TESTING", False):
        configure_logging()

    app = Flask(__name__)
    # Respect reverse proxies (needed for correct scheme/host)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)
    app.config.from_object(config_object)

    if not app.config.get("SECRET_KEY"):
        raise ValueError("SECRET_KEY environment variable is not set!")
    if not app.config.get("JWT_SECRET"):
        app.config["JWT_SECRET"] = app.config["SECRET_KEY"]
    if "USERS_DICT" not in app.config:
        app.config["USERS_DICT"] = load_users()
    if not app.config["USERS_DICT"]:
        app.logger.warning("No staff users configured (expected USERX=username:hashed_password entries)")

    if service is None:
        service = build_service(app.config)
    app.extensions["after_sales"] = service

    app.register_blueprint(after_sales_bp)
    app.register_blueprint(api_bp)

    # ---------------- Authentication ----------------
    @app.route("/login", methods=["GET", "POST"])
    def login():
        if request.method == "POST":
            uname = request.form.get("username", "").strip()
            pwd = request.form.get("password", "")

            if not uname or not pwd:
                flash("Please enter both username and password.", 'error')
            elif verify_credentials(uname, pwd):
                session.clear()
                session['user'] = uname
                session.permanent = True  # Make session permanent with timeout
                app.logger.info(f"User {uname} logged in successfully")
                return redirect(url_for("after_sales.after_sales_page"))
            else:
                flash("Invalid credentials. Please try again.", 'error')

        message_html = flash_html(get_flashed_messages(with_categories=True))
        body = f"""
            <div class="login-header">
                <h2>🧾 After Sales Desk</h2>
                <p>Please login to continue</p>
            </div>
            {message_html}
            <form method="POST" id="loginForm">
                <div class="form-group">
                    <label for="username">👤 Username</label>
                    <input type="text" id="username" name="username" required autocomplete="username">
                </div>
                <div class="form-group">
                    <label for="password">🔒 Password</label>
                    <input type="password" id="password" name="password" required autocomplete="current-password">
                </div>
                <button type="submit" class="btn btn-primary" style="width: 100%;">✨ Login</button>
            </form>
        """
        return create_page_template("Login", body, is_card=True)

    @app.route("/logout")
    def logout():
        uname = session.get("user")
        if uname:
            app.logger.info(f"User {uname} logged out")
        session.clear()
        flash("You have been logged out successfully.", 'success')
        return redirect(url_for("login"))

    @app.route("/")
    def index():
        return redirect(url_for("after_sales.after_sales_page"))

    @app.route("/favicon.ico")
    def favicon():
        return ("", 204)

    if app.config.get("AFTER_SALES_AUTOSTART"):
        result = service.start()
        if not result.ok:
            app.logger.warning(f"Initial completed-orders load failed: {result.reason}")
        atexit.register(service.stop)

    return app
