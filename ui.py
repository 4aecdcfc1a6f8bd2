# ================================
# ui.py - Shared page shell (theme CSS + base template)
# ================================
from markupsafe import escape

APP_TITLE = "After Sales Desk"

THEME_CSS = """
<style>
    *, *::before, *::after { margin: 0; padding: 0; box-sizing: border-box; }

    :root {
        --primary-color: #6366f1; --secondary-color: #8b5cf6;
        --header-bg: linear-gradient(135deg, #6366f1 0%, #8b5cf6 50%, #ec4899 100%);
        --bg-main: #fafbfc; --bg-card: #ffffff; --text-dark: #0f172a; --text-light: #ffffff;
        --text-muted: #64748b; --border-color: #e2e8f0; --shadow-color: rgba(99, 102, 241, 0.15);
        --success-bg: #dcfce7; --success-text: #166534; --error-bg: #fee2e2; --error-text: #dc2626;
        --warning-bg: #fef9c3; --warning-text: #854d0e;
        --gradient-accent: linear-gradient(135deg, rgba(99, 102, 241, 0.1), rgba(139, 92, 246, 0.1));
    }

    html { font-family: 'Inter', -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; }
    body { background: var(--bg-main); min-height: 100vh; color: var(--text-dark); padding: 1.5rem; }

    .container {
        background: var(--bg-card); border-radius: 24px; width: 100%; max-width: 1200px; margin: 0 auto;
        box-shadow: 0 20px 40px -12px var(--shadow-color); border: 1px solid var(--border-color); overflow: hidden;
    }
    .card {
        background: var(--bg-card); border-radius: 24px; max-width: 420px; margin: 4rem auto; padding: 2.5rem;
        box-shadow: 0 20px 40px -12px var(--shadow-color); border: 1px solid var(--border-color);
    }
    .header { background: var(--header-bg); color: var(--text-light); padding: 2rem; text-align: center; }
    .header p { opacity: 0.85; margin-top: 0.25rem; }
    .nav-links { margin-top: 1rem; display: flex; gap: 0.75rem; justify-content: center; flex-wrap: wrap; }
    .main { padding: 1.5rem 2rem 2rem; }

    .btn {
        display: inline-block; border: none; border-radius: 12px; padding: 0.6rem 1.2rem; font-weight: 600;
        text-decoration: none; cursor: pointer; font-size: 0.9rem;
    }
    .btn-primary { background: var(--primary-color); color: var(--text-light); }
    .btn-secondary { background: rgba(255, 255, 255, 0.15); color: var(--text-light); border: 1px solid rgba(255, 255, 255, 0.3); }

    .alert { padding: 0.75rem 1rem; border-radius: 12px; margin-bottom: 1rem; }
    .alert-error { background: var(--error-bg); color: var(--error-text); }
    .alert-success { background: var(--success-bg); color: var(--success-text); }
    .alert-warning { background: var(--warning-bg); color: var(--warning-text); }

    .form-group { margin-bottom: 1rem; }
    .form-group label { display: block; font-weight: 600; margin-bottom: 0.35rem; }
    input, select {
        width: 100%; padding: 0.6rem 0.75rem; border-radius: 10px; border: 1px solid var(--border-color);
        background: var(--bg-main); color: var(--text-dark); font-size: 0.9rem;
    }

    .filters { display: grid; grid-template-columns: repeat(auto-fit, minmax(170px, 1fr)); gap: 0.75rem; margin-bottom: 1rem; }
    .search-row { display: flex; gap: 0.5rem; margin-bottom: 1rem; }
    .search-row button { white-space: nowrap; }

    table { width: 100%; border-collapse: collapse; }
    th, td { padding: 0.75rem; text-align: left; border-bottom: 1px solid var(--border-color); font-size: 0.9rem; }
    thead { background: var(--gradient-accent); }
    .order-row:hover, .order-row.expanded { background: var(--gradient-accent); }
    .price-cell { font-weight: 600; white-space: nowrap; }
    .order-details-cell { background: var(--bg-main); }
    .order-details-header { display: flex; justify-content: space-between; margin-bottom: 0.5rem; }
    .order-item-detail { padding: 0.5rem 0; border-bottom: 1px dashed var(--border-color); }
    .item-header { display: flex; gap: 0.5rem; flex-wrap: wrap; }
    .item-price { margin-left: auto; font-weight: 600; }
    .item-measurements { margin-top: 0.35rem; font-size: 0.8rem; color: var(--text-muted); }
    .empty-message { font-size: 16px; font-weight: 500; color: var(--text-muted); }
    .empty-hint { font-size: 13px; opacity: 0.7; margin-top: 0.5rem; }
    .meta { color: var(--text-muted); font-size: 0.8rem; margin-top: 0.75rem; }
</style>
"""


def create_page_template(title, body_content, is_card=False, is_container=False):
    container_class = ""
    if is_card:
        container_class = "card"
    elif is_container:
        container_class = "container"

    return f"""
    <!doctype html>
    <html lang="en">
    <head>
      <meta charset="UTF-8"><meta name="viewport" content="width=device-width, initial-scale=1.0">
      <title>{escape(title)} - {APP_TITLE}</title>
      <link rel="preconnect" href="https://fonts.googleapis.com">
      <link rel="preconnect" href="https://fonts.gstatic.com" crossorigin>
      <link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700;800&display=swap" rel="stylesheet">
      {THEME_CSS}
    </head>
    <body><div class="{container_class}">{body_content}</div></body>
    </html>
    """


def flash_html(messages) -> str:
    return "".join(
        f'<div class="alert alert-{"error" if cat == "error" else "success"}">{escape(msg)}</div>'
        for cat, msg in messages
    )
