"""WSGI entrypoint for Render / PythonAnywhere.

Exports both `app` and `application` so either gunicorn wsgi:app
or gunicorn wsgi:application works.
"""

from app import create_app

app = create_app()

# PythonAnywhere convention
application = app
