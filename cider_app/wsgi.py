from __future__ import annotations

# WSGI entry point for `gunicorn cider_app.wsgi:app`.
from cider_app.app import create_app


app = create_app()
