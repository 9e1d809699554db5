"""
wsgi.py — Process entry point.

    gunicorn cleancuts.wsgi:app
    flask --app cleancuts.wsgi run

Builds the app for FLASK_ENV (default "development") and starts the
background refresh-token sweep unless TOKEN_SWEEP_ENABLED is off. With
several worker processes each runs its own sweeper; the sweep is a single
DELETE, so overlapping runs are harmless.
"""

from __future__ import annotations

import os

from cleancuts.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))

if app.config.get("TOKEN_SWEEP_ENABLED"):
    app.extensions["token_sweeper"].start()
