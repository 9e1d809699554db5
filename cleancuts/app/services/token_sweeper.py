"""
services/token_sweeper.py — Periodic deletion of dead refresh tokens.

The sweep removes Token Ledger records that are revoked or past expiry. It
runs on its own daemon thread at a fixed interval, independent of request
traffic, and shares no locks with request handling: it relies on the single
DELETE statement in token_ledger.delete_revoked_or_expired.

A failed run is logged and rolled back; the next tick tries again. Failures
never propagate into request handling.

Entry points:
  - sweep_refresh_tokens(session)   one pass, used by the CLI and tests
  - TokenSweeper(app).start()       background loop, started by wsgi.py
  - `flask sweep-tokens`            one pass from the command line
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from flask import Flask
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cleancuts.app.extensions import db
from cleancuts.app.services import token_ledger

logger = logging.getLogger(__name__)


def sweep_refresh_tokens(session: Session, now: datetime | None = None) -> int:
    """Deletes revoked or expired refresh tokens. Returns the number deleted."""
    return token_ledger.delete_revoked_or_expired(
        session,
        now=now or datetime.now(timezone.utc),
    )


class TokenSweeper:
    """Runs sweep_refresh_tokens every `interval` seconds on a daemon thread."""

    def __init__(self, app: Flask, interval: float | None = None) -> None:
        self._app = app
        self.interval = float(
            interval if interval is not None
            else app.config.get("TOKEN_SWEEP_INTERVAL_SECONDS", 60)
        )
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="cleancuts.token_sweeper",
            daemon=True,
        )
        self._thread.start()
        logger.info("Token sweeper started (every %.0fs)", self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run_once(self) -> int | None:
        """
        One sweep inside an application context.
        Returns the number of deleted records, or None if the run failed.
        """
        with self._app.app_context():
            try:
                deleted = sweep_refresh_tokens(db.session)
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                logger.exception("Refresh-token sweep failed; retrying next interval")
                return None
            finally:
                db.session.remove()

        logger.info("Deleted %d old refresh tokens", deleted)
        return deleted

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.run_once()
