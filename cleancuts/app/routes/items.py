"""
routes/items.py — Catalog route handlers.

Reads go through the app's TTL cache (app.extensions["catalog_cache"]):
a cached response is served as-is, otherwise the service is called and the
result stored. Every read response carries X-Cache: HIT or MISS.

Cache keys:
  items:all         → sectioned catalog
  search:<query>    → search results, query trimmed and lower-cased
  item:<id>         → single item detail

Endpoints (url_prefix=/api):
  GET    /items               → 200
  GET    /items/search?q=     → 200
  GET    /items/:id           → 200
  POST   /items/clear-cache   → 200  (admin only)
"""

from __future__ import annotations

from typing import Any, Callable

from flask import Blueprint, current_app, jsonify, request

from cleancuts.app.extensions import db, limiter
from cleancuts.app.middleware.auth_middleware import require_admin
from cleancuts.app.middleware.rate_limit import limit_for
from cleancuts.app.services import catalog_service

items_bp = Blueprint("items", __name__)


def _cached(key: str, load: Callable[[], Any]):
    """Serves `key` from the catalog cache, calling `load` on a miss."""
    cache = current_app.extensions["catalog_cache"]
    result = cache.get(key)
    status = "HIT"
    if result is None:
        result = load()
        cache.set(key, result)
        status = "MISS"

    response = jsonify({"data": result, "warnings": []})
    response.headers["X-Cache"] = status
    return response, 200


@items_bp.route("/items", methods=["GET"])
@limiter.limit(limit_for("items"))
def list_items():
    """GET /items — All items grouped into category sections."""
    return _cached(
        "items:all",
        lambda: catalog_service.list_sections(session=db.session),
    )


@items_bp.route("/items/search", methods=["GET"])
@limiter.limit(limit_for("items"))
def search_items():
    """GET /items/search?q= — Substring search on name and description."""
    cfg = current_app.config
    query = request.args.get("q", "").strip()
    return _cached(
        f"search:{query.lower()}",
        lambda: catalog_service.search_items(
            query=query,
            session=db.session,
            min_length=cfg["SEARCH_MIN_LENGTH"],
            max_length=cfg["SEARCH_MAX_LENGTH"],
            limit=cfg["SEARCH_RESULT_LIMIT"],
        ),
    )


@items_bp.route("/items/<item_id>", methods=["GET"])
@limiter.limit(limit_for("items"))
def get_item(item_id: str):
    """GET /items/:id — One item. Non-integer id → 400, unknown → 404."""
    return _cached(
        f"item:{item_id}",
        lambda: catalog_service.get_item(raw_item_id=item_id, session=db.session),
    )


@items_bp.route("/items/clear-cache", methods=["POST"])
@require_admin
def clear_cache():
    """POST /items/clear-cache — Drop every cached catalog entry. Admin only."""
    cleared = current_app.extensions["catalog_cache"].clear()
    current_app.logger.info("Catalog cache cleared (%d entries)", cleared)
    return jsonify({"data": {"message": "Cache cleared.", "cleared": cleared}, "warnings": []}), 200
