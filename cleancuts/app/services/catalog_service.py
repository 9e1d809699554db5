"""
services/catalog_service.py — Catalog browsing and search.

Read-only queries over the items table plus the shaping the storefront
expects: items grouped into category sections, image fallbacks, and a
bounded substring search. Caching is the route's concern; these functions
always hit the database.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
"""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from cleancuts.app.errors import AppError, ErrorCode
from cleancuts.app.models.item import Item

PLACEHOLDER_IMAGE = "/images/placeholder.png"
RAW_SECTION_IMAGE = "/images/raw.png"
COOKED_SECTION_IMAGE = "/images/cooked.png"
UNCATEGORIZED = "Uncategorized"


# ── Private helpers ────────────────────────────────────────────────────────

def _choose_image_url(img_url: str | None) -> str:
    return img_url if img_url else PLACEHOLDER_IMAGE


def _section_image(category: str) -> str:
    return RAW_SECTION_IMAGE if category == "Uncooked" else COOKED_SECTION_IMAGE


def _escape_like(term: str) -> str:
    """Escapes LIKE wildcards so user input matches literally."""
    return (
        term.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


def _build_item_dict(item: Item) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "desc": item.description,
        "longdesc": item.long_description,
        "img": _choose_image_url(item.img_url),
        "price": item.price,
        "oldprice": item.old_price,
        "protein_per_100g": item.protein_per_100g,
        "carbs_per_100g": item.carbs_per_100g,
        "calories_per_100g": item.calories_per_100g,
        "category": item.category,
    }


# ── Public service functions ───────────────────────────────────────────────

def list_sections(session: Session) -> list[dict]:
    """
    Returns every item grouped by category, in first-seen category order:
      [{"title": category, "image": "...", "articles": [item, ...]}, ...]
    """
    items = session.execute(select(Item).order_by(Item.id)).scalars().all()

    sections: dict[str, list[dict]] = {}
    for item in items:
        category = item.category or UNCATEGORIZED
        sections.setdefault(category, []).append(_build_item_dict(item))

    return [
        {
            "title": category,
            "image": _section_image(category),
            "articles": articles,
        }
        for category, articles in sections.items()
    ]


def search_items(
        query: str,
        session: Session,
        min_length: int = 2,
        max_length: int = 80,
        limit: int = 20,
) -> list[dict]:
    """
    Case-insensitive substring search on name and description.

    A query shorter than min_length (after trimming) returns no results.

    Raises:
      AppError(SEARCH_QUERY_TOO_LONG, 400) — longer than max_length.
    """
    term = (query or "").strip()
    if len(term) < min_length:
        return []
    if len(term) > max_length:
        raise AppError(
            ErrorCode.SEARCH_QUERY_TOO_LONG,
            "Search query too long.",
            400,
            field="q",
        )

    pattern = f"%{_escape_like(term)}%"
    rows = session.execute(
        select(Item)
        .where(
            or_(
                Item.name.ilike(pattern, escape="\\"),
                Item.description.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Item.name, Item.id)
        .limit(limit)
    ).scalars().all()

    return [
        {
            "id": item.id,
            "name": item.name,
            "price": item.price,
            "img": _choose_image_url(item.img_url),
            "desc": item.description or "",
        }
        for item in rows
    ]


def get_item(raw_item_id: str, session: Session) -> dict:
    """
    Raises:
      AppError(INVALID_ITEM_ID, 400) — id is not a positive integer.
      AppError(ITEM_NOT_FOUND, 404)  — no such item.
    """
    item = get_item_or_404(raw_item_id, session)
    return _build_item_dict(item)


def get_item_or_404(raw_item_id, session: Session) -> Item:
    try:
        item_id = int(raw_item_id)
    except (TypeError, ValueError):
        item_id = 0
    if item_id <= 0:
        raise AppError(
            ErrorCode.INVALID_ITEM_ID,
            "Invalid item id.",
            400,
        )

    item = session.get(Item, item_id)
    if item is None:
        raise AppError(
            ErrorCode.ITEM_NOT_FOUND,
            "Item not found.",
            404,
        )
    return item
