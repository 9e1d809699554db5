"""
models/item.py — Catalog item table definition.

No business logic. No imports from services or routes.
Nutrition columns are free-form display strings (e.g. "22g").
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cleancuts.app.extensions import db


class Item(db.Model):
    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)

    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name:     Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    description:      Mapped[str | None] = mapped_column(Text, nullable=True)
    long_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Numeric, never Float.
    price:     Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    old_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    img_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    protein_per_100g:  Mapped[str | None] = mapped_column(String(50), nullable=True)
    carbs_per_100g:    Mapped[str | None] = mapped_column(String(50), nullable=True)
    calories_per_100g: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Item id={self.id} name={self.name!r}>"
