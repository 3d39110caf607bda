"""Catalog records the core reads but never owns."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class Product:
    id: str
    name: str = ""
    lot_tracked: bool = False


@dataclass(frozen=True)
class Lot:
    """A production lot of one product, optionally with an expiry date."""

    id: str
    product_id: str
    expires_on: date | None = None
