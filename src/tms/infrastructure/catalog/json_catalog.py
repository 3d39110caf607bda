"""JSON-file-backed implementation of CatalogLookup.

The product and lot catalog is managed elsewhere; this adapter lets the
CLI keep a small local copy so transfers can be validated offline.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

from tms.domain.exceptions import ValidationError
from tms.domain.model.lot import Lot, Product
from tms.domain.repository.catalog import CatalogLookup


class JsonCatalog(CatalogLookup):

    def __init__(self, products_path: Path, lots_path: Path) -> None:
        self._products_path = products_path
        self._lots_path = lots_path
        self._ensure_file(products_path)
        self._ensure_file(lots_path)

    # --- CatalogLookup interface ----------------------------------------------

    def get_product(self, product_id: str) -> Product | None:
        return self._load_products().get(product_id)

    def get_lot(self, lot_id: str) -> Lot | None:
        return self._load_lots().get(lot_id)

    def lots_for_product(self, product_id: str) -> list[Lot]:
        return [lot for lot in self._load_lots().values() if lot.product_id == product_id]

    # --- Catalog maintenance --------------------------------------------------

    def list_products(self) -> list[Product]:
        return list(self._load_products().values())

    def save_product(self, product: Product) -> None:
        products = self._load_products()
        products[product.id] = product
        self._write(
            self._products_path,
            [
                {"id": p.id, "name": p.name, "lot_tracked": p.lot_tracked}
                for p in products.values()
            ],
        )

    def save_lot(self, lot: Lot) -> None:
        if lot.product_id not in self._load_products():
            raise ValidationError(f"Unknown product '{lot.product_id}' for lot '{lot.id}'")
        lots = self._load_lots()
        lots[lot.id] = lot
        self._write(
            self._lots_path,
            [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "expires_on": item.expires_on.isoformat() if item.expires_on else None,
                }
                for item in lots.values()
            ],
        )

    # --- Serialization helpers ------------------------------------------------

    def _load_products(self) -> dict[str, Product]:
        raw = json.loads(self._products_path.read_text(encoding="utf-8"))
        return {
            item["id"]: Product(
                id=item["id"],
                name=item.get("name", ""),
                lot_tracked=item.get("lot_tracked", False),
            )
            for item in raw
        }

    def _load_lots(self) -> dict[str, Lot]:
        raw = json.loads(self._lots_path.read_text(encoding="utf-8"))
        return {
            item["id"]: Lot(
                id=item["id"],
                product_id=item["product_id"],
                expires_on=date.fromisoformat(item["expires_on"]) if item.get("expires_on") else None,
            )
            for item in raw
        }

    @staticmethod
    def _write(path: Path, records: list[dict]) -> None:
        path.write_text(json.dumps(records, indent=2) + "\n", encoding="utf-8")

    @staticmethod
    def _ensure_file(path: Path) -> None:
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("[]", encoding="utf-8")
