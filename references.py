# references.py
"""
Catalog reference lookup for line items that don't carry their own product code.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable

from models import Product

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"


@dataclass(frozen=True)
class CatalogRecord:
    id: str
    reference: str | None = None


class SqlCatalog:
    """
    get_by_id(id) -> CatalogRecord | None over the products table.
    Each lookup opens its own session in a worker thread, so a batch of
    lookups can be awaited together.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _load(self, product_id: str) -> CatalogRecord | None:
        try:
            pk = int(product_id)
        except (TypeError, ValueError):
            return None
        with self._session_factory() as s:
            p = s.get(Product, pk)
            if p is None:
                return None
            return CatalogRecord(id=str(p.id), reference=(p.reference or "").strip() or None)

    async def get_by_id(self, product_id: str) -> CatalogRecord | None:
        return await asyncio.to_thread(self._load, product_id)


def item_product_key(item) -> str:
    return (item.product_id or "").strip()


def unresolved_product_ids(items: Iterable) -> list[str]:
    """Product ids worth looking up: items without an inline reference.

    A line's own identity is never a catalog key; free-text lines skip the lookup.
    """
    out = []
    for item in items:
        if (item.reference or "").strip():
            continue
        key = item_product_key(item)
        if key:
            out.append(key)
    return out


async def _lookup_one(catalog, product_id: str) -> tuple[str, str]:
    try:
        record = await catalog.get_by_id(product_id)
    except Exception as e:
        logger.warning("Catalog lookup failed for %s: %s", product_id, e)
        return product_id, product_id
    if record is None:
        return product_id, product_id
    return product_id, (record.reference or "").strip() or product_id


async def resolve_references(product_ids: Iterable[str], catalog) -> dict[str, str]:
    unique_ids = list(dict.fromkeys(p for p in product_ids if p))
    if not unique_ids or catalog is None:
        return {}
    entries = await asyncio.gather(*(_lookup_one(catalog, pid) for pid in unique_ids))
    return dict(entries)


def pick_reference(item, table: dict[str, str]) -> str:
    inline = (item.reference or "").strip()
    if inline:
        return inline
    key = item_product_key(item)
    if key:
        return table.get(key) or key
    # Display only: the line's own id, as legacy orders printed it.
    return (item.identity or "").strip() or PLACEHOLDER
