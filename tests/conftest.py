import io
from datetime import datetime
from types import SimpleNamespace

import pytest
from PIL import Image

from config import Config
from models import Base, make_engine, make_session_factory
from references import CatalogRecord


class FakeFetcher:
    """fetch(url) -> preset bytes (or None); records every url asked for."""

    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.calls = []

    async def fetch(self, url):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.payload


class FakeCatalog:
    def __init__(self, references=None, failing=()):
        self.references = dict(references or {})
        self.failing = set(failing)
        self.calls = []

    async def get_by_id(self, product_id):
        self.calls.append(product_id)
        if product_id in self.failing:
            raise RuntimeError("catalog unavailable")
        if product_id not in self.references:
            return None
        return CatalogRecord(id=product_id, reference=self.references[product_id])


def png_bytes(width=200, height=100) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def fixed_presentation(monkeypatch):
    monkeypatch.setattr(Config, "CURRENCY", "Dt")
    monkeypatch.setattr(Config, "DATE_FORMAT", "%d/%m/%Y")


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{(tmp_path / 'test.db').as_posix()}")
    Base.metadata.create_all(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def legacy_client():
    return SimpleNamespace(
        id=1,
        cin="09876543",
        name="Acme Trading",
        email="billing@acme.test",
        phone="+216 71 000 000",
        location="12 Rue de Marseille, Tunis",
    )


@pytest.fixture
def legacy_order():
    return SimpleNamespace(
        id=7,
        order_number="ORD-2024-001",
        created_at=datetime(2024, 6, 15, 10, 0),
        items=[
            SimpleNamespace(id=1, product_id="P1", reference="R1", description="Desk lamp",
                            quantity=2, unit_price=15.5, total_price=31.0),
            SimpleNamespace(id=2, product_id="P2", reference=None, description="Office chair",
                            quantity=3, unit_price=10, total_price=None),
        ],
        subtotal=61.0,
        tax_rate=19.0,
        tax_amount=11.59,
        total_amount=72.59,
    )
