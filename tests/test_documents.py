from datetime import datetime
from types import SimpleNamespace

import pytest

from documents import (
    ClientIdentity,
    CompanyIdentity,
    DocumentLineItem,
    InvoiceDocument,
    InvoiceSource,
    InvoiceStatus,
    OrderSource,
    normalize_source,
)


class TestLineItems:
    def test_missing_total_is_quantity_times_price(self):
        item = DocumentLineItem.from_raw(quantity=3, unit_price=10)
        assert item.line_total == 30

    def test_invalid_numbers_clamp_to_zero(self):
        item = DocumentLineItem.from_raw(quantity="lots", unit_price=None)
        assert item.quantity == 0
        assert item.unit_price == 0
        assert item.line_total == 0

    def test_explicit_total_wins(self):
        item = DocumentLineItem.from_raw(quantity=3, unit_price=10, line_total=25)
        assert item.line_total == 25

    def test_blank_strings_become_none(self):
        item = DocumentLineItem.from_raw(reference="  ", product_id="", description=None)
        assert item.reference is None
        assert item.product_id is None
        assert item.description == ""


class TestCompanyIdentity:
    def test_whitespace_only_is_absent(self):
        assert not CompanyIdentity(name="  ", phone_numbers=(" ",)).is_present()

    def test_any_field_makes_it_present(self):
        assert CompanyIdentity(addresses=("Sfax",)).is_present()


class TestNormalize:
    def test_legacy_pair_maps_to_unified_shape(self, legacy_client, legacy_order):
        doc = normalize_source(OrderSource(legacy_client, legacy_order))

        assert doc.invoice_number == "ORD-2024-001"
        assert doc.created_at == datetime(2024, 6, 15, 10, 0)
        assert doc.issue_date is None
        assert doc.client == ClientIdentity(
            name="Acme Trading",
            email="billing@acme.test",
            phone="+216 71 000 000",
            location="12 Rue de Marseille, Tunis",
            tax_id="09876543",
        )
        assert [i.reference for i in doc.items] == ["R1", None]
        assert doc.items[1].line_total == 30
        assert doc.total_amount == pytest.approx(72.59)
        assert doc.notes is None

    def test_mapping_record_matches_legacy_pair(self, legacy_client, legacy_order):
        record = {
            "invoiceNumber": "ORD-2024-001",
            "createdAt": "2024-06-15T10:00:00",
            "clientCIN": "09876543",
            "client": {
                "name": "Acme Trading",
                "email": "billing@acme.test",
                "phone": "+216 71 000 000",
                "location": "12 Rue de Marseille, Tunis",
            },
            "items": [
                {"id": 1, "productId": "P1", "reference": "R1", "description": "Desk lamp",
                 "quantity": 2, "unitPrice": 15.5, "totalPrice": 31.0},
                {"id": 2, "productId": "P2", "description": "Office chair", "quantity": 3, "unitPrice": 10},
            ],
            "subtotal": 61.0,
            "taxRate": 19.0,
            "taxAmount": 11.59,
            "totalAmount": 72.59,
        }
        assert normalize_source(InvoiceSource(record)) == normalize_source(OrderSource(legacy_client, legacy_order))

    def test_document_passes_through(self):
        doc = InvoiceDocument(client=ClientIdentity(name="X"), total_amount=5)
        assert normalize_source(InvoiceSource(doc)) is doc

    def test_stored_invoice_row_uses_client_snapshot(self):
        row = SimpleNamespace(
            invoice_number="INV-2024-0003",
            client_name="Beta",
            client_email="",
            client_phone="",
            client_location="Sousse",
            client_cin="123",
            issue_date=datetime(2024, 2, 1),
            due_date=datetime(2024, 3, 2),
            status="Overdue",
            items=[],
            subtotal=None,
            tax_amount=None,
            total_amount=100,
            notes="call first",
        )
        doc = normalize_source(InvoiceSource(row))
        assert doc.client == ClientIdentity(name="Beta", location="Sousse", tax_id="123")
        assert doc.subtotal == 0
        assert doc.tax_amount == 0
        assert doc.status == InvoiceStatus.OVERDUE.value
        assert doc.notes == "call first"

    def test_issue_date_falls_back_to_created_then_now(self):
        now = datetime(2030, 1, 1)
        created = datetime(2024, 5, 5)
        client = ClientIdentity(name="X")
        assert InvoiceDocument(client=client, created_at=created).resolved_issue_date(now) == created
        assert InvoiceDocument(client=client).resolved_issue_date(now) == now

    def test_unknown_source_type(self):
        with pytest.raises(TypeError):
            normalize_source({"client": {}})
