# documents.py
"""
Canonical invoice document shape consumed by the PDF assembler.

Callers hand in either the legacy (client, order) pair or a unified invoice
record; `normalize_source` maps both onto `InvoiceDocument` before any layout
work happens.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from formatting import to_number, to_date_safe


class InvoiceStatus(str, Enum):
    PAID = "Paid"
    PENDING = "Pending"
    OVERDUE = "Overdue"


def _field(obj, *names, default=None):
    """Read the first present attribute/key out of a row object or a mapping."""
    for name in names:
        if isinstance(obj, Mapping):
            if name in obj and obj[name] is not None:
                return obj[name]
        else:
            val = getattr(obj, name, None)
            if val is not None:
                return val
    return default


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _optional_text(value) -> str | None:
    s = _text(value)
    return s or None


@dataclass(frozen=True)
class ClientIdentity:
    name: str
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    tax_id: str | None = None


@dataclass(frozen=True)
class DocumentLineItem:
    identity: str | None
    reference: str | None
    product_id: str | None
    description: str
    quantity: float
    unit_price: float
    line_total: float

    @classmethod
    def from_raw(
        cls,
        *,
        identity=None,
        reference=None,
        product_id=None,
        description=None,
        quantity=None,
        unit_price=None,
        line_total=None,
    ) -> "DocumentLineItem":
        qty = to_number(quantity)
        unit = to_number(unit_price)
        if line_total is None or _text(line_total) == "":
            total = qty * unit
        else:
            total = to_number(line_total, default=qty * unit)
        return cls(
            identity=_optional_text(identity),
            reference=_optional_text(reference),
            product_id=_optional_text(product_id),
            description=_text(description),
            quantity=qty,
            unit_price=unit,
            line_total=total,
        )

    @classmethod
    def from_record(cls, item) -> "DocumentLineItem":
        return cls.from_raw(
            identity=_field(item, "id", "identity"),
            reference=_field(item, "reference", "sku"),
            product_id=_field(item, "product_id", "productId"),
            description=_field(item, "description"),
            quantity=_field(item, "quantity"),
            unit_price=_field(item, "unit_price", "unitPrice"),
            line_total=_field(item, "total_price", "totalPrice", "line_total"),
        )


@dataclass(frozen=True)
class InvoiceDocument:
    client: ClientIdentity
    items: tuple[DocumentLineItem, ...] = ()
    total_amount: float = 0.0
    invoice_number: str | None = None
    issue_date: datetime | None = None
    due_date: datetime | None = None
    created_at: datetime | None = None
    status: str | None = None
    subtotal: float = 0.0
    tax_rate: float | None = None
    tax_amount: float = 0.0
    notes: str | None = None

    def resolved_issue_date(self, now: datetime) -> datetime:
        return self.issue_date or self.created_at or now


@dataclass(frozen=True)
class CompanyIdentity:
    name: str | None = None
    email: str | None = None
    phone_numbers: tuple[str, ...] = field(default_factory=tuple)
    addresses: tuple[str, ...] = field(default_factory=tuple)

    def is_present(self) -> bool:
        return bool(
            _text(self.name)
            or _text(self.email)
            or any(_text(p) for p in self.phone_numbers)
            or any(_text(a) for a in self.addresses)
        )


# -----------------------------
# Input variants
# -----------------------------
@dataclass(frozen=True)
class OrderSource:
    """Legacy call shape: a client plus one of their orders."""
    client: Any
    order: Any


@dataclass(frozen=True)
class InvoiceSource:
    """Unified call shape: an InvoiceDocument, a stored Invoice row, or a mapping."""
    invoice: Any


DocumentSource = Union[OrderSource, InvoiceSource]


def _status_text(value) -> str | None:
    if isinstance(value, InvoiceStatus):
        return value.value
    return _optional_text(value)


def _from_order(client, order) -> InvoiceDocument:
    return InvoiceDocument(
        invoice_number=_optional_text(_field(order, "order_number", "orderNumber")),
        created_at=to_date_safe(_field(order, "created_at", "createdAt")),
        client=ClientIdentity(
            name=_text(_field(client, "name")),
            email=_optional_text(_field(client, "email")),
            phone=_optional_text(_field(client, "phone")),
            location=_optional_text(_field(client, "location")),
            tax_id=_optional_text(_field(client, "cin")),
        ),
        items=tuple(DocumentLineItem.from_record(it) for it in (_field(order, "items", default=()) or ())),
        subtotal=to_number(_field(order, "subtotal")),
        tax_rate=to_number(_field(order, "tax_rate", "taxRate")),
        tax_amount=to_number(_field(order, "tax_amount", "taxAmount")),
        total_amount=to_number(_field(order, "total_amount", "totalAmount")),
        notes=None,
    )


def _from_invoice_record(inv) -> InvoiceDocument:
    # Stored Invoice rows keep the client as flat snapshot columns;
    # posted JSON nests it under "client".
    nested = _field(inv, "client")
    if nested is not None:
        client = ClientIdentity(
            name=_text(_field(nested, "name")),
            email=_optional_text(_field(nested, "email")),
            phone=_optional_text(_field(nested, "phone")),
            location=_optional_text(_field(nested, "location")),
            tax_id=_optional_text(_field(inv, "client_cin", "clientCIN")),
        )
    else:
        client = ClientIdentity(
            name=_text(_field(inv, "client_name")),
            email=_optional_text(_field(inv, "client_email")),
            phone=_optional_text(_field(inv, "client_phone")),
            location=_optional_text(_field(inv, "client_location")),
            tax_id=_optional_text(_field(inv, "client_cin", "clientCIN")),
        )
    tax_rate = _field(inv, "tax_rate", "taxRate")
    return InvoiceDocument(
        invoice_number=_optional_text(_field(inv, "invoice_number", "invoiceNumber")),
        issue_date=to_date_safe(_field(inv, "issue_date", "issueDate")),
        due_date=to_date_safe(_field(inv, "due_date", "dueDate")),
        created_at=to_date_safe(_field(inv, "created_at", "createdAt")),
        status=_status_text(_field(inv, "status")),
        client=client,
        items=tuple(DocumentLineItem.from_record(it) for it in (_field(inv, "items", default=()) or ())),
        subtotal=to_number(_field(inv, "subtotal")),
        tax_rate=None if tax_rate is None else to_number(tax_rate),
        tax_amount=to_number(_field(inv, "tax_amount", "taxAmount")),
        total_amount=to_number(_field(inv, "total_amount", "totalAmount")),
        notes=_optional_text(_field(inv, "notes")),
    )


def normalize_source(source: DocumentSource) -> InvoiceDocument:
    if isinstance(source, OrderSource):
        return _from_order(source.client, source.order)
    if isinstance(source, InvoiceSource):
        if isinstance(source.invoice, InvoiceDocument):
            return source.invoice
        return _from_invoice_record(source.invoice)
    raise TypeError(f"Unsupported document source: {type(source).__name__}")
