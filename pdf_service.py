# pdf_service.py
import asyncio
import io
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm

from assets import HttpFetcher, EmbeddableImage, compute_aspect_ratio, load_logo, logo_size
from company_profile import load_company_profile
from config import Config
from documents import CompanyIdentity, InvoiceDocument, DocumentSource, normalize_source
from formatting import format_date, format_quantity, money, safe_filename
from pdf_layout import (
    BORDER_GRAY,
    BRAND_GRAY,
    BRAND_GRAY_DARK,
    TEXT_MUTED,
    Column,
    FooterStampingCanvas,
    PageFrame,
    TableResult,
    draw_box,
    draw_table,
    layout_box,
    wrap_text,
)
from references import pick_reference, resolve_references, unresolved_product_ids

logger = logging.getLogger(__name__)

PAGE_W, PAGE_H = A4
MARGIN_X = 20 * mm
HEADER_BAND_H = 26 * mm
CONTENT_TOP = HEADER_BAND_H + 10 * mm
BOX_GAP = 8 * mm
TABLE_GAP = 12 * mm
TOTALS_GAP = 10 * mm
TOTALS_W = 70 * mm
TOTALS_H = 22 * mm
LOGO_MAX_H = 20 * mm
LOGO_MAX_W = 34 * mm
FOOTER_Y = PAGE_H - 10 * mm
FOOTER_TEXT = "Thank you for your business!"
CONTINUATION = PageFrame(top=20 * mm, bottom=PAGE_H - 20 * mm)

TABLE_HEADER = ["Reference", "Description", "Qty", "Unit Price", "Total"]
TABLE_COLUMNS = [
    Column(25 * mm, "left"),
    Column(67 * mm, "left"),
    Column(18 * mm, "center"),
    Column(30 * mm, "right"),
    Column(30 * mm, "right"),
]


class InvoiceSaveError(RuntimeError):
    pass


class RenderStage(str, Enum):
    IDLE = "idle"
    RESOLVING_ASSETS = "resolving_assets"
    RESOLVING_REFERENCES = "resolving_references"
    LAYING_OUT_HEADER = "laying_out_header"
    RENDERING_TABLE = "rendering_table"
    RENDERING_TOTALS = "rendering_totals"
    STAMPING_FOOTERS = "stamping_footers"
    SERIALIZED = "serialized"


@dataclass
class RenderOptions:
    logo_url: str | None = None
    # Pre-resolved logo; skips the fetch entirely
    logo_image: EmbeddableImage | None = None
    company: CompanyIdentity | None = None


@dataclass
class RenderedInvoice:
    filename: str
    content: bytes
    page_count: int
    table: TableResult
    table_top: float
    box_heights: tuple[float, float]
    totals_top: float
    totals_page: int
    footer_pages: list[int] = field(default_factory=list)
    logo_drawn: bool = False


def invoice_filename(invoice_number: str | None) -> str:
    return f"{safe_filename(invoice_number)}.pdf"


def _stage(stage: RenderStage, label: str):
    logger.debug("Invoice %s: %s", label, stage.value)


# -----------------------------
# Header band
# -----------------------------
def _draw_header(pdf, company: CompanyIdentity | None, logo: EmbeddableImage | None, aspect_ratio: float | None) -> bool:
    pdf.setFillColor(BRAND_GRAY_DARK)
    pdf.rect(0, PAGE_H - HEADER_BAND_H, PAGE_W, HEADER_BAND_H, stroke=0, fill=1)

    logo_drawn = False
    if logo is not None:
        try:
            logo_w, logo_h = logo_size(aspect_ratio, LOGO_MAX_H, LOGO_MAX_W)
            pdf.drawImage(
                logo.reader(),
                PAGE_W - MARGIN_X - logo_w,
                PAGE_H - 5 * mm - logo_h,
                width=logo_w,
                height=logo_h,
                mask="auto",
            )
            logo_drawn = True
        except Exception as e:
            logger.warning("Skipping logo: %s", e)

    if company is not None and company.is_present():
        block_w = max(40 * mm, min(70 * mm, PAGE_W / 2 - MARGIN_X - 12 * mm))
        line_gap = 4.2 * mm
        y = 8 * mm

        pdf.setFillColor(colors.white)

        def put(text, font, size):
            nonlocal y
            pdf.setFont(font, size)
            for ln in wrap_text(text, font, size, block_w)[:2]:
                pdf.drawString(MARGIN_X, PAGE_H - y, ln)
                y += line_gap

        if company.name:
            put(company.name.strip(), "Helvetica-Bold", 9.6)
        if company.email:
            put(company.email.strip(), "Helvetica", 8.2)
        phones = [p.strip() for p in company.phone_numbers if p and p.strip()]
        if phones:
            put(" / ".join(phones), "Helvetica", 8.2)
        addresses = [a.strip() for a in company.addresses if a and a.strip()]
        if addresses:
            put(" · ".join(addresses), "Helvetica", 8.2)

    pdf.setFont("Helvetica-Bold", 20)
    pdf.setFillColor(colors.white)
    pdf.drawCentredString(PAGE_W / 2, PAGE_H - 16 * mm, "INVOICE")
    pdf.setFillColor(colors.black)
    return logo_drawn


def _detail_rows(doc: InvoiceDocument, issue_date: datetime) -> list[tuple[str, str]]:
    rows = [
        ("Invoice :", doc.invoice_number or "-"),
        ("Issue :", format_date(issue_date)),
    ]
    if doc.due_date:
        rows.append(("Due :", format_date(doc.due_date)))
    if doc.status:
        rows.append(("Status :", doc.status))
    return rows


def _bill_to_rows(doc: InvoiceDocument) -> list[tuple[str, str]]:
    c = doc.client
    rows = [("Name :", c.name or "-")]
    if c.tax_id:
        rows.append(("CIN :", c.tax_id))
    if c.email:
        rows.append(("Email :", c.email))
    if c.phone:
        rows.append(("Phone :", c.phone))
    if c.location:
        rows.append(("Addr :", c.location))
    return rows


def _item_rows(doc: InvoiceDocument, references: dict[str, str]) -> list[list[str]]:
    rows = []
    for item in doc.items:
        rows.append([
            pick_reference(item, references),
            item.description or "-",
            format_quantity(item.quantity),
            money(item.unit_price),
            money(item.line_total),
        ])
    return rows


# -----------------------------
# Totals + footer
# -----------------------------
def _draw_totals(pdf, top: float, doc: InvoiceDocument):
    box_x = PAGE_W - MARGIN_X - TOTALS_W
    label_x = box_x + 4 * mm
    value_x = box_x + TOTALS_W - 4 * mm
    row_y = top + 6.6 * mm

    for label, value in (("Subtotal :", doc.subtotal), ("Tax :", doc.tax_amount)):
        pdf.setFont("Helvetica-Bold", 9.6)
        pdf.setFillColor(colors.Color(55 / 255, 65 / 255, 81 / 255))
        pdf.drawString(label_x, PAGE_H - row_y, label)
        pdf.setFont("Times-Roman", 9.6)
        pdf.setFillColor(colors.Color(17 / 255, 24 / 255, 39 / 255))
        pdf.drawRightString(value_x, PAGE_H - row_y, money(value))
        row_y += 6 * mm

    pdf.setStrokeColor(BRAND_GRAY)
    pdf.setLineWidth(0.35 * mm)
    pdf.line(box_x, PAGE_H - (row_y - 3.4 * mm), box_x + TOTALS_W, PAGE_H - (row_y - 3.4 * mm))

    pdf.setFont("Helvetica-Bold", 10.8)
    pdf.setFillColor(colors.Color(17 / 255, 24 / 255, 39 / 255))
    pdf.drawString(label_x, PAGE_H - row_y, "Total :")
    pdf.drawRightString(value_x, PAGE_H - row_y, money(doc.total_amount))
    pdf.setFillColor(colors.black)
    pdf.setStrokeColor(colors.black)


def stamp_footer(pdf, page_number: int, page_count: int):
    pdf.setStrokeColor(BORDER_GRAY)
    pdf.setLineWidth(0.2 * mm)
    pdf.line(MARGIN_X, PAGE_H - (FOOTER_Y - 6 * mm), PAGE_W - MARGIN_X, PAGE_H - (FOOTER_Y - 6 * mm))
    pdf.setFont("Times-Roman", 8)
    pdf.setFillColor(TEXT_MUTED)
    pdf.drawCentredString(PAGE_W / 2, PAGE_H - FOOTER_Y, FOOTER_TEXT)
    pdf.setFillColor(colors.black)


# -----------------------------
# Assembler
# -----------------------------
async def _resolve_logo(options: RenderOptions, fetcher, probe) -> tuple[EmbeddableImage | None, float | None]:
    logo = options.logo_image
    if logo is None:
        logo = await load_logo(options.logo_url or Config.DEFAULT_LOGO_URL, fetcher)
    if logo is None:
        return None, None
    return logo, compute_aspect_ratio(logo, probe)


async def render_invoice_pdf(
    source: DocumentSource,
    *,
    options: RenderOptions | None = None,
    catalog=None,
    storage=None,
    fetcher=None,
    probe=None,
    now: datetime | None = None,
    invariant: bool = False,
) -> RenderedInvoice:
    """
    Render one invoice to PDF bytes.

    Logo/aspect-ratio, catalog reference and company profile problems
    degrade to defaults; only serializing the canvas can fail the render.
    """
    options = options or RenderOptions()
    fetcher = fetcher or HttpFetcher()
    doc = normalize_source(source)
    label = doc.invoice_number or "(unnumbered)"
    _stage(RenderStage.IDLE, label)

    # Logo and references are independent; both must land before layout.
    _stage(RenderStage.RESOLVING_ASSETS, label)
    _stage(RenderStage.RESOLVING_REFERENCES, label)
    (logo, aspect_ratio), references = await asyncio.gather(
        _resolve_logo(options, fetcher, probe),
        resolve_references(unresolved_product_ids(doc.items), catalog),
    )
    company = options.company if options.company is not None else load_company_profile(storage)

    _stage(RenderStage.LAYING_OUT_HEADER, label)
    buf = io.BytesIO()
    pdf = FooterStampingCanvas(buf, pagesize=A4, invariant=1 if invariant else 0, stamp=stamp_footer)
    pdf.setTitle(f"Invoice - {doc.invoice_number or 'invoice'}")

    logo_drawn = _draw_header(pdf, company, logo, aspect_ratio)

    issue_date = doc.resolved_issue_date(now or datetime.now())
    half_w = (PAGE_W - MARGIN_X * 2 - BOX_GAP) / 2
    left_box = layout_box("Invoice Details", _detail_rows(doc, issue_date), half_w)
    right_box = layout_box("Bill To", _bill_to_rows(doc), half_w)
    draw_box(pdf, MARGIN_X, CONTENT_TOP, left_box)
    draw_box(pdf, MARGIN_X + half_w + BOX_GAP, CONTENT_TOP, right_box)
    table_top = CONTENT_TOP + max(left_box.height, right_box.height) + TABLE_GAP

    _stage(RenderStage.RENDERING_TABLE, label)
    table = draw_table(
        pdf,
        MARGIN_X,
        table_top,
        TABLE_COLUMNS,
        TABLE_HEADER,
        _item_rows(doc, references),
        CONTINUATION,
    )

    _stage(RenderStage.RENDERING_TOTALS, label)
    totals_top = table.final_y + TOTALS_GAP
    if totals_top + TOTALS_H > CONTINUATION.bottom:
        pdf.showPage()
        totals_top = CONTINUATION.top
    totals_page = pdf.getPageNumber()
    _draw_totals(pdf, totals_top, doc)

    # doc.notes is carried on purpose but not printed

    _stage(RenderStage.STAMPING_FOOTERS, label)
    pdf.save()
    _stage(RenderStage.SERIALIZED, label)

    return RenderedInvoice(
        filename=invoice_filename(doc.invoice_number),
        content=buf.getvalue(),
        page_count=len(pdf.stamped_pages),
        table=table,
        table_top=table_top,
        box_heights=(left_box.height, right_box.height),
        totals_top=totals_top,
        totals_page=totals_page,
        footer_pages=list(pdf.stamped_pages),
        logo_drawn=logo_drawn,
    )


def save_invoice_pdf(rendered: RenderedInvoice, directory: str | os.PathLike | None = None) -> Path:
    out_dir = Path(directory or Config.EXPORTS_DIR)
    path = out_dir / rendered.filename
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(rendered.content)
    except OSError as e:
        raise InvoiceSaveError(f"Could not write {path}: {e}") from e
    return path.resolve()


def generate_invoice_pdf(source: DocumentSource, directory: str | os.PathLike | None = None, **kwargs) -> Path:
    """
    Render + save in one synchronous call (scripts, Flask views).
    Returns the absolute path of the written PDF.
    """
    rendered = asyncio.run(render_invoice_pdf(source, **kwargs))
    path = save_invoice_pdf(rendered, directory)
    logger.info("Invoice PDF written: %s (%d page(s))", path, rendered.page_count)
    return path
