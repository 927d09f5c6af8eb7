# pdf_layout.py
"""
Layout primitives shared by the invoice renderer.

All y values here are top-down offsets (points from the top edge of the
page); they are flipped to reportlab's bottom-up space only at draw time.
"""
from dataclasses import dataclass, field

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

BRAND_GRAY = colors.Color(75 / 255, 85 / 255, 99 / 255)
BRAND_GRAY_DARK = colors.Color(31 / 255, 41 / 255, 55 / 255)
BORDER_GRAY = colors.Color(220 / 255, 220 / 255, 220 / 255)
BG_SOFT = colors.Color(245 / 255, 247 / 255, 250 / 255)
TEXT_MUTED = colors.Color(107 / 255, 114 / 255, 128 / 255)
TEXT_DARK = colors.Color(20 / 255, 20 / 255, 20 / 255)

PLACEHOLDER = "-"


# -----------------------------
# Text wrapping
# -----------------------------
def _split_long_token(token: str, font: str, size: float, max_width: float) -> list[str]:
    """Break a single long token (an email, a URL) into width-safe chunks."""
    if stringWidth(token, font, size) <= max_width:
        return [token]
    chunks = []
    remaining = token
    while remaining:
        lo, hi = 1, len(remaining)
        fit = 1
        while lo <= hi:
            mid = (lo + hi) // 2
            if stringWidth(remaining[:mid], font, size) <= max_width:
                fit = mid
                lo = mid + 1
            else:
                hi = mid - 1
        chunks.append(remaining[:fit])
        remaining = remaining[fit:]
    return chunks


def wrap_text(text, font: str, size: float, max_width: float) -> list[str]:
    """Greedy word wrap; explicit newlines are kept as line breaks."""
    lines: list[str] = []
    for paragraph in str(text if text is not None else "").split("\n"):
        words = []
        for w in paragraph.split():
            words.extend(_split_long_token(w, font, size, max_width))
        current = ""
        for w in words:
            test = f"{current} {w}" if current else w
            if stringWidth(test, font, size) <= max_width:
                current = test
            else:
                if current:
                    lines.append(current)
                current = w
        lines.append(current)
    # a trailing blank paragraph adds nothing useful
    while len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines or [""]


# -----------------------------
# Section box ("Invoice Details", "Bill To")
# -----------------------------
BOX_PAD_X = 4 * mm
BOX_PAD_Y = 4 * mm
BOX_HEADER_H = 9 * mm
BOX_ROW_GAP = 4.8 * mm
BOX_LABEL_W = 24 * mm
BOX_TITLE_FONT = ("Helvetica-Bold", 10)
BOX_LABEL_FONT = ("Helvetica-Bold", 8.8)
BOX_VALUE_FONT = ("Times-Roman", 9.2)


@dataclass(frozen=True)
class BoxRow:
    label: str
    lines: tuple[str, ...]


@dataclass(frozen=True)
class BoxLayout:
    title: str
    width: float
    height: float
    rows: tuple[BoxRow, ...]


def layout_box(title: str, rows: list[tuple[str, str | None]], width: float) -> BoxLayout:
    value_w = width - BOX_PAD_X * 2 - BOX_LABEL_W
    laid_out = []
    for label, value in rows:
        text = str(value if value is not None else "").strip() or PLACEHOLDER
        lines = wrap_text(text, BOX_VALUE_FONT[0], BOX_VALUE_FONT[1], value_w)
        laid_out.append(BoxRow(label=label, lines=tuple(lines)))
    content_lines = sum(len(r.lines) or 1 for r in laid_out)
    height = BOX_PAD_Y + BOX_HEADER_H + BOX_PAD_Y + content_lines * BOX_ROW_GAP + BOX_PAD_Y
    return BoxLayout(title=title, width=width, height=height, rows=tuple(laid_out))


def draw_box(pdf, x: float, top: float, box: BoxLayout) -> float:
    """Draws the panel; returns its height."""
    page_h = pdf._pagesize[1]

    pdf.setStrokeColor(BORDER_GRAY)
    pdf.setLineWidth(0.2 * mm)
    pdf.roundRect(x, page_h - top - box.height, box.width, box.height, 2 * mm, stroke=1, fill=0)

    pdf.setFillColor(BG_SOFT)
    pdf.rect(x, page_h - top - BOX_HEADER_H, box.width, BOX_HEADER_H, stroke=0, fill=1)

    pdf.setFont(*BOX_TITLE_FONT)
    pdf.setFillColor(colors.Color(40 / 255, 40 / 255, 40 / 255))
    pdf.drawString(x + BOX_PAD_X, page_h - (top + 6.3 * mm), box.title)

    cursor = top + BOX_HEADER_H + BOX_PAD_Y + 2 * mm
    for row in box.rows:
        pdf.setFont(*BOX_LABEL_FONT)
        pdf.setFillColor(TEXT_MUTED)
        pdf.drawString(x + BOX_PAD_X, page_h - cursor, row.label)

        pdf.setFont(*BOX_VALUE_FONT)
        pdf.setFillColor(TEXT_DARK)
        for idx, line in enumerate(row.lines):
            pdf.drawString(x + BOX_PAD_X + BOX_LABEL_W, page_h - (cursor + idx * BOX_ROW_GAP), line)
        cursor += (len(row.lines) or 1) * BOX_ROW_GAP

    pdf.setFillColor(colors.black)
    return box.height


# -----------------------------
# Paginated table
# -----------------------------
@dataclass(frozen=True)
class Column:
    width: float
    align: str = "left"     # left | center | right


@dataclass(frozen=True)
class PageFrame:
    """Usable vertical band on continuation pages, top-down."""
    top: float
    bottom: float


class TableStyle:
    body_font = ("Times-Roman", 9.2)
    head_font = ("Helvetica-Bold", 9.5)
    cell_padding = 3.5 * mm
    line_height_factor = 1.15
    head_fill = BRAND_GRAY
    head_text = colors.white
    stripe_fill = BG_SOFT
    grid_color = BORDER_GRAY
    grid_width = 0.2 * mm
    text_color = TEXT_DARK

    def __init__(self, **overrides):
        for k, v in overrides.items():
            if not hasattr(self, k):
                raise TypeError(f"Unknown table style option: {k}")
            setattr(self, k, v)


@dataclass(frozen=True)
class TableResult:
    final_y: float          # top-down cursor right under the last row
    pages_used: int
    end_page: int           # page number the table finished on


@dataclass
class _Row:
    cells: list[list[str]]
    height: float
    fonts: tuple[str, float]
    aligns: list[str] = field(default_factory=list)


def _measure_row(cells, columns, font, style: TableStyle, aligns) -> _Row:
    line_h = font[1] * style.line_height_factor
    wrapped = []
    n = 1
    for col, cell in zip(columns, cells):
        lines = wrap_text(cell, font[0], font[1], col.width - 2 * style.cell_padding)
        wrapped.append(lines)
        n = max(n, len(lines))
    return _Row(cells=wrapped, height=2 * style.cell_padding + n * line_h, fonts=font, aligns=aligns)


def _draw_row(pdf, x, top, row: _Row, columns, style: TableStyle, fill, text_color):
    page_h = pdf._pagesize[1]
    table_w = sum(c.width for c in columns)
    font, size = row.fonts
    line_h = size * style.line_height_factor

    if fill is not None:
        pdf.setFillColor(fill)
        pdf.rect(x, page_h - top - row.height, table_w, row.height, stroke=0, fill=1)

    pdf.setStrokeColor(style.grid_color)
    pdf.setLineWidth(style.grid_width)
    cx = x
    for col in columns:
        pdf.rect(cx, page_h - top - row.height, col.width, row.height, stroke=1, fill=0)
        cx += col.width

    pdf.setFont(font, size)
    pdf.setFillColor(text_color)
    cx = x
    for col, lines, align in zip(columns, row.cells, row.aligns):
        block_h = len(lines) * line_h
        line_top = top + (row.height - block_h) / 2
        for line in lines:
            baseline = page_h - (line_top + line_h / 2 + size * 0.35)
            if align == "right":
                pdf.drawRightString(cx + col.width - style.cell_padding, baseline, line)
            elif align == "center":
                pdf.drawCentredString(cx + col.width / 2, baseline, line)
            else:
                pdf.drawString(cx + style.cell_padding, baseline, line)
            line_top += line_h
        cx += col.width


def draw_table(
    pdf,
    x: float,
    top: float,
    columns: list[Column],
    header: list[str],
    rows: list[list[str]],
    frame: PageFrame,
    style: TableStyle | None = None,
) -> TableResult:
    """
    Grid table with a filled header row and striped body rows.
    Rows that would cross frame.bottom move to a fresh page starting at
    frame.top; the header row is repeated there. A table whose header and
    first row do not fit below `top` starts on a fresh page.
    """
    style = style or TableStyle()
    head = _measure_row(header, columns, style.head_font, style, ["center"] * len(columns))
    body = [_measure_row(r, columns, style.body_font, style, [c.align for c in columns]) for r in rows]

    pages_used = 1
    y = top
    first_h = head.height + (body[0].height if body else 0)
    if y + first_h > frame.bottom and y > frame.top:
        pdf.showPage()
        pages_used += 1
        y = frame.top
    _draw_row(pdf, x, y, head, columns, style, style.head_fill, style.head_text)
    y += head.height
    rows_on_page = 0

    for idx, row in enumerate(body):
        if y + row.height > frame.bottom and rows_on_page > 0:
            pdf.showPage()
            pages_used += 1
            y = frame.top
            _draw_row(pdf, x, y, head, columns, style, style.head_fill, style.head_text)
            y += head.height
            rows_on_page = 0
        fill = style.stripe_fill if idx % 2 == 1 else None
        _draw_row(pdf, x, y, row, columns, style, fill, style.text_color)
        y += row.height
        rows_on_page += 1

    pdf.setFillColor(colors.black)
    pdf.setStrokeColor(colors.black)
    return TableResult(final_y=y, pages_used=pages_used, end_page=pdf.getPageNumber())


# -----------------------------
# Canvas that stamps every page once the page count is known
# -----------------------------
class FooterStampingCanvas(canvas.Canvas):
    """
    Pages are held back instead of being emitted on showPage(); save()
    replays them and calls `stamp(pdf, page_number, page_count)` on each.
    """

    def __init__(self, *args, stamp=None, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []
        self._stamp = stamp
        self.stamped_pages: list[int] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        self._saved_page_states.append(dict(self.__dict__))
        page_count = len(self._saved_page_states)
        stamped = self.stamped_pages
        for state in self._saved_page_states:
            self.__dict__.update(state)
            if self._stamp is not None:
                self._stamp(self, self._pageNumber, page_count)
            stamped.append(self._pageNumber)
            super().showPage()
        self.stamped_pages = stamped
        super().save()
