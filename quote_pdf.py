from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from io import BytesIO
from typing import Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from quote_draft import QuoteDraft
from quote_estimate import QuoteEstimate, estimate_from_draft, estimate_rows
from quote_wizard import build_summary


logger = logging.getLogger(__name__)

COMPANY_NAME = "Yannova Ramen en Deuren"
COMPANY_CONTACT = "+32 (0)477 28 10 28  |  info@yannovabouw.ai"


@dataclass(frozen=True)
class QuoteRequestPdfArtifact:
    request_id: str
    request_date: date
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    summary_rows: Tuple[Tuple[str, str], ...]
    description: str = ""
    estimate: Optional[QuoteEstimate] = None
    logo_png_bytes: Optional[bytes] = None


def build_request_artifact(
    draft: QuoteDraft,
    *,
    request_id: Optional[str],
    request_date: date,
    logo_png_bytes: Optional[bytes] = None,
) -> QuoteRequestPdfArtifact:
    # The description gets its own wrapped block; keep it out of the one-line table.
    rows = tuple(
        (item.label, item.value) for item in build_summary(draft) if item.label != "Project beschrijving"
    )
    return QuoteRequestPdfArtifact(
        request_id=(request_id or "").strip() or "-",
        request_date=request_date,
        customer_name=draft.contact.name.strip(),
        customer_email=draft.contact.email.strip(),
        customer_phone=draft.contact.phone.strip(),
        customer_address=draft.contact.address.strip(),
        summary_rows=rows,
        description=draft.notes.strip(),
        estimate=estimate_from_draft(draft, on=request_date),
        logo_png_bytes=logo_png_bytes,
    )


def make_quote_request_pdf_bytes(artifact: QuoteRequestPdfArtifact) -> bytes:
    """
    Render the confirmation PDF a customer can download after submitting a request.

    Layout:
    - Header band: logo, company, request box (id + date).
    - Customer block.
    - Request details table (label / value), continued on extra pages when needed.
    - Project description, wrapped.
    - Indicative price, when the request could be priced.
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    # Uncompressed so tests can find text markers in the bytes.
    c.setPageCompression(0)
    w, h = A4

    margin = 0.6 * inch
    x0 = margin
    y_top = h - margin
    pad = 0.15 * inch
    content_w = w - 2 * margin
    footer_y = margin + 0.2 * inch

    header_h = 1.2 * inch
    _rect(c, x0, y_top - header_h, content_w, header_h)

    text_x = x0 + pad
    if artifact.logo_png_bytes:
        try:
            img = ImageReader(BytesIO(artifact.logo_png_bytes))
            c.drawImage(
                img,
                x0 + pad,
                y_top - header_h + pad,
                width=1.2 * inch,
                height=header_h - 2 * pad,
                mask="auto",
                preserveAspectRatio=True,
            )
            text_x = x0 + 1.5 * inch
        except Exception:
            logger.warning("Skipping unreadable logo image", exc_info=True)

    c.setFont("Helvetica-Bold", 12)
    c.drawString(text_x, y_top - 0.45 * inch, COMPANY_NAME)
    c.setFont("Helvetica", 9)
    c.drawString(text_x, y_top - 0.68 * inch, COMPANY_CONTACT)

    box_w = 2.3 * inch
    box_x = w - margin - box_w
    box_y = y_top - header_h + pad
    box_h = header_h - 2 * pad
    _rect(c, box_x, box_y, box_w, box_h)
    line_h = 0.22 * inch
    t_y = box_y + box_h - 0.28 * inch
    c.setFont("Helvetica-Bold", 10)
    c.drawString(box_x + pad, t_y, "Offerteaanvraag")
    t_y -= line_h
    _draw_truncated(c, box_x + pad, t_y, f"Nr. {artifact.request_id}", max_width=box_w - 2 * pad)
    c.setFont("Helvetica", 9)
    t_y -= line_h
    c.drawString(box_x + pad, t_y, f"Datum: {artifact.request_date.isoformat()}")

    y = y_top - header_h - 0.25 * inch

    # Customer block
    block_h = 1.15 * inch
    _rect(c, x0, y - block_h, content_w, block_h)
    c.setFont("Helvetica-Bold", 9)
    c.drawString(x0 + pad, y - 0.25 * inch, "KLANTGEGEVENS")
    c.setFont("Helvetica", 9)
    cust_lines = (
        artifact.customer_name or "-",
        artifact.customer_email or "-",
        artifact.customer_phone or "-",
        artifact.customer_address or "-",
    )
    line_y = y - 0.45 * inch
    for line in cust_lines:
        _draw_truncated(c, x0 + pad, line_y, line, max_width=content_w - 2 * pad)
        line_y -= 0.17 * inch

    y = y - block_h - 0.3 * inch

    # Details table
    row_h = 0.27 * inch
    label_w = 1.9 * inch
    remaining = list(artifact.summary_rows)
    title = "GEGEVENS AANVRAAG"
    while True:
        c.setFont("Helvetica-Bold", 9)
        c.drawString(x0, y, title)
        _hline(c, x0, x0 + content_w, y - 0.1 * inch)
        row_y = y - 0.32 * inch
        c.setFont("Helvetica", 9)
        while remaining and row_y > footer_y + row_h:
            label, value = remaining.pop(0)
            c.setFont("Helvetica-Bold", 9)
            _draw_truncated(c, x0 + pad, row_y, label, max_width=label_w - pad)
            c.setFont("Helvetica", 9)
            _draw_truncated(c, x0 + label_w, row_y, value, max_width=content_w - label_w - pad)
            row_y -= row_h
        if not remaining:
            y = row_y - 0.15 * inch
            break
        _draw_footer(c, x0, footer_y)
        c.showPage()
        y = h - margin - 0.25 * inch
        title = "GEGEVENS AANVRAAG (VERVOLG)"

    # Project description
    if artifact.description:
        lines = simpleSplit(artifact.description, "Helvetica", 9, content_w - 2 * pad)
        if y - 0.6 * inch < footer_y:
            _draw_footer(c, x0, footer_y)
            c.showPage()
            y = h - margin - 0.25 * inch
        c.setFont("Helvetica-Bold", 9)
        c.drawString(x0, y, "PROJECTBESCHRIJVING")
        _hline(c, x0, x0 + content_w, y - 0.1 * inch)
        text_y = y - 0.32 * inch
        c.setFont("Helvetica", 9)
        for line in lines:
            if text_y < footer_y + 0.2 * inch:
                _draw_footer(c, x0, footer_y)
                c.showPage()
                text_y = h - margin - 0.25 * inch
                c.setFont("Helvetica", 9)
            c.drawString(x0 + pad, text_y, line)
            text_y -= 0.16 * inch
        y = text_y - 0.15 * inch

    # Indicative price
    if artifact.estimate is not None:
        est = artifact.estimate
        price_rows = estimate_rows(est)
        needed = 0.32 * inch + len(price_rows) * 0.2 * inch + 0.5 * inch
        if y - needed < footer_y:
            _draw_footer(c, x0, footer_y)
            c.showPage()
            y = h - margin - 0.25 * inch
        c.setFont("Helvetica-Bold", 9)
        c.drawString(x0, y, "INDICATIEVE PRIJS")
        _hline(c, x0, x0 + content_w, y - 0.1 * inch)
        row_y = y - 0.32 * inch
        amount_x = x0 + content_w - pad
        for label, amount in price_rows:
            bold = label.startswith("Totaal") or label == "Subtotaal"
            c.setFont("Helvetica-Bold" if bold else "Helvetica", 9)
            _draw_truncated(c, x0 + pad, row_y, label, max_width=content_w - 1.6 * inch)
            c.drawRightString(amount_x, row_y, amount)
            row_y -= 0.2 * inch
        c.setFont("Helvetica", 8)
        c.drawString(x0 + pad, row_y - 0.05 * inch, f"Geldig tot: {est.valid_until.isoformat()}")
        row_y -= 0.2 * inch
        for note in est.notes:
            _draw_truncated(c, x0 + pad, row_y - 0.05 * inch, note, max_width=content_w - 2 * pad)
            row_y -= 0.16 * inch

    _draw_footer(c, x0, footer_y)
    c.showPage()
    c.save()
    return buf.getvalue()


def _draw_footer(c: canvas.Canvas, x: float, y: float) -> None:
    c.setFont("Helvetica", 8)
    c.setFillColor(colors.grey)
    c.drawString(x, y, "Aangevraagd via de website. Wij nemen binnen 3 werkdagen contact met u op.")
    c.setFillColor(colors.black)


def _rect(c: canvas.Canvas, x: float, y: float, w: float, h: float) -> None:
    c.rect(x, y, w, h, stroke=1, fill=0)


def _hline(c: canvas.Canvas, x1: float, x2: float, y: float) -> None:
    c.line(x1, y, x2, y)


def _draw_truncated(c: canvas.Canvas, x: float, y: float, text: str, *, max_width: float) -> None:
    """
    Draw text truncated with ellipsis so it stays inside a box.
    """
    t = (text or "").strip()
    if not t or max_width <= 0:
        return
    if c.stringWidth(t) <= max_width:
        c.drawString(x, y, t)
        return
    # ASCII ellipsis for compatibility with ReportLab's built-in fonts.
    ell = "..."
    lo = 0
    hi = len(t)
    best = ""
    while lo <= hi:
        mid = (lo + hi) // 2
        cand = (t[:mid].rstrip() + ell) if mid < len(t) else t
        if c.stringWidth(cand) <= max_width:
            best = cand
            lo = mid + 1
        else:
            hi = mid - 1
    if best:
        c.drawString(x, y, best)
