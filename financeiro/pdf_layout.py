import io
from dataclasses import dataclass

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
HEADER_SIZE = 16
TITLE_SIZE = 14
BODY_SIZE = 12
SMALL_SIZE = 10
LINE_HEIGHT = 1.45

MARGIN = 25 * mm
SIGNATURE_MAX_WIDTH = 180
SIGNATURE_MAX_HEIGHT = 60
SIGNATURE_RULE_WIDTH = 220


@dataclass
class DocumentContent:
    church_name: str
    church_tax_id: str
    title: str
    body: str
    footer_name: str
    footer_tax_id: str


def _break_word(word: str, font_name: str, font_size: float, max_width: float) -> list[str]:
    pieces = []
    current = ""
    for char in word:
        candidate = current + char
        if current and stringWidth(candidate, font_name, font_size) > max_width:
            pieces.append(current)
            current = char
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def wrap_text(text: str, font_name: str, font_size: float, max_width: float) -> list[str]:
    """Greedy word wrap by measured width; oversized words are split by character."""
    lines = []
    for paragraph in (text or "").split("\n"):
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}" if current else word
            if stringWidth(candidate, font_name, font_size) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
                current = ""
            if stringWidth(word, font_name, font_size) <= max_width:
                current = word
                continue
            pieces = _break_word(word, font_name, font_size, max_width)
            lines.extend(pieces[:-1])
            current = pieces[-1] if pieces else ""
        lines.append(current)
    return lines


def _fit_signature(image) -> tuple[float, float]:
    width, height = image.getSize()
    if not width or not height:
        return 0, 0
    scale = min(SIGNATURE_MAX_WIDTH / width, SIGNATURE_MAX_HEIGHT / height, 1.0)
    return width * scale, height * scale


def _centered(pdf, text: str, y: float, font_name: str, font_size: float, page_width: float):
    pdf.setFont(font_name, font_size)
    pdf.drawCentredString(page_width / 2, y, text)


def render_document(content: DocumentContent, signature=None) -> bytes:
    """Render a single-page A4 receipt-style document.

    ``signature`` is a reportlab ``ImageReader`` (or ``None`` to leave only
    the signature rule).
    """
    buffer = io.BytesIO()
    page_width, page_height = A4
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(content.title)

    y = page_height - MARGIN
    _centered(pdf, content.church_name, y, FONT_BOLD, HEADER_SIZE, page_width)
    y -= HEADER_SIZE * LINE_HEIGHT
    if content.church_tax_id:
        _centered(pdf, f"CNPJ: {content.church_tax_id}", y, FONT_REGULAR, SMALL_SIZE, page_width)
        y -= SMALL_SIZE * LINE_HEIGHT

    y -= 10 * mm
    _centered(pdf, content.title, y, FONT_BOLD, TITLE_SIZE, page_width)
    y -= TITLE_SIZE * LINE_HEIGHT + 8 * mm

    body_width = page_width - 2 * MARGIN
    pdf.setFont(FONT_REGULAR, BODY_SIZE)
    for line in wrap_text(content.body, FONT_REGULAR, BODY_SIZE, body_width):
        pdf.drawString(MARGIN, y, line)
        y -= BODY_SIZE * LINE_HEIGHT

    y -= 20 * mm
    if signature is not None:
        sig_width, sig_height = _fit_signature(signature)
        if sig_width and sig_height:
            pdf.drawImage(
                signature,
                (page_width - sig_width) / 2,
                y,
                width=sig_width,
                height=sig_height,
                mask="auto",
            )

    y -= 2 * mm
    pdf.setLineWidth(0.8)
    pdf.line((page_width - SIGNATURE_RULE_WIDTH) / 2, y, (page_width + SIGNATURE_RULE_WIDTH) / 2, y)
    y -= BODY_SIZE * LINE_HEIGHT

    _centered(pdf, content.footer_name, y, FONT_BOLD, BODY_SIZE, page_width)
    y -= BODY_SIZE * LINE_HEIGHT
    if content.footer_tax_id:
        _centered(pdf, content.footer_tax_id, y, FONT_REGULAR, SMALL_SIZE, page_width)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
