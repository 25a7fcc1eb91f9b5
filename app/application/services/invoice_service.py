"""Invoice service — PDF invoice for a completed maintenance request.

The amounts are the request price plus 23% IVA; a request without a price
invoices zero.
"""

import base64
import io
from decimal import ROUND_HALF_UP, Decimal
from html import escape
from typing import Optional

import structlog
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from app.application.services.access_control import ensure_request_access
from app.core.clock import as_utc
from app.core.exceptions import ValidationException
from app.domain.models.maintenance_request import MaintenanceRequest, RequestStatus
from app.domain.models.user import User
from app.infrastructure.repositories.request_repository import SQLAlchemyRequestRepository

logger = structlog.get_logger(__name__)

IVA_RATE = Decimal("0.23")
CENT = Decimal("0.01")
DESCRIPTION_PREVIEW = 150

BRAND_COLOR = colors.HexColor("#ff7a00")
TEXT_COLOR = colors.HexColor("#333333")
MUTED_COLOR = colors.HexColor("#666666")
HEADER_BACKGROUND = colors.HexColor("#f5f5f5")


def invoice_totals(price: Optional[float]) -> tuple[Decimal, Decimal, Decimal]:
    """Return (base, iva, total), each rounded to the cent."""
    base = Decimal(str(price or 0)).quantize(CENT, rounding=ROUND_HALF_UP)
    iva = (base * IVA_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    return base, iva, base + iva


def invoice_file_name(request: MaintenanceRequest) -> str:
    return f"fatura-{request.id}.pdf"


def _money(value: Decimal) -> str:
    return f"€ {value:.2f}"


def _description_preview(text: Optional[str]) -> str:
    if not text:
        return "-"
    if len(text) <= DESCRIPTION_PREVIEW:
        return text
    return text[:DESCRIPTION_PREVIEW] + "..."


def generate_invoice_pdf(request: MaintenanceRequest) -> bytes:
    """Render the invoice of `request` for its owner and return the PDF bytes."""
    owner = request.owner
    base, iva, total = invoice_totals(request.price)

    buffer = io.BytesIO()
    margin = 2 * cm
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=margin,
        leftMargin=margin,
        topMargin=margin,
        bottomMargin=margin,
        title=f"Fatura {request.id}",
    )
    content_width = A4[0] - 2 * margin

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "InvoiceTitle", parent=styles["Heading1"], fontSize=26, textColor=BRAND_COLOR, alignment=1, spaceAfter=6
    )
    subtitle_style = ParagraphStyle(
        "InvoiceSubtitle", parent=styles["Normal"], fontSize=12, textColor=MUTED_COLOR, alignment=1
    )
    heading_style = ParagraphStyle(
        "InvoiceHeading", parent=styles["Heading3"], fontSize=11, spaceBefore=16, spaceAfter=6
    )
    body_style = ParagraphStyle("InvoiceBody", parent=styles["Normal"], fontSize=10, textColor=TEXT_COLOR)
    footer_style = ParagraphStyle(
        "InvoiceFooter", parent=styles["Normal"], fontSize=9, textColor=MUTED_COLOR, alignment=1
    )

    story = [
        Paragraph("FATURA", title_style),
        Paragraph("HomeFix - Serviços de Manutenção", subtitle_style),
        Spacer(1, 0.6 * cm),
        Paragraph("DADOS DO CLIENTE", heading_style),
    ]

    for line in (
        f"Nome: {owner.full_name or '-'}",
        f"Email: {owner.email or '-'}",
        f"NIF: {owner.nif or 'Não informado'}",
    ):
        story.append(Paragraph(escape(line), body_style))

    story.append(Paragraph("DETALHES DO SERVIÇO", heading_style))
    service_lines = [
        f"Serviço: {request.title or '-'}",
        f"Categoria: {request.category or '-'}",
        f"Descrição: {_description_preview(request.description)}",
    ]
    completed_at = as_utc(request.completed_at)
    if completed_at is not None:
        service_lines.append(f"Data de Conclusão: {completed_at.strftime('%d/%m/%Y')}")
    for line in service_lines:
        story.append(Paragraph(escape(line), body_style))

    story.append(Paragraph("VALORES", heading_style))
    rows = [
        ["Descrição", "Valor"],
        ["Valor Base do Serviço", _money(base)],
        [f"IVA ({int(IVA_RATE * 100)}%)", _money(iva)],
        ["TOTAL A PAGAR", _money(total)],
    ]
    table = Table(rows, colWidths=[content_width - 4 * cm, 4 * cm])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_BACKGROUND),
                ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 10),
                ("FONT", (0, 1), (-1, -2), "Helvetica", 10),
                ("TEXTCOLOR", (0, 1), (-1, -2), TEXT_COLOR),
                ("FONT", (0, -1), (-1, -1), "Helvetica-Bold", 13),
                ("TEXTCOLOR", (0, -1), (-1, -1), BRAND_COLOR),
                ("LINEABOVE", (0, -1), (-1, -1), 1, colors.HexColor("#cccccc")),
                ("LINEBELOW", (0, -1), (-1, -1), 2, BRAND_COLOR),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("BOX", (0, 0), (-1, 0), 0.5, colors.HexColor("#cccccc")),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    story.append(table)

    story.append(Spacer(1, 2 * cm))
    story.append(Paragraph("Obrigado por utilizar a HomeFix!", footer_style))
    story.append(Paragraph("Para qualquer questão, contacte-nos através da aplicação.", footer_style))

    doc.build(story)
    pdf = buffer.getvalue()
    buffer.close()
    logger.info("Invoice generated", request_id=request.id, total=str(total), size=len(pdf))
    return pdf


def encode_invoice(request: MaintenanceRequest) -> tuple[str, str]:
    """Base64 PDF and file name, as returned alongside a completed request."""
    return base64.b64encode(generate_invoice_pdf(request)).decode("ascii"), invoice_file_name(request)


def get_invoice_for_user(db: Session, user: User, request_id: int) -> MaintenanceRequest:
    """Return the request if `user` may download its invoice; 404 / 403 / 400 otherwise."""
    request = ensure_request_access(user, SQLAlchemyRequestRepository(db, MaintenanceRequest).get_by_id(request_id))
    if request.status != RequestStatus.COMPLETED.value and request.completed_at is None:
        raise ValidationException("Pedido ainda não foi concluído.")
    return request
