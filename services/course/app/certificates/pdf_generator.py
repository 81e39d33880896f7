"""Certificate PDF generator using ReportLab.

Pure utility — no DB or FastAPI imports.
Generates a single-page landscape A4 PDF. Output is byte-for-byte
deterministic for the same input (invariant canvas), and page streams are
left uncompressed so every field appears verbatim in the document.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime

import qrcode
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import cm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas


@dataclass(frozen=True)
class CertificatePDFData:
    """All data needed to render a certificate PDF."""

    learner_name: str
    course_title: str
    course_duration: int  # minutes
    total_lessons: int
    completion_date: datetime
    serial_hash: str
    grade: str
    issued_by_name: str
    verification_url: str


def format_completion_date(value: datetime) -> str:
    return value.strftime("%B %d, %Y")


def _generate_qr_image(url: str) -> io.BytesIO:
    """Generate QR code PNG bytes for the verification URL."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=6,
        border=2,
    )
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def generate_certificate_pdf(data: CertificatePDFData) -> bytes:
    """Render a certificate PDF and return raw bytes."""
    buf = io.BytesIO()
    page_w, page_h = landscape(A4)
    c = canvas.Canvas(buf, pagesize=landscape(A4), invariant=1, pageCompression=0)
    c.setTitle(f"Certificate {data.serial_hash}")

    # --- Borders ---
    margin = 1.5 * cm
    c.setStrokeColor(colors.HexColor("#4f46e5"))
    c.setLineWidth(3)
    c.rect(margin, margin, page_w - 2 * margin, page_h - 2 * margin)

    inner = 2 * cm
    c.setStrokeColor(colors.HexColor("#c7d2fe"))
    c.setLineWidth(1)
    c.rect(inner, inner, page_w - 2 * inner, page_h - 2 * inner)

    center_x = page_w / 2

    # --- Heading ---
    c.setFillColor(colors.HexColor("#111827"))
    c.setFont("Helvetica-Bold", 30)
    c.drawCentredString(center_x, page_h - 4 * cm, "Certificate of Completion")

    c.setFillColor(colors.HexColor("#6b7280"))
    c.setFont("Helvetica", 12)
    c.drawCentredString(center_x, page_h - 5.5 * cm, "This is to certify that")

    # --- Learner ---
    c.setFillColor(colors.HexColor("#4f46e5"))
    c.setFont("Helvetica-Bold", 26)
    c.drawCentredString(center_x, page_h - 7 * cm, data.learner_name)

    name_width = c.stringWidth(data.learner_name, "Helvetica-Bold", 26)
    c.setStrokeColor(colors.HexColor("#c7d2fe"))
    c.setLineWidth(0.5)
    c.line(
        center_x - name_width / 2 - 1 * cm, page_h - 7.3 * cm,
        center_x + name_width / 2 + 1 * cm, page_h - 7.3 * cm,
    )

    c.setFillColor(colors.HexColor("#6b7280"))
    c.setFont("Helvetica", 12)
    c.drawCentredString(center_x, page_h - 8.3 * cm, "has successfully completed the course")

    # --- Course title: shrink rather than truncate so the title stays verbatim ---
    title_size = 18 if len(data.course_title) <= 60 else 13
    c.setFillColor(colors.HexColor("#111827"))
    c.setFont("Helvetica-Bold", title_size)
    c.drawCentredString(center_x, page_h - 9.5 * cm, data.course_title)

    # --- Details ---
    c.setFillColor(colors.HexColor("#374151"))
    c.setFont("Helvetica", 11)
    details = (
        f"Duration: {data.course_duration} minutes  |  "
        f"Lessons: {data.total_lessons}  |  Grade: {data.grade}"
    )
    c.drawCentredString(center_x, page_h - 10.7 * cm, details)
    c.drawCentredString(
        center_x, page_h - 11.5 * cm,
        f"Completed on {format_completion_date(data.completion_date)}",
    )

    # --- QR code (bottom-right) ---
    qr_img = ImageReader(_generate_qr_image(data.verification_url))
    qr_size = 2.8 * cm
    c.drawImage(qr_img, page_w - 3.5 * cm - qr_size, 2.5 * cm, width=qr_size, height=qr_size)

    # --- Serial (bottom-center) ---
    c.setFillColor(colors.HexColor("#9ca3af"))
    c.setFont("Helvetica", 8)
    c.drawCentredString(center_x, 2.8 * cm, f"Certificate ID: {data.serial_hash}")
    c.setFont("Helvetica", 7)
    c.drawCentredString(center_x, 2.2 * cm, f"Verify at: {data.verification_url}")

    # --- Issuer signature (bottom-left) ---
    sig_x = 5.5 * cm
    c.setStrokeColor(colors.HexColor("#d1d5db"))
    c.setLineWidth(0.5)
    c.line(sig_x - 3 * cm, 3.5 * cm, sig_x + 3 * cm, 3.5 * cm)
    c.setFillColor(colors.HexColor("#6b7280"))
    c.setFont("Helvetica", 9)
    c.drawCentredString(sig_x, 2.8 * cm, data.issued_by_name)

    c.showPage()
    c.save()
    return buf.getvalue()
