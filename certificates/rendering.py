"""PDF rendering for certificates using reportlab.

Landscape A4, centred text blocks; returns the PDF bytes so callers can
store them however they like.
"""
from __future__ import annotations

from io import BytesIO

from django.conf import settings
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

PRIMARY = HexColor("#1e40af")
ACCENT = HexColor("#3b82f6")
TEXT = HexColor("#374151")
MUTED = HexColor("#9ca3af")
VERIFIED = HexColor("#10b981")
BACKGROUND = HexColor("#f8fafc")


def render_certificate_pdf(
    *,
    student_name: str,
    course_title: str,
    instructor_name: str,
    issued_on: str,
    certificate_id: str,
) -> bytes:
    buffer = BytesIO()
    width, height = landscape(A4)
    pdf = canvas.Canvas(buffer, pagesize=(width, height))
    pdf.setTitle(f"Certificate {certificate_id}")
    pdf.setAuthor(settings.CERTIFICATE_ISSUER)

    pdf.setFillColor(BACKGROUND)
    pdf.rect(0, 0, width, height, stroke=0, fill=1)
    pdf.setStrokeColor(PRIMARY)
    pdf.setLineWidth(4)
    pdf.rect(30, 30, width - 60, height - 60, stroke=1, fill=0)

    centre = width / 2

    def line(text: str, y: float, font: str, size: int, colour) -> None:
        pdf.setFillColor(colour)
        pdf.setFont(font, size)
        pdf.drawCentredString(centre, height - y, text)

    line("CERTIFICATE", 110, "Helvetica-Bold", 36, PRIMARY)
    line("of Completion", 150, "Helvetica", 24, ACCENT)
    line("This is to certify that", 210, "Helvetica", 18, TEXT)
    line(student_name, 255, "Helvetica-Bold", 32, PRIMARY)
    line("has successfully completed the course", 300, "Helvetica", 18, TEXT)
    line(course_title[:80], 345, "Helvetica-Bold", 28, PRIMARY)
    line(f"Issued on {issued_on}", 395, "Helvetica", 16, TEXT)
    line(f"Instructor: {instructor_name}", 430, "Helvetica", 14, TEXT)
    line(f"Verified by {settings.CERTIFICATE_ISSUER}", 490, "Helvetica-Bold", 12, VERIFIED)
    line(f"Certificate ID: {certificate_id}", 515, "Helvetica", 10, MUTED)
    line(f"Verify at {settings.SITE_URL}/api/v1/certificates/verify/?certificate_id={certificate_id}", 530, "Helvetica", 9, MUTED)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
