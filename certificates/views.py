from __future__ import annotations

from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.http import FileResponse, Http404, HttpRequest
from django.shortcuts import get_object_or_404

from accounts.models import is_admin_user
from .models import Certificate


@login_required
def certificate_pdf(request: HttpRequest, certificate_id: str) -> FileResponse:
    """Download a certificate PDF (holder or admin only)."""
    certificate = get_object_or_404(Certificate, certificate_id=certificate_id)
    if certificate.user_id != request.user.id and not is_admin_user(request.user):
        raise PermissionDenied
    if not certificate.pdf:
        raise Http404("Certificate file missing")
    return FileResponse(
        certificate.pdf.open("rb"),
        as_attachment=True,
        filename=f"{certificate.certificate_id}.pdf",
        content_type="application/pdf",
    )
