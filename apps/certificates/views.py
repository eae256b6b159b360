"""HTTP endpoints for issuing, verifying, revoking and reissuing certificates."""

from __future__ import annotations

import logging
from pathlib import Path

from django.conf import settings
from django.http import FileResponse, Http404, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import CertificateError
from .models import Certificate
from .permissions import IsCertificateAdmin, IsOwnerOrCertificateAdmin
from .serializers import (
    CertificateSerializer,
    IssueCertificateSerializer,
    ReissueCertificateSerializer,
    RevokeCertificateSerializer,
    serialize_verification,
)
from .services import get_certificate_service
from .storage import CertificatePdfArchive

logger = logging.getLogger(__name__)


def _flatten_errors(errors) -> str:
    messages = []
    for field, field_errors in errors.items():
        if isinstance(field_errors, dict):
            messages.append(f"{field}: {_flatten_errors(field_errors)}")
            continue
        for error in field_errors:
            messages.append(f"{field}: {error}")
    return "; ".join(messages)


def _error_response(exc: CertificateError) -> Response:
    body = {"error": exc.message}
    if exc.details and (exc.status_code < 500 or settings.DEBUG):
        body["details"] = exc.details
    return Response(body, status=exc.status_code)


def _validation_response(serializer) -> Response:
    return Response(
        {"error": "Missing fields", "details": _flatten_errors(serializer.errors)},
        status=status.HTTP_400_BAD_REQUEST,
    )


class CertificateAPIView(APIView):
    """Translate lifecycle errors into ``{error, details}`` responses."""

    def handle_exception(self, exc):
        if isinstance(exc, CertificateError):
            if exc.status_code >= 500:
                logger.error("Certificate request failed: %s", exc, exc_info=exc)
            return _error_response(exc)
        return super().handle_exception(exc)


class IssueCertificateView(CertificateAPIView):
    """Issue a certificate to the authenticated user."""

    permission_classes = [permissions.IsAuthenticated]

    def issue(self, request):
        serializer = IssueCertificateSerializer(data=request.data)
        if not serializer.is_valid():
            return None, _validation_response(serializer)

        data = serializer.validated_data
        issued = get_certificate_service().issue(
            track_id=data["trackId"],
            title=data["title"],
            user=request.user,
            score=data.get("score"),
            recipient_name=data.get("recipientName"),
            actor=request.user,
        )
        return issued, None

    def post(self, request, *args, **kwargs):  # type: ignore[override]
        issued, error = self.issue(request)
        if error is not None:
            return error
        return Response(
            {"certificate": CertificateSerializer(issued.certificate).data},
            status=status.HTTP_201_CREATED,
        )


class GenerateCertificateView(IssueCertificateView):
    """Issue a certificate and answer with the rendered PDF."""

    def post(self, request, *args, **kwargs):  # type: ignore[override]
        issued, error = self.issue(request)
        if error is not None:
            return error
        certificate = issued.certificate
        response = HttpResponse(
            issued.pdf_bytes, content_type="application/pdf", status=status.HTTP_201_CREATED
        )
        response["Content-Disposition"] = f'attachment; filename="{certificate.pdf_filename}"'
        response["X-Credential-Id"] = certificate.credential_id
        return response


class MyCertificatesView(CertificateAPIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, *args, **kwargs):  # type: ignore[override]
        certificates = get_certificate_service().store.list_by_user(request.user.pk)
        return Response({"certificates": CertificateSerializer(certificates, many=True).data})


class CertificateDetailView(CertificateAPIView):
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrCertificateAdmin]

    def get(self, request, pk, *args, **kwargs):  # type: ignore[override]
        certificate = get_object_or_404(Certificate, pk=pk)
        self.check_object_permissions(request, certificate)
        return Response({"certificate": CertificateSerializer(certificate).data})


class VerifyCertificateView(CertificateAPIView):
    """Public verification endpoint; never fails for invalid certificates."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def get(self, request, credential_id, *args, **kwargs):  # type: ignore[override]
        result = get_certificate_service().verify(credential_id)
        response_status = (
            status.HTTP_404_NOT_FOUND if result.certificate is None else status.HTTP_200_OK
        )
        return Response(serialize_verification(result), status=response_status)


class RevokeCertificateView(CertificateAPIView):
    permission_classes = [permissions.IsAuthenticated, IsCertificateAdmin]

    def post(self, request, *args, **kwargs):  # type: ignore[override]
        serializer = RevokeCertificateSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_response(serializer)

        certificate = get_certificate_service().revoke(
            serializer.validated_data["credentialId"],
            serializer.validated_data.get("reason"),
            actor=request.user,
        )
        return Response({"success": True, "certificate": CertificateSerializer(certificate).data})


class ReissueCertificateView(CertificateAPIView):
    permission_classes = [permissions.IsAuthenticated, IsCertificateAdmin]

    def post(self, request, *args, **kwargs):  # type: ignore[override]
        serializer = ReissueCertificateSerializer(data=request.data)
        if not serializer.is_valid():
            return _validation_response(serializer)

        data = serializer.validated_data
        result = get_certificate_service().reissue(
            data["oldCredentialId"],
            data.get("reason"),
            data.get("updatedDetails"),
            actor=request.user,
        )
        return Response(
            {
                "success": True,
                "oldCertificate": CertificateSerializer(result.old_certificate).data,
                "newCertificate": CertificateSerializer(result.new_certificate).data,
            }
        )


@require_GET
def serve_certificate_pdf(request, filename: str):
    """Serve an archived PDF unless its certificate is no longer active."""

    if Path(filename).name != filename or not filename.lower().endswith(".pdf"):
        raise Http404("Certificate not found")

    certificate = Certificate.objects.filter(pdf_path__iexact=f"/pdfs/{filename}").first()
    if certificate is None:
        return JsonResponse({"error": "Certificate not found"}, status=404)
    if not certificate.is_active:
        return JsonResponse({"error": "Certificate is revoked"}, status=403)

    archive = CertificatePdfArchive()
    if not archive.exists(certificate.pdf_filename):
        logger.error(
            "PDF for %s is missing from the archive",
            certificate.credential_id,
            extra={
                "context": {
                    "action": "certificate.pdf.missing",
                    "credential_id": certificate.credential_id,
                }
            },
        )
        return JsonResponse({"error": "Certificate not found"}, status=404)

    return FileResponse(
        archive.path(certificate.pdf_filename).open("rb"),
        content_type="application/pdf",
        filename=certificate.pdf_filename,
    )


__all__ = [
    "CertificateDetailView",
    "GenerateCertificateView",
    "IssueCertificateView",
    "MyCertificatesView",
    "ReissueCertificateView",
    "RevokeCertificateView",
    "VerifyCertificateView",
    "serve_certificate_pdf",
]
