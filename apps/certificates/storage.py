"""Filesystem archive for rendered certificate PDFs."""
from __future__ import annotations

from pathlib import Path

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage

PUBLIC_PREFIX = "/pdfs/"


def pdf_filename_for(credential_id: str) -> str:
    return f"{credential_id}.pdf"


class CertificatePdfArchive:
    """Store PDFs as ``{credentialId}.pdf`` under ``CERTIFICATE_PDF_ROOT``."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or settings.CERTIFICATE_PDF_ROOT)
        self.storage = FileSystemStorage(location=str(self.root))

    def public_path(self, credential_id: str) -> str:
        return f"{PUBLIC_PREFIX}{pdf_filename_for(credential_id)}"

    def save(self, credential_id: str, pdf_bytes: bytes) -> str:
        """Write the PDF and return its public path.

        Callers must hold the Store row for ``credential_id``; a file already at
        that name is a partial earlier write and is replaced.
        """

        filename = pdf_filename_for(credential_id)
        if self.storage.exists(filename):
            self.storage.delete(filename)
        stored_name = self.storage.save(filename, ContentFile(pdf_bytes))
        return f"{PUBLIC_PREFIX}{stored_name}"

    def path(self, filename: str) -> Path:
        return Path(self.storage.path(Path(filename).name))

    def exists(self, filename: str) -> bool:
        return self.storage.exists(Path(filename).name)


__all__ = ["CertificatePdfArchive", "PUBLIC_PREFIX", "pdf_filename_for"]
