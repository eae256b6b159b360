"""Render certificate PDFs from HTML templates."""
from __future__ import annotations

import base64
import logging
import mimetypes
from io import BytesIO
from pathlib import Path
from typing import Any, Final, Mapping

from django.conf import settings
from django.template import TemplateDoesNotExist, TemplateSyntaxError, engines
from django.template.loader import get_template
from weasyprint import HTML

from utils.qr_generator import qr_code_png

from .exceptions import TemplateNotFoundError, TemplateRenderError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: Final = (
    "recipient_name",
    "track",
    "title",
    "issuer",
    "issue_date",
    "credential_id",
)

_ASSET_FILES: Final = {
    "logo_data_uri": "logo.png",
    "verified_badge_data_uri": "verified-badge.png",
    "signature_data_uri": "signature.png",
}


def image_to_data_uri(image: str | Path | bytes | None) -> str | None:
    """Return a base64 data URI for a local image file or raw bytes.

    Remote URLs are rejected so the rendered PDF never depends on the network.
    """

    if not image:
        return None

    if isinstance(image, bytes):
        return "data:image/png;base64," + base64.b64encode(image).decode("ascii")

    if isinstance(image, str):
        if image.startswith("data:"):
            return image
        if "://" in image:
            logger.warning("Ignoring non-local certificate image %s", image)
            return None

    path = Path(image)
    if not path.is_file():
        logger.warning("Certificate image %s is missing", path)
        return None

    mime, _ = mimetypes.guess_type(path.name)
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime or 'image/png'};base64,{encoded}"


def qr_code_data_uri(url: str) -> str:
    return image_to_data_uri(qr_code_png(url))


def template_for_track(track_id: str | None) -> str:
    """Return the configured template for ``track_id``, or the default one."""

    templates: Mapping[str, str] = settings.CERTIFICATE_TEMPLATES
    if track_id:
        for key in (track_id, track_id.lower(), track_id.upper()):
            if key in templates:
                return templates[key]
    return templates["default"]


class CertificateRenderer:
    """Fill an HTML template and rasterise it to PDF bytes in memory."""

    def __init__(self, *, asset_dir: str | Path | None = None, base_url: str | None = None):
        self.asset_dir = Path(asset_dir or settings.CERTIFICATE_ASSET_DIR)
        self.base_url = base_url or str(self.asset_dir)

    def _load_template(self, template_path: str):
        try:
            if Path(template_path).is_absolute():
                path = Path(template_path)
                if not path.is_file():
                    raise TemplateNotFoundError(f"Template {template_path} not found.")
                return engines["django"].from_string(path.read_text(encoding="utf-8"))
            return get_template(template_path)
        except TemplateDoesNotExist as exc:
            raise TemplateNotFoundError(
                f"Template {template_path} not found.", details=str(exc)
            ) from exc
        except TemplateSyntaxError as exc:
            raise TemplateRenderError(
                f"Template {template_path} is invalid.", details=str(exc)
            ) from exc

    def build_context(self, data: Mapping[str, Any]) -> dict[str, Any]:
        missing = [
            field
            for field in REQUIRED_FIELDS
            if data.get(field) is None or str(data.get(field)).strip() == ""
        ]
        if missing:
            raise TemplateRenderError(
                "Certificate data is incomplete.",
                details=f"Missing fields: {', '.join(missing)}",
            )

        context = dict(data)
        for key, filename in _ASSET_FILES.items():
            context.setdefault(key, image_to_data_uri(self.asset_dir / filename))

        verification_url = data.get("verification_url")
        if verification_url:
            context["qr_code_data_uri"] = qr_code_data_uri(verification_url)
        return context

    def render(self, template_path: str, data: Mapping[str, Any]) -> bytes:
        template = self._load_template(template_path)
        context = self.build_context(data)

        try:
            html = template.render(context)
        except (TemplateSyntaxError, TemplateDoesNotExist) as exc:
            raise TemplateRenderError(
                f"Template {template_path} failed to render.", details=str(exc)
            ) from exc

        buffer = BytesIO()
        HTML(string=html, base_url=self.base_url).write_pdf(target=buffer)
        return buffer.getvalue()


__all__ = [
    "REQUIRED_FIELDS",
    "CertificateRenderer",
    "image_to_data_uri",
    "qr_code_data_uri",
    "template_for_track",
]
