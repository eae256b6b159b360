"""QR codes linking printed certificates to their verification page."""
from __future__ import annotations

from io import BytesIO
from typing import Final

import qrcode
from PIL import Image

_ERROR_CORRECTION: Final = qrcode.constants.ERROR_CORRECT_Q


def generate_qr_code(url: str, *, box_size: int = 8, border: int = 2) -> Image.Image:
    """Return an RGB QR code image encoding ``url``."""

    if not isinstance(url, str) or not url.strip():
        raise ValueError("QR code data must be a non-empty string.")

    code = qrcode.QRCode(
        version=None,
        error_correction=_ERROR_CORRECTION,
        box_size=box_size,
        border=border,
    )
    code.add_data(url.strip())
    code.make(fit=True)
    return code.make_image(fill_color="black", back_color="white").convert("RGB")


def qr_code_png(url: str, **options) -> bytes:
    """Return the QR code for ``url`` encoded as PNG bytes."""

    buffer = BytesIO()
    generate_qr_code(url, **options).save(buffer, format="PNG")
    return buffer.getvalue()


__all__ = ["generate_qr_code", "qr_code_png"]
