"""
QR Code Renderer

Renders share URLs as PNG QR codes.
"""

import io
import logging

import qrcode
from qrcode.constants import ERROR_CORRECT_M

logger = logging.getLogger(__name__)

DEFAULT_SIZE = 256


class QrCodeRenderer:
    """Encodes text into a square PNG QR code."""

    def __init__(self, size: int = DEFAULT_SIZE, border: int = 2):
        if size <= 0:
            raise ValueError(f"size must be positive, got {size}")
        self.size = size
        self.border = border

    def render(self, data: str) -> bytes:
        """
        Render data as a PNG QR code.

        Args:
            data: Text to encode, typically the download URL

        Returns:
            PNG image bytes, size x size pixels
        """
        if not data:
            raise ValueError("Cannot encode empty data")

        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECT_M,
            box_size=10,
            border=self.border,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        img = img.resize((self.size, self.size))

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        logger.debug(f"Rendered {self.size}px QR code for {len(data)} characters")
        return buffer.getvalue()
