"""
Upload Result Value Object

Outcome of a successful upload, as returned to the client.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UploadResult:
    """
    Share details for a freshly registered object.

    Attributes:
        token: Capability token for the object
        url: Absolute download URL
        qr_url: Path of the QR code image for url
        expires_at: Moment the object self-destructs if not retrieved
        max_retrievals: Number of permitted downloads
    """
    token: str
    url: str
    qr_url: str
    expires_at: datetime
    max_retrievals: int

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "url": self.url,
            "qr_url": self.qr_url,
            "expires_at": self.expires_at.isoformat(),
            "max_retrievals": self.max_retrievals,
        }
