"""
QuickDrop

Ephemeral file transfer: upload a file, share the link or QR code, and the
file destroys itself once downloaded or when its time runs out.
"""

__version__ = "1.0.0"
