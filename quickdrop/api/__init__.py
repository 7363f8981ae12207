"""
QuickDrop HTTP API

Upload, download, status and QR code endpoints with OpenAPI/Swagger
documentation at /docs.
"""

from flask import Blueprint
from flask_restx import Api

api_bp = Blueprint("api", __name__)

api = Api(
    api_bp,
    version="1.0",
    title="QuickDrop API",
    description="Ephemeral file transfer: every link self-destructs after download or timeout",
    doc="/docs",
    license="MIT",
)

# Import namespaces after api is created to avoid circular imports
from .namespaces import transfer_ns

# Mounted at the root: share links are /download/<token>
api.add_namespace(transfer_ns)
