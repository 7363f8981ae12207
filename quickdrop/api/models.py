"""
API Models for request/response validation and Swagger documentation
"""

from flask_restx import fields, reqparse
from werkzeug.datastructures import FileStorage

from quickdrop.api import api

# =============================================================================
# Request Parsers
# =============================================================================

upload_parser = reqparse.RequestParser()
upload_parser.add_argument(
    "file",
    type=FileStorage,
    location="files",
    required=False,
    help="File to share",
)
upload_parser.add_argument(
    "ttl_seconds",
    type=int,
    location="form",
    required=False,
    help="Seconds until the file self-destructs",
)
upload_parser.add_argument(
    "max_retrievals",
    type=int,
    location="form",
    required=False,
    help="Number of downloads allowed before the file self-destructs",
)

# =============================================================================
# Response Models
# =============================================================================

upload_response = api.model(
    "UploadResponse",
    {
        "token": fields.String(description="Capability token for the file"),
        "url": fields.String(
            description="Download URL",
            example="http://192.168.1.20:8989/download/<token>",
        ),
        "qr_url": fields.String(description="Path of the QR code for url"),
        "expires_at": fields.String(description="ISO 8601 self-destruct time"),
        "max_retrievals": fields.Integer(description="Downloads allowed", min=1),
    },
)

status_response = api.model(
    "StatusResponse",
    {
        "status": fields.String(description="Always 'active'; gone files answer 404", example="active"),
    },
)

error_response = api.model(
    "ErrorResponse",
    {
        "error": fields.String(description="Error category"),
        "title": fields.String(description="Short error title"),
        "message": fields.String(description="User-facing error message"),
        "action": fields.String(description="Suggested next step"),
    },
)
