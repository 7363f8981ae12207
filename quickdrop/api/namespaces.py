"""
API Namespaces - Transfer endpoints
"""

from flask import Response, current_app, send_file
from flask_restx import Namespace, Resource
from werkzeug.exceptions import RequestEntityTooLarge

from quickdrop.api import api
from quickdrop.api.models import (
    error_response,
    status_response,
    upload_parser,
    upload_response,
)
from quickdrop.application.transfer_service import TransferService
from quickdrop.domain.errors import (
    ErrorCategory,
    StorageFullError,
    StorageUnavailableError,
    create_error_response,
)

transfer_ns = Namespace("transfers", path="/", description="Ephemeral file transfer operations")


def _transfer_service():
    container = getattr(current_app, "container", None)
    if container is None:
        return None
    return container.resolve_optional(TransferService)


def _service_unavailable():
    return create_error_response(
        ErrorCategory.SYSTEM_ERROR,
        "Transfer service not initialized",
        status_code=503,
    )


def _gone():
    return create_error_response(ErrorCategory.NOT_FOUND, status_code=404)


@api.errorhandler(RequestEntityTooLarge)
def handle_upload_too_large(error):
    """Uploads over MAX_CONTENT_LENGTH"""
    current_app.logger.warning("Rejected upload larger than the configured limit")
    return create_error_response(ErrorCategory.FILE_TOO_LARGE, str(error), status_code=413)


@transfer_ns.route("/upload")
class Upload(Resource):
    """Share a file"""

    @transfer_ns.doc("upload_file")
    @transfer_ns.expect(upload_parser)
    @transfer_ns.response(200, "Success", upload_response)
    @transfer_ns.response(400, "Bad Request", error_response)
    @transfer_ns.response(413, "File Too Large", error_response)
    @transfer_ns.response(503, "Service Unavailable", error_response)
    @transfer_ns.response(507, "Insufficient Storage", error_response)
    def post(self):
        """
        Upload a file and get a self-destructing share link

        The file can be downloaded max_retrievals times (default once) until
        ttl_seconds elapse, after which it is destroyed.
        """
        service = _transfer_service()
        if service is None:
            return _service_unavailable()

        args = upload_parser.parse_args()
        upload = args.get("file")
        if upload is None or not upload.filename:
            return create_error_response(
                ErrorCategory.MISSING_FILE, "No file in upload", status_code=400
            )

        try:
            result = service.upload(
                upload.stream,
                upload.filename,
                content_type=upload.mimetype,
                ttl_seconds=args.get("ttl_seconds"),
                max_retrievals=args.get("max_retrievals"),
            )
        except ValueError as e:
            return create_error_response(ErrorCategory.INVALID_REQUEST, str(e), status_code=400)
        except StorageFullError as e:
            current_app.logger.warning(f"Upload rejected, storage full: {e}")
            return create_error_response(ErrorCategory.STORAGE_FULL, str(e), status_code=507)
        except StorageUnavailableError as e:
            current_app.logger.error(f"Upload failed, storage unavailable: {e}")
            return create_error_response(
                ErrorCategory.STORAGE_UNAVAILABLE, str(e), status_code=503
            )
        except Exception as e:
            current_app.logger.exception(f"Unexpected error in /upload: {str(e)}")
            return create_error_response(ErrorCategory.SYSTEM_ERROR, str(e), status_code=500)

        current_app.logger.info(
            f"Stored {upload.filename!r} as {result.token[:8]}, expires {result.expires_at.isoformat()}"
        )
        return result.to_dict(), 200


@transfer_ns.route("/download/<string:token>")
@transfer_ns.param("token", "The access token")
class Download(Resource):
    """Retrieve a file"""

    @transfer_ns.doc("download_file")
    @transfer_ns.response(200, "File content")
    @transfer_ns.response(404, "Not Found", error_response)
    @transfer_ns.response(503, "Service Unavailable", error_response)
    def get(self, token):
        """
        Download a file

        Counts as one retrieval. When the last permitted retrieval has been
        streamed the file is destroyed; afterwards the link answers 404.
        """
        service = _transfer_service()
        if service is None:
            return _service_unavailable()

        try:
            result = service.download(token)
        except StorageUnavailableError as e:
            current_app.logger.error(f"Download of {token[:8]} failed: {e}")
            return create_error_response(
                ErrorCategory.STORAGE_UNAVAILABLE, str(e), status_code=503
            )

        if result is None:
            return _gone()

        record = result.record
        try:
            response = send_file(
                result.payload,
                mimetype=record.content_type,
                as_attachment=True,
                download_name=record.original_name,
                conditional=False,
            )
        except Exception:
            result.payload.close()
            raise

        response.content_length = record.size_bytes
        response.headers["Content-Transfer-Encoding"] = "binary"
        current_app.logger.info(
            f"Serving {token[:8]} ({record.retrieval_count}/{record.max_retrievals})"
        )
        return response


@transfer_ns.route("/status/<string:token>")
@transfer_ns.param("token", "The access token")
class Status(Resource):
    """Poll a file"""

    @transfer_ns.doc("get_status")
    @transfer_ns.response(200, "Active", status_response)
    @transfer_ns.response(404, "Gone", error_response)
    def get(self, token):
        """
        Check whether a file can still be downloaded

        Does not count as a retrieval.
        """
        service = _transfer_service()
        if service is None:
            return _service_unavailable()

        try:
            active = service.is_active(token)
        except StorageUnavailableError as e:
            return create_error_response(
                ErrorCategory.STORAGE_UNAVAILABLE, str(e), status_code=503
            )

        if not active:
            return _gone()
        return {"status": "active"}, 200


@transfer_ns.route("/qr/<string:token>")
@transfer_ns.param("token", "The access token")
class QrCode(Resource):
    """QR code for a share link"""

    @transfer_ns.doc("get_qr_code")
    @transfer_ns.produces(["image/png"])
    @transfer_ns.response(200, "PNG image")
    @transfer_ns.response(404, "Gone", error_response)
    def get(self, token):
        """
        Get the QR code encoding the download URL
        """
        service = _transfer_service()
        if service is None:
            return _service_unavailable()

        try:
            png = service.qr_png(token)
        except StorageUnavailableError as e:
            return create_error_response(
                ErrorCategory.STORAGE_UNAVAILABLE, str(e), status_code=503
            )

        if png is None:
            return _gone()

        response = Response(png, mimetype="image/png")
        response.headers["Cache-Control"] = "no-store"
        return response
