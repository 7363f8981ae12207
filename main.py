"""
main.py

QuickDrop server: share a file through a link or QR code and it destroys
itself once downloaded or when its time runs out.

Dependencies:
  - Python packages: Flask, flask-restx, flask-cors, qrcode, Pillow,
    redis and celery (for the shared record map and the beat reaper)

Notes:
  - Endpoints: POST /upload, GET /download/<token>, GET /status/<token>,
    GET /qr/<token>, GET /health, Swagger docs at /docs
  - All settings come from environment variables, see TransferConfig
"""

import atexit
import logging
import os
import webbrowser

from quickdrop.app_factory import create_app, shutdown_app
from quickdrop.config.transfer_config import TransferConfig

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("quickdrop")

config = TransferConfig()
app = create_app(config)
atexit.register(shutdown_app, app)


def print_banner(url: str) -> None:
    print("=" * 60)
    print("  QuickDrop - self-destructing file transfer")
    print(f"  Service:  {url}")
    print(f"  API docs: {url}/docs")
    print(
        f"  Files live {config.default_ttl_seconds}s, "
        f"{config.default_max_retrievals} download(s) by default"
    )
    print("=" * 60)


if __name__ == "__main__":
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"
    service_url = config.base_url

    print_banner(service_url)
    if config.open_browser:
        try:
            webbrowser.open(service_url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open browser: {e}")

    # The reloader would start a second reaper and record map
    app.run(host=config.host, port=config.port, debug=debug, use_reloader=False, threaded=True)
