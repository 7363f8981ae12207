"""
Network helpers

Local address discovery for share links served on the LAN.
"""

import logging
import socket

logger = logging.getLogger(__name__)


def get_local_ip() -> str:
    """
    First non-loopback IPv4 address of this machine.

    Returns:
        Dotted-quad address, or "localhost" if none can be found
    """
    try:
        hostname = socket.gethostname()
        addresses = socket.gethostbyname_ex(hostname)[2]
    except OSError as e:
        logger.debug(f"Hostname lookup failed: {e}")
        addresses = []

    for address in addresses:
        if not address.startswith("127.") and not address.startswith("169.254."):
            return address

    # No packets are sent; connect() on UDP only selects the outbound interface
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        probe.connect(("10.255.255.255", 1))
        address = probe.getsockname()[0]
    except OSError:
        address = None
    finally:
        probe.close()

    if address and not address.startswith("127."):
        return address
    return "localhost"
