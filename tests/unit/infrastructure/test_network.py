"""
Tests for local address discovery.
"""

import socket
from unittest.mock import MagicMock, patch

from quickdrop.infrastructure import network


class TestGetLocalIp:
    def test_prefers_first_non_loopback_address(self):
        with patch.object(socket, "gethostbyname_ex",
                          return_value=("host", [], ["127.0.1.1", "169.254.3.3", "192.168.1.20"])):
            assert network.get_local_ip() == "192.168.1.20"

    def test_falls_back_to_outbound_interface(self):
        probe = MagicMock()
        probe.getsockname.return_value = ("10.0.0.7", 40000)
        with patch.object(socket, "gethostbyname_ex", return_value=("host", [], ["127.0.0.1"])), \
                patch.object(network.socket, "socket", return_value=probe):
            assert network.get_local_ip() == "10.0.0.7"
        probe.close.assert_called_once()

    def test_localhost_when_nothing_found(self):
        probe = MagicMock()
        probe.connect.side_effect = OSError("network unreachable")
        with patch.object(socket, "gethostbyname_ex", side_effect=OSError("no dns")), \
                patch.object(network.socket, "socket", return_value=probe):
            assert network.get_local_ip() == "localhost"
