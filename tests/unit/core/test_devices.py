"""Unit tests for network interface enumeration."""

import socket
from types import SimpleNamespace
from unittest.mock import patch

from tcp_repeat.core.devices import list_interfaces


def _addr(family, address):
    return SimpleNamespace(family=family, address=address)


ADDRS = {
    "lo": [_addr(socket.AF_INET, "127.0.0.1")],
    "eth0": [_addr(socket.AF_INET, "10.0.0.2"), _addr(socket.AF_INET6, "fe80::1")],
    "any": [],
    "nflog": [],
}
STATS = {
    "lo": SimpleNamespace(isup=True),
    "eth0": SimpleNamespace(isup=True),
    "wlan0": SimpleNamespace(isup=False),
    "nfqueue": SimpleNamespace(isup=False),
}


def test_pseudo_devices_are_excluded_and_order_kept():
    with patch("tcp_repeat.core.devices.psutil.net_if_addrs", return_value=ADDRS), \
            patch("tcp_repeat.core.devices.psutil.net_if_stats", return_value=STATS):
        interfaces = list_interfaces()

    assert [nic.name for nic in interfaces] == ["lo", "eth0", "wlan0"]
    eth0 = interfaces[1]
    assert eth0.to_dict() == {"name": "eth0", "addresses": ["10.0.0.2", "fe80::1"], "isUp": True}
    assert interfaces[2].is_up is False


def test_enumeration_failure_yields_empty_list():
    with patch("tcp_repeat.core.devices.psutil.net_if_addrs", side_effect=OSError("boom")), \
            patch("tcp_repeat.core.devices.psutil.net_if_stats", return_value={}):
        assert list_interfaces() == []
