import socket
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from lanchat.netinfo import (
    NetworkInfo,
    broadcast_address,
    get_network_info,
    pick_network_info,
)


def _addr(family, address, netmask=None, broadcast=None):
    return SimpleNamespace(
        family=family, address=address, netmask=netmask, broadcast=broadcast
    )


def test_defaults_match_fallback_addresses():
    info = NetworkInfo()
    assert info.local_ip == "127.0.0.1"
    assert info.broadcast_ip == "255.255.255.255"


def test_broadcast_address_class_c():
    assert broadcast_address("192.168.1.10", "255.255.255.0") == "192.168.1.255"


def test_broadcast_address_full_mask_returns_host():
    assert broadcast_address("10.1.2.3", "255.255.255.255") == "10.1.2.3"


def test_broadcast_address_zero_mask_is_limited_broadcast():
    assert broadcast_address("10.1.2.3", "0.0.0.0") == "255.255.255.255"


def test_broadcast_address_is_idempotent():
    first = broadcast_address("172.16.5.4", "255.255.0.0")
    assert broadcast_address(first, "255.255.0.0") == first


@pytest.mark.parametrize(
    "ip, mask",
    [("not-an-ip", "255.255.255.0"), ("10.0.0.1", "garbage"), ("300.0.0.1", "0.0.0.0")],
)
def test_broadcast_address_rejects_bad_input(ip, mask):
    with pytest.raises(ValueError):
        broadcast_address(ip, mask)


def test_pick_empty_gives_defaults():
    assert pick_network_info([]) == NetworkInfo()


def test_pick_skips_loopback_interface():
    interfaces = [
        ("lo", "127.0.0.1", "255.0.0.0", None),
        ("eth0", "10.0.0.7", "255.255.255.0", "10.0.0.99"),
    ]
    assert pick_network_info(interfaces) == NetworkInfo("10.0.0.7", "10.0.0.99")


def test_pick_only_loopback_gives_defaults():
    interfaces = [("lo", "127.0.0.1", "255.0.0.0", None)]
    assert pick_network_info(interfaces) == NetworkInfo()


def test_pick_prefers_announced_broadcast():
    interfaces = [("eth0", "192.168.0.5", "255.255.255.0", "192.168.0.200")]
    assert pick_network_info(interfaces).broadcast_ip == "192.168.0.200"


def test_pick_derives_broadcast_from_mask():
    interfaces = [("wlan0", "172.16.3.9", "255.255.0.0", None)]
    info = pick_network_info(interfaces)
    assert info.local_ip == "172.16.3.9"
    assert info.broadcast_ip == broadcast_address("172.16.3.9", "255.255.0.0")


def test_pick_without_mask_keeps_default_broadcast():
    info = pick_network_info([("eth0", "10.9.8.7", None, None)])
    assert info == NetworkInfo("10.9.8.7", "255.255.255.255")


def test_pick_takes_first_usable_interface():
    interfaces = [
        ("eth0", "10.0.0.1", None, "10.0.0.255"),
        ("eth1", "10.1.0.1", None, "10.1.0.255"),
    ]
    assert pick_network_info(interfaces).local_ip == "10.0.0.1"


def test_get_network_info_filters_non_ipv4():
    fake = {
        "lo": [_addr(socket.AF_INET, "127.0.0.1", "255.0.0.0")],
        "eth0": [
            _addr(socket.AF_INET6, "fe80::1", None),
            _addr(socket.AF_INET, "192.168.7.20", "255.255.255.0", "192.168.7.255"),
        ],
    }
    with patch("psutil.net_if_addrs", return_value=fake):
        info = get_network_info()
    assert info == NetworkInfo("192.168.7.20", "192.168.7.255")


def test_get_network_info_falls_back_on_os_error():
    with patch("psutil.net_if_addrs", side_effect=OSError("boom")):
        assert get_network_info() == NetworkInfo()


def test_get_network_info_no_interfaces():
    with patch("psutil.net_if_addrs", return_value={}):
        assert get_network_info() == NetworkInfo()