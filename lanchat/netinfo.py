"""Discovery of the local IPv4 address and the matching broadcast address."""

from __future__ import annotations

import ipaddress
import socket
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Optional, Tuple

import psutil

DEFAULT_LOCAL_IP = "127.0.0.1"
DEFAULT_BROADCAST_IP = "255.255.255.255"
LOOPBACK_INTERFACE = "lo"

_ALL_ONES = 0xFFFFFFFF

InterfaceEntry = Tuple[str, str, Optional[str], Optional[str]]


@dataclass(frozen=True)
class NetworkInfo:
    """The address this host talks from and where its broadcasts go."""

    local_ip: str = DEFAULT_LOCAL_IP
    broadcast_ip: str = DEFAULT_BROADCAST_IP


def broadcast_address(ip: str, netmask: str) -> str:
    """Return the directed broadcast address of ``ip`` under ``netmask``.

    Raises ``ValueError`` if either argument is not a dotted IPv4 address.
    """
    host = int(ipaddress.IPv4Address(ip))
    mask = int(ipaddress.IPv4Address(netmask))
    return str(ipaddress.IPv4Address(host | (~mask & _ALL_ONES)))


def _is_loopback(name: str, address: str) -> bool:
    if name == LOOPBACK_INTERFACE:
        return True
    try:
        return ipaddress.IPv4Address(address).is_loopback
    except ValueError:
        return True


def pick_network_info(interfaces: Iterable[InterfaceEntry]) -> NetworkInfo:
    """Choose the first non-loopback IPv4 interface.

    ``interfaces`` yields ``(name, address, netmask, broadcast)`` tuples whose
    addresses are IPv4 strings; ``netmask`` and ``broadcast`` may be ``None``.
    An announced broadcast address is preferred over one derived from the
    netmask. Without a usable interface the defaults are returned.
    """
    for name, address, netmask, broadcast in interfaces:
        if not address or _is_loopback(name, address):
            continue
        if broadcast:
            return NetworkInfo(address, broadcast)
        if netmask:
            return NetworkInfo(address, broadcast_address(address, netmask))
        return NetworkInfo(address, DEFAULT_BROADCAST_IP)
    return NetworkInfo()


def _system_interfaces() -> Iterator[InterfaceEntry]:
    for name, addresses in psutil.net_if_addrs().items():
        for entry in addresses:
            if entry.family == socket.AF_INET:
                yield name, entry.address, entry.netmask, entry.broadcast


def get_network_info() -> NetworkInfo:
    """Inspect the host's interfaces; fall back to defaults if that fails."""
    try:
        return pick_network_info(list(_system_interfaces()))
    except OSError:
        return NetworkInfo()