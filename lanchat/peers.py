"""Wire messages and bookkeeping of the peers seen on the network."""

from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

PARTICIPANT_TIMEOUT = 15
RECEIVE_BUFFER_SIZE = 1023
ENCODING = "utf-8"

USERNAME_PREFIX = "User-"
USERNAME_MIN = 1000
USERNAME_MAX = 9999


class MessageKind(Enum):
    """Kinds of datagram the chat understands."""

    HELLO = "HELLO"
    MSG = "MSG"


@dataclass(frozen=True)
class Datagram:
    """A decoded datagram: its kind and the text following the keyword."""

    kind: MessageKind
    text: str


def parse_datagram(payload: bytes | str) -> Optional[Datagram]:
    """Decode a received payload, or return ``None`` if it is not recognised.

    A payload starting with ``HELLO`` is a heartbeat; one starting with
    ``MSG`` is a chat line. The text is what follows the keyword and the
    single separator character after it.
    """
    if isinstance(payload, bytes):
        payload = payload.decode(ENCODING, errors="replace")
    for kind in (MessageKind.HELLO, MessageKind.MSG):
        keyword = kind.value
        if payload.startswith(keyword):
            return Datagram(kind, payload[len(keyword) + 1:])
    return None


def hello_message(username: str) -> bytes:
    """Build the heartbeat payload announcing ``username``."""
    return f"{MessageKind.HELLO.value} {username}".encode(ENCODING)


def chat_message(text: str) -> bytes:
    """Build the payload carrying a chat line."""
    return f"{MessageKind.MSG.value} {text}".encode(ENCODING)


def generate_username(rng: Optional[random.Random] = None) -> str:
    """Return a random name of the form ``User-NNNN``."""
    source = rng if rng is not None else random.SystemRandom()
    return f"{USERNAME_PREFIX}{source.randint(USERNAME_MIN, USERNAME_MAX)}"


def _now() -> int:
    return int(time.time())


class PeerRegistry:
    """Thread-safe record of ignored hosts and when each peer was last heard."""

    def __init__(self, timeout: int = PARTICIPANT_TIMEOUT) -> None:
        self.timeout = timeout
        self._ignored: Set[str] = set()
        self._last_seen: Dict[str, int] = {}
        self._ignore_lock = threading.Lock()
        self._peers_lock = threading.Lock()

    def ignore(self, ip: str) -> None:
        """Drop all future traffic from ``ip``."""
        with self._ignore_lock:
            self._ignored.add(ip)

    def is_ignored(self, ip: str) -> bool:
        with self._ignore_lock:
            return ip in self._ignored

    def touch(self, ip: str, now: Optional[int] = None) -> None:
        """Record that ``ip`` was heard from at ``now``."""
        stamp = _now() if now is None else now
        with self._peers_lock:
            self._last_seen[ip] = stamp

    def prune(self, now: Optional[int] = None) -> List[str]:
        """Forget peers silent for longer than the timeout; return them."""
        stamp = _now() if now is None else now
        with self._peers_lock:
            stale = [
                ip for ip, seen in self._last_seen.items()
                if stamp - seen > self.timeout
            ]
            for ip in stale:
                del self._last_seen[ip]
        return stale

    def active(self, now: Optional[int] = None) -> List[Tuple[str, int]]:
        """Return ``(ip, seconds since last heard)`` for every known peer."""
        stamp = _now() if now is None else now
        with self._peers_lock:
            return [(ip, stamp - seen) for ip, seen in self._last_seen.items()]

    def __len__(self) -> int:
        with self._peers_lock:
            return len(self._last_seen)

    def __contains__(self, ip: object) -> bool:
        with self._peers_lock:
            return ip in self._last_seen