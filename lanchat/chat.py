"""Serverless LAN chat over UDP broadcast and multicast."""

from __future__ import annotations

import argparse
import select
import socket
import sys
import threading
from typing import List, Optional, TextIO, Union

from lanchat.netinfo import NetworkInfo, get_network_info
from lanchat.peers import (
    RECEIVE_BUFFER_SIZE,
    Datagram,
    MessageKind,
    PeerRegistry,
    chat_message,
    generate_username,
    hello_message,
    parse_datagram,
)

BROADCAST_PORT = 37020
MULTICAST_PORT = 37021
MULTICAST_GROUP = "239.255.255.250"
BROADCAST_INTERVAL = 5
RECEIVE_TIMEOUT = 1.0

PROMPT = "> "
BANNER_TITLE = "=== Cross-platform P2P Chat ==="
BANNER_RULE = "================================="
COMMANDS_HELP = "Commands: /join, /leave, /ignore [IP], /list, /exit"
IGNORE_PREFIX = "/ignore "


class ChatError(RuntimeError):
    """A socket could not be set up or a group membership could not change."""


class P2PChat:
    """A chat peer that announces itself and exchanges lines with the LAN."""

    def __init__(
        self,
        network: Optional[NetworkInfo] = None,
        username: Optional[str] = None,
        peers: Optional[PeerRegistry] = None,
        broadcast_port: int = BROADCAST_PORT,
        multicast_port: int = MULTICAST_PORT,
        stdout: Optional[TextIO] = None,
        stdin: Optional[TextIO] = None,
    ) -> None:
        info = network if network is not None else get_network_info()
        self.local_ip = info.local_ip
        self.broadcast_ip = info.broadcast_ip
        self.username = username if username is not None else generate_username()
        self.peers = peers if peers is not None else PeerRegistry()
        self.broadcast_port = broadcast_port
        self.multicast_port = multicast_port
        self.in_multicast_group = True
        self._stdout = stdout if stdout is not None else sys.stdout
        self._stdin = stdin if stdin is not None else sys.stdin
        self._output_lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self._broadcast_sock: Optional[socket.socket] = None
        self._multicast_sock: Optional[socket.socket] = None
        try:
            self._create_broadcast_socket()
            self._create_multicast_socket()
        except BaseException:
            self._close_sockets()
            raise

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def _create_broadcast_socket(self) -> None:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as err:
            raise ChatError("Failed to create broadcast socket") from err
        self._broadcast_sock = sock
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError as err:
            raise ChatError("Failed to set SO_BROADCAST") from err
        try:
            sock.bind(("", self.broadcast_port))
        except OSError as err:
            raise ChatError("Failed to bind broadcast socket") from err
        self.broadcast_port = sock.getsockname()[1]

    def _create_multicast_socket(self) -> None:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as err:
            raise ChatError("Failed to create multicast socket") from err
        self._multicast_sock = sock
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as err:
            raise ChatError("Failed to set SO_REUSEADDR") from err
        try:
            sock.bind(("", self.multicast_port))
        except OSError as err:
            raise ChatError("Failed to bind multicast socket") from err
        self.multicast_port = sock.getsockname()[1]
        self.join_multicast_group()

    def _membership_request(self) -> bytes:
        return socket.inet_aton(MULTICAST_GROUP) + socket.inet_aton(self.local_ip)

    def join_multicast_group(self) -> None:
        """Join the chat's multicast group unless already a member."""
        if self.in_multicast_group:
            return
        try:
            self._multicast_sock.setsockopt(
                socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, self._membership_request()
            )
        except OSError as err:
            raise ChatError("Failed to join multicast group") from err
        self.in_multicast_group = True

    def leave_multicast_group(self) -> None:
        """Leave the chat's multicast group if currently a member."""
        if not self.in_multicast_group:
            return
        try:
            self._multicast_sock.setsockopt(
                socket.IPPROTO_IP, socket.IP_DROP_MEMBERSHIP, self._membership_request()
            )
        except OSError as err:
            raise ChatError("Failed to leave multicast group") from err
        self.in_multicast_group = False

    @staticmethod
    def _as_bytes(message: Union[bytes, str]) -> bytes:
        return message.encode("utf-8") if isinstance(message, str) else message

    def send_broadcast(self, message: Union[bytes, str]) -> None:
        """Send ``message`` to the broadcast address; send errors are ignored."""
        try:
            self._broadcast_sock.sendto(
                self._as_bytes(message), (self.broadcast_ip, self.broadcast_port)
            )
        except OSError:
            pass

    def send_multicast(self, message: Union[bytes, str]) -> None:
        """Send ``message`` to the multicast group; send errors are ignored."""
        try:
            self._multicast_sock.sendto(
                self._as_bytes(message), (MULTICAST_GROUP, self.multicast_port)
            )
        except OSError:
            pass

    def _write(self, text: str) -> None:
        with self._output_lock:
            self._stdout.write(text)
            self._stdout.flush()

    def handle_datagram(self, payload: Union[bytes, str], ip: str) -> Optional[Datagram]:
        """Process a payload from ``ip``; return it decoded, or ``None`` if dropped."""
        if self.peers.is_ignored(ip) or ip == self.local_ip:
            return None
        datagram = parse_datagram(payload)
        if datagram is None:
            return None
        self.peers.touch(ip)
        if datagram.kind is MessageKind.MSG:
            self._write(f"\n[{ip}]: {datagram.text}\n{PROMPT}")
        return datagram

    def receive_once(self, timeout: Optional[float] = RECEIVE_TIMEOUT) -> List[Datagram]:
        """Wait up to ``timeout`` seconds and handle whatever arrived."""
        sockets = [self._broadcast_sock, self._multicast_sock]
        ready, _, _ = select.select(sockets, [], [], timeout)
        handled = []
        for sock in sockets:
            if sock not in ready:
                continue
            try:
                payload, (ip, _port) = sock.recvfrom(RECEIVE_BUFFER_SIZE)
            except OSError:
                continue
            if not payload:
                continue
            datagram = self.handle_datagram(payload, ip)
            if datagram is not None:
                handled.append(datagram)
        return handled

    def heartbeat_once(self) -> List[str]:
        """Announce this peer and forget silent ones; return those forgotten."""
        self.send_broadcast(hello_message(self.username))
        return self.peers.prune()

    def handle_command(self, line: str) -> bool:
        """Act on one line of input; return whether the chat keeps running."""
        if not line:
            return self.running
        if line == "/join":
            self.join_multicast_group()
            self._write("Joined multicast group\n")
        elif line == "/leave":
            self.leave_multicast_group()
            self._write("Left multicast group\n")
        elif line.startswith(IGNORE_PREFIX):
            ip = line[len(IGNORE_PREFIX):]
            self.peers.ignore(ip)
            self._write(f"Ignoring host: {ip}\n")
        elif line == "/list":
            active = self.peers.active()
            lines = [f"\nActive participants ({len(active)}):"]
            lines.extend(f" - {ip} (active {age}s ago)" for ip, age in active)
            self._write("\n".join(lines) + "\n\n")
        elif line == "/exit":
            self._stop.set()
        else:
            message = chat_message(line)
            if self.in_multicast_group:
                self.send_multicast(message)
            self.send_broadcast(message)
        return self.running

    def _receiver_loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.receive_once(RECEIVE_TIMEOUT)
            except (OSError, ValueError):
                self._stop.wait(RECEIVE_TIMEOUT)

    def _heartbeat_loop(self) -> None:
        while not self._stop.is_set():
            self.heartbeat_once()
            self._stop.wait(BROADCAST_INTERVAL)

    def _start_threads(self) -> None:
        self._threads = [
            threading.Thread(target=self._receiver_loop, name="receiver", daemon=True),
            threading.Thread(target=self._heartbeat_loop, name="heartbeat", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def _join_threads(self) -> None:
        for thread in self._threads:
            if thread.is_alive() and thread is not threading.current_thread():
                thread.join()
        self._threads = []

    def run(self) -> None:
        """Print the banner, start the background work and read commands."""
        self._write(
            "\n".join(
                [
                    BANNER_TITLE,
                    f"Local IP: {self.local_ip}",
                    f"Broadcast IP: {self.broadcast_ip}",
                    f"Username: {self.username}",
                    COMMANDS_HELP,
                    BANNER_RULE,
                ]
            )
            + "\n"
        )
        self._start_threads()
        try:
            while self.running:
                self._write(PROMPT)
                line = self._stdin.readline()
                if not line:
                    break
                self.handle_command(line.rstrip("\n"))
        finally:
            self._stop.set()
            self._join_threads()

    def _close_sockets(self) -> None:
        for sock in (self._broadcast_sock, self._multicast_sock):
            if sock is not None:
                sock.close()
        self._broadcast_sock = None
        self._multicast_sock = None

    def close(self) -> None:
        """Stop background work and release the sockets."""
        self._stop.set()
        self._join_threads()
        self._close_sockets()

    def __enter__(self) -> "P2PChat":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Start an interactive chat session on the local network."""
    parser = argparse.ArgumentParser(
        prog="lanchat", description="Chat with peers on the local network."
    )
    parser.parse_args(argv)
    try:
        with P2PChat() as chat:
            chat.run()
    except (ChatError, OSError) as err:
        print(f"Fatal error: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())