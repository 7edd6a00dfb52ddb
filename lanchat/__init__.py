"""Peer-to-peer chat for the local network over UDP broadcast and multicast."""

__version__ = "0.1.0"
__all__ = ["chat", "netinfo", "peers"]