# lanchat

A small console chat for machines on the same local network. There is no
server. Each instance announces itself with UDP broadcast datagrams. Chat
lines go out by broadcast and, while the peer counts itself a member of the
multicast group, to that group as well.

## Installing

```
pip install .
```

## Running

```
lanchat
```

When it starts, lanchat prints the local address, the broadcast address and a
random user name of the form `User-1234`. Then it shows a `> ` prompt. Any line
that is not a command goes out to the other peers. Incoming chat lines are
shown as `[ip]: text`. The session ends on `/exit` or at the end of input.

If a socket cannot be set up, or a group membership cannot be changed,
lanchat prints `Fatal error: ...` to standard error and exits with status 1.

Commands:

| Command      | Effect                                                          |
|--------------|-----------------------------------------------------------------|
| `/join`      | join the multicast group, unless already counted as a member    |
| `/leave`     | leave the multicast group, if counted as a member               |
| `/ignore IP` | drop every later datagram from that host                        |
| `/list`      | list known participants and how many seconds ago each was heard |
| `/exit`      | quit                                                            |

At start-up the peer counts itself a member of the multicast group, so chat
lines are sent to the group straight away. It does not subscribe to the group
when it starts, so `/join` has no effect until after a `/leave`.

## How it works

- Broadcast traffic uses UDP port 37020. Multicast traffic uses group
  `239.255.255.250`, port 37021.
- Every 5 seconds each peer broadcasts `HELLO <username>`.
- Chat lines are sent as `MSG <text>`.
- Both kinds of datagram refresh the sender in the participant list. A peer
  that has been silent for more than 15 seconds is dropped from it.
- Datagrams from the peer's own address and from ignored hosts are dropped.
  At most 1023 bytes of each datagram are read.

## Using it as a library

`lanchat.netinfo.get_network_info()` returns a `NetworkInfo` holding
`local_ip` and `broadcast_ip`, taken from the first non-loopback IPv4
interface, with `127.0.0.1` and `255.255.255.255` as defaults.
`pick_network_info()` makes the same choice from a list of
`(name, address, netmask, broadcast)` tuples, and `broadcast_address(ip,
netmask)` computes a directed broadcast address.

`lanchat.peers` has the wire format (`parse_datagram`, `hello_message`,
`chat_message`, `generate_username`) and `PeerRegistry`, which tracks when
each peer was last heard and which hosts are ignored.

`lanchat.chat.P2PChat` owns the sockets and is a context manager. Its
network details, user name, ports and text streams can be passed in; the
single-step methods `handle_datagram`, `receive_once`, `heartbeat_once` and
`handle_command` let it be driven without starting `run()`.

```python
from lanchat.chat import P2PChat

with P2PChat() as chat:
    chat.run()
```