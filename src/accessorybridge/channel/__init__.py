"""
The channel package provides an abstraction of a bi-directional byte stream to a peer accessory.
Concrete implementations include serial ports, TCP sockets and an in-memory loopback.

Peer discovery reports which peers are presently reachable, as a series of available/unavailable events.
"""
