"""
Accessory bridge

- Channel: abstraction of a bi-directional byte channel to a peer accessory. Combines 2 streams
  for reading and writing. Concrete channels are serial ports, TCP sockets and an in-memory loopback.
- ChannelOpener: asks the host for a channel to a given peer. Supplied by whatever knows how to reach
  the accessory (serial port, socket address.)
- TransportHandle: opens and closes Connections through an opener.
- CommunicationLoop: reads a chunk from the connection, transforms it and writes the response back,
  until cancelled or the channel fails.
- CommunicationTask: runs one loop on a background thread.
- ConnectionManager: reacts to peer available/unavailable signals. Opens the connection and starts
  exactly one task bound to it, tears both down when the peer goes away.
- discovery - polls for peers and posts PeerAvailableEvent, PeerUnavailableEvent, which are
  forwarded to the manager.

Cancelling a task only asks it to stop at the start of the next cycle. A read blocked on the channel
is interrupted by closing the channel, which is what the manager does on teardown.
"""
