"""
The transport handle opens and closes connections to a peer. The channel itself comes from a
ChannelOpener supplied by the host, which decides whether the peer is reachable.
"""
import logging

from accessorybridge.channel.base import Channel, ChannelOpener, ChannelOpenError
from accessorybridge.errors import CloseError, OpenFailed

logger = logging.getLogger(__name__)


class Connection:
    """ One open duplex channel to a peer. """

    def __init__(self, peer, channel: Channel):
        self.peer = peer
        self.channel = channel
        self.closed = False

    @property
    def input(self):
        return self.channel.input

    @property
    def output(self):
        return self.channel.output

    def __repr__(self):
        return "Connection(%r%s)" % (self.peer, ", closed" if self.closed else "")


class TransportHandle:
    """
    Opens connections through an opener and releases them.
    :param opener: a callable given the peer identity that returns an open Channel
    """

    def __init__(self, opener: ChannelOpener):
        self.opener = opener

    def open(self, peer) -> Connection:
        """
        Requests a channel to the peer.
        Raises OpenFailed if the opener fails or declines.
        """
        try:
            channel = self.opener(peer)
        except (ChannelOpenError, OSError, ValueError) as e:
            logger.error("failed to open peer %s: %s" % (peer, e))
            raise OpenFailed("unable to open %s" % (peer,)) from e
        if channel is None:
            logger.error("failed to open peer %s: no channel granted" % (peer,))
            raise OpenFailed("no channel granted for %s" % (peer,))
        logger.info("opened peer %s" % (peer,))
        return Connection(peer, channel)

    def close(self, connection: Connection):
        """
        Releases both endpoints of the connection. Closing None or an already closed connection
        does nothing. A failure releasing the channel raises CloseError, but the connection is still
        marked closed.
        """
        if connection is None or connection.closed:
            return
        connection.closed = True
        try:
            connection.channel.close()
        except (OSError, ValueError) as e:
            raise CloseError("error closing %s: %s" % (connection.peer, e)) from e
        logger.info("closed peer %s" % (connection.peer,))
