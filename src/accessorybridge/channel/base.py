from abc import abstractmethod
from io import IOBase


class ChannelOpenError(IOError):
    """ Raised by a ChannelOpener when a channel to the peer cannot be opened. """


class Channel:
    """
    A channel allows two-way communication with a peer. It provides a file-like input endpoint and
    a file-like output endpoint. Both endpoints block: input.readinto() waits for data and
    output.write() waits until the bytes are accepted.
    """

    @property
    @abstractmethod
    def peer(self):
        """ the identity of the peer at the other end of this channel """
        raise NotImplementedError

    @property
    @abstractmethod
    def input(self) -> IOBase:
        """ fetches the stream that provides input.
            Callers use readinto() to receive whatever bytes are available. """
        raise NotImplementedError

    @property
    @abstractmethod
    def output(self) -> IOBase:
        """ fetches the stream that provides output. """
        raise NotImplementedError

    @property
    @abstractmethod
    def open(self) -> bool:
        """ determines if this channel is open. When open, the streams provided by
            input and output can be read from/written to."""
        raise NotImplementedError

    @abstractmethod
    def close(self):
        """
        Releases both the input and output streams. Any read or write blocked on the streams
        fails with an I/O error once the channel is released.
        """
        raise NotImplementedError


class StreamChannel(Channel):
    """ provides the channel streams from specific read/write file-like objects (which may be the same value) """

    def __init__(self, peer, read=None, write=None):
        self._peer = peer
        self._read = self._write = None
        self._closed = False
        self.set_streams(read, write)

    def set_streams(self, read, write=None):
        self._read = read
        self._write = write if write is not None else read

    @property
    def peer(self):
        return self._peer

    def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            if self._write is not None:
                self._write.close()
        finally:
            if self._read is not None and self._read is not self._write:
                self._read.close()

    @property
    def open(self):
        return not self._closed

    @property
    def input(self) -> IOBase:
        return self._read

    @property
    def output(self) -> IOBase:
        return self._write


class ChannelOpener:
    """
    Knows how to request a channel to a peer from the host.
    """
    @abstractmethod
    def __call__(self, peer) -> Channel:
        """
        Opens a channel to the given peer.
        Raises ChannelOpenError (or OSError) if the peer cannot be reached or access is refused.
        May also return None when the host declines to open the channel.
        """
        raise NotImplementedError()
