import io
import logging
import socket

from accessorybridge.channel.base import Channel, ChannelOpener, ChannelOpenError

logger = logging.getLogger(__name__)


def parse_endpoint(text, default_port=None):
    """
    Splits a host:port string into a (host, port) tuple.
    >>> parse_endpoint('localhost:5555')
    ('localhost', 5555)
    >>> parse_endpoint('10.0.0.1', 80)
    ('10.0.0.1', 80)
    """
    host, sep, port = text.rpartition(':')
    if not sep:
        host, port = text, default_port
    if port is None or port == '':
        raise ValueError("no port given in '%s'" % text)
    return host, int(port)


class SocketReader(io.RawIOBase):
    """
    Receives whatever has arrived on the socket. A socket timeout gives a zero-length read.
    """

    def __init__(self, sock: socket.socket):
        super().__init__()
        self.sock = sock

    def readable(self):
        return True

    def readinto(self, b):
        self._checkClosed()
        try:
            return self.sock.recv_into(b)
        except socket.timeout:
            return 0


class SocketChannel(Channel):
    """
    A channel that provides communication via a connected socket.
    The streams are unbuffered so a read returns as soon as any data arrives.
    A read returning zero bytes without a timeout means the remote end has shut down its side,
    so sockets are normally bridged with the end_of_stream zero read policy.
    :param sock The open, connected socket
    """
    def __init__(self, sock: socket.socket, peer=None):
        self.sock = sock
        self._peer = peer if peer is not None else sock.getpeername()
        self.read = SocketReader(sock)
        self.write = sock.makefile('wb', buffering=0)

    @property
    def peer(self):
        return self._peer

    @property
    def open(self) -> bool:
        return self.sock.fileno() >= 0

    @property
    def input(self):
        return self.read

    @property
    def output(self):
        return self.write

    def close(self):
        self.read.close()
        self.write.close()
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass    # the peer may have closed the socket already
        finally:
            self.sock.close()


class SocketChannelOpener(ChannelOpener):
    """
    Connects to a TCP endpoint given as a (host, port) tuple.
    :param connect_timeout how long to wait for the connection to be accepted
    :param read_timeout the socket timeout once connected. None blocks indefinitely.
    """
    def __init__(self, connect_timeout=5, read_timeout=None):
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    def __call__(self, peer):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.connect_timeout)
            sock.connect(peer)
            sock.settimeout(self.read_timeout)
        except OSError as e:
            sock.close()
            raise ChannelOpenError("unable to connect to %s: %s" % (str(peer), e)) from e
        logger.info("opened socket to %s" % str(peer))
        return SocketChannel(sock, peer)
