import socket
import threading
import unittest

from hamcrest import assert_that, is_, calling, raises

from accessorybridge.channel.base import ChannelOpenError
from accessorybridge.channel.socket_channel import SocketChannel, SocketChannelOpener, parse_endpoint
from accessorybridge.loop import CommunicationLoop, LoopOutcome, ZeroReadPolicy
from accessorybridge.transform import acknowledge
from accessorybridge.transport import Connection

server_host = '127.0.0.1'


def free_port():
    s = socket.socket()
    s.bind((server_host, 0))
    port = s.getsockname()[1]
    s.close()
    return port


class ParseEndpointTest(unittest.TestCase):

    def test_host_and_port(self):
        assert_that(parse_endpoint('localhost:5555'), is_(('localhost', 5555)))

    def test_default_port(self):
        assert_that(parse_endpoint('localhost', 80), is_(('localhost', 80)))

    def test_missing_port(self):
        assert_that(calling(parse_endpoint).with_args('localhost'), raises(ValueError))
        assert_that(calling(parse_endpoint).with_args('localhost:'), raises(ValueError))

    def test_bad_port(self):
        assert_that(calling(parse_endpoint).with_args('localhost:abc'), raises(ValueError))


class SocketChannelTest(unittest.TestCase):

    def setUp(self):
        self.near, self.far = socket.socketpair()
        self.sut = SocketChannel(self.near, peer='far')

    def tearDown(self):
        self.sut.close()
        self.far.close()

    def test_read_returns_what_arrived(self):
        self.far.sendall(b"abc")
        b = bytearray(16)
        assert_that(self.sut.input.readinto(b), is_(3))
        assert_that(bytes(b[:3]), is_(b"abc"))

    def test_write(self):
        self.sut.output.write(b"hello")
        assert_that(self.far.recv(16), is_(b"hello"))

    def test_shutdown_by_peer_is_zero_length_read(self):
        self.far.shutdown(socket.SHUT_WR)
        assert_that(self.sut.input.readinto(bytearray(4)), is_(0))

    def test_timeout_is_zero_length_read(self):
        self.near.settimeout(0.05)
        assert_that(self.sut.input.readinto(bytearray(4)), is_(0))

    def test_bridged_until_peer_shuts_down(self):
        self.far.sendall(b"ping")
        self.far.shutdown(socket.SHUT_WR)
        loop = CommunicationLoop(Connection('far', self.sut), zero_read=ZeroReadPolicy.END_OF_STREAM)
        assert_that(loop.run(threading.Event()), is_(LoopOutcome.END_OF_STREAM))
        assert_that(self.far.recv(64), is_(acknowledge(b"ping")))

    def test_close(self):
        assert_that(self.sut.open, is_(True))
        assert_that(self.sut.peer, is_('far'))
        self.sut.close()
        assert_that(self.sut.open, is_(False))
        assert_that(calling(self.sut.input.readinto).with_args(bytearray(4)), raises(ValueError))


class SocketChannelOpenerTest(unittest.TestCase):

    def test_connects(self):
        server = socket.socket()
        server.bind((server_host, 0))
        server.listen(1)
        peer = server.getsockname()
        try:
            channel = SocketChannelOpener()(peer)
            client, _ = server.accept()
            try:
                assert_that(channel.peer, is_(peer))
                channel.output.write(b"x")
                assert_that(client.recv(1), is_(b"x"))
            finally:
                channel.close()
                client.close()
        finally:
            server.close()

    def test_connection_refused(self):
        sut = SocketChannelOpener(connect_timeout=1)
        assert_that(calling(sut).with_args((server_host, free_port())), raises(ChannelOpenError))


if __name__ == '__main__':  # pragma no cover
    unittest.main()
