"""
An in-process channel. What the peer sends is queued as chunks and handed out one chunk per read,
the way an accessory delivers one transfer per read. Useful as a loopback peer in tests and demos.
"""
import io
import threading
from collections import deque

from accessorybridge.channel.base import ChannelOpener, ChannelOpenError, StreamChannel


class ChunkReader(io.RawIOBase):
    """
    A readable stream that blocks until a chunk is queued by the peer.
    An empty chunk is delivered as a zero-length read. Closing the stream wakes any blocked reader,
    which then fails with an I/O error.
    """

    def __init__(self):
        super().__init__()
        self._chunks = deque()
        self._lock = threading.Condition()

    def readable(self):
        return True

    def put(self, data: bytes):
        with self._lock:
            if self.closed:
                raise ValueError("put to closed stream")
            self._chunks.append(bytes(data))
            self._lock.notify_all()

    def readinto(self, b):
        with self._lock:
            while not self._chunks and not self.closed:
                self._lock.wait()
            if self.closed:
                raise OSError("stream closed")
            chunk = self._chunks.popleft()
            count = min(len(b), len(chunk))
            b[:count] = chunk[:count]
            if count < len(chunk):
                self._chunks.appendleft(chunk[count:])
            return count

    def close(self):
        with self._lock:
            super().close()
            self._lock.notify_all()


class ChunkWriter(io.RawIOBase):
    """
    A writable stream that records each write.
    :param max_write: when given, at most this many bytes are accepted per call.
    """

    def __init__(self, max_write=None):
        super().__init__()
        self.max_write = max_write
        self.writes = []
        self._lock = threading.Condition()

    def writable(self):
        return True

    def write(self, b):
        self._checkClosed()
        data = bytes(b)
        if self.max_write is not None:
            data = data[:self.max_write]
        with self._lock:
            self.writes.append(data)
            self._lock.notify_all()
        return len(data)

    def getvalue(self):
        with self._lock:
            return b''.join(self.writes)

    def wait_for(self, size, timeout=None):
        """ waits until at least size bytes have been written. Returns True if they were. """
        with self._lock:
            return self._lock.wait_for(lambda: sum(len(w) for w in self.writes) >= size, timeout)


class MemoryChannel(StreamChannel):
    """
    A channel whose peer is driven from code: send() queues bytes for the bridge to read,
    and the bytes the bridge writes are collected on the output stream.
    """

    def __init__(self, peer='memory', max_write=None):
        super().__init__(peer, ChunkReader(), ChunkWriter(max_write))

    def send(self, data: bytes):
        self.input.put(data)

    def received(self) -> bytes:
        return self.output.getvalue()


class MemoryChannelOpener(ChannelOpener):
    """
    Opens MemoryChannel instances for the peers it knows. Keeps every channel opened so the
    caller can play the part of the peer.
    """

    def __init__(self, peers=None, max_write=None):
        self.peers = peers
        self.max_write = max_write
        self.opened = []

    def __call__(self, peer):
        if self.peers is not None and peer not in self.peers:
            raise ChannelOpenError("no such peer %s" % peer)
        channel = MemoryChannel(peer, self.max_write)
        self.opened.append(channel)
        return channel

    @property
    def last(self) -> MemoryChannel:
        return self.opened[-1] if self.opened else None
