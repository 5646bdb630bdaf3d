"""
The communication loop: read a chunk from the peer, transform it, write the response back.

The loop runs on a background thread owned by a CommunicationTask. Cancelling the task sets a flag
that the loop checks once per cycle, before it blocks on the next read. A read already blocked
is only interrupted by closing the connection underneath it, which makes the read fail. The loop
treats that failure as its cue to exit.
"""
import logging
import threading
import time
from enum import Enum

from accessorybridge.errors import CommunicationError
from accessorybridge.support.events import EventSource
from accessorybridge.support.mixins import CommonEqualityMixin
from accessorybridge.transform import acknowledge, decode
from accessorybridge.transport import Connection

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 16384
DEFAULT_IDLE_DELAY = 0.01
DEFAULT_WRITE_STALLS = 100


class ZeroReadPolicy(Enum):
    """ What a read returning no bytes means. """
    IGNORE = 'ignore'                   # no data this cycle, read again (accessory transfers)
    END_OF_STREAM = 'end_of_stream'     # the peer has closed its side (sockets, pipes)


class LoopOutcome(Enum):
    CANCELLED = 'cancelled'
    FAILED = 'failed'
    END_OF_STREAM = 'end_of_stream'


class CommunicationEndedEvent(CommonEqualityMixin):
    """ Fired by a CommunicationTask when its loop has exited, for whatever reason. """
    def __init__(self, task, peer, outcome: LoopOutcome, error=None):
        self.task = task
        self.peer = peer
        self.outcome = outcome
        self.error = error


class CommunicationLoop:
    """
    Reads messages from a connection and writes back the transformed response.

    :param connection   the connection whose endpoints are read and written. The loop only borrows it;
        it never closes it.
    :param transform    a pure callable from the bytes read to the bytes to write
    :param buffer_size  the most bytes taken by one read
    :param zero_read    how a zero-length read is treated
    :param idle_delay   seconds to pause after an ignored zero-length read, so a channel that
        returns empty at once is not polled flat out
    :param write_stalls how many writes in a row may accept no bytes before the write fails
    """

    def __init__(self, connection: Connection, transform=acknowledge, buffer_size=DEFAULT_BUFFER_SIZE,
                 zero_read=ZeroReadPolicy.IGNORE, idle_delay=DEFAULT_IDLE_DELAY, write_stalls=DEFAULT_WRITE_STALLS):
        if buffer_size <= 0:
            raise ValueError("buffer size must be positive, got %s" % buffer_size)
        self.connection = connection
        self.transform = transform
        self.buffer = bytearray(buffer_size)
        self.zero_read = ZeroReadPolicy(zero_read)
        self.idle_delay = idle_delay
        self.write_stalls = write_stalls
        self.cycles = 0         # completed read/transform/write cycles

    def run(self, cancel: threading.Event) -> LoopOutcome:
        """
        Runs cycles until cancel is set or the peer ends the stream.
        Raises CommunicationError when a read or write fails. Nothing is retried.
        """
        view = memoryview(self.buffer)
        while not cancel.is_set():
            count = self._read(view)
            if not count:
                if self.zero_read is ZeroReadPolicy.END_OF_STREAM:
                    logger.info("end of stream from %s" % (self.connection.peer,))
                    return LoopOutcome.END_OF_STREAM
                time.sleep(self.idle_delay)
                continue
            self.cycle(bytes(view[:count]))
        return LoopOutcome.CANCELLED

    def cycle(self, message: bytes):
        """ transforms one message and writes the response """
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("received %d bytes: %s" % (len(message), decode(message)))
        response = self.transform(message)
        self._write(response)
        self.cycles += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("responded: %s" % decode(response))

    def _read(self, view) -> int:
        try:
            count = self.connection.input.readinto(view)
        except (OSError, ValueError) as e:
            raise CommunicationError("read from %s failed: %s" % (self.connection.peer, e)) from e
        return count or 0

    def _write(self, response: bytes):
        """ writes all of the response, continuing after partial writes """
        output = self.connection.output
        data = memoryview(response)
        total = len(data)
        written = 0
        stalls = 0
        try:
            while written < total:
                count = output.write(data[written:])
                if not count:
                    stalls += 1
                    if stalls > self.write_stalls:
                        raise CommunicationError("write to %s stalled after %d of %d bytes" %
                                                 (self.connection.peer, written, total), written, total)
                    time.sleep(self.idle_delay)
                    continue
                stalls = 0
                written += count
            flush = getattr(output, 'flush', None)
            if flush is not None:
                flush()
        except (OSError, ValueError) as e:
            raise CommunicationError("write to %s failed after %d of %d bytes: %s" %
                                     (self.connection.peer, written, total, e), written, total) from e


class CommunicationTask:
    """
    Runs a CommunicationLoop on a daemon thread.

    The task ends when cancelled, when the peer ends the stream, or when the loop fails.
    It reports the end through its own state (done, outcome, error) and the `ended` event,
    which is fired on the task thread. It never touches its owner's state.
    """

    def __init__(self, loop: CommunicationLoop, log=logger):
        self.loop = loop
        self.cancel_event = threading.Event()
        self.done_event = threading.Event()
        self.ended = EventSource()
        self.thread = None
        self.outcome = None
        self.error = None
        self.logger = log

    @property
    def peer(self):
        return self.loop.connection.peer

    @property
    def cycles(self):
        return self.loop.cycles

    @property
    def cancelled(self):
        return self.cancel_event.is_set()

    @property
    def done(self):
        return self.done_event.is_set()

    @property
    def running(self):
        return self.thread is not None and not self.done

    def start(self):
        if self.thread is None:
            t = threading.Thread(target=self._run, name="communication-%s" % (self.peer,))
            t.daemon = True
            self.thread = t
            t.start()
        return self

    def cancel(self):
        """ asks the loop to stop before its next read. Cancelling again, or after the task ended, does nothing. """
        self.cancel_event.set()

    def join(self, timeout=None):
        """
        Waits for the task thread to exit.
        :return: True if the task has ended
        """
        thread = self.thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        return self.done

    def _run(self):
        self.logger.info("communication with %s started" % (self.peer,))
        try:
            self.outcome = self.loop.run(self.cancel_event)
        except CommunicationError as e:
            if self.cancelled:
                # the owner closed the connection to unblock the loop
                self.logger.debug("communication with %s interrupted: %s" % (self.peer, e))
                self.outcome = LoopOutcome.CANCELLED
            else:
                self.logger.exception("communication with %s failed" % (self.peer,))
                self.outcome = LoopOutcome.FAILED
                self.error = e
        except Exception as e:
            self.logger.exception("unexpected error communicating with %s" % (self.peer,))
            self.outcome = LoopOutcome.FAILED
            self.error = e
        finally:
            self.done_event.set()
        self.logger.info("communication with %s ended: %s after %d message(s)" %
                         (self.peer, self.outcome.value, self.cycles))
        self.ended.fire(CommunicationEndedEvent(self, self.peer, self.outcome, self.error))


def loop_factory(transform=acknowledge, buffer_size=DEFAULT_BUFFER_SIZE, zero_read=ZeroReadPolicy.IGNORE,
                 idle_delay=DEFAULT_IDLE_DELAY):
    """
    Creates a function that builds the communication task for a connection, with the given loop settings.
    """
    def create_task(connection: Connection) -> CommunicationTask:
        return CommunicationTask(CommunicationLoop(connection, transform, buffer_size, zero_read, idle_delay))
    return create_task
