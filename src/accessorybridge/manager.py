"""
The connection lifecycle manager.

The manager is either Idle, with nothing open, or Open, holding the connection and the one
communication task bound to it. Availability signals move it between the two:

    Idle --peer_available--> Open
    Open --peer_available--> Open       (the previous connection and task are torn down first)
    Open --peer_unavailable--> Idle
    Open --update, task ended--> Idle

A failed open leaves the manager Idle and raises OpenFailed to the caller. So does a peer_available
while a torn down task has not yet ended, which keeps at most one task running. Nothing is retried;
reopening needs a fresh availability signal.
"""
import logging

from accessorybridge.errors import CloseError, OpenFailed
from accessorybridge.support.events import QueuedEventSource
from accessorybridge.support.mixins import CommonEqualityMixin
from accessorybridge.transport import Connection, TransportHandle

logger = logging.getLogger(__name__)


class Idle(CommonEqualityMixin):
    """ No connection is open. """
    is_open = False
    connection = None
    task = None

    def __repr__(self):
        return "Idle()"


class Open:
    """ A connection is open and the task bound to it was started. """
    is_open = True

    def __init__(self, connection: Connection, task):
        self.connection = connection
        self.task = task

    def __repr__(self):
        return "Open(%r)" % (self.connection,)


IDLE = Idle()


class ManagerEvent(CommonEqualityMixin):
    def __init__(self, peer):
        self.peer = peer


class PeerConnectedEvent(ManagerEvent):
    """ The connection to the peer was opened and communication started. """


class PeerDisconnectedEvent(ManagerEvent):
    """ The connection to the peer was torn down. """


class ConnectionManager:
    """
    Opens the connection to a peer when it becomes available and runs a single communication task over it.

    Events fired by the tasks are queued and published, together with the manager's own
    PeerConnectedEvent and PeerDisconnectedEvent, on the thread that calls update().

    :param transport        opens and closes connections
    :param task_factory     called with a new Connection, returns an unstarted CommunicationTask
    :param join_timeout     how long teardown waits for the task thread to exit after closing
        the connection. None waits indefinitely. A task still running after that blocks new
        connections until it ends.
    """

    def __init__(self, transport: TransportHandle, task_factory, join_timeout=5, log=logger):
        self.transport = transport
        self.task_factory = task_factory
        self.join_timeout = join_timeout
        self.state = IDLE
        self.events = QueuedEventSource()
        self.lingering = None       # a torn down task that did not end within join_timeout
        self.logger = log

    @property
    def is_open(self):
        return self.state.is_open

    @property
    def connection(self) -> Connection:
        return self.state.connection

    @property
    def task(self):
        return self.state.task

    def peer_available(self, peer):
        """
        Opens the peer and starts communicating with it, replacing any current connection.
        Raises OpenFailed if the peer cannot be opened, or while a previous task is still running,
        leaving the manager Idle.
        :return: the started task
        """
        if self.state.is_open:
            self.logger.info("superseding connection to %s with %s" % (self.state.connection.peer, peer))
            self._teardown()
        lingering = self._lingering()
        if lingering is not None:
            raise OpenFailed("communication with %s has not ended, not opening %s" % (lingering.peer, peer))
        connection = self.transport.open(peer)
        try:
            task = self.task_factory(connection)
        except Exception:
            self._close(connection)
            raise
        task.ended.add(self.events.fire)
        self.state = Open(connection, task)
        self.events.fire(PeerConnectedEvent(peer))
        task.start()
        self.logger.info("device connected: %s" % (peer,))
        return task

    def peer_unavailable(self, peer=None):
        """
        Stops communicating and closes the connection.
        When peer is given and is not the connected peer, the signal is stale and ignored.
        :return: True if a connection was torn down
        """
        state = self.state
        if not state.is_open:
            return False
        if peer is not None and peer != state.connection.peer:
            self.logger.warning("ignoring unavailable signal for %s, connected to %s" %
                                (peer, state.connection.peer))
            return False
        self._teardown()
        return True

    def close(self):
        """ tears down any open connection. """
        self.peer_unavailable()

    def update(self):
        """
        Closes the connection if its task has ended on its own (an I/O error or end of stream),
        and publishes the queued events on the calling thread.
        :return: the number of events published
        """
        state = self.state
        if state.is_open and state.task.done:
            self.logger.info("communication with %s has ended, closing" % (state.connection.peer,))
            self._teardown()
        return self.events.publish()

    def _teardown(self):
        """
        Cancels the task, closes the connection and waits for the task to exit.
        The manager is Idle afterwards even if closing fails.
        """
        state = self.state
        self.state = IDLE
        task, connection = state.task, state.connection
        task.cancel()
        try:
            self._close(connection)
        finally:
            if not task.join(self.join_timeout):
                self.lingering = task
                self.logger.warning("communication with %s did not end within %s seconds" %
                                    (connection.peer, self.join_timeout))
            self.events.fire(PeerDisconnectedEvent(connection.peer))
            self.logger.info("device disconnected: %s" % (connection.peer,))

    def _close(self, connection):
        try:
            self.transport.close(connection)
        except CloseError as e:
            self.logger.warning("error closing connection: %s" % e)
        except Exception:
            self.logger.exception("unexpected error closing %r" % (connection,))

    def _lingering(self):
        task = self.lingering
        if task is not None and task.done:
            self.lingering = task = None
        return task
