import logging

from accessorybridge.channel.discovery import PeerAvailableEvent, PeerUnavailableEvent, PolledPeerDiscovery
from accessorybridge.errors import OpenFailed
from accessorybridge.manager import ConnectionManager

logger = logging.getLogger(__name__)


class ManagedPeerDiscovery:
    """
    Listens for events from a peer discovery and passes them to the connection manager
    as availability signals.

    A peer that fails to open is logged and left alone until the discovery reports it again.

    :param discovery    polled from time to time to find peers
    :param manager      notified when a peer becomes available or unavailable
    """
    def __init__(self, discovery: PolledPeerDiscovery, manager: ConnectionManager):
        self.discovery = discovery
        self.manager = manager
        discovery.listeners.add(self.peer_event)

    def dispose(self):
        self.discovery.listeners.remove(self.peer_event)

    def peer_event(self, event):
        if type(event) is PeerAvailableEvent:
            try:
                self.manager.peer_available(event.peer)
            except OpenFailed as e:
                logger.warning("unable to open %s: %s" % (event.peer, e.__cause__ or e))
        elif type(event) is PeerUnavailableEvent:
            self.manager.peer_unavailable(event.peer)

    def update(self):
        """
        polls the discovery, then updates the manager.
        """
        self.discovery.update()
        return self.manager.update()
