"""
    Availability signals for peers such as serial ports or TCP endpoints.
    The peers of a given kind are polled and events posted as a peer
    becomes available or unavailable. For example, when a SerialPortDiscovery finds
    a matching serial port, a PeerAvailableEvent is posted with the port name as the peer.
"""

import logging

from accessorybridge.support.events import EventSource
from accessorybridge.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


class PeerEvent(CommonEqualityMixin, StringerMixin):
    """ Notification about a peer. """
    def __init__(self, source, peer, info=None):
        """
        :param source   The discovery that posted this event
        :param peer     The identity of the peer, passed to a ChannelOpener to reach it.
        :param info     Details about the peer beyond its identity, such as port descriptors.
        """
        self.source = source
        self.peer = peer
        self.info = info


class PeerAvailableEvent(PeerEvent):
    """ Signifies that a peer can be opened. """


class PeerUnavailableEvent(PeerEvent):
    """ Signifies that a peer has gone away. """


class PolledPeerDiscovery:
    """
    Determines changes to the available peers each time update() is called, and
    fires the corresponding events to the listeners.
    """

    def __init__(self):
        self.listeners = EventSource()
        self.previous = {}      # the peers found by the last poll

    def _is_allowed(self, peer, info):
        """
        Template method for subclasses to exclude peers from discovery.
        """
        return True

    def _fetch_available(self) -> dict:
        """ Template method for subclasses to determine the peers presently available.
        :return: a dictionary of peer identity to peer info.
        """
        return {}

    def _changed_events(self, available: dict) -> list:
        """
        Computes which peers have been added, removed or changed since the previous poll.
        A peer whose info changed is reported unavailable and then available again.
        """
        events = []
        for peer, info in self.previous.items():
            if peer not in available or available[peer] != info:
                logger.info("unavailable peer: %s" % peer)
                events.append(PeerUnavailableEvent(self, peer, info))
        for peer, info in available.items():
            if peer not in self.previous or self.previous[peer] != info:
                logger.info("available peer: %s" % peer)
                events.append(PeerAvailableEvent(self, peer, info))
        return events

    def update(self):
        available = {k: v for k, v in self._fetch_available().items() if self._is_allowed(k, v)}
        events = self._changed_events(available)
        self.previous = available
        self.listeners.fire_all(events)
        return events


class FixedPeerDiscovery(PolledPeerDiscovery):
    """ Reports a single, configured peer as always available. """

    def __init__(self, peer, info=None):
        super().__init__()
        self.peer = peer
        self.info = info

    def _fetch_available(self):
        return {self.peer: self.info}
