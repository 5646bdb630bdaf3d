import logging
from queue import Empty, Queue

logger = logging.getLogger(__name__)


class EventSource(object):
    """
    A list of handlers that are each called with the event when it is fired.
    """

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def fire_all(self, events):
        self._fire_all(events)

    def _fire_all(self, events):
        for e in events:
            self._fire(e)

    def _fire(self, *args, **kwargs):
        for handler in self.handlers():
            handler(*args, **kwargs)


class QueuedEventSource(EventSource):
    """
    The public fire() methods post events to a queue, so they can be called from any thread.
    The events are delivered to the handlers on the thread that calls publish().
    """
    def __init__(self):
        super().__init__()
        self.event_queue = Queue()

    def fire(self, event):
        self.event_queue.put(event)

    def fire_all(self, events):
        for e in events:
            self.fire(e)

    def pending(self):
        return not self.event_queue.empty()

    def publish(self):
        """ publishes any queued events on the calling thread.
        :return: the number of events published
        """
        events = []
        while True:
            try:
                events.append(self.event_queue.get_nowait())
            except Empty:
                break
        if events:
            logger.debug("publishing %d queued event(s)" % len(events))
            self._fire_all(events)
        return len(events)
