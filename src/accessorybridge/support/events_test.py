import threading
import unittest
from unittest.mock import Mock, call

from hamcrest import assert_that, is_, empty

from accessorybridge.support.events import EventSource, QueuedEventSource


class EventsTest(unittest.TestCase):

    def test_handlers_empty(self):
        sut = EventSource()
        assert_that(sut.handlers(), is_(empty()))

    def test_no_listeners(self):
        sut = EventSource()
        sut.fire(1)

    def test_manage_handlers(self):
        sut = EventSource()
        m1 = Mock()
        sut.add(m1)
        assert_that(list(sut.handlers()), is_([m1]))

        sut.remove(m1)
        assert_that(list(sut.handlers()), is_([]))

        sut.remove(m1)
        assert_that(list(sut.handlers()), is_([]))

        sut += m1
        assert_that(list(sut.handlers()), is_([m1]))

        sut -= m1
        assert_that(list(sut.handlers()), is_([]))

    def test_listeners(self):
        sut = EventSource()
        l1 = Mock()
        l2 = Mock()
        sut += l1
        sut += l2
        sut.fire(1, v="hey")
        l1.assert_called_once_with(1, v="hey")
        l2.assert_called_once_with(1, v="hey")

    def test_fire_all(self):
        sut = EventSource()
        l1 = Mock()
        sut += l1
        sut.fire_all([1, 2])
        assert_that(l1.mock_calls, is_([call(1), call(2)]))

    def test_handler_may_remove_itself(self):
        sut = EventSource()
        l2 = Mock()

        def once(event):
            sut.remove(once)
        sut += once
        sut += l2
        sut.fire(1)
        sut.fire(2)
        assert_that(l2.mock_calls, is_([call(1), call(2)]))


class QueuedEventSourceTest(unittest.TestCase):

    def test_fire_is_deferred_until_publish(self):
        sut = QueuedEventSource()
        listener = Mock()
        sut += listener
        sut.fire(1)
        sut.fire_all([2, 3])
        listener.assert_not_called()
        assert_that(sut.pending(), is_(True))

        assert_that(sut.publish(), is_(3))
        assert_that(listener.mock_calls, is_([call(1), call(2), call(3)]))
        assert_that(sut.pending(), is_(False))

    def test_publish_nothing(self):
        sut = QueuedEventSource()
        listener = Mock()
        sut += listener
        assert_that(sut.publish(), is_(0))
        listener.assert_not_called()

    def test_publish_on_calling_thread(self):
        sut = QueuedEventSource()
        threads = []
        sut += lambda e: threads.append(threading.current_thread())
        t = threading.Thread(target=sut.fire, args=("event",))
        t.start()
        t.join()
        sut.publish()
        assert_that(threads, is_([threading.current_thread()]))


if __name__ == '__main__':  # pragma no cover
    unittest.main()
