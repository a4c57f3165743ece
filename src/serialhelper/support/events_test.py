import unittest
from unittest.mock import Mock, call

from hamcrest import assert_that, is_, empty

from serialhelper.support.events import EventSource, EventTypeFilter


class EventsTest(unittest.TestCase):

    def test_handlers_empty(self):
        sut = EventSource()
        assert_that(sut.handlers(), is_(empty()))

    def test_handlers_not_empty(self):
        sut = EventSource()
        handler = Mock()
        sut.add(handler)
        assert_that(list(sut.handlers()), is_([handler]))

    def test_no_listeners(self):
        sut = EventSource()
        sut.fire(1)

    def test_manage_handlers(self):
        sut = EventSource()
        m1 = Mock()
        sut.add(m1)
        assert_that(sut._handlers, is_([m1]))

        sut.remove(m1)
        assert_that(sut._handlers, is_([]))

        sut.remove(m1)
        assert_that(sut._handlers, is_([]))

        sut += m1
        assert_that(sut._handlers, is_([m1]))

        sut -= m1
        assert_that(sut._handlers, is_([]))

    def test_adding_twice_does_not_duplicate_notifications(self):
        sut = EventSource()
        m1 = Mock()
        sut.add(m1)
        sut.add(m1)
        sut.fire("x")
        m1.assert_called_once_with("x")

    def test_clear(self):
        sut = EventSource()
        m1 = Mock()
        sut += m1
        sut.clear()
        sut.fire(1)
        m1.assert_not_called()

    def test_handler_can_remove_itself_while_firing(self):
        sut = EventSource()
        calls = []

        def once(event):
            calls.append(event)
            sut.remove(once)

        sut += once
        sut.fire(1)
        sut.fire(2)
        assert_that(calls, is_([1]))

    def test_fire_all_with_empty_events(self):
        sut = EventSource()
        m1 = Mock()
        sut.add(m1)
        sut.fire_all([])
        m1.assert_not_called()

    def test_listeners(self):
        sut = EventSource()
        l1 = Mock()
        l2 = Mock()
        sut += l1
        sut += l2
        sut.fire(1, v="hey")
        l1.assert_called_once_with(1, v="hey")
        l2.assert_called_once_with(1, v="hey")

        l1.reset_mock()
        l2.reset_mock()

        sut.fire_all([1, 2, 3])
        l1.assert_has_calls([call(1), call(2), call(3)])


class EventTypeFilterTest(unittest.TestCase):

    def test_only_matching_events_pass(self):
        handler = Mock()
        sut = EventTypeFilter(int, handler)
        sut("abc")
        sut(5)
        handler.assert_called_once_with(5)

    def test_equivalent_filters_can_be_removed(self):
        handler = Mock()
        events = EventSource()
        events += EventTypeFilter(int, handler)
        events -= EventTypeFilter(int, handler)
        assert_that(events.handlers(), is_(empty()))
