import unittest
from unittest.mock import Mock, call

from hamcrest import assert_that, is_, instance_of, calling, raises, empty

from serialhelper.config.config import FIXED_LENGTH, FramingConfig, IDLE_TIMEOUT
from serialhelper.protocol.framing import ByteLengthFramer, IdleTimeoutFramer, LineFramer, RecordFeed, \
    create_framer
from serialhelper.protocol.records import Record


def collect(framer):
    records = []
    framer.records += records.append
    return records


class LineFramerTest(unittest.TestCase):

    def test_splits_on_newline(self):
        sut = LineFramer()
        records = collect(sut)
        sut.feed(b"one\ntw")
        assert_that(records, is_(["one"]))
        sut.feed(b"o\nthree\n")
        assert_that(records, is_(["one", "two", "three"]))

    def test_multi_character_delimiter(self):
        sut = LineFramer("\r\n")
        records = collect(sut)
        sut.feed(b"a\rb\r")
        sut.feed(b"\nc\r\n")
        assert_that(records, is_(["a\rb", "c"]))

    def test_reset_discards_partial_line(self):
        sut = LineFramer()
        records = collect(sut)
        sut.feed(b"partial")
        sut.reset()
        sut.feed(b"whole\n")
        assert_that(records, is_(["whole"]))

    def test_decoding(self):
        sut = LineFramer()
        assert_that(sut.decode_request("  "), is_(Record(True, "")))
        assert_that(sut.decode_data("  "), is_(None))
        assert_that(sut.decode_data("0"), is_(Record(True, 0)))

    def test_empty_delimiter_rejected(self):
        assert_that(calling(LineFramer).with_args(""), raises(ValueError))


class IdleTimeoutFramerTest(unittest.TestCase):

    def setUp(self):
        self.now = 0.0
        self.sut = IdleTimeoutFramer(30, max_buffer_size=8, clock=lambda: self.now)
        self.records = collect(self.sut)

    def test_emits_after_idle_interval(self):
        self.sut.feed(b"ab")
        self.now = 0.010
        self.sut.feed(b"cd")
        self.now = 0.035
        self.sut.poll()
        assert_that(self.records, is_([]))
        self.now = 0.045
        self.sut.poll()
        assert_that(self.records, is_([b"abcd"]))
        self.sut.poll()
        assert_that(self.records, is_([b"abcd"]))

    def test_poll_with_explicit_time(self):
        self.sut.feed(b"x")
        self.sut.poll(0.029)
        assert_that(self.records, is_(empty()))
        self.sut.poll(0.031)
        assert_that(self.records, is_([b"x"]))

    def test_full_buffer_is_emitted(self):
        self.sut.feed(b"0123456789")
        assert_that(self.records, is_([b"01234567"]))

    def test_empty_feed_does_not_restart_idle_time(self):
        self.sut.feed(b"x")
        self.now = 0.031
        self.sut.feed(b"")
        self.sut.poll()
        assert_that(self.records, is_([b"x"]))

    def test_read_timeout_is_bounded_by_interval(self):
        assert_that(self.sut.read_timeout, is_(0.03))
        assert_that(IdleTimeoutFramer(1000).read_timeout, is_(0.1))

    def test_records_are_raw(self):
        assert_that(self.sut.decode_request(b" 1 "), is_(b" 1 "))
        assert_that(self.sut.decode_data(b""), is_(b""))


class ByteLengthFramerTest(unittest.TestCase):

    def test_default_length_is_one(self):
        sut = ByteLengthFramer()
        records = collect(sut)
        sut.feed(b"ab")
        assert_that(records, is_([b"a", b"b"]))

    def test_chunks(self):
        sut = ByteLengthFramer(3)
        records = collect(sut)
        sut.feed(b"abcd")
        sut.feed(b"ef")
        assert_that(records, is_([b"abc", b"def"]))

    def test_invalid_length(self):
        assert_that(calling(ByteLengthFramer).with_args(0), raises(ValueError))


class CreateFramerTest(unittest.TestCase):

    def test_line_by_default(self):
        sut = create_framer(FramingConfig(delimiter="\r"))
        assert_that(sut, is_(instance_of(LineFramer)))
        assert_that(sut.delimiter, is_(b"\r"))

    def test_idle_timeout(self):
        sut = create_framer(FramingConfig(IDLE_TIMEOUT, interval=50))
        assert_that(sut, is_(instance_of(IdleTimeoutFramer)))
        assert_that(sut.interval, is_(50))

    def test_fixed_length(self):
        sut = create_framer(FramingConfig(FIXED_LENGTH, length=4))
        assert_that(sut, is_(instance_of(ByteLengthFramer)))
        assert_that(sut.length, is_(4))


class RecordFeedTest(unittest.TestCase):

    def setUp(self):
        self.sut = RecordFeed()
        self.subscriber = Mock()
        self.sut.subscribers += self.subscriber

    def test_records_are_published(self):
        framer = LineFramer()
        self.sut.attach(framer)
        framer.feed(b"42\n\nhello\n0\n")
        self.subscriber.assert_has_calls([call(Record(True, 42)), call(Record(True, "hello")),
                                          call(Record(True, 0))])
        assert_that(self.subscriber.call_count, is_(3))

    def test_binary_records_are_published_raw(self):
        framer = ByteLengthFramer(2)
        self.sut.attach(framer)
        framer.feed(b"\x00\x01")
        self.subscriber.assert_called_once_with(b"\x00\x01")

    def test_interceptor_claims_next_record_only(self):
        framer = LineFramer()
        self.sut.attach(framer)
        interceptor = Mock()
        self.sut.intercept(interceptor)
        assert_that(self.sut.intercepted, is_(True))
        framer.feed(b"\nnext\n")
        interceptor.assert_called_once_with(Record(True, ""))
        self.subscriber.assert_called_once_with(Record(True, "next"))
        assert_that(self.sut.intercepted, is_(False))

    def test_record_declined_by_interceptor_is_published(self):
        framer = LineFramer()
        self.sut.attach(framer)
        interceptor = Mock(return_value=False)
        self.sut.intercept(interceptor)
        framer.feed(b"late\n")
        interceptor.assert_called_once_with(Record(True, "late"))
        self.subscriber.assert_called_once_with(Record(True, "late"))

    def test_records_from_a_replaced_framer_are_dropped(self):
        old, new = LineFramer(), ByteLengthFramer(1)
        old.records += lambda record: self.sut.attach(new)
        self.sut.attach(old)
        old.feed(b"stale\n")
        self.subscriber.assert_not_called()
        assert_that(self.sut.framer, is_(new))

    def test_only_one_interceptor(self):
        self.sut.intercept(Mock())
        assert_that(calling(self.sut.intercept).with_args(Mock()), raises(ValueError))

    def test_release(self):
        first = Mock()
        self.sut.intercept(first)
        self.sut.release(Mock())
        assert_that(self.sut.intercepted, is_(True))
        self.sut.release(first)
        assert_that(self.sut.intercepted, is_(False))

    def test_attach_replaces_previous_framer(self):
        old = LineFramer()
        new = ByteLengthFramer(1)
        self.sut.attach(old)
        self.sut.attach(new)
        assert_that(old.records.handlers(), is_(empty()))
        assert_that(self.sut.framer, is_(new))
        old.feed(b"old line\n")
        self.subscriber.assert_not_called()
        new.feed(b"z")
        self.subscriber.assert_called_once_with(b"z")

    def test_attach_same_framer_twice_does_not_duplicate(self):
        framer = LineFramer()
        self.sut.attach(framer)
        self.sut.attach(framer)
        framer.feed(b"1\n")
        self.subscriber.assert_called_once_with(Record(True, 1))

    def test_detach_is_idempotent(self):
        framer = LineFramer()
        self.sut.attach(framer)
        self.sut.detach()
        self.sut.detach()
        assert_that(self.sut.framer, is_(None))
        framer.feed(b"1\n")
        self.subscriber.assert_not_called()
