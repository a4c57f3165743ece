"""
Framing splits the byte stream read from a conduit into records.

Three strategies are provided:
- LineFramer: records are delimited by a delimiter, "\\n" by default. Records are text.
- IdleTimeoutFramer: a record ends when no bytes arrive for an interval. Records are bytes.
- ByteLengthFramer: every `length` bytes is a record. Records are bytes.

A RecordFeed connects exactly one framer at a time to the record subscribers. Framers are
replaced, never modified, when the connection is reopened or the framing changes.
"""
import functools
import logging
import threading
import time

from serialhelper.config.config import FIXED_LENGTH, FramingConfig, IDLE_TIMEOUT, LINE
from serialhelper.protocol.records import decode_text_record, is_reportable
from serialhelper.support.events import EventSource

logger = logging.getLogger(__name__)

# how long a read may block waiting for data, in seconds
default_read_timeout = 0.1


class Framer:
    """
    Accumulates bytes fed from the stream and fires each complete record on `records`.
    The base framer passes records through unchanged.
    """

    def __init__(self):
        self.records = EventSource()
        self._buffer = bytearray()

    @property
    def read_timeout(self):
        """ the longest a read should block so that poll() is called often enough """
        return default_read_timeout

    def feed(self, data: bytes):
        """ adds bytes read from the stream. """
        raise NotImplementedError

    def poll(self, now=None):
        """ called regularly by the reader, whether or not bytes arrived. """

    def reset(self):
        """ discards any partial record. """
        self._buffer = bytearray()

    def decode_request(self, record):
        """ converts a record into the reply returned to a request. """
        return record

    def decode_data(self, record):
        """ converts a record for subscribers. Returns None when the record should not be published. """
        return record

    def _emit(self, record):
        self.records.fire(record)


class LineFramer(Framer):
    """
    Splits the stream on a delimiter and fires each line, without the delimiter, as text.
    Subscribers receive decoded records, with blank lines dropped. Requests receive the decoded
    next line, blank or not.
    """

    def __init__(self, delimiter='\n', encoding='utf-8'):
        super().__init__()
        self.encoding = encoding
        self.delimiter = delimiter.encode(encoding) if isinstance(delimiter, str) else bytes(delimiter)
        if not self.delimiter:
            raise ValueError("delimiter must not be empty")

    def feed(self, data: bytes):
        self._buffer += data
        delimiter = self.delimiter
        while True:
            index = self._buffer.find(delimiter)
            if index < 0:
                break
            line = bytes(self._buffer[:index])
            del self._buffer[:index + len(delimiter)]
            self._emit(line.decode(self.encoding, errors='replace'))

    def decode_request(self, record):
        return decode_text_record(record)

    def decode_data(self, record):
        decoded = decode_text_record(record)
        return decoded if is_reportable(decoded) else None


class IdleTimeoutFramer(Framer):
    """
    Fires the bytes received so far once the stream has been idle for `interval` milliseconds,
    or when the buffer reaches max_buffer_size.
    Records are bytes, both for subscribers and requests.
    """

    def __init__(self, interval=30, max_buffer_size=65536, clock=time.monotonic):
        super().__init__()
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.max_buffer_size = max_buffer_size
        self.clock = clock
        self._last_received = None

    @property
    def read_timeout(self):
        return min(self.interval / 1000.0, default_read_timeout)

    def feed(self, data: bytes):
        if not data:
            return
        self._buffer += data
        self._last_received = self.clock()
        while len(self._buffer) >= self.max_buffer_size:
            chunk = bytes(self._buffer[:self.max_buffer_size])
            del self._buffer[:self.max_buffer_size]
            self._emit(chunk)

    def poll(self, now=None):
        if not self._buffer:
            return
        now = self.clock() if now is None else now
        if (now - self._last_received) * 1000 >= self.interval:
            self._flush()

    def _flush(self):
        record = bytes(self._buffer)
        self._buffer = bytearray()
        self._emit(record)


class ByteLengthFramer(Framer):
    """ Fires a bytes record for every `length` bytes received. """

    def __init__(self, length=1):
        super().__init__()
        if length < 1:
            raise ValueError("length must be at least 1")
        self.length = length

    def feed(self, data: bytes):
        self._buffer += data
        length = self.length
        while len(self._buffer) >= length:
            record = bytes(self._buffer[:length])
            del self._buffer[:length]
            self._emit(record)


def create_framer(framing: FramingConfig, encoding='utf-8', clock=time.monotonic) -> Framer:
    """
    Creates the framer described by a framing configuration.
    """
    if framing.kind == IDLE_TIMEOUT:
        return IdleTimeoutFramer(framing.interval, clock=clock)
    if framing.kind == FIXED_LENGTH:
        return ByteLengthFramer(framing.length)
    if framing.kind == LINE:
        return LineFramer(framing.delimiter, encoding)
    raise ValueError("unknown framing %s" % framing.kind)


class RecordFeed:
    """
    Publishes the records from the attached framer.

    Subscribers receive records as decoded by the framer for publication. A single interceptor
    may claim the next record, decoded as a request reply; the intercepted record is not
    published to subscribers.

    Attaching a framer detaches the previous one, so records from a replaced framer are never delivered.
    """

    def __init__(self):
        self.subscribers = EventSource()
        self._framer = None
        self._handler = None
        self._interceptor = None
        self._lock = threading.Lock()

    @property
    def framer(self) -> Framer:
        return self._framer

    def attach(self, framer: Framer):
        self.detach()
        handler = functools.partial(self._dispatch, framer)
        with self._lock:
            self._framer = framer
            self._handler = handler
        framer.records.add(handler)

    def detach(self):
        """ detaches the current framer, if any. """
        with self._lock:
            framer, handler = self._framer, self._handler
            self._framer = self._handler = None
        if framer is not None:
            framer.records.remove(handler)
            framer.reset()

    def intercept(self, fn):
        """
        Registers fn to receive the next record instead of the subscribers.
        fn returns True when it took the record. Otherwise, such as when a request has already
        timed out, the record is published to the subscribers.
        Only one interceptor may be registered at a time.
        """
        with self._lock:
            if self._interceptor is not None:
                raise ValueError("a record interceptor is already registered")
            self._interceptor = fn

    def release(self, fn):
        """ removes the interceptor if it is still registered. """
        with self._lock:
            if self._interceptor is fn:
                self._interceptor = None

    @property
    def intercepted(self):
        return self._interceptor is not None

    def _dispatch(self, framer, record):
        with self._lock:
            if framer is not self._framer:
                # replaced while the record was being framed
                return
            interceptor = self._interceptor
            self._interceptor = None
        if interceptor is not None and interceptor(framer.decode_request(record)):
            return
        published = framer.decode_data(record)
        if published is not None:
            self.subscribers.fire(published)
