"""
Correlates a request with its reply.

There is no correlation key on the wire: the reply to a request is simply the next record.
So only one request may be outstanding at a time. The request completes with the first of:
- the next record, decoded as the framer decodes request replies
- the timeout, giving None
- a write failure, giving False
Whichever comes first cancels the others.
"""
import logging
import threading

from serialhelper.codecs import to_bytes
from serialhelper.connector.base import RequestInProgressError
from serialhelper.protocol.asynchronous import FutureValue
from serialhelper.protocol.framing import RecordFeed
from serialhelper.support.scheduler import Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)

# the value a request completes with when the write fails
WRITE_FAILED = False
# the value a request completes with when no reply arrives in time
TIMED_OUT = None


class PendingRequest(FutureValue):
    """
    A request waiting for its reply. The value is the reply record, TIMED_OUT or WRITE_FAILED.
    """

    def __init__(self, data: bytes, timeout):
        super().__init__()
        self.data = data
        self.timeout = timeout
        self.timer = None
        self._settle_lock = threading.Lock()
        # a single bound method, so the same object is registered and released
        self.receive = self._receive

    def settle(self, value):
        """
        Completes the request with the given value, unless it has already completed.
        :return: True if this call completed the request.
        """
        with self._settle_lock:
            if self.done():
                return False
            self.set_result(value)
            return True

    def _receive(self, record):
        return self.settle(record)

    def _expire(self):
        self.settle(TIMED_OUT)


class RequestCorrelator:
    """
    Sends requests and waits for the next record from the feed as the reply.

    :param feed: the record feed that replies are read from
    :param write: a callable that writes bytes and returns True on success and False on failure.
        The callable is responsible for reporting the failure.
    :param scheduler: the scheduler used for request timeouts
    """

    def __init__(self, feed: RecordFeed, write, scheduler: Scheduler = None, log=logger):
        self.feed = feed
        self._write = write
        self.scheduler = scheduler or ThreadingScheduler()
        self.logger = log
        self._pending = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> PendingRequest:
        """ the outstanding request, or None """
        return self._pending

    def async_request(self, data, timeout=1000, encoding='utf-8') -> PendingRequest:
        """
        Sends a request and returns without waiting for the reply.
        :param data: the request, converted to bytes with to_bytes()
        :param timeout: the time to wait for the reply in milliseconds. None waits indefinitely.
        :param encoding: the encoding used when data is text
        :return: the PendingRequest that completes with the reply
        :raises RequestInProgressError: when another request is outstanding
        """
        payload = to_bytes(data, encoding)
        request = PendingRequest(payload, timeout)
        with self._lock:
            if self._pending is not None:
                raise RequestInProgressError("a request is already waiting for a reply: %r" % self._pending.data)
            self._pending = request

        try:
            if timeout is not None:
                request.timer = self.scheduler.call_later(timeout / 1000.0, request._expire)
            self.feed.intercept(request.receive)
        except Exception:
            if request.timer is not None:
                request.timer.cancel()
            with self._lock:
                self._pending = None
            raise
        request.add_done_callback(self._request_done)

        # the reply listener is registered before writing, so a fast reply is not missed
        if not self._write(payload):
            request.settle(WRITE_FAILED)
        return request

    def request(self, data, timeout=1000, encoding='utf-8'):
        """
        Sends a request and waits for the reply.
        Must not be called from the thread that reads the conduit, since the reply could then not be read.
        :return: the reply record, None on timeout, or False if the request could not be written.
        """
        return self.async_request(data, timeout, encoding).value()

    def _request_done(self, request: PendingRequest):
        if request.timer is not None:
            request.timer.cancel()
        self.feed.release(request.receive)
        with self._lock:
            if self._pending is request:
                self._pending = None
        self.logger.debug("request %r completed with %r", request.data, request.result())
