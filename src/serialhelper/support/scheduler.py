"""
Deferred calls. The connector and request correlator schedule reconnect attempts and request timeouts
through a scheduler so that the timing source can be replaced.
"""
import heapq
import itertools
import logging
import threading

logger = logging.getLogger(__name__)


class ScheduledCall:
    """ A handle to a call that may be cancelled before it runs. """

    def cancel(self):
        raise NotImplementedError

    @property
    def cancelled(self):
        raise NotImplementedError


class Scheduler:
    def call_later(self, delay, fn, *args) -> ScheduledCall:
        """
        Arranges for fn(*args) to be called after delay seconds.
        :return: a ScheduledCall that can cancel the call.
        """
        raise NotImplementedError


class TimerCall(ScheduledCall):
    def __init__(self, timer: threading.Timer):
        self._timer = timer
        self._cancelled = False

    def cancel(self):
        self._cancelled = True
        self._timer.cancel()

    @property
    def cancelled(self):
        return self._cancelled


class ThreadingScheduler(Scheduler):
    """ Runs each call on a daemon threading.Timer. """

    def call_later(self, delay, fn, *args):
        timer = threading.Timer(max(delay, 0), self._run, args=(fn, args))
        timer.daemon = True
        call = TimerCall(timer)
        timer.start()
        return call

    def _run(self, fn, args):
        try:
            fn(*args)
        except Exception as e:
            logger.exception(e)


class ManualCall(ScheduledCall):
    def __init__(self, due, fn, args):
        self.due = due
        self.fn = fn
        self.args = args
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self):
        return self._cancelled


class ManualScheduler(Scheduler):
    """
    A scheduler whose clock only moves when advance() is called.
    Calls run on the thread calling advance(), in due order.
    Used to drive timers from a host loop or deterministically in tests.
    """

    def __init__(self, now=0):
        self.now = now
        self._queue = []
        self._sequence = itertools.count()
        self._lock = threading.RLock()

    def call_later(self, delay, fn, *args):
        call = ManualCall(self.now + max(delay, 0), fn, args)
        with self._lock:
            heapq.heappush(self._queue, (call.due, next(self._sequence), call))
        return call

    @property
    def pending(self):
        """ the calls that are scheduled and not cancelled, in due order """
        with self._lock:
            return [c for _, _, c in sorted(self._queue) if not c.cancelled]

    def advance(self, seconds=0):
        """ moves the clock forward and runs the calls that have become due. """
        target = self.now + seconds
        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                due, _, call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self.now = max(self.now, due)
            call.fn(*call.args)
        self.now = target
