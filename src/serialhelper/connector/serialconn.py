"""
The connection state machine for a serial port.

    CLOSED -> OPENING -> OPEN -> CLOSING -> CLOSED
    CLOSED -> RECONNECT_PENDING -> OPENING      (when autoreconnect is enabled)
    OPENING -> CLOSING -> CLOSED                (disconnect() while the port is being opened)

At most one serial port is open at a time, and a new open is not started while another is in progress.
When the port fails to open, or the open port fails, an error is reported and, with autoreconnect,
the connector tries again after the reconnect interval, for as long as it takes.

A caller's disconnect() suppresses reconnection unless disconnect(reconnect=True) is used.
"""
import logging
import threading
import time

import serial

from serialhelper.conduit.serial_conduit import SerialConduit, detect_port
from serialhelper.config.config import ConnectionConfig, DebugLevel, FramingConfig
from serialhelper.connector.base import ConnectionNotConnectedError, ConnectionState, Connector, \
    ConnectorConnectedEvent, ConnectorDisconnectedEvent, ConnectorErrorEvent
from serialhelper.protocol.asynchronous import AsyncLoop
from serialhelper.protocol.framing import RecordFeed, create_framer
from serialhelper.support.retry_strategy import PeriodRetryStrategy, RetryStrategy
from serialhelper.support.scheduler import Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)

# the errors raised by pyserial when a port cannot be opened or used
transport_errors = (serial.SerialException, OSError, ValueError)

SOFT_RESET_BAUD = 1200
SOFT_RESET_SETTLE = 0.1


class SerialConnector(Connector):
    """
    Opens a serial port, keeps it open and pumps the received bytes into a record feed.

    :param config: the connection configuration
    :param feed: the record feed that the framer for each opened port is attached to
    :param serial_factory: creates an open serial port from the port name and keyword arguments
        baudrate and timeout. serial.serial_for_url accepts device names and pyserial URLs such as loop://
    :param scheduler: schedules reconnect attempts
    :param retry_strategy: gives the delay before each reconnect attempt, by default the reconnect interval
    :param sleep: used for the settle time of the soft reset
    :param clock: the monotonic clock used by idle-timeout framing
    """

    def __init__(self, config: ConnectionConfig, feed: RecordFeed = None, serial_factory=serial.serial_for_url,
                 scheduler: Scheduler = None, retry_strategy: RetryStrategy = None, sleep=time.sleep,
                 clock=time.monotonic, log=logger):
        super().__init__()
        self.config = config
        self.feed = feed if feed is not None else RecordFeed()
        self.serial_factory = serial_factory
        self.scheduler = scheduler or ThreadingScheduler()
        self.retry_strategy = retry_strategy or PeriodRetryStrategy(config.reconnect_seconds)
        self.sleep = sleep
        self.clock = clock
        self.logger = log
        self._framing = config.framing
        self._soft_reset_pending = config.soft_reset
        self._state = ConnectionState.CLOSED
        self._wanted = False            # the caller wants the connection open
        self._port = config.port        # the resolved port name
        self._conduit = None
        self._reader = None
        self._reconnect_call = None
        self._lock = threading.RLock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def conduit(self):
        conduit = self._conduit
        if conduit is None:
            raise ConnectionNotConnectedError("%s is not open" % self._port)
        return conduit

    @property
    def soft_reset_pending(self):
        return self._soft_reset_pending

    @property
    def framing(self) -> FramingConfig:
        return self._framing

    def set_framing(self, framing):
        """
        Changes the framing. If the port is open, a new framer replaces the current one
        immediately, otherwise the framing is used when the port is next opened.
        """
        framing = FramingConfig.parse(framing)
        with self._lock:
            self._framing = framing
            if self._state is ConnectionState.OPEN:
                self.feed.attach(self._new_framer())

    def _new_framer(self):
        return create_framer(self._framing, self.config.encoding, self.clock)

    def _summary(self):
        return "%s [%dbps]" % (self._port, self.config.baud)

    def _diagnostic(self, msg, *args, level=logging.WARNING):
        """ logs at the given level when debugging is enabled, otherwise at debug level """
        self.logger.log(level if self.config.debug > DebugLevel.OFF else logging.DEBUG, msg, *args)

    def connect(self) -> bool:
        with self._lock:
            if self._state in (ConnectionState.OPENING, ConnectionState.OPEN, ConnectionState.CLOSING):
                return self._state is ConnectionState.OPEN
            self._cancel_reconnect()
            self._wanted = True
            self._state = ConnectionState.OPENING
        return self._open()

    def _open(self):
        """
        Opens the port. The caller has moved the state to OPENING. If the state has moved on by the time
        the port is open, the open was cancelled by disconnect(), and the port is closed again.
        """
        try:
            self._port = detect_port(self.config.port)
            if self._soft_reset_pending:
                if not self._soft_reset():
                    return self._open_cancelled()
                self._soft_reset_pending = False
            if self._state is not ConnectionState.OPENING:
                return self._open_cancelled()
            framer = self._new_framer()
            ser = self.serial_factory(self._port, baudrate=self.config.baud, timeout=framer.read_timeout)
        except transport_errors as e:
            self._open_failed(e)
            return False

        with self._lock:
            if self._state is not ConnectionState.OPENING:
                ser.close()
                return self._open_cancelled()
            conduit = self._conduit = SerialConduit(ser)
            self.feed.attach(framer)
            reader = self._reader = AsyncLoop(self._pump, (conduit,), name="reader %s" % self._port,
                                              log=self.logger)
            self._state = ConnectionState.OPEN
            self.retry_strategy.reset()

        self.logger.info("opened serial port %s", self._summary())
        self.events.fire(ConnectorConnectedEvent(self, "Connected to: %s" % self._summary()))
        reader.start()
        return True

    def _open_cancelled(self):
        """ completes an open that disconnect() cancelled. A new open may start once this returns. """
        with self._lock:
            if self._state is ConnectionState.CLOSING:
                self._state = ConnectionState.CLOSED
        self.logger.debug("open of %s cancelled", self._port)
        self._schedule_reconnect()
        return False

    def _soft_reset(self):
        """
        Briefly opens the port at 1200 baud, which resets boards such as the Arduino Leonardo.
        Failures are retried until the reset succeeds or the connection is no longer wanted.
        :return: True when the reset completed
        """
        while True:
            if self._state is not ConnectionState.OPENING:
                return False
            try:
                ser = self.serial_factory(self._port, baudrate=SOFT_RESET_BAUD)
                self.sleep(SOFT_RESET_SETTLE)
                ser.close()
                self.sleep(SOFT_RESET_SETTLE)
                self.logger.info("soft reset %s", self._port)
                return True
            except transport_errors as e:
                self._diagnostic("soft reset of %s failed, retrying: %s", self._port, e)
                self.sleep(SOFT_RESET_SETTLE)

    def _open_failed(self, e):
        with self._lock:
            if self._state in (ConnectionState.OPENING, ConnectionState.CLOSING):
                self._state = ConnectionState.CLOSED
        self._diagnostic("unable to open %s: %s", self._summary(), e)
        self.events.fire(ConnectorErrorEvent(self, e))
        self._schedule_reconnect()

    def _pump(self, conduit):
        """ reads from the port and feeds the framer. Called repeatedly on the reader thread. """
        try:
            data = conduit.read_available()
        except transport_errors as e:
            self._link_failed(conduit, e)
            return
        framer = self.feed.framer
        if framer is not None:
            if data:
                framer.feed(data)
            framer.poll()

    def _link_failed(self, conduit, e):
        with self._lock:
            if self._conduit is not conduit:
                return
            self._state = ConnectionState.CLOSING
        self._diagnostic("serial port %s failed: %s", self._port, e)
        self.events.fire(ConnectorErrorEvent(self, e))
        self._close(reconnect=True)

    def disconnect(self, reconnect=False):
        """
        Closes the port, if open, and detaches the framer. Safe to call when already disconnected.
        :param reconnect: when False, any pending or future reconnect is cancelled. When True, the
            disconnection is treated like a lost connection, and a reconnect is scheduled if autoreconnect is enabled.
        """
        with self._lock:
            if not reconnect:
                self._wanted = False
                self._cancel_reconnect()
            if self._state in (ConnectionState.OPENING, ConnectionState.OPEN):
                # an open in progress sees CLOSING and completes the close itself
                self._state = ConnectionState.CLOSING
        self._close(reconnect)

    def _close(self, reconnect):
        with self._lock:
            conduit, reader = self._conduit, self._reader
            self._conduit = self._reader = None
        if reader is not None:
            reader.stop()
        self.feed.detach()
        if conduit is None:
            return
        try:
            conduit.close()
        except transport_errors as e:
            self._diagnostic("error closing %s: %s", self._port, e)
            self.events.fire(ConnectorErrorEvent(self, e))
        with self._lock:
            self._state = ConnectionState.CLOSED
        self.logger.info("closed serial port %s", self._port)
        self.events.fire(ConnectorDisconnectedEvent(self, "%s is closed" % self._port))
        if reconnect:
            self._schedule_reconnect()

    def _schedule_reconnect(self):
        """ schedules one reconnect attempt, unless one is already scheduled or reconnection is not wanted. """
        with self._lock:
            if not (self.config.autoreconnect and self._wanted):
                return
            if self._reconnect_call is not None or self._state is not ConnectionState.CLOSED:
                return
            delay = self.retry_strategy()
            self._state = ConnectionState.RECONNECT_PENDING
            self._reconnect_call = self.scheduler.call_later(delay, self._reconnect)
        self._diagnostic("Attempting to reconnect %s in %.3fs...", self._summary(), delay, level=logging.INFO)

    def _reconnect(self):
        with self._lock:
            self._reconnect_call = None
            if self._state is not ConnectionState.RECONNECT_PENDING:
                return
            self._state = ConnectionState.OPENING
        self._open()

    def _cancel_reconnect(self):
        with self._lock:
            call = self._reconnect_call
            self._reconnect_call = None
            if self._state is ConnectionState.RECONNECT_PENDING:
                self._state = ConnectionState.CLOSED
        if call is not None:
            call.cancel()

    def write(self, data: bytes):
        """
        Writes bytes to the open port.
        :raises ConnectionNotConnectedError: when the port is not open
        :raises serial.SerialException: when the write fails
        """
        return self.conduit.write(data)
