"""
SerialHelper is the public face of the package. It composes a SerialConnector, which keeps the port open,
a RecordFeed, which splits the received bytes into records, and a RequestCorrelator, which pairs a request
with its reply.

Callers observe the connection through events fired on `events`:
- OpenedEvent(message) when the port opens
- ClosedEvent(message) when the port closes, for whatever reason
- ErrorEvent(cause) when the port cannot be opened, fails, or a write fails
- DataEvent(record) for each record received that is not the reply to a request

Failures are reported as events, and never raised from write() or request().
"""
import logging

from serialhelper.codecs import to_bytes
from serialhelper.conduit.serial_conduit import serial_port_info
from serialhelper.config.config import ConnectionConfig, DebugLevel
from serialhelper.connector.base import ConnectorConnectedEvent, ConnectorDisconnectedEvent, ConnectorError, \
    ConnectorErrorEvent
from serialhelper.connector.serialconn import SerialConnector, transport_errors
from serialhelper.protocol.correlator import RequestCorrelator
from serialhelper.protocol.framing import RecordFeed
from serialhelper.support.events import EventSource, EventTypeFilter

logger = logging.getLogger(__name__)


class SerialEvent:
    """ base class for the events fired by SerialHelper """

    def __init__(self, source):
        self.source = source


class OpenedEvent(SerialEvent):
    def __init__(self, source, message):
        super().__init__(source)
        self.message = message


class ClosedEvent(SerialEvent):
    def __init__(self, source, message):
        super().__init__(source)
        self.message = message


class ErrorEvent(SerialEvent):
    def __init__(self, source, cause):
        super().__init__(source)
        self.cause = cause


class DataEvent(SerialEvent):
    def __init__(self, source, record):
        super().__init__(source)
        self.record = record


class SerialHelper:
    """
    A resilient serial connection with line, idle-timeout or fixed-length framing,
    unsolicited data events and request/reply.

    :param config: a ConnectionConfig, a mapping of options, or the port name
    :param baud: the baud rate, when config is the port name
    :param options: further options when config is the port name, see ConnectionConfig.create()
    :param connector_factory: creates the connector from the configuration and record feed.
        Used to supply a serial factory or scheduler.
    """

    def __init__(self, config, baud=None, connector_factory=SerialConnector, scheduler=None, log=logger, **options):
        if isinstance(config, ConnectionConfig):
            self.config = config
        elif isinstance(config, dict):
            self.config = ConnectionConfig.from_dict(config)
        else:
            self.config = ConnectionConfig.create(config, baud, **options)
        self.logger = log
        self.events = EventSource()
        self.feed = RecordFeed()
        self.connector = connector_factory(self.config, self.feed)
        self.connector.events += self._connector_events
        self.feed.subscribers += self._record_received
        self.correlator = RequestCorrelator(self.feed, self._write_bytes,
                                            scheduler or self.connector.scheduler, log)
        if self.config.autoopen:
            self.connect()

    @staticmethod
    def list():
        """ :return: a tuple of ListPortInfo describing the serial ports on this host """
        return serial_port_info()

    def on(self, event_type, handler):
        """ adds a handler for events of the given type. """
        self.events += EventTypeFilter(event_type, handler)
        return self

    def off(self, event_type, handler):
        self.events -= EventTypeFilter(event_type, handler)
        return self

    @property
    def is_open(self):
        return self.connector.connected

    @property
    def state(self):
        return self.connector.state

    def connect(self) -> bool:
        return self.connector.connect()

    def disconnect(self, reconnect=False):
        self.connector.disconnect(reconnect)

    def set_framing(self, framing):
        """ changes the framing. See SerialConnector.set_framing() """
        self.connector.set_framing(framing)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def _connector_events(self, event):
        if isinstance(event, ConnectorConnectedEvent):
            self.events.fire(OpenedEvent(self, event.message))
        elif isinstance(event, ConnectorDisconnectedEvent):
            self.events.fire(ClosedEvent(self, event.message))
        elif isinstance(event, ConnectorErrorEvent):
            self.events.fire(ErrorEvent(self, event.cause))

    def _record_received(self, record):
        self.events.fire(DataEvent(self, record))

    def _write_bytes(self, data: bytes) -> bool:
        try:
            self.connector.write(data)
        except (ConnectorError,) + transport_errors as e:
            if self.config.debug:
                self.logger.error("serial write error: %s", e)
            self.events.fire(ErrorEvent(self, e))
            return False
        if self.config.debug >= DebugLevel.VERBOSE:
            self.logger.info("serial write data: %r", data)
        return True

    def write(self, data, encoding=None) -> bool:
        """
        Writes data to the port. See to_bytes() for how data is converted.
        :return: True when the data was written, False when the write failed. Failures are also fired as ErrorEvent.
        """
        try:
            payload = to_bytes(data, encoding or self.config.encoding)
        except (ValueError, LookupError) as e:
            # text that cannot be encoded, or an unknown encoding
            self.events.fire(ErrorEvent(self, e))
            return False
        return self._write_bytes(payload)

    def print(self, msg) -> bool:
        """ writes the string form of msg. """
        return self.write(str(msg))

    def println(self, msg) -> bool:
        """ writes the string form of msg followed by a newline. """
        return self.print(str(msg) + '\n')

    def async_request(self, data, timeout=1000, encoding=None):
        """
        Sends a request without waiting for the reply.
        :return: a PendingRequest whose value() is the reply
        """
        return self.correlator.async_request(data, timeout, encoding or self.config.encoding)

    def request(self, data, timeout=1000, encoding=None):
        """
        Sends a request and waits for the next record as the reply.
        With line framing, the reply is a decoded Record. With idle-timeout and fixed-length framing,
        the reply is the raw bytes.
        :param timeout: how long to wait for the reply, in milliseconds
        :return: the reply, None when no reply arrived within the timeout, or False when the request
            could not be written.
        :raises RequestInProgressError: when another request is waiting for its reply
        """
        return self.async_request(data, timeout, encoding).value()
