"""


Serial Connections

- Conduit: abstraction of a bi-directional channel. SerialConduit wraps an open pyserial port.
- Connector: opens a conduit to an endpoint and keeps it open.
  SerialConnector runs the state machine CLOSED, OPENING, OPEN, CLOSING, RECONNECT_PENDING.
  When the port cannot be opened, or fails while open, a reconnect is scheduled after the
  reconnect interval, for as long as it takes. A caller disconnect() does not reconnect.
- Framer: splits the received bytes into records - lines, idle-timeout chunks or fixed-length chunks.
  Lines are decoded as JSON where possible, otherwise as text.
- RecordFeed: the stable point between the connector and its listeners. Each opened port attaches
  a new framer. Subscribers receive the records, unless a request has intercepted the next record.
- RequestCorrelator: sends a request and waits for the next record as the reply, or a timeout.
  Only one request is outstanding at a time.
- SerialHelper: the facade that combines these, with events for opened, closed, error and data.


## Threading

Serial reads are blocking. A background thread per open port (AsyncLoop) reads from the port with a short
timeout and pumps the bytes to the framer, so records and their events are delivered on that thread.
Reconnects and request timeouts run on timer threads, via a Scheduler, so tests can use a ManualScheduler instead.

request() blocks the calling thread until the reply arrives, so it must not be called from an event handler
for data events, since those run on the reader thread.

"""

from serialhelper.config.config import ConnectionConfig, FramingConfig  # noqa: F401
from serialhelper.connector.base import ConnectionState, RequestInProgressError  # noqa: F401
from serialhelper.facade import ClosedEvent, DataEvent, ErrorEvent, OpenedEvent, SerialHelper  # noqa: F401
from serialhelper.protocol.records import Record  # noqa: F401
