import enum
from abc import abstractmethod

from serialhelper.support.events import EventSource


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class ConnectionNotConnectedError(ConnectorError):
    """ Indicates a connection is in the disconnected state when a connection is required. """


class RequestInProgressError(ConnectorError):
    """ Indicates a request was made while another request is waiting for its reply. """


class ConnectionState(enum.Enum):
    CLOSED = 'closed'
    OPENING = 'opening'
    OPEN = 'open'
    CLOSING = 'closing'
    RECONNECT_PENDING = 'reconnect pending'


class ConnectorEvent:
    """ base class for connector events. """
    def __init__(self, connector):
        self.connector = connector


class ConnectorConnectedEvent(ConnectorEvent):
    """ The connector was connected. """
    def __init__(self, connector, message):
        super().__init__(connector)
        self.message = message


class ConnectorDisconnectedEvent(ConnectorEvent):
    """ The connector was disconnected, by request or because the link failed. """
    def __init__(self, connector, message):
        super().__init__(connector)
        self.message = message


class ConnectorErrorEvent(ConnectorEvent):
    """ The connector could not open, or the link failed. """
    def __init__(self, connector, cause):
        super().__init__(connector)
        self.cause = cause


class Connector:
    """ A connector describes an endpoint to which a conduit can be established. """

    def __init__(self):
        self.events = EventSource()

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        raise NotImplementedError

    @property
    def connected(self) -> bool:
        """
        Determines if this connector is connected to its underlying resource.
        :return: True if this connector is connected to it's underlying resource. False otherwise.
        :rtype: bool
        """
        return self.state is ConnectionState.OPEN

    @abstractmethod
    def connect(self) -> bool:
        """
        Connects this connector to the underlying resource.
        If the connection is already connected or connecting, this method returns silently.
        :return: True if the connector is connected.
        """
        raise NotImplementedError

    @abstractmethod
    def disconnect(self, reconnect=False):
        raise NotImplementedError
