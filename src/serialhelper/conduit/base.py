from abc import abstractmethod
from io import IOBase


class Conduit:
    """
    A conduit allows two-way communication. Bytes are read with read_available() and written to a file-like
    output endpoint.
    """

    @property
    @abstractmethod
    def output(self) -> IOBase:
        """ fetches the I/O stream that provides output.
            Callers can use the usual writeXXX() methods. """
        raise NotImplementedError

    @abstractmethod
    def read_available(self) -> bytes:
        """
        Reads the bytes that have arrived. Blocks at most for the read timeout
        when nothing is available, returning an empty bytes object.
        """
        raise NotImplementedError

    def write(self, data: bytes):
        """ writes all the given bytes to the output. """
        return self.output.write(data)

    @abstractmethod
    def close(self):
        """
        Closes the conduit, for both reading and writing.
        """
        raise NotImplementedError
