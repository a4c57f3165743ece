"""
The conduit package provides an abstraction of a bi-directional byte stream to an endpoint.
The concrete implementation is a serial port, along with helpers to enumerate the serial ports
available on the host.
"""
