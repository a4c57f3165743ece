"""
Implements a conduit over a serial port, and enumerates the serial ports on this host.
"""

import logging
import re

import serial
from serial.tools import list_ports as _list_ports

from serialhelper.conduit.base import Conduit

logger = logging.getLogger(__name__)


class SerialConduit(Conduit):
    """
    A conduit that provides comms via an open serial port.
    """

    def __init__(self, ser: serial.SerialBase):
        self.ser = ser

    @property
    def output(self):
        return self.ser

    def read_available(self) -> bytes:
        return self.ser.read(self.ser.in_waiting or 1)

    def close(self):
        self.ser.close()


arduino_devices = {
    (r"%mega2560\.name%.*", r"USB VID\:PID=2341\:0010.*"): "Arduino Mega2560",
    (r"Arduino.*Leonardo.*", r"USB VID\:PID=2341\:8036.*"): "Arduino Leonardo",
    (r"Arduino.*Micro.*", r"USB VID\:PID=2341\:8037.*"): "Arduino Micro",
    (r'Arduino Uno.*', r'USB VID:PID=2341:0043.*'): "Arduino Uno"
}

particle_devices = {
    (r"Spark Core.*Arduino.*", r"USB VID\:PID=1D50\:607D.*"): "Spark Core",
    (r".*Photon.*", r"USB VID\:PID=2b04\:c006.*"): "Particle Photon",
    (r".*P1.*", r"USB VID\:PID=2b04\:c008.*"): "Particle P1",
    (r".*Electron.*", r"USB VID\:PID=2b04\:c00a.*"): "Particle Electron"
}

known_devices = dict((k, v) for d in [arduino_devices, particle_devices] for k, v in d.items())


# 'USB VID:PID=2B04:C006 SER=00000000050C LOCATION=20-5'
def matches(text, regex):
    """
    >>> bool(matches("A", "a"))
    True
    >>> bool(matches("A", "b"))
    False
    >>> bool(matches("USB VID:PID=2B04:C006 SER=00000000050C LOCATION=20-5", r"USB VID\\:PID=2b04\\:c006.*"))
    True
    """
    return re.match(regex, text, flags=re.IGNORECASE)


def device_name(p):
    """
    Names the known device attached to a port, or returns None if the device is not recognised.
    :param p: a (port, description, hwid) triple, such as a ListPortInfo
    """
    port, name, desc = p
    for d, known_name in known_devices.items():
        # under linux only the hardware id is meaningful, so the description is not matched
        if matches(desc, d[1]):
            return known_name
    return None


def is_recognised_device(p):
    """
    >>> is_recognised_device(("abc", "Blah", "USB VID:PID=2B04:C006 SER=00000000050C"))
    True
    >>> is_recognised_device(("abc", "Blah", "n/a"))
    False
    """
    return device_name(p) is not None


def find_recognised_device_ports(ports):
    for p in ports:
        if is_recognised_device(p):
            yield p


def serial_port_info():
    """
    :return: a tuple of ListPortInfo instances describing the serial ports on this host
    :rtype: tuple
    """
    return tuple(_list_ports.comports())


def serial_ports():
    """
    Returns a generator for all available serial port device names.
    """
    for port in serial_port_info():
        yield port[0]


def detect_port(port):
    """
    Resolves a configured port name to a device. If the port is not "auto", it is returned as is.
    Otherwise, the device name of the first recognised device is returned.
    """
    if port == "auto":
        all_ports = serial_port_info()
        ports = tuple(find_recognised_device_ports(all_ports))
        if not ports:
            raise ValueError("Could not find a compatible device in available ports. %s" % repr(all_ports))
        logger.info("detected %s on %s" % (device_name(ports[0]), ports[0][0]))
        return ports[0][0]
    return port
