import unittest
from unittest.mock import Mock, patch

import serial
from hamcrest import assert_that, calling, is_, raises

from serialhelper.conduit.serial_conduit import SerialConduit, detect_port, device_name, \
    find_recognised_device_ports, serial_port_info, serial_ports

test_ports = [("port", "name", "desc")]


class SerialConduitTest(unittest.TestCase):
    def test(self):
        ser = Mock()
        sut = SerialConduit(ser)

        assert_that(sut.output, is_(ser))

        sut.close()
        ser.close.assert_called_once()

    def test_write_goes_to_output(self):
        ser = Mock()
        ser.write.return_value = 3
        sut = SerialConduit(ser)
        assert_that(sut.write(b"abc"), is_(3))
        ser.write.assert_called_once_with(b"abc")

    def test_read_available_reads_waiting_bytes(self):
        ser = Mock()
        ser.in_waiting = 5
        ser.read.return_value = b"12345"
        assert_that(SerialConduit(ser).read_available(), is_(b"12345"))
        ser.read.assert_called_once_with(5)

    def test_read_available_waits_for_one_byte_when_idle(self):
        ser = Mock()
        ser.in_waiting = 0
        ser.read.return_value = b""
        assert_that(SerialConduit(ser).read_available(), is_(b""))
        ser.read.assert_called_once_with(1)

    def test_loopback_port(self):
        ser = serial.serial_for_url("loop://", timeout=0.1)
        sut = SerialConduit(ser)
        sut.write(b"ping\n")
        assert_that(sut.read_available(), is_(b"ping\n"))
        sut.close()
        assert_that(ser.is_open, is_(False))


class SerialPortsTest(unittest.TestCase):

    @patch('serial.tools.list_ports.comports', return_value=test_ports)
    def test_serial_port_info(self, comports):
        assert_that(serial_port_info(), is_(tuple(test_ports)))
        comports.assert_called_once()

    def test_function_serial_ports(self):
        with patch('serialhelper.conduit.serial_conduit.serial_port_info') as mock:
            mock.return_value = [(1, "1"), (2, "2")]
            ports = [p for p in serial_ports()]
            assert_that(ports, is_([1, 2]))

    def test_function_find_recognised_device_ports(self):
        known = ["abc", "Blah", "USB VID:PID=2B04:C006 SER=00000000050C"]
        generator = find_recognised_device_ports([("1", "2", "3"), known])
        result = tuple(generator)
        assert_that(result, is_((known,)))

    def test_device_name(self):
        assert_that(device_name(("p", "x", "USB VID:PID=2341:8036 SER=1")), is_("Arduino Leonardo"))
        assert_that(device_name(("p", "x", "nothing")), is_(None))

    def test_function_detect_port_non_auto(self):
        assert_that(detect_port("abc"), is_("abc"))

    def test_function_detect_port_auto_none(self):
        with patch('serialhelper.conduit.serial_conduit.serial_port_info') as mock:
            mock.return_value = tuple()
            assert_that(calling(detect_port).with_args("auto"), raises(ValueError))

    def test_function_detect_port_auto_some(self):
        with patch('serialhelper.conduit.serial_conduit.serial_port_info') as mock:
            mock.return_value = tuple([
                ("abc", "Blah", "not me"),
                ("def", "Blah", "USB VID:PID=2B04:C006 SER=00000000050C"),
                ("3", "Blah", "USB VID:PID=2B04:C006 SER=00000000050C")
            ])
            assert_that(detect_port("auto"), is_("def"))
