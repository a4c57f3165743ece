"""
A command line monitor for a serial device.

    serialhelper-monitor --list
    serialhelper-monitor /dev/ttyACM0 9600 --request "status"
    serialhelper-monitor --config monitor.cfg --framing idle-timeout --interval 50

Logs the connection events and the records received, optionally sends a request once the port is open
and prints the reply, then runs until interrupted.
"""
import argparse
import logging
import sys
import time

from configobj import ConfigObjError

from serialhelper.config.config import ConfigError, ConnectionConfig, FIXED_LENGTH, IDLE_TIMEOUT, LINE, \
    connection_config, load_config_file
from serialhelper.facade import ClosedEvent, DataEvent, ErrorEvent, OpenedEvent, SerialHelper

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog='serialhelper-monitor', description="Serial port monitor")
    parser.add_argument('port', nargs='?', help="the serial port, or 'auto' to detect a known board")
    parser.add_argument('baud', nargs='?', type=int, help="the baud rate")
    parser.add_argument('--list', action='store_true', help="list the serial ports and exit")
    parser.add_argument('--config', metavar='FILE', help="read the [serial] section of a configuration file")
    parser.add_argument('--framing', choices=(LINE, IDLE_TIMEOUT, FIXED_LENGTH), help="how records are delimited")
    parser.add_argument('--delimiter', help="the line delimiter, with escapes such as \\r\\n")
    parser.add_argument('--interval', type=int, help="idle time in milliseconds that ends a record")
    parser.add_argument('--length', type=int, help="the number of bytes in each record")
    parser.add_argument('--request', metavar='TEXT', help="send TEXT once the port is open and print the reply")
    parser.add_argument('--timeout', type=int, default=1000, help="the request timeout in milliseconds")
    parser.add_argument('--duration', type=float, help="stop after this many seconds")
    parser.add_argument('--debug', choices=('off', 'on', 'verbose'), default='on')
    args = parser.parse_args(argv)
    if not args.list and not args.config and (args.port is None or args.baud is None):
        parser.error("the port and baud rate are required, unless --config or --list is given")
    return args


def build_config(args) -> ConnectionConfig:
    """ combines the configuration file, if any, with the command line options """
    if args.config:
        config = connection_config(load_config_file(args.config))
        if args.port:
            config = config.replace(port=args.port)
        if args.baud:
            config = config.replace(baud=args.baud)
    else:
        config = ConnectionConfig.create(args.port, args.baud)

    framing = config.framing._asdict()
    if args.framing:
        framing['kind'] = args.framing
    if args.delimiter:
        framing['delimiter'] = args.delimiter.encode('latin-1').decode('unicode_escape')
    if args.interval:
        framing['interval'] = args.interval
    if args.length:
        framing['length'] = args.length
    return config.replace(framing=framing, debug=args.debug, autoopen=False)


def list_ports(out=sys.stdout):
    for p in SerialHelper.list():
        print("%s\t%s\t%s" % (p.device, p.description, p.hwid), file=out)


def log_event(event):
    if isinstance(event, OpenedEvent):
        logger.info(event.message)
    elif isinstance(event, ClosedEvent):
        logger.info(event.message)
    elif isinstance(event, ErrorEvent):
        logger.error("error: %s", event.cause)
    elif isinstance(event, DataEvent):
        logger.info("data: %r", event.record)


def monitor(helper: SerialHelper, request=None, timeout=1000, duration=None, out=sys.stdout, sleep=time.sleep):
    """
    Connects and logs the events from the helper until interrupted, or until duration seconds have passed.
    :return: the reply to the request, if one was sent
    """
    helper.events += log_event
    reply = None
    try:
        helper.connect()
        if request is not None:
            reply = helper.request(request + '\n', timeout)
            print("reply: %r" % (reply,), file=out)
        deadline = None if duration is None else time.monotonic() + duration
        while deadline is None or time.monotonic() < deadline:
            sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        helper.disconnect()
        helper.events -= log_event
    return reply


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(threadName)s: %(message)s")
    args = parse_args(argv)
    if args.list:
        list_ports()
        return 0
    try:
        config = build_config(args)
    except (ConfigError, ConfigObjError, OSError) as e:
        logger.error("invalid configuration: %s", e)
        return 2
    monitor(SerialHelper(config), args.request, args.timeout, args.duration)
    return 0


if __name__ == '__main__':
    sys.exit(main())
