"""
Decoding of text records.

A text record is parsed as JSON where possible, and otherwise kept as the text itself.
A decode failure is not an error.
"""
import json
from collections import namedtuple


class Record(namedtuple('Record', 'success payload')):
    """
    A decoded text record.
    :param success: True when the record was received. Decoding never fails, so this is always True
        for records produced by decode_text_record.
    :param payload: the parsed JSON value, or the stripped text when the record is not JSON.
    """
    __slots__ = ()


def _reject_constant(name):
    # NaN and Infinity are not JSON, even though the json module accepts them by default
    raise ValueError("invalid JSON constant %s" % name)


def decode_text_record(data, encoding='utf-8') -> Record:
    """
    Strips surrounding whitespace from a text record and parses it as JSON if possible.

    >>> decode_text_record('42\\r')
    Record(success=True, payload=42)
    >>> decode_text_record('{"a": 1}')
    Record(success=True, payload={'a': 1})
    >>> decode_text_record('OK ')
    Record(success=True, payload='OK')
    """
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode(encoding, errors='replace')
    text = data.strip()
    try:
        return Record(True, json.loads(text, parse_constant=_reject_constant))
    except ValueError:
        return Record(True, text)


def is_integer(value):
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def is_reportable(record: Record):
    """
    Determines if a decoded record is passed on to subscribers.
    Blank lines and the JSON values null and false are dropped, but integers, including 0, are kept.

    >>> is_reportable(Record(True, ''))
    False
    >>> is_reportable(Record(True, 0))
    True
    """
    payload = record.payload
    if is_integer(payload):
        return True
    return not (payload is None or payload is False or payload == '')
