"""
Conversion of values to the bytes written to the serial line.
"""

DEFAULT_ENCODING = 'utf-8'


def _is_integral(data):
    if isinstance(data, bool):
        return True
    if isinstance(data, int):
        return True
    return isinstance(data, float) and data.is_integer()


def _element_byte(value):
    """ a sequence element as a byte. Values that are not numbers become 0. """
    try:
        return int(value) & 0xFF
    except (TypeError, ValueError, OverflowError):
        pass
    try:
        return int(float(value)) & 0xFF
    except (TypeError, ValueError, OverflowError):
        return 0


def to_bytes(data, encoding=DEFAULT_ENCODING) -> bytes:
    """
    Converts data to the bytes sent over the wire.

    Integers are truncated to a single byte since the line carries bytes. Wider numeric types
    must be packed by the caller (e.g. with struct) before being passed in.
    Sequences of integers become a byte sequence of the same length, each value truncated to a byte.
    Elements that are not numbers are sent as 0.
    Anything else is converted to a string and encoded.

    >>> to_bytes(b"abc")
    b'abc'
    >>> to_bytes(65)
    b'A'
    >>> to_bytes(257)
    b'\\x01'
    >>> to_bytes([1, 2, 256])
    b'\\x01\\x02\\x00'
    >>> to_bytes(["a", "7", None])
    b'\\x00\\x07\\x00'
    >>> to_bytes("hi")
    b'hi'
    >>> to_bytes(None)
    b'\\x00'
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, (list, tuple)):
        return bytes(_element_byte(b) for b in data)
    if data is None:
        return bytes([0])
    if _is_integral(data):
        return bytes([int(data) & 0xFF])
    return str(data).encode(encoding or DEFAULT_ENCODING)
