import struct

double_format = '>d'


def to_byte_array(value: float) -> bytes:
    """ encodes a double as its 8 big-endian IEEE-754 bytes.
    >>> to_byte_array(1.0)
    b'?\\xf0\\x00\\x00\\x00\\x00\\x00\\x00'
    """
    return struct.pack(double_format, value)


def to_double(data: bytes) -> float:
    """
    >>> to_double(to_byte_array(3.14))
    3.14
    """
    return struct.unpack(double_format, bytes(data))[0]


def bytes_to_hex(data: bytes) -> str:
    """
    >>> bytes_to_hex(b'\\x01\\xab')
    '01AB'
    """
    return ''.join('%02X' % b for b in data)


def hex_to_bytes(text: str) -> bytes:
    """
    >>> hex_to_bytes('01AB')
    b'\\x01\\xab'
    """
    return bytes.fromhex(text)


def double_to_hex(value: float) -> str:
    """
    >>> double_to_hex(float('-inf'))
    'FFF0000000000000'
    """
    return bytes_to_hex(to_byte_array(value))


def hex_to_double(text: str) -> float:
    """
    >>> hex_to_double('FFF0000000000000')
    -inf
    """
    return to_double(hex_to_bytes(text))
