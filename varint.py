# coding=utf-8

"""
Variable Length Integer Encoding

This module implements the base 128 variable length integer encoding defined
here: https://developers.google.com/protocol-buffers/docs/encoding. Small
integers are encoded in fewer bytes. Charmap snapshots use it to store range
boundaries and blob offsets, most of which are small deltas.

Copyright (c) 2013, François Jeannotte.
"""

def encode(int_list):
    """
    Encode an iterable of integers using an encoding similar to Google Protocol
    Buffer 'varint'.

    >>> encode([]).hex()
    ''
    >>> encode([0]).hex()
    '00'
    >>> encode([3]).hex()
    '03'
    >>> encode([300]).hex()
    'ac02'
    >>> encode([300, 300, 300, 3, 0]).hex()
    'ac02ac02ac020300'

    Negative integers cannot be encoded.

    >>> encode([-1])
    Traceback (most recent call last):
        ...
    ValueError: Cannot encode negative integer: -1
    """
    b = bytearray()
    for i in int_list:
        if i < 0:
            raise ValueError('Cannot encode negative integer: {}'.format(i))
        if i == 0:
            b.append(0)
        else:
            while i > 0:
                b.append(i & 0x7f | 0x80)
                i >>= 7
            b[-1] &= 0x7f
    return bytes(b)

def decode(buf):
    """
    Decode provided binary buffer into list of integers, using the varint
    encoding.

    >>> decode(encode([3]))
    [3]
    >>> decode(encode([300]))
    [300]
    >>> decode(encode([300, 4]))
    [300, 4]
    >>> decode(encode([300, 99239934294392243432234, 1]))
    [300, 99239934294392243432234, 1]

    A buffer ending in the middle of an integer is rejected.

    >>> decode(b'\\xac')
    Traceback (most recent call last):
        ...
    ValueError: Truncated varint at end of buffer
    """
    int_list = []
    num      = 0
    i        = 0
    for b in bytes(buf):
        num |= (b & 0x7f) << i*7
        if b & 0x80: # Continuation bit is set
            i += 1
        else:
            int_list.append(num)
            num = 0
            i   = 0
    if i:
        raise ValueError('Truncated varint at end of buffer')
    return int_list

def deltas(int_list):
    """
    Turn an increasing sequence into its first value followed by the
    differences between neighbours, which keeps varints short.

    >>> deltas([0x4e00, 0x4e01, 0x4e10])
    [19968, 1, 15]
    >>> deltas([])
    []
    """
    prev = 0
    out  = []
    for i in int_list:
        out.append(i - prev)
        prev = i
    return out

def undeltas(int_list):
    """
    Inverse of deltas().

    >>> undeltas([19968, 1, 15])
    [19968, 19969, 19984]
    """
    total = 0
    out   = []
    for i in int_list:
        total += i
        out.append(total)
    return out
