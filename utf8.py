# coding=utf-8

"""
UTF-8 codepoint decoder.

Decodes one UTF-8 sequence at a time into a Unicode codepoint, following the
well-formedness rules of RFC 3629: no overlong forms, no encoded surrogates,
nothing above U+10FFFF.

Malformed input raises DecodeError. When iterating a whole buffer, the caller
picks a fixed recovery policy:
  - 'strict' : the DecodeError propagates.
  - 'replace': U+FFFD is produced and exactly one byte is consumed.
  - 'ignore' : exactly one byte is skipped.

Copyright (c) 2013, François Jeannotte.
"""

import logging

log = logging.getLogger(__name__)

REPLACEMENT_CHARACTER = 0xfffd

ERRORS = ('strict', 'replace', 'ignore')

class DecodeError(ValueError):
    """Malformed UTF-8 sequence found at a given byte offset."""

    def __init__(self, offset, reason):
        ValueError.__init__(self, 'Invalid UTF-8 at offset {}: {}'.format(
                                  offset, reason))
        self.offset = offset
        self.reason = reason

def _second_byte_range(lead):
    """
    Allowed range for the byte following a multi-byte lead byte. The narrower
    ranges exclude overlong forms (E0, F0), surrogates (ED) and codepoints
    above U+10FFFF (F4).
    """
    if lead == 0xe0:
        return 0xa0, 0xbf
    if lead == 0xed:
        return 0x80, 0x9f
    if lead == 0xf0:
        return 0x90, 0xbf
    if lead == 0xf4:
        return 0x80, 0x8f
    return 0x80, 0xbf

def _second_byte_reason(lead):
    if lead in (0xe0, 0xf0):
        return 'overlong encoding'
    if lead == 0xed:
        return 'encoded surrogate'
    return 'codepoint out of range'

def decode(buf, pos=0):
    """
    Decode the UTF-8 sequence starting at buf[pos]. Returns a (codepoint,
    consumed) tuple, or None when no bytes remain.

    >>> decode(b'A')
    (65, 1)
    >>> decode('é'.encode('utf-8'))
    (233, 2)
    >>> decode('中'.encode('utf-8'))
    (20013, 3)
    >>> decode(b'ab', 2) is None
    True
    >>> decode(b'\\xc0\\xaf')
    Traceback (most recent call last):
        ...
    utf8.DecodeError: Invalid UTF-8 at offset 0: overlong encoding
    """
    if pos < 0:
        raise ValueError('Negative position: {}'.format(pos))
    if pos >= len(buf):
        return None
    lead = buf[pos]

    # Single byte (ASCII)
    if lead < 0x80:
        return lead, 1

    # Find the sequence length and the payload bits of the lead byte
    if lead < 0xc0:
        raise DecodeError(pos, 'unexpected continuation byte')
    elif lead < 0xc2:
        raise DecodeError(pos, 'overlong encoding')
    elif lead < 0xe0:
        length, codepoint = 2, lead & 0x1f
    elif lead < 0xf0:
        length, codepoint = 3, lead & 0x0f
    elif lead < 0xf5:
        length, codepoint = 4, lead & 0x07
    else:
        raise DecodeError(pos, 'invalid start byte')

    # Accumulate the continuation bytes
    lo, hi = _second_byte_range(lead)
    for i in range(1, length):
        if pos + i >= len(buf):
            raise DecodeError(pos, 'truncated sequence')
        b = buf[pos + i]
        if not lo <= b <= hi:
            if i == 1 and 0x80 <= b <= 0xbf:
                raise DecodeError(pos, _second_byte_reason(lead))
            raise DecodeError(pos, 'invalid continuation byte')
        codepoint = (codepoint << 6) | (b & 0x3f)
        lo, hi = 0x80, 0xbf
    return codepoint, length

def iter_codepoints(buf, errors='strict'):
    """
    Yield every codepoint of buf, applying the given recovery policy on
    malformed sequences.

    >>> list(iter_codepoints(b'a\\xffb', 'replace'))
    [97, 65533, 98]
    >>> list(iter_codepoints(b'a\\xffb', 'ignore'))
    [97, 98]
    """
    if errors not in ERRORS:
        raise ValueError('Unknown error policy: {!r}'.format(errors))
    pos = 0
    while True:
        try:
            res = decode(buf, pos)
        except DecodeError as ex:
            if errors == 'strict':
                raise
            log.debug('{}, {} one byte'.format(
                      ex, 'replacing' if errors == 'replace' else 'skipping'))
            if errors == 'replace':
                yield REPLACEMENT_CHARACTER
            pos += 1
            continue
        if res is None:
            return
        codepoint, consumed = res
        yield codepoint
        pos += consumed
