# coding=utf-8

"""
asciifold: unicode to ASCII transliteration.

Every codepoint of the input is replaced by a best-effort ASCII approximation
taken from the character map:

>>> transliterate('café')
'cafe'
>>> transliterate('中文')
'ZhongWen'

Two low level entry points write into a caller supplied buffer:
  - anyascii(codepoint, output) converts a single codepoint.
  - anyascii_string(input, output) converts a whole UTF-8 string.
Both return the number of bytes written, and raise BufferTooSmall instead of
writing past the end of the buffer. max_output_len() gives a safe buffer size
for an input of a given length. transliterate() returns a new object and never
needs a buffer.

Policies:
  - ASCII codepoints always map to themselves, whatever the table.
  - Unmapped codepoints are replaced by the fallback argument, empty by
    default (the character is dropped). The fallback must be ASCII.
  - Malformed UTF-8 never aborts a string conversion. With errors='replace'
    (the default) each bad byte becomes U+FFFD, which maps to '?'. With
    errors='ignore' each bad byte is skipped.

Copyright (c) 2013, François Jeannotte.
"""

import logging

import charmap
import charmap_gen
import utf8
from utf8 import DecodeError

log = logging.getLogger(__name__)

DEFAULT_FALLBACK = b''
DEFAULT_ERRORS   = 'replace'

STRING_ERRORS = ('replace', 'ignore')

translate_table = charmap_gen.create_translate_table()

ascii_bytes = [bytes((i,)) for i in range(0x80)]

class BufferTooSmall(Exception):
    """
    The output buffer cannot hold the result. written is the number of bytes
    already emitted into the buffer before the failure.
    """

    def __init__(self, needed, available, written=0):
        Exception.__init__(self, 'Output buffer too small: {} bytes needed, {} '
                                 'available'.format(needed, available))
        self.needed    = needed
        self.available = available
        self.written   = written

def _check_fallback(fallback):
    fallback = bytes(fallback)
    if not fallback.isascii():
        raise ValueError('Fallback must be ASCII: {!r}'.format(fallback))
    return fallback

def _check_codepoint(codepoint):
    if not 0 <= codepoint <= charmap.MAX_CODEPOINT:
        raise ValueError('Invalid codepoint: {!r}'.format(codepoint))
    if 0xd800 <= codepoint <= 0xdfff:
        raise ValueError('Surrogate is not a codepoint: {:#x}'.format(codepoint))

def _buffer_end(output, pos, capacity):
    """Index one past the last byte the engine may write."""
    if not 0 <= pos <= len(output):
        raise ValueError('Position {} outside buffer of {} bytes'.format(
                         pos, len(output)))
    if capacity is None:
        return len(output)
    if capacity < 0:
        raise ValueError('Negative capacity: {}'.format(capacity))
    return min(len(output), pos + capacity)

def _as_bytes(input):
    if isinstance(input, str):
        return input.encode('utf-8', 'surrogatepass')
    return bytes(memoryview(input))

def _table(table):
    return charmap.get() if table is None else table

def replacement(codepoint, fallback=DEFAULT_FALLBACK, table=None):
    """
    Return the ASCII replacement of a single codepoint.

    >>> replacement(0xe9)
    b'e'
    >>> replacement(0xf0000, fallback=b'?')
    b'?'
    """
    _check_codepoint(codepoint)
    fallback = _check_fallback(fallback)
    if codepoint < 0x80:
        return ascii_bytes[codepoint]
    repl = _table(table).lookup(codepoint)
    return fallback if repl is None else repl

def anyascii(codepoint, output, pos=0, capacity=None,
             fallback=DEFAULT_FALLBACK, table=None):
    """
    Convert one codepoint, writing its replacement at output[pos:]. Returns
    the number of bytes written.

    >>> buf = bytearray(max_replacement_len())
    >>> anyascii(0x41, buf)
    1
    >>> bytes(buf[:1])
    b'A'
    >>> anyascii(0xdf, bytearray(1))
    Traceback (most recent call last):
        ...
    asciifold.BufferTooSmall: Output buffer too small: 2 bytes needed, 1 available
    """
    end  = _buffer_end(output, pos, capacity)
    repl = replacement(codepoint, fallback, table)
    n    = len(repl)
    if pos + n > end:
        raise BufferTooSmall(n, end - pos)
    output[pos:pos + n] = repl
    return n

def _replacements(data, fallback, errors, table):
    """Yield the replacement bytes of every codepoint of a UTF-8 buffer."""
    lookup = table.lookup
    for codepoint in utf8.iter_codepoints(data, errors):
        if codepoint < 0x80:
            yield ascii_bytes[codepoint]
            continue
        repl = lookup(codepoint)
        yield fallback if repl is None else repl

def _check_errors(errors):
    if errors not in STRING_ERRORS:
        raise ValueError('Unknown error policy for string conversion: '
                         '{!r}'.format(errors))

def anyascii_string(input, output, pos=0, capacity=None,
                    fallback=DEFAULT_FALLBACK, errors=DEFAULT_ERRORS,
                    table=None):
    """
    Convert a whole UTF-8 string (or a str), writing the result at
    output[pos:]. Returns the total number of bytes written.

    >>> buf = bytearray(32)
    >>> n = anyascii_string('Straße'.encode('utf-8'), buf)
    >>> n, bytes(buf[:n])
    (7, b'Strasse')
    >>> anyascii_string(b'', buf)
    0

    If the buffer fills up, BufferTooSmall is raised. Its written attribute
    tells how much of the buffer was used.
    """
    _check_errors(errors)
    fallback = _check_fallback(fallback)
    table    = _table(table)
    end      = _buffer_end(output, pos, capacity)
    start    = pos
    for repl in _replacements(_as_bytes(input), fallback, errors, table):
        n = len(repl)
        if pos + n > end:
            raise BufferTooSmall(n, end - pos, pos - start)
        output[pos:pos + n] = repl
        pos += n
    return pos - start

def transliterate(input, fallback=DEFAULT_FALLBACK, errors=DEFAULT_ERRORS,
                  table=None):
    """
    Convert a whole string into a new object: str for a str input, bytes for
    a bytes-like input.

    >>> transliterate('Κνωσός')
    'Knosos'
    >>> transliterate(b'caf\\xc3')
    b'caf?'
    >>> transliterate(b'caf\\xc3', errors='ignore')
    b'caf'
    """
    _check_errors(errors)
    fallback = _check_fallback(fallback)
    data     = _as_bytes(input)
    if data.isascii():
        out = data
    else:
        out = b''.join(_replacements(data, fallback, errors,
                                     _table(table)))
    if isinstance(input, str):
        return out.decode('ascii')
    return out

def search_words(input, errors=DEFAULT_ERRORS, table=None):
    """
    Transliterate and fold a string into lowercase search words. Letters,
    digits and '_' are kept; everything else separates words.

    >>> search_words('Élève, Straße 2_b!')
    ['eleve', 'strasse', '2_b']
    """
    folded = transliterate(_as_bytes(input), errors=errors, table=table)
    return folded.translate(translate_table).decode('ascii').split()

def max_replacement_len(table=None):
    """Length of the longest replacement of the table."""
    return _table(table).max_len

def max_output_len(input_len, fallback=DEFAULT_FALLBACK, table=None):
    """
    Size of a buffer large enough for the conversion of any input of
    input_len bytes. Every byte produces at most one codepoint (valid or
    recovered), and every codepoint at most max(max_len, len(fallback))
    bytes.
    """
    if input_len < 0:
        raise ValueError('Negative input length: {}'.format(input_len))
    fallback = _check_fallback(fallback)
    return input_len * max(max_replacement_len(table), len(fallback), 1)

__all__ = ['BufferTooSmall', 'DEFAULT_ERRORS', 'DEFAULT_FALLBACK',
           'DecodeError', 'anyascii', 'anyascii_string', 'max_output_len',
           'max_replacement_len', 'replacement', 'search_words',
           'transliterate']
