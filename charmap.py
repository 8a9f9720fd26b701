# coding=utf-8

"""
Character map.

This module implements the lookup table that maps a unicode codepoint to its
ASCII replacement. The codepoint space is large (0x110000 values) but mapped
codepoints cluster in blocks (one per script), so the table is stored as a
sorted list of ranges searched with bisect:

  - starts, ends : first and last codepoint of each range
  - firsts       : index of the range's first entry
  - steps        : 1 if the range holds one entry per codepoint, 0 if every
                   codepoint of the range shares a single entry (uniform runs
                   of MIN_UNIFORM_RUN or more codepoints)

An entry is an (offset, length) pair into a single blob of ASCII bytes, in
which identical replacements are stored only once.

The process-wide table is built on first use by get(), from the data
generated by charmap_gen. Once published it is never modified, so any number
of threads may read it without locking.

Tables can also be saved to and loaded from a compact snapshot file:

    magic (4 bytes) | size of integer section (uint32, little endian) |
    varint encoded integers | blob

Copyright (c) 2013, François Jeannotte.
"""

from   array import array
import bisect
import logging
import struct
import threading
import time

import charmap_gen
import varint

log = logging.getLogger(__name__)

MIN_UNIFORM_RUN = 3

MAX_CODEPOINT = 0x10ffff

SNAPSHOT_MAGIC  = b'AXC1'
snapshot_header = struct.Struct('<4sI')

def split_run(start, values, min_uniform=MIN_UNIFORM_RUN):
    """
    Split a run of consecutive codepoints into (start, end, values, step)
    ranges, isolating uniform sub-runs.

    >>> for r in split_run(0x10, [b'a', b'b', b'', b'', b'', b'c']):
    ...     print(r)
    (16, 17, [b'a', b'b'], 1)
    (18, 20, [b''], 0)
    (21, 21, [b'c'], 1)
    """
    pending = 0
    i = 0
    n = len(values)
    while i < n:
        j = i + 1
        while j < n and values[j] == values[i]:
            j += 1
        if j - i >= min_uniform:
            if pending < i:
                yield start + pending, start + i - 1, values[pending:i], 1
            yield start + i, start + j - 1, [values[i]], 0
            pending = j
        i = j
    if pending < n:
        yield start + pending, start + n - 1, values[pending:], 1

def frozen(arr):
    """
    Read-only view of an array, backed by an immutable copy of its bytes.

    >>> v = frozen(array('I', [1, 2]))
    >>> v[1], len(v), v.readonly
    (2, 2, True)
    """
    return memoryview(arr.tobytes()).cast(arr.typecode)

class Charmap(object):
    """
    Immutable codepoint to ASCII bytes lookup table.

    >>> cm = Charmap.from_entries([(0x41, b'A'), (0xe9, b'e'), (0xea, b'e')])
    >>> cm.lookup(0xe9), cm.lookup(0x42)
    (b'e', None)
    >>> len(cm), cm.max_len
    (3, 1)
    """

    def __init__(self, starts, ends, firsts, steps, offsets, lengths, blob):
        self.starts  = frozen(starts)
        self.ends    = frozen(ends)
        self.firsts  = frozen(firsts)
        self.steps   = frozen(steps)
        self.offsets = frozen(offsets)
        self.lengths = frozen(lengths)
        self.blob    = bytes(blob)
        self.max_len = max(lengths) if lengths else 0
        self.count   = sum(e - s + 1 for s, e in zip(starts, ends))

    @classmethod
    def from_entries(cls, entries, min_uniform=MIN_UNIFORM_RUN):
        """
        Build a table from (codepoint, bytes) pairs given in strictly
        increasing codepoint order.
        """

        # Group the entries in runs of consecutive codepoints
        runs = []
        prev = -1
        for cp, value in entries:
            if not 0 <= cp <= MAX_CODEPOINT:
                raise ValueError('Invalid codepoint: {:#x}'.format(cp))
            if cp <= prev:
                raise ValueError('Entries not sorted at codepoint {:#x}'.
                                 format(cp))
            value = bytes(value)
            if not value.isascii():
                raise ValueError('Non ASCII replacement for codepoint {:#x}: '
                                 '{!r}'.format(cp, value))
            if runs and cp == prev + 1:
                runs[-1][1].append(value)
            else:
                runs.append((cp, [value]))
            prev = cp

        # Store the ranges, and pack the distinct replacements in the blob
        starts  = array('I')
        ends    = array('I')
        firsts  = array('I')
        steps   = array('B')
        offsets = array('I')
        lengths = array('H')
        blob    = bytearray()
        blob_offsets = dict()
        for run_start, values in runs:
            for start, end, range_values, step in split_run(run_start, values,
                                                            min_uniform):
                starts.append(start)
                ends.append(end)
                firsts.append(len(offsets))
                steps.append(step)
                for value in range_values:
                    offset = blob_offsets.get(value)
                    if offset is None:
                        offset = len(blob)
                        blob.extend(value)
                        blob_offsets[value] = offset
                    offsets.append(offset)
                    lengths.append(len(value))
        return cls(starts, ends, firsts, steps, offsets, lengths, bytes(blob))

    def lookup(self, codepoint):
        """
        Return the replacement bytes for a codepoint, or None if the codepoint
        has no mapping. An empty result means the character is deleted.
        """
        i = bisect.bisect_right(self.starts, codepoint) - 1
        if i < 0 or codepoint > self.ends[i]:
            return None
        j = self.firsts[i] + (codepoint - self.starts[i]) * self.steps[i]
        offset = self.offsets[j]
        return self.blob[offset:offset + self.lengths[j]]

    def __contains__(self, codepoint):
        i = bisect.bisect_right(self.starts, codepoint) - 1
        return i >= 0 and codepoint <= self.ends[i]

    def __len__(self):
        """Number of mapped codepoints."""
        return self.count

    def __repr__(self):
        return '<Charmap {} ranges, {} codepoints, {} bytes>'.format(
               len(self.starts), self.count, len(self.blob))

    def ranges(self):
        """Yield (start, end, uniform) for every range, in codepoint order."""
        for start, end, step in zip(self.starts, self.ends, self.steps):
            yield start, end, step == 0

    def entries(self):
        """Yield every (codepoint, bytes) pair of the table."""
        for start, end, uniform in self.ranges():
            for cp in range(start, end + 1):
                yield cp, self.lookup(cp)

    def dumps(self):
        """
        Serialize the table into a snapshot.

        >>> cm = Charmap.from_entries([(0x41, b'A'), (0xe9, b'e')])
        >>> Charmap.loads(cm.dumps()).lookup(0xe9)
        b'e'
        """
        ints = [len(self.starts), len(self.offsets)]
        ints.extend(varint.deltas(self.starts))
        ints.extend(e - s for s, e in zip(self.starts, self.ends))
        ints.extend(self.firsts)
        ints.extend(self.steps)
        ints.extend(self.offsets)
        ints.extend(self.lengths)
        encoded = varint.encode(ints)
        return b''.join((snapshot_header.pack(SNAPSHOT_MAGIC, len(encoded)),
                         encoded, self.blob))

    @classmethod
    def loads(cls, buf):
        """
        Rebuild a table from a snapshot produced by dumps().

        >>> Charmap.loads(b'nope')
        Traceback (most recent call last):
            ...
        ValueError: Corrupt charmap snapshot: header too short
        """
        buf = bytes(buf)
        if len(buf) < snapshot_header.size:
            raise ValueError('Corrupt charmap snapshot: header too short')
        magic, size = snapshot_header.unpack_from(buf)
        if magic != SNAPSHOT_MAGIC:
            raise ValueError('Corrupt charmap snapshot: bad magic {!r}'.
                             format(magic))
        body_start = snapshot_header.size
        blob_start = body_start + size
        if blob_start > len(buf):
            raise ValueError('Corrupt charmap snapshot: truncated')
        ints = varint.decode(buf[body_start:blob_start])
        if len(ints) < 2:
            raise ValueError('Corrupt charmap snapshot: missing counts')
        nranges, nentries = ints[0], ints[1]
        if len(ints) != 2 + 4*nranges + 2*nentries:
            raise ValueError('Corrupt charmap snapshot: expected {} ranges and '
                             '{} entries'.format(nranges, nentries))
        pos = 2
        def take(n):
            nonlocal pos
            chunk = ints[pos:pos + n]
            pos += n
            return chunk
        def column(name, typecode, values):
            try:
                return array(typecode, values)
            except OverflowError:
                raise ValueError('Corrupt charmap snapshot: {} value too '
                                 'large'.format(name)) from None
        starts  = column('start', 'I', varint.undeltas(take(nranges)))
        ends    = column('end', 'I', [s + d for s, d in
                                      zip(starts, take(nranges))])
        firsts  = column('first', 'I', take(nranges))
        steps   = column('step', 'B', take(nranges))
        offsets = column('offset', 'I', take(nentries))
        lengths = column('length', 'H', take(nentries))

        # Ranges must be sorted, disjoint and within the codepoint space
        for i, (start, end, step) in enumerate(zip(starts, ends, steps)):
            if step not in (0, 1):
                raise ValueError('Corrupt charmap snapshot: invalid step {}'.
                                 format(step))
            if i > 0 and start <= ends[i - 1]:
                raise ValueError('Corrupt charmap snapshot: overlapping '
                                 'ranges at {:#x}'.format(start))
        if nranges and ends[-1] > MAX_CODEPOINT:
            raise ValueError('Corrupt charmap snapshot: codepoint {:#x} out '
                             'of range'.format(ends[-1]))
        blob    = buf[blob_start:]
        for offset, length in zip(offsets, lengths):
            if offset + length > len(blob):
                raise ValueError('Corrupt charmap snapshot: entry out of blob')
        for first, step, start, end in zip(firsts, steps, starts, ends):
            if first + (end - start) * step >= nentries:
                raise ValueError('Corrupt charmap snapshot: range out of '
                                 'entries')
        return cls(starts, ends, firsts, steps, offsets, lengths, blob)

    def save(self, path):
        """Write the table snapshot to a file."""
        with open(path, 'wb') as f:
            f.write(self.dumps())

    @classmethod
    def load(cls, path):
        """Read a table snapshot from a file."""
        with open(path, 'rb') as f:
            return cls.loads(f.read())

def build():
    """Build the default table from the unidecode data."""
    start_time = time.perf_counter()
    cm = Charmap.from_entries(charmap_gen.generate_entries())
    elapsed_time = time.perf_counter() - start_time
    log.info('Charmap built in {:.3f} seconds: {} ranges, {} codepoints, '
             '{} bytes of replacements'.format(elapsed_time, len(cm.starts),
                                               len(cm), len(cm.blob)))
    return cm

_charmap      = None
_charmap_lock = threading.Lock()

def get():
    """
    Return the process-wide table, building it on first use. Concurrent first
    calls build it only once.
    """
    global _charmap
    cm = _charmap
    if cm is None:
        with _charmap_lock:
            if _charmap is None:
                _charmap = build()
            cm = _charmap
    return cm
