# coding=utf-8

import os
import os.path as op
import shutil
import tempfile
import threading

from runtests import assert_eq, assert_raises
import charmap
import charmap_gen
import varint

class TempDir(object):
  """
  Allow the creation of an automatically deleted temporary dir using the
  context management protocol.
  """
  def __init__(self):
    self.tempd = tempfile.mkdtemp()
  def __enter__(self):
    return self
  def __exit__(self, exc_type, exc_value, traceback):
    shutil.rmtree(self.tempd)
  def __str__(self):
    return self.tempd

def sample_entries():
    entries = [(0x41, b'A'), (0x42, b'B')]
    entries.extend((cp, b'') for cp in range(0x300, 0x370))
    entries.extend([(0x4e00, b'Yi'), (0x4e01, b'Ding'), (0x4e02, b'Kao')])
    entries.extend((cp, b'?') for cp in range(0xfff0, 0xfff4))
    entries.append((0x1f600, b':)'))
    return entries

def test_lookup():
    entries = sample_entries()
    cm = charmap.Charmap.from_entries(entries)
    for cp, value in entries:
        assert_eq(value, cm.lookup(cp))
        assert cp in cm
    assert_eq(len(entries), len(cm))
    assert_eq(4, cm.max_len)

def test_unmapped():
    cm = charmap.Charmap.from_entries(sample_entries())
    for cp in (0, 0x40, 0x43, 0x2ff, 0x370, 0x4dff, 0x4e03, 0x1f5ff, 0x1f601,
               0x10ffff):
        assert cm.lookup(cp) is None, hex(cp)
        assert cp not in cm
    assert charmap.Charmap.from_entries([]).lookup(0x41) is None

def test_empty_entry_is_mapped():
    cm = charmap.Charmap.from_entries([(0x200b, b'')])
    assert_eq(b'', cm.lookup(0x200b))
    assert 0x200b in cm

def test_ranges():
    cm = charmap.Charmap.from_entries(sample_entries())
    assert_eq([(0x41, 0x42, False),
               (0x300, 0x36f, True),
               (0x4e00, 0x4e02, False),
               (0xfff0, 0xfff3, True),
               (0x1f600, 0x1f600, False)], list(cm.ranges()))

def test_uniform_runs_share_one_entry():
    cm = charmap.Charmap.from_entries((cp, b'x') for cp in range(0x100, 0x200))
    assert_eq(1, len(cm.offsets))
    assert_eq(0x100, len(cm))
    assert_eq(b'x', cm.lookup(0x1ff))

def test_blob_dedup():
    cm = charmap.Charmap.from_entries([(0x100, b'ab'), (0x102, b'ab'),
                                       (0x104, b'cd')])
    assert_eq(b'abcd', cm.blob)

def test_entries_roundtrip():
    entries = sample_entries()
    cm = charmap.Charmap.from_entries(entries)
    assert_eq(entries, list(cm.entries()))

def test_invalid_entries():
    assert_raises(ValueError, charmap.Charmap.from_entries,
                  [(0x42, b'B'), (0x41, b'A')])
    assert_raises(ValueError, charmap.Charmap.from_entries,
                  [(0x41, b'A'), (0x41, b'A')])
    assert_raises(ValueError, charmap.Charmap.from_entries,
                  [(0x100, 'é'.encode('utf-8'))])
    assert_raises(ValueError, charmap.Charmap.from_entries,
                  [(0x110000, b'x')])

def test_snapshot():
    cm = charmap.Charmap.from_entries(sample_entries())
    loaded = charmap.Charmap.loads(cm.dumps())
    assert_eq(cm.dumps(), loaded.dumps())
    assert_eq(list(cm.entries()), list(loaded.entries()))
    assert_eq(cm.max_len, loaded.max_len)

def test_snapshot_file():
    cm = charmap.Charmap.from_entries(sample_entries())
    with TempDir() as td:
        path = op.join(str(td), 'charmap.bin')
        cm.save(path)
        assert os.path.getsize(path) > 0
        assert_eq(b'Ding', charmap.Charmap.load(path).lookup(0x4e01))

def test_corrupt_snapshot():
    buf = charmap.Charmap.from_entries(sample_entries()).dumps()
    assert_raises(ValueError, charmap.Charmap.loads, b'')
    assert_raises(ValueError, charmap.Charmap.loads, b'XXXX' + buf[4:])
    assert_raises(ValueError, charmap.Charmap.loads, buf[:10])
    ex = assert_raises(ValueError, charmap.Charmap.loads, buf[:-3])
    assert 'entry out of blob' in str(ex)

def snapshot(ints, blob):
    """Hand-built snapshot from its integer section and blob."""
    encoded = varint.encode(ints)
    return (charmap.snapshot_header.pack(charmap.SNAPSHOT_MAGIC, len(encoded))
            + encoded + blob)

def test_hand_built_snapshot():
    cm = charmap.Charmap.loads(snapshot([1, 1, 0x41, 0, 0, 1, 0, 1], b'A'))
    assert_eq(b'A', cm.lookup(0x41))
    assert_eq(None, cm.lookup(0x42))
    assert_eq(1, len(cm))

def test_corrupt_snapshot_values():
    cases = [
        # nranges, nentries, start deltas, spans, firsts, steps, offsets, lengths
        ([1, 1, 0x41, 0, 0, 300, 0, 1], 'step'),
        ([1, 1, 1 << 40, 0, 0, 1, 0, 1], 'start'),
        ([1, 1, 0x41, 0, 1 << 40, 1, 0, 1], 'first'),
        ([1, 1, 0x41, 0, 0, 1, 0, 70000], 'length'),
        ([1, 1, 0x41, 0, 0, 2, 0, 1], 'invalid step'),
        ([2, 1, 0x41, 0, 0, 0, 0, 0, 0, 0, 0, 1], 'overlapping'),
        ([2, 1, 0x41, 2, 5, 0, 0, 0, 0, 0, 0, 1], 'overlapping'),
        ([1, 1, 0x110000, 0, 0, 1, 0, 1], 'out of range'),
        ([1, 1, 0x10ffff, 1, 0, 0, 0, 1], 'out of range'),
        ([1, 1, 0x41, 1, 0, 1, 0, 1], 'range out of entries'),
        ([1, 1, 0x41, 0, 1, 1, 0, 1], 'range out of entries'),
    ]
    for ints, reason in cases:
        ex = assert_raises(ValueError, charmap.Charmap.loads,
                           snapshot(ints, b'A'))
        assert reason in str(ex), (ints, str(ex))

def store(arr, index, value):
    arr[index] = value

def test_table_is_read_only():
    cm = charmap.Charmap.from_entries(sample_entries())
    for arr in (cm.starts, cm.ends, cm.firsts, cm.steps, cm.offsets,
                cm.lengths):
        assert arr.readonly
        assert_raises(TypeError, store, arr, 0, 0)
    assert_raises(TypeError, store, cm.blob, 0, 0x5a)
    shared = charmap.get()
    assert_raises(TypeError, store, shared.starts, 0, 0x41)
    assert_raises(TypeError, store, shared.lengths, 0, 0)
    assert_eq(b'A', shared.lookup(0x41))
    assert_eq(b'e', shared.lookup(0xe9))

def test_default_table():
    cm = charmap.get()
    assert cm is charmap.get()
    assert_eq(b'A', cm.lookup(0x41))
    assert_eq(b'e', cm.lookup(0xe9))
    assert_eq(b'ss', cm.lookup(0xdf))
    assert_eq(b'Zhong', cm.lookup(0x4e2d))
    assert_eq(b'Wen', cm.lookup(0x6587))
    assert_eq(b'?', cm.lookup(0xfffd))
    assert cm.lookup(0xf0000) is None
    assert cm.lookup(0x10ffff) is None
    assert len(cm) > 10000
    for cp, value in cm.entries():
        assert value.isascii(), hex(cp)

def test_default_table_matches_generator():
    cm = charmap.get()
    for cp, value in charmap_gen.generate_entries():
        if cp >= 0x3000:
            break
        assert_eq(value, cm.lookup(cp))

def test_default_table_snapshot():
    cm = charmap.get()
    loaded = charmap.Charmap.loads(cm.dumps())
    for cp in (0x41, 0xe9, 0x416, 0x4e2d, 0xac00, 0xfffd, 0x1d400):
        assert_eq(cm.lookup(cp), loaded.lookup(cp))

def test_concurrent_get():
    results = []
    def worker():
        results.append(charmap.get())
    threads = [threading.Thread(target=worker) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert_eq(8, len(results))
    assert all(cm is results[0] for cm in results)
