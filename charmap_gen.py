# coding=utf-8

"""
Character mapping generator.

This module produces the mapping entries used to translate unicode
characters into ASCII. The third party unidecode package
(https://pypi.org/project/Unidecode) provides the data: it stores one tuple
of 256 replacement strings per section of the codepoint space, in modules
named unidecode.x000 to unidecode.xeff. Sections are read one at a time, the
same way unidecode does it, instead of calling unidecode() once per
codepoint.

The raw strings are cleaned before use:
  - None and the '[?]' placeholder mean "no mapping".
  - Trailing spaces are removed, unless the string is only whitespace. This
    keeps CJK syllables glued together: '中文' gives 'ZhongWen'.
  - Any non-ASCII character left is dropped.

Here are a few examples of unicode characters and their ASCII equivalents
(note that some unicode characters map to more than one ASCII character):
  - é: e
  - ß: ss
  - °: deg
  - 中: Zhong

Copyright (c) 2013, François Jeannotte.
"""

import importlib
import itertools
import pkgutil
import string

import unidecode

# Last section (codepoint >> 8) with data. unidecode has nothing for the
# supplementary private use planes.
LAST_SECTION = 0xeff

# Surrogate sections, never valid codepoints
SURROGATE_SECTIONS = range(0xd8, 0xe0)

# Entries replacing the dataset's own, applied last
OVERRIDES = {
    0xfffd: '?', # REPLACEMENT CHARACTER, emitted for malformed UTF-8
}

UNKNOWN_PLACEHOLDER = '[?]'

def clean_entry(s):
    """
    Clean one raw unidecode string. Returns None if the codepoint has no
    mapping.

    >>> clean_entry('Zhong ')
    'Zhong'
    >>> clean_entry(' ')
    ' '
    >>> clean_entry('')
    ''
    >>> clean_entry('[?]') is None
    True
    >>> clean_entry(None) is None
    True
    """
    if s is None or s == UNKNOWN_PLACEHOLDER:
        return None
    if s.strip():
        s = s.rstrip(' ')
    return ''.join(c for c in s if ord(c) < 0x80)

def available_sections():
    """
    Return the set of sections for which unidecode ships a data module.

    >>> 0x00 in available_sections() and 0x4e in available_sections()
    True
    """
    sections = set()
    for mod in pkgutil.iter_modules(unidecode.__path__):
        name = mod.name
        if len(name) == 4 and name[0] == 'x':
            try:
                sections.add(int(name[1:], 16))
            except ValueError:
                continue
    return sections

def load_section(section):
    """Return the tuple of raw strings for a section."""
    mod = importlib.import_module('unidecode.x{:03x}'.format(section))
    return mod.data

def generate_entries():
    """
    Generate (codepoint, bytes) pairs in increasing codepoint order, for every
    codepoint that has a mapping.

    >>> entries = dict(itertools.islice(generate_entries(), 0, 300))
    >>> entries[0x41], entries[0xe9], entries[0xdf]
    (b'A', b'e', b'ss')
    """
    sections          = available_sections()
    override_sections = set(cp >> 8 for cp in OVERRIDES)

    # ASCII maps to itself
    for cp in range(0x80):
        yield cp, bytes([cp])

    for section in range(LAST_SECTION + 1):
        if section in SURROGATE_SECTIONS:
            continue
        if section in sections:
            data = load_section(section)
        elif section in override_sections:
            data = None
        else:
            continue
        base = section << 8
        for position in range(0x80 if section == 0 else 0, 0x100):
            cp = base + position
            if cp in OVERRIDES:
                s = OVERRIDES[cp]
            elif data is not None and position < len(data):
                s = clean_entry(data[position])
            else:
                s = None
            if s is not None:
                yield cp, s.encode('ascii')

def create_translate_table():
    """
    Create the translation table used with the bytes.translate method. This
    will replace all uppercase chars with their lowercase equivalent, and
    numbers and "_" are passed-through as is. All other chars are replaced
    with a space.

    >>> b'Hello, World_2!'.translate(create_translate_table())
    b'hello  world_2 '
    """

    # Create the table, initially containing only spaces
    translate_table = bytearray(256*b' ')

    # All lowercase letters, digits, and the underscore character go through
    # unmodified (they map to themselves)
    for c in itertools.chain(string.ascii_lowercase, string.digits):
        translate_table[ord(c)] = ord(c)
    translate_table[ord('_')] = ord('_')

    # All uppercase letters map to their lowercase counterpart
    for c_upper, c_lower in zip(string.ascii_uppercase,
                                string.ascii_lowercase):
        translate_table[ord(c_upper)] = ord(c_lower)

    # Return the table in the proper format for using with bytes.translate
    return bytes(translate_table)
