#  _  __
# | |/ /___ ___ _ __  ___ _ _ ®
# | ' </ -_) -_) '_ \/ -_) '_|
# |_|\_\___\___| .__/\___|_|
#              |_|
#
# CiphVault
# Copyright 2021 Keeper Security Inc.
# Contact: ops@keepersecurity.com
#

"""Reader and writer for the NeXT/Apple "typedstream" format produced by NSArchiver.

Stream layout::

    header      integer streamer version (4), unshared string signature, integer system version
    groups      shared string type encoding, followed by one value per type in the encoding

Integers use a compact tagged encoding: values -110..127 take one byte, otherwise a tag byte
announces a 2 or 4 byte integer or a floating point value. Type encodings and class names live in
the shared string table; objects, classes and C strings live in the shared object table. Both are
referenced by index after the first occurrence.

The signature selects the byte order of multi-byte values: ``streamtyped`` is little-endian,
``typedstream`` is big-endian.
"""

import logging
import struct
from typing import Optional, List, Dict, Callable, Any, Sequence, Tuple

from .error import FormatError

TAG_INTEGER_2 = -127
TAG_INTEGER_4 = -126
TAG_FLOATING_POINT = -125
TAG_NEW = -124
TAG_NIL = -123
TAG_END_OF_OBJECT = -122
FIRST_TAG = -128
LAST_TAG = -111
FIRST_REFERENCE_NUMBER = LAST_TAG + 1

STREAMER_VERSION = 4
SIGNATURE_LITTLE_ENDIAN = b'streamtyped'
SIGNATURE_BIG_ENDIAN = b'typedstream'
SYSTEM_VERSION = 1000

SIGNED_INTEGER_TYPES = b'csilq'
UNSIGNED_INTEGER_TYPES = b'CSILQ'

_UNRESOLVED = object()


class ClassInfo:
    def __init__(self, name, version):
        self.name = name            # type: str
        self.version = version      # type: int
        self.superclass = None      # type: Optional[ClassInfo]

    def chain(self):
        cls = self
        while cls is not None:
            yield cls
            cls = cls.superclass

    def __repr__(self):
        return f'ClassInfo({self.name!r}, {self.version})'


def parse_array_encoding(encoding):    # type: (bytes) -> Tuple[int, bytes]
    body = encoding[1:-1]
    digits = 0
    while digits < len(body) and body[digits:digits+1].isdigit():
        digits += 1
    if digits == 0 or digits == len(body):
        raise FormatError(f'Invalid array type encoding: {encoding!r}')
    return int(body[:digits]), body[digits:]


class TypedStreamReader:
    def __init__(self, data):    # type: (bytes) -> None
        self.data = bytes(data)
        self.pos = 0
        self.byte_order = 'little'
        self.streamer_version = 0
        self.system_version = 0
        self.shared_strings = []    # type: List[bytes]
        self.shared_objects = []    # type: List[Any]
        self._read_header()

    def _read_header(self):
        self.streamer_version = self.read_integer()
        if self.streamer_version != STREAMER_VERSION:
            raise FormatError(f'Unsupported typedstream version: {self.streamer_version}', 0)
        signature = self.read_unshared_string()
        if signature == SIGNATURE_LITTLE_ENDIAN:
            self.byte_order = 'little'
        elif signature == SIGNATURE_BIG_ENDIAN:
            self.byte_order = 'big'
        else:
            raise FormatError(f'Invalid typedstream signature: {signature!r}', 1)
        self.system_version = self.read_integer()
        logging.debug('typedstream: version %d, %s-endian, system version %d',
                      self.streamer_version, self.byte_order, self.system_version)

    @property
    def at_end(self):
        return self.pos >= len(self.data)

    def _read(self, length):    # type: (int) -> bytes
        if length < 0 or self.pos + length > len(self.data):
            raise FormatError('Unexpected end of archive data', self.pos)
        data = self.data[self.pos:self.pos+length]
        self.pos += length
        return data

    def read_head(self):    # type: () -> int
        return struct.unpack('b', self._read(1))[0]

    def read_integer(self, head=None, signed=True):    # type: (Optional[int], bool) -> int
        if head is None:
            head = self.read_head()
        if head == TAG_INTEGER_2:
            return int.from_bytes(self._read(2), byteorder=self.byte_order, signed=signed)
        if head == TAG_INTEGER_4:
            return int.from_bytes(self._read(4), byteorder=self.byte_order, signed=signed)
        if FIRST_TAG <= head <= LAST_TAG:
            raise FormatError(f'Integer expected, found tag {head}', self.pos - 1)
        return head if signed else head & 0xff

    def read_float(self, size, head=None):    # type: (int, Optional[int]) -> float
        if head is None:
            head = self.read_head()
        if head == TAG_FLOATING_POINT:
            fmt = ('<' if self.byte_order == 'little' else '>') + ('f' if size == 4 else 'd')
            return struct.unpack(fmt, self._read(size))[0]
        return float(self.read_integer(head))

    def read_reference_number(self, head):    # type: (int) -> int
        return self.read_integer(head) - FIRST_REFERENCE_NUMBER

    def read_unshared_string(self, head=None):    # type: (Optional[int]) -> Optional[bytes]
        if head is None:
            head = self.read_head()
        if head == TAG_NIL:
            return None
        length = self.read_integer(head, signed=False)
        return self._read(length)

    def read_shared_string(self, head=None):    # type: (Optional[int]) -> Optional[bytes]
        if head is None:
            head = self.read_head()
        if head == TAG_NIL:
            return None
        if head == TAG_NEW:
            string = self.read_unshared_string()
            if string is None:
                raise FormatError('Shared string cannot be nil', self.pos)
            self.shared_strings.append(string)
            return string
        ref = self.read_reference_number(head)
        if not (0 <= ref < len(self.shared_strings)):
            raise FormatError(f'Invalid shared string reference: {ref}', self.pos)
        return self.shared_strings[ref]

    def read_c_string(self, head=None):    # type: (Optional[int]) -> Optional[bytes]
        if head is None:
            head = self.read_head()
        if head == TAG_NIL:
            return None
        if head == TAG_NEW:
            string = self.read_shared_string()
            self.shared_objects.append(string)
            return string
        value = self.resolve_object(self.read_reference_number(head))
        if not isinstance(value, bytes):
            raise FormatError('Reference is not a C string', self.pos)
        return value

    def read_class(self, head=None):    # type: (Optional[int]) -> Optional[ClassInfo]
        if head is None:
            head = self.read_head()
        if head == TAG_NIL:
            return None
        if head == TAG_NEW:
            name = self.read_shared_string()
            if name is None:
                raise FormatError('Class name cannot be nil', self.pos)
            version = self.read_integer()
            cls = ClassInfo(name.decode('ascii', errors='replace'), version)
            self.shared_objects.append(cls)
            cls.superclass = self.read_class()
            return cls
        value = self.resolve_object(self.read_reference_number(head))
        if not isinstance(value, ClassInfo):
            raise FormatError('Reference is not a class', self.pos)
        return value

    def reserve_object(self):    # type: () -> int
        self.shared_objects.append(_UNRESOLVED)
        return len(self.shared_objects) - 1

    def resolve_object(self, ref):    # type: (int) -> Any
        if not (0 <= ref < len(self.shared_objects)):
            raise FormatError(f'Invalid object reference: {ref}', self.pos)
        value = self.shared_objects[ref]
        if value is _UNRESOLVED:
            raise FormatError(f'Circular object reference: {ref}', self.pos)
        return value

    def read_end_of_object(self):
        head = self.read_head()
        if head != TAG_END_OF_OBJECT:
            raise FormatError(f'End of object expected, found {head}', self.pos - 1)

    def read_type_encoding(self):    # type: () -> bytes
        encoding = self.read_shared_string()
        if not encoding:
            raise FormatError('Type encoding expected', self.pos)
        return encoding

    def read_value(self, encoding, read_object):
        # type: (bytes, Callable[[int], Any]) -> Any
        """Reads one value of a single type encoding. `read_object` is called with the head byte for '@'"""
        if encoding in (b'c', b'C'):
            return struct.unpack('b' if encoding == b'c' else 'B', self._read(1))[0]
        if len(encoding) == 1 and encoding in SIGNED_INTEGER_TYPES:
            return self.read_integer(signed=True)
        if len(encoding) == 1 and encoding in UNSIGNED_INTEGER_TYPES:
            return self.read_integer(signed=False)
        if encoding == b'f':
            return self.read_float(4)
        if encoding == b'd':
            return self.read_float(8)
        if encoding == b'@':
            return read_object(self.read_head())
        if encoding == b'#':
            return self.read_class()
        if encoding == b'*':
            return self.read_c_string()
        if encoding in (b'%', b':'):
            return self.read_shared_string()
        if encoding == b'+':
            return self.read_unshared_string()
        if encoding.startswith(b'['):
            length, element = parse_array_encoding(encoding)
            if element in (b'c', b'C'):
                return self._read(length)
            return [self.read_value(element, read_object) for _ in range(length)]
        raise FormatError(f'Unsupported type encoding: {encoding!r}', self.pos)


class TypedStreamWriter:
    """Writes a little-endian ("streamtyped") stream, the byte order NSArchiver uses on current systems"""

    byte_order = 'little'

    def __init__(self):
        self.buffer = bytearray()
        self.shared_strings = {}    # type: Dict[bytes, int]
        self.shared_object_count = 0
        self.classes = {}    # type: Dict[str, int]
        self._write_header()

    def _write_header(self):
        self.write_integer(STREAMER_VERSION)
        self.write_unshared_string(SIGNATURE_LITTLE_ENDIAN)
        self.write_integer(SYSTEM_VERSION)

    def getvalue(self):    # type: () -> bytes
        return bytes(self.buffer)

    def write_head(self, tag):    # type: (int) -> None
        self.buffer.append(tag & 0xff)

    def write_integer(self, value):    # type: (int) -> None
        if FIRST_REFERENCE_NUMBER <= value <= 127:
            self.buffer.append(value & 0xff)
        elif -0x8000 <= value <= 0x7fff:
            self.write_head(TAG_INTEGER_2)
            self.buffer.extend(value.to_bytes(2, byteorder=self.byte_order, signed=True))
        elif -0x80000000 <= value <= 0x7fffffff:
            self.write_head(TAG_INTEGER_4)
            self.buffer.extend(value.to_bytes(4, byteorder=self.byte_order, signed=True))
        else:
            raise ValueError(f'Integer out of range: {value}')

    def write_reference_number(self, ref):    # type: (int) -> None
        self.write_integer(ref + FIRST_REFERENCE_NUMBER)

    def write_unshared_string(self, value):    # type: (Optional[bytes]) -> None
        if value is None:
            self.write_head(TAG_NIL)
            return
        self.write_integer(len(value))
        self.buffer.extend(value)

    def write_shared_string(self, value):    # type: (Optional[bytes]) -> None
        if value is None:
            self.write_head(TAG_NIL)
            return
        ref = self.shared_strings.get(value)
        if ref is None:
            self.shared_strings[value] = len(self.shared_strings)
            self.write_head(TAG_NEW)
            self.write_unshared_string(value)
        else:
            self.write_reference_number(ref)

    def write_type_encoding(self, encoding):    # type: (bytes) -> None
        self.write_shared_string(encoding)

    def new_object(self):    # type: () -> int
        self.write_head(TAG_NEW)
        ref = self.shared_object_count
        self.shared_object_count += 1
        return ref

    def write_class(self, chain):    # type: (Sequence[Tuple[str, int]]) -> None
        """`chain` lists (class name, version) from the class itself up to the root class"""
        for name, version in chain:
            ref = self.classes.get(name)
            if ref is not None:
                self.write_reference_number(ref)
                return
            self.write_head(TAG_NEW)
            self.classes[name] = self.shared_object_count
            self.shared_object_count += 1
            self.write_shared_string(name.encode('ascii'))
            self.write_integer(version)
        self.write_head(TAG_NIL)

    def end_object(self):
        self.write_head(TAG_END_OF_OBJECT)

    def write_value(self, encoding, value):    # type: (bytes, Any) -> None
        if encoding in (b'c', b'C'):
            self.buffer.extend(struct.pack('b' if encoding == b'c' else 'B', value))
        elif len(encoding) == 1 and encoding in SIGNED_INTEGER_TYPES + UNSIGNED_INTEGER_TYPES:
            self.write_integer(value)
        elif encoding == b'+':
            self.write_unshared_string(value)
        elif encoding.startswith(b'[') and parse_array_encoding(encoding)[1] in (b'c', b'C'):
            length, _ = parse_array_encoding(encoding)
            if len(value) != length:
                raise ValueError(f'Array length {len(value)} does not match type encoding {encoding!r}')
            self.buffer.extend(value)
        else:
            raise ValueError(f'Unsupported type encoding: {encoding!r}')
