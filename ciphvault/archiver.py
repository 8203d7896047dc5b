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

import collections
import logging
from typing import Any, List, Iterable, Dict

from . import typedstream
from .error import FormatError
from .record import Record

_INTEGER_TYPES = typedstream.SIGNED_INTEGER_TYPES + typedstream.UNSIGNED_INTEGER_TYPES

# (class name, version) chains written for each value type, most derived class first
NSSTRING_CLASS = (('NSString', 1), ('NSObject', 0))
NSDATA_CLASS = (('NSData', 0), ('NSObject', 0))
NSARRAY_CLASS = (('NSMutableArray', 0), ('NSArray', 0), ('NSObject', 0))
NSDICTIONARY_CLASS = (('NSMutableDictionary', 0), ('NSDictionary', 0), ('NSObject', 0))


def _is_integer_encoding(encoding):    # type: (bytes) -> bool
    return len(encoding) == 1 and encoding in _INTEGER_TYPES


class Unarchiver:
    """Decodes the object graph of an NSArchiver stream into str, bytes, list and dict values"""

    def __init__(self, data):    # type: (bytes) -> None
        self.stream = typedstream.TypedStreamReader(data)
        self.decoders = {
            'NSString': self._decode_string,
            'NSMutableString': self._decode_string,
            'NSData': self._decode_data,
            'NSMutableData': self._decode_data,
            'NSArray': self._decode_array,
            'NSMutableArray': self._decode_array,
            'NSDictionary': self._decode_dictionary,
            'NSMutableDictionary': self._decode_dictionary,
        }

    def decode_root_object(self):    # type: () -> Any
        value = self.decode_value_of_type(b'@')
        if not self.stream.at_end:
            raise FormatError('Unexpected data after root object', self.stream.pos)
        return value

    def decode_value_of_type(self, expected):    # type: (bytes) -> Any
        encoding = self.stream.read_type_encoding()
        if encoding != expected and not (_is_integer_encoding(encoding) and _is_integer_encoding(expected)):
            raise FormatError(f'Type encoding {encoding!r} found, {expected!r} expected', self.stream.pos)
        return self.stream.read_value(encoding, self.decode_object)

    def decode_object(self, head):    # type: (int) -> Any
        if head == typedstream.TAG_NIL:
            return None
        if head != typedstream.TAG_NEW:
            return self.stream.resolve_object(self.stream.read_reference_number(head))

        index = self.stream.reserve_object()
        cls = self.stream.read_class()
        if cls is None:
            raise FormatError('Object without class', self.stream.pos)
        decoder = None
        for c in cls.chain():
            decoder = self.decoders.get(c.name)
            if decoder:
                break
        if decoder is None:
            raise FormatError(f'Unsupported archived class: {cls.name}', self.stream.pos)
        value = decoder(c.version)
        self.stream.read_end_of_object()
        self.stream.shared_objects[index] = value
        return value

    def _decode_count(self):    # type: () -> int
        count = self.decode_value_of_type(b'i')
        if count < 0:
            raise FormatError(f'Element count cannot be negative: {count}', self.stream.pos)
        return count

    def _decode_string(self, version):    # type: (int) -> str
        if version != 1:
            raise FormatError(f'Unsupported NSString version: {version}', self.stream.pos)
        data = self.decode_value_of_type(b'+')
        if data is None:
            raise FormatError('NSString without content', self.stream.pos)
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError:
            raise FormatError('NSString content is not valid UTF-8', self.stream.pos)

    def _decode_data(self, version):    # type: (int) -> bytes
        if version != 0:
            raise FormatError(f'Unsupported NSData version: {version}', self.stream.pos)
        length = self._decode_count()
        encoding = self.stream.read_type_encoding()
        if encoding not in (f'[{length}c]'.encode(), f'[{length}C]'.encode()):
            raise FormatError(f'Type encoding {encoding!r} found, byte array of {length} expected', self.stream.pos)
        return self.stream.read_value(encoding, self.decode_object)

    def _decode_array(self, version):    # type: (int) -> list
        if version != 0:
            raise FormatError(f'Unsupported NSArray version: {version}', self.stream.pos)
        count = self._decode_count()
        return [self.decode_value_of_type(b'@') for _ in range(count)]

    def _decode_dictionary(self, version):    # type: (int) -> dict
        if version != 0:
            raise FormatError(f'Unsupported NSDictionary version: {version}', self.stream.pos)
        count = self._decode_count()
        result = collections.OrderedDict()
        for _ in range(count):
            key = self.decode_value_of_type(b'@')
            value = self.decode_value_of_type(b'@')
            if not isinstance(key, str):
                raise FormatError('Dictionary key should be a string', self.stream.pos)
            result[key] = value
        return result


class Archiver:
    """Encodes str, bytes, list and dict values the way NSArchiver writes their Foundation counterparts.
    Equal strings are written once and referenced after that."""

    def __init__(self):
        self.stream = typedstream.TypedStreamWriter()
        self.string_refs = {}    # type: Dict[str, int]

    def getvalue(self):    # type: () -> bytes
        return self.stream.getvalue()

    def encode_root_object(self, value):
        self.encode_object(value)

    def encode_object(self, value):
        self.stream.write_type_encoding(b'@')
        self._encode_object(value)

    def encode_integer(self, value):    # type: (int) -> None
        self.stream.write_type_encoding(b'i')
        self.stream.write_integer(value)

    def _encode_object(self, value):
        if value is None:
            self.stream.write_head(typedstream.TAG_NIL)
        elif isinstance(value, str):
            ref = self.string_refs.get(value)
            if ref is not None:
                self.stream.write_reference_number(ref)
                return
            self.string_refs[value] = self.stream.new_object()
            self.stream.write_class(NSSTRING_CLASS)
            self.stream.write_type_encoding(b'+')
            self.stream.write_value(b'+', value.encode('utf-8'))
            self.stream.end_object()
        elif isinstance(value, (bytes, bytearray)):
            self.stream.new_object()
            self.stream.write_class(NSDATA_CLASS)
            self.encode_integer(len(value))
            encoding = f'[{len(value)}c]'.encode()
            self.stream.write_type_encoding(encoding)
            self.stream.write_value(encoding, bytes(value))
            self.stream.end_object()
        elif isinstance(value, (list, tuple)):
            self.stream.new_object()
            self.stream.write_class(NSARRAY_CLASS)
            self.encode_integer(len(value))
            for element in value:
                self.encode_object(element)
            self.stream.end_object()
        elif isinstance(value, (dict, Record)):
            self.stream.new_object()
            self.stream.write_class(NSDICTIONARY_CLASS)
            self.encode_integer(len(value))
            for key, element in value.items():
                self.encode_object(key)
                self.encode_object(element)
            self.stream.end_object()
        else:
            raise TypeError(f'Cannot archive value of type {type(value).__name__}')


def encode_records(records):    # type: (Iterable[Record]) -> bytes
    archiver = Archiver()
    archiver.encode_root_object([Record.load(x) for x in records])
    return archiver.getvalue()


def decode_records(data):    # type: (bytes) -> List[Record]
    try:
        root = Unarchiver(data).decode_root_object()
    except RecursionError:
        raise FormatError('Archive objects are nested too deeply')
    if not isinstance(root, list):
        raise FormatError('Archive root object should be an array')
    records = []
    for entry in root:
        if not isinstance(entry, dict):
            raise FormatError('Archived entry should be a dictionary')
        try:
            records.append(Record.load(entry))
        except TypeError as e:
            raise FormatError(f'Unsupported entry value: {e}')
    logging.debug('Archive: decoded %d entries', len(records))
    return records
