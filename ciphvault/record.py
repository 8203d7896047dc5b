#  _  __
# | |/ /___ ___ _ __  ___ _ _ ®
# | ' </ -_) -_) '_ \/ -_) '_|
# |_|\_\___\___| .__/\___|_|
#              |_|
#
# CiphVault
# Contact: ops@keepersecurity.com
#

import collections
import collections.abc
from typing import Optional, Union, Dict, Iterator, Tuple, Mapping, Any

from . import richtext

FieldValue = Union[str, bytes]

# Unsaved record in an editor; never stored
NEW_RECORD_ID = -1

FIELD_TYPES = collections.OrderedDict([
    ('name', str),
    ('account', str),
    ('password', str),
    ('url', str),
    ('category', str),
    ('notes', bytes),
])
FIELDS = tuple(FIELD_TYPES.keys())
TEXT_FIELDS = tuple(k for k, t in FIELD_TYPES.items() if t is str)


def field_by_index(index):    # type: (int) -> Optional[str]
    if 0 <= index < len(FIELDS):
        return FIELDS[index]


class Record:
    """Password entry. Known fields are typed: text fields hold str, notes hold RTF/RTFD bytes.
    Anything else found in a file is kept in `extra` and written back unchanged."""

    def __init__(self, name=None, account=None, password=None, url=None, category=None, notes=None, extra=None):
        self.fields = collections.OrderedDict()    # type: Dict[str, FieldValue]
        self.extra = collections.OrderedDict()     # type: Dict[str, FieldValue]
        for key, value in (('name', name), ('account', account), ('password', password), ('url', url),
                           ('category', category), ('notes', notes)):
            if value is not None:
                self[key] = value
        if extra:
            for key, value in extra.items():
                self[key] = value

    @staticmethod
    def load(data):    # type: (Union['Record', Mapping[str, Any]]) -> 'Record'
        if isinstance(data, Record):
            return data.copy()
        record = Record()
        for key, value in data.items():
            record[key] = value
        return record

    def copy(self):    # type: () -> 'Record'
        record = Record()
        record.fields.update(self.fields)
        record.extra.update(self.extra)
        return record

    def __setitem__(self, key, value):    # type: (str, FieldValue) -> None
        if not isinstance(key, str):
            raise TypeError(f'Record field name should be a string: {key!r}')
        if not isinstance(value, (str, bytes)):
            raise TypeError(f'Record field "{key}" should be text or binary data')
        self.fields.pop(key, None)
        self.extra.pop(key, None)
        if FIELD_TYPES.get(key) is type(value):
            self.fields[key] = value
        else:
            self.extra[key] = value

    def __getitem__(self, key):    # type: (str) -> FieldValue
        if key in self.fields:
            return self.fields[key]
        return self.extra[key]

    def __delitem__(self, key):
        if key in self.fields:
            del self.fields[key]
        else:
            del self.extra[key]

    def __contains__(self, key):
        return key in self.fields or key in self.extra

    def __len__(self):
        return len(self.fields) + len(self.extra)

    def __iter__(self):
        return iter(self.keys())

    def get(self, key, default=None):
        if key in self:
            return self[key]
        return default

    def keys(self):    # type: () -> Iterator[str]
        for key in FIELDS:
            if key in self.fields:
                yield key
        yield from self.extra.keys()

    def items(self):    # type: () -> Iterator[Tuple[str, FieldValue]]
        for key in self.keys():
            yield key, self[key]

    def to_dict(self):    # type: () -> Dict[str, FieldValue]
        return collections.OrderedDict(self.items())

    def text(self, key):    # type: (str) -> Optional[str]
        """Field value as plain text. Binary values go through rich text extraction."""
        value = self.get(key)
        if isinstance(value, str):
            return value
        if isinstance(value, bytes):
            return richtext.extract_text(value)

    def contains(self, search_text, key=None):    # type: (str, Optional[str]) -> bool
        needle = search_text.casefold()
        keys = [key] if key else list(self.keys())
        for k in keys:
            value = self.text(k)
            if value is not None and needle in value.casefold():
                return True
        return False

    def __eq__(self, other):
        if isinstance(other, (Record, collections.abc.Mapping)):
            return dict(self.items()) == dict(other.items())
        return NotImplemented

    def __repr__(self):
        shown = ', '.join(f'{k}={"***" if k == "password" else v!r}' for k, v in self.items())
        return f'Record({shown})'
