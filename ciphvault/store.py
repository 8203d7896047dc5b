#  _  __
# | |/ /___ ___ _ __  ___ _ _ ®
# | ' </ -_) -_) '_ \/ -_) '_|
# |_|\_\___\___| .__/\___|_|
#              |_|
#
# CiphVault
# Contact: ops@keepersecurity.com
#

import logging
from typing import Optional, Dict, List, Iterable, Iterator, Tuple, Mapping, Any, Union

from .record import Record

RecordFields = Union[Record, Mapping[str, Any]]


class SortDescriptor:
    """Orders records by the plain text of one field, ignoring case. Records without the field come first."""

    def __init__(self, key, ascending=True):    # type: (str, bool) -> None
        self.key = key
        self.ascending = ascending

    def sort_key(self, record):    # type: (Optional[Record]) -> Tuple[int, str]
        text = record.text(self.key) if record is not None else None
        if text is None:
            return 0, ''
        return 1, text.casefold()

    def sorted(self, ids, items):    # type: (Iterable[int], Dict[int, Record]) -> List[int]
        # sorted() is stable for reverse=True as well
        return sorted(ids, key=lambda x: self.sort_key(items.get(x)), reverse=not self.ascending)

    def __eq__(self, other):
        if isinstance(other, SortDescriptor):
            return self.key == other.key and self.ascending == other.ascending
        return NotImplemented

    def __repr__(self):
        return f'SortDescriptor({self.key!r}, ascending={self.ascending})'


class RecordStore:
    """Records of an open document keyed by id, plus the filtered and sorted list of ids on display.

    Ids are never reused. The visible list only holds existing ids; it is rebuilt by `filter`,
    `set_all_visible` and `refresh`, and reordered by `sort`. Adding or changing records does not
    touch it: call `refresh` to re-apply the active search.
    """

    def __init__(self, records=None, sort_descriptor=None):
        # type: (Optional[Iterable[RecordFields]], Optional[SortDescriptor]) -> None
        self._items = {}          # type: Dict[int, Record]
        self._next_id = 0
        self._visible_ids = []    # type: List[int]
        self.sort_descriptor = sort_descriptor
        self.search_text = ''
        self.search_key = None    # type: Optional[str]
        if records is not None:
            self.set_items(records)

    def set_items(self, records):    # type: (Iterable[RecordFields]) -> None
        self._items = {i: Record.load(x) for i, x in enumerate(records)}
        self._next_id = len(self._items)
        self.set_all_visible()

    @property
    def next_id(self):    # type: () -> int
        return self._next_id

    @property
    def number_of_items(self):    # type: () -> int
        return len(self._items)

    @property
    def number_of_visible_items(self):    # type: () -> int
        return len(self._visible_ids)

    @property
    def visible_ids(self):    # type: () -> Tuple[int, ...]
        return tuple(self._visible_ids)

    def items(self):    # type: () -> Iterator[Tuple[int, Record]]
        for record_id in sorted(self._items):
            yield record_id, self._items[record_id]

    def records(self):    # type: () -> List[Record]
        return [x for _, x in self.items()]

    def new_item(self, fields):    # type: (RecordFields) -> int
        record_id = self._next_id
        self._items[record_id] = Record.load(fields)
        self._next_id += 1
        return record_id

    def item(self, record_id):    # type: (int) -> Optional[Record]
        return self._items.get(record_id)

    def update_item(self, record_id, fields):    # type: (int, RecordFields) -> bool
        """Replaces the full field mapping of an existing record"""
        record = self._items.get(record_id)
        if record is None:
            logging.debug('Update: record id %d not found', record_id)
            return False
        new_record = Record.load(fields)
        record.fields = new_record.fields
        record.extra = new_record.extra
        return True

    def restore_item(self, record_id, fields):    # type: (int, RecordFields) -> bool
        """Puts a deleted record back under its previous id"""
        if record_id < 0:
            logging.warning('Restore: invalid record id %d', record_id)
            return False
        self._items[record_id] = Record.load(fields)
        if record_id >= self._next_id:
            self._next_id = record_id + 1
        return True

    def delete(self, record_id):    # type: (int) -> None
        if self._items.pop(record_id, None) is None:
            return
        if record_id in self._visible_ids:
            self._visible_ids.remove(record_id)

    def delete_many(self, record_ids):    # type: (Iterable[int]) -> None
        for record_id in record_ids:
            self.delete(record_id)

    def set_all_visible(self):
        self.search_text = ''
        self._visible_ids = sorted(self._items)
        self.sort()

    def filter(self, search_text, key=None):    # type: (str, Optional[str]) -> None
        self.search_text = search_text or ''
        self.search_key = key
        if not self.search_text:
            self._visible_ids = sorted(self._items)
        else:
            self._visible_ids = [record_id for record_id in sorted(self._items)
                                 if self._items[record_id].contains(self.search_text, key)]
        self.sort()

    def refresh(self):
        self.filter(self.search_text, self.search_key)

    def sort(self, descriptor=None):    # type: (Optional[SortDescriptor]) -> None
        if descriptor is not None:
            self.sort_descriptor = descriptor
        if self.sort_descriptor is not None:
            self._visible_ids = self.sort_descriptor.sorted(self._visible_ids, self._items)

    def id_from_visible_index(self, index):    # type: (int) -> Optional[int]
        if 0 <= index < len(self._visible_ids):
            return self._visible_ids[index]

    def visible_item(self, index):    # type: (int) -> Optional[Record]
        record_id = self.id_from_visible_index(index)
        if record_id is not None:
            return self._items.get(record_id)

    def visible_index(self, record_id):    # type: (int) -> Optional[int]
        try:
            return self._visible_ids.index(record_id)
        except ValueError:
            return None
