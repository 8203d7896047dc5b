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

import hmac
import logging
from typing import Optional, List, Tuple, Iterable

from . import crypto, richtext
from .container import open_container, save_container, default_sort_descriptor
from .error import OpenError
from .params import VaultParams
from .record import Record
from .store import RecordStore, RecordFields


class Document:
    """Open password document: the record store plus the key it is saved with.

    A document read from disk starts locked: `set_encrypted_data` keeps the file contents until
    `unlock` succeeds. A failed unlock keeps them so the passphrase can be asked again.
    """

    def __init__(self, params=None):    # type: (Optional[VaultParams]) -> None
        self.params = params or VaultParams()
        richtext.set_cache_size(self.params.notes_cache_size)
        self.store = RecordStore(sort_descriptor=default_sort_descriptor(self.params))
        self.key = None                 # type: Optional[bytes]
        self.encrypted_data = None      # type: Optional[bytes]
        self.is_modified = False

    @property
    def is_locked(self):    # type: () -> bool
        return self.encrypted_data is not None

    def set_encrypted_data(self, data):    # type: (bytes) -> None
        self.encrypted_data = bytes(data)

    def unlock(self, passphrase):    # type: (str) -> bool
        return self.unlock_with_key(crypto.derive_key(passphrase))

    def unlock_with_key(self, key):    # type: (bytes) -> bool
        if self.encrypted_data is None:
            logging.warning('Unlock: document has no encrypted data')
            return False
        try:
            self.store = open_container(self.encrypted_data, key, self.params)
        except OpenError:
            return False
        self.encrypted_data = None
        self.key = key
        self.is_modified = False
        return True

    def choose_passphrase(self, passphrase):    # type: (str) -> bool
        """Sets the key used by the next save. Returns True if it differs from the current key."""
        new_key = crypto.derive_key(passphrase)
        if self.key is not None and hmac.compare_digest(new_key, self.key):
            return False
        self.key = new_key
        self.is_modified = True
        return True

    def matches_passphrase(self, passphrase):    # type: (str) -> bool
        if self.key is None:
            return False
        return hmac.compare_digest(crypto.derive_key(passphrase), self.key)

    @property
    def needs_passphrase(self):    # type: () -> bool
        return self.key is None

    def data(self):    # type: () -> bytes
        """File contents to write. Raises SaveError if no passphrase was chosen yet."""
        data = save_container(self.store, self.key, self.params)
        self.is_modified = False
        return data

    def add_entry(self, fields):    # type: (RecordFields) -> int
        record_id = self.store.new_item(fields)
        self._contents_changed()
        return record_id

    def modify_entry(self, record_id, fields):    # type: (int, RecordFields) -> Optional[Record]
        """Returns a copy of the previous record, None if there is no record with this id"""
        record = self.store.item(record_id)
        if record is None:
            return None
        previous = record.copy()
        self.store.update_item(record_id, fields)
        self._contents_changed()
        return previous

    def delete_entries(self, record_ids):    # type: (Iterable[int]) -> List[Tuple[int, Record]]
        """Returns the deleted (id, record) pairs so they can be restored with `restore_entries`"""
        deleted = []
        for record_id in record_ids:
            record = self.store.item(record_id)
            if record is not None:
                self.store.delete(record_id)
                deleted.append((record_id, record))
        if deleted:
            self._contents_changed()
        return deleted

    def restore_entries(self, entries):    # type: (Iterable[Tuple[int, RecordFields]]) -> None
        restored = [self.store.restore_item(record_id, fields) for record_id, fields in entries]
        if any(restored):
            self._contents_changed()

    def _contents_changed(self):
        self.is_modified = True
        self.store.refresh()

    def close(self):
        self.key = None
        self.encrypted_data = None
        self.store = RecordStore(sort_descriptor=default_sort_descriptor(self.params))
        self.is_modified = False
