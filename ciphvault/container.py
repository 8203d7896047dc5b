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

"""Encrypted container file: 8 byte IV followed by Blowfish-CBC ciphertext of the
(optionally zlib compressed) NSArchiver record array."""

import logging
from typing import Optional, Tuple

from . import archiver, compression, crypto
from .error import CryptoError, FormatError, InternalInvariantViolation, OpenError, ResourceError, SaveError
from .params import VaultParams
from .store import RecordStore, SortDescriptor

IV_SIZE = crypto.BLOCK_SIZE


def split_container(data):    # type: (bytes) -> Tuple[bytes, bytes]
    if len(data) < IV_SIZE:
        raise CryptoError('Container is shorter than the initialization vector')
    return data[:IV_SIZE], data[IV_SIZE:]


def default_sort_descriptor(params=None):    # type: (Optional[VaultParams]) -> SortDescriptor
    params = params or VaultParams()
    return SortDescriptor(params.default_sort_key, params.default_sort_ascending)


def open_container(data, key, params=None):    # type: (bytes, bytes, Optional[VaultParams]) -> RecordStore
    """Decrypts a container. Wrong passphrase and damaged file both raise the same OpenError."""
    try:
        iv, encrypted_data = split_container(data)
        compressed_data = crypto.decrypt_blowfish_cbc(encrypted_data, key, iv)
        archive_data = compression.decompress(compressed_data)
        records = archiver.decode_records(archive_data)
    except CryptoError as e:
        logging.debug('Open container: decryption failed: %s', e)
        raise OpenError() from None
    except InternalInvariantViolation as e:
        # decrypted data is unauthenticated: a wrong key can get past the padding and zlib header checks
        logging.debug('Open container: envelope cannot be decompressed: %s', e)
        raise OpenError() from None
    except FormatError as e:
        logging.debug('Open container: archive cannot be decoded: %s', e)
        raise OpenError() from None

    store = RecordStore(sort_descriptor=default_sort_descriptor(params))
    store.set_items(records)
    logging.debug('Open container: %d records loaded', store.number_of_items)
    return store


def save_container(store, key, params=None):    # type: (RecordStore, Optional[bytes], Optional[VaultParams]) -> bytes
    if not key:
        raise SaveError('Passphrase is not set')
    params = params or VaultParams()
    archive_data = archiver.encode_records(store.records())
    compressed_data = compression.compress(archive_data, params.compression_level)
    try:
        iv = crypto.get_random_bytes(IV_SIZE)
        encrypted_data = crypto.encrypt_blowfish_cbc(compressed_data, key, iv)
    except (CryptoError, ResourceError) as e:
        raise SaveError(f'Cannot encrypt file: {e}')
    logging.debug('Save container: %d records, %d bytes', store.number_of_items, IV_SIZE + len(encrypted_data))
    return iv + encrypted_data
