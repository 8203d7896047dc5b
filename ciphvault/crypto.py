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

import logging
import secrets
from typing import Optional

from Cryptodome.Cipher import Blowfish
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.hashes import Hash, SHA1
from cryptography.hazmat.primitives.padding import PKCS7

from .error import CryptoError, ResourceError

_CRYPTO_BACKEND = default_backend()

BLOCK_SIZE = Blowfish.block_size
KEY_SIZE = 40
_BOM_UTF16_BE = b'\xfe\xff'


def pad_data(data):    # type: (bytes) -> bytes
    padder = PKCS7(BLOCK_SIZE*8).padder()
    return padder.update(data) + padder.finalize()


def unpad_data(data):     # type: (bytes) -> bytes
    unpadder = PKCS7(BLOCK_SIZE*8).unpadder()
    return unpadder.update(data) + unpadder.finalize()


def get_random_bytes(length):    # type: (int) -> bytes
    try:
        return secrets.token_bytes(length)
    except (OSError, NotImplementedError) as e:
        raise ResourceError(f'Secure random source is not available: {e}')


def sha1(data):    # type: (bytes) -> bytes
    digest = Hash(SHA1(), backend=_CRYPTO_BACKEND)
    digest.update(data)
    return digest.finalize()


def derive_key(passphrase):    # type: (str) -> bytes
    """Key = SHA1(first half) || SHA1(second half) of BOM + UTF-16BE passphrase.

    No salt and no iterations: existing files were written with this key.
    """
    data = _BOM_UTF16_BE + passphrase.encode('utf-16-be')
    half = len(data) // 2
    return sha1(data[:half]) + sha1(data[half:])


def _blowfish(key, iv):
    if iv is None:
        iv = bytes(BLOCK_SIZE)
    if len(iv) != BLOCK_SIZE:
        raise CryptoError(f'Invalid IV length: {len(iv)}')
    if not (Blowfish.key_size[0] <= len(key) <= Blowfish.key_size[-1]):
        raise CryptoError(f'Invalid key length: {len(key)}')
    return Blowfish.new(key, Blowfish.MODE_CBC, iv=iv)


def encrypt_blowfish_cbc(data, key, iv=None):    # type: (bytes, bytes, Optional[bytes]) -> bytes
    cipher = _blowfish(key, iv)
    return cipher.encrypt(pad_data(data))


def decrypt_blowfish_cbc(data, key, iv=None):    # type: (bytes, bytes, Optional[bytes]) -> bytes
    cipher = _blowfish(key, iv)
    if len(data) == 0 or len(data) % BLOCK_SIZE != 0:
        raise CryptoError(f'Ciphertext length {len(data)} is not a multiple of the block size')
    decrypted_data = cipher.decrypt(data)
    try:
        return unpad_data(decrypted_data)
    except ValueError:
        logging.debug('Blowfish decrypt: invalid padding')
        raise CryptoError('Invalid padding')
