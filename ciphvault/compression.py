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
import zlib

from .error import InternalInvariantViolation

SIZE_TRAILER_LENGTH = 4


def is_compressed(data):    # type: (bytes) -> bool
    """zlib header check: CM == 8, CINFO high bit clear, FCHECK makes the first two bytes divisible by 31"""
    if len(data) < SIZE_TRAILER_LENGTH:
        return False
    cmf = data[0]
    fcheck = int.from_bytes(data[:2], byteorder='big', signed=False)
    return cmf & 0x0f == 8 and cmf & 0x80 == 0 and fcheck % 31 == 0


def compress(data, level=zlib.Z_DEFAULT_COMPRESSION):    # type: (bytes, int) -> bytes
    compressed_data = zlib.compress(data, level)
    return compressed_data + len(data).to_bytes(SIZE_TRAILER_LENGTH, byteorder='big', signed=False)


def decompress(data):    # type: (bytes) -> bytes
    if not is_compressed(data):
        logging.debug('Decompress: buffer is not zlib compressed, %d bytes passed through', len(data))
        return data

    uncompressed_size = int.from_bytes(data[-SIZE_TRAILER_LENGTH:], byteorder='big', signed=False)
    if uncompressed_size == 0:
        return b''

    # output is capped one byte past the trailer size
    decompressor = zlib.decompressobj()
    try:
        uncompressed_data = decompressor.decompress(data[:-SIZE_TRAILER_LENGTH], uncompressed_size + 1)
    except zlib.error as e:
        raise InternalInvariantViolation(f'zlib decompression failed: {e}')
    if len(uncompressed_data) != uncompressed_size:
        raise InternalInvariantViolation(
            f'Decompressed size {len(uncompressed_data)} does not match expected size {uncompressed_size}')
    return uncompressed_data
