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

import functools
import logging
from typing import Optional

from striprtf.striprtf import rtf_to_text

RTF_SIGNATURE = b'{\\rtf'
RTFD_SIGNATURE = b'rtfd'


def find_rtf_document(data, start=0):    # type: (bytes, int) -> Optional[bytes]
    """Returns the first brace-balanced RTF group starting at or after `start`"""
    pos = data.find(RTF_SIGNATURE, start)
    if pos < 0:
        return None
    depth = 0
    i = pos
    while i < len(data):
        ch = data[i]
        if ch == 0x5c:    # backslash: skip escaped character
            i += 2
            continue
        if ch == 0x7b:
            depth += 1
        elif ch == 0x7d:
            depth -= 1
            if depth == 0:
                return data[pos:i+1]
        i += 1
    return None


def _extract_text(data):    # type: (bytes) -> Optional[str]
    if data.startswith(RTFD_SIGNATURE):
        # flattened RTFD: the text lives in the embedded TXT.rtf entry
        document = find_rtf_document(data, len(RTFD_SIGNATURE))
    elif data.lstrip().startswith(RTF_SIGNATURE):
        document = find_rtf_document(data)
    else:
        return None
    if document is None:
        logging.debug('Rich text: unbalanced RTF document')
        return None
    try:
        return rtf_to_text(document.decode('latin-1'))
    except Exception as e:
        logging.debug('Rich text extraction failed: %s', e)
        return None


_cached_extract_text = functools.lru_cache(maxsize=256)(_extract_text)


def set_cache_size(size):    # type: (int) -> None
    """Resizes the extraction cache shared by all documents. Same size keeps the cached entries."""
    global _cached_extract_text
    if _cached_extract_text.cache_info().maxsize == size:
        return
    _cached_extract_text = functools.lru_cache(maxsize=size)(_extract_text)


def extract_text(data):    # type: (bytes) -> Optional[str]
    """Plain text of an RTF or RTFD blob, None if the blob cannot be read"""
    if not data:
        return None
    return _cached_extract_text(bytes(data))
