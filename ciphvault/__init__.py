# -*- coding: utf-8 -*-
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

__version__ = '1.2'
__logging_format__ = "%(levelname)s: %(message)s by %(module)s.%(funcName)s in %(filename)s:%(lineno)d at %(asctime)s"

from .error import Error, CryptoError, FormatError, OpenError, SaveError
from .crypto import derive_key
from .record import Record, NEW_RECORD_ID
from .store import RecordStore, SortDescriptor
from .container import open_container, save_container
from .document import Document
from .params import VaultParams, load_config
