#  _  __
# | |/ /___ ___ _ __  ___ _ _ ®
# | ' </ -_) -_) '_ \/ -_) '_|
# |_|\_\___\___| .__/\___|_|
#              |_|
#
# CiphVault
# Contact: ops@keepersecurity.com
#
import json
import logging
import os
import zlib
from typing import Optional

from .error import Error

COMPRESSION_LEVEL = 'compression_level'
DEFAULT_SORT_KEY = 'default_sort_key'
DEFAULT_SORT_ASCENDING = 'default_sort_ascending'
NOTES_CACHE_SIZE = 'notes_cache_size'


class VaultParams:
    def __init__(self, config_filename=''):
        self.config_filename = config_filename
        self.config = {}
        self.compression_level = zlib.Z_DEFAULT_COMPRESSION
        self.default_sort_key = 'name'
        self.default_sort_ascending = True
        self.notes_cache_size = 256

    def clear(self):
        self.config.clear()
        self.compression_level = zlib.Z_DEFAULT_COMPRESSION
        self.default_sort_key = 'name'
        self.default_sort_ascending = True
        self.notes_cache_size = 256

    def load_config_properties(self):
        for name, value in self.config.items():
            if name == COMPRESSION_LEVEL:
                if not isinstance(value, int) or isinstance(value, bool) or not (-1 <= value <= 9):
                    raise Error(f'"{COMPRESSION_LEVEL}" should be an integer between -1 and 9')
                self.compression_level = value
            elif name == DEFAULT_SORT_KEY:
                if not isinstance(value, str) or not value:
                    raise Error(f'"{DEFAULT_SORT_KEY}" should be a field name')
                self.default_sort_key = value
            elif name == DEFAULT_SORT_ASCENDING:
                if not isinstance(value, bool):
                    raise Error(f'"{DEFAULT_SORT_ASCENDING}" should be true or false')
                self.default_sort_ascending = value
            elif name == NOTES_CACHE_SIZE:
                if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                    raise Error(f'"{NOTES_CACHE_SIZE}" should be a non-negative integer')
                self.notes_cache_size = value
            else:
                logging.warning('Unknown configuration property "%s" is ignored', name)


def load_config(config_filename=None):    # type: (Optional[str]) -> VaultParams
    params = VaultParams()
    if not config_filename:
        return params
    params.config_filename = os.path.expanduser(config_filename)
    if os.path.exists(params.config_filename):
        try:
            with open(params.config_filename) as config_file:
                params.config = json.load(config_file)
        except ValueError:
            raise Error(f'Unable to parse JSON configuration file "{os.path.abspath(params.config_filename)}"')
        except IOError as ioe:
            logging.warning('Error: Unable to open config file %s: %s', params.config_filename, ioe)
            return params
        if not isinstance(params.config, dict):
            raise Error(f'Configuration file "{params.config_filename}" should contain a JSON object')
        params.load_config_properties()
    else:
        logging.debug('Config file %s does not exist. Using defaults', params.config_filename)
    return params
