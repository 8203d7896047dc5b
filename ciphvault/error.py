#  _  __
# | |/ /___ ___ _ __  ___ _ _ ®
# | ' </ -_) -_) '_ \/ -_) '_|
# |_|\_\___\___| .__/\___|_|
#              |_|
#
# CiphVault
# Contact: ops@keepersecurity.com
#

class Error(Exception):
    """Base class for exceptions in this module."""
    def __init__(self, message):
        self.message = message

    def __str__(self):
        return self.message


class CryptoError(Error):
    """Cipher primitive failure: bad key or IV length, bad padding, bad ciphertext length"""


class FormatError(Error):
    """Archive data has a structure the decoder does not recognize"""

    def __init__(self, message, offset=None):
        super().__init__(message)
        self.offset = offset

    def __str__(self):
        if self.offset is not None:
            return f'{self.message} (offset {self.offset})'
        return super().__str__()


class InternalInvariantViolation(Error):
    """Raised on data this package produced itself but cannot read back"""


class ResourceError(Error):
    """Secure random source is not available"""


class OpenError(Error):
    def __init__(self, message='Cannot decrypt file. Check the passphrase or the file is damaged.'):
        super().__init__(message)


class SaveError(Error):
    pass
