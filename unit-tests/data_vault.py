import os
from typing import List

from ciphvault import crypto, params
from ciphvault.record import Record
from ciphvault.store import RecordStore, SortDescriptor

_USER_PASSPHRASE = 'secret'
_USER_KEY = crypto.derive_key(_USER_PASSPHRASE)

NOTES_RTF = (b'{\\rtf1\\ansi\\ansicpg1252\\cocoartf2580\n'
             b'{\\fonttbl\\f0\\fswiss\\fcharset0 Helvetica;}\n'
             b'{\\colortbl;\\red255\\green255\\blue255;}\n'
             b'\\pard\\tx560\\pardirnatural\\partightenfactor0\n'
             b'\n'
             b'\\f0\\fs24 \\cf0 Server room code 4711}')

# flattened RTFD: directory header, entry names, then entry contents
NOTES_RTFD = (b'rtfd\x00\x00\x00\x00\x02\x00\x00\x00'
              b'\x01\x00\x00\x00.' b'\x07\x00\x00\x00TXT.rtf'
              + len(NOTES_RTF).to_bytes(4, 'little') + NOTES_RTF
              + b'\x04\x00\x00\x00\x00\x00\x00\x00')


class VaultEnvironment:
    def __init__(self):
        self.passphrase = _USER_PASSPHRASE
        self.key = _USER_KEY
        self.notes = NOTES_RTF


def get_records():    # type: () -> List[Record]
    return [
        Record(name='Bank', account='jdoe', password='Pa$$w0rd', url='https://bank.example.com', category='Finance'),
        Record(name='Mail', account='john.doe@example.com', password='hunter2', url='https://mail.example.com',
               category='Internet', notes=NOTES_RTF),
        Record(name='alarm', account='1234', category='Home', notes=NOTES_RTFD),
        Record(name='Wiki', account='jdoe', password='correct horse', url='https://wiki.example.com',
               category='Internet', extra={'modified': 'yesterday', 'icon': b'\x89PNG'}),
    ]


def get_store(sort_key='name'):    # type: (str) -> RecordStore
    return RecordStore(get_records(), sort_descriptor=SortDescriptor(sort_key) if sort_key else None)


def get_params(**kwargs):    # type: (...) -> params.VaultParams
    p = params.VaultParams()
    for k, v in kwargs.items():
        setattr(p, k, v)
    return p


def random_passphrase():    # type: () -> str
    return os.urandom(8).hex()
