#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: key_manager.py

    Description:
        Owns the process-wide secret key used to encrypt and sign client
        session envelopes. The key is either loaded from operator configuration
        as 64 hex characters or generated lazily on the first save. Lazy
        generation is double-checked under a lock so concurrent first saves on
        a cold process converge on a single key. Key material is never
        persisted or logged here; only its SHA-256 fingerprint is audited.
"""


import threading
import typing
from cookievault.encryption.AES_manager import AESManager
from cookievault.encryption.checksum_manager import ChecksumManager
from cookievault.handlers.error_handler import CookieVaultError, KeyFormatError, ApplicationCodes, HTTPCodes
from cookievault.utilities.audit_log import AuditLog
import cookievault.constants as CONSTANTS



class KeyManager:

    """
        Initialize the key manager, optionally loading an operator supplied key.

        @param hex_key (str | None): Optional 64-hex-character secret key.
        @param audit_log (AuditLog | None): Audit sink for key lifecycle events.
        @param key_generator (callable | None): Zero-argument 32-byte key factory, AESManager.generate_key by default.
        @ensures Raises KeyFormatError at construction when hex_key is malformed.
    """
    def __init__(self, hex_key: typing.Optional[str] = None, audit_log: typing.Optional[AuditLog] = None, key_generator: typing.Optional[typing.Callable[[], bytes]] = None) -> None:

        self._lock = threading.Lock()
        self._key: typing.Optional[bytes] = None
        self._audit_log = audit_log if audit_log is not None else AuditLog()
        self._checksum_manager = ChecksumManager()
        self._key_generator = key_generator or AESManager.generate_key

        if hex_key is not None:
            self.load_key(hex_key)



    """
        Return the current key, generating one on first use.

        @return bytes: The 32-byte secret key.
        @ensures Every caller, including concurrent first callers, observes the same key.
    """
    def current_key(self) -> bytes:

        # Steady-state path, no lock
        key = self._key
        if key is not None:
            return key

        with self._lock:
            if self._key is None:
                generated = self._key_generator()

                if not isinstance(generated, bytes) or len(generated) != CONSTANTS._SECRET_KEY_LEN_BYTES:
                    raise CookieVaultError(ApplicationCodes.INVALID_AES_KEY, HTTPCodes.INTERNAL_SERVER_ERROR, "Generated secret key must be 32 bytes", "secret_key")

                self._key = generated
                self._audit_log.event(event="secret_key_generated", fingerprint=self._checksum_manager.fingerprint(generated))

            return self._key



    """
        Decode and install an operator supplied key.

        @param hex_string (str): Exactly 64 hexadecimal characters.
        @return bytes: The decoded 32-byte key.
        @ensures Raises KeyFormatError for anything other than 64 hex characters.
    """
    def load_key(self, hex_string: str) -> bytes:

        key = KeyManager.decode_key(hex_string)

        with self._lock:
            self._key = key

        self._audit_log.event(event="secret_key_loaded", fingerprint=self._checksum_manager.fingerprint(key))
        return key



    """
        Decode a 64-hex-character key string without installing it.

        @param hex_string (str): Candidate key string.
        @return bytes: The decoded 32-byte key.
    """
    @staticmethod
    def decode_key(hex_string: str) -> bytes:

        if not isinstance(hex_string, str):
            raise KeyFormatError("Secret key must be a hexadecimal string")

        if len(hex_string) != CONSTANTS._SECRET_KEY_HEX_LEN:
            raise KeyFormatError("Secret key should be 256 bits (32 bytes, 64 hexadecimal characters)")

        if not CONSTANTS._KEY_HEX_RX.match(hex_string):
            raise KeyFormatError("Secret key contains non-hexadecimal characters")

        return bytes.fromhex(hex_string)



    # Non-generating read, None until a key was generated or loaded
    def peek_key(self) -> typing.Optional[bytes]:
        return self._key


    def has_key(self) -> bool:
        return self._key is not None


    """
        Lowercase hex of the current key so the deployment can persist it
        for restart continuity. Returns None when no key exists yet.
    """
    def export_key_hex(self) -> typing.Optional[str]:
        key = self._key
        return key.hex() if key is not None else None
