#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: AES_manager.py

    Description:
        Implements AES-256-CBC encryption with PKCS#7 padding for CookieVault
        session envelopes. Provides key and IV generation utilities along with
        encrypt and decrypt methods that validate inputs and raise
        CookieVaultError on any misuse or unpadding failure. CBC mode provides
        confidentiality only; integrity is supplied by the envelope HMAC, which
        must be verified before decrypt() is ever called.
"""


import typing
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cookievault.handlers.error_handler import CookieVaultError, DecryptionError, ApplicationCodes, HTTPCodes
from cookievault.utilities.random_source import random_bytes
import cookievault.constants as CONSTANTS



class AESManager:

    """
        Initialize an AESManager instance with no key bound.

        @ensures set_key() must be called before encrypt() or decrypt().
    """
    def __init__(self) -> None:

        try:
            # AES key starts unset
            self._key: typing.Optional[bytes] = None

        except Exception:
            raise CookieVaultError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Unexpected AESManager initialization failure", "aes_manager_init")



    """
        Assign the AES-256 key for this instance.

        @param key (bytes): Must be exactly 32 bytes.

        @require isinstance(key, (bytes, bytearray)) and len(key) == 32

        @ensures A frozen copy of the key is held for subsequent operations.
    """
    def set_key(self, key: bytes) -> None:

        try:
            # Validate type
            if not isinstance(key, (bytes, bytearray)):
                raise CookieVaultError(ApplicationCodes.INVALID_AES_KEY, HTTPCodes.INTERNAL_SERVER_ERROR, "AES key must be raw bytes", "aes_key")

            # Key must be 32 bytes
            if len(key) != CONSTANTS._SECRET_KEY_LEN_BYTES:
                raise CookieVaultError(ApplicationCodes.INVALID_AES_KEY, HTTPCodes.INTERNAL_SERVER_ERROR, "AES-256 key must be exactly 32 bytes", "aes_key")

            # Freeze copy
            self._key = bytes(key)

        except CookieVaultError:
            raise

        except Exception:
            raise CookieVaultError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Failed to set AES key", "aes_key_init")



    """
        Generate a fresh 32-byte AES-256 key using the shared CSPRNG.

        @return bytes: A newly generated 32-byte AES-256 key.
        @ensures The returned key is cryptographically random and exactly 32 bytes long.
    """
    @staticmethod
    def generate_key() -> bytes:

        try:
            # Generate 32 random bytes for AES-256
            key = random_bytes(CONSTANTS._SECRET_KEY_LEN_BYTES)

            # Validate key properties
            if not isinstance(key, bytes) or len(key) != CONSTANTS._SECRET_KEY_LEN_BYTES:
                raise CookieVaultError(ApplicationCodes.INVALID_AES_KEY, HTTPCodes.INTERNAL_SERVER_ERROR, "Generated AES key must be 32 bytes", "generated_key")

            return key

        except CookieVaultError:
            raise
        except Exception:
            raise CookieVaultError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Unexpected AES key generation failure", "generate_key")


    """
        Generate a fresh 16-byte initialization vector for AES-CBC.

        @return bytes: A newly generated 16-byte IV.
        @ensures The IV is unpredictable and drawn fresh on every call.
    """
    @staticmethod
    def generate_iv() -> bytes:

        try:
            iv = random_bytes(CONSTANTS._AES_CBC_IV_LEN_BYTES)

            # Validate IV type and length
            if not isinstance(iv, bytes) or len(iv) != CONSTANTS._AES_CBC_IV_LEN_BYTES:
                raise CookieVaultError(ApplicationCodes.INVALID_IV, HTTPCodes.INTERNAL_SERVER_ERROR, "Generated CBC IV must be 16 bytes", "iv")

            return iv

        except CookieVaultError:
            raise
        except Exception:
            raise CookieVaultError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Unexpected CBC IV generation failure", "generate_iv")



    """
        Encrypt plaintext using AES-256-CBC with PKCS#7 padding.

        @param iv (bytes): 16-byte initialization vector.
        @param plaintext (bytes): Plaintext bytes to encrypt (may be empty).

        @require a key was assigned with set_key()
        @require isinstance(iv, (bytes, bytearray)) and len(iv) == 16

        @return bytes: Ciphertext, a non-empty multiple of the 16-byte block size.
    """
    def encrypt(self, iv: bytes, plaintext: bytes) -> bytes:

        try:
            self._require_key()
            self._validate_iv(iv)

            # Validate plaintext
            if not isinstance(plaintext, (bytes, bytearray)):
                raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "Plaintext must be bytes", "plaintext")

            # Pad to the block size
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(bytes(plaintext)) + padder.finalize()

            # Perform CBC encryption
            encryptor = Cipher(algorithms.AES(self._key), modes.CBC(bytes(iv))).encryptor()
            ciphertext = encryptor.update(padded) + encryptor.finalize()

            # Validate ciphertext
            if len(ciphertext) == 0 or len(ciphertext) % CONSTANTS._AES_BLOCK_LEN_BYTES != 0:
                raise CookieVaultError(ApplicationCodes.INVALID_CIPHERTEXT, HTTPCodes.INTERNAL_SERVER_ERROR, "Ciphertext output is not block aligned", "ciphertext")

            return ciphertext

        except CookieVaultError:
            raise
        except Exception:
            raise CookieVaultError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "AES-CBC encryption failed", "ciphertext")


    """
        Decrypt AES-256-CBC ciphertext and strip its PKCS#7 padding.

        @param iv (bytes): 16-byte IV used during encryption.
        @param ciphertext (bytes): Block-aligned ciphertext.

        @require the ciphertext has already been authenticated by the caller

        @return bytes: The decrypted plaintext bytes.
        @ensures Misaligned ciphertext or bad padding raises DecryptionError.
    """
    def decrypt(self, iv: bytes, ciphertext: bytes) -> bytes:

        try:
            self._require_key()
            self._validate_iv(iv)

            # Validate ciphertext
            if not isinstance(ciphertext, (bytes, bytearray)):
                raise DecryptionError("Ciphertext must be bytes")

            if len(ciphertext) == 0 or len(ciphertext) % CONSTANTS._AES_BLOCK_LEN_BYTES != 0:
                raise DecryptionError("Ciphertext must be a non-empty multiple of 16 bytes")

            # Perform CBC decryption
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(bytes(iv))).decryptor()
            padded = decryptor.update(bytes(ciphertext)) + decryptor.finalize()

            # Remove padding
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return unpadder.update(padded) + unpadder.finalize()

        except CookieVaultError:
            raise
        except Exception:
            raise DecryptionError("AES-CBC decryption or unpadding failed")



    def _require_key(self) -> None:
        if self._key is None:
            raise CookieVaultError(ApplicationCodes.INVALID_AES_KEY, HTTPCodes.INTERNAL_SERVER_ERROR, "AES key has not been set", "aes_key")


    def _validate_iv(self, iv: bytes) -> None:
        if not isinstance(iv, (bytes, bytearray)):
            raise CookieVaultError(ApplicationCodes.INVALID_IV, HTTPCodes.INTERNAL_SERVER_ERROR, "IV must be bytes", "iv")

        if len(iv) != CONSTANTS._AES_CBC_IV_LEN_BYTES:
            raise CookieVaultError(ApplicationCodes.INVALID_IV, HTTPCodes.INTERNAL_SERVER_ERROR, "IV must be 16 bytes", "iv")
