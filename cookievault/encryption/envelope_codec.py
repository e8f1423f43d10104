#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: envelope_codec.py

    Description:
        Encrypts and authenticates a byte buffer into CookieVault's cookie
        token, and verifies and decrypts it back. The wire format is four
        lowercase hex fields joined by "|":

            signature|iv|timestamp|ciphertext

        where ciphertext = AES-256-CBC(key, iv, PKCS7(plaintext)), timestamp is
        the issue time as 8-byte big-endian epoch milliseconds, and
        signature = HMAC-SHA256(key, iv || timestamp || ciphertext).

        Decoding is verify-then-decrypt: the signature is checked in constant
        time before any ciphertext is handed to the cipher. The envelope
        timestamp is informational; session expiry is evaluated on the
        decrypted payload by the session handler.
"""


import time
import typing
from cookievault.encryption.AES_manager import AESManager
from cookievault.encryption.checksum_manager import ChecksumManager
from cookievault.handlers.error_handler import CookieVaultError, TokenFormatError, AuthenticationError, ApplicationCodes, HTTPCodes
import cookievault.handlers.sanitization_validation as VALIDATION
import cookievault.constants as CONSTANTS



def _current_time_ms() -> int:
    return time.time_ns() // 1_000_000



class EnvelopeCodec:

    """
        Initialize the codec.

        @param checksum_manager (ChecksumManager | None): HMAC provider, a new one by default.
        @param clock (callable | None): Returns epoch milliseconds, used for the envelope timestamp.
        @ensures The codec holds no key material; keys are borrowed per call.
    """
    def __init__(self, checksum_manager: typing.Optional[ChecksumManager] = None, clock: typing.Optional[typing.Callable[[], int]] = None) -> None:

        self._checksum_manager = checksum_manager if checksum_manager is not None else ChecksumManager()
        self._clock = clock or _current_time_ms



    """
        Encrypt and sign plaintext into a cookie token.

        @param key (bytes): 32-byte secret key.
        @param plaintext (bytes): Bytes to protect.
        @return str: "signature|iv|timestamp|ciphertext" in lowercase hex.
        @ensures A fresh IV is drawn on every call.
    """
    def encrypt(self, key: bytes, plaintext: bytes) -> str:

        try:
            aes_manager = AESManager()
            aes_manager.set_key(key)

            iv = AESManager.generate_iv()
            timestamp_bytes = VALIDATION.encode_timestamp_to_bytes(self._clock())
            ciphertext = aes_manager.encrypt(iv, plaintext)

            signature = self._checksum_manager.compute_signature(key, iv, timestamp_bytes, ciphertext)

            return CONSTANTS._TOKEN_SEPARATOR.join(
                VALIDATION.encode_bytes_to_hex(part) for part in (signature, iv, timestamp_bytes, ciphertext)
            )

        except CookieVaultError:
            raise
        except Exception:
            raise CookieVaultError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Envelope encryption failed", "token")



    """
        Verify and decrypt a cookie token.

        @param key (bytes): 32-byte secret key.
        @param token (str): Token produced by encrypt().
        @return bytes: The original plaintext.
        @ensures Raises TokenFormatError, AuthenticationError or DecryptionError; never
                 decrypts ciphertext whose signature did not verify.
    """
    def decrypt(self, key: bytes, token: str) -> bytes:

        signature, iv, timestamp_bytes, ciphertext = self._split_token(token)

        if not self._checksum_manager.verify_signature(key, signature, iv, timestamp_bytes, ciphertext):
            raise AuthenticationError("Signature validation has failed")

        aes_manager = AESManager()
        aes_manager.set_key(key)
        return aes_manager.decrypt(iv, ciphertext)



    """
        Read the issue time carried in a token, without verifying it.

        @param token (str): Token produced by encrypt().
        @return int: Epoch milliseconds at which the token was produced.
    """
    def read_timestamp(self, token: str) -> int:

        _, _, timestamp_bytes, _ = self._split_token(token)
        return VALIDATION.decode_timestamp_from_bytes(timestamp_bytes)



    def _split_token(self, token: str) -> typing.Tuple[bytes, bytes, bytes, bytes]:

        if not isinstance(token, str):
            raise TokenFormatError("Token must be a string")

        parts = token.split(CONSTANTS._TOKEN_SEPARATOR)
        if len(parts) != CONSTANTS._TOKEN_FIELD_COUNT:
            raise TokenFormatError("Value is expected to be signature|iv|timestamp|data")

        signature = VALIDATION.decode_hex_field("signature", parts[0], CONSTANTS._SIGNATURE_LEN_BYTES)
        iv = VALIDATION.decode_hex_field("iv", parts[1], CONSTANTS._AES_CBC_IV_LEN_BYTES)
        timestamp_bytes = VALIDATION.decode_hex_field("timestamp", parts[2], CONSTANTS._TIMESTAMP_LEN_BYTES)
        ciphertext = VALIDATION.decode_hex_field("ciphertext", parts[3])

        return signature, iv, timestamp_bytes, ciphertext
