#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: checksum_manager.py

    Description:
        Provides HMAC-SHA256 signing and SHA-256 fingerprint utilities for
        CookieVault envelopes, including constant-time signature verification.
        All methods enforce strict type and length validation and raise
        CookieVaultError so callers can consistently handle signing failures.
"""


import hashlib
import hmac
from cookievault.handlers.error_handler import HTTPCodes, ApplicationCodes, CookieVaultError
import cookievault.constants as CONSTANTS



class ChecksumManager:

    """
        Initialize a ChecksumManager configured for HMAC-SHA256.

        @ensures The manager is ready to compute deterministic 32-byte signatures.
    """
    def __init__(self) -> None:

        self._digest_size: int = CONSTANTS._SIGNATURE_LEN_BYTES
        self._algorithm: str = "sha256"



    """
        Compute a SHA-256 checksum for the given bytes.

        @param data (bytes): Raw input bytes.
        @return bytes: 32-byte SHA-256 digest.
    """
    def compute_checksum(self, data: bytes) -> bytes:

        try:
            # Validate input type
            if not isinstance(data, (bytes, bytearray)):
                raise CookieVaultError(ApplicationCodes.INVALID_CHECKSUM_DATA, HTTPCodes.INTERNAL_SERVER_ERROR, "Input to compute_checksum must be bytes", "data")

            return hashlib.sha256(bytes(data)).digest()

        except CookieVaultError:
            raise
        except Exception:
            raise CookieVaultError(ApplicationCodes.INVALID_CHECKSUM, HTTPCodes.INTERNAL_SERVER_ERROR, "Checksum computation failure", "checksum")



    """
        Hex fingerprint of a secret key, safe to write to the audit log.

        @param key (bytes): Secret key material.
        @return str: Lowercase hex SHA-256 digest of the key.
    """
    def fingerprint(self, key: bytes) -> str:
        return self.compute_checksum(key).hex()



    """
        Compute HMAC-SHA256 over the concatenation of the given byte parts.

        @param key (bytes): 32-byte secret key.
        @param parts (bytes): Byte strings fed to the MAC in order.
        @return bytes: 32-byte signature.
    """
    def compute_signature(self, key: bytes, *parts: bytes) -> bytes:

        try:
            # Validate key
            if not isinstance(key, (bytes, bytearray)) or len(key) != CONSTANTS._SECRET_KEY_LEN_BYTES:
                raise CookieVaultError(ApplicationCodes.INVALID_AES_KEY, HTTPCodes.INTERNAL_SERVER_ERROR, "HMAC key must be 32 bytes", "hmac_key")

            mac = hmac.new(bytes(key), digestmod=self._algorithm)

            for part in parts:
                # Validate input data type
                if not isinstance(part, (bytes, bytearray)):
                    raise CookieVaultError(ApplicationCodes.INVALID_CHECKSUM_DATA, HTTPCodes.INTERNAL_SERVER_ERROR, "Signed data must be bytes", "data")
                mac.update(bytes(part))

            signature = mac.digest()

            # Validate digest output
            if len(signature) != self._digest_size:
                raise CookieVaultError(ApplicationCodes.INVALID_CHECKSUM, HTTPCodes.INTERNAL_SERVER_ERROR, "Invalid digest output from HMAC-SHA256", "signature")

            return signature

        except CookieVaultError:
            raise
        except Exception:
            raise CookieVaultError(ApplicationCodes.INVALID_CHECKSUM, HTTPCodes.INTERNAL_SERVER_ERROR, "HMAC computation failure", "signature")



    """
        Verify an HMAC-SHA256 signature using constant-time comparison.

        @param key (bytes): 32-byte secret key.
        @param expected_signature (bytes): Signature supplied with the message.
        @param parts (bytes): Signed byte strings, in the order used when signing.
        @return bool: True if the recomputed signature matches, False otherwise.
    """
    def verify_signature(self, key: bytes, expected_signature: bytes, *parts: bytes) -> bool:

        try:
            # Validate expected signature type
            if not isinstance(expected_signature, (bytes, bytearray)):
                raise CookieVaultError(ApplicationCodes.INVALID_CHECKSUM, HTTPCodes.INTERNAL_SERVER_ERROR, "Expected signature must be bytes", "expected_signature")

            computed = self.compute_signature(key, *parts)

            # compare_digest does not short-circuit, including on length mismatch
            return hmac.compare_digest(computed, bytes(expected_signature))

        except CookieVaultError:
            raise
        except Exception:
            raise CookieVaultError(ApplicationCodes.INVALID_CHECKSUM, HTTPCodes.INTERNAL_SERVER_ERROR, "Signature verification failure", "signature")
