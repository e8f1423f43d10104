#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: random_source.py

    Description:
        Single process-wide CSPRNG shared by key generation, IV generation and
        session identifier generation. SystemRandom draws from os.urandom and
        is safe to call concurrently from request threads.
"""

import secrets

from cookievault.handlers.error_handler import CookieVaultError, ApplicationCodes, HTTPCodes
import cookievault.constants as CONSTANTS


_RANDOM = secrets.SystemRandom()



"""
    Draw `length` cryptographically secure random bytes.

    @param length (int): Number of bytes to return, must be positive.
    @return bytes: Random bytes of exactly `length` bytes.
"""
def random_bytes(length: int) -> bytes:
    if not isinstance(length, int) or isinstance(length, bool) or length <= 0:
        raise CookieVaultError(ApplicationCodes.INVALID_LENGTH, HTTPCodes.INTERNAL_SERVER_ERROR, "Random length must be a positive integer", "length")
    return _RANDOM.randbytes(length)



"""
    Draw a random printable identifier from the session id alphabet.

    @param length (int): Number of characters, defaults to the session id length.
    @return str: Random alphanumeric string.
"""
def random_identifier(length: int = CONSTANTS._SESSION_ID_LEN) -> str:
    return "".join(_RANDOM.choice(CONSTANTS._SESSION_ID_ALPHABET) for _ in range(length))
