#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: constants.py

    Description:
        Centralized constants for CookieVault's client-held session tokens.
        Defines the cookie name, default inactivity timeout, key/IV/timestamp
        sizes of the envelope wire format, and regex patterns shared across
        validation modules (envelope codec, key manager, session handler).
"""

import re
from typing import FrozenSet


# Version string reported in error packets
_PROTOCOL_VERSION = "CookieVault Session v1"

# Name of the cookie holding the client-side session (must differ from Flask's "session")
CLIENT_SESSION_COOKIE_NAME = "cookievault-client-session"

# One hour of inactivity before a client session expires
CLIENT_SESSION_DEFAULT_MAX_INACTIVE_INTERVAL: int = 60 * 60


################################################################################################
# Key material
################################################################################################

# AES-256 / HMAC-SHA256 shared secret key length
_SECRET_KEY_LEN_BYTES = 32

# Hex representation of the secret key
_SECRET_KEY_HEX_LEN = 2 * _SECRET_KEY_LEN_BYTES


################################################################################################
# Envelope wire format: signature|iv|timestamp|ciphertext
################################################################################################

_TOKEN_SEPARATOR = "|"
_TOKEN_FIELD_COUNT = 4

# AES block size, also the CBC IV length
_AES_BLOCK_LEN_BYTES = 16
_AES_CBC_IV_LEN_BYTES = 16

# Big-endian signed 64-bit epoch milliseconds
_TIMESTAMP_LEN_BYTES = 8

# HMAC-SHA256 output
_SIGNATURE_LEN_BYTES = 32

# Lowercase hex only, so a flipped case bit never decodes to the same bytes
_LOWER_HEX_RX = re.compile(r"^(?:[0-9a-f]{2})+$")

# Key strings may be supplied by operators in either case
_KEY_HEX_RX = re.compile(r"^[0-9a-fA-F]{64}$")


################################################################################################
# Session payload
################################################################################################

# Number of characters in a generated session identifier
_SESSION_ID_LEN = 32

# Alphabet of generated session identifiers
_SESSION_ID_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

# Top-level fields of the serialized session payload
_SESSION_PAYLOAD_FIELDS: FrozenSet[str] = frozenset({
    "id",
    "creationTime",
    "lastAccessedTime",
    "maxInactiveInterval",
    "attributes"
})

# Payload fields that must hold integers
_SESSION_PAYLOAD_INT_FIELDS = ("creationTime", "lastAccessedTime", "maxInactiveInterval")
