#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: sanitization_validation.py

    Description:
        Provides the encoding, decoding and type-checking helpers used by the
        envelope codec and the session handler: strict lowercase hex
        conversions for token fields, big-endian timestamp packing, compact
        JSON serialization of session payloads, and JSON-like value validation
        for the attribute store.

        Raises TokenFormatError, SchemaError or AttributeTypeError for all
        malformed or non-conforming data.
"""

import json
import math
import typing

from cookievault.handlers.error_handler import CookieVaultError, TokenFormatError, SchemaError, AttributeTypeError, ApplicationCodes, HTTPCodes
import cookievault.constants as CONSTANTS


JSONValue = typing.Union[None, bool, int, float, str, typing.List[typing.Any], typing.Dict[str, typing.Any]]


####################################################################################################
#                                   Hex Encoding / Decoding
####################################################################################################

"""
    Convert a lowercase hex token field into raw bytes.

    @param field_name (str): Logical field name for context in error messages.
    @param hex_text (Any): Hex string to decode.
    @param expected_len (int | None): Required decoded length in bytes, if fixed.
    @return bytes: Decoded byte sequence.
    @ensures Uppercase, odd-length, empty or non-hex input raises TokenFormatError.
"""
def decode_hex_field(field_name: str, hex_text: typing.Any, expected_len: typing.Optional[int] = None) -> bytes:

    if not isinstance(hex_text, str) or not CONSTANTS._LOWER_HEX_RX.match(hex_text):
        raise TokenFormatError(f"{field_name} must be non-empty lowercase hexadecimal", field_name)

    decoded = bytes.fromhex(hex_text)

    if expected_len is not None and len(decoded) != expected_len:
        raise TokenFormatError(f"{field_name} must decode to {expected_len} bytes", field_name)

    return decoded



"""
    Convert raw bytes into lowercase hex text.

    @param raw (bytes): Bytes to encode.
    @return str: Lowercase hexadecimal string.
"""
def encode_bytes_to_hex(raw: bytes) -> str:
    if not isinstance(raw, (bytes, bytearray)):
        raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "hex encode expects bytes", "raw")

    return bytes(raw).hex()



####################################################################################################
#                                   Timestamp Packing
####################################################################################################

"""
    Serialize epoch milliseconds to its fixed-width 8-byte big-endian form.

    @param timestamp_ms (int): Epoch milliseconds.
    @return bytes: 8-byte signed big-endian integer.
"""
def encode_timestamp_to_bytes(timestamp_ms: int) -> bytes:
    try:
        return int(timestamp_ms).to_bytes(CONSTANTS._TIMESTAMP_LEN_BYTES, "big", signed=True)

    except Exception:
        raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "Timestamp does not fit in 64 bits", "timestamp")



def decode_timestamp_from_bytes(timestamp_bytes: bytes) -> int:
    return int.from_bytes(timestamp_bytes, "big", signed=True)



####################################################################################################
#                                   UTF-8 / JSON Conversions
####################################################################################################

"""
    Encode a dictionary into compact UTF-8 JSON bytes.

    @param data (dict): JSON-serializable dictionary.
    @return bytes: UTF-8 encoded JSON payload.
    @ensures NaN and Infinity are rejected rather than emitted as invalid JSON.
"""
def encode_dict_to_json_bytes(data: typing.Dict[str, typing.Any]) -> bytes:
    try:
        # Validate input type
        if not isinstance(data, dict):
            raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "Input must be dict", "data")

        # Serialize to JSON and encode to bytes
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")

    except CookieVaultError:
        raise
    except Exception:
        raise CookieVaultError(ApplicationCodes.MALFORMED_JSON, HTTPCodes.INTERNAL_SERVER_ERROR, "Failed to serialize JSON payload", "data")



"""
    Convert decrypted UTF-8 JSON bytes into a Python dictionary.

    @param json_bytes (bytes): Raw JSON bytes.
    @return dict: Parsed JSON object.
    @ensures Raises SchemaError on invalid UTF-8, malformed JSON or non-object values.
"""
def decode_json_bytes_to_dict(json_bytes: bytes) -> dict:
    try:
        # Validate input type
        if not isinstance(json_bytes, (bytes, bytearray)):
            raise SchemaError("Session payload must be bytes", "json_bytes")

        # Decode UTF-8 then parse JSON
        obj = json.loads(bytes(json_bytes).decode("utf-8"))

        # Validate output type
        if not isinstance(obj, dict):
            raise SchemaError("Session payload should contain a JSON object", "json_bytes")

        return obj

    except CookieVaultError:
        raise
    except Exception:
        raise SchemaError("Malformed session payload JSON", "json_bytes")



####################################################################################################
#                               GENERIC VALIDATORS (REUSABLE)
####################################################################################################

"""
    Function: True for int values that are not bool.
"""
def is_strict_int(value: typing.Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)



"""
    Function: True for finite int/float values that are not bool.
"""
def is_number(value: typing.Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)



"""
    Function: Validate that a value is a non-empty string.

    @param: typing.Any - value to be validated
    @param: ApplicationCodes - application-level error type to raise if validation fails
    @param: str - field_name identifying the failing field
    @ensures: raises CookieVaultError if value is not a valid non-empty string
"""
def validate_string(value: typing.Any, application_code, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise CookieVaultError(application_code, HTTPCodes.BAD_REQUEST, f"{field_name} must be a non-empty string.", field_name)



"""
    Function: Validate that a value belongs to the JSON-like value model and
    return a deep copy of it.

    @param: typing.Any - value to be validated
    @param: str - field_name identifying the attribute for error messages
    @return: JSONValue - copy with tuples normalized to lists
    @ensures: raises AttributeTypeError on unsupported types, non-string keys or non-finite floats
"""
def validate_json_value(value: typing.Any, field_name: str) -> JSONValue:

    if value is None or isinstance(value, (bool, str)):
        return value

    if isinstance(value, (int, float)):
        if not is_number(value):
            raise AttributeTypeError(f"{field_name} must be a finite number", field_name)
        return value

    if isinstance(value, (list, tuple)):
        return [validate_json_value(item, field_name) for item in value]

    if isinstance(value, dict):
        copied = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise AttributeTypeError(f"{field_name} object keys must be strings", field_name)
            copied[key] = validate_json_value(item, field_name)
        return copied

    raise AttributeTypeError(f"{field_name} of type {type(value).__name__} is not a JSON value", field_name)
