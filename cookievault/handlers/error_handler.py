#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: error_handler.py

    Description:
        Centralized error handling for all CookieVault components. Defines the
        error taxonomy of the session-token codec (key format, token format,
        authentication, decryption, payload schema, attribute typing), converts
        exceptions into standardized error packets, and logs diagnostic
        information to the audit log.
"""


from dataclasses import dataclass
from typing import Tuple
from datetime import datetime, timezone
from cookievault.utilities.audit_log import AuditLog
import cookievault.constants as CONSTANTS



"""
    Container Class for HTTP status constants.
"""
@dataclass
class HTTPCodes:
    # 200 OK
    OK = 200

    # 400 Bad Request
    BAD_REQUEST = 400

    # 401 Unauthorized
    UNAUTHORIZED = 401

    # 404 Not Found
    NOT_FOUND = 404

    # 405 Method Not Allowed
    METHOD_NOT_ALLOWED = 405

    # 500 Internal Server Error
    INTERNAL_SERVER_ERROR = 500


"""
    Container Class for server error code strings.
"""
@dataclass
class ApplicationCodes:

    MALFORMED_JSON           = "malformed_json"
    INVALID_TYPE             = "invalid_type"
    INVALID_LENGTH           = "invalid_length"
    INVALID_CONTENT_TYPE     = "invalid_content_type"
    INVALID_REQUEST          = "invalid_request"
    INVALID_KEY_FORMAT       = "invalid_key_format"
    INVALID_AES_KEY          = "invalid_aes_key"
    INVALID_IV               = "invalid_iv"
    INVALID_CIPHERTEXT       = "invalid_ciphertext"
    INVALID_CHECKSUM         = "invalid_checksum"
    INVALID_CHECKSUM_DATA    = "invalid_checksum_data"
    INVALID_TOKEN_FORMAT     = "invalid_token_format"
    CIPHERTEXT_AUTH_ERROR    = "ciphertext_auth_error"
    INVALID_SESSION_PAYLOAD  = "invalid_session_payload"
    INVALID_ATTRIBUTE_TYPE   = "invalid_attribute_type"
    SESSION_STORE_ERROR      = "session_store_error"
    NOT_FOUND                = "not_found"
    INTERNAL_SERVER_ERROR    = "internal_server_error"






class CookieVaultError(Exception):

    """
        Initialize a CookieVaultError containing application code, HTTP code, detail message, and field context.

        @param application_code (str): Identifier from ApplicationCodes signaling the failure type.
        @param http_code (int): HTTP status code associated with the error.
        @param detail (str): Descriptive message intended for server-side diagnostics.
        @param field (str): Logical field related to the error (optional).
        @ensures Error metadata is accessible to the centralized ErrorHandler.
    """
    def __init__(self, application_code: str, http_code: int, detail: str, field: str = "") -> None:
        self.application_code = application_code
        self.http_code = http_code
        self.detail = detail
        self.field = field
        super().__init__(f"{application_code}: {detail}")



"""
    Raised when an externally supplied secret key is not exactly 64 hex characters.
    This is a configuration-time failure and is expected to abort startup.
"""
class KeyFormatError(CookieVaultError):

    def __init__(self, detail: str, field: str = "secret_key") -> None:
        super().__init__(ApplicationCodes.INVALID_KEY_FORMAT, HTTPCodes.INTERNAL_SERVER_ERROR, detail, field)



"""
    Base class of every failure on the token decode path. Callers of
    ClientSessionHandler.load catch this single type to report tampering.
"""
class SessionDecodeError(CookieVaultError):
    pass


class TokenFormatError(SessionDecodeError):

    def __init__(self, detail: str, field: str = "token") -> None:
        super().__init__(ApplicationCodes.INVALID_TOKEN_FORMAT, HTTPCodes.BAD_REQUEST, detail, field)


class AuthenticationError(SessionDecodeError):

    def __init__(self, detail: str, field: str = "signature") -> None:
        super().__init__(ApplicationCodes.CIPHERTEXT_AUTH_ERROR, HTTPCodes.UNAUTHORIZED, detail, field)


class DecryptionError(SessionDecodeError):

    def __init__(self, detail: str, field: str = "ciphertext") -> None:
        super().__init__(ApplicationCodes.INVALID_CIPHERTEXT, HTTPCodes.UNAUTHORIZED, detail, field)


class SchemaError(SessionDecodeError):

    def __init__(self, detail: str, field: str = "payload") -> None:
        super().__init__(ApplicationCodes.INVALID_SESSION_PAYLOAD, HTTPCodes.BAD_REQUEST, detail, field)



"""
    Raised by typed attribute accessors when a present, non-null value cannot be
    coerced to the requested type, or when a non JSON-like value is stored.
"""
class AttributeTypeError(CookieVaultError, TypeError):

    def __init__(self, detail: str, field: str = "attribute") -> None:
        super().__init__(ApplicationCodes.INVALID_ATTRIBUTE_TYPE, HTTPCodes.BAD_REQUEST, detail, field)






class ErrorHandler:

    """
        Initialize the ErrorHandler and attach an AuditLog for diagnostic event recording.

        @param audit_log (AuditLog): Shared audit log, a private one is created when omitted.
        @ensures ErrorHandler is ready to format and log errors.
    """
    def __init__(self, audit_log: AuditLog = None) -> None:

        self.audit_log = audit_log if audit_log is not None else AuditLog()


    """
        Process an exception and return a standardized CookieVault error packet.

        @param e (Exception): Exception raised during request handling.
        @param context (str): Logical context string identifying the failing operation.
        @return tuple[dict, int]: (clean_error_packet, http_status_code)
        @ensures Exception is logged to audit_log and a canonical failure packet is returned.
    """
    def handle_server_error(self, e: Exception, context: str = "") -> Tuple[dict, int]:

        # If the exception is already a CookieVaultError
        if isinstance(e, CookieVaultError):
            application_code = e.application_code
            http_code = e.http_code
            message = e.detail
            field = e.field
        else:
            # For non-raised errors, normalize to INTERNAL_SERVER_ERROR
            application_code = ApplicationCodes.INTERNAL_SERVER_ERROR
            http_code = HTTPCodes.INTERNAL_SERVER_ERROR
            message = "An internal server error occurred. Please try again later."
            field = ""

        # Always log the raw exception detail for operators
        self.audit_log.event(event="server_exception", context=context, error_code=application_code, detail=str(e))

        # Build standardized error packet
        clean_packet = self.create_error_response_packet("failure", message, application_code, field)

        return clean_packet, http_code



    """
        Build a standardized CookieVault error response packet.

        @param response_status (str): Must be "failure" for all error packets.
        @param message (str): Human-readable error message.
        @param error_code (str): One of ApplicationCodes.* defining the error type.
        @param field (str): Logical field associated with the error (optional).
        @return dict: Error packet including protocol_version and timestamp.
    """
    def create_error_response_packet(self, response_status: str, message: str, error_code: str, field: str = "") -> dict:
        try:
            # Generate ISO8601Z timestamp
            timestamp_iso = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

            # Construct canonical error response
            packet = {
                "protocol_version": CONSTANTS._PROTOCOL_VERSION,
                "response_status": response_status,
                "timestamp": timestamp_iso,
                "message": message,
                "error_code": error_code,
                "field": field
            }

            return packet

        except CookieVaultError:
            raise
        except Exception:
            raise CookieVaultError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Internal error creating error response packet.", "")
