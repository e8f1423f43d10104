#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: session_handler.py

    Description:
        Manages client-held session state for CookieVault. A ClientSession is
        never stored on the server: it is serialized to a compact JSON payload,
        sealed by the EnvelopeCodec with the KeyManager's secret key, and
        returned to the HTTP layer as a cookie value together with the
        recommended cookie attributes. On the next request the cookie is
        verified, decrypted, schema-checked and evaluated for inactivity
        expiry before the session is restored.

        Sessions are created fresh when no cookie is present, when no key has
        ever been generated or loaded, or when the restored session expired.
        Tampered or malformed cookies raise a SessionDecodeError from load();
        load_or_create() records the failure in the audit log and degrades to
        a fresh session instead.
"""


import time
import typing
from dataclasses import dataclass, field
from cookievault.encryption.envelope_codec import EnvelopeCodec
from cookievault.encryption.key_manager import KeyManager
from cookievault.handlers.attribute_store import AttributeStore
from cookievault.handlers.error_handler import CookieVaultError, SessionDecodeError, SchemaError, AttributeTypeError, ApplicationCodes, HTTPCodes
from cookievault.utilities.audit_log import AuditLog
from cookievault.utilities.random_source import random_identifier
import cookievault.handlers.sanitization_validation as VALIDATION
import cookievault.constants as CONSTANTS



def _current_time_ms() -> int:
    return time.time_ns() // 1_000_000


####################################################################################################
# Client Session
####################################################################################################

"""
    Represents the state of one client-held session.

    id                     : 32 random alphanumerics, regenerated only when the session is (re)created
    creation_time          : Epoch milliseconds, preserved across restores
    last_accessed_time     : Epoch milliseconds of the last successful load or save
    max_inactive_interval  : Seconds of inactivity before expiry; <= 0 never expires
    is_new                 : True until the session has been restored from a cookie
    attributes             : JSON-like attribute bag
"""
@dataclass
class ClientSession:

    id: str =                                   field(default_factory=random_identifier)
    creation_time: int =                        field(default_factory=_current_time_ms)
    last_accessed_time: typing.Optional[int] =  None
    max_inactive_interval: int =                CONSTANTS.CLIENT_SESSION_DEFAULT_MAX_INACTIVE_INTERVAL
    is_new: bool =                              True
    attributes: AttributeStore =                field(default_factory=AttributeStore)

    def __post_init__(self) -> None:
        if self.last_accessed_time is None:
            self.last_accessed_time = self.creation_time


    """
        Build a fresh session at the given instant.

        @param now_ms (int): Epoch milliseconds used for both timestamps.
        @return ClientSession: New session with a fresh id and empty attributes.
    """
    @classmethod
    def create(cls, now_ms: int) -> "ClientSession":
        return cls(creation_time=now_ms, last_accessed_time=now_ms)


    """
        Reset the session as if it had just been created.

        @param now_ms (int | None): Epoch milliseconds, the current time by default.
        @ensures id, timestamps, interval and attributes are reinitialized and is_new is True.
    """
    def invalidate(self, now_ms: typing.Optional[int] = None) -> None:
        now_ms = _current_time_ms() if now_ms is None else now_ms
        self.id = random_identifier()
        self.creation_time = now_ms
        self.last_accessed_time = now_ms
        self.max_inactive_interval = CONSTANTS.CLIENT_SESSION_DEFAULT_MAX_INACTIVE_INTERVAL
        self.is_new = True
        self.attributes = AttributeStore()


    def is_expired(self, now_ms: int) -> bool:
        return ClientSessionHandler.is_expired(self.last_accessed_time, self.max_inactive_interval, now_ms)


    # Attribute shortcuts
    def attribute(self, name: str, default: typing.Any = None) -> VALIDATION.JSONValue:
        return self.attributes.get(name, default)

    def set_attribute(self, name: str, value: typing.Any) -> None:
        self.attributes.set(name, value)

    def remove_attribute(self, name: str) -> None:
        self.attributes.remove(name)


    """
        Canonical payload serialized inside the envelope.

        @return dict: {id, creationTime, lastAccessedTime, maxInactiveInterval, attributes}
    """
    def to_payload(self) -> typing.Dict[str, typing.Any]:
        return {
            "id": self.id,
            "creationTime": self.creation_time,
            "lastAccessedTime": self.last_accessed_time,
            "maxInactiveInterval": self.max_inactive_interval,
            "attributes": self.attributes.to_dict(),
        }



"""
    Cookie the HTTP layer should write for a saved session.

    max_age is the session's inactivity interval in seconds, or None for a
    browser-session cookie when the session never expires.
"""
@dataclass(frozen=True)
class CookieAttributes:

    name: str
    value: str
    max_age: typing.Optional[int]
    secure: bool = True
    http_only: bool = True
    path: str = "/"


####################################################################################################
# Client Session Handler
####################################################################################################

class ClientSessionHandler:

    """
        Initialize the handler with its key provider and codec.

        @param key_manager (KeyManager): Owner of the process-wide secret key.
        @param codec (EnvelopeCodec | None): Envelope codec, built on the handler clock by default.
        @param audit_log (AuditLog | None): Audit sink for decode failures.
        @param clock (callable | None): Returns epoch milliseconds.
        @param cookie_name (str): Name of the cookie carrying the token.
        @ensures The handler never retains key material; it asks the KeyManager per call.
    """
    def __init__(self, key_manager: KeyManager, codec: typing.Optional[EnvelopeCodec] = None, audit_log: typing.Optional[AuditLog] = None, clock: typing.Optional[typing.Callable[[], int]] = None, cookie_name: str = CONSTANTS.CLIENT_SESSION_COOKIE_NAME) -> None:
        try:
            if not isinstance(key_manager, KeyManager):
                raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "ClientSessionHandler requires KeyManager instance", "key_manager")

            VALIDATION.validate_string(cookie_name, ApplicationCodes.INVALID_TYPE, "cookie_name")

            self._key_manager = key_manager
            self._clock = clock or _current_time_ms
            self._codec = codec if codec is not None else EnvelopeCodec(clock=self._clock)
            self._audit_log = audit_log if audit_log is not None else AuditLog()
            self._cookie_name = cookie_name

        except CookieVaultError:
            raise

        except Exception:
            raise CookieVaultError(ApplicationCodes.SESSION_STORE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Failed to initialize ClientSessionHandler", "session_handler")


    @property
    def cookie_name(self) -> str:
        return self._cookie_name


    def new_session(self) -> ClientSession:
        return ClientSession.create(self._clock())


    """
        Inactivity check shared by load() and ClientSession.is_expired().

        @return bool: True when interval > 0 and more than interval seconds elapsed since last access.
    """
    @staticmethod
    def is_expired(last_accessed_time: int, max_inactive_interval: int, now_ms: int) -> bool:
        return max_inactive_interval > 0 and (now_ms - last_accessed_time) > max_inactive_interval * 1000



    """
        Restore the session carried by a cookie value.

        @param raw_cookie (str | None): Cookie text, or None when the cookie is absent.
        @return ClientSession: Restored session, or a new one when the cookie is absent,
                no key exists yet, or the restored session has expired.
        @ensures Raises a SessionDecodeError subclass for tampered, malformed or unreadable cookies.
    """
    def load(self, raw_cookie: typing.Optional[str]) -> ClientSession:

        # No cookie, new session
        if raw_cookie is None or raw_cookie == "":
            return self.new_session()

        # No key was ever generated or loaded, so this cookie cannot be ours
        key = self._key_manager.peek_key()
        if key is None:
            self._audit_log.event(event="client_session_without_key", cookie_name=self._cookie_name)
            return self.new_session()

        # Verify then decrypt
        plaintext = self._codec.decrypt(key, raw_cookie)

        # Parse { id, creationTime, lastAccessedTime, maxInactiveInterval, attributes }
        payload = self._validate_payload(VALIDATION.decode_json_bytes_to_dict(plaintext))

        now = self._clock()
        if ClientSessionHandler.is_expired(payload["lastAccessedTime"], payload["maxInactiveInterval"], now):
            return self.new_session()

        try:
            attributes = AttributeStore.from_dict(payload["attributes"])
        except AttributeTypeError as e:
            raise SchemaError(f"Invalid attribute value: {e.detail}", "attributes")

        # Restore session, refresh last access and keep the interval
        return ClientSession(
            id=payload["id"],
            creation_time=payload["creationTime"],
            last_accessed_time=max(now, payload["creationTime"]),
            max_inactive_interval=payload["maxInactiveInterval"],
            is_new=False,
            attributes=attributes,
        )



    """
        Restore the session, degrading to a new one when the cookie cannot be decoded.

        @param raw_cookie (str | None): Cookie text, or None when the cookie is absent.
        @param create (bool): When False, return None instead of a new session.
        @return ClientSession | None: Restored or new session; never raises SessionDecodeError.
        @ensures Every decode failure is written to the audit log with its application code.
    """
    def load_or_create(self, raw_cookie: typing.Optional[str], create: bool = True) -> typing.Optional[ClientSession]:
        try:
            session = self.load(raw_cookie)

        except SessionDecodeError as e:
            self._audit_log.event(event="client_session_decode_failure", cookie_name=self._cookie_name, error_code=e.application_code, field=e.field, detail=e.detail)
            session = None

        # load() only hands back restored sessions with is_new False
        if session is None or session.is_new:
            return self.new_session() if create else None

        return session



    """
        Seal a session into a cookie token.

        @param session (ClientSession | None): Session to save.
        @return tuple[str, CookieAttributes] | None: Token and recommended cookie, None when there is no session.
        @ensures last_accessed_time is refreshed and a key is generated on first use.
    """
    def save(self, session: typing.Optional[ClientSession]) -> typing.Optional[typing.Tuple[str, CookieAttributes]]:

        # Skip saving if no client session is used
        if session is None:
            return None

        try:
            if not isinstance(session, ClientSession):
                raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "save() requires a ClientSession", "session")

            # Only seal state that load() will accept back
            self._validate_session(session)

            session.last_accessed_time = max(self._clock(), session.creation_time)

            plaintext = VALIDATION.encode_dict_to_json_bytes(session.to_payload())

            # Get (or create) the secret key
            key = self._key_manager.current_key()

            token = self._codec.encrypt(key, plaintext)

            max_age = session.max_inactive_interval if session.max_inactive_interval > 0 else None
            return token, CookieAttributes(name=self._cookie_name, value=token, max_age=max_age)

        except CookieVaultError:
            raise

        except Exception:
            raise CookieVaultError(ApplicationCodes.SESSION_STORE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Failed to save client session", "session")



    def _validate_session(self, session: ClientSession) -> None:

        if not isinstance(session.id, str) or not session.id:
            raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "Session id must be a non-empty string", "id")

        if not VALIDATION.is_strict_int(session.creation_time):
            raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "creation_time must be an integer", "creation_time")

        if not VALIDATION.is_strict_int(session.max_inactive_interval):
            raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "max_inactive_interval must be an integer", "max_inactive_interval")

        if not isinstance(session.attributes, AttributeStore):
            raise CookieVaultError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "attributes must be an AttributeStore", "attributes")



    def _validate_payload(self, payload: typing.Dict[str, typing.Any]) -> typing.Dict[str, typing.Any]:

        keys = set(payload.keys())
        missing = CONSTANTS._SESSION_PAYLOAD_FIELDS - keys
        if missing:
            raise SchemaError(f"Session payload is missing fields: {', '.join(sorted(missing))}", "payload")

        unknown = keys - CONSTANTS._SESSION_PAYLOAD_FIELDS
        if unknown:
            raise SchemaError(f"Session payload has unknown fields: {', '.join(sorted(unknown))}", "payload")

        if not isinstance(payload["id"], str) or not payload["id"]:
            raise SchemaError("id must be a non-empty string", "id")

        for name in CONSTANTS._SESSION_PAYLOAD_INT_FIELDS:
            if not VALIDATION.is_strict_int(payload[name]):
                raise SchemaError(f"{name} must be an integer", name)

        if not isinstance(payload["attributes"], dict):
            raise SchemaError("attributes must be a JSON object", "attributes")

        if payload["lastAccessedTime"] < payload["creationTime"]:
            raise SchemaError("lastAccessedTime precedes creationTime", "lastAccessedTime")

        return payload
