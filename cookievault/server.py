#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: server.py

    Description:
        Flask integration for CookieVault. Configures the key manager from the
        environment, loads the client session lazily through get_client_session()
        so only requests that use the session are answered with a re-sealed
        cookie, and exposes a small session API. Normalizes all exceptions
        through the centralized ErrorHandler to maintain consistent error
        packets.
"""


import os
import typing
from flask import Flask, current_app, g, jsonify, request

from cookievault.utilities.audit_log import AuditLog
from cookievault.encryption.key_manager import KeyManager
from cookievault.handlers.session_handler import ClientSessionHandler, ClientSession
from cookievault.handlers.error_handler import ErrorHandler, ApplicationCodes, HTTPCodes, CookieVaultError
import cookievault.constants as CONSTANTS


# Environment variables read by create_app()
_ENV_SECRET_KEY = "COOKIEVAULT_SECRET_KEY"
_ENV_COOKIE_NAME = "COOKIEVAULT_COOKIE_NAME"
_ENV_AUDIT_LOG = "COOKIEVAULT_AUDIT_LOG"


#####################################################################################################################################################################

"""
    Create and configure the CookieVault Flask application.

    @param config (dict | None): Overrides applied after the environment defaults.
    @return Flask: Configured application instance.
    @ensures A malformed COOKIEVAULT_SECRET_KEY raises KeyFormatError here, aborting startup.
"""
def create_app(config: typing.Optional[typing.Dict[str, typing.Any]] = None) -> Flask:

    app = Flask(__name__)

    # Environment defaults
    app.config["COOKIEVAULT_SECRET_KEY"] = os.environ.get(_ENV_SECRET_KEY) or None
    app.config["COOKIEVAULT_COOKIE_NAME"] = os.environ.get(_ENV_COOKIE_NAME, CONSTANTS.CLIENT_SESSION_COOKIE_NAME)
    app.config["COOKIEVAULT_AUDIT_LOG"] = os.environ.get(_ENV_AUDIT_LOG) or None

    # Enforce a 64 KB payload limit, cookies are a few KB at most
    app.config["MAX_CONTENT_LENGTH"] = 65_536

    if config:
        app.config.update(config)


    ################################################################################################
    # Initialize Handlers
    ################################################################################################

    # Instantiate audit log for non-sensitive operational logging
    app.audit_log = AuditLog(app.config["COOKIEVAULT_AUDIT_LOG"])

    # Centralized error handler
    app.error_handler = ErrorHandler(app.audit_log)

    # Secret key provider, loads the operator key or generates lazily on first save
    app.key_manager = KeyManager(hex_key=app.config["COOKIEVAULT_SECRET_KEY"], audit_log=app.audit_log)

    # Client session load/save orchestration
    app.session_handler = ClientSessionHandler(key_manager=app.key_manager, audit_log=app.audit_log, cookie_name=app.config["COOKIEVAULT_COOKIE_NAME"])



    ################################################################################################
    # Request hooks
    ################################################################################################

    """
        Seal the client session into the response cookie.

        @param response (flask.Response): Outgoing response.
        @return flask.Response: Response with the session cookie set, untouched when no route used the session.
    """
    @app.after_request
    def save_client_session(response):
        session = g.get("client_session")

        # Skip saving if no client session is used
        saved = app.session_handler.save(session)
        if saved is None:
            return response

        _, cookie = saved
        response.set_cookie(cookie.name, cookie.value, max_age=cookie.max_age, path=cookie.path, secure=cookie.secure, httponly=cookie.http_only)
        return response



    ################################################################################################
    # ROUTES
    ################################################################################################

    """
        Describe the current client session.

        @return flask.Response: JSON with id, isNew, timestamps, interval and attributes.
    """
    @app.get("/api/session")
    def describe_session():
        return jsonify(_session_to_json(get_client_session())), HTTPCodes.OK


    """
        Merge a JSON object into the session attributes; null values are stored as explicit nulls.

        @require Content-Type is application/json and the body is a JSON object
        @return flask.Response: The updated session description.
    """
    @app.post("/api/session/attributes")
    def set_attributes():
        try:
            # Require JSON content type
            content_type = request.headers.get("Content-Type", "").lower()
            if "application/json" not in content_type:
                raise CookieVaultError(ApplicationCodes.INVALID_CONTENT_TYPE, HTTPCodes.BAD_REQUEST, f"Invalid Content-Type header: {content_type}", "Content-Type")

            # Parse JSON body strictly
            try:
                body = request.get_json(force=True)
            except Exception:
                raise CookieVaultError(ApplicationCodes.MALFORMED_JSON, HTTPCodes.BAD_REQUEST, "Failed to parse JSON body", "body")

            if not isinstance(body, dict):
                raise CookieVaultError(ApplicationCodes.INVALID_REQUEST, HTTPCodes.BAD_REQUEST, "Invalid JSON structure (expected object)", "body")

            # Validate every value before any is applied
            get_client_session().attributes.update(body)

            return jsonify(_session_to_json(get_client_session())), HTTPCodes.OK

        except Exception as e:
            clean_packet, status = app.error_handler.handle_server_error(e, context="set_attributes_error")
            return jsonify(clean_packet), status


    """
        Remove one attribute from the session.

        @return flask.Response: The updated session description.
    """
    @app.delete("/api/session/attributes/<name>")
    def remove_attribute(name: str):
        get_client_session().remove_attribute(name)
        return jsonify(_session_to_json(get_client_session())), HTTPCodes.OK


    """
        Invalidate the client session; the fresh session is sealed by the after_request hook.

        @return flask.Response: The new session description.
    """
    @app.post("/api/session/invalidate")
    def invalidate_session():
        get_client_session().invalidate()
        return jsonify(_session_to_json(get_client_session())), HTTPCodes.OK



    ################################################################################################
    # GLOBAL ERROR HANDLERS
    ################################################################################################

    """
        413 Payload Too Large exception into a CookieVault error packet.
    """
    @app.errorhandler(413)
    def handle_payload_too_large(_e):

        e = CookieVaultError(ApplicationCodes.INVALID_LENGTH, HTTPCodes.BAD_REQUEST, "Payload exceeds maximum size limit", "body")
        clean_packet, status = app.error_handler.handle_server_error(e, context="payload_too_large")
        return jsonify(clean_packet), status


    """
        404 Not Found into a CookieVault error packet.
    """
    @app.errorhandler(404)
    def handle_not_found(_e):

        e = CookieVaultError(ApplicationCodes.NOT_FOUND, HTTPCodes.NOT_FOUND, f"No route for {request.path}", "path")
        clean_packet, status = app.error_handler.handle_server_error(e, context="not_found")
        return jsonify(clean_packet), status


    """
        405 Method Not Allowed into a CookieVault error packet.
    """
    @app.errorhandler(405)
    def handle_method_not_allowed(_e):

        e = CookieVaultError(ApplicationCodes.INVALID_REQUEST, HTTPCodes.METHOD_NOT_ALLOWED, f"Invalid HTTP method: {request.method}", "http_method")
        clean_packet, status = app.error_handler.handle_server_error(e, context="method_not_allowed")
        return jsonify(clean_packet), status


    """
        Catch-all handler for any unexpected exception raised during request processing.
    """
    @app.errorhandler(Exception)
    def handle_internal_error(e: Exception):

        clean_packet, status = app.error_handler.handle_server_error(e, context="global_error_handler")
        return jsonify(clean_packet), status

    return app



"""
    Return the client session for the current request, loading it on first use.

    @param create (bool): Create a fresh session when the cookie does not restore one.
    @return ClientSession | None: The request's session, None when create is False and there is none.
    @ensures Undecodable cookies are audited and replaced; the session is cached on flask.g.
"""
def get_client_session(create: bool = True) -> typing.Optional[ClientSession]:

    session = g.get("client_session")
    if session is not None:
        return session

    handler = current_app.session_handler
    session = handler.load_or_create(request.cookies.get(handler.cookie_name), create=create)
    if session is not None:
        g.client_session = session
    return session



def _session_to_json(session: ClientSession) -> typing.Dict[str, typing.Any]:
    return {
        "id": session.id,
        "isNew": session.is_new,
        "creationTime": session.creation_time,
        "lastAccessedTime": session.last_accessed_time,
        "maxInactiveInterval": session.max_inactive_interval,
        "attributes": session.attributes.to_dict(),
    }
