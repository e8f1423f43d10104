#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
	WSGI entry point for the CookieVault Flask application.
	A WSGI server (mod_wsgi, gunicorn) loads this file and calls `application`,
	which must reference the Flask app returned by create_app().

	Set COOKIEVAULT_SECRET_KEY to 64 hex characters so issued cookies survive
	restarts; without it a key is generated on the first save and every
	outstanding client session is lost when the process exits.
"""

from cookievault.server import create_app

# WSGI servers require this symbol
application = create_app()
