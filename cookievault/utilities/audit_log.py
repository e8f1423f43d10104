#!/usr/bin/env python3
# -*- coding: utf-8 -*-


from datetime import datetime, timezone
import json
import os
import sys
import typing
import threading

_AUDIT_FILE = os.path.join(os.path.dirname(__file__), "audit.log")

# Environment override for the audit file location
_AUDIT_FILE_ENV = "COOKIEVAULT_AUDIT_LOG"


#####################################################################################################################################################################

"""
    Provides persistent structured audit logging for CookieVault.

    Each event is appended as one JSON object per line. Secret key material is
    never passed here; key generation only records the key fingerprint.
"""
class AuditLog:

	def __init__(self, path: typing.Optional[str] = None):
		self._lock = threading.RLock()
		self._path = path or os.environ.get(_AUDIT_FILE_ENV) or _AUDIT_FILE


	@property
	def path(self) -> str:
		return self._path


	def event(self, **kv: typing.Any):

		# Construct ISO8601Z timestamp
		ts = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

		# Append timestamp to event
		record = {"timestamp": ts}
		record.update(kv)

		with self._lock:
			try:
				with open(self._path, "a", encoding="utf-8") as f:
					json.dump(record, f, ensure_ascii=False, default=str)
					f.write("\n")

			except Exception as e:
				print(f"Audit log write error: {e}", file=sys.stderr)
