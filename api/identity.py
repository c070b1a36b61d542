"""
Anonymous identity for forum participants.

SECURITY:
- Ids are random and carry only a creation timestamp. They are never derived
  from an account, a device fingerprint, or anything persisted beyond the
  browsing session.
- Storage must be session-scoped (a non-permanent Flask session cookie),
  never a long-lived store.
"""
import json
import re
import secrets
import string
import time
from collections.abc import MutableMapping
from http.server import BaseHTTPRequestHandler

from api.log import get_logger
from api.pseudonym import generate_pseudonym

logger = get_logger(__name__)

SESSION_KEY = "safeharbor_anonymous_id"
ID_PREFIX = "anon_"
TOKEN_LENGTH = 8

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits
_BASE36_DIGITS = string.digits + string.ascii_lowercase
_ANON_ID_RE = re.compile(r"anon_[A-Za-z0-9_-]{1,64}")


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def new_anonymous_id(now_ms: int = None) -> str:
    """anon_<8 random alphanumerics>_<base36 millis>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))
    return f"{ID_PREFIX}{token}_{to_base36(now_ms)}"


def is_anonymous_id(value) -> bool:
    """True if value has the shape of an anonymous id."""
    return isinstance(value, str) and _ANON_ID_RE.fullmatch(value) is not None


class AnonymousIdentity:
    """
    Session-context object holding one anonymous id.

    Pass the session mapping in explicitly; with no storage (or storage that
    refuses writes) the id only lives on this object, i.e. for the current
    request or page load.
    """

    def __init__(self, storage: MutableMapping | None = None):
        self._storage = storage
        self._fallback = None

    def _load(self) -> str | None:
        if self._storage is not None:
            try:
                stored = self._storage.get(SESSION_KEY)
            except RuntimeError:
                # Flask raises RuntimeError when no session is available.
                stored = None
            if is_anonymous_id(stored):
                return stored
        return self._fallback

    def _save(self, anonymous_id: str) -> None:
        self._fallback = anonymous_id
        if self._storage is None:
            return
        try:
            self._storage[SESSION_KEY] = anonymous_id
        except RuntimeError:
            logger.warning("Session storage unavailable; anonymous id kept in memory only")

    def get_or_create_id(self) -> str:
        current = self._load()
        if current:
            return current
        anonymous_id = new_anonymous_id()
        self._save(anonymous_id)
        return anonymous_id

    def regenerate_id(self) -> str:
        """Discard the current id and start a fresh anonymous identity."""
        anonymous_id = new_anonymous_id()
        self._save(anonymous_id)
        logger.info("Anonymous identity regenerated")
        return anonymous_id

    @property
    def pseudonym(self) -> str:
        return generate_pseudonym(self.get_or_create_id())

    def to_dict(self) -> dict:
        anonymous_id = self.get_or_create_id()
        return {"anonymousId": anonymous_id, "pseudonym": generate_pseudonym(anonymous_id)}


class handler(BaseHTTPRequestHandler):
    """
    Vercel serverless: /api/identity
    There is no server session here, so every call issues a fresh id; the
    browser keeps it in sessionStorage for the rest of the session.
    """

    def do_GET(self):
        self._send(200, AnonymousIdentity().to_dict())

    def do_POST(self):
        identity = AnonymousIdentity()
        identity.regenerate_id()
        self._send(200, identity.to_dict())

    def do_PUT(self):
        self._method_not_allowed()

    def do_PATCH(self):
        self._method_not_allowed()

    def do_DELETE(self):
        self._method_not_allowed()

    def _method_not_allowed(self):
        self._send(405, {"error": "Method not allowed"}, allow="GET, POST")

    def _send(self, status, body, allow=None):
        self.send_response(status)
        self.send_header("Content-type", "application/json")
        self.send_header("Cache-Control", "no-store")
        if allow:
            self.send_header("Allow", allow)
        self.end_headers()
        self.wfile.write(json.dumps(body).encode("utf-8"))
