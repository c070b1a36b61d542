"""
Vercel serverless: /api/forum
  GET  ?page=1&limit=10      — list threads, most recently active first
  GET  ?threadId=<id>        — one thread with its replies (oldest first)
  POST {title?, content, authorId, threadId?} — threadId present: reply, else new thread
Requires: SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY (or FORUM_STORE=memory)
"""
import json
from http.server import BaseHTTPRequestHandler
from urllib.parse import parse_qs, urlparse

from api.config import load_settings
from api.errors import ForumError, RateLimited, ServiceUnavailable, ValidationError
from api.forum_service import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, ForumService
from api.log import get_logger
from api.ratelimit import ForumRateLimits
from api.store import get_store

logger = get_logger(__name__)

_limits = ForumRateLimits.from_settings(load_settings())


def get_forum_service() -> ForumService:
    store = get_store()
    if store is None:
        raise ServiceUnavailable()
    return ForumService(store)


def handle_get(query, service_factory=get_forum_service) -> tuple[int, dict]:
    try:
        service = service_factory()
        thread_id = query.get("threadId")
        if thread_id:
            return 200, service.get_thread(thread_id)
        page = query.get("page") or DEFAULT_PAGE
        limit = query.get("limit") or DEFAULT_PAGE_SIZE
        return 200, service.list_threads(page, limit)
    except ForumError as e:
        return e.to_response()


def handle_post(data, service_factory=get_forum_service, limits: ForumRateLimits = None,
                default_author: str = None) -> tuple[int, dict]:
    limits = limits or _limits
    try:
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON")
        content = data.get("content")
        author_id = data.get("authorId") or default_author
        thread_id = data.get("threadId")
        if not author_id or not content:
            raise ValidationError("Missing required fields")

        service = service_factory()
        is_reply = bool(thread_id)
        if is_reply:
            service.check_reply(content, author_id)
        else:
            service.check_thread(data.get("title"), content, author_id)
        if not limits.allow(str(author_id), is_reply):
            logger.warning("Forum write rate limit hit (%s)", "reply" if is_reply else "thread")
            raise RateLimited()
        if is_reply:
            return 201, service.create_reply(thread_id, content, author_id)
        return 201, service.create_thread(data.get("title"), content, author_id)
    except ForumError as e:
        return e.to_response()


def parse_query(path: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlparse(path).query).items() if v}


class handler(BaseHTTPRequestHandler):
    def do_GET(self):
        status, body = handle_get(parse_query(self.path), service_factory=get_forum_service)
        self._send(status, body)

    def do_POST(self):
        try:
            content_len = int(self.headers.get("Content-Length") or 0)
            raw = self.rfile.read(content_len).decode("utf-8") if content_len > 0 else "{}"
            data = json.loads(raw)
        except ValueError:
            # bad Content-Length, undecodable bytes and malformed JSON all land here
            self._send(400, {"error": "Invalid JSON"})
            return
        status, body = handle_post(data, service_factory=get_forum_service)
        self._send(status, body)

    def do_PUT(self):
        self._method_not_allowed()

    def do_PATCH(self):
        self._method_not_allowed()

    def do_DELETE(self):
        self._method_not_allowed()

    def do_OPTIONS(self):
        self.send_response(200)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def _method_not_allowed(self):
        self._send(405, {"error": "Method not allowed"}, allow="GET, POST")

    def _send(self, status, body, allow=None):
        self.send_response(status)
        self.send_header("Content-type", "application/json")
        self.send_header("Access-Control-Allow-Origin", "*")
        if allow:
            self.send_header("Allow", allow)
        self.end_headers()
        self.wfile.write(json.dumps(body).encode("utf-8"))
