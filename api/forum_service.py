"""
Forum read/write service: validates, screens and relays threads and posts
between the API routes and the forum store.

SECURITY:
- Authors are anonymous ids only; anything else is rejected.
- Titles and bodies are screened for emails and phone numbers. Rejections
  carry a category message, never the matched text.
- Post content is never logged.
"""
import math
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

from api.errors import ForumError, NotFound, StoreFailure, ValidationError
from api.identity import is_anonymous_id
from api.log import get_logger
from api.pseudonym import generate_pseudonym
from api.security import ContentScreen, clamp_int, strip_control_chars, validate_uuid

logger = get_logger(__name__)

TITLE_MIN, TITLE_MAX = 3, 200
THREAD_CONTENT_MIN, THREAD_CONTENT_MAX = 10, 5000
REPLY_CONTENT_MIN, REPLY_CONTENT_MAX = 10, 2000

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
SNIPPET_LENGTH = 140


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def thread_to_json(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "title": row["title"],
        "authorId": row["author_id"],
        "authorName": generate_pseudonym(row["author_id"]),
        "createdAt": row["created_at"],
        "lastActivity": row.get("last_activity") or row["created_at"],
    }


def post_to_json(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "threadId": str(row["thread_id"]),
        "content": row["content"],
        "authorId": row["author_id"],
        "authorName": generate_pseudonym(row["author_id"]),
        "createdAt": row["created_at"],
    }


def make_snippet(content: str, length: int = SNIPPET_LENGTH) -> str:
    content = " ".join((content or "").split())
    if len(content) <= length:
        return content
    return content[:length - 1].rstrip() + "…"


class ForumService:
    def __init__(self, store, screen: ContentScreen = None, clock=None):
        self.store = store
        self.screen = screen or ContentScreen.default()
        self.clock = clock or _utcnow

    # ── Reads ──

    def list_threads(self, page=DEFAULT_PAGE, page_size=DEFAULT_PAGE_SIZE) -> dict:
        """Most recently active threads first. An empty forum has one (empty) page."""
        page = clamp_int(page, 1, 1_000_000, default=DEFAULT_PAGE)
        page_size = clamp_int(page_size, 1, MAX_PAGE_SIZE, default=DEFAULT_PAGE_SIZE)
        offset = (page - 1) * page_size

        with self._store_call("list threads"):
            rows, total = self.store.list_threads(offset, page_size)
            summaries = self.store.post_summaries([r["id"] for r in rows]) if rows else {}

        threads = []
        for row in rows:
            summary = summaries.get(row["id"], {"count": 0, "first": ""})
            item = thread_to_json(row)
            item["replyCount"] = max(summary["count"] - 1, 0)
            item["snippet"] = make_snippet(summary["first"])
            threads.append(item)

        return {
            "threads": threads,
            "page": page,
            "totalPages": max(1, math.ceil(total / page_size)),
        }

    def get_thread(self, thread_id) -> dict:
        thread_id = validate_uuid(thread_id if isinstance(thread_id, str) else "")
        if not thread_id:
            raise NotFound()
        with self._store_call("get thread"):
            row = self.store.get_thread(thread_id)
            if row is None:
                raise NotFound()
            posts = self.store.list_posts(thread_id)
        thread = thread_to_json(row)
        thread["replies"] = [post_to_json(p) for p in posts]
        return thread

    # ── Writes ──

    def check_thread(self, title, content, author_id) -> tuple[str, str]:
        """Validate and screen a new thread; returns the cleaned (title, content)."""
        title = self._require_text(title, "Title", TITLE_MIN, TITLE_MAX)
        content = self._require_text(content, "Content", THREAD_CONTENT_MIN, THREAD_CONTENT_MAX)
        self._require_author(author_id)
        self._screen(title, content)
        return title, content

    def check_reply(self, content, author_id) -> str:
        content = self._require_text(content, "Content", REPLY_CONTENT_MIN, REPLY_CONTENT_MAX)
        self._require_author(author_id)
        self._screen(content)
        return content

    def create_thread(self, title, content, author_id) -> dict:
        title, content = self.check_thread(title, content, author_id)

        now = self._timestamp()
        thread = {
            "id": str(uuid.uuid4()),
            "title": title,
            "author_id": author_id,
            "created_at": now,
            "last_activity": now,
        }
        post = {
            "id": str(uuid.uuid4()),
            "thread_id": thread["id"],
            "content": content,
            "author_id": author_id,
            "created_at": now,
        }
        with self._store_call("create thread"):
            self.store.create_thread(thread, post)
        logger.info("Thread %s created", thread["id"])
        return thread_to_json(thread)

    def create_reply(self, thread_id, content, author_id) -> dict:
        """Store a post and bump its thread's lastActivity in one store write."""
        content = self.check_reply(content, author_id)
        thread_id = validate_uuid(thread_id if isinstance(thread_id, str) else "")
        if not thread_id:
            raise NotFound()

        now = self._timestamp()
        post = {
            "id": str(uuid.uuid4()),
            "thread_id": thread_id,
            "content": content,
            "author_id": author_id,
            "created_at": now,
        }
        with self._store_call("create reply"):
            if not self.store.create_reply(post):
                raise NotFound()
        logger.info("Reply %s added to thread %s", post["id"], thread_id)
        return post_to_json(post)

    # ── Helpers ──

    def _timestamp(self) -> str:
        return self.clock().astimezone(timezone.utc).isoformat(timespec="microseconds")

    @staticmethod
    def _require_text(value, label: str, low: int, high: int) -> str:
        if not isinstance(value, str):
            raise ValidationError(f"{label} is required")
        text = strip_control_chars(value)
        if not text:
            raise ValidationError(f"{label} is required")
        if len(text) < low:
            raise ValidationError(f"{label} must be at least {low} characters")
        if len(text) > high:
            raise ValidationError(f"{label} must be at most {high} characters")
        return text

    @staticmethod
    def _require_author(author_id) -> None:
        if not author_id:
            raise ValidationError("Missing required fields")
        if not is_anonymous_id(author_id):
            raise ValidationError("Invalid author ID format")

    def _screen(self, *texts: str) -> None:
        rule = self.screen.first_violation(*texts)
        if rule is not None:
            logger.info("Submission rejected by %s rule", rule.name)
            raise ValidationError(rule.message)

    @contextmanager
    def _store_call(self, operation: str):
        try:
            yield
        except ForumError:
            raise
        except Exception as e:
            logger.error("Store failure during %s: %s", operation, type(e).__name__)
            raise StoreFailure() from e
