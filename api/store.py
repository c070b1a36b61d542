"""
Forum persistence: Supabase (hosted Postgres) and an in-memory store for
local development and tests.

Rows use the database column names:
  forum_threads(id, title, author_id, created_at, last_activity)
  forum_posts(id, thread_id, content, author_id, created_at)
Timestamps are ISO-8601 strings with microseconds, so they sort as text.

Writes go through the create_forum_thread / create_forum_reply functions in
supabase_schema.sql; each is a single transaction.
"""
import threading

from postgrest.exceptions import APIError

from api.config import Settings, load_settings
from api.log import get_logger

logger = get_logger(__name__)

THREAD_COLUMNS = "id, title, author_id, created_at, last_activity"
POST_COLUMNS = "id, thread_id, content, author_id, created_at"
SUMMARY_COLUMNS = "thread_id, post_count, opening_content"

# PostgREST answers 416 with this code when the requested range starts past the last row.
RANGE_NOT_SATISFIABLE = "PGRST103"


class SupabaseForumStore:
    """Thin relay to Supabase. Errors from the client propagate unchanged."""

    def __init__(self, client):
        self.client = client

    def list_threads(self, offset: int, limit: int) -> tuple[list, int]:
        try:
            result = (
                self.client.table("forum_threads")
                .select(THREAD_COLUMNS, count="exact")
                .order("last_activity", desc=True)
                .order("created_at", desc=True)
                .order("id", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except APIError as e:
            if e.code != RANGE_NOT_SATISFIABLE:
                raise
            return [], self.count_threads()
        return result.data or [], result.count or 0

    def count_threads(self) -> int:
        result = self.client.table("forum_threads").select("id", count="exact", head=True).execute()
        return result.count or 0

    def post_summaries(self, thread_ids) -> dict:
        """{thread_id: {"count": n, "first": opening post content}}"""
        if not thread_ids:
            return {}
        result = (
            self.client.table("forum_thread_summaries")
            .select(SUMMARY_COLUMNS)
            .in_("thread_id", list(thread_ids))
            .execute()
        )
        return {
            row["thread_id"]: {"count": row.get("post_count") or 0, "first": row.get("opening_content") or ""}
            for row in result.data or []
        }

    def get_thread(self, thread_id: str) -> dict | None:
        result = (
            self.client.table("forum_threads")
            .select(THREAD_COLUMNS)
            .eq("id", thread_id)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        return rows[0] if rows else None

    def list_posts(self, thread_id: str) -> list:
        result = (
            self.client.table("forum_posts")
            .select(POST_COLUMNS)
            .eq("thread_id", thread_id)
            .order("created_at", desc=False)
            .order("id", desc=False)
            .execute()
        )
        return result.data or []

    def create_thread(self, thread: dict, post: dict) -> None:
        self.client.rpc(
            "create_forum_thread",
            {
                "p_thread_id": thread["id"],
                "p_post_id": post["id"],
                "p_title": thread["title"],
                "p_content": post["content"],
                "p_author_id": thread["author_id"],
                "p_created_at": thread["created_at"],
            },
        ).execute()

    def create_reply(self, post: dict) -> bool:
        """Insert the post and bump last_activity. False if the thread does not exist."""
        result = self.client.rpc(
            "create_forum_reply",
            {
                "p_post_id": post["id"],
                "p_thread_id": post["thread_id"],
                "p_content": post["content"],
                "p_author_id": post["author_id"],
                "p_created_at": post["created_at"],
            },
        ).execute()
        return result.data is True


class InMemoryForumStore:
    """Process-local store with the same query shapes as SupabaseForumStore."""

    def __init__(self):
        self._lock = threading.Lock()
        self._threads = {}
        self._posts = []

    def list_threads(self, offset: int, limit: int) -> tuple[list, int]:
        with self._lock:
            rows = sorted(
                self._threads.values(),
                key=lambda t: (t["last_activity"], t["created_at"], t["id"]),
                reverse=True,
            )
        return [dict(r) for r in rows[offset:offset + limit]], len(rows)

    def post_summaries(self, thread_ids) -> dict:
        wanted = set(thread_ids)
        summaries = {}
        with self._lock:
            rows = sorted((p for p in self._posts if p["thread_id"] in wanted), key=lambda p: (p["created_at"], p["id"]))
        for row in rows:
            entry = summaries.setdefault(row["thread_id"], {"count": 0, "first": row["content"]})
            entry["count"] += 1
        return summaries

    def get_thread(self, thread_id: str) -> dict | None:
        with self._lock:
            row = self._threads.get(thread_id)
        return dict(row) if row else None

    def list_posts(self, thread_id: str) -> list:
        with self._lock:
            rows = [dict(p) for p in self._posts if p["thread_id"] == thread_id]
        rows.sort(key=lambda p: (p["created_at"], p["id"]))
        return rows

    def create_thread(self, thread: dict, post: dict) -> None:
        with self._lock:
            self._threads[thread["id"]] = dict(thread)
            try:
                self._insert_post(post)
            except Exception:
                del self._threads[thread["id"]]
                raise

    def create_reply(self, post: dict) -> bool:
        with self._lock:
            thread = self._threads.get(post["thread_id"])
            if thread is None:
                return False
            self._insert_post(post)
            thread["last_activity"] = post["created_at"]
            return True

    def _insert_post(self, post: dict) -> None:
        self._posts.append(dict(post))


_memory_store = None


def get_store(settings: Settings = None):
    """Store for the configured backend, or None when nothing is configured."""
    global _memory_store
    settings = settings or load_settings()
    if settings.forum_store == "memory":
        if _memory_store is None:
            logger.info("Using in-memory forum store")
            _memory_store = InMemoryForumStore()
        return _memory_store
    if not settings.supabase_configured:
        return None
    from supabase import create_client
    return SupabaseForumStore(create_client(settings.supabase_url, settings.supabase_key))
