"""
Environment configuration.
Set env: SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY), SECRET_KEY.
Optional: FORUM_STORE=memory for a local store, rate limit knobs below.
"""
import os
import pathlib
from dataclasses import dataclass

from dotenv import load_dotenv

from api.security import clamp_int

load_dotenv(dotenv_path=pathlib.Path(__file__).resolve().parent.parent / ".env")


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    forum_store: str
    secret_key: str
    thread_rate: int
    reply_rate: int
    forum_rate_window: int
    api_rate_max: int
    api_rate_window: int
    port: int
    debug: bool

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_settings(env=None) -> Settings:
    env = os.environ if env is None else env
    return Settings(
        supabase_url=env.get("SUPABASE_URL") or env.get("NEXT_PUBLIC_SUPABASE_URL", ""),
        supabase_key=(
            env.get("SUPABASE_SERVICE_ROLE_KEY")
            or env.get("SUPABASE_ANON_KEY")
            or env.get("NEXT_PUBLIC_SUPABASE_ANON_KEY", "")
        ),
        forum_store=(env.get("FORUM_STORE") or "supabase").strip().lower(),
        secret_key=env.get("SECRET_KEY", ""),
        thread_rate=clamp_int(env.get("FORUM_THREAD_RATE"), 1, 10000, default=5),
        reply_rate=clamp_int(env.get("FORUM_REPLY_RATE"), 1, 10000, default=10),
        forum_rate_window=clamp_int(env.get("FORUM_RATE_WINDOW"), 1, 86400, default=3600),
        api_rate_max=clamp_int(env.get("API_RATE_MAX"), 1, 100000, default=30),
        api_rate_window=clamp_int(env.get("API_RATE_WINDOW"), 1, 86400, default=60),
        port=clamp_int(env.get("PORT"), 1, 65535, default=5001),
        debug=(env.get("FLASK_DEBUG") or "false").lower() == "true",
    )
