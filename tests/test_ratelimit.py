from api.config import load_settings
from api.ratelimit import ForumRateLimits, RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRateLimiter:
    def test_blocks_after_max_events(self):
        limiter = RateLimiter(3, 60, clock=FakeClock())
        assert [limiter.hit("k") for _ in range(4)] == [True, True, True, False]

    def test_keys_are_independent(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())
        assert limiter.hit("a")
        assert limiter.hit("b")
        assert not limiter.hit("a")

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(2, 60, clock=clock)
        assert limiter.hit("k") and limiter.hit("k")
        assert not limiter.hit("k")
        clock.now += 61
        assert limiter.hit("k")

    def test_reset(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())
        limiter.hit("k")
        limiter.reset()
        assert limiter.hit("k")

    def test_idle_keys_are_evicted(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 60, clock=clock)
        for i in range(100):
            limiter.hit(f"client-{i}")
        assert limiter.tracked_keys() == 100

        clock.now += 61
        assert limiter.hit("fresh")
        assert limiter.tracked_keys() == 1

    def test_active_keys_survive_a_sweep(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 60, clock=clock)
        limiter.hit("old")
        clock.now += 30
        limiter.hit("busy")
        clock.now += 31
        limiter.hit("fresh")
        assert limiter.tracked_keys() == 2
        assert not limiter.hit("busy")


class TestForumRateLimits:
    def test_defaults_from_settings(self):
        limits = ForumRateLimits.from_settings(load_settings({}))
        assert limits.threads.max_events == 5
        assert limits.replies.max_events == 10
        assert limits.threads.window_seconds == 3600

    def test_threads_and_replies_counted_separately(self):
        limits = ForumRateLimits(RateLimiter(1, 60), RateLimiter(2, 60))
        assert limits.allow("anon_x", is_reply=False)
        assert not limits.allow("anon_x", is_reply=False)
        assert limits.allow("anon_x", is_reply=True)
        assert limits.allow("anon_x", is_reply=True)
        assert not limits.allow("anon_x", is_reply=True)


class TestSettings:
    def test_env_overrides(self):
        settings = load_settings({
            "SUPABASE_URL": "https://example.supabase.co",
            "SUPABASE_ANON_KEY": "key",
            "FORUM_THREAD_RATE": "2",
            "FORUM_RATE_WINDOW": "nonsense",
            "FORUM_STORE": " Memory ",
        })
        assert settings.supabase_configured
        assert settings.thread_rate == 2
        assert settings.forum_rate_window == 3600
        assert settings.forum_store == "memory"

    def test_service_role_key_preferred(self):
        settings = load_settings({"SUPABASE_SERVICE_ROLE_KEY": "service", "SUPABASE_ANON_KEY": "anon"})
        assert settings.supabase_key == "service"
        assert not settings.supabase_configured
