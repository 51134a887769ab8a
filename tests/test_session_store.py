from datetime import date, datetime, timedelta, timezone

import pytest

from models import ResultSource, ShadowingSession
from services.session_store import (
    InMemorySessionStore,
    RedisSessionStore,
    apply_session_to_profile,
    calculate_streak_days,
    calculate_weekly_goal,
    create_session_store,
    default_profile,
)

TODAY = date(2026, 10, 21)  # a Wednesday


def at(day, hour=12):
    return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)


def make_session(score, user_id="u1", when=None, study_time=30):
    return ShadowingSession(
        user_id=user_id,
        session_id="s1",
        date=when or at(TODAY),
        study_time=study_time,
        text="你好世界",
        source=ResultSource.REAL_ASSESSMENT,
        overall_score=score,
        accuracy_score=score,
        fluency_score=score,
        completeness_score=score,
        prosody_score=0,
        pause_count=0,
        confidence_score=100,
    )


class FakeRedis:
    """The handful of redis commands the session store uses."""

    def __init__(self):
        self.strings = {}
        self.lists = {}
        self.hashes = {}

    def lpush(self, key, value):
        self.lists.setdefault(key, []).insert(0, value)

    def lrange(self, key, start, end):
        return self.lists.get(key, [])[start:end + 1]

    def get(self, key):
        return self.strings.get(key)

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.strings:
            return None
        self.strings[key] = value
        return True

    def delete(self, *keys):
        return sum(1 for key in keys if self.strings.pop(key, None) is not None)

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = value

    def hvals(self, key):
        return list(self.hashes.get(key, {}).values())

    def hdel(self, key, field):
        return 1 if self.hashes.get(key, {}).pop(field, None) is not None else 0


@pytest.fixture(params=["memory", "redis"])
def store(request):
    if request.param == "memory":
        return InMemorySessionStore()
    return RedisSessionStore(FakeRedis())


def test_profile_aggregates_running_average():
    profile = default_profile("u1")
    for score in (80, 90, 81):
        profile = apply_session_to_profile(profile, make_session(score))
    assert profile.total_sessions == 3
    assert profile.total_practices == 3
    assert profile.total_study_time == 90
    assert profile.best_score == 90
    assert profile.average_score == 83.7


def test_streak_counts_consecutive_days_ending_today():
    dates = [at(TODAY), at(TODAY, 8), at(TODAY - timedelta(days=1)), at(TODAY - timedelta(days=3))]
    assert calculate_streak_days(dates, TODAY) == 2


def test_streak_is_zero_without_practice_today():
    assert calculate_streak_days([at(TODAY - timedelta(days=1))], TODAY) == 0


def test_weekly_goal_counts_sessions_since_sunday():
    sunday = date(2026, 10, 18)
    dates = [at(sunday), at(TODAY), at(TODAY, 18), at(sunday - timedelta(days=1))]
    assert calculate_weekly_goal(dates, TODAY) == 60.0


def test_weekly_goal_is_capped():
    assert calculate_weekly_goal([at(TODAY)] * 12, TODAY) == 100


def test_first_access_creates_default_profile(store):
    profile = store.get_profile("new-user")
    assert profile.total_sessions == 0
    assert profile.favorite_texts == []
    assert store.load_profile("new-user") is not None


def test_save_session_assigns_id_and_updates_profile(store):
    saved = store.save_session(make_session(88))
    assert saved.id
    assert store.list_sessions("u1")[0].id == saved.id
    profile = store.get_profile("u1")
    assert profile.total_sessions == 1
    assert profile.best_score == 88


def test_sessions_are_newest_first_and_limited(store):
    for offset in reversed(range(5)):
        store.save_session(make_session(70 + offset, when=at(TODAY - timedelta(days=offset))))
    sessions = store.list_sessions("u1", limit=3)
    assert [s.overall_score for s in sessions] == [70, 71, 72]


def test_sessions_are_kept_per_user(store):
    store.save_session(make_session(70, user_id="a"))
    assert store.list_sessions("b") == []


def test_toggle_favorite_text(store):
    assert store.toggle_favorite_text("u1", "你好") is True
    assert store.get_profile("u1").favorite_texts == ["你好"]
    assert store.toggle_favorite_text("u1", "你好") is False
    assert store.get_profile("u1").favorite_texts == []


def test_add_and_remove_favorite(store):
    favorite = store.add_favorite("u1", "学习中文", title="Lesson 1")
    assert [f.text for f in store.list_favorites("u1")] == ["学习中文"]
    assert store.remove_favorite("u1", favorite.id) is True
    assert store.remove_favorite("u1", favorite.id) is False
    assert store.list_favorites("u1") == []


def test_user_stats(store):
    store.save_session(make_session(80, when=at(TODAY)))
    store.save_session(make_session(90, when=at(TODAY - timedelta(days=1))))
    stats = store.get_user_stats("u1", today=TODAY)
    assert stats.total_sessions == 2
    assert stats.average_score == 85
    assert stats.streak_days == 2
    assert stats.weekly_goal == 40.0


def test_store_backend_follows_url():
    assert isinstance(create_session_store("memory://"), InMemorySessionStore)
    assert isinstance(create_session_store("redis://localhost:6379/0"), RedisSessionStore)



def test_evaluation_slot_is_exclusive_per_session(store):
    assert store.claim_evaluation("s1", "task-1") is True
    assert store.claim_evaluation("s1", "task-2") is False
    assert store.claim_evaluation("s2", "task-3") is True

    assert store.release_evaluation("task-1") == "s1"
    assert store.claim_evaluation("s1", "task-2") is True


def test_releasing_twice_is_harmless(store):
    store.claim_evaluation("s1", "task-1")
    assert store.release_evaluation("task-1") == "s1"
    assert store.release_evaluation("task-1") is None
    assert store.release_evaluation("never-claimed") is None


def test_stale_release_keeps_newer_claim():
    store = InMemorySessionStore()
    store.claim_evaluation("s1", "task-1", ttl=0)
    # task-1's slot expired, so task-2 may take over
    assert store.claim_evaluation("s1", "task-2") is True
    assert store.release_evaluation("task-1") == "s1"
    assert store.claim_evaluation("s1", "task-3") is False


def test_redis_slot_uses_set_nx_with_expiry():
    client = FakeRedis()
    calls = []
    original_set = client.set

    def recording_set(key, value, nx=False, ex=None):
        calls.append((key, nx, ex))
        return original_set(key, value, nx=nx, ex=ex)

    client.set = recording_set
    RedisSessionStore(client).claim_evaluation("s1", "task-1", ttl=120)

    assert calls[0] == ("evaluating:s1", True, 120)
