"""
Practice history storage.

The evaluation pipeline hands over one immutable ``ShadowingSession`` per
attempt; the store appends it to the user's log and folds it into the
mutable ``UserProfile`` aggregate (counts, running average, best score).
Favorites and statistics (streak, weekly goal) are served from the same data.

The store also holds one evaluation slot per practice session. The API
claims it before enqueueing; the worker releases it when the task ends.
"""

import logging
import time
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

import redis

from config import Config
from models import FavoriteScript, ShadowingSession, UserProfile, UserStats


def _now() -> datetime:
    return datetime.now(timezone.utc)


def default_profile(user_id: str, now: Optional[datetime] = None) -> UserProfile:
    now = now or _now()
    return UserProfile(user_id=user_id, last_active_date=now, created_at=now, updated_at=now)


def apply_session_to_profile(profile: UserProfile, session: ShadowingSession,
                             now: Optional[datetime] = None) -> UserProfile:
    """Fold one practice session into the profile aggregate."""
    now = now or _now()
    total_sessions = profile.total_sessions + 1
    total_score = profile.average_score * profile.total_sessions + session.overall_score
    return profile.model_copy(update={
        "total_practices": profile.total_practices + session.practice_count,
        "total_study_time": profile.total_study_time + session.study_time,
        "total_sessions": total_sessions,
        "best_score": max(profile.best_score, session.overall_score),
        "average_score": round(total_score / total_sessions, 1),
        "last_active_date": now,
        "updated_at": now,
    })


def calculate_streak_days(session_dates: Iterable[datetime], today: date) -> int:
    """Consecutive practice days ending today."""
    practiced = {d.date() for d in session_dates}
    streak = 0
    current = today
    while current in practiced:
        streak += 1
        current -= timedelta(days=1)
    return streak


def calculate_weekly_goal(session_dates: Iterable[datetime], today: date) -> float:
    """Percent of the weekly session goal met since Sunday."""
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    this_week = [d for d in session_dates if d.date() >= week_start]
    return min(len(this_week) / Config.WEEKLY_SESSION_GOAL * 100, 100)


class SessionStore:
    """Storage operations shared by every backend.

    Subclasses provide the primitive reads and writes.
    """

    def append_session(self, session: ShadowingSession) -> None:
        raise NotImplementedError

    def list_sessions(self, user_id: str, limit: int = Config.SESSION_HISTORY_LIMIT) -> List[ShadowingSession]:
        raise NotImplementedError

    def load_profile(self, user_id: str) -> Optional[UserProfile]:
        raise NotImplementedError

    def save_profile(self, profile: UserProfile) -> None:
        raise NotImplementedError

    def list_favorites(self, user_id: str) -> List[FavoriteScript]:
        raise NotImplementedError

    def save_favorite(self, user_id: str, favorite: FavoriteScript) -> None:
        raise NotImplementedError

    def delete_favorite(self, user_id: str, favorite_id: str) -> bool:
        raise NotImplementedError

    def claim_evaluation(self, session_id: str, task_id: str, ttl: int = Config.EVALUATION_SLOT_TTL) -> bool:
        """Atomically reserve the session's evaluation slot for ``task_id``.

        Returns False when another evaluation already holds it.
        """
        raise NotImplementedError

    def release_evaluation(self, task_id: str) -> Optional[str]:
        """Free the slot held by ``task_id``; returns its session id, if any."""
        raise NotImplementedError

    def get_profile(self, user_id: str) -> UserProfile:
        """Load the user's profile, creating a default one on first access"""
        profile = self.load_profile(user_id)
        if profile is None:
            profile = default_profile(user_id)
            self.save_profile(profile)
        return profile

    def save_session(self, session: ShadowingSession) -> ShadowingSession:
        """Append a session record and update the user's profile"""
        stored = session.model_copy(update={"id": uuid.uuid4().hex})
        self.append_session(stored)
        self.save_profile(apply_session_to_profile(self.get_profile(session.user_id), stored))
        logging.info(f"Saved session {stored.id} for user {session.user_id}")
        return stored

    def toggle_favorite_text(self, user_id: str, text: str) -> bool:
        """Add ``text`` to the profile's favorite texts, or remove it if present.

        Returns True when the text was added.
        """
        profile = self.get_profile(user_id)
        favorite_texts = list(profile.favorite_texts)
        added = text not in favorite_texts
        if added:
            favorite_texts.append(text)
        else:
            favorite_texts.remove(text)
        self.save_profile(profile.model_copy(update={"favorite_texts": favorite_texts, "updated_at": _now()}))
        return added

    def add_favorite(self, user_id: str, text: str, title: Optional[str] = None) -> FavoriteScript:
        favorite = FavoriteScript(id=uuid.uuid4().hex, text=text, title=title or "Untitled", created_at=_now())
        self.save_favorite(user_id, favorite)
        return favorite

    def remove_favorite(self, user_id: str, favorite_id: str) -> bool:
        return self.delete_favorite(user_id, favorite_id)

    def get_user_stats(self, user_id: str, today: Optional[date] = None) -> UserStats:
        today = today or _now().date()
        profile = self.get_profile(user_id)
        session_dates = [s.date for s in self.list_sessions(user_id, Config.STATS_HISTORY_LIMIT)]
        return UserStats(
            total_practices=profile.total_practices,
            average_score=profile.average_score,
            total_study_time=profile.total_study_time,
            total_sessions=profile.total_sessions,
            best_score=profile.best_score,
            streak_days=calculate_streak_days(session_dates, today),
            weekly_goal=calculate_weekly_goal(session_dates, today),
        )


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self.sessions: Dict[str, List[ShadowingSession]] = {}
        self.profiles: Dict[str, UserProfile] = {}
        self.favorites: Dict[str, Dict[str, FavoriteScript]] = {}
        # session id -> (task id, expiry on the monotonic clock)
        self.evaluations: Dict[str, Tuple[str, float]] = {}
        self.evaluation_sessions: Dict[str, str] = {}

    def claim_evaluation(self, session_id: str, task_id: str, ttl: int = Config.EVALUATION_SLOT_TTL) -> bool:
        held = self.evaluations.get(session_id)
        if held is not None and held[1] > time.monotonic():
            return False
        self.evaluations[session_id] = (task_id, time.monotonic() + ttl)
        self.evaluation_sessions[task_id] = session_id
        return True

    def release_evaluation(self, task_id: str) -> Optional[str]:
        session_id = self.evaluation_sessions.pop(task_id, None)
        if session_id is None:
            return None
        held = self.evaluations.get(session_id)
        if held is not None and held[0] == task_id:
            del self.evaluations[session_id]
        return session_id

    def append_session(self, session: ShadowingSession) -> None:
        self.sessions.setdefault(session.user_id, []).append(session)

    def list_sessions(self, user_id: str, limit: int = Config.SESSION_HISTORY_LIMIT) -> List[ShadowingSession]:
        sessions = sorted(self.sessions.get(user_id, []), key=lambda s: s.date, reverse=True)
        return sessions[:limit]

    def load_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    def save_profile(self, profile: UserProfile) -> None:
        self.profiles[profile.user_id] = profile

    def list_favorites(self, user_id: str) -> List[FavoriteScript]:
        favorites = self.favorites.get(user_id, {}).values()
        return sorted(favorites, key=lambda f: f.created_at, reverse=True)

    def save_favorite(self, user_id: str, favorite: FavoriteScript) -> None:
        self.favorites.setdefault(user_id, {})[favorite.id] = favorite

    def delete_favorite(self, user_id: str, favorite_id: str) -> bool:
        return self.favorites.get(user_id, {}).pop(favorite_id, None) is not None


class RedisSessionStore(SessionStore):
    """Sessions as a per-user list, profiles as JSON strings, favorites as a hash."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisSessionStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def append_session(self, session: ShadowingSession) -> None:
        self.client.lpush(f"sessions:{session.user_id}", session.model_dump_json())

    def list_sessions(self, user_id: str, limit: int = Config.SESSION_HISTORY_LIMIT) -> List[ShadowingSession]:
        raw_sessions = self.client.lrange(f"sessions:{user_id}", 0, limit - 1)
        sessions = [ShadowingSession.model_validate_json(raw) for raw in raw_sessions]
        return sorted(sessions, key=lambda s: s.date, reverse=True)

    def load_profile(self, user_id: str) -> Optional[UserProfile]:
        raw = self.client.get(f"profile:{user_id}")
        return UserProfile.model_validate_json(raw) if raw else None

    def save_profile(self, profile: UserProfile) -> None:
        self.client.set(f"profile:{profile.user_id}", profile.model_dump_json())

    def list_favorites(self, user_id: str) -> List[FavoriteScript]:
        raw_favorites = self.client.hvals(f"favorites:{user_id}")
        favorites = [FavoriteScript.model_validate_json(raw) for raw in raw_favorites]
        return sorted(favorites, key=lambda f: f.created_at, reverse=True)

    def save_favorite(self, user_id: str, favorite: FavoriteScript) -> None:
        self.client.hset(f"favorites:{user_id}", favorite.id, favorite.model_dump_json())

    def delete_favorite(self, user_id: str, favorite_id: str) -> bool:
        return self.client.hdel(f"favorites:{user_id}", favorite_id) > 0

    def claim_evaluation(self, session_id: str, task_id: str, ttl: int = Config.EVALUATION_SLOT_TTL) -> bool:
        if not self.client.set(f"evaluating:{session_id}", task_id, nx=True, ex=ttl):
            return False
        self.client.set(f"evaluation:{task_id}", session_id, ex=ttl)
        return True

    def release_evaluation(self, task_id: str) -> Optional[str]:
        session_id = self.client.get(f"evaluation:{task_id}")
        if session_id is None:
            return None
        if self.client.get(f"evaluating:{session_id}") == task_id:
            self.client.delete(f"evaluating:{session_id}")
        self.client.delete(f"evaluation:{task_id}")
        return session_id


def create_session_store(url: Optional[str] = None) -> SessionStore:
    url = Config.SESSION_STORE_URL if url is None else url
    if url.startswith("memory://"):
        logging.warning("Practice history and evaluation slots are kept in process memory only")
        return InMemorySessionStore()
    return RedisSessionStore.from_url(url)
