"""
Tests for the meet edit lock: mutual exclusion, expiry, renewal and release.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import Session, SQLModel, create_engine

from app.models.meet import Meet
from app.services.meet_lock import (
    MEET_LOCK_TTL,
    acquire_meet_lock,
    utcnow,
    get_meet_lock_status,
    release_meet_lock,
    release_meet_locks,
)
from app.utils.errors import MeetLockedError, NotFoundError, StateViolationError
from app.utils.rbac import acting_user_from_model
from tests.factories import auth, make_meet, make_team, make_user

NOW = datetime(2026, 1, 10, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def meet(session):
    home = make_team(session, "Eagles")
    away = make_team(session, "Hawks")
    return make_meet(session, [home, away], home_team=home)


@pytest.fixture
def coaches(session):
    return make_user(session, "coach_a"), make_user(session, "coach_b")


class TestAcquire:
    def test_unlocked_meet_is_acquired(self, session, meet, coaches):
        coach_a, _ = coaches
        status = acquire_meet_lock(session, meet.id, coach_a.id, now=NOW)

        assert status.locked
        assert status.locked_by_id == coach_a.id
        assert status.locked_by_username == "coach_a"
        assert status.lock_expires_at == NOW + MEET_LOCK_TTL

    def test_second_user_is_refused_with_holder_and_expiry(self, session, meet, coaches):
        coach_a, coach_b = coaches
        acquire_meet_lock(session, meet.id, coach_a.id, now=NOW)

        with pytest.raises(MeetLockedError) as exc_info:
            acquire_meet_lock(session, meet.id, coach_b.id, now=NOW + timedelta(seconds=30))

        assert exc_info.value.status_code == 409
        assert exc_info.value.locked_by_username == "coach_a"
        assert exc_info.value.lock_expires_at == NOW + MEET_LOCK_TTL

    def test_holder_renews(self, session, meet, coaches):
        coach_a, _ = coaches
        acquire_meet_lock(session, meet.id, coach_a.id, now=NOW)
        later = NOW + timedelta(minutes=1)

        status = acquire_meet_lock(session, meet.id, coach_a.id, now=later)

        assert status.lock_expires_at == later + MEET_LOCK_TTL

    def test_expired_lock_can_be_taken(self, session, meet, coaches):
        coach_a, coach_b = coaches
        acquire_meet_lock(session, meet.id, coach_a.id, now=NOW)

        status = acquire_meet_lock(session, meet.id, coach_b.id, now=NOW + MEET_LOCK_TTL + timedelta(seconds=1))

        assert status.locked_by_id == coach_b.id

    def test_missing_meet(self, session, coaches):
        with pytest.raises(NotFoundError):
            acquire_meet_lock(session, 999, coaches[0].id, now=NOW)

    def test_deleted_meet(self, session, meet, coaches):
        meet.deleted_at = NOW
        session.add(meet)
        session.commit()

        with pytest.raises(StateViolationError):
            acquire_meet_lock(session, meet.id, coaches[0].id, now=NOW)

    def test_default_clock_is_utc_aware(self, session, meet, coaches):
        before = utcnow()
        status = acquire_meet_lock(session, meet.id, coaches[0].id)

        assert status.lock_expires_at.tzinfo is not None
        assert before + MEET_LOCK_TTL <= status.lock_expires_at <= utcnow() + MEET_LOCK_TTL

        session.refresh(meet)
        assert meet.locked_by_id == coaches[0].id
        assert get_meet_lock_status(session, meet.id).locked
        with pytest.raises(MeetLockedError):
            acquire_meet_lock(session, meet.id, coaches[1].id)


class TestConcurrentAcquire:
    def test_separate_sessions_conflict(self, session, meet, coaches):
        coach_a, coach_b = coaches
        engine = session.get_bind()

        with Session(engine) as first, Session(engine) as second:
            acquire_meet_lock(first, meet.id, coach_a.id, now=NOW)
            with pytest.raises(MeetLockedError) as exc_info:
                acquire_meet_lock(second, meet.id, coach_b.id, now=NOW)

        assert exc_info.value.locked_by_username == "coach_a"

    def test_racing_threads_have_one_winner(self, tmp_path):
        """Two threads on their own connections hit an unlocked meet at once."""
        import app.models  # noqa: F401

        engine = create_engine(
            f"sqlite:///{tmp_path / 'lock.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        SQLModel.metadata.create_all(engine)
        with Session(engine) as setup:
            home = make_team(setup, "Eagles")
            away = make_team(setup, "Hawks")
            meet_id = make_meet(setup, [home, away], home_team=home).id
            user_ids = [make_user(setup, "coach_a").id, make_user(setup, "coach_b").id]

        barrier = threading.Barrier(len(user_ids))
        outcomes = []

        def attempt(user_id):
            with Session(engine) as own_session:
                barrier.wait()
                try:
                    acquire_meet_lock(own_session, meet_id, user_id, now=NOW)
                    outcomes.append(("won", user_id))
                except MeetLockedError:
                    outcomes.append(("refused", user_id))

        threads = [threading.Thread(target=attempt, args=(user_id,)) for user_id in user_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(result for result, _ in outcomes) == ["refused", "won"]
        winner = next(user_id for result, user_id in outcomes if result == "won")
        with Session(engine) as check:
            assert check.get(Meet, meet_id).locked_by_id == winner
        engine.dispose()


class TestStatusAndRelease:
    def test_expired_lock_reads_as_unlocked(self, session, meet, coaches):
        acquire_meet_lock(session, meet.id, coaches[0].id, now=NOW)

        status = get_meet_lock_status(session, meet.id, now=NOW + timedelta(minutes=5))

        assert not status.locked
        session.refresh(meet)
        assert meet.locked_by_id is None

    def test_holder_releases(self, session, meet, coaches):
        coach_a, _ = coaches
        acquire_meet_lock(session, meet.id, coach_a.id, now=NOW)

        assert release_meet_lock(session, meet.id, acting_user_from_model(coach_a), now=NOW) is True
        assert not get_meet_lock_status(session, meet.id, now=NOW).locked
        assert release_meet_lock(session, meet.id, acting_user_from_model(coach_a), now=NOW) is False

    def test_other_coach_cannot_release(self, session, meet, coaches):
        coach_a, coach_b = coaches
        acquire_meet_lock(session, meet.id, coach_a.id, now=NOW)

        with pytest.raises(MeetLockedError):
            release_meet_lock(session, meet.id, acting_user_from_model(coach_b), now=NOW)

    def test_admin_can_release_anyones_lock(self, session, meet, coaches):
        admin = make_user(session, "admin", role="ADMIN")
        acquire_meet_lock(session, meet.id, coaches[0].id, now=NOW)

        assert release_meet_lock(session, meet.id, acting_user_from_model(admin), now=NOW) is True

    def test_release_all_held_by_user(self, session, coaches):
        coach_a, coach_b = coaches
        team_a = make_team(session, "Eagles")
        team_b = make_team(session, "Hawks")
        meets = [make_meet(session, [team_a, team_b]) for _ in range(3)]
        acquire_meet_lock(session, meets[0].id, coach_a.id, now=NOW)
        acquire_meet_lock(session, meets[1].id, coach_a.id, now=NOW)
        acquire_meet_lock(session, meets[2].id, coach_b.id, now=NOW)

        assert release_meet_locks(session, coach_a.id) == 2

        session.expire_all()
        assert session.get(Meet, meets[0].id).locked_by_id is None
        assert session.get(Meet, meets[1].id).locked_by_id is None
        assert session.get(Meet, meets[2].id).locked_by_id == coach_b.id


class TestLockEndpoints:
    def test_conflict_payload(self, client, session, meet, coaches):
        coach_a, coach_b = coaches

        first = client.post(f"/api/meets/{meet.id}/lock", headers=auth(coach_a))
        assert first.status_code == 200
        assert first.json()["locked_by_username"] == "coach_a"

        second = client.post(f"/api/meets/{meet.id}/lock", headers=auth(coach_b))
        assert second.status_code == 409
        body = second.json()
        assert body["locked_by_username"] == "coach_a"
        assert body["lock_expires_at"] is not None

    def test_release_all_endpoint(self, client, session, meet, coaches):
        coach_a, _ = coaches
        client.post(f"/api/meets/{meet.id}/lock", headers=auth(coach_a))

        response = client.post("/api/meets/lock/release", headers=auth(coach_a))

        assert response.status_code == 200
        assert response.json() == {"ok": True, "released": 1}
        assert client.get(f"/api/meets/{meet.id}/lock").json()["locked"] is False

    def test_parent_cannot_lock(self, client, session, meet):
        parent = make_user(session, "parent", role="PARENT")
        assert client.post(f"/api/meets/{meet.id}/lock", headers=auth(parent)).status_code == 403

    def test_missing_user_header(self, client, meet):
        assert client.post(f"/api/meets/{meet.id}/lock").status_code == 401
