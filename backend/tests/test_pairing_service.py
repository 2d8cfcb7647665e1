"""
Tests for the persisted pairing workflow: generate, keep locked bouts,
attendance, exclusions, rejections and forced bouts.
"""

from dataclasses import replace
from datetime import datetime, timezone

import pytest
from sqlmodel import select

from app.models.bout import Bout
from app.services.eligibility import REASON_AGE_GAP, REASON_PARTNER_AT_CAPACITY, PairingSettings
from app.services.meet_lock import acquire_meet_lock
from app.services.pair_exclusions import add_excluded_pair, list_rejected_pairs, remove_excluded_pair
from app.services.pairing_service import (
    BOUT_TYPE_FORCED,
    BOUT_TYPE_NORMAL,
    delete_pairings,
    force_pair,
    generate_pairings_for_meet,
    list_active_bouts,
    set_bout_locked,
)
from app.services.roster import set_wrestler_status
from app.utils.errors import (
    ConflictError,
    InvalidInputError,
    MeetLockedError,
    NotFoundError,
    StateViolationError,
)
from app.utils.pair_key import pair_key
from app.utils.rbac import acting_user_from_model
from tests.factories import make_dual_meet, make_team, make_user, make_wrestler

SETTINGS = PairingSettings(max_age_gap_days=365, max_weight_diff_pct=0.1, matches_per_wrestler=1)


@pytest.fixture
def dual(session):
    meet, eagles, hawks, wrestlers = make_dual_meet(session)
    coach = acting_user_from_model(make_user(session, "coach", team_id=eagles.id))
    return meet, coach, wrestlers


def _pairs(session, meet_id):
    bouts = session.exec(select(Bout).where(Bout.meet_id == meet_id)).all()
    return {b.pair_key for b in bouts}


def _key(wrestlers, a, b):
    return pair_key(wrestlers[a].id, wrestlers[b].id)


class TestGenerate:
    def test_creates_expected_bouts_and_assigns_mats(self, session, dual):
        meet, coach, w = dual

        summary = generate_pairings_for_meet(session, meet.id, coach, SETTINGS)

        assert summary.created_count == 4
        assert summary.kept_count == 0
        assert summary.rejected_count == 1
        assert summary.assigned_count == 4
        assert _pairs(session, meet.id) == {
            _key(w, "e1", "h1"),
            _key(w, "e2", "h2"),
            _key(w, "e3", "h3"),
            _key(w, "e4", "h4"),
        }
        for bout in list_active_bouts(session, meet.id):
            assert bout.mat_index is not None
            assert bout.order is not None
            assert bout.red_id < bout.green_id
            assert bout.bout_type == BOUT_TYPE_NORMAL

    def test_preserve_mats_leaves_new_bouts_unassigned(self, session, dual):
        meet, coach, _ = dual

        summary = generate_pairings_for_meet(session, meet.id, coach, SETTINGS, preserve_mats=True)

        assert summary.assigned_count is None
        assert all(b.mat_index is None for b in list_active_bouts(session, meet.id))

    def test_regeneration_is_stable(self, session, dual):
        meet, coach, _ = dual

        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
        first = _pairs(session, meet.id)
        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)

        assert _pairs(session, meet.id) == first

    def test_locked_bouts_survive_and_count(self, session, dual):
        meet, coach, w = dual
        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
        locked = next(b for b in list_active_bouts(session, meet.id) if b.pair_key == _key(w, "e1", "h1"))
        set_bout_locked(session, locked.id, True, coach)

        summary = generate_pairings_for_meet(session, meet.id, coach, SETTINGS)

        assert summary.kept_count == 1
        assert summary.created_count == 3
        assert session.get(Bout, locked.id).locked is True
        assert len(_pairs(session, meet.id)) == 4

    def test_absent_wrestlers_are_left_out(self, session, dual):
        meet, coach, w = dual
        set_wrestler_status(session, meet.id, w["h4"].id, "ABSENT")

        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)

        assert _key(w, "e4", "h4") not in _pairs(session, meet.id)
        assert len(_pairs(session, meet.id)) == 3

    def test_bouts_of_absent_wrestlers_are_hidden_not_deleted(self, session, dual):
        meet, coach, w = dual
        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)

        set_wrestler_status(session, meet.id, w["h4"].id, "NOT_COMING")

        visible = {b.pair_key for b in list_active_bouts(session, meet.id)}
        assert _key(w, "e4", "h4") not in visible
        assert _key(w, "e4", "h4") in _pairs(session, meet.id)

        set_wrestler_status(session, meet.id, w["h4"].id, "AVAILABLE")
        assert _key(w, "e4", "h4") in {b.pair_key for b in list_active_bouts(session, meet.id)}

    def test_excluded_pairs_are_never_generated(self, session, dual):
        meet, coach, w = dual
        row = add_excluded_pair(session, meet.id, w["h1"].id, w["e1"].id, created_by_id=coach.id)
        assert row.pair_key == _key(w, "e1", "h1")

        for _ in range(2):
            generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
            assert _key(w, "e1", "h1") not in _pairs(session, meet.id)

        remove_excluded_pair(session, meet.id, row.id)
        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
        assert _key(w, "e1", "h1") in _pairs(session, meet.id)

    def test_duplicate_exclusion_conflicts(self, session, dual):
        meet, coach, w = dual
        add_excluded_pair(session, meet.id, w["e1"].id, w["h1"].id)

        with pytest.raises(ConflictError):
            add_excluded_pair(session, meet.id, w["h1"].id, w["e1"].id)
        with pytest.raises(InvalidInputError):
            add_excluded_pair(session, meet.id, w["e1"].id, w["e1"].id)

    def test_rejections_are_upserted_per_pair(self, session, dual):
        meet, coach, w = dual

        first = generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
        rejected = list_rejected_pairs(session, meet.id)

        assert len(rejected) == 1
        assert rejected[0].pair_key == _key(w, "e5", "h3")
        assert rejected[0].reason == REASON_AGE_GAP
        assert rejected[0].run_id == first.run_id

        second = generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
        session.expire_all()
        rejected = list_rejected_pairs(session, meet.id)
        assert len(rejected) == 1
        assert rejected[0].run_id == second.run_id
        assert second.run_id != first.run_id

    def test_invalid_settings_are_rejected(self, session, dual):
        meet, coach, _ = dual
        with pytest.raises(InvalidInputError):
            generate_pairings_for_meet(session, meet.id, coach, PairingSettings(matches_per_wrestler=6))

    def test_other_users_lock_blocks_generation(self, session, dual):
        meet, coach, _ = dual
        other = make_user(session, "other_coach")
        acquire_meet_lock(session, meet.id, other.id)

        with pytest.raises(MeetLockedError):
            generate_pairings_for_meet(session, meet.id, coach, SETTINGS)

    def test_deleted_meet_cannot_be_generated(self, session, dual):
        meet, coach, _ = dual
        meet.deleted_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
        session.add(meet)
        session.commit()

        with pytest.raises(StateViolationError):
            generate_pairings_for_meet(session, meet.id, coach, SETTINGS)


class TestForcePair:
    def test_existing_pair_is_returned_unchanged(self, session, dual):
        meet, coach, w = dual
        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
        existing = next(b for b in list_active_bouts(session, meet.id) if b.pair_key == _key(w, "e2", "h2"))

        bout = force_pair(session, meet.id, w["h2"].id, w["e2"].id, coach)

        assert bout.id == existing.id
        assert bout.bout_type == BOUT_TYPE_NORMAL
        assert bout.locked is False
        assert len(_pairs(session, meet.id)) == 4

    def test_new_forced_bout_is_locked_and_bypasses_eligibility(self, session, dual):
        meet, coach, w = dual

        bout = force_pair(session, meet.id, w["h3"].id, w["e5"].id, coach)

        assert bout.bout_type == BOUT_TYPE_FORCED
        assert bout.locked is True
        assert bout.mat_index is None
        assert (bout.red_id, bout.green_id) == tuple(sorted((w["e5"].id, w["h3"].id)))

    def test_forced_bout_survives_regeneration(self, session, dual):
        meet, coach, w = dual
        forced = force_pair(session, meet.id, w["e5"].id, w["h3"].id, coach)

        summary = generate_pairings_for_meet(session, meet.id, coach, SETTINGS)

        assert summary.kept_count == 1
        assert session.get(Bout, forced.id) is not None
        # h3 is past the target but under the max, so e3 still gets its bout
        assert _key(w, "e3", "h3") in _pairs(session, meet.id)
        assert summary.created_count == 4

    def test_forced_bout_fills_capacity_at_the_max(self, session, dual):
        meet, coach, w = dual
        force_pair(session, meet.id, w["e5"].id, w["h3"].id, coach)
        strict = replace(SETTINGS, max_matches_per_wrestler=1)

        summary = generate_pairings_for_meet(session, meet.id, coach, strict)

        assert _key(w, "e3", "h3") not in _pairs(session, meet.id)
        assert summary.created_count == 3
        rejected = {r.pair_key: r.reason for r in list_rejected_pairs(session, meet.id)}
        assert rejected[_key(w, "e3", "h3")] == REASON_PARTNER_AT_CAPACITY

    def test_same_wrestler(self, session, dual):
        meet, coach, w = dual
        with pytest.raises(InvalidInputError):
            force_pair(session, meet.id, w["e1"].id, w["e1"].id, coach)

    def test_absent_wrestler(self, session, dual):
        meet, coach, w = dual
        set_wrestler_status(session, meet.id, w["h1"].id, "ABSENT")

        with pytest.raises(StateViolationError):
            force_pair(session, meet.id, w["e1"].id, w["h1"].id, coach)

    def test_wrestler_outside_meet(self, session, dual):
        meet, coach, w = dual
        outsider = make_wrestler(session, make_team(session, "Owls"), "Otto")

        with pytest.raises(NotFoundError):
            force_pair(session, meet.id, w["e1"].id, outsider.id, coach)


class TestBoutLocksAndDeletion:
    def test_cannot_lock_bout_with_absent_wrestler(self, session, dual):
        meet, coach, w = dual
        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
        bout = next(b for b in list_active_bouts(session, meet.id) if b.pair_key == _key(w, "e1", "h1"))
        set_wrestler_status(session, meet.id, w["e1"].id, "ABSENT")

        with pytest.raises(StateViolationError):
            set_bout_locked(session, bout.id, True, coach)

    def test_missing_bout(self, session, dual):
        _, coach, _ = dual
        with pytest.raises(NotFoundError):
            set_bout_locked(session, 999, True, coach)

    def test_delete_keeping_locked(self, session, dual):
        meet, coach, w = dual
        generate_pairings_for_meet(session, meet.id, coach, SETTINGS)
        keep = next(b for b in list_active_bouts(session, meet.id) if b.pair_key == _key(w, "e3", "h3"))
        set_bout_locked(session, keep.id, True, coach)

        assert delete_pairings(session, meet.id, coach, keep_locked=True) == 3
        assert _pairs(session, meet.id) == {keep.pair_key}
        assert delete_pairings(session, meet.id, coach) == 1
        assert _pairs(session, meet.id) == set()
