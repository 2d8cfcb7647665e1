"""
Tests for the rest-aware sequencer: placement, balance, anchors and reorder.
"""

from collections import Counter

import pytest

from app.services.sequencer import SequencedBout, compute_rest_penalty, reorder, sequence
from app.utils.errors import InvalidInputError


def _bouts(*pairs, start_id=1):
    return [SequencedBout(id=start_id + i, red_id=r, green_id=g) for i, (r, g) in enumerate(pairs)]


class TestSequence:
    def test_every_bout_gets_a_unique_slot(self):
        bouts = _bouts(*[(i, i + 100) for i in range(1, 21)])
        placements = sequence(bouts, num_mats=3, min_rest_bouts=2, rest_penalty=10.0)

        assert set(placements) == {b.id for b in bouts}
        assert len(set(placements.values())) == len(bouts)
        for mat in range(3):
            orders = sorted(o for m, o in placements.values() if m == mat)
            assert orders == list(range(1, len(orders) + 1))

    def test_load_is_balanced_when_everyone_prefers_one_mat(self):
        bouts = _bouts(*[(i, i + 100) for i in range(1, 9)])
        placements = sequence(bouts, num_mats=4, min_rest_bouts=0, rest_penalty=0, preferred={b.id: 0 for b in bouts})

        loads = Counter(mat for mat, _ in placements.values())
        assert max(loads.values()) - min(loads.values()) <= 1
        assert set(loads) == {0, 1, 2, 3}

    def test_back_to_back_bouts_move_to_another_mat(self):
        bouts = _bouts((1, 2), (1, 3))
        placements = sequence(bouts, num_mats=2, min_rest_bouts=2, rest_penalty=10.0, preferred={1: 0, 2: 0})

        assert placements[1][0] != placements[2][0]

    def test_locked_bouts_keep_their_slot(self):
        bouts = _bouts((1, 2), (3, 4), (5, 6))
        bouts[0].locked = True
        bouts[0].mat_index = 1
        bouts[0].order = 1

        placements = sequence(bouts, num_mats=2, min_rest_bouts=0, rest_penalty=0, preferred={2: 1, 3: 1})

        assert placements[1] == (1, 1)
        assert (1, 1) not in [placements[2], placements[3]]

    def test_anchor_gaps_are_filled_around(self):
        bouts = _bouts((1, 2), (3, 4), (5, 6), (7, 8))
        bouts[0].locked = True
        bouts[0].mat_index = 0
        bouts[0].order = 3

        placements = sequence(bouts, num_mats=1, min_rest_bouts=0, rest_penalty=0)

        assert placements == {1: (0, 3), 2: (0, 1), 3: (0, 2), 4: (0, 4)}

    def test_unlocked_mat_is_ignored(self):
        bouts = _bouts((1, 2))
        bouts[0].mat_index = 3
        bouts[0].order = 7

        assert sequence(bouts, num_mats=2, min_rest_bouts=0, rest_penalty=0) == {1: (0, 1)}

    def test_preferred_mat_is_clamped(self):
        bouts = _bouts((1, 2))
        assert sequence(bouts, num_mats=2, min_rest_bouts=0, rest_penalty=0, preferred={1: 9}) == {1: (1, 1)}

    def test_same_mat_wrestler_stays_despite_rest_cost(self):
        bouts = _bouts((1, 2), (1, 3))
        placements = sequence(
            bouts,
            num_mats=2,
            min_rest_bouts=2,
            rest_penalty=10.0,
            preferred={1: 0, 2: 0},
            same_mat={1: [1], 2: [1]},
        )

        assert placements == {1: (0, 1), 2: (0, 2)}

    def test_same_mat_follows_a_locked_bout(self):
        bouts = _bouts((1, 2), (1, 3), (4, 5))
        bouts[0].locked = True
        bouts[0].mat_index = 2
        bouts[0].order = 1

        placements = sequence(
            bouts, num_mats=3, min_rest_bouts=0, rest_penalty=0, preferred={2: 0, 3: 0}, same_mat={1: [1], 2: [1]}
        )

        assert placements[2] == (2, 2)
        assert placements[3] == (0, 1)

    def test_invalid_settings(self):
        with pytest.raises(InvalidInputError):
            sequence(_bouts((1, 2)), num_mats=0, min_rest_bouts=0, rest_penalty=0)
        with pytest.raises(InvalidInputError):
            sequence(_bouts((1, 2)), num_mats=1, min_rest_bouts=-1, rest_penalty=0)
        with pytest.raises(InvalidInputError):
            sequence(_bouts((1, 2)), num_mats=1, min_rest_bouts=0, rest_penalty=-1)


class TestRestPenalty:
    def test_back_to_back_penalty(self):
        bouts = _bouts((1, 2), (1, 3))
        placements = {1: (0, 1), 2: (0, 2)}
        assert compute_rest_penalty(bouts, placements, min_rest_bouts=2, rest_penalty=10.0) == 20.0

    def test_different_mats_do_not_interact(self):
        bouts = _bouts((1, 2), (1, 3))
        placements = {1: (0, 1), 2: (1, 1)}
        assert compute_rest_penalty(bouts, placements, min_rest_bouts=4, rest_penalty=10.0) == 0.0

    def test_penalty_grows_with_min_rest(self):
        bouts = _bouts((1, 2), (1, 3), (2, 3), (4, 5), (1, 4), (5, 2))
        placements = sequence(bouts, num_mats=2, min_rest_bouts=1, rest_penalty=10.0)

        penalties = [compute_rest_penalty(bouts, placements, m, 10.0) for m in range(6)]
        assert penalties == sorted(penalties)
        assert penalties[0] == 0.0

    def test_unplaced_bouts_ignored(self):
        bouts = _bouts((1, 2), (1, 3))
        assert compute_rest_penalty(bouts, {1: (0, 1)}, min_rest_bouts=3, rest_penalty=10.0) == 0.0


class TestReorder:
    def _on_mat(self, pairs, mat=0):
        bouts = _bouts(*pairs)
        for order, bout in enumerate(bouts, start=1):
            bout.mat_index = mat
            bout.order = order
        return bouts

    def test_spreads_a_wrestlers_bouts(self):
        bouts = self._on_mat([(1, 2), (1, 3), (4, 5), (6, 7)])

        placements = reorder(bouts, min_rest_bouts=1, rest_penalty=10.0)

        assert placements == {1: (0, 1), 3: (0, 2), 2: (0, 3), 4: (0, 4)}
        assert compute_rest_penalty(bouts, placements, 1, 10.0) == 0.0

    def test_mats_never_change(self):
        bouts = self._on_mat([(1, 2), (1, 3)], mat=0) + self._on_mat([(4, 5), (4, 6)], mat=2)
        for i, bout in enumerate(bouts, start=1):
            bout.id = i

        placements = reorder(bouts, min_rest_bouts=1, rest_penalty=10.0)

        assert {bid: mat for bid, (mat, _) in placements.items()} == {1: 0, 2: 0, 3: 2, 4: 2}

    def test_good_schedule_is_left_alone(self):
        bouts = self._on_mat([(1, 2), (3, 4), (1, 5), (3, 6)])
        before = {b.id: (b.mat_index, b.order) for b in bouts}

        assert reorder(bouts, min_rest_bouts=1, rest_penalty=10.0) == before

    def test_never_worse(self):
        bouts = self._on_mat([(1, 2), (2, 3), (3, 1), (1, 4), (4, 2), (5, 6), (3, 4)])
        before = {b.id: (b.mat_index, b.order) for b in bouts}

        after = reorder(bouts, min_rest_bouts=3, rest_penalty=10.0)

        assert compute_rest_penalty(bouts, after, 3, 10.0) <= compute_rest_penalty(bouts, before, 3, 10.0)

    def test_locked_bouts_stay_put(self):
        bouts = self._on_mat([(1, 2), (1, 3), (4, 5), (6, 7)])
        bouts[1].locked = True

        placements = reorder(bouts, min_rest_bouts=1, rest_penalty=10.0)

        assert placements[2] == (0, 2)
        assert sorted(o for _, o in placements.values()) == [1, 2, 3, 4]

    def test_unassigned_bouts_skipped(self):
        bouts = self._on_mat([(1, 2)])
        bouts.append(SequencedBout(id=9, red_id=3, green_id=4))

        assert 9 not in reorder(bouts, min_rest_bouts=1, rest_penalty=10.0)
