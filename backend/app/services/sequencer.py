"""
Rest-Aware Sequencer: places bouts on mats and orders them to give wrestlers rest.

Penalty model (soft, never blocks placement):
    For every wrestler and every pair of their bouts on the same mat,
    gap = number of bouts between them. If gap < min_rest_bouts the pair
    costs rest_penalty * (min_rest_bouts - gap).

Assignment is a single greedy pass. Each unlocked bout looks at a small
window of mats (its preferred mat plus the two least-loaded other mats),
scores each by marginal rest penalty plus a load-balance term, and goes to
the next free slot on the winner.

Locked bouts that already have a mat and order are anchors: they keep both
and the pass schedules everything else around them.

Wrestlers listed in `same_mat` (home team wrestlers when the team asks for
it) stay on the mat of their first placed bout; their later bouts skip the
candidate window and go straight to that mat.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.utils.errors import InvalidInputError

logger = logging.getLogger(__name__)

LOAD_BALANCE_WEIGHT = 1.0
CANDIDATE_NEIGHBORS = 2

Placement = Tuple[int, int]  # (mat_index, order)


@dataclass
class SequencedBout:
    """Minimal bout shape used by the sequencer."""

    id: int
    red_id: int
    green_id: int
    mat_index: Optional[int] = None
    order: Optional[int] = None
    locked: bool = False

    @property
    def wrestler_ids(self) -> Tuple[int, int]:
        return (self.red_id, self.green_id)


def pair_penalty(gap: int, min_rest_bouts: int, rest_penalty: float) -> float:
    if gap < min_rest_bouts:
        return rest_penalty * (min_rest_bouts - gap)
    return 0.0


@dataclass
class MatTimeline:
    """Slots used on one mat, and where each wrestler appears on it."""

    occupied: Dict[int, int] = field(default_factory=dict)  # order -> bout id
    wrestler_orders: Dict[int, List[int]] = field(default_factory=dict)
    _cursor: int = 1

    @property
    def count(self) -> int:
        return len(self.occupied)

    def next_free(self) -> int:
        while self._cursor in self.occupied:
            self._cursor += 1
        return self._cursor

    def place(self, bout: SequencedBout, order: int) -> None:
        self.occupied[order] = bout.id
        for wid in bout.wrestler_ids:
            self.wrestler_orders.setdefault(wid, []).append(order)

    def marginal_penalty(self, bout: SequencedBout, order: int, min_rest_bouts: int, rest_penalty: float) -> float:
        total = 0.0
        for wid in bout.wrestler_ids:
            for other in self.wrestler_orders.get(wid, ()):
                total += pair_penalty(abs(order - other) - 1, min_rest_bouts, rest_penalty)
        return total


def _validate(num_mats: int, min_rest_bouts: int, rest_penalty: float) -> None:
    if num_mats < 1:
        raise InvalidInputError("num_mats must be >= 1")
    if min_rest_bouts < 0:
        raise InvalidInputError("min_rest_bouts must be >= 0")
    if rest_penalty < 0:
        raise InvalidInputError("rest_penalty must be >= 0")


def compute_rest_penalty(
    bouts: Iterable[SequencedBout],
    placements: Mapping[int, Placement],
    min_rest_bouts: int,
    rest_penalty: float,
) -> float:
    """Total penalty of an assignment. Bouts without a placement are ignored."""
    orders_by_wrestler_mat: Dict[Tuple[int, int], List[int]] = {}
    for bout in bouts:
        placement = placements.get(bout.id)
        if placement is None:
            continue
        mat, order = placement
        for wid in bout.wrestler_ids:
            orders_by_wrestler_mat.setdefault((wid, mat), []).append(order)

    total = 0.0
    for orders in orders_by_wrestler_mat.values():
        orders.sort()
        for i in range(len(orders)):
            for j in range(i + 1, len(orders)):
                total += pair_penalty(orders[j] - orders[i] - 1, min_rest_bouts, rest_penalty)
    return total


def _place_anchors(
    bouts: Sequence[SequencedBout], timelines: List[MatTimeline]
) -> Tuple[Dict[int, Placement], List[SequencedBout]]:
    """Pin locked bouts with a valid slot; everything else is returned for placement."""
    placements: Dict[int, Placement] = {}
    free: List[SequencedBout] = []
    for bout in bouts:
        is_anchor = (
            bout.locked
            and bout.mat_index is not None
            and bout.order is not None
            and 0 <= bout.mat_index < len(timelines)
            and bout.order >= 1
            and bout.order not in timelines[bout.mat_index].occupied
        )
        if is_anchor:
            timelines[bout.mat_index].place(bout, bout.order)
            placements[bout.id] = (bout.mat_index, bout.order)
        else:
            free.append(bout)
    return placements, free


def candidate_mats(preferred: int, timelines: Sequence[MatTimeline]) -> List[int]:
    """Preferred mat first, then the least-loaded other mats (ties by index)."""
    others = sorted((m for m in range(len(timelines)) if m != preferred), key=lambda m: (timelines[m].count, m))
    return [preferred] + others[:CANDIDATE_NEIGHBORS]


def _pinned_mat(home_mat: Mapping[int, int], wrestler_ids: Sequence[int]) -> Optional[int]:
    for wid in wrestler_ids:
        if wid in home_mat:
            return home_mat[wid]
    return None


def _record_home_mat(home_mat: Dict[int, int], wrestler_ids: Sequence[int], mat: int) -> None:
    for wid in wrestler_ids:
        home_mat.setdefault(wid, mat)


def sequence(
    bouts: Sequence[SequencedBout],
    num_mats: int,
    min_rest_bouts: int,
    rest_penalty: float,
    preferred: Optional[Mapping[int, int]] = None,
    same_mat: Optional[Mapping[int, Sequence[int]]] = None,
) -> Dict[int, Placement]:
    """
    Assign every bout a mat and a 1-based order.

    Args:
        bouts: Bouts in the stable processing order (generation order)
        num_mats: Number of mats available
        min_rest_bouts: Bouts a wrestler should sit out between appearances
        rest_penalty: Cost per missing rest bout
        preferred: bout id -> preferred mat index (defaults to mat 0)
        same_mat: bout id -> wrestler ids that must stay on one mat

    Returns:
        bout id -> (mat_index, order)
    """
    _validate(num_mats, min_rest_bouts, rest_penalty)
    preferred = preferred or {}
    same_mat = same_mat or {}
    timelines = [MatTimeline() for _ in range(num_mats)]
    placements, free = _place_anchors(bouts, timelines)

    home_mat: Dict[int, int] = {}
    for bout in bouts:
        if bout.id in placements:
            _record_home_mat(home_mat, same_mat.get(bout.id, ()), placements[bout.id][0])

    for bout in free:
        pinned = _pinned_mat(home_mat, same_mat.get(bout.id, ()))
        if pinned is not None:
            order = timelines[pinned].next_free()
            timelines[pinned].place(bout, order)
            placements[bout.id] = (pinned, order)
            _record_home_mat(home_mat, same_mat.get(bout.id, ()), pinned)
            continue

        pref = max(0, min(preferred.get(bout.id, 0), num_mats - 1))
        mean = sum(t.count for t in timelines) / num_mats

        best_key = None
        best_mat = pref
        for mat in candidate_mats(pref, timelines):
            timeline = timelines[mat]
            order = timeline.next_free()
            cost = timeline.marginal_penalty(bout, order, min_rest_bouts, rest_penalty)
            cost += LOAD_BALANCE_WEIGHT * (timeline.count - mean)
            key = (cost, 0 if mat == pref else 1, mat)
            if best_key is None or key < best_key:
                best_key = key
                best_mat = mat

        order = timelines[best_mat].next_free()
        timelines[best_mat].place(bout, order)
        placements[bout.id] = (best_mat, order)
        _record_home_mat(home_mat, same_mat.get(bout.id, ()), best_mat)

    return placements


def _fill_in_order(anchored: MatTimeline, movable: Sequence[SequencedBout]) -> Dict[int, int]:
    orders: Dict[int, int] = {}
    for bout in movable:
        order = anchored.next_free()
        anchored.place(bout, order)
        orders[bout.id] = order
    return orders


def _fill_greedy(
    anchored: MatTimeline, movable: Sequence[SequencedBout], min_rest_bouts: int, rest_penalty: float
) -> Dict[int, int]:
    remaining = list(movable)
    orders: Dict[int, int] = {}
    while remaining:
        order = anchored.next_free()
        best_idx = 0
        best_cost = None
        for idx, bout in enumerate(remaining):
            cost = anchored.marginal_penalty(bout, order, min_rest_bouts, rest_penalty)
            if best_cost is None or cost < best_cost:
                best_cost = cost
                best_idx = idx
        bout = remaining.pop(best_idx)
        anchored.place(bout, order)
        orders[bout.id] = order
    return orders


def _anchored_timeline(anchors: Sequence[SequencedBout]) -> MatTimeline:
    timeline = MatTimeline()
    for bout in anchors:
        timeline.place(bout, bout.order)
    return timeline


def reorder(
    bouts: Sequence[SequencedBout],
    min_rest_bouts: int,
    rest_penalty: float,
) -> Dict[int, Placement]:
    """
    Recompute the order of bouts within their current mats.

    Mats are never changed. Bouts without a mat are left out of the result.
    A mat's new order is kept only when it strictly lowers that mat's penalty,
    so reordering never makes a schedule worse.
    """
    _validate(1, min_rest_bouts, rest_penalty)

    by_mat: Dict[int, List[SequencedBout]] = {}
    for bout in bouts:
        if bout.mat_index is None:
            continue
        by_mat.setdefault(bout.mat_index, []).append(bout)

    placements: Dict[int, Placement] = {}
    for mat in sorted(by_mat):
        current = sorted(by_mat[mat], key=lambda b: (b.order is None, b.order or 0, b.id))

        anchors: List[SequencedBout] = []
        movable: List[SequencedBout] = []
        used = set()
        for bout in current:
            if bout.locked and bout.order is not None and bout.order >= 1 and bout.order not in used:
                anchors.append(bout)
                used.add(bout.order)
            else:
                movable.append(bout)

        baseline = _fill_in_order(_anchored_timeline(anchors), movable)
        candidate = _fill_greedy(_anchored_timeline(anchors), movable, min_rest_bouts, rest_penalty)

        fixed = {b.id: (mat, b.order) for b in anchors}
        baseline_placements = {**fixed, **{bid: (mat, o) for bid, o in baseline.items()}}
        candidate_placements = {**fixed, **{bid: (mat, o) for bid, o in candidate.items()}}

        baseline_cost = compute_rest_penalty(current, baseline_placements, min_rest_bouts, rest_penalty)
        candidate_cost = compute_rest_penalty(current, candidate_placements, min_rest_bouts, rest_penalty)

        if candidate_cost < baseline_cost:
            logger.debug("Mat %d reordered: penalty %.1f -> %.1f", mat, baseline_cost, candidate_cost)
            placements.update(candidate_placements)
        else:
            placements.update(baseline_placements)

    return placements
