"""
Pair Generator: greedy degree-constrained matching over a meet roster.

1. Pool = active wrestlers that are not marked absent.
2. Every unordered pair is run through the eligibility evaluator; eligible
   edges are sorted by (cost, low id, high id) so runs are reproducible.
3. Seeded bouts (locked / forced bouts that survive regeneration) reserve
   capacity on their endpoints before the greedy pass.
4. One pass over the sorted edges: take an edge when both wrestlers still have
   capacity and the pair is not already taken.
5. Zero fill: a wrestler still at zero bouts may take a partner who is past
   the target but under max_matches_per_wrestler. Partners at zero bouts
   come first, then the cheaper edge.
6. Trim: a generated bout whose wrestlers are both over the target is
   dropped, last added first. Seeded bouts are never trimmed.
7. Wrestlers left with zero bouts are reported as rejected pairs for
   visibility. Capacity skips alone are not rejections.

This is a heuristic, not a maximum-weight matching solver. Determinism and
speed matter more than optimality at meet roster sizes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from app.services.eligibility import (
    REASON_PARTNER_AT_CAPACITY,
    PairingSettings,
    WrestlerProfile,
    age_gap_days,
    evaluate,
    weight_diff_pct,
)
from app.utils.pair_key import normalize_pair, pair_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedBout:
    red_id: int
    green_id: int
    cost: float
    notes: str = ""

    @property
    def pair_key(self) -> str:
        return pair_key(self.red_id, self.green_id)


@dataclass(frozen=True)
class RejectedCandidate:
    """A wrestler left without a bout, paired with the partner that explains why."""

    wrestler_id: int
    partner_id: int
    reason: str

    @property
    def pair_key(self) -> str:
        return pair_key(self.wrestler_id, self.partner_id)


@dataclass
class GenerationResult:
    bouts: List[GeneratedBout] = field(default_factory=list)
    rejected: List[RejectedCandidate] = field(default_factory=list)
    bout_counts: Dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class _Edge:
    cost: float
    low: int
    high: int
    notes: str


def _edge_notes(a: WrestlerProfile, b: WrestlerProfile) -> str:
    return (
        f"wDiff={abs(a.weight - b.weight):.1f} "
        f"ageGapDays={age_gap_days(a, b)} "
        f"expGap={abs(a.experience_years - b.experience_years)} "
        f"skillGap={abs(a.skill - b.skill)} "
        f"wPct={100 * weight_diff_pct(a.weight, b.weight):.1f}%"
    )


def build_pool(roster: Iterable[WrestlerProfile], absent_ids: AbstractSet[int] = frozenset()) -> List[WrestlerProfile]:
    """Active, present wrestlers in id order."""
    return sorted((w for w in roster if w.active and w.id not in absent_ids), key=lambda w: w.id)


def build_candidate_edges(
    pool: Sequence[WrestlerProfile],
    settings: PairingSettings,
    excluded_keys: AbstractSet[str] = frozenset(),
) -> List[_Edge]:
    edges: List[_Edge] = []
    for i, a in enumerate(pool):
        for b in pool[i + 1 :]:
            result = evaluate(a, b, settings, excluded_keys)
            if not result.eligible:
                continue
            low, high = normalize_pair(a.id, b.id)
            edges.append(_Edge(cost=result.cost, low=low, high=high, notes=_edge_notes(a, b)))
    edges.sort(key=lambda e: (e.cost, e.low, e.high))
    return edges


def generate(
    roster: Iterable[WrestlerProfile],
    settings: PairingSettings,
    excluded_keys: AbstractSet[str] = frozenset(),
    seeded_pairs: Sequence[Tuple[int, int]] = (),
    absent_ids: AbstractSet[int] = frozenset(),
) -> GenerationResult:
    """
    Generate bouts for a roster.

    Args:
        roster: All wrestlers on the participating teams
        settings: Eligibility limits and match-count targets
        excluded_keys: Normalized pair keys that must never be paired
        seeded_pairs: Existing (red, green) bouts kept across regeneration
        absent_ids: Wrestlers marked ABSENT / NOT_COMING for this meet

    Returns:
        GenerationResult with new bouts (seeded bouts are not repeated),
        rejected candidates and the final per-wrestler bout counts.
    """
    settings.validate()
    pool = build_pool(roster, absent_ids)
    pool_ids = {w.id for w in pool}
    target = settings.target_matches

    counts: Dict[int, int] = {w.id: 0 for w in pool}
    taken: Set[str] = set()

    for red_id, green_id in seeded_pairs:
        if red_id in absent_ids or green_id in absent_ids:
            continue
        key = pair_key(red_id, green_id)
        if key in taken:
            continue
        taken.add(key)
        for wid in (red_id, green_id):
            if wid in counts:
                counts[wid] += 1

    edges = build_candidate_edges(pool, settings, excluded_keys)
    result = GenerationResult()

    for edge in edges:
        key = pair_key(edge.low, edge.high)
        if key in taken:
            continue
        if counts[edge.low] >= target or counts[edge.high] >= target:
            continue
        taken.add(key)
        counts[edge.low] += 1
        counts[edge.high] += 1
        result.bouts.append(GeneratedBout(red_id=edge.low, green_id=edge.high, cost=edge.cost, notes=edge.notes))

    filled = _fill_zero_bouts(pool, counts, taken, edges, settings.max_matches_per_wrestler)
    result.bouts.extend(filled)
    trimmed = _trim_over_target(result.bouts, counts, target)

    result.rejected = _collect_rejections(pool, counts, edges, settings, excluded_keys)
    result.bout_counts = counts

    logger.debug(
        "Pair generation: pool=%d edges=%d seeded=%d filled=%d trimmed=%d created=%d rejected=%d",
        len(pool_ids),
        len(edges),
        len(seeded_pairs),
        len(filled),
        trimmed,
        len(result.bouts),
        len(result.rejected),
    )
    return result


def _fill_zero_bouts(
    pool: Sequence[WrestlerProfile],
    counts: Dict[int, int],
    taken: Set[str],
    edges: Sequence[_Edge],
    cap: int,
) -> List[GeneratedBout]:
    """Give zero-bout wrestlers a partner with spare capacity up to `cap`. Mutates counts and taken."""
    by_wrestler: Dict[int, List[_Edge]] = {}
    for edge in edges:
        by_wrestler.setdefault(edge.low, []).append(edge)
        by_wrestler.setdefault(edge.high, []).append(edge)

    filled: List[GeneratedBout] = []
    made = True
    while made:
        made = False
        for wrestler in pool:
            if counts[wrestler.id] > 0:
                continue

            options = []
            for edge in by_wrestler.get(wrestler.id, ()):
                partner = edge.high if edge.low == wrestler.id else edge.low
                if counts[partner] >= cap or pair_key(edge.low, edge.high) in taken:
                    continue
                options.append((counts[partner] > 0, edge.cost, counts[partner], partner, edge))
            if not options:
                continue

            edge = min(options)[-1]
            taken.add(pair_key(edge.low, edge.high))
            counts[edge.low] += 1
            counts[edge.high] += 1
            filled.append(GeneratedBout(red_id=edge.low, green_id=edge.high, cost=edge.cost, notes=edge.notes))
            made = True
    return filled


def _trim_over_target(bouts: List[GeneratedBout], counts: Dict[int, int], target: int) -> int:
    """Drop bouts whose wrestlers both ended up over the target. Returns how many went."""
    trimmed = 0
    for index in range(len(bouts) - 1, -1, -1):
        bout = bouts[index]
        if counts[bout.red_id] > target and counts[bout.green_id] > target:
            del bouts[index]
            counts[bout.red_id] -= 1
            counts[bout.green_id] -= 1
            trimmed += 1
    return trimmed


def _collect_rejections(
    pool: Sequence[WrestlerProfile],
    counts: Dict[int, int],
    edges: Sequence[_Edge],
    settings: PairingSettings,
    excluded_keys: AbstractSet[str],
) -> List[RejectedCandidate]:
    best_partner: Dict[int, int] = {}
    for edge in edges:
        # Edges are already sorted by cost, so the first hit is the best partner
        best_partner.setdefault(edge.low, edge.high)
        best_partner.setdefault(edge.high, edge.low)

    rejected: List[RejectedCandidate] = []
    seen: Set[str] = set()
    for wrestler in pool:
        if counts[wrestler.id] > 0:
            continue

        candidate: Optional[RejectedCandidate] = None
        if wrestler.id in best_partner:
            candidate = RejectedCandidate(wrestler.id, best_partner[wrestler.id], REASON_PARTNER_AT_CAPACITY)
        else:
            others = [w for w in pool if w.id != wrestler.id]
            if others:
                nearest = min(
                    others,
                    key=lambda w: (weight_diff_pct(wrestler.weight, w.weight), age_gap_days(wrestler, w), w.id),
                )
                reason = evaluate(wrestler, nearest, settings, excluded_keys).reason or REASON_PARTNER_AT_CAPACITY
                candidate = RejectedCandidate(wrestler.id, nearest.id, reason)

        if candidate and candidate.pair_key not in seen:
            seen.add(candidate.pair_key)
            rejected.append(candidate)
    return rejected
