# src/survey_results/tools/ranking.py
"""
Ranked-choice tabulation for rank-type questions.

Two methods are provided:
  - Borda count: positional points (1st of n options gets n points, 2nd n-1, ...)
    plus a per-position distribution for each option.
  - Instant-Runoff Voting: repeated first-preference tallies among the still
    active candidates, eliminating every candidate tied at the minimum each
    round, until one candidate remains or the whole field is tied.

Both are deterministic for a fixed ballot and option order. Ties are never
broken randomly.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..db.models import QuestionDefinition
from .normalize import Ballot, normalize_rank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingEntry:
    option_id: str
    label: str
    points: int
    position_counts: List[int]


@dataclass(frozen=True)
class BordaResult:
    rankings: List[RankingEntry]
    total_responses: int
    option_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IRVRound:
    counts: Dict[str, int]
    total_votes: int
    eliminated: List[str]


@dataclass(frozen=True)
class IRVResult:
    winner: Optional[str]
    rounds: List[IRVRound]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _ballots(values: Sequence[Any], option_count: int, question_id: str) -> List[Ballot]:
    out: List[Ballot] = []
    for raw in values:
        ballot = normalize_rank(raw, option_count=option_count)
        if ballot is None:
            logger.debug("Skipping malformed ranking answer", extra={"question_id": question_id})
            continue
        out.append(ballot)
    return out


def compute_borda(values: Sequence[Any], question: QuestionDefinition) -> BordaResult:
    options = question.ranked_options
    option_count = len(options)
    ballots = _ballots(values, option_count, question.id)

    points: Dict[str, int] = {o.value: 0 for o in options}
    positions: Dict[str, List[int]] = {o.value: [0] * option_count for o in options}

    for ballot in ballots:
        for entry in ballot.entries:
            counter = positions.get(entry.option_id)
            if counter is None or entry.position >= option_count:
                continue
            counter[entry.position] += 1
            points[entry.option_id] += option_count - entry.position

    rankings = [
        RankingEntry(
            option_id=o.value,
            label=o.label,
            points=points[o.value],
            position_counts=positions[o.value],
        )
        for o in options
    ]
    # Stable sort: equal points keep declaration order.
    rankings.sort(key=lambda r: r.points, reverse=True)

    return BordaResult(rankings=rankings, total_responses=len(ballots), option_count=option_count)


def _first_active(ballot: Ballot, active: Dict[str, None]) -> Optional[str]:
    for option_id in ballot.order:
        if option_id in active:
            return option_id
    return None


def compute_irv(values: Sequence[Any], question: QuestionDefinition) -> IRVResult:
    """
    Instant-Runoff Voting over the declared rank options.

    Each round every ballot goes to its highest-ranked candidate that is still
    active (ballots are rescanned from the top, which transfers votes
    implicitly). All candidates sharing the lowest tally are eliminated
    together. If that would eliminate every remaining candidate, the election
    ends without a winner.
    """
    options = question.ranked_options
    ballots = _ballots(values, len(options), question.id)

    # dict keeps declaration order for deterministic round output
    active: Dict[str, None] = dict.fromkeys(o.value for o in options)
    rounds: List[IRVRound] = []

    while len(active) > 1:
        counts: Dict[str, int] = {candidate: 0 for candidate in active}
        for ballot in ballots:
            choice = _first_active(ballot, active)
            if choice is not None:
                counts[choice] += 1

        lowest = min(counts.values())
        eliminated = [candidate for candidate, n in counts.items() if n == lowest]
        rounds.append(IRVRound(counts=counts, total_votes=len(ballots), eliminated=eliminated))

        for candidate in eliminated:
            del active[candidate]

        if not active:
            logger.info(
                "Instant-runoff ended in a complete tie",
                extra={"question_id": question.id, "rounds": len(rounds), "tied": eliminated},
            )
            return IRVResult(winner=None, rounds=rounds)

    winner = next(iter(active), None)
    return IRVResult(winner=winner, rounds=rounds)
