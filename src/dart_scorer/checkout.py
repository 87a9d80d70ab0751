from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from itertools import islice
from typing import Iterator, Sequence

from .targets import BULL, OUTER_BULL, DartTarget, FinishRule, Multiplier, parse_target

log = logging.getLogger(__name__)

SINGLES = tuple(DartTarget(i, Multiplier.SINGLE) for i in range(1, 21))
DOUBLES = tuple(DartTarget(i, Multiplier.DOUBLE) for i in range(1, 21))
TRIPLES = tuple(DartTarget(i, Multiplier.TRIPLE) for i in range(1, 21))

# Board order: S1, D1, T1, S2, ... T20, 25, Bull.
ALL_TARGETS: tuple[DartTarget, ...] = tuple(
    DartTarget(value, multiplier) for value in range(1, 21) for multiplier in Multiplier
) + (OUTER_BULL, BULL)

# Fixed priority used by the live in-turn hint.
MINIMAL_ORDER: tuple[DartTarget, ...] = (
    tuple(reversed(TRIPLES)) + tuple(reversed(DOUBLES)) + tuple(reversed(SINGLES)) + (BULL, OUTER_BULL)
)

BOGEY_SCORES = frozenset({169, 168, 166, 165, 163, 162, 159})
MAX_DOUBLE_OUT = 170
MAX_SINGLE_OUT = 180

PRO_ROUTES: dict[int, tuple[str, ...]] = {
    170: ("T20", "T20", "Bull"),
    167: ("T20", "T19", "Bull"),
    164: ("T20", "T18", "Bull"),
    161: ("T20", "T17", "Bull"),
    132: ("Bull", "Bull", "D16"),
    121: ("T20", "T11", "D14"),
    110: ("T20", "T10", "D10"),
    101: ("T20", "S9", "D16"),
    90: ("T18", "D18"),
    85: ("T15", "D20"),
    82: ("Bull", "D16"),
    81: ("T19", "D12"),
    70: ("T18", "D8"),
    69: ("T19", "D6"),
    68: ("T20", "D4"),
    67: ("T17", "D8"),
    66: ("T10", "D18"),
    65: ("T19", "D4"),
    64: ("T16", "D8"),
    63: ("T13", "D12"),
    62: ("T10", "D16"),
    61: ("T15", "D8"),
    56: ("S16", "D20"),
    52: ("S12", "D20"),
    48: ("S16", "D16"),
    44: ("S12", "D16"),
}
PRO_ROUTES.update({value * 2: (f"D{value}",) for value in range(1, 21)})

BIG_FISH = frozenset({170, 167, 164, 161})
BULL_SETUP_BAND = range(82, 96)
AWKWARD_DOUBLES = frozenset({1, 2, 3, 5, 6, 7, 9, 13, 15, 17, 19})


@dataclass(frozen=True)
class FinishRoute:
    darts: tuple[DartTarget, ...]
    label: str
    rationale: str

    @property
    def total(self) -> int:
        return sum(dart.total for dart in self.darts)

    @property
    def tokens(self) -> list[str]:
        return route_tokens(self)

    def is_checkout(self, score: int, finish_rule: FinishRule = FinishRule.DOUBLE_OUT) -> bool:
        return bool(self.darts) and self.total == score and is_finishing_target(self.darts[-1], finish_rule)


def is_finishing_target(target: DartTarget, finish_rule: FinishRule = FinishRule.DOUBLE_OUT) -> bool:
    """True when the target can legally end a leg under the finish rule."""
    if finish_rule == FinishRule.SINGLE_OUT:
        return True
    return target.is_bull or (target.is_double and 1 <= target.value <= 20)


def route_tokens(route: FinishRoute | Sequence[DartTarget]) -> list[str]:
    darts = route.darts if isinstance(route, FinishRoute) else route
    return [dart.token for dart in darts]


def _min_leave(finish_rule: FinishRule) -> int:
    return 2 if finish_rule == FinishRule.DOUBLE_OUT else 1


def _walk(
    score: int,
    darts_left: int,
    candidates: Sequence[DartTarget],
    finishers: Sequence[DartTarget],
    floor: int,
    route: tuple[DartTarget, ...] = (),
) -> Iterator[tuple[DartTarget, ...]]:
    if darts_left == 1:
        for dart in finishers:
            if dart.total == score:
                yield route + (dart,)
        return

    for dart in candidates:
        remaining = score - dart.total
        if remaining < floor:
            continue
        yield from _walk(remaining, darts_left - 1, candidates, finishers, floor, route + (dart,))


def iter_routes(
    score: int,
    max_darts: int,
    candidates: Sequence[DartTarget],
    finish_rule: FinishRule,
    floor: int = 0,
) -> Iterator[tuple[DartTarget, ...]]:
    """Yield every finishing route of 1..max_darts darts, shortest first.

    Within a length, routes come out depth-first in candidate order. `floor`
    is the lowest remainder an intermediate dart may leave.
    """
    finishers = tuple(dart for dart in candidates if is_finishing_target(dart, finish_rule))
    for count in range(1, max_darts + 1):
        yield from _walk(score, count, candidates, finishers, floor)


def minimal_route(
    score: int,
    darts_remaining: int,
    finish_rule: FinishRule = FinishRule.DOUBLE_OUT,
) -> tuple[DartTarget, ...] | None:
    """First route with the fewest darts, in fixed treble/double/single/bull order."""
    return _minimal_route(score, darts_remaining, FinishRule(finish_rule))


@lru_cache(maxsize=1024)
def _minimal_route(score: int, darts_remaining: int, finish_rule: FinishRule) -> tuple[DartTarget, ...] | None:
    if score <= 0 or darts_remaining <= 0:
        return None
    return next(iter_routes(score, darts_remaining, MINIMAL_ORDER, finish_rule), None)


def _setup_cost(target: DartTarget, score: int) -> int:
    leave = score - target.total
    cost = abs(leave - 100)
    if leave > MAX_DOUBLE_OUT:
        cost += 3_000
    if leave <= 1:
        cost += 4_000
    if leave in BOGEY_SCORES:
        cost += 4_000
    if leave == 170:
        cost -= 600
    if leave == 167:
        cost -= 300
    if target == OUTER_BULL:
        cost -= 30
    if target == DartTarget(19, Multiplier.SINGLE):
        cost -= 20
    return cost


def best_setup_target(score: int) -> DartTarget:
    # min() keeps the first of equal costs, so board order breaks ties.
    return min(ALL_TARGETS, key=lambda target: _setup_cost(target, score))


def _likely_miss_leave(start_score: int, aimed: DartTarget) -> int | None:
    if aimed.multiplier == Multiplier.SINGLE:
        return None
    return start_score - aimed.value


def _is_single_into_double(route: Sequence[DartTarget], start_score: int) -> bool:
    if len(route) != 2:
        return False
    if route[0].multiplier != Multiplier.SINGLE or route[1].multiplier != Multiplier.DOUBLE:
        return False
    return sum(dart.total for dart in route) == start_score


def _preference_score(route: Sequence[DartTarget], start_score: int) -> int:
    """Professional ranking of a route; lower is better."""
    final = route[-1]
    score = 0

    if final.multiplier == Multiplier.DOUBLE:
        if final.value == 16:
            score -= 5
        elif final.value in (8, 4):
            score -= 4
        elif final.value == 20:
            score -= 3
        elif final.value in (12, 10, 18):
            score -= 2
        elif final.value in AWKWARD_DOUBLES:
            score += 4

    # Unnecessary treble in a two-dart finish.
    if len(route) == 2 and route[0].multiplier == Multiplier.TRIPLE:
        score += 2

    if len(route) >= 2:
        miss = _likely_miss_leave(start_score, route[0])
        if miss is not None and (miss in BOGEY_SCORES or 0 <= miss <= 9):
            score += 3

    if start_score in BULL_SETUP_BAND and (route[0].is_bull or route[0].is_outer_bull):
        score -= 1

    return score


def route_cost(route: Sequence[DartTarget], start_score: int, finish_rule: FinishRule = FinishRule.DOUBLE_OUT) -> int:
    cost = 0
    remaining = start_score
    min_leave = _min_leave(finish_rule)
    last_index = len(route) - 1

    for index, dart in enumerate(route):
        remaining -= dart.total

        if index < last_index:
            if remaining < min_leave:
                cost += 5_000
            if finish_rule == FinishRule.DOUBLE_OUT and remaining in BOGEY_SCORES:
                cost += 1_200
            if remaining > MAX_DOUBLE_OUT:
                cost += 900

        if index == 0 and start_score in BULL_SETUP_BAND:
            cost += -120 if (dart.is_bull or dart.is_outer_bull) else 40

        if index == 0 and dart.multiplier == Multiplier.TRIPLE:
            miss_single_leave = start_score - dart.value
            if miss_single_leave in BOGEY_SCORES or miss_single_leave == 1:
                cost += 200

    if not is_finishing_target(route[-1], finish_rule):
        cost += 10_000
    if _is_single_into_double(route, start_score):
        cost -= 180

    cost += _preference_score(route, start_score) * 40
    cost += len(route) * 4
    return cost


def best_fallback_route(
    score: int,
    darts_remaining: int,
    finish_rule: FinishRule = FinishRule.DOUBLE_OUT,
) -> tuple[DartTarget, ...] | None:
    best: tuple[DartTarget, ...] | None = None
    best_key: tuple[int, int] | None = None
    routes = iter_routes(score, darts_remaining, ALL_TARGETS, finish_rule, floor=_min_leave(finish_rule))
    for route in routes:
        key = (route_cost(route, score, finish_rule), len(route))
        if best_key is None or key < best_key:
            best, best_key = route, key
    return best


def _pro_route(score: int, darts_remaining: int) -> FinishRoute | None:
    tokens = PRO_ROUTES.get(score)
    if tokens is None or len(tokens) > darts_remaining:
        return None
    darts = tuple(parse_target(token) for token in tokens)

    if 61 <= score <= 70:
        rationale = "Treble-to-double route; if first dart lands single, recover via bull path."
    elif score == 132:
        rationale = "Champagne shot: Bull, Bull, D16."
    elif score in BIG_FISH:
        rationale = "Big Fish finish profile."
    else:
        rationale = "Professional preferred route from lookup table."
    return FinishRoute(darts, "Pro Route", rationale)


def _setup_for_high_score(score: int) -> FinishRoute:
    if score == 195:
        return FinishRoute((OUTER_BULL,), "Setup", "Leave 170 with 25.")
    if score == 186:
        return FinishRoute((DartTarget(19, Multiplier.SINGLE),), "Setup", "Leave 167 and avoid 166 bogey.")
    setup = best_setup_target(score)
    leave = score - setup.total
    return FinishRoute((setup,), "Setup", f"Leave {leave} (<=170, non-bogey).")


def _setup_for_bogey(score: int) -> FinishRoute:
    if score == 169:
        return FinishRoute((DartTarget(9, Multiplier.SINGLE),), "Setup", "169 is a bogey. S9 leaves 160.")
    if score == 159:
        return FinishRoute((DartTarget(19, Multiplier.SINGLE),), "Setup", "159 is a bogey. S19 leaves 140.")
    return FinishRoute((best_setup_target(score),), "Setup", "Bogey avoidance setup.")


def get_best_finish(
    score: int,
    darts_remaining: int,
    finish_rule: FinishRule = FinishRule.DOUBLE_OUT,
) -> FinishRoute:
    """Preferred route for `score` with `darts_remaining` darts in hand.

    Double-out consults the professional lookup table first, steers away from
    bogey numbers and recommends a setup dart above 170. When no table entry
    fits, every route up to the dart budget is ranked by `route_cost`.
    """
    return _best_finish(score, darts_remaining, FinishRule(finish_rule))


@lru_cache(maxsize=1024)
def _best_finish(score: int, darts_remaining: int, finish_rule: FinishRule) -> FinishRoute:
    if score <= 1:
        return FinishRoute((), "Invalid", "Cannot check out 1")
    if not 1 <= darts_remaining <= 3:
        return FinishRoute((), "Invalid", "Darts remaining must be 1...3")

    if finish_rule == FinishRule.DOUBLE_OUT:
        if score > MAX_DOUBLE_OUT:
            return _setup_for_high_score(score)
        if score in BOGEY_SCORES:
            return _setup_for_bogey(score)
        pro = _pro_route(score, darts_remaining)
        if pro is not None:
            return pro
    elif score > MAX_SINGLE_OUT:
        setup = best_setup_target(score)
        return FinishRoute((setup,), "Setup", f"Leave {score - setup.total}.")

    fallback = best_fallback_route(score, darts_remaining, finish_rule)
    if fallback is not None:
        rule = "double-out" if finish_rule == FinishRule.DOUBLE_OUT else "single-out"
        return FinishRoute(fallback, "Fallback", f"Heuristic route with {rule} and preferred doubles.")

    log.debug("no %d-dart finish for %d, falling back to setup", darts_remaining, score)
    return FinishRoute(
        (best_setup_target(score),),
        "Setup",
        f"No direct finish in {darts_remaining} darts. Safe leave selected.",
    )


def _rank_throw(target: DartTarget) -> tuple[int, int, str]:
    """Prefer higher-value throws, then deterministic lexical tie-break."""
    kind_rank = {Multiplier.TRIPLE: 0, Multiplier.DOUBLE: 1, Multiplier.SINGLE: 2}[target.multiplier]
    return (-target.total, kind_rank, target.token)


RANKED_TARGETS: tuple[DartTarget, ...] = tuple(sorted(ALL_TARGETS, key=_rank_throw))


@lru_cache(maxsize=256)
def _suggestions(score: int, max_darts: int) -> tuple[tuple[str, ...], ...]:
    if score < 2 or score > MAX_DOUBLE_OUT or max_darts < 1:
        return ()

    preferred = get_best_finish(score, min(max_darts, 3))
    candidates = [tuple(preferred.tokens)] if preferred.is_checkout(score) else []
    routes = iter_routes(score, max_darts, RANKED_TARGETS, FinishRule.DOUBLE_OUT, floor=2)
    candidates.extend(tuple(route_tokens(route)) for route in islice(routes, 40))

    # Deduplicate while preserving order and limit output size.
    unique: list[tuple[str, ...]] = []
    seen: set[tuple[str, ...]] = set()
    for combo in candidates:
        if combo not in seen:
            seen.add(combo)
            unique.append(combo)
    return tuple(unique[:20])


def suggest_checkout(score: int, max_darts: int = 3) -> list[list[str]]:
    """Up to 20 distinct double-out routes, the preferred one first."""
    return [list(combo) for combo in _suggestions(score, max_darts)]
