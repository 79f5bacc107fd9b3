import math
from typing import Iterable, Optional

from flask import current_app

from app.models import Attempt, Boulder

# --- Point schedule ---

SCHEDULED_ATTEMPTS = 5
DECAY_PER_ATTEMPT = 0.05
DEFAULT_BEST_OF = 6


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def points_for_attempt(max_points, attempt_number) -> int:
    """
    Points awarded for a send on `attempt_number`, decaying 5% of `max_points`
    per attempt after the first. A completed send is always worth at least 1.
    """
    if attempt_number <= 0:
        return 0

    reduction = (attempt_number - 1) * DECAY_PER_ATTEMPT
    return max(1, _round_half_up(max_points * (1 - reduction)))


def build_point_schedule(max_points: int, max_zone_points: int) -> dict:
    """
    Column values for a Boulder's stored schedule.

    Zone points are copied verbatim (no decay).
    """
    if max_points is None or max_points <= 0:
        raise ValueError("max_points must be greater than 0")
    if max_zone_points is None or max_zone_points < 0:
        raise ValueError("max_zone_points must not be negative")

    values = {
        "max_points": max_points,
        "max_zone_points": max_zone_points,
        "points_for_zone": max_zone_points,
    }
    for n in range(1, SCHEDULED_ATTEMPTS + 1):
        values[f"points_for_attempt_{n}"] = points_for_attempt(max_points, n)
    return values


def apply_point_schedule(boulder: Boulder, max_points: int, max_zone_points: int) -> Boulder:
    """Overwrite all stored point values on `boulder` from new maxima."""
    for column, value in build_point_schedule(max_points, max_zone_points).items():
        setattr(boulder, column, value)
    return boulder


# --- Scoring engine ---

def status_for_count(count: Optional[int]) -> str:
    if not count or count <= 0:
        return "none"
    return "flash" if count == 1 else "sent"


def points_for(boulder: Optional[Boulder], send_attempt_count, status) -> int:
    """
    Points for one ledger entry using the boulder's stored schedule.

    Sends past the 5th attempt reuse the 5th-attempt value.
    """
    if boulder is None:
        return 0

    if send_attempt_count and send_attempt_count > 0:
        idx = min(send_attempt_count, SCHEDULED_ATTEMPTS) - 1
        return boulder.attempt_points[idx] or 0

    if status == "zone":
        return boulder.points_for_zone or 0

    return 0


def score_attempts(attempts: Iterable[Attempt], boulders_by_id: dict, best_of: int = DEFAULT_BEST_OF) -> dict:
    """
    Aggregate one climber's ledger entries.

    Only validated entries count. total_points sums the `best_of` highest
    boulder scores; the counters cover every validated send.
    """
    scored = []
    total_boulders = 0
    total_flashes = 0
    total_zones = 0

    for a in attempts:
        if not a.validated:
            continue

        boulder = boulders_by_id.get(a.boulder_id)
        if boulder is None:
            continue

        count = a.send_attempt_count or 0
        if count > 0:
            total_boulders += 1
            if count == 1:
                total_flashes += 1
        elif a.status == "zone":
            total_zones += 1
        else:
            continue

        scored.append((a.boulder_id, points_for(boulder, count, a.status)))

    # Stable: equal scores keep ledger order
    scored.sort(key=lambda pair: -pair[1])
    best = scored[:best_of] if best_of and best_of > 0 else []

    return {
        "total_points": sum(points for _, points in best),
        "total_boulders": total_boulders,
        "total_flashes": total_flashes,
        "total_zones": total_zones,
        "best_boulders": best,
    }


def competitor_total_points(user_id: str, competition_id: int) -> int:
    attempts = (
        Attempt.query
        .filter(
            Attempt.user_id == user_id,
            Attempt.competition_id == competition_id,
            Attempt.validated == True,
        )
        .all()
    )
    if not attempts:
        return 0

    boulder_ids = {a.boulder_id for a in attempts}
    boulders = Boulder.query.filter(Boulder.id.in_(boulder_ids)).all()
    best_of = current_app.config.get("BEST_BOULDERS_COUNTED", DEFAULT_BEST_OF)

    return score_attempts(attempts, {b.id: b for b in boulders}, best_of)["total_points"]
