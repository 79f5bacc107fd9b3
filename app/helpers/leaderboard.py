from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models import Attempt, Boulder, Competition, Profile
from app.helpers.leaderboard_cache import get_cached_leaderboard, set_cached_leaderboard
from app.helpers.scoring import DEFAULT_BEST_OF, score_attempts

DEFAULT_FINALISTS_PER_GENDER = 6
FINALIST_GENDERS = ("male", "female")

SORT_KEYS = ("total_points", "total_boulders", "total_flashes")


def normalize_gender_filter(raw: Optional[str]) -> str:
    if not raw:
        return "all"
    k = (raw or "").strip().lower()

    if k in ("m", "male", "men"):
        return "male"
    if k in ("f", "female", "women"):
        return "female"

    # unknown -> treat like "all"
    return "all"


def normalize_sort_key(raw: Optional[str]) -> str:
    if not raw:
        return "total_points"
    k = (raw or "").strip().lower().replace("_", "")

    if k in ("totalboulders", "boulders", "sent"):
        return "total_boulders"
    if k in ("totalflashes", "flashes"):
        return "total_flashes"
    return "total_points"


def normalize_direction(raw: Optional[str]) -> str:
    return "asc" if (raw or "").strip().lower() == "asc" else "desc"


def _compute_leaderboard(comp: Competition) -> list[dict]:
    best_of = current_app.config.get("BEST_BOULDERS_COUNTED", DEFAULT_BEST_OF)

    # Every profile appears, even with zero validated boulders.
    # User-id order is the tie-break the ranker's stable sort keeps.
    profiles = Profile.query.order_by(Profile.id.asc()).all()

    attempts = (
        Attempt.query
        .filter(Attempt.competition_id == comp.id, Attempt.validated == True)
        .order_by(Attempt.id.asc())
        .all()
    )
    boulders = Boulder.query.filter(Boulder.competition_id == comp.id).all()
    boulders_by_id = {b.id: b for b in boulders}

    by_user = {}
    for a in attempts:
        by_user.setdefault(a.user_id, []).append(a)

    entries = []
    for p in profiles:
        totals = score_attempts(by_user.get(p.id, []), boulders_by_id, best_of)
        entries.append(
            {
                "user_id": p.id,
                "user_name": p.name or "Unknown Climber",
                "university": p.university or "Unknown University",
                "gender": p.gender or None,
                "total_points": totals["total_points"],
                "total_boulders": totals["total_boulders"],
                "total_flashes": totals["total_flashes"],
                "total_zones": totals["total_zones"],
                "competition_id": comp.id,
            }
        )

    return entries


def build_leaderboard(competition_id: int) -> list[dict]:
    """
    Unranked LeaderboardEntry rows for one competition, in user-id order.

    Store failures degrade to an empty list.
    """
    cached = get_cached_leaderboard(competition_id)
    if cached is not None:
        return cached

    try:
        comp = db.session.get(Competition, competition_id)
        if not comp:
            return []
        entries = _compute_leaderboard(comp)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning("leaderboard build failed comp=%s: %s", competition_id, e)
        return []

    set_cached_leaderboard(competition_id, entries)
    return [dict(e) for e in entries]


def _sorted(entries: list[dict], key: str, direction: str) -> list[dict]:
    # list.sort is stable in both directions
    return sorted(entries, key=lambda e: e[key], reverse=(direction == "desc"))


def rank_leaderboard(
    entries: list[dict],
    gender: str = "all",
    search: Optional[str] = None,
    university: Optional[str] = None,
    sort_by: str = "total_points",
    direction: str = "desc",
    finalists_per_gender: int = DEFAULT_FINALISTS_PER_GENDER,
) -> list[dict]:
    """
    Filter, sort and flag leaderboard rows.

    - gender "all": the finalist list, the top `finalists_per_gender` male
      and female entries by points, combined and re-sorted by `sort_by`.
    - a specific gender: every entry of that gender sorted by `sort_by`;
      the first `finalists_per_gender` rows of that ordering are flagged
      as finalists.

    Search (name or university, case-insensitive) and the university
    filter apply before finalists are chosen. Ties keep input order.
    """
    gender = normalize_gender_filter(gender)
    sort_by = sort_by if sort_by in SORT_KEYS else "total_points"
    direction = normalize_direction(direction)

    term = (search or "").strip().lower()
    uni = (university or "").strip()
    if uni.lower() == "all":
        uni = ""

    filtered = []
    for e in entries:
        if term and term not in (e.get("user_name") or "").lower() and term not in (e.get("university") or "").lower():
            continue
        if uni and e.get("university") != uni:
            continue
        filtered.append(dict(e))

    if gender == "all":
        rows = []
        for g in FINALIST_GENDERS:
            of_gender = [e for e in filtered if e.get("gender") == g]
            rows.extend(_sorted(of_gender, "total_points", "desc")[:finalists_per_gender])
    else:
        rows = [e for e in filtered if e.get("gender") == gender]

    rows = _sorted(rows, sort_by, direction)

    for position, e in enumerate(rows, start=1):
        e["rank"] = position
        # finalist cutoff sits at the Nth displayed row
        e["is_finalist"] = gender == "all" or position <= finalists_per_gender

    return rows


def list_universities(entries: list[dict]) -> list[str]:
    return sorted({e["university"] for e in entries if e.get("university")})


def get_user_competition_results(user_id: str) -> list[dict]:
    """
    Per-competition summary for one climber, newest competition first.

    Rank is the 1-based position in the points-sorted leaderboard.
    """
    try:
        competitions = (
            Competition.query
            .order_by(Competition.created_at.desc(), Competition.id.desc())
            .all()
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning("results lookup failed user=%s: %s", user_id, e)
        return []

    results = []
    for comp in competitions:
        entries = _sorted(build_leaderboard(comp.id), "total_points", "desc")
        position = next((i for i, e in enumerate(entries) if e["user_id"] == user_id), None)
        entry = entries[position] if position is not None else None

        try:
            total_boulders = Boulder.query.filter_by(competition_id=comp.id).count()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.warning("boulder count failed comp=%s: %s", comp.id, e)
            total_boulders = 0

        results.append(
            {
                "competition_id": comp.id,
                "competition_name": comp.name,
                "location": comp.location,
                "date": comp.created_at.isoformat() if comp.created_at else None,
                "rank": position + 1 if position is not None else None,
                "total_participants": len(entries),
                "total_points": entry["total_points"] if entry else 0,
                "boulders_sent": entry["total_boulders"] if entry else 0,
                "flashes": entry["total_flashes"] if entry else 0,
                "zones": entry["total_zones"] if entry else 0,
                "total_boulders": total_boulders,
            }
        )

    return results
