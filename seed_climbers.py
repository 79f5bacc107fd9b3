# seed_climbers.py
import random

from dotenv import load_dotenv

from app import create_app
from app.extensions import db
from app.models import Boulder, Competition, Profile
from app.helpers.scoring import apply_point_schedule

UNIVERSITIES = ["Uni North", "Uni South", "Tech Institute", "City College"]
COLOURS = ["red", "blue", "green", "yellow", "purple", "orange", "pink", "gray"]


def main(num_climbers=500, num_boulders=14):
    load_dotenv()
    app = create_app()

    with app.app_context():
        db.create_all()

        existing = Profile.query.count()
        print(f"Existing profiles: {existing}")

        for i in range(num_climbers):
            n = existing + i + 1
            db.session.add(
                Profile(
                    id=f"climber-{n}",
                    name=f"Test Climber {n}",
                    university=random.choice(UNIVERSITIES),
                    gender=random.choice(["male", "female"]),
                )
            )

        comp = Competition(name="Load Test Open", location="Main Wall", is_leaderboard_public=True)
        db.session.add(comp)
        db.session.flush()

        for order in range(1, num_boulders + 1):
            boulder = Boulder(
                name=f"Boulder {order}",
                color=COLOURS[order % len(COLOURS)],
                order=order,
                competition_id=comp.id,
            )
            apply_point_schedule(boulder, max_points=100 + 25 * (order % 5), max_zone_points=50)
            db.session.add(boulder)

        db.session.commit()
        print(f"Now have {Profile.query.count()} profiles; competition {comp.id} has {num_boulders} boulders.")


if __name__ == "__main__":
    main()
