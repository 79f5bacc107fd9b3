import pytest

from app import create_app
from app.config import TestingConfig
from app.extensions import db
from app.helpers.account import Viewer
from app.helpers.leaderboard_cache import invalidate_leaderboard_cache
from app.helpers.scoring import apply_point_schedule
from app.models import Boulder, Competition, Profile
from app.routes import register_blueprints


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    register_blueprints(app)

    with app.app_context():
        db.create_all()
        invalidate_leaderboard_cache()
        yield app
        db.session.remove()
        db.drop_all()
        invalidate_leaderboard_cache()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_profile(app):
    def _make(user_id, name=None, gender="male", university="Uni North", is_admin=False, is_super_admin=False, email=None):
        profile = Profile(
            id=user_id,
            name=name or user_id.title(),
            gender=gender,
            university=university,
            is_admin=is_admin,
            is_super_admin=is_super_admin,
            email=email,
        )
        db.session.add(profile)
        db.session.commit()
        return profile
    return _make


@pytest.fixture
def competition(app):
    comp = Competition(name="Inter-Uni Open", location="Main Wall", is_leaderboard_public=True)
    db.session.add(comp)
    db.session.commit()
    return comp


@pytest.fixture
def make_boulder(app, competition):
    def _make(name="Boulder", max_points=100, max_zone_points=50, competition_id=None, is_active=True, order=0):
        boulder = Boulder(
            name=name,
            color="red",
            is_active=is_active,
            order=order,
            competition_id=competition_id or competition.id,
        )
        apply_point_schedule(boulder, max_points, max_zone_points)
        db.session.add(boulder)
        db.session.commit()
        return boulder
    return _make


@pytest.fixture
def login(client):
    def _login(user_id):
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
    return _login


def viewer_for(user_id, is_admin=False, is_super_admin=False):
    return Viewer(user_id=user_id, is_admin=is_admin, is_super_admin=is_super_admin)


def fresh(model, pk):
    """Reload a row from the database, dropping anything cached in the session."""
    db.session.expire_all()
    return db.session.get(model, pk)
