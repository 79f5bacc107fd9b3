from flask import Flask
from .config import Config
from .extensions import db


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)

    # Import models so db.create_all() sees every table
    from app import models  # noqa: F401

    return app
