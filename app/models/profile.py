from app.extensions import db

GENDERS = ("male", "female", "other")

class Profile(db.Model):
    __tablename__ = "profiles"

    # Identity comes from the external auth provider
    id = db.Column(db.String(64), primary_key=True)

    name = db.Column(db.String(120), nullable=True)
    university = db.Column(db.String(160), nullable=True)
    gender = db.Column(db.String(10), nullable=True)

    # Optional; only used to address operator alerts
    email = db.Column(db.String(255), nullable=True)

    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_super_admin = db.Column(db.Boolean, nullable=False, default=False)

    attempts = db.relationship("Attempt", back_populates="profile", lazy=True)
