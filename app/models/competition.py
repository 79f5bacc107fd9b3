from datetime import datetime
from app.extensions import db

class Competition(db.Model):
    __tablename__ = "competitions"

    id = db.Column(db.Integer, primary_key=True)

    # Public-facing name, e.g. "Inter-Uni Bouldering Open"
    name = db.Column(db.String(160), nullable=False)
    location = db.Column(db.String(160), nullable=True)

    # Non-admins only see the leaderboard once this is switched on
    is_leaderboard_public = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    boulders = db.relationship(
        "Boulder",
        back_populates="competition",
        lazy=True,
        order_by="Boulder.order",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "is_leaderboard_public": bool(self.is_leaderboard_public),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
