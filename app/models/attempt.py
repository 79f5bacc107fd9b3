from datetime import datetime
from sqlalchemy import UniqueConstraint
from app.extensions import db

ATTEMPT_STATUSES = ("none", "flash", "sent", "zone")

class Attempt(db.Model):
    __tablename__ = "attempts"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(
        db.String(64),
        db.ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )

    boulder_id = db.Column(
        db.Integer,
        db.ForeignKey("boulders.id"),
        nullable=False,
        index=True,
    )

    # Stored redundantly so leaderboard reads can filter without a join
    competition_id = db.Column(
        db.Integer,
        db.ForeignKey("competitions.id"),
        nullable=False,
        index=True,
    )

    send_attempt_count = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(10), nullable=False, default="none")
    validated = db.Column(db.Boolean, nullable=False, default=False)

    timestamp = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    __table_args__ = (
        # One ledger entry per climber per boulder
        UniqueConstraint("user_id", "boulder_id", name="uq_attempt_user_boulder"),
    )

    boulder = db.relationship("Boulder")
    profile = db.relationship("Profile", back_populates="attempts")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "boulder_id": self.boulder_id,
            "competition_id": self.competition_id,
            "send_attempt_count": self.send_attempt_count,
            "status": self.status,
            "validated": bool(self.validated),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
