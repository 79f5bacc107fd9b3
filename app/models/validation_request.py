from datetime import datetime
from app.extensions import db

class ValidationRequest(db.Model):
    __tablename__ = "validation_requests"

    id = db.Column(db.Integer, primary_key=True)

    climber_id = db.Column(
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
    validator_id = db.Column(
        db.String(64),
        db.ForeignKey("profiles.id"),
        nullable=True,
    )

    status = db.Column(db.String(10), nullable=False, default="pending")  # 'pending','approved','rejected'
    attempt_count = db.Column(db.Integer, nullable=False)

    # Opaque single-use token carried by the QR code
    qr_token = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    scanned_at = db.Column(db.DateTime, nullable=True)

    climber = db.relationship("Profile", foreign_keys=[climber_id])
    validator = db.relationship("Profile", foreign_keys=[validator_id])
    boulder = db.relationship("Boulder")

    def to_dict(self):
        return {
            "id": self.id,
            "climber_id": self.climber_id,
            "climber_name": self.climber.name if self.climber else None,
            "boulder_id": self.boulder_id,
            "boulder_name": self.boulder.name if self.boulder else None,
            "boulder_color": self.boulder.color if self.boulder else None,
            "validator_id": self.validator_id,
            "status": self.status,
            "attempt_count": self.attempt_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
