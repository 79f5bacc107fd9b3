from app.extensions import db

class Boulder(db.Model):
    __tablename__ = "boulders"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    color = db.Column(db.String(40), nullable=False, default="red")

    # Admin-entered maxima; the stored schedule below is derived from these
    max_points = db.Column(db.Integer, nullable=False, default=100)
    max_zone_points = db.Column(db.Integer, nullable=False, default=50)

    # Snapshot of the decay schedule at create/edit time
    points_for_attempt_1 = db.Column(db.Integer, nullable=False, default=100)
    points_for_attempt_2 = db.Column(db.Integer, nullable=False, default=95)
    points_for_attempt_3 = db.Column(db.Integer, nullable=False, default=90)
    points_for_attempt_4 = db.Column(db.Integer, nullable=False, default=85)
    points_for_attempt_5 = db.Column(db.Integer, nullable=False, default=80)
    points_for_zone = db.Column(db.Integer, nullable=False, default=50)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    order = db.Column(db.Integer, nullable=False, default=0)

    competition_id = db.Column(
        db.Integer,
        db.ForeignKey("competitions.id"),
        nullable=False,
        index=True,
    )

    competition = db.relationship("Competition", back_populates="boulders")

    @property
    def attempt_points(self) -> list[int]:
        return [
            self.points_for_attempt_1,
            self.points_for_attempt_2,
            self.points_for_attempt_3,
            self.points_for_attempt_4,
            self.points_for_attempt_5,
        ]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "max_points": self.max_points,
            "max_zone_points": self.max_zone_points,
            "points_for_attempt": self.attempt_points,
            "points_for_zone": self.points_for_zone,
            "is_active": bool(self.is_active),
            "order": self.order,
            "competition_id": self.competition_id,
        }
