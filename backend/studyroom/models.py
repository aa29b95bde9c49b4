from studyroom import db


class RoomTimer(db.Model):
    __tablename__ = 'room_timer'
    room_id = db.Column(db.String(128), primary_key=True)
    is_running = db.Column(db.Boolean, default=False, nullable=False)
    phase = db.Column(db.String(16), default='work', nullable=False)  # work, break
    end_at = db.Column(db.BigInteger, nullable=True)  # epoch ms, set only while running

    def to_dict(self):
        return {
            'isRunning': bool(self.is_running),
            'phase': self.phase or 'work',
            'endAt': self.end_at,
        }


class RoomScore(db.Model):
    __tablename__ = 'room_score'
    room_id = db.Column(db.String(128), primary_key=True)
    name = db.Column(db.String(128), primary_key=True)
    points = db.Column(db.Integer, default=0, nullable=False)
