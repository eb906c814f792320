from voteboard import db


class VoteRecord(db.Model):
    __tablename__ = 'vote_record'
    __table_args__ = (db.UniqueConstraint('category', 'username', name='uq_vote_record_category_username'),)
    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(16), nullable=False, index=True)
    username = db.Column(db.String(16), nullable=False)
    ip = db.Column(db.String(64), nullable=False)
    # epoch milliseconds
    timestamp = db.Column(db.BigInteger, nullable=False)

    def to_dict(self):
        return {
            'ip': self.ip,
            'timestamp': self.timestamp,
        }


class LeaderboardEntry(db.Model):
    __tablename__ = 'leaderboard_entry'
    username = db.Column(db.String(16), primary_key=True)
    total_votes = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'username': self.username,
            'totalvotes': self.total_votes,
        }
