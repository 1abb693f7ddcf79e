import time

from scorekeeper import db
from scorekeeper.domain import GameSession, GameType, Player, RoundRecord, ScoreRecord

SESSION_ROW_ID = 1


class GameSessionRow(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)  # only one active session, id == 1
    current_round = db.Column(db.Integer, nullable=False, default=1)
    game_type = db.Column(db.String(32), nullable=False, default=GameType.FREE_FORM.value)
    timestamp = db.Column(db.Float, nullable=False, default=time.time)

    def to_domain(self, players=()):
        return GameSession(
            round=self.current_round,
            game_type=GameType(self.game_type),
        ).with_players(players)


class PlayerRow(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    current_score = db.Column(db.Integer, nullable=False, default=0)
    round_number = db.Column(db.Integer, nullable=False, default=1, index=True)
    # Insertion order for stable roster listing
    seq = db.Column(db.Integer, nullable=False, default=0)

    def to_domain(self):
        return Player(
            id=self.id,
            name=self.name,
            score=self.current_score,
            round=self.round_number,
        )


class PlayerScoreRow(db.Model):
    # No FK to player: history outlives roster membership
    __tablename__ = 'player_score'
    player_id = db.Column(db.String(64), primary_key=True)
    round_number = db.Column(db.Integer, primary_key=True)
    score = db.Column(db.Integer, nullable=False)
    timestamp = db.Column(db.Float, nullable=False, default=time.time)

    def to_domain(self):
        return ScoreRecord(
            player_id=self.player_id,
            round=self.round_number,
            score=self.score,
            timestamp=self.timestamp,
        )


class RoundRow(db.Model):
    __tablename__ = 'round'
    id = db.Column(db.Integer, primary_key=True)
    round_number = db.Column(db.Integer, nullable=False)
    game_type = db.Column(db.String(32), nullable=False)
    timestamp = db.Column(db.Float, nullable=False, default=time.time)

    def to_domain(self):
        return RoundRecord(
            round=self.round_number,
            game_type=GameType(self.game_type),
            timestamp=self.timestamp,
        )
