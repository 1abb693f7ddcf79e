from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from scorekeeper import db
from scorekeeper.errors import PersistenceError
from scorekeeper.models import (
    SESSION_ROW_ID,
    GameSessionRow,
    PlayerRow,
    PlayerScoreRow,
    RoundRow,
)
from .base import SessionStore


class SqlSessionStore(SessionStore):
    """Durable store backed by the Flask-SQLAlchemy session.

    Must be used inside an application context. The outermost transaction
    block commits once; any failure rolls the database session back.
    """

    def _begin(self):
        pass

    def _commit(self):
        db.session.commit()

    def _rollback(self):
        db.session.rollback()

    def _translate_error(self, exc):
        if isinstance(exc, SQLAlchemyError):
            return PersistenceError(f"Database error: {exc.__class__.__name__}")
        return None

    def _load_session(self):
        row = db.session.get(GameSessionRow, SESSION_ROW_ID)
        return row.to_domain() if row else None

    def _save_session(self, session):
        row = db.session.get(GameSessionRow, SESSION_ROW_ID)
        if row is None:
            row = GameSessionRow(id=SESSION_ROW_ID)
        row.current_round = session.round
        row.game_type = session.game_type.value
        db.session.add(row)
        db.session.flush()

    def _all_players(self):
        rows = PlayerRow.query.order_by(PlayerRow.seq).all()
        return [r.to_domain() for r in rows]

    def _list_players(self, round):
        rows = PlayerRow.query.filter_by(round_number=round).order_by(PlayerRow.seq).all()
        return [r.to_domain() for r in rows]

    def _get_player(self, player_id):
        row = db.session.get(PlayerRow, player_id)
        return row.to_domain() if row else None

    def _upsert_player(self, player):
        row = db.session.get(PlayerRow, player.id)
        if row is None:
            next_seq = (db.session.query(func.max(PlayerRow.seq)).scalar() or 0) + 1
            row = PlayerRow(id=player.id, seq=next_seq)
        row.name = player.name
        row.current_score = player.score
        row.round_number = player.round
        db.session.add(row)
        db.session.flush()

    def _update_player(self, player_id, **changes):
        row = db.session.get(PlayerRow, player_id)
        if 'name' in changes:
            row.name = changes['name']
        if 'score' in changes:
            row.current_score = changes['score']
        if 'round' in changes:
            row.round_number = changes['round']
        db.session.add(row)
        db.session.flush()
        return row.to_domain()

    def _delete_player(self, player_id):
        deleted = PlayerRow.query.filter_by(id=player_id).delete(synchronize_session=False)
        db.session.expire_all()
        return deleted > 0

    def _delete_all_players(self):
        PlayerRow.query.delete(synchronize_session=False)
        db.session.expire_all()

    def _upsert_score_record(self, record):
        row = db.session.get(PlayerScoreRow, (record.player_id, record.round))
        if row is None:
            row = PlayerScoreRow(player_id=record.player_id, round_number=record.round)
        row.score = record.score
        row.timestamp = record.timestamp
        db.session.add(row)
        db.session.flush()
        return row.to_domain()

    def _list_score_records(self, player_id, round):
        query = PlayerScoreRow.query
        if player_id is not None:
            query = query.filter_by(player_id=player_id)
        if round is not None:
            query = query.filter_by(round_number=round)
        rows = query.order_by(PlayerScoreRow.round_number, PlayerScoreRow.player_id).all()
        return [r.to_domain() for r in rows]

    def _clear_score_records(self):
        PlayerScoreRow.query.delete(synchronize_session=False)

    def _append_round_record(self, record):
        row = RoundRow(
            round_number=record.round,
            game_type=record.game_type.value,
            timestamp=record.timestamp,
        )
        db.session.add(row)
        db.session.flush()
        return row.to_domain()

    def _list_round_records(self):
        return [r.to_domain() for r in RoundRow.query.order_by(RoundRow.id).all()]

    def _clear_round_records(self):
        RoundRow.query.delete(synchronize_session=False)
