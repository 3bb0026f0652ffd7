"""Document-store facade over the Flask-SQLAlchemy models.

The quiz runner only talks to the database through this small contract:
create, get, update, delete and an equality-filtered list with an optional
descending sort and a limit. Records go in and come out as plain dicts.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from livequiz import db
from livequiz.errors import ConstraintViolation, NotFound, StoreUnavailable
from livequiz.models import LeaderboardEntry, Question, QuizSession, Response, User

USERS = 'users'
QUESTIONS = 'questions'
SESSIONS = 'sessions'
RESPONSES = 'responses'
LEADERBOARD = 'leaderboard'

COLLECTIONS = {
    USERS: User,
    QUESTIONS: Question,
    SESSIONS: QuizSession,
    RESPONSES: Response,
    LEADERBOARD: LeaderboardEntry,
}


def _coerce_id(record_id):
    try:
        return int(record_id)
    except (TypeError, ValueError):
        return None


class DocumentStore:

    def _model(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    def _commit(self, collection: str) -> None:
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConstraintViolation(f"{collection}: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreUnavailable(f"{collection}: {exc}") from exc

    def _load(self, collection: str, record_id):
        model = self._model(collection)
        pk = _coerce_id(record_id)
        if pk is None:
            raise NotFound(f"{collection} record {record_id!r} not found")
        try:
            obj = db.session.get(model, pk)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreUnavailable(f"{collection}: {exc}") from exc
        if obj is None:
            raise NotFound(f"{collection} record {record_id!r} not found")
        return obj

    def create(self, collection: str, fields: Dict[str, Any], record_id=None) -> Dict[str, Any]:
        model = self._model(collection)
        obj = model(**fields)
        if record_id is not None:
            obj.id = _coerce_id(record_id)
        db.session.add(obj)
        self._commit(collection)
        return obj.to_dict()

    def get(self, collection: str, record_id) -> Dict[str, Any]:
        return self._load(collection, record_id).to_dict()

    def update(self, collection: str, record_id, fields: Dict[str, Any]) -> Dict[str, Any]:
        obj = self._load(collection, record_id)
        for key, value in fields.items():
            setattr(obj, key, value)
        db.session.add(obj)
        self._commit(collection)
        return obj.to_dict()

    def delete(self, collection: str, record_id) -> None:
        obj = self._load(collection, record_id)
        db.session.delete(obj)
        self._commit(collection)

    def list(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        model = self._model(collection)
        try:
            query = model.query.filter_by(**(filters or {}))
            if order_by:
                query = query.order_by(getattr(model, order_by).desc(), model.id.asc())
            else:
                query = query.order_by(model.id.asc())
            if limit is not None:
                query = query.limit(limit)
            return [obj.to_dict() for obj in query.all()]
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreUnavailable(f"{collection}: {exc}") from exc
