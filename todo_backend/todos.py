"""Todo store. Every read and write is scoped to the owning user."""
from datetime import timedelta
from typing import List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .errors import NotFound, PersistenceError, ValidationError
from .models import Todo, as_utc, utcnow

logger = logging.getLogger(__name__)


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to %s todo", action)
        raise PersistenceError(f"Failed to {action} todo")


def _get_owned(db: Session, todo_id: int, owner_id: int) -> Todo:
    todo = db.exec(select(Todo).where(Todo.id == todo_id, Todo.user_id == owner_id)).first()
    if not todo:
        raise NotFound("Todo not found")
    return todo


def create_todo(db: Session, owner_id: int, text: str) -> Todo:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Todo text is required")

    now = utcnow()
    db_todo = Todo(user_id=owner_id, text=text, completed=False, position=0, created_at=now, updated_at=now)
    db.add(db_todo)
    _commit(db, "create")
    db.refresh(db_todo)
    logger.debug("Created todo %s for user %s", db_todo.id, owner_id)
    return db_todo


def list_todos(db: Session, owner_id: int) -> List[Todo]:
    query = (
        select(Todo)
        .where(Todo.user_id == owner_id)
        .order_by(Todo.position.asc(), Todo.created_at.desc(), Todo.id.desc())
    )
    return list(db.exec(query).all())


def update_todo(
    db: Session,
    todo_id: int,
    owner_id: int,
    text: Optional[str] = None,
    completed: Optional[bool] = None,
) -> Todo:
    if text is None and completed is None:
        raise ValidationError("No fields to update")
    if text is not None:
        text = text.strip()
        if not text:
            raise ValidationError("Todo text is required")

    todo = _get_owned(db, todo_id, owner_id)
    if text is not None:
        todo.text = text
    if completed is not None:
        todo.completed = completed

    # updated_at must move forward even when the clock has not ticked
    now = utcnow()
    previous = as_utc(todo.updated_at)
    if now <= previous:
        now = previous + timedelta(microseconds=1)
    todo.updated_at = now

    db.add(todo)
    _commit(db, "update")
    db.refresh(todo)
    logger.debug("Updated todo %s for user %s", todo_id, owner_id)
    return todo


def delete_todo(db: Session, todo_id: int, owner_id: int) -> None:
    todo = _get_owned(db, todo_id, owner_id)
    db.delete(todo)
    _commit(db, "delete")
    logger.debug("Deleted todo %s for user %s", todo_id, owner_id)
