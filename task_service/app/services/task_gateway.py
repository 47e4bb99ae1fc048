"""
Persistence gateway for task records.
"""
import logging
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import StoreUnavailableError, ValidationError
from ..models.task import Task
from ..schemas.task import TaskCreate

logger = logging.getLogger(__name__)


def missing_task_fields(title, description, user_id) -> List[str]:
    """Names of required task fields that are absent, blank or not text"""
    fields = (("title", title), ("description", description), ("userId", user_id))
    return [name for name, value in fields if not isinstance(value, str) or not value.strip()]


class TaskGateway:
    """Stores and retrieves task records through a database session."""

    def __init__(self, db: Session):
        self.db = db

    def save(self, task_data: TaskCreate) -> Task:
        """
        Persist a new task

        Args:
            task_data: Validated task fields

        Returns:
            Task: The stored record with generated id and created_at

        Raises:
            ValidationError: If a required field is missing
            StoreUnavailableError: If the store rejects the write
        """
        missing = missing_task_fields(task_data.title, task_data.description, task_data.user_id)
        if missing:
            raise ValidationError(missing)

        db_task = Task(
            title=task_data.title,
            description=task_data.description,
            user_id=task_data.user_id
        )

        try:
            self.db.add(db_task)
            self.db.commit()
            self.db.refresh(db_task)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving task: {e}")
            raise StoreUnavailableError("Task store unavailable") from e

        logger.info(f"Stored task {db_task.id} for user {db_task.user_id}")
        return db_task

    def find_all(self) -> List[Task]:
        """Every stored task in insertion order"""
        try:
            return self.db.query(Task).order_by(Task.id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching tasks: {e}")
            raise StoreUnavailableError("Task store unavailable") from e
