"""
Task creation workflow: validate, persist, publish, respond.
"""
import enum
import logging
from dataclasses import dataclass

from ..core.exceptions import ValidationError
from ..core.rabbitmq import PublishResult, RabbitMQPublisher
from ..schemas.task import TaskCreate, TaskCreatedEvent, TaskResponse
from .task_gateway import TaskGateway, missing_task_fields

logger = logging.getLogger(__name__)


class TaskCreationStatus(str, enum.Enum):
    CREATED = "created"
    # persisted, notification not sent
    DEGRADED = "degraded"


@dataclass
class TaskCreationResult:
    status: TaskCreationStatus
    task: TaskResponse

    @property
    def degraded(self) -> bool:
        return self.status is TaskCreationStatus.DEGRADED


class TaskCreationWorkflow:
    """
    Creates a task and announces it on the task-created queue.

    Persistence and publish are not transactional: when the publisher is
    unavailable the task stays stored and the result is DEGRADED. A store
    failure aborts before anything is published.
    """

    def __init__(self, gateway: TaskGateway, publisher: RabbitMQPublisher):
        self.gateway = gateway
        self.publisher = publisher

    def create_task(self, title, description, user_id) -> TaskCreationResult:
        missing = missing_task_fields(title, description, user_id)
        if missing:
            logger.info(f"Rejected task creation, missing: {', '.join(missing)}")
            raise ValidationError(missing)

        stored = self.gateway.save(
            TaskCreate(title=title, description=description, user_id=user_id)
        )
        task = TaskResponse.model_validate(stored)

        outcome = self.publisher.publish(TaskCreatedEvent.from_task(stored))
        if outcome is PublishResult.UNAVAILABLE:
            logger.warning(f"Task {task.id} stored but task_created event was not published")
            return TaskCreationResult(status=TaskCreationStatus.DEGRADED, task=task)

        return TaskCreationResult(status=TaskCreationStatus.CREATED, task=task)
