"""
Error taxonomy for the task creation path.
"""
from typing import Iterable


class TaskServiceError(Exception):
    """Base class for Task Service errors"""


class ValidationError(TaskServiceError):
    """A required task field is missing or empty"""

    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Missing required field(s): {', '.join(self.missing_fields)}"
        )


class StoreUnavailableError(TaskServiceError):
    """The task store is unreachable or rejected the write"""


class PublisherUnavailable(TaskServiceError):
    """The queue connection never reached the ready state"""


class EventPublishError(TaskServiceError):
    """The broker failed while sending an event on a ready channel"""
