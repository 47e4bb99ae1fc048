"""
Pydantic schemas for Task Service.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class TaskCreate(BaseModel):
    """
    Schema for creating a task

    Fields are optional here so that missing values reach the workflow
    and are reported as a single validation error naming every gap.
    """
    title: Optional[str] = Field(None, max_length=200, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    user_id: Optional[str] = Field(None, alias="userId", max_length=100, description="Owning user ID")

    class Config:
        populate_by_name = True


class TaskResponse(BaseModel):
    """Schema for task response"""
    id: int = Field(..., description="Task ID")
    title: str = Field(..., description="Task title")
    description: str = Field(..., description="Task description")
    user_id: str = Field(..., serialization_alias="userId", description="Owning user ID")
    created_at: datetime = Field(..., serialization_alias="createdAt", description="Task creation timestamp")

    class Config:
        from_attributes = True


class TaskCreatedEvent(BaseModel):
    """Message published to the task-created queue"""
    task_id: int = Field(..., serialization_alias="taskId")
    user_id: str = Field(..., serialization_alias="userId")
    title: str

    @classmethod
    def from_task(cls, task) -> "TaskCreatedEvent":
        """Build the event from a persisted task record."""
        return cls(task_id=task.id, user_id=task.user_id, title=task.title)

    def to_bytes(self) -> bytes:
        """Flat JSON record, UTF-8 encoded."""
        return self.model_dump_json(by_alias=True).encode("utf-8")
