"""Task Service - task records and task-created events."""

__version__ = "1.0.0"
