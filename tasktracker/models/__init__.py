from .task import Priority, Task, TaskStatus, UTCDateTime, as_utc, utcnow

# Export all models for easy importing
__all__ = ["Task", "TaskStatus", "Priority", "UTCDateTime", "as_utc", "utcnow"]
