from . import notifications, tasks, triggers

__all__ = ["notifications", "tasks", "triggers"]
