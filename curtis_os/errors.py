"""
Error types raised by the CurtisOS task store.
"""


class CurtisOSError(Exception):
    """Base class for task store errors."""


class TaskNotFound(CurtisOSError):
    """No task exists with the requested id."""

    def __init__(self, task_id: int):
        super().__init__(f"Task with id {task_id} not found.")
        self.task_id = task_id


class ProjectNotFound(CurtisOSError):
    """No project exists with the requested id."""

    def __init__(self, project_id: int):
        super().__init__(f"Project with id {project_id} not found.")
        self.project_id = project_id


class InvalidUpdatePayload(CurtisOSError):
    """A partial update carried no fields that can be applied."""


class StoreUnavailable(CurtisOSError):
    """The database behind the task store could not be reached."""
