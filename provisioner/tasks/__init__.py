"""Provisioning tasks, one per subcommand."""

from .base import Task, TaskContext, install_step, run_task
from .docker import DockerTask
from .opencv import BuildConfiguration, OpenCVTask, cmake_flags
from .prepare import PrepareTask

TASKS: dict[str, type[Task]] = {
    PrepareTask.name: PrepareTask,
    DockerTask.name: DockerTask,
    OpenCVTask.name: OpenCVTask,
}


def get_task(name: str) -> Task:
    """Instantiate a task by its subcommand name.

    Raises:
        KeyError: If no task has that name
    """
    return TASKS[name]()


__all__ = [
    "TASKS",
    "Task",
    "TaskContext",
    "PrepareTask",
    "DockerTask",
    "OpenCVTask",
    "BuildConfiguration",
    "cmake_flags",
    "get_task",
    "install_step",
    "run_task",
]
