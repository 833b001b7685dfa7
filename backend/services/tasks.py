"""
Task management on the kanban board.

Tasks move freely between the four fixed columns; there are no disallowed
transitions. Any project member may create, edit, move, or delete a task.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import repository
import schemas
from context import SessionContext
from errors import NotFoundError, ValidationError
from services.projects import require_project_member
from time_utils import utc_now

logger = logging.getLogger(__name__)


def resolve_assignee(
    project: schemas.Project, assignee_id: Optional[str]
) -> Tuple[Optional[str], Optional[str]]:
    """
    Look up an assignee in the project's team snapshot.

    An id that does not belong to a current member resolves to unassigned.
    """
    if not assignee_id:
        return None, None
    for member in project.team_members:
        if member.id == assignee_id:
            return member.id, member.name
    logger.warning(f"Assignee {assignee_id} is not a member of project {project.id}, leaving unassigned")
    return None, None


def count_by_status(tasks: Iterable[schemas.Task]) -> Dict[str, int]:
    """Tasks per kanban column. Every column is present, defaulting to 0."""
    counts = {status.value: 0 for status in schemas.TaskStatus}
    for task in tasks:
        counts[schemas.TaskStatus(task.status).value] += 1
    return counts


def _require_task(ctx: SessionContext, task_id: str) -> schemas.Task:
    task = repository.get_task(ctx.store, task_id)
    if task is None:
        logger.info(f"Task {task_id} not found")
        raise NotFoundError("Task not found")
    # Raises NotFoundError for non-members so the task's existence is hidden
    require_project_member(ctx, task.project_id)
    return task


def get_task(ctx: SessionContext, task_id: str) -> schemas.Task:
    return _require_task(ctx, task_id)


def list_tasks(ctx: SessionContext, project_id: str) -> List[schemas.Task]:
    require_project_member(ctx, project_id)
    tasks = repository.tasks_for_project(ctx.store, project_id)
    return sorted(tasks, key=lambda task: task.created_at)


def get_board(ctx: SessionContext, project_id: str) -> schemas.KanbanBoard:
    """Tasks grouped into the four kanban columns, with per-column counts."""
    tasks = list_tasks(ctx, project_id)
    columns = {status.value: [] for status in schemas.TaskStatus}
    for task in tasks:
        columns[task.status.value].append(task)
    return schemas.KanbanBoard(
        project_id=project_id,
        columns=columns,
        counts=count_by_status(tasks),
    )


def create_task(ctx: SessionContext, project_id: str, data: schemas.TaskCreate) -> schemas.Task:
    """Create a task in the pending column, regardless of any requested status."""
    logger.info(f"User {ctx.user_id} creating task: {data.title} in project {project_id}")
    project = require_project_member(ctx, project_id)

    assignee_id, assignee_name = resolve_assignee(project, data.assignee_id)
    task = repository.add_task(ctx.store, {
        "title": data.title,
        "description": data.description,
        "priority": data.priority.value,
        "status": schemas.TaskStatus.pending.value,
        "project_id": project_id,
        "assignee_id": assignee_id,
        "assignee_name": assignee_name,
        "created_at": utc_now().isoformat(),
    })

    logger.info(f"Task created successfully: id={task.id}")
    return task


def update_task(ctx: SessionContext, task_id: str, data: schemas.TaskUpdate) -> schemas.Task:
    """
    Overwrite a task's editable fields. The status is left untouched.

    The assignee is resolved against the (possibly new) target project.
    """
    logger.info(f"User {ctx.user_id} updating task {task_id}")
    _require_task(ctx, task_id)
    target_project = require_project_member(ctx, data.project_id)

    assignee_id, assignee_name = resolve_assignee(target_project, data.assignee_id)
    repository.update_task(ctx.store, task_id, {
        "title": data.title,
        "description": data.description,
        "priority": data.priority.value,
        "project_id": data.project_id,
        "assignee_id": assignee_id,
        "assignee_name": assignee_name,
    })

    return repository.get_task(ctx.store, task_id)


def move_task(ctx: SessionContext, task_id: str, new_status) -> schemas.Task:
    """Move a task to any of the four columns."""
    try:
        status = schemas.TaskStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown task status: {new_status}") from None

    task = _require_task(ctx, task_id)
    repository.update_task(ctx.store, task_id, {"status": status.value})

    logger.info(f"Task {task_id} moved from {task.status.value} to {status.value}")
    return task.model_copy(update={"status": status})


def delete_task(ctx: SessionContext, task_id: str) -> None:
    logger.debug(f"User {ctx.user_id} deleting task {task_id}")
    _require_task(ctx, task_id)
    repository.delete_task(ctx.store, task_id)
    logger.info(f"Task {task_id} deleted by user {ctx.user_id}")
