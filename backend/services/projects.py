"""
Project management: creation, updates, visibility, and ownership checks.

Membership is read from the denormalized team_member_ids field. Non-members
get NotFoundError rather than PermissionDeniedError so project existence is
not revealed.
"""

import logging
from datetime import date
from typing import List, Optional

import repository
import schemas
from context import SessionContext
from errors import NotFoundError, PermissionDeniedError
from labels import get_status_label
from store import DocumentStore
from time_utils import deadline_summary, utc_now

logger = logging.getLogger(__name__)


def is_project_owner(project: schemas.Project, user_id: str) -> bool:
    return project.owner_id == user_id


def is_project_member(project: schemas.Project, user_id: str) -> bool:
    return user_id in project.team_member_ids or is_project_owner(project, user_id)


def require_project_member(ctx: SessionContext, project_id: str) -> schemas.Project:
    """
    Load a project the current user belongs to.

    Raises:
        NotFoundError: If the project does not exist or the user is not a member
    """
    project = repository.get_project(ctx.store, project_id)
    if project is None:
        logger.info(f"Project {project_id} not found")
        raise NotFoundError("Project not found")
    if not is_project_member(project, ctx.user_id):
        logger.info(f"User {ctx.user_id} is not a member of project {project_id}, returning 404")
        raise NotFoundError("Project not found")
    return project


def require_project_owner(ctx: SessionContext, project_id: str) -> schemas.Project:
    """
    Load a project the current user owns.

    Raises:
        NotFoundError: If the project does not exist or the user is not a member
        PermissionDeniedError: If the user is a member but not the owner
    """
    project = require_project_member(ctx, project_id)
    if not is_project_owner(project, ctx.user_id):
        logger.info(f"User {ctx.user_id} is not the owner of project {project_id}")
        raise PermissionDeniedError("Only the project owner can do this")
    return project


def summarize_project(
    project: schemas.Project, user_id: str, current: Optional[date] = None
) -> schemas.ProjectSummary:
    """Annotate a project with ownership, labels, and its deadline banner."""
    return schemas.ProjectSummary(
        **project.model_dump(),
        is_owner=is_project_owner(project, user_id),
        status_label=get_status_label(project.status),
        team_count=len(project.team_member_ids),
        deadline=deadline_summary(project, current),
    )


def list_visible_projects(
    store: DocumentStore, user_id: str, current: Optional[date] = None
) -> List[schemas.ProjectSummary]:
    """
    Projects the user owns or is a team member of, without duplicates.

    Owned projects are collected first and win on id conflicts.
    """
    logger.debug(f"Listing projects visible to user {user_id}")

    visible = {}
    for project in repository.projects_owned_by(store, user_id):
        visible[project.id] = project
    for project in repository.projects_with_member(store, user_id):
        if project.id not in visible:
            visible[project.id] = project

    summaries = [summarize_project(p, user_id, current) for p in visible.values()]
    logger.info(f"User {user_id} can see {len(summaries)} projects")
    return summaries


def create_project(ctx: SessionContext, data: schemas.ProjectCreate) -> schemas.Project:
    """Create a project with the current user as owner and sole member."""
    profile = ctx.profile
    logger.debug(f"User {profile.id} creating project: {data.name}")

    owner_snapshot = schemas.TeamMember(id=profile.id, name=profile.name, email=profile.email)
    document = {
        **repository.to_document(data),
        "owner_id": profile.id,
        "owner_name": profile.name,
        "team_member_ids": [profile.id],
        "team_members": repository.dump_members([owner_snapshot]),
        "created_at": utc_now().isoformat(),
    }
    project = repository.add_project(ctx.store, document)

    logger.info(f"Project created: {project.name} (ID: {project.id}) by user {profile.id}")
    return project


def get_project(
    ctx: SessionContext, project_id: str, current: Optional[date] = None
) -> schemas.ProjectSummary:
    project = require_project_member(ctx, project_id)
    return summarize_project(project, ctx.user_id, current)


def update_project(
    ctx: SessionContext, project_id: str, data: schemas.ProjectUpdate
) -> schemas.Project:
    """
    Overwrite a project's editable fields (owner only).

    actual_end_date is stored exactly as given, including None to clear it.
    """
    logger.debug(f"User {ctx.user_id} updating project {project_id}")
    require_project_owner(ctx, project_id)

    repository.update_project(ctx.store, project_id, data.model_dump(mode="json"))

    project = repository.get_project(ctx.store, project_id)
    logger.info(f"Project updated: {project.name} (ID: {project_id})")
    return project
