"""
Project team management.

A project's membership lives in two denormalized fields that must always
describe the same set: team_member_ids (for queries) and team_members
(snapshots for display). Every write here updates both together.
"""

import logging
from typing import List

import repository
import schemas
from context import SessionContext
from errors import DuplicateMemberError, NotFoundError, ValidationError
from services.projects import require_project_member, require_project_owner

logger = logging.getLogger(__name__)


def member_role(project: schemas.Project, member: schemas.TeamMember) -> schemas.TeamRole:
    """Effective role: 'owner' for the project owner, else the stored role or the default."""
    if member.id == project.owner_id:
        return schemas.TeamRole.owner
    return member.role or schemas.DEFAULT_MEMBER_ROLE


def _member_response(project: schemas.Project, member: schemas.TeamMember) -> schemas.TeamMemberResponse:
    return schemas.TeamMemberResponse(
        id=member.id,
        name=member.name,
        email=member.email,
        role=member_role(project, member),
        is_owner=member.id == project.owner_id,
    )


def list_members(ctx: SessionContext, project_id: str) -> List[schemas.TeamMemberResponse]:
    project = require_project_member(ctx, project_id)
    return [_member_response(project, member) for member in project.team_members]


def add_member(
    ctx: SessionContext,
    project_id: str,
    email: str,
    role: schemas.TeamRole = schemas.DEFAULT_MEMBER_ROLE,
) -> schemas.TeamMemberResponse:
    """
    Add an existing user to the project team by email.

    Raises:
        ValidationError: If the email is empty or the role is 'owner'
        NotFoundError: If no user has that email
        DuplicateMemberError: If the user is already on the team
    """
    email = (email or "").strip()
    if not email:
        raise ValidationError("Email is required")
    if role == schemas.TeamRole.owner:
        raise ValidationError("The owner role cannot be assigned")

    logger.debug(f"User {ctx.user_id} adding {email} to project {project_id} as {role.value}")
    project = require_project_owner(ctx, project_id)

    user = repository.get_user_by_email(ctx.store, email)
    if user is None:
        logger.info(f"No user found with email {email}")
        raise NotFoundError("User not found")

    if user.id in project.team_member_ids:
        logger.info(f"User {user.id} is already a member of project {project_id}")
        raise DuplicateMemberError("User is already a member of this project")

    member = schemas.TeamMember(id=user.id, name=user.name, email=user.email, role=role)
    repository.update_project(ctx.store, project_id, {
        "team_member_ids": [*project.team_member_ids, user.id],
        "team_members": repository.dump_members([*project.team_members, member]),
    })

    logger.info(f"User {user.id} added to project {project_id} with role {role.value}")
    return _member_response(project, member)


def change_member_role(
    ctx: SessionContext,
    project_id: str,
    member_id: str,
    role: schemas.TeamRole,
) -> schemas.TeamMemberResponse:
    """
    Rewrite one member's role.

    Raises:
        ValidationError: If the target is the owner or the role is 'owner'
        NotFoundError: If the member is not on the team
    """
    project = require_project_owner(ctx, project_id)

    if member_id == project.owner_id:
        raise ValidationError("The owner's role cannot be changed")
    if role == schemas.TeamRole.owner:
        raise ValidationError("The owner role cannot be assigned")

    if not any(member.id == member_id for member in project.team_members):
        logger.info(f"Member {member_id} not found in project {project_id}")
        raise NotFoundError("Member not found")

    members = [
        member.model_copy(update={"role": role}) if member.id == member_id else member
        for member in project.team_members
    ]
    repository.update_project(ctx.store, project_id, {"team_members": repository.dump_members(members)})

    logger.info(f"Member {member_id} in project {project_id} is now {role.value}")
    updated = next(member for member in members if member.id == member_id)
    return _member_response(project, updated)


def remove_member(ctx: SessionContext, project_id: str, member_id: str) -> int:
    """
    Remove a member and unassign every task they held in the project.

    The task updates and the membership update are committed as one batch.

    Returns:
        Number of tasks that were unassigned

    Raises:
        ValidationError: If the target is the project owner
        NotFoundError: If the member is not on the team
    """
    logger.debug(f"User {ctx.user_id} removing member {member_id} from project {project_id}")
    project = require_project_owner(ctx, project_id)

    if member_id == project.owner_id:
        logger.info(f"Refusing to remove owner {member_id} from project {project_id}")
        raise ValidationError("The project owner cannot be removed from the team")

    if member_id not in project.team_member_ids and not any(
        member.id == member_id for member in project.team_members
    ):
        raise NotFoundError("Member not found")

    assigned = repository.tasks_assigned_to(ctx.store, project_id, member_id)

    batch = ctx.store.batch()
    for task in assigned:
        batch.update(repository.TASKS, task.id, {"assignee_id": None, "assignee_name": None})
    batch.update(repository.PROJECTS, project_id, {
        "team_member_ids": [uid for uid in project.team_member_ids if uid != member_id],
        "team_members": repository.dump_members(
            [member for member in project.team_members if member.id != member_id]
        ),
    })
    batch.commit()

    logger.info(
        f"User {member_id} removed from project {project_id}; {len(assigned)} tasks unassigned"
    )
    return len(assigned)
