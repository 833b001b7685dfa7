from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import date, datetime
from typing import Optional, List, Dict
from enum import Enum


class ProjectStatus(str, Enum):
    active = "active"
    paused = "paused"
    completed = "completed"
    cancelled = "cancelled"


# Statuses for which no deadline banner is shown
CLOSED_PROJECT_STATUSES = (ProjectStatus.completed, ProjectStatus.cancelled)


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class TaskStatus(str, Enum):
    """The four fixed kanban columns, in board order."""
    pending = "pending"
    todo = "todo"
    doing = "doing"
    done = "done"


class TeamRole(str, Enum):
    """
    Roles shown for project team members.

    Note: 'owner' is never stored on a team snapshot. It is derived from
    Project.owner_id whenever a role is reported.
    """
    owner = "owner"
    developer = "developer"
    tester = "tester"
    designer = "designer"
    lead = "lead"


DEFAULT_MEMBER_ROLE = TeamRole.developer


class DeadlineStatus(str, Enum):
    overdue = "overdue"
    due_today = "due-today"
    urgent = "urgent"
    on_time = "on-time"
    suppressed = "suppressed"


def normalize_display_name(value: Optional[str]) -> str:
    """Trim a display name. A name that is empty after trimming is rejected."""
    name = (value or "").strip()
    if not name:
        raise ValueError("Name is required")
    return name


# User schemas
class UserBase(BaseModel):
    name: str
    email: str


class User(UserBase):
    id: str
    created_at: datetime


class ProfileUpdate(BaseModel):
    name: str


# Team snapshot schemas
class TeamMember(BaseModel):
    """Denormalized copy of a user embedded in a project."""
    id: str
    name: str
    email: str
    role: Optional[TeamRole] = None


class TeamMemberResponse(BaseModel):
    id: str
    name: str
    email: str
    role: TeamRole
    is_owner: bool = False


class MemberAdd(BaseModel):
    email: str
    role: TeamRole = DEFAULT_MEMBER_ROLE

    @field_validator("role")
    @classmethod
    def role_is_assignable(cls, value: TeamRole) -> TeamRole:
        if value == TeamRole.owner:
            raise ValueError("The owner role cannot be assigned")
        return value


class MemberRoleUpdate(BaseModel):
    role: TeamRole

    @field_validator("role")
    @classmethod
    def role_is_assignable(cls, value: TeamRole) -> TeamRole:
        if value == TeamRole.owner:
            raise ValueError("The owner role cannot be assigned")
        return value


# Deadline schemas
class DeadlineSummary(BaseModel):
    status: DeadlineStatus
    days_left: int
    label: Optional[str] = None  # None when suppressed


# Project schemas
class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.active
    start_date: date
    estimated_end_date: date
    actual_end_date: Optional[date] = None


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(ProjectBase):
    """Full overwrite of the editable project fields."""
    pass


class Project(ProjectBase):
    id: str
    owner_id: str
    owner_name: str
    team_member_ids: List[str] = Field(default_factory=list)
    team_members: List[TeamMember] = Field(default_factory=list)
    created_at: datetime


class ProjectSummary(Project):
    is_owner: bool = False
    status_label: str
    team_count: int
    deadline: DeadlineSummary


# Task schemas
class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.medium
    assignee_id: Optional[str] = None


class TaskCreate(TaskBase):
    pass


class TaskUpdate(TaskBase):
    """Full overwrite of the editable task fields. Status moves go through TaskMove."""
    project_id: str


class TaskMove(BaseModel):
    status: TaskStatus


class Task(TaskBase):
    id: str
    status: TaskStatus = TaskStatus.pending
    project_id: str
    assignee_name: Optional[str] = None
    created_at: datetime


class KanbanBoard(BaseModel):
    project_id: str
    columns: Dict[str, List[Task]]
    counts: Dict[str, int]


# Auth schemas
class Identity(BaseModel):
    """An externally verified identity as emitted by the auth collaborator."""
    uid: str
    email: EmailStr
    display_name: Optional[str] = None
