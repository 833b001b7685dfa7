"""
Data access for users, projects, and tasks.

Thin typed wrappers over the document store: documents go in as JSON-mode
dicts and come back out as pydantic models.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

import schemas
from store import ARRAY_CONTAINS, EQ, DocumentStore, where
from time_utils import utc_now

logger = logging.getLogger(__name__)

USERS = "users"
PROJECTS = "projects"
TASKS = "tasks"


def to_document(model: BaseModel) -> Dict[str, Any]:
    """Serialize a model to the JSON-safe dict stored in a document (id excluded)."""
    return model.model_dump(mode="json", exclude={"id"})


def dump_members(members: List[schemas.TeamMember]) -> List[Dict[str, Any]]:
    return [member.model_dump(mode="json") for member in members]


# ============== Users ==============

def get_user_profile(store: DocumentStore, uid: str) -> Optional[schemas.User]:
    doc = store.get(USERS, uid)
    return schemas.User.model_validate(doc) if doc else None


def create_user_profile(store: DocumentStore, uid: str, name: str, email: str) -> None:
    logger.debug(f"Creating profile for {uid} ({email})")
    store.set(USERS, uid, {
        "name": name,
        "email": email,
        "created_at": utc_now().isoformat(),
    })


def get_user_by_email(store: DocumentStore, email: str) -> Optional[schemas.User]:
    """Exact-match lookup; the first match wins."""
    docs = store.query(USERS, where("email", EQ, email))
    return schemas.User.model_validate(docs[0]) if docs else None


# ============== Projects ==============

def get_project(store: DocumentStore, project_id: str) -> Optional[schemas.Project]:
    doc = store.get(PROJECTS, project_id)
    return schemas.Project.model_validate(doc) if doc else None


def add_project(store: DocumentStore, data: Dict[str, Any]) -> schemas.Project:
    project_id = store.add(PROJECTS, data)
    return schemas.Project.model_validate({**data, "id": project_id})


def update_project(store: DocumentStore, project_id: str, fields: Dict[str, Any]) -> None:
    store.update(PROJECTS, project_id, fields)


def projects_owned_by(store: DocumentStore, user_id: str) -> List[schemas.Project]:
    docs = store.query(PROJECTS, where("owner_id", EQ, user_id))
    return [schemas.Project.model_validate(doc) for doc in docs]


def projects_with_member(store: DocumentStore, user_id: str) -> List[schemas.Project]:
    docs = store.query(PROJECTS, where("team_member_ids", ARRAY_CONTAINS, user_id))
    return [schemas.Project.model_validate(doc) for doc in docs]


# ============== Tasks ==============

def get_task(store: DocumentStore, task_id: str) -> Optional[schemas.Task]:
    doc = store.get(TASKS, task_id)
    return schemas.Task.model_validate(doc) if doc else None


def add_task(store: DocumentStore, data: Dict[str, Any]) -> schemas.Task:
    task_id = store.add(TASKS, data)
    return schemas.Task.model_validate({**data, "id": task_id})


def update_task(store: DocumentStore, task_id: str, fields: Dict[str, Any]) -> None:
    store.update(TASKS, task_id, fields)


def delete_task(store: DocumentStore, task_id: str) -> None:
    store.delete(TASKS, task_id)


def tasks_for_project(store: DocumentStore, project_id: str) -> List[schemas.Task]:
    docs = store.query(TASKS, where("project_id", EQ, project_id))
    return [schemas.Task.model_validate(doc) for doc in docs]


def tasks_assigned_to(store: DocumentStore, project_id: str, member_id: str) -> List[schemas.Task]:
    docs = store.query(
        TASKS,
        where("project_id", EQ, project_id),
        where("assignee_id", EQ, member_id),
    )
    return [schemas.Task.model_validate(doc) for doc in docs]
