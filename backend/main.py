from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import AsyncGenerator, List, Optional
import logging
import uvicorn
import os

from database import engine, Base
import schemas
from context import SessionContext
from errors import TrackerError
from auth.routes import router as auth_router
from auth.dependencies import get_current_identity, get_profile_cache, get_session_context
from services import profiles, projects, tasks, team
from services.profiles import ProfileCache

# Configure logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the documents and accounts tables if they do not exist."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    yield


app = FastAPI(
    title="Taskboard API",
    description="Projects, teams, and kanban task boards",
    version="1.0.0",
    lifespan=lifespan,
)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)

app.state.profile_cache = ProfileCache()


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    """Every manager failure ends here: logged, then reported as {"detail": ...}."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ============== Profile ==============

@app.get("/api/profile", response_model=schemas.User)
def get_profile(ctx: SessionContext = Depends(get_session_context)):
    return ctx.profile


@app.get("/api/profile/cached", response_model=Optional[schemas.User])
def get_cached_profile(
    identity: schemas.Identity = Depends(get_current_identity),
    cache: ProfileCache = Depends(get_profile_cache),
):
    """The caller's last-known profile for fast UI bootstrap; not authoritative."""
    return profiles.get_current_profile(cache, identity.uid)


@app.put("/api/profile", response_model=schemas.User)
def rename_profile(
    update: schemas.ProfileUpdate,
    ctx: SessionContext = Depends(get_session_context),
    cache: ProfileCache = Depends(get_profile_cache),
):
    """Rename the current user and update every project snapshot of them."""
    return profiles.rename_profile(ctx, update.name, cache)


# ============== Projects ==============

@app.get("/api/projects", response_model=List[schemas.ProjectSummary])
def list_projects(ctx: SessionContext = Depends(get_session_context)):
    """List projects the current user owns or belongs to."""
    return projects.list_visible_projects(ctx.store, ctx.user_id)


@app.post("/api/projects", response_model=schemas.Project, status_code=status.HTTP_201_CREATED)
def create_project(
    project: schemas.ProjectCreate,
    ctx: SessionContext = Depends(get_session_context),
):
    return projects.create_project(ctx, project)


@app.get("/api/projects/{project_id}", response_model=schemas.ProjectSummary)
def get_project(project_id: str, ctx: SessionContext = Depends(get_session_context)):
    return projects.get_project(ctx, project_id)


@app.put("/api/projects/{project_id}", response_model=schemas.Project)
def update_project(
    project_id: str,
    project_update: schemas.ProjectUpdate,
    ctx: SessionContext = Depends(get_session_context),
):
    """Update project (owner only)."""
    return projects.update_project(ctx, project_id, project_update)


# ============== Team ==============

@app.get("/api/projects/{project_id}/members", response_model=List[schemas.TeamMemberResponse])
def list_project_members(project_id: str, ctx: SessionContext = Depends(get_session_context)):
    return team.list_members(ctx, project_id)


@app.post(
    "/api/projects/{project_id}/members",
    response_model=schemas.TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_project_member(
    project_id: str,
    member_data: schemas.MemberAdd,
    ctx: SessionContext = Depends(get_session_context),
):
    """Add a user to the team by email (owner only)."""
    return team.add_member(ctx, project_id, member_data.email, member_data.role)


@app.put("/api/projects/{project_id}/members/{member_id}", response_model=schemas.TeamMemberResponse)
def update_project_member(
    project_id: str,
    member_id: str,
    role_update: schemas.MemberRoleUpdate,
    ctx: SessionContext = Depends(get_session_context),
):
    return team.change_member_role(ctx, project_id, member_id, role_update.role)


@app.delete("/api/projects/{project_id}/members/{member_id}")
def remove_project_member(
    project_id: str,
    member_id: str,
    ctx: SessionContext = Depends(get_session_context),
):
    """Remove a member and unassign their tasks (owner only)."""
    unassigned = team.remove_member(ctx, project_id, member_id)
    return {"message": "Member removed from project", "unassigned_tasks": unassigned}


# ============== Tasks ==============

@app.get("/api/projects/{project_id}/board", response_model=schemas.KanbanBoard)
def get_board(project_id: str, ctx: SessionContext = Depends(get_session_context)):
    return tasks.get_board(ctx, project_id)


@app.post(
    "/api/projects/{project_id}/tasks",
    response_model=schemas.Task,
    status_code=status.HTTP_201_CREATED,
)
def create_task(
    project_id: str,
    task: schemas.TaskCreate,
    ctx: SessionContext = Depends(get_session_context),
):
    return tasks.create_task(ctx, project_id, task)


@app.get("/api/tasks/{task_id}", response_model=schemas.Task)
def get_task(task_id: str, ctx: SessionContext = Depends(get_session_context)):
    return tasks.get_task(ctx, task_id)


@app.put("/api/tasks/{task_id}", response_model=schemas.Task)
def update_task(
    task_id: str,
    task_update: schemas.TaskUpdate,
    ctx: SessionContext = Depends(get_session_context),
):
    return tasks.update_task(ctx, task_id, task_update)


@app.put("/api/tasks/{task_id}/status", response_model=schemas.Task)
def move_task(
    task_id: str,
    move: schemas.TaskMove,
    ctx: SessionContext = Depends(get_session_context),
):
    """Move a task to another kanban column; any column to any column."""
    return tasks.move_task(ctx, task_id, move.status)


@app.delete("/api/tasks/{task_id}")
def delete_task(task_id: str, ctx: SessionContext = Depends(get_session_context)):
    tasks.delete_task(ctx, task_id)
    return {"message": "Task deleted"}


if __name__ == "__main__":
    PORT = int(os.environ.get("PORT", "8000"))
    logger.info(f"Taskboard API starting on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
