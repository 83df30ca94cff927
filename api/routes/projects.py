from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from api.middleware.auth import get_current_user
from api.middleware.authorization import SOURCING_ROLES, STAFF_ROLES, require_roles
from api.middleware.store import get_store
from api.models.project import Project
from api.schemas.project import ProjectCreate, ProjectResponse
from api.services.audit_service import create_audit_log
from api.services.store import ProcurementStore

logger = structlog.get_logger()
router = APIRouter()


def _to_response(p: Project) -> ProjectResponse:
    return ProjectResponse(
        id=str(p.id),
        name=p.name,
        client_name=p.client_name,
        created_at=p.created_at.isoformat() if p.created_at else "",
    )


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    return [_to_response(p) for p in await store.list_projects()]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*SOURCING_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    project = Project(
        name=body.name.strip(),
        client_name=body.client_name,
        created_at=datetime.utcnow(),
    )
    await store.add(project)
    await create_audit_log(
        store, current_user, "PROJECT_CREATED", "PROJECT", project.id,
        after_state={"name": project.name, "client_name": project.client_name},
    )
    logger.info("project_created", project_id=str(project.id))
    return _to_response(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    _auth: None = Depends(require_roles(*STAFF_ROLES)),
    store: ProcurementStore = Depends(get_store),
):
    project = await store.get_project(project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "NOT_FOUND", "message": "Project not found"},
        )
    return _to_response(project)
