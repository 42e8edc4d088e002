from fastapi import APIRouter, Depends

from wellquest.core.security import Viewer, get_current_viewer
from wellquest.schemas.me import ViewerResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=ViewerResponse)
def me(viewer: Viewer = Depends(get_current_viewer)):
    return {
        "id": viewer.id,
        "email": viewer.email,
        "name": viewer.name,
        "auth_mode": viewer.auth_mode,
    }
