"""Back-office session and image upload router."""

import logging

from fastapi import APIRouter, File, Query, Response, UploadFile
from fastapi.responses import JSONResponse

from ..core.dependencies import RequiredAdmin
from ..schemas.auth import LoginRequest, LoginResponse
from ..schemas.transfer import UploadResponse
from ..services.auth_service import AuthService
from ..services.upload_service import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

IMAGE_DEPENDENCY = File(..., description="JPEG, PNG or WebP image up to 5MB")


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, response: Response) -> LoginResponse:
    """Check the admin credentials and set the session cookie."""
    user = AuthService(response).login(request)
    return LoginResponse(user=user)


@router.post("/logout")
async def logout(response: Response) -> dict:
    """Clear the session cookie."""
    AuthService(response).logout()
    return {"success": True}


@router.post("/upload", response_model=UploadResponse, dependencies=[RequiredAdmin])
async def upload_image(file: UploadFile = IMAGE_DEPENDENCY) -> JSONResponse:
    """Store a tour image and return its public URL."""
    data = await file.read()
    stored = UploadService().save(file.filename or "image", file.content_type, data)
    return JSONResponse(status_code=200, content=stored.model_dump())


@router.delete("/upload", dependencies=[RequiredAdmin])
async def delete_image(
    file_name: str = Query(..., alias="fileName", description="Stored file name"),
) -> JSONResponse:
    """Remove a previously uploaded image."""
    UploadService().delete(file_name)
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": "File deleted successfully"}
    )
