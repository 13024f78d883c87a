from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ems.core.cache import QueryCache
from ems.core.schemas import ApiResponse
from ems.database import get_db
from ems.models.user import User
from ems.routers.auth_deps import get_cache, get_current_user
from ems.schemas.document import DocumentCreate, DocumentResponse
from ems.services.documents import DocumentService

router = APIRouter(
    prefix="/documents",
    tags=["documents"]
)


def get_service(db: Session = Depends(get_db), cache: QueryCache = Depends(get_cache)) -> DocumentService:
    return DocumentService(db, cache)


@router.get("/me", response_model=List[DocumentResponse])
def list_my_documents(service: DocumentService = Depends(get_service), current_user: User = Depends(get_current_user)):
    return service.list_mine(current_user.id)


@router.post("", response_model=ApiResponse[DocumentResponse], status_code=status.HTTP_201_CREATED)
def register_document(
    data: DocumentCreate,
    service: DocumentService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    """Store document metadata; the file itself lives wherever ``file_url`` points."""
    result = service.register(current_user.id, data)
    return ApiResponse.ok(result.data, notice=result.notice)


@router.delete("/{document_id}", response_model=ApiResponse[int])
def delete_document(
    document_id: int,
    service: DocumentService = Depends(get_service),
    current_user: User = Depends(get_current_user)
):
    result = service.delete_own(current_user.id, document_id)
    return ApiResponse.ok(result.data, notice=result.notice)
