from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class DocumentCreate(BaseModel):
    document_name: str = Field(min_length=1)
    document_type: Optional[str] = None
    file_url: Optional[str] = None


class DocumentResponse(DocumentCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    upload_date: Optional[datetime] = None
