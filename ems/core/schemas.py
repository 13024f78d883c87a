from typing import Any, Dict, Generic, Literal, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone

T = TypeVar("T")


class Notice(BaseModel):
    """User-facing confirmation or error message (rendered as a toast by clients)."""
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"

    @classmethod
    def error(cls, title: str, description: str) -> "Notice":
        return cls(title=title, description=description, variant="destructive")


class ApiResponse(BaseModel, Generic[T]):
    model_config = ConfigDict(json_encoders={datetime: lambda v: v.isoformat()})

    success: bool
    data: Optional[T] = None
    notice: Optional[Notice] = None
    metadata: Dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with JSON-serializable values."""
        return self.model_dump(mode="json")

    @classmethod
    def ok(cls, data: T, notice: Optional[Notice] = None, metadata: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, notice=notice, metadata=metadata or {})
