from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Error response schema
    """
    error: str = Field(..., description="error message")
    detail: Optional[str] = Field(None, description="error detail")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "User not found",
                "detail": "No user with id 123"
            }
        }


class Pagination(BaseModel):
    total: int = Field(..., description="matching rows")
    limit: int = Field(..., description="page size")
    offset: int = Field(..., description="rows skipped")
    has_more: bool = Field(..., description="another page exists")

    @classmethod
    def of(cls, total: int, limit: int, offset: int) -> "Pagination":
        return cls(total=total, limit=limit, offset=offset, has_more=offset + limit < total)


class MessageResponse(BaseModel):
    message: str = Field(..., description="result message")


class PartialUpdateRequest(BaseModel):
    """
    Partial update body: omitted fields are left alone, fields listed in
    NOT_NULL back NOT NULL columns and may not be sent as null.
    """
    NOT_NULL: ClassVar[Tuple[str, ...]] = ()

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)

    def null_fields(self) -> List[str]:
        changes = self.changes()
        return [name for name in self.NOT_NULL if name in changes and changes[name] is None]
