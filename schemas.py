"""
Schemas for the SmartForm engine

Stored models map onto MongoDB collections (lowercased class name):
- Form -> "form"
- Submission -> "submission"

Attributes are snake_case in Python and in the stored documents; the wire
format uses camelCase aliases (isPublic, ownerId, fieldId, ...).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FIELD_TYPES = (
    "text",
    "email",
    "number",
    "checkbox",
    "radio",
    "select",
    "password",
    "file",
    "date",
    "time",
)


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FieldError(WireModel):
    field: str
    message: str


class FormField(WireModel):
    id: str
    label: str
    type: str = Field(..., description="one of FIELD_TYPES")
    options: List[str] = Field(default_factory=list)
    required: bool = False


class Form(WireModel):
    id: str
    owner_id: str = Field(..., alias="ownerId")
    title: str
    description: Optional[str] = None
    fields: List[FormField] = Field(default_factory=list)
    is_public: bool = Field(False, alias="isPublic")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Form":
        return cls(
            id=str(doc["_id"]),
            owner_id=doc["owner_id"],
            title=doc["title"],
            description=doc.get("description"),
            fields=[FormField(**f) for f in doc.get("fields", [])],
            is_public=doc.get("is_public", False),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id", "created_at", "updated_at"})


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        # several checkbox answers
        return ", ".join(str(_as_text(v)) for v in value)
    return value


class SubmissionResponse(WireModel):
    field_id: str = Field(..., alias="fieldId")
    value: str = ""

    @field_validator("field_id", "value", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _as_text(v)


class Submission(WireModel):
    id: str
    form_id: str = Field(..., alias="formId")
    responses: List[SubmissionResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Submission":
        return cls(
            id=str(doc["_id"]),
            form_id=doc["form_id"],
            responses=[SubmissionResponse(**r) for r in doc.get("responses", [])],
            created_at=doc.get("created_at"),
        )


# --- Request bodies ---

class FieldInput(WireModel):
    """A field definition as sent by a client; checked by the catalog, not here."""

    label: Optional[str] = None
    type: Optional[str] = None
    options: Optional[List[str]] = None
    required: Optional[bool] = None


class FieldPatch(WireModel):
    """
    Partial update of a field definition.

    Each attribute has its own presence rule: ``required`` applies whenever the
    client sent it (``false`` included), while label, type and options apply
    only when sent with a non-empty value.
    """

    label: Optional[str] = None
    type: Optional[str] = None
    options: Optional[List[str]] = None
    required: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}
        if self.label:
            updates["label"] = self.label
        if self.type:
            updates["type"] = self.type
        if self.options:
            updates["options"] = list(self.options)
        if "required" in self.model_fields_set and self.required is not None:
            updates["required"] = self.required
        return updates


class CreateFormRequest(WireModel):
    title: Optional[str] = None
    description: Optional[str] = None
    fields: List[FieldInput] = Field(default_factory=list)
    is_public: Optional[bool] = Field(None, alias="isPublic")


class SubmitRequest(WireModel):
    responses: List[SubmissionResponse] = Field(default_factory=list)


# --- Replies ---

class MessageReply(WireModel):
    message: str


class FieldDeletedReply(WireModel):
    message: str
    form: Form


class SubmitReply(WireModel):
    message: str
    submission: Optional[Submission] = None
