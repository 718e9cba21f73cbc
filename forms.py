"""
Form catalog: creating and reading forms, and mutating their field lists.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from access import require_owner
from auth import CallerIdentity
from database import FORMS, Store, new_id
from errors import NotFound, ValidationError
from schemas import FieldError, FieldInput, FieldPatch, Form, FormField
from validation import check_field_definition, is_field_type

logger = logging.getLogger(__name__)


class FormCatalog:
    def __init__(self, store: Store):
        self.store = store

    def create_form(
        self,
        owner: CallerIdentity,
        title: Optional[str],
        fields: Sequence[FieldInput],
        description: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> Form:
        errors: List[FieldError] = []
        if not title:
            errors.append(FieldError(field="title", message="Title is required"))
        if not fields:
            errors.append(FieldError(field="fields", message="At least one field is required"))
        for i, f in enumerate(fields):
            errors.extend(check_field_definition(f.label, f.type, prefix=f"fields[{i}]."))
        if errors:
            raise ValidationError(errors)

        form = Form(
            id="",
            owner_id=owner.user_id,
            title=title,
            description=description,
            fields=[_new_field(f) for f in fields],
            is_public=bool(is_public),
        )
        doc = self.store.create_document(FORMS, form.to_document())
        logger.info("Created form %s with %d fields for %s", doc["_id"], len(form.fields), owner.user_id)
        return Form.from_document(doc)

    def list_public_forms(self) -> List[Form]:
        return [Form.from_document(doc) for doc in self.store.get_documents(FORMS, {"is_public": True})]

    def get_form(self, form_id: str) -> Form:
        return Form.from_document(self._load(form_id))

    def add_field(self, form_id: str, caller: CallerIdentity, field_input: FieldInput) -> Form:
        doc, form = self._load_owned(form_id, caller)
        if not field_input.label or not field_input.type:
            raise ValidationError(
                [FieldError(field="field", message="Label and type are required")],
                message="Label and type are required",
            )
        if not is_field_type(field_input.type):
            raise ValidationError([FieldError(field="type", message="Invalid field type")])

        new_field = _new_field(field_input)
        form.fields.append(new_field)
        logger.info("Added field %s to form %s", new_field.id, form_id)
        return self._save(doc, form)

    def update_field(self, form_id: str, field_id: str, caller: CallerIdentity, patch: FieldPatch) -> Form:
        doc, form = self._load_owned(form_id, caller)
        index = _field_index(form, field_id)
        if index is None:
            raise NotFound("Field not found")

        changes = patch.changes()
        if "type" in changes and not is_field_type(changes["type"]):
            raise ValidationError([FieldError(field="type", message="Invalid field type")])

        form.fields[index] = form.fields[index].model_copy(update=changes)
        logger.info("Updated field %s of form %s (%s)", field_id, form_id, ", ".join(sorted(changes)) or "no changes")
        return self._save(doc, form)

    def delete_field(self, form_id: str, field_id: str, caller: CallerIdentity) -> Form:
        doc, form = self._load_owned(form_id, caller)
        remaining = [f for f in form.fields if f.id != field_id]
        if len(remaining) == len(form.fields):
            # deleting an absent field is a no-op
            return form
        form.fields = remaining
        logger.info("Deleted field %s from form %s", field_id, form_id)
        return self._save(doc, form)

    def _load(self, form_id: str) -> Dict[str, Any]:
        doc = self.store.get_document(FORMS, form_id)
        if doc is None:
            raise NotFound("Form not found")
        return doc

    def _load_owned(self, form_id: str, caller: CallerIdentity) -> Tuple[Dict[str, Any], Form]:
        doc = self._load(form_id)
        form = Form.from_document(doc)
        require_owner(form, caller)
        return doc, form

    def _save(self, doc: Dict[str, Any], form: Form) -> Form:
        doc["fields"] = [f.model_dump() for f in form.fields]
        saved = self.store.replace_document(FORMS, form.id, doc)
        return Form.from_document(saved)


def _new_field(field_input: FieldInput) -> FormField:
    return FormField(
        id=new_id(),
        label=field_input.label,
        type=field_input.type,
        options=list(field_input.options or []),
        required=bool(field_input.required),
    )


def _field_index(form: Form, field_id: str) -> Optional[int]:
    for i, f in enumerate(form.fields):
        if f.id == field_id:
            return i
    return None
