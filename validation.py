"""
Validation of field definitions and of submissions against a form's fields.

Two submission policies exist and are not equivalent:

- per_field: every required field needs a response with a non-empty value.
  Responses for unknown field ids and missing optional fields are ignored.
- count: the number of responses must equal the number of fields; values
  are not inspected.

A process applies exactly one of them (settings.submission_policy) to every
submission entry point.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from schemas import FIELD_TYPES, FieldError, FormField, SubmissionResponse


@dataclass
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


Policy = Callable[[Sequence[FormField], Sequence[SubmissionResponse]], ValidationResult]


def validate_required_fields(
    fields: Sequence[FormField], responses: Sequence[SubmissionResponse]
) -> ValidationResult:
    answers: Dict[str, str] = {}
    for response in responses:
        # first answer for a field id wins
        answers.setdefault(response.field_id, response.value)

    result = ValidationResult()
    for f in fields:
        if f.required and not answers.get(f.id):
            result.errors.append(FieldError(field=f.label, message=f"{f.label} is required"))
    return result


def validate_response_count(
    fields: Sequence[FormField], responses: Sequence[SubmissionResponse]
) -> ValidationResult:
    if len(responses) == len(fields):
        return ValidationResult()
    return ValidationResult(errors=[FieldError(field="responses", message="All fields are required")])


POLICIES: Dict[str, Policy] = {
    "per_field": validate_required_fields,
    "count": validate_response_count,
}


def get_policy(name: str) -> Policy:
    try:
        return POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown submission policy {name!r}; expected one of {sorted(POLICIES)}")


def is_field_type(value: Optional[str]) -> bool:
    return value in FIELD_TYPES


def check_field_definition(label: Optional[str], type_: Optional[str], prefix: str = "") -> List[FieldError]:
    errors = []
    if not label:
        errors.append(FieldError(field=f"{prefix}label", message="Each field must have a label"))
    if not is_field_type(type_):
        errors.append(FieldError(field=f"{prefix}type", message="Invalid field type"))
    return errors
