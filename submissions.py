"""
Submission store: accepting responses to a form and giving its owner access to them.
"""

import csv
import io
import logging
from typing import Iterator, List, Sequence

from access import require_owner
from auth import CallerIdentity
from database import SUBMISSIONS, Store
from errors import NotFound, ValidationError
from forms import FormCatalog
from schemas import Form, Submission, SubmissionResponse
from validation import Policy, validate_required_fields

logger = logging.getLogger(__name__)


class SubmissionStore:
    def __init__(self, store: Store, catalog: FormCatalog, policy: Policy = validate_required_fields):
        self.store = store
        self.catalog = catalog
        self.policy = policy

    def submit(self, form_id: str, responses: Sequence[SubmissionResponse]) -> Submission:
        form = self.catalog.get_form(form_id)
        result = self.policy(form.fields, responses)
        if not result.ok:
            logger.warning("Rejected submission to form %s: %d errors", form_id, len(result.errors))
            raise ValidationError(result.errors)

        doc = self.store.create_document(
            SUBMISSIONS,
            {"form_id": form.id, "responses": [r.model_dump() for r in responses]},
        )
        logger.info("Stored submission %s for form %s", doc["_id"], form_id)
        return Submission.from_document(doc)

    def list_submissions(self, form_id: str, caller: CallerIdentity) -> List[Submission]:
        form = self._owned_form(form_id, caller)
        docs = self.store.get_documents(SUBMISSIONS, {"form_id": form.id})
        return [Submission.from_document(doc) for doc in docs]

    def get_submission(self, form_id: str, submission_id: str, caller: CallerIdentity) -> Submission:
        form = self._owned_form(form_id, caller)
        doc = self.store.get_document(SUBMISSIONS, submission_id, {"form_id": form.id})
        if doc is None:
            raise NotFound("Submission not found")
        return Submission.from_document(doc)

    def delete_submission(self, form_id: str, submission_id: str, caller: CallerIdentity) -> None:
        submission = self.get_submission(form_id, submission_id, caller)
        self.store.delete_document(SUBMISSIONS, submission.id)
        logger.info("Deleted submission %s of form %s", submission.id, form_id)

    def export_csv(self, form_id: str, caller: CallerIdentity) -> Iterator[str]:
        """
        Render a form's submissions as CSV, one row per submission.

        Columns follow the form's current fields; a submission that has no
        answer for a column leaves it blank.
        """
        form = self._owned_form(form_id, caller)
        submissions = [
            Submission.from_document(doc)
            for doc in self.store.get_documents(SUBMISSIONS, {"form_id": form.id})
        ]
        return _iter_rows(form, submissions)

    def _owned_form(self, form_id: str, caller: CallerIdentity) -> Form:
        form = self.catalog.get_form(form_id)
        require_owner(form, caller)
        return form


def _iter_rows(form: Form, submissions: List[Submission]) -> Iterator[str]:
    output = io.StringIO()
    writer = csv.writer(output)

    def flush() -> str:
        value = output.getvalue()
        output.seek(0)
        output.truncate(0)
        return value

    writer.writerow(["timestamp"] + [f.label for f in form.fields])
    yield flush()
    for s in submissions:
        answers = {}
        for r in s.responses:
            answers.setdefault(r.field_id, r.value)
        row = [s.created_at.isoformat() if s.created_at else ""]
        row.extend(answers.get(f.id, "") for f in form.fields)
        writer.writerow(row)
        yield flush()
