"""Unit tests for the submission store"""

import pytest

from conftest import OTHER, OWNER
from errors import NotFound, Unauthorized, ValidationError
from schemas import FieldInput, FieldPatch, SubmissionResponse
from submissions import SubmissionStore
from validation import validate_response_count


def _answers(form, *values):
    return [SubmissionResponse(fieldId=f.id, value=v) for f, v in zip(form.fields, values)]


class TestSubmit:
    def test_stores_responses(self, submissions, form):
        stored = submissions.submit(form.id, _answers(form, "Ada", "ada@example.com"))

        assert stored.id
        assert stored.form_id == form.id
        assert [r.value for r in stored.responses] == ["Ada", "ada@example.com"]
        assert stored.created_at is not None

    def test_missing_required_field_rejected(self, submissions, form):
        with pytest.raises(ValidationError) as exc_info:
            submissions.submit(form.id, _answers(form, "", "ada@example.com"))

        assert [(e.field, e.message) for e in exc_info.value.errors] == [("Name", "Name is required")]
        assert submissions.list_submissions(form.id, OWNER) == []

    def test_unknown_field_ids_are_kept_not_rejected(self, submissions, form):
        responses = _answers(form, "Ada") + [SubmissionResponse(fieldId="extra", value="1")]
        stored = submissions.submit(form.id, responses)
        assert [r.field_id for r in stored.responses][-1] == "extra"

    def test_missing_form(self, submissions):
        with pytest.raises(NotFound):
            submissions.submit("5f0000000000000000000000", [])

    def test_validates_against_current_fields(self, catalog, submissions, form):
        catalog.update_field(form.id, form.fields[0].id, OWNER, FieldPatch(required=False))
        assert submissions.submit(form.id, []).responses == []

    def test_earlier_submissions_survive_field_changes(self, catalog, submissions, form):
        stored = submissions.submit(form.id, _answers(form, "Ada"))
        catalog.delete_field(form.id, form.fields[0].id, OWNER)

        assert submissions.get_submission(form.id, stored.id, OWNER) == stored

    def test_count_policy(self, store, catalog, form):
        counted = SubmissionStore(store, catalog, policy=validate_response_count)

        with pytest.raises(ValidationError) as exc_info:
            counted.submit(form.id, _answers(form, "Ada"))
        assert len(exc_info.value.errors) == 1

        assert counted.submit(form.id, _answers(form, "", "", "")).id


class TestOwnerAccess:
    def test_round_trip_preserves_pairs_and_order(self, submissions, form):
        responses = [
            SubmissionResponse(fieldId=form.fields[2].id, value="green"),
            SubmissionResponse(fieldId=form.fields[0].id, value="Grace Hopper"),
            SubmissionResponse(fieldId=form.fields[1].id, value="  spaced  "),
        ]
        stored = submissions.submit(form.id, responses)

        fetched = submissions.get_submission(form.id, stored.id, OWNER)

        assert [(r.field_id, r.value) for r in fetched.responses] == [(r.field_id, r.value) for r in responses]

    def test_list_in_submission_order(self, submissions, form):
        first = submissions.submit(form.id, _answers(form, "A"))
        second = submissions.submit(form.id, _answers(form, "B"))

        assert [s.id for s in submissions.list_submissions(form.id, OWNER)] == [first.id, second.id]

    def test_list_only_includes_this_form(self, catalog, submissions, form):
        other_form = catalog.create_form(OWNER, "Other", [FieldInput(label="Q", type="text")])
        submissions.submit(other_form.id, [])
        mine = submissions.submit(form.id, _answers(form, "A"))

        assert [s.id for s in submissions.list_submissions(form.id, OWNER)] == [mine.id]

    def test_submission_of_another_form_is_not_found(self, catalog, submissions, form):
        other_form = catalog.create_form(OWNER, "Other", [FieldInput(label="Q", type="text")])
        stored = submissions.submit(other_form.id, [])

        with pytest.raises(NotFound):
            submissions.get_submission(form.id, stored.id, OWNER)

    def test_non_owner_is_unauthorized(self, submissions, form):
        stored = submissions.submit(form.id, _answers(form, "A"))

        with pytest.raises(Unauthorized):
            submissions.list_submissions(form.id, OTHER)
        with pytest.raises(Unauthorized):
            submissions.get_submission(form.id, stored.id, OTHER)
        with pytest.raises(Unauthorized):
            submissions.delete_submission(form.id, stored.id, OTHER)

    def test_delete(self, submissions, form):
        stored = submissions.submit(form.id, _answers(form, "A"))

        submissions.delete_submission(form.id, stored.id, OWNER)

        with pytest.raises(NotFound):
            submissions.get_submission(form.id, stored.id, OWNER)
        with pytest.raises(NotFound):
            submissions.delete_submission(form.id, stored.id, OWNER)


class TestExportCsv:
    def test_rows_follow_current_fields(self, submissions, form):
        submissions.submit(form.id, _answers(form, "Ada", "ada@example.com", "red"))
        submissions.submit(form.id, _answers(form, "Bob"))

        lines = "".join(submissions.export_csv(form.id, OWNER)).splitlines()

        assert lines[0] == "timestamp,Name,Email,Colour"
        assert lines[1].endswith(",Ada,ada@example.com,red")
        assert lines[2].endswith(",Bob,,")

    def test_non_owner_is_unauthorized(self, submissions, form):
        with pytest.raises(Unauthorized):
            submissions.export_csv(form.id, OTHER)
