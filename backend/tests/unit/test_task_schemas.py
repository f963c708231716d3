"""Unit tests for task request schemas and action parsing."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from dispatchlog.tasks.errors import TaskValidationError
from dispatchlog.tasks.schemas import (
    CloseAction,
    ForwardAction,
    RejectAction,
    SubmitAction,
    TaskCreateRequest,
    parse_action,
)


class TestParseAction:

    def test_discriminates_on_action_type(self):
        assert isinstance(parse_action({"action_type": "SUBMITTED"}), SubmitAction)
        assert isinstance(parse_action({"action_type": "CLOSED", "description": "done"}), CloseAction)

    def test_unknown_action_type_rejected(self):
        with pytest.raises(TaskValidationError):
            parse_action({"action_type": "ARCHIVED"})

    def test_missing_action_type_rejected(self):
        with pytest.raises(TaskValidationError):
            parse_action({"description": "no type"})

    def test_unknown_fields_rejected(self):
        with pytest.raises(TaskValidationError):
            parse_action({"action_type": "SUBMITTED", "status": "CLOSED"})

    def test_reject_reason_required_and_trimmed(self):
        action = parse_action({"action_type": "REJECTED", "reason": "  Missing signature  "})

        assert isinstance(action, RejectAction)
        assert action.reason == "Missing signature"

        with pytest.raises(TaskValidationError):
            parse_action({"action_type": "REJECTED", "reason": "   "})
        with pytest.raises(TaskValidationError):
            parse_action({"action_type": "REJECTED"})


class TestForwardAction:

    def test_internal_target(self):
        target = uuid4()
        action = parse_action({"action_type": "FORWARDED", "forwarded_to_id": str(target)})

        assert isinstance(action, ForwardAction)
        assert action.forwarded_to_id == target

    def test_email_lowered(self):
        action = parse_action({"action_type": "FORWARDED", "forwarded_to_email": "Ops@Vendor.COM"})

        assert action.forwarded_to_email == "ops@vendor.com"

    def test_name_uppercased(self):
        action = parse_action({"action_type": "FORWARDED", "forwarded_to_name": " civil aviation "})

        assert action.forwarded_to_name == "CIVIL AVIATION"

    def test_requires_exactly_one_target(self):
        with pytest.raises(TaskValidationError):
            parse_action({"action_type": "FORWARDED"})
        with pytest.raises(TaskValidationError):
            parse_action({
                "action_type": "FORWARDED",
                "forwarded_to_id": str(uuid4()),
                "forwarded_to_email": "a@b.com",
            })

    def test_invalid_email_rejected(self):
        with pytest.raises(TaskValidationError):
            parse_action({"action_type": "FORWARDED", "forwarded_to_email": "not-an-email"})


class TestTaskCreateRequest:

    def _fields(self, **overrides):
        fields = {
            "assignees": ["external-name:ACME"],
            "description_of_work": "Check fuel lines",
            "priority_id": uuid4(),
            "complexity_id": uuid4(),
        }
        fields.update(overrides)
        return fields

    def test_minimal_request(self):
        request = TaskCreateRequest(**self._fields())

        assert request.is_notice is False
        assert request.assigned_completion_date is None

    def test_empty_assignee_list_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreateRequest(**self._fields(assignees=[]))

    def test_blank_description_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreateRequest(**self._fields(description_of_work="   "))
