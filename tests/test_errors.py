"""Unit tests for taskhub.engine.errors — error hierarchy & serialization."""

import json

import pytest

from taskhub.engine.errors import (
    ConstraintViolationError,
    DashboardLoadError,
    DataStoreError,
    MemberLoadError,
    RecordNotFoundError,
    TaskHubConfigError,
    TaskHubError,
    TaskHubPermissionError,
    TaskHubSessionError,
    TaskHubValidationError,
)


class TestTaskHubError:

    def test_basic_creation(self):
        err = TaskHubError("something broke")
        assert err.message == "something broke"
        assert str(err) == "something broke"
        assert err.error_type == "TaskHubError"
        assert err.context == {}

    def test_to_dict(self):
        err = TaskHubError("fail", table="tasks")
        d = err.to_dict()
        assert d["error_type"] == "TaskHubError"
        assert d["message"] == "fail"
        assert d["context"] == {"table": "tasks"}
        assert "timestamp" in d

    def test_to_json(self):
        parsed = json.loads(TaskHubError("fail", count=3).to_json())
        assert parsed["context"]["count"] == "3"

    def test_repr_includes_context(self):
        err = TaskHubError("fail", b=2, a=1)
        assert repr(err) == "TaskHubError: fail | a=1 | b=2"


class TestSubclasses:

    @pytest.mark.parametrize("cls", [
        RecordNotFoundError,
        TaskHubValidationError,
        DataStoreError,
        ConstraintViolationError,
        DashboardLoadError,
        MemberLoadError,
        TaskHubPermissionError,
        TaskHubSessionError,
        TaskHubConfigError,
    ])
    def test_inherits_base(self, cls):
        err = cls("x")
        assert isinstance(err, TaskHubError)
        assert err.error_type == cls.__name__

    def test_constraint_is_store_error(self):
        assert issubclass(ConstraintViolationError, DataStoreError)

    def test_record_not_found_fields(self):
        err = RecordNotFoundError("missing", record_type="task", record_id="t1")
        assert err.record_type == "task"
        assert err.record_id == "t1"

    def test_store_error_fields(self):
        err = DataStoreError("failed", table="projects", operation="update")
        assert err.table == "projects"
        assert err.operation == "update"

    def test_permission_fields(self):
        err = TaskHubPermissionError("no", member_id="m1", reason="not_assigned")
        assert err.member_id == "m1"
        assert err.reason == "not_assigned"

    def test_validation_errors_in_dict(self):
        details = [{"loc": ["progress"], "msg": "too big"}]
        err = TaskHubValidationError("bad", validation_errors=details)
        assert err.validation_errors == details
        assert err.to_dict()["validation_errors"] == details

    def test_validation_errors_default_empty(self):
        assert TaskHubValidationError("bad").validation_errors == []
