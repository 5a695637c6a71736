"""Unit tests for the workflow error taxonomy and logging setup."""

import logging

import pytest

from logging_config import StructuredFormatter, setup_logging
from workflow.errors import (
    GenerationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    WorkflowError,
)


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error, status, code",
        [
            (ValidationError("bad", field="symptoms"), 400, "VALIDATION_ERROR"),
            (GenerationError("down", operation="generate_diagnoses"), 502, "GENERATION_ERROR"),
            (PersistenceError("disk", collection="sessions"), 503, "PERSISTENCE_ERROR"),
            (NotFoundError("gone", collection="workflows", key="w1"), 404, "NOT_FOUND"),
        ],
    )
    def test_status_and_code(self, error, status, code):
        assert isinstance(error, WorkflowError)
        assert error.status_code == status
        assert error.to_dict()["error"] == code

    def test_validation_error_names_field(self):
        error = ValidationError("Select at least one symptom", field="symptoms", details={"count": 0})
        assert error.to_dict() == {
            "error": "VALIDATION_ERROR",
            "message": "Select at least one symptom",
            "details": {"field": "symptoms", "count": 0},
        }

    def test_generation_error_is_retryable(self):
        assert GenerationError("timeout").details["retryable"] is True


class TestLogging:
    def test_structured_format(self):
        record = logging.LogRecord("workflow.controller", logging.INFO, __file__, 1, "moved %s", ("on",), None)
        line = StructuredFormatter().format(record)
        assert "INFO" in line
        assert "[workflow.controller] moved on" in line

    def test_context_fields_appended(self):
        record = logging.LogRecord("workflow.gateway", logging.INFO, __file__, 1, "Submission resolved", (), None)
        record.submission_id = "sub-1"
        record.session_id = "sess-9"
        line = StructuredFormatter().format(record)
        assert line.endswith("Submission resolved session_id=sess-9 submission_id=sub-1")

    def test_no_context_no_suffix(self):
        record = logging.LogRecord("api.main", logging.WARNING, __file__, 1, "plain", (), None)
        assert StructuredFormatter().format(record).endswith("[api.main] plain")

    def test_setup_logging_level(self):
        root = logging.getLogger()
        saved_level, saved_handlers = root.level, list(root.handlers)
        try:
            setup_logging("warning")
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
