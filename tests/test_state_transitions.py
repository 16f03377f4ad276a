"""State transition tests for GenerationRecord model.

Tests focus on validating the record lifecycle state machine:
- pending → completed and pending → failed are the only transitions
- Terminal states reject further transitions
- image_url is set only on completion
"""

from datetime import timedelta

import pytest

from imagegen.models.generation_record import (
    GenerationRecord,
    GenerationStatus,
    InvalidStateTransition,
)


def test_new_record_is_pending():
    record = GenerationRecord(prompt="a red apple")

    assert record.status == GenerationStatus.PENDING
    assert record.image_url == ""
    assert record.is_terminal is False
    assert record.created_at is not None


def test_mark_completed_sets_image_url_and_refreshes_updated_at():
    record = GenerationRecord(prompt="a red apple")
    created_at = record.created_at
    previous_updated_at = record.updated_at

    record.mark_completed("data:image/jpeg;base64,Zm9v")

    assert record.status == GenerationStatus.COMPLETED
    assert record.image_url == "data:image/jpeg;base64,Zm9v"
    assert record.is_terminal is True
    assert record.created_at == created_at
    assert record.updated_at >= previous_updated_at


def test_mark_failed_leaves_image_url_empty():
    record = GenerationRecord(prompt="a red apple")

    record.mark_failed("Gemini API error (status 500): boom")

    assert record.status == GenerationStatus.FAILED
    assert record.image_url == ""
    assert record.error_message == "Gemini API error (status 500): boom"


def test_mark_failed_truncates_error_message():
    record = GenerationRecord(prompt="a red apple")

    record.mark_failed("x" * 5000)

    assert len(record.error_message) == 1000


@pytest.mark.parametrize("image_url", ["", "https://example.com/image.png"])
def test_mark_completed_requires_data_uri(image_url):
    record = GenerationRecord(prompt="a red apple")

    with pytest.raises(ValueError, match="data URI"):
        record.mark_completed(image_url)

    assert record.status == GenerationStatus.PENDING


def test_terminal_states_reject_transitions():
    completed = GenerationRecord(prompt="a red apple")
    completed.mark_completed("data:image/png;base64,Zm9v")

    with pytest.raises(InvalidStateTransition, match="completed"):
        completed.mark_failed("late failure")
    with pytest.raises(InvalidStateTransition, match="completed"):
        completed.mark_completed("data:image/png;base64,YmFy")

    failed = GenerationRecord(prompt="a red apple")
    failed.mark_failed("boom")

    with pytest.raises(InvalidStateTransition, match="failed"):
        failed.mark_completed("data:image/png;base64,Zm9v")

    # Image URL never set on a failed record
    assert failed.image_url == ""


def test_timestamps_are_timezone_aware_utc():
    record = GenerationRecord(prompt="a red apple")

    assert record.created_at.utcoffset() == timedelta(0)

    record.mark_failed("boom")

    assert record.updated_at.utcoffset() == timedelta(0)
