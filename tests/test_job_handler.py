"""Image job handler tests.

Every generate call must leave its record in a terminal state, and the
image URL must be present exactly when the record is completed.
"""

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from imagegen.models.generation_record import GenerationStatus
from imagegen.services.exceptions import (
    EmptyImageError,
    GeminiAPIError,
    GeminiConfigurationError,
    GeminiResponseParseError,
    GeminiTransportError,
    GenerationFailed,
    RecordStoreError,
)
from imagegen.services.image_generation.gemini_client import GeminiClient
from imagegen.services.image_generation.job_handler import ImageJobHandler


async def all_records(uow_factory):
    async with await uow_factory() as uow:
        return await uow.records.list_newest_first()


@pytest.mark.asyncio
async def test_successful_generation_completes_record(job_handler, uow_factory):
    record = await job_handler.generate("a red apple")

    assert record.status == GenerationStatus.COMPLETED
    assert record.image_url == "data:image/jpeg;base64,Zm9v"

    async with await uow_factory() as uow:
        stored = await uow.records.get_by_id(record.id)
    assert stored.status == GenerationStatus.COMPLETED
    assert stored.image_url == "data:image/jpeg;base64,Zm9v"
    assert stored.prompt == "a red apple"
    assert stored.updated_at >= stored.created_at


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "configure, expected_cause",
    [
        (lambda g: setattr(g, "status_code", 500), GeminiAPIError),
        (lambda g: setattr(g, "body", {"candidates": []}), EmptyImageError),
        (lambda g: setattr(g, "body", "<html>oops</html>"), GeminiResponseParseError),
        (lambda g: setattr(g, "error", httpx.ConnectError("refused")), GeminiTransportError),
    ],
)
async def test_failures_mark_record_failed(
    job_handler, uow_factory, gemini, configure, expected_cause
):
    configure(gemini)

    with pytest.raises(GenerationFailed) as exc_info:
        await job_handler.generate("a red apple")

    assert isinstance(exc_info.value.cause, expected_cause)
    failed = exc_info.value.record
    assert failed.status == GenerationStatus.FAILED
    assert failed.image_url == ""
    assert failed.error_message

    records = await all_records(uow_factory)
    assert len(records) == 1
    assert records[0].status == GenerationStatus.FAILED


@pytest.mark.asyncio
async def test_no_record_is_left_pending(job_handler, uow_factory, gemini):
    await job_handler.generate("first")
    gemini.status_code = 503
    with pytest.raises(GenerationFailed):
        await job_handler.generate("second")
    gemini.status_code = 200
    await job_handler.generate("third")

    records = await all_records(uow_factory)
    assert len(records) == 3
    for record in records:
        assert record.status != GenerationStatus.PENDING
        assert (record.image_url != "") == (record.status == GenerationStatus.COMPLETED)


@pytest.mark.asyncio
@pytest.mark.parametrize("prompt", ["", "   ", "x" * 2001])
async def test_invalid_prompt_creates_no_record(job_handler, uow_factory, gemini, prompt):
    with pytest.raises(ValueError):
        await job_handler.generate(prompt)

    assert await all_records(uow_factory) == []
    assert gemini.requests == []


@pytest.mark.asyncio
async def test_prompt_is_stripped(job_handler, gemini):
    record = await job_handler.generate("  a red apple \n")

    assert record.prompt == "a red apple"
    assert gemini.last_json["contents"][0]["parts"][0]["text"] == "Generate an image: a red apple"


@pytest.mark.asyncio
async def test_missing_api_key_creates_no_record(uow_factory):
    handler = ImageJobHandler(uow_factory, GeminiClient(api_key=""))

    with pytest.raises(GeminiConfigurationError):
        await handler.generate("a red apple")

    assert await all_records(uow_factory) == []


@pytest.mark.asyncio
async def test_store_failure_on_create_skips_gemini(gemini, gemini_client):
    class BrokenRecords:
        async def add(self, record):
            raise OperationalError("INSERT", {}, Exception("database is down"))

    class BrokenUnitOfWork:
        records = BrokenRecords()

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc_val, exc_tb):
            return False

    async def broken_uow_factory():
        return BrokenUnitOfWork()

    handler = ImageJobHandler(broken_uow_factory, gemini_client)

    with pytest.raises(RecordStoreError, match="Failed to save image record"):
        await handler.generate("a red apple")

    assert gemini.requests == []


@pytest.mark.asyncio
async def test_list_get_delete_pass_through(job_handler):
    first = await job_handler.generate("first")
    second = await job_handler.generate("second")

    records, total = await job_handler.list_records()
    assert total == 2
    assert {r.id for r in records} == {first.id, second.id}

    assert (await job_handler.get_record(first.id)).prompt == "first"
    assert await job_handler.delete_record(first.id) is True
    assert await job_handler.delete_record(first.id) is False
    assert await job_handler.get_record(first.id) is None


def with_failing_update(uow_factory):
    """Wrap a UoW factory so that every record update hits a database error."""

    async def factory():
        uow = await uow_factory()

        async def broken_update(record):
            raise OperationalError("UPDATE", {}, Exception("database is down"))

        uow.records.update = broken_update
        return uow

    return factory


@pytest.mark.asyncio
async def test_final_update_failure_leaves_record_pending(uow_factory, gemini_client):
    handler = ImageJobHandler(with_failing_update(uow_factory), gemini_client)

    with pytest.raises(RecordStoreError, match="Failed to update image record"):
        await handler.generate("a red apple")

    records = await all_records(uow_factory)
    assert len(records) == 1
    assert records[0].status == GenerationStatus.PENDING
    assert records[0].image_url == ""


@pytest.mark.asyncio
async def test_failed_branch_update_failure_raises_store_error(
    uow_factory, gemini, gemini_client
):
    gemini.status_code = 500
    handler = ImageJobHandler(with_failing_update(uow_factory), gemini_client)

    with pytest.raises(RecordStoreError, match="Failed to update image record") as exc_info:
        await handler.generate("a red apple")

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert isinstance(exc_info.value.__cause__.__context__, GeminiAPIError)
    records = await all_records(uow_factory)
    assert records[0].status == GenerationStatus.PENDING


@pytest.mark.asyncio
async def test_deeply_nested_body_marks_record_failed(job_handler, uow_factory, gemini):
    gemini.body = "[" * 100000 + "]" * 100000

    with pytest.raises(GenerationFailed) as exc_info:
        await job_handler.generate("a red apple")

    assert isinstance(exc_info.value.cause, GeminiResponseParseError)
    records = await all_records(uow_factory)
    assert records[0].status == GenerationStatus.FAILED
