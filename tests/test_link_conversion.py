"""Tests for converting message files into shared links."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from dropbox_linker.conversion_tracker import ConversionTracker
from dropbox_linker.exceptions import DropboxApiError
from dropbox_linker.link_conversion import LinkConversionService
from dropbox_linker.models import AttachmentInfo, ConversionStatus, LinkResult

NOW = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)


class StubLinkClient:
    """Records requests; fails for paths listed in ``failures``."""

    def __init__(self, token_provider):
        self.token_provider = token_provider
        self.requests = []
        self.failures = {}
        self.gate = None

    async def create_or_reuse(self, request, dropbox_path):
        self.requests.append((request, dropbox_path))
        if self.gate is not None:
            await self.gate.wait()
        if dropbox_path in self.failures:
            raise self.failures.pop(dropbox_path)
        return LinkResult(f"https://dropbox.test{dropbox_path}", dropbox_path.rsplit("/", 1)[-1], dropbox_path)


@pytest.fixture
def dropbox_root(tmp_path):
    root = tmp_path / "Dropbox"
    (root / "Reports").mkdir(parents=True)
    (root / "Reports" / "q3.pdf").write_bytes(b"x" * 2048)
    (root / "Reports" / "q4.pdf").write_bytes(b"y" * 10)
    return root


@pytest.fixture
def client(token_provider):
    return StubLinkClient(token_provider)


@pytest.fixture
def tracker():
    return ConversionTracker()


@pytest.fixture
def service(client, tracker, dropbox_root):
    return LinkConversionService(client, tracker, str(dropbox_root), link_expiration_days=7, clock=lambda: NOW)


class TestConvertFiles:
    @pytest.mark.asyncio
    async def test_successful_conversion(self, service, client, tracker, dropbox_root):
        path = str(dropbox_root / "Reports" / "q3.pdf")

        outcomes = await service.convert_files("m1", [path])

        assert outcomes[0].succeeded
        assert outcomes[0].size_bytes == 2048
        assert outcomes[0].result.url == "https://dropbox.test/Reports/q3.pdf"
        (conversion,) = tracker.get("m1")
        assert conversion.status == ConversionStatus.SUCCESS
        assert conversion.result_url == "https://dropbox.test/Reports/q3.pdf"
        assert conversion.file_name == "q3.pdf"

    @pytest.mark.asyncio
    async def test_request_carries_size_and_expiry(self, service, client, dropbox_root):
        await service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")])

        request, dropbox_path = client.requests[0]
        assert dropbox_path == "/Reports/q3.pdf"
        assert request.size_bytes == 2048
        assert request.expires_at == NOW + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_results_keep_selection_order(self, service, tracker, dropbox_root):
        paths = [str(dropbox_root / "Reports" / "q4.pdf"), str(dropbox_root / "Reports" / "q3.pdf")]

        outcomes = await service.convert_files("m1", paths)

        assert [o.local_path for o in outcomes] == paths
        assert [c.file_name for c in tracker.get("m1")] == ["q4.pdf", "q3.pdf"]

    @pytest.mark.asyncio
    async def test_provider_error_marks_failed(self, service, client, tracker, dropbox_root):
        client.failures["/Reports/q3.pdf"] = DropboxApiError("path", "{}", 409)

        outcomes = await service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")])

        assert not outcomes[0].succeeded
        assert "path" in outcomes[0].error
        (conversion,) = tracker.get("m1")
        assert conversion.status == ConversionStatus.FAILED
        assert conversion.error_message == outcomes[0].error
        assert service.validate_send("m1").block_send

    @pytest.mark.asyncio
    async def test_file_outside_root_fails_without_api_call(self, service, client, tracker, tmp_path):
        outside = tmp_path / "elsewhere.pdf"
        outside.write_bytes(b"z")

        outcomes = await service.convert_files("m1", [str(outside)])

        assert "not inside the Dropbox folder" in outcomes[0].error
        assert client.requests == []
        assert tracker.has_failed("m1")

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, service, client, tracker, dropbox_root):
        client.failures["/Reports/q4.pdf"] = DropboxApiError("unknown")
        paths = [str(dropbox_root / "Reports" / "q3.pdf"), str(dropbox_root / "Reports" / "q4.pdf")]

        outcomes = await service.convert_files("m1", paths)

        assert [o.succeeded for o in outcomes] == [True, False]
        assert [c.status for c in tracker.get("m1")] == [ConversionStatus.SUCCESS, ConversionStatus.FAILED]

    @pytest.mark.asyncio
    async def test_duplicate_paths_are_converted_once(self, service, client, tracker, dropbox_root):
        path = str(dropbox_root / "Reports" / "q3.pdf")

        outcomes = await service.convert_files("m1", [path, path])

        assert len(outcomes) == 1
        assert len(client.requests) == 1
        assert [c.status for c in tracker.get("m1")] == [ConversionStatus.SUCCESS]
        assert not service.validate_send("m1").block_send

    @pytest.mark.asyncio
    async def test_converting_tracked_file_again_keeps_one_entry(self, service, client, tracker, dropbox_root):
        path = str(dropbox_root / "Reports" / "q3.pdf")
        client.failures["/Reports/q3.pdf"] = DropboxApiError("unknown")
        await service.convert_files("m1", [path])

        outcome = await service.convert_file("m1", path)

        assert outcome.succeeded
        (conversion,) = tracker.get("m1")
        assert conversion.status == ConversionStatus.SUCCESS
        assert not service.validate_send("m1").block_send

    @pytest.mark.asyncio
    async def test_convert_single_file(self, service, tracker, dropbox_root):
        outcome = await service.convert_file("m1", str(dropbox_root / "Reports" / "q4.pdf"))

        assert outcome.succeeded
        assert tracker.get("m1")[0].status == ConversionStatus.SUCCESS


class TestInFlight:
    @pytest.mark.asyncio
    async def test_send_blocked_while_conversion_runs(self, service, client, tracker, dropbox_root):
        client.gate = asyncio.Event()
        task = asyncio.create_task(service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")]))
        while not client.requests:
            await asyncio.sleep(0)

        assert tracker.get("m1")[0].status == ConversionStatus.IN_PROGRESS
        verdict = service.validate_send("m1")
        assert verdict.block_send
        assert "still being created" in verdict.message

        client.gate.set()
        await task
        assert not service.validate_send("m1").block_send

    @pytest.mark.asyncio
    async def test_cancelled_conversion_is_marked_failed(self, service, client, tracker, dropbox_root):
        client.gate = asyncio.Event()
        task = asyncio.create_task(service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")]))
        while not client.requests:
            await asyncio.sleep(0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        (conversion,) = tracker.get("m1")
        assert conversion.status == ConversionStatus.FAILED
        assert conversion.error_message == "Cancelled"


class TestRetry:
    @pytest.mark.asyncio
    async def test_retry_failed_conversions(self, service, client, tracker, token_provider, dropbox_root):
        client.failures["/Reports/q3.pdf"] = DropboxApiError("unknown")
        await service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")])

        outcomes = await service.retry_failed("m1")

        assert outcomes[0].succeeded
        assert not tracker.has_failed("m1")
        assert len(tracker.get("m1")) == 1
        assert token_provider.reauthenticate_calls == 0

    @pytest.mark.asyncio
    async def test_retry_with_reauthentication(self, service, client, token_provider, dropbox_root):
        client.failures["/Reports/q3.pdf"] = DropboxApiError("unknown")
        await service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")])

        await service.retry_failed("m1", reauthenticate=True)

        assert token_provider.reauthenticate_calls == 1

    @pytest.mark.asyncio
    async def test_retry_without_failures_is_noop(self, service, client, token_provider, dropbox_root):
        await service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")])

        assert await service.retry_failed("m1", reauthenticate=True) == []
        assert token_provider.reauthenticate_calls == 0
        assert len(client.requests) == 1


class TestSendLifecycle:
    @pytest.mark.asyncio
    async def test_large_attachment_warning_passes_through(self, service, dropbox_root):
        await service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")])

        verdict = service.validate_send("m1", [AttachmentInfo("video.mp4", 20 * 1024 * 1024)])

        assert not verdict.block_send
        assert verdict.show_large_attachment_warning

    @pytest.mark.asyncio
    async def test_mark_sent_clears_message(self, service, tracker, dropbox_root):
        await service.convert_files("m1", [str(dropbox_root / "Reports" / "q3.pdf")])

        service.mark_sent("m1")

        assert tracker.get("m1") is None
        assert not service.validate_send("m1").block_send
