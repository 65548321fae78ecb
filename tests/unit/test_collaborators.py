"""Tests for the shipped blob store, renderer and email sender."""

from datetime import date
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest

from strata.errors import DeliveryError, StorageError
from strata.models.levy_item import LevyItemStatus
from strata.services.collaborators import (
    EmailMessage,
    FileSystemBlobStore,
    LoggingEmailSender,
    PdfDocumentRenderer,
    UnconfiguredEmailSender,
)


@pytest.fixture
def store(tmp_path):
    return FileSystemBlobStore(root=tmp_path, secret="test-secret")


class TestFileSystemBlobStore:
    @pytest.mark.asyncio
    async def test_upload_and_download(self, store):
        await store.upload("1/2/3.pdf", b"notice", "application/pdf")

        assert await store.download("1/2/3.pdf") == b"notice"

    @pytest.mark.asyncio
    async def test_upsert_overwrites(self, store):
        await store.upload("a.pdf", b"v1", "application/pdf")
        await store.upload("a.pdf", b"v2", "application/pdf", upsert=True)

        assert await store.download("a.pdf") == b"v2"

    @pytest.mark.asyncio
    async def test_no_upsert_refuses_existing(self, store):
        await store.upload("a.pdf", b"v1", "application/pdf")

        with pytest.raises(StorageError, match="already exists"):
            await store.upload("a.pdf", b"v2", "application/pdf", upsert=False)

    @pytest.mark.asyncio
    async def test_download_missing(self, store):
        with pytest.raises(StorageError):
            await store.download("missing.pdf")

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, store):
        with pytest.raises(StorageError, match="Invalid storage path"):
            await store.upload("../outside.pdf", b"x", "application/pdf")

    @pytest.mark.asyncio
    async def test_signed_url_verifies(self, store):
        await store.upload("1/financial/report.pdf", b"x", "application/pdf")

        url = await store.create_signed_url("1/financial/report.pdf", 3600)

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.path == "/files/1/financial/report.pdf"
        expires = int(query["expires"][0])
        signature = query["signature"][0]
        assert store.verify_signature("1/financial/report.pdf", expires, signature)
        assert not store.verify_signature("1/financial/other.pdf", expires, signature)
        assert not store.verify_signature("1/financial/report.pdf", expires, signature, now=expires + 1)

    @pytest.mark.asyncio
    async def test_signed_url_for_missing_object(self, store):
        with pytest.raises(StorageError, match="Object not found"):
            await store.create_signed_url("nope.pdf", 60)


class TestPdfDocumentRenderer:
    @pytest.mark.asyncio
    async def test_renders_pdf(self):
        content = await PdfDocumentRenderer().render(
            "levy-notice", {"due_date": date(2026, 7, 31), "amount": Decimal("400.00")}
        )

        assert content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_renders_rows_and_sections(self):
        data = {
            "scheme_name": "Harbour View & Co <SP1>",
            "rows": [
                {"code": "1100", "status": LevyItemStatus.PAID, "balance": Decimal("0.00")},
                {"code": "6100", "status": LevyItemStatus.OVERDUE, "balance": Decimal("12.50")},
            ],
            "statement": {"admin": {"net": Decimal("2000.00"), "income": []}},
            "date_range": None,
        }

        content = await PdfDocumentRenderer().render("income-statement", data)

        assert content.startswith(b"%PDF")
        assert content.rstrip().endswith(b"%%EOF")


class TestUnconfiguredEmailSender:
    @pytest.mark.asyncio
    async def test_refuses_to_send(self):
        with pytest.raises(DeliveryError, match="Email delivery is not configured"):
            await UnconfiguredEmailSender().send(
                EmailMessage(to="owner@example.com", subject="Levy Notice", html="<p>Hi</p>")
            )


class TestLoggingEmailSender:
    @pytest.mark.asyncio
    async def test_returns_message_id_and_logs(self, caplog):
        caplog.set_level("INFO", logger="strata.services.collaborators")

        message_id = await LoggingEmailSender().send(
            EmailMessage(to="owner@example.com", subject="Levy Notice", html="<p>Hi</p>")
        )

        assert message_id
        assert "owner@example.com" in caplog.text
