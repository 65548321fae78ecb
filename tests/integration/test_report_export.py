"""Integration tests for rendering and storing report documents."""

from datetime import date
from decimal import Decimal

import pytest

from strata.errors import InvalidInputError, StorageError
from strata.models import FundType, TransactionType
from strata.schemas.reports import ReportExportRequest, ReportType
from strata.services.collaborators import FileSystemBlobStore
from strata.services.report_service import ReportService


class UnsignableBlobStore(FileSystemBlobStore):
    async def create_signed_url(self, path, ttl_seconds):
        raise StorageError("signing key missing")


class ReadOnlyBlobStore(FileSystemBlobStore):
    async def upload(self, path, data, content_type, upsert=True):
        raise StorageError("bucket is read-only")


@pytest.fixture
def ledger(post_transaction, financial_year):
    post_transaction(date(2026, 7, 5), TransactionType.RECEIPT, FundType.ADMIN, "4100", "3000.00")
    post_transaction(date(2026, 7, 20), TransactionType.PAYMENT, FundType.ADMIN, "6100", "1000.00")


class TestExportReport:
    @pytest.mark.asyncio
    async def test_returns_content_when_not_saved(self, db_session, ctx, scheme, ledger, renderer):
        request = ReportExportRequest(report_type=ReportType.TRIAL_BALANCE)

        outcome = await ReportService(db_session).export_report(ctx, scheme, request, renderer)

        export = outcome.value
        assert outcome.warning is None
        assert export.file_name == "trial-balance-current.pdf"
        assert export.saved is False
        assert export.content.startswith(b"%PDF")
        template, data = renderer.rendered[0]
        assert template == "trial-balance"
        assert data["scheme_name"] == "Harbour View"
        assert data["is_balanced"] is True

    @pytest.mark.asyncio
    async def test_saved_with_signed_url(self, db_session, ctx, scheme, ledger, renderer, tmp_path):
        store = FileSystemBlobStore(root=tmp_path, secret="test-secret")
        request = ReportExportRequest(report_type=ReportType.FUND_SUMMARY, save=True)

        outcome = await ReportService(db_session).export_report(ctx, scheme, request, renderer, store)

        export = outcome.value
        assert export.saved is True
        assert export.content is None
        assert export.storage_path.startswith(f"{scheme.id}/financial/")
        assert export.storage_path.endswith("_fund-summary.pdf")
        assert "signature=" in export.url
        assert (await store.download(export.storage_path)).startswith(b"%PDF")
        balances = renderer.rendered[0][1]["balances"]
        assert balances[0]["closing_balance"] == Decimal("7000.00")

    @pytest.mark.asyncio
    async def test_upload_failure_returns_content(self, db_session, ctx, scheme, ledger, renderer, tmp_path):
        request = ReportExportRequest(report_type=ReportType.TRIAL_BALANCE, save=True)

        outcome = await ReportService(db_session).export_report(
            ctx, scheme, request, renderer, ReadOnlyBlobStore(root=tmp_path)
        )

        assert outcome.warning == "PDF rendered but upload failed: bucket is read-only"
        assert outcome.value.saved is False
        assert outcome.value.content is not None

    @pytest.mark.asyncio
    async def test_signing_failure_returns_path(self, db_session, ctx, scheme, ledger, renderer, tmp_path):
        request = ReportExportRequest(report_type=ReportType.TRIAL_BALANCE, save=True)

        outcome = await ReportService(db_session).export_report(
            ctx, scheme, request, renderer, UnsignableBlobStore(root=tmp_path)
        )

        assert outcome.warning == "PDF saved but URL generation failed: signing key missing"
        assert outcome.value.saved is True
        assert outcome.value.url is None
        assert (tmp_path / outcome.value.storage_path).exists()

    @pytest.mark.asyncio
    async def test_save_without_store(self, db_session, ctx, scheme, ledger, renderer):
        request = ReportExportRequest(report_type=ReportType.TRIAL_BALANCE, save=True)

        with pytest.raises(InvalidInputError, match="Document storage is not configured"):
            await ReportService(db_session).export_report(ctx, scheme, request, renderer)


class TestReportParameters:
    @pytest.mark.asyncio
    async def test_budget_vs_actual_needs_financial_year(self, db_session, ctx, scheme, renderer):
        request = ReportExportRequest(report_type=ReportType.BUDGET_VS_ACTUAL)

        with pytest.raises(InvalidInputError, match="Financial year ID is required"):
            await ReportService(db_session).export_report(ctx, scheme, request, renderer)

    @pytest.mark.asyncio
    async def test_levy_roll_needs_period(self, db_session, ctx, scheme, renderer):
        request = ReportExportRequest(report_type=ReportType.LEVY_ROLL)

        with pytest.raises(InvalidInputError, match="Period ID is required"):
            await ReportService(db_session).export_report(ctx, scheme, request, renderer)

    @pytest.mark.asyncio
    async def test_levy_roll_file_name(self, db_session, ctx, scheme, schedule, renderer):
        request = ReportExportRequest(report_type=ReportType.LEVY_ROLL, period_id=schedule.periods[0].id)

        outcome = await ReportService(db_session).export_report(ctx, scheme, request, renderer)

        assert outcome.value.file_name == "levy-roll-q1-fy2027.pdf"

    @pytest.mark.asyncio
    async def test_income_statement_range_in_file_name(self, db_session, ctx, scheme, ledger, renderer):
        request = ReportExportRequest(
            report_type=ReportType.INCOME_STATEMENT,
            start_date=date(2026, 7, 1),
            end_date=date(2026, 9, 30),
        )

        outcome = await ReportService(db_session).export_report(ctx, scheme, request, renderer)

        assert outcome.value.file_name == "income-statement-2026-07-01-to-2026-09-30.pdf"
        statement = renderer.rendered[0][1]["statement"]
        assert statement["admin"]["net"] == Decimal("2000.00")
