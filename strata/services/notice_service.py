"""Levy notice documents: rendering, storage and email delivery."""

import html
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from strata.config import get_settings
from strata.errors import AppError, ConflictError, DeliveryError, InvalidInputError, NotFoundError, StorageError
from strata.models.levy_item import LevyItem, LevyItemStatus
from strata.models.scheme import Scheme
from strata.services.collaborators import (
    BlobStore,
    DocumentRenderer,
    EmailAttachment,
    EmailMessage,
    EmailSender,
)
from strata.services.context import RequestContext
from strata.services.levy_item_service import LevyItemService
from strata.services.locale_service import format_amount, format_long_date
from strata.services.money import ZERO, money_add
from strata.services.result import Outcome

logger = logging.getLogger(__name__)

NOTICE_TEMPLATE = "levy-notice"
PDF_CONTENT_TYPE = "application/pdf"
ARREARS_STATUSES = (LevyItemStatus.OVERDUE, LevyItemStatus.PARTIAL, LevyItemStatus.SENT)


def payment_reference(lot_number: str, period_name: str) -> str:
    """Bank reference for a levy, e.g. 'LOT5-Q1FY2027'."""
    return f"LOT{lot_number}-{period_reference(period_name)}"


def period_reference(period_name: str) -> str:
    return re.sub(r"\s+", "", period_name)


def notice_path(item: LevyItem) -> str:
    """Storage path of an item's notice: one document per lot per period."""
    return f"{item.scheme_id}/{item.levy_period_id}/{item.lot_id}.pdf"


@dataclass(frozen=True)
class NoticeResult:
    levy_item_id: int
    success: bool
    error: str | None = None


@dataclass
class NoticeBatch:
    results: list[NoticeResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)


class NoticeService:
    """Service for levy notice generation and delivery.

    Batch operations run item by item, in order, and never stop at the
    first failure: each item's outcome is reported separately.
    """

    def __init__(
        self,
        db_session: Session,
        blob_store: BlobStore,
        email_sender: EmailSender,
        renderer: DocumentRenderer,
    ):
        """Initialize with database session and collaborators."""
        self.db = db_session
        self.blob_store = blob_store
        self.email_sender = email_sender
        self.renderer = renderer
        self.levy_items = LevyItemService(db_session)

    def arrears_for_lot(self, item: LevyItem) -> Decimal:
        """Positive balances the lot owes for other periods."""
        others = (
            self.db.query(LevyItem)
            .filter(
                LevyItem.lot_id == item.lot_id,
                LevyItem.levy_period_id != item.levy_period_id,
                LevyItem.status.in_(ARREARS_STATUSES),
            )
            .all()
        )
        total = ZERO
        for other in others:
            if other.balance > 0:
                total = money_add(total, other.balance)
        return total

    def notice_data(self, scheme: Scheme, item: LevyItem, arrears: Decimal) -> dict[str, Any]:
        """Everything a levy notice document shows."""
        lot = item.lot
        period = item.period
        total_entitlement = scheme.total_lot_entitlement
        share = (
            (lot.unit_entitlement / total_entitlement * 100).quantize(Decimal("0.1"))
            if total_entitlement > 0
            else Decimal("0")
        )
        unit_prefix = f"{lot.unit_number}/" if lot.unit_number else ""
        return {
            "scheme_name": scheme.scheme_name,
            "scheme_number": scheme.scheme_number,
            "scheme_address": scheme.address,
            "owner_name": lot.owner_name or "Owner",
            "lot_number": lot.lot_number,
            "lot_address": f"{unit_prefix}{scheme.address}",
            "period_name": period.period_name,
            "period_start": format_long_date(period.period_start),
            "period_end": format_long_date(period.period_end),
            "admin_levy_amount": item.admin_levy_amount,
            "capital_levy_amount": item.capital_levy_amount,
            "total_levy_amount": item.total_levy_amount,
            "unit_entitlement": f"{lot.unit_entitlement}/{total_entitlement} ({share}%)",
            "due_date": format_long_date(item.due_date),
            "payment_reference": payment_reference(lot.lot_number, period.period_name),
            "arrears_amount": arrears,
            "notice_date": format_long_date(date.today()),
        }

    async def generate_notice(self, ctx: RequestContext, scheme: Scheme, levy_item_id: int) -> Outcome[str]:
        """Render a levy notice and store it, overwriting any earlier version.

        Returns:
            Outcome with the storage path; warning set when the document was
            stored but the item could not be marked as generated

        Raises:
            NotFoundError: If the item does not belong to the scheme
            StorageError: If the upload fails
        """
        item = self.levy_items.get_item(scheme, levy_item_id)
        data = self.notice_data(scheme, item, self.arrears_for_lot(item))
        content = await self.renderer.render(NOTICE_TEMPLATE, data)

        path = notice_path(item)
        try:
            await self.blob_store.upload(path, content, PDF_CONTENT_TYPE, upsert=True)
        except StorageError as e:
            logger.error("Notice upload failed for levy item %s: %s", item.id, e.message)
            raise StorageError(f"PDF upload failed: {e.message}") from e

        try:
            item.notice_generated_at = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Could not mark notice generated for levy item %s: %s", levy_item_id, e)
            return Outcome(path, warning=f"PDF generated but failed to update record: {e}")

        logger.info("Generated levy notice %s by user %s", path, ctx.user_id)
        return Outcome(path)

    async def generate_all_notices_for_period(
        self, ctx: RequestContext, scheme: Scheme, period_id: int
    ) -> NoticeBatch:
        """Generate notices for every item of a period, one at a time.

        Raises:
            NotFoundError: If the period has no levy items
        """
        period = self.levy_items.get_period(scheme, period_id)
        items = self.levy_items.list_items_for_period(period.id)
        if not items:
            raise NotFoundError("No levy items found for this period")

        batch = NoticeBatch()
        for item_id in [item.id for item in items]:
            try:
                outcome = await self.generate_notice(ctx, scheme, item_id)
            except AppError as e:
                batch.results.append(NoticeResult(levy_item_id=item_id, success=False, error=e.message))
                continue
            batch.results.append(NoticeResult(levy_item_id=item_id, success=True, error=outcome.warning))

        logger.info(
            "Generated notices for period %s: %d succeeded, %d failed", period.id, batch.succeeded, batch.failed
        )
        return batch

    def _email_html(self, scheme: Scheme, item: LevyItem) -> str:
        lot = item.lot
        period = item.period
        rows = [
            ("Lot", lot.lot_number),
            (
                "Period",
                f"{period.period_name} ({format_long_date(period.period_start)} - "
                f"{format_long_date(period.period_end)})",
            ),
            ("Amount due", format_amount(item.total_levy_amount)),
            ("Due date", format_long_date(item.due_date)),
            ("Payment reference", payment_reference(lot.lot_number, period.period_name)),
        ]
        body = "".join(
            f"<tr><th align='left'>{html.escape(label)}</th><td>{html.escape(str(value))}</td></tr>"
            for label, value in rows
        )
        greeting = html.escape(lot.owner_name or "Owner")
        return (
            f"<p>Dear {greeting},</p>"
            f"<p>Please find attached your levy notice for {html.escape(scheme.scheme_name)}.</p>"
            f"<table>{body}</table>"
        )

    async def send_notice(self, ctx: RequestContext, scheme: Scheme, levy_item_id: int) -> Outcome[str]:
        """Email a levy notice to the lot's contact, generating it first if needed.

        A pending item becomes sent; items already part-paid, paid or
        overdue keep their status.

        Returns:
            Outcome with the email message id; warning set when the email was
            sent but the item could not be updated

        Raises:
            InvalidInputError: If the lot has no contact email
            StorageError: If the notice cannot be generated or downloaded
            DeliveryError: If the email provider fails
        """
        item = self.levy_items.get_item(scheme, levy_item_id)
        lot = item.lot
        if not lot.owner_email:
            raise InvalidInputError(f"No email address found for lot {lot.lot_number} owner")

        if item.notice_generated_at is None:
            try:
                await self.generate_notice(ctx, scheme, item.id)
            except AppError as e:
                raise StorageError(f"Failed to generate PDF: {e.message}") from e

        try:
            content = await self.blob_store.download(notice_path(item))
        except StorageError as e:
            raise StorageError(f"Failed to download PDF: {e.message}") from e

        period = item.period
        message = EmailMessage(
            to=lot.owner_email,
            subject=f"Levy Notice - Lot {lot.lot_number} - Due {format_long_date(item.due_date)}",
            html=self._email_html(scheme, item),
            sender=get_settings().email_from,
            attachments=[
                EmailAttachment(
                    filename=f"Levy-Notice-Lot{lot.lot_number}-{period_reference(period.period_name)}.pdf",
                    content=content,
                )
            ],
        )
        try:
            message_id = await self.email_sender.send(message)
        except DeliveryError as e:
            logger.error("Levy notice email failed for item %s: %s", item.id, e.message)
            raise DeliveryError(f"Email send failed: {e.message}") from e

        try:
            item.notice_sent_at = datetime.now(timezone.utc)
            if item.status == LevyItemStatus.PENDING:
                item.status = LevyItemStatus.SENT
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Could not mark notice sent for levy item %s: %s", levy_item_id, e)
            return Outcome(message_id, warning=f"Email sent but failed to update record: {e}")

        logger.info("Sent levy notice for item %s to %s", item.id, lot.owner_email)
        return Outcome(message_id)

    async def send_all_notices_for_period(
        self, ctx: RequestContext, scheme: Scheme, period_id: int
    ) -> NoticeBatch:
        """Email every generated notice of a period, one at a time.

        Raises:
            ConflictError: If no item of the period has a generated notice
        """
        period = self.levy_items.get_period(scheme, period_id)
        item_ids = [
            item.id
            for item in self.levy_items.list_items_for_period(period.id)
            if item.notice_generated_at is not None
        ]
        if not item_ids:
            raise ConflictError(
                "No levy items with generated notices found for this period. Generate PDFs first."
            )

        batch = NoticeBatch()
        for item_id in item_ids:
            try:
                outcome = await self.send_notice(ctx, scheme, item_id)
            except AppError as e:
                batch.results.append(NoticeResult(levy_item_id=item_id, success=False, error=e.message))
                continue
            batch.results.append(NoticeResult(levy_item_id=item_id, success=True, error=outcome.warning))
        return batch


__all__ = [
    "NoticeBatch",
    "NoticeResult",
    "NoticeService",
    "notice_path",
    "payment_reference",
    "period_reference",
]
