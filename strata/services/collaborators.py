"""External collaborators: blob storage, email delivery and document rendering.

Orchestrators depend only on the protocols below. Shipped here: a
local-directory blob store with HMAC-signed URLs and a reportlab PDF
renderer. No email provider ships; the default sender refuses to send, and
deployments inject a real one.
"""

import asyncio
import hashlib
import hmac
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from strata.config import get_settings
from strata.errors import DeliveryError, StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    sender: str | None = None
    attachments: list[EmailAttachment] = field(default_factory=list)


class BlobStore(Protocol):
    async def upload(self, path: str, data: bytes, content_type: str, upsert: bool = True) -> None: ...

    async def download(self, path: str) -> bytes: ...

    async def create_signed_url(self, path: str, ttl_seconds: int) -> str: ...


class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> str: ...


class DocumentRenderer(Protocol):
    async def render(self, template_name: str, data: dict[str, Any]) -> bytes: ...


class FileSystemBlobStore:
    """Blob store backed by a local directory.

    Signed URLs carry an expiry timestamp and an HMAC-SHA256 signature over
    ``path:expires`` keyed with SIGNED_URL_SECRET.
    """

    def __init__(self, root: str | Path | None = None, secret: str | None = None, base_url: str = "/files"):
        settings = get_settings()
        self.root = Path(root if root is not None else settings.storage_dir)
        self.secret = (secret if secret is not None else settings.signed_url_secret).encode()
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise StorageError(f"Invalid storage path: {path}")
        return target

    async def upload(self, path: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        target = self._resolve(path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(str(e)) from e
        logger.debug("Stored %s (%d bytes, %s)", path, len(data), content_type)

    async def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(str(e)) from e

    def _signature(self, path: str, expires: int) -> str:
        return hmac.new(self.secret, f"{path}:{expires}".encode(), hashlib.sha256).hexdigest()

    async def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        if not self._resolve(path).exists():
            raise StorageError(f"Object not found: {path}")
        expires = int(time.time()) + ttl_seconds
        return f"{self.base_url}/{quote(path)}?expires={expires}&signature={self._signature(path, expires)}"

    def verify_signature(self, path: str, expires: int, signature: str, now: float | None = None) -> bool:
        """True when the signature matches and the URL has not expired."""
        if (now if now is not None else time.time()) > expires:
            return False
        return hmac.compare_digest(self._signature(path, expires), signature)


def _label(key: str) -> str:
    return key.replace("_", " ").capitalize()


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, dict):
        return ", ".join(f"{_label(k)}: {_cell(v)}" for k, v in value.items())
    return str(value)


class PdfDocumentRenderer:
    """Renders template data as a landscape A4 PDF with reportlab.

    Scalar fields form a two-column summary table, lists of rows become
    tables with a header row, and nested mappings become titled sections.
    """

    HEADER_COLOR = colors.HexColor("#4472C4")

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "DocumentTitle",
            parent=self.styles["Heading1"],
            fontSize=18,
            textColor=self.HEADER_COLOR,
            spaceAfter=12,
            alignment=TA_CENTER,
        )

    def _summary_table(self, pairs: list[tuple[str, Any]]) -> Table:
        table = Table([[_label(k), _cell(v)] for k, v in pairs], colWidths=[2.2 * inch, 4.6 * inch])
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
                ]
            )
        )
        return table

    def _rows_table(self, rows: list[dict[str, Any]]) -> Table:
        columns = list(rows[0].keys())
        data = [[_label(c) for c in columns]]
        data.extend([_cell(row.get(c)) for c in columns] for row in rows)
        table = Table(data, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), self.HEADER_COLOR),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                    ("FONTSIZE", (0, 0), (-1, -1), 7),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F5F5F5")]),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ]
            )
        )
        return table

    def _section(self, data: dict[str, Any], heading_style: str) -> list:
        elements: list = []
        scalars = [(k, v) for k, v in data.items() if not isinstance(v, (dict, list))]
        if scalars:
            elements.append(self._summary_table(scalars))
            elements.append(Spacer(1, 0.2 * inch))

        for key, value in data.items():
            if isinstance(value, dict):
                elements.append(Paragraph(escape(_label(key)), self.styles[heading_style]))
                elements.extend(self._section(value, "Heading3"))
            elif isinstance(value, list):
                elements.append(Paragraph(escape(_label(key)), self.styles[heading_style]))
                if value and all(isinstance(row, dict) for row in value):
                    elements.append(self._rows_table(value))
                elif value:
                    elements.append(Paragraph(escape(", ".join(_cell(v) for v in value)), self.styles["Normal"]))
                else:
                    elements.append(Paragraph("None", self.styles["Normal"]))
                elements.append(Spacer(1, 0.2 * inch))
        return elements

    def _build(self, template_name: str, data: dict[str, Any]) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=30,
            leftMargin=30,
            topMargin=30,
            bottomMargin=18,
            title=template_name,
        )
        title = template_name.replace("-", " ").title()
        elements = [Paragraph(escape(title), self.title_style)]
        elements.extend(self._section(data, "Heading2"))
        doc.build(elements)
        return buffer.getvalue()

    async def render(self, template_name: str, data: dict[str, Any]) -> bytes:
        return await asyncio.to_thread(self._build, template_name, data)


class UnconfiguredEmailSender:
    """Default sender when no email provider is configured: every send fails."""

    async def send(self, message: EmailMessage) -> str:
        logger.error("Email to %s not sent: no email provider configured", message.to)
        raise DeliveryError("Email delivery is not configured")


class LoggingEmailSender:
    """Email sender that records messages in the log instead of delivering them.

    For local development and tests only; nothing is delivered.
    """

    async def send(self, message: EmailMessage) -> str:
        message_id = str(uuid.uuid4())
        logger.info(
            "Email %s to %s: %s (%d attachment(s))",
            message_id,
            message.to,
            message.subject,
            len(message.attachments),
        )
        return message_id


__all__ = [
    "BlobStore",
    "DocumentRenderer",
    "EmailAttachment",
    "EmailMessage",
    "EmailSender",
    "FileSystemBlobStore",
    "LoggingEmailSender",
    "PdfDocumentRenderer",
    "UnconfiguredEmailSender",
]
