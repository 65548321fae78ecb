"""FastAPI dependencies: caller identity, scheme scoping and collaborators."""

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from strata.models.scheme import Scheme
from strata.services import get_db
from strata.services.collaborators import (
    BlobStore,
    DocumentRenderer,
    EmailSender,
    FileSystemBlobStore,
    PdfDocumentRenderer,
    UnconfiguredEmailSender,
)
from strata.services.context import RequestContext, resolve_request_context
from strata.services.result import unwrap
from strata.services.scheme_service import SchemeService


def get_request_context(
    x_user_id: str | None = Header(None),  # noqa: B008
    x_organisation_id: str | None = Header(None),  # noqa: B008
) -> RequestContext:
    """Identity forwarded by the authenticating gateway; 401 when absent."""
    return unwrap(resolve_request_context(x_user_id, x_organisation_id))


def get_scheme(
    scheme_id: int,
    ctx: RequestContext = Depends(get_request_context),  # noqa: B008
    db: Session = Depends(get_db),  # noqa: B008
) -> Scheme:
    """Scheme from the path, visible to the caller's organisation; 404 otherwise."""
    return SchemeService(db).get_scheme(ctx, scheme_id)


def get_blob_store() -> BlobStore:
    return FileSystemBlobStore()


def get_email_sender() -> EmailSender:
    """No provider ships with the service; deployments override this dependency."""
    return UnconfiguredEmailSender()


def get_document_renderer() -> DocumentRenderer:
    return PdfDocumentRenderer()


__all__ = [
    "get_request_context",
    "get_scheme",
    "get_blob_store",
    "get_email_sender",
    "get_document_renderer",
]
