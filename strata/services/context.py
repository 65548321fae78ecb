"""Request-scoped caller identity.

The identity provider itself is external; by the time a request reaches an
orchestrator its user and organisation are known and passed explicitly.
"""

import logging
from dataclasses import dataclass

from strata.errors import AuthError
from strata.services.result import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Authenticated caller: acting user and the organisation they act for."""

    user_id: int
    organisation_id: int


def resolve_request_context(user_id: str | None, organisation_id: str | None) -> Result[RequestContext]:
    """Build a RequestContext from raw identity values (e.g. request headers).

    Returns:
        Ok(RequestContext) or Err(AuthError) when either value is missing or
        not a positive integer
    """
    if not user_id or not organisation_id:
        return Err(AuthError("Unauthorized"))

    try:
        ctx = RequestContext(user_id=int(user_id), organisation_id=int(organisation_id))
    except ValueError:
        logger.warning("Rejected malformed identity user=%r organisation=%r", user_id, organisation_id)
        return Err(AuthError("Unauthorized"))

    if ctx.user_id <= 0 or ctx.organisation_id <= 0:
        return Err(AuthError("Unauthorized"))
    return Ok(ctx)


__all__ = ["RequestContext", "resolve_request_context"]
