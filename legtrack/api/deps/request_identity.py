from __future__ import annotations

import logging

from fastapi import Request

from legtrack.core.config import settings
from legtrack.schemas.request_identity import RequestIdentity

logger = logging.getLogger(__name__)


def _identity_from_legacy_header(request: Request) -> RequestIdentity:
    # The auth middleware in front of the API forwards the resolved user here.
    raw = request.headers.get("X-User-Email") or request.headers.get("X-User")
    email = (raw or "").strip().lower()
    if not email:
        return RequestIdentity(email=None, auth_source="anonymous")
    return RequestIdentity(email=email, auth_source="legacy_header")


def get_request_identity(request: Request) -> RequestIdentity:
    identity = _identity_from_legacy_header(request)
    request.state.request_identity = identity
    return identity


def get_request_actor(request: Request) -> str:
    identity = get_request_identity(request)
    if identity.email is None:
        logger.debug("request_actor_defaulted actor=%s", settings.CHANGE_LOG_DEFAULT_ACTOR)
    return identity.actor
