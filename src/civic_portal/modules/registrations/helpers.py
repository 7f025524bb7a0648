"""
Registration Helpers

Quick-action link tokens and role attribute helpers shared by the
service, the quick-action router and the notification payloads.

Quick-action tokens are deterministic: sha256("<id>-<secret>") truncated
to 16 hex characters. They need no storage and are re-derived on
verification. A link is not single-use by itself; replays fail because
the request is no longer pending.
"""

import hashlib
import hmac
from urllib.parse import urlencode
from uuid import UUID

from civic_portal.core.config import settings

QUICK_ACTION_ACTOR_ID = "admin-via-email"
QUICK_ACTION_PATH = "/api/v1/registrations/quick-action"
TOKEN_LENGTH = 16

DEFAULT_REGION = "Unspecified"
DEFAULT_ORGANIZATION_NAME = "Unspecified organization"
DEFAULT_SECTOR = "Unspecified"


def make_quick_action_token(request_id: UUID | str, secret: str | None = None) -> str:
    """Derive the quick-action token for a registration request."""
    secret = settings.quick_action_secret if secret is None else secret
    digest = hashlib.sha256(f"{request_id}-{secret}".encode()).hexdigest()
    return digest[:TOKEN_LENGTH]


def verify_quick_action_token(
    request_id: UUID | str,
    token: str,
    secret: str | None = None,
) -> bool:
    """Constant-time comparison against the derived token."""
    expected = make_quick_action_token(request_id, secret)
    return hmac.compare_digest(expected.encode(), token.encode())


def build_quick_action_url(request_id: UUID, action: str) -> str:
    query = urlencode(
        {
            "action": action,
            "id": str(request_id),
            "token": make_quick_action_token(request_id),
        }
    )
    return f"{settings.api_base_url}{QUICK_ACTION_PATH}?{query}"


def compose_department(
    region: str | None,
    commune: str | None = None,
    neighborhood: str | None = None,
) -> str:
    """
    Build the display department for a field agent.

    Examples:
        compose_department("Capital") -> "Capital"
        compose_department("Capital", "North") -> "Capital - North"
        compose_department("Capital", "North", "Harbor") -> "Capital - North (Harbor)"
    """
    region = region or DEFAULT_REGION
    if not commune:
        return region

    department = f"{region} - {commune}"
    if neighborhood:
        department += f" ({neighborhood})"
    return department
