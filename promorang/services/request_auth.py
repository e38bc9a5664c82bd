from __future__ import annotations

import secrets

from fastapi import Request

INTERNAL_TOKEN_HEADER = "X-Internal-Token"
AUTHENTICATED_USER_HEADER = "X-Authenticated-User-Id"
MAX_USER_ID_LENGTH = 64


def is_valid_internal_token(*, expected_token: str, received_token: str | None) -> bool:
    if not expected_token or not received_token:
        return False
    return secrets.compare_digest(expected_token, received_token)


def _normalize_user_id(value: object) -> str | None:
    if value is None:
        return None
    candidate = str(value).strip()
    if not candidate or len(candidate) > MAX_USER_ID_LENGTH:
        return None
    return candidate


def resolve_authenticated_user_id(
    request: Request,
    *,
    expected_token: str,
) -> str | None:
    """Identity attached by the upstream gateway, either on request state or as a signed header."""
    state_user_id = _normalize_user_id(getattr(request.state, "user_id", None))
    if state_user_id is not None:
        return state_user_id

    header_user_id = _normalize_user_id(request.headers.get(AUTHENTICATED_USER_HEADER))
    if header_user_id is None:
        return None
    if not is_valid_internal_token(
        expected_token=expected_token,
        received_token=request.headers.get(INTERNAL_TOKEN_HEADER),
    ):
        return None
    return header_user_id
