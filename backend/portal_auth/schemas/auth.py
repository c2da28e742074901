"""Marshmallow schemas for portal and identity-provider auth payloads.

Wire payloads use camelCase; ``data_key`` maps them onto snake_case DTOs.
Unknown fields are dropped so additive backend changes never break clients.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from marshmallow import EXCLUDE, Schema, fields, post_load, validate

from portal_auth.services.auth.dto import (
    PortalIdentity,
    PortalRole,
    ProviderSession,
    SharedSessionInfo,
    TokenPair,
)

NON_EMPTY = validate.Length(min=1)


class PortalRoleSchema(Schema):
    """Role assignment entry inside a portal user payload."""

    class Meta:
        unknown = EXCLUDE

    role_type = fields.String(required=True, data_key="roleType")
    scope = fields.String(load_default=None, allow_none=True)

    @post_load
    def _make(self, data: dict[str, Any], **_: Any) -> PortalRole:
        return PortalRole(**data)


class PortalIdentitySchema(Schema):
    """Portal user returned by ``/v1/users/me`` and the exchange endpoint."""

    class Meta:
        unknown = EXCLUDE

    id = fields.String(required=True)
    email = fields.String(required=True)
    first_name = fields.String(load_default=None, allow_none=True, data_key="firstName")
    last_name = fields.String(load_default=None, allow_none=True, data_key="lastName")
    roles = fields.List(fields.Nested(PortalRoleSchema), load_default=list)

    @post_load
    def _make(self, data: dict[str, Any], **_: Any) -> PortalIdentity:
        data["roles"] = tuple(data.get("roles") or ())
        return PortalIdentity(**data)


class TokenPairSchema(Schema):
    """Access/refresh pair; both members are mandatory and non-empty."""

    class Meta:
        unknown = EXCLUDE

    access_token = fields.String(required=True, data_key="accessToken", validate=NON_EMPTY)
    refresh_token = fields.String(required=True, data_key="refreshToken", validate=NON_EMPTY)

    @post_load
    def _make(self, data: dict[str, Any], **_: Any) -> TokenPair:
        return TokenPair(**data)


class ExchangeResponseSchema(Schema):
    """``POST /v1/auth/supabase/exchange`` success body."""

    class Meta:
        unknown = EXCLUDE

    access_token = fields.String(required=True, data_key="accessToken", validate=NON_EMPTY)
    refresh_token = fields.String(required=True, data_key="refreshToken", validate=NON_EMPTY)
    user = fields.Nested(PortalIdentitySchema, required=True)


class SessionResponseSchema(Schema):
    """``GET /v1/sso/session`` success body."""

    class Meta:
        unknown = EXCLUDE

    authenticated = fields.Boolean(required=True)
    user = fields.Nested(PortalIdentitySchema, load_default=None, allow_none=True)
    expires_at = fields.String(load_default=None, allow_none=True, data_key="expiresAt")

    @post_load
    def _make(self, data: dict[str, Any], **_: Any) -> SharedSessionInfo:
        return SharedSessionInfo(
            authenticated=data["authenticated"],
            identity=data.get("user"),
            expires_at=data.get("expires_at"),
        )


class ProviderSessionSchema(Schema):
    """Supabase Auth token response (``/auth/v1/token``)."""

    class Meta:
        unknown = EXCLUDE

    access_token = fields.String(required=True)
    refresh_token = fields.String(load_default=None, allow_none=True)
    expires_at = fields.Integer(load_default=None, allow_none=True)
    user = fields.Dict(load_default=dict)

    @post_load
    def _make(self, data: dict[str, Any], **_: Any) -> ProviderSession:
        user = data.get("user") or {}
        exp = data.get("expires_at")
        return ProviderSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
            user_id=user.get("id"),
            email=user.get("email"),
        )
