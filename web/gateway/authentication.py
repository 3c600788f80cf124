"""Bearer-token authentication and permission classes for DRF.

Tokens are HS256 JWTs issued by the storefront's login endpoint and signed
with ``settings.JWT_SECRET``. The payload carries ``userId`` plus optional
``email``, ``role`` and ``permissions`` claims. No user table is consulted:
the token is the identity.
"""

from dataclasses import dataclass, field
from typing import List

from django.conf import settings
from jose import jwt, JWTError
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.permissions import BasePermission

from .middleware import USER_ID_CTX


@dataclass(frozen=True)
class AuthUser:
    """Principal decoded from a bearer token.

    Attributes:
        user_id: Identifier of the storefront user (``userId`` claim).
        email: Optional e-mail claim.
        role: Optional role name claim.
        permissions: Permission strings granted to the user.
    """

    user_id: str
    email: str | None = None
    role: str | None = None
    permissions: List[str] = field(default_factory=list)

    @property
    def pk(self) -> str:
        # throttles and other DRF helpers key on ``user.pk``
        return self.user_id

    @property
    def is_authenticated(self) -> bool:
        return True

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


def issue_token(user_id: str, **claims) -> str:
    """Sign a token for ``user_id``. Used by tests and operational scripts."""
    payload = {"userId": user_id, **claims}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class BearerTokenAuthentication(BaseAuthentication):
    """Authenticate ``Authorization: Bearer <jwt>`` headers.

    Requests without the header are left anonymous so permission classes
    answer with 401. A malformed, expired or wrongly signed token is an
    immediate 401.
    """

    keyword = b"bearer"

    def authenticate(self, request):
        parts = get_authorization_header(request).split()
        if not parts or parts[0].lower() != self.keyword:
            return None
        if len(parts) != 2:
            raise exceptions.AuthenticationFailed("Invalid authorization header")

        try:
            payload = jwt.decode(
                parts[1].decode("utf-8"),
                settings.JWT_SECRET,
                algorithms=[settings.JWT_ALGORITHM],
            )
        except (JWTError, UnicodeDecodeError):
            raise exceptions.AuthenticationFailed("Invalid token")

        user_id = payload.get("userId")
        if not user_id:
            raise exceptions.AuthenticationFailed("Invalid token")

        user = AuthUser(
            user_id=str(user_id),
            email=payload.get("email"),
            role=payload.get("role"),
            permissions=list(payload.get("permissions") or []),
        )
        USER_ID_CTX.set(user.user_id)
        return (user, parts[1])

    def authenticate_header(self, request):
        return "Bearer"


class IsOrderAdmin(BasePermission):
    """Allow users holding ``settings.ADMIN_PERMISSION``."""

    message = "Admin access required"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.has_permission(settings.ADMIN_PERMISSION))


def is_order_admin(user) -> bool:
    """True for users holding ``ADMIN_PERMISSION`` or one of ``ADMIN_ROLES``."""
    if not (user and user.is_authenticated):
        return False
    return user.has_permission(settings.ADMIN_PERMISSION) or user.role in settings.ADMIN_ROLES
