from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy import select

from . import models
from .errors import PermissionDenied, Unauthenticated
from .store import Deadline, Store

CUSTOMER_METHODS = frozenset({"CreateOrder", "ListItems", "GetOrder"})
ADMIN_METHODS = frozenset(
    {
        "CreateItem",
        "UpdateItem",
        "DeleteItem",
        "CreateOrder",
        "FulfillOrder",
        "GetOrder",
        "CreateShipment",
        "UpdateShipment",
        "ListItems",
        "ListShipments",
        "AuditLogs",
    }
)

ROLE_PERMISSIONS: Mapping[str, frozenset[str]] = {
    "customer": CUSTOMER_METHODS,
    "admin": ADMIN_METHODS,
}

DEFAULT_USERS = {
    "customer-key-123": "customer",
    "admin-key-456": "admin",
    "admin-key-789": "admin",
}


class CredentialStore:
    def __init__(self, store: Store):
        self.store = store

    def role_for(self, api_key: str, deadline: Deadline | None = None) -> str | None:
        with self.store.transaction(deadline) as scope:
            return scope.scalar(select(models.User.role).where(models.User.api_key == api_key))


class AuthorizationGate:
    """Decides whether a credential may invoke a method. Has no side effects."""

    def __init__(self, credentials: CredentialStore, allow_list: Mapping[str, frozenset[str]] = ROLE_PERMISSIONS):
        self.credentials = credentials
        self.allow_list = allow_list

    def authorize(self, api_key: str | None, method: str, deadline: Deadline | None = None) -> str:
        if not api_key:
            raise Unauthenticated("API key required")
        role = self.credentials.role_for(api_key, deadline)
        if role is None:
            raise Unauthenticated("invalid API key")
        if method not in self.allow_list.get(role, frozenset()):
            raise PermissionDenied(f"method {method} not allowed for role {role}")
        return role


def seed_default_users(store: Store, users: Mapping[str, str] = DEFAULT_USERS) -> None:
    with store.transaction() as scope:
        existing = set(scope.scalars(select(models.User.api_key)).all())
        for api_key, role in users.items():
            if api_key not in existing:
                scope.add(models.User(api_key=api_key, role=role))
