from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from ..models.import_record import ImportMeta
from ..storage.import_store import ImportStore

"""Role checks for import management.

Only the admin and manager roles may list or delete stored imports. Callers
pass the Identity they authenticated; nothing here reads sessions.
"""

__all__ = [
    "Identity",
    "AccessDenied",
    "MANAGE_ROLES",
    "require_role",
    "list_imports",
    "delete_import",
]

MANAGE_ROLES: frozenset[str] = frozenset({"admin", "manager"})


@dataclass(frozen=True)
class Identity:
    id: str
    role: str


class AccessDenied(Exception):
    def __init__(self, identity: Identity | None, roles: Collection[str]) -> None:
        who = identity.id if identity else "<anonymous>"
        super().__init__(f"access denied for {who}: requires one of {', '.join(sorted(roles))}")
        self.identity = identity


def require_role(identity: Identity | None, roles: Collection[str] = MANAGE_ROLES) -> Identity:
    if identity is None or identity.role not in roles:
        raise AccessDenied(identity, roles)
    return identity


def list_imports(store: ImportStore, identity: Identity | None) -> list[ImportMeta]:
    require_role(identity)
    return store.list_imports()


def delete_import(store: ImportStore, identity: Identity | None, import_id: str) -> None:
    require_role(identity)
    store.delete(import_id)
