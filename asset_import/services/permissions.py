from __future__ import annotations

import logging
from collections.abc import Iterable

from ..db.store import DocumentStore
from ..models.permission import PermissionContext, Unit

"""RBAC boundary: caller permissions and the known-units list.

User documents carry `role` and `assignedUnits`; unit documents carry `sigla`
and `name`. Roles listed in `admin_roles` get the administrative flag.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "load_units",
    "resolve_permissions",
]


def resolve_permissions(
    store: DocumentStore,
    user_id: str,
    *,
    users_collection: str = "users",
    admin_roles: Iterable[str] = ("admin_geral",),
) -> PermissionContext:
    doc = store.get(users_collection, user_id)
    if doc is None:
        logger.warning(f"user '{user_id}' has no profile document; no unit permissions granted")
        return PermissionContext(user=user_id)
    role = doc.get("role")
    assigned = doc.get("assignedUnits") or []
    return PermissionContext(
        user=doc.get("email") or user_id,
        is_admin=role in set(admin_roles),
        allowed_units=frozenset(str(u) for u in assigned),
    )


def load_units(store: DocumentStore, units_collection: str = "units") -> list[Unit]:
    units = [
        Unit(id=doc_id, code=data.get("sigla"), name=data.get("name"))
        for doc_id, data in store.list_documents(units_collection)
    ]
    logger.info(f"{len(units)} units loaded")
    return units
