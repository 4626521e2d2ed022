from __future__ import annotations

from asset_import.models.permission import PermissionContext, Unit
from asset_import.services.permissions import load_units, resolve_permissions


def test_unit_matches_id_code_or_name():
    u = Unit(id="u-hss", code="HSS", name="Hospital São Sebastião")
    assert u.matches("hss")
    assert u.matches(" u-hss ")
    assert u.matches("hospital são sebastião")
    assert not u.matches("HMR")


def test_permission_context_can_write():
    assert PermissionContext(user="a", is_admin=True).can_write("anything")
    ctx = PermissionContext(user="b", allowed_units=frozenset({"u-hmr"}))
    assert ctx.can_write("u-hmr")
    assert not ctx.can_write("u-hss")


class TestResolvePermissions:
    def test_admin_role(self, document_store):
        document_store.seed("users", "uid-1", {"role": "admin_geral", "email": "chefe@hospital.org"})
        ctx = resolve_permissions(document_store, "uid-1")
        assert ctx.is_admin
        assert ctx.user == "chefe@hospital.org"

    def test_assigned_units(self, document_store):
        document_store.seed("users", "uid-2", {"role": "tecnico", "assignedUnits": ["u-hmr"]})
        ctx = resolve_permissions(document_store, "uid-2", admin_roles=["admin_geral"])
        assert not ctx.is_admin
        assert ctx.allowed_units == frozenset({"u-hmr"})
        assert ctx.user == "uid-2"

    def test_missing_profile_grants_nothing(self, document_store):
        ctx = resolve_permissions(document_store, "ghost")
        assert not ctx.is_admin
        assert ctx.allowed_units == frozenset()


def test_load_units(document_store):
    document_store.seed("units", "u-hmr", {"sigla": "HMR", "name": "Hospital Miguel Arraes"})
    document_store.seed("units", "u-hss", {"sigla": "HSS", "name": "Hospital São Sebastião"})
    units = load_units(document_store)
    assert [(u.id, u.code) for u in units] == [("u-hmr", "HMR"), ("u-hss", "HSS")]
