"""
Per-company overage and on-hand overrides: create-or-replace, listing,
removal and write permissions.
"""

from app.core.permissions import CallerContext
from app.models.override import CompanyOverageOverride, CompanyQuantityOverride
from app.models.user import EmployeeType, UserRole
from app.services import override_service
from tests.conftest import (
    company_admin_headers,
    employee_headers,
    make_company,
    make_material,
    make_variant,
    operator_headers,
)


# ===========================================================================
# Overage overrides
# ===========================================================================


class TestOverageOverrides:
    def test_upsert_creates_then_replaces(self, client, db):
        company = make_company(db)
        variant = make_variant(db, make_material(db))
        headers = company_admin_headers(db, company)

        r = client.post(
            "/api/v1/overrides/overage",
            json={"variant_id": variant.id, "overage_rate": 1.5},
            headers=headers,
        )
        assert r.status_code == 200, r.text
        first_id = r.json()["id"]
        assert r.json()["company_id"] == company.id

        r = client.post(
            "/api/v1/overrides/overage",
            json={"variant_id": variant.id, "overage_rate": 2.0},
            headers=headers,
        )
        assert r.status_code == 200
        assert r.json()["id"] == first_id
        assert r.json()["overage_rate"] == 2.0
        assert db.query(CompanyOverageOverride).count() == 1

    def test_list_returns_own_company_only(self, client, db):
        a = make_company(db, "Company A")
        b = make_company(db, "Company B")
        material = make_material(db)
        v1 = make_variant(db, material, "One")
        v2 = make_variant(db, material, "Two")
        headers_a = company_admin_headers(db, a)
        headers_b = company_admin_headers(db, b)

        client.post("/api/v1/overrides/overage", json={"variant_id": v2.id, "overage_rate": 0.2}, headers=headers_a)
        client.post("/api/v1/overrides/overage", json={"variant_id": v1.id, "overage_rate": 0.1}, headers=headers_a)
        client.post("/api/v1/overrides/overage", json={"variant_id": v1.id, "overage_rate": 0.9}, headers=headers_b)

        rows = client.get("/api/v1/overrides/overage", headers=headers_a).json()
        assert [(row["variant_id"], row["overage_rate"]) for row in rows] == [(v1.id, 0.1), (v2.id, 0.2)]

    def test_delete_restores_default(self, client, db):
        company = make_company(db)
        variant = make_variant(db, make_material(db), overage_rate=0.1)
        headers = company_admin_headers(db, company)
        client.post(
            "/api/v1/overrides/overage",
            json={"variant_id": variant.id, "overage_rate": 3},
            headers=headers,
        )

        r = client.delete(f"/api/v1/overrides/overage/{variant.id}", headers=headers)
        assert r.status_code == 204

        data = client.get(f"/api/v1/material-variants/{variant.id}", headers=headers).json()
        assert "company_overage_rate" not in data
        assert data["effective_overage_rate"] == 0.1

        r = client.delete(f"/api/v1/overrides/overage/{variant.id}", headers=headers)
        assert r.status_code == 404

    def test_unknown_variant_404(self, client, db):
        company = make_company(db)
        r = client.post(
            "/api/v1/overrides/overage",
            json={"variant_id": 999, "overage_rate": 1},
            headers=company_admin_headers(db, company),
        )
        assert r.status_code == 404
        assert db.query(CompanyOverageOverride).count() == 0

    def test_negative_rate_is_422(self, client, db):
        company = make_company(db)
        variant = make_variant(db, make_material(db))
        r = client.post(
            "/api/v1/overrides/overage",
            json={"variant_id": variant.id, "overage_rate": -1},
            headers=company_admin_headers(db, company),
        )
        assert r.status_code == 422

    def test_employees_cannot_write(self, client, db):
        company = make_company(db)
        variant = make_variant(db, make_material(db))
        for employee_type in (EmployeeType.PRODUCTION_MANAGER, EmployeeType.INSTALLER):
            r = client.post(
                "/api/v1/overrides/overage",
                json={"variant_id": variant.id, "overage_rate": 1},
                headers=employee_headers(db, company, employee_type),
            )
            assert r.status_code == 403

    def test_operator_writes_for_named_company(self, client, db):
        company = make_company(db)
        variant = make_variant(db, make_material(db))
        headers = operator_headers(db)

        r = client.post(
            "/api/v1/overrides/overage",
            json={"variant_id": variant.id, "overage_rate": 1},
            headers=headers,
        )
        assert r.status_code == 400
        assert r.json()["details"]["field"] == "company_id"

        r = client.post(
            "/api/v1/overrides/overage",
            json={"variant_id": variant.id, "overage_rate": 1, "company_id": company.id},
            headers=headers,
        )
        assert r.status_code == 200
        assert r.json()["company_id"] == company.id

    def test_company_admin_cannot_write_other_company(self, client, db):
        company = make_company(db)
        other = make_company(db, "Other Co")
        variant = make_variant(db, make_material(db))
        r = client.post(
            "/api/v1/overrides/overage",
            json={"variant_id": variant.id, "overage_rate": 1, "company_id": other.id},
            headers=company_admin_headers(db, company),
        )
        assert r.status_code == 403
        assert db.query(CompanyOverageOverride).count() == 0


# ===========================================================================
# Quantity overrides
# ===========================================================================


class TestQuantityOverrides:
    def test_upsert_list_delete(self, client, db):
        company = make_company(db)
        variant = make_variant(db, make_material(db))
        headers = company_admin_headers(db, company)

        for quantity in (5, 12):
            r = client.post(
                "/api/v1/overrides/quantity",
                json={"variant_id": variant.id, "quantity": quantity},
                headers=headers,
            )
            assert r.status_code == 200, r.text

        rows = client.get("/api/v1/overrides/quantity", headers=headers).json()
        assert [(row["variant_id"], row["quantity"]) for row in rows] == [(variant.id, 12)]

        data = client.get(f"/api/v1/material-variants/{variant.id}", headers=headers).json()
        assert data["company_quantity"] == 12
        assert data["effective_quantity"] == 12

        assert client.delete(f"/api/v1/overrides/quantity/{variant.id}", headers=headers).status_code == 204
        assert db.query(CompanyQuantityOverride).count() == 0


# ===========================================================================
# Service-level
# ===========================================================================


class TestOverrideService:
    def test_fetch_is_keyed_by_variant(self, db):
        company = make_company(db)
        other = make_company(db, "Other Co")
        material = make_material(db)
        v1 = make_variant(db, material, "One")
        v2 = make_variant(db, material, "Two")
        v3 = make_variant(db, material, "Three")
        caller = CallerContext(user_id=None, company_id=None, role=UserRole.SUPERADMIN)

        override_service.upsert_quantity_override(db, v1.id, 4, caller, company_id=company.id)
        override_service.upsert_quantity_override(db, v3.id, 0, caller, company_id=company.id)
        override_service.upsert_quantity_override(db, v2.id, 9, caller, company_id=other.id)

        fetched = override_service.fetch_quantity_overrides(db, company.id, [v1.id, v2.id, v3.id])
        assert fetched == {v1.id: 4, v3.id: 0}
        assert override_service.fetch_overage_overrides(db, company.id, []) == {}
