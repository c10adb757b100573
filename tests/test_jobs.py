"""
Job material ledger: creation, template composition, price locking, line
replacement, status changes and company isolation.
"""

from app.models.job import Job, JobMaterial
from app.models.user import EmployeeType
from tests.conftest import (
    company_admin_headers,
    employee_headers,
    job_payload,
    make_company,
    make_location,
    make_variant,
    operator_headers,
    standard_variants,
)


def _lines(*pairs):
    return [{"variant_id": v.id, "quantity_used": q} for v, q in pairs]


def _setup(db, preferred=False):
    company = make_company(db, preferred=preferred)
    location = make_location(db, company)
    headers = company_admin_headers(db, company)
    return company, location, headers


# ===========================================================================
# Creation
# ===========================================================================


class TestCreateJob:
    def test_create_locks_current_prices(self, client, db):
        company, location, headers = _setup(db)
        base, top, flake = standard_variants(db)

        r = client.post(
            "/api/v1/jobs",
            json=job_payload(location.id, _lines((base, 2), (top, 1), (flake, 3)), template="standard"),
            headers=headers,
        )
        assert r.status_code == 201, r.text
        data = r.json()
        assert data["company_id"] == company.id
        assert data["status"] == "PENDING"
        assert [m["cost_at_time"] for m in data["materials"]] == [50, 70, 30]
        assert [m["unit"] for m in data["materials"]] == ["gallon", "gallon", "box"]
        assert data["materials"][0]["line_cost"] == 100
        assert data["materials_cost"] == 260

    def test_preferred_company_locks_preferred_prices(self, client, db):
        _, location, headers = _setup(db, preferred=True)
        base, top, flake = standard_variants(db)

        r = client.post(
            "/api/v1/jobs",
            json=job_payload(location.id, _lines((base, 1), (top, 1), (flake, 1))),
            headers=headers,
        )
        assert r.status_code == 201, r.text
        assert [m["cost_at_time"] for m in r.json()["materials"]] == [40, 60, 25]

    def test_template_mismatch_names_each_category(self, client, db):
        _, location, headers = _setup(db)
        base, top, flake = standard_variants(db)
        second_base = make_variant(db, base.material, "Base Tan", regular_price=52, preferred_price=42)

        r = client.post(
            "/api/v1/jobs",
            json=job_payload(
                location.id, _lines((base, 1), (second_base, 1), (top, 1)), template="standard"
            ),
            headers=headers,
        )
        assert r.status_code == 400
        body = r.json()
        assert body["error"] == "VALIDATION_FAILED"
        assert "broadcast: expected 1, found 0" in body["message"]
        assert "base coat: expected 1, found 2" in body["message"]
        assert body["details"]["mismatches"]["broadcast"] == {"expected": 1, "found": 0}
        assert db.query(Job).count() == 0

    def test_unknown_template_rejected(self, client, db):
        _, location, headers = _setup(db)
        base, top, flake = standard_variants(db)
        r = client.post(
            "/api/v1/jobs",
            json=job_payload(location.id, _lines((base, 1), (top, 1), (flake, 1)), template="deluxe"),
            headers=headers,
        )
        assert r.status_code == 400
        assert r.json()["details"]["field"] == "template"

    def test_failing_line_writes_nothing(self, client, db):
        _, location, headers = _setup(db)
        base, top, _ = standard_variants(db)

        r = client.post(
            "/api/v1/jobs",
            json=job_payload(
                location.id,
                [
                    {"variant_id": base.id, "quantity_used": 1},
                    {"variant_id": top.id, "quantity_used": 1},
                    {"variant_id": 9999, "quantity_used": 1},
                ],
            ),
            headers=headers,
        )
        assert r.status_code == 404
        assert r.json()["details"]["variant_ids"] == [9999]
        assert db.query(Job).count() == 0
        assert db.query(JobMaterial).count() == 0

    def test_duplicate_variant_rejected(self, client, db):
        _, location, headers = _setup(db)
        base, _, _ = standard_variants(db)
        r = client.post(
            "/api/v1/jobs",
            json=job_payload(location.id, _lines((base, 1), (base, 2))),
            headers=headers,
        )
        assert r.status_code == 400
        assert r.json()["details"]["variant_ids"] == [base.id]

    def test_inactive_variant_rejected(self, client, db):
        _, location, headers = _setup(db)
        base, top, _ = standard_variants(db)
        top.is_active = False
        db.commit()

        r = client.post(
            "/api/v1/jobs",
            json=job_payload(location.id, _lines((base, 1), (top, 1))),
            headers=headers,
        )
        assert r.status_code == 400
        assert r.json()["details"]["variant_ids"] == [top.id]

    def test_inactive_material_rejected(self, client, db):
        _, location, headers = _setup(db)
        base, _, _ = standard_variants(db)
        base.material.is_active = False
        db.commit()

        r = client.post(
            "/api/v1/jobs", json=job_payload(location.id, _lines((base, 1))), headers=headers
        )
        assert r.status_code == 400

    def test_duplicate_job_number_rejected(self, client, db):
        _, location, headers = _setup(db)
        base, _, _ = standard_variants(db)
        payload = job_payload(location.id, _lines((base, 1)))

        assert client.post("/api/v1/jobs", json=payload, headers=headers).status_code == 201
        r = client.post("/api/v1/jobs", json=payload, headers=headers)
        assert r.status_code == 400
        assert r.json()["details"]["field"] == "job_number"
        assert db.query(Job).count() == 1

    def test_same_job_number_in_other_company_allowed(self, client, db):
        _, location_a, headers_a = _setup(db)
        company_b = make_company(db, "Other Co")
        location_b = make_location(db, company_b)
        headers_b = company_admin_headers(db, company_b)
        base, _, _ = standard_variants(db)

        r_a = client.post("/api/v1/jobs", json=job_payload(location_a.id, _lines((base, 1))), headers=headers_a)
        r_b = client.post("/api/v1/jobs", json=job_payload(location_b.id, _lines((base, 1))), headers=headers_b)
        assert r_a.status_code == 201
        assert r_b.status_code == 201

    def test_install_before_date_rejected(self, client, db):
        _, location, headers = _setup(db)
        r = client.post(
            "/api/v1/jobs",
            json=job_payload(location.id, [], date="2026-03-10", install_date="2026-03-01"),
            headers=headers,
        )
        assert r.status_code == 400
        assert r.json()["details"]["field"] == "install_date"

    def test_foreign_location_rejected(self, client, db):
        _, _, headers = _setup(db)
        other_location = make_location(db, make_company(db, "Other Co"))
        r = client.post("/api/v1/jobs", json=job_payload(other_location.id, []), headers=headers)
        assert r.status_code == 400
        assert r.json()["details"]["field"] == "location_id"

    def test_non_positive_quantity_is_422(self, client, db):
        _, location, headers = _setup(db)
        base, _, _ = standard_variants(db)
        r = client.post(
            "/api/v1/jobs", json=job_payload(location.id, _lines((base, 0))), headers=headers
        )
        assert r.status_code == 422
        assert r.json()["error"] == "VALIDATION_ERROR"

    def test_operator_must_name_company(self, client, db):
        company = make_company(db)
        location = make_location(db, company)
        headers = operator_headers(db)

        r = client.post("/api/v1/jobs", json=job_payload(location.id, []), headers=headers)
        assert r.status_code == 400
        assert r.json()["details"]["field"] == "company_id"

        r = client.post(
            "/api/v1/jobs", json=job_payload(location.id, [], company_id=company.id), headers=headers
        )
        assert r.status_code == 201, r.text
        assert r.json()["company_id"] == company.id

    def test_company_user_cannot_target_other_company(self, client, db):
        _, location, headers = _setup(db)
        other = make_company(db, "Other Co")
        r = client.post(
            "/api/v1/jobs", json=job_payload(location.id, [], company_id=other.id), headers=headers
        )
        assert r.status_code == 403

    def test_production_manager_can_create(self, client, db):
        company, location, _ = _setup(db)
        headers = employee_headers(db, company, EmployeeType.PRODUCTION_MANAGER)
        r = client.post("/api/v1/jobs", json=job_payload(location.id, []), headers=headers)
        assert r.status_code == 201, r.text

    def test_installer_cannot_create(self, client, db):
        company, location, _ = _setup(db)
        headers = employee_headers(db, company, EmployeeType.INSTALLER)
        r = client.post("/api/v1/jobs", json=job_payload(location.id, []), headers=headers)
        assert r.status_code == 403
        assert db.query(Job).count() == 0


# ===========================================================================
# Price locking and line replacement
# ===========================================================================


class TestLedgerPrices:
    def test_catalog_price_change_does_not_touch_ledger(self, client, db):
        _, location, headers = _setup(db)
        base, _, _ = standard_variants(db)
        job_id = client.post(
            "/api/v1/jobs", json=job_payload(location.id, _lines((base, 2))), headers=headers
        ).json()["id"]

        r = client.put(
            f"/api/v1/material-variants/{base.id}",
            json={"regular_price": 99, "preferred_price": 88},
            headers=operator_headers(db),
        )
        assert r.status_code == 200, r.text

        data = client.get(f"/api/v1/jobs/{job_id}", headers=headers).json()
        assert data["materials"][0]["cost_at_time"] == 50
        assert data["materials_cost"] == 100

    def test_replace_lines_uses_current_tier(self, client, db):
        company, location, headers = _setup(db)
        base, top, flake = standard_variants(db)
        created = client.post(
            "/api/v1/jobs",
            json=job_payload(location.id, _lines((base, 1), (top, 1), (flake, 1)), template="standard"),
            headers=headers,
        ).json()
        assert [m["cost_at_time"] for m in created["materials"]] == [50, 70, 30]

        r = client.patch(
            f"/api/v1/companies/{company.id}/pricing-tier",
            json={"preferred_price_enabled": True},
            headers=operator_headers(db),
        )
        assert r.status_code == 200

        r = client.put(
            f"/api/v1/jobs/{created['id']}/materials",
            json={"materials": _lines((base, 2), (top, 2), (flake, 4))},
            headers=headers,
        )
        assert r.status_code == 200, r.text
        replaced = r.json()
        assert [m["cost_at_time"] for m in replaced["materials"]] == [40, 60, 25]
        assert [m["quantity_used"] for m in replaced["materials"]] == [2, 2, 4]
        for field in ("job_number", "client_first_name", "client_address", "date", "install_date", "job_cost", "status"):
            assert replaced[field] == created[field]
        assert db.query(JobMaterial).count() == 3

    def test_replace_keeps_template_rule(self, client, db):
        _, location, headers = _setup(db)
        base, top, flake = standard_variants(db)
        job_id = client.post(
            "/api/v1/jobs",
            json=job_payload(location.id, _lines((base, 1), (top, 1), (flake, 1)), template="standard"),
            headers=headers,
        ).json()["id"]

        r = client.put(
            f"/api/v1/jobs/{job_id}/materials",
            json={"materials": _lines((base, 1), (top, 1))},
            headers=headers,
        )
        assert r.status_code == 400
        assert "broadcast: expected 1, found 0" in r.json()["message"]

        data = client.get(f"/api/v1/jobs/{job_id}", headers=headers).json()
        assert len(data["materials"]) == 3

    def test_failed_replace_keeps_old_lines(self, client, db):
        _, location, headers = _setup(db)
        base, top, _ = standard_variants(db)
        job_id = client.post(
            "/api/v1/jobs", json=job_payload(location.id, _lines((base, 1), (top, 1))), headers=headers
        ).json()["id"]

        r = client.put(
            f"/api/v1/jobs/{job_id}/materials",
            json={"materials": [{"variant_id": 4242, "quantity_used": 1}]},
            headers=headers,
        )
        assert r.status_code == 404
        assert db.query(JobMaterial).filter(JobMaterial.job_id == job_id).count() == 2

    def test_header_update_does_not_reprice(self, client, db):
        company, location, headers = _setup(db)
        base, _, _ = standard_variants(db)
        job_id = client.post(
            "/api/v1/jobs", json=job_payload(location.id, _lines((base, 1))), headers=headers
        ).json()["id"]
        company.preferred_price_enabled = True
        db.commit()

        r = client.patch(
            f"/api/v1/jobs/{job_id}", json={"client_first_name": "Morgan"}, headers=headers
        )
        assert r.status_code == 200, r.text
        assert r.json()["client_first_name"] == "Morgan"
        assert r.json()["materials"][0]["cost_at_time"] == 50

    def test_explicit_null_clears_last_name_only(self, client, db):
        _, location, headers = _setup(db)
        job_id = client.post("/api/v1/jobs", json=job_payload(location.id, []), headers=headers).json()["id"]

        r = client.patch(
            f"/api/v1/jobs/{job_id}",
            json={"client_last_name": None, "client_first_name": None},
            headers=headers,
        )
        assert r.status_code == 200, r.text
        assert r.json()["client_last_name"] is None
        # Required header fields ignore nulls
        assert r.json()["client_first_name"] == "Dana"
        assert db.get(Job, job_id).client_last_name is None


# ===========================================================================
# Reads, status, delete
# ===========================================================================


class TestJobLifecycle:
    def test_other_company_job_is_forbidden(self, client, db):
        _, location, headers = _setup(db)
        job_id = client.post("/api/v1/jobs", json=job_payload(location.id, []), headers=headers).json()["id"]
        outsider = company_admin_headers(db, make_company(db, "Other Co"))

        assert client.get(f"/api/v1/jobs/{job_id}", headers=outsider).status_code == 403
        assert client.put(
            f"/api/v1/jobs/{job_id}/materials", json={"materials": []}, headers=outsider
        ).status_code == 403
        assert client.get("/api/v1/jobs/999", headers=headers).status_code == 404

    def test_list_is_scoped_to_company(self, client, db):
        _, location, headers = _setup(db)
        other = make_company(db, "Other Co")
        other_location = make_location(db, other)
        other_headers = company_admin_headers(db, other)
        client.post("/api/v1/jobs", json=job_payload(location.id, [], job_number="A-1"), headers=headers)
        client.post("/api/v1/jobs", json=job_payload(location.id, [], job_number="A-2"), headers=headers)
        client.post("/api/v1/jobs", json=job_payload(other_location.id, [], job_number="B-1"), headers=other_headers)

        body = client.get("/api/v1/jobs", headers=headers).json()
        assert sorted(j["job_number"] for j in body["jobs"]) == ["A-1", "A-2"]
        assert body["meta"]["total_records"] == 2

        everything = client.get("/api/v1/jobs", headers=operator_headers(db)).json()
        assert everything["meta"]["total_records"] == 3

    def test_status_transitions(self, client, db):
        _, location, headers = _setup(db)
        job_id = client.post("/api/v1/jobs", json=job_payload(location.id, []), headers=headers).json()["id"]

        for status in ("ORDERED", "COMPLETED"):
            r = client.patch(f"/api/v1/jobs/{job_id}/status", json={"status": status}, headers=headers)
            assert r.status_code == 200, r.text
            assert r.json()["status"] == status

        r = client.patch(f"/api/v1/jobs/{job_id}/status", json={"status": "PENDING"}, headers=headers)
        assert r.status_code == 400
        assert r.json()["details"]["field"] == "status"

    def test_installer_can_read_but_not_edit(self, client, db):
        company, location, headers = _setup(db)
        job_id = client.post("/api/v1/jobs", json=job_payload(location.id, []), headers=headers).json()["id"]
        installer = employee_headers(db, company, EmployeeType.INSTALLER)

        assert client.get(f"/api/v1/jobs/{job_id}", headers=installer).status_code == 200
        r = client.patch(f"/api/v1/jobs/{job_id}/status", json={"status": "HOLD"}, headers=installer)
        assert r.status_code == 403

    def test_delete_removes_lines(self, client, db):
        _, location, headers = _setup(db)
        base, _, _ = standard_variants(db)
        job_id = client.post(
            "/api/v1/jobs", json=job_payload(location.id, _lines((base, 1))), headers=headers
        ).json()["id"]

        assert client.delete(f"/api/v1/jobs/{job_id}", headers=headers).status_code == 204
        assert client.get(f"/api/v1/jobs/{job_id}", headers=headers).status_code == 404
        assert db.query(JobMaterial).count() == 0
