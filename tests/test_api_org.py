"""
tests/test_api_org.py -- Integration tests for enterprises, employees, products and the dashboard.

Covers:
  - tenant scoping: Manager lists only its enterprise's rows, other tenants' rows are 404,
    created rows land in the caller's enterprise whatever the body says
  - products: create/update by Manager, SKU conflict 409, delete by Admin
  - employees: delete or move to another enterprise refused while products reference the employee
  - enterprises: counts, duplicate name 409, delete refused while users belong to it
  - GET /dashboard/permissions for Admin and Manager
"""

from __future__ import annotations


class TestProducts:
    def test_manager_lists_own_tenant(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/products", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 200
        assert {p["name"] for p in resp.json()} >= {"Widget"}
        assert all(p["enterprise_id"] == api_client.world.enterprises["acme"] for p in resp.json())

    def test_admin_lists_all(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/products", headers=api_client.headers("admin"))
        assert {"Widget", "Gizmo"} <= {p["name"] for p in resp.json()}

    def test_other_tenant_product_is_404(self, api_client) -> None:
        gizmo = api_client.world.products["gizmo"]
        resp = api_client.client.get(f"/api/v1/products/{gizmo}", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 404

    def test_manager_create_forced_into_own_enterprise(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/products",
            json={"name": "Sprocket", "sku": "ACME-002", "price": 3.25, "enterpriseId": api_client.world.enterprises["globex"]},
            headers=api_client.headers("acme_manager"),
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["enterprise_id"] == api_client.world.enterprises["acme"]
        assert data["price"] == 3.25

    def test_sku_conflict(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/products", json={"name": "Clone", "sku": "GLX-001"}, headers=api_client.headers("acme_manager")
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["message"] == "SKU already exists"

    def test_employee_from_other_tenant_rejected(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/products",
            json={"name": "Odd", "employeeId": api_client.world.employees["bo"]},
            headers=api_client.headers("acme_manager"),
        )
        assert resp.status_code == 400

    def test_manager_update(self, api_client) -> None:
        widget = api_client.world.products["widget"]
        resp = api_client.client.put(
            f"/api/v1/products/{widget}", json={"price": 11.0}, headers=api_client.headers("acme_manager")
        )
        assert resp.status_code == 200
        assert resp.json()["price"] == 11.0

    def test_by_employee(self, api_client) -> None:
        ana = api_client.world.employees["ana"]
        resp = api_client.client.get(f"/api/v1/products/employee/{ana}", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json()] == ["Widget"]

    def test_by_enterprise_other_tenant_is_404(self, api_client) -> None:
        globex = api_client.world.enterprises["globex"]
        resp = api_client.client.get(
            f"/api/v1/products/enterprise/{globex}", headers=api_client.headers("acme_manager")
        )
        assert resp.status_code == 404

    def test_admin_delete(self, api_client) -> None:
        created = api_client.client.post(
            "/api/v1/products",
            json={"name": "Ephemeral", "enterpriseId": api_client.world.enterprises["globex"]},
            headers=api_client.headers("admin"),
        ).json()
        resp = api_client.client.delete(f"/api/v1/products/{created['id']}", headers=api_client.headers("admin"))
        assert resp.status_code == 200
        assert api_client.org_store.get_product(created["id"]) is None

    def test_admin_create_requires_enterprise(self, api_client) -> None:
        resp = api_client.client.post("/api/v1/products", json={"name": "Orphan"}, headers=api_client.headers("admin"))
        assert resp.status_code == 400


class TestEmployees:
    def test_manager_lists_own_tenant(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/employees", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 200
        assert [e["name"] for e in resp.json()] == ["Ana"]

    def test_manager_cannot_create(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/employees", json={"name": "Nope"}, headers=api_client.headers("acme_manager")
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "No create permission for employees"

    def test_delete_refused_while_products_reference(self, api_client) -> None:
        ana = api_client.world.employees["ana"]
        resp = api_client.client.delete(f"/api/v1/employees/{ana}", headers=api_client.headers("admin"))
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Cannot delete employee that has associated products"

    def test_move_refused_while_products_reference(self, api_client) -> None:
        ana = api_client.world.employees["ana"]
        resp = api_client.client.put(
            f"/api/v1/employees/{ana}",
            json={"enterpriseId": api_client.world.enterprises["globex"]},
            headers=api_client.headers("admin"),
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "in_use"
        assert resp.json()["error"]["message"] == "Cannot move employee that has associated products"
        assert api_client.org_store.get_employee(ana).enterprise_id == api_client.world.enterprises["acme"]

    def test_same_enterprise_update_allowed_with_products(self, api_client) -> None:
        ana = api_client.world.employees["ana"]
        resp = api_client.client.put(
            f"/api/v1/employees/{ana}",
            json={"enterpriseId": api_client.world.enterprises["acme"], "role": "Lead"},
            headers=api_client.headers("admin"),
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["role"] == "Lead"

    def test_move_without_products(self, api_client) -> None:
        bo = api_client.world.employees["bo"]
        acme = api_client.world.enterprises["acme"]
        resp = api_client.client.put(
            f"/api/v1/employees/{bo}", json={"enterpriseId": acme}, headers=api_client.headers("admin")
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["enterprise_id"] == acme
        api_client.org_store.update_employee(bo, enterprise_id=api_client.world.enterprises["globex"])

    def test_create_update_delete(self, api_client) -> None:
        headers = api_client.headers("admin")
        created = api_client.client.post(
            "/api/v1/employees",
            json={"name": "Cy", "department": "Ops", "salary": 3000, "enterpriseId": api_client.world.enterprises["acme"]},
            headers=headers,
        )
        assert created.status_code == 201, created.text
        emp_id = created.json()["id"]
        updated = api_client.client.put(f"/api/v1/employees/{emp_id}", json={"department": "Support"}, headers=headers)
        assert updated.json()["department"] == "Support"
        assert api_client.client.delete(f"/api/v1/employees/{emp_id}", headers=headers).status_code == 200

    def test_unknown_enterprise(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/employees", json={"name": "Ghost", "enterpriseId": 9999}, headers=api_client.headers("admin")
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Enterprise not found"


class TestEnterprises:
    def test_list_with_counts(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/enterprises", headers=api_client.headers("admin"))
        assert resp.status_code == 200
        acme = next(e for e in resp.json() if e["name"] == "Acme")
        assert acme["user_count"] >= 3
        assert acme["employee_count"] >= 1

    def test_manager_has_no_enterprise_grant(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/enterprises", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 403

    def test_duplicate_name(self, api_client) -> None:
        resp = api_client.client.post("/api/v1/enterprises", json={"name": "Acme"}, headers=api_client.headers("admin"))
        assert resp.status_code == 409

    def test_delete_refused_while_users_belong(self, api_client) -> None:
        acme = api_client.world.enterprises["acme"]
        resp = api_client.client.delete(f"/api/v1/enterprises/{acme}", headers=api_client.headers("admin"))
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Cannot delete enterprise that has associated users"

    def test_create_update_delete(self, api_client) -> None:
        headers = api_client.headers("admin")
        created = api_client.client.post(
            "/api/v1/enterprises",
            json={"name": "Umbrella", "location": "Raccoon City", "contactInfo": {"email": "info@umbrella.test"}},
            headers=headers,
        )
        assert created.status_code == 201, created.text
        ent = created.json()
        assert ent["contact_info"] == {"email": "info@umbrella.test"}
        updated = api_client.client.put(
            f"/api/v1/enterprises/{ent['id']}", json={"status": "inactive"}, headers=headers
        )
        assert updated.json()["status"] == "inactive"
        assert api_client.client.delete(f"/api/v1/enterprises/{ent['id']}", headers=headers).status_code == 200
        assert api_client.client.get(f"/api/v1/enterprises/{ent['id']}", headers=headers).status_code == 404


class TestDashboard:
    def test_admin_permissions(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/dashboard/permissions", headers=api_client.headers("admin"))
        assert resp.status_code == 200
        perms = resp.json()["permissions"]
        assert len(perms) == 6
        assert all(all(flags.values()) for flags in perms.values())

    def test_manager_permissions(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/dashboard/permissions", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 200
        perms = resp.json()["permissions"]
        assert set(perms) == {"products", "employees", "users", "dashboard"}
        assert perms["products"] == {"can_read": True, "can_create": True, "can_update": True, "can_delete": False}

    def test_empty_role_has_no_dashboard(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/dashboard/permissions", headers=api_client.headers("acme_empty"))
        assert resp.status_code == 403
