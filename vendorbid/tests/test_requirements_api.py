"""
Tests for requirement posting, browsing and editing, plus the account
endpoints around them (auth, profiles, supplier reviews, admin).
"""
import pytest

from vendorbid.core.security import decode_token
from vendorbid.tests.helpers import auth, iso, requirement_payload, set_verified


class TestCreateRequirement:

    def test_vendor_creates_open_requirement(self, client, vendor):
        response = client.post("/api/requirements", json=requirement_payload(), headers=auth(vendor[0]))
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Requirement created successfully"
        requirement = body["requirement"]
        assert requirement["status"] == "open"
        assert requirement["total_bids"] == 0
        assert requirement["vendor_id"] == vendor[1]
        assert requirement["budget"] == {"min": 1000, "max": 5000}
        assert requirement["delivery_location"]["locality"] == "Shivajinagar"
        assert requirement["materials"][0]["unit"] == "kg"

    def test_supplier_cannot_create(self, client, verified_supplier):
        response = client.post("/api/requirements", json=requirement_payload(), headers=auth(verified_supplier[0]))
        assert response.status_code == 403
        assert response.json()["message"] == "Only vendors can create requirements"

    def test_requires_authentication(self, client):
        response = client.post("/api/requirements", json=requirement_payload())
        assert response.status_code == 401
        assert response.json() == {"message": "Authentication required"}

    @pytest.mark.parametrize("overrides, field", [
        ({"materials": []}, "materials"),
        ({"title": "   "}, "title"),
        ({"budget": {"min": -1, "max": 10}}, "budget.min"),
        ({"delivery_date": "next week"}, "delivery_date"),
    ])
    def test_validation_errors_envelope(self, client, vendor, overrides, field):
        response = client.post(
            "/api/requirements", json=requirement_payload(**overrides), headers=auth(vendor[0])
        )
        assert response.status_code == 400
        errors = response.json()["errors"]
        assert field in [e["field"] for e in errors]
        assert all({"field", "message", "type"} <= set(e) for e in errors)

    def test_unknown_unit_rejected(self, client, vendor):
        payload = requirement_payload(materials=[{"name": "Rice", "quantity": 5, "unit": "tonnes"}])
        response = client.post("/api/requirements", json=payload, headers=auth(vendor[0]))
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "materials.0.unit"


class TestListRequirements:

    @pytest.fixture
    def catalogue(self, vendor, create_requirement):
        token = vendor[0]
        return {
            "onions": create_requirement(
                token, title="Onions",
                budget={"min": 500, "max": 1500},
                delivery_location={"locality": "Shivajinagar"},
            ),
            "oil": create_requirement(
                token, title="Cooking oil",
                materials=[{"name": "Sunflower Oil", "quantity": 20, "unit": "liters"}],
                budget={"min": 4000, "max": 8000},
                delivery_location={"locality": "Kothrud"},
            ),
            "flour": create_requirement(
                token, title="Flour",
                materials=[{"name": "Wheat flour", "quantity": 10, "unit": "bags"}],
                budget={"min": 9000, "max": 12000},
                delivery_location={"locality": "Camp"},
            ),
        }

    def titles(self, response):
        assert response.status_code == 200, response.text
        return [r["title"] for r in response.json()["requirements"]]

    def test_newest_first_with_pagination(self, client, catalogue):
        response = client.get("/api/requirements", params={"limit": 2})
        body = response.json()
        assert self.titles(response) == ["Flour", "Cooking oil"]
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert body["current_page"] == 1

        assert self.titles(client.get("/api/requirements", params={"limit": 2, "page": 2})) == ["Onions"]

    def test_locality_and_material_are_case_insensitive(self, client, catalogue):
        assert self.titles(client.get("/api/requirements", params={"locality": "kOTH"})) == ["Cooking oil"]
        assert self.titles(client.get("/api/requirements", params={"material": "oil"})) == ["Cooking oil"]
        assert self.titles(client.get("/api/requirements", params={"material": "%"})) == []

    def test_budget_window_matches_overlapping_ranges(self, client, catalogue):
        """minBudget compares against budget.max, maxBudget against budget.min."""
        assert self.titles(client.get("/api/requirements", params={"minBudget": 5000})) == ["Flour", "Cooking oil"]
        assert self.titles(client.get("/api/requirements", params={"maxBudget": 4000})) == ["Cooking oil", "Onions"]
        assert self.titles(client.get(
            "/api/requirements", params={"minBudget": 1000, "maxBudget": 4500}
        )) == ["Cooking oil", "Onions"]

    def test_status_filter(self, client, catalogue, verified_supplier, place_bid):
        place_bid(verified_supplier[0], catalogue["oil"]["id"])
        assert self.titles(client.get("/api/requirements", params={"status": "bidding"})) == ["Cooking oil"]
        assert self.titles(client.get("/api/requirements", params={"status": "open"})) == ["Flour", "Onions"]

        response = client.get("/api/requirements", params={"status": "sleeping"})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "status"

    def test_my_requirements(self, client, register, catalogue, vendor, create_requirement):
        other, _ = register("vendor")
        create_requirement(other, title="Someone else's")

        response = client.get("/api/requirements/vendor/my-requirements", headers=auth(vendor[0]))
        assert response.status_code == 200
        assert [r["title"] for r in response.json()] == ["Flour", "Cooking oil", "Onions"]

    def test_unknown_requirement(self, client):
        response = client.get("/api/requirements/555")
        assert response.status_code == 404
        assert response.json() == {"message": "Requirement not found"}


class TestUpdateRequirement:

    def test_owner_updates_open_requirement(self, client, vendor, create_requirement):
        requirement = create_requirement(vendor[0])
        response = client.put(
            f"/api/requirements/{requirement['id']}",
            json={"title": "Onions and garlic", "budget": {"min": 2000, "max": 6000}},
            headers=auth(vendor[0]),
        )
        assert response.status_code == 200
        updated = response.json()["requirement"]
        assert updated["title"] == "Onions and garlic"
        assert updated["budget"] == {"min": 2000, "max": 6000}
        assert updated["materials"] == requirement["materials"]

    def test_blank_title_rejected(self, client, vendor, create_requirement):
        requirement = create_requirement(vendor[0])
        response = client.put(f"/api/requirements/{requirement['id']}", json={"title": "   "}, headers=auth(vendor[0]))
        assert response.status_code == 400
        assert "title" in [e["field"] for e in response.json()["errors"]]

        detail = client.get(f"/api/requirements/{requirement['id']}").json()
        assert detail["requirement"]["title"] == requirement["title"]

    def test_other_vendor_cannot_update(self, client, register, vendor, create_requirement):
        requirement = create_requirement(vendor[0])
        other, _ = register("vendor")
        response = client.put(f"/api/requirements/{requirement['id']}", json={"title": "Mine now"}, headers=auth(other))
        assert response.status_code == 403
        assert response.json()["message"] == "You can only update your own requirements"

    def test_no_update_once_bidding(self, client, vendor, verified_supplier, create_requirement, place_bid):
        requirement = create_requirement(vendor[0])
        place_bid(verified_supplier[0], requirement["id"])

        response = client.put(f"/api/requirements/{requirement['id']}", json={"title": "Changed"}, headers=auth(vendor[0]))
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot update requirement that is not open"


class TestAccounts:

    def test_register_login_and_me(self, client, register):
        token, user_id = register("vendor", email="Ravi@Example.com")

        response = client.post("/api/auth/login", json={"email": "ravi@example.com", "password": "secret-pass-123"})
        assert response.status_code == 200
        assert response.json()["user"]["id"] == user_id

        me = client.get("/api/auth/me", headers=auth(token)).json()
        assert me["email"] == "ravi@example.com"
        assert me["role"] == "vendor"
        assert me["verified"] is False

    def test_token_claims(self, register):
        token, user_id = register("supplier", email="Claims@Example.com")
        claims = decode_token(token)
        assert claims["sub"] == str(user_id)
        assert claims["email"] == "claims@example.com"
        assert claims["role"] == "supplier"

    def test_duplicate_email_rejected(self, client, register):
        register("vendor", email="dup@example.com")
        response = client.post("/api/auth/register", json={
            "name": "Again", "email": "dup@example.com", "password": "secret-pass-123",
            "phone": "9111111111", "user_type": "supplier",
        })
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists"

    def test_admin_cannot_self_register(self, client):
        response = client.post("/api/auth/register", json={
            "name": "Root", "email": "root@example.com", "password": "secret-pass-123",
            "phone": "9111111111", "user_type": "admin",
        })
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "user_type"

    def test_wrong_password(self, client, register):
        register("vendor", email="v@example.com")
        response = client.post("/api/auth/login", json={"email": "v@example.com", "password": "nope-nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers=auth("not-a-jwt"))
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_profiles(self, client, vendor, register):
        response = client.put(
            "/api/vendors/profile",
            json={"name": "Ravi's Chaat", "address": {"city": "Pune", "locality": "Camp"}},
            headers=auth(vendor[0]),
        )
        assert response.status_code == 200
        assert response.json()["vendor"]["name"] == "Ravi's Chaat"
        assert client.get("/api/vendors/profile", headers=auth(vendor[0])).json()["address"]["locality"] == "Camp"

        supplier_token, _ = register("supplier")
        assert client.get("/api/vendors/profile", headers=auth(supplier_token)).status_code == 403
        status = client.get("/api/suppliers/verification-status", headers=auth(supplier_token)).json()
        assert status["verified"] is False

    def test_health(self, client):
        assert client.get("/api/health").json() == {
            "status": "OK", "message": "Vendor Bidding Platform API is running"
        }

    def test_unknown_route_uses_message_envelope(self, client):
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.json() == {"message": "Not Found"}


class TestSupplierReviews:

    def test_vendor_reviews_supplier(self, client, vendor, verified_supplier):
        response = client.post(
            f"/api/requirements/supplier/{verified_supplier[1]}/review",
            json={"rating": 5, "comment": "Always on time"},
            headers=auth(vendor[0]),
        )
        assert response.status_code == 201

        profile = client.get("/api/suppliers/profile", headers=auth(verified_supplier[0])).json()
        assert profile["reviews"][0]["comment"] == "Always on time"
        assert profile["average_rating"] == 5

    def test_only_vendors_review(self, client, register, verified_supplier):
        other_token, _ = register("supplier")
        response = client.post(
            f"/api/requirements/supplier/{verified_supplier[1]}/review",
            json={"rating": 3}, headers=auth(other_token),
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Only vendors can add reviews"

    def test_target_must_be_supplier(self, client, register, vendor):
        other_vendor, other_id = register("vendor")
        response = client.post(
            f"/api/requirements/supplier/{other_id}/review", json={"rating": 3}, headers=auth(vendor[0])
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Supplier not found"


class TestAdmin:

    def test_admin_verifies_supplier(self, client, admin, register, vendor, create_requirement, place_bid):
        token, supplier_id = register("supplier")
        requirement = create_requirement(vendor[0])
        assert place_bid(token, requirement["id"]).status_code == 403

        response = client.post(f"/api/requirements/suppliers/{supplier_id}/verify", headers=auth(admin[0]))
        assert response.status_code == 200
        assert response.json()["message"] == "Supplier verified successfully"
        assert place_bid(token, requirement["id"]).status_code == 201

    def test_only_admin_verifies(self, client, vendor, register):
        _, supplier_id = register("supplier")
        response = client.post(f"/api/requirements/suppliers/{supplier_id}/verify", headers=auth(vendor[0]))
        assert response.status_code == 403
        assert response.json()["message"] == "Only admins can verify suppliers"

    def test_list_users_by_type(self, client, admin, register):
        register("vendor")
        register("supplier")
        register("supplier")

        response = client.get("/api/requirements/users", params={"userType": "supplier"}, headers=auth(admin[0]))
        assert response.status_code == 200
        assert [u["role"] for u in response.json()] == ["supplier", "supplier"]

        everyone = client.get("/api/requirements/users", headers=auth(admin[0])).json()
        assert len(everyone) == 4

    def test_audit_log_records_actions(self, client, admin, vendor, create_requirement):
        requirement = create_requirement(vendor[0])

        response = client.get(
            "/api/admin/audit-logs", params={"action": "create_requirement"}, headers=auth(admin[0])
        )
        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["entity_id"] == requirement["id"]
        assert entries[0]["user_id"] == vendor[1]

        assert client.get("/api/admin/audit-logs", headers=auth(vendor[0])).status_code == 403

    def test_verification_unlocks_bidding_via_helper(self, client, register, vendor, create_requirement, place_bid):
        token, supplier_id = register("supplier")
        set_verified(supplier_id)
        requirement = create_requirement(vendor[0], bidding_end_date=iso(1))
        assert place_bid(token, requirement["id"]).status_code == 201
