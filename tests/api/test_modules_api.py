"""API tests for module provisioning endpoints."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from tests.conftest import auth_header

pytestmark = pytest.mark.api

BASE = "/api/v1/modules"


def _ids(repos, world, key):
    return world.acme.id, world.module(repos, key).id


def test_list_modules(client, world):
    """Test the catalog is listed in the standard envelope."""
    response = client.get(BASE, headers=auth_header(world.acme_user))
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["error"] is None
    assert body["meta"]["total"] == len(body["data"])
    assert "expense-ocr" in {m["key"] for m in body["data"]}


def test_requires_token(client):
    """Test requests without a bearer token are 401."""
    response = client.get(BASE)
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["error"]["code"] == "AUTH_UNAUTHORIZED"


def test_enable_and_disable_cycle(client, repos, world):
    """Test enabling, granting and disabling with the user cascade."""
    company_id, module_id = _ids(repos, world, "expense-ocr")
    root = auth_header(world.super_admin)
    admin = auth_header(world.acme_admin)

    response = client.post(f"{BASE}/company/{company_id}/enable/{module_id}", headers=root)
    assert response.status_code == 200
    assert response.json()["data"]["company_module"]["is_enabled"] is True
    assert response.json()["data"]["affected_users"] == 0

    again = client.post(f"{BASE}/company/{company_id}/enable/{module_id}", headers=root)
    assert again.status_code == 200
    assert again.json()["message"] == "Module already enabled"

    for user in (world.acme_user, world.acme_user2):
        granted = client.post(f"{BASE}/user/{user.id}/enable/{module_id}", headers=admin)
        assert granted.status_code == 200
        assert granted.json()["data"]["is_enabled"] is True

    response = client.post(f"{BASE}/company/{company_id}/disable/{module_id}", headers=root)
    assert response.status_code == 200
    assert response.json()["data"]["affected_users"] == 2

    modules = client.get(f"{BASE}/user/{world.acme_user.id}", headers=admin).json()["data"]
    assert modules == []


def test_disable_not_enabled_is_ok(client, repos, world):
    """Test disabling a module that is not enabled reports zero affected users."""
    company_id, module_id = _ids(repos, world, "automation")
    response = client.post(
        f"{BASE}/company/{company_id}/disable/{module_id}", headers=auth_header(world.super_admin)
    )
    assert response.status_code == 200
    assert response.json()["data"] == {"company_module": None, "affected_users": 0}


def test_enable_requires_super_admin(client, repos, world):
    """Test company admins get 403 on provisioning."""
    company_id, module_id = _ids(repos, world, "analytics")
    response = client.post(
        f"{BASE}/company/{company_id}/enable/{module_id}", headers=auth_header(world.acme_admin)
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "AUTH_INSUFFICIENT_ROLES"


def test_grant_user_module_without_company_module(client, repos, world):
    """Test a user grant for a module the company lacks is 412."""
    _, module_id = _ids(repos, world, "analytics")
    response = client.post(
        f"{BASE}/user/{world.acme_user.id}/enable/{module_id}", headers=auth_header(world.acme_admin)
    )
    assert response.status_code == 412
    assert response.json()["error"]["code"] == "COMPANY_MODULE_DISABLED"


def test_company_modules_cross_tenant(client, world):
    """Test an admin reading another company's modules gets 404."""
    response = client.get(f"{BASE}/company/{world.globex.id}", headers=auth_header(world.acme_admin))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "COMPANY_NOT_FOUND"


def test_company_modules_status(client, repos, world):
    """Test every module is listed with its provisioning state."""
    company_id, module_id = _ids(repos, world, "analytics")
    client.post(f"{BASE}/company/{company_id}/enable/{module_id}", headers=auth_header(world.super_admin))

    rows = client.get(f"{BASE}/company/{company_id}", headers=auth_header(world.acme_admin)).json()["data"]
    enabled = {r["module"]["key"] for r in rows if r["is_enabled"]}
    assert enabled == {"analytics"}


def test_update_pricing(client, repos, world):
    """Test pricing overrides through the API, including validation."""
    company_id, module_id = _ids(repos, world, "analytics")
    root = auth_header(world.super_admin)
    client.post(f"{BASE}/company/{company_id}/enable/{module_id}", headers=root)

    response = client.patch(
        f"{BASE}/company/{company_id}/pricing/{module_id}",
        json={"monthly_price": "49.90", "per_user_price": None},
        headers=root,
    )
    assert response.status_code == 200
    assert response.json()["data"]["monthly_price"] == "49.90"

    invalid = client.patch(
        f"{BASE}/company/{company_id}/pricing/{module_id}",
        json={"monthly_price": "-1"},
        headers=root,
    )
    assert invalid.status_code == 400
    assert "monthly_price" in invalid.json()["error"]["details"]


def test_classification_change_blocked_while_in_use(client, repos, world):
    """Test a core module in use cannot become an add-on."""
    company_id, module_id = _ids(repos, world, "vendors")
    root = auth_header(world.super_admin)
    client.post(f"{BASE}/company/{company_id}/enable/{module_id}", headers=root)

    response = client.patch(
        f"{BASE}/{module_id}/classification",
        json={"module_classification": "addon", "reason": "repricing"},
        headers=root,
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MODULE_IN_USE"
    assert response.json()["error"]["details"]["affected_companies"] == [str(company_id)]


def test_classification_change(client, repos, world):
    """Test a classification change on an unused module."""
    _, module_id = _ids(repos, world, "analytics")
    response = client.patch(
        f"{BASE}/{module_id}/classification",
        json={"module_classification": "core"},
        headers=auth_header(world.super_admin),
    )
    assert response.status_code == 200
    assert response.json()["data"]["module_classification"] == "core"


def test_audit_failure_is_500_and_rolled_back(client, repos, world):
    """Test a failing audit write surfaces as INTERNAL_ERROR and leaves no state behind."""
    company_id, module_id = _ids(repos, world, "analytics")
    repos.audit.fail_with = OperationalError("INSERT", {}, Exception("disk full"))

    response = client.post(
        f"{BASE}/company/{company_id}/enable/{module_id}", headers=auth_header(world.super_admin)
    )

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
    assert repos.company_modules.get(company_id, module_id) is None


def test_user_modules_cross_tenant(client, world):
    """Test an admin listing another company's user's modules gets 404."""
    response = client.get(f"{BASE}/user/{world.globex_user.id}", headers=auth_header(world.acme_admin))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "USER_NOT_FOUND"


def test_accessible_modules(client, repos, world):
    """Test the caller's own module list and that it is not parsed as a user id."""
    company_id, module_id = _ids(repos, world, "expense-ocr")
    client.post(f"{BASE}/company/{company_id}/enable/{module_id}", headers=auth_header(world.super_admin))
    client.post(f"{BASE}/user/{world.acme_user.id}/enable/{module_id}", headers=auth_header(world.acme_admin))

    response = client.get(f"{BASE}/user/accessible", headers=auth_header(world.acme_user))
    assert response.status_code == 200
    assert [m["key"] for m in response.json()["data"]] == ["expense-ocr"]

    other = client.get(f"{BASE}/user/accessible", headers=auth_header(world.acme_user2)).json()
    assert other["data"] == []
    assert other["meta"]["total"] == 0


def test_company_module_costs(client, repos, world):
    """Test licensed seats and actual grants are both priced."""
    company_id, module_id = _ids(repos, world, "analytics")
    root = auth_header(world.super_admin)
    client.post(f"{BASE}/company/{company_id}/enable/{module_id}", headers=root)
    pricing = client.patch(
        f"{BASE}/company/{company_id}/pricing/{module_id}", json={"users_licensed": 3}, headers=root
    )
    assert pricing.json()["data"]["users_licensed"] == 3
    client.post(f"{BASE}/user/{world.acme_user.id}/enable/{module_id}", headers=root)

    response = client.get(f"{BASE}/company/{company_id}/costs", headers=auth_header(world.acme_admin))
    assert response.status_code == 200
    data = response.json()["data"]
    [line] = data["modules"]
    assert line["module_key"] == "analytics"
    assert line["users_with_access"] == 1
    assert Decimal(line["licensed_monthly_cost"]) == Decimal("65")
    assert Decimal(line["actual_monthly_cost"]) == Decimal("55")
    assert Decimal(data["summary"]["cost_difference"]) == Decimal("10")

    foreign = client.get(f"{BASE}/company/{world.globex.id}/costs", headers=auth_header(world.acme_admin))
    assert foreign.status_code == 404
    denied = client.get(f"{BASE}/company/{company_id}/costs", headers=auth_header(world.acme_user))
    assert denied.status_code == 403
