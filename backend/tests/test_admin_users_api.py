import uuid

NEW_USER = {
    "firstName": "John",
    "lastName": "Doe",
    "username": "jdoe",
    "email": "j@x.com",
    "phoneNumber": "+1 555 0100",
    "role": "manager",
    "status": "active",
    "password": "changeme",
}


def create(client, headers, **overrides):
    return client.post("/admin/users", json={**NEW_USER, **overrides}, headers=headers)


def test_bootstrap_operator_is_listed(client, admin_headers):
    r = client.get("/admin/users", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["meta"] == {"page": 1, "pageSize": 20, "total": 1}
    boot = body["items"][0]
    assert boot["username"] == "super.admin"
    assert boot["role"] == "superadmin"
    assert boot["email"] == "root@example.com"
    assert "password" not in boot and "passwordHash" not in boot


def test_create_update_and_bulk_delete(client, admin_headers):
    r = create(client, admin_headers)
    assert r.status_code == 201
    created = r.json()
    assert created["role"] == "manager"
    assert created["createdAt"] == created["updatedAt"]

    r = create(client, admin_headers, email="other@x.com")
    assert r.status_code == 409
    assert r.json()["detail"] == "username already exists"

    r = client.patch(f"/admin/users/{created['id']}", json={"email": "new@x.com"}, headers=admin_headers)
    assert r.status_code == 200
    updated = r.json()
    assert updated["email"] == "new@x.com"
    assert updated["username"] == "jdoe"
    assert updated["firstName"] == "John"

    r = client.post("/admin/users/bulk-delete", json={"userIds": [created["id"], str(uuid.uuid4())]},
                    headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"deleted": 1}

    r = client.delete(f"/admin/users/{created['id']}", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "user not found"


def test_duplicate_email_is_case_insensitive(client, admin_headers):
    create(client, admin_headers)
    r = create(client, admin_headers, username="someone", email="J@X.COM")
    assert r.status_code == 409
    assert r.json()["detail"] == "email already exists"


def test_role_and_status_are_case_insensitive(client, admin_headers):
    r = create(client, admin_headers, role="CASHIER", status="Invited")
    assert r.status_code == 201
    assert (r.json()["role"], r.json()["status"]) == ("cashier", "invited")


def test_create_validation(client, admin_headers):
    assert create(client, admin_headers, role="owner").status_code == 400
    assert create(client, admin_headers, email="not-an-email").status_code == 400
    payload = dict(NEW_USER)
    payload.pop("password")
    assert client.post("/admin/users", json=payload, headers=admin_headers).status_code == 400


def test_list_filters_and_paging(client, admin_headers):
    create(client, admin_headers, username="ops.one", email="1@x.com", status="suspended")
    create(client, admin_headers, username="ops.two", email="2@x.com", status="invited", role="cashier")
    create(client, admin_headers, username="finance", email="3@x.com")

    r = client.get("/admin/users", params={"status": "suspended,INVITED"}, headers=admin_headers)
    assert sorted(u["username"] for u in r.json()["items"]) == ["ops.one", "ops.two"]

    r = client.get("/admin/users", params={"role": "cashier"}, headers=admin_headers)
    assert [u["username"] for u in r.json()["items"]] == ["ops.two"]

    r = client.get("/admin/users", params={"username": "OPS"}, headers=admin_headers)
    assert r.json()["meta"]["total"] == 2

    r = client.get("/admin/users", params={"page": "2", "pageSize": "1"}, headers=admin_headers)
    body = r.json()
    assert body["meta"] == {"page": 2, "pageSize": 1, "total": 4}
    assert len(body["items"]) == 1

    r = client.get("/admin/users", params={"page": "abc", "pageSize": "-1"}, headers=admin_headers)
    assert r.json()["meta"]["page"] == 1
    assert r.json()["meta"]["pageSize"] == 20

    r = client.get("/admin/users", params={"page": "9"}, headers=admin_headers)
    assert r.json()["items"] == []
    assert r.json()["meta"]["total"] == 4


def test_list_rejects_unknown_filters(client, admin_headers):
    r = client.get("/admin/users", params={"role": "owner"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "invalid role"
    r = client.get("/admin/users", params={"status": "active,gone"}, headers=admin_headers)
    assert r.status_code == 400


def test_update_conflicts_and_missing(client, admin_headers):
    create(client, admin_headers, username="taken", email="taken@x.com")
    other = create(client, admin_headers).json()
    r = client.patch(f"/admin/users/{other['id']}", json={"username": "TAKEN"}, headers=admin_headers)
    assert r.status_code == 409
    r = client.patch(f"/admin/users/{uuid.uuid4()}", json={"firstName": "X"}, headers=admin_headers)
    assert r.status_code == 404
    r = client.patch("/admin/users/not-a-uuid", json={"firstName": "X"}, headers=admin_headers)
    assert r.status_code == 400


def test_bulk_status(client, admin_headers):
    a = create(client, admin_headers, username="a", email="a@x.com").json()
    b = create(client, admin_headers, username="b", email="b@x.com").json()
    r = client.post("/admin/users/bulk-status",
                    json={"userIds": [a["id"], b["id"], str(uuid.uuid4())], "status": "suspended"},
                    headers=admin_headers)
    assert r.json() == {"updated": 2}
    r = client.get("/admin/users", params={"status": "suspended"}, headers=admin_headers)
    assert r.json()["meta"]["total"] == 2

    r = client.post("/admin/users/bulk-status", json={"userIds": [], "status": "active"}, headers=admin_headers)
    assert r.status_code == 400


def test_delete_returns_no_content(client, admin_headers):
    user = create(client, admin_headers).json()
    r = client.delete(f"/admin/users/{user['id']}", headers=admin_headers)
    assert r.status_code == 204
    assert r.content == b""


def test_invite(client, admin_headers):
    r = client.post("/admin/users/invite", json={"email": "new@x.com", "role": "manager"}, headers=admin_headers)
    assert r.status_code == 202
    body = r.json()
    assert body["invited"] is True
    assert body["expiresAt"]
    assert client.get("/admin/users", headers=admin_headers).json()["meta"]["total"] == 1


def test_requires_admin_token(client, user_headers):
    assert client.get("/admin/users").status_code == 401
    assert client.get("/admin/users", headers=user_headers).status_code == 401
