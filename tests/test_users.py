def test_health(client):
    assert client.get("/health").json() == {"ok": True, "service": "kitabayar"}


def test_admin_manages_users(client, admin_headers):
    res = client.post(
        "/api/users",
        json={"email": "Bendahara@KitaBayar.com", "username": "bendahara", "password": "uang123", "role": "STAFF"},
        headers=admin_headers,
    )
    assert res.status_code == 201
    user = res.json()
    assert user["email"] == "bendahara@kitabayar.com"
    assert user["residentId"] is None
    assert "passwordHash" not in user

    res = client.put(
        f"/api/users/{user['id']}",
        json={"email": "bendahara@kitabayar.com", "username": "bendahara", "role": "STAFF", "isActive": False},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["isActive"] is False

    # password unchanged, but the account is now inactive
    login = client.post("/api/auth/login", json={"username": "bendahara", "password": "uang123"})
    assert login.status_code == 401

    staff_only = client.get("/api/users?role=STAFF", headers=admin_headers).json()
    assert [u["username"] for u in staff_only] == ["bendahara"]

    assert client.delete(f"/api/users/{user['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/users/{user['id']}", headers=admin_headers).status_code == 404


def test_duplicate_email_and_short_password(client, admin_headers, staff):
    res = client.post("/api/users", json={"email": "staff@kitabayar.com", "password": "panjang1"}, headers=admin_headers)
    assert res.status_code == 409

    res = client.post("/api/users", json={"email": "baru@kitabayar.com", "password": "123"}, headers=admin_headers)
    assert res.status_code == 400


def test_admin_cannot_delete_self(client, admin, admin_headers):
    assert client.delete(f"/api/users/{admin.id}", headers=admin_headers).status_code == 400


def test_user_management_is_admin_only(client, staff_headers):
    assert client.get("/api/users", headers=staff_headers).status_code == 403
    assert client.get("/api/audit-logs", headers=staff_headers).status_code == 403


def test_audit_log_marks_failed_payments_high_risk(client, admin_headers, staff_headers, catalog, make_resident, make_bill):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"])

    res = client.post(
        "/api/payments",
        json={
            "residentId": resident.id,
            "billId": bill.id,
            "amount": 50000,
            "paymentMethod": "TRANSFER",
            "status": "FAILED",
        },
        headers=staff_headers,
    )
    assert res.status_code == 201

    logs = client.get("/api/audit-logs?entityType=payment&riskLevel=high", headers=admin_headers).json()
    assert [l["entityId"] for l in logs] == [str(res.json()["id"])]
    assert logs[0]["status"] == "FAILED"
