from kitabayar.models.bill_category import BillCategory


def test_category_crud_with_counts(client, staff_headers, admin_headers, catalog):
    res = client.get("/api/bill-categories", headers=staff_headers)
    assert res.status_code == 200
    [category] = res.json()
    assert category["name"] == "Iuran Bulanan"
    assert category["billTypesCount"] == 2
    assert category["periodsCount"] == 1

    res = client.post(
        "/api/bill-categories",
        json={"name": "17 Agustusan", "description": "Lomba dan perayaan", "color": "#EF4444"},
        headers=staff_headers,
    )
    assert res.status_code == 201
    new_id = res.json()["id"]
    assert res.json()["billTypesCount"] == 0

    res = client.put(
        f"/api/bill-categories/{new_id}",
        json={"name": "17 Agustus", "isActive": False},
        headers=staff_headers,
    )
    assert res.status_code == 200
    assert res.json()["isActive"] is False
    assert res.json()["description"] is None

    detail = client.get(f"/api/bill-categories/{catalog['category'].id}", headers=staff_headers).json()
    assert sorted(t["name"] for t in detail["billTypes"]) == ["Iuran Pokok", "Keamanan"]
    assert [p["name"] for p in detail["periods"]] == ["September 2024"]

    assert client.delete(f"/api/bill-categories/{new_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/bill-categories/{new_id}", headers=staff_headers).status_code == 404


def test_category_name_must_be_unique(client, staff_headers, catalog):
    res = client.post("/api/bill-categories", json={"name": "Iuran Bulanan"}, headers=staff_headers)
    assert res.status_code == 409


def test_category_delete_is_admin_only(client, staff_headers, catalog):
    res = client.delete(f"/api/bill-categories/{catalog['category'].id}", headers=staff_headers)
    assert res.status_code == 403


def test_bill_type_amount_and_category_are_checked(client, staff_headers, catalog):
    category_id = catalog["category"].id

    res = client.post(
        "/api/bill-types",
        json={"categoryId": category_id, "name": "Kebersihan", "baseAmount": 20000},
        headers=staff_headers,
    )
    assert res.status_code == 201
    assert res.json()["baseAmount"] == 20000

    bad_amount = {"categoryId": category_id, "name": "Negatif", "baseAmount": -1}
    assert client.post("/api/bill-types", json=bad_amount, headers=staff_headers).status_code == 400

    unknown_category = {"categoryId": 999, "name": "Hilang", "baseAmount": 1000}
    assert client.post("/api/bill-types", json=unknown_category, headers=staff_headers).status_code == 400


def test_bill_type_names_are_unique_per_category(client, staff_headers, catalog, make):
    other = make(BillCategory(name="Sosial"))

    same_category = {"categoryId": catalog["category"].id, "name": "Keamanan", "baseAmount": 1000}
    assert client.post("/api/bill-types", json=same_category, headers=staff_headers).status_code == 409

    other_category = {"categoryId": other.id, "name": "Keamanan", "baseAmount": 1000}
    assert client.post("/api/bill-types", json=other_category, headers=staff_headers).status_code == 201


def test_bill_type_list_filters(client, staff_headers, catalog):
    res = client.get(f"/api/bill-types?categoryId={catalog['category'].id}", headers=staff_headers)
    assert [t["name"] for t in res.json()] == ["Iuran Pokok", "Keamanan"]

    res = client.get("/api/bill-types?isActive=false", headers=staff_headers)
    assert res.json() == []


def test_billed_type_cannot_be_deleted(client, admin_headers, catalog, make_resident, make_bill):
    resident = make_resident()
    make_bill(resident, catalog["pokok"])

    res = client.delete(f"/api/bill-types/{catalog['pokok'].id}", headers=admin_headers)
    assert res.status_code == 409

    res = client.delete(f"/api/bill-categories/{catalog['category'].id}", headers=admin_headers)
    assert res.status_code == 409

    res = client.delete(f"/api/bill-types/{catalog['keamanan'].id}", headers=admin_headers)
    assert res.status_code == 204


def test_period_crud_and_validation(client, staff_headers, catalog):
    category_id = catalog["category"].id
    body = {
        "categoryId": category_id,
        "name": "Oktober 2024",
        "startDate": "2024-10-01",
        "endDate": "2024-10-31",
        "installments": 2,
    }
    res = client.post("/api/bill-periods", json=body, headers=staff_headers)
    assert res.status_code == 201
    period_id = res.json()["id"]
    assert res.json()["installments"] == 2

    assert client.post("/api/bill-periods", json=body, headers=staff_headers).status_code == 409

    backwards = {**body, "name": "Terbalik", "startDate": "2024-11-30", "endDate": "2024-11-01"}
    res = client.post("/api/bill-periods", json=backwards, headers=staff_headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "endDate cannot be before startDate"

    zero = {**body, "name": "Nol", "installments": 0}
    assert client.post("/api/bill-periods", json=zero, headers=staff_headers).status_code == 400

    res = client.put(f"/api/bill-periods/{period_id}", json={**body, "installments": 3}, headers=staff_headers)
    assert res.status_code == 200
    assert res.json()["installments"] == 3

    names = [p["name"] for p in client.get(f"/api/bill-periods?categoryId={category_id}", headers=staff_headers).json()]
    assert names == ["Oktober 2024", "September 2024"]

    assert client.delete(f"/api/bill-periods/{period_id}", headers=staff_headers).status_code == 204
    assert client.get(f"/api/bill-periods/{period_id}", headers=staff_headers).status_code == 404
