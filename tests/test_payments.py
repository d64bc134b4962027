import re
from datetime import datetime, timezone

from kitabayar.models.bill import Bill
from kitabayar.models.enums import BillStatus, PaymentStatus

RECEIPT_RE = re.compile(r"^KBR-\d{4}-\d{3,}$")


def _pay(client, headers, bill, amount, **extra):
    body = {
        "residentId": bill.resident_id,
        "billId": bill.id,
        "amount": amount,
        "paymentMethod": "CASH",
        "status": "COMPLETED",
        **extra,
    }
    return client.post("/api/payments", json=body, headers=headers)


def test_installments_fill_up_the_bill(client, staff_headers, catalog, make_resident, make_bill, db):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], amount=50000, installments=2)

    first = _pay(client, staff_headers, bill, 25000)
    assert first.status_code == 201
    body = first.json()
    assert body["installmentNumber"] == 1
    assert RECEIPT_RE.match(body["receiptNumber"])
    assert body["receiptNumber"].endswith(f"-{body['id']:03d}")
    assert body["paidAt"] is not None
    assert body["billTypeName"] == "Iuran Pokok"
    assert body["residentName"] == "Siti Aminah"
    assert db.get(Bill, bill.id).status == BillStatus.PENDING

    second = _pay(client, staff_headers, bill, 25000)
    assert second.json()["installmentNumber"] == 2
    db.expire_all()
    assert db.get(Bill, bill.id).status == BillStatus.PAID


def test_full_amount_in_one_go_pays_the_bill(client, staff_headers, catalog, make_resident, make_bill, db):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], amount=50000, installments=4)

    assert _pay(client, staff_headers, bill, 50000).status_code == 201
    assert db.get(Bill, bill.id).status == BillStatus.PAID


def test_pending_payment_does_not_count_until_completed(client, staff_headers, catalog, make_resident, make_bill, db):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], amount=50000, installments=1)

    res = _pay(client, staff_headers, bill, 50000, status="PENDING", paymentMethod="TRANSFER")
    assert res.status_code == 201
    pending = res.json()
    assert pending["receiptNumber"] is None
    assert pending["installmentNumber"] is None
    assert db.get(Bill, bill.id).status == BillStatus.PENDING

    update = {k: pending[k] for k in ("residentId", "billId", "amount", "paymentMethod")}
    res = client.put(f"/api/payments/{pending['id']}", json={**update, "status": "COMPLETED"}, headers=staff_headers)
    assert res.status_code == 200
    assert res.json()["installmentNumber"] == 1
    assert RECEIPT_RE.match(res.json()["receiptNumber"])
    db.expire_all()
    assert db.get(Bill, bill.id).status == BillStatus.PAID


def test_payment_must_match_bill_resident(client, staff_headers, catalog, make_resident, make_bill):
    owner = make_resident("Pemilik")
    other = make_resident("Tetangga")
    bill = make_bill(owner, catalog["pokok"])

    res = _pay(client, staff_headers, bill, 10000, residentId=other.id)
    assert res.status_code == 400

    res = _pay(client, staff_headers, bill, 10000, billId=9999)
    assert res.status_code == 400


def test_cancelled_bill_takes_no_payments(client, staff_headers, catalog, make_resident, make_bill):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], status=BillStatus.CANCELLED)
    assert _pay(client, staff_headers, bill, 10000).status_code == 400


def test_refund_allowed_after_bill_is_cancelled(client, staff_headers, catalog, make_resident, make_bill, make_payment, db):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], amount=50000, installments=2)
    other = make_bill(resident, catalog["keamanan"])

    paid = _pay(client, staff_headers, bill, 25000).json()
    db.get(Bill, bill.id).status = BillStatus.CANCELLED
    db.commit()

    update = {k: paid[k] for k in ("residentId", "billId", "amount", "paymentMethod")}
    res = client.put(f"/api/payments/{paid['id']}", json={**update, "status": "REFUNDED"}, headers=staff_headers)
    assert res.status_code == 200
    assert res.json()["status"] == "REFUNDED"
    db.expire_all()
    assert db.get(Bill, bill.id).status == BillStatus.CANCELLED

    # completing it again would be new money on a cancelled bill
    res = client.put(f"/api/payments/{paid['id']}", json={**update, "status": "COMPLETED"}, headers=staff_headers)
    assert res.status_code == 400

    # and so is moving a completed payment onto it
    moved = make_payment(other, 25000, installment=1)
    body = {"residentId": resident.id, "billId": bill.id, "amount": 25000, "paymentMethod": "CASH", "status": "COMPLETED"}
    assert client.put(f"/api/payments/{moved.id}", json=body, headers=staff_headers).status_code == 400


def test_completing_pending_payment_follows_earlier_installments(client, staff_headers, catalog, make_resident, make_bill, make_payment):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], amount=50000, installments=2)
    make_payment(bill, 25000, installment=1)

    pending = _pay(client, staff_headers, bill, 25000, status="PENDING").json()
    update = {k: pending[k] for k in ("residentId", "billId", "amount", "paymentMethod")}
    res = client.put(f"/api/payments/{pending['id']}", json={**update, "status": "COMPLETED"}, headers=staff_headers)
    assert res.json()["installmentNumber"] == 2


def test_amount_must_be_positive(client, staff_headers, catalog, make_resident, make_bill):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"])
    assert _pay(client, staff_headers, bill, 0).status_code == 400


def test_duplicate_receipt_number_conflicts(client, staff_headers, catalog, make_resident, make_bill):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], installments=4)

    assert _pay(client, staff_headers, bill, 10000, receiptNumber="MANUAL-1").status_code == 201
    assert _pay(client, staff_headers, bill, 10000, receiptNumber="MANUAL-1").status_code == 409


def test_deleting_payment_reopens_bill(client, staff_headers, catalog, make_resident, make_bill, db):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], amount=50000, installments=1, due_in_days=-1)

    payment = _pay(client, staff_headers, bill, 50000).json()
    assert db.get(Bill, bill.id).status == BillStatus.PAID

    assert client.delete(f"/api/payments/{payment['id']}", headers=staff_headers).status_code == 204
    db.expire_all()
    assert db.get(Bill, bill.id).status == BillStatus.OVERDUE


def test_list_filters(client, staff_headers, catalog, make_resident, make_bill, make_payment):
    resident = make_resident()
    bill = make_bill(resident, catalog["pokok"], installments=4)
    make_payment(bill, 10000, installment=1, paid_at=datetime(2024, 9, 5, tzinfo=timezone.utc))
    make_payment(bill, 10000, status=PaymentStatus.FAILED, paid_at=datetime(2024, 9, 6, tzinfo=timezone.utc))

    res = client.get(f"/api/payments?billId={bill.id}&status=COMPLETED", headers=staff_headers)
    assert [p["installmentNumber"] for p in res.json()] == [1]

    res = client.get("/api/payments?startDate=2024-09-06", headers=staff_headers)
    assert [p["status"] for p in res.json()] == ["FAILED"]

    assert client.get("/api/payments?startDate=yesterday", headers=staff_headers).status_code == 400


def _period_fixture(catalog, make_resident, make_bill, make_payment):
    andi = make_resident("Andi Wijaya", house_number="A-01")
    budi = make_resident("Budi Hartono", house_number="B-02")
    citra = make_resident("Citra Lestari", house_number="C-03")

    andi_pokok = make_bill(andi, catalog["pokok"], amount=40000, installments=4)
    andi_keamanan = make_bill(andi, catalog["keamanan"], amount=20000, installments=1)
    budi_pokok = make_bill(budi, catalog["pokok"], amount=40000, installments=4)
    make_bill(citra, catalog["pokok"], amount=40000, installments=4)
    make_bill(citra, catalog["pokok"], period="Oktober 2024", amount=40000, installments=4)

    sep = lambda d: datetime(2024, 9, d, 9, tzinfo=timezone.utc)  # noqa: E731
    make_payment(andi_pokok, 10000, installment=1, paid_at=sep(5))
    make_payment(andi_pokok, 10000, installment=2, paid_at=sep(12))
    make_payment(andi_keamanan, 20000, installment=1, paid_at=sep(5))
    for n in range(1, 5):
        make_payment(budi_pokok, 10000, installment=n, paid_at=sep(n))
    make_payment(budi_pokok, 5000, status=PaymentStatus.REFUNDED, paid_at=sep(20))
    make_payment(andi_pokok, 10000, installment=3, paid_at=datetime(2024, 10, 2, tzinfo=timezone.utc))
    return andi, budi, citra


def test_period_progress_per_resident(client, staff_headers, catalog, make_resident, make_bill, make_payment):
    andi, budi, citra = _period_fixture(catalog, make_resident, make_bill, make_payment)

    res = client.get(f"/api/bill-periods/{catalog['period'].id}/progress", headers=staff_headers)
    assert res.status_code == 200
    body = res.json()

    lines = {r["residentId"]: r for r in body["residents"]}
    assert set(lines) == {andi.id, budi.id, citra.id}

    andi_line = lines[andi.id]
    assert andi_line["installments"] == 5
    assert andi_line["completedPayments"] == 4
    assert andi_line["totalAmount"] == 60000
    assert andi_line["paidAmount"] == 50000
    assert andi_line["completionPercentage"] == 80
    assert andi_line["amountPercentage"] == 83
    assert andi_line["status"] == "Sebagian"
    assert andi_line["lastPaymentDate"] == "2024-10-02"
    assert [p["paidOn"] for p in andi_line["payments"]][:2] == ["2024-09-05", "2024-09-05"]

    assert lines[budi.id]["status"] == "Lunas"
    assert lines[budi.id]["completionPercentage"] == 100
    assert lines[citra.id]["status"] == "Belum Bayar"
    assert lines[citra.id]["installments"] == 4

    summary = body["summary"]
    assert (summary["total"], summary["lunasCount"], summary["sebagianCount"], summary["belumBayarCount"]) == (3, 1, 1, 1)
    assert summary["completionPercentage"] == 33
    assert summary["health"] == {"label": "Perlu Perhatian", "color": "red"}


def test_period_progress_filters(client, staff_headers, catalog, make_resident, make_bill, make_payment):
    andi, budi, citra = _period_fixture(catalog, make_resident, make_bill, make_payment)
    url = f"/api/bill-periods/{catalog['period'].id}/progress"

    res = client.get(f"{url}?status=LUNAS", headers=staff_headers).json()
    assert [r["residentId"] for r in res["residents"]] == [budi.id]
    assert res["summary"]["total"] == 3

    res = client.get(f"{url}?status=belum_bayar", headers=staff_headers).json()
    assert [r["residentId"] for r in res["residents"]] == [citra.id]

    res = client.get(f"{url}?search=andi", headers=staff_headers).json()
    assert [r["fullName"] for r in res["residents"]] == ["Andi Wijaya"]

    assert client.get(f"{url}?status=DONE", headers=staff_headers).status_code == 400
    assert client.get("/api/bill-periods/999/progress", headers=staff_headers).status_code == 404


def test_period_calendar_groups_by_day(client, staff_headers, catalog, make_resident, make_bill, make_payment):
    _period_fixture(catalog, make_resident, make_bill, make_payment)
    url = f"/api/bill-periods/{catalog['period'].id}/calendar"

    body = client.get(url, headers=staff_headers).json()
    assert body["month"] == "2024-09"
    days = {d["day"]: d for d in body["days"]}
    assert list(days) == ["2024-09-01", "2024-09-02", "2024-09-03", "2024-09-04", "2024-09-05", "2024-09-12"]
    assert len(days["2024-09-05"]["payments"]) == 2
    assert days["2024-09-05"]["totalAmount"] == 30000

    october = client.get(f"{url}?month=2024-10", headers=staff_headers).json()
    assert [d["day"] for d in october["days"]] == ["2024-10-02"]

    assert client.get(f"{url}?month=10-2024", headers=staff_headers).status_code == 400
