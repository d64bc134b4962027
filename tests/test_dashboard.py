from datetime import datetime, timedelta, timezone

import pytest

from kitabayar.core.auth import create_access_token, hash_password
from kitabayar.models.enums import BillStatus, UserRole
from kitabayar.models.user import User


@pytest.fixture
def ledger(resident_account, catalog, make_resident, make_bill, make_payment):
    """
    Budi: a half-paid bill due in 5 days and an unpaid one 3 days late.
    Siti (inactive): one bill paid in full and one cancelled.
    """
    _, budi = resident_account
    siti = make_resident("Siti Aminah", is_active=False)
    now = datetime.now(timezone.utc)

    half_paid = make_bill(budi, catalog["pokok"], amount=50000, installments=2, due_in_days=5)
    late = make_bill(budi, catalog["keamanan"], amount=25000, due_in_days=-3)
    paid = make_bill(siti, catalog["pokok"], amount=50000, due_in_days=-10, status=BillStatus.PAID)
    make_bill(siti, catalog["keamanan"], amount=25000, status=BillStatus.CANCELLED)

    make_payment(half_paid, 25000, installment=1, paid_at=now - timedelta(days=1))
    make_payment(paid, 50000, installment=1, paid_at=now - timedelta(days=12))
    return {"budi": budi, "siti": siti, "half_paid": half_paid, "late": late, "paid": paid}


def test_admin_dashboard_cards_and_lists(client, staff_headers, ledger):
    res = client.get("/api/dashboard/admin", headers=staff_headers)
    assert res.status_code == 200
    body = res.json()

    assert body["totalResidents"] == 2
    assert body["activeResidents"] == 1
    assert body["totalRevenue"] == 75000
    assert body["pendingBills"] == 1
    assert body["overdueBills"] == 1

    assert [p["amount"] for p in body["recentPayments"]] == [25000, 50000]
    assert body["recentPayments"][0]["residentName"] == "Budi Santoso"

    [upcoming] = body["upcomingDueDates"]
    assert upcoming["billId"] == ledger["half_paid"].id
    assert upcoming["daysLeft"] == 5
    assert upcoming["billTypeName"] == "Iuran Pokok"


def test_admin_dashboard_when_empty(client, admin_headers):
    body = client.get("/api/dashboard/admin", headers=admin_headers).json()
    assert body["totalResidents"] == 0
    assert body["totalRevenue"] == 0
    assert body["recentPayments"] == []
    assert body["upcomingDueDates"] == []


def test_bill_type_stats(client, staff_headers, ledger, catalog):
    res = client.get("/api/dashboard/bill-types", headers=staff_headers)
    assert res.status_code == 200
    stats = {s["name"]: s for s in res.json()}

    pokok = stats["Iuran Pokok"]
    assert (pokok["totalBills"], pokok["paidBills"]) == (2, 1)
    assert pokok["totalAmount"] == 100000
    assert pokok["paidAmount"] == 75000
    assert pokok["completionPercentage"] == 50
    assert pokok["amountPercentage"] == 75
    assert pokok["health"]["label"] == "Sedang"

    keamanan = stats["Keamanan"]
    assert (keamanan["totalBills"], keamanan["paidBills"]) == (1, 0)
    assert keamanan["paidAmount"] == 0
    assert keamanan["health"]["label"] == "Perlu Perhatian"


def test_dashboards_require_staff(client, resident_headers):
    assert client.get("/api/dashboard/admin", headers=resident_headers).status_code == 403
    assert client.get("/api/dashboard/bill-types", headers=resident_headers).status_code == 403


def test_resident_portal(client, resident_headers, ledger):
    res = client.get("/api/me/dashboard", headers=resident_headers)
    assert res.status_code == 200
    body = res.json()

    assert body["resident"]["fullName"] == "Budi Santoso"
    assert [b["id"] for b in body["unpaidBills"]] == [ledger["late"].id, ledger["half_paid"].id]
    assert body["unpaidBills"][0]["dueState"] == "overdue"
    assert body["totalOutstanding"] == 50000
    assert body["overdueCount"] == 1
    assert body["totalPaid"] == 25000
    [receipt] = body["paymentHistory"]
    assert receipt["installmentNumber"] == 1

    bills = client.get("/api/me/bills", headers=resident_headers).json()
    assert len(bills) == 2
    assert bills[1]["progress"]["completionPercentage"] == 50

    payments = client.get("/api/me/payments", headers=resident_headers).json()
    assert [p["amount"] for p in payments] == [25000]


def test_portal_is_for_residents_only(client, staff_headers, make):
    assert client.get("/api/me/bills", headers=staff_headers).status_code == 403

    orphan = make(User(email="baru@gmail.com", password_hash=hash_password("rahasia"), role=UserRole.RESIDENT))
    headers = {"Authorization": f"Bearer {create_access_token(orphan)}"}
    assert client.get("/api/me/dashboard", headers=headers).status_code == 404
