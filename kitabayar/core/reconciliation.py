"""
Installment reconciliation for bills and bill periods.

A bill may be paid in several installments ("cicilan"). Everything in this
module is pure: routes load bills and payments from the database and hand them
over, these helpers only compute the derived numbers the dashboards show
(percentages, "Lunas"/"Sebagian"/"Belum Bayar" labels, health bands and the
due-soon/overdue classification). Nothing here mutates its inputs.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Tuple

from kitabayar.models.enums import BillStatus, PaymentStatus

# Payment status labels (per bill or per resident in a period)
LUNAS = "Lunas"
SEBAGIAN = "Sebagian"
BELUM_BAYAR = "Belum Bayar"

# Health bands for aggregate dashboards. Fixed, not configurable.
HEALTH_GOOD_THRESHOLD = 80
HEALTH_FAIR_THRESHOLD = 50
BAIK = "Baik"
SEDANG = "Sedang"
PERLU_PERHATIAN = "Perlu Perhatian"

# Due states
DUE_SETTLED = "settled"
DUE_OVERDUE = "overdue"
DUE_SOON = "due_soon"
DUE_UPCOMING = "upcoming"

ZERO = Decimal("0")


@dataclass(frozen=True)
class HealthBand:
    label: str
    color: str


@dataclass(frozen=True)
class PaymentEntry:
    """One recorded (completed) payment toward a bill."""
    paid_on: Optional[date]
    amount: Decimal
    installment: Optional[int] = None


@dataclass(frozen=True)
class ProgressSummary:
    installments: int
    completed_payments: int
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    completion_percentage: int
    amount_percentage: int
    status: str
    last_payment_date: Optional[date]
    payments: Tuple[PaymentEntry, ...]


@dataclass(frozen=True)
class GroupSummary:
    total: int
    lunas_count: int
    sebagian_count: int
    belum_bayar_count: int
    total_amount: Decimal
    paid_amount: Decimal
    completion_percentage: int  # share of members that are fully paid
    amount_percentage: int
    health: HealthBand


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def round_percentage(part, whole) -> int:
    """
    Integer percentage of part/whole, rounded half up (1/8 -> 13).
    A zero or negative whole yields 0 instead of dividing by zero.
    """
    whole_d = _to_decimal(whole)
    if whole_d <= 0:
        return 0
    value = _to_decimal(part) * 100 / whole_d
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def completion_percentage(completed: int, installments: int) -> int:
    """Installment-based progress, capped at 100."""
    if installments <= 0:
        return 0
    return min(round_percentage(completed, installments), 100)


def amount_percentage(paid_amount, total_amount) -> int:
    """Amount-based progress, capped at 100. May differ from completion_percentage."""
    return min(round_percentage(paid_amount, total_amount), 100)


def payment_status_label(completed: int, installments: int) -> str:
    if installments <= 0 or completed <= 0:
        return BELUM_BAYAR
    if completed >= installments:
        return LUNAS
    return SEBAGIAN


def health_band(percentage: int) -> HealthBand:
    if percentage >= HEALTH_GOOD_THRESHOLD:
        return HealthBand(BAIK, "green")
    if percentage >= HEALTH_FAIR_THRESHOLD:
        return HealthBand(SEDANG, "yellow")
    return HealthBand(PERLU_PERHATIAN, "red")


def days_left(due_date, today: date) -> Optional[int]:
    """Days until the due date; negative once it has passed."""
    due = _to_date(due_date)
    if due is None:
        return None
    return (due - today).days


def due_state(due_date, bill_status, today: date, due_soon_days: int) -> str:
    """
    settled  -> bill is PAID or CANCELLED
    overdue  -> due date is before today
    due_soon -> due within due_soon_days (today included)
    upcoming -> anything later
    """
    if bill_status in (BillStatus.PAID, BillStatus.CANCELLED):
        return DUE_SETTLED
    remaining = days_left(due_date, today)
    if remaining is None:
        return DUE_UPCOMING
    if remaining < 0:
        return DUE_OVERDUE
    if remaining <= due_soon_days:
        return DUE_SOON
    return DUE_UPCOMING


def completed_entries(payments: Iterable) -> List[PaymentEntry]:
    """Turn payment rows into entries, keeping only COMPLETED ones."""
    entries = []
    for p in payments:
        if p.status != PaymentStatus.COMPLETED:
            continue
        entries.append(
            PaymentEntry(
                paid_on=_to_date(p.paid_at),
                amount=_to_decimal(p.amount),
                installment=p.installment_number,
            )
        )
    return entries


def _entry_sort_key(entry: PaymentEntry):
    return (entry.paid_on or date.max, entry.installment or 0)


def summarize_progress(installments: int, total_amount, payments: Sequence[PaymentEntry]) -> ProgressSummary:
    ordered = tuple(sorted(payments, key=_entry_sort_key))
    completed = len(ordered)
    total = _to_decimal(total_amount)
    paid = sum((e.amount for e in ordered), ZERO)
    dated = [e.paid_on for e in ordered if e.paid_on is not None]

    return ProgressSummary(
        installments=installments,
        completed_payments=completed,
        total_amount=total,
        paid_amount=paid,
        remaining_amount=max(total - paid, ZERO),
        completion_percentage=completion_percentage(completed, installments),
        amount_percentage=amount_percentage(paid, total),
        status=payment_status_label(completed, installments),
        last_payment_date=max(dated) if dated else None,
        payments=ordered,
    )


def summarize_bill(bill) -> ProgressSummary:
    return summarize_progress(bill.installments, bill.amount, completed_entries(bill.payments))


def merge_progress(summaries: Sequence[ProgressSummary]) -> ProgressSummary:
    """Combine one resident's bills in a period into a single progress line."""
    entries: List[PaymentEntry] = []
    installments = 0
    total = ZERO
    for s in summaries:
        entries.extend(s.payments)
        installments += s.installments
        total += s.total_amount
    return summarize_progress(installments, total, entries)


def summarize_group(summaries: Sequence[ProgressSummary]) -> GroupSummary:
    lunas = sum(1 for s in summaries if s.status == LUNAS)
    sebagian = sum(1 for s in summaries if s.status == SEBAGIAN)
    belum = sum(1 for s in summaries if s.status == BELUM_BAYAR)
    total_amount = sum((s.total_amount for s in summaries), ZERO)
    paid_amount = sum((s.paid_amount for s in summaries), ZERO)
    pct = round_percentage(lunas, len(summaries))

    return GroupSummary(
        total=len(summaries),
        lunas_count=lunas,
        sebagian_count=sebagian,
        belum_bayar_count=belum,
        total_amount=total_amount,
        paid_amount=paid_amount,
        completion_percentage=pct,
        amount_percentage=amount_percentage(paid_amount, total_amount),
        health=health_band(pct),
    )


def is_fully_paid(bill) -> bool:
    """A bill is paid once every installment is in, or the full amount is."""
    summary = summarize_bill(bill)
    if summary.completed_payments >= bill.installments:
        return True
    return summary.total_amount > 0 and summary.paid_amount >= summary.total_amount


def due_cutoff(today: date, due_soon_days: int) -> date:
    return today + timedelta(days=due_soon_days)
