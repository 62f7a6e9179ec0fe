from decimal import Decimal

import pytest
from sqlmodel import select

from finledger.core.errors import InsufficientBalanceError, NotFoundError, ValidationError
from finledger.models.allocation import AllocationType
from finledger.models.category import Category, EntryType
from finledger.models.transaction import Transaction
from finledger.services import allocations as allocation_service


def _transactions(session):
    return list(session.exec(select(Transaction)).all())


def test_mark_paid_twice_keeps_one_entry(session, user, make_account):
    account = make_account(user, balance="20")
    rent = allocation_service.create_allocation(session, user.id, "Rent", Decimal("20"), AllocationType.EXPENSE)

    rent = allocation_service.mark_paid(session, user.id, rent.id, "2025-01", account.id)

    session.refresh(account)
    assert account.balance == Decimal("0")
    assert [p.month for p in rent.monthly_payments] == ["2025-01"]
    first_paid_at = rent.monthly_payments[0].paid_date
    [synthetic] = _transactions(session)
    assert synthetic.type == EntryType.EXPENSE
    assert synthetic.amount == Decimal("20")
    assert synthetic.note == "Rent - 2025-01"

    with pytest.raises(InsufficientBalanceError):
        allocation_service.mark_paid(session, user.id, rent.id, "2025-01", account.id)

    session.refresh(rent)
    assert len(rent.monthly_payments) == 1
    assert rent.monthly_payments[0].paid_date == first_paid_at
    assert len(_transactions(session)) == 1
    session.refresh(account)
    assert account.balance == Decimal("0")


def test_remarking_a_month_applies_the_amount_again(session, user, make_account):
    account = make_account(user, balance="100")
    gym = allocation_service.create_allocation(session, user.id, "Gym", Decimal("30"), AllocationType.SAVINGS)

    allocation_service.mark_paid(session, user.id, gym.id, "2025-02", account.id)
    gym = allocation_service.mark_paid(session, user.id, gym.id, "2025-02", account.id)

    session.refresh(account)
    assert account.balance == Decimal("40")
    assert [p.month for p in gym.monthly_payments] == ["2025-02"]
    assert len(_transactions(session)) == 2


def test_overwrite_keeps_insertion_position(session, user, make_account):
    first = make_account(user, balance="100", name="First")
    second = make_account(user, balance="100", name="Second")
    plan = allocation_service.create_allocation(session, user.id, "Plan", Decimal("1"), AllocationType.EXPENSE)

    for month in ("2025-03", "2025-01", "2025-02"):
        allocation_service.mark_paid(session, user.id, plan.id, month, first.id)
    plan = allocation_service.mark_paid(session, user.id, plan.id, "2025-01", second.id)

    assert [p.month for p in plan.monthly_payments] == ["2025-03", "2025-01", "2025-02"]
    assert plan.monthly_payments[1].account_id == second.id
    assert all(p.paid for p in plan.monthly_payments)


def test_income_allocation_credits_and_creates_category(session, user, make_account):
    account = make_account(user, balance="0")
    salary = allocation_service.create_allocation(session, user.id, "Salary", Decimal("900"), AllocationType.INCOME)

    allocation_service.mark_paid(session, user.id, salary.id, "2025-04", account.id)

    session.refresh(account)
    assert account.balance == Decimal("900")
    [category] = session.exec(select(Category).where(Category.user_id == user.id)).all()
    assert category.type == EntryType.INCOME
    assert category.name == "Allocation Income"
    [synthetic] = _transactions(session)
    assert synthetic.category_id == category.id
    assert synthetic.type == EntryType.INCOME


def test_existing_category_is_reused(session, user, make_account, make_category):
    account = make_account(user, balance="50")
    food = make_category(user, EntryType.EXPENSE, name="Food")
    make_category(user, EntryType.EXPENSE, name="Later")
    plan = allocation_service.create_allocation(session, user.id, "Groceries", Decimal("10"), AllocationType.EXPENSE)

    allocation_service.mark_paid(session, user.id, plan.id, "2025-05", account.id)

    [synthetic] = _transactions(session)
    assert synthetic.category_id == food.id
    assert len(session.exec(select(Category)).all()) == 2


@pytest.mark.parametrize("month", ["2025-1", "25-01", "2025/01", "2025-01\n", "", "January", "٢٠٢٥-٠١"])
def test_malformed_month_is_rejected(session, user, make_account, month):
    account = make_account(user, balance="50")
    plan = allocation_service.create_allocation(session, user.id, "Plan", Decimal("10"), AllocationType.EXPENSE)

    with pytest.raises(ValidationError):
        allocation_service.mark_paid(session, user.id, plan.id, month, account.id)

    session.refresh(account)
    assert account.balance == Decimal("50")


def test_other_users_allocation_is_not_found(session, user, other_user, make_account):
    plan = allocation_service.create_allocation(session, user.id, "Plan", Decimal("10"), AllocationType.EXPENSE)
    foreign_account = make_account(other_user, balance="50")

    with pytest.raises(NotFoundError):
        allocation_service.mark_paid(session, other_user.id, plan.id, "2025-01", foreign_account.id)
    with pytest.raises(NotFoundError):
        allocation_service.delete_allocation(session, other_user.id, plan.id)


def test_update_and_filter_by_active(session, user):
    plan = allocation_service.create_allocation(session, user.id, "Plan", Decimal("10"), AllocationType.EXPENSE)
    allocation_service.create_allocation(session, user.id, "Other", Decimal("5"), AllocationType.INCOME)

    plan = allocation_service.update_allocation(session, user.id, plan.id, active=False, amount=Decimal("12"))

    assert plan.active is False
    assert plan.amount == Decimal("12")
    inactive = allocation_service.list_allocations(session, user.id, active=False)
    assert [a.id for a in inactive] == [plan.id]
    assert len(allocation_service.list_allocations(session, user.id)) == 2
