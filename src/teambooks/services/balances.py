"""Exercised vs. projected account balances."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from sqlmodel import col, select

from ..domain.dates import DateLike, parse_date, today
from ..domain.roles import Actor
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models import Total, Transaction
from .permissions import can_read, can_write, require, resolve_team_for_account

logger = get_logger(__name__)


@dataclass(frozen=True)
class Balance:
    """``projected`` counts every transaction; ``exercised`` only cleared ones."""

    exercised: float = 0.0
    projected: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"exercised": self.exercised, "projected": self.projected}


def aggregate_balance(rows: Iterable[tuple[float, bool]]) -> Balance:
    """Fold ``(amount, exercised)`` pairs into a balance."""

    exercised = 0.0
    projected = 0.0
    for amount, is_exercised in rows:
        projected += amount
        if is_exercised:
            exercised += amount
    return Balance(exercised=round(exercised, 2), projected=round(projected, 2))


def _resolve_cutoff(as_of: Optional[DateLike]) -> date:
    return today() if as_of is None else parse_date(as_of, "as_of")


def compute_balance(
    actor: Actor,
    account_id: int,
    as_of: Optional[DateLike] = None,
    *,
    session_factory: SessionFactory,
) -> Balance:
    """Balance of ``account_id`` over transactions dated on or before ``as_of``.

    ``as_of`` defaults to today's server-local date; an unparseable value
    raises ``BadInputError``.
    """

    cutoff = _resolve_cutoff(as_of)
    with session_factory() as session:
        team_id = resolve_team_for_account(session, account_id)
        require(can_read(session, team_id, actor))
        rows = session.exec(
            select(Transaction.amount, Transaction.exercised)
            .where(Transaction.account_id == account_id)
            .where(col(Transaction.date) <= cutoff)
        ).all()
    return aggregate_balance(rows)


def snapshot_total(
    actor: Actor,
    account_id: int,
    as_of: Optional[DateLike] = None,
    *,
    session_factory: SessionFactory,
) -> Total:
    """Persist the projected balance of an account as a ``Total`` row."""

    cutoff = _resolve_cutoff(as_of)
    with session_factory() as session:
        team_id = resolve_team_for_account(session, account_id)
        require(can_write(session, team_id, actor))
        rows = session.exec(
            select(Transaction.amount, Transaction.exercised)
            .where(Transaction.account_id == account_id)
            .where(col(Transaction.date) <= cutoff)
        ).all()
        balance = aggregate_balance(rows)
        total = Total(account_id=account_id, amount=balance.projected, date=cutoff)
        session.add(total)
        session.commit()
        session.refresh(total)
        session.expunge(total)

    logger.info(
        "Balance snapshot stored",
        extra={"account_id": account_id, "date": cutoff.isoformat(), "amount": total.amount},
    )
    return total


def list_totals(actor: Actor, account_id: int, *, session_factory: SessionFactory) -> list[Total]:
    with session_factory() as session:
        team_id = resolve_team_for_account(session, account_id)
        require(can_read(session, team_id, actor))
        totals = list(
            session.exec(
                select(Total).where(Total.account_id == account_id).order_by(col(Total.date))
            ).all()
        )
        session.expunge_all()
        return totals
