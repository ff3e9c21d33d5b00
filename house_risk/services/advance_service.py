"""Advance allowance service - sizes, gates and records platform-fronted money"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from house_risk.config import settings
from house_risk.domain.exceptions import (
    BillNotFoundError,
    ChargeNotAdvancedError,
    ChargeNotFoundError,
    InsufficientAllowanceError,
)
from house_risk.domain.models import (
    AdvanceAudit,
    AdvanceDecision,
    AdvancedCharge,
    AdvanceMetadata,
    AdvanceRepaymentPair,
    AdvanceResult,
    ChargeStatus,
    RepaymentMetadata,
    RepaymentResult,
    TransactionType,
    UsageReport,
)
from house_risk.infrastructure.database.locks import HouseLockRegistry, house_locks
from house_risk.infrastructure.database.models import Charge
from house_risk.infrastructure.database.repositories import ChargeRepository, HSIRepository, LedgerRepository
from house_risk.infrastructure.database.session import SessionFactory, SessionLocal, read_scope, session_scope
from house_risk.infrastructure.observability.logging import log_advance, log_ledger_drift
from house_risk.infrastructure.observability.metrics import ledger_drift_counter, record_advance
from house_risk.utils.date_utils import utcnow
from house_risk.utils.money import ZERO, quantize_cents, round_dollars, sum_amounts, to_decimal

logger = logging.getLogger(__name__)

OUTSTANDING_TYPES = (TransactionType.ADVANCE, TransactionType.CREDIT_USAGE)
REPAID_TYPES = (TransactionType.ADVANCE_REPAYMENT,)


class AdvanceService:
    """
    Converts a house's credit multiplier into a dollar ceiling and fronts
    unpaid charges against it.

    Outstanding exposure is state-based (advanced, still-unpaid charges). The
    transaction ledger is summed alongside it only as an audit cross-check and
    never drives a gating decision.
    """

    def __init__(
        self,
        session_factory: SessionFactory = SessionLocal,
        base_allowance: Optional[int] = None,
        drift_tolerance: Optional[float] = None,
        locks: HouseLockRegistry = house_locks,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.base_allowance = Decimal(base_allowance if base_allowance is not None else settings.base_advance_allowance)
        self.drift_tolerance = to_decimal(drift_tolerance if drift_tolerance is not None else settings.ledger_drift_tolerance)
        self.locks = locks
        self.clock = clock

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_allowance(self, house_id: int, db: Optional[Session] = None) -> Decimal:
        """round(BASE_ALLOWANCE x creditMultiplier); multiplier 1.0 until the house is first scored"""
        if db is None:
            with read_scope(self.session_factory) as session:
                return self.get_allowance(house_id, session)

        current = HSIRepository(db).get_by_house(house_id)
        multiplier = to_decimal(current.credit_multiplier) if current is not None else Decimal("1.0")
        return round_dollars(self.base_allowance * multiplier)

    def get_usage(self, house_id: int, db: Optional[Session] = None) -> UsageReport:
        if db is None:
            with read_scope(self.session_factory) as session:
                return self.get_usage(house_id, session)

        allowance = self.get_allowance(house_id, db)

        # Authoritative: advanced charges the members still owe
        outstanding = ChargeRepository(db).sum_outstanding_advanced(house_id)

        # Audit only: what the ledger says is out
        ledger = LedgerRepository(db)
        total_advanced = ledger.sum_by_types(house_id, OUTSTANDING_TYPES)
        total_repaid = ledger.sum_by_types(house_id, REPAID_TYPES)
        transaction_based = total_advanced - total_repaid
        drift = outstanding - transaction_based
        drift_detected = abs(drift) > self.drift_tolerance

        if drift_detected:
            ledger_drift_counter.inc()
            log_ledger_drift(house_id, outstanding, transaction_based)

        return UsageReport(
            allowance=allowance,
            outstanding_advanced=outstanding,
            remaining=max(allowance - outstanding, ZERO),
            audit=AdvanceAudit(
                total_advanced=total_advanced,
                total_repaid=total_repaid,
                transaction_based=transaction_based,
                drift=drift,
                drift_detected=drift_detected,
            ),
        )

    def can_advance(self, house_id: int, amount: Decimal, db: Optional[Session] = None) -> AdvanceDecision:
        """
        Pure check. The answer is stale as soon as it is returned; anything that
        acts on it must re-check inside its own write transaction.
        """
        usage = self.get_usage(house_id, db)
        requested = quantize_cents(amount)
        return AdvanceDecision(
            allowed=requested <= usage.remaining,
            requested=requested,
            allowance=usage.allowance,
            outstanding_advanced=usage.outstanding_advanced,
            remaining=usage.remaining,
            total_advanced=usage.audit.total_advanced,
            total_repaid=usage.audit.total_repaid,
            used=usage.audit.transaction_based,
        )

    def get_advanced_charges(self, house_id: int, db: Optional[Session] = None) -> List[Charge]:
        """Outstanding advances, oldest exposure first"""
        if db is None:
            with read_scope(self.session_factory) as session:
                return self.get_advanced_charges(house_id, session)
        return ChargeRepository(db).list_outstanding_advances(house_id)

    def get_advance_repayment_pairs(self, house_id: int, db: Optional[Session] = None) -> List[AdvanceRepaymentPair]:
        """Each ADVANCE with its matching ADVANCE_REPAYMENT (by charge), newest advance first"""
        if db is None:
            with read_scope(self.session_factory) as session:
                return self.get_advance_repayment_pairs(house_id, session)

        ledger = LedgerRepository(db)
        pairs = []
        for advance in ledger.list_by_type(house_id, TransactionType.ADVANCE):
            repayment = None
            if advance.charge_id is not None:
                repayment = ledger.find_for_charge(advance.charge_id, TransactionType.ADVANCE_REPAYMENT)
            days_between = None
            if repayment is not None:
                days_between = (repayment.created_at - advance.created_at).days
            pairs.append(
                AdvanceRepaymentPair(
                    advance_transaction_id=advance.id,
                    repayment_transaction_id=repayment.id if repayment is not None else None,
                    charge_id=advance.charge_id,
                    amount=to_decimal(advance.amount),
                    status="repaid" if repayment is not None else "outstanding",
                    days_between=days_between,
                )
            )
        return pairs

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def advance_unpaid_charges(self, bill_id: int, db: Optional[Session] = None) -> AdvanceResult:
        """
        Front every unpaid charge on a bill, or none of them.

        Raises:
            BillNotFoundError: unknown bill
            InsufficientAllowanceError: the bill's unpaid total exceeds what the
                house has left; nothing is written
        """
        if db is not None:
            return self._advance(db, bill_id)

        with read_scope(self.session_factory) as session:
            bill = ChargeRepository(session).get_bill(bill_id)
            if bill is None:
                raise BillNotFoundError(bill_id)
            house_id = bill.house_id

        with self.locks.hold(house_id):
            with session_scope(self.session_factory) as session:
                return self._advance(session, bill_id)

    def _advance(self, db: Session, bill_id: int) -> AdvanceResult:
        charges = ChargeRepository(db)
        bill = charges.get_bill(bill_id)
        if bill is None:
            raise BillNotFoundError(bill_id)

        self.locks.acquire_advisory(db, bill.house_id)

        unpaid = charges.get_unpaid_charges_for_bill(bill_id)
        if not unpaid:
            record_advance("noop")
            log_advance(bill.house_id, bill_id, ZERO, 0, "noop")
            return AdvanceResult(bill_id=bill_id, house_id=bill.house_id, advanced_amount=ZERO, charges_advanced=[])

        total_unpaid = sum_amounts(c.amount for c in unpaid)

        # Re-check against current state inside the write transaction
        decision = self.can_advance(bill.house_id, total_unpaid, db)
        if not decision.allowed:
            record_advance("rejected")
            log_advance(bill.house_id, bill_id, total_unpaid, len(unpaid), "rejected")
            raise InsufficientAllowanceError(total_unpaid, decision.remaining, decision.allowance)

        ledger = LedgerRepository(db)
        now = self.clock()
        balance = decision.outstanding_advanced
        advanced = []

        for charge in unpaid:
            amount = to_decimal(charge.amount)
            ledger.create_transaction(
                house_id=bill.house_id,
                type=TransactionType.ADVANCE,
                amount=amount,
                balance_before=balance,
                balance_after=balance + amount,
                description=f"Platform advanced payment for charge {charge.id}",
                metadata=AdvanceMetadata(
                    bill_id=bill.id,
                    advance_date=now,
                    original_due_date=charge.due_date,
                ).to_dict(),
                charge_id=charge.id,
                bill_id=bill.id,
                user_id=charge.user_id,
            )
            charges.mark_advanced(charge, now)
            balance += amount
            advanced.append(AdvancedCharge(id=charge.id, amount=amount, user_id=charge.user_id))

        db.flush()
        record_advance("advanced", total_unpaid)
        log_advance(bill.house_id, bill_id, total_unpaid, len(advanced), "advanced")

        return AdvanceResult(
            bill_id=bill_id,
            house_id=bill.house_id,
            advanced_amount=total_unpaid,
            charges_advanced=advanced,
        )

    def record_repayment(self, charge_id: int, db: Optional[Session] = None) -> RepaymentResult:
        """
        A member paid a charge the platform had fronted: mark it paid and write
        the matching ADVANCE_REPAYMENT in the same unit of work.
        """
        if db is not None:
            return self._repay(db, charge_id)

        with read_scope(self.session_factory) as session:
            charge = ChargeRepository(session).get_charge(charge_id)
            if charge is None:
                raise ChargeNotFoundError(charge_id)
            if charge.bill is None:
                raise ChargeNotAdvancedError(charge_id)
            house_id = charge.bill.house_id

        with self.locks.hold(house_id):
            with session_scope(self.session_factory) as session:
                return self._repay(session, charge_id)

    def _repay(self, db: Session, charge_id: int) -> RepaymentResult:
        charges = ChargeRepository(db)
        charge = charges.get_charge(charge_id, for_update=True)
        if charge is None:
            raise ChargeNotFoundError(charge_id)
        if not charge.advanced or charge.status != ChargeStatus.UNPAID.value or charge.bill is None:
            raise ChargeNotAdvancedError(charge_id)

        house_id = charge.bill.house_id
        self.locks.acquire_advisory(db, house_id)

        amount = to_decimal(charge.amount)
        outstanding = charges.sum_outstanding_advanced(house_id)
        now = self.clock()

        entry = LedgerRepository(db).create_transaction(
            house_id=house_id,
            type=TransactionType.ADVANCE_REPAYMENT,
            amount=amount,
            balance_before=outstanding,
            balance_after=outstanding - amount,
            description=f"Repayment of advanced charge {charge.id}",
            metadata=RepaymentMetadata(
                bill_id=charge.bill_id,
                repaid_at=now,
                advanced_at=charge.advanced_at,
            ).to_dict(),
            charge_id=charge.id,
            bill_id=charge.bill_id,
            user_id=charge.user_id,
        )
        charges.mark_repaid(charge, now)
        db.flush()

        logger.info(
            "Advance repaid",
            extra={"house_id": house_id, "charge_id": charge.id, "amount": str(amount)},
        )
        return RepaymentResult(charge_id=charge.id, house_id=house_id, amount=amount, transaction_id=entry.id)
