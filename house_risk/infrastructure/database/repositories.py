"""Data access layer for houses, charges, the advance ledger and HSI state"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from house_risk.domain.models import ChargeRecord, ChargeStatus, TransactionType
from house_risk.infrastructure.database.models import (
    Bill,
    Charge,
    House,
    HouseRiskHistory,
    HouseStatusIndex,
    LedgerTransaction,
    User,
)
from house_risk.utils.money import quantize_cents, to_decimal


class HouseRepository:
    """Repository for houses and their members"""

    def __init__(self, db: Session):
        self.db = db

    def get_house(self, house_id: int) -> Optional[House]:
        return self.db.get(House, house_id)

    def list_houses(self) -> List[House]:
        return self.db.query(House).order_by(House.id.asc()).all()

    def get_member_ids(self, house_id: int) -> List[int]:
        rows = self.db.query(User.id).filter(User.house_id == house_id).order_by(User.id.asc()).all()
        return [row.id for row in rows]


class ChargeRepository:
    """Repository for bills and charges"""

    def __init__(self, db: Session):
        self.db = db

    def get_charges_for_house_since(self, house_id: int, since: datetime) -> List[ChargeRecord]:
        """Charges owed by current house members created on or after `since`"""
        rows = (
            self.db.query(Charge)
            .join(User, Charge.user_id == User.id)
            .filter(User.house_id == house_id, Charge.created_at >= since)
            .all()
        )
        return [
            ChargeRecord(
                id=c.id,
                user_id=c.user_id,
                amount=to_decimal(c.amount),
                status=c.status,
                due_date=c.due_date,
                created_at=c.created_at,
            )
            for c in rows
        ]

    def get_bill(self, bill_id: int) -> Optional[Bill]:
        return self.db.get(Bill, bill_id)

    def get_charge(self, charge_id: int, for_update: bool = False) -> Optional[Charge]:
        query = self.db.query(Charge).filter(Charge.id == charge_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_unpaid_charges_for_bill(self, bill_id: int) -> List[Charge]:
        """Unpaid, not-yet-advanced charges, row-locked for the rest of the transaction"""
        return (
            self.db.query(Charge)
            .filter(
                Charge.bill_id == bill_id,
                Charge.status == ChargeStatus.UNPAID.value,
                Charge.advanced.is_(False),
            )
            .order_by(Charge.id.asc())
            .with_for_update()
            .all()
        )

    def _outstanding_advances_query(self, house_id: int):
        return (
            self.db.query(Charge)
            .join(Bill, Charge.bill_id == Bill.id)
            .filter(
                Bill.house_id == house_id,
                Charge.advanced.is_(True),
                Charge.status == ChargeStatus.UNPAID.value,
            )
        )

    def sum_outstanding_advanced(self, house_id: int) -> Decimal:
        """State-based outstanding: advanced charges the members still owe"""
        total = (
            self._outstanding_advances_query(house_id)
            .with_entities(func.coalesce(func.sum(Charge.amount), 0))
            .scalar()
        )
        return quantize_cents(to_decimal(total))

    def list_outstanding_advances(self, house_id: int) -> List[Charge]:
        return self._outstanding_advances_query(house_id).order_by(Charge.advanced_at.asc(), Charge.id.asc()).all()

    def mark_advanced(self, charge: Charge, at: datetime) -> None:
        charge.advanced = True
        charge.advanced_at = at

    def mark_repaid(self, charge: Charge, at: datetime) -> None:
        charge.status = ChargeStatus.PAID.value
        charge.repaid_at = at


class LedgerRepository:
    """Repository for the insert-only transaction ledger"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(
        self,
        house_id: int,
        type: TransactionType,
        amount: Decimal,
        balance_before: Decimal,
        balance_after: Decimal,
        description: str,
        metadata: Dict[str, Any],
        charge_id: Optional[int] = None,
        bill_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> LedgerTransaction:
        entry = LedgerTransaction(
            house_id=house_id,
            user_id=user_id,
            bill_id=bill_id,
            charge_id=charge_id,
            type=type.value,
            amount=quantize_cents(amount),
            balance_before=quantize_cents(balance_before),
            balance_after=quantize_cents(balance_after),
            description=description,
            meta=metadata,
        )
        self.db.add(entry)
        self.db.flush()  # Get ID without committing
        return entry

    def sum_by_types(self, house_id: int, types: Iterable[TransactionType]) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(LedgerTransaction.amount), 0))
            .filter(
                LedgerTransaction.house_id == house_id,
                LedgerTransaction.type.in_([t.value for t in types]),
            )
            .scalar()
        )
        return quantize_cents(to_decimal(total))

    def list_by_type(self, house_id: int, type: TransactionType) -> List[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.house_id == house_id, LedgerTransaction.type == type.value)
            .order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id.desc())
            .all()
        )

    def find_for_charge(self, charge_id: int, type: TransactionType) -> Optional[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.charge_id == charge_id, LedgerTransaction.type == type.value)
            .order_by(LedgerTransaction.created_at.asc(), LedgerTransaction.id.asc())
            .first()
        )


class HSIRepository:
    """Repository for the current-state HSI row"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_house(self, house_id: int, for_update: bool = False) -> Optional[HouseStatusIndex]:
        query = self.db.query(HouseStatusIndex).filter(HouseStatusIndex.house_id == house_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def upsert(self, house_id: int, values: Dict[str, Any]) -> Tuple[HouseStatusIndex, bool]:
        """Find-or-create the house's row and overwrite it. Returns (row, created)."""
        row = self.get_by_house(house_id, for_update=True)
        created = row is None
        if created:
            row = HouseStatusIndex(house_id=house_id)
            self.db.add(row)
        for key, value in values.items():
            setattr(row, key, value)
        self.db.flush()
        return row, created


class RiskHistoryRepository:
    """Repository for HSI snapshots"""

    def __init__(self, db: Session):
        self.db = db

    def create_snapshot(self, **fields) -> HouseRiskHistory:
        snapshot = HouseRiskHistory(**fields)
        self.db.add(snapshot)
        self.db.flush()
        return snapshot

    def list_for_house(
        self,
        house_id: int,
        snapshot_type: Optional[str] = None,
        limit: int = 52,
    ) -> List[HouseRiskHistory]:
        query = self.db.query(HouseRiskHistory).filter(HouseRiskHistory.house_id == house_id)
        if snapshot_type:
            query = query.filter(HouseRiskHistory.snapshot_type == snapshot_type)
        return (
            query.order_by(HouseRiskHistory.assessment_date.desc(), HouseRiskHistory.id.desc())
            .limit(limit)
            .all()
        )

    def delete_before(self, snapshot_type: str, cutoff: datetime) -> int:
        return (
            self.db.query(HouseRiskHistory)
            .filter(HouseRiskHistory.snapshot_type == snapshot_type, HouseRiskHistory.created_at < cutoff)
            .delete(synchronize_session=False)
        )
