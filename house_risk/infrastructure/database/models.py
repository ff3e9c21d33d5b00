"""SQLAlchemy ORM models for houses, charges, the advance ledger and HSI state"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from house_risk.utils.date_utils import utcnow

Base = declarative_base()


class House(Base):
    __tablename__ = "houses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    users = relationship("User", back_populates="house")
    bills = relationship("Bill", back_populates="house")
    status_index = relationship("HouseStatusIndex", back_populates="house", uselist=False)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    house_id = Column(Integer, ForeignKey("houses.id", ondelete="SET NULL"), nullable=True, index=True)
    username = Column(Text, nullable=False)
    email = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    house = relationship("House", back_populates="users")
    charges = relationship("Charge", back_populates="user")


class Bill(Base):
    __tablename__ = "bills"

    id = Column(Integer, primary_key=True, autoincrement=True)
    house_id = Column(Integer, ForeignKey("houses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    house = relationship("House", back_populates="bills")
    charges = relationship("Charge", back_populates="bill")


class Charge(Base):
    """One member's share of a bill"""

    __tablename__ = "charges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bill_id = Column(Integer, ForeignKey("bills.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(Text, nullable=False, default="")
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(16), nullable=False, default="unpaid", index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    advanced = Column(Boolean, nullable=False, default=False)
    advanced_at = Column(DateTime(timezone=True), nullable=True)
    repaid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    bill = relationship("Bill", back_populates="charges")
    user = relationship("User", back_populates="charges")

    __table_args__ = (Index("ix_charges_advanced_status", "advanced", "status"),)


class LedgerTransaction(Base):
    """Insert-only audit trail of money the platform fronts and gets back"""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    house_id = Column(Integer, ForeignKey("houses.id"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=True, index=True)
    charge_id = Column(Integer, ForeignKey("charges.id"), nullable=True, index=True)
    type = Column(String(32), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    balance_before = Column(Numeric(10, 2), nullable=False)
    balance_after = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class HouseStatusIndex(Base):
    """Current HSI state, one row per house, overwritten on every recomputation"""

    __tablename__ = "house_status_indexes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    house_id = Column(Integer, ForeignKey("houses.id", ondelete="CASCADE"), nullable=False, unique=True)
    score = Column(Integer, nullable=False, default=50)
    bracket = Column(Integer, nullable=False, default=5)
    fee_multiplier = Column(Numeric(6, 4), nullable=False, default=1)
    credit_multiplier = Column(Numeric(6, 4), nullable=False, default=1)
    updated_reason = Column(Text, nullable=True)
    last_risk_assessment = Column(DateTime(timezone=True), nullable=True)
    current_risk_factor = Column(Numeric(6, 4), nullable=True)
    trend_factor = Column(Numeric(6, 4), nullable=True)
    risk_multiplier = Column(Numeric(6, 4), nullable=True)
    unpaid_charges_count = Column(Integer, nullable=False, default=0)
    unpaid_amount = Column(Numeric(10, 2), nullable=False, default=0)
    risk_details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    house = relationship("House", back_populates="status_index")


class HouseRiskHistory(Base):
    """Append-only HSI + risk assessment snapshots"""

    __tablename__ = "house_risk_histories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    house_id = Column(Integer, ForeignKey("houses.id", ondelete="CASCADE"), nullable=False, index=True)
    assessment_date = Column(DateTime(timezone=True), nullable=False, index=True)
    risk_factor = Column(Numeric(6, 4), nullable=True)
    trend_factor = Column(Numeric(6, 4), nullable=True)
    multiplier = Column(Numeric(6, 4), nullable=True)
    hsi_score = Column(Integer, nullable=True)
    fee_multiplier = Column(Numeric(6, 4), nullable=True)
    snapshot_type = Column(String(32), nullable=False, default="weekly", index=True)
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True)

    __table_args__ = (Index("ix_house_risk_histories_house_date", "house_id", "assessment_date"),)
