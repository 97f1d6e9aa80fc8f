from __future__ import annotations
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Integer, Numeric,
    String, Text, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from liquidaciones.db.base import Base


class Broker(Base):
    __tablename__ = "brokers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    business_name: Mapped[str | None] = mapped_column(String(200))


class StockUnit(Base):
    __tablename__ = "stock_unidades"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_name: Mapped[str] = mapped_column(String(200), nullable=False)
    unit_code: Mapped[str] = mapped_column(String(50), nullable=False)
    unit_type: Mapped[str] = mapped_column(String(50), nullable=False)  # DEPARTAMENTO | ESTACIONAMIENTO | BODEGA
    list_price: Mapped[Decimal] = mapped_column(Numeric(15, 4), default=Decimal("0"))
    discount: Mapped[Decimal] = mapped_column(Numeric(7, 6), default=Decimal("0"))  # fraction 0..1


class BrokerProjectCommission(Base):
    __tablename__ = "broker_project_commissions"
    __table_args__ = (UniqueConstraint("broker_id", "project_name"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    broker_id: Mapped[int] = mapped_column(ForeignKey("brokers.id"), nullable=False)
    project_name: Mapped[str] = mapped_column(String(200), nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)  # percent, e.g. 2.0

    broker: Mapped[Broker] = relationship()


class CommercialPolicy(Base):
    __tablename__ = "project_commercial_policies"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)


class Reservation(Base):
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    reservation_number: Mapped[str] = mapped_column(String(50), nullable=False)
    broker_id: Mapped[int | None] = mapped_column(ForeignKey("brokers.id"))
    project_name: Mapped[str] = mapped_column(String(200), nullable=False)
    minimum_price: Mapped[Decimal] = mapped_column(Numeric(15, 4), default=Decimal("0"))
    parking_price: Mapped[Decimal] = mapped_column(Numeric(15, 4), default=Decimal("0"))
    storage_price: Mapped[Decimal] = mapped_column(Numeric(15, 4), default=Decimal("0"))
    total_payment: Mapped[Decimal] = mapped_column(Numeric(15, 4), default=Decimal("0"))
    subsidy_payment: Mapped[Decimal] = mapped_column(Numeric(15, 4), default=Decimal("0"))
    is_rescinded: Mapped[bool] = mapped_column(Boolean, default=False)

    promotions: Mapped[list[Promotion]] = relationship(back_populates="reservation")


class Promotion(Base):
    __tablename__ = "promotions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    reservation_id: Mapped[int] = mapped_column(ForeignKey("reservations.id"), nullable=False)
    promotion_type: Mapped[str] = mapped_column(String(50), nullable=False)
    is_against_discount: Mapped[bool] = mapped_column(Boolean, default=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 4), default=Decimal("0"))

    reservation: Mapped[Reservation] = relationship(back_populates="promotions")


class BrokerCommission(Base):
    __tablename__ = "broker_commissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    broker_id: Mapped[int] = mapped_column(ForeignKey("brokers.id"), nullable=False)
    reservation_id: Mapped[int] = mapped_column(ForeignKey("reservations.id"), unique=True, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(15, 4), default=Decimal("0"))
    commission_includes_tax: Mapped[bool] = mapped_column(Boolean, default=True)
    pays_secondary: Mapped[bool] = mapped_column(Boolean, default=False)
    number_of_payments: Mapped[int] = mapped_column(Integer, default=1)
    first_payment_percentage: Mapped[int] = mapped_column(Integer, default=100)
    payment_1_date: Mapped[datetime | None] = mapped_column(DateTime)
    payment_2_date: Mapped[datetime | None] = mapped_column(DateTime)
    at_risk: Mapped[bool] = mapped_column(Boolean, default=False)
    penalty_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 4))
    is_netted: Mapped[bool] = mapped_column(Boolean, default=False)
    is_netting_absorber: Mapped[bool] = mapped_column(Boolean, default=False)
    difference: Mapped[Decimal | None] = mapped_column(Numeric(15, 4))
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    reservation: Mapped[Reservation] = relationship()

    __mapper_args__ = {"version_id_col": version}


class Netting(Base):
    __tablename__ = "nettings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    absorbing_commission_id: Mapped[int] = mapped_column(ForeignKey("broker_commissions.id"), nullable=False)
    total_netted: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    details: Mapped[list[NettingDetail]] = relationship(back_populates="netting")


class NettingDetail(Base):
    __tablename__ = "netting_details"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    netting_id: Mapped[int] = mapped_column(ForeignKey("nettings.id"), nullable=False)
    # a penalized commission can only ever be netted once
    penalized_commission_id: Mapped[int] = mapped_column(
        ForeignKey("broker_commissions.id"), unique=True, nullable=False,
    )
    penalty_amount: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)

    netting: Mapped[Netting] = relationship(back_populates="details")


class CommissionCalculation(Base):
    """Immutable liquidation snapshot."""

    __tablename__ = "commission_calculations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    broker_id: Mapped[int | None] = mapped_column(ForeignKey("brokers.id"))
    broker_name: Mapped[str | None] = mapped_column(String(200))
    project_name: Mapped[str | None] = mapped_column(String(200))
    unit_code: Mapped[str | None] = mapped_column(String(50))
    list_price: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    available_discount: Mapped[Decimal] = mapped_column(Numeric(7, 6), nullable=False)
    minimum_price: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    recovery_total_minimum: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    commission_uf: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    commission_pct: Mapped[Decimal] = mapped_column(Numeric(7, 6), nullable=False)
    discount_with_commission_uf: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    policy_notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
