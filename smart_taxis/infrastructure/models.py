"""
SQLAlchemy ORM models  (maps to PostgreSQL; SQLite in tests).

Tables
------
* ``drivers``        -- taxi drivers and their availability
* ``bookings``       -- accepted customer bookings (fare fixed at creation)
* ``missions``       -- one per booking, tracks the simulated trip
* ``users``          -- login identities (admin / driver)
* ``access_tokens``  -- opaque bearer tokens issued on login

Foreign keys
------------
* ``bookings.driver_id`` -> ``drivers.id``  nullable, SET NULL on delete
* ``missions.booking_id`` -> ``bookings.id`` required, CASCADE on delete

Indexes
-------
* **B-Tree** on every ``status`` column, ``bookings.created_at`` and the
  foreign keys, used by the registry query and the dashboard window.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from smart_taxis.domain.enums import (
    BookingStatus,
    DriverStatus,
    MissionStatus,
    UserRole,
)


def _enum(enum_cls, name: str) -> Enum:
    # persist the lowercase values, not the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), unique=True, nullable=True)
    status = Column(
        _enum(DriverStatus, "driverstatus"),
        default=DriverStatus.AVAILABLE,
        nullable=False,
    )
    current_location = Column(String(255), nullable=True, default="Unknown")
    rating = Column(Float, default=5.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("idx_drivers_status", "status"),)


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True)
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30), nullable=False)
    pickup_location = Column(String(255), nullable=False)
    dropoff_location = Column(String(255), nullable=False)
    fare = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    distance_km = Column(Numeric(6, 1, asdecimal=False), nullable=False)
    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    driver_id = Column(
        Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    driver = relationship(DriverModel, lazy="joined")

    __table_args__ = (
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_driver", "driver_id"),
        Index("idx_bookings_created", "created_at"),
    )


class MissionModel(Base):
    __tablename__ = "missions"

    id = Column(String(32), primary_key=True)
    booking_id = Column(
        String(32),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    driver_id = Column(
        Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True
    )
    status = Column(
        _enum(MissionStatus, "missionstatus"),
        default=MissionStatus.ASSIGNED,
        nullable=False,
    )
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_missions_status", "status"),
        Index("idx_missions_driver", "driver_id"),
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(_enum(UserRole, "userrole"), default=UserRole.DRIVER, nullable=False)
    driver_id = Column(
        Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False)


class AccessTokenModel(Base):
    __tablename__ = "access_tokens"

    token = Column(String(64), primary_key=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_access_tokens_user", "user_id"),)
