"""Authenticated caller identity as a tagged variant.

Each role has its own frozen dataclass holding only the fields that make
sense for it. Core operations receive one of these explicitly and branch
on its type; nothing in the service layer reads request or session state.

    ShipperIdentity   owns loads, resolves offers, confirms delivery
    CarrierIdentity   bids on loads, moves assigned loads through transit
    DriverIdentity    hauls for a carrier account (``carrier_id``)
    AdminIdentity     read access everywhere, administrative deletion
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from freightboard.models.user import User, UserRole


@dataclass(frozen=True)
class ShipperIdentity:
    id: str
    company_name: str | None = None

    role: ClassVar[UserRole] = UserRole.SHIPPER


@dataclass(frozen=True)
class CarrierIdentity:
    id: str
    company_name: str | None = None
    mc_number: str | None = None

    role: ClassVar[UserRole] = UserRole.CARRIER


@dataclass(frozen=True)
class DriverIdentity:
    id: str
    carrier_id: str | None = None

    role: ClassVar[UserRole] = UserRole.DRIVER


@dataclass(frozen=True)
class AdminIdentity:
    id: str

    role: ClassVar[UserRole] = UserRole.ADMIN


Identity = Union[ShipperIdentity, CarrierIdentity, DriverIdentity, AdminIdentity]


def identity_from_user(user: User) -> Identity:
    """Build the role-specific identity for a user row."""
    if user.role == UserRole.SHIPPER:
        return ShipperIdentity(id=user.id, company_name=user.company_name)
    if user.role == UserRole.CARRIER:
        return CarrierIdentity(
            id=user.id, company_name=user.company_name, mc_number=user.mc_number,
        )
    if user.role == UserRole.DRIVER:
        return DriverIdentity(id=user.id, carrier_id=user.carrier_id)
    if user.role == UserRole.ADMIN:
        return AdminIdentity(id=user.id)
    raise ValueError(f"Unknown role: {user.role!r}")


def hauling_account_id(identity: Identity) -> str | None:
    """Carrier account whose loads and offers this identity acts on.

    Carriers act for themselves; a driver acts for the carrier they drive
    for, or for themselves when independent. Shippers and admins haul
    nothing.
    """
    if isinstance(identity, CarrierIdentity):
        return identity.id
    if isinstance(identity, DriverIdentity):
        return identity.carrier_id or identity.id
    return None


def acts_for_carrier(identity: Identity, carrier_id: str | None) -> bool:
    """True when the identity is the load's bound carrier or one of its drivers."""
    if carrier_id is None:
        return False
    if isinstance(identity, DriverIdentity):
        return carrier_id in (identity.id, identity.carrier_id)
    return hauling_account_id(identity) == carrier_id
