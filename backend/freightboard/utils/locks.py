"""Edit locking for a load's descriptive fields.

Shippers may change the route, schedule, freight details and rate of a
load only while it is still posted and no carrier is bound to it. The
check returns a LockInfo describing which fields are locked and why,
without raising; the caller decides whether the requested edit collides.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from freightboard.models.load import Load, LoadStatus


# ── Data structures ────────────────────────────────────────────


@dataclass
class FieldLock:
    """A single locked field with reason and unlock instructions."""
    field: str
    reason: str
    blocker_type: str   # "carrier_assigned", "load_status"
    blocker_ref: str    # load number or status
    unlock_hint: str


@dataclass
class LockInfo:
    """Lock state for a load.  Empty locked_fields means nothing locked."""
    locked_fields: dict[str, FieldLock] = field(default_factory=dict)

    def check_update(self, updating_fields: set[str]) -> FieldLock | None:
        """Return the first FieldLock that conflicts, or None."""
        for f in sorted(updating_fields):
            if f in self.locked_fields:
                return self.locked_fields[f]
        return None


def _add_locks(
    info: LockInfo,
    field_names: list[str],
    reason: str,
    blocker_type: str,
    blocker_ref: str,
    unlock_hint: str,
) -> None:
    for name in field_names:
        info.locked_fields[name] = FieldLock(
            field=name,
            reason=f"Cannot edit {name}: {reason}",
            blocker_type=blocker_type,
            blocker_ref=blocker_ref,
            unlock_hint=unlock_hint,
        )


# ── Load locks ─────────────────────────────────────────────────


LOAD_EDITABLE_FIELDS = [
    "origin", "destination",
    "load_type", "equipment_type", "details",
    "pickup_date", "delivery_date", "pickup_time", "delivery_time",
    "rate", "currency", "contact_info", "reference_number",
]


def get_load_locks(load: Load) -> LockInfo:
    """Lock every descriptive field once a carrier is bound or the load left ``posted``."""
    info = LockInfo()

    if load.carrier_id is not None:
        _add_locks(
            info,
            LOAD_EDITABLE_FIELDS,
            reason=f"load {load.load_number} is assigned to a carrier",
            blocker_type="carrier_assigned",
            blocker_ref=load.load_number,
            unlock_hint="Assigned loads cannot be edited; cancel and repost instead.",
        )
    elif load.status != LoadStatus.POSTED:
        _add_locks(
            info,
            LOAD_EDITABLE_FIELDS,
            reason=f"load {load.load_number} is {LoadStatus(load.status).value}",
            blocker_type="load_status",
            blocker_ref=LoadStatus(load.status).value,
            unlock_hint="Only posted loads can be edited.",
        )
    return info
