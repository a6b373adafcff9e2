"""Slot Ledger: the only writer of ``Slot.status``."""
import logging

from sqlalchemy import select, update

from models.slot import Slot, SlotStatus
from services.errors import InvalidState, NotFound

logger = logging.getLogger(__name__)


class SlotLedger:
    """
    Availability state of every slot.

    Mutations are single conditional UPDATEs and never commit; they take effect
    with the caller's atomic unit.
    """

    def __init__(self, session):
        self.session = session

    def get(self, slot_id: int) -> Slot:
        slot = self.session.get(Slot, slot_id)
        if slot is None:
            raise NotFound("Slot", slot_id)
        return slot

    def _move(self, slot_id: int, expected: SlotStatus, new: SlotStatus) -> bool:
        result = self.session.execute(
            update(Slot)
            .where(Slot.id == slot_id, Slot.status == expected.value)
            .values(status=new.value)
        )
        return result.rowcount == 1

    def _require_move(self, slot_id: int, expected: SlotStatus, new: SlotStatus):
        if not self._move(slot_id, expected, new):
            actual = self.session.execute(
                select(Slot.status).where(Slot.id == slot_id)
            ).scalar_one_or_none()
            if actual is None:
                raise NotFound("Slot", slot_id)
            raise InvalidState(slot_id, expected.value, actual)

    def try_reserve(self, slot_id: int) -> bool:
        """AVAILABLE -> BOOKED. False means somebody else got there first."""
        reserved = self._move(slot_id, SlotStatus.AVAILABLE, SlotStatus.BOOKED)
        if not reserved:
            logger.info("Slot %s reservation lost: not AVAILABLE at write time", slot_id)
        return reserved

    def release(self, slot_id: int):
        """BOOKED -> AVAILABLE, or ``InvalidState`` if the slot was not BOOKED."""
        self._require_move(slot_id, SlotStatus.BOOKED, SlotStatus.AVAILABLE)

    def block(self, slot_id: int):
        self._require_move(slot_id, SlotStatus.AVAILABLE, SlotStatus.BLOCKED)

    def unblock(self, slot_id: int):
        self._require_move(slot_id, SlotStatus.BLOCKED, SlotStatus.AVAILABLE)
