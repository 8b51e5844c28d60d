"""Pure operations on a doctor's slot ledger.

A ledger maps a slot date label to the ordered list of time labels already
booked on that date. Functions here never mutate their input; they return a
new mapping so a repository can write it back with a conditional update.
"""
from typing import Dict, List

SlotLedger = Dict[str, List[str]]


class SlotAlreadyBooked(Exception):
    def __init__(self, slot_date: str, slot_time: str):
        super().__init__(f"{slot_date} {slot_time} is already booked")
        self.slot_date = slot_date
        self.slot_time = slot_time


def copy_ledger(ledger: SlotLedger) -> SlotLedger:
    return {day: list(times) for day, times in (ledger or {}).items()}


def is_booked(ledger: SlotLedger, slot_date: str, slot_time: str) -> bool:
    return slot_time in (ledger or {}).get(slot_date, [])


def reserve(ledger: SlotLedger, slot_date: str, slot_time: str) -> SlotLedger:
    """Return a ledger with slot_time appended under slot_date.

    Raises SlotAlreadyBooked if the time is already present for that date.
    """
    if is_booked(ledger, slot_date, slot_time):
        raise SlotAlreadyBooked(slot_date, slot_time)
    updated = copy_ledger(ledger)
    updated.setdefault(slot_date, []).append(slot_time)
    return updated


def release(ledger: SlotLedger, slot_date: str, slot_time: str) -> SlotLedger:
    # Releasing an absent slot is a no-op
    updated = copy_ledger(ledger)
    if slot_date in updated and slot_time in updated[slot_date]:
        updated[slot_date] = [t for t in updated[slot_date] if t != slot_time]
    return updated
