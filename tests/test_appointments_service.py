import threading

import pytest
from fastapi import HTTPException

from medibook.application.services.appointments_service import AppointmentsService
from medibook.utils import hash_password


def make_service(appts, doctors, users, audit=None, attempts=5):
    return AppointmentsService(repo=appts, doctor_repo=doctors, user_repo=users, audit=audit, max_ledger_attempts=attempts)


def make_user(users, email="ana@clinic.com"):
    return users.create("Ana", email, hash_password("secret1"))


def test_book_records_snapshots_and_reserves_slot(appts, doctors, users, audit):
    doctor = doctors.add(fees=75.0)
    user = make_user(users)
    svc = make_service(appts, doctors, users, audit)

    out = svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    assert out.amount == 75.0
    assert out.user_data["email"] == "ana@clinic.com"
    assert out.doc_data["name"] == "Dr. Rao"
    assert "password" not in out.doc_data and "slots_booked" not in out.doc_data
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}
    assert audit.entries[-1][0] == "book_appointment"


def test_snapshot_not_affected_by_later_profile_change(appts, doctors, users):
    doctor = doctors.add(fees=75.0)
    user = make_user(users)
    svc = make_service(appts, doctors, users)
    out = svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    doctors.update_profile(doctor.id, 120.0, None, None)
    users.update_profile_fields(user.id, {"name": "Ana Maria"})

    stored = appts.get_by_id(out.id)
    assert stored.doc_data["fees"] == 75.0
    assert stored.amount == 75.0
    assert stored.user_data["name"] == "Ana"


def test_second_booking_of_same_slot_is_rejected(appts, doctors, users):
    doctor = doctors.add()
    first = make_user(users)
    second = make_user(users, "bo@clinic.com")
    svc = make_service(appts, doctors, users)

    svc.book(first.id, doctor.id, "2024-01-01", "10:00")
    with pytest.raises(HTTPException) as e:
        svc.book(second.id, doctor.id, "2024-01-01", "10:00")

    assert e.value.status_code == 400
    assert e.value.detail == "Slot is already booked"
    assert len(appts.appts) == 1
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}


def test_book_validations(appts, doctors, users):
    user = make_user(users)
    unavailable = doctors.add(available=False)
    svc = make_service(appts, doctors, users)

    with pytest.raises(HTTPException) as e:
        svc.book(user.id, None, "2024-01-01", "10:00")
    assert e.value.detail == "All fields are required"

    with pytest.raises(HTTPException) as e:
        svc.book(user.id, 999, "2024-01-01", "10:00")
    assert e.value.status_code == 404

    with pytest.raises(HTTPException) as e:
        svc.book(user.id, unavailable.id, "2024-01-01", "10:00")
    assert e.value.detail == "Doctor is not available"
    assert doctors.get(unavailable.id).slots_booked == {}
    assert appts.appts == []


def test_cancel_by_non_owner_is_rejected_without_changes(appts, doctors, users):
    doctor = doctors.add()
    owner = make_user(users)
    other = make_user(users, "eve@clinic.com")
    svc = make_service(appts, doctors, users)
    appt = svc.book(owner.id, doctor.id, "2024-01-01", "10:00")

    with pytest.raises(HTTPException) as e:
        svc.cancel(other.id, appt.id)

    assert e.value.status_code == 403
    assert appts.get_by_id(appt.id).cancelled is False
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}


def test_book_cancel_rebook_cycle(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    other = make_user(users, "bo@clinic.com")
    svc = make_service(appts, doctors, users)

    appt = svc.book(user.id, doctor.id, "2024-01-01", "10:00")
    svc.cancel(user.id, appt.id)

    assert appts.get_by_id(appt.id).cancelled is True
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": []}

    again = svc.book(other.id, doctor.id, "2024-01-01", "10:00")
    assert again.id != appt.id
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}


def test_repeat_cancel_keeps_rebooked_slot(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    other = make_user(users, "bo@clinic.com")
    svc = make_service(appts, doctors, users)

    appt = svc.book(user.id, doctor.id, "2024-01-01", "10:00")
    svc.cancel(user.id, appt.id)
    svc.book(other.id, doctor.id, "2024-01-01", "10:00")

    svc.cancel(user.id, appt.id)

    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}


def test_repeat_cancel_while_slot_is_being_rebooked(appts, doctors, users):
    doctor = doctors.add()
    ana = make_user(users)
    bo = make_user(users, "bo@clinic.com")
    cy = make_user(users, "cy@clinic.com")
    svc = make_service(appts, doctors, users)

    first = svc.book(ana.id, doctor.id, "2024-01-01", "10:00")
    svc.cancel(ana.id, first.id)

    # The old owner cancels again after the new reservation but before its insert
    def repeat_cancel():
        appts.on_create = None
        svc.cancel(ana.id, first.id)

    appts.on_create = repeat_cancel
    svc.book(bo.id, doctor.id, "2024-01-01", "10:00")

    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}
    with pytest.raises(HTTPException) as e:
        svc.book(cy.id, doctor.id, "2024-01-01", "10:00")
    assert e.value.detail == "Slot is already booked"
    active = [a for a in appts.appts if not a.cancelled]
    assert [a.user_id for a in active] == [bo.id]


def test_cancel_is_undone_when_slot_release_fails(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    svc = make_service(appts, doctors, users, attempts=2)
    appt = svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    def always_stale(doctor_id):
        doctors.versions[doctor_id] += 1

    doctors.before_cas = always_stale
    with pytest.raises(HTTPException) as e:
        svc.cancel(user.id, appt.id)

    assert e.value.status_code == 409
    assert appts.get_by_id(appt.id).cancelled is False
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}

    doctors.before_cas = None
    svc.cancel(user.id, appt.id)
    assert appts.get_by_id(appt.id).cancelled is True
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": []}


def test_cancel_completed_appointment_is_rejected(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    svc = make_service(appts, doctors, users)
    appt = svc.book(user.id, doctor.id, "2024-01-01", "10:00")
    svc.complete_by_doctor(doctor.id, appt.id)

    with pytest.raises(HTTPException) as e:
        svc.cancel(user.id, appt.id)
    assert e.value.detail == "Cannot cancel completed appointment"
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}


def test_doctor_actions_require_ownership(appts, doctors, users):
    doctor = doctors.add()
    other_doctor = doctors.add(name="Dr. Iyer")
    user = make_user(users)
    svc = make_service(appts, doctors, users)
    appt = svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    with pytest.raises(HTTPException) as e:
        svc.complete_by_doctor(other_doctor.id, appt.id)
    assert e.value.status_code == 403
    with pytest.raises(HTTPException) as e:
        svc.cancel_by_doctor(other_doctor.id, appt.id)
    assert e.value.status_code == 403

    svc.cancel_by_doctor(doctor.id, appt.id)
    assert appts.get_by_id(appt.id).cancelled is True
    with pytest.raises(HTTPException) as e:
        svc.complete_by_doctor(doctor.id, appt.id)
    assert e.value.detail == "Cannot complete cancelled appointment"


def test_admin_cancel_releases_slot(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    svc = make_service(appts, doctors, users)
    appt = svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    svc.cancel_by_admin(appt.id)

    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": []}
    with pytest.raises(HTTPException) as e:
        svc.cancel_by_admin(12345)
    assert e.value.status_code == 404


def test_lost_race_rereads_and_sees_slot_taken(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    svc = make_service(appts, doctors, users)

    def competing_writer(doctor_id):
        doctors.before_cas = None
        ledger, version = doctors.get_ledger(doctor_id)
        ledger.setdefault("2024-01-01", []).append("10:00")
        assert doctors.compare_and_set_ledger(doctor_id, version, ledger)

    doctors.before_cas = competing_writer
    with pytest.raises(HTTPException) as e:
        svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    assert e.value.detail == "Slot is already booked"
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}
    assert appts.appts == []


def test_lost_race_on_other_slot_retries_and_keeps_both(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    svc = make_service(appts, doctors, users)

    def competing_writer(doctor_id):
        doctors.before_cas = None
        ledger, version = doctors.get_ledger(doctor_id)
        ledger.setdefault("2024-01-01", []).append("09:00")
        assert doctors.compare_and_set_ledger(doctor_id, version, ledger)

    doctors.before_cas = competing_writer
    svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    assert sorted(doctors.get(doctor.id).slots_booked["2024-01-01"]) == ["09:00", "10:00"]


def test_ledger_contention_gives_up_after_attempts(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    svc = make_service(appts, doctors, users, attempts=3)
    doctors.compare_and_set_ledger = lambda doctor_id, expected_version, ledger: False

    with pytest.raises(HTTPException) as e:
        svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    assert e.value.status_code == 409
    assert appts.appts == []


def test_failed_insert_releases_reserved_slot(appts, doctors, users):
    doctor = doctors.add()
    user = make_user(users)
    svc = make_service(appts, doctors, users)
    appts.fail_create = True

    with pytest.raises(RuntimeError):
        svc.book(user.id, doctor.id, "2024-01-01", "10:00")

    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": []}


def test_concurrent_bookings_for_one_slot_admit_exactly_one(appts, doctors, users):
    doctor = doctors.add()
    first = make_user(users)
    second = make_user(users, "bo@clinic.com")
    svc = make_service(appts, doctors, users)

    # Both threads read the ledger before either writes
    barrier = threading.Barrier(2)
    original_get_ledger = doctors.get_ledger
    seen = set()

    def get_ledger(doctor_id):
        result = original_get_ledger(doctor_id)
        ident = threading.get_ident()
        if ident not in seen:
            seen.add(ident)
            barrier.wait(timeout=5)
        return result

    doctors.get_ledger = get_ledger
    outcomes = []

    def attempt(user_id):
        try:
            svc.book(user_id, doctor.id, "2024-01-01", "10:00")
            outcomes.append("ok")
        except HTTPException as e:
            outcomes.append(e.status_code)

    threads = [threading.Thread(target=attempt, args=(u.id,)) for u in (first, second)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert sorted(outcomes, key=str) == [400, "ok"]
    assert len(appts.appts) == 1
    assert doctors.get(doctor.id).slots_booked == {"2024-01-01": ["10:00"]}
