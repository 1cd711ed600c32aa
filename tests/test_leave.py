"""Leave workflow tests — request, history, cancel, pending, approve/reject, balances."""

from __future__ import annotations

from datetime import date, time, timedelta

import pytest
from sqlalchemy import func, select

from leave_portal.common.constants import LeaveStatus, LeaveType, TimeSlot, UserRole
from leave_portal.common.exceptions import BadRequestException
from leave_portal.common.models import AuditLog
from leave_portal.leave.models import LeaveBalance, LeaveRequest, LeaveRequestYearSplit
from leave_portal.leave.schemas import LeaveRequestCreate
from leave_portal.leave.service import hourly_leave_hours, split_usage_by_year
from tests.conftest import (
    TestSessionFactory,
    auth_headers_for,
    create_delegation,
    create_leave_balance,
    create_leave_quota,
    create_leave_request,
    create_setting,
    create_user,
    create_working_saturday,
)

TODAY = date.today()

# Monday 7 January 2030 .. Sunday 13 January 2030
MONDAY = date(2030, 1, 7)
SATURDAY = date(2030, 1, 12)
SUNDAY = date(2030, 1, 13)


def _body(start: date, end: date | None = None, **extra) -> dict:
    return {
        "leaveType": "VACATION",
        "startDate": start.isoformat(),
        "endDate": (end or start).isoformat(),
        "reason": "Family trip",
        **extra,
    }


async def _balance(user_id: int, leave_type: LeaveType, year: int) -> LeaveBalance | None:
    async with TestSessionFactory() as session:
        return (
            await session.execute(
                select(LeaveBalance).where(
                    LeaveBalance.user_id == user_id,
                    LeaveBalance.leave_type == leave_type,
                    LeaveBalance.year == year,
                )
            )
        ).scalar_one_or_none()


async def _request(leave_id: int) -> LeaveRequest:
    async with TestSessionFactory() as session:
        return await session.get(LeaveRequest, leave_id)


# ═════════════════════════════════════════════════════════════════════
# Usage calculation
# ═════════════════════════════════════════════════════════════════════


def test_hourly_leave_hours_skips_lunch():
    assert hourly_leave_hours(time(9, 0), time(11, 0)) == 2
    assert hourly_leave_hours(time(10, 0), time(15, 0)) == 4
    assert hourly_leave_hours(time(12, 0), time(13, 0)) == 0
    assert hourly_leave_hours(time(12, 30), time(14, 0)) == 1


def test_split_counts_weekdays_and_working_saturdays():
    data = LeaveRequestCreate(
        leave_type=LeaveType.VACATION, start_date=MONDAY, end_date=SUNDAY, reason="Trip",
    )
    assert split_usage_by_year(data, {}, 8.0) == {2030: 5.0}
    assert split_usage_by_year(data, {SATURDAY: 3.0}, 8.0) == {2030: 5.375}


def test_split_across_new_year():
    data = LeaveRequestCreate(
        leave_type=LeaveType.VACATION,
        start_date=date(2030, 12, 30),
        end_date=date(2031, 1, 3),
        reason="Trip",
    )
    assert split_usage_by_year(data, {}, 8.0) == {2030: 2.0, 2031: 3.0}


def test_split_half_day_and_hourly():
    half = LeaveRequestCreate(
        leave_type=LeaveType.PERSONAL,
        start_date=MONDAY,
        end_date=MONDAY,
        time_slot=TimeSlot.HALF_MORNING,
        reason="Bank",
    )
    assert split_usage_by_year(half, {}, 8.0) == {2030: 0.5}

    hourly = LeaveRequestCreate(
        leave_type=LeaveType.PERSONAL,
        start_date=MONDAY,
        end_date=MONDAY,
        time_slot=TimeSlot.HOURLY,
        start_time=time(9, 0),
        end_time=time(12, 0),
        reason="Dentist",
    )
    assert split_usage_by_year(hourly, {}, 8.0) == {2030: 0.375}


@pytest.mark.parametrize("day", [SATURDAY, SUNDAY])
def test_split_rejects_days_without_working_time(day):
    data = LeaveRequestCreate(
        leave_type=LeaveType.PERSONAL,
        start_date=day,
        end_date=day,
        time_slot=TimeSlot.HOURLY,
        start_time=time(9, 0),
        end_time=time(10, 0),
        reason="Errand",
    )
    with pytest.raises(BadRequestException) as exc_info:
        split_usage_by_year(data, {}, 8.0)
    assert exc_info.value.error_code == "non_working_day"


# ═════════════════════════════════════════════════════════════════════
# POST /leave/request
# ═════════════════════════════════════════════════════════════════════


async def test_request_charges_balance_and_records_split(client, db, employee):
    await create_leave_balance(db, employee["id"], LeaveType.VACATION, year=2030, entitlement=10)
    await create_working_saturday(db, SATURDAY)

    resp = await client.post(
        "/api/leave/request", json=_body(MONDAY, SUNDAY), headers=auth_headers_for(employee),
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["status"] == "PENDING"
    assert data["usageAmount"] == 5.375
    assert data["yearSplits"] == {"2030": 5.375}

    balance = await _balance(employee["id"], LeaveType.VACATION, 2030)
    assert balance.used == 5.375
    assert balance.remaining == 4.625

    async with TestSessionFactory() as session:
        audit = (
            await session.execute(select(AuditLog).where(AuditLog.target_id == data["id"]))
        ).scalar_one()
    assert audit.action == "CREATE_LEAVE_REQUEST"
    assert audit.user_id == employee["id"]


async def test_request_hourly_deducts_lunch(client, db, employee):
    await create_leave_quota(db, LeaveType.PERSONAL, 3)
    resp = await client.post(
        "/api/leave/request",
        json=_body(
            MONDAY, leaveType="PERSONAL", timeSlot="HOURLY", startTime="10:00", endTime="15:00",
        ),
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["usageAmount"] == 0.5

    row = await _request(resp.json()["data"]["id"])
    assert row.start_time == time(10, 0)
    assert row.time_slot == TimeSlot.HOURLY


async def test_request_splits_across_years_and_opens_next_balance(client, db, employee):
    await create_leave_quota(db, LeaveType.VACATION, 6)
    await create_leave_balance(db, employee["id"], LeaveType.VACATION, year=2030, entitlement=6)

    resp = await client.post(
        "/api/leave/request",
        json=_body(date(2030, 12, 30), date(2031, 1, 3)),
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["yearSplits"] == {"2030": 2.0, "2031": 3.0}

    assert (await _balance(employee["id"], LeaveType.VACATION, 2030)).remaining == 4
    opened = await _balance(employee["id"], LeaveType.VACATION, 2031)
    assert opened.is_auto_created is True
    assert opened.remaining == 3

    async with TestSessionFactory() as session:
        splits = (
            await session.execute(
                select(LeaveRequestYearSplit.year, LeaveRequestYearSplit.usage_amount)
                .order_by(LeaveRequestYearSplit.year)
            )
        ).all()
    assert [tuple(s) for s in splits] == [(2030, 2.0), (2031, 3.0)]


async def test_request_overlapping_booked_leave_is_409(client, db, employee):
    await create_leave_request(db, employee["id"], MONDAY + timedelta(days=1))
    resp = await client.post(
        "/api/leave/request", json=_body(MONDAY, MONDAY + timedelta(days=2)),
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


async def test_request_next_to_cancelled_leave_is_allowed(client, db, employee):
    await create_leave_request(db, employee["id"], MONDAY, status=LeaveStatus.CANCELLED)
    await create_leave_quota(db, LeaveType.VACATION, 6)
    resp = await client.post("/api/leave/request", json=_body(MONDAY), headers=auth_headers_for(employee))
    assert resp.status_code == 201


async def test_request_vacation_needs_one_year_of_service(client, db):
    newcomer = await create_user(db, first_name="New", last_name="Hire", start_date=TODAY - timedelta(days=100))
    await create_leave_quota(db, LeaveType.VACATION, 6)
    resp = await client.post("/api/leave/request", json=_body(MONDAY), headers=auth_headers_for(newcomer))
    assert resp.status_code == 400
    assert resp.json()["error"] == "tenure_required"


async def test_request_vacation_needs_advance_notice(client, db, employee):
    await create_setting(db, "LEAVE_ADVANCE_DAYS", "30")
    await create_leave_quota(db, LeaveType.VACATION, 6)
    soon = TODAY + timedelta(days=7)
    while soon.weekday() >= 5:
        soon += timedelta(days=1)

    resp = await client.post("/api/leave/request", json=_body(soon), headers=auth_headers_for(employee))
    assert resp.status_code == 400
    assert resp.json()["error"] == "advance_notice_required"


async def test_request_long_sick_leave_needs_certificate(client, db, employee):
    await create_leave_quota(db, LeaveType.SICK, 30)
    body = _body(MONDAY, MONDAY + timedelta(days=2), leaveType="SICK")

    resp = await client.post("/api/leave/request", json=body, headers=auth_headers_for(employee))
    assert resp.status_code == 400
    assert resp.json()["error"] == "medical_cert_required"

    body["hasMedicalCert"] = True
    resp = await client.post("/api/leave/request", json=body, headers=auth_headers_for(employee))
    assert resp.status_code == 201


async def test_request_beyond_balance_is_rejected_and_nothing_saved(client, db, employee):
    await create_leave_balance(db, employee["id"], LeaveType.VACATION, year=2030, entitlement=2)
    resp = await client.post(
        "/api/leave/request", json=_body(MONDAY, MONDAY + timedelta(days=2)),
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "insufficient_balance"

    async with TestSessionFactory() as session:
        count = (await session.execute(select(func.count()).select_from(LeaveRequest))).scalar_one()
    assert count == 0
    assert (await _balance(employee["id"], LeaveType.VACATION, 2030)).used == 0


async def test_request_without_quota_is_rejected(client, employee):
    resp = await client.post("/api/leave/request", json=_body(MONDAY), headers=auth_headers_for(employee))
    assert resp.status_code == 400
    assert resp.json()["error"] == "no_quota"


async def test_request_other_leave_is_not_metered(client, employee):
    resp = await client.post(
        "/api/leave/request", json=_body(MONDAY, leaveType="OTHER"), headers=auth_headers_for(employee),
    )
    assert resp.status_code == 201
    assert await _balance(employee["id"], LeaveType.OTHER, 2030) is None


async def test_request_only_weekend_is_rejected(client, db, employee):
    await create_leave_quota(db, LeaveType.VACATION, 6)
    resp = await client.post(
        "/api/leave/request", json=_body(SATURDAY, SUNDAY), headers=auth_headers_for(employee),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "non_working_day"


@pytest.mark.parametrize(
    "extra",
    [
        {"endDate": "2030-01-06"},
        {"timeSlot": "HALF_MORNING", "endDate": "2030-01-08"},
        {"timeSlot": "HOURLY"},
        {"timeSlot": "HOURLY", "startTime": "11:00", "endTime": "10:00"},
        {"startTime": "09:00+07:00", "timeSlot": "HOURLY", "endTime": "10:00"},
        {"reason": "   "},
        {"leaveType": "HOLIDAY"},
    ],
)
async def test_request_malformed_body_is_400(client, employee, extra):
    resp = await client.post(
        "/api/leave/request", json=_body(MONDAY, **extra), headers=auth_headers_for(employee),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"


async def test_request_requires_session(client):
    resp = await client.post("/api/leave/request", json=_body(MONDAY))
    assert resp.status_code == 401


# ═════════════════════════════════════════════════════════════════════
# GET /leave/history
# ═════════════════════════════════════════════════════════════════════


async def test_history_lists_own_requests_newest_first(client, db, employee, manager):
    first = await create_leave_request(db, employee["id"], MONDAY)
    second = await create_leave_request(db, employee["id"], MONDAY + timedelta(days=7))
    await create_leave_request(db, manager["id"], MONDAY)

    resp = await client.get("/api/leave/history", headers=auth_headers_for(employee))
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["data"]] == [second, first]


async def test_history_filters_and_all(client, db, employee, manager):
    approved = await create_leave_request(db, employee["id"], MONDAY, status=LeaveStatus.APPROVED)
    await create_leave_request(db, employee["id"], MONDAY + timedelta(days=7), leave_type=LeaveType.SICK)

    async with TestSessionFactory() as session:
        row = await session.get(LeaveRequest, approved)
        row.approver_id = manager["id"]
        await session.commit()

    headers = auth_headers_for(employee)
    resp = await client.get("/api/leave/history", params={"status": "approved"}, headers=headers)
    data = resp.json()["data"]
    assert [r["id"] for r in data] == [approved]
    assert data[0]["approverName"] == "Malee Boss"

    resp = await client.get("/api/leave/history", params={"leaveType": "SICK"}, headers=headers)
    assert [r["leaveType"] for r in resp.json()["data"]] == ["SICK"]

    resp = await client.get(
        "/api/leave/history", params={"status": "ALL", "leaveType": "ALL"}, headers=headers,
    )
    assert len(resp.json()["data"]) == 2


async def test_history_unknown_filter_is_400(client, employee):
    resp = await client.get(
        "/api/leave/history", params={"status": "LOST"}, headers=auth_headers_for(employee),
    )
    assert resp.status_code == 400
    assert "status" in resp.json()["errors"]


# ═════════════════════════════════════════════════════════════════════
# POST /leave/cancel
# ═════════════════════════════════════════════════════════════════════


async def test_owner_cancels_pending_and_gets_refund(client, db, employee):
    await create_leave_balance(db, employee["id"], LeaveType.VACATION, year=2030, entitlement=6, used=2)
    leave_id = await create_leave_request(db, employee["id"], MONDAY, usage_amount=2)

    resp = await client.post(
        "/api/leave/cancel", json={"leaveId": leave_id}, headers=auth_headers_for(employee),
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Leave request cancelled."}

    assert (await _request(leave_id)).status == LeaveStatus.CANCELLED
    balance = await _balance(employee["id"], LeaveType.VACATION, 2030)
    assert (balance.used, balance.remaining) == (0, 6)


async def test_owner_cannot_cancel_approved(client, db, employee):
    leave_id = await create_leave_request(db, employee["id"], MONDAY, status=LeaveStatus.APPROVED)
    resp = await client.post(
        "/api/leave/cancel", json={"leaveId": leave_id}, headers=auth_headers_for(employee),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "not_cancellable"


async def test_hr_cancels_approved_and_refunds_each_year(client, db, employee, hr_user):
    await create_leave_balance(db, employee["id"], LeaveType.VACATION, year=2030, entitlement=6, used=2)
    await create_leave_balance(db, employee["id"], LeaveType.VACATION, year=2031, entitlement=6, used=3)
    leave_id = await create_leave_request(
        db, employee["id"], date(2030, 12, 30), date(2031, 1, 3),
        usage_amount=5, status=LeaveStatus.APPROVED, splits={2030: 2, 2031: 3},
    )

    resp = await client.post(
        "/api/leave/cancel", json={"leaveId": leave_id}, headers=auth_headers_for(hr_user),
    )
    assert resp.status_code == 200
    for year in (2030, 2031):
        assert (await _balance(employee["id"], LeaveType.VACATION, year)).remaining == 6


async def test_cancel_someone_elses_request_is_403(client, db, employee, manager):
    leave_id = await create_leave_request(db, manager["id"], MONDAY)
    resp = await client.post(
        "/api/leave/cancel", json={"leaveId": leave_id}, headers=auth_headers_for(employee),
    )
    assert resp.status_code == 403


@pytest.mark.parametrize("status", [LeaveStatus.CANCELLED, LeaveStatus.REJECTED])
async def test_cancel_closed_request_is_400(client, db, hr_user, employee, status):
    leave_id = await create_leave_request(db, employee["id"], MONDAY, status=status)
    resp = await client.post(
        "/api/leave/cancel", json={"leaveId": leave_id}, headers=auth_headers_for(hr_user),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "not_cancellable"


async def test_cancel_unknown_request_is_404(client, employee):
    resp = await client.post(
        "/api/leave/cancel", json={"leaveId": 424242}, headers=auth_headers_for(employee),
    )
    assert resp.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# GET /leave/pending
# ═════════════════════════════════════════════════════════════════════


async def test_pending_for_hr_lists_everything(client, db, employee, manager, hr_user):
    await create_leave_request(db, employee["id"], MONDAY)
    await create_leave_request(db, manager["id"], MONDAY)
    await create_leave_request(db, manager["id"], SUNDAY, status=LeaveStatus.APPROVED)

    resp = await client.get("/api/leave/pending", headers=auth_headers_for(hr_user))
    assert resp.status_code == 200
    assert {r["userId"] for r in resp.json()["data"]} == {employee["id"], manager["id"]}


async def test_pending_for_manager_lists_own_team(client, db, employee, manager):
    report = await create_user(db, first_name="Wichai", last_name="Team", department_head_id=manager["id"])
    mine = await create_leave_request(db, report["id"], MONDAY)
    await create_leave_request(db, employee["id"], MONDAY)

    resp = await client.get("/api/leave/pending", headers=auth_headers_for(manager))
    data = resp.json()["data"]
    assert [r["id"] for r in data] == [mine]
    assert data[0]["employeeName"] == "Wichai Team"
    assert data[0]["employeeId"] == report["employee_id"]


async def test_pending_for_current_delegate(client, db, employee, manager):
    report = await create_user(db, first_name="Wichai", last_name="Team", department_head_id=manager["id"])
    leave_id = await create_leave_request(db, report["id"], MONDAY)
    await create_delegation(db, manager["id"], employee["id"], TODAY, TODAY + timedelta(days=3))

    resp = await client.get("/api/leave/pending", headers=auth_headers_for(employee))
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["data"]] == [leave_id]


async def test_pending_for_plain_employee_is_403(client, db, employee, manager):
    await create_delegation(
        db, manager["id"], employee["id"], TODAY - timedelta(days=10), TODAY - timedelta(days=1),
    )
    resp = await client.get("/api/leave/pending", headers=auth_headers_for(employee))
    assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# POST /leave/approve
# ═════════════════════════════════════════════════════════════════════


async def test_head_approves_team_request(client, db, manager):
    report = await create_user(db, first_name="Wichai", last_name="Team", department_head_id=manager["id"])
    leave_id = await create_leave_request(db, report["id"], MONDAY)

    resp = await client.post(
        "/api/leave/approve",
        json={"leaveId": leave_id, "action": "APPROVE"},
        headers=auth_headers_for(manager),
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Leave request approved."

    row = await _request(leave_id)
    assert row.status == LeaveStatus.APPROVED
    assert row.approver_id == manager["id"]
    assert row.approved_at is not None

    async with TestSessionFactory() as session:
        actions = (await session.execute(select(AuditLog.action))).scalars().all()
    assert actions == ["APPROVE_LEAVE"]


async def test_reject_refunds_and_keeps_reason(client, db, manager):
    report = await create_user(db, first_name="Wichai", last_name="Team", department_head_id=manager["id"])
    await create_leave_balance(db, report["id"], LeaveType.VACATION, year=2030, entitlement=6, used=2)
    leave_id = await create_leave_request(db, report["id"], MONDAY, usage_amount=2)

    resp = await client.post(
        "/api/leave/approve",
        json={"leaveId": leave_id, "action": "REJECT", "rejectionReason": "  Busy week  "},
        headers=auth_headers_for(manager),
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Leave request rejected."

    row = await _request(leave_id)
    assert row.status == LeaveStatus.REJECTED
    assert row.rejection_reason == "Busy week"
    assert (await _balance(report["id"], LeaveType.VACATION, 2030)).remaining == 6


async def test_reject_without_reason_is_400(client, db, manager, employee):
    leave_id = await create_leave_request(db, employee["id"], MONDAY)
    resp = await client.post(
        "/api/leave/approve",
        json={"leaveId": leave_id, "action": "REJECT"},
        headers=auth_headers_for(manager),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"


async def test_delegate_may_decide_for_head(client, db, employee, manager):
    report = await create_user(db, first_name="Wichai", last_name="Team", department_head_id=manager["id"])
    leave_id = await create_leave_request(db, report["id"], MONDAY)
    await create_delegation(db, manager["id"], employee["id"], TODAY, TODAY)

    resp = await client.post(
        "/api/leave/approve",
        json={"leaveId": leave_id, "action": "APPROVE"},
        headers=auth_headers_for(employee),
    )
    assert resp.status_code == 200
    assert (await _request(leave_id)).approver_id == employee["id"]


async def test_unrelated_manager_cannot_decide(client, db, employee):
    other = await create_user(db, first_name="Other", last_name="Boss", role=UserRole.MANAGER)
    leave_id = await create_leave_request(db, employee["id"], MONDAY)
    resp = await client.post(
        "/api/leave/approve",
        json={"leaveId": leave_id, "action": "APPROVE"},
        headers=auth_headers_for(other),
    )
    assert resp.status_code == 403
    assert (await _request(leave_id)).status == LeaveStatus.PENDING


async def test_nobody_decides_own_request(client, db, hr_user):
    leave_id = await create_leave_request(db, hr_user["id"], MONDAY)
    resp = await client.post(
        "/api/leave/approve",
        json={"leaveId": leave_id, "action": "APPROVE"},
        headers=auth_headers_for(hr_user),
    )
    assert resp.status_code == 403


async def test_decided_request_is_not_pending(client, db, hr_user, employee):
    leave_id = await create_leave_request(db, employee["id"], MONDAY, status=LeaveStatus.APPROVED)
    resp = await client.post(
        "/api/leave/approve",
        json={"leaveId": leave_id, "action": "APPROVE"},
        headers=auth_headers_for(hr_user),
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "not_pending"


async def test_decide_unknown_request_is_404(client, hr_user):
    resp = await client.post(
        "/api/leave/approve",
        json={"leaveId": 424242, "action": "APPROVE"},
        headers=auth_headers_for(hr_user),
    )
    assert resp.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# GET /leave/balance
# ═════════════════════════════════════════════════════════════════════


async def test_balance_opens_missing_rows_from_quotas(client, db, employee):
    await create_leave_quota(db, LeaveType.VACATION, 6)
    await create_leave_quota(db, LeaveType.SICK, 30)
    await create_leave_balance(db, employee["id"], LeaveType.VACATION, year=2030, entitlement=10, used=1)

    resp = await client.get(
        "/api/leave/balance", params={"year": 2030}, headers=auth_headers_for(employee),
    )
    assert resp.status_code == 200
    data = {r["leaveType"]: r for r in resp.json()["data"]}
    assert [r["leaveType"] for r in resp.json()["data"]] == ["SICK", "VACATION"]
    assert data["VACATION"]["remaining"] == 9
    assert data["VACATION"]["isAutoCreated"] is False
    assert data["SICK"]["entitlement"] == 30
    assert data["SICK"]["isAutoCreated"] is True

    # A second read opens nothing new
    resp = await client.get(
        "/api/leave/balance", params={"year": 2030}, headers=auth_headers_for(employee),
    )
    assert len(resp.json()["data"]) == 2


async def test_balance_year_out_of_range_is_400(client, employee):
    resp = await client.get(
        "/api/leave/balance", params={"year": 99999}, headers=auth_headers_for(employee),
    )
    assert resp.status_code == 400
