from __future__ import annotations

from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select, text

from unipivot_api.models.member import Member, MemberGradeEnum, MemberStatusEnum
from unipivot_api.models.notification import AdminNotification
from unipivot_api.models.program import ApplicationStatusEnum, Program, ProgramApplication
from unipivot_api.models.user import User
from unipivot_api.services.applications import (
    ApplicantRestrictedError,
    ApplicationIntakeService,
    ApplicationsClosedError,
    ApplicationSubmission,
    DuplicateApplicationError,
    ProgramNotFoundError,
)
from unipivot_api.services.identity import AlertLevel, MatchType
from unipivot_api.services.notifications import AdminNotifier, InMemoryEmailBackend


async def _program(session_factory, **overrides) -> Program:
    async with session_factory() as session:
        program = Program(title=overrides.pop("title", "Saturday Seminar"), **overrides)
        session.add(program)
        await session.commit()
        return program


async def _member(session_factory, **fields) -> Member:
    async with session_factory() as session:
        member = Member(**fields)
        session.add(member)
        await session.commit()
        return member


def _service(session, backend: InMemoryEmailBackend | None = None) -> ApplicationIntakeService:
    notifier = AdminNotifier(session, backend or InMemoryEmailBackend(), recipients=["ops@example.com"])
    return ApplicationIntakeService(session, notifier=notifier)


def _submission(program_id, **overrides) -> ApplicationSubmission:
    values = {
        "program_id": program_id,
        "name": "Kim Minsu",
        "email": "minsu@example.com",
        "phone": "010-1234-5678",
        "birth_year": 1995,
        "hometown": "Busan",
        "motivation": "I like books.",
    }
    values.update(overrides)
    return ApplicationSubmission(**values)


@pytest.mark.asyncio
async def test_new_applicant_is_pending_without_alert(session_factory) -> None:
    program = await _program(session_factory)

    async with session_factory() as session:
        outcome = await _service(session).submit(_submission(program.id))

    application = outcome.application
    assert outcome.match.matched is False
    assert application.status is ApplicationStatusEnum.PENDING
    assert application.alert_level == "NONE"
    assert application.phone == "01012345678"
    assert application.matched_member_id is None


@pytest.mark.asyncio
async def test_match_fields_are_recorded_on_application(session_factory) -> None:
    program = await _program(session_factory, auto_approve_vip=True)
    member = await _member(
        session_factory,
        name="Kim Minsu",
        email="minsu@example.com",
        member_code="M-0042",
        grade=MemberGradeEnum.VIP,
        status=MemberStatusEnum.ACTIVE,
    )

    async with session_factory() as session:
        outcome = await _service(session).submit(_submission(program.id, email="Minsu@Example.com"))

    application = outcome.application
    assert outcome.match.match_type is MatchType.EMAIL
    assert application.status is ApplicationStatusEnum.APPROVED
    assert application.matched_member_id == member.id
    assert application.matched_member_code == "M-0042"
    assert application.member_grade is MemberGradeEnum.VIP
    assert application.member_status is MemberStatusEnum.ACTIVE
    assert application.match_type == "email"


@pytest.mark.asyncio
async def test_auto_approve_only_for_enabled_grade(session_factory) -> None:
    program = await _program(session_factory, auto_approve_vvip=True)
    await _member(session_factory, name="Kim Minsu", phone="01012345678", grade=MemberGradeEnum.VIP)

    async with session_factory() as session:
        outcome = await _service(session).submit(_submission(program.id))

    assert outcome.application.status is ApplicationStatusEnum.PENDING


@pytest.mark.asyncio
async def test_warning_member_is_held_and_admins_notified(session_factory) -> None:
    program = await _program(session_factory, auto_approve_vip=True)
    await _member(
        session_factory,
        name="Kim Minsu",
        birth_year=1995,
        grade=MemberGradeEnum.VIP,
        status=MemberStatusEnum.WARNING,
    )
    backend = InMemoryEmailBackend()

    async with session_factory() as session:
        outcome = await _service(session, backend).submit(
            _submission(program.id, email="fresh@example.com", phone="01000000000")
        )

    assert outcome.match.match_type is MatchType.NAME_BIRTH
    assert outcome.match.alert_level is AlertLevel.WARNING
    assert outcome.application.status is ApplicationStatusEnum.PENDING
    assert outcome.application.alert_level == "WARNING"

    async with session_factory() as session:
        notification = (await session.execute(select(AdminNotification))).scalar_one()
    assert notification.type == "ALERT_APPLICATION"
    assert notification.data["alertLevel"] == "WARNING"
    assert notification.data["applicationId"] == str(outcome.application.id)
    assert len(backend.sent_messages) == 1


@pytest.mark.asyncio
async def test_blocked_member_rejected_when_program_auto_rejects(session_factory) -> None:
    program = await _program(session_factory, auto_reject_blocked=True)
    await _member(session_factory, name="Kim Minsu", email="minsu@example.com", status=MemberStatusEnum.BLOCKED)

    async with session_factory() as session:
        with pytest.raises(ApplicantRestrictedError):
            await _service(session).submit(_submission(program.id))

    async with session_factory() as session:
        stored = (await session.execute(select(ProgramApplication))).scalars().all()
    assert stored == []


@pytest.mark.asyncio
async def test_blocked_member_held_for_review_otherwise(session_factory) -> None:
    program = await _program(session_factory)
    await _member(session_factory, name="Kim Minsu", email="minsu@example.com", status=MemberStatusEnum.BLOCKED)

    async with session_factory() as session:
        outcome = await _service(session).submit(_submission(program.id))

    assert outcome.application.status is ApplicationStatusEnum.PENDING
    assert outcome.application.alert_level == "BLOCKED"


@pytest.mark.asyncio
async def test_full_program_waitlists_new_applicants(session_factory) -> None:
    program = await _program(session_factory, max_participants=1)
    async with session_factory() as session:
        session.add(
            ProgramApplication(
                program_id=program.id,
                name="Early Bird",
                email="early@example.com",
                phone="01099999999",
                status=ApplicationStatusEnum.APPROVED,
            )
        )
        await session.commit()

    async with session_factory() as session:
        outcome = await _service(session).submit(_submission(program.id))

    assert outcome.application.status is ApplicationStatusEnum.WAITLIST


@pytest.mark.asyncio
async def test_duplicate_and_closed_programs(session_factory) -> None:
    program = await _program(session_factory)
    closed = await _program(session_factory, title="Closed Workshop", application_open=False)

    async with session_factory() as session:
        service = _service(session)
        await service.submit(_submission(program.id))
        with pytest.raises(DuplicateApplicationError):
            await service.submit(_submission(program.id, email="other@example.com"))
        with pytest.raises(ApplicationsClosedError):
            await service.submit(_submission(closed.id))
        with pytest.raises(ProgramNotFoundError):
            await service.submit(_submission(uuid4()))


@pytest.mark.asyncio
async def test_application_endpoints(app_with_db) -> None:
    app, session_factory = app_with_db
    program = await _program(session_factory, auto_reject_blocked=True)
    await _member(
        session_factory,
        name="Lee Blocked",
        email="blocked@example.com",
        member_code="M-0666",
        status=MemberStatusEnum.BLOCKED,
    )
    await _member(session_factory, name="Kim Minsu", phone="01012345678", status=MemberStatusEnum.WATCH)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        created = await client.post(
            f"/api/v1/programs/{program.id}/applications",
            json={"name": "Kim Minsu", "email": "minsu@example.com", "phone": "010-1234-5678"},
        )
        duplicate = await client.post(
            f"/api/v1/programs/{program.id}/applications",
            json={"name": "Kim Minsu", "email": "minsu@example.com", "phone": "010-1234-5678"},
        )
        restricted = await client.post(
            f"/api/v1/programs/{program.id}/applications",
            json={"name": "Lee Blocked", "email": "blocked@example.com", "phone": "01055550000"},
        )
        missing = await client.post(
            f"/api/v1/programs/{uuid4()}/applications",
            json={"name": "Kim Minsu", "email": "minsu@example.com", "phone": "010-1234-5678"},
        )
        alerts = await client.get(f"/api/v1/programs/{program.id}/alerts")
        no_program = await client.get(f"/api/v1/programs/{uuid4()}/alerts")

    assert created.status_code == 201
    assert created.json()["status"] == "PENDING"
    assert duplicate.status_code == 409
    assert restricted.status_code == 403
    assert "blocked" not in restricted.json()["detail"].lower()
    assert missing.status_code == 404

    assert alerts.status_code == 200
    report = alerts.json()
    assert report["totalApplications"] == 1
    assert report["watchCount"] == 1
    assert report["blockedCount"] == 0
    assert report["alerts"][0]["alertLevel"] == "WATCH"
    assert report["alerts"][0]["matchType"] == "phone"
    assert no_program.status_code == 404


@pytest.mark.asyncio
async def test_member_match_endpoint(app_with_db) -> None:
    app, session_factory = app_with_db
    await _member(
        session_factory,
        name="Lee Blocked",
        email="blocked@example.com",
        grade=MemberGradeEnum.MEMBER,
        status=MemberStatusEnum.BLOCKED,
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        hit = await client.post("/api/v1/members/match", json={"name": "Lee Blocked", "email": "BLOCKED@example.com"})
        miss = await client.post("/api/v1/members/match", json={"name": "Nobody"})
        invalid = await client.post("/api/v1/members/match", json={"email": "x@example.com"})

    assert hit.json() == {
        "matched": True,
        "matchType": "email",
        "alertLevel": "BLOCKED",
        "alertMessage": "Lee Blocked is a blocked member; approval is not recommended.",
        "memberGrade": "MEMBER",
    }
    assert miss.json()["matched"] is False
    assert miss.json()["alertLevel"] == "NONE"
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_linked_member_backs_up_an_unmatched_applicant(session_factory) -> None:
    program = await _program(session_factory, auto_approve_vip=True)
    async with session_factory() as session:
        user = User(email="minsu.account@example.com")
        session.add(user)
        await session.commit()
    member = await _member(
        session_factory,
        name="Minsu K.",
        member_code="M-0100",
        grade=MemberGradeEnum.VIP,
        user_id=user.id,
    )

    async with session_factory() as session:
        service = _service(session)
        outcome = await service.submit(_submission(program.id, user_id=user.id))

    assert outcome.match.matched is False
    assert outcome.application.status is ApplicationStatusEnum.APPROVED
    assert outcome.application.matched_member_id == member.id
    assert outcome.application.matched_member_code == "M-0100"
    assert outcome.application.alert_level == "NONE"


@pytest.mark.asyncio
async def test_blank_phone_is_not_a_duplicate_key(session_factory) -> None:
    program = await _program(session_factory)

    async with session_factory() as session:
        service = _service(session)
        first = await service.submit(_submission(program.id, phone="-"))
        second = await service.submit(
            _submission(program.id, name="Park Jiwoo", email="jiwoo@example.com", phone="--", hometown=None)
        )

    assert first.application.phone == ""
    assert second.application.phone == ""
    async with session_factory() as session:
        count = (
            await session.execute(
                select(func.count(ProgramApplication.id)).where(ProgramApplication.program_id == program.id)
            )
        ).scalar_one()
    assert count == 2


@pytest.mark.asyncio
async def test_inbox_write_failure_keeps_application(session_factory) -> None:
    program = await _program(session_factory)
    await _member(session_factory, name="Kim Minsu", birth_year=1995, status=MemberStatusEnum.WARNING)
    async with session_factory() as session:
        await session.execute(text("DROP TABLE admin_notifications"))
        await session.commit()

    async with session_factory() as session:
        outcome = await _service(session).submit(
            _submission(program.id, email="fresh@example.com", phone="01000000000")
        )
        application_id = outcome.application.id

    assert outcome.match.alert_level is AlertLevel.WARNING
    assert outcome.application.status is ApplicationStatusEnum.PENDING

    async with session_factory() as session:
        stored = await session.get(ProgramApplication, application_id)
    assert stored is not None
    assert stored.alert_level == "WARNING"
