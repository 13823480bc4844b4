import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import AlreadyProcessedError
from app.models.notification import NotificationKind
from app.models.user import Role
from app.models.verification import VerificationApplication, ApplicationStatus, Sector
from app.services.verification_service import verification_service


def application_body(user_id: str, **info) -> dict:
    info.setdefault("sector", "Technology")
    info.setdefault("projectTitle", "X")
    return {"userId": user_id, "info": info}


@pytest.mark.asyncio
async def test_submit_then_duplicate(client: AsyncClient, test_user, db_session, fetch_notifications):
    """Submitting twice: the second attempt is refused while the first is pending"""
    response = await client.post("/api/v1/verification", json=application_body(test_user.id))

    assert response.status_code == 200
    assert response.json()["message"] == "Application submitted successfully."

    pending = await fetch_notifications(test_user.id, NotificationKind.APPLICATION_UPDATE.value)
    assert len(pending) == 1
    assert pending[0].title == "Application Pending"

    response = await client.post("/api/v1/verification", json=application_body(test_user.id))

    assert response.status_code == 409
    data = response.json()
    assert data["code"] == "DUPLICATE_APPLICATION"
    assert data["detail"] == "You already have a pending application."
    assert data["status"] == "pending"


@pytest.mark.asyncio
async def test_submit_notifies_every_admin(
    client: AsyncClient, test_user, make_admin, fetch_notifications
):
    admin = await make_admin()
    superadmin = await make_admin(role=Role.SUPERADMIN)

    response = await client.post("/api/v1/verification", json=application_body(test_user.id))
    assert response.status_code == 200

    for account in (admin, superadmin):
        feed = await fetch_notifications(account.id, NotificationKind.APPLICATION.value)
        assert len(feed) == 1
        assert feed[0].message == f"New verification application from {test_user.full_name}"
        assert feed[0].data["userId"] == test_user.id


@pytest.mark.asyncio
async def test_submit_unknown_user(client: AsyncClient):
    response = await client.post(
        "/api/v1/verification",
        json=application_body("8d0f7a52-2f3e-4b7c-9d7e-0b9b8f0c1a11")
    )

    assert response.status_code == 404
    assert response.json()["code"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_submit_invalid_sector(client: AsyncClient, test_user):
    response = await client.post(
        "/api/v1/verification",
        json=application_body(test_user.id, sector="Space")
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "INVALID_SECTOR"
    assert data["allowed"] == [s.value for s in Sector]


@pytest.mark.asyncio
async def test_sector_is_case_insensitive(client: AsyncClient, test_user, db_session):
    response = await client.post(
        "/api/v1/verification",
        json=application_body(test_user.id, sector="agriculture", teamSize=3)
    )
    assert response.status_code == 200

    application = await _only_application(db_session, test_user.id)
    assert application.sector == Sector.AGRICULTURE
    assert application.duration == "3"


@pytest.mark.asyncio
async def test_already_verified_cannot_submit(client: AsyncClient, verified_user):
    response = await client.post("/api/v1/verification", json=application_body(verified_user.id))

    assert response.status_code == 409
    assert response.json()["detail"] == "You are already verified."


@pytest.mark.asyncio
async def test_check_eligibility(client: AsyncClient, test_user, verified_user, make_application):
    response = await client.get(f"/api/v1/verification/check/{test_user.id}")
    assert response.json() == {"isVerified": False, "hasPending": False, "canApply": True}

    await make_application(test_user, status=ApplicationStatus.UNDER_REVIEW)
    response = await client.get(f"/api/v1/verification/check/{test_user.id}")
    assert response.json() == {"isVerified": False, "hasPending": True, "canApply": False}

    response = await client.get(f"/api/v1/verification/check/{verified_user.id}")
    assert response.json() == {"isVerified": True, "hasPending": False, "canApply": False}


@pytest.mark.asyncio
async def test_approve_marks_user_verified(
    client: AsyncClient, test_user, make_application, admin_auth_headers, fetch_notifications
):
    application = await make_application(test_user, github_username="octocat")

    response = await client.post(
        f"/api/v1/admin/applications/{application.id}/approve",
        headers=admin_auth_headers
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Application approved successfully"
    assert test_user.verified is True
    assert test_user.github_username == "octocat"
    assert test_user.github_url == "https://github.com/octocat"
    assert application.status == ApplicationStatus.APPROVED
    assert application.approved_at is not None

    updates = await fetch_notifications(test_user.id, NotificationKind.APPLICATION_UPDATE.value)
    assert [n.title for n in updates] == ["Application Approved!"]


@pytest.mark.asyncio
async def test_reapprove_is_a_silent_noop(
    client: AsyncClient, test_user, make_application, admin_auth_headers, fetch_notifications
):
    application = await make_application(test_user)
    url = f"/api/v1/admin/applications/{application.id}/approve"

    first = await client.post(url, headers=admin_auth_headers)
    second = await client.post(url, headers=admin_auth_headers)

    assert first.status_code == 200
    assert second.status_code == 200
    updates = await fetch_notifications(test_user.id, NotificationKind.APPLICATION_UPDATE.value)
    assert len(updates) == 1


@pytest.mark.asyncio
async def test_reject_revokes_verification(
    client: AsyncClient, verified_user, make_application, admin_auth_headers, fetch_notifications
):
    """A rejected applicant loses verified status even if it was set before"""
    application = await make_application(verified_user)

    response = await client.post(
        f"/api/v1/admin/applications/{application.id}/reject",
        json={"reason": "incomplete"},
        headers=admin_auth_headers
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Application rejected"
    assert verified_user.verified is False
    assert verified_user.suspension_reason == "incomplete"
    assert application.status == ApplicationStatus.REJECTED
    assert application.rejection_reason == "incomplete"

    updates = await fetch_notifications(verified_user.id, NotificationKind.APPLICATION_UPDATE.value)
    assert len(updates) == 1
    assert "incomplete" in updates[0].message


@pytest.mark.asyncio
async def test_reject_without_reason(client: AsyncClient, test_user, make_application, admin_auth_headers):
    application = await make_application(test_user)

    response = await client.post(
        f"/api/v1/admin/applications/{application.id}/reject",
        headers=admin_auth_headers
    )

    assert response.status_code == 200
    assert application.rejection_reason is None
    assert test_user.suspension_reason == "Rejected by admin"


@pytest.mark.asyncio
async def test_rejected_application_is_final(
    client: AsyncClient, test_user, make_application, admin_auth_headers
):
    application = await make_application(test_user, status=ApplicationStatus.REJECTED)

    approve = await client.post(
        f"/api/v1/admin/applications/{application.id}/approve", headers=admin_auth_headers
    )
    reject = await client.post(
        f"/api/v1/admin/applications/{application.id}/reject", headers=admin_auth_headers
    )

    assert approve.status_code == 409
    assert approve.json()["code"] == "ALREADY_PROCESSED"
    assert reject.status_code == 409


@pytest.mark.asyncio
async def test_resubmit_after_rejection(client: AsyncClient, test_user, make_application):
    await make_application(test_user, status=ApplicationStatus.REJECTED)

    response = await client.post("/api/v1/verification", json=application_body(test_user.id))

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_invalid_application_id(client: AsyncClient, admin_auth_headers):
    response = await client.post(
        "/api/v1/admin/applications/not-an-id/approve", headers=admin_auth_headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid application ID"


@pytest.mark.asyncio
async def test_unknown_application(client: AsyncClient, admin_auth_headers):
    response = await client.post(
        "/api/v1/admin/applications/8d0f7a52-2f3e-4b7c-9d7e-0b9b8f0c1a11/approve",
        headers=admin_auth_headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_queue_filters_by_status(
    client: AsyncClient, make_user, make_application, admin_auth_headers
):
    pending_owner = await make_user()
    approved_owner = await make_user()
    pending = await make_application(pending_owner)
    await make_application(approved_owner, status=ApplicationStatus.APPROVED)

    response = await client.get("/api/v1/admin/applications", headers=admin_auth_headers)
    assert response.status_code == 200
    applications = response.json()["applications"]
    assert [a["id"] for a in applications] == [pending.id]
    assert applications[0]["userFirstName"] == pending_owner.first_name
    assert applications[0]["userEmail"] == pending_owner.email

    response = await client.get(
        "/api/v1/admin/applications", params={"status": "all"}, headers=admin_auth_headers
    )
    assert len(response.json()["applications"]) == 2

    response = await client.get(
        "/api/v1/admin/applications", params={"status": "bogus"}, headers=admin_auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_one_active_application_per_user_in_storage(db_session, test_user, make_application):
    """The partial unique index refuses a second blocking application"""
    await make_application(test_user)

    db_session.add(VerificationApplication(
        user_id=test_user.id,
        sector=Sector.HEALTH,
        project_title="Second",
        status=ApplicationStatus.PENDING,
    ))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_rejected_rows_do_not_block_in_storage(db_session, test_user, make_application):
    await make_application(test_user, status=ApplicationStatus.REJECTED)
    await make_application(test_user, status=ApplicationStatus.REJECTED)
    await make_application(test_user)


async def _only_application(db_session, user_id: str) -> VerificationApplication:
    result = await db_session.execute(
        select(VerificationApplication).where(VerificationApplication.user_id == user_id)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_racing_rejections_notify_once(
    test_database, test_user, admin_user, make_application, fetch_notifications
):
    application = await make_application(test_user)
    application_id, user_id, admin_id = application.id, test_user.id, admin_user.id

    async with test_database.session() as first, test_database.session() as second:
        results = await asyncio.gather(
            verification_service.reject_application(first, application_id, "duplicate", admin_id),
            verification_service.reject_application(second, application_id, "duplicate", admin_id),
            return_exceptions=True,
        )

    assert sum(1 for r in results if isinstance(r, AlreadyProcessedError)) == 1
    assert len(await fetch_notifications(user_id, NotificationKind.APPLICATION_UPDATE.value)) == 1


@pytest.mark.asyncio
async def test_racing_approvals_notify_once(
    test_database, test_user, admin_user, make_application, fetch_notifications
):
    application = await make_application(test_user)
    application_id, user_id, admin_id = application.id, test_user.id, admin_user.id

    async with test_database.session() as first, test_database.session() as second:
        results = await asyncio.gather(
            verification_service.approve_application(first, application_id, admin_id),
            verification_service.approve_application(second, application_id, admin_id),
        )

    assert sorted(changed for _, changed in results) == [False, True]
    assert len(await fetch_notifications(user_id, NotificationKind.APPLICATION_UPDATE.value)) == 1
