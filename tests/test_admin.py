import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.notification import Notification, NotificationKind
from app.models.project import Project, ProjectComment
from app.models.request import UserRequest, CollaborationRequest, RequestStatus
from app.models.user import User, Admin, Role
from app.models.verification import VerificationApplication, ApplicationStatus


ADMIN_ENDPOINTS = [
    ("get", "/api/v1/admin/applications"),
    ("get", "/api/v1/admin/requests"),
    ("get", "/api/v1/admin/stats"),
    ("get", "/api/v1/admin/notifications"),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("method,url", ADMIN_ENDPOINTS)
async def test_members_cannot_reach_admin_endpoints(client: AsyncClient, auth_headers, method, url):
    response = await getattr(client, method)(url, headers=auth_headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


@pytest.mark.asyncio
@pytest.mark.parametrize("method,url", ADMIN_ENDPOINTS)
async def test_admin_endpoints_need_a_token(client: AsyncClient, method, url):
    response = await getattr(client, method)(url)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_user_table_admin_role_is_honoured(client: AsyncClient, make_user, headers_for):
    """Moderation rights come from the role, whichever table the account is in"""
    moderator = await make_user(role=Role.ADMIN)

    response = await client.get("/api/v1/admin/stats", headers=headers_for(moderator))

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_dashboard_stats(
    client: AsyncClient, make_user, make_project, make_application,
    make_funding_request, make_certificate_request, admin_auth_headers
):
    verified = await make_user(verified=True)
    pending_user = await make_user()
    rejected_user = await make_user()
    await make_project(verified)
    await make_application(verified, status=ApplicationStatus.APPROVED)
    await make_application(pending_user)
    await make_application(rejected_user, status=ApplicationStatus.REJECTED)
    await make_funding_request(pending_user)
    await make_certificate_request(pending_user, status=RequestStatus.SUBMITTED)

    response = await client.get("/api/v1/admin/stats", headers=admin_auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["totalUsers"] == 3
    assert data["verifiedUsers"] == 1
    assert data["totalProjects"] == 1
    assert data["pendingApplications"] == 1
    assert data["approvedApplications"] == 1
    assert data["rejectedApplications"] == 1
    assert data["totalRequests"] == 2
    assert data["pendingRequests"] == 1
    assert data["submittedRequests"] == 1
    assert data["verificationRate"] == 33.3


@pytest.mark.asyncio
async def test_admin_feed_hides_collaboration_traffic(
    client: AsyncClient, db_session, admin_user, admin_auth_headers
):
    for kind in (NotificationKind.APPLICATION, NotificationKind.COLLAB_REQUEST, NotificationKind.REQUEST):
        db_session.add(Notification(user_id=admin_user.id, type=kind.value, title="t", message="m"))
    await db_session.commit()

    response = await client.get("/api/v1/admin/notifications", headers=admin_auth_headers)

    assert response.status_code == 200
    kinds = sorted(n["type"] for n in response.json()["notifications"])
    assert kinds == ["application", "request"]


@pytest.mark.asyncio
async def test_suspend_user(client: AsyncClient, verified_user, admin_auth_headers):
    response = await client.post(
        f"/api/v1/admin/users/{verified_user.id}/suspend",
        json={"reason": "Spam"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 200
    assert verified_user.verified is False
    assert verified_user.suspension_reason == "Spam"
    assert verified_user.suspended_at is not None


@pytest.mark.asyncio
async def test_suspend_unknown_user(client: AsyncClient, admin_auth_headers):
    response = await client.post(
        "/api/v1/admin/users/8d0f7a52-2f3e-4b7c-9d7e-0b9b8f0c1a11/suspend",
        headers=admin_auth_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_user_cascades(
    client: AsyncClient, db_session, make_user, make_project, make_application,
    make_funding_request, make_legacy_comment, admin_auth_headers
):
    doomed = await make_user(verified=True)
    other = await make_user(verified=True)

    own_project = await make_project(doomed)
    other_project = await make_project(
        other, likes=[doomed.id], follows=[doomed.id], collaborator_ids=[doomed.id], collaborator_count=1
    )
    other.followers = [doomed.id]
    other.following = [doomed.id]
    await make_legacy_comment(own_project, other)
    await make_legacy_comment(other_project, doomed, content="Love it")
    db_session.add(CollaborationRequest(
        user_id=other.id, owner_id=doomed.id, project_id=own_project.id, comment_id="c-1", message="hi"
    ))
    db_session.add(Notification(user_id=doomed.id, type="system_announcement", title="t", message="m"))
    await make_application(doomed, status=ApplicationStatus.APPROVED)
    await make_funding_request(doomed)

    doomed_id, own_project_id, other_project_id = doomed.id, own_project.id, other_project.id

    response = await client.delete(f"/api/v1/admin/users/{doomed_id}", headers=admin_auth_headers)

    assert response.status_code == 200
    deleted = response.json()["deleted"]
    assert deleted["projects"] == 1
    assert deleted["verification_applications"] == 1
    assert deleted["notifications"] == 1

    assert await db_session.get(User, doomed_id) is None
    assert await db_session.get(Project, own_project_id) is None
    for model, column in (
        (ProjectComment, ProjectComment.project_id),
        (UserRequest, UserRequest.project_id),
    ):
        rows = (await db_session.execute(select(model).where(column == own_project_id))).scalars().all()
        assert rows == []
    remaining_comments = (await db_session.execute(
        select(ProjectComment).where(ProjectComment.user_id == doomed_id)
    )).scalars().all()
    assert remaining_comments == []
    assert (await db_session.execute(
        select(VerificationApplication).where(VerificationApplication.user_id == doomed_id)
    )).scalars().all() == []
    assert (await db_session.execute(
        select(UserRequest).where(UserRequest.user_id == doomed_id)
    )).scalars().all() == []

    project = await db_session.get(Project, other_project_id)
    assert project.likes == []
    assert project.follows == []
    assert project.collaborator_ids == []
    assert project.collaborator_count == 0
    assert other.followers == []
    assert other.following == []


@pytest.mark.asyncio
async def test_create_admin_requires_superadmin(client: AsyncClient, admin_auth_headers):
    response = await client.post(
        "/api/v1/admin/admins",
        json={"firstName": "New", "email": "new.admin@example.com", "password": "secret123"},
        headers=admin_auth_headers,
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Superadmin access required"


@pytest.mark.asyncio
async def test_superadmin_creates_admin(client: AsyncClient, db_session, superadmin_auth_headers):
    body = {"firstName": "New", "email": "new.admin@example.com", "password": "secret123"}

    response = await client.post("/api/v1/admin/admins", json=body, headers=superadmin_auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "admin"
    assert data["verified"] is True
    admin = (await db_session.execute(select(Admin).where(Admin.email == "new.admin@example.com"))).scalar_one()
    assert admin.role == Role.ADMIN

    response = await client.post("/api/v1/admin/admins", json=body, headers=superadmin_auth_headers)
    assert response.status_code == 409
