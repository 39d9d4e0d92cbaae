"""Tests for profiles, CAC verification and account administration."""

import pytest
from sqlalchemy import select

from event_marketplace.models import CacStatus, Notification, NotificationType, UserRole
from event_marketplace.schemas.user import (
    CacReviewRequest,
    CacSubmission,
    ProviderProfileUpdate,
    UserProfileUpdate,
)
from event_marketplace.services.user_service import UserService
from event_marketplace.utils.exceptions import (
    AuthorizationError,
    BadRequestError,
    ConflictError,
)

TEST_PASSWORD = "secret123"


async def notifications_for(db_session, user):
    result = await db_session.scalars(select(Notification).where(Notification.recipient_id == user.id))
    return list(result)


class TestProfile:
    async def test_update_merges_role_profile(self, db_session, make_user):
        provider = await make_user(UserRole.PROVIDER, provider_profile={"service_category": "Catering"})

        user = await UserService(db_session).update_profile(
            provider.id,
            provider,
            UserProfileUpdate(name="Chef Tunde", provider_profile=ProviderProfileUpdate(experience=6)),
        )

        assert user.name == "Chef Tunde"
        assert user.provider_profile == {"service_category": "Catering", "experience": 6}
        assert user.profile_completed is True

    async def test_email_taken_by_someone_else(self, db_session, make_user):
        user = await make_user()
        other = await make_user()

        with pytest.raises(ConflictError):
            await UserService(db_session).update_profile(user.id, user, UserProfileUpdate(email=other.email))

    async def test_cannot_edit_another_profile(self, db_session, make_user):
        user = await make_user()
        other = await make_user()

        with pytest.raises(AuthorizationError):
            await UserService(db_session).update_profile(other.id, user, UserProfileUpdate(name="Intruder"))

    async def test_admin_can_edit_any_profile(self, db_session, make_user):
        admin = await make_user(UserRole.ADMIN)
        user = await make_user()

        user = await UserService(db_session).update_profile(user.id, admin, UserProfileUpdate(phone="08012345678"))

        assert user.phone == "08012345678"


class TestCac:
    async def test_submission_is_self_only(self, db_session, make_user):
        owner = await make_user(UserRole.CENTER)
        other = await make_user(UserRole.CENTER)

        with pytest.raises(AuthorizationError):
            await UserService(db_session).submit_cac(
                other.id, owner, CacSubmission(cac_number="RC123456", business_name="Harbour Events")
            )

    async def test_submission_resets_verification(self, db_session, make_user):
        owner = await make_user(UserRole.CENTER, cac_verified=True)

        user = await UserService(db_session).submit_cac(
            owner.id, owner, CacSubmission(cac_number=" RC123456 ", business_name="Harbour Events")
        )

        assert user.cac_number == "RC123456"
        assert user.cac_status == CacStatus.PENDING
        assert user.cac_verified is False

    async def test_approval_notifies_the_owner(self, db_session, make_user):
        admin = await make_user(UserRole.ADMIN)
        owner = await make_user(UserRole.PROVIDER, cac_number="RC998877")

        user = await UserService(db_session).review_cac(owner.id, admin, CacReviewRequest(action="approve"))

        assert user.cac_verified is True
        assert user.cac_status == CacStatus.VERIFIED
        alerts = await notifications_for(db_session, owner)
        assert [n.notification_type for n in alerts] == [NotificationType.CAC_VERIFIED]
        assert alerts[0].action_link == "/providers/create"

    async def test_rejection_keeps_the_reason(self, db_session, make_user):
        admin = await make_user(UserRole.ADMIN)
        owner = await make_user(UserRole.CENTER, cac_number="RC998877")

        user = await UserService(db_session).review_cac(
            owner.id, admin, CacReviewRequest(action="reject", reason="Number not found")
        )

        assert user.cac_verified is False
        assert user.cac_rejection_reason == "Number not found"
        alerts = await notifications_for(db_session, owner)
        assert [n.notification_type for n in alerts] == [NotificationType.CAC_REJECTED]
        assert "Number not found" in alerts[0].message

    async def test_review_needs_a_submission(self, db_session, make_user):
        admin = await make_user(UserRole.ADMIN)
        owner = await make_user(UserRole.PROVIDER)

        with pytest.raises(BadRequestError):
            await UserService(db_session).review_cac(owner.id, admin, CacReviewRequest(action="approve"))


class TestAccountStatus:
    async def test_toggle_deactivates_then_reactivates(self, db_session, make_user):
        admin = await make_user(UserRole.ADMIN)
        user = await make_user()
        service = UserService(db_session)

        assert (await service.toggle_status(user.id, admin)).is_active is False
        assert (await service.toggle_status(user.id, admin)).is_active is True

    async def test_admin_cannot_toggle_self(self, db_session, make_user):
        admin = await make_user(UserRole.ADMIN)

        with pytest.raises(BadRequestError):
            await UserService(db_session).toggle_status(admin.id, admin)

    async def test_deactivated_account_cannot_log_in(self, db_session, make_user):
        admin = await make_user(UserRole.ADMIN)
        user = await make_user()
        service = UserService(db_session)
        await service.toggle_status(user.id, admin)

        with pytest.raises(AuthorizationError):
            await service.authenticate_user(user.email, TEST_PASSWORD)

    async def test_list_filters_by_role_and_search(self, db_session, make_user):
        await make_user()
        provider = await make_user(UserRole.PROVIDER, name="Tunde Caterer")

        users, total = await UserService(db_session).list_users(role=UserRole.PROVIDER, search="tunde")

        assert total == 1
        assert [u.id for u in users] == [provider.id]


class TestUserApi:
    async def test_email_conflict_is_409(self, client, db_session, make_user, headers_for):
        user = await make_user()
        other = await make_user()
        await db_session.commit()

        response = await client.put(
            f"/api/v1/users/{user.id}/profile", headers=headers_for(user), json={"email": other.email}
        )

        assert response.status_code == 409

    async def test_cac_submission_for_someone_else_is_403(self, client, db_session, make_user, headers_for):
        user = await make_user(UserRole.PROVIDER)
        other = await make_user(UserRole.PROVIDER)
        await db_session.commit()

        response = await client.post(
            f"/api/v1/users/{other.id}/verify-cac",
            headers=headers_for(user),
            json={"cac_number": "RC123456", "business_name": "Lens & Light"},
        )

        assert response.status_code == 403

    async def test_toggle_status_needs_admin(self, client, db_session, make_user, headers_for):
        user = await make_user()
        target = await make_user()
        await db_session.commit()

        response = await client.put(f"/api/v1/users/{target.id}/toggle-status", headers=headers_for(user))

        assert response.status_code == 403

    async def test_admin_toggles_status(self, client, db_session, make_user, headers_for):
        admin = await make_user(UserRole.ADMIN)
        target = await make_user()
        await db_session.commit()

        response = await client.put(f"/api/v1/users/{target.id}/toggle-status", headers=headers_for(admin))

        assert response.status_code == 200
        assert response.json()["message"] == "User deactivated successfully"
        assert response.json()["user"]["is_active"] is False
