"""User deletion modes, profile edits and the administrator bootstrap."""
import pytest
from sqlalchemy import func, select

from pagevault.database.users_repo import user_repository
from pagevault.models import ActivityLog, FilePermission, License, Purchase, PurchaseStatus, UserRole
from pagevault.schemas.audit import ProfileUpdatedDetails, UserRoleChangedDetails
from pagevault.schemas.auth import RegisterRequest
from pagevault.schemas.purchases import PurchaseCreate
from pagevault.schemas.users import AdminUserUpdate, ProfileUpdateRequest
from pagevault.services.activity_service import ActivityService
from pagevault.services.auth_service import AuthService
from pagevault.services.bootstrap_service import BootstrapService
from pagevault.services.purchase_service import PurchaseService
from pagevault.services.user_service import UserService
from pagevault.utils.exceptions import ConflictException, UnauthorizedException, ValidationException

from factories import create_user


async def count_rows(db, model, *criteria) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_soft_delete_anonymizes_and_frees_identity(db, admin, reader):
    reader_id = reader.id

    await UserService.delete_user(db, reader_id, admin, mode="soft")

    user = await user_repository.get_by_id(db, reader_id)
    assert user is not None
    assert user.is_active is False
    assert user.email.startswith(f"deleted_{reader_id}_")
    assert user.email.endswith("@deleted.local")
    assert user.username.startswith(f"deleted_{reader_id}_")

    again = await AuthService.register(
        db,
        RegisterRequest(
            first_name="Back",
            last_name="Again",
            email="reader@example.com",
            username="reader",
            password="password123",
        ),
    )
    assert again.id != reader_id


@pytest.mark.asyncio
async def test_soft_deleted_user_cannot_log_in(db, admin, reader):
    await UserService.delete_user(db, reader.id, admin, mode="soft")

    with pytest.raises(UnauthorizedException):
        await AuthService.authenticate(db, "reader@example.com", "password123")


@pytest.mark.asyncio
async def test_permanent_delete_removes_dependent_rows(db, admin, reader, document):
    reader_id = reader.id
    purchase = await PurchaseService.create_purchase(db, reader, PurchaseCreate(document_id=document.id))
    await PurchaseService.set_purchase_status(db, purchase.id, PurchaseStatus.APPROVED, admin)
    db.add(FilePermission(user_id=reader_id, document_id=document.id, granted_by=admin.id))
    await db.commit()

    await UserService.delete_user(db, reader_id, admin, mode="permanent")

    assert await user_repository.get_by_id(db, reader_id) is None
    assert await count_rows(db, Purchase, Purchase.user_id == reader_id) == 0
    assert await count_rows(db, License, License.user_id == reader_id) == 0
    assert await count_rows(db, FilePermission, FilePermission.user_id == reader_id) == 0
    assert await count_rows(db, ActivityLog, ActivityLog.actor_user_id == reader_id) == 0
    assert await count_rows(db, ActivityLog, ActivityLog.action == "user_deleted") == 1


@pytest.mark.asyncio
async def test_update_rejects_taken_email(db, admin, reader):
    await create_user(db, email="other@example.com", username="other")

    with pytest.raises(ConflictException):
        await UserService.update_user(db, reader.id, AdminUserUpdate(email="OTHER@example.com"), admin)


@pytest.mark.asyncio
async def test_update_changes_password(db, admin, reader):
    await UserService.update_user(db, reader.id, AdminUserUpdate(password="a-new-password"), admin)

    user = await AuthService.authenticate(db, "reader@example.com", "a-new-password")
    assert user.id == reader.id


@pytest.mark.asyncio
async def test_bootstrap_creates_admin_and_demotes_others(db, admin, isolated_settings, monkeypatch):
    monkeypatch.setattr(isolated_settings, "BOOTSTRAP_ADMIN_EMAIL", "Owner@Example.com")
    monkeypatch.setattr(isolated_settings, "BOOTSTRAP_ADMIN_USERNAME", "owner")
    monkeypatch.setattr(isolated_settings, "BOOTSTRAP_ADMIN_PASSWORD", "owner-password")

    owner = await BootstrapService.ensure_bootstrap_admin(db)

    assert owner.email == "owner@example.com"
    assert owner.role == UserRole.ADMIN
    await db.refresh(admin)
    assert admin.role == UserRole.USER
    assert await user_repository.count_active_admins(db) == 1

    result = await db.execute(select(ActivityLog.details).where(ActivityLog.action == "user_role_changed"))
    demotion = ActivityService.parse_details(result.scalar_one())
    assert isinstance(demotion, UserRoleChangedDetails)
    assert demotion.target_user_id == str(admin.id)
    assert (demotion.previous_role, demotion.new_role) == ("admin", "user")


@pytest.mark.asyncio
async def test_bootstrap_promotes_existing_account_once(db, isolated_settings, monkeypatch):
    user = await create_user(db, email="owner@example.com", username="owner", is_active=False)
    monkeypatch.setattr(isolated_settings, "BOOTSTRAP_ADMIN_EMAIL", "owner@example.com")

    first = await BootstrapService.ensure_bootstrap_admin(db)
    second = await BootstrapService.ensure_bootstrap_admin(db)

    assert first.id == second.id == user.id
    assert second.role == UserRole.ADMIN
    assert second.is_active is True
    assert await count_rows(db, ActivityLog, ActivityLog.action == "bootstrap_admin") == 1


@pytest.mark.asyncio
async def test_bootstrap_is_skipped_without_email(db):
    assert await BootstrapService.ensure_bootstrap_admin(db) is None


@pytest.mark.asyncio
async def test_profile_update_changes_identity_fields(db, reader):
    updated = await UserService.update_profile(
        db,
        reader,
        ProfileUpdateRequest(
            first_name="Rita",
            last_name="Reads",
            email="Rita@Example.com",
            username="rita",
            phone_number="+15550100",
        ),
    )

    assert updated.email == "rita@example.com"
    assert updated.username == "rita"
    assert updated.full_name == "Rita Reads"
    assert updated.role == UserRole.USER
    result = await db.execute(select(ActivityLog.details).where(ActivityLog.action == "profile_updated"))
    details = ActivityService.parse_details(result.scalar_one())
    assert isinstance(details, ProfileUpdatedDetails)
    assert details.password_changed is False
    assert "email" in details.fields


@pytest.mark.asyncio
async def test_profile_update_rejects_taken_username(db, reader):
    await create_user(db, email="taken@example.com", username="taken")

    with pytest.raises(ConflictException):
        await UserService.update_profile(
            db,
            reader,
            ProfileUpdateRequest(first_name="Test", last_name="User", email="reader@example.com", username="taken"),
        )


@pytest.mark.asyncio
async def test_profile_password_change_needs_current_password(db, reader):
    base = dict(first_name="Test", last_name="User", email="reader@example.com", username="reader")

    with pytest.raises(ValidationException):
        await UserService.update_profile(db, reader, ProfileUpdateRequest(new_password="brand-new-pass", **base))
    with pytest.raises(ValidationException):
        await UserService.update_profile(
            db,
            reader,
            ProfileUpdateRequest(current_password="not-my-password", new_password="brand-new-pass", **base),
        )

    await UserService.update_profile(
        db,
        reader,
        ProfileUpdateRequest(current_password="password123", new_password="brand-new-pass", **base),
    )

    user = await AuthService.authenticate(db, "reader@example.com", "brand-new-pass")
    assert user.id == reader.id
