import uuid

import pytest
from sqlalchemy import func, select

from pagevault.models import FilePermission
from pagevault.schemas.permissions import PermissionEntry
from pagevault.services.permission_service import PermissionService
from pagevault.utils.exceptions import NotFoundException

from factories import create_document


async def permission_rows(db, user_id) -> int:
    result = await db.execute(
        select(func.count()).select_from(FilePermission).where(FilePermission.user_id == user_id)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_grant_then_revoke_toggles_one_row(db, admin, reader, document):
    granted = await PermissionService.set_permissions(
        db, reader.id, [PermissionEntry(document_id=document.id, has_access=True)], admin
    )
    assert [item.has_access for item in granted] == [True]

    revoked = await PermissionService.set_permissions(
        db, reader.id, [PermissionEntry(document_id=document.id, has_access=False)], admin
    )
    assert [item.has_access for item in revoked] == [False]

    regranted = await PermissionService.set_permissions(
        db, reader.id, [PermissionEntry(document_id=document.id, has_access=True)], admin
    )
    assert regranted[0].has_access is True
    assert await permission_rows(db, reader.id) == 1


@pytest.mark.asyncio
async def test_listing_covers_every_active_document(db, reader, document):
    await create_document(db, title="Hidden", is_active=False)
    other = await create_document(db, title="Second")

    items = await PermissionService.list_user_permissions(db, reader.id)

    assert {item.document_id for item in items} == {str(document.id), str(other.id)}
    assert not any(item.has_access for item in items)


@pytest.mark.asyncio
async def test_unknown_document_rolls_back_whole_batch(db, admin, reader, document):
    reader_id = reader.id
    entries = [
        PermissionEntry(document_id=document.id, has_access=True),
        PermissionEntry(document_id=uuid.uuid4(), has_access=True),
    ]

    with pytest.raises(NotFoundException):
        await PermissionService.set_permissions(db, reader_id, entries, admin)

    assert await permission_rows(db, reader_id) == 0


@pytest.mark.asyncio
async def test_unknown_user_is_not_found(db, admin, document):
    with pytest.raises(NotFoundException):
        await PermissionService.set_permissions(
            db, uuid.uuid4(), [PermissionEntry(document_id=document.id, has_access=True)], admin
        )


@pytest.mark.asyncio
async def test_revoking_without_grant_is_a_no_op(db, admin, reader, document):
    await PermissionService.set_permissions(
        db, reader.id, [PermissionEntry(document_id=document.id, has_access=False)], admin
    )

    assert await permission_rows(db, reader.id) == 0
