"""Builders for test data."""
import io
from decimal import Decimal
from typing import Optional

from pypdf import PdfWriter

from pagevault.core.security import create_access_token, hash_password
from pagevault.models import Document, User, UserRole
from pagevault.services.storage import storage_service


def make_pdf(pages: int) -> bytes:
    """Build a small valid PDF with the given number of blank pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=300, height=400)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


async def create_user(
    db,
    email: str = "reader@example.com",
    username: Optional[str] = None,
    role: UserRole = UserRole.USER,
    is_active: bool = True,
    password: str = "password123",
) -> User:
    user = User(
        first_name="Test",
        last_name="User",
        email=email.lower(),
        username=username or email.split("@")[0],
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_document(
    db,
    price: str = "100",
    total_pages: int = 10,
    free_pages: int = 3,
    is_active: bool = True,
    title: str = "Sample document",
) -> Document:
    content = make_pdf(total_pages)
    key, size = storage_service.save_document(content, "sample.pdf")
    document = Document(
        title=title,
        file_name="sample.pdf",
        file_path=key,
        file_size=size,
        total_pages=total_pages,
        free_pages=free_pages,
        price=Decimal(price),
        is_active=is_active,
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)
    return document


def auth_headers(user: User) -> dict:
    token, _ = create_access_token(user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}
