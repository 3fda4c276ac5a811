"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite schema per test
- In-memory object storage that records pre-signs, uploads and deletes
- A three-level department tree, an applicant and an approver
- HTTPX AsyncClient wired to the app with overridden dependencies
"""
import io
import os
import uuid
import zipfile
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Must be set before the app modules build the engine.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENV"] = "test"

import anyio
import pytest
from httpx import ASGITransport, AsyncClient
from openpyxl import Workbook
from PIL import Image
from sqlalchemy.orm import Session

from approval_api.core.deps import get_db, get_storage
from approval_api.core.errors import CompensationFailure
from approval_api.db.base import Base
from approval_api.db.enums import DepartmentStatus, Role
from approval_api.db.models import Department, User
from approval_api.db.session import SessionLocal, engine
from approval_api.main import app
from approval_api.services.attachment_storage import WriteCredential


# =============================================================================
# Fake object storage
# =============================================================================

class FakeStorage:
    """
    In-memory stand-in for S3AttachmentStorage.

    ``fail_uploads`` / ``slow_uploads`` hold file names whose upload raises or
    never finishes; ``fail_deletes`` makes every delete raise.
    """

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.names: dict[str, str] = {}
        self.presigned: list[str] = []
        self.deleted: list[str] = []
        self.fail_uploads: set[str] = set()
        self.slow_uploads: set[str] = set()
        self.fail_deletes = False

    def presign_write(self, file_name: str, content_type: str) -> WriteCredential:
        key = f"test/{uuid.uuid4().hex[:8]}-{file_name}"
        self.names[key] = file_name
        self.presigned.append(key)
        return WriteCredential(
            upload_url=f"https://upload.test/{key}",
            public_url=f"https://cdn.test/{key}",
            storage_key=key,
            content_type=content_type,
        )

    async def upload(self, credential: WriteCredential, payload: bytes) -> None:
        name = self.names[credential.storage_key]
        if name in self.slow_uploads:
            await anyio.sleep(30)
        if name in self.fail_uploads:
            raise RuntimeError("simulated network failure")
        self.objects[credential.storage_key] = payload

    def delete_keys(self, keys: list[str]) -> None:
        self.deleted.extend(keys)
        if self.fail_deletes:
            raise CompensationFailure(list(keys), "simulated delete failure")
        for key in keys:
            self.objects.pop(key, None)

    def stored_names(self) -> list[str]:
        return sorted(self.names[key] for key in self.objects)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code commits normally."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Self-referencing department rows block DROP TABLE while FKs are enforced.
        with engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
            Base.metadata.drop_all(bind=conn)
            conn.commit()
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")


def _user(db: Session, username: str, role: Role) -> User:
    user = User(username=username, real_name=username.title(), role=role.value)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def applicant(db: Session) -> User:
    return _user(db, "alice", Role.APPLICANT)


@pytest.fixture
def other_applicant(db: Session) -> User:
    return _user(db, "bob", Role.APPLICANT)


@pytest.fixture
def approver(db: Session) -> User:
    return _user(db, "carol", Role.APPROVER)


@dataclass
class DepartmentTree:
    """
    Headquarters/Engineering/Platform and Headquarters/Finance, plus a
    second root Branch/Sales and a disabled Archive root.
    """

    hq: Department
    engineering: Department
    platform: Department
    finance: Department
    branch: Department
    sales: Department
    archive: Department


@pytest.fixture
def departments(db: Session) -> DepartmentTree:
    def add(code, name, level, parent=None, sort_order=0, status=DepartmentStatus.ENABLED):
        dept = Department(
            dept_code=code,
            dept_name=name,
            level=level,
            parent_id=parent.id if parent else None,
            sort_order=sort_order,
            status=status.value,
        )
        db.add(dept)
        db.flush()
        return dept

    hq = add("HQ", "Headquarters", 1)
    engineering = add("ENG", "Engineering", 2, hq, sort_order=1)
    finance = add("FIN", "Finance", 2, hq, sort_order=0)
    platform = add("PLT", "Platform", 3, engineering)
    branch = add("BR", "Branch", 1, sort_order=1)
    sales = add("SAL", "Sales", 2, branch)
    archive = add("ARC", "Archive", 1, sort_order=2, status=DepartmentStatus.DISABLED)
    db.commit()
    return DepartmentTree(
        hq=hq,
        engineering=engineering,
        platform=platform,
        finance=finance,
        branch=branch,
        sales=sales,
        archive=archive,
    )


# =============================================================================
# Payload helpers
# =============================================================================

def _png_bytes(size: tuple[int, int] = (8, 8)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color="red").save(buf, format="PNG")
    return buf.getvalue()


def _workbook_bytes(rows: list[list[object]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def make_png():
    return _png_bytes


@pytest.fixture
def make_workbook():
    return _workbook_bytes


@pytest.fixture
def valid_table() -> bytes:
    """Workbook with the configured required headers and two complete rows."""
    return _workbook_bytes(
        [
            ["Project Name", "Requested Amount", "Reason", "Applicant"],
            ["New lab", 12000, "equipment", "Alice"],
            ["Training", 800, "", "Bob"],
        ]
    )


@pytest.fixture
def corrupt_table(valid_table) -> bytes:
    """Valid workbook whose first sheet XML is cut off halfway."""
    source = zipfile.ZipFile(io.BytesIO(valid_table))
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as target:
        for item in source.infolist():
            data = source.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                data = data[: len(data) // 2]
            target.writestr(item, data)
    return buf.getvalue()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session, storage: FakeStorage) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient with the test session and fake storage injected."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
