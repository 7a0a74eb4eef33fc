import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./marrow_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("RATING_RECONCILE_INTERVAL_SECONDS", "0")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from app.core.database import Base, get_db  # noqa: E402
from app.core.security import create_access_token, hash_password  # noqa: E402
from app.main import app  # noqa: E402
from app.models.appointment import Appointment  # noqa: E402, F401
from app.models.review import Review  # noqa: E402, F401
from app.models.user import Doctor, Patient, User  # noqa: E402

TEST_DB_URL = os.getenv("TEST_DATABASE_URL")
PASSWORD = "password123"


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(TEST_DB_URL or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db):
    async def _override_db():
        yield db

    app.dependency_overrides[get_db] = _override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id))
    return {"Authorization": f"Bearer {token}"}


async def make_doctor(db: AsyncSession, email: str, name: str, specialty: str = "Cardiology") -> tuple[User, Doctor]:
    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(PASSWORD),
        name=name,
        role="doctor",
    )
    db.add(user)
    doctor = Doctor(id=uuid.uuid4(), user_id=user.id, specialty=specialty, hospital="City Hospital", experience=10)
    db.add(doctor)
    await db.commit()
    return user, doctor


async def make_patient(db: AsyncSession, email: str, name: str) -> tuple[User, Patient]:
    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(PASSWORD),
        name=name,
        role="patient",
    )
    db.add(user)
    patient = Patient(id=uuid.uuid4(), user_id=user.id, gender="female")
    db.add(patient)
    await db.commit()
    return user, patient


@pytest_asyncio.fixture
async def doctor_pair(db: AsyncSession):
    return await make_doctor(db, "house@marrow-health.com", "Dr. Gregory House")


@pytest_asyncio.fixture
async def doctor_user(doctor_pair) -> User:
    return doctor_pair[0]


@pytest_asyncio.fixture
async def doctor(doctor_pair) -> Doctor:
    return doctor_pair[1]


@pytest_asyncio.fixture
async def other_doctor_pair(db: AsyncSession):
    return await make_doctor(db, "wilson@marrow-health.com", "Dr. James Wilson", specialty="Oncology")


@pytest_asyncio.fixture
async def patient_pair(db: AsyncSession):
    return await make_patient(db, "jane@marrow-health.com", "Jane Doe")


@pytest_asyncio.fixture
async def patient_user(patient_pair) -> User:
    return patient_pair[0]


@pytest_asyncio.fixture
async def patient(patient_pair) -> Patient:
    return patient_pair[1]


@pytest_asyncio.fixture
async def other_patient_pair(db: AsyncSession):
    return await make_patient(db, "john@marrow-health.com", "John Roe")


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> User:
    user = User(
        id=uuid.uuid4(),
        email="admin@marrow-health.com",
        password_hash=hash_password(PASSWORD),
        name="Admin",
        role="admin",
    )
    db.add(user)
    await db.commit()
    return user
