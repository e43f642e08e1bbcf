"""Shared fixtures for MFA tests."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from mfa_core.db import InMemoryStore, SqlStore, create_db_engine, create_tables
from mfa_core.mfa import DeliveryChannel, MFAService, TOTPManager
from mfa_core.schema import MethodKind, MethodOptions


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingChannel(DeliveryChannel):
    """Stores dispatched codes instead of sending them."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    def send(self, destination: str, code: str) -> bool:
        if self.fail:
            return False
        self.sent.append((destination, code))
        return True

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


def other_code(code: str) -> str:
    """Same length, guaranteed different."""
    return code[:-1] + str((int(code[-1]) + 1) % 10)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, 5, tzinfo=timezone.utc))


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def totp():
    return TOTPManager(issuer_name="GasRapido", digits=6, interval=30)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryStore()

    engine = create_db_engine("sqlite://")
    create_tables(engine)
    sql_store = SqlStore(engine)
    request.addfinalizer(engine.dispose)
    return sql_store


@pytest.fixture
def service(store, channel, totp, clock):
    return MFAService(store=store, channel=channel, totp_manager=totp, clock=clock)


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def enroll_sms(service, channel):
    """Register and confirm an sms method; returns the method."""

    def _enroll(user_id, phone="+244923000111"):
        registration = service.registry.register_method(
            user_id, MethodKind.SMS, MethodOptions(phone_number=phone)
        )
        return service.registry.confirm_enrollment(
            registration.method.id, channel.last_code
        )

    return _enroll


@pytest.fixture
def enroll_totp(service, totp, clock):
    """Register and confirm a totp method; returns (method, secret)."""

    def _enroll(user_id):
        registration = service.registry.register_method(user_id, MethodKind.TOTP)
        method = service.registry.confirm_enrollment(
            registration.method.id,
            totp.get_current_code(registration.secret, clock()),
        )
        return method, registration.secret

    return _enroll
