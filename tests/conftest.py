from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from campusdesk.audit import AuditLogStore, LogStatus, RiskLevel, SystemLog
from campusdesk.core.identity import CurrentUser
from campusdesk.metrics import MetricsRegistry, register_default_metrics
from campusdesk.services.notifications import NotificationBuffer
from campusdesk.storage import InMemoryStorage
from campusdesk.tickets import TicketRepository, TicketService

NOW = datetime(2024, 5, 20, 10, 30, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def notifications() -> NotificationBuffer:
    return NotificationBuffer()


@pytest.fixture
def registry() -> MetricsRegistry:
    return register_default_metrics(MetricsRegistry())


@pytest.fixture
def repository(storage) -> TicketRepository:
    return TicketRepository(storage)


@pytest.fixture
def service(repository, notifications, clock, registry) -> TicketService:
    return TicketService(repository, notifier=notifications, clock=clock, metrics=registry)


@pytest.fixture
def student() -> CurrentUser:
    return CurrentUser(id="stu_001", name="Lin Mei", role_id="role_student")


@pytest.fixture
def other_student() -> CurrentUser:
    return CurrentUser(id="stu_002", name="Chen Hao", role_id="role_student")


@pytest.fixture
def admin() -> CurrentUser:
    return CurrentUser(id="adm_001", name="Counselor Wu", role_id="role_admin")


@pytest.fixture
def make_log():
    counter = {"value": 0}

    def factory(
        *,
        timestamp: datetime = NOW,
        action_type: str = "UPDATE",
        status: LogStatus = LogStatus.SUCCESS,
        risk_level: RiskLevel = RiskLevel.LOW,
        actor_name: str = "Counselor Wu",
        target: str = "Student 11288123A",
        **extra,
    ) -> SystemLog:
        counter["value"] += 1
        return SystemLog(
            id=f"log_{counter['value']}",
            timestamp=timestamp,
            actor_name=actor_name,
            role_name=extra.pop("role_name", "Counselor"),
            ip=extra.pop("ip", "10.0.0.8"),
            action_type=action_type,
            target=target,
            status=status,
            risk_level=risk_level,
            **extra,
        )

    return factory


@pytest.fixture
def audit_store(storage, clock) -> AuditLogStore:
    return AuditLogStore(storage, clock=clock)
