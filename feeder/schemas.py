"""Core data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

KEY_SPACE = 1 << 16
SIGNATURE_SIZE = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Fingerprint(BaseModel):
    """Bounded map key plus near-unique signature derived from an identifier."""

    model_config = ConfigDict(frozen=True)

    bounded_key: int = Field(..., ge=0, lt=KEY_SPACE, description="Key in the shared map")
    signature: bytes = Field(..., description="8 bytes used to tell colliding keys apart")

    @field_validator("signature")
    @classmethod
    def _check_signature(cls, value: bytes) -> bytes:
        if len(value) != SIGNATURE_SIZE:
            raise ValueError(f"signature must be {SIGNATURE_SIZE} bytes, got {len(value)}")
        return value

    def matches(self, other: Optional[bytes]) -> bool:
        """Byte-for-byte comparison against a stored signature."""
        return other is not None and bytes(other) == self.signature


class ClaimDecision(str, Enum):
    """Outcome of the claim protocol for one identifier."""

    NEW = "new"  # key was free, we inserted it
    DUPLICATE = "duplicate"  # same signature already stored
    COLLISION = "collision"  # different signature under the same key, overwritten


class ProcessOutcome(str, Enum):
    """Terminal signal from the processing collaborator."""

    SUCCESS = "success"
    FAILURE = "failure"


class CycleSummary(BaseModel):
    """Counts for one scan cycle."""

    cycle: int
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    candidates: int = 0
    claimed: int = 0
    duplicates: int = 0
    collisions: int = 0
    failed: int = 0
    processed_ok: int = 0
    processed_failed: int = 0
    error: Optional[str] = Field(None, description="Cycle-level failure, if the cycle was aborted")

    @property
    def newly_claimed(self) -> int:
        """Claims that did not displace another identifier."""
        return self.claimed - self.collisions


class DirectoryStatus(BaseModel):
    """Result of inspecting one report directory."""

    path: str
    file_count: int = 0
    last_modified: Optional[datetime] = None
    error: Optional[str] = None

    def hours_since_last_file(self, now: Optional[datetime] = None) -> Optional[float]:
        if self.last_modified is None:
            return None
        now = now or utcnow()
        return (now - self.last_modified).total_seconds() / 3600

    def needs_alert(self, threshold_hours: float, now: Optional[datetime] = None) -> bool:
        if self.error is not None or self.last_modified is None:
            return True
        return self.hours_since_last_file(now) >= threshold_hours


class AlertSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AlertPayload(BaseModel):
    """JSON body posted to the monitoring webhook."""

    alert_id: str = Field(..., serialization_alias="alertId")
    title: str
    message: str
    severity: AlertSeverity = AlertSeverity.WARNING
    timestamp: datetime = Field(default_factory=utcnow)
    source: str = "feeder"
    application: str = "feeder"
    component: str = "report-monitor"
