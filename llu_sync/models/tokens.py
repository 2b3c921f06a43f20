"""Models for LibreLinkUp credentials, auth tickets and session state."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

# Latest instant a datetime can represent (9999-12-31T23:59:59Z).
MAX_EXPIRES = 253402300799


class Credentials(BaseModel):
    """Follower account credentials supplied by the caller."""

    email: str = Field(..., description="Account email")
    password: SecretStr = Field(..., description="Account password")

    def to_login_body(self) -> dict:
        return {"email": self.email, "password": self.password.get_secret_value()}


class AuthTicket(BaseModel):
    """Bearer token and validity window returned by the login endpoint."""

    model_config = ConfigDict(frozen=True)

    token: str = Field("", description="Bearer token")
    expires: int = Field(0, description="Expiry, Unix seconds")
    duration: int = Field(0, description="Validity in seconds")

    @field_validator("expires")
    @classmethod
    def clamp_expires(cls, v: int) -> int:
        """Keep the expiry inside the range datetime can represent."""
        return min(max(v, 0), MAX_EXPIRES)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.expires, tz=timezone.utc)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """A ticket authorizes requests only while non-empty and unexpired."""
        now = now or datetime.now(timezone.utc)
        return bool(self.token) and now < self.expires_at


class SessionState(BaseModel):
    """
    Single-owner session threaded through every call.

    Instances are immutable; the transition methods return new objects so
    update points stay explicit.
    """

    model_config = ConfigDict(frozen=True)

    patient_id: str = Field("", description="Patient (connection) id")
    ticket: AuthTicket = Field(default_factory=AuthTicket, description="Current auth ticket")
    region: str = Field("eu", description="Regional API host selector")

    @property
    def token(self) -> str:
        return self.ticket.token

    @property
    def token_expiration_date(self) -> datetime:
        return self.ticket.expires_at

    def is_authenticated(self, now: Optional[datetime] = None) -> bool:
        return bool(self.patient_id) and self.ticket.is_valid(now)

    def with_login(self, patient_id: str, ticket: AuthTicket) -> "SessionState":
        return self.model_copy(update={"patient_id": patient_id, "ticket": ticket})

    def with_region(self, region: str) -> "SessionState":
        return self.model_copy(update={"region": region.strip().lower()})

    def cleared(self) -> "SessionState":
        return SessionState(region=self.region)
