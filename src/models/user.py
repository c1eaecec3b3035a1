"""User model definitions."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

ACTIVE_ACCOUNT_STATUS = "active"


class User(BaseModel):
    """Users table row snapshot, owned by the identity subsystem."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    email: str
    is_verified: bool = False
    status: str = ACTIVE_ACCOUNT_STATUS
    authorities: list[str] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE_ACCOUNT_STATUS
