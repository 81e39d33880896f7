from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shared.constants import Role


class CurrentUser(BaseModel):
    """User context from JWT; used by all routers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID
    email: str
    name: str = ""
    roles: list[Role] = Field(default_factory=list)

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles
