# marketplace/domain/actor.py
from dataclasses import dataclass

from marketplace.domain.statuses import Role


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as supplied by the auth layer. Trusted as-is."""

    user_id: int
    role: Role = Role.BUYER

    @property
    def is_seller(self) -> bool:
        return self.role == Role.SELLER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
