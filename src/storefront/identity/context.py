"""Request context — who is calling, passed explicitly into every operation.

Authentication happens upstream; by the time a service runs, the caller is
either an ``Actor`` with a role or nobody at all.
"""

from dataclasses import dataclass
from enum import Enum

from storefront.shared.errors import Forbidden, Unauthorized


class Role(Enum):
    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"


STAFF_ROLES = (Role.ADMIN, Role.STAFF)


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role = Role.CUSTOMER
    email: str | None = None
    display_name: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class RequestContext:
    actor: Actor | None = None
    ip_address: str | None = None

    @classmethod
    def anonymous(cls, ip_address: str | None = None) -> "RequestContext":
        return cls(actor=None, ip_address=ip_address)

    @classmethod
    def for_user(cls, user_id: str, role: Role | str = Role.CUSTOMER, **kwargs) -> "RequestContext":
        ip_address = kwargs.pop("ip_address", None)
        return cls(actor=Actor(user_id=str(user_id), role=Role(role), **kwargs), ip_address=ip_address)

    def require_actor(self) -> Actor:
        if self.actor is None:
            raise Unauthorized("You must be logged in")
        return self.actor

    def require_role(self, *roles: Role) -> Actor:
        actor = self.require_actor()
        if actor.role not in roles:
            raise Forbidden("You do not have permission to perform this action")
        return actor

    def require_staff(self) -> Actor:
        return self.require_role(*STAFF_ROLES)

    def require_admin(self) -> Actor:
        return self.require_role(Role.ADMIN)

    def require_owner_or_staff(self, owner_id) -> Actor:
        actor = self.require_actor()
        if not actor.is_staff and str(owner_id) != actor.user_id:
            raise Forbidden("You do not have access to this resource")
        return actor
