from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import SessionLocal


class ActorRole(str, Enum):
    admin = "admin"
    scheduler = "scheduler"
    teacher = "teacher"


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.admin


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    """Caller identity forwarded by the gateway that authenticated the request."""
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing actor headers")
    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unknown actor role") from exc
    return Actor(id=x_actor_id.strip(), role=role)


def require_roles(*roles: ActorRole) -> Callable[[Actor], Actor]:
    allowed_roles: Iterable[ActorRole] = set(roles)

    def role_checker(current_actor: Actor = Depends(get_current_actor)) -> Actor:
        if current_actor.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_actor

    return role_checker
