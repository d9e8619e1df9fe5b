"""Type definitions for caller identity and tokens."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Caller:
    """The resolved identity an operation runs as.

    Transports authenticate and hand the engine only this.

    Attributes:
        id: The caller's user id (None for anonymous callers)
        roles: Role names, highest-priority first
    """

    id: str | None = None
    roles: tuple[str, ...] = ()

    @property
    def role(self) -> str | None:
        return self.roles[0] if self.roles else None


@dataclass
class TokenClaims:
    """Claims embedded in a caller token.

    Attributes:
        user_id: The authenticated user's ID
        role: The user's role
        exp: Token expiration timestamp
        iat: Token issued-at timestamp
        type: Token type ("access")
    """

    user_id: str
    role: str | None = None
    exp: int = 0
    iat: int = 0
    type: str = "access"

    def to_caller(self) -> Caller:
        return Caller(id=self.user_id, roles=(self.role,) if self.role else ())
