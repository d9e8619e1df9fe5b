"""Authentication middleware for FastAPI."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tablekit.auth.jwt_service import JWTError, JWTService
from tablekit.auth.types import Caller


class AuthMiddleware(BaseHTTPMiddleware):
    """Extracts the Bearer JWT and sets request.state.caller.

    If no token is present or the token is invalid, caller is set to None.
    The middleware does NOT reject unauthenticated requests - that's handled
    by the endpoint dependencies.
    """

    def __init__(self, app, jwt_service: JWTService):
        super().__init__(app)
        self._jwt_service = jwt_service

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.caller = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[7:]  # Remove "Bearer " prefix
            try:
                claims = self._jwt_service.decode_token(token)
                if claims.type == "access" and claims.user_id:
                    request.state.caller = claims.to_caller()
            except JWTError:
                # Invalid token - leave caller as None
                pass

        return await call_next(request)


def get_request_caller(request: Request) -> Caller | None:
    """Get the caller set by AuthMiddleware, if any."""
    return getattr(request.state, "caller", None)
