"""Bearer-token gate for protected API paths.

Registered explicitly in ``create_app``. A request is checked when its path
falls under one of ``include_paths`` and none of ``exclude_paths`` (prefix
match on a path-segment boundary). Admitted requests carry
``request.state.user_id`` and ``request.state.token_claims``; rejected ones
are answered with ``{"code": 401, "message": ..., "data": null}``.
"""

from typing import Iterable, List

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.services.session_guard import Admitted, SessionGuard
from app.utils.response import error

logger = structlog.get_logger()


def path_matches(path: str, prefixes: Iterable[str]) -> bool:
    for prefix in prefixes:
        if prefix == "/" or path == prefix or path.startswith(prefix + "/"):
            return True
    return False


class SessionGuardMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        guard: SessionGuard,
        include_paths: List[str],
        exclude_paths: List[str],
    ):
        super().__init__(app)
        self.guard = guard
        self.include_paths = list(include_paths)
        self.exclude_paths = list(exclude_paths)

    def is_protected(self, path: str) -> bool:
        if path_matches(path, self.exclude_paths):
            return False
        return path_matches(path, self.include_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.is_protected(request.url.path):
            return await call_next(request)

        outcome = await self.guard.check(request.headers.get("Authorization"))

        if not isinstance(outcome, Admitted):
            logger.info(
                "request_rejected",
                method=request.method,
                path=request.url.path,
                reason=outcome.reason.value,
            )
            return error(
                message=outcome.message,
                status_code=401,
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.user_id = outcome.subject
        request.state.token_claims = outcome.claims
        return await call_next(request)
