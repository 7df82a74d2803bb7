"""Runs the route policy before any handler."""

import logfire

from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from middleware.error_handling import error_response
from security.errors import Forbidden, Unauthenticated
from security.policy import Decision, PolicyGate


class AuthorizationMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: FastAPI, gate: PolicyGate):
        super().__init__(app)
        self.gate = gate

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # CORS preflight never carries credentials
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        principal = getattr(request.state, "principal", None)
        request.state.route_policy = self.gate.match(request.method, path)
        decision = self.gate.evaluate(request.method, path, principal)

        if decision is Decision.DENY_ANONYMOUS:
            error = Unauthenticated()
            return error_response(error.status_code, error.message, path, error=error.error)

        if decision is Decision.DENY_ROLE:
            logfire.info(
                "Denied {method} {path} for role {role}",
                method=request.method,
                path=path,
                role=principal.role,
            )
            error = Forbidden()
            return error_response(error.status_code, error.message, path, error=error.error)

        return await call_next(request)
