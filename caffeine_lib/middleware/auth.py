"""JWT bearer-token authentication.

Every request except the exempt paths and CORS pre-flight must carry
`Authorization: Bearer <token>` signed by the key pair whose public half the
server was started with. The verified subject becomes `request.state.user`
and is recorded as the acting user on writes and change events.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterable, Sequence

import jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

USER_CLAIM = "sub"


def load_public_key(path: str | Path) -> bytes:
    """Read the PEM public key. A missing or unreadable file is fatal at startup."""
    p = Path(path)
    try:
        return p.read_bytes()
    except OSError as e:
        raise RuntimeError(f"auth required but error on reading public key for JWT: {e}") from e


def unauthorized(message: str) -> Response:
    return JSONResponse(status_code=401, content={'error': 'unauthorized', 'message': message})


class JWTAuthMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        public_key: bytes | str,
        algorithms: Sequence[str] = ("RS256",),
        exempt_paths: Iterable[str] = ("/health",),
    ):
        super().__init__(app)
        self.public_key = public_key
        self.algorithms = list(algorithms)
        self.exempt_paths = set(exempt_paths)

    async def dispatch(self, request: Request, call_next):
        if request.method == 'OPTIONS' or request.url.path in self.exempt_paths:
            return await call_next(request)

        header = request.headers.get('authorization', '')
        scheme, _, token = header.partition(' ')
        if scheme.lower() != 'bearer' or not token.strip():
            return unauthorized('missing bearer token')

        try:
            claims = jwt.decode(token.strip(), self.public_key, algorithms=self.algorithms)
        except jwt.PyJWTError as e:
            logger.info("Rejected token for %s %s: %s", request.method, request.url.path, e)
            return unauthorized(f'invalid token: {e}')

        user = claims.get(USER_CLAIM)
        if not user:
            return unauthorized(f"token has no '{USER_CLAIM}' claim")
        request.state.user = str(user)
        return await call_next(request)
