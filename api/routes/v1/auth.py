"""
api/routes/v1/auth.py -- Credential issuance REST endpoints.

Routes:
  POST /api/v1/auth/login                    -- email/password -> token for app_id
  POST /api/v1/auth/register                 -- email/password -> new user id
  GET  /api/v1/auth/users/{user_id}/is-admin -- admin flag for a user

Handlers are thin: validate the body (Pydantic), call AuthService, map the
result. AuthError is not caught here -- the handler in api/main.py turns every
ErrorKind into its HTTP status in one place.

Security:
  [C1] login() is the service's timing-equalized path -- never inline a store
       lookup + verify here.
  [M5] Cache-Control: no-store on login responses; they carry a bearer token.
"""

from __future__ import annotations

from fastapi import APIRouter, Path, Request
from fastapi.responses import JSONResponse

from api.models import IsAdminResponse, LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from auth.models import RequestContext
from auth.service import AuthService

router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _context(request: Request) -> RequestContext:
    return RequestContext(request_id=getattr(request.state, "request_id", "-"))


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate and return a token signed for the requested application.

    Unknown email and wrong password return the same 401 invalid_credentials.
    An unknown app_id returns 404 invalid_app_id.
    """
    token = _service(request).login(body.email, body.password, body.app_id, ctx=_context(request))
    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Register a new user. A duplicate email returns 409 user_exists."""
    user_id = _service(request).register_new_user(body.email, body.password, ctx=_context(request))
    return RegisterResponse(user_id=user_id)


@router.get("/auth/users/{user_id}/is-admin", response_model=IsAdminResponse)
def is_admin(request: Request, user_id: int = Path(gt=0)) -> IsAdminResponse:
    """Return whether the user has the admin flag.

    An unknown user_id returns 404 invalid_app_id (see AuthService.is_admin).
    """
    flag = _service(request).is_admin(user_id, ctx=_context(request))
    return IsAdminResponse(is_admin=flag)
