"""REST API for wallet-login."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .address import to_checksum
from .config import Config
from .errors import InvalidSessionError, WalletLoginError
from .handshake import AuthHandshake
from .sessions import Session


# Pydantic models for API

class RegisterRequest(BaseModel):
    """Request to register an address."""

    address: str


class RegisterResponse(BaseModel):
    """Response from registration."""

    address: str
    nonce: str


class NonceResponse(BaseModel):
    """Current challenge nonce for an address."""

    nonce: str


class SigninRequest(BaseModel):
    """Signed challenge."""

    address: str
    nonce: str
    signature: str


class SigninResponse(BaseModel):
    """Issued session."""

    token: str
    address: str
    expires_at: str


class WelcomeResponse(BaseModel):
    """Greeting for an authenticated session."""

    address: str
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


# Dependency injection

class LoginDeps:
    """Dependency container for the API."""

    def __init__(self, config: Config, handshake: AuthHandshake):
        self.config = config
        self.handshake = handshake


_deps: LoginDeps | None = None


def get_deps() -> LoginDeps:
    if _deps is None:
        raise RuntimeError("Dependencies not initialized")
    return _deps


def init_deps(config: Config, handshake: AuthHandshake) -> None:
    global _deps
    _deps = LoginDeps(config, handshake)


def get_session(
    authorization: Annotated[str | None, Header()] = None,
    deps: LoginDeps = Depends(get_deps),
) -> Session:
    """Validate authorization header and return the session."""
    if not authorization:
        raise InvalidSessionError("Missing Authorization header")

    if not authorization.startswith("Bearer "):
        raise InvalidSessionError("Invalid Authorization header format")

    return deps.handshake.whoami(authorization[7:])


# FastAPI app

app = FastAPI(
    title="Wallet Login",
    description="Challenge-response login for Ethereum accounts",
    version="0.1.0",
)

# Wallets sign from arbitrary dapp origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WalletLoginError)
async def handle_login_error(request: Request, exc: WalletLoginError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


@app.get("/health", response_model=HealthResponse)
def health():
    """Health check endpoint (no auth required)."""
    from . import __version__
    return HealthResponse(status="healthy", version=__version__)


@app.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    deps: LoginDeps = Depends(get_deps),
):
    """Register an address and issue its first challenge nonce."""
    account = deps.handshake.register(request.address)
    return RegisterResponse(address=account.address, nonce=account.current_nonce)


@app.get("/users/{address}/nonce", response_model=NonceResponse)
def user_nonce(
    address: str,
    deps: LoginDeps = Depends(get_deps),
):
    """Get the current challenge nonce for an address."""
    return NonceResponse(nonce=deps.handshake.get_challenge(address))


@app.post("/signin", response_model=SigninResponse)
def signin(
    request: SigninRequest,
    deps: LoginDeps = Depends(get_deps),
):
    """Verify a signed nonce and issue a session token."""
    session = deps.handshake.login(request.address, request.nonce, request.signature)
    return SigninResponse(
        token=session.token,
        address=session.address,
        expires_at=session.expires_at.isoformat(),
    )


@app.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
def signout(
    session: Session = Depends(get_session),
    deps: LoginDeps = Depends(get_deps),
):
    """Invalidate the current session token."""
    deps.handshake.logout(session.token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/welcome", response_model=WelcomeResponse)
def welcome(session: Session = Depends(get_session)):
    """Greet an authenticated address."""
    return WelcomeResponse(
        address=session.address,
        message=f"Welcome {to_checksum(session.address)}",
    )
