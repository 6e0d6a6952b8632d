from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..schemas import Envelope, NonceOut, SignInRequest, TokenOut
from ..services import Services, get_services
from ..utils import success_envelope

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


# PUBLIC_INTERFACE
@router.post(
    "/nonces",
    response_model=Envelope[NonceOut],
    status_code=status.HTTP_201_CREATED,
    summary="Issue Nonce",
    description="Issue a single-use nonce that must accompany the next sign-in request.",
    responses={201: {"description": "Nonce issued"}},
)
def issue_nonce(services: Services = Depends(get_services)) -> dict:
    nonce = services.nonces.issue()
    return success_envelope(
        "Nonce successfully created",
        {"nonce": nonce["value"], "expires_at": nonce["expires_at"]},
    )


# PUBLIC_INTERFACE
@router.post(
    "/signin",
    response_model=Envelope[TokenOut],
    summary="Sign In",
    description=(
        "Exchange username, password and a nonce from POST /api/v1/auth/nonces for an access token. "
        "The nonce is spent by the attempt whether or not it succeeds."
    ),
    responses={
        200: {"description": "Signed in"},
        401: {"description": "Invalid credentials or nonce"},
    },
)
def sign_in(payload: SignInRequest, services: Services = Depends(get_services)) -> dict:
    """
    Authenticate and return an access token to send as the Authorization header.
    """
    token = services.authenticator.sign_in(payload.username, payload.password, payload.nonce)
    return success_envelope(
        "Successfully signed in",
        {"access_token": token["value"], "token_type": "Bearer", "expires_at": token["expires_at"]},
    )
