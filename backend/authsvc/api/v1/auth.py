"""Authentication endpoints using the service layer."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint

from authsvc.api.deps import current_user, json_body, json_response, require_auth, timing
from authsvc.core.container import get_container
from authsvc.core.errors import APIError
from authsvc.schemas import (
    AuthResultSchema,
    LoginSchema,
    RefreshTokenSchema,
    TokenPairSchema,
    UserSchema,
)
from authsvc.services.auth.dto import LoginIn, LogoutIn, RefreshIn
from authsvc.services.users.dto import RegistrationIn, UserPublicOut

bp = Blueprint("auth", __name__, url_prefix="/auth")

login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
auth_result_schema = AuthResultSchema()
token_pair_schema = TokenPairSchema()
user_schema = UserSchema()


@bp.post("/register")
@timing
def register():
    """Register a new user and log them in."""

    # Field rules are enforced by the service so errors come back as one list
    result = get_container().users.register(RegistrationIn.from_payload(json_body()))
    body = {"message": "User registered successfully", "data": auth_result_schema.dump(result)}
    return json_response(body, status=HTTPStatus.CREATED)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access/refresh token pair."""

    data = login_schema.load(json_body())
    result = get_container().auth.login(LoginIn(email=data["email"], password=data["password"]))
    return json_response({"message": "Login successful", "data": auth_result_schema.dump(result)})


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh token."""

    data = refresh_schema.load(json_body())
    pair = get_container().auth.refresh(RefreshIn(refresh_token=data["refresh_token"]))
    return json_response(
        {"message": "Token refreshed successfully", "data": token_pair_schema.dump(pair)}
    )


@bp.post("/logout")
@timing
def logout():
    """Revoke the presented refresh token."""

    data = refresh_schema.load(json_body())
    revoked = get_container().auth.logout(LogoutIn(refresh_token=data["refresh_token"]))
    if not revoked:
        raise APIError("Failed to logout. Invalid refresh token.", code="logout_rejected")
    return json_response({"message": "Logged out successfully"})


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """Revoke every refresh token of the authenticated user."""

    get_container().auth.logout_all(current_user().id)
    return json_response({"message": "Logged out from all devices successfully"})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated user profile."""

    return json_response({"data": user_schema.dump(UserPublicOut.from_record(current_user()))})
