"""Account routes: register, login, profile and password change.

Register and login are public; the rest depend on `require_user`.
"""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import services
from ..auth import RequestContext, require_user
from ..context import AppContext, get_app_context
from ..database import get_session
from ..schemas import ChangePasswordIn, LoginIn, ProfileUpdateIn, RegisterIn
from . import envelope

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(db: Session = Depends(get_session),
                     ctx: AppContext = Depends(get_app_context)) -> services.AuthService:
    return services.AuthService(db, ctx.pwd_ctx, ctx.tokens)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, auth: services.AuthService = Depends(get_auth_service)):
    """Create an account and return its public profile with a token."""
    user, token = auth.register(
        payload.name, payload.email, payload.password, payload.class_label, payload.subjects
    )
    return envelope({"user": user.public(), "token": token}, "User registered successfully")


@router.post("/login")
def login(payload: LoginIn, auth: services.AuthService = Depends(get_auth_service)):
    """Exchange email and password for a token.

    Unknown email, deactivated account and wrong password all produce
    the same 400 "Invalid credentials" response.
    """
    user, token = auth.login(payload.email, payload.password)
    return envelope({"user": user.public(), "token": token}, "Login successful")


@router.get("/me")
def me(ctx: RequestContext = Depends(require_user)):
    return envelope({"user": ctx.user.public()})


@router.put("/profile")
def update_profile(payload: ProfileUpdateIn, ctx: RequestContext = Depends(require_user),
                   auth: services.AuthService = Depends(get_auth_service)):
    """Update name, class and/or subjects of the caller."""
    user = auth.credentials.update_profile(ctx.user, payload.model_dump(exclude_unset=True))
    return envelope({"user": user.public()}, "Profile updated successfully")


@router.post("/change-password")
def change_password(payload: ChangePasswordIn, ctx: RequestContext = Depends(require_user),
                    auth: services.AuthService = Depends(get_auth_service)):
    auth.change_password(ctx.user, payload.current_password, payload.new_password)
    return envelope(message="Password changed successfully")
