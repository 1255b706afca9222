"""Authentication router: registration, login and the current user."""

import logging

from fastapi import APIRouter, Depends, status

from storefront.core.security import create_access_token, get_password_hash, verify_password
from storefront.db_distributors import get_distributor_by_email_domain
from storefront.db_users import UserRole, create_user, get_user_by_email
from storefront.deps import get_current_user
from storefront.errors import ConflictError, Forbidden, Unauthorized
from storefront.schemas.auth import LoginRequest, RegisterRequest, Token, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest):
    """Register a user; emails on a distributor's domain join that distributor."""
    if get_user_by_email(body.email):
        raise ConflictError("User with this email already exists")

    email_domain = body.email.split("@", 1)[1].lower()
    distributor = get_distributor_by_email_domain(email_domain)

    user = create_user(
        email=body.email,
        name=body.name,
        hashed_password=get_password_hash(body.password),
        role=UserRole.DISTRIBUTOR if distributor else UserRole.CUSTOMER,
        distributor_id=distributor["id"] if distributor else None,
    )
    logger.info(f"auth: registered user id={user['id']} role={user['role']} distributor_id={user['distributor_id']}")
    return UserResponse(**user)


@router.post("/login", response_model=Token)
async def login(body: LoginRequest):
    user = get_user_by_email(body.email)
    if not user or not verify_password(body.password, user["hashed_password"]):
        raise Unauthorized("Incorrect email or password")
    if not user["is_active"]:
        raise Forbidden("User is inactive")

    access_token = create_access_token(data={"sub": str(user["id"]), "user_id": user["id"]})
    return Token(access_token=access_token, token_type="bearer")


@router.get("/me", response_model=UserResponse)
async def me(current_user: dict = Depends(get_current_user)):
    return UserResponse(**current_user)
