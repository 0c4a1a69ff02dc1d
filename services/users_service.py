"""
Users Service

This service manages user accounts, authentication and roles.

Endpoints:
    - POST /auth/signup: Register a new user
    - POST /auth/signin: User login and authentication
    - GET /user/profile: Current user's profile
    - PUT /user/profile: Update current user's profile
    - POST /user/profile/picture: Upload a profile picture
    - DELETE /user/profile/picture: Remove the profile picture
    - GET /users: Get all users (admin only)
    - POST /users: Create a user (admin only)
    - GET /users/{user_id}: Get specific user (admin only)
    - PUT /users/{user_id}: Update a user (admin only)
    - DELETE /users/{user_id}: Delete a user (admin only)
    - PUT /users/{user_id}/role: Change a user's role (admin only)
"""

from fastapi import FastAPI, HTTPException, Depends, File, Request, UploadFile, status
from pydantic import EmailStr, Field
from typing import Optional, List
from sqlalchemy.orm import Session
from datetime import datetime
import base64
import logging

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.database import get_db, init_db
from shared.dependencies import get_current_user, require_admin
from shared.errors import setup_error_handlers
from shared.models import User, UserRole
from shared.auth import (
    ALLOWED_EMAIL_DOMAIN,
    get_password_hash,
    verify_password,
    create_access_token,
    sanitize_input,
    is_institution_email,
)
from shared.monitoring import setup_metrics, track_auth_attempt, track_jwt_issued
from shared.rate_limiting import rate_limit_decorator, setup_rate_limiting
from shared.schemas import CamelModel

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Users Service", version="1.0.0")
setup_error_handlers(app)
setup_rate_limiting(app)
setup_metrics(app, "users")

ALLOWED_PICTURE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif")
MAX_PICTURE_SIZE = 5 * 1024 * 1024


class UserSignup(CamelModel):
    """User registration request model."""
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.STUDENT


class UserSignin(CamelModel):
    """User login request model."""
    username: str
    password: str


class ProfileUpdate(CamelModel):
    """Profile update request model."""
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)


class UserCreate(UserSignup):
    """User creation request model (admin only)."""


class UserUpdate(ProfileUpdate):
    """User update request model (admin only)."""
    role: Optional[UserRole] = None


class RoleUpdate(CamelModel):
    """Role update request model."""
    role: UserRole


class UserResponse(CamelModel):
    """User response model."""
    id: int
    username: str
    email: str
    role: UserRole
    profile_picture: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class SigninResponse(CamelModel):
    """Signin response model carrying the access token."""
    id: int
    username: str
    email: str
    role: UserRole
    access_token: str


class PictureResponse(CamelModel):
    message: str
    profile_picture: Optional[str] = None


def _require_institution_email(email: str):
    if not is_institution_email(email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only university emails (@{ALLOWED_EMAIL_DOMAIN}) are allowed!"
        )


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found!"
        )
    return user


def _check_unique(db: Session, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
    """
    Reject a username or email already used by another account.

    Raises:
        HTTPException: 400 on a duplicate
    """
    if username is not None:
        query = db.query(User).filter(User.username == username)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username is already in use!"
            )

    if email is not None:
        query = db.query(User).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email is already in use!"
            )


def _create_user(db: Session, user_data: UserSignup) -> User:
    username = sanitize_input(user_data.username)
    _require_institution_email(user_data.email)
    _check_unique(db, username, user_data.email)

    new_user = User(
        username=username,
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        role=user_data.role
    )

    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user


def _apply_account_changes(db: Session, user: User, changes: dict):
    """
    Apply username, email, password and role changes to user.

    Raises:
        HTTPException: 400 if nothing is changed, on a foreign email
            domain or on a duplicate
    """
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No information provided for update!"
        )

    username = sanitize_input(changes["username"]) if "username" in changes else None
    email = changes.get("email")
    if email is not None:
        _require_institution_email(email)
    _check_unique(db, username, email, exclude_id=user.id)

    if username is not None:
        user.username = username
    if email is not None:
        user.email = email
    if "password" in changes:
        user.password_hash = get_password_hash(changes["password"])
    if "role" in changes:
        user.role = changes["role"]

    user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    init_db()


@app.post("/auth/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@rate_limit_decorator("auth")
def signup(request: Request, user_data: UserSignup, db: Session = Depends(get_db)):
    """
    Register a new user.

    Only institution emails are accepted. Self-registration is open to
    students and teachers; admin accounts are created by an admin.

    Raises:
        HTTPException: 400 on a foreign email domain or a duplicate
            username/email, 403 when requesting the admin role
    """
    if user_data.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts can only be created by an admin!"
        )

    new_user = _create_user(db, user_data)
    logger.info(f"User {new_user.username} registered as {new_user.role.value}")
    return new_user


@app.post("/auth/signin", response_model=SigninResponse)
@rate_limit_decorator("auth")
def signin(request: Request, login_data: UserSignin, db: Session = Depends(get_db)):
    """
    User login and authentication.

    Accounts whose email is outside the institution domain are refused
    even with the right password.

    Raises:
        HTTPException: 404 for an unknown user, 401 for a foreign email
            domain, an inactive account or a wrong password
    """
    username = sanitize_input(login_data.username)
    user = db.query(User).filter(User.username == username).first()

    if not user:
        track_auth_attempt(False)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found!"
        )

    if not is_institution_email(user.email):
        track_auth_attempt(False)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "This account has been deactivated because it does not have "
                f"a university email (@{ALLOWED_EMAIL_DOMAIN})!"
            )
        )

    if not user.is_active or not verify_password(login_data.password, user.password_hash):
        track_auth_attempt(False)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password!"
        )

    access_token = create_access_token(
        data={"sub": user.username, "role": user.role.value}
    )
    track_auth_attempt(True)
    track_jwt_issued()

    return SigninResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        access_token=access_token
    )


@app.get("/user/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    """Get the current user's profile."""
    return current_user


@app.put("/user/profile", response_model=UserResponse)
def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update the current user's username, email or password.

    Raises:
        HTTPException: 400 if nothing is changed, on a foreign email
            domain or on a duplicate
    """
    _apply_account_changes(db, current_user, profile_data.model_dump(exclude_unset=True))
    return current_user


@app.post("/user/profile/picture", response_model=PictureResponse)
def upload_profile_picture(
    profile_picture: UploadFile = File(..., alias="profilePicture"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Upload a profile picture.

    The image is stored on the user as a base64 data URL.

    Raises:
        HTTPException: 400 for a non-image file or one over 5MB
    """
    if profile_picture.content_type not in ALLOWED_PICTURE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image files (JPEG, PNG, GIF) are allowed!"
        )

    content = profile_picture.file.read()
    if len(content) > MAX_PICTURE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File size must be less than 5MB!"
        )

    data_url = f"data:{profile_picture.content_type};base64,{base64.b64encode(content).decode()}"
    current_user.profile_picture = data_url
    current_user.updated_at = datetime.utcnow()
    db.commit()

    return PictureResponse(message="Profile picture uploaded successfully!", profile_picture=data_url)


@app.delete("/user/profile/picture", response_model=PictureResponse)
def delete_profile_picture(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove the current user's profile picture."""
    current_user.profile_picture = None
    current_user.updated_at = datetime.utcnow()
    db.commit()
    return PictureResponse(message="Profile picture deleted successfully!")


@app.get("/users", response_model=List[UserResponse])
def get_all_users(
    skip: int = 0,
    limit: int = 100,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get all users (admin only)."""
    return db.query(User).order_by(User.id).offset(skip).limit(limit).all()


@app.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a user with any role (admin only)."""
    new_user = _create_user(db, user_data)
    logger.info(f"User {new_user.username} created by {current_user.username}")
    return new_user


@app.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get specific user by id (admin only)."""
    return _get_user_or_404(db, user_id)


@app.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    user_data: UserUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a user's username, email, password or role (admin only)."""
    user = _get_user_or_404(db, user_id)
    _apply_account_changes(db, user, user_data.model_dump(exclude_unset=True))
    return user


@app.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Delete a user (admin only).

    The user's bookings and damage reports are kept; listings show them
    with an "Unknown User" placeholder.
    """
    user = _get_user_or_404(db, user_id)
    db.delete(user)
    db.commit()
    logger.info(f"User {user_id} deleted by {current_user.username}")
    return None


@app.put("/users/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    role_data: RoleUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Change a user's role (admin only)."""
    user = _get_user_or_404(db, user_id)
    user.role = role_data.role
    user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return user


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "users"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
