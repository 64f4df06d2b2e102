# storefront/api/routes/auth.py
import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from storefront.api.deps import get_current_user, get_db, get_settings
from storefront.api.schemas.user import TokenResponse, UserCreate, UserOut
from storefront.config import Settings
from storefront.core.errors import InvalidInput, Unauthorized
from storefront.core.security import create_access_token, hash_password, verify_password
from storefront.database import FileBackedDB
from storefront.models.user import User
from storefront.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: FileBackedDB = Depends(get_db)):
    """
    Create a regular (non-admin) account. Admins are created with scripts/create_admin.py.
    """
    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        is_admin=False,
        created_at=utcnow(),
    )
    # uniqueness check and insert under the same lock
    with db.transaction("users") as tx:
        if tx.get_record("users", "username", payload.username):
            raise InvalidInput("Username already registered")
        if tx.get_record("users", "email", payload.email):
            raise InvalidInput("Email already registered")
        row = tx.create_record("users", user.to_dict(), id_field="id")
    logger.info("registered user %s", payload.username)
    return User.from_dict(row).mask_secret()


@router.post("/token", response_model=TokenResponse)
def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: FileBackedDB = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Token endpoint used by OAuth2PasswordRequestForm clients. Accepts username or email.
    """
    row = db.get_record("users", "username", form_data.username) or db.get_record("users", "email", form_data.username)
    if not row:
        raise Unauthorized("Invalid credentials")
    user = User.from_dict(row)
    if not user.password_hash or not verify_password(form_data.password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    access_token = create_access_token(
        user.id,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user.mask_secret()
