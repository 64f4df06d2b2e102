# storefront/api/deps.py
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from storefront.config import Settings
from storefront.core.errors import Forbidden, PersistenceFailure, Unauthorized
from storefront.core.security import decode_access_token
from storefront.database import FileBackedDB
from storefront.models.user import User
from storefront.services.orders import OrderService

logger = logging.getLogger(__name__)

# auto_error=False so the cookie fallback below gets a chance
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> FileBackedDB:
    """
    Dependency that returns the file-backed DB the app was created with.
    Usage:
        db: FileBackedDB = Depends(get_db)
    """
    return request.app.state.db


def get_order_service(request: Request, db: FileBackedDB = Depends(get_db),
                      settings: Settings = Depends(get_settings)) -> OrderService:
    return OrderService(db, request.app.state.payment_gateway, allow_backorder=settings.ALLOW_BACKORDER)


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: FileBackedDB = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Resolve the current user from the Authorization header (Bearer JWT) or
    from the 'access_token' cookie. Raises 401 if neither yields a known user.
    """
    raw = token or request.cookies.get("access_token")
    user_id = decode_access_token(raw, settings.JWT_SECRET, settings.JWT_ALGORITHM) if raw else None
    if not user_id:
        raise Unauthorized("Not authenticated")

    try:
        row = db.get_record("users", "id", user_id)
    except Exception:
        logger.exception("failed to load user %s", user_id)
        raise PersistenceFailure("Failed to load user")
    if not row:
        raise Unauthorized("Not authenticated")
    return User.from_dict(row)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Dependency to require admin privileges. Raises 403 if user is not admin.
    """
    if not current_user.is_admin:
        raise Forbidden("Admin privileges required")
    return current_user
