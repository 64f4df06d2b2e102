# storefront/models/user.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

from storefront.utils.timestamps import format_datetime, parse_datetime


def is_truthy(raw: Any) -> bool:
    # is_admin is stored as 'True'/'False' strings in CSV
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "y", "t")
    return False


@dataclass
class User:
    """
    Domain model for a user.
    The FileBackedDB stores values as strings; these helpers normalize/convert types.
    """
    username: str
    email: str
    password_hash: str = ""
    is_admin: bool = False
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "User":
        if d is None:
            raise ValueError("Cannot construct User from None")
        return cls(
            username=str(d.get("username") or ""),
            email=str(d.get("email") or ""),
            password_hash=str(d.get("password_hash") or ""),
            is_admin=is_truthy(d.get("is_admin", False)),
            created_at=parse_datetime(d.get("created_at")),
            id=d.get("id") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Plain dict for writing back to CSV.
        Note: password_hash is included (necessary for persistence); strip it in APIs.
        """
        return {
            "id": self.id or "",
            "username": self.username,
            "email": self.email,
            "password_hash": self.password_hash,
            "is_admin": bool(self.is_admin),
            "created_at": format_datetime(self.created_at),
        }

    def mask_secret(self) -> Dict[str, Any]:
        """
        Return a representation safe to expose on API responses (no password_hash).
        """
        d = self.to_dict()
        d.pop("password_hash", None)
        return d
