"""Creates the data directory and an admin account.

Usage: python scripts/create_admin.py <username> <email> <password>
"""
import sys

from storefront.config import get_settings
from storefront.core.security import hash_password
from storefront.database import FileBackedDB
from storefront.models.user import User
from storefront.utils.timestamps import utcnow


def main(argv):
    if len(argv) != 3:
        print(__doc__)
        return 2
    username, email, password = argv
    settings = get_settings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    db = FileBackedDB(settings.DATA_DIR, table_files=settings.table_files(),
                      lock_timeout=settings.LOCK_TIMEOUT_SECONDS)

    if db.get_record("users", "username", username):
        print(f"{username} already exists")
        return 1
    user = User(username=username, email=email, password_hash=hash_password(password),
                is_admin=True, created_at=utcnow())
    row = db.create_record("users", user.to_dict(), id_field="id")
    print(f"Created admin {username} ({row['id']}) in {settings.DATA_DIR}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
