"""In-memory directory of admin-console operators.

The directory is created once by the application factory, seeded with
the bootstrap admin from settings, and shared by all requests through
`app.state.directory`. It is not persisted: a restart leaves only the
bootstrap operator.

Every public method takes the directory's reader/writer lock; callers
always receive copies so records can't be mutated outside the lock.
"""

import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from . import errors
from .auth import PWD_CTX
from .enums import AdminUserRole, AdminUserStatus, ExamCategory
from .utils.rwlock import ReadWriteLock

logger = logging.getLogger("examprep.admin")

DEFAULT_PAGE_SIZE = 20
INVITE_TTL = timedelta(hours=72)
BOOTSTRAP_PHONE = "+91 90000 00000"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BootstrapAdmin:
    """Identity of the operator configured through the environment."""
    user_id: uuid.UUID
    username: str
    display_name: str
    email: str
    role: str
    primary_exam: ExamCategory
    permissions: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings) -> "BootstrapAdmin":
        return cls(
            user_id=uuid.UUID(settings.ADMIN_USER_ID),
            username=settings.ADMIN_USERNAME,
            display_name=settings.ADMIN_DISPLAY_NAME,
            email=settings.ADMIN_EMAIL,
            role=settings.ADMIN_ROLE,
            primary_exam=ExamCategory(settings.ADMIN_PRIMARY_EXAM),
            permissions=tuple(settings.ADMIN_PERMISSIONS),
            created_at=settings.ADMIN_CREATED_AT or utc_now(),
        )


@dataclass
class AdminUser:
    id: uuid.UUID
    first_name: str
    last_name: str
    username: str
    email: str
    phone_number: str
    status: AdminUserStatus
    role: AdminUserRole
    created_at: datetime
    updated_at: datetime
    password_hash: Optional[str] = field(default=None, repr=False)


@dataclass
class UserFilter:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    statuses: List[AdminUserStatus] = field(default_factory=list)
    role: Optional[AdminUserRole] = None
    username: str = ""


@dataclass
class UserPage:
    items: List[AdminUser]
    page: int
    page_size: int
    total: int


def split_name(full: str) -> Tuple[str, str]:
    parts = full.split()
    if not parts:
        return "Admin", "User"
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], " ".join(parts[1:])


def slugify_name(full: str) -> str:
    slug = full.replace(" ", ".").lower()
    return slug.replace("__", ".")


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


class AdminDirectory:
    """Thread-safe store of `AdminUser` records keyed by id."""

    def __init__(self, bootstrap: BootstrapAdmin, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._lock = ReadWriteLock()
        self._users: Dict[uuid.UUID, AdminUser] = {}
        self.bootstrap = bootstrap
        self._seed(bootstrap)

    def _seed(self, bootstrap: BootstrapAdmin) -> None:
        first, last = split_name(bootstrap.display_name)
        created = bootstrap.created_at or self._clock()
        self._users[bootstrap.user_id] = AdminUser(
            id=bootstrap.user_id,
            first_name=first,
            last_name=last,
            username=slugify_name(bootstrap.display_name),
            email=bootstrap.email,
            phone_number=BOOTSTRAP_PHONE,
            status=AdminUserStatus.ACTIVE,
            role=AdminUserRole.from_user_role(bootstrap.role),
            created_at=created,
            updated_at=created,
        )

    def _username_taken(self, username: str, exclude: Optional[uuid.UUID] = None) -> bool:
        return any(u.id != exclude and _same(u.username, username) for u in self._users.values())

    def _email_taken(self, email: str, exclude: Optional[uuid.UUID] = None) -> bool:
        return any(u.id != exclude and _same(u.email, email) for u in self._users.values())

    def list_users(self, flt: UserFilter) -> UserPage:
        """Filter, sort newest first and slice one page.

        Non-positive page or page size fall back to the defaults. A page
        past the end returns no items but still reports the total.
        """
        page = flt.page if flt.page > 0 else 1
        page_size = flt.page_size if flt.page_size > 0 else DEFAULT_PAGE_SIZE
        needle = flt.username.strip().lower()
        statuses = set(flt.statuses)
        with self._lock.read():
            matched = [
                u for u in self._users.values()
                if (not statuses or u.status in statuses)
                and (flt.role is None or u.role == flt.role)
                and (not needle or needle in u.username.lower())
            ]
            matched.sort(key=lambda u: u.created_at, reverse=True)
            start = (page - 1) * page_size
            items = [copy.copy(u) for u in matched[start:start + page_size]]
        return UserPage(items=items, page=page, page_size=page_size, total=len(matched))

    def get_user(self, user_id: uuid.UUID) -> AdminUser:
        with self._lock.read():
            user = self._users.get(user_id)
            if user is None:
                raise errors.UserNotFoundError()
            return copy.copy(user)

    def create_user(
        self,
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        phone_number: str,
        role: AdminUserRole,
        status: AdminUserStatus,
        password: Optional[str] = None,
    ) -> AdminUser:
        password_hash = PWD_CTX.hash(password) if password else None
        with self._lock.write():
            if self._username_taken(username):
                raise errors.DuplicateUsernameError()
            if self._email_taken(email):
                raise errors.DuplicateEmailError()
            now = self._clock()
            user = AdminUser(
                id=uuid.uuid4(),
                first_name=first_name,
                last_name=last_name,
                username=username,
                email=email,
                phone_number=phone_number,
                status=AdminUserStatus(status),
                role=AdminUserRole(role),
                created_at=now,
                updated_at=now,
                password_hash=password_hash,
            )
            self._users[user.id] = user
            created = copy.copy(user)
        logger.info("admin user created id=%s username=%s", created.id, created.username)
        return created

    def update_user(self, user_id: uuid.UUID, changes: dict) -> AdminUser:
        """Apply a partial update.

        `changes` only holds the fields the caller supplied. Uniqueness is
        re-checked only for a username or email that actually changes.
        """
        changes = dict(changes)
        password = changes.pop("password", None)
        password_hash = PWD_CTX.hash(password) if password else None
        with self._lock.write():
            user = self._users.get(user_id)
            if user is None:
                raise errors.UserNotFoundError()
            username = changes.get("username")
            if username is not None and username != user.username and self._username_taken(username, user_id):
                raise errors.DuplicateUsernameError()
            email = changes.get("email")
            if email is not None and email != user.email and self._email_taken(email, user_id):
                raise errors.DuplicateEmailError()
            updated = copy.copy(user)
            for name in ("first_name", "last_name", "username", "email", "phone_number"):
                if name in changes:
                    setattr(updated, name, changes[name])
            if "role" in changes:
                updated.role = AdminUserRole(changes["role"])
            if "status" in changes:
                updated.status = AdminUserStatus(changes["status"])
            if password_hash:
                updated.password_hash = password_hash
            updated.updated_at = self._clock()
            self._users[user_id] = updated
            result = copy.copy(updated)
        logger.info("admin user updated id=%s fields=%s", user_id, sorted(changes))
        return result

    def delete_user(self, user_id: uuid.UUID) -> None:
        with self._lock.write():
            if user_id not in self._users:
                raise errors.UserNotFoundError()
            del self._users[user_id]
        logger.info("admin user deleted id=%s", user_id)

    def bulk_status(self, user_ids: Iterable[uuid.UUID], status: AdminUserStatus) -> int:
        status = AdminUserStatus(status)
        updated = 0
        with self._lock.write():
            now = self._clock()
            for user_id in set(user_ids):
                user = self._users.get(user_id)
                if user is None:
                    continue
                changed = copy.copy(user)
                changed.status = status
                changed.updated_at = now
                self._users[user_id] = changed
                updated += 1
        logger.info("admin users status=%s updated=%d", status.value, updated)
        return updated

    def bulk_delete(self, user_ids: Iterable[uuid.UUID]) -> int:
        deleted = 0
        with self._lock.write():
            for user_id in set(user_ids):
                if self._users.pop(user_id, None) is not None:
                    deleted += 1
        logger.info("admin users deleted=%d", deleted)
        return deleted

    def invite_user(self, email: str, role: AdminUserRole, message: str = "") -> datetime:
        """Nothing is stored; the invite is only acknowledged with its expiry."""
        expires_at = self._clock() + INVITE_TTL
        logger.info("admin invite email=%s role=%s", email, AdminUserRole(role).value)
        return expires_at

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._users)
