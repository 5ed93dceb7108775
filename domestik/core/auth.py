"""Authentication context extraction and write guards."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from domestik.core.config import get_settings
from domestik.db.dependencies import get_db_session
from domestik.models.entities import User


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated account resolved from headers and DB state."""

    user_id: UUID
    subject: str
    email: str
    display_name: str
    is_admin: bool

    @property
    def can_write(self) -> bool:
        """Accounts that are not admins are kept in view-only mode."""

        return self.is_admin


def _require_identity_headers(
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_display_name: str | None,
) -> tuple[str, str, str]:
    if not x_auth_subject or not x_auth_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "Missing identity headers. Expected X-Auth-Subject and X-Auth-Email "
                "or enable development principal fallback."
            ),
        )

    display_name = x_auth_display_name or x_auth_email.split("@")[0]
    return x_auth_subject.strip(), x_auth_email.strip().lower(), display_name.strip()


def _resolve_identity(
    x_auth_subject: str | None,
    x_auth_email: str | None,
    x_auth_display_name: str | None,
) -> tuple[str, str, str]:
    settings = get_settings()
    if x_auth_subject and x_auth_email:
        return _require_identity_headers(x_auth_subject, x_auth_email, x_auth_display_name)

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_subject.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_display_name.strip(),
        )

    return _require_identity_headers(x_auth_subject, x_auth_email, x_auth_display_name)


def _upsert_user(db: Session, *, subject: str, email: str, display_name: str) -> User:
    user = db.scalar(select(User).where(User.subject == subject))
    now = datetime.utcnow()

    if user is None:
        user = User(
            subject=subject,
            email=email,
            display_name=display_name,
            is_admin=get_settings().auth_auto_admin,
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        return user

    changed = False
    if user.email != email:
        user.email = email
        changed = True
    if user.display_name != display_name:
        user.display_name = display_name
        changed = True

    user.last_login_at = now
    if changed:
        user.updated_at = now
    db.flush()
    return user


def ensure_user_principal(
    db: Session,
    *,
    subject: str,
    email: str,
    display_name: str,
    is_admin: bool | None = None,
) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_email = email.strip().lower()
    user = _upsert_user(
        db,
        subject=subject.strip(),
        email=normalized_email,
        display_name=display_name.strip() or normalized_email,
    )
    if is_admin is not None:
        user.is_admin = is_admin
    db.commit()
    db.refresh(user)
    return user


def get_current_user_context(
    x_auth_subject: str | None = Header(default=None, alias="X-Auth-Subject"),
    x_auth_email: str | None = Header(default=None, alias="X-Auth-Email"),
    x_auth_display_name: str | None = Header(default=None, alias="X-Auth-Display-Name"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request account.

    Identity comes from trusted headers set by the hosting proxy after it
    authenticated the user.
    """

    subject, email, display_name = _resolve_identity(x_auth_subject, x_auth_email, x_auth_display_name)
    user = _upsert_user(db, subject=subject, email=email, display_name=display_name)
    db.commit()

    return RequestUserContext(
        user_id=user.id,
        subject=user.subject,
        email=user.email,
        display_name=user.display_name,
        is_admin=user.is_admin,
    )


def ensure_can_write(context: RequestUserContext) -> None:
    if not context.can_write:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is in view-only mode.",
        )
