"""Current user endpoint."""

from fastapi import APIRouter, Depends

from domestik.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return the authenticated account and whether it may write."""

    return {
        "id": str(context.user_id),
        "subject": context.subject,
        "email": context.email,
        "display_name": context.display_name,
        "is_admin": context.is_admin,
        "view_only": not context.can_write,
    }
