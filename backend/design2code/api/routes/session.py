"""Session endpoint — who is signed in and on which plan."""

from fastapi import APIRouter, Depends

from design2code.core.auth import SessionUser, get_or_create_user, optional_auth
from design2code.schemas.session import SessionSnapshot, SessionStatus
from design2code.schemas.session import SessionUser as SessionUserSchema

router = APIRouter()


@router.get("/session", response_model=SessionSnapshot)
async def get_session(user: SessionUser | None = Depends(optional_auth)):
    """Report the session. An absent or invalid token is a guest, not an error."""
    if user is None:
        return SessionSnapshot(status=SessionStatus.UNAUTHENTICATED)

    row = await get_or_create_user(user)
    return SessionSnapshot(
        status=SessionStatus.AUTHENTICATED,
        user=SessionUserSchema(
            id=row.id,
            plan=row.plan,
            plan_expiry_date=row.plan_expiry_date,
        ),
    )
