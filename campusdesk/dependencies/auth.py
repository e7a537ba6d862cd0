from typing import Annotated

from fastapi import Depends, Header, HTTPException

from campusdesk.core.identity import CurrentUser
from campusdesk.dependencies.services import SettingsDep


async def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_name: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> CurrentUser | None:
    """Read the operator forwarded by the identity provider.

    Authentication happens upstream; the gateway passes the signed-in user as
    ``X-User-Id``, ``X-User-Name`` and ``X-User-Role`` headers. Requests
    without an id are anonymous.
    """

    if not x_user_id:
        return None
    return CurrentUser(id=x_user_id, name=x_user_name or x_user_id, role_id=x_user_role or "")


OptionalUser = Annotated[CurrentUser | None, Depends(get_current_user)]


async def require_user(user: OptionalUser) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def require_staff(
    user: Annotated[CurrentUser, Depends(require_user)],
    settings: SettingsDep,
) -> CurrentUser:
    if user.is_student(settings.student_role_id):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return user


AuthenticatedUser = Annotated[CurrentUser, Depends(require_user)]
StaffUser = Annotated[CurrentUser, Depends(require_staff)]
