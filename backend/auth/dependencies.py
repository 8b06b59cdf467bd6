import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from backend.auth import jwt_handler
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    role: str
    name: str | None = None


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing token.")

    try:
        claims = jwt_handler.decode_access_token(credentials.credentials)
    except jwt_handler.InvalidTokenError as exc:
        logger.info("Rejected bearer token on %s: %s", request.url.path, exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing token.") from exc

    user = CurrentUser(**claims)
    request.state.user = user
    return user


def require_role(*roles: str):
    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. {' or '.join(roles).capitalize()} role required.",
            )
        return current_user

    return dependency


require_admin = require_role(ROLE_ADMIN)
require_teacher = require_role(ROLE_TEACHER)
require_student = require_role(ROLE_STUDENT)
