from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from loguru import logger

from agrohaat.core.security.auth import verify_token
from agrohaat.enums.user_role import UserRole
from agrohaat.models.profile import Profile
from agrohaat.services.bidding.exceptions import (
    BiddingError,
    BidValidationError,
    BidNotFoundError,
    NotOwnerError,
    RoleNotAllowedError,
    InvalidTransitionError,
    StaleBidStateError,
    ConfirmationExpiredError,
    BiddingSuspendedError,
    BiddingWindowClosedError,
)

jwt_bearer = HTTPBearer()

ERROR_STATUS_CODES = {
    BidValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    BidNotFoundError: status.HTTP_404_NOT_FOUND,
    NotOwnerError: status.HTTP_403_FORBIDDEN,
    RoleNotAllowedError: status.HTTP_403_FORBIDDEN,
    BiddingSuspendedError: status.HTTP_403_FORBIDDEN,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    StaleBidStateError: status.HTTP_409_CONFLICT,
    ConfirmationExpiredError: status.HTTP_409_CONFLICT,
    BiddingWindowClosedError: status.HTTP_409_CONFLICT,
}


def bidding_http_error(error: BiddingError) -> HTTPException:
    """Translate a lifecycle error into the HTTP error shown to the user"""
    status_code = ERROR_STATUS_CODES.get(type(error), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=error.to_dict())


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(jwt_bearer)
) -> Profile:
    """Acting user from the bearer token"""
    return await verify_token(credentials.credentials)


def require_role(*roles: UserRole):
    async def checker(user: Profile = Depends(get_current_user)) -> Profile:
        if user.role not in roles:
            logger.warning(f"{user.role.value} {user.id} denied, requires {[role.value for role in roles]}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{' or '.join(role.value for role in roles)} privileges required"
            )
        return user
    return checker


buyer_required = require_role(UserRole.buyer)
seller_required = require_role(UserRole.seller)
admin_required = require_role(UserRole.admin)
