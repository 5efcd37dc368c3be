"""
Core dependencies for authentication and resolving the caller's household group
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.household.schemas import User
from app.modules.household.service import HouseholdService
from supabase import Client
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_household_service(supabase: Client = Depends(get_supabase)) -> HouseholdService:
    return HouseholdService(supabase)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    return auth_service.get_current_user(token)


def get_current_profile(
    user_data: Dict = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service)
) -> User:
    """Household profile row of the signed-in account, matched by email"""
    email = user_data.get("email")
    if not email:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has no email address"
        )
    profile = service.get_user_by_email(email)
    if profile is None:
        logger.warning(f"No household profile for auth user {user_data.get('id')}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found"
        )
    return profile


def get_current_group_id(profile: User = Depends(get_current_profile)) -> Optional[int]:
    """Active group for the session; None when the user has not joined one"""
    return profile.group_id
