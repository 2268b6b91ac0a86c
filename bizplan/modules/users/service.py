import logging
import secrets
import string
from datetime import datetime, timezone
from supabase import Client
from bizplan.config.settings import settings
from bizplan.core.roles import Principal, SystemRole
from bizplan.modules.users.schemas import (
    UserCreate, UserUpdate, UserResponse, UserCreateResponse, UserStats, ProfileUpdate
)
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_temporary_password(length: Optional[int] = None) -> str:
    length = length or settings.temporary_password_length
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


class UserService:
    def __init__(self, supabase: Client, auth_admin_client: Optional[Client] = None):
        self.supabase = supabase
        # Supabase Auth admin API needs the service role client
        self.auth_admin_client = auth_admin_client or supabase

    def get_principal(self, user_id: str) -> Optional[Principal]:
        """User directory lookup used by the auth dependency. None when no profile row exists."""
        try:
            result = self.supabase.table("user_profiles")\
                .select("id, email, full_name, role, is_active")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error loading principal {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load user")
        if not result.data:
            return None
        try:
            return Principal.from_profile(result.data[0])
        except ValueError:
            logger.warning(f"User {user_id} has an unknown role '{result.data[0].get('role')}'")
            return None

    def _get_profile_row(self, user_id: str) -> dict:
        result = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        return result.data[0]

    def get_user(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        try:
            return UserResponse(**self._get_profile_row(user_id))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching user {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch user")

    def list_users(
        self,
        limit: int = 50,
        offset: int = 0,
        search: Optional[str] = None,
        role: Optional[SystemRole] = None,
        is_active: Optional[bool] = None
    ) -> List[UserResponse]:
        """List user profiles, newest first"""
        try:
            query = self.supabase.table("user_profiles").select("*")
            if search:
                query = query.ilike("email", f"%{search}%")
            if role is not None:
                query = query.eq("role", role.value)
            if is_active is not None:
                query = query.eq("is_active", is_active)
            result = query.order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            return [UserResponse(**user) for user in result.data]
        except Exception as e:
            logger.error(f"Error listing users: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch users")

    def get_user_stats(self) -> UserStats:
        try:
            result = self.supabase.table("user_profiles")\
                .select("role, is_active")\
                .execute()
            rows = result.data or []
            active = sum(1 for r in rows if r.get("is_active"))
            admins = sum(1 for r in rows if r.get("role") == SystemRole.ADMINISTRATOR.value)
            return UserStats(
                total=len(rows),
                active=active,
                inactive=len(rows) - active,
                admins=admins,
                regular=len(rows) - admins,
            )
        except Exception as e:
            logger.error(f"Error computing user stats: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch user stats")

    def create_user(self, user_data: UserCreate) -> UserCreateResponse:
        """Create the Supabase Auth user and its profile row"""
        existing = self.supabase.table("user_profiles")\
            .select("id")\
            .eq("email", user_data.email)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="A user with this email already exists")

        temporary_password = None
        password = user_data.password
        if not password:
            temporary_password = generate_temporary_password()
            password = temporary_password
        try:
            auth_response = self.auth_admin_client.auth.admin.create_user({
                "email": user_data.email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"full_name": user_data.full_name},
            })
        except Exception as e:
            logger.error(f"Error creating auth user {user_data.email}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create user")
        if not auth_response.user:
            raise HTTPException(status_code=500, detail="Failed to create user")

        try:
            result = self.supabase.table("user_profiles").insert({
                "id": auth_response.user.id,
                "email": user_data.email,
                "full_name": user_data.full_name,
                "company": user_data.company,
                "department": user_data.department,
                "role": user_data.role.value,
                "is_active": True,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create user profile")
        except Exception as e:
            logger.error(f"Error creating profile for {user_data.email}: {e}")
            self._delete_auth_user(auth_response.user.id)
            raise HTTPException(status_code=500, detail="Failed to create user")

        return UserCreateResponse(user=UserResponse(**result.data[0]), temporary_password=temporary_password)

    def _delete_auth_user(self, user_id: str) -> None:
        """Remove an auth account whose profile row could not be written"""
        try:
            self.auth_admin_client.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"Failed to roll back auth user {user_id}: {e}")

    def update_user(self, user_id: str, user_data: UserUpdate, acting_user_id: str) -> UserResponse:
        """Update profile fields, system role and active flag"""
        if user_id == acting_user_id:
            if user_data.is_active is False:
                raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
            if user_data.role is not None and user_data.role != SystemRole.ADMINISTRATOR:
                raise HTTPException(status_code=400, detail="You cannot remove your own administrator role")

        update_data = user_data.model_dump(exclude_none=True, mode="json")
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("user_profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")

            return UserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating user {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update user")

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> UserResponse:
        """Self-service update; role and active flag are not part of ProfileUpdate"""
        update_data = profile_data.model_dump(exclude_none=True)
        if not update_data:
            return self.get_user(user_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("user_profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")
            return UserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating profile of {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update profile")

    def delete_user(self, user_id: str, acting_user_id: str) -> None:
        """Delete the profile, team memberships and the Supabase Auth user"""
        if user_id == acting_user_id:
            raise HTTPException(status_code=400, detail="You cannot delete your own account")
        try:
            self._get_profile_row(user_id)

            self.supabase.table("team_members")\
                .delete()\
                .eq("user_id", user_id)\
                .execute()

            self.supabase.table("user_profiles")\
                .delete()\
                .eq("id", user_id)\
                .execute()

            self.auth_admin_client.auth.admin.delete_user(user_id)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error deleting user {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete user")

    def bulk_update(self, user_ids: List[str], action: str, acting_user_id: str) -> int:
        """Activate or deactivate many users; returns how many rows changed"""
        is_active = action == "activate"
        if not is_active and acting_user_id in user_ids:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
        if not user_ids:
            return 0
        try:
            result = self.supabase.table("user_profiles")\
                .update({"is_active": is_active, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .in_("id", user_ids)\
                .execute()
            return len(result.data or [])
        except Exception as e:
            logger.error(f"Error performing bulk {action}: {e}")
            raise HTTPException(status_code=500, detail="Failed to perform bulk action")

    def reset_password(self, user_id: str) -> str:
        """Replace the user's password with a generated one and return it"""
        try:
            self._get_profile_row(user_id)
            temporary_password = generate_temporary_password()
            self.auth_admin_client.auth.admin.update_user_by_id(
                user_id,
                {"password": temporary_password}
            )
            return temporary_password
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error resetting password for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to reset password")
