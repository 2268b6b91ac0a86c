import logging
from supabase import Client
from bizplan.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from bizplan.core.roles import SystemRole
from fastapi import HTTPException
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class AuthService:
    """Supabase Auth flows.

    `supabase` signs users up and in, so routes hand it a per-request session
    client. `service_supabase` writes profile rows and runs Auth admin calls.
    """

    def __init__(self, supabase: Client, service_supabase: Optional[Client] = None):
        self.supabase = supabase
        self.service_supabase = service_supabase or supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new user using Supabase Auth and create their profile row"""
        user_metadata = {}
        if register_data.full_name:
            user_metadata["full_name"] = register_data.full_name

        try:
            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": user_metadata
                }
            })
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User already exists")
            logger.error(f"Registration failed for {register_data.email}: {e}")
            raise HTTPException(status_code=500, detail="Registration failed")

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Failed to register user")

        email = auth_response.user.email or register_data.email
        try:
            # New accounts are always regular; promotion happens through the admin console
            self.service_supabase.table("user_profiles").insert({
                "id": auth_response.user.id,
                "email": email,
                "full_name": register_data.full_name,
                "role": SystemRole.REGULAR.value,
                "is_active": True,
            }).execute()
        except Exception as e:
            logger.error(f"Profile creation failed for {register_data.email}: {e}")
            self._delete_auth_user(auth_response.user.id)
            raise HTTPException(status_code=500, detail="Registration failed")

        return RegisterResponse(
            user_id=auth_response.user.id,
            email=email,
            message="User registered successfully"
        )

    def _delete_auth_user(self, user_id: str) -> None:
        """Remove an auth account whose profile row could not be written"""
        try:
            self.service_supabase.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"Failed to roll back auth user {user_id}: {e}")

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })

            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid credentials")

            return TokenResponse(
                access_token=auth_response.session.access_token,
                token_type="bearer",
                user_id=auth_response.user.id,
                email=auth_response.user.email or login_data.email
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password")
            logger.error(f"Login failed for {login_data.email}: {e}")
            raise HTTPException(status_code=500, detail="Login failed")

    def get_current_user(self, token: str) -> Dict[str, str]:
        """Resolve a Supabase access token to the auth user. Every call goes to Supabase; nothing is cached."""
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            return {
                "id": user_response.user.id,
                "email": user_response.user.email,
            }
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Revoke the session behind the access token"""
        try:
            self.service_supabase.auth.admin.sign_out(token)
            return True
        except Exception as e:
            logger.warning(f"Supabase sign_out failed: {e}")
            return False
