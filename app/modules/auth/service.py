import hashlib
import time
import logging
from supabase import Client
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    FacilitatorIdentity, FacilitatorProfileResponse
)
from app.config.plans_config import DEFAULT_PLAN, get_plan_limits
from fastapi import HTTPException
from typing import Dict

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (facilitator UI polls several endpoints at once)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new facilitator using Supabase Auth and create their profile on the free plan"""
        try:
            user_metadata = {}
            if register_data.first_name:
                user_metadata["first_name"] = register_data.first_name
            if register_data.last_name:
                user_metadata["last_name"] = register_data.last_name

            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": user_metadata
                }
            })

            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to register user")

            self.supabase.table("profiles").upsert({
                "id": auth_response.user.id,
                "email": auth_response.user.email or register_data.email,
                "first_name": register_data.first_name,
                "last_name": register_data.last_name,
                "plan": DEFAULT_PLAN,
            }).execute()

            return RegisterResponse(
                user_id=auth_response.user.id,
                email=auth_response.user.email or register_data.email,
                message="User registered successfully"
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User already exists")
            raise HTTPException(status_code=500, detail=f"Registration failed: {error_message}")

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate facilitator using Supabase Auth"""
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
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")

    def get_current_user(self, token: str) -> FacilitatorIdentity:
        """Resolve a facilitator from a Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                identity, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return identity
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            identity = FacilitatorIdentity(
                id=user.id,
                email=user.email,
                user_metadata=user.user_metadata or {},
                app_metadata=user.app_metadata or {},
            )
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (identity, now + _AUTH_CACHE_TTL_SEC)
            return identity
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Logout facilitator using Supabase Auth"""
        try:
            # Tokens are stateless JWTs; dropping our cache entry is all the server can do
            _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
            self.supabase.auth.sign_out()
            return True
        except Exception:
            return False

    def get_plan(self, user_id: str) -> str:
        """Billing plan for a facilitator. Missing profile means free."""
        try:
            result = self.supabase.table("profiles")\
                .select("plan")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                return DEFAULT_PLAN
            return result.data.get("plan") or DEFAULT_PLAN
        except Exception as e:
            logger.error(f"Error getting plan for {user_id}: {e}")
            return DEFAULT_PLAN

    def get_profile(self, identity: FacilitatorIdentity) -> FacilitatorProfileResponse:
        plan = self.get_plan(identity.id)
        return FacilitatorProfileResponse(
            id=identity.id,
            email=identity.email,
            plan=plan,
            limits=get_plan_limits(plan),
        )
