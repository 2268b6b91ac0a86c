import logging
from datetime import datetime, timezone
from supabase import Client
from bizplan.modules.plans.schemas import PlanResponse, PlanShareResponse
from typing import List
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class PlanService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_plan(self, plan_name: str, owner_id: str) -> PlanResponse:
        try:
            result = self.supabase.table("business_plans").insert({
                "plan_name": plan_name,
                "owner_id": owner_id,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create plan")
            return PlanResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating plan for {owner_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create plan")

    def list_plans(self, owner_id: str) -> List[PlanResponse]:
        try:
            result = self.supabase.table("business_plans")\
                .select("*")\
                .eq("owner_id", owner_id)\
                .order("created_at", desc=True)\
                .execute()
            return [PlanResponse(**plan) for plan in result.data]
        except Exception as e:
            logger.error(f"Error listing plans for {owner_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch plans")

    def get_plan(self, plan_id: str) -> PlanResponse:
        """Get plan metadata; its owner_id is the ownership fact used by the permission checks"""
        try:
            result = self.supabase.table("business_plans")\
                .select("*")\
                .eq("id", plan_id)\
                .limit(1)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Plan not found")
            return PlanResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching plan {plan_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch plan")

    def rename_plan(self, plan_id: str, plan_name: str) -> PlanResponse:
        try:
            result = self.supabase.table("business_plans")\
                .update({"plan_name": plan_name, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", plan_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Plan not found")
            return PlanResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error renaming plan {plan_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to rename plan")

    def delete_plan(self, plan_id: str) -> None:
        try:
            self.supabase.table("plan_shares")\
                .delete()\
                .eq("plan_id", plan_id)\
                .execute()
            self.supabase.table("business_plans")\
                .delete()\
                .eq("id", plan_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting plan {plan_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete plan")

    def is_shared_with(self, plan_id: str, email: str) -> bool:
        result = self.supabase.table("plan_shares")\
            .select("id")\
            .eq("plan_id", plan_id)\
            .eq("shared_with_email", email.lower())\
            .limit(1)\
            .execute()
        return bool(result.data)

    def share_plan(self, plan_id: str, email: str, shared_by: str) -> PlanShareResponse:
        email = email.strip().lower()
        existing = self.supabase.table("plan_shares")\
            .select("id")\
            .eq("plan_id", plan_id)\
            .eq("shared_with_email", email)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="Plan is already shared with this email")
        try:
            result = self.supabase.table("plan_shares").insert({
                "plan_id": plan_id,
                "shared_with_email": email,
                "shared_by": shared_by,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to share plan")
            return PlanShareResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error sharing plan {plan_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to share plan")
