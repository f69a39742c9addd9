from typing import Optional, Any
from fastapi.concurrency import run_in_threadpool
from supabase import Client

from ..database import get_supabase_admin
from ..models.user import User


class AuditLogRepository:
    def __init__(self, client: Client):
        self.client = client

    async def log(
        self,
        user: User,
        action: str,
        entity_type: str,
        entity_id: Optional[Any] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ):
        """Record who changed what"""
        entry = {
            "user_id": user.id,
            "user_email": user.email,
            "user_role": user.role.value,
            "action": action,
            "entity_type": entity_type,
            "entity_id": str(entity_id) if entity_id is not None else None,
            "old_values": old_values,
            "new_values": new_values,
            "ip_address": ip_address,
        }
        query = self.client.table("audit_logs").insert(entry)
        await run_in_threadpool(query.execute)


def get_audit_repository() -> AuditLogRepository:
    return AuditLogRepository(get_supabase_admin())
