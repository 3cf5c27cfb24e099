"""
Admin Routes
==============
Dashboard statistics. Requires an admin token.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from modules.admin.dashboard_service import dashboard_service
from modules.auth.deps import require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard/stats")
async def dashboard_stats(db: Session = Depends(get_db), admin=Depends(require_admin)):
    return {"success": True, "data": dashboard_service.get_overview_stats(db)}
