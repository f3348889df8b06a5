"""Admin dashboard analytics."""

from collections import Counter
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from houses_bc.app.routes.auth import require_admin
from houses_bc.app.routes.leads import count_by_source, serialize_lead
from houses_bc.domain.models import Appointment, Lead, User
from houses_bc.infra.database import get_db

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

TREND_DAYS = 30
RECENT_LEADS = 10


def conversion_rate(total_leads: int, total_appointments: int) -> str:
    """Appointments per lead as a one-decimal percentage string."""
    if total_leads <= 0:
        return "0.0%"
    return f"{total_appointments / total_leads * 100:.1f}%"


@router.get("/stats")
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    total_leads = (await db.execute(select(func.count(Lead.id)))).scalar() or 0
    total_appointments = (await db.execute(select(func.count(Appointment.id)))).scalar() or 0

    status_rows = await db.execute(
        select(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status)
    )
    recent = await db.execute(select(Lead).order_by(Lead.created_at.desc()).limit(RECENT_LEADS))

    return {
        "success": True,
        "data": {
            "overview": {
                "totalLeads": total_leads,
                "totalAppointments": total_appointments,
                "conversionRate": conversion_rate(total_leads, total_appointments),
            },
            "leadsBySource": await count_by_source(db),
            "appointmentsByStatus": {status: count for status, count in status_rows.all()},
            "recentLeads": [serialize_lead(lead) for lead in recent.scalars().all()],
        },
    }


@router.get("/leads-trend")
async def leads_trend(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    now = datetime.now(timezone.utc)
    since = now - timedelta(days=TREND_DAYS)
    result = await db.execute(
        select(Lead.created_at).where(Lead.created_at >= since).order_by(Lead.created_at.asc())
    )
    counts = Counter(created.date().isoformat() for created in result.scalars().all())

    # Every day in the window, zero-filled
    start = since.date()
    days = [(start + timedelta(days=offset)).isoformat() for offset in range(TREND_DAYS + 1)]
    return {
        "success": True,
        "data": [{"date": day, "count": counts.get(day, 0)} for day in days],
    }
