from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import GeneratedAPI, UsageLog


RECENT_LOG_LIMIT = 20
TOP_API_LIMIT = 5


def request_counts(db: Session, api_ids: list[int]) -> dict[int, int]:
    if not api_ids:
        return {}
    rows = (
        db.query(UsageLog.api_id, func.count(UsageLog.id))
        .filter(UsageLog.api_id.in_(api_ids))
        .group_by(UsageLog.api_id)
        .all()
    )
    return {api_id: int(count) for api_id, count in rows}


def get_usage_stats(db: Session, user_id: int) -> dict:
    total = db.query(func.count(UsageLog.id)).filter(UsageLog.user_id == user_id).scalar() or 0
    successful = (
        db.query(func.count(UsageLog.id))
        .filter(UsageLog.user_id == user_id, UsageLog.status_code == 200)
        .scalar()
        or 0
    )
    avg_latency = (
        db.query(func.avg(UsageLog.latency_ms))
        .filter(UsageLog.user_id == user_id, UsageLog.status_code == 200)
        .scalar()
        or 0
    )

    recent = (
        db.query(UsageLog, GeneratedAPI.name)
        .outerjoin(GeneratedAPI, UsageLog.api_id == GeneratedAPI.id)
        .filter(UsageLog.user_id == user_id)
        .order_by(UsageLog.id.desc())
        .limit(RECENT_LOG_LIMIT)
        .all()
    )
    top_apis = (
        db.query(GeneratedAPI)
        .filter(GeneratedAPI.user_id == user_id)
        .order_by(GeneratedAPI.usage_count.desc())
        .limit(TOP_API_LIMIT)
        .all()
    )
    counts = request_counts(db, [api.id for api in top_apis])

    return {
        "total_requests": int(total),
        "successful_requests": int(successful),
        "failed_requests": int(total) - int(successful),
        "success_rate": round(successful / total * 100, 1) if total else 0.0,
        "avg_latency_ms": int(round(float(avg_latency))),
        "recent_logs": [
            {
                "id": log.id,
                "api_id": log.api_id,
                "api_name": api_name,
                "slug": log.slug,
                "status_code": log.status_code,
                "latency_ms": log.latency_ms,
                "error_message": log.error_message,
                "created_at": log.created_at,
            }
            for log, api_name in recent
        ],
        "top_apis": [
            {
                "id": api.id,
                "name": api.name,
                "usage_count": api.usage_count,
                "request_count": counts.get(api.id, 0),
            }
            for api in top_apis
        ],
    }
