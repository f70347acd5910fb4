"""Progress view of a daily report for polling clients."""

from app.models.daily_report import STATUS_COMPLETE, STATUS_FAILED, STATUS_NOT_STARTED, STATUS_RUNNING, DailyReport

_STAGES = (
    ("perplexity", "perplexity_status", "Perplexity Analysis"),
    ("google_ai_overview", "google_ai_overview_status", "Google AI Overview"),
    ("url_processing", "url_processing_status", "URL Processing"),
)


def report_progress(report: DailyReport) -> dict:
    stages = [{"name": name, "status": getattr(report, attr), "label": label} for name, attr, label in _STAGES]
    completed = sum(1 for s in stages if s["status"] == STATUS_COMPLETE)
    current = (
        next((s for s in stages if s["status"] == STATUS_RUNNING), None)
        or next((s for s in stages if s["status"] == STATUS_NOT_STARTED), None)
        or stages[0]
    )
    failed = report.status == "failed" or all(s["status"] == STATUS_FAILED for s in stages)

    return {
        "reportId": str(report.id),
        "status": report.status,
        "completed": bool(report.generated) and report.status == "completed",
        "isComplete": bool(report.generated),
        "failed": failed,
        "progress": {
            "percentage": round(completed / len(stages) * 100),
            "completedStages": completed,
            "totalStages": len(stages),
            "currentStage": current["label"],
            "stages": stages,
        },
        "stats": {
            "totalMentions": report.total_mentions,
            "urlsTotal": report.urls_total,
            "urlsClassified": report.urls_classified,
            "visibilityScore": report.visibility_score,
        },
        "error": report.error_message,
        "timestamps": {
            "created": report.created_at.isoformat() if report.created_at else None,
            "completed": report.completed_at.isoformat() if report.completed_at else None,
        },
    }
