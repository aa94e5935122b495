# healthclub/routers/cron.py
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from healthclub.auth.dependencies import require_cron_secret
from healthclub.db.database import get_db
from healthclub.services.reminder_dispatch import process_pending
from healthclub.services.retention import purge_old, resolve_retention_settings

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron", tags=["Cron"], dependencies=[Depends(require_cron_secret)]
)


@router.api_route("/process-scheduled-notifications", methods=["GET", "POST"])
def process_scheduled_notifications(
    dryRun: bool = Query(False),
    db: Session = Depends(get_db),
):
    """
    Send every pending reminder due today or earlier.
    Meant for an external daily cron; dryRun=true only reports.
    """
    logger.info("[cron] process-scheduled-notifications dry_run=%s", dryRun)
    report = process_pending(db, dry_run=dryRun)
    return {"success": True, **report.as_dict()}


@router.api_route("/cleanup-push-logs", methods=["GET", "POST"])
def cleanup_push_logs(db: Session = Depends(get_db)):
    """
    Hourly trigger; deletes only during the configured cleanup hour (UTC).
    """
    retention_days, cleanup_hour = resolve_retention_settings(db)
    report = purge_old(db, retention_days, cleanup_hour)
    return {"success": True, **report.as_dict()}
