import logging
from pathlib import Path

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from subplanner.config import settings
from subplanner.services.templates import template_catalog
from subplanner.sync_templates import SyncError, sync_templates

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def refresh_templates():
    """
    Sync the bundled template file from the configured spreadsheet.
    This job runs daily; a failed sync keeps the previous file.
    """
    if not settings.templates_sheet_url:
        logger.info("No template spreadsheet configured, skipping sync")
        return

    logger.info("Starting template sync job")
    try:
        row_count = sync_templates(
            settings.templates_sheet_url,
            Path(settings.templates_path),
            timeout=settings.templates_timeout_seconds,
        )
    except SyncError as e:
        logger.error(f"Template sync failed: {e}")
        return

    template_catalog.invalidate()
    logger.info(f"Template sync job completed, {row_count} templates")


def start_scheduler():
    """Start the background scheduler."""
    if not settings.enable_scheduler:
        logger.info("Scheduler is disabled via configuration")
        return

    if not settings.templates_sheet_url:
        logger.info("Scheduler not started, no template spreadsheet configured")
        return

    if scheduler.running:
        logger.info("Scheduler is already running")
        return

    # Schedule the daily template sync
    trigger = CronTrigger(
        hour=settings.template_sync_hour,
        minute=0,
        timezone=pytz.UTC,
    )
    scheduler.add_job(
        refresh_templates,
        trigger=trigger,
        id="template_sync",
        name="Daily Template Sync",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"Scheduler started. Template sync scheduled for {settings.template_sync_hour}:00 UTC daily"
    )


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

