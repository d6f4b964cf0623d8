"""
Scheduled maintenance jobs for PracticeHub.

Uses APScheduler BackgroundScheduler to run periodic jobs.
Only one worker starts the scheduler (file-lock guard) so jobs are not
executed once per gunicorn worker.
"""

import os
import atexit
import fcntl
from apscheduler.schedulers.background import BackgroundScheduler
from core.utils.logging_config import get_logger

logger = get_logger('practicehub.jobs.scheduler')

scheduler = BackgroundScheduler(daemon=True)
_lock_file = None


def generate_recurring_tasks():
    """Create the next-period instances of recurring compliance tasks for every tenant."""
    try:
        from tasks.services import RecurringTaskService
        counts = RecurringTaskService().generate_all()
        total = sum(counts.values())
        if total > 0:
            logger.info(f"Recurring tasks: generated {total} tasks across {len(counts)} tenants")
    except Exception as e:
        logger.error(f"Recurring task generation failed: {e}")


def mark_overdue_invoices():
    """Flag open invoices past their due date."""
    try:
        from finance.services import InvoiceService
        count = InvoiceService().mark_overdue()
        if count > 0:
            logger.info(f"Invoices: marked {count} overdue")
    except Exception as e:
        logger.error(f"Overdue invoice task failed: {e}")


def run_scheduled_workflows():
    """Fire schedule triggers whose cron time has come."""
    try:
        from workflows.engine import get_engine
        fired = get_engine().run_scheduled()
        if fired:
            logger.info(f"Scheduled workflows: {fired} fired")
    except Exception as e:
        logger.error(f"Scheduled workflow task failed: {e}")


def cleanup_old_notifications():
    """Delete in-app notifications older than 30 days."""
    try:
        from core.notifications.repositories.in_app_repo import InAppNotificationRepository
        repo = InAppNotificationRepository()
        count = repo.delete_old(days=30)
        if count > 0:
            logger.info(f"Cleanup: deleted {count} old notifications (>30 days)")
    except Exception as e:
        logger.error(f"Notification cleanup task failed: {e}")


def _acquire_scheduler_lock():
    """Try to acquire an exclusive file lock. Returns True if this process won."""
    global _lock_file
    try:
        lock_path = os.environ.get('SCHEDULER_LOCK_FILE') or \
            os.path.join(os.path.dirname(__file__), '..', '.scheduler.lock')
        _lock_file = open(lock_path, 'w')
        fcntl.flock(_lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        _lock_file.write(str(os.getpid()))
        _lock_file.flush()
        return True
    except (IOError, OSError):
        if _lock_file:
            _lock_file.close()
            _lock_file = None
        return False


def start_scheduler():
    """Start the background scheduler with all jobs.

    Uses a file lock so only one gunicorn worker runs the scheduler.
    Other workers skip silently.
    """
    if scheduler.running:
        return

    if not _acquire_scheduler_lock():
        logger.debug(f"Scheduler lock held by another worker, skipping (pid={os.getpid()})")
        return

    scheduler.add_job(
        generate_recurring_tasks,
        'cron',
        hour=0,
        minute=30,
        id='generate_recurring_tasks',
        replace_existing=True,
        misfire_grace_time=300,
        coalesce=True,
    )

    scheduler.add_job(
        mark_overdue_invoices,
        'interval',
        hours=1,
        id='mark_overdue_invoices',
        replace_existing=True,
        misfire_grace_time=300,
        coalesce=True,
    )

    scheduler.add_job(
        run_scheduled_workflows,
        'interval',
        minutes=5,
        id='run_scheduled_workflows',
        replace_existing=True,
        misfire_grace_time=60,
        coalesce=True,
    )

    scheduler.add_job(
        cleanup_old_notifications,
        'cron',
        hour=1,
        minute=0,
        id='cleanup_old_notifications',
        replace_existing=True,
        misfire_grace_time=300,
        coalesce=True,
    )

    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))
    logger.info(f"Background scheduler started (pid={os.getpid()})")


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
