from lifeflow import scheduler
from lifeflow.utils.requests import expire_old_requests
from lifeflow.utils.contacts import expire_stale_contact_requests
import atexit
import logging

logger = logging.getLogger(__name__)


def run_expiry_sweep(app):
    """
    Expire open blood requests and pending contact requests that have
    outlived their window. No notifications are sent for these transitions.
    """
    with app.app_context():
        expired_requests = expire_old_requests()
        expired_contacts = expire_stale_contact_requests()
        if expired_requests or expired_contacts:
            logger.info(f"Expired {expired_requests} blood requests and {expired_contacts} contact requests")
        return expired_requests, expired_contacts


def start_scheduler(app):
    """
    Start the background scheduler for automated tasks
    """
    if not scheduler.running:
        scheduler.add_job(
            func=run_expiry_sweep,
            args=[app],
            trigger='interval',
            minutes=app.config['EXPIRY_SWEEP_MINUTES'],
            id='expiry_sweep_job',
            replace_existing=True
        )

        scheduler.start()
        atexit.register(stop_scheduler)
        app.logger.info("Background scheduler started")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
