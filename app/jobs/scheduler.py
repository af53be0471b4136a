import logging
import os
from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from app.models import utcnow
from app.services.changes import prune_change_events


logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def run_change_feed_prune(app):
    with app.app_context():
        cutoff = utcnow() - timedelta(hours=app.config["CHANGE_FEED_RETENTION_HOURS"])
        deleted = prune_change_events(cutoff)
        if deleted:
            logger.info("pruned %d change events older than %s", deleted, cutoff)


def start_scheduler(app):
    if not app.config.get("SCHEDULER_ENABLED", True):
        return
    if os.environ.get("WERKZEUG_RUN_MAIN") == "false":
        return

    if not scheduler.get_jobs():
        scheduler.add_job(
            run_change_feed_prune,
            "interval",
            hours=1,
            kwargs={"app": app},
            id="change_feed_prune",
            replace_existing=True,
        )
        scheduler.start()
