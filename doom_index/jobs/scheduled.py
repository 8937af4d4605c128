import logging

logger = logging.getLogger(__name__)

GENERATION_JOB_ID = 'doom_generation'


def _generation_job(app):
    with app.app_context():
        logger.info("[Job] Starting generation cycle")
        from doom_index.services.container import run_generation_once
        result = run_generation_once()
        logger.info(f"[Job] Generation cycle {result.bucket}: {result.status}")


def register_jobs(scheduler, app):
    """Register the generation job. One run at a time; missed runs collapse into one."""
    interval = app.config.get('GENERATION_INTERVAL_MINUTES', 60)
    scheduler.add_job(
        id=GENERATION_JOB_ID,
        func=_generation_job,
        args=[app],
        trigger='interval',
        minutes=interval,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info(f"Scheduled generation every {interval} minutes")
