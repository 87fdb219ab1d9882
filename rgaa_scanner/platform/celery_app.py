from celery import Celery
from kombu import Queue

from rgaa_scanner.platform.config import settings


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Queue Structure:
    - scan.orchestration: one task per scan run (crawl, analyze, score, persist)

    Only used when SCAN_DISPATCH=celery; the inline dispatcher never touches the broker.
    """
    celery_app = Celery(
        "rgaa_scanner",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer=settings.CELERY_RESULT_SERIALIZER,
        accept_content=[settings.CELERY_ACCEPT_CONTENT],
        timezone="UTC",
        enable_utc=True,
        task_track_started=settings.CELERY_TASK_TRACK_STARTED,
        task_time_limit=settings.CELERY_TASK_TIME_LIMIT,

        result_expires=3600,

        task_routes={
            "rgaa_scanner.features.scan.workers.tasks.run_scan_pipeline": {"queue": "scan.orchestration"},
        },
        task_queues=(
            Queue("default"),
            Queue("scan.orchestration"),
        ),
        task_default_queue="default",

        worker_prefetch_multiplier=1,  # Fair distribution
        task_acks_late=True,
        task_reject_on_worker_lost=True,
    )

    celery_app.autodiscover_tasks(["rgaa_scanner.features.scan.workers"])

    return celery_app


# Global Celery app instance
celery_app = create_celery_app()
