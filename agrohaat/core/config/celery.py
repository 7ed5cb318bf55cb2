from celery import Celery

from agrohaat.core.config import settings

celery_app = Celery(
    'agrohaat_tasks',
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend
)

celery_app.conf.update(
    result_backend=settings.celery_result_backend,
    task_serializer='json',
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    accept_content=['json'],
    result_extended=True,
    result_expires=3600,
)

beat_schedule = {
    "sweep-expired-bids": {
        "task": "agrohaat.tasks.bids.sweep_expired_bids",
        "schedule": float(settings.SWEEP_INTERVAL_SECONDS),
    },
}

if settings.AUCTION_AUTO_RESOLVE:
    beat_schedule["process-expired-auctions"] = {
        "task": "agrohaat.tasks.bids.process_expired_auctions",
        "schedule": float(settings.AUCTION_INTERVAL_SECONDS),
    }

celery_app.conf.beat_schedule = beat_schedule

celery_app.autodiscover_tasks(["agrohaat.tasks"], related_name="bids")
