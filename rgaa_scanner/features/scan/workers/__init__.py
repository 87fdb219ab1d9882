"""Celery workers module - imports all task modules for autodiscovery."""

from rgaa_scanner.features.scan.workers import tasks  # noqa: F401
