from __future__ import annotations
import os
from celery import Celery

# ensure Django settings are set for Celery
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ledger_project.settings")

# name should match the project package
celery_app = Celery("ledger_project")

# read config from Django settings, using CELERY_ prefix
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# autoload tasks.py from installed apps (ledger_core.tasks)
celery_app.autodiscover_tasks()

# Periodic maintenance: nightly balance rebuild + trial balance check
celery_app.conf.beat_schedule = {
    "rebuild-bank-balances": {
        "task": "ledger_core.tasks.rebuild_bank_balances",
        "schedule": 60 * 60 * 24,
    },
    "verify-trial-balance": {
        "task": "ledger_core.tasks.verify_trial_balance",
        "schedule": 60 * 60 * 24,
    },
}
