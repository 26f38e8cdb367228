# Celery instance is defined in ledger_project/celery.py
# Importing it here makes sure shared_task binds to this app
# as soon as Django starts
from .celery import celery_app

# 'from ledger_project import *' only exports celery_app
__all__ = ("celery_app",)

""" Worker entry point: "celery -A ledger_project worker -l info"
    -A ledger_project imports this package, which exposes celery_app. """
