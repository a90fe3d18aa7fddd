"""
Gunicorn configuration for the Ads Decision Gate API.

Uploads hold a worker for the length of an import, so the timeout is generous.
"""

import multiprocessing
import os

bind = os.getenv("BIND", "0.0.0.0:8000")
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() + 1))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 2000
max_requests_jitter = 200
timeout = 300
graceful_timeout = 30
keepalive = 5

proc_name = "ads-decision-gate"

errorlog = "-"
accesslog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
