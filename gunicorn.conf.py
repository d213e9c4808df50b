"""Gunicorn configuration file.

Bulk imports run inside the request (sequential, paced at one pause per ten
records), so the worker timeout is sized for large CSV files rather than for
regular API calls.

Secrets are read by user_admin.config.settings from /run/secrets or the
environment; workers only report which source is available.
"""
import os
from pathlib import Path

bind = f"0.0.0.0:{os.environ.get('PORT', '3000')}"
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "900"))
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
wsgi_app = "user_admin.flask_app:app"


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Reports whether Docker secrets are mounted and warns when demo
    credentials are in use.
    """
    if os.environ.get("DEMO_MODE", "false").lower() == "true":
        worker.log.warning("DEMO_MODE=true: placeholder Auth0 credentials in use")

    secrets_dir = Path("/run/secrets")
    if secrets_dir.exists() and secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets (using cached secrets)")
            return

    worker.log.info("No /run/secrets mount; Auth0 credentials come from the environment")
