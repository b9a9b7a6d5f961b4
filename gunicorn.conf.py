"""
Gunicorn configuration for the goal engine.

Env vars:
  PORT     - TCP port (injected by Railway / Render)
  WORKERS  - worker processes, default 1
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# GoalStore lives in process memory and owns the snapshot row; a second
# worker would be a second writer racing on that row.
workers = int(os.environ.get("WORKERS", "1"))
worker_class = "uvicorn.workers.UvicornWorker"

# Idle connection reuse window, seconds
keepalive = 5

# A request holds the store lock only for one snapshot write
timeout = 60
graceful_timeout = 30

# Access and error logs on stdout/stderr, same stream as app logging
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s %(m)s %(U)s %(s)s %(M)sms'
