"""
Gunicorn production configuration
Worker count scales with CPU cores unless overridden

Every setting can be overridden from the environment (.env):
  GUNICORN_WORKERS, GUNICORN_WORKER_CONNECTIONS, GUNICORN_MAX_REQUESTS,
  GUNICORN_MAX_REQUESTS_JITTER, GUNICORN_TIMEOUT, GUNICORN_KEEPALIVE,
  GUNICORN_GRACEFUL_TIMEOUT, GUNICORN_LOG_LEVEL

Each worker runs its own recurring cron (RECURRING_CRON_ENABLED); passes
are idempotent per recurring and day, so overlapping workers only repeat
the due-check. Set RECURRING_CRON_ENABLED=false on all but one deployment
to avoid the extra queries.
"""
import multiprocessing
import os

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# (2 x cores) + 1
workers = int(os.getenv("GUNICORN_WORKERS", (2 * multiprocessing.cpu_count()) + 1))

worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = int(os.getenv("GUNICORN_WORKER_CONNECTIONS", 1000))

# Recycle workers periodically, with jitter so they do not restart together
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", 1000))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", 50))

timeout = int(os.getenv("GUNICORN_TIMEOUT", 60))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", 5))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", 30))

# The scheduler is started from the app lifespan, after the fork
preload_app = False

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = "finance-tracker-backend"


def on_starting(server):
    server.log.info(f"Starting Finance Tracker backend with {workers} workers")


def worker_int(worker):
    worker.log.info(f"Worker {worker.pid} received SIGINT/SIGQUIT")


def on_exit(server):
    server.log.info("Finance Tracker backend shutting down")
