# Gunicorn configuration for Tagboard
#
# Rate-limit counters live in process memory by default, so run a single
# worker unless RATELIMIT_STORAGE_URI points at a shared store.
import os

workers = int(os.environ.get("WEB_CONCURRENCY", "1"))
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8080")
timeout = int(os.environ.get("GUNICORN_TIMEOUT_SECONDS", "30"))
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT_SECONDS", "30"))
wsgi_app = "run:app"


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s).", worker.pid)
