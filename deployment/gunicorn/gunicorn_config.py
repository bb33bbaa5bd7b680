import multiprocessing
import os

bind = os.getenv("GUNICORN_BIND", "unix:/var/www/housing/housing-backend/gunicorn.sock")
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"
worker_tmp_dir = "/dev/shm"
max_requests = 1000
max_requests_jitter = 100
# PDF reports for every farm are rendered inside the request
timeout = int(os.getenv("GUNICORN_TIMEOUT", 120))
keepalive = 5

# Logging
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "/var/log/housing-backend/access.log")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "/var/log/housing-backend/error.log")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s %(u)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

proc_name = "housing-backend"

daemon = False
pidfile = "/var/run/housing-backend/gunicorn.pid"
umask = 0o007


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Housing backend ready, spawning %s workers", workers)


def worker_abort(worker):
    """Called when a worker times out, typically during a long report render."""
    worker.log.warning("Worker %s aborted", worker.pid)
