"""Gunicorn configuration for production deployment.

Flask-SocketIO with threaded workers requires a single worker process. For
horizontal scaling run several containers against the same Redis, which
also acts as the Socket.IO message queue.
"""

import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:5000")
backlog = 2048

workers = int(os.getenv("GUNICORN_WORKERS", "1"))

# Flask-SocketIO will use simple-websocket for WebSocket support
worker_class = "sync"
threads = int(os.getenv("GUNICORN_THREADS", "100"))

# Pool generation waits on the catalog; keep this above MATCHPOINT_CATALOG_TIMEOUT
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = "matchpoint"

daemon = False
pidfile = None
preload_app = True

# Workers restart after handling this many requests
max_requests = 10000
max_requests_jitter = 1000


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("MatchPoint Gunicorn server starting")
    server.log.info(f"Workers: {workers}, Threads per worker: {threads}")
    server.log.info(f"Worker class: {worker_class}, Timeout: {timeout}s")


def worker_int(worker):
    """Called when a worker receives the SIGINT or SIGQUIT signal."""
    worker.log.info(f"Worker received INT or QUIT signal (PID: {worker.pid})")
