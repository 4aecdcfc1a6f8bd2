import os

# Binding
bind = f"0.0.0.0:{os.environ.get('PORT', '10000')}"

# One worker: the order list, its version counter and the realtime
# subscription live in process memory. Scale with threads.
workers = 1
worker_class = "gthread"
threads = int(os.environ.get("GUNICORN_THREADS", "8"))

# Timeout
timeout = 120

# Logging
accesslog = "-"
errorlog = "-"


def on_starting(server):
    # -w / WEB_CONCURRENCY on the command line would split the order list across processes.
    if server.num_workers != 1:
        server.log.warning("after sales keeps state in memory; forcing 1 worker (asked for %s)", server.num_workers)
        server.num_workers = 1
