import os

# App & bind
wsgi_app = "portal_auth:create_app()"
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# Each worker owns its rate limiter; while Redis is down the in-process
# fallback counts per worker, so the effective quota is workers x limit.
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = int(os.getenv("GUNICORN_THREADS", "1"))
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr (collected by Docker)
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Trust proxy headers; ProxyFix in the app resolves the client IP
forwarded_allow_ips = "*"
proxy_protocol = False
