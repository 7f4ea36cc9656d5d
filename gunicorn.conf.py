import os

bind = f"0.0.0.0:{os.getenv('PORT', '5000')}"
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
# Hung workers are killed and restarted after this many seconds.
timeout = int(os.getenv("REQUEST_TIMEOUT", "10"))
graceful_timeout = timeout
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
