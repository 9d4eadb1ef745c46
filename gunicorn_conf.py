import os

# Gunicorn config, run with: gunicorn -c gunicorn_conf.py hangoutz.main:app
wsgi_app = "hangoutz.main:app"
bind = os.getenv("BIND", "0.0.0.0:8000")
# Realtime rooms live in process memory, so a single worker owns every socket
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
# Keep idle WebSocket connections alive across heartbeats
timeout = 120
graceful_timeout = 30
