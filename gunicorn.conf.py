"""Gunicorn configuration for the Forge CRM API.

Run from the repo root: gunicorn -c gunicorn.conf.py
"""
import multiprocessing
import os

wsgi_app = "forge_crm.main:app"
chdir = "backend"
bind = os.getenv("FORGE_BIND", "0.0.0.0:8000")
workers = int(os.getenv("FORGE_WEB_WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
proc_name = "forge-crm-api"
# Cron triggers run a whole alert family inline; leave room for slow mail providers.
timeout = 300
graceful_timeout = 30
keepalive = 5
max_requests = 1000
max_requests_jitter = 100
preload_app = True
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("FORGE_LOG_LEVEL", "info")
