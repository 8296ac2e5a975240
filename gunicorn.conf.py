"""Gunicorn configuration for the household inventory service."""
import os

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:3000")

# The in-memory household store is the single writer for every collection,
# so the service must run in exactly one worker process.
workers = 1
threads = int(os.getenv("GUNICORN_THREADS", "4"))

accesslog = os.getenv("GUNICORN_ACCESS_LOGFILE", "-")
errorlog = os.getenv("GUNICORN_ERROR_LOGFILE", "-")

forwarded_allow_ips = os.getenv("GUNICORN_FORWARDED_ALLOW_IPS", "*")
