import os

wsgi_app = "garment_erp.wsgi:application"
bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
workers = int(os.environ.get('GUNICORN_WORKERS', '3'))
timeout = int(os.environ.get('GUNICORN_TIMEOUT', '30'))
keepalive = 2
max_requests = 1000
max_requests_jitter = 50
loglevel = os.environ.get('LOG_LEVEL', 'info')
errorlog = os.environ.get('GUNICORN_ERROR_LOG', '-')
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', '-')
