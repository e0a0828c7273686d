# backend/wsgi.py
from evcore import create_app

app = create_app()
