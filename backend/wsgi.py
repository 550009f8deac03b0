# backend/wsgi.py
from pos import create_app

app = create_app()
