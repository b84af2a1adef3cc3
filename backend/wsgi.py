# backend/wsgi.py
from ackit import create_app

app = create_app()
