# backend/wsgi.py
from tamias import create_app

app = create_app()
