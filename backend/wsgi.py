# backend/wsgi.py
from vbms import create_app

app = create_app()
