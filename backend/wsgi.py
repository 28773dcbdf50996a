# Overview: WSGI entry point (FLASK_APP=wsgi.py, or gunicorn wsgi:app).

from medtory import create_app

app = create_app()
