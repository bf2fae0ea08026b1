"""
WSGI entry point for HWLink.

Serve with ``python wsgi.py`` (uses eventlet when installed) or point the
Flask CLI at it: ``flask --app wsgi hwlink generate-code <username>``.
"""
import os

from dotenv import load_dotenv

load_dotenv()

from hwlink.factory import create_app  # noqa: E402

app, socketio = create_app()

# Gunicorn/uWSGI compatibility
application = app

if __name__ == "__main__":
    cfg = app.config["APP_CONFIG"]
    port = int(os.environ.get("PORT", cfg["APP_PORT"]))
    socketio.run(app, host=cfg["APP_HOST"], port=port, allow_unsafe_werkzeug=cfg["FLASK_ENV"] != "production")
