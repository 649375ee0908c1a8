"""
WSGI entry point. Elastic Beanstalk and gunicorn look for `application`.
"""
import os

from backend.app import app as application

if __name__ == "__main__":
    application.run(port=int(os.getenv("PORT", "5000")), debug=os.getenv("FLASK_DEBUG") == "1")
