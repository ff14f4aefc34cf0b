"""
WSGI entrypoint. Configuration comes from the environment (or a ``.env``
file); DATABASE_URL and JWT_SECRET must be set.
  gunicorn wsgi:app
  flask --app wsgi create-user admin --role admin
"""

import os

from certhub.app import create_app

app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    app.run(host="0.0.0.0", port=port)
