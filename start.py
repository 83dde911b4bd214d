#!/usr/bin/env python3
import os
from dotenv import load_dotenv
from app import create_app, db
from app.models import Event, EventRegistration, User  # noqa: F401  registers the tables

load_dotenv()

app = create_app()

# Local runs without migrations get the schema created on boot
with app.app_context():
    db.create_all()
    app.logger.info(f"Campus events schema ready: {sorted(db.metadata.tables.keys())}")

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5001))
    app.logger.info(f"Starting campus events API on port {port}")
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_ENV") == "development")
