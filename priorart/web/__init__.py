from typing import Any, Dict, Optional

from flask import Flask

from priorart import config
from priorart.web.db import db


def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.update({
        "SQLALCHEMY_DATABASE_URI": config.SQLALCHEMY_DATABASE_URI,
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "INLINE_WORKER": config.INLINE_WORKER,
    })
    if config_overrides:
        app.config.update(config_overrides)

    register_extensions(app)
    register_blueprints(app)
    register_background_worker(app)

    return app


def register_extensions(app: Flask) -> None:
    db.init_app(app)

    # Models must be imported before create_all
    from priorart import models  # noqa: F401

    with app.app_context():
        db.create_all()


def register_blueprints(app: Flask) -> None:
    from priorart.web.views import analysis_views

    app.register_blueprint(analysis_views.bp)


def register_background_worker(app: Flask) -> None:
    """
    Consume the in-memory fallback queue inside the web process.

    A MemoryQueue is invisible to scripts/run_worker.py, so without this
    thread jobs published by the API would never run.
    """
    if app.config.get("TESTING") or not app.config.get("INLINE_WORKER"):
        return

    from priorart.workers.queue import get_queue
    from priorart.workers.worker import build_worker_context, start_background_worker

    queue = get_queue()
    if queue.durable:
        return
    app.extensions["priorart_worker"] = start_background_worker(build_worker_context(app, queue))
