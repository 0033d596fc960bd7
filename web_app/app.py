# web_app/app.py
import os

from flask import Flask

from web_app.routes import bp
from utils.logger import get_logger

logger = get_logger("web.app")


def create_app(pipeline_factory=None, session_factory=None, evidence_dir=None):
    """
    Args:
        pipeline_factory: callable returning an InferencePipeline (defaults to a CPU pipeline)
        session_factory: SQLAlchemy sessionmaker for the violation log
        evidence_dir: directory downloads are served from
    """
    app = Flask(__name__)
    app.secret_key = os.getenv("FLASK_SECRET", "dev-secret-key")
    app.config["PIPELINE_FACTORY"] = pipeline_factory
    app.config["SESSION_FACTORY"] = session_factory
    app.config["EVIDENCE_DIR"] = evidence_dir or os.getenv("EVIDENCE_DIR", "evidence_store")
    app.register_blueprint(bp)
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5000, threaded=True)
