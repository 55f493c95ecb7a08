"""Flask application factory for the GifCut web API."""

import logging
import tempfile
from pathlib import Path

from flask import Flask, jsonify

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 4 * 1024 * 1024 * 1024


def create_app(work_dir: Path | None = None, max_upload_bytes: int = MAX_UPLOAD_BYTES) -> Flask:
    """Build the API app; uploads and exported GIFs live under *work_dir*."""
    work_dir = Path(work_dir) if work_dir else Path(tempfile.mkdtemp(prefix="gifcut_"))
    work_dir.mkdir(parents=True, exist_ok=True)

    app = Flask(__name__)
    app.config["WORK_DIR"] = work_dir
    app.config["MAX_CONTENT_LENGTH"] = max_upload_bytes

    from gifcut.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(413)
    def request_entity_too_large(error):
        limit_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return jsonify({"error": f"Upload exceeds the {limit_mb} MB limit"}), 413

    logger.info("Working directory for jobs: %s", work_dir)
    return app
