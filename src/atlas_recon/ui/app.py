"""Flask responder serving individual sprites from a reconstruction session."""

from __future__ import annotations

import logging
from typing import Tuple

from flask import Flask, Response, jsonify, request

from atlas_recon.errors import (
    AtlasReconError,
    CropError,
    NotFoundError,
    UnsupportedFormatError,
)
from atlas_recon.session import ReconstructionSession

logger = logging.getLogger(__name__)


def _error(status: int, exc: Exception) -> Tuple[Response, int]:
    return jsonify({"error": type(exc).__name__, "message": str(exc)}), status


def create_app(session: ReconstructionSession) -> Flask:
    app = Flask(__name__)
    app.config["RECONSTRUCTION_SESSION"] = session

    @app.route("/sprites")
    def sprites() -> Response:
        return jsonify(session.list_sprite_names())

    @app.route("/sprites/<name>")
    def sprite(name: str) -> Response:
        crop = request.args.get("crop") or None
        fmt = request.args.get("format") or None
        mime_type = request.args.get("mime") or None
        try:
            encoded = session.compose(name, crop=crop, fmt=fmt, mime_type=mime_type)
        except NotFoundError as exc:
            return _error(404, exc)
        except (UnsupportedFormatError, CropError) as exc:
            return _error(400, exc)
        except AtlasReconError as exc:
            logger.error("Failed to compose [%s]: %s", name, exc)
            return _error(500, exc)

        response = Response(encoded.data, mimetype=encoded.mime_type)
        response.headers["Content-Disposition"] = f"inline; filename={encoded.filename}"
        response.headers["Content-Length"] = str(encoded.length)
        response.headers["X-Sprite-Width"] = str(encoded.width)
        response.headers["X-Sprite-Height"] = str(encoded.height)
        response.headers["X-Sprite-Crop"] = encoded.crop.value
        return response

    @app.route("/stats")
    def stats() -> Response:
        return jsonify([item.as_dict() for item in session.stats()])

    return app
