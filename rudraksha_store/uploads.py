import os
import time

from flask import Blueprint, current_app, jsonify, request, send_from_directory
from werkzeug.utils import secure_filename

from .auth import token_required
from .helpers import ApiError

bp = Blueprint("uploads", __name__)

ALLOWED_TYPES = {"image/jpeg", "image/png", "image/gif"}


def stored_name(filename):
    """Timestamp-prefixed, filesystem-safe name for an uploaded image."""
    safe = secure_filename((filename or "").replace(" ", "-")) or "upload"
    return f"{int(time.time() * 1000)}-{safe}"


@bp.route("/api/upload", methods=["POST"])
@token_required()
def upload_image():
    file = request.files.get("file")
    if file is None or not file.filename:
        raise ApiError("No file uploaded", 400)
    if file.mimetype not in ALLOWED_TYPES:
        raise ApiError("Invalid file type", 400)

    content = file.read()
    max_bytes = current_app.config["MAX_UPLOAD_BYTES"]
    if len(content) > max_bytes:
        raise ApiError(f"File size exceeds {max_bytes // (1024 * 1024)}MB", 400)

    upload_dir = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(upload_dir, exist_ok=True)
    filename = stored_name(file.filename)
    with open(os.path.join(upload_dir, filename), "wb") as out:
        out.write(content)

    current_app.logger.info(f"Stored upload {filename} ({len(content)} bytes)")
    return jsonify({"error": False, "url": f"/uploads/{filename}"}), 200


@bp.route("/uploads/<path:filename>", methods=["GET"])
def uploaded_file(filename):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
