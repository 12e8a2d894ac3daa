# Overview: Flask API routes for file metadata; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..models import FileRecord
from ..services import file_service
from ..services.file_service import FileRecordError, FileRecordNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    coerce_int,
    enforce_rules_file,
)


files_bp = Blueprint("files", __name__, url_prefix="/api/files")

FILE_POLICY = ModelValidationPolicy(
    writable_fields={
        "original_name",
        "file_name",
        "file_key",
        "file_url",
        "file_size",
        "mime_type",
        "category",
        "storage",
        "access_level",
    },
    required_on_create={"original_name", "file_name", "file_key", "file_url", "file_size", "mime_type"},
)


@files_bp.post("")
def register_file_route():
    """Register metadata for an uploaded file. The upload itself happens elsewhere."""
    data = request.get_json(silent=True) or {}
    try:
        if data.get("user_id") is None:
            raise ValidationError("user_id is required")
        user_id = coerce_int(data["user_id"], "user_id")
        metadata = data.get("metadata")
        payload = {k: v for k, v in data.items() if k not in ("user_id", "metadata")}
        patch = validate_payload(model=FileRecord, payload=payload, policy=FILE_POLICY, partial=False)
        enforce_rules_file(patch)
        if metadata is not None:
            patch["metadata"] = metadata
        record = file_service.register_file(user_id, patch)
        return jsonify({"file": record.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register file")
        return jsonify({"error": "Internal server error"}), 500


@files_bp.get("")
def list_files_route():
    try:
        files, total = file_service.list_files(
            user_id=request.args.get("user_id", type=int),
            category=request.args.get("category"),
            limit=request.args.get("limit", 100, type=int),
            offset=request.args.get("offset", 0, type=int),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"files": [f.to_dict() for f in files], "total": total}), 200


@files_bp.get("/<int:file_id>")
def get_file_route(file_id: int):
    record = file_service.get_file(file_id)
    if not record:
        return jsonify({"error": "File not found"}), 404
    return jsonify({"file": record.to_dict()}), 200


@files_bp.post("/<int:file_id>/access")
def record_access_route(file_id: int):
    """Count a download/view; returns the updated counter."""
    try:
        record = file_service.record_access(file_id)
        return jsonify({"file": record.to_dict()}), 200

    except FileRecordNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except FileRecordError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record file access")
        return jsonify({"error": "Internal server error"}), 500
