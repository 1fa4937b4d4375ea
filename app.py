"""
Compta Loader: validation service.

Dry run of a spreadsheet import: the uploaded file is converted against the
reference data posted with it and every entry and row error is returned.
Nothing is written to the bookkeeping back end.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict

from flask import Flask, request
from werkzeug.utils import secure_filename

from compta_loader import __version__
from compta_loader.config import LoaderConfig, load_config
from compta_loader.errors import LoaderError
from compta_loader.logging_setup import get_logger
from compta_loader.pipeline import BatchOutput, EntryLoadingPipeline
from compta_loader.reference_index import ReferenceData

# -------------------------------------------------------
# App Setup
# -------------------------------------------------------

app = Flask(__name__)

app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024
app.config["UPLOAD_FOLDER"] = Path(tempfile.gettempdir())

logger = get_logger("app")

ALLOWED_EXTENSIONS = {"csv", "xlsx"}

# -------------------------------------------------------
# Pipeline Setup
# -------------------------------------------------------


def build_pipeline() -> EntryLoadingPipeline:
    """Pipeline for the service: column names and defaults come from the
    file named by ``COMPTA_LOADER_CONFIG`` when set.

    Rows are always collected leniently and receipts are never attached,
    the response has to list every problem of the upload.
    """
    config_path = os.environ.get("COMPTA_LOADER_CONFIG")
    config = load_config(Path(config_path)) if config_path else LoaderConfig()
    return EntryLoadingPipeline(
        replace(
            config,
            strict_mode=False,
            receipts_folder=None,
            log_level=logging.WARNING,
        )
    )


pipeline = build_pipeline()

# -------------------------------------------------------
# Helpers
# -------------------------------------------------------

def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def read_reference() -> ReferenceData:
    """Reference data from the ``reference`` form field or file part."""
    if "reference" in request.files:
        raw = request.files["reference"].read().decode("utf-8-sig")
    else:
        raw = request.form.get("reference", "")

    if not raw.strip():
        raise ValueError("No reference data provided")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid reference JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Reference data must be a JSON object")
    return ReferenceData.from_dict(data)


def run_upload(file, reference: ReferenceData) -> BatchOutput:
    filename = secure_filename(file.filename)

    if filename.lower().endswith(".csv"):
        text = file.read().decode("utf-8-sig")
        return pipeline.load_csv_text(text, reference, filename)

    # openpyxl needs a real file
    filepath = app.config["UPLOAD_FOLDER"] / filename
    file.save(filepath)
    try:
        return pipeline.load_excel(filepath, reference)
    finally:
        filepath.unlink(missing_ok=True)


def error_response(message: str, status: int) -> tuple[Dict[str, Any], int]:
    return {"success": False, "error": message, "entries": [], "errors": []}, status


# -------------------------------------------------------
# API
# -------------------------------------------------------

@app.route("/")
def home():
    return {
        "status": "compta-loader validation service running",
        "message": "Use /api/health to check server status",
        "endpoints": ["/api/validate", "/api/health"],
    }


@app.route("/api/validate", methods=["POST"])
def api_validate():

    if "file" not in request.files:
        return error_response("No file uploaded", 400)

    file = request.files["file"]

    if file.filename == "":
        return error_response("No file selected", 400)

    if not allowed_file(file.filename):
        return error_response(
            f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
            400,
        )

    try:
        reference = read_reference()
    except (ValueError, LoaderError) as e:
        return error_response(str(e), 400)

    try:
        output = run_upload(file, reference)
    except UnicodeDecodeError:
        return error_response("File is not valid UTF-8 text", 400)
    except LoaderError as e:
        # Nothing could be read at all (empty file, unusable reference data)
        logger.warning("Upload rejected: %s", e)
        return error_response(str(e), 422)
    except Exception as e:
        logger.exception("API Error")
        return error_response(str(e), 500)

    body = output.to_dict()
    body["filename"] = secure_filename(file.filename)
    return body, 200


@app.route("/api/health", methods=["GET"])
def api_health():
    return {
        "status": "online",
        "version": __version__,
        "api": "/api/validate",
        "methods": ["POST"],
    }, 200


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
