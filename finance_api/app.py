"""Flask REST API exposing the student finance services."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from finance_core.exceptions import (
    ImportFormatError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from finance_core.logging_setup import configure_logging
from finance_core.search import SearchHit
from finance_core.services import LedgerService
from finance_core.transfer import DEFAULT_EXPORT_NAME

_TRUTHY = {"1", "true", "yes", "on"}


def _configure_cors(app: Flask) -> None:
    env_name = os.getenv("STUDENT_FINANCE_ENV", "prod").lower()
    if env_name in {"dev", "development"}:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
        return
    allowed_origins = os.getenv("STUDENT_FINANCE_ALLOWED_ORIGINS")
    if allowed_origins:
        origins = [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]
        CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)
    else:
        CORS(app)


def _hit_to_dict(hit: SearchHit) -> Dict[str, Any]:
    payload = hit.record.to_dict()
    payload["highlights"] = {
        name: [list(span) for span in spans] for name, spans in hit.spans.items()
    }
    return payload


def create_app(data_dir: Optional[Path] = None) -> Flask:
    app = Flask(__name__)
    configure_logging()
    _configure_cors(app)

    ledger = LedgerService.open(
        Path(data_dir or os.getenv("STUDENT_FINANCE_DATA_DIR", "data"))
    )
    app.config["LEDGER"] = ledger

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str, **extra: Any):
        app.logger.error("%s: %s", message, exc)
        return jsonify({"error": message, "details": str(exc), **extra}), status

    @app.errorhandler(ImportFormatError)
    def handle_import_error(exc: ImportFormatError):
        return _handle_error(exc, 400, "Error importing data. Please check the file format.")

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error", fields=exc.errors)

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        return _handle_error(exc, 404, "Record not found")

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(exc: PersistenceError):
        return _handle_error(exc, 500, "Persistence error")

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    def _today_arg() -> Optional[date]:
        raw = request.args.get("today")
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError as exc:
            raise ValidationError("today must be YYYY-MM-DD", {"today": "must be YYYY-MM-DD"}) from exc

    @app.get("/records")
    def list_records():
        term = request.args.get("q", "")
        case_sensitive = request.args.get("case_sensitive", "").lower() in _TRUTHY
        hits = ledger.search(term, case_sensitive)
        return _success({"items": [_hit_to_dict(hit) for hit in hits], "count": len(hits)})

    @app.post("/records")
    def create_record():
        record = ledger.records.add(_json_body())
        return _success(record.to_dict(), 201)

    @app.post("/records/sort")
    def sort_records():
        payload = _json_body()
        records = ledger.records.sort_by(str(payload.get("key", "")))
        return _success({"items": [record.to_dict() for record in records]})

    @app.get("/records/<record_id>")
    def get_record(record_id: str):
        return _success(ledger.records.get(record_id).to_dict())

    @app.put("/records/<record_id>")
    def update_record(record_id: str):
        record = ledger.records.edit(record_id, _json_body())
        return _success(record.to_dict())

    @app.delete("/records/<record_id>")
    def delete_record(record_id: str):
        ledger.records.delete(record_id)
        return _success({}, 204)

    @app.get("/summary")
    def summary():
        return _success(ledger.summary(today=_today_arg()).to_dict())

    @app.get("/settings")
    def get_settings():
        return _success(ledger.settings.current.to_dict())

    @app.put("/settings")
    def update_settings():
        settings = ledger.settings.update(_json_body())
        return _success(settings.to_dict())

    @app.post("/settings/categories")
    def add_category():
        settings = ledger.settings.add_category(_json_body().get("name"))
        return _success(settings.to_dict(), 201)

    @app.delete("/settings/categories/<name>")
    def delete_category(name: str):
        ledger.settings.remove_category(name)
        return _success({}, 204)

    @app.get("/export")
    def export():
        response = jsonify(ledger.export_document())
        response.headers["Content-Disposition"] = f"attachment; filename={DEFAULT_EXPORT_NAME}"
        return response

    @app.post("/import")
    def import_data():
        count = ledger.import_document(request.get_data(as_text=True))
        return _success({"message": "Data imported successfully!", "count": count})

    return app
