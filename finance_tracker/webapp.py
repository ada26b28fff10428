"""Flask JSON API for the Personal Finance Tracker."""

from __future__ import annotations

import datetime as dt
import io
import time
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from flask import Flask, Response, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound

from .analytics import compute_summary, monthly_totals, running_balance, spending_by_category
from .config import PROJECT_ROOT, AppConfig
from .db import get_storage, init_app
from .domain import CENTS, CategoryType, Transaction, TransactionKind
from .filters import filter_transactions
from .models import db
from .reports import export_filename, export_transactions_csv
from .storage import StorageError
from .validation import (
    ValidationError,
    parse_category_payload,
    parse_filter_spec,
    parse_transaction_payload,
)

LOG_LINE_LIMIT = 80


def _money(value: Decimal) -> float:
    return float(value.quantize(CENTS))


def _now() -> dt.datetime:
    return current_app.config["CLOCK"]()


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _filtered_transactions() -> List[Transaction]:
    spec = parse_filter_spec(request.args, current_app.config["DEFAULT_DATE_RANGE"])
    return filter_transactions(get_storage().list_transactions(), spec, now=_now())


def _start_timer() -> None:
    g.request_started = time.perf_counter()


def _log_request(response: Response) -> Response:
    if not request.path.startswith("/api"):
        return response
    started = g.get("request_started")
    duration = int((time.perf_counter() - started) * 1000) if started is not None else 0
    log_line = f"{request.method} {request.path} {response.status_code} in {duration}ms"
    if response.is_json:
        log_line += f" :: {response.get_data(as_text=True).strip()}"
    if len(log_line) > LOG_LINE_LIMIT:
        log_line = log_line[: LOG_LINE_LIMIT - 1] + "…"
    current_app.logger.info(log_line)
    return response


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def validation_failed(exc: ValidationError):
        body: Dict[str, Any] = {"message": exc.message}
        if exc.errors:
            body["errors"] = exc.errors
        return jsonify(body), 400

    @app.errorhandler(StorageError)
    def storage_refused(exc: StorageError):
        return jsonify({"message": str(exc)}), 400

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        return jsonify({"message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def unexpected_error(exc: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"message": "Internal server error"}), 500


def create_app(
    cfg: Optional[AppConfig] = None,
    config_path: Optional[str] = None,
    test_config: Optional[Dict[str, Any]] = None,
) -> Flask:
    cfg = cfg or AppConfig.load(_resolve_config_path(config_path))
    app = Flask(__name__)
    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["DEFAULT_DATE_RANGE"] = cfg.default_date_range
    app.config["CLOCK"] = dt.datetime.now
    app.config["SQLALCHEMY_DATABASE_URI"] = cfg.database_url
    if test_config:
        app.config.update(test_config)
    app.logger.setLevel(cfg.log_level)

    init_app(app, cfg)
    app.before_request(_start_timer)
    app.after_request(_log_request)
    _register_error_handlers(app)

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "healthy",
            "timestamp": _now().isoformat(),
            "database": db.engine.dialect.name,
        })

    @app.route("/api/transactions", methods=["GET"])
    def list_transactions():
        return jsonify([t.to_dict() for t in _filtered_transactions()])

    @app.route("/api/transactions/export", methods=["GET"])
    def export_transactions():
        txns = _filtered_transactions()
        buffer = io.StringIO()
        count = export_transactions_csv(txns, buffer)
        app.logger.info("Exported %d transactions to CSV", count)
        filename = export_filename(_now().date())
        return Response(
            buffer.getvalue(),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/transactions/<txn_id>", methods=["GET"])
    def get_transaction(txn_id: str):
        txn = get_storage().get_transaction(txn_id)
        if txn is None:
            raise NotFound("Transaction not found")
        return jsonify(txn.to_dict())

    @app.route("/api/transactions", methods=["POST"])
    def create_transaction():
        data = parse_transaction_payload(_json_body())
        txn = get_storage().create_transaction(data)
        return jsonify(txn.to_dict()), 201

    @app.route("/api/transactions/<txn_id>", methods=["PUT"])
    def update_transaction(txn_id: str):
        changes = parse_transaction_payload(_json_body(), partial=True)
        txn = get_storage().update_transaction(txn_id, changes)
        if txn is None:
            raise NotFound("Transaction not found")
        return jsonify(txn.to_dict())

    @app.route("/api/transactions/<txn_id>", methods=["DELETE"])
    def delete_transaction(txn_id: str):
        if not get_storage().delete_transaction(txn_id):
            raise NotFound("Transaction not found")
        return "", 204

    @app.route("/api/summary")
    def summary():
        txns = get_storage().list_transactions()
        return jsonify(compute_summary(txns, _now()).to_dict())

    @app.route("/api/summary/monthly")
    def summary_monthly():
        months = monthly_totals(_filtered_transactions())
        return jsonify({m: {k: _money(v) for k, v in vals.items()} for m, vals in months.items()})

    @app.route("/api/summary/categories")
    def summary_categories():
        kind_value = (request.args.get("kind") or TransactionKind.EXPENSE.value).lower()
        try:
            kind = TransactionKind(kind_value)
        except ValueError:
            raise ValidationError("Kind must be income or expense") from None
        storage = get_storage()
        labels = {c.key: c.label for c in storage.list_categories()}
        totals = spending_by_category(_filtered_transactions(), kind)
        return jsonify([
            {"category": key, "label": labels.get(key, key), "total": _money(total)}
            for key, total in totals.items()
        ])

    @app.route("/api/summary/balance")
    def summary_balance():
        series = running_balance(_filtered_transactions())
        return jsonify([
            {
                "id": t.id,
                "date": t.date.isoformat(),
                "description": t.description,
                "amount": _money(t.signed_amount),
                "balance": _money(balance),
            }
            for t, balance in series
        ])

    @app.route("/api/categories", methods=["GET"])
    def list_categories():
        type_value = request.args.get("type")
        applicable_to = None
        if type_value in {c.value for c in CategoryType}:
            applicable_to = CategoryType(type_value)
        return jsonify([c.to_dict() for c in get_storage().list_categories(applicable_to)])

    @app.route("/api/categories/<category_id>", methods=["GET"])
    def get_category(category_id: str):
        category = get_storage().get_category(category_id)
        if category is None:
            raise NotFound("Category not found")
        return jsonify(category.to_dict())

    @app.route("/api/categories", methods=["POST"])
    def create_category():
        data = parse_category_payload(_json_body())
        category = get_storage().create_category(data)
        return jsonify(category.to_dict()), 201

    @app.route("/api/categories/<category_id>", methods=["PUT"])
    def update_category(category_id: str):
        changes = parse_category_payload(_json_body(), partial=True)
        category = get_storage().update_category(category_id, changes)
        if category is None:
            raise NotFound("Category not found")
        return jsonify(category.to_dict())

    @app.route("/api/categories/<category_id>", methods=["DELETE"])
    def delete_category(category_id: str):
        if not get_storage().delete_category(category_id):
            raise NotFound("Category not found")
        return "", 204

    return app


def _resolve_config_path(config_path: Optional[str]) -> Optional[Path]:
    if not config_path:
        return None
    path = Path(config_path)
    if path.is_absolute():
        return path
    return PROJECT_ROOT / path
