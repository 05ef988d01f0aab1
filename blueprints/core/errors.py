# blueprints/core/errors.py
from __future__ import annotations
import logging

from flask import jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base for errors raised by the service layer and rendered as JSON by the app."""
    code = "error"
    http_status = 500

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if code:
            self.code = code


class BadRequest(ServiceError):
    code = "bad_request"
    http_status = 400

class Forbidden(ServiceError):
    code = "forbidden"
    http_status = 403

class NotFound(ServiceError):
    code = "not_found"
    http_status = 404

class Conflict(ServiceError):
    code = "conflict"
    http_status = 409

class TransactionFailure(ServiceError):
    """Storage-layer abort; the unit of work was rolled back in full."""
    code = "transaction_failed"
    http_status = 503


def json_error(code: str, http: int = 400, detail=None):
    body = {"error": code}
    if detail:
        body["detail"] = detail
    return jsonify(body), http

def _pydantic_errors_safe(ve: ValidationError):
    errs = ve.errors(include_url=False)
    for e in errs:
        if "ctx" in e and isinstance(e["ctx"], dict):
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
    return errs


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def _service_error(ex: ServiceError):
        if isinstance(ex, TransactionFailure):
            log.warning("transaction failed: %s", ex.message, extra={"event": "transaction_failed"})
        return json_error(ex.code, ex.http_status, ex.message)

    @app.errorhandler(ValidationError)
    def _validation_error(ve: ValidationError):
        return json_error("validation_error", 422, _pydantic_errors_safe(ve))

    @app.errorhandler(HTTPException)
    def _http_error(ex: HTTPException):
        # the API speaks JSON only; anything else keeps werkzeug's page
        if not request.path.startswith("/api/"):
            return ex
        return json_error(ex.name.lower().replace(" ", "_"), ex.code or 500, ex.description)
