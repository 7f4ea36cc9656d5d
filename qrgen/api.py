import logging
from typing import Optional

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.exceptions import HTTPException

from qrgen.accounts import ensure_default_plans, list_active_plans, plan_limit_for, resolve_account
from qrgen.config import Settings, configure_logging
from qrgen.conversions import find_cached_conversion, record_conversion
from qrgen.credentials import decode_api_key, extract_credentials, has_bearer_shape
from qrgen.db import create_db_engine, create_session_factory, init_db, session_scope
from qrgen.errors import (
    AuthenticationError,
    MethodNotAllowed,
    PersistenceError,
    PlanLimitExceeded,
    QRGenError,
    ValidationError,
)
from qrgen.models import Account
from qrgen.rendering import render_qr_data_url
from qrgen.schemas import parse_generate_request

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)

CORS_ALLOW_HEADERS = "Content-Type, Authorization, X-API-Key, X-Bearer-Token"


def _settings() -> Settings:
    return current_app.extensions["qrgen"]["settings"]


def _sessions() -> sessionmaker:
    return current_app.extensions["qrgen"]["sessions"]


def _preflight(methods: str, headers: str = CORS_ALLOW_HEADERS) -> Response:
    response = Response(status=204)
    response.headers["Access-Control-Allow-Headers"] = headers
    response.headers["Access-Control-Allow-Methods"] = methods
    return response


def _error_response(error: QRGenError):
    return jsonify({"status": "error", "message": error.message}), error.status_code


def _read_json_body():
    try:
        return request.get_json(silent=True, force=True)
    except RecursionError as exc:
        raise ValidationError() from exc


def _success(message: str, qr_code_url: str, owner: Optional[str], conversions_used: int, cached: bool):
    return jsonify(
        {
            "status": "success",
            "message": message,
            "qrCodeUrl": qr_code_url,
            "owner": owner,
            "conversionsUsed": conversions_used or 0,
            "cached": cached,
        }
    )


@api.route("/health", methods=["GET"])
def health_check():
    return jsonify({"status": "ok"}), 200


@api.route("/pricing", methods=["GET", "OPTIONS"], provide_automatic_options=False)
def pricing():
    if request.method == "OPTIONS":
        return _preflight("GET, OPTIONS", headers="Content-Type, Authorization")

    try:
        with session_scope(_sessions()) as session:
            plans = [plan.to_dict() for plan in list_active_plans(session)]
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch plans")
        raise PersistenceError("Failed to load plans") from exc

    return jsonify(plans), 200


@api.route("/generate-qr", methods=["POST", "OPTIONS"], provide_automatic_options=False)
@api.route("/functions/v1/generate-qr", methods=["POST", "OPTIONS"], provide_automatic_options=False)
def generate_qr():
    if request.method == "OPTIONS":
        return _preflight("POST, OPTIONS")

    credentials = extract_credentials(request.headers)
    if credentials is None:
        raise AuthenticationError("Missing ApiKey or Bearer token")

    owner = decode_api_key(credentials.api_key)
    if owner is None:
        logger.warning("Rejected request with malformed API key")
        raise AuthenticationError("Invalid API key")

    if not has_bearer_shape(credentials.bearer_token):
        logger.warning("Rejected request for %s with malformed bearer token", owner)
        raise AuthenticationError("Invalid bearer token")

    try:
        with session_scope(_sessions()) as session:
            account = resolve_account(session, credentials.api_key, credentials.bearer_token)
            if account is None:
                logger.warning("No active account matches credentials presented for %s", owner)
                raise AuthenticationError("Invalid API credentials")

            body = parse_generate_request(_read_json_body())
            return _convert(session, _settings(), account, owner, body.text)
    except SQLAlchemyError as exc:
        logger.exception("Store failure while generating QR code")
        raise PersistenceError() from exc


def _convert(session: Session, settings: Settings, account: Account, owner: str, text: str):
    cached = find_cached_conversion(session, account.id, text)
    if cached is not None:
        logger.info("Cache hit for account %s", account.id)
        return _success(
            "QR code retrieved from cache", cached.qr_code_url, owner, account.conversions_used, cached=True
        )

    if settings.enforce_plan_limits:
        limit = plan_limit_for(session, account.plan, settings.default_free_plan_limit)
        if limit is not None and account.conversions_used >= limit:
            logger.info("Account %s reached its %s plan limit of %d", account.id, account.plan, limit)
            raise PlanLimitExceeded()

    logger.info("Cache miss for account %s, rendering %d characters", account.id, len(text))
    qr_code_url = render_qr_data_url(text, box_size=settings.qr_box_size, border=settings.qr_border)

    try:
        _, conversions_used = record_conversion(session, account, text, qr_code_url)
    except IntegrityError:
        # A concurrent request stored the same text first; serve its record.
        session.rollback()
        winner = find_cached_conversion(session, account.id, text)
        if winner is None:
            logger.exception("Conversion insert for account %s conflicted without a stored record", account.id)
            raise PersistenceError()
        session.refresh(account)
        return _success(
            "QR code retrieved from cache", winner.qr_code_url, owner, account.conversions_used, cached=True
        )

    return _success("QR code generated", qr_code_url, owner, conversions_used, cached=False)


def _handle_qrgen_error(error: QRGenError):
    return _error_response(error)


def _handle_http_exception(error: HTTPException):
    if error.code == 405:
        response, status = _error_response(MethodNotAllowed())
        if error.valid_methods:
            response.headers["Allow"] = ", ".join(error.valid_methods)
        return response, status
    return jsonify({"status": "error", "message": error.name}), error.code


def _handle_unexpected_error(error: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return _error_response(QRGenError())


def create_app(settings: Optional[Settings] = None, session_factory: Optional[sessionmaker] = None) -> Flask:
    """
    Build the Flask application.
    Everything a request needs is reachable from `app.extensions["qrgen"]`;
    pass `session_factory` to run against an existing database without
    creating an engine from `settings.database_url`.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if session_factory is None:
        engine = create_db_engine(settings)
        init_db(engine)
        session_factory = create_session_factory(engine)
        with session_scope(session_factory) as session:
            ensure_default_plans(session)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions["qrgen"] = {"settings": settings, "sessions": session_factory}

    app.register_blueprint(api)
    app.register_error_handler(QRGenError, _handle_qrgen_error)
    app.register_error_handler(HTTPException, _handle_http_exception)
    app.register_error_handler(Exception, _handle_unexpected_error)

    @app.after_request
    def _add_cors_origin(response):
        response.headers.setdefault("Access-Control-Allow-Origin", settings.cors_allow_origin)
        return response

    return app
