# storefront/errors.py
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from .utils.api import api_error

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    status_code = 400

    def __init__(self, message, data=None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(StorefrontError):
    """Malformed input, rejected before anything is written."""
    status_code = 400


class NotFoundError(StorefrontError):
    status_code = 404


def register_error_handlers(app):
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(e):
        r = jsonify(api_error(e.message, e.data))
        r.status_code = e.status_code
        return r

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        r = jsonify(api_error(e.description or e.name))
        r.status_code = e.code or 500
        return r

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        # full detail stays in the server log
        logger.exception("Unhandled error: %s", e)
        r = jsonify(api_error("Internal server error"))
        r.status_code = 500
        return r
