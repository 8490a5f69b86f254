import logging
from werkzeug.exceptions import HTTPException

from flask_restx import Api
from covapi import settings

log = logging.getLogger(__name__)

api = Api(version='0.1',
          title='Coverage API',
          description='API for recording per-commit coverage builds and rolling them up per project.',
          )


def _http_error_body(error):
    return {
        "message": error.description or error.name,
        "code": error.code
    }


# Validation (400), missing rows (404) and build conflicts (409) all land here
@api.errorhandler(HTTPException)
def handle_http_exception(error):
    """Return JSON instead of HTML for HTTP errors."""
    log.error(f"HTTP {error.code} {error.name}: {error.description}", exc_info=settings.FLASK_DEBUG)
    response_data = _http_error_body(error)
    if settings.FLASK_DEBUG and hasattr(error, 'data'):
        response_data['details'] = error.data.get('errors') if isinstance(error.data, dict) else str(error.data)

    return response_data, error.code


@api.errorhandler(Exception)
def default_error_handler(e):
    if isinstance(e, HTTPException):
        log.error(f"HTTP {e.code} {e.name}: {e.description}", exc_info=settings.FLASK_DEBUG)
        return _http_error_body(e), e.code

    log.exception("Unexpected error while handling request")
    if settings.FLASK_DEBUG:
        return {'message': str(e), 'type': type(e).__name__, "code": 500}, 500

    return {'message': 'An internal server error occurred. Please try again later.', "code": 500}, 500
