import logging
import uuid

from fastapi import Request

logger = logging.getLogger(__name__)


def log_api_error(request: Request, error: Exception) -> str:
    """
    Log an unexpected API error with its request context and return a short error id
    that can be used to correlate the client response with the server log
    """
    error_id = str(uuid.uuid4())[:8]
    logger.error(
        "API Error [%s] - %s %s: %s: %s (params=%s, query=%s)",
        error_id,
        request.method,
        request.url.path,
        type(error).__name__,
        error,
        dict(request.path_params),
        dict(request.query_params),
        exc_info=error,
    )
    return error_id
