import logging
import re
import traceback
from aiohttp import web
from pydantic_core import to_jsonable_python
from ..config import Config
from ..errors import (
    AuthenticationError, AuthorizationError, RateLimitError,
    ServiceError, UpstreamServiceError
)
from ..utils.security import get_client_ip

logger = logging.getLogger(__name__)

ADMIN_PREFIX = "/api/admin/"
# database uuids and phone-auth uids
USER_ID_PATTERN = re.compile(
    r"^([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}|[a-zA-Z0-9]{20,28})$",
    re.IGNORECASE
)

def _error_body(error: ServiceError) -> dict:
    body = {"error": error.message}
    if error.details is not None and not Config.is_production():
        body["details"] = error.details
    if isinstance(error, UpstreamServiceError) and error.retryable:
        body["retryable"] = True
    return to_jsonable_python(body)

@web.middleware
async def error_middleware(request: web.Request, handler):
    """Render service errors and unexpected exceptions as JSON"""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except RateLimitError as e:
        return web.json_response(
            _error_body(e), status=e.status,
            headers={"Retry-After": str(e.retry_after)}
        )
    except ServiceError as e:
        if e.status >= 500:
            logger.error(f"{request.method} {request.path} failed: {e.message}")
        return web.json_response(_error_body(e), status=e.status)
    except Exception as e:
        logger.error(f"Unhandled error in {request.method} {request.path}: {e}", exc_info=True)
        body = {"error": "Internal server error"}
        if not Config.is_production():
            body["details"] = str(e)
            body["stack"] = traceback.format_exc()
        return web.json_response(body, status=500)

def admin_middleware(storefront):
    """Rate limit and authorise every /api/admin/ request.

    The admin's id is stored on the request as request['admin_id'].
    """

    @web.middleware
    async def middleware(request: web.Request, handler):
        if not request.path.startswith(ADMIN_PREFIX):
            return await handler(request)

        limiter = storefront.rate_limiter
        result = limiter.hit(get_client_ip(request) or "unknown")
        if not result.allowed:
            raise RateLimitError(
                "Too many requests. Please try again later.",
                retry_after=limiter.window_seconds
            )

        user_id = request.headers.get('X-User-Id')
        if not user_id:
            raise AuthenticationError("Unauthorized - No valid session found")
        if not USER_ID_PATTERN.match(user_id):
            raise AuthorizationError(_forbidden("Invalid user ID format"))
        if not await storefront.admin_handler.is_admin(user_id):
            raise AuthorizationError(_forbidden("User is not an admin"))

        request['admin_id'] = user_id
        return await handler(request)

    return middleware

def _forbidden(reason: str) -> str:
    if Config.is_production():
        return "Forbidden: Admin access required"
    return f"Forbidden: {reason}"
