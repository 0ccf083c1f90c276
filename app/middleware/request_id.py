import re
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_VALID_REQUEST_ID = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach an X-Request-ID to request.state and echo it on the response.

    A client-supplied id is kept if well formed; otherwise a new one is generated.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        incoming = request.headers.get("X-Request-ID", "")
        request_id = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
