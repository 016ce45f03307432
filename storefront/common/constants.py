import contextvars
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"

# Context variable for the request id of the request being served
request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)
