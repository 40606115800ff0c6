import uuid
from contextvars import ContextVar

# Context variable storing request_id for the current request
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]
