from .request_logging import log_requests

__all__ = [
    "log_requests",
]
