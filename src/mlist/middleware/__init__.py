"""HTTP middleware."""

from mlist.middleware.logging import RequestLoggingMiddleware
from mlist.middleware.security import SecurityHeadersMiddleware
