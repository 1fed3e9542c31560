"""
Middleware package for the course access service.

Cross-cutting concerns for the FastAPI application: request ids, request logging, and e-mail
redaction in logs.
"""

from .request_context import RequestContextMiddleware, create_request_context_config, redact_emails

__all__ = [
    'RequestContextMiddleware',
    'create_request_context_config',
    'redact_emails',
]
