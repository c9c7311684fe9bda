"""
Request pipeline middleware: correlation IDs, request/response and
performance logging, security headers, and problem details for errors
raised outside DRF views.
"""
import logging
import time
import uuid

from django.conf import settings
from django.http import JsonResponse

from .exceptions import PROBLEM_CONTENT_TYPE, build_problem
from .logging import set_correlation_id

logger = logging.getLogger('backend.core.middleware')

CORRELATION_HEADER = 'X-Correlation-ID'
RESPONSE_TIME_HEADER = 'X-Response-Time-ms'

# Paths whose request bodies carry credentials
SENSITIVE_PATH_PREFIXES = (
    '/api/auth/',
    '/api/user-profile/change-password/',
)


class CorrelationIdMiddleware:
    """Tags each request with a correlation ID and echoes it back"""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex[:16]
        request.correlation_id = correlation_id
        # Stays bound until request_finished so django.request error lines carry it
        set_correlation_id(correlation_id)
        logger.debug('Request started: %s %s', request.method, request.path)
        response = self.get_response(request)
        response[CORRELATION_HEADER] = correlation_id
        logger.debug('Request completed: %s %s -> %s', request.method, request.path, response.status_code)
        return response


class PerformanceLoggingMiddleware:
    """Measures wall time per request and flags slow ones"""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.perf_counter()
        response = self.get_response(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response[RESPONSE_TIME_HEADER] = f'{elapsed_ms:.0f}'

        threshold = getattr(settings, 'SLOW_REQUEST_MS', 1000)
        if elapsed_ms > threshold:
            logger.warning(
                'Slow request: %s %s took %.0f ms (threshold %s ms)',
                request.method, request.path, elapsed_ms, threshold,
            )
        return response


class RequestResponseLoggingMiddleware:
    """Logs one line per request; bodies only at DEBUG and never for auth routes"""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if logger.isEnabledFor(logging.DEBUG) and request.method in ('POST', 'PUT', 'PATCH'):
            if request.path.startswith(SENSITIVE_PATH_PREFIXES):
                logger.debug('Request body for %s %s: [redacted]', request.method, request.path)
            elif request.content_type == 'application/json':
                logger.debug('Request body for %s %s: %s', request.method, request.path,
                             request.body[:2000].decode('utf-8', errors='replace'))

        response = self.get_response(request)

        size = len(response.content) if not getattr(response, 'streaming', False) else 0
        log = logger.warning if response.status_code >= 500 else logger.info
        log('%s %s %s %s bytes', request.method, request.get_full_path(), response.status_code, size)
        return response


class SecurityHeadersMiddleware:
    """Adds a fixed set of browser security headers to every response"""

    HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'X-XSS-Protection': '1; mode=block',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Permissions-Policy': 'geolocation=(), microphone=(), camera=()',
        'Content-Security-Policy': (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; img-src 'self' data: https:; font-src 'self';"
        ),
        'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
        'Server': 'WebApplication',
    }

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        for header, value in self.HEADERS.items():
            response[header] = value
        return response


class ProblemDetailsMiddleware:
    """Turns exceptions escaping plain Django views under /api/ into 500 problems"""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not request.path.startswith('/api/'):
            return None
        logger.exception('Unhandled exception while processing %s', request.path)
        problem = build_problem(
            500, 'An unexpected error occurred. Please try again later.', request.path,
        )
        return JsonResponse(problem, status=500, content_type=PROBLEM_CONTENT_TYPE)
