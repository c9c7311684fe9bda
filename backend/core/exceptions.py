"""
Business exceptions and the RFC 7807 problem details exception handler.

Views raise the exceptions below (or let DRF raise its own); the handler
registered as REST_FRAMEWORK['EXCEPTION_HANDLER'] turns every one of them
into an ``application/problem+json`` response.
"""
import logging
import math

from django.core.exceptions import ObjectDoesNotExist
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .logging import get_correlation_id

logger = logging.getLogger('backend.core')

PROBLEM_CONTENT_TYPE = 'application/problem+json'

# status -> (type URI, title)
PROBLEM_TYPES = {
    400: ('https://tools.ietf.org/html/rfc7231#section-6.5.1', 'Bad Request'),
    401: ('https://tools.ietf.org/html/rfc7235#section-3.1', 'Authentication required'),
    403: ('https://tools.ietf.org/html/rfc7231#section-6.5.3', 'Forbidden'),
    404: ('https://tools.ietf.org/html/rfc7231#section-6.5.4', 'Resource not found'),
    405: ('https://tools.ietf.org/html/rfc7231#section-6.5.5', 'Method Not Allowed'),
    409: ('https://tools.ietf.org/html/rfc7231#section-6.5.8', 'Conflict'),
    415: ('https://tools.ietf.org/html/rfc7231#section-6.5.13', 'Unsupported Media Type'),
    429: ('https://tools.ietf.org/html/rfc6585#section-4', 'Too Many Requests'),
    500: ('https://tools.ietf.org/html/rfc7231#section-6.6.1', 'Internal Server Error'),
    503: ('https://tools.ietf.org/html/rfc7231#section-6.6.4', 'Service Unavailable'),
}
VALIDATION_TITLE = 'One or more validation errors occurred.'
BUSINESS_RULE_TYPE = 'https://api.productmanagement.com/errors/business-rule-violation'
BUSINESS_RULE_TITLE = 'Business rule violation'

DEFAULT_ERROR_CODES = {
    400: 'BAD_REQUEST',
    401: 'UNAUTHORIZED',
    403: 'FORBIDDEN',
    404: 'RESOURCE_NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
    409: 'CONFLICT',
    415: 'UNSUPPORTED_MEDIA_TYPE',
    429: 'RATE_LIMIT_EXCEEDED',
    500: 'INTERNAL_ERROR',
    503: 'SERVICE_UNAVAILABLE',
}


class BusinessException(Exception):
    """Base class for errors the API reports to clients as-is"""
    default_error_code = 'BUSINESS_ERROR'
    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, error_code=None, status_code=None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.status_code = status_code or self.default_status_code


class NotFoundException(BusinessException):
    default_error_code = 'RESOURCE_NOT_FOUND'
    default_status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource, resource_id):
        super().__init__(f"{resource} with ID '{resource_id}' was not found.")
        self.resource = resource
        self.resource_id = resource_id


class UnauthorizedException(BusinessException):
    default_error_code = 'UNAUTHORIZED'
    default_status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(BusinessException):
    default_error_code = 'FORBIDDEN'
    default_status_code = status.HTTP_403_FORBIDDEN


class ConflictException(BusinessException):
    default_error_code = 'CONFLICT'
    default_status_code = status.HTTP_409_CONFLICT


class ValidationFailedException(BusinessException):
    default_error_code = 'VALIDATION_ERROR'

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or {}


def build_problem(status_code, detail, instance=None, error_code=None, errors=None,
                  problem_type=None, title=None):
    """Assemble a problem details dict with the API's extension members"""
    default_type, default_title = PROBLEM_TYPES.get(
        status_code, ('about:blank', 'Error')
    )
    problem = {
        'type': problem_type or default_type,
        'title': title or default_title,
        'status': status_code,
        'detail': detail,
        'instance': instance,
        'error_code': error_code or DEFAULT_ERROR_CODES.get(status_code, 'ERROR'),
        'correlation_id': get_correlation_id(),
    }
    if errors:
        problem['errors'] = errors
    return problem


def problem_response(status_code, detail, instance=None, **kwargs):
    return Response(
        build_problem(status_code, detail, instance=instance, **kwargs),
        status=status_code,
        content_type=PROBLEM_CONTENT_TYPE,
    )


def _flatten_errors(data):
    """Normalise DRF error structures to {field: [messages]}"""
    if isinstance(data, dict):
        return {
            field: [str(message) for message in (messages if isinstance(messages, list) else [messages])]
            for field, messages in data.items()
        }
    if isinstance(data, list):
        return {'non_field_errors': [str(message) for message in data]}
    return {'non_field_errors': [str(data)]}


def _detail_text(data):
    if isinstance(data, dict) and 'detail' in data:
        return str(data['detail'])
    if isinstance(data, (list, tuple)) and data:
        return str(data[0])
    return str(data)


def problem_details_handler(exc, context):
    """DRF exception handler producing RFC 7807 bodies"""
    request = context.get('request')
    instance = request.path if request is not None else None

    if isinstance(exc, BusinessException):
        if isinstance(exc, ValidationFailedException):
            return problem_response(
                exc.status_code, exc.message, instance,
                error_code=exc.error_code, errors=exc.errors, title=VALIDATION_TITLE,
            )
        if isinstance(exc, NotFoundException):
            logger.warning(exc.message)
            return problem_response(exc.status_code, exc.message, instance, error_code=exc.error_code)
        if exc.status_code == status.HTTP_400_BAD_REQUEST:
            return problem_response(
                exc.status_code, exc.message, instance, error_code=exc.error_code,
                problem_type=BUSINESS_RULE_TYPE, title=BUSINESS_RULE_TITLE,
            )
        return problem_response(exc.status_code, exc.message, instance, error_code=exc.error_code)

    if isinstance(exc, ObjectDoesNotExist):
        exc = exceptions.NotFound(str(exc) or 'Resource not found.')

    response = exception_handler(exc, context)

    if response is None:
        logger.exception('Unhandled exception while processing %s', instance)
        return problem_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            'An unexpected error occurred. Please try again later.',
            instance,
        )

    status_code = response.status_code
    if isinstance(exc, exceptions.ValidationError):
        problem = build_problem(
            status_code, 'Validation failed for one or more fields.', instance,
            error_code='VALIDATION_ERROR', errors=_flatten_errors(response.data),
            title=VALIDATION_TITLE,
        )
    else:
        problem = build_problem(status_code, _detail_text(response.data), instance)

    if isinstance(exc, exceptions.Throttled):
        problem['retry_after'] = math.ceil(exc.wait) if exc.wait is not None else None
        problem['error_code'] = 'RATE_LIMIT_EXCEEDED'

    response.data = problem
    response.content_type = PROBLEM_CONTENT_TYPE
    return response
