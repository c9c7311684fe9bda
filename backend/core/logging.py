"""Correlation ID propagation into log records"""
import contextvars
import logging

from django.core.signals import request_finished
from django.dispatch import receiver

_correlation_id = contextvars.ContextVar('correlation_id', default='-')


def get_correlation_id():
    return _correlation_id.get()


def set_correlation_id(value):
    """Bind the correlation ID for the current request"""
    return _correlation_id.set(value)


@receiver(request_finished)
def clear_correlation_id(sender=None, **kwargs):
    """Unbind once the response is closed, after django.request has logged it"""
    _correlation_id.set('-')


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to every record so formatters can print it"""

    def filter(self, record):
        record.correlation_id = get_correlation_id()
        return True
