"""Errors raised by the API client"""
from typing import Dict, List, Optional


class ApiError(Exception):
    """Non-2xx response, carrying the problem details the server sent"""

    def __init__(self, status_code: int, title: str = '', detail: str = '',
                 error_code: Optional[str] = None, correlation_id: Optional[str] = None,
                 errors: Optional[Dict[str, List[str]]] = None, body=None):
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.error_code = error_code
        self.correlation_id = correlation_id
        self.errors = errors or {}
        self.body = body
        super().__init__(detail or title or f'HTTP {status_code}')

    @classmethod
    def from_response(cls, response):
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            text = response.text or response.reason or ''
            return cls(response.status_code, title=response.reason or '', detail=text,
                       correlation_id=response.headers.get('X-Correlation-ID'), body=text)

        return cls(
            response.status_code,
            title=body.get('title', ''),
            detail=body.get('detail') or body.get('message') or '',
            error_code=body.get('error_code'),
            correlation_id=body.get('correlation_id') or response.headers.get('X-Correlation-ID'),
            errors=body.get('errors'),
            body=body,
        )


class AuthenticationError(ApiError):
    """The session could not be (re)authenticated; stored tokens were cleared"""
