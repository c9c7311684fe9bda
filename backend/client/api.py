"""
HTTP client for the product management API

Attaches the bearer token to every call, refreshes it once when the server
answers 401 and turns error responses into ApiError.
"""
import logging
from typing import Dict, Optional

import requests

from .exceptions import ApiError, AuthenticationError
from .tokens import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

LOGIN_PATH = 'auth/login/'
REFRESH_PATH = 'auth/refresh/'
LOGOUT_PATH = 'auth/logout/'


class ApiClient:
    """Thin wrapper over requests.Session for the /api/ endpoints"""

    def __init__(self, base_url: str, token_store: Optional[TokenStore] = None,
                 timeout: int = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/') + '/'
        self.tokens = token_store if token_store is not None else TokenStore()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})

    def url(self, path: str) -> str:
        if path.startswith(('http://', 'https://')):
            return path
        return self.base_url + path.lstrip('/')

    # Authentication

    def login(self, email: str, password: str) -> Dict:
        response = self.session.post(
            self.url(LOGIN_PATH),
            json={'email': email, 'password': password},
            timeout=self.timeout,
        )
        if response.status_code == 401:
            raise AuthenticationError.from_response(response)
        data = self._handle(response)
        self.tokens.save(data.get('access'), data.get('refresh'))
        logger.info('Logged in as %s', email)
        return data

    def logout(self, all_sessions: bool = False):
        """Revoke the refresh token server side; local tokens are always dropped"""
        payload = {'all': True} if all_sessions else {'refresh': self.tokens.refresh}
        try:
            if self.tokens.is_authenticated:
                self.request('POST', LOGOUT_PATH, json=payload, retry_on_401=False)
        finally:
            self.tokens.clear()

    def refresh(self) -> bool:
        """Exchange the refresh token for a new pair; clears tokens on failure"""
        if not self.tokens.refresh:
            self.tokens.clear()
            return False
        try:
            response = self.session.post(
                self.url(REFRESH_PATH),
                json={'refresh': self.tokens.refresh},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Token refresh failed: {str(e)}")
            self.tokens.clear()
            return False

        if not response.ok:
            logger.info('Token refresh rejected with %s', response.status_code)
            self.tokens.clear()
            return False

        data = response.json()
        self.tokens.save(data.get('access'), data.get('refresh'))
        return True

    # Requests

    def _headers(self, extra=None):
        headers = dict(extra or {})
        if self.tokens.access:
            headers['Authorization'] = f'Bearer {self.tokens.access}'
        return headers

    def _handle(self, response):
        if not response.ok:
            raise ApiError.from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def request(self, method: str, path: str, retry_on_401: bool = True, headers=None, **kwargs):
        kwargs.setdefault('timeout', self.timeout)
        url = self.url(path)
        response = self.session.request(method, url, headers=self._headers(headers), **kwargs)

        if response.status_code == 401 and retry_on_401:
            if not self.refresh():
                raise AuthenticationError.from_response(response)
            response = self.session.request(method, url, headers=self._headers(headers), **kwargs)
            if response.status_code == 401:
                self.tokens.clear()
                raise AuthenticationError.from_response(response)

        return self._handle(response)

    def get(self, path, params=None, **kwargs):
        return self.request('GET', path, params=params, **kwargs)

    def post(self, path, json=None, **kwargs):
        return self.request('POST', path, json=json, **kwargs)

    def put(self, path, json=None, **kwargs):
        return self.request('PUT', path, json=json, **kwargs)

    def patch(self, path, json=None, **kwargs):
        return self.request('PATCH', path, json=json, **kwargs)

    def delete(self, path, **kwargs):
        return self.request('DELETE', path, **kwargs)
