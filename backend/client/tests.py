"""
Test suite for the API client
Tests: bearer header, refresh-and-retry on 401, problem details parsing, token stores
"""
import json
import os
import tempfile
from unittest import mock

import requests
from django.test import SimpleTestCase

from backend.client import ApiClient, ApiError, AuthenticationError, TokenStore, FileTokenStore


def make_response(status_code, body=None, text=None, content_type='application/json', headers=None):
    response = requests.Response()
    response.status_code = status_code
    response.reason = {200: 'OK', 204: 'No Content', 401: 'Unauthorized',
                       404: 'Not Found', 500: 'Internal Server Error'}.get(status_code, '')
    if body is not None:
        response._content = json.dumps(body).encode()
        response.headers['Content-Type'] = content_type
    else:
        response._content = (text or '').encode()
    response.headers.update(headers or {})
    return response


class ApiClientTests(SimpleTestCase):
    """Test request plumbing against a mocked session"""

    def setUp(self):
        self.session = mock.Mock(spec=requests.Session)
        self.session.headers = {}
        self.tokens = TokenStore(access='old-access', refresh='old-refresh')
        self.client = ApiClient('http://testserver/api', token_store=self.tokens, session=self.session)

    def test_url_joining(self):
        self.assertEqual(self.client.url('products/'), 'http://testserver/api/products/')
        self.assertEqual(self.client.url('/products/'), 'http://testserver/api/products/')
        self.assertEqual(self.client.url('http://other/x'), 'http://other/x')

    def test_bearer_header_attached(self):
        self.session.request.return_value = make_response(200, [{'id': 1}])
        data = self.client.get('products/')
        self.assertEqual(data, [{'id': 1}])
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer old-access')

    def test_no_header_without_token(self):
        self.tokens.clear()
        self.session.request.return_value = make_response(200, {'status': 'Healthy'})
        self.client.get('health/')
        _, kwargs = self.session.request.call_args
        self.assertNotIn('Authorization', kwargs['headers'])

    def test_refresh_and_retry_once_on_401(self):
        self.session.request.side_effect = [
            make_response(401, {'title': 'Unauthorized', 'status': 401}),
            make_response(200, {'id': 5}),
        ]
        self.session.post.return_value = make_response(200, {'access': 'new-access', 'refresh': 'new-refresh'})

        data = self.client.get('products/5/')

        self.assertEqual(data, {'id': 5})
        self.assertEqual(self.session.request.call_count, 2)
        self.session.post.assert_called_once()
        self.assertEqual(self.session.post.call_args[1]['json'], {'refresh': 'old-refresh'})
        self.assertEqual(self.tokens.access, 'new-access')
        self.assertEqual(self.tokens.refresh, 'new-refresh')
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer new-access')

    def test_failed_refresh_clears_tokens(self):
        self.session.request.return_value = make_response(401, {'title': 'Unauthorized', 'status': 401})
        self.session.post.return_value = make_response(401, {'title': 'Unauthorized', 'error_code': 'INVALID_TOKEN'})

        with self.assertRaises(AuthenticationError):
            self.client.get('products/')

        self.assertIsNone(self.tokens.access)
        self.assertIsNone(self.tokens.refresh)
        self.assertEqual(self.session.request.call_count, 1)

    def test_second_401_is_not_retried_again(self):
        self.session.request.return_value = make_response(401, {'title': 'Unauthorized', 'status': 401})
        self.session.post.return_value = make_response(200, {'access': 'a2', 'refresh': 'r2'})

        with self.assertRaises(AuthenticationError):
            self.client.get('products/')

        self.assertEqual(self.session.request.call_count, 2)
        self.assertEqual(self.session.post.call_count, 1)
        self.assertFalse(self.tokens.is_authenticated)

    def test_problem_details_raise_api_error(self):
        self.session.request.return_value = make_response(400, {
            'type': 'https://tools.ietf.org/html/rfc7231#section-6.5.1',
            'title': 'One or more validation errors occurred.',
            'status': 400,
            'detail': 'Validation failed.',
            'error_code': 'VALIDATION_ERROR',
            'correlation_id': 'abc123',
            'errors': {'sku': ['This field is required.']},
        }, content_type='application/problem+json')

        with self.assertRaises(ApiError) as ctx:
            self.client.post('products/', json={'name': 'Widget'})

        error = ctx.exception
        self.assertEqual(error.status_code, 400)
        self.assertEqual(error.error_code, 'VALIDATION_ERROR')
        self.assertEqual(error.correlation_id, 'abc123')
        self.assertEqual(error.errors['sku'], ['This field is required.'])
        self.assertEqual(str(error), 'Validation failed.')

    def test_plain_text_error_body(self):
        self.session.request.return_value = make_response(500, text='Bad gateway upstream',
                                                          headers={'X-Correlation-ID': 'c1'})
        with self.assertRaises(ApiError) as ctx:
            self.client.get('products/')
        self.assertEqual(ctx.exception.detail, 'Bad gateway upstream')
        self.assertEqual(ctx.exception.correlation_id, 'c1')
        self.assertIsNone(ctx.exception.error_code)

    def test_no_content_returns_none(self):
        self.session.request.return_value = make_response(204)
        self.assertIsNone(self.client.delete('products/1/'))

    def test_login_stores_tokens(self):
        self.tokens.clear()
        self.session.post.return_value = make_response(200, {
            'access': 'a', 'refresh': 'r', 'user': {'email': 'jane@test.com'},
        })
        data = self.client.login('jane@test.com', 'secret1')
        self.assertEqual(data['user']['email'], 'jane@test.com')
        self.assertEqual(self.tokens.access, 'a')
        self.assertEqual(self.tokens.refresh, 'r')

    def test_login_bad_credentials(self):
        self.tokens.clear()
        self.session.post.return_value = make_response(401, {
            'title': 'Unauthorized', 'detail': 'Invalid email or password.', 'error_code': 'INVALID_CREDENTIALS',
        })
        with self.assertRaises(AuthenticationError) as ctx:
            self.client.login('jane@test.com', 'wrong')
        self.assertEqual(ctx.exception.error_code, 'INVALID_CREDENTIALS')
        self.assertFalse(self.tokens.is_authenticated)

    def test_logout_revokes_and_clears(self):
        self.session.request.return_value = make_response(200, {'message': 'Logged out successfully'})
        self.client.logout()
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs['json'], {'refresh': 'old-refresh'})
        self.assertFalse(self.tokens.is_authenticated)


class FileTokenStoreTests(SimpleTestCase):

    def test_persists_between_instances(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'tokens.json')
            store = FileTokenStore(path)
            store.save('a', 'r')

            reloaded = FileTokenStore(path)
            self.assertEqual(reloaded.access, 'a')
            self.assertEqual(reloaded.refresh, 'r')

            reloaded.clear()
            self.assertFalse(os.path.exists(path))
            self.assertFalse(FileTokenStore(path).is_authenticated)

    def test_refresh_kept_when_only_access_rotates(self):
        store = TokenStore(access='a', refresh='r')
        store.save('a2')
        self.assertEqual(store.refresh, 'r')
