from .api import ApiClient
from .exceptions import ApiError, AuthenticationError
from .tokens import TokenStore, FileTokenStore

__all__ = ['ApiClient', 'ApiError', 'AuthenticationError', 'TokenStore', 'FileTokenStore']
