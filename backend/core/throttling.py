from rest_framework.throttling import AnonRateThrottle


class AuthRateThrottle(AnonRateThrottle):
    """Stricter per-IP limit for login, register and token refresh"""
    scope = 'auth'

    def get_cache_key(self, request, view):
        # Applies to authenticated callers too, keyed by client address
        return self.cache_format % {
            'scope': self.scope,
            'ident': self.get_ident(request),
        }
