"""Token storage for the API client"""
import json
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class TokenStore:
    """Keeps the access/refresh pair in memory"""

    def __init__(self, access: Optional[str] = None, refresh: Optional[str] = None):
        self.access = access
        self.refresh = refresh

    def save(self, access: Optional[str], refresh: Optional[str] = None):
        self.access = access
        if refresh:
            self.refresh = refresh

    def clear(self):
        self.access = None
        self.refresh = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access)


class FileTokenStore(TokenStore):
    """Token store persisted to a JSON file between runs"""

    def __init__(self, path: str):
        self.path = path
        super().__init__()
        self._load()

    def _load(self):
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read token file {self.path}: {str(e)}")
            return
        self.access = data.get('access')
        self.refresh = data.get('refresh')

    def _write(self):
        with open(self.path, 'w') as f:
            json.dump({'access': self.access, 'refresh': self.refresh}, f)

    def save(self, access, refresh=None):
        super().save(access, refresh)
        self._write()

    def clear(self):
        super().clear()
        if os.path.exists(self.path):
            os.remove(self.path)
