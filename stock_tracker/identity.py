import logging
import uuid
from abc import ABC, abstractmethod

from . import settings
from .errors import IdentityError

logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    """Supplies the opaque per-session user id that namespaces every store path."""

    @abstractmethod
    def sign_in(self) -> str:
        """Returns a user id, or raises IdentityError."""
        pass


class StaticIdentity(IdentityProvider):
    def __init__(self, user_id: str):
        self.user_id = user_id

    def sign_in(self) -> str:
        if not self.user_id:
            raise IdentityError("No user id configured.")
        return self.user_id


class EnvIdentity(StaticIdentity):
    """Reads the user id from the USER_ID environment setting."""

    def __init__(self):
        super().__init__(settings.USER_ID or "")


def resolve_user_id(provider: IdentityProvider) -> str:
    """
    Establishes the session user id. If identity cannot be established the
    app continues in local-only mode under a random id.
    """
    try:
        return provider.sign_in()
    except IdentityError as e:
        fallback = str(uuid.uuid4())
        logger.warning(f"⚠️ Identity unavailable ({e}). Using local id {fallback}.")
        return fallback
