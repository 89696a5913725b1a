import functools
import logging

from .exceptions import Unauthorized

logger = logging.getLogger(__name__)


def require_owner(method):
    """
    Reject the call unless `caller` is the sale owner.

    The decorated method takes the caller address as its first positional
    argument and lives on an object exposing an `owner` attribute.
    """
    @functools.wraps(method)
    def wrapper(self, caller, *args, **kwargs):
        if not caller or caller != self.owner:
            logger.warning("Rejected %s from non-owner %s", method.__name__, caller)
            raise Unauthorized()
        return method(self, caller, *args, **kwargs)
    return wrapper
