# Core package for configuration, logging, errors and security

from .config import settings
from .logging import setup_logging, get_logger
from .exceptions import setup_exception_handlers, APIException
from .middleware import setup_middleware
