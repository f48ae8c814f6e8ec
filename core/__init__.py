# Core package for configuration, logging and error handling

from .config import settings
from .logging import setup_logging, get_logger
from .exceptions import (
    setup_exception_handlers, APIException, ResourceNotFoundException,
    OwnerMismatchException, ConcurrencyConflictException, StorageFailureException,
    DiffTooLargeException
)
from .middleware import setup_middleware
