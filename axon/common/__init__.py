"""
Common Components for Axon

This package contains infrastructure shared across the content and training
features of the Axon application.

Key components:
1. Logging - Centralized logging configuration
2. Error Handling - Exception hierarchy and error helpers
3. Authentication - Request identity boundary
4. Tasks - Best-effort follow-up task queue
"""

# Initialize logging
from axon.common.logger import app_logger

from axon.common.error_handling import (
    AxonError, ErrorCode, ErrorSeverity, ErrorInfo,
    ValidationError, CatalogLoadError,
    PersistenceError, DuplicateRecordError, InvalidReferenceError,
    DuplicateRecallError, InvalidTransitionError,
    map_integrity_error, convert_exception, retry, log_error
)

from axon.common.tasks import FollowUpTaskQueue, TaskFailure
