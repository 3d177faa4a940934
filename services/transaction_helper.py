"""
Transaction Helper Service

Safety wrappers around document store writes:
- Mutation execution with uniform (success, result, error) results
- Bounded retry for reads that race eventual consistency
- Two-step writes with a compensating action on partial failure
"""

from typing import Callable, Any, Optional, Tuple
import logging
import time

from google.api_core import exceptions as google_exceptions
import requests

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Permission denied. Please check your account permissions."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."


def describe_store_error(error: Exception) -> str:
    """Map store/transport exceptions to user-facing messages"""
    if isinstance(error, google_exceptions.PermissionDenied):
        return PERMISSION_DENIED_MESSAGE
    if isinstance(error, (google_exceptions.ServiceUnavailable,
                          google_exceptions.DeadlineExceeded,
                          requests.ConnectionError,
                          requests.Timeout)):
        return NETWORK_ERROR_MESSAGE
    return str(error)


class TransactionHelper:
    """Helper class for running store mutations safely"""

    @staticmethod
    def execute_mutation(operation: Callable, *args, description: str = 'mutation',
                         **kwargs) -> Tuple[bool, Optional[Any], Optional[str]]:
        """
        Execute a store write and capture failures.

        Args:
            operation: Function to execute
            description: Label used in log lines
            *args, **kwargs: Arguments to pass to the operation

        Returns:
            tuple: (success: bool, result: Any, error_message: str)
        """
        try:
            result = operation(*args, **kwargs)
            logger.info(f"Store {description} succeeded")
            return True, result, None
        except Exception as e:
            error_msg = describe_store_error(e)
            logger.error(f"Store {description} failed: {str(e)}")
            return False, None, error_msg

    @staticmethod
    def retry_until_found(lookup: Callable[[], Any], retries: int = 3,
                          delay: float = 1.0, label: str = 'lookup') -> Any:
        """
        Run ``lookup`` once, then up to ``retries`` more times with a fixed delay
        while it returns a falsy value.

        Returns:
            The first truthy result, or the last (falsy) result.
        """
        result = lookup()
        attempt = 0
        while not result and attempt < retries:
            attempt += 1
            logger.warning(f"{label} returned nothing, retry {attempt}/{retries} in {delay}s")
            time.sleep(delay)
            result = lookup()
        return result

    @staticmethod
    def with_compensation(forward: Callable[[], Any], finish: Callable[[], Any],
                          compensate: Callable[[], Any],
                          description: str = 'two-step write') -> Tuple[bool, Optional[str]]:
        """
        Run ``forward`` then ``finish``. If ``finish`` fails, run ``compensate``
        to undo ``forward`` and report the failure.

        Returns:
            tuple: (success: bool, error_message: str)
        """
        try:
            forward()
        except Exception as e:
            logger.error(f"{description}: first step failed: {str(e)}")
            return False, describe_store_error(e)

        try:
            finish()
        except Exception as e:
            logger.error(f"{description}: second step failed, compensating: {str(e)}")
            try:
                compensate()
            except Exception as comp_error:
                logger.error(f"{description}: compensation failed, manual cleanup needed: {str(comp_error)}")
            return False, describe_store_error(e)

        return True, None

