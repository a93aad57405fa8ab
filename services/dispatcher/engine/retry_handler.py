"""Retry handler deciding whether a failed action execution is retried."""

import json
import logging
from typing import Optional, Tuple
from shared.exceptions import TaskError
from shared.constants import (
    MAX_ACTION_RETRY_ATTEMPTS,
    INITIAL_RETRY_DELAY_SECONDS,
    MAX_RETRY_DELAY_SECONDS,
    REDIS_KEY_TTL_SECONDS,
)


class RetryHandler:
    """Decides when to retry failed actions and calculates backoff delays"""

    def __init__(self, redis_client):
        self.redis = redis_client

    def should_retry(self, task_id: str, error: str) -> Tuple[bool, Optional[float]]:
        task_error = self.parse_task_error(error)
        if not task_error or not task_error.is_retryable:
            logging.info(
                "Action error is not retryable",
                extra={"task_id": task_id, "structured": task_error is not None}
            )
            return False, None

        retry_count = self._get_retry_count(task_id)
        if retry_count >= MAX_ACTION_RETRY_ATTEMPTS:
            logging.warning(
                "Maximum retry attempts reached",
                extra={
                    "task_id": task_id,
                    "retry_count": retry_count,
                    "max_attempts": MAX_ACTION_RETRY_ATTEMPTS
                }
            )
            return False, None

        self._increment_retry_count(task_id)
        delay = self._calculate_backoff_delay(retry_count, task_error)

        logging.info(
            "Action will be retried",
            extra={
                "task_id": task_id,
                "retry_attempt": retry_count + 1,
                "delay_seconds": delay
            }
        )
        return True, delay

    @staticmethod
    def parse_task_error(error: str) -> Optional[TaskError]:
        try:
            error_dict = json.loads(error)
            if isinstance(error_dict, dict) and "error_type" in error_dict:
                return TaskError(**error_dict)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logging.debug(f"Failed to parse error as TaskError: {e}")
        return None

    def _retry_key(self, task_id: str) -> str:
        return f"retry:{task_id}"

    def _get_retry_count(self, task_id: str) -> int:
        retry_count = self.redis.get(self._retry_key(task_id))
        return int(retry_count) if retry_count else 0

    def _increment_retry_count(self, task_id: str) -> None:
        key = self._retry_key(task_id)
        self.redis.incr(key)
        self.redis.expire(key, REDIS_KEY_TTL_SECONDS)

    def _calculate_backoff_delay(self, retry_count: int, task_error: TaskError) -> float:
        """Exponential backoff with Retry-After header support"""
        if task_error.retry_after_seconds:
            return min(task_error.retry_after_seconds, MAX_RETRY_DELAY_SECONDS)
        return min(
            INITIAL_RETRY_DELAY_SECONDS * (2 ** retry_count),
            MAX_RETRY_DELAY_SECONDS
        )
