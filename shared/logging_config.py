"""Centralized logging configuration with correlation and workflow ID support."""

import logging
import os
import sys
from contextvars import ContextVar
from pythonjsonlogger import jsonlogger

correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')
workflow_id_var: ContextVar[str] = ContextVar('workflow_id', default='')


class WorkflowContextFilter(logging.Filter):
    """Adds correlation_id and workflow_id to all log records"""

    def filter(self, record):
        record.correlation_id = correlation_id_var.get('')
        if not getattr(record, "workflow_id", None):
            record.workflow_id = workflow_id_var.get('')
        return True


def setup_logging(service_name: str, level: str = None) -> None:
    """Sets up JSON logging on stdout for one service process"""
    logger = logging.getLogger()
    logger.setLevel(level or os.getenv("LOG_LEVEL", "INFO"))
    logger.handlers = []

    json_handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(correlation_id)s %(workflow_id)s %(message)s',
        rename_fields={
            'asctime': 'timestamp',
            'name': 'logger',
            'levelname': 'level',
        },
        static_fields={'service': service_name},
    )

    json_handler.setFormatter(formatter)
    json_handler.addFilter(WorkflowContextFilter())
    logger.addHandler(json_handler)
    logging.info(f"{service_name} logging configured")


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    return correlation_id_var.get('')


def set_workflow_id(workflow_id: str) -> None:
    workflow_id_var.set(workflow_id)
