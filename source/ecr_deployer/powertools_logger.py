# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import os
import sys
from typing import Optional

from aws_lambda_powertools import Logger

SERVICE_PREFIX = "ecr-deploy"

_loggers: dict[str, Logger] = {}


def get_logger(service_name: str, log_level: Optional[str] = None) -> Logger:
    """
    Returns a Powertools logger writing JSON records to stderr.
    stdout is reserved for operator output.
    """
    if service_name in _loggers:
        return _loggers[service_name]

    level = log_level or os.getenv("LOG_LEVEL", "WARNING")
    logger = Logger(
        service=f"{SERVICE_PREFIX}.{service_name}",
        level=level.upper(),
        stream=sys.stderr,
    )
    _loggers[service_name] = logger
    return logger


def set_log_level(log_level: str) -> None:
    """Changes the level of every logger handed out so far."""
    for logger in _loggers.values():
        logger.setLevel(log_level.upper())
