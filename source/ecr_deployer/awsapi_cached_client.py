# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Caches boto3 clients for the lifetime of a deployment run.

One client is created per service and region and reused by every step, all
sharing the same retry configuration.
"""
from typing import TYPE_CHECKING, Any, Optional

import boto3
from botocore.config import Config

if TYPE_CHECKING:
    from mypy_boto3_ecr.client import ECRClient
    from mypy_boto3_sts.client import STSClient
else:
    ECRClient = object
    STSClient = object

BOTO_CONFIG = Config(retries={"mode": "standard", "max_attempts": 10})


class AWSCachedClient:
    def __init__(self, region: str, session: Optional[boto3.session.Session] = None):
        self.region = region
        self.session = session or boto3.session.Session()
        self._clients: dict[tuple[str, str], Any] = {}

    def get_connection(self, service: str, region: Optional[str] = None) -> Any:
        """Returns the cached client for a service, creating it on first use."""
        client_region = region or self.region
        key = (service, client_region)
        if key not in self._clients:
            self._clients[key] = self.session.client(
                service, region_name=client_region, config=BOTO_CONFIG
            )
        return self._clients[key]

    def ecr(self, region: Optional[str] = None) -> "ECRClient":
        return self.get_connection("ecr", region)

    def sts(self, region: Optional[str] = None) -> "STSClient":
        return self.get_connection("sts", region)

    def available_services(self) -> list[str]:
        return self.session.get_available_services()
