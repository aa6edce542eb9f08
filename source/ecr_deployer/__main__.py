# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from ecr_deployer.cli import run

if __name__ == "__main__":
    run()
