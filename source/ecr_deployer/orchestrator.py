# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Runs one deployment: preflight, credentials, region, confirmation, then the
mutating steps in order.

Each step receives the current DeploymentState and returns a new one. The
first failing step raises a DeploymentError and nothing after it runs.
Nothing is rolled back: a repository created before a failed pull stays.
"""
import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import docker
from ecr_deployer import console as ui
from ecr_deployer import container_engine, lifecycle_policy, preflight, registry
from ecr_deployer.awsapi_cached_client import AWSCachedClient
from ecr_deployer.config import DeploymentConfig
from ecr_deployer.exceptions import DeploymentError, PolicyApplicationFailed
from ecr_deployer.powertools_logger import get_logger
from ecr_deployer.registry import ImageSummary, RepositoryInfo
from rich.console import Console

logger = get_logger("orchestrator")

STATUS_PENDING = "PENDING"
STATUS_CANCELLED = "CANCELLED"
STATUS_SUCCESS = "SUCCESS"


@dataclass(frozen=True)
class DeploymentState:
    config: DeploymentConfig
    status: str = STATUS_PENDING
    account_id: str = ""
    repository: Optional[RepositoryInfo] = None
    registry_endpoint: str = ""
    source_image: Any = field(default=None, repr=False, compare=False)
    source_digest: str = ""
    tagged: tuple[str, ...] = ()
    pushed_tags: tuple[str, ...] = ()
    policy_text: str = ""
    images: tuple[ImageSummary, ...] = ()
    completed_steps: tuple[str, ...] = ()

    @property
    def repository_uri(self) -> str:
        return self.repository.uri if self.repository else ""

    def advance(self, step: str, **changes: Any) -> "DeploymentState":
        return dataclasses.replace(
            self, completed_steps=self.completed_steps + (step,), **changes
        )


def is_affirmative(answer: Optional[str]) -> bool:
    return (answer or "").strip() in ("y", "Y")


class DeploymentOrchestrator:
    def __init__(
        self,
        config: DeploymentConfig,
        aws: Optional[AWSCachedClient] = None,
        engine: Optional[docker.DockerClient] = None,
        console: Optional[Console] = None,
    ):
        self.aws = aws or AWSCachedClient(config.region)
        self.engine = engine
        self.console = console or ui.make_console()
        # Last state a step completed with, kept for failure reporting
        self.state = DeploymentState(config=config)

    def run(
        self,
        select_region: Callable[[str], str],
        confirm: Callable[[DeploymentState], bool],
    ) -> DeploymentState:
        ui.print_header(self.console, "AWS ECR Image Deployment")

        self._execute("preflight", self.check_tools)
        self._execute("credentials", self.check_credentials)
        self._execute(
            "region",
            lambda state: self.select_region(
                state, select_region(state.config.region)
            ),
        )

        if not confirm(self.state):
            ui.render_cancelled(self.console)
            logger.info("Deployment cancelled by operator")
            self.state = dataclasses.replace(self.state, status=STATUS_CANCELLED)
            return self.state

        self._execute("repository", self.ensure_repository)
        self._execute("authenticate", self.authenticate)
        self._execute("pull", self.acquire_image)
        self._execute("tag", self.retag_image)
        self._execute("push", self.push_image)
        self._execute("lifecycle", self.apply_lifecycle_policy)
        self._execute("verify", self.verify)

        self.state = dataclasses.replace(self.state, status=STATUS_SUCCESS)
        ui.render_summary(self.console, self.state)
        return self.state

    def _execute(
        self, step: str, action: Callable[[DeploymentState], DeploymentState]
    ) -> None:
        try:
            self.state = action(self.state)
        except DeploymentError as e:
            e.step = e.step or step
            logger.error(
                "Deployment step failed",
                extra={
                    "step": e.step,
                    "errorType": type(e).__name__,
                    "error": e.message,
                    "completedSteps": list(self.state.completed_steps),
                },
            )
            raise

    def _ecr(self, state: DeploymentState) -> Any:
        return self.aws.ecr(state.config.region)

    def check_tools(self, state: DeploymentState) -> DeploymentState:
        ui.info(self.console, "Checking AWS SDK installation...")
        sdk = preflight.check_registry_sdk(self.aws)
        ui.success(self.console, f"{sdk.name} found: {sdk.version}")

        ui.info(self.console, "Checking Docker installation...")
        self.engine, engine_report = preflight.check_container_engine(self.engine)
        ui.success(self.console, f"Docker found: {engine_report.version}")
        return state.advance("preflight")

    def check_credentials(self, state: DeploymentState) -> DeploymentState:
        ui.info(self.console, "Checking AWS credentials...")
        account_id = registry.get_account_id(self.aws.sts(state.config.region))
        ui.success(
            self.console, f"AWS credentials configured. Account ID: {account_id}"
        )
        return state.advance("credentials", account_id=account_id)

    def select_region(self, state: DeploymentState, region: str) -> DeploymentState:
        config = state.config.with_region(region)
        ui.info(self.console, f"Using AWS Region: {config.region}")
        logger.append_keys(region=config.region)
        return state.advance("region", config=config)

    def ensure_repository(self, state: DeploymentState) -> DeploymentState:
        name = state.config.repository_name
        ui.info(self.console, "Checking if ECR repository exists...")
        repository = registry.ensure_repository(self._ecr(state), name)
        if repository.created:
            ui.success(self.console, f"ECR repository '{name}' created successfully!")
        else:
            ui.warning(
                self.console,
                f"Repository '{name}' already exists. Skipping creation.",
            )
        ui.success(self.console, f"Repository URI: {repository.uri}")
        return state.advance("repository", repository=repository)

    def authenticate(self, state: DeploymentState) -> DeploymentState:
        ui.info(self.console, "Authenticating Docker to AWS ECR...")
        credentials = registry.get_registry_credentials(self._ecr(state))
        container_engine.login(self.engine, credentials)
        ui.success(self.console, "Docker authentication successful!")
        return state.advance("authenticate", registry_endpoint=credentials.endpoint)

    def acquire_image(self, state: DeploymentState) -> DeploymentState:
        ui.info(self.console, f"Pulling Docker image: {state.config.image}")
        image = container_engine.pull_image(self.engine, state.config.image)
        digest = container_engine.repo_digest(image)
        logger.debug(
            "Pulled source image",
            extra={"image": state.config.image, "digest": digest},
        )
        ui.success(self.console, "Docker image pulled successfully!")
        return state.advance("pull", source_image=image, source_digest=digest)

    def retag_image(self, state: DeploymentState) -> DeploymentState:
        ui.info(self.console, "Tagging Docker image for ECR...")
        tagged = tuple(
            container_engine.tag_image(state.source_image, state.repository_uri, tag)
            for tag in state.config.tags
        )
        ui.success(self.console, "Docker image tagged successfully!")
        return state.advance("tag", tagged=tagged)

    def push_image(self, state: DeploymentState) -> DeploymentState:
        ui.info(self.console, "Pushing Docker image to ECR...")
        for tag in state.config.tags:
            container_engine.push_image(self.engine, state.repository_uri, tag)
            # Each push is independent, record progress as it happens
            state = dataclasses.replace(state, pushed_tags=state.pushed_tags + (tag,))
            self.state = state
        ui.success(self.console, "Docker image pushed to ECR successfully!")
        return state.advance("push")

    def apply_lifecycle_policy(self, state: DeploymentState) -> DeploymentState:
        ui.info(self.console, "Setting lifecycle policy for ECR repository...")
        config = state.config
        try:
            policy = lifecycle_policy.build_lifecycle_policy(config.keep_images)
        except ValueError as e:
            raise PolicyApplicationFailed(str(e), step="lifecycle") from e
        lifecycle_policy.write_policy_document(config.policy_path, policy)
        policy_text = lifecycle_policy.read_policy_document(config.policy_path)
        lifecycle_policy.apply_lifecycle_policy(
            self._ecr(state), config.repository_name, policy_text
        )
        ui.success(self.console, "Lifecycle policy set successfully!")
        return state.advance("lifecycle", policy_text=policy_text)

    def verify(self, state: DeploymentState) -> DeploymentState:
        ui.info(self.console, "Verifying deployment...")
        images = registry.list_repository_images(
            self._ecr(state), state.config.repository_name
        )
        ui.info(self.console, "Images in ECR repository:")
        ui.render_images(self.console, state.config.repository_name, images)
        ui.success(self.console, "Verification complete!")
        return state.advance("verify", images=tuple(images))
