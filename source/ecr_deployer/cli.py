# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Command line entry point: `ecr-deploy`.
"""
from typing import Any, Optional

import typer
from ecr_deployer import console as ui
from ecr_deployer import preflight, registry
from ecr_deployer.awsapi_cached_client import AWSCachedClient
from ecr_deployer.config import DeploymentConfig
from ecr_deployer.exceptions import DeploymentError
from ecr_deployer.orchestrator import (
    DeploymentOrchestrator,
    DeploymentState,
    is_affirmative,
)
from ecr_deployer.powertools_logger import set_log_level
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    no_args_is_help=True,
    help="Copy a public container image into a private Amazon ECR repository.",
)


def _prompt_region(default: str) -> str:
    answer = typer.prompt(
        f"Enter AWS Region (default: {default})", default="", show_default=False
    )
    return answer.strip() or default


def _prompt_confirmation(_state: DeploymentState) -> bool:
    answer = typer.prompt(
        "Proceed with deployment? (y/n)", default="", show_default=False
    )
    return is_affirmative(answer)


def _report_failure(
    console: Console, error: DeploymentError, state: DeploymentState
) -> None:
    ui.error(console, str(error))
    if state.completed_steps:
        ui.warning(
            console,
            "Completed before the failure (not rolled back): "
            + ", ".join(state.completed_steps),
        )
    if state.pushed_tags:
        ui.warning(
            console,
            f"Tags already pushed to {state.repository_uri}: "
            + ", ".join(state.pushed_tags),
        )


def _load_config(console: Console, **overrides: Any) -> DeploymentConfig:
    try:
        return DeploymentConfig.from_env(**overrides)
    except DeploymentError as e:
        ui.error(console, str(e))
        raise typer.Exit(code=e.exit_code)


@app.command()
def deploy(
    image: Optional[str] = typer.Option(
        None, "--image", "-i", help="Source image reference to copy."
    ),
    repository: Optional[str] = typer.Option(
        None, "--repository", "-r", help="Destination ECR repository name."
    ),
    region: Optional[str] = typer.Option(
        None, "--region", help="AWS region. Skips the region prompt."
    ),
    version_tag: Optional[str] = typer.Option(
        None, "--version-tag", help="Version tag pushed next to 'latest'."
    ),
    keep_images: Optional[int] = typer.Option(
        None, "--keep-images", min=1, help="Images kept by the lifecycle policy."
    ),
    policy_path: Optional[str] = typer.Option(
        None, "--policy-path", help="Where the lifecycle policy JSON is written."
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not prompt; use defaults and proceed."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Run the full deployment."""
    if verbose:
        set_log_level("DEBUG")

    console = ui.make_console()
    config = _load_config(
        console,
        image=image,
        repository_name=repository,
        version_tag=version_tag,
        keep_images=keep_images,
        policy_path=policy_path,
    )
    orchestrator = DeploymentOrchestrator(config, console=console)

    def select_region(default: str) -> str:
        if region:
            return region
        if yes:
            return default
        console.print()
        return _prompt_region(default)

    def confirm(state: DeploymentState) -> bool:
        if yes:
            return True
        console.print()
        return _prompt_confirmation(state)

    try:
        orchestrator.run(select_region=select_region, confirm=confirm)
    except DeploymentError as e:
        _report_failure(console, e, orchestrator.state)
        raise typer.Exit(code=e.exit_code)


@app.command()
def check(
    region: Optional[str] = typer.Option(None, "--region"),
) -> None:
    """Check tooling and AWS credentials without changing anything."""
    console = ui.make_console()
    config = _load_config(console, region=region)
    aws = AWSCachedClient(config.region)

    table = Table(title="ECR Deploy Check")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    failed: Optional[DeploymentError] = None
    try:
        sdk = preflight.check_registry_sdk(aws)
        table.add_row(sdk.name, "OK", sdk.version)
        _, engine = preflight.check_container_engine()
        table.add_row(engine.name, "OK", engine.version)
        account_id = registry.get_account_id(aws.sts())
        table.add_row("AWS credentials", "OK", f"Account {account_id}")
    except DeploymentError as e:
        table.add_row(e.label, "FAIL", e.message)
        failed = e

    console.print(table)
    if failed is not None:
        raise typer.Exit(code=failed.exit_code)


@app.command()
def images(
    repository: Optional[str] = typer.Option(None, "--repository", "-r"),
    region: Optional[str] = typer.Option(None, "--region"),
) -> None:
    """List the images currently in a repository."""
    console = ui.make_console()
    config = _load_config(console, repository_name=repository, region=region)
    aws = AWSCachedClient(config.region)
    try:
        found = registry.list_repository_images(aws.ecr(), config.repository_name)
    except DeploymentError as e:
        ui.error(console, str(e))
        raise typer.Exit(code=e.exit_code)
    ui.render_images(console, config.repository_name, found)


def run() -> None:
    app(prog_name="ecr-deploy")
