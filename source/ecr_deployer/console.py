# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Operator-facing output (Rich).
"""
from typing import TYPE_CHECKING, Iterable, Optional

from ecr_deployer.config import is_digest_pinned
from ecr_deployer.registry import ImageSummary
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from ecr_deployer.orchestrator import DeploymentState


def make_console() -> Console:
    return Console(highlight=False)


def print_header(console: Console, title: str) -> None:
    console.print()
    console.rule(f"[bold green]{escape(title)}[/bold green]", style="green")
    console.print()


def info(console: Console, message: str) -> None:
    console.print(f"[blue]\\[INFO][/blue] {escape(message)}")


def success(console: Console, message: str) -> None:
    console.print(f"[green]\\[SUCCESS][/green] {escape(message)}")


def warning(console: Console, message: str) -> None:
    console.print(f"[yellow]\\[WARNING][/yellow] {escape(message)}")


def error(console: Console, message: str) -> None:
    console.print(f"[red]\\[ERROR][/red] {escape(message)}")


def _format_size(size_bytes: int) -> str:
    size = float(size_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def build_images_table(repository_name: str, images: Iterable[ImageSummary]) -> Table:
    table = Table(title=f"Images in {repository_name}")
    table.add_column("Tags", style="cyan", no_wrap=True)
    table.add_column("Digest", style="white")
    table.add_column("Pushed", style="dim")
    table.add_column("Size", style="magenta", justify="right")
    for image in images:
        table.add_row(
            ", ".join(image.tags) or "<untagged>",
            image.digest,
            image.pushed_at.isoformat() if image.pushed_at else "",
            _format_size(image.size_bytes),
        )
    return table


def build_summary_panel(state: "DeploymentState") -> Panel:
    config = state.config
    uri = state.repository.uri if state.repository else ""

    body = Text()
    body.append("Repository Name: ", style="blue")
    body.append(f"{config.repository_name}\n")
    body.append("Repository URI: ", style="blue")
    body.append(f"{uri}\n")
    body.append("AWS Region: ", style="blue")
    body.append(f"{config.region}\n")
    body.append("AWS Account ID: ", style="blue")
    body.append(f"{state.account_id}\n\n")

    body.append("Available Image Tags:\n", style="green")
    for tag in state.pushed_tags:
        body.append(f"  - {tag}\n")
    if state.source_digest:
        body.append("\nSource digest: ", style="blue")
        body.append(f"{state.source_digest}\n")

    body.append("\nNext Steps:\n", style="yellow")
    body.append("  1. Deploy to ECS, EKS, or EC2 using the repository URI\n")
    body.append(f"  2. Use: docker pull {uri}:{config.latest_tag}\n")
    body.append("  3. Configure your application to use the ECR image")

    return Panel(body, title="DEPLOYMENT SUMMARY", border_style="green")


def render_images(
    console: Console, repository_name: str, images: list[ImageSummary]
) -> None:
    if not images:
        warning(console, f"Repository '{repository_name}' has no images.")
        return
    console.print(build_images_table(repository_name, images))


def render_summary(console: Console, state: "DeploymentState") -> None:
    console.print()
    console.print(build_summary_panel(state))
    if not is_digest_pinned(state.config.image):
        warning(
            console,
            f"Source image '{state.config.image}' is referenced by a mutable tag; "
            "re-running may deploy different content under the same tags.",
        )
    success(console, "Deployment completed successfully!")


def render_cancelled(console: Console, reason: Optional[str] = None) -> None:
    warning(console, reason or "Deployment cancelled by user.")
