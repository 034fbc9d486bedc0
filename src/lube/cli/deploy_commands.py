"""Deploy commands: fetch or open a bundle and apply it to the cluster."""

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.table import Table

from ..bundle import DeployType
from ..config import DeployConfig, load_config
from ..deployment import ChartDeployer, EntryOutcome, ManifestDeployer, Orchestrator
from ..deployment.shell_commands import ShellCommands
from ..errors import DeploymentError
from ..infra.k8s import ClusterTarget, Kr8sController, run_sync
from .shared import configure_logging, console, with_error_handling

DEFAULT_KUBECONFIG = Path.home() / ".kube" / "config"

# ---------------------------------------------------------------------------
# Shared Options
# ---------------------------------------------------------------------------

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="YAML file with a top-level 'config:' key",
        exists=True,
        dir_okay=False,
    ),
]
KubeconfigOption = Annotated[
    Path | None,
    typer.Option(
        "--kubeconfig",
        envvar="KUBECONFIG",
        help="Kubeconfig file (defaults to ~/.kube/config)",
    ),
]
ContextOption = Annotated[
    str | None,
    typer.Option("--context", help="Kubeconfig context to use"),
]
NamespaceOption = Annotated[
    str | None,
    typer.Option(
        "--namespace",
        "-n",
        help="Namespace for charts whose entry names none",
    ),
]
TokenOption = Annotated[
    str | None,
    typer.Option(
        "--token",
        envvar="GITHUB_TOKEN",
        help="Bearer token for the release API",
    ),
]
DomainOption = Annotated[
    str | None,
    typer.Option(
        "--domain",
        help="Value substituted for __DOMAIN__ in chart values",
    ),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show debug logging"),
]


# ---------------------------------------------------------------------------
# Typer App
# ---------------------------------------------------------------------------

deploy_app = typer.Typer(
    name="deploy",
    help="🚀 Deploy a bundle of manifests and Helm charts.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


def build_config(
    config_file: Path | None = None,
    *,
    kubeconfig: Path | None = None,
    context: str | None = None,
    namespace: str | None = None,
    token: str | None = None,
    domain: str | None = None,
) -> DeployConfig:
    """Load the configuration file and apply command-line overrides.

    Raises:
        DeploymentError: If the configuration file is invalid
    """
    try:
        config = load_config(config_file)
    except (ValueError, OSError) as e:
        raise DeploymentError("Invalid configuration", details=str(e)) from e

    cluster = config.cluster
    if kubeconfig:
        cluster.kubeconfig = kubeconfig
    elif cluster.kubeconfig is None and DEFAULT_KUBECONFIG.is_file():
        cluster.kubeconfig = DEFAULT_KUBECONFIG
    if context:
        cluster.context = context
    if namespace:
        cluster.default_namespace = namespace
    if token:
        config.fetch.token = token
    if domain:
        config.charts.domain = domain
    return config


def build_orchestrator(config: DeployConfig) -> Orchestrator:
    """Wire the cluster controller and both deployers for one run."""
    target = ClusterTarget(
        kubeconfig=config.cluster.kubeconfig,
        context=config.cluster.context,
    )
    controller = Kr8sController(target, default_namespace=config.cluster.default_namespace)
    deployers = {
        DeployType.MANIFEST: ManifestDeployer(controller, config.manifests),
        DeployType.CHART: ChartDeployer(
            ShellCommands().helm,
            config.charts,
            target=target,
            default_namespace=config.cluster.default_namespace,
        ),
    }
    return Orchestrator(controller, deployers, config)


def _prepare(
    config_file: Path | None,
    kubeconfig: Path | None,
    context: str | None,
    namespace: str | None,
    token: str | None,
    domain: str | None,
    verbose: bool,
) -> Orchestrator:
    load_dotenv(override=False)
    configure_logging(verbose)
    config = build_config(
        config_file,
        kubeconfig=kubeconfig,
        context=context,
        namespace=namespace,
        token=token,
        domain=domain,
    )
    return build_orchestrator(config)


def _print_summary(outcomes: list[EntryOutcome]) -> None:
    table = Table(title="Deployed Entries")
    table.add_column("ID", justify="right")
    table.add_column("Type")
    table.add_column("File")
    table.add_column("Namespace")
    table.add_column("Result")

    for outcome in outcomes:
        entry = outcome.entry
        result = getattr(outcome.result, "value", outcome.result)
        table.add_row(
            str(entry.id),
            entry.type.value,
            entry.file,
            entry.target_namespace or "-",
            str(result),
        )

    console.print(table)
    console.success(f"Deployed {len(outcomes)} entries")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@deploy_app.command("release")
@with_error_handling
def deploy_release(
    owner: Annotated[str, typer.Argument(help="Repository owner")],
    repo: Annotated[str, typer.Argument(help="Repository name")],
    tag: Annotated[str, typer.Argument(help="Release tag")],
    config_file: ConfigOption = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
    namespace: NamespaceOption = None,
    token: TokenOption = None,
    domain: DomainOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Deploy the bundle attached to a GitHub release.

    Examples:
        lube deploy release ertia-io platform v1.4.0
        lube deploy release ertia-io platform v1.4.0 --domain example.com
    """
    console.header(f"Deploying {owner}/{repo} {tag}")
    orchestrator = _prepare(config_file, kubeconfig, context, namespace, token, domain, verbose)
    _print_summary(run_sync(orchestrator.deploy_release(owner, repo, tag)))


@deploy_app.command("url")
@with_error_handling
def deploy_url(
    url: Annotated[str, typer.Argument(help="URL of a bundle archive")],
    config_file: ConfigOption = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
    namespace: NamespaceOption = None,
    token: TokenOption = None,
    domain: DomainOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Deploy a bundle archive downloaded from a URL."""
    console.header(f"Deploying {url}")
    orchestrator = _prepare(config_file, kubeconfig, context, namespace, token, domain, verbose)
    _print_summary(run_sync(orchestrator.deploy_url(url)))


@deploy_app.command("archive")
@with_error_handling
def deploy_archive(
    archive: Annotated[
        Path,
        typer.Argument(help="Local bundle archive", exists=True, dir_okay=False),
    ],
    config_file: ConfigOption = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
    namespace: NamespaceOption = None,
    domain: DomainOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Deploy a local bundle archive."""
    console.header(f"Deploying {archive.name}")
    orchestrator = _prepare(config_file, kubeconfig, context, namespace, None, domain, verbose)
    _print_summary(run_sync(orchestrator.deploy_archive(archive)))


@deploy_app.command("dir")
@with_error_handling
def deploy_dir(
    path: Annotated[
        Path,
        typer.Argument(help="Extracted bundle directory", exists=True, file_okay=False),
    ],
    config_file: ConfigOption = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
    namespace: NamespaceOption = None,
    domain: DomainOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Deploy an already extracted bundle directory in place.

    Note that domain substitution rewrites chart values files in place.
    """
    console.header(f"Deploying {path}")
    orchestrator = _prepare(config_file, kubeconfig, context, namespace, None, domain, verbose)
    _print_summary(run_sync(orchestrator.deploy_directory(path)))
