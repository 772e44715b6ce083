"""CLI interface for pydeploy."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .cli_progress import DeployProgressDisplay
from .config import config
from .deploy import (
    DeploymentController,
    DeploymentStateStore,
    DeploymentTargetStore,
    DeployMode,
    DeployProgressTracker,
)
from .exceptions import DeployConfigError, DeployError, ResolveError
from .output import OutputFormatter
from .remote import SSHRemote
from .storage import JsonStorage
from .utils import format_count
from .vcs import GitProvider

logger = logging.getLogger(__name__)


def get_storage() -> JsonStorage:
    """Storage for deployment targets and snapshots."""
    return JsonStorage(config.get_storage_path())


def create_remote(ctx: Any, out: OutputFormatter) -> SSHRemote:
    """Create an SSH remote from CLI options and configuration.

    Exits with status 1 if no host is known.
    """
    if not ctx.obj.get("host") and not config.is_configured():
        out.error("No remote host configured. Run 'pydeploy init' or pass --host.")
        ctx.exit(1)
    return SSHRemote(
        host=ctx.obj.get("host") or config.host,
        user=ctx.obj.get("user") or config.user,
        port=ctx.obj.get("port") or config.port,
        key_file=ctx.obj.get("key_file") or config.key_file,
    )


def choose_mode(controller: DeploymentController, remote_path: str) -> DeployMode:
    """Ask which deploy mode to use, offering only the supported ones."""
    modes = controller.available_modes()
    labels = [mode.label for mode in modes]
    for index, label in enumerate(labels, start=1):
        click.echo(f"  {index}. {label}")
    choice = click.prompt(
        f"Select deployment method to {remote_path}",
        type=click.IntRange(1, len(modes)),
        default=1,
    )
    return modes[choice - 1]


@click.group()
@click.option("--host", "-H", envvar="PYDEPLOY_HOST", help="Remote host")
@click.option("--user", "-u", envvar="PYDEPLOY_USER", help="Remote user")
@click.option("--port", "-p", type=int, envvar="PYDEPLOY_PORT", help="SSH port")
@click.option("--key-file", envvar="PYDEPLOY_KEY_FILE", help="SSH private key file")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pydeploy")
@click.pass_context
def main(
    ctx: Any,
    host: Optional[str],
    user: Optional[str],
    port: Optional[int],
    key_file: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyDeploy - Deploy local project directories to a remote host over SSH."""
    ctx.ensure_object(dict)
    ctx.obj["host"] = host
    ctx.obj["user"] = user
    ctx.obj["port"] = port
    ctx.obj["key_file"] = key_file
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pydeploy").setLevel(logging.DEBUG)
        # paramiko is very chatty at DEBUG
        logging.getLogger("paramiko").setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--host", "-H", prompt="Remote host", help="Remote host")
@click.option("--user", "-u", prompt="Remote user", help="Remote user")
@click.option("--port", "-p", type=int, default=22, show_default=True)
@click.option("--key-file", default=None, help="SSH private key file")
@click.option(
    "--concurrency",
    "-c",
    type=click.IntRange(1, 100),
    default=None,
    help="Default number of simultaneous uploads",
)
@click.pass_context
def init(
    ctx: Any,
    host: str,
    user: str,
    port: int,
    key_file: Optional[str],
    concurrency: Optional[int],
) -> None:
    """Store connection defaults.

    Settings are written to ~/.config/pydeploy/config.json.
    """
    out: OutputFormatter = ctx.obj["out"]
    config.save(
        host=host, user=user, port=port, key_file=key_file, concurrency=concurrency
    )
    out.success("Configuration saved successfully")
    out.info(f"Config file: {config.get_config_path()}")


@main.command("set-location")
@click.argument("remote_dir")
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--deploy", "deploy_now", is_flag=True, help="Deploy PATH right after setting it"
)
@click.pass_context
def set_location(ctx: Any, remote_dir: str, path: Path, deploy_now: bool) -> None:
    """Set the remote directory PATH deploys to.

    REMOTE_DIR: Absolute remote directory, e.g. /home/dev/project

    Examples:
        pydeploy set-location /home/dev/app .
        pydeploy set-location /home/dev/app . --deploy
    """
    out: OutputFormatter = ctx.obj["out"]
    store = DeploymentTargetStore(get_storage())
    try:
        target = store.set(path.resolve(), remote_dir)
    except DeployConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            {"local_root": str(target.local_root), "remote_path": target.remote_path}
        )
    else:
        out.success(f"Deployment location set to {target.remote_path}")

    if deploy_now:
        ctx.invoke(deploy, path=path)


@main.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.pass_context
def location(ctx: Any, path: Path) -> None:
    """Show the deployment location of PATH."""
    out: OutputFormatter = ctx.obj["out"]
    target = DeploymentTargetStore(get_storage()).get(path.resolve())
    if target is None:
        out.error(f"Chosen location ({path.resolve()}) is not configured for deployment.")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            {"local_root": str(target.local_root), "remote_path": target.remote_path}
        )
    else:
        out.info(f"{target.local_root} -> {target.remote_path}")


@main.command("clear-state")
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.pass_context
def clear_state(ctx: Any, path: Path) -> None:
    """Forget what was deployed, so the next changed-only run sends everything."""
    out: OutputFormatter = ctx.obj["out"]
    if DeploymentStateStore(get_storage()).clear(path.resolve()):
        out.success("Deployment state cleared")
    else:
        out.info("No deployment state stored")


@main.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--mode",
    "-m",
    default=None,
    help="changedOnly (co), workingChanges (wc), stagedChanges (sc) or all",
)
@click.option(
    "--concurrency",
    "-c",
    type=click.IntRange(1, 100),
    default=None,
    help="Number of simultaneous uploads (default: 5)",
)
@click.option("--ignore", "-i", multiple=True, help="Extra ignore pattern")
@click.option("--no-progress", is_flag=True, help="Disable progress bar")
@click.pass_context
def deploy(
    ctx: Any,
    path: Path,
    mode: Optional[str],
    concurrency: Optional[int],
    ignore: tuple[str, ...],
    no_progress: bool,
) -> None:
    """Deploy PATH to its configured remote directory.

    Deploy modes:
      - changedOnly (co): Files changed locally or remotely since last deploy
      - workingChanges (wc): Files changed in the git working tree
      - stagedChanges (sc): Files staged in git
      - all: Every file not matched by .gitignore

    Examples:
        pydeploy set-location /home/dev/app .
        pydeploy deploy . --mode all
        pydeploy deploy ./app -m co -c 10
    """
    out: OutputFormatter = ctx.obj["out"]
    local_root = path.resolve()
    storage = get_storage()

    target = DeploymentTargetStore(storage).get(local_root)
    if target is None:
        out.error(f"Chosen location ({local_root}) is not configured for deployment.")
        ctx.exit(1)
        return

    deploy_mode: Optional[DeployMode] = None
    if mode is not None:
        try:
            deploy_mode = DeployMode.from_string(mode)
        except ValueError as e:
            out.error(str(e))
            ctx.exit(1)
            return

    remote = create_remote(ctx, out)
    tracker = DeployProgressTracker()

    try:
        with remote:
            controller = DeploymentController(
                remote,
                GitProvider(),
                storage,
                tracker=tracker,
                ignore_patterns=list(ignore),
                concurrency_limit=concurrency or config.concurrency,
            )
            if deploy_mode is None:
                deploy_mode = choose_mode(controller, target.remote_path)

            show_progress = not (no_progress or out.quiet or out.json_output)
            if show_progress:
                display = DeployProgressDisplay()
                display.attach(tracker)
                with display:
                    result = controller.deploy(local_root, deploy_mode)
            else:
                result = controller.deploy(local_root, deploy_mode)
    except (DeployConfigError, ResolveError) as e:
        out.error(str(e))
        ctx.exit(1)
        return
    except DeployError as e:
        out.error(f"Deployment failed: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            {
                "succeeded": result.succeeded,
                "attempted": result.attempted,
                "failed": [
                    {
                        "local": str(o.local_path),
                        "remote": o.remote_path,
                        "error": o.error,
                    }
                    for o in result.failed
                ],
                "warnings": result.warnings,
                "log": result.log,
            }
        )
    else:
        for warning in result.warnings:
            out.warning(warning)
        if not result.succeeded:
            for line in result.log:
                if not line.startswith("SUCCESS:"):
                    out.print(line)
            out.error("Deployment failed.")
        elif result.nothing_to_deploy:
            out.info("Nothing to deploy.")
        else:
            out.success(f"Deployment finished ({format_count(result.attempted)}).")

    if not result.succeeded:
        ctx.exit(1)


if __name__ == "__main__":
    main()
