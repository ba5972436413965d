from __future__ import annotations

import logging
from pathlib import Path
import sys
from typing import Any, Optional

import typer
import yaml

from .config import ActionSettings, PluginConfig, PluginConfigResolver, plugin_config_from_data
from .errors import OffloadRestoreError
from .k8s import KubernetesAuthenticationError, load_kubernetes_clients
from .models import RestoreContext
from .registry import ACTION_REGISTRY, ConfigLoader, ConfigLoaderFactory, UnknownActionError, new_action

app = typer.Typer(help="Run Velero restore item actions for offloaded CloudCasa restores.")


@app.command("list")
def list_actions() -> None:
    """List registered restore item actions and the resources they apply to."""
    for name, factory in sorted(ACTION_REGISTRY.items()):
        selector = factory(_listing_config_loader).applies_to()
        typer.echo(f"{name}\t{','.join(selector.included_resources)}")


@app.command()
def execute(
    action: str = typer.Option(..., "--action", "-a", help="Registered action name."),
    restore: str = typer.Option(..., "--restore", "-r", help="Restore manifest (YAML or JSON, '-' for stdin)."),
    item: str = typer.Option(..., "--item", "-i", help="Item manifest (YAML or JSON, '-' for stdin)."),
    out: str = typer.Option("-", "--out", "-o", help="Where to write the resulting item ('-' for stdout)."),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config-file",
        help="Plugin ConfigMap manifest to use instead of querying the cluster.",
    ),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to a kubeconfig file."),
    context: Optional[str] = typer.Option(None, "--context", help="Kubeconfig context to use."),
    in_cluster: bool = typer.Option(
        False,
        "--in-cluster/--no-in-cluster",
        help="Use in-cluster service account credentials.",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override OFFLOAD_RESTORE_LOG_LEVEL."),
) -> None:
    """Run one action against one restored item and print the resulting item."""
    settings = ActionSettings()
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    restore_document = _read_document(restore, kind="restore")
    item_document = _read_document(item, kind="item")
    if config_file is not None:
        config_map = _read_document(str(config_file), kind="config")
        config_loader_for = _file_config_loader_factory(config_map)
    else:
        config_loader_for = _cluster_config_loader_factory(
            settings,
            kubeconfig=kubeconfig,
            context=context,
            in_cluster=in_cluster,
        )

    try:
        restore_action = new_action(action, config_loader_for)
        result = restore_action.execute(RestoreContext.from_restore(restore_document), item_document)
    except (OffloadRestoreError, KubernetesAuthenticationError, UnknownActionError) as error:
        typer.echo(f"error: {error}", err=True)
        raise typer.Exit(code=1) from error

    rendered = yaml.safe_dump(result, sort_keys=False)
    if out == "-":
        typer.echo(rendered, nl=False)
    else:
        Path(out).write_text(rendered, encoding="utf-8")


def _file_config_loader_factory(config_map: dict[str, Any]) -> ConfigLoaderFactory:
    def loader_for(plugin_name: str) -> ConfigLoader:
        return lambda: plugin_config_from_data(config_map.get("data"))

    return loader_for


def _cluster_config_loader_factory(
    settings: ActionSettings,
    *,
    kubeconfig: str | None,
    context: str | None,
    in_cluster: bool,
) -> ConfigLoaderFactory:
    def loader_for(plugin_name: str) -> ConfigLoader:
        def load() -> PluginConfig:
            clients = load_kubernetes_clients(kubeconfig_path=kubeconfig, context=context, in_cluster=in_cluster)
            return PluginConfigResolver(
                clients.core_api,
                plugin_name=plugin_name,
                namespace=settings.config_namespace,
                request_timeout_seconds=settings.request_timeout_seconds,
            ).resolve()

        return load

    return loader_for


def _listing_config_loader(plugin_name: str) -> ConfigLoader:
    def load() -> PluginConfig:
        raise RuntimeError(f"configuration for {plugin_name} is not loaded while listing actions")

    return load


def _read_document(source: str, *, kind: str) -> dict[str, Any]:
    try:
        if source == "-":
            document = yaml.safe_load(sys.stdin)
        else:
            document = yaml.safe_load(Path(source).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"{kind.title()} file not found: {source}") from exc
    except (OSError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Failed to read {kind} manifest {source}: {exc}") from exc
    if not isinstance(document, dict):
        raise typer.BadParameter(f"{kind.title()} manifest must contain a mapping")
    return document


if __name__ == "__main__":  # pragma: no cover
    app()
