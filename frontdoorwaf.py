#!/usr/bin/env python
import json
import logging
import sys
import tempfile
from typing import Any, Dict, Optional

import click

import wafpolicy.fileparser as fileparser
from wafpolicy.config_loader import AdapterSettings, find_settings_file, load_settings
from wafpolicy.context import CallContext
from wafpolicy.exceptions import FrontDoorWafError, NotFound, ResourceAlreadyExistsError
from wafpolicy.models import normalize_attributes
from wafpolicy.resource import FirewallPolicyResource
from wafpolicy.schema import RESOURCE_TYPE
from wafpolicy.state import DEFAULT_STATE_FILE, StateFile
from wafpolicy.utils import diff_attributes, format_change


__version__ = "0.1"


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error(message: str) -> None:
    click.echo(click.style(f"\nERROR: {message}\n", fg="red", bold=True))
    sys.exit(1)


def _load_settings(source: str, settings_path: str, overrides: Dict[str, Any]) -> AdapterSettings:
    path = settings_path or find_settings_file(source)
    return load_settings(path, overrides)


def _build_adapter(settings: AdapterSettings) -> FirewallPolicyResource:
    return FirewallPolicyResource(
        settings.build_client(), require_import=settings.require_import
    )


def _read_config(source: str, recursive: bool) -> Dict[str, Dict[str, Any]]:
    # Git sources are cloned into a directory removed once parsing is done
    with tempfile.TemporaryDirectory(prefix="frontdoorwaf-") as workdir:
        paths = fileparser.find_tf_files(source, workdir=workdir, recursive=recursive)
        policies = fileparser.read_policies(paths)
    if not policies:
        click.echo(
            click.style(f"\nNo {RESOURCE_TYPE} resources found.", fg="yellow")
        )
    return policies


def _resolve_id(state: StateFile, target: str) -> Optional[str]:
    if target.startswith("/"):
        return target
    return state.get_id(target)


def _run(func, debug: bool):
    """Invoke a command body, printing adapter errors instead of tracebacks."""
    try:
        return func()
    except FrontDoorWafError as e:
        if debug:
            raise
        _error(str(e))


source_option = click.option(
    "--source", default=".", help="Source files location (Git URL or folder)"
)
recursive_option = click.option(
    "--recursive", is_flag=True, default=False, help="Search subfolders for .tf files"
)
state_option = click.option(
    "--state", "state_path", default=DEFAULT_STATE_FILE, help="Path to the state file"
)
debug_option = click.option(
    "--debug", is_flag=True, default=False, help="Verbose logging and tracebacks"
)


def remote_options(func):
    """Options shared by every command that talks to the management API."""
    func = click.option(
        "--settings", "settings_path", default="", help="Path to a frontdoorwaf.yml file"
    )(func)
    func = click.option(
        "--subscription-id", default=None, help="Azure subscription ID"
    )(func)
    func = click.option(
        "--timeout", type=float, default=None, help="Seconds allowed per resource call"
    )(func)
    return func


@click.version_option(version=__version__, prog_name="frontdoorwaf")
@click.group()
def cli():
    """
    frontdoorwaf manages Azure Front Door firewall policies declared in Terraform files

    For help with a specific command type:

    frontdoorwaf [COMMAND] --help

    """
    pass


@cli.command()
@debug_option
@source_option
@recursive_option
def validate(debug, source, recursive):
    """Validate firewall policy configuration without calling Azure"""
    _configure_logging(debug)

    def body():
        policies = _read_config(source, recursive)
        for address, attributes in policies.items():
            normalize_attributes(attributes)
            click.echo(click.style(f"  {address}: valid", fg="green"))

    _run(body, debug)


@cli.command(name="schema")
def show_schema():
    """Print the resource schema as JSON"""
    click.echo(json.dumps(FirewallPolicyResource.schema(), indent=4, sort_keys=True))


@cli.command()
@debug_option
@source_option
@recursive_option
@state_option
@remote_options
def plan(debug, source, recursive, state_path, settings_path, subscription_id, timeout):
    """Show changes between configuration and the remote policies"""
    _configure_logging(debug)

    def body():
        settings = _load_settings(
            source, settings_path, {"subscription_id": subscription_id, "timeout": timeout}
        )
        state = StateFile(state_path)
        policies = _read_config(source, recursive)
        adapter = None

        for address, attributes in policies.items():
            desired = normalize_attributes(attributes)
            resource_id = state.get_id(address)
            if resource_id is None:
                click.echo(click.style(f"\n+ {address} will be created", fg="green"))
                continue
            adapter = adapter or _build_adapter(settings)
            try:
                current = adapter.read(resource_id, CallContext.with_timeout(settings.timeout))
            except NotFound:
                click.echo(
                    click.style(
                        f"\n+ {address} was deleted remotely and will be re-created",
                        fg="green",
                    )
                )
                continue
            changes = diff_attributes(current, desired)
            replaced = adapter.requires_replacement(resource_id, desired)
            if replaced:
                click.echo(click.style(f"\n-/+ {address} must be replaced", fg="red"))
            elif not changes:
                click.echo(f"\n  {address} is up to date")
                continue
            else:
                click.echo(
                    click.style(f"\n~ {address} will be updated in-place", fg="yellow")
                )
            for change in changes:
                line = format_change(change)
                if change[0] in replaced:
                    line += " (forces replacement)"
                click.echo(line)

        for address in sorted(set(state.resources) - set(policies)):
            click.echo(click.style(f"\n- {address} will be destroyed", fg="red"))

    _run(body, debug)


@cli.command()
@debug_option
@source_option
@recursive_option
@state_option
@remote_options
def apply(debug, source, recursive, state_path, settings_path, subscription_id, timeout):
    """Create, update and delete policies to match configuration"""
    _configure_logging(debug)

    def body():
        settings = _load_settings(
            source, settings_path, {"subscription_id": subscription_id, "timeout": timeout}
        )
        state = StateFile(state_path)
        policies = _read_config(source, recursive)
        # Validate everything before the first remote call
        for attributes in policies.values():
            normalize_attributes(attributes)
        adapter = _build_adapter(settings)

        for address, attributes in policies.items():
            click.echo(click.style(f"\nApplying {address}..", fg="white", bold=True))
            current_id = state.get_id(address)
            if current_id and adapter.requires_replacement(current_id, attributes):
                # The old policy must not outlive its replacement
                click.echo(click.style(f"  Replacing {current_id}", fg="yellow"))
                adapter.delete(current_id, CallContext.with_timeout(settings.timeout))
                state.remove(address)
                state.save()
                current_id = None
            try:
                resource_id, read_back = adapter.create_or_update(
                    attributes,
                    CallContext.with_timeout(settings.timeout),
                    current_id=current_id,
                )
            except ResourceAlreadyExistsError as e:
                state.save()
                _error(f"{e}\n  Run: frontdoorwaf import {address} {e.resource_id}")
            state.put(address, resource_id, read_back)
            state.save()
            click.echo(click.style(f"  {address}: {resource_id}", fg="green"))

        for address in sorted(set(state.resources) - set(policies)):
            click.echo(click.style(f"\nDestroying {address}..", fg="white", bold=True))
            adapter.delete(state.get_id(address), CallContext.with_timeout(settings.timeout))
            state.remove(address)
            state.save()

    _run(body, debug)


@cli.command()
@debug_option
@state_option
@remote_options
@click.argument("target")
def show(debug, state_path, settings_path, subscription_id, timeout, target):
    """Read a policy by resource address or ID and print its attributes"""
    _configure_logging(debug)

    def body():
        settings = load_settings(
            settings_path or None, {"subscription_id": subscription_id, "timeout": timeout}
        )
        resource_id = _resolve_id(StateFile(state_path), target)
        if resource_id is None:
            _error(f"{target} is not in state")
        attributes = _build_adapter(settings).read(
            resource_id, CallContext.with_timeout(settings.timeout)
        )
        click.echo(json.dumps(attributes, indent=4, sort_keys=True))

    _run(body, debug)


@cli.command(name="import")
@debug_option
@state_option
@remote_options
@click.argument("address")
@click.argument("resource_id")
def import_resource(debug, state_path, settings_path, subscription_id, timeout, address, resource_id):
    """Import an existing policy into state under ADDRESS"""
    _configure_logging(debug)

    def body():
        settings = load_settings(
            settings_path or None, {"subscription_id": subscription_id, "timeout": timeout}
        )
        state = StateFile(state_path)
        if state.get_id(address):
            _error(f"{address} is already managed by state")
        attributes = _build_adapter(settings).import_state(
            resource_id, CallContext.with_timeout(settings.timeout)
        )
        state.put(address, resource_id, attributes)
        state.save()
        click.echo(click.style(f"  Imported {resource_id} as {address}", fg="green"))

    _run(body, debug)


@cli.command()
@debug_option
@state_option
@remote_options
@click.argument("targets", nargs=-1)
def destroy(debug, state_path, settings_path, subscription_id, timeout, targets):
    """Delete policies in state (all of them when no TARGETS are given)"""
    _configure_logging(debug)

    def body():
        settings = load_settings(
            settings_path or None, {"subscription_id": subscription_id, "timeout": timeout}
        )
        state = StateFile(state_path)
        addresses = list(targets) or sorted(state.resources)
        adapter = _build_adapter(settings)
        for address in addresses:
            resource_id = _resolve_id(state, address)
            if resource_id is None:
                _error(f"{address} is not in state")
            adapter.delete(resource_id, CallContext.with_timeout(settings.timeout))
            state.remove(address)
            state.save()
            click.echo(click.style(f"  Destroyed {address}", fg="green"))

    _run(body, debug)


if __name__ == "__main__":
    cli()
