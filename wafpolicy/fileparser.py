"""Terraform source parser for firewall policy resources.

Discovers .tf files in a local folder or git repository, parses them with
python-hcl2 and extracts every ``azurerm_frontdoor_firewall_policy`` resource
block as a plain attribute map keyed by its resource address
(``azurerm_frontdoor_firewall_policy.<label>``).
"""

import logging
import os
from typing import Any, Dict, List

import click
import hcl2

import wafpolicy.gitlibs as gitlibs
from wafpolicy import schema
from wafpolicy.exceptions import SourceParsingError

logger = logging.getLogger(__name__)


def find_tf_files(source: str, workdir: str = "", recursive: bool = False) -> List[str]:
    """Discover Terraform files in a local directory or git repository.

    Args:
        source: Local directory path or git URL
        workdir: Directory to clone git sources into, owned by the caller
        recursive: Whether to search subdirectories too

    Returns:
        Sorted list of .tf file paths

    Raises:
        SourceParsingError: If no .tf files are found, or a git source has no workdir
    """
    if os.path.isdir(source):
        source_location = source
    elif gitlibs.is_git_source(source):
        if not workdir:
            raise SourceParsingError(
                "A working directory is required to clone a git source",
                context={"source": source},
            )
        source_location = gitlibs.clone_files(source, workdir)
    else:
        raise SourceParsingError(
            "Source is neither a folder nor a git URL", context={"source": source}
        )

    paths: List[str] = []
    if recursive:
        for root, dirs, files in os.walk(source_location):
            dirs[:] = [d for d in dirs if not d.startswith(".")]
            paths.extend(os.path.join(root, f) for f in files if f.lower().endswith(".tf"))
    else:
        paths = [
            os.path.join(source_location, f)
            for f in os.listdir(source_location)
            if f.lower().endswith(".tf")
        ]

    if not paths:
        raise SourceParsingError(
            "No Terraform .tf files found in source location",
            context={"source": source},
        )
    click.echo(f"  Added Source Location: {source}")
    return sorted(paths)


def _unquote(text: str) -> str:
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    return text


def normalize_value(value: Any, path: str) -> Any:
    """Turn python-hcl2 output into plain attribute values.

    Strips the quotes some python-hcl2 releases keep around strings and drops
    the ``__start_line__``/``__end_line__`` metadata keys. Interpolated
    expressions cannot be resolved here and are rejected.
    """
    if isinstance(value, dict):
        return {
            _unquote(k): normalize_value(v, f"{path}.{_unquote(k)}")
            for k, v in value.items()
            if not (k.startswith("__") and k.endswith("__"))
        }
    if isinstance(value, list):
        return [normalize_value(v, f"{path}[{i}]") for i, v in enumerate(value)]
    if isinstance(value, str):
        value = _unquote(value)
        if "${" in value:
            raise SourceParsingError(
                f"{path}: interpolated expressions are not supported, use literal values",
                context={"value": value},
            )
    return value


def parse_file(filename: str) -> Dict[str, Any]:
    """Parse one .tf file with python-hcl2.

    Raises:
        SourceParsingError: On unreadable files or invalid HCL2 syntax
    """
    click.echo(f"  Parsing {filename}")
    try:
        with click.open_file(filename, "r", encoding="utf8") as f:
            return hcl2.load(f)
    except OSError as e:
        raise SourceParsingError(
            f"Cannot read Terraform file: {e}", context={"file": filename}
        ) from e
    except Exception as e:
        # python-hcl2 surfaces lark parse errors of several types
        raise SourceParsingError(
            f"A Terraform HCL parsing error occurred: {e}", context={"file": filename}
        ) from e


def extract_policies(hcl_dict: Dict[str, Any], filename: str) -> Dict[str, Dict[str, Any]]:
    """Extract firewall policy blocks from one parsed file.

    Args:
        hcl_dict: python-hcl2 output for the file
        filename: File name used in errors

    Returns:
        Mapping of resource address to attribute map
    """
    policies: Dict[str, Dict[str, Any]] = {}
    for stanza in hcl_dict.get("resource", []):
        for resource_type, instances in stanza.items():
            if normalize_value(resource_type, "resource") != schema.RESOURCE_TYPE:
                continue
            if not isinstance(instances, dict):
                raise SourceParsingError(
                    f"{schema.RESOURCE_TYPE} block without a name label",
                    context={"file": filename},
                )
            for label, attributes in instances.items():
                label = normalize_value(label, "resource")
                address = f"{schema.RESOURCE_TYPE}.{label}"
                policies[address] = normalize_value(attributes, address)
    return policies


def read_policies(paths: List[str]) -> Dict[str, Dict[str, Any]]:
    """Parse every file and collect firewall policy blocks.

    Raises:
        SourceParsingError: On parse errors or duplicate resource addresses
    """
    policies: Dict[str, Dict[str, Any]] = {}
    for filename in paths:
        found = extract_policies(parse_file(filename), filename)
        for address in found:
            if address in policies:
                raise SourceParsingError(
                    f"Duplicate resource {address}", context={"file": filename}
                )
        policies.update(found)
        if found:
            click.echo(
                click.style(
                    f"    Found {len(found)} {schema.RESOURCE_TYPE} stanza(s)",
                    fg="green",
                )
            )
    logger.info(f"Parsed {len(policies)} firewall policy resource(s)")
    return policies
