"""Preparation of the build output directory."""

import json
import logging
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ampere.domain.models import BuildOptions
from ampere.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ReplacementMain:
    """A generated entry point that wraps the app's own entry point.

    ``content`` receives the original entry point's path relative to the
    replacement's directory and returns the file content.
    """

    main: str
    content: Callable[[str], str]


@dataclass
class OutputPaths:
    """Resolved paths of a prepared output directory."""

    output_path: Path
    main_path: Path
    original_main_path: Path
    package_json_path: Path


def setup_build_output_path(
    options: BuildOptions,
    workspace_root: Path,
    replace_main: ReplacementMain | None = None,
) -> OutputPaths:
    """Prepare the output directory and write its package.json.

    Args:
        options: Validated build options.
        workspace_root: Directory relative paths in options are resolved against.
        replace_main: Optional replacement entry point to write.

    Returns:
        OutputPaths with the entry point package.json points at.

    Raises:
        ConfigurationError: If the source package.json does not exist.
    """
    source_package_json = (workspace_root / options.package_json_path).resolve()
    if not source_package_json.is_file():
        raise ConfigurationError(f"package.json file could not be found: {source_package_json}")

    output_path = (workspace_root / options.output_path).resolve()
    original_main_path = (output_path / options.main).resolve()
    main_path = original_main_path

    if options.clean_output_path and output_path.exists():
        logger.debug(f"Cleaning output path {output_path}")
        shutil.rmtree(output_path)
    output_path.mkdir(parents=True, exist_ok=True)

    if replace_main:
        replacement = (output_path / replace_main.main).resolve()
        replacement.parent.mkdir(parents=True, exist_ok=True)
        relative = Path(os.path.relpath(original_main_path, replacement.parent)).as_posix()
        replacement.write_text(replace_main.content(relative), encoding="utf-8")
        main_path = replacement

    package_json = json.loads(source_package_json.read_text(encoding="utf-8"))
    package_json["main"] = Path(os.path.relpath(main_path, output_path)).as_posix()
    package_json_path = output_path / "package.json"
    package_json_path.write_text(json.dumps(package_json, indent=2) + "\n", encoding="utf-8")

    return OutputPaths(
        output_path=output_path,
        main_path=main_path,
        original_main_path=original_main_path,
        package_json_path=package_json_path,
    )
