"""
Rewrite Configuration Store.

Settings are read from the ``[tool.with_chain]`` table of the nearest
``pyproject.toml`` and may be overridden programmatically or from the CLI.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

logger = logging.getLogger(__name__)

TOOL_SECTION = "with_chain"


class RewriteConfig(BaseModel):
  """
  Configuration container for the rewriter, engine and source expander.
  """

  block_name: str = Field(
    "_with_chain_block", description="Name of the function wrapping an emitted block."
  )
  macro_name: str = Field("with_chain", description="Callable name marking a macro site in source files.")
  annotate_immutable: bool = Field(
    True, description="Annotate non-`mut` receivers as `Final` so static checkers reject rebinding."
  )
  indent: str = Field("    ", description="Indentation used for the body of emitted blocks.")

  @field_validator("block_name", "macro_name")
  @classmethod
  def validate_identifier(cls, v: str) -> str:
    """
    Ensures names are usable as Python identifiers.

    Args:
        v (str): The configured name.

    Returns:
        str: The stripped name.

    Raises:
        ValueError: If the name is not an identifier.
    """
    v_clean = v.strip()
    if not v_clean.isidentifier():
      raise ValueError(f"Not a valid Python identifier: '{v_clean}'")
    return v_clean

  @field_validator("indent")
  @classmethod
  def validate_indent(cls, v: str) -> str:
    if not v or v.strip(" \t"):
      raise ValueError("indent must be a non-empty run of spaces or tabs")
    return v

  @classmethod
  def load(
    cls,
    block_name: Optional[str] = None,
    macro_name: Optional[str] = None,
    annotate_immutable: Optional[bool] = None,
    indent: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    search_path: Optional[Path] = None,
  ) -> "RewriteConfig":
    """
    Loads configuration from pyproject.toml and applies explicit overrides.

    Precedence, highest first: keyword arguments, `overrides`, TOML, defaults.

    Args:
        block_name (Optional[str]): Override for the block function name.
        macro_name (Optional[str]): Override for the macro site name.
        annotate_immutable (Optional[bool]): Override for `Final` annotation.
        indent (Optional[str]): Override for block indentation.
        overrides (Optional[Dict]): Extra settings, typically from ``--config``.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RewriteConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, toml_dir = _load_toml_settings(start_dir)
    if toml_dir:
      logger.debug("Loaded [tool.%s] from %s", TOOL_SECTION, toml_dir / "pyproject.toml")

    merged: Dict[str, Any] = {**toml_config, **(overrides or {})}
    explicit = {
      "block_name": block_name,
      "macro_name": macro_name,
      "annotate_immutable": annotate_immutable,
      "indent": indent,
    }
    merged.update({k: v for k, v in explicit.items() if v is not None})

    known = {k: v for k, v in merged.items() if k in cls.model_fields}
    for key in sorted(set(merged) - set(known)):
      logger.warning("Ignoring unknown setting '%s'", key)
    return cls(**known)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches `start_path` and its parents for 'pyproject.toml' and extracts config.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory it was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Could not read %s: %s", toml_path, e)
        return {}, None

      tool_section = data.get("tool", {})
      return tool_section.get(TOOL_SECTION, {}), parent

  return {}, None


def parse_cli_key_values(items: Optional[List[str]]) -> Dict[str, Any]:
  """
  Parses a list of 'key=value' strings into a dictionary.

  Booleans are recognised; everything else stays a string.

  Args:
      items (Optional[List[str]]): Raw CLI strings directly from argparse.

  Returns:
      Dict[str, Any]: Parsed dictionary.
  """
  if not items:
    return {}

  config: Dict[str, Any] = {}
  for item in items:
    if "=" not in item:
      logger.warning("Ignoring invalid config format: '%s'. Expected 'key=value'.", item)
      continue

    key, val_str = item.split("=", 1)
    key = key.strip()
    lowered = val_str.strip().lower()

    if lowered == "true":
      config[key] = True
    elif lowered == "false":
      config[key] = False
    else:
      config[key] = val_str

  return config
