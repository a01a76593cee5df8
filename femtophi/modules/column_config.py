"""
Column configuration manager

Handles loading and parsing the input table schema from columns.toml
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import tomli

from .exceptions import ColumnMissingError, ConfigurationError

DEFAULT_COLUMNS_PATH = Path(__file__).resolve().parent.parent / "config" / "columns.toml"


class ColumnConfig:
    """Manager for the input table schema.

    Attributes:
        logger: Logger instance for this class
        config: Loaded TOML configuration dictionary
        tables: Names of the configured tables
    """

    def __init__(self, config_path: str | Path | None = None) -> None:
        """
        Initialize column configuration.

        Args:
            config_path: Path to columns.toml (packaged default if None)

        Raises:
            ConfigurationError: If configuration file not found or malformed
        """
        self.logger: logging.Logger = logging.getLogger("FemtoPhi.ColumnConfig")

        config_path = DEFAULT_COLUMNS_PATH if config_path is None else Path(config_path)

        if not config_path.exists():
            raise ConfigurationError(
                f"Column configuration file not found: {config_path}\n"
                f"Expected location: {DEFAULT_COLUMNS_PATH}"
            )

        try:
            with open(config_path, "rb") as f:
                self.config: dict[str, Any] = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Error parsing TOML file {config_path}: {e}")

        if "tables" not in self.config:
            raise ConfigurationError(
                f"{config_path} has no [tables] section"
            )
        for table, entry in self.config["tables"].items():
            if "tree" not in entry:
                raise ConfigurationError(f"Table '{table}' in {config_path} has no tree name")

        self.tables: list[str] = list(self.config["tables"])
        self.logger.debug(f"Loaded column configuration from {config_path}")

    def _table(self, table: str) -> dict[str, Any]:
        if table not in self.config["tables"]:
            raise ConfigurationError(
                f"Table '{table}' not found in column configuration.\n"
                f"Available tables: {self.tables}"
            )
        return self.config["tables"][table]

    def tree_name(self, table: str) -> str:
        """Name of the tree holding ``table``"""
        return self._table(table)["tree"]

    def columns(self, table: str, optional: bool = True) -> dict[str, str]:
        """
        Logical column name -> branch name

        Parameters:
        - table: Table name (e.g. 'particles')
        - optional: Include optional columns

        Returns:
        - Dictionary of logical name to branch name
        """
        entry = self._table(table)
        mapping = dict(entry.get("required", {}))
        if optional:
            mapping.update(entry.get("optional", {}))
        return mapping

    def branches(self, table: str, optional: bool = True) -> list[str]:
        """Branch names to read for ``table``"""
        return list(self.columns(table, optional=optional).values())

    def rename_map(self, table: str) -> dict[str, str]:
        """Branch name -> logical name, for renaming after loading"""
        return {branch: name for name, branch in self.columns(table).items()}

    def validate(self, table: str, available_branches: list[str]) -> dict[str, Any]:
        """
        Check which columns of ``table`` exist in the file.

        Args:
            table: Table name
            available_branches: Branches present in the tree

        Returns:
            Dictionary with keys:
                - 'valid': List of found branches
                - 'missing_required': Logical names of missing required columns
                - 'missing_optional': Logical names of missing optional columns

        Raises:
            ColumnMissingError: If a required column is missing
        """
        entry = self._table(table)
        available = set(available_branches)

        missing_required = [
            name for name, branch in entry.get("required", {}).items() if branch not in available
        ]
        missing_optional = [
            name for name, branch in entry.get("optional", {}).items() if branch not in available
        ]
        valid = [branch for branch in self.branches(table) if branch in available]

        if missing_required:
            first = missing_required[0]
            raise ColumnMissingError(entry["required"][first], self.tree_name(table))

        if missing_optional:
            self.logger.warning(
                f"Missing {len(missing_optional)} optional columns in {self.tree_name(table)}: "
                f"{missing_optional[:5]}..."
            )

        return {
            "valid": valid,
            "missing_required": missing_required,
            "missing_optional": missing_optional,
        }
