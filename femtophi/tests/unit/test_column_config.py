"""
Unit tests for ColumnConfig.

Tests loading of the table schema, branch lookups and column validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from femtophi.modules.column_config import ColumnConfig
from femtophi.modules.exceptions import ColumnMissingError, ConfigurationError


@pytest.fixture
def columns_file(tmp_test_dir: Path) -> Path:
    config_file = tmp_test_dir / "columns.toml"
    config_file.write_text(
        "[tables.particles]\n"
        "tree = \"O2fdparticle\"\n"
        "[tables.particles.required]\n"
        "pt = \"fPt\"\n"
        "eta = \"fEta\"\n"
        "[tables.particles.optional]\n"
        "mass = \"fMLambda\"\n"
    )
    return config_file


@pytest.mark.unit
class TestColumnConfigLoading:
    """Test configuration loading."""

    def test_packaged_default(self) -> None:
        config = ColumnConfig()

        assert set(config.tables) == {"collisions", "particles", "extparticles"}
        assert config.tree_name("particles") == "O2fdparticle"
        assert config.tree_name("collisions") == "O2fdcollision"

    def test_custom_file(self, columns_file: Path) -> None:
        config = ColumnConfig(columns_file)

        assert config.tables == ["particles"]
        assert config.columns("particles") == {"pt": "fPt", "eta": "fEta", "mass": "fMLambda"}
        assert config.columns("particles", optional=False) == {"pt": "fPt", "eta": "fEta"}
        assert config.branches("particles") == ["fPt", "fEta", "fMLambda"]
        assert config.rename_map("particles")["fMLambda"] == "mass"

    def test_missing_file(self, tmp_test_dir: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            ColumnConfig(tmp_test_dir / "nope.toml")

    def test_invalid_toml(self, tmp_test_dir: Path) -> None:
        bad = tmp_test_dir / "bad.toml"
        bad.write_text("[tables\n")
        with pytest.raises(ConfigurationError, match="parsing"):
            ColumnConfig(bad)

    def test_missing_tables_section(self, tmp_test_dir: Path) -> None:
        bad = tmp_test_dir / "bad.toml"
        bad.write_text("[other]\nkey = 1\n")
        with pytest.raises(ConfigurationError, match="tables"):
            ColumnConfig(bad)

    def test_missing_tree_name(self, tmp_test_dir: Path) -> None:
        bad = tmp_test_dir / "bad.toml"
        bad.write_text("[tables.particles.required]\npt = \"fPt\"\n")
        with pytest.raises(ConfigurationError, match="tree"):
            ColumnConfig(bad)

    def test_unknown_table(self) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            ColumnConfig().tree_name("tracks")


@pytest.mark.unit
class TestColumnValidation:
    """Test validation against available branches."""

    def test_all_present(self, columns_file: Path) -> None:
        result = ColumnConfig(columns_file).validate("particles", ["fPt", "fEta", "fMLambda", "fOther"])

        assert result["valid"] == ["fPt", "fEta", "fMLambda"]
        assert result["missing_required"] == []
        assert result["missing_optional"] == []

    def test_missing_optional_warns(self, columns_file: Path, caplog) -> None:
        with caplog.at_level("WARNING", logger="FemtoPhi.ColumnConfig"):
            result = ColumnConfig(columns_file).validate("particles", ["fPt", "fEta"])

        assert result["missing_optional"] == ["mass"]
        assert "optional" in caplog.text

    def test_missing_required_raises(self, columns_file: Path) -> None:
        with pytest.raises(ColumnMissingError) as exc_info:
            ColumnConfig(columns_file).validate("particles", ["fEta"])

        assert exc_info.value.column == "fPt"
        assert exc_info.value.tree == "O2fdparticle"
