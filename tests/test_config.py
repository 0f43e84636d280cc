from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from rsmap.cli import app
from rsmap.config import ConfigError, load_config, serialize_config
from rsmap.errors import CONFIG_001, CONFIG_002, CONFIG_003


def test_default_config_loads_without_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    config = load_config()
    assert config.output_dir == Path(".codebase-index")
    assert config.cache_file == "cache.json"
    assert config.relationships.hotspot_min_modules == 3
    assert "Option" in config.relationships.type_stoplist


def test_yaml_overrides_and_cli_overrides(tmp_path: Path) -> None:
    config_path = tmp_path / "rsmap.yaml"
    config_path.write_text(
        yaml.safe_dump({"output_dir": "docs/index", "relationships": {"hotspot_min_modules": 2}}),
        encoding="utf-8",
    )
    config = load_config(config_path, {"relationships": {"type_stoplist": ["Value"]}})
    assert config.output_dir == Path("docs/index")
    assert config.relationships.hotspot_min_modules == 2
    assert config.relationships.type_stoplist == ["Value"]


def test_config_found_in_project_directory(tmp_path: Path) -> None:
    (tmp_path / "rsmap.yaml").write_text("use_cargo_metadata: false\n", encoding="utf-8")
    assert load_config(project_path=tmp_path).use_cargo_metadata is False


def test_resolve_output_dir(tmp_path: Path) -> None:
    config = load_config(project_path=tmp_path)
    assert config.resolve_output_dir(tmp_path) == tmp_path / ".codebase-index"
    absolute = load_config(project_path=tmp_path, overrides={"output_dir": str(tmp_path / "out")})
    assert absolute.resolve_output_dir(Path("/elsewhere")) == tmp_path / "out"


@pytest.mark.parametrize(
    ("content", "code"),
    [
        ("output_dir: [unclosed\n", CONFIG_002),
        ("- just\n- a list\n", CONFIG_003),
        ("relationships:\n  hotspot_min_modules: 0\n", CONFIG_003),
        ("log_level: LOUD\n", CONFIG_003),
    ],
)
def test_invalid_config_codes(tmp_path: Path, content: str, code: str) -> None:
    config_path = tmp_path / "rsmap.yaml"
    config_path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_config(config_path)
    assert excinfo.value.code == code


def test_missing_explicit_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path / "nope.yaml")
    assert excinfo.value.code == CONFIG_001


def test_invalid_yaml_type_exits_with_config_003(tmp_path: Path) -> None:
    config_path = tmp_path / "rsmap.yaml"
    config_path.write_text("relationships:\n  hotspot_min_modules: nope\n", encoding="utf-8")
    result = CliRunner().invoke(app, ["config", "--config", str(config_path)])
    assert result.exit_code == 1
    assert CONFIG_003 in result.output


def test_serialize_config_is_plain_data(tmp_path: Path) -> None:
    payload = serialize_config(load_config(project_path=tmp_path))
    assert payload["output_dir"] == ".codebase-index"
    assert yaml.safe_load(yaml.safe_dump(payload)) == payload
