"""Tests for cdalens.config module."""

from cdalens.config import (
    DEFAULT_CONFIG_TEMPLATE,
    _default_config,
    load_config,
    source_config,
    write_default_config,
)


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path, capsys):
        config = load_config(str(tmp_path / "nope.toml"))
        assert config == _default_config()
        assert "not found" in capsys.readouterr().err

    def test_missing_file_quiet(self, tmp_path, capsys):
        load_config(str(tmp_path / "nope.toml"), quiet=True)
        assert capsys.readouterr().err == ""

    def test_overlay_keeps_other_defaults(self, tmp_path):
        path = tmp_path / "cdalens.toml"
        path.write_text("[statistics]\ntop_n = 3\n\n[extraction]\nstrict_numeric = true\n")
        config = load_config(str(path))
        assert config["statistics"]["top_n"] == 3
        assert config["extraction"]["strict_numeric"] is True
        assert config["extraction"]["recover_xml"] is False
        assert config["analysis"]["max_relationships"] == 10

    def test_unknown_tables_ignored(self, tmp_path):
        path = tmp_path / "cdalens.toml"
        path.write_text("[hugo]\ndashboard_recent_labs = 10\n")
        assert load_config(str(path)) == _default_config()


class TestWriteDefaultConfig:
    def test_round_trip(self, tmp_path):
        path = write_default_config(str(tmp_path / "cdalens.toml"))
        assert load_config(path) == _default_config()

    def test_template_is_commented(self):
        assert DEFAULT_CONFIG_TEMPLATE.startswith("# cdalens configuration")


class TestSourceConfig:
    def test_from_config(self):
        config = _default_config()
        config["extraction"]["recover_xml"] = True
        config["batch"]["file_pattern"] = r".*\.cda$"
        sc = source_config(config)
        assert sc.recover_xml is True
        assert sc.file_pattern == r".*\.cda$"
