"""Tests for rendering configuration loading."""

import pytest
from pydantic import ValidationError

from lazystache import ContentType, MissingPolicy, RenderConfig, load_render_config


class TestRenderConfig:
    """Test the RenderConfig model."""

    def test_defaults(self):
        config = RenderConfig()
        assert config.content_type is ContentType.HTML
        assert config.missing is MissingPolicy.EMPTY
        assert config.standard_library is True
        assert config.cache_size == 128
        assert config.template_name is None

    def test_string_values(self):
        config = RenderConfig(content_type="text", missing="fail")
        assert config.content_type is ContentType.TEXT
        assert config.missing is MissingPolicy.FAIL

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            RenderConfig(missing="ignore")
        with pytest.raises(ValidationError):
            RenderConfig(cache_size=-1)


class TestLoadRenderConfig:
    """Test load_render_config."""

    def test_load_yaml(self, write_file):
        path = write_file(
            "render.yaml",
            "content_type: text\nmissing: fail\ncache_size: 4\ntemplate_name: mail\n",
        )
        config = load_render_config(path)

        assert config.content_type is ContentType.TEXT
        assert config.missing is MissingPolicy.FAIL
        assert config.cache_size == 4
        assert config.template_name == "mail"

    def test_empty_file_gives_defaults(self, write_file):
        assert load_render_config(write_file("empty.yml", "")) == RenderConfig()

    def test_wrong_extension(self, write_file):
        with pytest.raises(ValueError, match="Invalid file extension"):
            load_render_config(write_file("render.json", "{}"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_render_config(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, write_file):
        with pytest.raises(ValueError, match="Failed to parse YAML"):
            load_render_config(write_file("bad.yaml", "missing: [unclosed\n"))

    def test_not_a_mapping(self, write_file):
        with pytest.raises(ValueError, match="must be a mapping"):
            load_render_config(write_file("list.yaml", "- a\n- b\n"))

    def test_schema_errors(self, write_file):
        with pytest.raises(ValueError, match="Configuration validation failed"):
            load_render_config(write_file("bad_values.yaml", "missing: sometimes\n"))
