"""Shared pytest fixtures and configuration."""

from pathlib import Path

from pytest import fixture

from lazystache import (
    Context,
    RenderConfig,
    RenderingEngine,
    TemplateEngine,
    parse_template,
)


@fixture
def engine():
    """Provide a template engine with the default configuration."""
    return TemplateEngine()


@fixture
def strict_engine():
    """Provide a template engine that fails on unresolved identifiers."""
    return TemplateEngine(RenderConfig(missing="fail"))


@fixture
def render():
    """Render template source against data and filters with a bare engine."""

    def _render(source, data=None, filters=None, **config):
        nodes = parse_template(source)
        context = Context.root(data, filters)
        return RenderingEngine(RenderConfig(**config)).render(nodes, context)

    return _render


@fixture
def write_file(tmp_path):
    """Write a file under the test's temporary directory."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
