import re

import escodegen
import esprima
import pytest
from esprima.nodes import Node

from jsunravel.main import create_app
from jsunravel.models.context import Context


@pytest.fixture(scope='function')
def app():
    """Create a fresh app instance for each test"""
    app = create_app(testing=True)

    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


# Attributes that differ between parsed and synthesized nodes without changing meaning
IGNORED_FIELDS = ('range', 'loc', 'raw', 'directive', 'leadingComments', 'trailingComments', 'innerComments')


def shape(value):
    """Plain-data view of a tree: positions dropped, numbers as floats, None fields omitted."""
    if isinstance(value, Node):
        return {
            field: shape(item) for field, item in vars(value).items()
            if field not in IGNORED_FIELDS and item is not None
        }
    if isinstance(value, list):
        return [shape(item) for item in value]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return value


@pytest.fixture
def normalize():
    """Comparable form of a tree, or of the tree of a script source."""
    def _normalize(tree_or_source):
        if isinstance(tree_or_source, str):
            tree_or_source = esprima.parseScript(tree_or_source)
        return shape(tree_or_source)
    return _normalize


@pytest.fixture
def generate():
    def _generate(tree):
        return re.sub(r'\s+', ' ', escodegen.generate(tree)).strip()
    return _generate


@pytest.fixture
def run_passes():
    """Parse a script and run the named passes over it, returning the context."""
    def _run(source, *names, options=None, is_module=False):
        parse = esprima.parseModule if is_module else esprima.parseScript
        program = parse(source, range=True)
        options = options or {}
        context = Context(program, [(name, options.get(name, {})) for name in names], is_module=is_module)
        for transformer in context.transformers:
            transformer.instance.transform(context)
        return context
    return _run
