import pytest

from jsunravel.transformers.demangle import proxy_template
from jsunravel.util.walk import iter_nodes


def _function(run_passes, source):
    program = run_passes(source).ast
    return next(node for node in iter_nodes(program)
                if node.type in ('FunctionDeclaration', 'FunctionExpression', 'ArrowFunctionExpression'))


@pytest.mark.parametrize('source', [
    'function p(a, b) { return a + b; }',
    'function p(a, b) { return a(b); }',
    'function p(a, b, c) { return a[b] === c; }',
    'var p = (a, b) => a !== b;',
])
def test_proxy_templates(run_passes, source):
    assert proxy_template(_function(run_passes, source)) is not None


@pytest.mark.parametrize('source', [
    'function p(a, b) { return b + a; }',
    'function p(a) { return a + a; }',
    'function p(a, b) { return a; }',
    'function p(a) { g(); return a; }',
    'function p(a) { return this[a]; }',
    'function p(a) { return a || x; }',
    'function p({a}) { return a; }',
])
def test_not_proxies(run_passes, source):
    assert proxy_template(_function(run_passes, source)) is None


def test_proxy_function_calls_are_inlined(run_passes, normalize):
    source = 'function _0x1(a, b) { return a + b; } var x = _0x1(1, y) * _0x1(2, 3);'
    context = run_passes(source, 'Demangle')
    assert normalize(context.ast) == normalize('var x = (1 + y) * (2 + 3);')
    assert context.obfuscations == [{'transformer': 'Demangle', 'proxies': 1, 'inlined': 2, 'voids': 0}]


def test_proxy_map_members_are_inlined(run_passes, normalize):
    source = """
    var _0xm = {'abc': function (a, b) { return a(b); }, 'def': 'str', ghi: function (a, b) { return a < b; }};
    var r = _0xm['abc'](f, 1) + _0xm['def'];
    var s = _0xm.ghi(r, 2);
    """
    context = run_passes(source, 'Demangle')
    assert normalize(context.ast) == normalize("var r = f(1) + 'str'; var s = r < 2;")


def test_proxy_with_other_uses_is_kept(run_passes, normalize):
    source = 'function p(a, b) { return a + b; } x = p(1, 2); y = p;'
    context = run_passes(source, 'Demangle')
    assert normalize(context.ast) == normalize('function p(a, b) { return a + b; } x = 1 + 2; y = p;')


def test_reassigned_proxy_is_not_inlined(run_passes, normalize):
    source = 'function p(a, b) { return a + b; } p = q; x = p(1, 2);'
    context = run_passes(source, 'Demangle')
    assert normalize(context.ast) == normalize(source)


def test_void_becomes_undefined(run_passes, normalize):
    context = run_passes('x = void 0; y = void 1;', 'Demangle')
    assert normalize(context.ast) == normalize('x = undefined; y = undefined;')
    assert context.obfuscations[0]['voids'] == 2


def test_void_kept_when_undefined_is_rebound(run_passes, normalize):
    source = 'function f(undefined) { return void 0; }'
    context = run_passes(source, 'Demangle')
    assert normalize(context.ast) == normalize(source)
