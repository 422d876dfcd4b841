import esprima
import pytest

from jsunravel.exceptions import TransformerError
from jsunravel.models.context import Context
from jsunravel.transformers.rename import NameGenerator, name_hint
from jsunravel.util.scope import analyze


def test_locals_get_hinted_names(run_passes, normalize):
    source = """
    function outer(_0x1, _0x2) {
        var _0x3 = [];
        var _0x4 = {};
        var _0x5 = 'text';
        var _0x6 = function () {};
        var _0x7 = new Date();
        try { _0x1(); } catch (_0x8) { _0x2(_0x8); }
        return [_0x3, _0x4, _0x5, _0x6, _0x7];
    }
    """
    context = run_passes(source, 'Rename')
    expected = """
    function outer(arg1, arg2) {
        var arr1 = [];
        var obj1 = {};
        var str1 = 'text';
        var func1 = function () {};
        var date1 = new Date();
        try { arg1(); } catch (err1) { arg2(err1); }
        return [arr1, obj1, str1, func1, date1];
    }
    """
    assert normalize(context.ast) == normalize(expected)
    assert context.obfuscations == [{'transformer': 'Rename', 'renamed': 8, 'hash': None}]


def test_top_level_bindings_are_kept(run_passes, normalize):
    source = 'var a = 1; function b(c) { return c + a; }'
    context = run_passes(source, 'Rename')
    assert normalize(context.ast) == normalize('var a = 1; function b(arg1) { return arg1 + a; }')


def test_generated_names_avoid_existing_ones(run_passes, normalize):
    source = 'function f(a) { return arg1(a); }'
    context = run_passes(source, 'Rename')
    assert normalize(context.ast) == normalize('function f(arg2) { return arg1(arg2); }')


def test_shorthand_properties_keep_their_keys(run_passes, normalize):
    source = 'function f(a) { var {b} = a; return {a, b}; }'
    context = run_passes(source, 'Rename')
    expected = 'function f(arg1) { var {b: val1} = arg1; return {a: arg1, b: val1}; }'
    assert normalize(context.ast) == normalize(expected)


def test_dynamic_scopes_are_skipped(run_passes, normalize):
    source = "function f(a) { eval('a'); return a; } function g(b) { with (b) { c; } }"
    context = run_passes(source, 'Rename')
    assert normalize(context.ast) == normalize(source)
    assert context.obfuscations == []


def test_mangled_only(run_passes, normalize):
    source = 'function f(_0xabc, total) { return _0xabc + total; }'
    context = run_passes(source, 'Rename', options={'Rename': {'mangled_only': True}})
    assert normalize(context.ast) == normalize('function f(arg1, total) { return arg1 + total; }')


def test_requires_ranges():
    program = esprima.parseScript('function f(a) { return a; }')
    context = Context(program, [('Rename', {})])
    with pytest.raises(TransformerError):
        context.transformers[0].instance.transform(context)


def test_records_context_hash():
    program = esprima.parseScript('function f(a) { return a; }', range=True)
    context = Context(program, [('Rename', {})], hash=1234)
    context.transformers[0].instance.transform(context)
    assert context.obfuscations[0]['hash'] == 1234


def test_name_hints_for_require():
    program = esprima.parseScript("function f() { var x = require('./lib/fs-extra'); }", range=True)
    binding = next(b for b in analyze(program).bindings() if b.name == 'x')
    assert name_hint(binding) == 'fs_extra'


def test_name_generator_skips_taken_names():
    generate = NameGenerator({'arg1', 'arg3'})
    assert [generate('arg'), generate('arg'), generate('class')] == ['arg2', 'arg4', 'class1']
