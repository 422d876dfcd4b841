import re
from contextlib import ExitStack
from unittest.mock import MagicMock, patch

import esprima
import pytest

from jsunravel import transformers
from jsunravel.exceptions import ParseError, UnknownTransformerError
from jsunravel.models.options import DeobfuscateOptions
from jsunravel.services.deobfuscator import DEFAULT_TRANSFORMERS, Deobfuscator, source_hash
from jsunravel.services.parser_service import parser_service
from jsunravel.transformers import Transformer
from jsunravel.transformers.dead_code import DeadCode
from jsunravel.transformers.rename import Rename
from jsunravel.transformers.simplify import Simplify

OBFUSCATED = """
var _0x4e36 = ['log', 'Hello\\x20World', 'warn'];
var _0x2d8f = function (_0x3a2b, _0x1f2d) {
    _0x3a2b = _0x3a2b - 0x0;
    var _0x4e3b = _0x4e36[_0x3a2b];
    return _0x4e3b;
};
var _0xmap = {'vPqFh': function (_0x1, _0x2) { return _0x1 + _0x2; }};
if (!![]) {
    console[_0x2d8f('0x0')](_0xmap['vPqFh'](_0x2d8f('0x1'), '!'));
} else {
    console[_0x2d8f('0x2')]('never');
}
"""


class Recorder(Transformer):
    name = 'Recorder'

    def transform(self, context):
        context.obfuscations.append({'transformer': self.name, 'seen': context.ast.type})


class Boom(Transformer):
    name = 'Boom'

    def transform(self, context):
        raise RuntimeError('pass exploded')


@pytest.fixture(autouse=True)
def test_transformers():
    with patch.dict(transformers._registry, {'Recorder': Recorder, 'Boom': Boom}):
        yield


@pytest.fixture
def deobfuscator():
    return Deobfuscator()


def test_default_pipeline_order():
    assert [name for name, _ in DEFAULT_TRANSFORMERS] == [
        'Simplify', 'MemberExpressionCleaner', 'LiteralMap', 'DeadCode', 'Demangle',
        'StringDecoder', 'Simplify', 'MemberExpressionCleaner', 'Desequence', 'ControlFlow',
        'Desequence', 'MemberExpressionCleaner', 'Simplify', 'DeadCode', 'Simplify', 'DeadCode',
    ]


def test_end_to_end(deobfuscator):
    result = deobfuscator.deobfuscate_source_with_details(OBFUSCATED)
    assert '_0x4e36' not in result.source
    assert '_0xmap' not in result.source
    assert 'never' not in result.source
    assert re.search(r"console\.log\(['\"]Hello World!['\"]\)", result.source)
    names = {finding['transformer'] for finding in result.obfuscations}
    assert {'StringDecoder', 'Demangle', 'DeadCode'} <= names
    esprima.parseScript(result.source)


def test_output_reparses_in_resolved_mode(deobfuscator):
    source = "const c = a['d'];"
    result = deobfuscator.deobfuscate_source(source)
    esprima.parseModule(result)
    assert 'a.d' in result


def test_every_default_pass_runs_in_order(deobfuscator):
    calls = []

    def spy(self, context):
        calls.append(self.name)

    with ExitStack() as stack:
        for name in {name for name, _ in DEFAULT_TRANSFORMERS}:
            stack.enter_context(patch.object(transformers.get_transformer(name), 'transform', spy))
        deobfuscator.deobfuscate_source('a;', {'format': False})
    assert calls == [name for name, _ in DEFAULT_TRANSFORMERS]


def test_custom_transformers_replace_default_list(deobfuscator):
    program = esprima.parseScript('var a = 1 + 2;', range=True)
    with patch.object(Simplify, 'transform') as simplify:
        result = deobfuscator.deobfuscate_node_with_details(
            program, DeobfuscateOptions(custom_transformers=[('Recorder', {})]))
    simplify.assert_not_called()
    assert result.program is program
    assert result.obfuscations == [{'transformer': 'Recorder', 'seen': 'Program'}]
    assert result.program.body[0].declarations[0].init.type == 'BinaryExpression'


def test_custom_transformers_accept_bare_names(deobfuscator):
    program = esprima.parseScript('a;')
    result = deobfuscator.deobfuscate_node_with_details(program, {'customTransformers': ['Recorder']})
    assert result.obfuscations[0]['transformer'] == 'Recorder'


def test_unknown_transformer_fails_before_any_pass(deobfuscator):
    program = esprima.parseScript('a;')
    with patch.object(Recorder, 'transform') as recorder:
        with pytest.raises(UnknownTransformerError):
            deobfuscator.deobfuscate_node(program, {'customTransformers': ['Recorder', 'Nope']})
    recorder.assert_not_called()


def test_failing_pass_aborts_the_run(deobfuscator):
    options = DeobfuscateOptions(custom_transformers=['Simplify', 'Recorder', 'Boom', 'DeadCode'])
    with patch.object(DeadCode, 'transform') as dead_code:
        with pytest.raises(RuntimeError, match='pass exploded'):
            deobfuscator.deobfuscate_source('var a = 1 + 2;', options)
    dead_code.assert_not_called()


def test_parse_errors_propagate(deobfuscator):
    with pytest.raises(ParseError):
        deobfuscator.deobfuscate_source('function (')


def test_fixed_module_rejects_script_only_source(deobfuscator):
    with pytest.raises(ParseError):
        deobfuscator.deobfuscate_source('with (a) { b; }', {'sourceType': 'module'})


def test_script_only_source_resolves_to_script_everywhere(deobfuscator):
    with patch.object(parser_service, '_parse', wraps=parser_service._parse) as spy:
        result = deobfuscator.deobfuscate_source('with (a) { b; }', {'rename': True})
    assert [c.args[1] for c in spy.call_args_list] == ['module', 'script', 'script', 'script']
    assert 'with' in result


def test_callers_options_are_not_mutated(deobfuscator):
    options = DeobfuscateOptions()
    deobfuscator.deobfuscate_source('with (a) { b; }', options)
    assert options.source_type == 'both'
    assert options.logger is None


def test_rename_replaces_every_reference(deobfuscator):
    source = 'function area(sideLength) { var squared = sideLength * sideLength; return squared; }'
    result = deobfuscator.deobfuscate_source_with_details(source, {'rename': True})
    assert 'sideLength' not in result.source
    assert 'squared' not in result.source
    assert len(re.findall(r'\barg1\b', result.source)) == 3
    assert len(re.findall(r'\bval1\b', result.source)) == 2
    assert 'function area(' in result.source
    esprima.parseScript(result.source)


def test_rename_stage_gets_fresh_tree_and_hash(deobfuscator):
    seen = {}

    def spy(self, context):
        seen['hash'] = context.hash
        seen['transformers'] = [t.name for t in context.transformers]
        seen['ranges'] = context.ast.body[0].range is not None

    program = esprima.parseScript('function f(a) { return a; }')
    with patch.object(Rename, 'transform', spy), \
            patch('jsunravel.services.codegen_service.generate', return_value='function f(a) { return a; }'):
        result = deobfuscator.deobfuscate_node(program, {'rename': True, 'customTransformers': ['Recorder']})
    assert result is not program
    assert seen == {
        'hash': source_hash('function f(a) { return a; }'),
        'transformers': ['Rename'],
        'ranges': True,
    }


def test_rename_keeps_main_findings(deobfuscator):
    result = deobfuscator.deobfuscate_node_with_details(
        esprima.parseScript('function f(a) { return a; }'),
        {'rename': True, 'customTransformers': ['Recorder']})
    assert [f['transformer'] for f in result.obfuscations] == ['Recorder', 'Rename']
    assert result.obfuscations[1]['hash'] is not None


def test_formatting_failure_returns_unformatted_text(deobfuscator):
    logger = MagicMock()
    options = DeobfuscateOptions(custom_transformers=['Simplify'], logger=logger)
    with patch('jsunravel.services.codegen_service.generate', return_value='var = ;'):
        result = deobfuscator.deobfuscate_source_with_details('var a = 1 + 2;', options)
    assert result.source == 'var = ;'
    assert result.obfuscations == [{'transformer': 'Simplify', 'folded': 1}]
    logger.error.assert_called_once()


def test_quiet_silences_progress_and_formatter_errors(deobfuscator):
    logger = MagicMock()
    options = DeobfuscateOptions(quiet=True, logger=logger)
    with patch('jsunravel.services.codegen_service.generate', return_value='var = ;'):
        deobfuscator.deobfuscate_source('a;', options)
    logger.info.assert_not_called()
    logger.error.assert_not_called()


def test_progress_is_logged(deobfuscator):
    logger = MagicMock()
    deobfuscator.deobfuscate_source('a;', DeobfuscateOptions(custom_transformers=['Recorder'], logger=logger))
    logger.info.assert_any_call('Running %s transformer', 'Recorder')


def test_formatter_is_skipped_when_disabled(deobfuscator):
    with patch('jsunravel.services.codegen_service.format_source') as format_source:
        deobfuscator.deobfuscate_source('a;', {'format': False})
    format_source.assert_not_called()
