import re

from jsunravel.exceptions import TransformerError
from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.nodes import identifier, is_literal, is_valid_binding_name
from jsunravel.util.scope import analyze
from jsunravel.util.walk import iter_nodes

# Names of the kind javascript-obfuscator and minifiers produce
MANGLED_RE = re.compile(r'^(_0x[0-9a-fA-F]+|[A-Za-z_$][0-9A-Za-z_$]?)$')

KIND_HINTS = {
    'param': 'arg',
    'function': 'func',
    'class': 'Cls',
    'catch': 'err',
}


def _camel(name):
    return name[:1].lower() + name[1:]


def name_hint(binding):
    """A readable prefix for a binding, from how it is declared."""
    hint = KIND_HINTS.get(binding.kind)
    if hint is not None:
        return hint
    declarator = binding.declaration
    if declarator is None or declarator.type != 'VariableDeclarator' or \
            declarator.id is not binding.identifiers[0]:
        return 'val'
    init = declarator.init
    if init is None:
        return 'val'
    if init.type in ('FunctionExpression', 'ArrowFunctionExpression'):
        return 'func'
    if init.type == 'ArrayExpression':
        return 'arr'
    if init.type == 'ObjectExpression':
        return 'obj'
    if init.type == 'ClassExpression':
        return 'Cls'
    if is_literal(init):
        if getattr(init, 'regex', None) is not None:
            return 're'
        if isinstance(init.value, bool):
            return 'flag'
        if isinstance(init.value, str):
            return 'str'
        if isinstance(init.value, (int, float)):
            return 'num'
    if init.type == 'NewExpression' and init.callee.type == 'Identifier':
        return _camel(init.callee.name)
    if init.type == 'CallExpression' and init.callee.type == 'Identifier' \
            and init.callee.name == 'require' and init.arguments and is_literal(init.arguments[0], str):
        module = re.sub(r'[^0-9A-Za-z_$]', '_', init.arguments[0].value.rsplit('/', 1)[-1])
        return _camel(module) or 'val'
    return 'val'


class NameGenerator:
    """Hands out names that occur nowhere else in the program."""

    def __init__(self, taken):
        self.taken = set(taken)
        self.counters = {}

    def __call__(self, hint):
        if not is_valid_binding_name(hint + '1'):
            hint = 'val'
        while True:
            self.counters[hint] = self.counters.get(hint, 0) + 1
            candidate = f'{hint}{self.counters[hint]}'
            if candidate not in self.taken and is_valid_binding_name(candidate):
                self.taken.add(candidate)
                return candidate


@register
class Rename(Transformer):
    """Give local bindings readable, program-wide unique names.

    Top-level bindings are left alone, since other scripts may refer to them,
    and so is any scope reachable by ``with`` or a direct ``eval``. The tree
    must come straight from the parser: declaration order is taken from node
    ranges.
    """

    name = 'Rename'
    default_options = {'mangled_only': False}

    def transform(self, context):
        program = context.ast
        analysis = analyze(program, context.is_module)
        candidates = []
        for binding in analysis.bindings():
            if binding.scope.is_global or binding.scope.dynamic or binding.kind == 'import':
                continue
            if self.options['mangled_only'] and not MANGLED_RE.match(binding.name):
                continue
            candidates.append(binding)
        if not candidates:
            return

        for binding in candidates:
            if any(getattr(ident, 'range', None) is None for ident in binding.identifiers):
                raise TransformerError('Rename requires a freshly parsed tree with node ranges')
        candidates.sort(key=lambda binding: binding.identifiers[0].range[0])

        shorthand = [
            (node, node.key.name) for node in iter_nodes(program)
            if node.type == 'Property' and node.shorthand and node.key.type == 'Identifier'
        ]
        generate = NameGenerator(analysis.names)
        for binding in candidates:
            new_name = generate(name_hint(binding))
            for ident in binding.identifiers:
                ident.name = new_name
            for ref in binding.references:
                ref.identifier.name = new_name

        for prop, original in shorthand:
            target = prop.value.left if prop.value.type == 'AssignmentPattern' else prop.value
            if target.type == 'Identifier' and target.name != original:
                prop.shorthand = False
                prop.key = identifier(original)

        context.log('Renamed %d bindings', len(candidates))
        self.report(context, renamed=len(candidates), hash=context.hash)
