from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.evaluate import NOT_CONSTANT, UNDEFINED, constant_value
from jsunravel.util.nodes import clone, identifier, is_literal, literal, member_key, property_key
from jsunravel.util.scope import analyze
from jsunravel.util.walk import (
    NodeTransformer, iter_nodes, listed_statements, mutated_members, prune, removable_declarators,
)

# Nodes that make an expression unsafe to copy into another scope
OPAQUE_TYPES = (
    'FunctionExpression', 'ArrowFunctionExpression', 'ClassExpression', 'ThisExpression',
    'Super', 'MetaProperty', 'YieldExpression', 'AwaitExpression', 'ConditionalExpression',
    'LogicalExpression', 'SequenceExpression', 'AssignmentExpression', 'UpdateExpression',
    'SpreadElement', 'TemplateLiteral', 'TaggedTemplateExpression',
)


class ProxyTemplate:
    """The single returned expression of a proxy function."""

    def __init__(self, expression, params, param_refs):
        self.expression = expression
        self.params = params
        self.param_refs = param_refs

    def instantiate(self, arguments):
        substitutions = {id(ref): arg for ref, arg in zip(self.param_refs, arguments)}
        return clone(self.expression, substitutions)


def _reference_identifiers(node):
    """Identifiers in reference position, in evaluation order."""
    if node.type == 'Identifier':
        yield node
        return
    if node.type == 'MemberExpression':
        yield from _reference_identifiers(node.object)
        if node.computed:
            yield from _reference_identifiers(node.property)
        return
    if node.type == 'Property':
        if node.computed:
            yield from _reference_identifiers(node.key)
        yield from _reference_identifiers(node.value)
        return
    if node.type == 'CallExpression' or node.type == 'NewExpression':
        yield from _reference_identifiers(node.callee)
        for arg in node.arguments:
            yield from _reference_identifiers(arg)
        return
    if node.type == 'BinaryExpression':
        yield from _reference_identifiers(node.left)
        yield from _reference_identifiers(node.right)
        return
    if node.type == 'UnaryExpression':
        yield from _reference_identifiers(node.argument)
        return
    if node.type == 'ArrayExpression':
        for element in node.elements:
            if element is not None:
                yield from _reference_identifiers(element)
        return
    if node.type == 'ObjectExpression':
        for prop in node.properties:
            yield from _reference_identifiers(prop)


def proxy_template(function):
    """Return a ProxyTemplate if ``function`` only forwards its parameters."""
    if function is None or function.type not in ('FunctionExpression', 'FunctionDeclaration',
                                                  'ArrowFunctionExpression'):
        return None
    if function.generator or getattr(function, 'isAsync', False) or getattr(function, 'async', False):
        return None
    if not all(param.type == 'Identifier' for param in function.params):
        return None
    params = [param.name for param in function.params]
    if len(set(params)) != len(params):
        return None
    body = function.body
    if body.type == 'BlockStatement':
        if len(body.body) != 1 or body.body[0].type != 'ReturnStatement' or body.body[0].argument is None:
            return None
        expression = body.body[0].argument
    else:
        expression = body
    if any(node.type in OPAQUE_TYPES for node in iter_nodes(expression)):
        return None
    refs = list(_reference_identifiers(expression))
    # each parameter exactly once and in order, so argument evaluation is unchanged
    if [ref.name for ref in refs] != params:
        return None
    return ProxyTemplate(expression, params, refs)


def _callable_with(template, call):
    return len(call.arguments) == len(template.params) and \
        not any(arg.type == 'SpreadElement' for arg in call.arguments)


class _Demangler(NodeTransformer):
    def __init__(self, calls, reads, void_to_undefined):
        self.calls = calls
        self.reads = reads
        self.void_to_undefined = void_to_undefined
        self.voids = 0

    def visit_CallExpression(self, node):
        self.generic_visit(node)
        template = self.calls.get(id(node))
        if template is None:
            return node
        return template.instantiate(node.arguments)

    def visit_MemberExpression(self, node):
        if id(node) in self.reads:
            return literal(self.reads[id(node)])
        return self.generic_visit(node)

    def visit_UnaryExpression(self, node):
        self.generic_visit(node)
        if self.void_to_undefined and node.operator == 'void' and is_literal(node.argument):
            self.voids += 1
            return identifier('undefined')
        return node


@register
class Demangle(Transformer):
    """Inline proxy functions and proxy-function maps.

    Obfuscators hide operators and calls behind helpers such as
    ``function _0x1(a, b) { return a + b; }`` or members of a local object
    ``{'xYz': function (a, b) { return a(b); }}``. Calls to them are replaced
    by the forwarded expression. ``void 0`` is spelled ``undefined`` when the
    program never rebinds that name.
    """

    name = 'Demangle'
    default_options = {'remove_unused': True, 'void_to_undefined': True}

    def transform(self, context):
        program = context.ast
        analysis = analyze(program, context.is_module)
        callees = {id(node.callee): node for node in iter_nodes(program) if node.type == 'CallExpression'}
        assigned = mutated_members(program) - set(callees)
        listed = listed_statements(program)
        droppable = removable_declarators(program)

        calls, reads = {}, {}
        dead_statements, dead_declarators = [], []
        proxies = 0

        for binding in analysis.bindings():
            if not binding.is_constant or binding.scope.dynamic or not binding.references:
                continue
            declaration = binding.declaration
            if binding.kind == 'function' and declaration.type == 'FunctionDeclaration':
                function, owner = declaration, declaration
            elif binding.kind in ('var', 'let', 'const') and declaration.id is binding.identifiers[0]:
                function, owner = declaration.init, declaration
            else:
                continue

            template = proxy_template(function)
            if template is not None:
                found, complete = self._direct_calls(binding, template, callees)
            elif owner.type == 'VariableDeclarator':
                found, complete = self._map_members(owner, binding, callees, assigned, reads)
            else:
                continue
            if not found:
                continue
            calls.update(found)
            proxies += 1
            if complete and self.options['remove_unused']:
                if owner.type == 'FunctionDeclaration' and id(owner) in listed:
                    dead_statements.append(id(owner))
                elif owner.type == 'VariableDeclarator' and id(owner) in droppable:
                    dead_declarators.append(id(owner))

        void_to_undefined = self.options['void_to_undefined'] and not any(
            binding.name == 'undefined' for binding in analysis.bindings())
        if not calls and not reads and not void_to_undefined:
            return
        demangler = _Demangler(calls, reads, void_to_undefined)
        demangler.visit(program)
        prune(program, declarators=dead_declarators, statements=dead_statements)
        if calls or reads or demangler.voids:
            self.report(context, proxies=proxies, inlined=len(calls) + len(reads), voids=demangler.voids)

    @staticmethod
    def _direct_calls(binding, template, callees):
        found = {}
        for ref in binding.references:
            call = callees.get(id(ref.identifier))
            if call is not None and _callable_with(template, call):
                found[id(call)] = template
        return found, len(found) == len(binding.references)

    @staticmethod
    def _map_members(declarator, binding, callees, assigned, reads):
        init = declarator.init
        if init is None or init.type != 'ObjectExpression' or not init.properties:
            return {}, False
        entries = {}
        for prop in init.properties:
            if prop.type != 'Property' or prop.kind != 'init' or prop.computed and not is_literal(prop.key):
                return {}, False
            key = property_key(prop)
            if key is None or key in entries:
                return {}, False
            template = proxy_template(prop.value)
            if template is not None:
                entries[key] = template
                continue
            value = constant_value(prop.value)
            if value is NOT_CONSTANT or value is UNDEFINED:
                return {}, False
            entries[key] = value
        if not any(isinstance(entry, ProxyTemplate) for entry in entries.values()):
            # plain literal maps are left to LiteralMap
            return {}, False

        found, literal_reads = {}, {}
        for ref in binding.references:
            member = ref.parent if ref.field == 'object' else None
            key = member_key(member)
            if key not in entries or id(member) in assigned:
                return {}, False
            entry = entries[key]
            call = callees.get(id(member))
            if isinstance(entry, ProxyTemplate):
                if call is None or not _callable_with(entry, call):
                    return {}, False
                found[id(call)] = entry
            elif call is None:
                literal_reads[id(member)] = entry
            else:
                return {}, False
        reads.update(literal_reads)
        return found, True
