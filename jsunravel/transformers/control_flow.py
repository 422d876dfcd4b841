from collections import Counter

from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.evaluate import is_truthy
from jsunravel.util.nodes import block, has_lexical_declaration, is_numeric_literal, is_string_literal, member_key
from jsunravel.util.walk import NodeTransformer, iter_child_nodes, iter_nodes

LOOP_TYPES = ('WhileStatement', 'DoWhileStatement', 'ForStatement', 'ForInStatement', 'ForOfStatement')
OPAQUE_TYPES = ('FunctionDeclaration', 'FunctionExpression', 'ArrowFunctionExpression',
                'ClassDeclaration', 'ClassExpression')
TERMINATORS = ('ReturnStatement', 'ThrowStatement')


def _escapes(node, in_loop=False, in_switch=False):
    """True if a break or continue inside ``node`` would leave the dispatcher."""
    node_type = node.type
    if node_type in OPAQUE_TYPES:
        return False
    if node_type == 'BreakStatement':
        return node.label is not None or not (in_loop or in_switch)
    if node_type == 'ContinueStatement':
        return node.label is not None or not in_loop
    if node_type in LOOP_TYPES:
        in_loop = True
    elif node_type == 'SwitchStatement':
        in_switch = True
    return any(_escapes(child, in_loop, in_switch) for child in iter_child_nodes(node))


def _is_infinite(loop):
    if loop.type == 'WhileStatement':
        return is_truthy(loop.test) is True
    if loop.type == 'ForStatement':
        return loop.init is None and loop.update is None and \
            (loop.test is None or is_truthy(loop.test) is True)
    return False


def dispatcher(loop):
    """Return (order name, counter name, switch) for a dispatcher loop."""
    if not _is_infinite(loop) or loop.body.type != 'BlockStatement':
        return None
    statements = loop.body.body
    if len(statements) != 2 or statements[0].type != 'SwitchStatement':
        return None
    if statements[1].type != 'BreakStatement' or statements[1].label is not None:
        return None
    switch = statements[0]
    discriminant = switch.discriminant
    if discriminant.type != 'MemberExpression' or not discriminant.computed \
            or discriminant.object.type != 'Identifier':
        return None
    counter = discriminant.property
    if counter.type != 'UpdateExpression' or counter.operator != '++' or counter.prefix \
            or counter.argument.type != 'Identifier':
        return None
    return discriminant.object.name, counter.argument.name, switch


def split_order(init):
    """The dispatch order of ``'1|0|2'.split('|')``."""
    if init is None or init.type != 'CallExpression' or len(init.arguments) != 1:
        return None
    callee = init.callee
    if callee.type != 'MemberExpression' or member_key(callee) != 'split':
        return None
    if not is_string_literal(callee.object) or not is_string_literal(init.arguments[0]):
        return None
    separator = init.arguments[0].value
    if not separator:
        return None
    return callee.object.value.split(separator)


def linearize(switch, order):
    """Statements of the cases in dispatch order, or None if that would be unsafe."""
    cases = {}
    for case in switch.cases:
        if not is_string_literal(case.test) or case.test.value in cases:
            return None
        cases[case.test.value] = case
    if len(set(order)) != len(order):
        return None
    result = []
    for position, key in enumerate(order):
        case = cases.get(key)
        if case is None:
            return None
        statements = list(case.consequent)
        continued = bool(statements) and statements[-1].type == 'ContinueStatement' \
            and statements[-1].label is None
        if continued:
            statements.pop()
        if any(_escapes(statement) for statement in statements):
            return None
        result.extend(statements)
        if statements and statements[-1].type in TERMINATORS:
            break
        # a case without `continue` falls through, which is only harmless at the very end
        if not continued and (position != len(order) - 1 or case is not switch.cases[-1]):
            return None
    return result


class _Flattener(NodeTransformer):
    def __init__(self, names):
        self.names = names
        self.restored = 0

    def _declarator(self, statements, name):
        """The last declarator of ``name`` among ``statements``."""
        found = None
        for statement in statements:
            if statement.type != 'VariableDeclaration':
                continue
            for declarator in statement.declarations:
                if declarator.id.type == 'Identifier' and declarator.id.name == name:
                    found = (statement, declarator)
        return found

    def _rewrite(self, statements):
        index = 0
        while index < len(statements):
            loop = statements[index]
            shape = dispatcher(loop)
            replacement = self._restore(statements[:index], shape) if shape else None
            if replacement is None:
                index += 1
                continue
            body, dead = replacement
            self.restored += 1
            if has_lexical_declaration(body):
                body = [block(body)]
            head = []
            for statement in statements[:index]:
                if statement.type == 'VariableDeclaration':
                    remaining = [d for d in statement.declarations if id(d) not in dead]
                    if not remaining:
                        continue
                    statement.declarations = remaining
                head.append(statement)
            statements = head + body + statements[index + 1:]
            index = len(head) + len(body)
        return statements

    def _restore(self, previous, shape):
        order_name, counter_name, switch = shape
        # each name: its declarator and its single use in the discriminant
        if self.names[order_name] != 2 or self.names[counter_name] != 2:
            return None
        order_decl = self._declarator(previous, order_name)
        counter_decl = self._declarator(previous, counter_name)
        if order_decl is None or counter_decl is None:
            return None
        counter_init = counter_decl[1].init
        if not is_numeric_literal(counter_init) or counter_init.value != 0:
            return None
        order = split_order(order_decl[1].init)
        if not order:
            return None
        body = linearize(switch, order)
        if body is None:
            return None
        return body, {id(order_decl[1]), id(counter_decl[1])}

    def visit_Program(self, node):
        self.generic_visit(node)
        node.body = self._rewrite(node.body)
        return node

    visit_BlockStatement = visit_Program

    def visit_SwitchCase(self, node):
        self.generic_visit(node)
        node.consequent = self._rewrite(node.consequent)
        return node


@register
class ControlFlow(Transformer):
    """Undo control-flow flattening.

    Recognises the dispatcher emitted by javascript-obfuscator::

        var order = '1|0|2'.split('|'), i = 0;
        while (true) {
            switch (order[i++]) {
            case '0': b(); continue;
            case '1': a(); continue;
            case '2': c(); continue;
            }
            break;
        }

    and replaces it with the case bodies in dispatch order.
    """

    name = 'ControlFlow'

    def transform(self, context):
        names = Counter(node.name for node in iter_nodes(context.ast) if node.type == 'Identifier')
        flattener = _Flattener(names)
        flattener.visit(context.ast)
        if flattener.restored:
            self.report(context, restored=flattener.restored)
