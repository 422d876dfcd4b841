from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.evaluate import is_truthy
from jsunravel.util.nodes import build, empty_statement, expression_statement, has_lexical_declaration, identifier
from jsunravel.util.scope import pattern_identifiers
from jsunravel.util.walk import NodeTransformer, iter_child_nodes

TERMINATORS = ('ReturnStatement', 'ThrowStatement', 'BreakStatement', 'ContinueStatement')
FUNCTION_TYPES = ('FunctionDeclaration', 'FunctionExpression', 'ArrowFunctionExpression')


def hoisted_names(node):
    """Names declared with ``var`` inside ``node``, nested functions excluded."""
    names = []
    stack = [node] if node is not None else []
    while stack:
        current = stack.pop()
        if current.type in FUNCTION_TYPES:
            continue
        if current.type == 'VariableDeclaration' and current.kind == 'var':
            for declarator in current.declarations:
                for ident in pattern_identifiers(declarator.id):
                    if ident.name not in names:
                        names.append(ident.name)
        stack.extend(reversed(list(iter_child_nodes(current))))
    return names


def hoisted_declarations(node):
    """``[var a, b;]`` for the vars a dropped subtree declares, or ``[]``."""
    names = hoisted_names(node)
    if not names:
        return []
    declarators = [build('VariableDeclarator', id=identifier(name), init=None) for name in names]
    return [build('VariableDeclaration', declarations=declarators, kind='var')]


class _Eliminator(NodeTransformer):
    def __init__(self):
        self.removed = 0

    def _prune(self, statements):
        kept = []
        terminated = False
        for statement in statements:
            if statement.type == 'EmptyStatement':
                continue
            if statement.type == 'BlockStatement' and not statement.body:
                continue
            if terminated:
                # hoisted declarations stay visible even when unreachable
                if statement.type == 'FunctionDeclaration' or (
                        statement.type == 'VariableDeclaration' and statement.kind == 'var'):
                    kept.append(statement)
                else:
                    self.removed += 1
                continue
            kept.append(statement)
            if statement.type in TERMINATORS:
                terminated = True
        return kept

    def visit_Program(self, node):
        self.generic_visit(node)
        node.body = self._prune(node.body)
        return node

    visit_BlockStatement = visit_Program

    def visit_SwitchCase(self, node):
        self.generic_visit(node)
        node.consequent = self._prune(node.consequent)
        return node

    def visit_IfStatement(self, node):
        self.generic_visit(node)
        truthy = is_truthy(node.test)
        if truthy is None:
            return node
        self.removed += 1
        chosen, dropped = (node.consequent, node.alternate) if truthy else (node.alternate, node.consequent)
        kept = hoisted_declarations(dropped)
        if chosen is None:
            return kept[0] if kept else empty_statement()
        if chosen.type == 'BlockStatement' and not has_lexical_declaration(chosen.body):
            return kept + chosen.body
        return kept + [chosen] if kept else chosen

    def visit_WhileStatement(self, node):
        self.generic_visit(node)
        if is_truthy(node.test) is False:
            self.removed += 1
            kept = hoisted_declarations(node.body)
            return kept[0] if kept else empty_statement()
        return node

    def visit_ForStatement(self, node):
        self.generic_visit(node)
        if node.test is None or is_truthy(node.test) is not False:
            return node
        self.removed += 1
        kept = hoisted_declarations(node.body)
        if node.init is None:
            head = []
        elif node.init.type == 'VariableDeclaration':
            head = [node.init]
        else:
            head = [expression_statement(node.init)]
        statements = head + kept
        if not statements:
            return empty_statement()
        return statements[0] if len(statements) == 1 else statements


@register
class DeadCode(Transformer):
    """Remove branches with constant tests and unreachable statements."""

    name = 'DeadCode'

    def transform(self, context):
        eliminator = _Eliminator()
        eliminator.visit(context.ast)
        if eliminator.removed:
            self.report(context, removed=eliminator.removed)
