from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.nodes import build, expression_statement
from jsunravel.util.walk import NodeTransformer


def _split_sequence(expression):
    """Return (leading expressions, last expression) of a sequence."""
    if expression is None or expression.type != 'SequenceExpression':
        return [], expression
    return list(expression.expressions[:-1]), expression.expressions[-1]


class _Splitter(NodeTransformer):
    def __init__(self):
        self.split = 0

    def _statement(self, statement):
        """Rewrite one listed statement into a list of statements."""
        statement_type = statement.type
        if statement_type == 'ExpressionStatement':
            leading, last = _split_sequence(statement.expression)
            if leading:
                statement.expression = last
                return [expression_statement(e) for e in leading] + [statement]
        elif statement_type in ('ReturnStatement', 'ThrowStatement'):
            leading, last = _split_sequence(statement.argument)
            if leading:
                statement.argument = last
                return [expression_statement(e) for e in leading] + [statement]
        elif statement_type in ('IfStatement', 'SwitchStatement'):
            field = 'test' if statement_type == 'IfStatement' else 'discriminant'
            leading, last = _split_sequence(getattr(statement, field))
            if leading:
                setattr(statement, field, last)
                return [expression_statement(e) for e in leading] + [statement]
        elif statement_type == 'VariableDeclaration' and len(statement.declarations) > 1:
            return [
                build('VariableDeclaration', declarations=[declarator], kind=statement.kind)
                for declarator in statement.declarations
            ]
        return [statement]

    def _rewrite(self, statements):
        result = []
        pending = list(statements)
        while pending:
            statement = pending.pop(0)
            replacement = self._statement(statement)
            if len(replacement) == 1:
                result.append(statement)
                continue
            self.split += 1
            # nested sequences such as `(a, b), c` unfold on the next round
            pending[:0] = replacement
        return result

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
class Desequence(Transformer):
    """Split comma sequences and multi-declarator declarations into statements.

    Only statements sitting in a statement list are rewritten; for-loop heads
    and single-statement bodies keep their sequences.
    """

    name = 'Desequence'

    def transform(self, context):
        splitter = _Splitter()
        splitter.visit(context.ast)
        if splitter.split:
            self.report(context, split=splitter.split)
