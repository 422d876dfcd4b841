import math

from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.evaluate import (
    NOT_CONSTANT, UNDEFINED, NotFoldable, binary_operation, constant_value,
    is_truthy, to_boolean, unary_operation,
)
from jsunravel.util.nodes import literal
from jsunravel.util.walk import NodeTransformer

FOLDABLE_UNARY = ('!', '-', '+', '~', 'typeof')


def _as_node(value):
    """Literal node for a folded value, or None when it has no safe literal."""
    if value is UNDEFINED or value is NOT_CONSTANT:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return literal(value)


class _Folder(NodeTransformer):
    def __init__(self):
        self.count = 0

    def _replace(self, value):
        node = _as_node(value)
        if node is not None:
            self.count += 1
        return node

    def visit_UnaryExpression(self, node):
        self.generic_visit(node)
        if node.operator not in FOLDABLE_UNARY:
            return node
        if node.operator == '-' and constant_value(node) is not NOT_CONSTANT:
            # already the canonical form of a negative number
            return node
        value = constant_value(node.argument)
        if value is NOT_CONSTANT:
            if node.operator == '!':
                truthy = is_truthy(node.argument)
                if truthy is not None:
                    self.count += 1
                    return literal(not truthy)
            return node
        try:
            folded = unary_operation(node.operator, value)
        except NotFoldable:
            return node
        return self._replace(folded) or node

    def visit_BinaryExpression(self, node):
        self.generic_visit(node)
        left, right = constant_value(node.left), constant_value(node.right)
        if left is NOT_CONSTANT or right is NOT_CONSTANT:
            return node
        try:
            folded = binary_operation(node.operator, left, right)
        except NotFoldable:
            return node
        return self._replace(folded) or node

    def visit_LogicalExpression(self, node):
        self.generic_visit(node)
        value = constant_value(node.left)
        if value is NOT_CONSTANT:
            return node
        truthy = to_boolean(value)
        if node.operator == '&&':
            chosen = node.right if truthy else node.left
        elif node.operator == '||':
            chosen = node.left if truthy else node.right
        elif node.operator == '??':
            chosen = node.right if value is None or value is UNDEFINED else node.left
        else:
            return node
        self.count += 1
        return chosen

    def visit_ConditionalExpression(self, node):
        self.generic_visit(node)
        truthy = is_truthy(node.test)
        if truthy is None:
            return node
        self.count += 1
        return node.consequent if truthy else node.alternate


@register
class Simplify(Transformer):
    """Fold constant expressions over primitive literals."""

    name = 'Simplify'

    def transform(self, context):
        folder = _Folder()
        folder.visit(context.ast)
        if folder.count:
            self.report(context, folded=folder.count)
