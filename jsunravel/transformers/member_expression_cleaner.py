from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.nodes import identifier, is_identifier_name, is_string_literal
from jsunravel.util.walk import NodeTransformer


class _Cleaner(NodeTransformer):
    def __init__(self):
        self.count = 0

    def visit_MemberExpression(self, node):
        self.generic_visit(node)
        if node.computed and is_string_literal(node.property) and is_identifier_name(node.property.value):
            node.property = identifier(node.property.value)
            node.computed = False
            self.count += 1
        return node

    def _clean_key(self, node):
        if not node.computed and is_string_literal(node.key) and is_identifier_name(node.key.value):
            node.key = identifier(node.key.value)
            self.count += 1

    def visit_Property(self, node):
        self.generic_visit(node)
        # shorthand properties already carry an identifier key
        if not node.shorthand:
            self._clean_key(node)
        return node

    def visit_MethodDefinition(self, node):
        self.generic_visit(node)
        if node.key is not None:
            self._clean_key(node)
        return node


@register
class MemberExpressionCleaner(Transformer):
    """Turn ``a['b']`` into ``a.b`` and ``{'b': 1}`` into ``{b: 1}``."""

    name = 'MemberExpressionCleaner'

    def transform(self, context):
        cleaner = _Cleaner()
        cleaner.visit(context.ast)
        if cleaner.count:
            self.report(context, cleaned=cleaner.count)
