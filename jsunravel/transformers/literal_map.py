from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.evaluate import NOT_CONSTANT, UNDEFINED, constant_value
from jsunravel.util.nodes import literal, member_key, property_key
from jsunravel.util.scope import analyze
from jsunravel.util.walk import NodeTransformer, mutated_members, prune, removable_declarators


def literal_properties(declarator):
    """Map key -> primitive for an object literal made only of constants."""
    init = declarator.init
    if init is None or init.type != 'ObjectExpression' or not init.properties:
        return None
    values = {}
    for prop in init.properties:
        if prop.type != 'Property' or prop.kind != 'init' or prop.method or prop.shorthand:
            return None
        key = property_key(prop)
        if key is None or key in values:
            return None
        value = constant_value(prop.value)
        if value is NOT_CONSTANT or value is UNDEFINED:
            return None
        values[key] = value
    return values


class _Inliner(NodeTransformer):
    def __init__(self, replacements):
        self.replacements = replacements

    def visit_MemberExpression(self, node):
        if id(node) in self.replacements:
            return literal(self.replacements[id(node)])
        return self.generic_visit(node)


@register
class LiteralMap(Transformer):
    """Inline reads of constant object maps such as ``var m = {a: 'log'}``."""

    name = 'LiteralMap'
    default_options = {'remove_unused': True}

    def transform(self, context):
        program = context.ast
        analysis = analyze(program, context.is_module)
        mutated = mutated_members(program)
        droppable = removable_declarators(program)
        replacements = {}
        removed = []
        maps = 0

        for binding in analysis.bindings():
            if binding.kind not in ('var', 'let', 'const') or not binding.is_constant:
                continue
            if binding.scope.dynamic or not binding.references:
                continue
            declarator = binding.declaration
            if declarator.id is not binding.identifiers[0]:
                continue
            values = literal_properties(declarator)
            if values is None:
                continue
            found = {}
            for ref in binding.references:
                key = member_key(ref.parent) if ref.field == 'object' else None
                if key not in values or id(ref.parent) in mutated:
                    found = None
                    break
                found[id(ref.parent)] = values[key]
            if not found:
                continue
            replacements.update(found)
            maps += 1
            if self.options['remove_unused'] and id(declarator) in droppable:
                removed.append(id(declarator))

        if not replacements:
            return
        _Inliner(replacements).visit(program)
        prune(program, declarators=removed)
        self.report(context, maps=maps, inlined=len(replacements))
