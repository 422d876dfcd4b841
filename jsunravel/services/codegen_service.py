import escodegen
import jsbeautifier

from jsunravel.util.walk import iter_nodes

OPTIONAL_TYPES = {
    'CallExpression': 'OptionalCallExpression',
    'MemberExpression': 'OptionalMemberExpression',
}


def generate(program):
    """Serialize a tree back to JavaScript text."""
    return escodegen.generate(program)


def transform_chain_expressions(tree):
    """Rewrite ChainExpression nodes into optional call / member nodes.

    The inner expression's fields are moved onto the chain node, which takes
    the optional variant of the inner type. Returns the number of rewrites.
    """
    chains = [node for node in iter_nodes(tree) if node.type == 'ChainExpression']
    for node in chains:
        inner = node.expression
        new_type = OPTIONAL_TYPES.get(getattr(inner, 'type', None))
        if new_type is None:
            continue
        del node.expression
        for name, value in vars(inner).items():
            if name != 'type':
                setattr(node, name, value)
        node.type = new_type
    return len(chains)


def beautify_options():
    options = jsbeautifier.default_options()
    options.indent_size = 2
    options.max_preserve_newlines = 2
    options.wrap_line_length = 120
    options.space_before_conditional = True
    return options


def format_source(source, parse, transform_chains=True):
    """Reformat generated text.

    ``parse`` re-parses the text with the call's resolved options. The parse
    only acts as a gate: a text that no longer parses is refused before it
    reaches the beautifier, which works on the text and never sees the tree.
    The chain-expression rewrite of that tree is kept for parity with the
    ``transform_chain_expressions`` option; esprima cannot parse ``?.``, so
    it finds no ChainExpression on parsed input.
    """
    tree = parse(source)
    if transform_chains:
        transform_chain_expressions(tree)
    return jsbeautifier.beautify(source, beautify_options())
