import json
import math
import re

from esprima.nodes import Node

IDENTIFIER_RE = re.compile(r'^[A-Za-z_$][0-9A-Za-z_$]*$')

RESERVED_WORDS = frozenset((
    'await', 'break', 'case', 'catch', 'class', 'const', 'continue', 'debugger',
    'default', 'delete', 'do', 'else', 'enum', 'export', 'extends', 'false',
    'finally', 'for', 'function', 'if', 'implements', 'import', 'in',
    'instanceof', 'interface', 'let', 'new', 'null', 'package', 'private',
    'protected', 'public', 'return', 'static', 'super', 'switch', 'this',
    'throw', 'true', 'try', 'typeof', 'var', 'void', 'while', 'with', 'yield',
    'arguments', 'eval', 'undefined', 'NaN', 'Infinity',
))


def build(node_type, **fields):
    """Create a bare esprima node of the given type."""
    node = Node()
    node.type = node_type
    for field, value in fields.items():
        setattr(node, field, value)
    return node


def clone(node, substitutions=None):
    """Deep copy of a node; nodes whose id is in ``substitutions`` are swapped."""
    if substitutions and id(node) in substitutions:
        return substitutions[id(node)]
    copy = Node()
    for field, value in vars(node).items():
        setattr(copy, field, _clone_value(value, substitutions))
    return copy


def _clone_value(value, substitutions):
    if isinstance(value, Node):
        return clone(value, substitutions)
    if isinstance(value, list):
        return [_clone_value(item, substitutions) for item in value]
    if isinstance(value, dict):
        return dict(value)
    return value


def identifier(name):
    return build('Identifier', name=name)


def block(body):
    return build('BlockStatement', body=list(body))


def empty_statement():
    return build('EmptyStatement')


def expression_statement(expression):
    return build('ExpressionStatement', expression=expression)


def is_identifier_name(name):
    return isinstance(name, str) and bool(IDENTIFIER_RE.match(name))


def is_valid_binding_name(name):
    return is_identifier_name(name) and name not in RESERVED_WORDS


def number_to_string(value):
    """Format a number the way JavaScript's ToString does for common values."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    mantissa, separator, exponent = text.partition('e')
    if not separator:
        return text
    sign = '-' if exponent.startswith('-') else '+'
    return f'{mantissa}e{sign}{exponent.lstrip("+-").lstrip("0")}'


def literal(value):
    """Build the node for a primitive value.

    Negative numbers become a unary minus over a positive literal, since the
    code generator refuses negative numeric literals.
    """
    if isinstance(value, bool):
        return build('Literal', value=value, raw='true' if value else 'false')
    if value is None:
        return build('Literal', value=None, raw='null')
    if isinstance(value, str):
        return build('Literal', value=value, raw=json.dumps(value))
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f'cannot build a literal for {value!r}')
        if value < 0 or (value == 0 and math.copysign(1, value) < 0):
            return build('UnaryExpression', operator='-', argument=literal(-value), prefix=True)
        if isinstance(value, float) and value.is_integer() and value < 2 ** 53:
            value = int(value)
        return build('Literal', value=value, raw=number_to_string(value))
    raise TypeError(f'unsupported literal value {value!r}')


def is_literal(node, kind=None):
    if node is None or node.type != 'Literal' or getattr(node, 'regex', None) is not None:
        return False
    if kind is None:
        return True
    value = node.value
    if kind is str:
        return isinstance(value, str)
    if kind is bool:
        return isinstance(value, bool)
    if kind in (int, float):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return isinstance(value, kind)


def is_string_literal(node):
    return is_literal(node, str)


def is_numeric_literal(node):
    return is_literal(node, int)


def member_key(node):
    """Return the static property name of a member expression, if any."""
    if node is None or node.type != 'MemberExpression':
        return None
    prop = node.property
    if not node.computed and prop.type == 'Identifier':
        return prop.name
    if node.computed and is_string_literal(prop):
        return prop.value
    if node.computed and is_numeric_literal(prop):
        return number_to_string(prop.value)
    return None


def property_key(prop):
    """Return the static key of an object literal property, if any."""
    key = prop.key
    if key is None:
        return None
    if not prop.computed and key.type == 'Identifier':
        return key.name
    if is_string_literal(key):
        return key.value
    if is_numeric_literal(key):
        return number_to_string(key.value)
    return None


def has_lexical_declaration(statements):
    """True if any statement would create a block-scoped binding."""
    for statement in statements:
        if statement.type == 'VariableDeclaration' and statement.kind in ('let', 'const'):
            return True
        if statement.type in ('ClassDeclaration', 'FunctionDeclaration'):
            return True
    return False


def statement_list_fields(node):
    """Names of the statement-list attributes a node carries."""
    if node.type in ('Program', 'BlockStatement'):
        return ('body',)
    if node.type == 'SwitchCase':
        return ('consequent',)
    return ()
