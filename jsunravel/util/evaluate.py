"""JavaScript value semantics for primitive constant folding."""
import math
import re

from jsunravel.util.nodes import is_literal, number_to_string


class _Undefined:
    def __repr__(self):
        return 'undefined'


UNDEFINED = _Undefined()
NOT_CONSTANT = object()

DECIMAL_RE = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
RADIX_RE = re.compile(r'^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$')


class NotFoldable(Exception):
    """Raised when an operation has no safe constant result."""


def constant_value(node):
    """Return the primitive a node denotes, or NOT_CONSTANT."""
    if node is None:
        return NOT_CONSTANT
    if is_literal(node):
        return node.value
    if node.type == 'UnaryExpression':
        if node.operator == '-' and is_literal(node.argument, int):
            return -to_number(node.argument.value)
        if node.operator == 'void' and is_literal(node.argument):
            return UNDEFINED
    return NOT_CONSTANT


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def js_typeof(value):
    if value is UNDEFINED:
        return 'undefined'
    if value is None:
        return 'object'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, str):
        return 'string'
    return 'number'


def to_boolean(value):
    if value is UNDEFINED or value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return len(value) > 0
    return not (value == 0 or math.isnan(value))


def to_number(value):
    if value is UNDEFINED:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if text in ('Infinity', '+Infinity'):
            return math.inf
        if text == '-Infinity':
            return -math.inf
        if RADIX_RE.match(text):
            return float(int(text, 0))
        if DECIMAL_RE.match(text):
            return float(text)
        return math.nan
    return float(value)


def to_string(value):
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return 'undefined'
    if value is None:
        return 'null'
    return number_to_string(value)


def to_int32(value):
    number = to_number(value)
    if not math.isfinite(number):
        return 0
    result = int(math.trunc(number)) & 0xFFFFFFFF
    return result - 0x100000000 if result >= 0x80000000 else result


def to_uint32(value):
    return to_int32(value) & 0xFFFFFFFF


def strict_equals(left, right):
    if js_typeof(left) != js_typeof(right):
        return False
    if is_number(left):
        return float(left) == float(right)
    return left == right


def loose_equals(left, right):
    if js_typeof(left) == js_typeof(right):
        return strict_equals(left, right)
    nullish = (None, UNDEFINED)
    if left in nullish or right in nullish:
        return left in nullish and right in nullish
    return to_number(left) == to_number(right)


def _compare(left, right):
    """Abstract relational comparison; None stands for undefined (NaN)."""
    if isinstance(left, str) and isinstance(right, str):
        return left < right
    left, right = to_number(left), to_number(right)
    if math.isnan(left) or math.isnan(right):
        return None
    return left < right


def unary_operation(operator, value):
    if operator == '!':
        return not to_boolean(value)
    if operator == '-':
        return -to_number(value)
    if operator == '+':
        return to_number(value)
    if operator == '~':
        return ~to_int32(value)
    if operator == 'typeof':
        return js_typeof(value)
    if operator == 'void':
        return UNDEFINED
    raise NotFoldable(operator)


def binary_operation(operator, left, right):
    try:
        return _binary_operation(operator, left, right)
    except (ZeroDivisionError, OverflowError, ValueError) as e:
        raise NotFoldable(str(e))


def _binary_operation(operator, left, right):
    if operator == '+':
        if isinstance(left, str) or isinstance(right, str):
            return to_string(left) + to_string(right)
        return to_number(left) + to_number(right)
    if operator == '-':
        return to_number(left) - to_number(right)
    if operator == '*':
        return to_number(left) * to_number(right)
    if operator == '/':
        return to_number(left) / to_number(right)
    if operator == '%':
        return math.fmod(to_number(left), to_number(right))
    if operator == '**':
        return math.pow(to_number(left), to_number(right))
    if operator == '&':
        return to_int32(to_int32(left) & to_int32(right))
    if operator == '|':
        return to_int32(to_int32(left) | to_int32(right))
    if operator == '^':
        return to_int32(to_int32(left) ^ to_int32(right))
    if operator == '<<':
        return to_int32(to_int32(left) << (to_uint32(right) & 31))
    if operator == '>>':
        return to_int32(left) >> (to_uint32(right) & 31)
    if operator == '>>>':
        return to_uint32(left) >> (to_uint32(right) & 31)
    if operator == '===':
        return strict_equals(left, right)
    if operator == '!==':
        return not strict_equals(left, right)
    if operator == '==':
        return loose_equals(left, right)
    if operator == '!=':
        return not loose_equals(left, right)
    if operator == '<':
        return _compare(left, right) is True
    if operator == '>':
        return _compare(right, left) is True
    if operator == '<=':
        result = _compare(right, left)
        return result is False
    if operator == '>=':
        result = _compare(left, right)
        return result is False
    raise NotFoldable(operator)


def is_truthy(node):
    """Static truthiness of an expression: True, False or None if unknown."""
    value = constant_value(node)
    if value is not NOT_CONSTANT:
        return to_boolean(value)
    if node.type in ('FunctionExpression', 'ArrowFunctionExpression'):
        return True
    if node.type == 'ArrayExpression' and not node.elements:
        return True
    if node.type == 'ObjectExpression' and not node.properties:
        return True
    return None
