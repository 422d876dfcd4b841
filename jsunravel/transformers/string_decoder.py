import base64
import math

from jsunravel.transformers import register
from jsunravel.transformers.transformer import Transformer
from jsunravel.util.evaluate import NOT_CONSTANT, constant_value, to_number
from jsunravel.util.nodes import is_literal, is_numeric_literal, is_string_literal, literal, member_key
from jsunravel.util.scope import analyze
from jsunravel.util.walk import (
    NodeTransformer, iter_nodes, listed_statements, mutated_members, prune, removable_declarators,
)

# Alphabet of the base64 decoder injected by javascript-obfuscator
OBFUSCATOR_ALPHABET = 'abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789+/='


def obfuscator_atob(text):
    """Decode base64 written in the lowercase-first alphabet, then UTF-8."""
    standard = text.swapcase().rstrip('=')
    standard += '=' * (-len(standard) % 4)
    return base64.b64decode(standard).decode('utf-8')


def rc4(text, key):
    state = list(range(256))
    j = 0
    for i in range(256):
        j = (j + state[i] + ord(key[i % len(key)])) % 256
        state[i], state[j] = state[j], state[i]
    i = j = 0
    result = []
    for char in text:
        i = (i + 1) % 256
        j = (j + state[i]) % 256
        state[i], state[j] = state[j], state[i]
        result.append(chr(ord(char) ^ state[(state[i] + state[j]) % 256]))
    return ''.join(result)


class Decoder:
    """An accessor function that maps an index (and key) to a string."""

    def __init__(self, binding, function, owner, offset, encoding):
        self.binding = binding
        self.function = function
        self.owner = owner
        self.offset = offset
        self.encoding = encoding
        self.inside = {id(node) for node in iter_nodes(function)}

    def decode(self, strings, arguments):
        if not arguments or any(arg.type == 'SpreadElement' for arg in arguments):
            return None
        value = constant_value(arguments[0])
        if value is NOT_CONSTANT:
            return None
        index = to_number(value) + self.offset
        if not math.isfinite(index) or not index.is_integer() or not 0 <= index < len(strings):
            return None
        encoded = strings[int(index)]
        try:
            if self.encoding == 'none':
                return encoded
            decoded = obfuscator_atob(encoded)
            if self.encoding == 'base64':
                return decoded
            if len(arguments) < 2 or not is_string_literal(arguments[1]) or not arguments[1].value:
                return None
            return rc4(decoded, arguments[1].value)
        except (ValueError, UnicodeDecodeError):
            return None


def string_array(binding):
    if binding.kind not in ('var', 'let', 'const') or len(binding.identifiers) != 1:
        return None
    declarator = binding.declaration
    if declarator.id is not binding.identifiers[0] or declarator.init is None:
        return None
    if declarator.init.type != 'ArrayExpression' or not declarator.init.elements:
        return None
    if not all(is_string_literal(element) for element in declarator.init.elements):
        return None
    return [element.value for element in declarator.init.elements]


def _function_of(binding):
    declaration = binding.declaration
    if binding.kind == 'function' and declaration.type == 'FunctionDeclaration':
        return declaration, declaration
    if binding.kind in ('var', 'let', 'const') and declaration.id is binding.identifiers[0] \
            and declaration.init is not None \
            and declaration.init.type in ('FunctionExpression', 'ArrowFunctionExpression'):
        return declaration.init, declaration
    return None, None


def _index_offset(function, array_name):
    """Offset applied to the first parameter, or None if it is not an accessor."""
    if not function.params or function.params[0].type != 'Identifier':
        return None
    param = function.params[0].name
    offset = None
    indexes_array = False
    for node in iter_nodes(function.body):
        if node.type == 'AssignmentExpression' and node.operator == '=' \
                and node.left.type == 'Identifier' and node.left.name == param \
                and node.right.type == 'BinaryExpression' and node.right.operator in ('-', '+') \
                and node.right.left.type == 'Identifier' and node.right.left.name == param:
            amount = constant_value(node.right.right)
            if amount is NOT_CONSTANT:
                return None
            offset = -to_number(amount) if node.right.operator == '-' else to_number(amount)
        elif node.type == 'MemberExpression' and node.computed \
                and node.object.type == 'Identifier' and node.object.name == array_name \
                and node.property.type == 'Identifier' and node.property.name == param:
            indexes_array = True
    if not indexes_array:
        return None
    return offset or 0.0


def _encoding(function):
    strings = {node.value for node in iter_nodes(function) if is_string_literal(node)}
    if OBFUSCATOR_ALPHABET not in strings:
        return 'none'
    has_256 = any(is_numeric_literal(node) and node.value == 256 for node in iter_nodes(function))
    if has_256 and len(function.params) >= 2:
        return 'rc4'
    return 'base64'


def _rotation(statement, array_name):
    """Number of push(shift()) rotations a rotation IIFE performs, if it is one."""
    if statement.type != 'ExpressionStatement':
        return None
    call = statement.expression
    if call.type == 'UnaryExpression':
        call = call.argument
    if call.type != 'CallExpression' or call.callee.type != 'FunctionExpression':
        return None
    args = call.arguments
    if len(args) != 2 or args[0].type != 'Identifier' or args[0].name != array_name \
            or not is_numeric_literal(args[1]):
        return None
    function = call.callee
    keys = {member_key(node) for node in iter_nodes(function) if node.type == 'MemberExpression'}
    if not {'push', 'shift'} <= keys or len(function.params) < 2:
        return None
    count_param = function.params[1]
    incremented = any(
        node.type == 'UpdateExpression' and node.operator == '++' and node.prefix
        and node.argument.type == 'Identifier' and node.argument.name == count_param.name
        for node in iter_nodes(function)
    )
    count = int(args[1].value)
    return count if incremented else max(count - 1, 0)


class _Replacer(NodeTransformer):
    def __init__(self, replacements):
        self.replacements = replacements

    def visit(self, node):
        if id(node) in self.replacements:
            return literal(self.replacements[id(node)])
        return super().visit(node)


@register
class StringDecoder(Transformer):
    """Resolve string-array indirection.

    Handles a literal string array, an optional push/shift rotation IIFE and
    accessor functions that index the array after subtracting an offset,
    optionally decoding base64 (lowercase-first alphabet) or RC4 payloads.
    """

    name = 'StringDecoder'
    default_options = {'remove_unused': True}

    def transform(self, context):
        program = context.ast
        analysis = analyze(program, context.is_module)
        callees = {id(node.callee): node for node in iter_nodes(program) if node.type == 'CallExpression'}
        mutated = mutated_members(program)
        listed = listed_statements(program)
        droppable = removable_declarators(program)
        top_level = {id(statement): statement for statement in program.body}

        replacements = {}
        dead_declarators, dead_statements = [], []
        arrays = 0

        for binding in list(analysis.bindings()):
            strings = string_array(binding)
            if strings is None or binding.scope.dynamic:
                continue
            plan = self._plan(binding, strings, analysis, callees, mutated, top_level)
            if plan is None:
                continue
            found, decoders, rotation, complete = plan
            if not found:
                continue
            arrays += 1
            replacements.update(found)
            context.log('Decoded %d strings from %s', len(found), binding.name)
            if not (complete and self.options['remove_unused']):
                continue
            if id(binding.declaration) in droppable:
                dead_declarators.append(id(binding.declaration))
            if rotation is not None:
                dead_statements.append(id(rotation))
            for decoder in decoders:
                if decoder.owner.type == 'FunctionDeclaration' and id(decoder.owner) in listed:
                    dead_statements.append(id(decoder.owner))
                elif id(decoder.owner) in droppable:
                    dead_declarators.append(id(decoder.owner))

        if not replacements:
            return
        _Replacer(replacements).visit(program)
        prune(program, declarators=dead_declarators, statements=dead_statements)
        self.report(context, arrays=arrays, decoded=len(replacements))

    def _plan(self, binding, strings, analysis, callees, mutated, top_level):
        decoders = []
        for candidate in analysis.bindings():
            function, owner = _function_of(candidate)
            if function is None or candidate.scope.dynamic:
                continue
            offset = _index_offset(function, binding.name)
            if offset is None:
                continue
            decoders.append(Decoder(candidate, function, owner, offset, _encoding(function)))

        rotation = None
        rotation_count = 0
        direct = {}
        for ref in binding.references:
            if any(id(ref.identifier) in decoder.inside for decoder in decoders):
                continue
            statement = self._rotation_statement(ref, top_level, binding.name)
            if statement is not None:
                if rotation is not None and rotation is not statement[0]:
                    return None
                rotation, rotation_count = statement
                continue
            member = ref.parent if ref.field == 'object' else None
            if member is None or not member.computed or not is_literal(member.property) \
                    or id(member) in mutated:
                return None
            direct[id(member)] = member.property
        if rotation_count:
            shift = rotation_count % len(strings)
            strings = strings[shift:] + strings[:shift]

        found = {}
        complete = True
        for member_id, index in direct.items():
            value = constant_value(index)
            position = to_number(value)
            if math.isfinite(position) and position.is_integer() and 0 <= position < len(strings):
                found[member_id] = strings[int(position)]
            else:
                complete = False
        used_decoders = []
        for decoder in decoders:
            if not any(id(ref.identifier) in decoder.inside for ref in binding.references):
                continue
            used_decoders.append(decoder)
            for ref in decoder.binding.references:
                if id(ref.identifier) in decoder.inside:
                    continue
                call = callees.get(id(ref.identifier))
                value = decoder.decode(strings, call.arguments) if call is not None else None
                if value is None:
                    complete = False
                else:
                    found[id(call)] = value
        return found, used_decoders, rotation, complete

    @staticmethod
    def _rotation_statement(ref, top_level, array_name):
        if ref.field != 'arguments':
            return None
        for statement in top_level.values():
            count = _rotation(statement, array_name)
            if count is None:
                continue
            call = statement.expression
            if call.type == 'UnaryExpression':
                call = call.argument
            if call.arguments[0] is ref.identifier:
                return statement, count
        return None
