from esprima.nodes import Node

from jsunravel.util.nodes import block, statement_list_fields

# Attributes on esprima nodes that never hold child nodes
SKIPPED_FIELDS = ('type', 'range', 'loc', 'leadingComments', 'trailingComments', 'innerComments')


def is_node(value):
    return isinstance(value, Node) and getattr(value, 'type', None) is not None


def iter_fields(node):
    """Yield (field, value) pairs for every child-bearing attribute of a node."""
    for field, value in list(vars(node).items()):
        if field in SKIPPED_FIELDS:
            continue
        if is_node(value):
            yield field, value
        elif isinstance(value, list) and any(is_node(item) for item in value):
            yield field, value


def iter_child_nodes(node):
    for _, value in iter_fields(node):
        if isinstance(value, list):
            for item in value:
                if is_node(item):
                    yield item
        else:
            yield value


def iter_nodes(node):
    """Pre-order walk over a node and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        children = list(iter_child_nodes(current))
        stack.extend(reversed(children))


def listed_statements(root):
    """Ids of the statements sitting directly in a statement list."""
    found = set()
    for node in iter_nodes(root):
        for field in statement_list_fields(node):
            found.update(id(statement) for statement in getattr(node, field) or [])
    return found


def removable_declarators(root):
    """Ids of declarators whose declaration can be dropped from its list."""
    listed = listed_statements(root)
    return {
        id(declarator)
        for node in iter_nodes(root)
        if node.type == 'VariableDeclaration' and id(node) in listed
        for declarator in node.declarations
    }


def mutated_members(root):
    """Ids of member expressions that are written, deleted or called."""
    found = set()
    for node in iter_nodes(root):
        if node.type == 'AssignmentExpression':
            target = node.left
        elif node.type == 'UpdateExpression':
            target = node.argument
        elif node.type == 'UnaryExpression' and node.operator == 'delete':
            target = node.argument
        elif node.type == 'CallExpression':
            target = node.callee
        elif node.type in ('ForInStatement', 'ForOfStatement'):
            target = node.left
        else:
            continue
        if target is not None and target.type == 'MemberExpression':
            found.add(id(target))
    return found


class NodeVisitor:
    """Dispatch on ``node.type`` to ``visit_<Type>`` methods."""

    def visit(self, node):
        method = 'visit_' + node.type
        visitor = getattr(self, method, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node):
        for child in list(iter_child_nodes(node)):
            self.visit(child)


class NodeTransformer(NodeVisitor):
    """Visitor whose methods return the replacement for the visited node.

    Inside lists, returning None drops the node and returning a list splices
    it in. In a single-node field a returned list is wrapped in a block.
    """

    def generic_visit(self, node):
        for field, value in iter_fields(node):
            if isinstance(value, list):
                new_values = []
                for item in value:
                    if not is_node(item):
                        new_values.append(item)
                        continue
                    replacement = self.visit(item)
                    if replacement is None:
                        continue
                    if isinstance(replacement, list):
                        new_values.extend(replacement)
                    else:
                        new_values.append(replacement)
                value[:] = new_values
            else:
                replacement = self.visit(value)
                if isinstance(replacement, list):
                    replacement = block(replacement)
                setattr(node, field, replacement)
        return node


class _Pruner(NodeTransformer):
    def __init__(self, declarators, statements):
        self.declarators = declarators
        self.statements = statements

    def visit(self, node):
        if id(node) in self.statements:
            return None
        return super().visit(node)

    def visit_VariableDeclaration(self, node):
        self.generic_visit(node)
        remaining = [d for d in node.declarations if id(d) not in self.declarators]
        if not remaining:
            return None
        node.declarations = remaining
        return node


def prune(root, declarators=(), statements=()):
    """Drop variable declarators and whole statements, both given by node id.

    Only declarations that sit directly in a statement list may lose all of
    their declarators; callers check that with ``listed_statements``.
    """
    _Pruner(set(declarators), set(statements)).visit(root)
