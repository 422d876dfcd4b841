"""Lexical scope analysis over esprima trees.

Bindings and references are tracked by node identity, so the analysis is
valid for whatever tree it is run on. It is cheap enough that passes simply
re-run it instead of trying to keep it up to date across rewrites.
"""
from jsunravel.util.walk import iter_fields, iter_nodes

FUNCTION_TYPES = ('FunctionDeclaration', 'FunctionExpression', 'ArrowFunctionExpression')
IMPORT_SPECIFIERS = ('ImportSpecifier', 'ImportDefaultSpecifier', 'ImportNamespaceSpecifier')


def pattern_identifiers(pattern):
    """Every Identifier a binding pattern declares."""
    if pattern is None:
        return []
    if pattern.type == 'Identifier':
        return [pattern]
    if pattern.type == 'ObjectPattern':
        found = []
        for prop in pattern.properties:
            target = prop.argument if prop.type == 'RestElement' else prop.value
            found.extend(pattern_identifiers(target))
        return found
    if pattern.type == 'ArrayPattern':
        found = []
        for element in pattern.elements:
            found.extend(pattern_identifiers(element))
        return found
    if pattern.type == 'RestElement':
        return pattern_identifiers(pattern.argument)
    if pattern.type == 'AssignmentPattern':
        return pattern_identifiers(pattern.left)
    return []


class Reference:
    __slots__ = ('identifier', 'parent', 'field', 'scope', 'write', 'binding')

    def __init__(self, identifier, parent, field, scope, write=False):
        self.identifier = identifier
        self.parent = parent
        self.field = field
        self.scope = scope
        self.write = write
        self.binding = None


class Binding:
    def __init__(self, name, kind, scope):
        self.name = name
        self.kind = kind
        self.scope = scope
        self.identifiers = []
        self.declarations = []
        self.references = []

    @property
    def writes(self):
        return [ref for ref in self.references if ref.write]

    @property
    def is_constant(self):
        """Declared once and never assigned after its declaration."""
        return len(self.identifiers) == 1 and not self.writes

    @property
    def declaration(self):
        return self.declarations[0] if self.declarations else None

    def __repr__(self):
        return f'<Binding {self.kind} {self.name} refs={len(self.references)}>'


class Scope:
    def __init__(self, kind, node, parent=None):
        self.kind = kind
        self.node = node
        self.parent = parent
        self.bindings = {}
        self.children = []
        self.dynamic = False
        if parent is not None:
            parent.children.append(self)

    @property
    def is_global(self):
        return self.kind in ('global', 'module')

    def variable_scope(self):
        scope = self
        while scope.kind not in ('function', 'global', 'module'):
            scope = scope.parent
        return scope

    def declare(self, name, kind, identifier, declaration):
        binding = self.bindings.get(name)
        if binding is None:
            binding = self.bindings[name] = Binding(name, kind, self)
        binding.identifiers.append(identifier)
        binding.declarations.append(declaration)
        return binding

    def lookup(self, name):
        scope = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        return None

    def mark_dynamic(self):
        scope = self
        while scope is not None:
            scope.dynamic = True
            scope = scope.parent


class ScopeAnalysis:
    """Scope tree, bindings and references for a Program node."""

    def __init__(self, program, is_module=False):
        self.program = program
        self.scopes = []
        self._scope_of = {}
        self.global_scope = self._new_scope('module' if is_module else 'global', program, None)
        for child in program.body:
            self._declare(child, self.global_scope)
        for child in program.body:
            self._resolve(child, self.global_scope, program, 'body')
        self.names = {node.name for node in iter_nodes(program)
                      if node.type == 'Identifier' and isinstance(node.name, str)}

    def bindings(self):
        for scope in self.scopes:
            yield from scope.bindings.values()

    def _new_scope(self, kind, node, parent):
        scope = Scope(kind, node, parent)
        self.scopes.append(scope)
        self._scope_of[id(node)] = scope
        return scope

    # Declarations

    def _declare(self, node, scope):
        node_type = node.type
        if node_type == 'VariableDeclaration':
            target = scope if node.kind in ('let', 'const') else scope.variable_scope()
            for declarator in node.declarations:
                for ident in pattern_identifiers(declarator.id):
                    target.declare(ident.name, node.kind, ident, declarator)
        elif node_type in FUNCTION_TYPES:
            if node_type == 'FunctionDeclaration' and node.id is not None:
                scope.variable_scope().declare(node.id.name, 'function', node.id, node)
            self._declare_function(node, scope)
            return
        elif node_type == 'ClassDeclaration':
            if node.id is not None:
                scope.declare(node.id.name, 'class', node.id, node)
        elif node_type == 'ClassExpression' and node.id is not None:
            inner = self._new_scope('class', node, scope)
            inner.declare(node.id.name, 'class', node.id, node)
            scope = inner
        elif node_type == 'BlockStatement':
            scope = self._scope_of.get(id(node)) or self._new_scope('block', node, scope)
        elif node_type in ('ForStatement', 'ForInStatement', 'ForOfStatement', 'SwitchStatement'):
            scope = self._new_scope('block', node, scope)
        elif node_type == 'CatchClause':
            scope = self._new_scope('catch', node, scope)
            for ident in pattern_identifiers(node.param):
                scope.declare(ident.name, 'catch', ident, node)
            self._scope_of[id(node.body)] = scope
        elif node_type in IMPORT_SPECIFIERS:
            scope.declare(node.local.name, 'import', node.local, node)
        elif node_type == 'WithStatement':
            scope.mark_dynamic()
        for _, value in iter_fields(node):
            for child in (value if isinstance(value, list) else [value]):
                if child is not None and hasattr(child, 'type'):
                    self._declare(child, scope)

    def _declare_function(self, node, scope):
        inner = self._new_scope('function', node, scope)
        if node.type == 'FunctionExpression' and node.id is not None:
            inner.declare(node.id.name, 'function', node.id, node)
        for param in node.params:
            for ident in pattern_identifiers(param):
                inner.declare(ident.name, 'param', ident, node)
            self._declare(param, inner)
        if node.body.type == 'BlockStatement':
            self._scope_of[id(node.body)] = inner
        self._declare(node.body, inner)

    # References

    def _reference(self, identifier, scope, parent, field, write=False):
        ref = Reference(identifier, parent, field, scope, write)
        binding = scope.lookup(identifier.name)
        if binding is not None:
            ref.binding = binding
            binding.references.append(ref)
        return ref

    def _resolve(self, node, scope, parent, field):
        scope = self._scope_of.get(id(node), scope)
        node_type = node.type
        if node_type == 'Identifier':
            self._reference(node, scope, parent, field)
        elif node_type in FUNCTION_TYPES:
            for param in node.params:
                self._resolve_pattern(param, scope, node, 'params', declaring=True)
            self._resolve(node.body, scope, node, 'body')
        elif node_type == 'VariableDeclaration':
            for declarator in node.declarations:
                self._resolve_pattern(declarator.id, scope, declarator, 'id', declaring=True)
                if declarator.init is not None:
                    self._resolve(declarator.init, scope, declarator, 'init')
        elif node_type == 'MemberExpression':
            self._resolve(node.object, scope, node, 'object')
            if node.computed:
                self._resolve(node.property, scope, node, 'property')
        elif node_type in ('Property', 'MethodDefinition'):
            if node.computed:
                self._resolve(node.key, scope, node, 'key')
            if node.value is not None:
                self._resolve(node.value, scope, node, 'value')
        elif node_type == 'LabeledStatement':
            self._resolve(node.body, scope, node, 'body')
        elif node_type in ('BreakStatement', 'ContinueStatement', 'MetaProperty',
                           'ImportDeclaration', 'ExportAllDeclaration'):
            return
        elif node_type == 'AssignmentExpression':
            self._resolve_pattern(node.left, scope, node, 'left', declaring=False)
            self._resolve(node.right, scope, node, 'right')
        elif node_type == 'UpdateExpression' and node.argument.type == 'Identifier':
            self._reference(node.argument, scope, node, 'argument', write=True)
        elif node_type in ('ForInStatement', 'ForOfStatement'):
            if node.left.type == 'VariableDeclaration':
                self._resolve(node.left, scope, node, 'left')
            else:
                self._resolve_pattern(node.left, scope, node, 'left', declaring=False)
            self._resolve(node.right, scope, node, 'right')
            self._resolve(node.body, scope, node, 'body')
        elif node_type in ('ClassDeclaration', 'ClassExpression'):
            if node.superClass is not None:
                self._resolve(node.superClass, scope, node, 'superClass')
            self._resolve(node.body, scope, node, 'body')
        elif node_type == 'ExportNamedDeclaration':
            if node.declaration is not None:
                self._resolve(node.declaration, scope, node, 'declaration')
            if node.source is None:
                for specifier in node.specifiers or []:
                    self._reference(specifier.local, scope, specifier, 'local')
        elif node_type == 'CatchClause':
            if node.param is not None:
                self._resolve_pattern(node.param, scope, node, 'param', declaring=True)
            self._resolve(node.body, scope, node, 'body')
        else:
            if node_type == 'CallExpression' and node.callee.type == 'Identifier' \
                    and node.callee.name == 'eval' and scope.lookup('eval') is None:
                scope.mark_dynamic()
            self._resolve_children(node, scope)

    def _resolve_children(self, node, scope):
        for field, value in iter_fields(node):
            for child in (value if isinstance(value, list) else [value]):
                if child is not None and hasattr(child, 'type'):
                    self._resolve(child, scope, node, field)

    def _resolve_pattern(self, pattern, scope, parent, field, declaring):
        if pattern is None:
            return
        pattern_type = pattern.type
        if pattern_type == 'Identifier':
            if not declaring:
                self._reference(pattern, scope, parent, field, write=True)
        elif pattern_type == 'ObjectPattern':
            for prop in pattern.properties:
                if prop.type == 'RestElement':
                    self._resolve_pattern(prop.argument, scope, prop, 'argument', declaring)
                    continue
                if prop.computed:
                    self._resolve(prop.key, scope, prop, 'key')
                self._resolve_pattern(prop.value, scope, prop, 'value', declaring)
        elif pattern_type == 'ArrayPattern':
            for element in pattern.elements:
                self._resolve_pattern(element, scope, pattern, 'elements', declaring)
        elif pattern_type == 'RestElement':
            self._resolve_pattern(pattern.argument, scope, pattern, 'argument', declaring)
        elif pattern_type == 'AssignmentPattern':
            self._resolve_pattern(pattern.left, scope, pattern, 'left', declaring)
            self._resolve(pattern.right, scope, pattern, 'right')
        else:
            self._resolve(pattern, scope, parent, field)


def analyze(program, is_module=False):
    return ScopeAnalysis(program, is_module=is_module)
