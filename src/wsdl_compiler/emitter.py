"""Python source emitter.

Walks the resolved model and writes one self-contained module: an enum per
enumerated type, a dataclass per structured type, a subclass per element
whose type carries a different name, and a client class per service. Every
loop follows document order and nothing time-dependent is written, so the
same input always produces byte-identical output.
"""
import logging

from .errors import Stage, UnsupportedFeatureError
from .model import Shape
from .naming import IdentifierKind, IdentifierScope, normalize

log = logging.getLogger(__name__)

STAGE = Stage.EMITTER

INDENT = '    '

# continuation lines of the generated __init__ signature
ALIGN = ' ' * len('    def __init__(')

PYTHON_TYPES = {
    'string': 'str',
    'int': 'int',
    'float': 'float',
    'decimal': 'decimal.Decimal',
    'bool': 'bool',
    'bytes': 'bytes',
}

# (keyword, expression) of the default for a required primitive field
ZERO_VALUES = {
    'string': ('default', "''"),
    'int': ('default', '0'),
    'float': ('default', '0.0'),
    'decimal': ('default_factory', 'decimal.Decimal'),
    'bool': ('default', 'False'),
    'bytes': ('default', "b''"),
}

CLIENT_SUFFIX = 'Client'


def compute_capabilities(graph):
    """Return ``(equatable, constructible)`` sets of struct node ids.

    Both are greatest fixed points over the struct graph, so mutually
    recursive types keep a capability unless something in the cycle lacks it.
    """
    structs = graph.structs()
    equatable = {n.id for n in structs}
    constructible = {n.id for n in structs}

    def field_eq(field):
        if field.node.kind == 'primitive':
            return field.node.category != 'float'
        if field.node.kind == 'struct':
            return field.node.id in equatable
        return True

    def field_default(field):
        if field.shape != Shape.REQUIRED:
            return True
        if field.node.kind == 'primitive':
            return True
        if field.node.kind == 'struct':
            return not field.indirect and field.node.id in constructible
        return False

    changed = True
    while changed:
        changed = False
        for node in structs:
            if node.id in equatable and not all(field_eq(f) for f in node.fields):
                equatable.discard(node.id)
                changed = True
            if node.id in constructible and not all(field_default(f) for f in node.fields):
                constructible.discard(node.id)
                changed = True
    return equatable, constructible


def quote_docstring(text):
    return text.replace('\\', '\\\\').replace('"', '\\"')


class ModuleEmitter:
    """Accumulates the lines of one generated module."""

    def __init__(self, model, client_name=None):
        self.model = model
        self.graph = model.graph
        self.client_name = client_name
        self.lines = []
        self.imports = set()
        self.names = {}
        self.emitted = set()
        self.equatable, self.constructible = compute_capabilities(self.graph)

    # naming

    def assign_names(self):
        scope = IdentifierScope('module')
        scope.reserve('TARGET_NAMESPACE')
        for node in self.graph:
            self.names[node.id] = scope.claim(node.qname.local, IdentifierKind.TYPE,
                                              source=node.qname).name
        for node in self.graph.wrappers:
            self.names[node.id] = scope.claim(node.qname.local, IdentifierKind.TYPE,
                                              source=f'element {node.qname}').name
        self.client_names = []
        for i, service in enumerate(self.model.services):
            if i == 0 and self.client_name:
                name = self.client_name
            else:
                name = normalize(service.name, IdentifierKind.TYPE)
                if not name.endswith(CLIENT_SUFFIX):
                    name += CLIENT_SUFFIX
            scope.reserve(name, source=f'service {service.name}')
            self.client_names.append(name)

    def type_ref(self, node, quote=False):
        if node.kind == 'primitive':
            if node.category == 'decimal':
                self.imports.add('decimal')
            return PYTHON_TYPES[node.category]
        name = self.names[node.id]
        if quote or node.id not in self.emitted:
            return repr(name)
        return name

    def annotation(self, field):
        inner = self.type_ref(field.node, quote=field.indirect)
        shape = field.shape
        if shape == Shape.REQUIRED:
            return inner
        self.imports.add('typing')
        if shape == Shape.OPTIONAL:
            return f'typing.Optional[{inner}]'
        if shape == Shape.REQUIRED_REPEATED:
            return f'typing.List[{inner}]'
        return f'typing.Optional[typing.List[{inner}]]'

    def default(self, field):
        """``(keyword, expression)`` for the field default, or None."""
        if field.shape.optional:
            return 'default', 'None'
        if field.shape.repeated:
            return 'default_factory', 'list'
        node = field.node
        if node.kind == 'primitive':
            if node.category == 'decimal':
                self.imports.add('decimal')
            return ZERO_VALUES[node.category]
        if node.kind == 'struct' and not field.indirect and node.id in self.constructible:
            return 'default_factory', f'lambda: {self.names[node.id]}()'
        return None

    # sections

    def emit_enum(self, node):
        scope = IdentifierScope(f"enumeration '{node.decl.wire_name}'")
        name = self.names[node.id]
        self.imports.add('enum')
        self.lines.append(f'class {name}(str, enum.Enum):')
        self.lines.append(f'{INDENT}__wire_name__ = {node.decl.wire_name!r}')
        self.lines.append(f'{INDENT}__wire_namespace__ = {node.qname.namespace!r}')
        self.lines.append('')
        for value in node.values:
            member = scope.claim(value, IdentifierKind.VARIANT)
            self.lines.append(f'{INDENT}{member.name} = {value!r}')

    def field_metadata(self, field):
        items = [
            ('wire_name', field.wire_name),
            ('namespace', field.namespace),
            ('xsd_type', field.node.xsd_type if field.node.kind == 'primitive' else None),
            ('shape', field.shape.value),
        ]
        if field.nillable:
            items.append(('nillable', True))
        if field.indirect:
            items.append(('indirect', True))
        return '{' + ', '.join(f'{k!r}: {v!r}' for k, v in items) + '}'

    def emit_struct(self, node):
        local = node.decl.wire_name
        scope = IdentifierScope(f"type '{local}'")
        name = self.names[node.id]
        self.imports.add('dataclasses')
        options = 'kw_only=True' if node.id in self.equatable else 'kw_only=True, eq=False'
        self.lines.append(f'@dataclasses.dataclass({options})')
        self.lines.append(f'class {name}:')
        self.lines.append(f'{INDENT}__wire_name__ = {local!r}')
        self.lines.append(f'{INDENT}__wire_namespace__ = {node.qname.namespace!r}')
        self.lines.append(f'{INDENT}__wire_qualified__ = {node.decl.qualified!r}')
        if node.fields:
            self.lines.append('')
        seen = set()
        for field in node.fields:
            if field.wire_name in seen:
                raise UnsupportedFeatureError(
                    f"element '{field.wire_name}' declared twice in one sequence",
                    entity=local, stage=STAGE, line=field.particle.line)
            seen.add(field.wire_name)
            ident = scope.claim(field.wire_name, IdentifierKind.FIELD)
            args = []
            default = self.default(field)
            if default is not None:
                args.append(f'{default[0]}={default[1]}')
            args.append(f'metadata={self.field_metadata(field)}')
            self.lines.append(f'{INDENT}{ident.name}: {self.annotation(field)} = dataclasses.field(')
            for arg in args:
                self.lines.append(f'{INDENT * 2}{arg},')
            self.lines.append(f'{INDENT})')

    def emit_wrapper(self, node):
        self.lines.append(f'class {self.names[node.id]}({self.names[node.base.id]}):')
        self.lines.append(f'{INDENT}__wire_name__ = {node.qname.local!r}')
        self.lines.append(f'{INDENT}__wire_namespace__ = {node.qname.namespace!r}')

    def emit_docstring(self, text, indent):
        doc_lines = quote_docstring(text).splitlines()
        if len(doc_lines) == 1:
            self.lines.append(f'{indent}"""{doc_lines[0]}"""')
            return
        self.lines.append(f'{indent}"""{doc_lines[0]}')
        for line in doc_lines[1:]:
            self.lines.append(f'{indent}{line}' if line else '')
        self.lines.append(f'{indent}"""')

    def emit_client(self, service, name):
        self.imports.add('contract')
        scope = IdentifierScope(f"client '{name}'")
        scope.reserve('DEFAULT_ENDPOINT')
        scope.reserve('SOAP_VERSION')
        version = 'SOAP_11' if service.soap_version == '1.1' else 'SOAP_12'

        self.lines.append(f'class {name}:')
        doc = f'Client for the {service.name} service.'
        if service.service.documentation:
            doc = f'{doc}\n\n{service.service.documentation}'
        self.emit_docstring(doc, INDENT)
        self.lines.append('')
        self.lines.append(f'{INDENT}DEFAULT_ENDPOINT = {service.address!r}')
        self.lines.append(f'{INDENT}SOAP_VERSION = contract.SoapVersion.{version}')
        self.lines.append('')
        self.lines.append(f'{INDENT}def __init__(self, runtime_factory: contract.RuntimeFactory,')
        self.lines.append(f'{ALIGN}endpoint: str = DEFAULT_ENDPOINT,')
        self.lines.append(f'{ALIGN}soap_version: contract.SoapVersion = SOAP_VERSION):')
        self.lines.append(f'{INDENT * 2}self._endpoint = endpoint')
        self.lines.append(f'{INDENT * 2}self._soap_version = soap_version')
        self.lines.append(f'{INDENT * 2}self._runtime = runtime_factory(endpoint, soap_version)')

        seen = set()
        for op in service.operations:
            if op.name in seen:
                raise UnsupportedFeatureError(f"overloaded operation '{op.name}'",
                                              entity=service.name, stage=STAGE,
                                              line=op.operation.line)
            seen.add(op.name)
            method = scope.claim(op.name, IdentifierKind.METHOD)
            request = self.type_ref(op.request)
            response = self.type_ref(op.response) if op.response is not None else 'None'
            self.lines.append('')
            self.lines.append(f'{INDENT}def {method.name}(self, request: {request}) -> {response}:')
            self.emit_docstring(op.documentation or f'Invoke the {op.name} operation.',
                                INDENT * 2)
            self.lines.append(
                f'{INDENT * 2}return self._runtime.invoke({op.name!r}, {op.action!r}, '
                f'{op.namespace!r}, request, {response})')

    def emit(self):
        self.assign_names()
        body = self.lines
        for node in self.graph:
            body.append('')
            body.append('')
            if node.kind == 'enum':
                self.emit_enum(node)
            else:
                self.emit_struct(node)
            self.emitted.add(node.id)
        for node in self.graph.wrappers:
            body.append('')
            body.append('')
            self.emit_wrapper(node)
            self.emitted.add(node.id)
        for service, name in zip(self.model.services, self.client_names):
            body.append('')
            body.append('')
            self.emit_client(service, name)

        defs = self.model.definitions
        title = defs.name or 'service'
        header = [
            f'"""Client types and bindings for the {title} service description.',
            '',
            'Generated by wsdl-compiler. Do not edit.',
            '"""',
        ]
        stdlib = sorted(m for m in self.imports if m != 'contract')
        header.extend(f'import {m}' for m in stdlib)
        if 'contract' in self.imports:
            if stdlib:
                header.append('')
            header.append('from wsdl_compiler import contract')
        header.append('')
        header.append(f'TARGET_NAMESPACE = {defs.target_namespace!r}')
        log.info('Emitted %d types, %d element types and %d clients', len(self.graph),
                 len(self.graph.wrappers), len(self.model.services))
        return '\n'.join(header + body) + '\n'


def emit_module(model, client_name=None):
    """Python source for ``model`` as one string."""
    return ModuleEmitter(model, client_name=client_name).emit()
