"""Data model shared by the parsing, resolution and emission stages.

Draft records are produced once by the schema and service description
builders; resolved records are produced by the type resolver. Nothing is
mutated after resolution completes.
"""
import enum

UNBOUNDED = 'unbounded'


# Schema draft

class SchemaElement:
    def __init__(self, qname, type_name, nillable=False, anonymous=False, line=None):
        self.qname = qname
        self.type_name = type_name
        self.nillable = nillable
        self.anonymous = anonymous
        self.line = line

    def __repr__(self):
        return f'SchemaElement({self.qname!s} -> {self.type_name!s})'


class Particle:
    def __init__(self, name, type_name=None, element_ref=None, min_occurs=1,
                 max_occurs=1, nillable=False, qualified=True, line=None):
        self.name = name
        self.type_name = type_name
        self.element_ref = element_ref
        self.min_occurs = min_occurs
        self.max_occurs = max_occurs
        self.nillable = nillable
        self.qualified = qualified
        self.line = line

    def __repr__(self):
        return (f'Particle({self.name}, {self.type_name or self.element_ref!s}, '
                f'{self.min_occurs}..{self.max_occurs})')


class StructuredType:
    def __init__(self, qname, particles, qualified=True, anonymous=False, line=None,
                 wire_name=None):
        self.qname = qname
        self.particles = tuple(particles)
        self.qualified = qualified
        self.anonymous = anonymous
        self.line = line
        self.wire_name = wire_name or qname.local

    @property
    def namespace(self):
        return self.qname.namespace


class EnumeratedType:
    def __init__(self, qname, base, values=(), anonymous=False, line=None,
                 wire_name=None):
        self.qname = qname
        self.base = base
        self.values = tuple(values)
        self.anonymous = anonymous
        self.line = line
        self.wire_name = wire_name or qname.local

    @property
    def is_enumeration(self):
        return bool(self.values)


class SchemaDraft:
    """Declarations of every embedded schema, in document order."""

    def __init__(self):
        self.types = []
        self.elements = []
        self.namespaces = []

    def add_element(self, element):
        self.elements.append(element)


# Service description

class MessagePart:
    def __init__(self, name, element=None, type_name=None):
        self.name = name
        self.element = element
        self.type_name = type_name


class Message:
    def __init__(self, qname, parts, line=None):
        self.qname = qname
        self.parts = tuple(parts)
        self.line = line


class Fault:
    def __init__(self, name, message):
        self.name = name
        self.message = message


class Operation:
    def __init__(self, name, input=None, output=None, faults=(), documentation=None,
                 line=None):
        self.name = name
        self.input = input
        self.output = output
        self.faults = tuple(faults)
        self.documentation = documentation
        self.line = line


class PortType:
    def __init__(self, qname, operations, line=None):
        self.qname = qname
        self.operations = tuple(operations)
        self.line = line


class BindingOperation:
    def __init__(self, name, action=None, style='document'):
        self.name = name
        self.action = action
        self.style = style


class Binding:
    def __init__(self, qname, port_type, soap_version, transport, style, operations,
                 line=None):
        self.qname = qname
        self.port_type = port_type
        self.soap_version = soap_version
        self.transport = transport
        self.style = style
        self.operations = tuple(operations)
        self.line = line

    def find_operation(self, name):
        for op in self.operations:
            if op.name == name:
                return op
        return None


class Port:
    def __init__(self, name, binding, address):
        self.name = name
        self.binding = binding
        self.address = address


class Service:
    def __init__(self, name, ports, documentation=None, line=None):
        self.name = name
        self.ports = tuple(ports)
        self.documentation = documentation
        self.line = line


class Definitions:
    def __init__(self, name, target_namespace, schema, messages, port_types,
                 bindings, services):
        self.name = name
        self.target_namespace = target_namespace
        self.schema = schema
        self.messages = tuple(messages)
        self.port_types = tuple(port_types)
        self.bindings = tuple(bindings)
        self.services = tuple(services)


# Resolved graph

class Shape(enum.Enum):
    REQUIRED = 'required'
    OPTIONAL = 'optional'
    REQUIRED_REPEATED = 'required-repeated'
    OPTIONAL_REPEATED = 'optional-repeated'

    @property
    def repeated(self):
        return self in (Shape.REQUIRED_REPEATED, Shape.OPTIONAL_REPEATED)

    @property
    def optional(self):
        return self in (Shape.OPTIONAL, Shape.OPTIONAL_REPEATED)


class PrimitiveNode:
    kind = 'primitive'

    def __init__(self, qname, category):
        self.qname = qname
        self.category = category

    @property
    def xsd_type(self):
        return self.qname.local


class EnumNode:
    kind = 'enum'

    def __init__(self, id, decl):
        self.id = id
        self.decl = decl

    @property
    def qname(self):
        return self.decl.qname

    @property
    def values(self):
        return self.decl.values


class StructNode:
    kind = 'struct'

    def __init__(self, id, decl):
        self.id = id
        self.decl = decl
        self.fields = ()

    @property
    def qname(self):
        return self.decl.qname


class ElementNode:
    """Top-level element whose named structured type carries another name.

    Emitted as a subclass of the type so the element name goes on the wire.
    """
    kind = 'element'

    def __init__(self, id, element, base):
        self.id = id
        self.element = element
        self.base = base

    @property
    def qname(self):
        return self.element.qname

    @property
    def fields(self):
        return self.base.fields


class ResolvedField:
    def __init__(self, particle, node, shape, namespace=None, nillable=False,
                 indirect=False):
        self.particle = particle
        self.node = node
        self.shape = shape
        self.namespace = namespace
        self.nillable = nillable
        self.indirect = indirect

    @property
    def wire_name(self):
        return self.particle.name


class TypeGraph:
    """Resolved declarations keyed by qualified name, in declaration order."""

    def __init__(self, nodes, elements, wrappers=()):
        self._nodes = dict(nodes)
        self._elements = dict(elements)
        self.wrappers = tuple(wrappers)

    def __iter__(self):
        return iter(self._nodes.values())

    def __len__(self):
        return len(self._nodes)

    def get(self, qname):
        return self._nodes.get(qname)

    def element_type(self, qname):
        return self._elements.get(qname)

    def structs(self):
        return [n for n in self._nodes.values() if n.kind == 'struct']

    def enums(self):
        return [n for n in self._nodes.values() if n.kind == 'enum']


class ResolvedOperation:
    def __init__(self, operation, request, response, action, namespace, faults=()):
        self.operation = operation
        self.request = request
        self.response = response
        self.action = action
        self.namespace = namespace
        self.faults = tuple(faults)

    @property
    def documentation(self):
        return self.operation.documentation

    @property
    def name(self):
        return self.operation.name


class ResolvedService:
    def __init__(self, service, port, binding, operations):
        self.service = service
        self.port = port
        self.binding = binding
        self.operations = tuple(operations)

    @property
    def name(self):
        return self.service.name

    @property
    def address(self):
        return self.port.address

    @property
    def soap_version(self):
        return self.binding.soap_version


class ResolvedModel:
    def __init__(self, definitions, graph, services):
        self.definitions = definitions
        self.graph = graph
        self.services = tuple(services)
