"""Type resolver.

Turns the schema draft and the service description into one resolved type
graph plus the resolved operations of each service. Resolution takes two
passes so declarations may reference types declared later in the document:
the declaration pass indexes every type and element by qualified name, the
resolution pass looks every reference up in the completed index.
"""
import logging

from .errors import (MalformedInputError, MissingConstructError, Stage,
                     UnresolvedReferenceError, UnsupportedFeatureError)
from .model import (UNBOUNDED, ElementNode, EnumeratedType, EnumNode, PrimitiveNode,
                    ResolvedField, ResolvedModel, ResolvedOperation, ResolvedService,
                    Shape, StructNode, TypeGraph)
from .xmlns import XSD_BUILTIN_TYPES, is_builtin

log = logging.getLogger(__name__)

STAGE = Stage.RESOLVER


def lower_occurs(min_occurs, max_occurs, nillable=False):
    """Shape of a field declared with the given occurrence counts."""
    repeated = max_occurs == UNBOUNDED or max_occurs > 1
    if repeated:
        return Shape.OPTIONAL_REPEATED if min_occurs == 0 else Shape.REQUIRED_REPEATED
    if min_occurs == 0 or nillable:
        return Shape.OPTIONAL
    return Shape.REQUIRED


def strongly_connected(nodes, edges):
    """Tarjan's algorithm. Returns ``{node_id: component_index}``.

    ``edges`` maps a node id to the ids it references, in declaration order.
    Iterative, so reference chains are not bounded by the recursion limit.
    """
    index = {}
    low = {}
    stack = []
    on_stack = set()
    component = {}
    components = 0

    def enter(v):
        index[v] = low[v] = len(index)
        stack.append(v)
        on_stack.add(v)
        return v, iter(edges.get(v, ()))

    for root in nodes:
        if root in index:
            continue
        work = [enter(root)]
        while work:
            v, successors = work[-1]
            for w in successors:
                if w not in index:
                    work.append(enter(w))
                    break
                if w in on_stack:
                    low[v] = min(low[v], index[w])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    low[parent] = min(low[parent], low[v])
                if low[v] == index[v]:
                    while True:
                        w = stack.pop()
                        on_stack.discard(w)
                        component[w] = components
                        if w == v:
                            break
                    components += 1
    return component


class TypeResolver:
    """Builds the ``TypeGraph`` for one schema draft."""

    def __init__(self, draft):
        self.draft = draft
        self.decls = {}
        self.elements = {}
        self.nodes = {}
        self.primitives = {}

    def resolve(self):
        self.declare()
        field_targets = {}
        for node in self.nodes.values():
            if node.kind == 'struct':
                field_targets[node.id] = [self.field_target(node, p)
                                          for p in node.decl.particles]
            else:
                self.check_enum_base(node)

        structs = {n.id: n for n in self.nodes.values() if n.kind == 'struct'}
        edges = {
            sid: [t.id for _, t, _, _ in targets if t.kind == 'struct']
            for sid, targets in field_targets.items()
        }
        component = strongly_connected(list(structs), edges)
        for sid, node in structs.items():
            fields = []
            for particle, target, namespace, nillable in field_targets[sid]:
                indirect = target.kind == 'struct' and component[target.id] == component[sid]
                shape = lower_occurs(particle.min_occurs, particle.max_occurs, nillable)
                fields.append(ResolvedField(particle, target, shape, namespace=namespace,
                                            nillable=nillable, indirect=indirect))
                if indirect:
                    log.debug('Field %s.%s refers back into its own cycle',
                              node.qname.local, particle.name)
            node.fields = tuple(fields)

        elements = {}
        wrappers = []
        next_id = len(self.nodes)
        for qname, elem in self.elements.items():
            target = self.lookup(elem.type_name, qname.local, elem.line)
            if target.kind == 'struct' and target.qname != qname and not elem.anonymous:
                target = ElementNode(next_id, elem, target)
                next_id += 1
                wrappers.append(target)
            elements[qname] = target
        log.info('Resolved %d types and %d elements', len(self.nodes), len(elements))
        return TypeGraph(self.nodes, elements, wrappers)

    def declare(self):
        """Declaration pass: index types and elements, assign node ids."""
        for decl in self.draft.types:
            if decl.qname in self.decls:
                raise MalformedInputError(f"duplicate type declaration '{decl.qname}'",
                                          stage=STAGE, entity=decl.qname.local,
                                          line=decl.line)
            self.decls[decl.qname] = decl
            if isinstance(decl, EnumeratedType):
                if decl.is_enumeration:
                    self.nodes[decl.qname] = EnumNode(len(self.nodes), decl)
            else:
                self.nodes[decl.qname] = StructNode(len(self.nodes), decl)
        for elem in self.draft.elements:
            if elem.qname in self.elements:
                raise MalformedInputError(f"duplicate element declaration '{elem.qname}'",
                                          stage=STAGE, entity=elem.qname.local,
                                          line=elem.line)
            self.elements[elem.qname] = elem

    def lookup(self, qname, container, line=None):
        """Node for the type ``qname``, collapsing simple-type aliases."""
        seen = []
        while True:
            if is_builtin(qname):
                if qname not in self.primitives:
                    self.primitives[qname] = PrimitiveNode(qname, XSD_BUILTIN_TYPES[qname.local])
                return self.primitives[qname]
            node = self.nodes.get(qname)
            if node is not None:
                return node
            decl = self.decls.get(qname)
            if decl is None:
                raise UnresolvedReferenceError(str(qname), container, line=line)
            if qname in seen:
                raise MalformedInputError(f"simple type '{qname.local}' restricts itself",
                                          stage=STAGE, entity=qname.local, line=decl.line)
            seen.append(qname)
            qname, container, line = decl.base, decl.qname.local, decl.line

    def field_target(self, node, particle):
        """``(particle, node, namespace, nillable)`` for one particle."""
        owner = node.qname.local
        if particle.element_ref is not None:
            elem = self.elements.get(particle.element_ref)
            if elem is None:
                raise UnresolvedReferenceError(str(particle.element_ref), owner,
                                               line=particle.line)
            target = self.lookup(elem.type_name, owner, particle.line)
            return (particle, target, elem.qname.namespace,
                    particle.nillable or elem.nillable)
        target = self.lookup(particle.type_name, owner, particle.line)
        namespace = node.decl.namespace if particle.qualified else None
        return particle, target, namespace, particle.nillable

    def check_enum_base(self, node):
        base = self.lookup(node.decl.base, node.qname.local, node.decl.line)
        if base.kind == 'struct':
            raise MalformedInputError(
                f"enumeration '{node.qname.local}' restricts structured type "
                f"'{base.qname.local}'", stage=STAGE, entity=node.qname.local,
                line=node.decl.line)


def resolve_graph(draft):
    return TypeResolver(draft).resolve()


class OperationResolver:
    """Resolves messages of port-type operations to request/response nodes."""

    def __init__(self, definitions, graph):
        self.definitions = definitions
        self.graph = graph
        self.messages = {m.qname: m for m in definitions.messages}

    def message_node(self, qname, operation):
        message = self.messages.get(qname)
        if message is None:
            raise UnresolvedReferenceError(str(qname), operation.name, line=operation.line)
        entity = message.qname.local
        if len(message.parts) != 1:
            raise UnsupportedFeatureError(
                f'message with {len(message.parts)} parts', entity=entity,
                stage=STAGE, line=message.line)
        part = message.parts[0]
        if part.element is None:
            raise UnsupportedFeatureError('message part bound to a type', entity=entity,
                                          stage=STAGE, line=message.line)
        node = self.graph.element_type(part.element)
        if node is None:
            raise UnresolvedReferenceError(str(part.element), entity, line=message.line)
        if node.kind not in ('struct', 'element'):
            raise UnsupportedFeatureError('message element of simple type',
                                          entity=part.element.local, stage=STAGE,
                                          line=message.line)
        return node, part.element

    def resolve(self, operation, binding_operation):
        if operation.input is None:
            raise MissingConstructError(
                f"operation '{operation.name}' has no input message", stage=STAGE,
                entity=operation.name, line=operation.line)
        request, element = self.message_node(operation.input, operation)
        response = None
        if operation.output is not None:
            response, _ = self.message_node(operation.output, operation)
        faults = [self.message_node(f.message, operation)[0] for f in operation.faults]
        namespace = element.namespace or self.definitions.target_namespace
        return ResolvedOperation(operation, request, response, binding_operation.action,
                                 namespace, faults)


def select_port(service, bindings, soap_version=None):
    """First port of ``service`` whose binding matches ``soap_version``."""
    for port in service.ports:
        binding = bindings.get(port.binding)
        if binding is None:
            raise MissingConstructError(
                f"binding '{port.binding.local}' referenced by port '{port.name}' "
                f"is not a declared SOAP binding", stage=STAGE, entity=port.name)
        if soap_version is None or binding.soap_version == soap_version:
            return port, binding
    return None, None


def resolve_services(definitions, graph, soap_version=None):
    bindings = {b.qname: b for b in definitions.bindings}
    port_types = {p.qname: p for p in definitions.port_types}
    operations = OperationResolver(definitions, graph)
    services = []
    for service in definitions.services:
        port, binding = select_port(service, bindings, soap_version)
        if port is None:
            log.warning("Service '%s' has no SOAP %s port, skipping it", service.name,
                        soap_version or '')
            continue
        port_type = port_types.get(binding.port_type)
        if port_type is None:
            raise MissingConstructError(
                f"port type '{binding.port_type.local}' of binding "
                f"'{binding.qname.local}' is not declared", stage=STAGE,
                entity=binding.qname.local, line=binding.line)
        resolved = []
        for operation in port_type.operations:
            binding_operation = binding.find_operation(operation.name)
            if binding_operation is None:
                raise MissingConstructError(
                    f"binding '{binding.qname.local}' does not bind operation "
                    f"'{operation.name}'", stage=STAGE, entity=operation.name,
                    line=binding.line)
            resolved.append(operations.resolve(operation, binding_operation))
        log.info("Service '%s': port '%s', SOAP %s, %d operations", service.name,
                 port.name, binding.soap_version, len(resolved))
        services.append(ResolvedService(service, port, binding, resolved))
    return services


def resolve(definitions, soap_version=None, lenient=False):
    """Resolve ``definitions`` into a ``ResolvedModel``."""
    graph = resolve_graph(definitions.schema)
    services = resolve_services(definitions, graph, soap_version)
    if not services:
        detail = f' with a SOAP {soap_version} port' if soap_version else ''
        if not lenient:
            raise MissingConstructError(f'document declares no services{detail}',
                                        stage=Stage.SERVICE_DESCRIPTION,
                                        entity=definitions.name)
        log.warning('No services%s found, generating types only', detail)
    return ResolvedModel(definitions, graph, services)
