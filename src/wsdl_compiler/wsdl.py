"""Service description model builder.

Decodes a WSDL 1.1 document into ``Definitions``: messages, port types with
their operations, SOAP bindings and services. The ``<types>`` section is
handed to the schema builder.
"""
import logging
import re

from lxml import etree

from .errors import MalformedInputError, Stage, UnsupportedFeatureError
from .model import (Binding, BindingOperation, Definitions, Fault, Message, MessagePart,
                    Operation, Port, PortType, SchemaDraft, Service)
from .schema import parse_types
from .xmlns import (SOAP_BINDING_NAMESPACES, WSDL2_NS, WSDL_NS, NamespaceContext,
                    children, local_name, namespace_of)

log = logging.getLogger(__name__)

STAGE = Stage.SERVICE_DESCRIPTION

SUPPORTED_STYLE = 'document'
SUPPORTED_USE = 'literal'

re_xml_declaration = re.compile(r'^\s*<\?xml[^>]*\?>')


def load_document(source):
    """Parse WSDL text or bytes into an lxml element tree root."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True,
                             remove_comments=True, remove_pis=True)
    if isinstance(source, str):
        # lxml rejects str input that carries an encoding declaration
        source = re_xml_declaration.sub('', source, count=1)
    try:
        return etree.fromstring(source, parser)
    except etree.XMLSyntaxError as exc:
        raise MalformedInputError(f'ill-formed XML: {exc.msg}', stage=STAGE,
                                  line=exc.lineno) from exc


def parse_definitions(source):
    """Build the service description model from WSDL ``source``."""
    root = load_document(source)
    if root.tag == f'{{{WSDL2_NS}}}description':
        raise UnsupportedFeatureError('WSDL 2.0 description', stage=STAGE,
                                      line=root.sourceline)
    if root.tag != f'{{{WSDL_NS}}}definitions':
        raise MalformedInputError(
            f'document root is <{local_name(root)}>, expected wsdl:definitions',
            stage=STAGE, entity=local_name(root), line=root.sourceline)

    tns = root.get('targetNamespace')
    ctx = NamespaceContext(root.nsmap, tns, STAGE)
    schema = SchemaDraft()
    messages = []
    port_types = []
    bindings = []
    services = []
    for child in children(root):
        if namespace_of(child) != WSDL_NS:
            log.debug('Skipping extension element %s', child.tag)
            continue
        kind = local_name(child)
        if kind == 'types':
            schema = parse_types(child, ctx.scoped(child))
        elif kind == 'message':
            messages.append(parse_message(child, ctx.scoped(child)))
        elif kind == 'portType':
            port_types.append(parse_port_type(child, ctx.scoped(child)))
        elif kind == 'binding':
            binding = parse_binding(child, ctx.scoped(child))
            if binding is not None:
                bindings.append(binding)
        elif kind == 'service':
            services.append(parse_service(child, ctx.scoped(child)))
        elif kind == 'import':
            raise UnsupportedFeatureError('WSDL import', entity=child.get('location'),
                                          stage=STAGE, line=child.sourceline)
        elif kind != 'documentation':
            raise MalformedInputError(f'unexpected <wsdl:{kind}> in definitions',
                                      stage=STAGE, entity=kind, line=child.sourceline)

    log.info('Parsed %d messages, %d port types, %d bindings, %d services',
             len(messages), len(port_types), len(bindings), len(services))
    return Definitions(root.get('name'), tns, schema, messages, port_types,
                       bindings, services)


def _required(elem, attr, owner=None):
    value = elem.get(attr)
    if not value:
        where = f' in {owner}' if owner else ''
        raise MalformedInputError(
            f"<wsdl:{local_name(elem)}> is missing required attribute '{attr}'{where}",
            stage=STAGE, entity=owner or local_name(elem), line=elem.sourceline)
    return value


def documentation_text(elem):
    """Text of the ``wsdl:documentation`` child of ``elem``, or None."""
    for child in children(elem, WSDL_NS):
        if local_name(child) != 'documentation':
            continue
        text = ''.join(child.itertext())
        lines = [line.strip() for line in text.splitlines()]
        lines = [line for line in lines if line]
        if lines:
            return '\n'.join(lines)
    return None


def parse_message(elem, ctx):
    name = _required(elem, 'name')
    parts = []
    for child in children(elem, WSDL_NS):
        if local_name(child) != 'part':
            continue
        part_name = _required(child, 'name', owner=name)
        part_ctx = ctx.scoped(child)
        element = child.get('element')
        type_name = child.get('type')
        if not element and not type_name:
            raise MalformedInputError(
                f"part '{part_name}' in message '{name}' has neither 'element' nor 'type'",
                stage=STAGE, entity=name, line=child.sourceline)
        parts.append(MessagePart(
            part_name,
            element=part_ctx.resolve(element, child) if element else None,
            type_name=part_ctx.resolve(type_name, child) if type_name else None))
    return Message(ctx.qualify(name), parts, line=elem.sourceline)


def parse_port_type(elem, ctx):
    name = _required(elem, 'name')
    operations = []
    for op_elem in children(elem, WSDL_NS):
        if local_name(op_elem) != 'operation':
            continue
        op_name = _required(op_elem, 'name', owner=name)
        op_ctx = ctx.scoped(op_elem)
        input_ref = output_ref = None
        faults = []
        for child in children(op_elem, WSDL_NS):
            kind = local_name(child)
            if kind == 'input':
                input_ref = op_ctx.resolve(_required(child, 'message', op_name), child)
            elif kind == 'output':
                output_ref = op_ctx.resolve(_required(child, 'message', op_name), child)
            elif kind == 'fault':
                faults.append(Fault(
                    _required(child, 'name', op_name),
                    op_ctx.resolve(_required(child, 'message', op_name), child)))
        if input_ref is None and output_ref is None:
            log.warning("Operation '%s' in portType '%s' has no input or output message",
                        op_name, name)
        operations.append(Operation(op_name, input_ref, output_ref, faults,
                                    documentation=documentation_text(op_elem),
                                    line=op_elem.sourceline))
    return PortType(ctx.qualify(name), operations, line=elem.sourceline)


def _soap_extension(elem, kind):
    for child in children(elem):
        if namespace_of(child) in SOAP_BINDING_NAMESPACES and local_name(child) == kind:
            return child
    return None


def _check_style(style, entity, elem):
    if style != SUPPORTED_STYLE:
        raise UnsupportedFeatureError(f"binding style '{style}'", entity=entity,
                                      stage=STAGE, line=elem.sourceline)


def _check_use(op_elem, entity):
    for child in children(op_elem, WSDL_NS):
        if local_name(child) not in ('input', 'output', 'fault'):
            continue
        for ext in children(child):
            if namespace_of(ext) not in SOAP_BINDING_NAMESPACES:
                continue
            use = ext.get('use', SUPPORTED_USE)
            if local_name(ext) in ('body', 'fault', 'header') and use != SUPPORTED_USE:
                raise UnsupportedFeatureError(f"message use '{use}'", entity=entity,
                                              stage=STAGE, line=ext.sourceline)


def parse_binding(elem, ctx):
    """Decode a SOAP binding; returns None for non-SOAP bindings."""
    name = _required(elem, 'name')
    port_type = ctx.resolve(_required(elem, 'type'), elem)
    soap_binding = _soap_extension(elem, 'binding')
    if soap_binding is None:
        log.debug("Skipping non-SOAP binding '%s'", name)
        return None
    soap_version = SOAP_BINDING_NAMESPACES[namespace_of(soap_binding)]
    transport = soap_binding.get('transport')
    if not transport:
        raise MalformedInputError(f"SOAP binding '{name}' is missing 'transport'",
                                  stage=STAGE, entity=name, line=soap_binding.sourceline)
    style = soap_binding.get('style', SUPPORTED_STYLE)
    _check_style(style, name, soap_binding)

    operations = []
    for op_elem in children(elem, WSDL_NS):
        if local_name(op_elem) != 'operation':
            continue
        op_name = _required(op_elem, 'name', owner=name)
        action = None
        op_style = style
        soap_op = _soap_extension(op_elem, 'operation')
        if soap_op is not None:
            action = soap_op.get('soapAction')
            op_style = soap_op.get('style', style)
        _check_style(op_style, f'{name}.{op_name}', soap_op if soap_op is not None else op_elem)
        _check_use(op_elem, f'{name}.{op_name}')
        if action is None:
            log.warning("SOAP operation '%s' in binding '%s' is missing 'soapAction'",
                        op_name, name)
        operations.append(BindingOperation(op_name, action, op_style))
    return Binding(ctx.qualify(name), port_type, soap_version, transport, style,
                   operations, line=elem.sourceline)


def parse_service(elem, ctx):
    name = _required(elem, 'name')
    ports = []
    for port_elem in children(elem, WSDL_NS):
        if local_name(port_elem) != 'port':
            continue
        port_name = _required(port_elem, 'name', owner=name)
        binding = ctx.scoped(port_elem).resolve(
            _required(port_elem, 'binding', owner=port_name), port_elem)
        address = _soap_extension(port_elem, 'address')
        if address is None or not address.get('location'):
            log.warning("Port '%s' has no SOAP address, skipping it", port_name)
            continue
        ports.append(Port(port_name, binding, address.get('location')))
    return Service(name, ports, documentation=documentation_text(elem),
                   line=elem.sourceline)
