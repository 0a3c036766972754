"""XML namespaces, qualified names and the namespace context threaded
through every parsing call."""
from typing import NamedTuple, Optional

from lxml import etree

from .errors import MalformedInputError

XSD_NS = 'http://www.w3.org/2001/XMLSchema'
XSI_NS = 'http://www.w3.org/2001/XMLSchema-instance'
WSDL_NS = 'http://schemas.xmlsoap.org/wsdl/'
WSDL2_NS = 'http://www.w3.org/ns/wsdl'
SOAP11_BINDING_NS = 'http://schemas.xmlsoap.org/wsdl/soap/'
SOAP12_BINDING_NS = 'http://schemas.xmlsoap.org/wsdl/soap12/'
SOAP_ENCODING_NS = 'http://schemas.xmlsoap.org/soap/encoding/'

SOAP_BINDING_NAMESPACES = {
    SOAP11_BINDING_NS: '1.1',
    SOAP12_BINDING_NS: '1.2',
}

# XSD built-in type local name -> value category used by the emitter and
# the data binding
XSD_BUILTIN_TYPES = {
    # strings
    'string': 'string', 'normalizedString': 'string', 'token': 'string',
    'language': 'string', 'Name': 'string', 'NCName': 'string',
    'NMTOKEN': 'string', 'NMTOKENS': 'string', 'ID': 'string',
    'IDREF': 'string', 'IDREFS': 'string', 'ENTITY': 'string',
    'ENTITIES': 'string', 'anyURI': 'string', 'QName': 'string',
    'NOTATION': 'string',
    # integers
    'int': 'int', 'integer': 'int', 'long': 'int', 'short': 'int',
    'byte': 'int', 'unsignedInt': 'int', 'unsignedLong': 'int',
    'unsignedShort': 'int', 'unsignedByte': 'int',
    'positiveInteger': 'int', 'nonNegativeInteger': 'int',
    'nonPositiveInteger': 'int', 'negativeInteger': 'int',
    # floating point and exact decimals
    'float': 'float', 'double': 'float',
    'decimal': 'decimal',
    'boolean': 'bool',
    # date and time values stay lexical
    'dateTime': 'string', 'time': 'string', 'date': 'string',
    'gYearMonth': 'string', 'gYear': 'string', 'gMonthDay': 'string',
    'gDay': 'string', 'gMonth': 'string', 'duration': 'string',
    # binary
    'base64Binary': 'bytes', 'hexBinary': 'bytes',
    # untyped content
    'anyType': 'string', 'anySimpleType': 'string',
}


class QName(NamedTuple):
    namespace: Optional[str]
    local: str

    def __str__(self):
        if self.namespace:
            return f'{{{self.namespace}}}{self.local}'
        return self.local


ANY_TYPE = QName(XSD_NS, 'anyType')


def is_builtin(qname):
    return qname.namespace == XSD_NS and qname.local in XSD_BUILTIN_TYPES


def local_name(elem):
    return etree.QName(elem).localname


def namespace_of(elem):
    return etree.QName(elem).namespace


def children(elem, namespace=None):
    """Element children in document order, skipping comments and PIs."""
    for child in elem:
        if not isinstance(child.tag, str):
            continue
        if namespace is not None and namespace_of(child) != namespace:
            continue
        yield child


class NamespaceContext:
    """Prefix bindings and target namespace in scope for one construct.

    A context is an immutable value; ``scoped`` derives the context for a
    nested element instead of mutating shared prefix tables.
    """

    def __init__(self, prefixes=None, target_namespace=None, stage=None):
        self.prefixes = dict(prefixes or {})
        self.target_namespace = target_namespace
        self.stage = stage

    def scoped(self, elem, target_namespace=None, stage=None):
        tns = self.target_namespace if target_namespace is None else target_namespace
        return NamespaceContext(elem.nsmap, tns, stage or self.stage)

    def resolve(self, text, elem=None):
        """Resolve a ``prefix:local`` reference to a ``QName``.

        Unprefixed references use the default namespace in scope. Prefixes
        declared on ``elem`` itself shadow the ones of the context.
        """
        prefixes = self.prefixes if elem is None else {**self.prefixes, **elem.nsmap}
        text = (text or '').strip()
        if not text:
            raise MalformedInputError('empty qualified name', stage=self.stage,
                                      line=getattr(elem, 'sourceline', None))
        if ':' in text:
            prefix, local = text.split(':', 1)
            if prefix not in prefixes:
                raise MalformedInputError(
                    f"undeclared namespace prefix '{prefix}' in '{text}'",
                    stage=self.stage, entity=text,
                    line=getattr(elem, 'sourceline', None))
            return QName(prefixes[prefix], local)
        return QName(prefixes.get(None), text)

    def qualify(self, local):
        """Qualify a declared name with the target namespace."""
        return QName(self.target_namespace, local)
