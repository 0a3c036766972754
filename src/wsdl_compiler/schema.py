"""Schema type model builder.

Parses the embedded ``<types>`` section of a service description into a
``SchemaDraft``: top-level element declarations, complex types with their
ordered particles and simple types with their enumeration literals. Type
references are turned into qualified names here but are only checked
against declarations later, by the resolver, so declarations may refer to
types declared further down the document.
"""
import logging

from .errors import MalformedInputError, Stage, UnsupportedFeatureError
from .model import (UNBOUNDED, EnumeratedType, Particle, SchemaDraft, SchemaElement,
                    StructuredType)
from .xmlns import ANY_TYPE, XSD_NS, NamespaceContext, QName, children, local_name

log = logging.getLogger(__name__)

STAGE = Stage.SCHEMA

# Content models that cannot be lowered to an ordered field list
UNSUPPORTED_CONTENT = {
    'choice': 'choice compositor',
    'any': 'xs:any wildcard',
    'group': 'model group reference',
    'attribute': 'attribute declaration',
    'attributeGroup': 'attribute group',
    'anyAttribute': 'attribute wildcard',
    'complexContent': 'complex type extension/restriction',
    'simpleContent': 'simple content extension/restriction',
}

# Top-level declarations that produce no type on their own
IGNORED_TOP_LEVEL = ('attribute', 'attributeGroup', 'group', 'notation')

# Identity constraints attached to elements
IDENTITY_CONSTRAINTS = ('key', 'keyref', 'unique')

# Separates the element path that names an anonymous type; not an NCName character
ANONYMOUS_SEPARATOR = '/'

ELEMENT_FORMS = ('qualified', 'unqualified')


def parse_types(types_elem, ctx):
    """Parse every ``<xs:schema>`` under ``<wsdl:types>`` into one draft."""
    draft = SchemaDraft()
    for child in children(types_elem):
        if child.tag == f'{{{XSD_NS}}}schema':
            parse_schema(child, ctx, draft)
        elif local_name(child) != 'documentation':
            log.debug('Skipping non-schema element <%s> in types', local_name(child))
    return draft


def parse_schema(schema_elem, ctx, draft=None):
    """Parse one ``<xs:schema>`` element into ``draft`` (created if missing)."""
    if draft is None:
        draft = SchemaDraft()
    tns = schema_elem.get('targetNamespace')
    schema_ctx = NamespaceContext(schema_elem.nsmap, tns, STAGE)
    qualified = schema_elem.get('elementFormDefault', 'unqualified') == 'qualified'
    draft.namespaces.append(tns)
    log.info('Parsing schema %s', tns or '(no namespace)')
    reader = _SchemaReader(draft, qualified)
    for child in children(schema_elem, XSD_NS):
        reader.top_level(child, schema_ctx)
    return draft


def _required(elem, attr):
    value = elem.get(attr)
    if not value:
        raise MalformedInputError(
            f"<{local_name(elem)}> is missing required attribute '{attr}'",
            stage=STAGE, entity=local_name(elem), line=elem.sourceline)
    return value


def _entity(elem):
    return elem.get('name') or elem.get('ref') or local_name(elem)


def parse_occurs(elem):
    """Return ``(minOccurs, maxOccurs)`` declared on ``elem``."""
    raw_min = elem.get('minOccurs', '1').strip()
    raw_max = elem.get('maxOccurs', '1').strip()
    try:
        min_occurs = int(raw_min)
    except ValueError:
        raise MalformedInputError(f"invalid minOccurs '{raw_min}'", stage=STAGE,
                                  entity=_entity(elem), line=elem.sourceline) from None
    if raw_max == UNBOUNDED:
        max_occurs = UNBOUNDED
    else:
        try:
            max_occurs = int(raw_max)
        except ValueError:
            raise MalformedInputError(f"invalid maxOccurs '{raw_max}'", stage=STAGE,
                                      entity=_entity(elem), line=elem.sourceline) from None
    if min_occurs < 0 or (max_occurs != UNBOUNDED and max_occurs < 0):
        raise MalformedInputError('negative occurrence count', stage=STAGE,
                                  entity=_entity(elem), line=elem.sourceline)
    if max_occurs == 0:
        raise UnsupportedFeatureError('maxOccurs="0"', entity=_entity(elem), stage=STAGE,
                                      line=elem.sourceline)
    if max_occurs != UNBOUNDED and max_occurs < min_occurs:
        raise MalformedInputError(
            f'maxOccurs {max_occurs} is lower than minOccurs {min_occurs}',
            stage=STAGE, entity=_entity(elem), line=elem.sourceline)
    return min_occurs, max_occurs


def _unsupported(elem, owner):
    feature = UNSUPPORTED_CONTENT.get(local_name(elem), f'<xs:{local_name(elem)}>')
    raise UnsupportedFeatureError(feature, entity=owner, stage=STAGE, line=elem.sourceline)


class _SchemaReader:
    """Single forward pass over one schema, appending declarations to a draft."""

    def __init__(self, draft, qualified):
        self.draft = draft
        self.qualified = qualified

    def _reserve(self):
        # Keeps an enclosing type ahead of the anonymous types nested in it
        self.draft.types.append(None)
        return len(self.draft.types) - 1

    def top_level(self, elem, ctx):
        kind = local_name(elem)
        if kind == 'annotation':
            return
        if kind == 'element':
            self.top_level_element(elem, ctx)
        elif kind == 'complexType':
            name = _required(elem, 'name')
            self.complex_type(elem, ctx, ctx.qualify(name))
        elif kind == 'simpleType':
            name = _required(elem, 'name')
            self.simple_type(elem, ctx, ctx.qualify(name))
        elif kind == 'import':
            if elem.get('schemaLocation'):
                raise UnsupportedFeatureError(
                    'external schema import', entity=elem.get('schemaLocation'),
                    stage=STAGE, line=elem.sourceline)
            log.debug('Import of embedded namespace %s', elem.get('namespace'))
        elif kind in ('include', 'redefine', 'override'):
            raise UnsupportedFeatureError(
                f'schema {kind}', entity=elem.get('schemaLocation'), stage=STAGE,
                line=elem.sourceline)
        elif kind in IGNORED_TOP_LEVEL:
            log.debug('Skipping top-level <xs:%s> %s', kind, elem.get('name'))
        else:
            raise MalformedInputError(f'unexpected <xs:{kind}> in schema', stage=STAGE,
                                      entity=kind, line=elem.sourceline)

    def top_level_element(self, elem, ctx):
        name = _required(elem, 'name')
        qname = ctx.qualify(name)
        nillable = elem.get('nillable') == 'true'
        anonymous_name = QName(qname.namespace, ANONYMOUS_SEPARATOR + name)
        type_name = self.element_type(elem, ctx, anonymous_name)
        anonymous = not elem.get('type') and type_name != ANY_TYPE
        self.draft.add_element(SchemaElement(
            qname, type_name, nillable=nillable, anonymous=anonymous,
            line=elem.sourceline))

    def element_type(self, elem, ctx, anonymous_name):
        """Type of an element: its ``type`` reference, a synthesized anonymous
        type named ``anonymous_name``, or ``xs:anyType``."""
        type_attr = elem.get('type')
        inline = None
        for child in children(elem, XSD_NS):
            kind = local_name(child)
            if kind in ('complexType', 'simpleType'):
                if inline is not None or type_attr:
                    raise MalformedInputError(
                        'element declares more than one type', stage=STAGE,
                        entity=elem.get('name'), line=child.sourceline)
                inline = child
            elif kind in IDENTITY_CONSTRAINTS:
                log.debug('Ignoring identity constraint <xs:%s> on %s', kind, elem.get('name'))
            elif kind != 'annotation':
                raise MalformedInputError(f'unexpected <xs:{kind}> in element', stage=STAGE,
                                          entity=elem.get('name'), line=child.sourceline)
        if type_attr:
            return ctx.resolve(type_attr, elem)
        if inline is None:
            return ANY_TYPE
        if local_name(inline) == 'complexType':
            self.complex_type(inline, ctx, anonymous_name, anonymous=True,
                              wire_name=elem.get('name'))
        else:
            self.simple_type(inline, ctx, anonymous_name, anonymous=True,
                             wire_name=elem.get('name'))
        return anonymous_name

    def complex_type(self, elem, ctx, qname, anonymous=False, wire_name=None):
        slot = self._reserve()
        particles = []
        compositor = None
        for child in children(elem, XSD_NS):
            kind = local_name(child)
            if kind == 'annotation':
                continue
            if kind in ('sequence', 'all'):
                if compositor is not None:
                    raise MalformedInputError('complex type has more than one compositor',
                                              stage=STAGE, entity=qname.local,
                                              line=child.sourceline)
                compositor = child
                self.compositor(child, ctx, qname, particles)
            else:
                _unsupported(child, qname.local)
        decl = StructuredType(qname, particles, qualified=self.qualified,
                              anonymous=anonymous, line=elem.sourceline,
                              wire_name=wire_name)
        self.draft.types[slot] = decl
        log.debug('Complex type %s with %d particles', qname.local, len(particles))
        return decl

    def compositor(self, elem, ctx, owner, particles):
        if parse_occurs(elem) != (1, 1):
            raise UnsupportedFeatureError(
                f'repeated or optional <xs:{local_name(elem)}>', entity=owner.local,
                stage=STAGE, line=elem.sourceline)
        for child in children(elem, XSD_NS):
            kind = local_name(child)
            if kind == 'annotation':
                continue
            if kind == 'element':
                particles.append(self.particle(child, ctx, owner))
            elif kind == 'sequence' and local_name(elem) == 'sequence':
                self.compositor(child, ctx, owner, particles)
            else:
                _unsupported(child, owner.local)

    def particle(self, elem, ctx, owner):
        min_occurs, max_occurs = parse_occurs(elem)
        nillable = elem.get('nillable') == 'true'
        ref = elem.get('ref')
        if ref:
            element_ref = ctx.resolve(ref, elem)
            return Particle(element_ref.local, element_ref=element_ref,
                            min_occurs=min_occurs, max_occurs=max_occurs,
                            nillable=nillable, line=elem.sourceline)
        name = _required(elem, 'name')
        qualified = self.element_form(elem)
        anonymous_name = QName(owner.namespace, f'{owner.local}{ANONYMOUS_SEPARATOR}{name}')
        type_name = self.element_type(elem, ctx, anonymous_name)
        return Particle(name, type_name=type_name, min_occurs=min_occurs,
                        max_occurs=max_occurs, nillable=nillable, qualified=qualified,
                        line=elem.sourceline)

    def element_form(self, elem):
        """Whether local element ``elem`` is namespace qualified on the wire."""
        form = elem.get('form')
        if form is None:
            return self.qualified
        if form not in ELEMENT_FORMS:
            raise MalformedInputError(f"invalid form '{form}'", stage=STAGE,
                                      entity=_entity(elem), line=elem.sourceline)
        return form == 'qualified'

    def simple_type(self, elem, ctx, qname, anonymous=False, wire_name=None):
        slot = self._reserve()
        decl = None
        for child in children(elem, XSD_NS):
            kind = local_name(child)
            if kind == 'annotation':
                continue
            if kind == 'restriction':
                if decl is not None:
                    raise MalformedInputError('simple type has more than one restriction',
                                              stage=STAGE, entity=qname.local,
                                              line=child.sourceline)
                decl = self.restriction(child, ctx, qname, anonymous, wire_name)
            elif kind in ('list', 'union'):
                raise UnsupportedFeatureError(f'simple type {kind}', entity=qname.local,
                                              stage=STAGE, line=child.sourceline)
            else:
                raise MalformedInputError(f'unexpected <xs:{kind}> in simple type',
                                          stage=STAGE, entity=qname.local,
                                          line=child.sourceline)
        if decl is None:
            raise MalformedInputError('simple type without restriction', stage=STAGE,
                                      entity=qname.local, line=elem.sourceline)
        self.draft.types[slot] = decl
        return decl

    def restriction(self, elem, ctx, qname, anonymous, wire_name=None):
        base = elem.get('base')
        if not base:
            raise UnsupportedFeatureError('restriction without base attribute',
                                          entity=qname.local, stage=STAGE,
                                          line=elem.sourceline)
        values = []
        for child in children(elem, XSD_NS):
            kind = local_name(child)
            if kind == 'annotation':
                continue
            if kind == 'enumeration':
                value = child.get('value')
                if value is None:
                    raise MalformedInputError('enumeration without value', stage=STAGE,
                                              entity=qname.local, line=child.sourceline)
                if value in values:
                    raise MalformedInputError(f"duplicate enumeration value '{value}'",
                                              stage=STAGE, entity=qname.local,
                                              line=child.sourceline)
                values.append(value)
            elif kind == 'simpleType':
                raise UnsupportedFeatureError('anonymous restriction base',
                                              entity=qname.local, stage=STAGE,
                                              line=child.sourceline)
            else:
                log.debug('Facet <xs:%s> on %s does not change the generated type',
                          kind, qname.local)
        return EnumeratedType(qname, ctx.resolve(base, elem), values,
                              anonymous=anonymous, line=elem.sourceline,
                              wire_name=wire_name)
