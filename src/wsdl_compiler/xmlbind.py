"""XML data binding for generated types.

Converts instances of generated dataclasses to and from lxml elements using
the wire metadata the emitter attaches to every field. Runtimes use this to
build request bodies and decode response bodies.
"""
import base64
import binascii
import dataclasses
import decimal
import enum
import functools
import math
import typing

from lxml import etree

from .contract import DeserializationError
from .xmlns import XSI_NS

NIL = f'{{{XSI_NS}}}nil'

FLOAT_SPECIALS = {'INF': math.inf, '-INF': -math.inf, 'NaN': math.nan}


@functools.lru_cache(maxsize=None)
def _type_hints(cls):
    return typing.get_type_hints(cls)


def _item_type(annotation):
    """Strip ``Optional`` and ``List`` from a field annotation."""
    while True:
        origin = typing.get_origin(annotation)
        if origin is typing.Union:
            args = [a for a in typing.get_args(annotation) if a is not type(None)]
            annotation = args[0]
        elif origin is list:
            annotation = typing.get_args(annotation)[0]
        else:
            return annotation


def _tag(namespace, local):
    return etree.QName(namespace, local).text if namespace else local


def _encode_text(value, xsd_type):
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float):
        if math.isnan(value):
            return 'NaN'
        if math.isinf(value):
            return 'INF' if value > 0 else '-INF'
        return repr(value)
    if isinstance(value, decimal.Decimal):
        return format(value, 'f')
    if isinstance(value, bytes):
        if xsd_type == 'hexBinary':
            return value.hex().upper()
        return base64.b64encode(value).decode('ascii')
    return str(value)


def to_element(obj, tag=None):
    """Serialize the dataclass instance ``obj`` into an lxml element."""
    cls = type(obj)
    if tag is None:
        tag = _tag(cls.__wire_namespace__, cls.__wire_name__)
    elem = etree.Element(tag)
    for field in dataclasses.fields(cls):
        meta = field.metadata
        child_tag = _tag(meta.get('namespace'), meta['wire_name'])
        value = getattr(obj, field.name)
        if value is None:
            if meta.get('nillable'):
                etree.SubElement(elem, child_tag, {NIL: 'true'})
            continue
        items = value if isinstance(value, list) else [value]
        for item in items:
            if dataclasses.is_dataclass(item):
                elem.append(to_element(item, child_tag))
            else:
                etree.SubElement(elem, child_tag).text = _encode_text(item, meta.get('xsd_type'))
    return elem


def to_xml(obj):
    return etree.tostring(to_element(obj), encoding='unicode')


def _decode_text(text, item_type, xsd_type, where):
    text = text or ''
    try:
        if isinstance(item_type, type) and issubclass(item_type, enum.Enum):
            return item_type(text)
        if item_type is bool:
            value = text.strip()
            if value in ('true', '1'):
                return True
            if value in ('false', '0'):
                return False
            raise ValueError(value)
        if item_type is int:
            return int(text.strip())
        if item_type is float:
            value = text.strip()
            return FLOAT_SPECIALS[value] if value in FLOAT_SPECIALS else float(value)
        if item_type is decimal.Decimal:
            return decimal.Decimal(text.strip())
        if item_type is bytes:
            if xsd_type == 'hexBinary':
                return bytes.fromhex(text.strip())
            return base64.b64decode(text.strip(), validate=True)
    except (ValueError, decimal.InvalidOperation, binascii.Error) as exc:
        raise DeserializationError(f'invalid value {text!r} for {where}') from exc
    return text


def _is_nil(elem):
    return elem.get(NIL) in ('true', '1')


def from_element(cls, elem):
    """Build an instance of the generated dataclass ``cls`` from ``elem``."""
    hints = _type_hints(cls)
    by_name = {}
    for child in elem:
        if isinstance(child.tag, str):
            by_name.setdefault(etree.QName(child).localname, []).append(child)

    values = {}
    for field in dataclasses.fields(cls):
        meta = field.metadata
        wire_name = meta['wire_name']
        shape = meta['shape']
        where = f"'{cls.__wire_name__}.{wire_name}'"
        item_type = _item_type(hints[field.name])
        found = by_name.get(wire_name, [])

        def decode(child):
            if _is_nil(child):
                return None
            if dataclasses.is_dataclass(item_type):
                return from_element(item_type, child)
            return _decode_text(child.text, item_type, meta.get('xsd_type'), where)

        if shape in ('required-repeated', 'optional-repeated'):
            if not found and shape == 'optional-repeated':
                values[field.name] = None
            else:
                values[field.name] = [decode(child) for child in found]
            continue
        if len(found) > 1:
            raise DeserializationError(f'element {where} occurs {len(found)} times')
        value = decode(found[0]) if found else None
        if value is None and shape == 'required':
            raise DeserializationError(f'missing required element {where}')
        values[field.name] = value
    return cls(**values)


def from_xml(cls, data):
    """Parse ``data`` and decode its root element as ``cls``."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    if isinstance(data, str):
        data = data.encode('utf-8')
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as exc:
        raise DeserializationError(f'ill-formed response: {exc.msg}') from exc
    if etree.QName(root).localname != cls.__wire_name__:
        raise DeserializationError(
            f"expected <{cls.__wire_name__}>, got <{etree.QName(root).localname}>")
    return from_element(cls, root)
