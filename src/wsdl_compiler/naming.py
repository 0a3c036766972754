"""Identifier normalization.

Maps wire identifiers (element, type, operation and service names as they
appear in the document) to Python identifiers. The mapping is a pure
function of the wire name and the identifier kind, so the same document
always produces the same names. ``IdentifierScope`` detects two different
wire names that land on the same Python name inside one emitted scope.
"""
import enum
import re

from .errors import IdentifierCollisionError

# Fixed so generated names do not depend on the running interpreter
PYTHON_KEYWORDS = frozenset({
    'False', 'None', 'True', 'and', 'as', 'assert', 'async', 'await', 'break',
    'class', 'continue', 'def', 'del', 'elif', 'else', 'except', 'finally', 'for',
    'from', 'global', 'if', 'import', 'in', 'is', 'lambda', 'nonlocal', 'not', 'or',
    'pass', 'raise', 'return', 'try', 'while', 'with', 'yield',
})

# Names bound by every generated module or method signature
GENERATED_NAMES = frozenset({
    'dataclasses', 'decimal', 'enum', 'typing', 'contract',
    'str', 'int', 'float', 'bool', 'bytes', 'list', 'self', 'request',
})

RESERVED = PYTHON_KEYWORDS | GENERATED_NAMES

RESERVED_SUFFIX = '_'

# Lowercase ASCII plus any non-ASCII letter
LOWER = r'[^\W\d_A-Z]'

# HTTPServer -> HTTP, Server; intA -> int, A; Add2Numbers -> Add2, Numbers
re_word = re.compile(rf'[A-Z]+(?!{LOWER})\d*|[A-Z]?{LOWER}+\d*|\d+')


class IdentifierKind(enum.Enum):
    TYPE = 'type'
    FIELD = 'field'
    METHOD = 'method'
    VARIANT = 'variant'


class Identifier:
    """A normalized Python name paired with the wire name it came from."""

    def __init__(self, name, wire_name):
        self.name = name
        self.wire_name = wire_name

    def __str__(self):
        return self.name

    def __repr__(self):
        return f'Identifier({self.name!r}, wire_name={self.wire_name!r})'

    def __eq__(self, other):
        if not isinstance(other, Identifier):
            return NotImplemented
        return (self.name, self.wire_name) == (other.name, other.wire_name)

    def __hash__(self):
        return hash((self.name, self.wire_name))


def split_words(wire_name):
    """Split a wire identifier on separators and case boundaries."""
    return re_word.findall(wire_name or '')


def _join(words, kind):
    if kind == IdentifierKind.TYPE:
        return ''.join(w[0].upper() + w[1:] for w in words)
    if kind == IdentifierKind.VARIANT:
        return '_'.join(w.upper() for w in words)
    return '_'.join(w.lower() for w in words)


DIGIT_PREFIX = {
    IdentifierKind.TYPE: 'N',
    IdentifierKind.FIELD: 'n_',
    IdentifierKind.METHOD: 'n_',
    IdentifierKind.VARIANT: 'N',
}


def normalize(wire_name, kind):
    """Python identifier for ``wire_name`` used as ``kind``."""
    words = split_words(wire_name)
    if not words:
        words = ['unknown']
    name = _join(words, kind)
    if name[0].isdigit():
        name = DIGIT_PREFIX[kind] + name
    if not name.isidentifier():
        name = ''.join(c if ('_' + c).isidentifier() else '_' for c in name)
    if name in RESERVED:
        name += RESERVED_SUFFIX
    return name


def type_name(wire_name):
    return normalize(wire_name, IdentifierKind.TYPE)


def field_name(wire_name):
    return normalize(wire_name, IdentifierKind.FIELD)


def method_name(wire_name):
    return normalize(wire_name, IdentifierKind.METHOD)


def variant_name(wire_name):
    return normalize(wire_name, IdentifierKind.VARIANT)


def identifier(wire_name, kind):
    return Identifier(normalize(wire_name, kind), wire_name)


class IdentifierScope:
    """Names claimed inside one emitted scope (module, class, enum or client).

    ``source`` tells two declarations apart when their wire names are equal,
    e.g. types with the same local name in different namespaces.
    """

    def __init__(self, label):
        self.label = label
        self._owners = {}

    def __contains__(self, name):
        return name in self._owners

    def reserve(self, name, source=None):
        """Claim a fixed name that is not derived from a wire identifier."""
        self._check(name, source or name)
        self._owners[name] = source or name

    def claim(self, wire_name, kind, source=None):
        ident = identifier(wire_name, kind)
        self._check(ident.name, source if source is not None else wire_name)
        self._owners[ident.name] = source if source is not None else wire_name
        return ident

    def _check(self, name, source):
        owner = self._owners.get(name)
        if owner is not None and owner != source:
            raise IdentifierCollisionError(str(owner), str(source), name, self.label)
