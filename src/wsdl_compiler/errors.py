"""Error taxonomy for the WSDL compiler.

Every failure raised by a pipeline stage is a ``CompilerError`` subclass
tagged with the stage that produced it and, where known, the offending
named entity and source line.
"""
import enum


class Stage(enum.Enum):
    SERVICE_DESCRIPTION = 'service-description'
    SCHEMA = 'schema'
    RESOLVER = 'resolver'
    NAMING = 'naming'
    EMITTER = 'emitter'
    DRIVER = 'driver'


class CompilerError(Exception):
    """Base class for all fatal compiler diagnostics."""

    kind = 'error'

    def __init__(self, message, stage=None, entity=None, line=None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.entity = entity
        self.line = line

    def __str__(self):
        text = self.message
        if self.line is not None:
            text = f'{text} (line {self.line})'
        if self.stage is not None:
            text = f'{self.stage.value}: {text}'
        return text


class MalformedInputError(CompilerError):
    kind = 'malformed-input'


class MissingConstructError(CompilerError):
    kind = 'missing-construct'


class UnresolvedReferenceError(CompilerError):
    kind = 'unresolved-reference'

    def __init__(self, reference, container, stage=Stage.RESOLVER, line=None):
        super().__init__(
            f"unresolved type reference '{reference}' in '{container}'",
            stage=stage, entity=container, line=line)
        self.reference = reference
        self.container = container


class UnsupportedFeatureError(CompilerError):
    kind = 'unsupported-feature'

    def __init__(self, feature, entity=None, stage=None, line=None):
        message = f'unsupported feature: {feature}'
        if entity:
            message = f"{message} in '{entity}'"
        super().__init__(message, stage=stage, entity=entity, line=line)
        self.feature = feature


class IdentifierCollisionError(CompilerError):
    kind = 'identifier-collision'

    def __init__(self, first, second, identifier, scope):
        super().__init__(
            f"wire identifiers '{first}' and '{second}' both normalize to "
            f"'{identifier}' in {scope}",
            stage=Stage.NAMING, entity=second)
        self.first = first
        self.second = second
        self.identifier = identifier
        self.scope = scope


class ConfigurationError(CompilerError):
    kind = 'configuration'

    def __init__(self, message, entity=None):
        super().__init__(message, stage=Stage.DRIVER, entity=entity)
