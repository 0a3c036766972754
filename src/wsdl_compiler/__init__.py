"""Compile WSDL 1.1 service descriptions into typed Python client modules."""

__version__ = '1.0.0'

from .driver import GeneratedCode, GenerationState, Generator, GeneratorConfig, generate_source
from .errors import (CompilerError, ConfigurationError, IdentifierCollisionError,
                     MalformedInputError, MissingConstructError, Stage,
                     UnresolvedReferenceError, UnsupportedFeatureError)

__all__ = [
    'GeneratedCode', 'GenerationState', 'Generator', 'GeneratorConfig', 'generate_source',
    'CompilerError', 'ConfigurationError', 'IdentifierCollisionError', 'MalformedInputError',
    'MissingConstructError', 'Stage', 'UnresolvedReferenceError', 'UnsupportedFeatureError',
]
