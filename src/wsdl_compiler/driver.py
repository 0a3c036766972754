"""Generation driver.

Runs parsing, resolution and emission in one synchronous pass. A run either
returns the complete generated source or raises the first ``CompilerError``;
callers never see partial output.
"""
import enum
import keyword
import logging
from pathlib import Path

from .emitter import emit_module
from .errors import CompilerError, ConfigurationError, Stage
from .resolver import resolve
from .wsdl import parse_definitions

log = logging.getLogger(__name__)

SOAP_VERSIONS = ('1.1', '1.2')


class GeneratorConfig:
    """Options accepted by the driver. ``validate`` runs before parsing."""

    def __init__(self, wsdl_path=None, wsdl_text=None, output_dir=None,
                 module_name='soap_client', client_name=None, soap_version=None,
                 lenient=False):
        self.wsdl_path = Path(wsdl_path) if wsdl_path is not None else None
        self.wsdl_text = wsdl_text
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.module_name = module_name
        self.client_name = client_name
        self.soap_version = soap_version
        self.lenient = lenient

    def validate(self):
        if (self.wsdl_path is None) == (self.wsdl_text is None):
            raise ConfigurationError('exactly one of wsdl_path or wsdl_text is required')
        if self.soap_version is not None and self.soap_version not in SOAP_VERSIONS:
            raise ConfigurationError(
                f"unknown SOAP version '{self.soap_version}', expected one of "
                f"{', '.join(SOAP_VERSIONS)}", entity=self.soap_version)
        for label, name in (('module name', self.module_name),
                            ('client name', self.client_name)):
            if name is None and label == 'client name':
                continue
            if not name or not name.isidentifier() or keyword.iskeyword(name):
                raise ConfigurationError(f"invalid {label} '{name}'", entity=name)
        return self

    def read_source(self):
        if self.wsdl_text is not None:
            return self.wsdl_text
        try:
            return self.wsdl_path.read_bytes()
        except OSError as exc:
            raise ConfigurationError(f'cannot read {self.wsdl_path}: {exc.strerror}',
                                     entity=str(self.wsdl_path)) from exc


class GenerationState(enum.Enum):
    START = 'start'
    PARSED = 'parsed'
    RESOLVED = 'resolved'
    EMITTED = 'emitted'
    FAILED = 'failed'


class GeneratedCode:
    def __init__(self, source, module_name, counts):
        self.source = source
        self.module_name = module_name
        self.counts = counts

    @property
    def filename(self):
        return f'{self.module_name}.py'


class Generator:
    """One generation run over one input document."""

    def __init__(self, config):
        self.config = config
        self.state = GenerationState.START
        self.failure = None
        self.definitions = None
        self.model = None

    def run(self):
        try:
            return self._run()
        except CompilerError as exc:
            self.state = GenerationState.FAILED
            self.failure = (exc.stage or Stage.DRIVER, exc)
            log.debug('Generation failed at %s: %s', self.failure[0].value, exc)
            raise

    def _run(self):
        if self.state != GenerationState.START:
            raise ConfigurationError('a Generator runs only once')
        config = self.config.validate()
        log.info('Parsing %s', config.wsdl_path or '<text>')
        self.definitions = parse_definitions(config.read_source())
        self.state = GenerationState.PARSED

        self.model = resolve(self.definitions, soap_version=config.soap_version,
                             lenient=config.lenient)
        self.state = GenerationState.RESOLVED

        source = emit_module(self.model, client_name=config.client_name)
        self.state = GenerationState.EMITTED
        return GeneratedCode(source, config.module_name, self.counts())

    def counts(self):
        graph = self.model.graph
        return {
            'types': len(graph.structs()),
            'enums': len(graph.enums()),
            'elements': len(graph.wrappers),
            'services': len(self.model.services),
            'operations': sum(len(s.operations) for s in self.model.services),
        }


def generate(config):
    return Generator(config).run()


def generate_source(wsdl_path=None, wsdl_text=None, **options):
    """Generate client source from a WSDL path or text and return it."""
    config = GeneratorConfig(wsdl_path=wsdl_path, wsdl_text=wsdl_text, **options)
    return generate(config).source
