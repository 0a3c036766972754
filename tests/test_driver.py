"""Tests for the generation driver"""

import pytest

from wsdl_compiler import generate_source
from wsdl_compiler.driver import GenerationState, Generator, GeneratorConfig, generate
from wsdl_compiler.errors import (ConfigurationError, MalformedInputError, Stage,
                                  UnresolvedReferenceError)


class TestGeneratorConfig:
    """Option validation before any parsing"""

    def test_requires_exactly_one_input(self):
        with pytest.raises(ConfigurationError, match='exactly one'):
            GeneratorConfig().validate()
        with pytest.raises(ConfigurationError, match='exactly one'):
            GeneratorConfig(wsdl_path='a.wsdl', wsdl_text='<x/>').validate()

    def test_unknown_soap_version(self):
        with pytest.raises(ConfigurationError, match="unknown SOAP version '2.0'"):
            GeneratorConfig(wsdl_text='<x/>', soap_version='2.0').validate()

    @pytest.mark.parametrize('option, value', [
        ('module_name', 'my-client'),
        ('module_name', ''),
        ('module_name', 'class'),
        ('client_name', '1Client'),
    ])
    def test_invalid_identifiers(self, option, value):
        config = GeneratorConfig(wsdl_text='<x/>', **{option: value})
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        assert exc_info.value.stage == Stage.DRIVER
        assert exc_info.value.kind == 'configuration'

    def test_defaults(self):
        config = GeneratorConfig(wsdl_text='<x/>').validate()
        assert config.module_name == 'soap_client'
        assert config.client_name is None
        assert config.lenient is False

    def test_unreadable_path(self, tmp_path):
        config = GeneratorConfig(wsdl_path=tmp_path / 'missing.wsdl')
        with pytest.raises(ConfigurationError, match='cannot read'):
            config.read_source()


class TestGenerator:
    """State machine and results of one run"""

    def test_successful_run(self, calculator_wsdl):
        generator = Generator(GeneratorConfig(wsdl_text=calculator_wsdl, module_name='calc'))
        assert generator.state == GenerationState.START
        result = generator.run()
        assert generator.state == GenerationState.EMITTED
        assert generator.failure is None
        assert result.filename == 'calc.py'
        assert 'class CalculatorClient:' in result.source

    def test_counts(self, inventory_wsdl):
        result = generate(GeneratorConfig(wsdl_text=inventory_wsdl))
        assert result.counts == {
            'types': 8, 'enums': 1, 'elements': 1, 'services': 1, 'operations': 2,
        }

    def test_failure_records_stage(self, make_wsdl):
        text = make_wsdl("""
            <xs:complexType name="Holder">
              <xs:sequence><xs:element name="x" type="tns:Unknown"/></xs:sequence>
            </xs:complexType>""")
        generator = Generator(GeneratorConfig(wsdl_text=text))
        with pytest.raises(UnresolvedReferenceError):
            generator.run()
        assert generator.state == GenerationState.FAILED
        stage, error = generator.failure
        assert stage == Stage.RESOLVER
        assert isinstance(error, UnresolvedReferenceError)

    def test_parse_failure_stops_before_resolution(self):
        generator = Generator(GeneratorConfig(wsdl_text='<definitions'))
        with pytest.raises(MalformedInputError):
            generator.run()
        assert generator.failure[0] == Stage.SERVICE_DESCRIPTION
        assert generator.definitions is None
        assert generator.model is None

    def test_generator_runs_once(self, calculator_wsdl):
        generator = Generator(GeneratorConfig(wsdl_text=calculator_wsdl))
        generator.run()
        with pytest.raises(ConfigurationError, match='runs only once'):
            generator.run()

    def test_read_from_path(self, fixtures_dir):
        result = generate(GeneratorConfig(wsdl_path=fixtures_dir / 'calculator.wsdl'))
        assert 'class Add:' in result.source

    def test_lenient_generation_without_services(self, make_wsdl):
        result = generate(GeneratorConfig(wsdl_text=make_wsdl(service=False), lenient=True))
        assert result.counts['services'] == 0
        assert 'class Echo:' in result.source


class TestGenerateSource:
    """Convenience entry point"""

    def test_returns_source(self, calculator_wsdl):
        source = generate_source(wsdl_text=calculator_wsdl, client_name='Calculator')
        assert 'class Calculator:' in source

    def test_output_is_deterministic(self, inventory_wsdl):
        first = generate_source(wsdl_text=inventory_wsdl)
        second = generate_source(wsdl_text=inventory_wsdl)
        assert first == second

    def test_text_and_path_inputs_agree(self, fixtures_dir, calculator_wsdl):
        from_path = generate_source(wsdl_path=fixtures_dir / 'calculator.wsdl')
        assert from_path == generate_source(wsdl_text=calculator_wsdl)
