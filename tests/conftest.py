"""Pytest configuration and fixtures for wsdl_compiler tests"""

import importlib.util
import sys
from pathlib import Path

import pytest

# Add src to path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

FIXTURES = Path(__file__).parent / 'fixtures'

TEST_NS = 'http://example.com/test'

WSDL_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<wsdl:definitions xmlns:wsdl="http://schemas.xmlsoap.org/wsdl/"
                  xmlns:soap="http://schemas.xmlsoap.org/wsdl/soap/"
                  xmlns:xs="http://www.w3.org/2001/XMLSchema"
                  xmlns:tns="http://example.com/test"
                  name="Test"
                  targetNamespace="http://example.com/test">
  <wsdl:types>
    <xs:schema targetNamespace="http://example.com/test" elementFormDefault="qualified">
      <xs:element name="Echo">
        <xs:complexType>
          <xs:sequence>
            <xs:element name="text" type="xs:string"/>
          </xs:sequence>
        </xs:complexType>
      </xs:element>
      <xs:element name="EchoResponse">
        <xs:complexType>
          <xs:sequence>
            <xs:element name="EchoResult" type="xs:string"/>
          </xs:sequence>
        </xs:complexType>
      </xs:element>
{schema}
    </xs:schema>
  </wsdl:types>
  <wsdl:message name="EchoIn">
    <wsdl:part name="parameters" element="tns:Echo"/>
  </wsdl:message>
  <wsdl:message name="EchoOut">
    <wsdl:part name="parameters" element="tns:EchoResponse"/>
  </wsdl:message>
  <wsdl:portType name="EchoPort">
    <wsdl:operation name="Echo">
      <wsdl:input message="tns:EchoIn"/>
      <wsdl:output message="tns:EchoOut"/>
    </wsdl:operation>
  </wsdl:portType>
  <wsdl:binding name="EchoBinding" type="tns:EchoPort">
    <soap:binding transport="http://schemas.xmlsoap.org/soap/http"{style}/>
    <wsdl:operation name="Echo">
      <soap:operation soapAction="http://example.com/test/Echo"/>
      <wsdl:input><soap:body use="literal"/></wsdl:input>
      <wsdl:output><soap:body use="literal"/></wsdl:output>
    </wsdl:operation>
  </wsdl:binding>
{service}
</wsdl:definitions>
"""

SERVICE = """  <wsdl:service name="EchoService">
    <wsdl:port name="EchoPort" binding="tns:EchoBinding">
      <soap:address location="http://localhost/echo"/>
    </wsdl:port>
  </wsdl:service>"""


@pytest.fixture
def fixtures_dir():
    return FIXTURES


@pytest.fixture
def calculator_wsdl():
    """Calculator service description with SOAP 1.1 and 1.2 ports"""
    return (FIXTURES / 'calculator.wsdl').read_text(encoding='utf-8')


@pytest.fixture
def inventory_wsdl():
    """Enumerations, recursion, nillable fields, references and a SOAP 1.2 port"""
    return (FIXTURES / 'inventory.wsdl').read_text(encoding='utf-8')


@pytest.fixture
def make_wsdl():
    """Build an Echo service description around extra schema declarations"""
    def _make(schema='', style=None, service=True):
        return WSDL_TEMPLATE.format(
            schema=schema,
            style=f' style="{style}"' if style else '',
            service=SERVICE if service else '',
        )
    return _make


@pytest.fixture
def load_module(tmp_path):
    """Write generated source to a temporary file and import it"""
    loaded = []

    def _load(source, name='generated_client'):
        path = tmp_path / f'{name}.py'
        path.write_text(source, encoding='utf-8')
        spec = importlib.util.spec_from_file_location(name, path)
        module = importlib.util.module_from_spec(spec)
        # typing.get_type_hints resolves forward references through sys.modules
        sys.modules[name] = module
        loaded.append(name)
        spec.loader.exec_module(module)
        return module

    yield _load
    for name in loaded:
        sys.modules.pop(name, None)


class StubRuntime:
    """Runtime that records calls and answers with a canned response body"""

    def __init__(self, endpoint, soap_version, response_xml=None):
        self.endpoint = endpoint
        self.soap_version = soap_version
        self.response_xml = response_xml
        self.calls = []

    def invoke(self, operation_name, action, namespace, request, response_type):
        from wsdl_compiler import xmlbind
        self.calls.append((operation_name, action, namespace, xmlbind.to_xml(request)))
        if response_type is None:
            return None
        return xmlbind.from_xml(response_type, self.response_xml)


@pytest.fixture
def stub_runtime_factory():
    """Factory returning a StubRuntime; the last built runtime is kept on it"""
    def _factory(response_xml=None):
        def factory(endpoint, soap_version):
            factory.runtime = StubRuntime(endpoint, soap_version, response_xml)
            return factory.runtime
        return factory
    return _factory
