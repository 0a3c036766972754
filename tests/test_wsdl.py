"""Tests for the service description model builder"""

import logging

import pytest

from wsdl_compiler.errors import MalformedInputError, Stage, UnsupportedFeatureError
from wsdl_compiler.wsdl import load_document, parse_definitions
from wsdl_compiler.xmlns import QName

TEMPURI = 'http://tempuri.org/'
INVENTORY = 'http://example.com/inventory'


class TestCalculatorDocument:
    """Decoding a typical .asmx service description"""

    def test_definitions(self, calculator_wsdl):
        defs = parse_definitions(calculator_wsdl)
        assert defs.name == 'Calculator'
        assert defs.target_namespace == TEMPURI
        assert [m.qname.local for m in defs.messages] == [
            'AddSoapIn', 'AddSoapOut', 'SubtractSoapIn', 'SubtractSoapOut']
        assert [t.wire_name for t in defs.schema.types] == [
            'Add', 'AddResponse', 'Subtract', 'SubtractResponse']

    def test_message_parts_reference_elements(self, calculator_wsdl):
        defs = parse_definitions(calculator_wsdl)
        part = defs.messages[0].parts[0]
        assert part.name == 'parameters'
        assert part.element == QName(TEMPURI, 'Add')
        assert part.type_name is None

    def test_port_type_operations(self, calculator_wsdl):
        defs = parse_definitions(calculator_wsdl)
        (port_type,) = defs.port_types
        add, subtract = port_type.operations
        assert add.name == 'Add'
        assert add.input == QName(TEMPURI, 'AddSoapIn')
        assert add.output == QName(TEMPURI, 'AddSoapOut')
        assert subtract.documentation is None

    def test_documentation_is_whitespace_normalized(self, calculator_wsdl):
        defs = parse_definitions(calculator_wsdl)
        add = defs.port_types[0].operations[0]
        assert add.documentation == 'Adds two integers.\nThis is a test WebService.'

    def test_soap_11_and_12_bindings(self, calculator_wsdl):
        defs = parse_definitions(calculator_wsdl)
        soap11, soap12 = defs.bindings
        assert soap11.soap_version == '1.1'
        assert soap12.soap_version == '1.2'
        assert soap11.style == 'document'
        assert soap11.transport == 'http://schemas.xmlsoap.org/soap/http'
        assert soap11.find_operation('Add').action == 'http://tempuri.org/Add'
        assert soap11.find_operation('Missing') is None

    def test_service_ports(self, calculator_wsdl):
        defs = parse_definitions(calculator_wsdl)
        (service,) = defs.services
        assert service.name == 'Calculator'
        assert [p.name for p in service.ports] == ['CalculatorSoap', 'CalculatorSoap12']
        assert service.ports[0].address == 'http://www.dneonline.com/calculator.asmx'

    def test_bytes_input(self, calculator_wsdl):
        defs = parse_definitions(calculator_wsdl.encode('utf-8'))
        assert defs.target_namespace == TEMPURI


class TestInventoryDocument:
    """Default WSDL namespace, HTTP bindings, faults and one-way operations"""

    def test_http_binding_is_skipped(self, inventory_wsdl):
        defs = parse_definitions(inventory_wsdl)
        assert [b.qname.local for b in defs.bindings] == ['InventorySoap12']

    def test_port_without_soap_address_is_skipped(self, inventory_wsdl, caplog):
        with caplog.at_level(logging.WARNING, logger='wsdl_compiler.wsdl'):
            defs = parse_definitions(inventory_wsdl)
        assert [p.name for p in defs.services[0].ports] == ['InventorySoap12Port']
        assert 'InventoryHttpPort' in caplog.text

    def test_missing_soap_action_is_none_and_warned(self, inventory_wsdl, caplog):
        with caplog.at_level(logging.WARNING, logger='wsdl_compiler.wsdl'):
            defs = parse_definitions(inventory_wsdl)
        assert defs.bindings[0].find_operation('DeleteItem').action is None
        assert "missing 'soapAction'" in caplog.text

    def test_faults_and_one_way_operation(self, inventory_wsdl):
        defs = parse_definitions(inventory_wsdl)
        get_item, delete_item = defs.port_types[0].operations
        assert [(f.name, f.message) for f in get_item.faults] == [
            ('notFound', QName(INVENTORY, 'ItemNotFound'))]
        assert delete_item.output is None

    def test_service_documentation(self, inventory_wsdl):
        defs = parse_definitions(inventory_wsdl)
        assert defs.services[0].documentation == 'Warehouse inventory.'


class TestBindingStyles:
    """Only document/literal bindings are accepted"""

    def test_missing_style_defaults_to_document(self, make_wsdl):
        defs = parse_definitions(make_wsdl())
        assert defs.bindings[0].style == 'document'

    def test_rpc_style_is_unsupported(self, make_wsdl):
        with pytest.raises(UnsupportedFeatureError, match="binding style 'rpc'") as exc_info:
            parse_definitions(make_wsdl(style='rpc'))
        assert exc_info.value.stage == Stage.SERVICE_DESCRIPTION
        assert exc_info.value.entity == 'EchoBinding'

    def test_encoded_use_is_unsupported(self, make_wsdl):
        text = make_wsdl().replace('<soap:body use="literal"/>', '<soap:body use="encoded"/>', 1)
        with pytest.raises(UnsupportedFeatureError, match="use 'encoded'"):
            parse_definitions(text)

    def test_operation_level_rpc_style_is_unsupported(self, make_wsdl):
        text = make_wsdl().replace(
            '<soap:operation soapAction="http://example.com/test/Echo"/>',
            '<soap:operation soapAction="http://example.com/test/Echo" style="rpc"/>')
        with pytest.raises(UnsupportedFeatureError):
            parse_definitions(text)

    def test_soap_binding_without_transport_is_malformed(self, make_wsdl):
        text = make_wsdl().replace(' transport="http://schemas.xmlsoap.org/soap/http"', '')
        with pytest.raises(MalformedInputError, match="missing 'transport'"):
            parse_definitions(text)


class TestMalformedDocuments:
    """Document-level failures"""

    def test_ill_formed_xml_reports_line(self):
        with pytest.raises(MalformedInputError) as exc_info:
            parse_definitions('<wsdl:definitions xmlns:wsdl="http://schemas.xmlsoap.org/wsdl/">\n<oops>')
        assert exc_info.value.line is not None
        assert exc_info.value.stage == Stage.SERVICE_DESCRIPTION

    def test_wrong_root(self):
        with pytest.raises(MalformedInputError, match='expected wsdl:definitions'):
            parse_definitions('<html/>')

    def test_wsdl_20_is_unsupported(self):
        with pytest.raises(UnsupportedFeatureError, match='WSDL 2.0'):
            parse_definitions('<description xmlns="http://www.w3.org/ns/wsdl"/>')

    def test_wsdl_import_is_unsupported(self):
        text = ('<definitions xmlns="http://schemas.xmlsoap.org/wsdl/">'
                '<import namespace="urn:x" location="other.wsdl"/></definitions>')
        with pytest.raises(UnsupportedFeatureError, match='WSDL import'):
            parse_definitions(text)

    def test_part_without_element_or_type(self, make_wsdl):
        text = make_wsdl().replace('<wsdl:part name="parameters" element="tns:Echo"/>',
                                   '<wsdl:part name="parameters"/>')
        with pytest.raises(MalformedInputError, match="neither 'element' nor 'type'"):
            parse_definitions(text)

    def test_external_entities_are_not_expanded(self):
        text = ('<?xml version="1.0"?>'
                '<!DOCTYPE d [<!ENTITY x SYSTEM "file:///etc/passwd">]>'
                '<definitions xmlns="http://schemas.xmlsoap.org/wsdl/" name="&x;"/>')
        try:
            defs = parse_definitions(text)
        except MalformedInputError:
            return
        assert 'root:' not in (defs.name or '')


class TestLoadDocument:
    """Text and bytes input"""

    def test_text_with_encoding_declaration(self):
        root = load_document('<?xml version="1.0" encoding="utf-8"?><a/>')
        assert root.tag == 'a'

    def test_bytes(self):
        root = load_document(b'<?xml version="1.0" encoding="utf-8"?><a/>')
        assert root.tag == 'a'
