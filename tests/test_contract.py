"""Tests for the runtime contract shared with generated clients"""

import pytest

from wsdl_compiler.contract import (DeserializationError, SoapFault, SoapRuntimeError,
                                    SoapVersion)


class TestSoapVersion:
    """Envelope details per SOAP version"""

    @pytest.mark.parametrize('version, namespace, content_type', [
        (SoapVersion.SOAP_11, 'http://schemas.xmlsoap.org/soap/envelope/',
         'text/xml; charset=utf-8'),
        (SoapVersion.SOAP_12, 'http://www.w3.org/2003/05/soap-envelope',
         'application/soap+xml; charset=utf-8'),
    ])
    def test_envelope(self, version, namespace, content_type):
        assert version.envelope_namespace == namespace
        assert version.content_type == content_type

    def test_lookup_by_value(self):
        assert SoapVersion('1.2') is SoapVersion.SOAP_12


class TestRuntimeErrors:
    """Errors a runtime raises through a generated client"""

    def test_fault(self):
        fault = SoapFault('soap:Server', 'Item not found', detail='<detail/>')
        assert isinstance(fault, SoapRuntimeError)
        assert str(fault) == 'soap:Server: Item not found'
        assert fault.detail == '<detail/>'

    def test_deserialization_error_is_runtime_error(self):
        assert issubclass(DeserializationError, SoapRuntimeError)
