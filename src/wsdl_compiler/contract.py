"""Runtime contract consumed by generated clients.

Generated client classes never talk to the network. They receive a
``runtime_factory`` and call ``invoke`` on the runtime it builds, once per
operation call, returning whatever it returns and letting its exceptions
propagate.
"""
import enum
from typing import Any, Callable, Optional, Protocol, Type, TypeVar

T = TypeVar('T')


class SoapVersion(enum.Enum):
    SOAP_11 = '1.1'
    SOAP_12 = '1.2'

    @property
    def envelope_namespace(self):
        if self is SoapVersion.SOAP_11:
            return 'http://schemas.xmlsoap.org/soap/envelope/'
        return 'http://www.w3.org/2003/05/soap-envelope'

    @property
    def content_type(self):
        if self is SoapVersion.SOAP_11:
            return 'text/xml; charset=utf-8'
        return 'application/soap+xml; charset=utf-8'


class SoapRuntime(Protocol):
    def invoke(self, operation_name: str, action: Optional[str], namespace: Optional[str],
               request: Any, response_type: Optional[Type[T]]) -> Optional[T]:
        """Send ``request`` for ``operation_name`` and decode the reply.

        ``response_type`` is None for operations without an output message.
        """
        ...


RuntimeFactory = Callable[[str, SoapVersion], SoapRuntime]


class SoapRuntimeError(Exception):
    """Base class for errors raised by a runtime."""


class SoapFault(SoapRuntimeError):
    def __init__(self, code, reason, detail=None):
        super().__init__(f'{code}: {reason}')
        self.code = code
        self.reason = reason
        self.detail = detail


class DeserializationError(SoapRuntimeError):
    """A response body does not match the expected type."""
