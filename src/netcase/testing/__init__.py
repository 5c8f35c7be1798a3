"""Testing utilities: a recording transport and response helpers."""

from .mock import Invocation, MockTransport, failing_transport, json_response

__all__ = ["Invocation", "MockTransport", "failing_transport", "json_response"]
