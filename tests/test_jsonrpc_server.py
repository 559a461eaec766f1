"""
Tests for JSON-RPC Server

Tests the JSON-RPC wrapper around the FormValidator API.
"""
import json
import pytest
from form_validator.jsonrpc_server import FormValidatorJsonRpcServer


@pytest.fixture
def server():
    """Create a FormValidatorJsonRpcServer instance for testing."""
    return FormValidatorJsonRpcServer(debug=False)


@pytest.fixture
def signup_rules():
    """Signup rules in wire format."""
    return {
        "firstname": True,
        "email": {"required": True, "isEmail": {"value": True, "message": "Bad email"}},
        "zip": {"pattern": "^[0-9]{5}$"},
        "nickname": {"script": "return data.get('nickname') != 'admin' or 'Reserved name'"},
    }


def call(server, method, params=None, request_id=1):
    """Send one request and return the response dict."""
    return server.handle_request(json.dumps({
        "jsonrpc": "2.0",
        "id": request_id,
        "method": method,
        "params": params if params is not None else {},
    }))


class TestRequestParsing:
    """Test JSON-RPC request parsing."""

    def test_valid_request(self, server):
        response = call(server, "get_state")

        assert response["jsonrpc"] == "2.0"
        assert response["id"] == 1
        assert "result" in response

    def test_invalid_json(self, server):
        response = server.handle_request("not valid json {")

        assert "error" in response
        assert response["error"]["code"] == server.ERROR_PARSE

    def test_missing_jsonrpc_version(self, server):
        response = server.handle_request(json.dumps({"id": 1, "method": "get_state"}))

        assert response["error"]["code"] == server.ERROR_INVALID_REQUEST

    def test_wrong_jsonrpc_version(self, server):
        response = server.handle_request(json.dumps({"jsonrpc": "1.0", "id": 1, "method": "get_state"}))

        assert response["error"]["code"] == server.ERROR_INVALID_REQUEST

    def test_missing_method(self, server):
        response = server.handle_request(json.dumps({"jsonrpc": "2.0", "id": 1, "params": {}}))

        assert response["error"]["code"] == server.ERROR_INVALID_REQUEST

    def test_params_not_dict(self, server):
        response = call(server, "get_state", params=[1, 2, 3])

        assert response["error"]["code"] == server.ERROR_INVALID_PARAMS


class TestMethodDispatch:
    """Test method dispatch."""

    def test_unknown_method(self, server):
        response = call(server, "unknown_method")

        assert response["error"]["code"] == server.ERROR_METHOD_NOT_FOUND
        assert "not found" in response["error"]["message"].lower()

    def test_get_state_method(self, server):
        response = call(server, "get_state")

        assert response["result"] == {
            "errors": {},
            "is_valid": False,
            "validated": False,
            "fields": [],
        }


class TestUpdateRulesMethod:
    """Test update_rules and load_rules via JSON-RPC."""

    def test_update_rules(self, server, signup_rules):
        response = call(server, "update_rules", {"rules": signup_rules})

        assert response["result"]["fields"] == ["firstname", "email", "zip", "nickname"]

    def test_update_rules_missing(self, server):
        response = call(server, "update_rules", {})

        assert response["error"]["code"] == server.ERROR_INVALID_PARAMS
        assert "rules" in response["error"]["message"]

    def test_update_rules_bad_shape(self, server):
        response = call(server, "update_rules", {"rules": {"email": {"isEmial": True}}})

        assert response["error"]["code"] == server.ERROR_INVALID_PARAMS

    def test_load_rules(self, server, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  firstname: true\n  age:\n    min: 18\n")

        response = call(server, "load_rules", {"uri": str(path)})

        assert response["result"]["fields"] == ["firstname", "age"]

    def test_load_rules_missing_uri(self, server):
        response = call(server, "load_rules", {})

        assert "uri" in response["error"]["message"]


class TestValidateMethod:
    """Test validate and revalidate via JSON-RPC."""

    def test_validate_success(self, server, signup_rules):
        call(server, "update_rules", {"rules": signup_rules})
        response = call(server, "validate", {"data": {
            "firstname": "Jane", "email": "jane@example.com", "zip": "75001", "nickname": "jj",
        }})

        assert response["result"] == {"valid": True, "errors": {}}

    def test_validate_failures(self, server, signup_rules):
        call(server, "update_rules", {"rules": signup_rules})
        response = call(server, "validate", {"data": {
            "firstname": "", "email": "jane", "zip": "7500", "nickname": "admin",
        }})

        assert response["result"]["valid"] is False
        assert response["result"]["errors"] == {
            "firstname": "This field is required",
            "email": "Bad email",
            "zip": "Invalid value",
            "nickname": "Reserved name",
        }

    def test_validate_missing_data(self, server):
        response = call(server, "validate", {})

        assert response["error"]["code"] == server.ERROR_INVALID_PARAMS
        assert "data" in response["error"]["message"]

    def test_state_after_validate(self, server):
        call(server, "update_rules", {"rules": {"firstname": True}})
        call(server, "validate", {"data": {"firstname": "Jane"}})

        state = call(server, "get_state")["result"]
        assert state["is_valid"] is True
        assert state["validated"] is True

    def test_revalidate(self, server):
        call(server, "update_rules", {"rules": {"firstname": True}})

        assert call(server, "revalidate", {"data": {"firstname": ""}})["result"] is None

        call(server, "validate", {"data": {"firstname": "Jane"}})
        response = call(server, "revalidate", {"data": {"firstname": ""}})
        assert response["result"]["errors"] == {"firstname": "This field is required"}


class TestResponseFormat:
    """Test JSON-RPC response formatting."""

    def test_success_response_structure(self, server):
        response = server._success_response(1, {"key": "value"})

        assert response["jsonrpc"] == "2.0"
        assert response["id"] == 1
        assert response["result"] == {"key": "value"}

    def test_error_response_with_data(self, server):
        response = server._error_response(1, -32000, "Test error",
                                           data={"detail": "Extra info"})

        assert response["error"]["code"] == -32000
        assert response["error"]["message"] == "Test error"
        assert response["error"]["data"]["detail"] == "Extra info"


class TestServerLifecycle:
    """Test server start/stop."""

    def test_server_initialization(self):
        server = FormValidatorJsonRpcServer(debug=True)
        assert server.debug is True
        assert server.running is False

    def test_server_has_methods(self, server):
        for method in ['update_rules', 'load_rules', 'validate', 'revalidate', 'get_state']:
            assert method in server.methods

    def test_error_codes(self):
        assert FormValidatorJsonRpcServer.ERROR_PARSE == -32700
        assert FormValidatorJsonRpcServer.ERROR_INVALID_REQUEST == -32600
        assert FormValidatorJsonRpcServer.ERROR_METHOD_NOT_FOUND == -32601
        assert FormValidatorJsonRpcServer.ERROR_INVALID_PARAMS == -32602
        assert FormValidatorJsonRpcServer.ERROR_INTERNAL == -32000

    def test_stop_server(self, server):
        server.running = True
        server.stop_server()
        assert server.running is False

    def test_serves_until_eof(self, server, monkeypatch, capsys):
        import io
        import sys

        requests = "\n".join([
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "update_rules",
                        "params": {"rules": {"firstname": True}}}),
            json.dumps({"jsonrpc": "2.0", "id": 2, "method": "validate",
                        "params": {"data": {}}}),
        ]) + "\n"
        monkeypatch.setattr(sys, "stdin", io.StringIO(requests))

        server.start_server()

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["result"]["valid"] is False
