#!/usr/bin/env python3
"""
JSON-RPC 2.0 Server for FormValidator

Lets a host written in any language drive one FormValidator by spawning a
process and talking over stdin/stdout. Rules sent over the wire use the
declaration format of YAML rule files: patterns are strings, script checks
are source text, and `custom` callables are not available.

Protocol: JSON-RPC 2.0 over stdin/stdout (newline-delimited JSON)
Specification: https://www.jsonrpc.org/specification

Usage:
    python -m form_validator.jsonrpc_server [--debug] [--config URI] [--rules URI]

Example request (stdin):
    {"jsonrpc":"2.0","id":1,"method":"validate","params":{"data":{"firstname":""}}}

Example response (stdout):
    {"jsonrpc":"2.0","id":1,"result":{"valid":false,"errors":{"firstname":"This field is required"}}}
"""

import sys
import json
import signal
import logging
import argparse
from typing import Any, Dict, Optional

from form_validator import ConfigLoader, FormValidator
from form_validator.config_loader import RULES_SCHEMA, check_document


class MethodNotFound(Exception):
    """Raised when a request names an unknown method."""


class InvalidParams(ValueError):
    """Raised when request parameters are missing or malformed."""


class FormValidatorJsonRpcServer:
    """JSON-RPC 2.0 server wrapping the FormValidator API."""

    ERROR_PARSE = -32700
    ERROR_INVALID_REQUEST = -32600
    ERROR_METHOD_NOT_FOUND = -32601
    ERROR_INVALID_PARAMS = -32602
    ERROR_INTERNAL = -32000

    def __init__(self, debug: bool = False, config_uri: Optional[str] = None):
        """
        Initialize JSON-RPC server.

        Args:
            debug: Enable debug logging to stderr
            config_uri: Optional validator config override
        """
        self.config_loader = ConfigLoader(config_uri)
        self.validator = FormValidator(config_loader=self.config_loader)
        self.running = False
        self.debug = debug

        self.methods = {
            'update_rules': self._handle_update_rules,
            'load_rules': self._handle_load_rules,
            'validate': self._handle_validate,
            'revalidate': self._handle_revalidate,
            'get_state': self._handle_get_state,
        }

    def _log(self, message: str):
        """Log debug message to stderr (doesn't interfere with JSON-RPC on stdout)."""
        if self.debug:
            sys.stderr.write(f"[DEBUG] {message}\n")
            sys.stderr.flush()

    def start_server(self):
        """
        Start the JSON-RPC server loop.

        Reads requests from stdin, processes them, writes responses to stdout.
        Runs until EOF or stop signal received.
        """
        self.running = True
        self._log("FormValidator JSON-RPC server started")

        while self.running:
            try:
                line = sys.stdin.readline()

                if not line:
                    self._log("EOF received, shutting down")
                    break

                if not line.strip():
                    continue

                self._log(f"Received: {line.strip()}")
                response = self.handle_request(line)
                self._send_response(response)

            except KeyboardInterrupt:
                self._log("KeyboardInterrupt received, shutting down")
                break

        self._log("Server stopped")

    def stop_server(self):
        """Stop the server gracefully by clearing the running flag."""
        self.running = False
        self._log("Stop signal received")

    def handle_request(self, request_json: str) -> Dict[str, Any]:
        """
        Parse and process a JSON-RPC request.

        Args:
            request_json: JSON-RPC request string

        Returns:
            JSON-RPC response dict (success or error)
        """
        request_id = None

        try:
            try:
                request = json.loads(request_json)
            except json.JSONDecodeError as e:
                return self._error_response(None, self.ERROR_PARSE,
                                            f"Parse error: {e}")

            if not isinstance(request, dict):
                return self._error_response(None, self.ERROR_INVALID_REQUEST,
                                            "Request must be a JSON object")

            if request.get("jsonrpc") != "2.0":
                return self._error_response(None, self.ERROR_INVALID_REQUEST,
                                            f"Invalid JSON-RPC version: {request.get('jsonrpc')}")

            request_id = request.get("id")
            method = request.get("method")
            params = request.get("params", {})

            if not method:
                return self._error_response(request_id, self.ERROR_INVALID_REQUEST,
                                            "Missing 'method' field")

            if not isinstance(params, dict):
                return self._error_response(request_id, self.ERROR_INVALID_PARAMS,
                                            f"Params must be an object, got {type(params).__name__}")

            self._log(f"Dispatching method: {method}")
            result = self._dispatch(method, params)

            return self._success_response(request_id, result)

        except MethodNotFound as e:
            return self._error_response(request_id, self.ERROR_METHOD_NOT_FOUND, str(e))

        except InvalidParams as e:
            return self._error_response(request_id, self.ERROR_INVALID_PARAMS, str(e))

        except Exception as e:
            self._log(f"Error processing request: {e}")
            return self._error_response(request_id, self.ERROR_INTERNAL,
                                        f"Internal error: {e}")

    def _dispatch(self, method: str, params: Dict[str, Any]) -> Any:
        """
        Dispatch request to the matching handler.

        Raises:
            MethodNotFound: If method is unknown
        """
        if method not in self.methods:
            raise MethodNotFound(f"Method not found: {method}")

        handler = self.methods[method]
        return handler(params)

    def _handle_update_rules(self, params: Dict[str, Any]) -> Any:
        """Handle 'update_rules' method."""
        rules = params.get('rules')

        if not isinstance(rules, dict):
            raise InvalidParams("Missing required parameter: rules")
        try:
            check_document(rules, RULES_SCHEMA, "params.rules")
        except ValueError as e:
            raise InvalidParams(str(e)) from e

        rule_set = self.validator.update_rules(rules)
        return {"fields": rule_set.keys()}

    def _handle_load_rules(self, params: Dict[str, Any]) -> Any:
        """Handle 'load_rules' method."""
        uri = params.get('uri')

        if not uri:
            raise InvalidParams("Missing required parameter: uri")

        rule_set = self.validator.update_rules(self.config_loader.load_rules(uri))
        return {"fields": rule_set.keys()}

    def _handle_validate(self, params: Dict[str, Any]) -> Any:
        """Handle 'validate' method."""
        data = params.get('data')
        live = params.get('live', True)

        if not isinstance(data, dict):
            raise InvalidParams("Missing required parameter: data")

        return self.validator.validate(data, live=bool(live)).to_dict()

    def _handle_revalidate(self, params: Dict[str, Any]) -> Any:
        """Handle 'revalidate' method. Returns null when validation was skipped."""
        data = params.get('data')

        if not isinstance(data, dict):
            raise InvalidParams("Missing required parameter: data")

        result = self.validator.revalidate(data)
        return result.to_dict() if result is not None else None

    def _handle_get_state(self, params: Dict[str, Any]) -> Any:
        """Handle 'get_state' method."""
        return {
            "errors": dict(self.validator.errors),
            "is_valid": self.validator.is_valid,
            "validated": self.validator.state.validated,
            "fields": self.validator.rules.keys(),
        }

    def _success_response(self, request_id: Any, result: Any) -> Dict[str, Any]:
        """Format successful JSON-RPC response."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "result": result
        }

    def _error_response(self, request_id: Any, code: int, message: str,
                        data: Optional[Any] = None) -> Dict[str, Any]:
        """Format JSON-RPC error response."""
        error = {
            "code": code,
            "message": message
        }
        if data is not None:
            error["data"] = data

        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "error": error
        }

    def _send_response(self, response: Dict[str, Any]):
        """Send JSON-RPC response to stdout."""
        response_json = json.dumps(response, default=str)
        self._log(f"Sending: {response_json}")
        sys.stdout.write(response_json + "\n")
        sys.stdout.flush()


def main():
    """Main entry point for JSON-RPC server."""
    parser = argparse.ArgumentParser(
        description="FormValidator JSON-RPC 2.0 Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example usage:
  python -m form_validator.jsonrpc_server
  python -m form_validator.jsonrpc_server --debug --rules signup-rules.yaml

Supported methods:
  - update_rules
  - load_rules
  - validate
  - revalidate
  - get_state

Protocol: JSON-RPC 2.0 over stdin/stdout
See: https://www.jsonrpc.org/specification
        """
    )
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging to stderr')
    parser.add_argument('--config', metavar='URI',
                        help='Validator config override (path, file:// or http(s)://)')
    parser.add_argument('--rules', metavar='URI',
                        help='YAML rule file to load at startup')

    args = parser.parse_args()

    # Library loggers write to stderr only; stdout carries the protocol
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    server = FormValidatorJsonRpcServer(debug=args.debug, config_uri=args.config)
    if args.rules:
        server.validator.update_rules(server.config_loader.load_rules(args.rules))

    def signal_handler(sig, frame):
        server.stop_server()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    server.start_server()


if __name__ == "__main__":
    main()
