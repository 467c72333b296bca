import json
import unittest
from unittest.mock import MagicMock

import requests

from pinnlo.mcp_client import (
    HttpMcpClient,
    LocalMcpClient,
    McpError,
    tool_payload,
    tool_prompts,
    tool_text,
)


def _text_result(payload) -> dict:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}


class HttpMcpClientTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.client = HttpMcpClient(
            "https://mcp.example.com/", token="secret", timeout=5, session=self.session
        )

    def respond(self, payload):
        self.session.post.return_value.json.return_value = payload

    def test_call_tool_posts_json_rpc(self):
        result = _text_result({"success": True})
        self.respond({"jsonrpc": "2.0", "id": "1", "result": result})

        self.assertEqual(self.client.call_tool("analyze_url", {"url": "u"}), result)

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "https://mcp.example.com/invoke")
        self.assertEqual(kwargs["json"]["method"], "tools/call")
        self.assertEqual(
            kwargs["json"]["params"], {"name": "analyze_url", "arguments": {"url": "u"}}
        )
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer secret")
        self.assertEqual(kwargs["timeout"], 5)

    def test_list_tools(self):
        self.respond({"jsonrpc": "2.0", "id": "1", "result": {"tools": [{"name": "a"}]}})
        self.assertEqual(self.client.list_tools(), [{"name": "a"}])

    def test_json_rpc_error(self):
        self.respond(
            {"jsonrpc": "2.0", "id": "1", "error": {"code": -32602, "message": "Unknown tool: x"}}
        )
        with self.assertRaises(McpError) as ctx:
            self.client.call_tool("x", {})
        self.assertEqual(str(ctx.exception), "Unknown tool: x")
        self.assertEqual(ctx.exception.code, -32602)

    def test_transport_error(self):
        self.session.post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(McpError):
            self.client.call_tool("analyze_url", {"url": "u"})

    def test_non_object_response_is_mcp_error(self):
        self.respond(["not", "an", "object"])
        with self.assertRaises(McpError) as ctx:
            self.client.call_tool("analyze_url", {"url": "u"})
        self.assertEqual(str(ctx.exception), "MCP server returned an invalid response")

    def test_http_error_status(self):
        self.session.post.return_value.raise_for_status.side_effect = requests.HTTPError(
            "401 Client Error"
        )
        with self.assertRaises(McpError):
            self.client.list_tools()


class LocalMcpClientTests(unittest.TestCase):
    def test_runs_tools_in_process(self):
        client = LocalMcpClient()
        names = [tool["name"] for tool in client.list_tools()]
        self.assertIn("generate_strategy_cards", names)

        result = client.call_tool("process_intelligence_text", {"text": "Market grew 5%"})
        system, user = tool_prompts(result)
        self.assertTrue(system)
        self.assertIn("Market grew 5%", user)

    def test_tool_errors_become_mcp_errors(self):
        with self.assertRaises(McpError) as ctx:
            LocalMcpClient().call_tool("analyze_url", {})
        self.assertEqual(ctx.exception.code, -32602)


class ToolResultTests(unittest.TestCase):
    def test_tool_text_skips_non_text_items(self):
        result = {"content": [{"type": "image"}, {"type": "text", "text": "hi"}]}
        self.assertEqual(tool_text(result), "hi")
        self.assertIsNone(tool_text({}))

    def test_tool_payload_requires_json(self):
        with self.assertRaises(McpError):
            tool_payload({"content": [{"type": "text", "text": "not json"}]})
        with self.assertRaises(McpError):
            tool_payload({"content": []})

    def test_tool_prompts_reports_tool_error(self):
        with self.assertRaises(McpError) as ctx:
            tool_prompts(_text_result({"success": False, "error": "No context"}))
        self.assertEqual(str(ctx.exception), "No context")

        with self.assertRaises(McpError):
            tool_prompts(_text_result({"success": True, "prompts": {"system": "s"}}))


if __name__ == "__main__":
    unittest.main()
