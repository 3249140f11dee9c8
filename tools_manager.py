import json
import importlib
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from utils.content import extract_content
from utils.errors import ProtocolError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "tools" / "tools_config.json"


class ToolsManager:
    """Registry of the mock/demo tools, loaded from tools_config.json"""

    def __init__(self, config_path: Optional[str] = None):
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        with open(path, 'r', encoding='utf-8') as f:
            self.config = json.load(f)

    def get_tools_list(self) -> List[Dict[str, Any]]:
        """tools/list format"""
        return [
            {
                "name": tool["name"],
                "description": tool["description"],
                "inputSchema": {
                    "type": "object",
                    "properties": tool["parameters"],
                    "required": tool.get("required", [])
                }
            }
            for tool in self.config["tools"]
        ]

    def get_tool_function(self, tool_name: str) -> Optional[Callable]:
        """Resolve a tool name to its responder function"""
        for tool in self.config["tools"]:
            if tool["name"] == tool_name:
                try:
                    module = importlib.import_module(tool["module_path"])
                    return getattr(module, tool["function_name"])
                except (ImportError, AttributeError) as e:
                    logger.error(f"[ToolsManager] Failed to import {tool_name}: {e}")
                    return None
        return None

    def is_valid_tool(self, tool_name: str) -> bool:
        return any(tool["name"] == tool_name for tool in self.config["tools"])

    def get_tool_names(self) -> List[str]:
        return [tool["name"] for tool in self.config["tools"]]

    async def respond(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Run a mock tool and return its payload the way the relay would."""
        tool_function = self.get_tool_function(tool_name)
        if tool_function is None:
            raise KeyError(f"No mock response for tool: {tool_name}")

        response = await tool_function(params or {})
        if response.error is not None:
            raise ProtocolError(
                f"Tool call failed: {response.error.message}",
                code=response.error.code,
                remote_message=response.error.message,
            )
        return extract_content(response.result)


tools_manager = ToolsManager()
