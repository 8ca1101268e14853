"""
StackBuddy Tool Catalog - Name to tool definition mapping
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .models import ToolDefinition, ToolHandler

logger = logging.getLogger(__name__)


class ToolCatalog:
    """
    Registered tools, keyed by name.

    Usage:
        catalog = ToolCatalog()
        catalog.register(ToolDefinition(name="ping", description="...",
                                        parameters={...}, executor=ping))
        catalog.get("ping")
        catalog.schemas()   # OpenAI tool schemas
    """

    def __init__(self, tools: Optional[Iterable[ToolDefinition]] = None):
        self._tools: Dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            logger.warning(f"[Tools] Replacing already registered tool: {tool.name}")
        self._tools[tool.name] = tool

    def add(
        self,
        name: str,
        description: str,
        parameters: Dict[str, Any],
        executor: ToolHandler,
        risk_level: str = "read",
    ) -> ToolDefinition:
        tool = ToolDefinition(
            name=name,
            description=description,
            parameters=parameters,
            executor=executor,
            risk_level=risk_level,
        )
        self.register(tool)
        return tool

    def merge(self, other: "ToolCatalog") -> "ToolCatalog":
        """Register every tool of another catalog into this one"""
        for tool in other:
            self.register(tool)
        return self

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self, names: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        """OpenAI tool schemas, optionally restricted to the given names"""
        if names is None:
            return [tool.to_openai_schema() for tool in self._tools.values()]
        schemas = []
        for name in names:
            tool = self._tools.get(name)
            if tool is None:
                logger.warning(f"[Tools] Enabled tool not in catalog: {name}")
                continue
            schemas.append(tool.to_openai_schema())
        return schemas

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self):
        return iter(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)
