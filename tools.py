"""
Tool dispatch shared by the MCP server and the HTTP API.

Routes a tool name plus argument object to one of the four premium
queries and wraps the text in the tool-call result envelope. No exception
escapes call_tool: failures come back as error-flagged text.
"""
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Type

from pydantic import BaseModel, ValidationError

import database
import queries
from models import (
    CheapestInsurersRequest,
    CompareInsurersRequest,
    DatabaseStatsRequest,
    PriceHistoryRequest,
)

logger = logging.getLogger(__name__)


class ToolSpec(NamedTuple):
    description: str
    request_model: Type[BaseModel]
    handler: Callable


class ToolResult(BaseModel):
    text: str
    is_error: bool = False

    def envelope(self) -> Dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


TOOLS: Dict[str, ToolSpec] = {
    "get_cheapest_insurers": ToolSpec(
        "Finds the cheapest health insurers for a given profile. Returns the top 5.",
        CheapestInsurersRequest,
        queries.get_cheapest_insurers,
    ),
    "compare_insurers": ToolSpec(
        "Compares several insurers for a given profile.",
        CompareInsurersRequest,
        queries.compare_insurers,
    ),
    "get_price_history": ToolSpec(
        "Shows how an insurer's premium developed over several years.",
        PriceHistoryRequest,
        queries.get_price_history,
    ),
    "get_database_stats": ToolSpec(
        "Shows database statistics (row counts, available years, insurers).",
        DatabaseStatsRequest,
        lambda db, request: queries.get_database_stats(db),
    ),
}


def list_tools() -> List[Dict[str, Any]]:
    return [
        {
            "name": name,
            "description": tool.description,
            "inputSchema": tool.request_model.model_json_schema(),
        }
        for name, tool in TOOLS.items()
    ]


def call_tool(
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
    session_factory=None,
) -> ToolResult:
    """
    Run one tool call to completion.

    session_factory overrides the configured store, mainly for tests.
    """
    tool = TOOLS.get(name)
    if tool is None:
        logger.warning("Unknown tool requested: %s", name)
        return ToolResult(text=f"❌ Unknown tool: {name}")

    try:
        request = tool.request_model.model_validate(arguments or {})
        with database.session_scope(session_factory) as db:
            text = tool.handler(db, request)
        return ToolResult(text=text)
    except ValidationError as e:
        logger.info("Invalid arguments for %s: %s", name, e)
        return ToolResult(text=f"❌ Invalid arguments for {name}: {e}", is_error=True)
    except Exception as e:
        logger.exception("Tool %s failed", name)
        return ToolResult(text=f"❌ Error: {e}", is_error=True)
