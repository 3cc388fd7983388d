"""
Swiss Health MCP server.

Exposes the premium queries to AI assistants over MCP stdio.
Data source: BAG Priminfo (Federal Office of Public Health), 2016-2026.

Environment:
- DATABASE_URL, DATABASE_PASSWORD (required)
- LOG_LEVEL (default INFO)
"""
import logging
import os
import sys
from typing import Annotated, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from models import AgeBand, Franchise, ModelType
from tools import TOOLS, call_tool

logger = logging.getLogger(__name__)

mcp = FastMCP("swiss-health-mcp")

Canton = Annotated[str, Field(description="Canton (2-letter code, e.g. 'ZH', 'BE', 'GE')")]
Year = Annotated[int, Field(description="Year (2016-2026)")]


def _run(name: str, **arguments) -> str:
    result = call_tool(name, {k: v for k, v in arguments.items() if v is not None})
    if result.is_error:
        raise ToolError(result.text)
    return result.text


@mcp.tool(name="get_cheapest_insurers", description=TOOLS["get_cheapest_insurers"].description)
def get_cheapest_insurers(
    canton: Canton,
    year: Year,
    age_band: AgeBand,
    franchise_chf: Franchise,
    model_type: Optional[ModelType] = None,
    accident_covered: Optional[bool] = None,
) -> str:
    return _run(
        "get_cheapest_insurers",
        canton=canton,
        year=year,
        age_band=age_band,
        franchise_chf=franchise_chf,
        model_type=model_type,
        accident_covered=accident_covered,
    )


@mcp.tool(name="compare_insurers", description=TOOLS["compare_insurers"].description)
def compare_insurers(
    insurer_names: Annotated[List[str], Field(description="Insurer names, e.g. ['CSS', 'Helsana', 'Swica']")],
    canton: Canton,
    year: Year,
    age_band: AgeBand,
    franchise_chf: Franchise,
    model_type: Optional[ModelType] = None,
    accident_covered: Optional[bool] = None,
) -> str:
    return _run(
        "compare_insurers",
        insurer_names=insurer_names,
        canton=canton,
        year=year,
        age_band=age_band,
        franchise_chf=franchise_chf,
        model_type=model_type,
        accident_covered=accident_covered,
    )


@mcp.tool(name="get_price_history", description=TOOLS["get_price_history"].description)
def get_price_history(
    insurer_name: Annotated[str, Field(description="Insurer name, e.g. 'CSS' or 'Helsana'")],
    canton: Canton,
    age_band: AgeBand,
    franchise_chf: Franchise,
    start_year: Optional[int] = None,
    end_year: Optional[int] = None,
    model_type: Optional[ModelType] = None,
    accident_covered: Optional[bool] = None,
) -> str:
    return _run(
        "get_price_history",
        insurer_name=insurer_name,
        canton=canton,
        age_band=age_band,
        franchise_chf=franchise_chf,
        start_year=start_year,
        end_year=end_year,
        model_type=model_type,
        accident_covered=accident_covered,
    )


@mcp.tool(name="get_database_stats", description=TOOLS["get_database_stats"].description)
def get_database_stats() -> str:
    return _run("get_database_stats")


def main():
    # stdout carries the MCP stream
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    logger.info("🏥 Swiss Health MCP server running on stdio")
    mcp.run()


if __name__ == "__main__":
    main()
