"""
Swiss Health Premium API
HTTP access to the same premium tools the MCP server exposes.

Endpoints:
- GET  /api/tools - List tools with their input schemas
- POST /api/tools/{tool_name} - Call a tool with a JSON argument object
- GET  /api/health - Verify the store connection
"""
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models import Premium
from tools import call_tool, list_tools

app = FastAPI(
    title="Swiss Health Premium API",
    description="BAG Priminfo premium queries for AI assistants",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


class TextContent(BaseModel):
    type: str = "text"
    text: str


class ToolCallResponse(BaseModel):
    content: List[TextContent]
    isError: bool = False


@app.get("/api/tools")
def get_tools() -> List[Dict[str, Any]]:
    """Tool names, descriptions and JSON input schemas."""
    return list_tools()


@app.post("/api/tools/{tool_name}", response_model=ToolCallResponse)
def post_tool_call(tool_name: str, arguments: Optional[Dict[str, Any]] = Body(default=None)):
    """
    Call one tool. Failures are reported inside the envelope,
    never as an HTTP error.
    """
    return call_tool(tool_name, arguments).envelope()


@app.get("/api/health")
def health_check(db: Session = Depends(get_db)):
    """Health check - verify DB connection."""
    return {
        "status": "healthy",
        "premium_rows": db.query(func.count(Premium.id)).scalar() or 0,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
