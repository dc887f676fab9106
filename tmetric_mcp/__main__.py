"""Entry point for `python -m tmetric_mcp`."""

import logging
import os
import sys

from tmetric_mcp.client import API_TOKEN_ENV
from tmetric_mcp.server import mcp


def main() -> None:
    # stdout carries the stdio protocol, so logs go to stderr.
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not os.environ.get(API_TOKEN_ENV):
        sys.exit(f"Error: {API_TOKEN_ENV} environment variable is required")

    transport = os.environ.get("MCP_TRANSPORT", "stdio")

    if transport == "stdio":
        mcp.run(transport="stdio")
    else:
        host = os.environ.get("HOST", "127.0.0.1")
        port = int(os.environ.get("PORT", "8000"))
        mcp.run(transport=transport, host=host, port=port)


if __name__ == "__main__":
    main()
