#!/usr/bin/env python3
"""
Self-contained entry point for the e-Gov Law MCP Server.
Runs from a source checkout without installing the package.
"""
import sys
from pathlib import Path

# Add src directory to Python path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))


def check_dependencies():
    """Exit with an install hint when a required dependency is missing"""
    missing_deps = []

    try:
        import fastmcp  # noqa: F401
    except ImportError:
        missing_deps.append("fastmcp")

    try:
        import httpx  # noqa: F401
    except ImportError:
        missing_deps.append("httpx")

    try:
        import yaml  # noqa: F401
    except ImportError:
        missing_deps.append("PyYAML")

    if missing_deps:
        print(f"Error: Missing required dependencies: {', '.join(missing_deps)}", file=sys.stderr)
        print("Please install with: pip install " + " ".join(missing_deps), file=sys.stderr)
        sys.exit(1)


def main():
    """Main entry point with dependency checking"""
    check_dependencies()

    from egov_law_mcp.server import main as server_main
    server_main()


if __name__ == "__main__":
    main()
