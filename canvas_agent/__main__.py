"""
Entry point for canvas_agent when run as a module.
"""
from canvas_agent.server import main

if __name__ == "__main__":
    raise SystemExit(main())
