"""
Setup script for Canvas Agent.
"""
from setuptools import setup, find_packages

# Read requirements from requirements.txt
with open("requirements.txt") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="canvas-agent",
    version="0.1.0",
    description="Model-driven design canvas agent with an MCP server",
    long_description="A language-model agent that inspects and edits a design canvas through batched commands, exposed as a Model Context Protocol server.",
    author="Canvas Agent Team",
    packages=find_packages(include=["canvas_agent", "canvas_agent.*"]),
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "canvas-agent=canvas_agent.server:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Multimedia :: Graphics :: Editors",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
