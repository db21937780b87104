"""
Centralized configuration for Canvas Agent.

This module contains all configuration constants, timeouts, and settings
used throughout the application to ensure consistency and easy maintenance.
"""
import logging
import os
from enum import Enum
from dataclasses import dataclass
from typing import Optional

# ====================================================================
# BRIDGE SETTINGS
# ====================================================================

# Pending cross-context requests are rejected after this long (milliseconds)
BRIDGE_TIMEOUT_MS = 30000

# Largest batch a single tool-use may carry
MAX_BATCH_SIZE = 200

# ====================================================================
# AGENT SETTINGS
# ====================================================================

# Tool-use rounds allowed within one ingest call
MAX_TOOL_ROUNDS = 25

# Fixed tool name the model uses for canvas commands
DESIGN_TOOL_NAME = "canvas-design-tool"

# ====================================================================
# MODEL SETTINGS
# ====================================================================

DEFAULT_MODEL = "claude-sonnet-4-5"
MODEL_MAX_TOKENS = 8000
ANTHROPIC_API_KEY_ENV = "ANTHROPIC_API_KEY"

# ====================================================================
# DOCUMENT SETTINGS
# ====================================================================

# Exported snapshots are clamped to this many pixels per side
MAX_EXPORT_DIMENSION = 1024
DEFAULT_FILL = "#D9D9D9"


class ExecutionContextMode(Enum):
    """Where canvas commands are executed relative to the caller."""
    LOCAL = "local"
    BRIDGED = "bridged"


# ====================================================================
# CONFIG OBJECTS
# ====================================================================

@dataclass
class BridgeConfig:
    """Cross-context bridge configuration."""
    timeout_ms: int = BRIDGE_TIMEOUT_MS


@dataclass
class AgentConfig:
    """Agent thread configuration."""
    max_tool_rounds: int = MAX_TOOL_ROUNDS
    max_batch_size: int = MAX_BATCH_SIZE


@dataclass
class ModelConfig:
    """Language model client configuration."""
    model: str = DEFAULT_MODEL
    max_tokens: int = MODEL_MAX_TOKENS
    api_key: Optional[str] = None


EXECUTION_MODE = ExecutionContextMode.LOCAL

# ====================================================================
# LOGGING CONFIGURATION
# ====================================================================

LOG_LEVEL = "INFO"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Debug mode settings
DEBUG_ENABLED = False
VERBOSE_LOGGING = False

# ====================================================================
# UTILITY FUNCTIONS
# ====================================================================

def get_bridge_config() -> BridgeConfig:
    """Bridge configuration built from the current module settings."""
    return BridgeConfig(timeout_ms=BRIDGE_TIMEOUT_MS)


def get_agent_config() -> AgentConfig:
    """Agent configuration built from the current module settings."""
    return AgentConfig(max_tool_rounds=MAX_TOOL_ROUNDS, max_batch_size=MAX_BATCH_SIZE)


def get_model_config() -> ModelConfig:
    """Model configuration built from the current module settings and environment."""
    return ModelConfig(
        model=DEFAULT_MODEL,
        max_tokens=MODEL_MAX_TOKENS,
        api_key=os.environ.get(ANTHROPIC_API_KEY_ENV)
    )


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(f"Ignoring non-integer {name}={raw!r}")
        return default
    if value <= 0:
        logging.getLogger(__name__).warning(f"Ignoring non-positive {name}={value}")
        return default
    return value

# ====================================================================
# ENVIRONMENT DETECTION
# ====================================================================

def load_environment_config():
    """Load configuration from environment variables."""
    global DEBUG_ENABLED, VERBOSE_LOGGING, LOG_LEVEL
    global DEFAULT_MODEL, MAX_TOOL_ROUNDS, BRIDGE_TIMEOUT_MS, EXECUTION_MODE

    DEBUG_ENABLED = os.environ.get("DEBUG", "false").lower() == "true"
    VERBOSE_LOGGING = os.environ.get("VERBOSE", "false").lower() == "true"

    if DEBUG_ENABLED:
        LOG_LEVEL = "DEBUG"
    elif VERBOSE_LOGGING:
        LOG_LEVEL = "INFO"

    DEFAULT_MODEL = os.environ.get("CANVAS_AGENT_MODEL", DEFAULT_MODEL)
    MAX_TOOL_ROUNDS = _int_from_env("CANVAS_AGENT_MAX_TOOL_ROUNDS", MAX_TOOL_ROUNDS)
    BRIDGE_TIMEOUT_MS = _int_from_env("CANVAS_AGENT_BRIDGE_TIMEOUT_MS", BRIDGE_TIMEOUT_MS)

    mode = os.environ.get("CANVAS_AGENT_EXECUTION_MODE", EXECUTION_MODE.value).lower()
    try:
        EXECUTION_MODE = ExecutionContextMode(mode)
    except ValueError:
        logging.getLogger(__name__).warning(f"Unknown execution mode '{mode}', keeping {EXECUTION_MODE.value}")
