"""
Error handling and user experience module for Canvas Agent.

This module turns failures at the tool boundary into structured errors with
suggestions, next steps and related tools, so that an MCP client (usually
another model) can correct its call.
"""
import logging
from typing import Dict, Any, List
from enum import Enum

import anthropic

from canvas_agent import config
from .agent import AgentError
from .bridge import BridgeTimeoutError
from .communication import CommunicationError
from .conversation import ConversationFormatError, ConversationOrderError
from .model_client import ModelResponseError

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors for tailored responses."""
    PARAMETER = "parameter"
    VALIDATION = "validation"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    MODEL = "model"
    WORKFLOW = "workflow"


class EnhancedError:
    """Error with context-aware suggestions."""

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        suggestions: List[str] = None,
        examples: List[str] = None,
        next_steps: List[str] = None,
        related_tools: List[str] = None,
        context: str = None
    ):
        self.category = category
        self.message = message
        self.suggestions = suggestions or []
        self.examples = examples or []
        self.next_steps = next_steps or []
        self.related_tools = related_tools or []
        self.context = context or config.EXECUTION_MODE.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for MCP response."""
        result = {
            "error": self.message,
            "category": self.category.value,
            "context": self.context
        }

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.examples:
            result["examples"] = self.examples

        if self.next_steps:
            result["next_steps"] = self.next_steps

        if self.related_tools:
            result["related_tools"] = self.related_tools

        return result


class ErrorEnhancer:
    """Builds EnhancedError instances for each failure category."""

    def enhance_parameter_error(self, tool_name: str, action: str, missing_param: str) -> EnhancedError:
        """Create error for missing/invalid parameters."""
        where = f"{tool_name}.{action}" if action else tool_name
        return EnhancedError(
            category=ErrorCategory.PARAMETER,
            message=f"Missing or invalid parameter '{missing_param}' for {where}",
            suggestions=self._get_parameter_suggestions(tool_name, missing_param),
            examples=self._get_parameter_examples(tool_name, action, missing_param),
            next_steps=[f"Run get_help(tool_name='{tool_name}') to see every parameter"],
            related_tools=self._get_related_tools(tool_name)
        )

    def enhance_validation_error(self, tool_name: str, validation_error: str) -> EnhancedError:
        """Create error for rejected batches or values."""
        suggestions = []
        lowered = validation_error.lower()
        if "duplicate" in lowered:
            suggestions = [
                "Give every command in a batch its own id",
                "Number commands '1', '2', '3' in submission order"
            ]
        elif "too large" in lowered:
            suggestions = [
                "Split the work into several smaller batches",
                f"A batch may hold at most {config.MAX_BATCH_SIZE} commands"
            ]
        elif "colour" in lowered or "color" in lowered:
            suggestions = ["Use a six digit hex colour such as '#FF0000'"]

        return EnhancedError(
            category=ErrorCategory.VALIDATION,
            message=f"Validation failed: {validation_error}",
            suggestions=suggestions,
            related_tools=self._get_related_tools(tool_name)
        )

    def enhance_transport_error(self, original_error: str) -> EnhancedError:
        """Create error for channel failures between the two contexts."""
        return EnhancedError(
            category=ErrorCategory.TRANSPORT,
            message=f"Communication with the document context failed: {original_error}",
            suggestions=[
                "Check that the document context is still running",
                "Commands that already ran may have changed the document"
            ],
            next_steps=[
                "1. Inspect the document with canvas_snapshot",
                "2. Resubmit only the commands that still need to run"
            ],
            related_tools=["canvas_snapshot", "execute_commands"]
        )

    def enhance_timeout_error(self, operation: str, timeout_ms: int) -> EnhancedError:
        """Create error for bridge timeouts."""
        return EnhancedError(
            category=ErrorCategory.TIMEOUT,
            message=f"{operation} got no answer within {timeout_ms}ms",
            suggestions=[
                "The document context may be busy or gone",
                "Large snapshots take longer; export fewer layers per batch",
                "Raise CANVAS_AGENT_BRIDGE_TIMEOUT_MS if batches are legitimately slow"
            ],
            next_steps=[
                "1. Check the document state with canvas_snapshot",
                "2. Retry with a smaller batch"
            ],
            related_tools=["canvas_snapshot"]
        )

    def enhance_protocol_error(self, thread_id: Any, violation: str) -> EnhancedError:
        """Create error for model replies that break the turn protocol."""
        return EnhancedError(
            category=ErrorCategory.PROTOCOL,
            message=f"Agent thread {thread_id} stopped: {violation}",
            suggestions=[
                "The model reply was discarded and the conversation rolled back",
                "Document changes made before the failure are kept"
            ],
            next_steps=["Send the request again with agent_session(action='ingest')"],
            related_tools=["agent_session"]
        )

    def enhance_model_error(self, original_error: str) -> EnhancedError:
        """Create error for model client failures."""
        suggestions = ["Check the model name in CANVAS_AGENT_MODEL"]
        if "api key" in original_error.lower() or "auth" in original_error.lower():
            suggestions.insert(0, f"Set {config.ANTHROPIC_API_KEY_ENV} in the server environment")
        return EnhancedError(
            category=ErrorCategory.MODEL,
            message=f"Model call failed: {original_error}",
            suggestions=suggestions,
            related_tools=["agent_session"]
        )

    def _get_parameter_examples(self, tool_name: str, action: str, param: str) -> List[str]:
        """Get examples for specific tool/action/parameter combinations."""
        examples_map = {
            "execute_commands": {
                "": {
                    "commands": [
                        "commands=[{'type': 'get-current-selected-nodes'}]",
                        "commands=[{'type': 'create-node', 'nodeType': 'rectangle'}]"
                    ]
                }
            },
            "agent_session": {
                "ingest": {
                    "thread_id": ["thread_id=0 (from agent_session(action='create'))"],
                    "message": ["message='Make the selected frame red'"]
                },
                "history": {
                    "thread_id": ["thread_id=0"]
                },
                "close": {
                    "thread_id": ["thread_id=0"]
                }
            }
        }

        return examples_map.get(tool_name, {}).get(action, {}).get(param, [])

    def _get_parameter_suggestions(self, tool_name: str, param: str) -> List[str]:
        """Get suggestions for missing parameters."""
        suggestions_map = {
            "thread_id": [
                "Create a thread first with agent_session(action='create')",
                "List open threads with agent_session(action='list')"
            ],
            "action": [
                f"Specify what action to perform with {tool_name}",
                "Run get_help to see the available actions"
            ],
            "commands": [
                "Pass a list of command objects, each with a 'type'",
                "Command ids are assigned in order when omitted"
            ]
        }

        return suggestions_map.get(param, [f"Parameter '{param}' is required for this operation"])

    def _get_related_tools(self, tool_name: str) -> List[str]:
        """Get related tools that might help."""
        related_map = {
            "execute_commands": ["canvas_snapshot", "get_help"],
            "canvas_snapshot": ["execute_commands"],
            "agent_session": ["canvas_snapshot", "get_help"]
        }

        return related_map.get(tool_name, [])


# Global instance for use across the application
error_enhancer = ErrorEnhancer()


def enhance_error(error_type: str, **kwargs) -> EnhancedError:
    """Convenience function to create contextual errors."""
    if error_type == "parameter":
        return error_enhancer.enhance_parameter_error(
            kwargs.get("tool_name", ""),
            kwargs.get("action", ""),
            kwargs.get("missing_param", "")
        )
    elif error_type == "validation":
        return error_enhancer.enhance_validation_error(
            kwargs.get("tool_name", ""),
            kwargs.get("validation_error", "")
        )
    elif error_type == "transport":
        return error_enhancer.enhance_transport_error(kwargs.get("original_error", ""))
    elif error_type == "timeout":
        return error_enhancer.enhance_timeout_error(
            kwargs.get("operation", "Command batch"),
            kwargs.get("timeout_ms", config.BRIDGE_TIMEOUT_MS)
        )
    elif error_type == "protocol":
        return error_enhancer.enhance_protocol_error(
            kwargs.get("thread_id", "?"),
            kwargs.get("violation", "")
        )
    elif error_type == "model":
        return error_enhancer.enhance_model_error(kwargs.get("original_error", ""))
    else:
        return EnhancedError(
            category=ErrorCategory.WORKFLOW,
            message=kwargs.get("message", "Unknown error")
        )


def enhance_exception(e: Exception, tool_name: str = "", **kwargs) -> EnhancedError:
    """Map an exception caught at the tool boundary to an EnhancedError."""
    if isinstance(e, BridgeTimeoutError):
        return enhance_error("timeout", timeout_ms=config.BRIDGE_TIMEOUT_MS)
    if isinstance(e, CommunicationError):
        return enhance_error("transport", original_error=str(e))
    if isinstance(e, (AgentError, ConversationOrderError, ConversationFormatError)):
        return enhance_error("protocol", violation=str(e), **kwargs)
    if isinstance(e, (ModelResponseError, anthropic.APIError)):
        return enhance_error("model", original_error=str(e))

    logger.error(f"Unexpected error in {tool_name or 'tool'}: {e}")
    return enhance_error("workflow", message=f"Unexpected error: {e}")
