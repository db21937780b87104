"""
Core functionality for Canvas Agent.

This package provides the command model, the document store, command
dispatch (directly or across the cross-context bridge), the agent loop,
error handling and parameter hints.
"""

from .commands import (
    Command,
    CreateNode,
    EditNode,
    GetNodeInfo,
    RemoveNode,
    GetCurrentSelectedNodes,
    GetLayerVisual,
    MoveLayer,
    InvalidCommand,
    ExecuteCommand,
    ExecuteCommandBatch,
    CommandDecodeError,
    create_batch,
    parse_command
)

from .results import (
    CommandStatus,
    BatchStatus,
    ExecuteCommandResult,
    ExecuteCommandBatchResult,
    aggregate_status
)

from .properties import (
    NodeType,
    LayoutProperties,
    VisualProperties,
    SceneProperties,
    FrameProperties,
    TextProperties
)

from .document import (
    DocumentError,
    NodeNotFoundError,
    UnsupportedPropertyError,
    NotExportableError,
    DocumentOperationError,
    DocumentStore,
    InMemoryDocumentStore
)

from .dispatcher import (
    CommandExecutor,
    CommandDispatcher
)

from .communication import (
    MessageProtocol,
    LoopbackChannel,
    StreamChannel,
    CommunicationError
)

from .bridge import (
    CrossContextBridge,
    BridgeTimeoutError,
    BridgeClosedError
)

from .host import PluginHost

from .conversation import (
    Conversation,
    UserTurn,
    AssistantTurn,
    UserInput,
    ToolResult,
    UserOutput,
    ToolUse,
    ConversationOrderError
)

from .model_client import (
    ModelClient,
    ScriptedModelClient,
    AnthropicModelClient,
    ModelResponseError
)

from .agent import (
    AgentThread,
    AgentThreadRegistry,
    AgentError,
    ProtocolViolationError,
    ToolRoundLimitExceeded
)

from .validation import validate_batch

from .error_handler import (
    enhance_error,
    enhance_exception,
    EnhancedError,
    ErrorCategory
)

from .hints import (
    get_parameter_help,
    validate_tool_parameters,
    parameter_hints
)

from .workspace import (
    DesignWorkspace,
    get_workspace,
    reset_workspace
)

__all__ = [
    # Command model
    "Command",
    "CreateNode",
    "EditNode",
    "GetNodeInfo",
    "RemoveNode",
    "GetCurrentSelectedNodes",
    "GetLayerVisual",
    "MoveLayer",
    "InvalidCommand",
    "ExecuteCommand",
    "ExecuteCommandBatch",
    "CommandDecodeError",
    "create_batch",
    "parse_command",
    "CommandStatus",
    "BatchStatus",
    "ExecuteCommandResult",
    "ExecuteCommandBatchResult",
    "aggregate_status",

    # Document
    "NodeType",
    "LayoutProperties",
    "VisualProperties",
    "SceneProperties",
    "FrameProperties",
    "TextProperties",
    "DocumentError",
    "NodeNotFoundError",
    "UnsupportedPropertyError",
    "NotExportableError",
    "DocumentOperationError",
    "DocumentStore",
    "InMemoryDocumentStore",

    # Execution and transport
    "CommandExecutor",
    "CommandDispatcher",
    "MessageProtocol",
    "LoopbackChannel",
    "StreamChannel",
    "CommunicationError",
    "CrossContextBridge",
    "BridgeTimeoutError",
    "BridgeClosedError",
    "PluginHost",

    # Agent
    "Conversation",
    "UserTurn",
    "AssistantTurn",
    "UserInput",
    "ToolResult",
    "UserOutput",
    "ToolUse",
    "ConversationOrderError",
    "ModelClient",
    "ScriptedModelClient",
    "AnthropicModelClient",
    "ModelResponseError",
    "AgentThread",
    "AgentThreadRegistry",
    "AgentError",
    "ProtocolViolationError",
    "ToolRoundLimitExceeded",

    # Validation, errors and hints
    "validate_batch",
    "enhance_error",
    "enhance_exception",
    "EnhancedError",
    "ErrorCategory",
    "get_parameter_help",
    "validate_tool_parameters",
    "parameter_hints",

    # Wiring
    "DesignWorkspace",
    "get_workspace",
    "reset_workspace"
]
