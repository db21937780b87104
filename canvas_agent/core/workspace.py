"""
Workspace wiring for Canvas Agent.

A workspace owns one document and everything needed to act on it: the
dispatcher, the cross-context bridge and host when commands run bridged, and
the registry of agent threads. The MCP tools operate on a process-wide
workspace obtained through get_workspace().
"""
import base64
import logging
from typing import Any, Callable, Dict, List, Optional

from canvas_agent import config
from canvas_agent.config import (
    AgentConfig, BridgeConfig, ExecutionContextMode,
    get_agent_config, get_bridge_config, get_model_config
)
from .agent import AgentThread, AgentThreadRegistry, OutputCallback
from .bridge import CrossContextBridge
from .commands import ExecuteCommandBatch
from .communication import LoopbackChannel
from .dispatcher import CommandDispatcher, CommandExecutor
from .document import InMemoryDocumentStore
from .host import PluginHost
from .model_client import AnthropicModelClient, ModelClient
from .results import ExecuteCommandBatchResult

logger = logging.getLogger(__name__)


def _default_model_client() -> ModelClient:
    return AnthropicModelClient(get_model_config())


class DesignWorkspace:
    """
    One document plus the machinery to edit it.

    In LOCAL mode commands go straight to the dispatcher. In BRIDGED mode
    they cross a loopback channel to a PluginHost that owns the dispatcher,
    exactly as they would between two isolated contexts.
    """

    def __init__(self, store: Optional[InMemoryDocumentStore] = None,
                 mode: Optional[ExecutionContextMode] = None,
                 bridge_config: Optional[BridgeConfig] = None,
                 agent_config: Optional[AgentConfig] = None,
                 model_client_factory: Optional[Callable[[], ModelClient]] = None):
        self.store = store or InMemoryDocumentStore()
        self.mode = mode or config.EXECUTION_MODE
        self.dispatcher = CommandDispatcher(self.store)
        self.bridge: Optional[CrossContextBridge] = None
        self.host: Optional[PluginHost] = None

        if self.mode == ExecutionContextMode.BRIDGED:
            agent_side, document_side = LoopbackChannel.pair()
            self.host = PluginHost(self.dispatcher, document_side)
            bridge_config = bridge_config or get_bridge_config()
            self.bridge = CrossContextBridge(agent_side, timeout_ms=bridge_config.timeout_ms)
            self.executor: CommandExecutor = self.bridge
        else:
            self.executor = self.dispatcher

        self.registry = AgentThreadRegistry(
            model_client_factory or _default_model_client,
            self.executor,
            agent_config or get_agent_config()
        )
        logger.info(f"Workspace ready in {self.mode.value} mode")

    async def execute(self, batch: ExecuteCommandBatch) -> ExecuteCommandBatchResult:
        return await self.executor.execute_commands(batch)

    def create_thread(self, on_outputs: Optional[OutputCallback] = None) -> AgentThread:
        return self.registry.create(on_outputs=on_outputs)

    def snapshot(self, node_id: Optional[str] = None, include_visual: bool = False) -> Dict[str, Any]:
        """Page summary with the node tree and selection, optionally with a PNG."""
        page_id = self.store.current_page_id
        snapshot = {
            "mode": self.mode.value,
            "page": self.store.read(page_id, {"name"}),
            "nodes": self._tree(page_id),
            "selection": [node.summary() for node in self.store.current_selection()]
        }
        if include_visual:
            snapshot["visual"] = base64.b64encode(self.store.export_visual(node_id)).decode("ascii")
        return snapshot

    def close(self):
        if self.bridge is not None:
            self.bridge.close()

    def _tree(self, parent_id: str) -> List[Dict[str, Any]]:
        tree = []
        for summary in self.store.list_nodes(parent_id):
            node = self.store.find(summary["id"])
            if node is not None and node.children:
                summary["children"] = self._tree(node.id)
            tree.append(summary)
        return tree


# Global workspace instance
_workspace: Optional[DesignWorkspace] = None


def get_workspace() -> DesignWorkspace:
    """
    Get the global workspace, creating it on first use.

    Returns:
        The global DesignWorkspace instance
    """
    global _workspace
    if _workspace is None:
        _workspace = DesignWorkspace()
    return _workspace


def reset_workspace(workspace: Optional[DesignWorkspace] = None) -> Optional[DesignWorkspace]:
    """Replace the global workspace (None discards it). Returns the previous one."""
    global _workspace
    previous, _workspace = _workspace, workspace
    if previous is not None and previous is not workspace:
        previous.close()
    return previous
