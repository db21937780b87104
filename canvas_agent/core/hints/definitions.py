"""
Tool definitions and metadata for Canvas Agent MCP tools.

This module contains the tool definitions with their parameters, actions,
examples, and validation rules, kept apart from the validator logic.
"""
from typing import Dict
from .data_structures import ParameterInfo, ActionInfo, ToolInfo

def _thread_id_parameter() -> ParameterInfo:
    return ParameterInfo(
        name="thread_id",
        type="integer",
        required=True,
        description="Id returned by agent_session(action='create')",
        examples=["thread_id=0"]
    )

def get_tool_definitions() -> Dict[str, ToolInfo]:
    """Initialize tool definitions with parameters and hints."""
    tools = {}

    # execute_commands tool
    tools["execute_commands"] = ToolInfo(
        name="execute_commands",
        description="Run an ordered batch of canvas commands and report every result",
        actions={
            "": ActionInfo(
                name="execute",
                description="Execute the commands in order; a failing command does not stop the rest",
                parameters=[
                    ParameterInfo(
                        name="commands",
                        type="list",
                        required=True,
                        description="Command objects, or {'id', 'cmd'} entries to choose ids yourself",
                        examples=[
                            "commands=[{'type': 'get-current-selected-nodes'}]",
                            "commands=[{'type': 'create-node', 'nodeType': 'frame', 'layout': {'sizeX': 320, 'sizeY': 200}}]",
                            "commands=[{'id': 'a', 'cmd': {'type': 'remove-node', 'nodeId': '1:4'}}]"
                        ]
                    ),
                    ParameterInfo(
                        name="batch_id",
                        type="string",
                        required=False,
                        description="Id echoed on the batch result",
                        examples=["batch_id='resize-cards'"],
                        default_value="batch"
                    )
                ],
                examples=[
                    "execute_commands(commands=[{'type': 'get-layer-visual', 'layerId': '1:2'}])",
                    "execute_commands(commands=[{'type': 'move-layer', 'layerId': '1:2', 'x': 40, 'y': 80}])"
                ],
                mutates_document=True,
                next_steps=[
                    "Check each entry's 'status' and 'error'; the batch status only summarizes them",
                    "Use get-layer-visual to confirm visual changes"
                ]
            )
        },
        common_workflows=[
            "Read the selection with get-current-selected-nodes before editing",
            "Read a node with get-node-info, then change it with edit-node in the next batch"
        ]
    )

    # canvas_snapshot tool
    tools["canvas_snapshot"] = ToolInfo(
        name="canvas_snapshot",
        description="Overview of the current page, its node tree and the selection",
        actions={
            "": ActionInfo(
                name="snapshot",
                description="Summarize the page, optionally with a PNG of one node",
                parameters=[
                    ParameterInfo(
                        name="node_id",
                        type="string",
                        required=False,
                        description="Node to export as an image when include_visual is set",
                        examples=["node_id='1:2'"]
                    ),
                    ParameterInfo(
                        name="include_visual",
                        type="boolean",
                        required=False,
                        description="Attach a base64 PNG of node_id (or the selection)",
                        examples=["include_visual=True"],
                        default_value=False
                    )
                ],
                examples=[
                    "canvas_snapshot()",
                    "canvas_snapshot(node_id='1:2', include_visual=True)"
                ]
            )
        }
    )

    # agent_session tool
    tools["agent_session"] = ToolInfo(
        name="agent_session",
        description="Drive model-backed agent threads that edit the canvas",
        actions={
            "create": ActionInfo(
                name="create",
                description="Start a new agent thread with an empty conversation",
                parameters=[],
                examples=["agent_session(action='create')"],
                next_steps=["Send a request with agent_session(action='ingest', thread_id=..., message=...)"]
            ),
            "ingest": ActionInfo(
                name="ingest",
                description="Send user text to a thread and run it until the model stops",
                parameters=[
                    _thread_id_parameter(),
                    ParameterInfo(
                        name="message",
                        type="string",
                        required=True,
                        description="What the user asks for",
                        examples=["message='Make the selected card 20px wider'"]
                    )
                ],
                examples=["agent_session(action='ingest', thread_id=0, message='Describe my selection')"],
                mutates_document=True
            ),
            "history": ActionInfo(
                name="history",
                description="Return the conversation of a thread",
                parameters=[_thread_id_parameter()],
                examples=["agent_session(action='history', thread_id=0)"]
            ),
            "close": ActionInfo(
                name="close",
                description="Drop a thread and its conversation",
                parameters=[_thread_id_parameter()],
                examples=["agent_session(action='close', thread_id=0)"]
            ),
            "list": ActionInfo(
                name="list",
                description="List open threads",
                parameters=[],
                examples=["agent_session(action='list')"]
            )
        },
        common_workflows=[
            "1. Create a thread with action='create'",
            "2. Send requests with action='ingest'",
            "3. Inspect the exchange with action='history'"
        ]
    )

    # get_help tool
    tools["get_help"] = ToolInfo(
        name="get_help",
        description="Get help, examples and parameter information for the tools",
        actions={
            "": ActionInfo(
                name="help",
                description="Describe a tool, or one action of it",
                parameters=[
                    ParameterInfo(
                        name="tool_name",
                        type="string",
                        required=False,
                        description="Tool to describe (empty lists every tool)",
                        examples=["tool_name='execute_commands'"]
                    ),
                    ParameterInfo(
                        name="action",
                        type="string",
                        required=False,
                        description="Action to describe",
                        examples=["action='ingest'"]
                    )
                ],
                examples=[
                    "get_help()",
                    "get_help(tool_name='agent_session', action='ingest')"
                ]
            )
        }
    )

    return tools
