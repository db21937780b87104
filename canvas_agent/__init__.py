"""
Canvas Agent

Language-model agent that inspects and edits a design canvas through batched
commands executed in a privileged document context.
"""

__version__ = "0.1.0"
