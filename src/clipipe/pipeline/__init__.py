"""Middleware ordering, composition and the command-line builder."""

from clipipe.pipeline.builder import CommandLineBuilder, Parser, invoke_handler
from clipipe.pipeline.chain import MiddlewarePipeline
from clipipe.pipeline.order import MiddlewareOrder

__all__ = [
    "CommandLineBuilder",
    "MiddlewareOrder",
    "MiddlewarePipeline",
    "Parser",
    "invoke_handler",
]
