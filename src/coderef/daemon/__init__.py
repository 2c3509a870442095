"""CodeRef daemon - webhook intake, event consumer and HTTP API."""

from coderef.daemon.app import create_app
from coderef.daemon.consumer import BatchResult, ConsumerState, EventConsumer
from coderef.daemon.lifecycle import ServerController, build_controller, run_server

__all__ = [
    "BatchResult",
    "ConsumerState",
    "EventConsumer",
    "ServerController",
    "build_controller",
    "create_app",
    "run_server",
]
