"""bran: build on many remote hosts at once."""

from .config import Config, Host, load_config
from .executor import Executor, NodeStatus, Outcome, RunResult, aggregate
from .log import Category, Log, Output, Stream

__version__ = "0.1.0"

__all__ = [
    "Config",
    "Host",
    "load_config",
    "Executor",
    "NodeStatus",
    "Outcome",
    "RunResult",
    "aggregate",
    "Category",
    "Log",
    "Output",
    "Stream",
]
