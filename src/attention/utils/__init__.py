import os

DATA_DIR = os.path.expanduser(os.environ.get("ATTENTION_HOME", os.path.join("~", ".attention")))

from attention.utils.logging_handler import setup_logger
from attention.utils.event import Event
from attention.utils import custom_exception

__all__ = ["DATA_DIR", "setup_logger", "Event", "custom_exception"]
