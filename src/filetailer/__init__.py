# filetailer - follow a file across rotation
# Package initialization file

# Package metadata
__version__ = "1.0.0"
__license__ = "MIT"

# Import main public API from internal modules
from .events import ChangeEvent, EventBridge
from .lines import FileIdentity, OpenFile, open_file, read_lines
from .tailer import FileTailer
from .watcher import BootstrapControl, WatchSession, setup_watcher

# Define what is exposed when `from filetailer import *` is used
__all__ = [
    "FileTailer",
    "ChangeEvent",
    "EventBridge",
    "FileIdentity",
    "OpenFile",
    "open_file",
    "read_lines",
    "BootstrapControl",
    "WatchSession",
    "setup_watcher",
]
