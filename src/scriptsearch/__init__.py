"""scriptsearch: semantic search over a collection of system scripts.

Scripts are described by their header comments, embedded through an
OpenAI-compatible embeddings API, stored in SQLite and ranked by cosine
similarity against a natural-language query.
"""

from .config import ScriptSearchSettings, get_logger, get_settings
from .exceptions import ScriptSearchError

__version__ = "0.1.0"

__all__ = [
    "ScriptSearchError",
    "ScriptSearchSettings",
    "__version__",
    "get_logger",
    "get_settings",
]
