"""
LLM Spelling Practice Plugin

An adaptive spelling-practice engine with Elo-style ratings, mini-set
sessions and letter-level feedback.
"""

from . import config
from . import errors
from . import rating
from . import prompt
from . import diff
from . import lessons
from . import stats
from . import db
from . import locks
from . import selection
from . import session
from . import plugin

__version__ = "0.1.0"
__all__ = [
    "config", "errors", "rating", "prompt", "diff", "lessons", "stats",
    "db", "locks", "selection", "session", "plugin",
]
