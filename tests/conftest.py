import os
import random
import tempfile
from typing import Any, Dict, Generator, List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from llm_spelling_practice import db

WORD_BANK: Dict[int, List[str]] = {
    1: ["cat", "dog", "sun", "hat", "pig", "bed", "cup"],
    2: ["fish", "frog", "jump", "milk", "duck", "back", "tree"],
    3: ["friend", "happy", "little", "school", "water", "green", "sleep"],
    4: ["separate", "station", "because", "mission", "believe", "tapped", "pocket"],
}


@pytest.fixture
def temp_db() -> Generator[None, None, None]:
    """Setup transient SQLite DB for testing."""
    fd, path = tempfile.mkstemp()
    os.close(fd)
    db.engine = create_engine(f"sqlite:///{path}")
    db.SessionLocal = sessionmaker(bind=db.engine, expire_on_commit=False)
    db.init_db()
    yield
    db.engine.dispose()
    os.unlink(path)


@pytest.fixture
def word_bank(temp_db: Any) -> Dict[str, db.Word]:
    """Seed the word bank and return words by spelling."""
    for level, words in WORD_BANK.items():
        for word in words:
            db.add_word(word, level, definition=f"definition of {word}",
                        example_sentence=f"Please spell {word} for me.")
    session = db.get_session()
    words_by_spelling = {w.word: w for w in session.query(db.Word).all()}
    session.close()
    return words_by_spelling


@pytest.fixture
def kid(word_bank: Any) -> db.Kid:
    return db.add_kid("parent-1", "Ada", level=2)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
