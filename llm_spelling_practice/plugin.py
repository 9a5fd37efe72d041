from typing import Any, Dict, Optional

import llm  # type: ignore

from . import db, rating
from .errors import SpellingError

hookimpl = llm.hookimpl  # type: ignore


def _blank_out(sentence: str, word: str) -> str:
    return sentence.replace(word, "_" * len(word)) if sentence else ""


def _show_word(click: Any, word: Dict[str, Any], prompt_data: Dict[str, Any]) -> None:
    click.echo("")
    click.echo(f"Spell the word ({prompt_data['targetLength']} letters).")
    if word.get("definition"):
        click.echo(f"  Meaning: {word['definition']}")
    if word.get("exampleSentence"):
        click.echo(f"  Example: {_blank_out(word['exampleSentence'], word['word'])}")
    if prompt_data.get("letterTray"):
        click.echo(f"  Letters: {' '.join(prompt_data['letterTray'])}")


@hookimpl  # type: ignore[misc]
def register_commands(cli: Any) -> None:
    import click

    @cli.command("sp-init-db")  # type: ignore[misc]
    def init_db() -> None:
        """Initialize the spelling practice database."""
        db.init_db()
        click.echo("Database initialized.")

    @cli.command("sp-add-word")  # type: ignore[misc]
    @click.argument("word")
    @click.argument("level", type=int)
    @click.option("--definition", default="", help="Short definition")
    @click.option("--example", default="", help="Example sentence")
    def add_word(word: str, level: int, definition: str, example: str) -> None:
        """Add a word to the word bank at a difficulty level."""
        try:
            is_new = db.add_word(word, level, definition, example)
        except SpellingError as e:
            raise click.ClickException(e.message)
        if is_new:
            click.echo(f"Word '{word}' added at level {level}.")
        else:
            click.echo(f"Word '{word}' already exists (skipped).")

    @cli.command("sp-import-words")  # type: ignore[misc]
    @click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
    def import_words(csv_path: str) -> None:
        """Import words from a CSV file with word and level columns."""
        count = db.import_words_csv(csv_path)
        click.echo(f"Imported {count} words. The word bank now holds {db.count_words()}.")

    @cli.command("sp-add-kid")  # type: ignore[misc]
    @click.argument("parent_id")
    @click.argument("display_name")
    @click.option("--level", type=int, default=None, help="Starting level")
    def add_kid(parent_id: str, display_name: str, level: Optional[int]) -> None:
        """Register a learner."""
        try:
            kid = db.add_kid(parent_id, display_name, level=level)
        except SpellingError as e:
            raise click.ClickException(e.message)
        click.echo(f"Learner '{display_name}' added with id {kid.id} at level {kid.level}.")

    @cli.command("sp-set-level")  # type: ignore[misc]
    @click.argument("kid_id", type=int)
    @click.argument("level", type=int)
    def set_level(kid_id: int, level: int) -> None:
        """Override a learner's level and reset their rating to match."""
        try:
            kid = db.apply_level_override(kid_id, level)
        except SpellingError as e:
            raise click.ClickException(e.message)
        click.echo(f"Learner {kid_id} is now level {kid.level} (rating {kid.rating:.0f}).")

    @cli.command("sp-progress")  # type: ignore[misc]
    @click.argument("kid_id", type=int)
    def show_progress(kid_id: int) -> None:
        """Show spelling progress for a learner."""
        try:
            progress = db.get_kid_progress(kid_id)
        except SpellingError as e:
            raise click.ClickException(e.message)
        streak = progress["streak"]
        click.echo(f"Progress for {progress['display_name']}:")
        click.echo(f"  Level: {progress['level']} (about percentile {progress['level_percentile']})")
        click.echo(f"  Rating: {progress['rating']:.0f}")
        click.echo(f"  Attempts: {progress['total_attempts']} ({progress['accuracy']:.1f}% correct)")
        click.echo(f"  Unique words: {progress['unique_words']}")
        click.echo(f"  Current streak: {streak['count']} {'correct' if streak['correct'] else 'missed'}")
        click.echo(f"  Sessions completed: {progress['sessions_completed']}")

    @cli.command("sp-practice")  # type: ignore[misc]
    @click.argument("kid_id", type=int)
    @click.option("--list-id", type=int, default=None, help="Practice a custom word list")
    @click.option("--assessment", is_flag=True, help="Run a placement assessment instead of practice")
    def practice(kid_id: int, list_id: Optional[int], assessment: bool) -> None:
        """Run an interactive spelling session in the terminal."""
        from . import session as practice_session

        try:
            started = practice_session.start_session(
                kid_id, list_id=list_id, assessment=assessment, mode="no-audio")
        except SpellingError as e:
            raise click.ClickException(e.message)

        session_id = started.session_id
        word, prompt_data = started.current_word, started.current_prompt
        click.echo(f"Session started at level {started.level}.")
        while True:
            _show_word(click, word, prompt_data)
            answer = click.prompt("Your spelling", type=str, default="", show_default=False)
            try:
                result = practice_session.submit_attempt(
                    session_id, word["id"], answer, response_ms=0,
                    prompt_id=prompt_data["promptId"])
            except SpellingError as e:
                raise click.ClickException(e.message)
            if result.correct:
                click.echo("✅ Correct!")
            else:
                description = result.error_details["summary"]["description"]
                click.echo(f"❌ It's spelled '{result.correct_spelling}' ({description}).")

            if result.next_word is not None:
                word, prompt_data = result.next_word, result.next_prompt
                continue

            summary_data = result.break_summary
            click.echo(f"\nBreak! {summary_data.correct_count} of "
                       f"{summary_data.correct_count + len(summary_data.words_missed)} correct.")
            for missed in summary_data.words_missed:
                click.echo(f"  {missed['word']} (you wrote '{missed['userSpelling']}')")
            if result.lesson:
                click.echo(f"\n💡 {result.lesson.explanation}")
                click.echo(f"   {', '.join(result.lesson.contrast)}")

            choices = ["continue", "challenge", "finish"]
            if summary_data.words_missed:
                choices.insert(2, "missed")
            choice = click.prompt("What next?", type=click.Choice(choices), default="continue")
            if choice == "finish":
                break
            branch = {"continue": "CONTINUE", "challenge": "CHALLENGE_JUMP",
                      "missed": "PRACTICE_MISSED"}[choice]
            try:
                next_set = practice_session.complete_mini_set(session_id, branch)
            except SpellingError as e:
                click.echo(f"⚠️  {e.message}")
                break
            word, prompt_data = next_set.current_word, next_set.current_prompt

        finished = practice_session.finish_session(session_id)
        click.echo(f"\nSession complete: {finished.correct_total}/{finished.attempts_total} correct "
                   f"over {finished.mini_sets_completed} mini-sets.")
        if finished.assessment_suggested_level is not None:
            base = rating.level_to_base_elo(finished.assessment_suggested_level)
            click.echo(f"Suggested level: {finished.assessment_suggested_level} "
                       f"(anchor rating {base:.0f}). Apply it with "
                       f"'llm sp-set-level {kid_id} {finished.assessment_suggested_level}'.")
