"""Application entry point for the MentorQuiz API."""

from __future__ import annotations

from pathlib import Path
import sys

from mentor_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from mentor_quiz.core.attempt_manager import AttemptManager
from mentor_quiz.core.quiz_importer import QuizImportError, load_catalog_from_file
from mentor_quiz.core.services.result_store import InMemoryResultStore
from mentor_quiz.server.api_server import run_api_server
from mentor_quiz.utils.logging_config import configure_logging

_DEFAULT_CATALOG = Path(__file__).resolve().parent / "mentor_quiz" / "data" / "sample_catalog.json"


def main(argv: list[str] | None = None) -> None:
    """Initialize logging, seed the store and serve the API."""
    logger = configure_logging()
    args = sys.argv[1:] if argv is None else argv
    catalog_path = Path(args[0]) if args else _DEFAULT_CATALOG

    try:
        catalog = load_catalog_from_file(catalog_path)
    except (OSError, QuizImportError) as exc:
        logger.error("Could not load quiz catalog from %s: %s", catalog_path, exc)
        sys.exit(1)

    store = InMemoryResultStore(quizzes=catalog.quizzes, students=catalog.students)
    logger.info(
        "Loaded %d quizzes and %d students from %s",
        len(catalog.quizzes),
        len(catalog.students),
        catalog_path,
    )

    manager = AttemptManager(store=store, directory=store)
    logger.info("Serving MentorQuiz API on http://%s:%d/", DEFAULT_HOST, DEFAULT_PORT)
    run_api_server(manager, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
