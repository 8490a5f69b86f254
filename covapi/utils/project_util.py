import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from covapi import settings
from covapi.utils.errors import DuplicateBuildError, ProjectCoverageError

log = logging.getLogger(__name__)


def compute_project_coverage(project, store):
    """The project's coverage is the coverage of its most recent build, on any branch."""
    last_build = store.last_for_project(project.id)
    return last_build.coverage if last_build is not None else None


def update_project_coverage(project_id, store):
    """
    Recomputes and stores a project's coverage in one locked transaction.

    :raises ProjectCoverageError: on any database failure, after rolling back
    """
    try:
        with store.transaction():
            project = store.lock_project(project_id)
            if project is None:
                raise ProjectCoverageError(project_id, "project not found")
            store.save_project_coverage(project, compute_project_coverage(project, store))
    except (SQLAlchemyError, DuplicateBuildError) as e:
        raise ProjectCoverageError(project_id, e) from e
    return project


def cascade_project_coverage(project_id, store):
    """
    Recomputes a project's coverage after one of its builds changed coverage.

    Runs after the build write has committed and never raises: failed attempts
    are retried with a doubling delay, then logged. The build's own coverage
    stays as written either way.

    :return: True when the project was updated
    """
    delay = settings.CASCADE_RETRY_DELAY_SECONDS
    for attempt in range(1, settings.CASCADE_MAX_ATTEMPTS + 1):
        try:
            update_project_coverage(project_id, store)
            return True
        except ProjectCoverageError as e:
            if attempt == settings.CASCADE_MAX_ATTEMPTS:
                log.exception("Giving up on coverage update for project {} after {} attempts".format(
                    project_id, attempt))
                return False
            log.warning("Coverage update for project {} failed (attempt {}/{}): {}".format(
                project_id, attempt, settings.CASCADE_MAX_ATTEMPTS, e))
            time.sleep(delay)
            delay *= 2
    return False
