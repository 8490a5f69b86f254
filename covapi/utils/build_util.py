import logging

from covapi import settings
from covapi.models.build import Build, utcnow
from covapi.schemas.payload_schema import load_build_params
from covapi.utils.build_store import SqlBuildStore
from covapi.utils.errors import BuildValidationError, BuildConflictError, DuplicateBuildError, NoCoverageDataError
from covapi.utils.project_util import cascade_project_coverage

log = logging.getLogger(__name__)


def next_build_number(store, project_id):
    """
    Next build number for a project: one more than the highest number on any
    branch, or 1 for the first build.
    """
    last_build = store.last_for_project(project_id)
    if last_build is None:
        return 1
    return last_build.build_number + 1


def find_previous_build(store, project_id, build_number, branch):
    return store.previous_build(project_id, build_number, branch)


def _find_reusable_build(store, project_id, params):
    build = store.current_for_project(project_id)
    if build is not None:
        log.debug("Reusing incomplete build #{} for project {}".format(build.build_number, project_id))
        return build

    if params.commit_sha:
        build = store.for_commit(project_id, params.branch, params.commit_sha)
        if build is not None:
            log.debug("Reusing build #{} for commit {} on branch '{}'".format(
                build.build_number, params.commit_sha, params.branch))
    return build


def _create_build(store, project_id, params):
    build_number = next_build_number(store, project_id)
    if build_number is None or build_number < 1:
        raise BuildValidationError("Could not allocate a build number for project {}".format(project_id))

    previous = find_previous_build(store, project_id, build_number, params.branch)

    build = Build(
        project_id=project_id,
        build_number=build_number,
        branch=params.branch,
        commit_sha=params.commit_sha,
        committer_name=params.committer_name,
        committer_email=params.committer_email,
        commit_message=params.commit_message,
        service_name=params.service_name,
        service_job_id=params.service_job_id,
        service_job_pull_request=params.service_job_pull_request,
        completed=not params.parallel,
        previous_build_id=previous.id if previous is not None else None,
        previous_coverage=previous.coverage if previous is not None else None,
        build_started_at=params.build_started_at or utcnow()
    )
    return store.add_build(build)


def get_or_create_build(project, payload, store=None):
    """
    Returns the build a coverage report belongs to, creating it if needed.

    In order: the project's incomplete build (whatever branch or commit the
    report names), then an existing build for the same branch and commit, then
    a new build. Creation runs under a project lock; when it still collides
    with a concurrent insert the lookup is run again.

    :return: (build, created)
    """
    store = store or SqlBuildStore()

    if project is None or getattr(project, 'id', None) is None:
        raise BuildValidationError("A project is required to record a build.")
    params = load_build_params(payload)

    build = _find_reusable_build(store, project.id, params)
    if build is not None:
        return build, False

    for attempt in range(1, settings.BUILD_CREATE_MAX_ATTEMPTS + 1):
        try:
            with store.transaction():
                if store.lock_project(project.id) is None:
                    raise BuildValidationError("No project found with id {}".format(project.id))

                # Another request may have created it while we waited for the lock
                build = _find_reusable_build(store, project.id, params)
                created = build is None
                if created:
                    build = _create_build(store, project.id, params)
        except DuplicateBuildError as e:
            log.warning("Concurrent build creation for project {} (attempt {}/{}): {}".format(
                project.id, attempt, settings.BUILD_CREATE_MAX_ATTEMPTS, e))
            build = _find_reusable_build(store, project.id, params)
            if build is not None:
                return build, False
            continue

        if created:
            log.info("Created build #{} for project {} on branch '{}' (previous build: {})".format(
                build.build_number, project.id, build.branch, build.previous_build_id))
        return build, created

    raise BuildConflictError()


def compute_coverage(build, store=None):
    """
    Build coverage is the lowest coverage among its jobs. Jobs without coverage,
    or with exactly 0, have not reported yet and are ignored.

    :raises NoCoverageDataError: when no job has a usable value
    """
    store = store or SqlBuildStore()
    coverages = [job.coverage for job in store.jobs_for(build)
                 if job.coverage is not None and job.coverage != 0]
    if not coverages:
        raise NoCoverageDataError(build.id)
    return min(coverages)


def update_build(build, store=None, **changes):
    """
    Persists changes to a build. When the stored coverage changes, the owning
    project's coverage is recomputed once the build write has committed.

    :return: names of the fields that changed
    """
    store = store or SqlBuildStore()
    with store.transaction():
        changed = store.save_build(build, changes)
    if 'coverage' in changed:
        cascade_project_coverage(build.project_id, store)
    return changed


def update_coverage(build, store=None):
    """
    Recomputes and stores the build's coverage. With no usable job values the
    coverage is left unset.
    """
    store = store or SqlBuildStore()
    with store.transaction():
        # Held against job inserts so the stored value matches the committed jobs
        store.lock_project(build.project_id)
        try:
            coverage = compute_coverage(build, store)
        except NoCoverageDataError as e:
            log.info(str(e))
            coverage = None
        changed = store.save_build(build, {'coverage': coverage})

    if 'coverage' in changed:
        cascade_project_coverage(build.project_id, store)
    return build


def complete_build(build, store=None):
    """Closes an open build so new reports start a new one."""
    store = store or SqlBuildStore()
    if not build.completed:
        update_build(build, store, completed=True)
        log.info("Build #{} of project {} completed".format(build.build_number, build.project_id))
    return update_coverage(build, store)


def coverage_diff(build):
    if build.coverage is None or build.previous_coverage is None:
        return None
    return build.coverage - build.previous_coverage
