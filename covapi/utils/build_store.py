import logging
from contextlib import contextmanager

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from covapi.cov_database import db
from covapi.models.build import Build
from covapi.models.job import Job
from covapi.models.project import Project
from covapi.utils.errors import DuplicateBuildError

log = logging.getLogger(__name__)


class BuildStore(object):
    """
    Persistence operations used by the build lifecycle.

    SqlBuildStore is the implementation backed by the application database;
    anything else providing these methods (e.g. an in-memory store in tests)
    can be passed to the functions in build_util, project_util and job_util.
    """

    def transaction(self):
        """
        Context manager around one unit of work. Commits on success, rolls back
        on error and raises DuplicateBuildError for uniqueness conflicts.
        """
        raise NotImplementedError

    def lock_project(self, project_id):
        """Serializes build, job and coverage writes for a project until the transaction ends."""
        raise NotImplementedError

    def get_project(self, project_id):
        raise NotImplementedError

    def get_build(self, build_id):
        raise NotImplementedError

    def current_for_project(self, project_id):
        """Returns the project's incomplete build, if any."""
        raise NotImplementedError

    def for_commit(self, project_id, branch, commit_sha):
        raise NotImplementedError

    def last_for_project(self, project_id):
        """Returns the build with the highest build number, across all branches."""
        raise NotImplementedError

    def previous_build(self, project_id, build_number, branch):
        """Returns the build on `branch` with the largest number below `build_number`."""
        raise NotImplementedError

    def add_build(self, build):
        raise NotImplementedError

    def save_build(self, build, changes):
        """
        Applies `changes` (field -> value) within the caller's transaction.
        Returns the names of the fields whose stored value actually changed.
        """
        raise NotImplementedError

    def jobs_for(self, build):
        raise NotImplementedError

    def next_job_number(self, build):
        raise NotImplementedError

    def add_job(self, job):
        raise NotImplementedError

    def save_project_coverage(self, project, coverage):
        raise NotImplementedError


class SqlBuildStore(BuildStore):

    @contextmanager
    def transaction(self):
        try:
            yield db.session
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateBuildError(str(e.orig)) from e
        except Exception:
            db.session.rollback()
            raise

    def lock_project(self, project_id):
        # FOR UPDATE is dropped by engines without row locks (sqlite), where the
        # unique constraints on build still catch concurrent inserts.
        return db.session.query(Project) \
            .filter_by(id=project_id) \
            .with_for_update() \
            .one_or_none()

    def get_project(self, project_id):
        return db.session.get(Project, project_id)

    def get_build(self, build_id):
        return db.session.get(Build, build_id)

    def current_for_project(self, project_id):
        return db.session.query(Build) \
            .filter(Build.project_id == project_id, Build.completed.is_(False)) \
            .first()

    def for_commit(self, project_id, branch, commit_sha):
        return db.session.query(Build) \
            .filter_by(project_id=project_id, branch=branch, commit_sha=commit_sha) \
            .first()

    def last_for_project(self, project_id):
        return db.session.query(Build) \
            .filter_by(project_id=project_id) \
            .order_by(Build.build_number.desc()) \
            .first()

    def previous_build(self, project_id, build_number, branch):
        return db.session.query(Build) \
            .filter(Build.project_id == project_id,
                    Build.branch == branch,
                    Build.build_number < build_number) \
            .order_by(Build.build_number.desc()) \
            .first()

    def add_build(self, build):
        db.session.add(build)
        db.session.flush()
        return build

    def save_build(self, build, changes):
        changed = [field for field, value in changes.items() if getattr(build, field) != value]
        for field in changed:
            setattr(build, field, changes[field])
        if changed:
            db.session.flush()
        return changed

    def jobs_for(self, build):
        return db.session.query(Job) \
            .filter_by(build_id=build.id) \
            .order_by(Job.job_number) \
            .all()

    def next_job_number(self, build):
        current = db.session.query(func.max(Job.job_number)) \
            .filter(Job.build_id == build.id) \
            .scalar()
        return (current or 0) + 1

    def add_job(self, job):
        db.session.add(job)
        db.session.flush()
        return job

    def save_project_coverage(self, project, coverage):
        project.current_coverage = coverage
        db.session.flush()
        return project
